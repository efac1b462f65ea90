"""
EShop - Query Feature Composer
===============================
Builds filter / search / sort / field-limit / paginate steps on top of a
SQLAlchemy Query, for any model. Performs no I/O itself: the caller runs the
count query between filtering and paginating.

Query-string conventions:
    ?price[gte]=50&price[lt]=100   range filters (gte, gt, lte, lt)
    ?brand_id=3                    equality filter
    ?keyword=phone                 case-insensitive substring search
    ?sort=-price,title             descending with "-" prefix
    ?fields=title,price            projection
    ?page=2&limit=10               pagination
"""

import math
import operator
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import inspect, or_, func
from sqlalchemy.orm import Query, load_only

from config.settings import DEFAULT_PAGE_LIMIT
from common.exceptions import ValidationError
from common.helpers import safe_int

RESERVED_KEYS = ("page", "limit", "sort", "fields", "keyword")

_OPERATORS = {
    "gte": operator.ge,
    "gt": operator.gt,
    "lte": operator.le,
    "lt": operator.lt,
}
_RANGE_KEY = re.compile(r"^(?P<field>\w+)\[(?P<op>gte|gt|lte|lt)\]$")
_FILTERABLE_TYPES = (str, int, float, Decimal, bool, datetime, date)


class QueryFeatures:

    def __init__(self, query: Query, model, params: Mapping[str, Any]):
        self._query = query
        self._model = model
        self._params = dict(params or {})
        self._columns = inspect(model).columns
        self._fields: Optional[List[str]] = None
        self._pagination: Optional[Dict[str, int]] = None

    @property
    def query(self) -> Query:
        return self._query

    @property
    def fields(self) -> Optional[List[str]]:
        return self._fields

    @property
    def pagination_result(self) -> Optional[Dict[str, int]]:
        return self._pagination

    # ==========================================
    # Steps
    # ==========================================

    def filter(self) -> "QueryFeatures":
        criteria = []
        for key, raw in self._params.items():
            if key in RESERVED_KEYS:
                continue
            match = _RANGE_KEY.match(key)
            name, op = (match.group("field"), match.group("op")) if match else (key, None)
            column = self._filterable_column(name)
            if column is None:
                continue
            value = self._coerce(name, column, raw)
            attr = getattr(self._model, name)
            criteria.append(_OPERATORS[op](attr, value) if op else attr == value)
        if criteria:
            self._query = self._query.filter(*criteria)
        return self

    def search(self, fields: Iterable[str] = ()) -> "QueryFeatures":
        keyword = (self._params.get("keyword") or "").strip()
        fields = [f for f in fields if f in self._columns]
        if keyword and fields:
            needle = keyword.lower()
            self._query = self._query.filter(or_(*[
                func.lower(getattr(self._model, f)).contains(needle, autoescape=True)
                for f in fields
            ]))
        return self

    def sort(self) -> "QueryFeatures":
        spec = self._params.get("sort") or ""
        clauses = []
        for token in spec.split(","):
            token = token.strip()
            descending = token.startswith("-")
            name = token.lstrip("-")
            if name not in self._columns:
                continue
            attr = getattr(self._model, name)
            clauses.append(attr.desc() if descending else attr.asc())

        if clauses:
            clauses.append(self._model.id.asc())
        elif "created_at" in self._columns:
            clauses = [self._model.created_at.desc(), self._model.id.desc()]
        else:
            clauses = [self._model.id.desc()]
        self._query = self._query.order_by(*clauses)
        return self

    def limit_fields(self) -> "QueryFeatures":
        spec = self._params.get("fields") or ""
        names = [n.strip() for n in spec.split(",") if n.strip() in self._columns]
        if names:
            if "id" not in names:
                names.insert(0, "id")
            self._fields = names
            self._query = self._query.options(
                load_only(*[getattr(self._model, n) for n in names])
            )
        return self

    def paginate(self, total: int) -> "QueryFeatures":
        page = safe_int(self._params.get("page")) or 1
        limit = safe_int(self._params.get("limit")) or DEFAULT_PAGE_LIMIT
        page = max(page, 1)
        if limit < 1:
            limit = DEFAULT_PAGE_LIMIT
        skip = (page - 1) * limit

        result = {
            "currentPage": page,
            "limit": limit,
            "numberOfPages": math.ceil(total / limit),
        }
        if page * limit < total:
            result["next"] = page + 1
        if skip > 0:
            result["prev"] = page - 1

        self._pagination = result
        self._query = self._query.offset(skip).limit(limit)
        return self

    # ==========================================
    # Private helpers
    # ==========================================

    def _filterable_column(self, name: str):
        column = self._columns.get(name)
        if column is None:
            return None
        try:
            python_type = column.type.python_type
        except NotImplementedError:
            return None
        return column if issubclass(python_type, _FILTERABLE_TYPES) else None

    def _coerce(self, name: str, column, raw: Any):
        python_type = column.type.python_type
        text = str(raw).strip()
        try:
            if issubclass(python_type, bool):
                lowered = text.lower()
                if lowered in ("true", "1", "yes"):
                    return True
                if lowered in ("false", "0", "no"):
                    return False
                raise ValueError(text)
            if issubclass(python_type, datetime):
                return datetime.fromisoformat(text)
            if issubclass(python_type, date):
                return date.fromisoformat(text)
            return python_type(text)
        except (ValueError, TypeError, ArithmeticError):
            raise ValidationError(f"Invalid value for '{name}': {raw}")
