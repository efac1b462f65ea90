"""
EShop - Generic CRUD Service
=============================
One service instance per resource model: list (with QueryFeatures), get,
create, update, delete, and JSON-ready serialization. Services flush; the
route that called them commits.
"""

from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import inspect
from sqlalchemy.orm import Query, Session

from common.exceptions import NotFoundError
from common.helpers import slugify
from common.query import QueryFeatures


class CrudService:

    def __init__(
        self,
        model,
        search_fields: Iterable[str] = (),
        slug_source: Optional[str] = None,
        hidden_fields: Iterable[str] = (),
    ):
        self.model = model
        self.search_fields = tuple(search_fields)
        self.slug_source = slug_source
        self.hidden_fields = frozenset(hidden_fields)

    # ==========================================
    # Read
    # ==========================================

    def base_query(self, db: Session) -> Query:
        return db.query(self.model)

    def get_all(self, db: Session, params, base_filter: Optional[Dict[str, Any]] = None) -> dict:
        query = self.base_query(db)
        if base_filter:
            query = query.filter_by(**base_filter)

        features = QueryFeatures(query, self.model, params).filter().search(self.search_fields)
        total = features.query.count()
        features.sort().limit_fields().paginate(total)

        docs = features.query.all()
        return {
            "results": len(docs),
            "paginationResult": features.pagination_result,
            "data": [self.serialize(doc, features.fields) for doc in docs],
        }

    def get_one(self, db: Session, obj_id: int, base_filter: Optional[Dict[str, Any]] = None):
        query = self.base_query(db).filter(self.model.id == obj_id)
        if base_filter:
            query = query.filter_by(**base_filter)
        obj = query.first()
        if not obj:
            raise NotFoundError(f"No document found for ID: {obj_id}")
        return obj

    # ==========================================
    # Write
    # ==========================================

    def create_one(self, db: Session, data: Dict[str, Any]):
        data = dict(data)
        self._apply_slug(data)
        obj = self.model(**data)
        db.add(obj)
        db.flush()
        return obj

    def update_one(self, db: Session, obj_id: int, data: Dict[str, Any]):
        obj = self.get_one(db, obj_id)
        data = dict(data)
        self._apply_slug(data)
        for key, value in data.items():
            setattr(obj, key, value)
        db.flush()
        return obj

    def delete_one(self, db: Session, obj_id: int) -> None:
        obj = self.get_one(db, obj_id)
        db.delete(obj)
        db.flush()

    # ==========================================
    # Serialization
    # ==========================================

    def serialize(self, obj, fields: Optional[List[str]] = None) -> dict:
        data = {}
        for attr in inspect(obj).mapper.column_attrs:
            name = attr.key
            if name in self.hidden_fields:
                continue
            if fields and name not in fields:
                continue
            data[name] = getattr(obj, name)
        return data

    # ==========================================
    # Private helpers
    # ==========================================

    def _apply_slug(self, data: Dict[str, Any]):
        if self.slug_source and data.get(self.slug_source):
            data["slug"] = slugify(data[self.slug_source])
