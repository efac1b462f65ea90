"""
Catalog Module - Service Layer
================================
Generic CRUD for categories / subcategories / brands, plus product
reference checks (category, brand, subcategories).
"""

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from common.crud import CrudService
from common.exceptions import ValidationError
from modules.catalog.models import Category, SubCategory, Brand, Product


class SubCategoryService(CrudService):

    def __init__(self):
        super().__init__(SubCategory, search_fields=("name",), slug_source="name")

    def create_one(self, db: Session, data: Dict[str, Any]) -> SubCategory:
        _require_category(db, data.get("category_id"))
        return super().create_one(db, data)

    def update_one(self, db: Session, obj_id: int, data: Dict[str, Any]) -> SubCategory:
        if "category_id" in data:
            _require_category(db, data["category_id"])
        return super().update_one(db, obj_id, data)


class ProductService(CrudService):

    def __init__(self):
        super().__init__(Product, search_fields=("title", "description"), slug_source="title")

    def create_one(self, db: Session, data: Dict[str, Any]) -> Product:
        data = dict(data)
        subcategory_ids = data.pop("subcategory_ids", None) or []
        _require_category(db, data.get("category_id"))
        self._check_brand(db, data.get("brand_id"))
        subcategories = self._resolve_subcategories(db, data["category_id"], subcategory_ids)

        product = super().create_one(db, data)
        product.subcategories = subcategories
        db.flush()
        return product

    def update_one(self, db: Session, obj_id: int, data: Dict[str, Any]) -> Product:
        data = dict(data)
        product = self.get_one(db, obj_id)
        subcategory_ids = data.pop("subcategory_ids", None)

        category_id = data.get("category_id", product.category_id)
        if "category_id" in data:
            _require_category(db, category_id)
            if subcategory_ids is None and any(s.category_id != category_id for s in product.subcategories):
                raise ValidationError("Subcategories must belong to the product category")
        if data.get("brand_id") is not None:
            self._check_brand(db, data["brand_id"])

        price = data.get("price", product.price)
        after = data.get("price_after_discount", product.price_after_discount)
        if after is not None and price is not None and after >= price:
            raise ValidationError("price_after_discount must be lower than price")

        product = super().update_one(db, obj_id, data)
        if subcategory_ids is not None:
            product.subcategories = self._resolve_subcategories(db, category_id, subcategory_ids)
            db.flush()
        return product

    def serialize(self, obj: Product, fields: Optional[List[str]] = None) -> dict:
        data = super().serialize(obj, fields)
        if not fields:
            data["category"] = {"id": obj.category.id, "name": obj.category.name} if obj.category else None
            data["subcategory_ids"] = [s.id for s in obj.subcategories]
        return data

    # ==========================================
    # Private helpers
    # ==========================================

    def _check_brand(self, db: Session, brand_id: Optional[int]):
        if brand_id is not None and not db.get(Brand, brand_id):
            raise ValidationError(f"No brand for this id: {brand_id}")

    def _resolve_subcategories(self, db: Session, category_id: int, ids: List[int]) -> List[SubCategory]:
        if not ids:
            return []
        ids = list(dict.fromkeys(ids))
        subs = db.query(SubCategory).filter(SubCategory.id.in_(ids)).all()
        if len(subs) != len(ids):
            raise ValidationError(f"Invalid subcategory ids: {ids}")
        if any(s.category_id != category_id for s in subs):
            raise ValidationError("Subcategories must belong to the product category")
        return subs


def _require_category(db: Session, category_id: Optional[int]) -> Category:
    category = db.get(Category, category_id) if category_id is not None else None
    if not category:
        raise ValidationError(f"No category for this id: {category_id}")
    return category


# Singletons
category_service = CrudService(Category, search_fields=("name",), slug_source="name")
subcategory_service = SubCategoryService()
brand_service = CrudService(Brand, search_fields=("name",), slug_source="name")
product_service = ProductService()
