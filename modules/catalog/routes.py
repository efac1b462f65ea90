"""
Catalog Module - Routes
========================
Categories, subcategories, brands and products (JSON API).
Reads are public; writes need admin/manager; deletes need admin.

Endpoints (prefix /api/v1):
  /categories                          list / create
  /categories/{id}                     get / update / delete
  /categories/{id}/subcategories       list / create (nested)
  /subcategories[/{id}]
  /brands[/{id}]
  /products[/{id}]                     single product embeds its reviews
"""

from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field, model_validator
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import allowed_to, STAFF
from modules.catalog.service import (
    category_service, subcategory_service, brand_service, product_service,
)
from modules.review.service import review_service
from modules.user.models import User, UserRole

router = APIRouter(tags=["catalog"])

require_staff = allowed_to(*STAFF)
require_admin = allowed_to(UserRole.ADMIN)


# ==========================================
# Schemas
# ==========================================

class CategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=3, max_length=32)
    image: Optional[str] = None


class CategoryUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=32)
    image: Optional[str] = None


class SubCategoryCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=32)
    category_id: Optional[int] = None


class SubCategoryUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=32)
    category_id: Optional[int] = None


class BrandCreateRequest(BaseModel):
    name: str = Field(..., min_length=2, max_length=32)
    image: Optional[str] = None


class BrandUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=2, max_length=32)
    image: Optional[str] = None


class ProductCreateRequest(BaseModel):
    title: str = Field(..., min_length=3, max_length=100)
    description: str = Field(..., min_length=1, max_length=2000)
    quantity: int = Field(..., ge=0)
    price: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    price_after_discount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    colors: List[str] = []
    image_cover: Optional[str] = None
    images: List[str] = []
    category_id: int
    subcategory_ids: List[int] = []
    brand_id: Optional[int] = None

    @model_validator(mode="after")
    def discount_below_price(self):
        if self.price_after_discount is not None and self.price_after_discount >= self.price:
            raise ValueError("price_after_discount must be lower than price")
        return self


class ProductUpdateRequest(BaseModel):
    """Stock counters are not editable here; only order placement moves them."""
    title: Optional[str] = Field(None, min_length=3, max_length=100)
    description: Optional[str] = Field(None, min_length=1, max_length=2000)
    price: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    price_after_discount: Optional[Decimal] = Field(None, ge=0, max_digits=12, decimal_places=2)
    colors: Optional[List[str]] = None
    image_cover: Optional[str] = None
    images: Optional[List[str]] = None
    category_id: Optional[int] = None
    subcategory_ids: Optional[List[int]] = None
    brand_id: Optional[int] = None


# ==========================================
# 🗂️ Categories
# ==========================================

@router.get("/categories")
async def list_categories(request: Request, db: Session = Depends(get_db)):
    return category_service.get_all(db, request.query_params)


@router.post("/categories", status_code=201)
async def create_category(
    body: CategoryCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    category = category_service.create_one(db, body.model_dump())
    db.commit()
    return {"data": category_service.serialize(category)}


@router.get("/categories/{category_id}")
async def get_category(category_id: int, db: Session = Depends(get_db)):
    return {"data": category_service.serialize(category_service.get_one(db, category_id))}


@router.put("/categories/{category_id}")
async def update_category(
    category_id: int,
    body: CategoryUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    category = category_service.update_one(db, category_id, body.model_dump(exclude_unset=True))
    db.commit()
    return {"data": category_service.serialize(category)}


@router.delete("/categories/{category_id}", status_code=204)
async def delete_category(
    category_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    category_service.delete_one(db, category_id)
    db.commit()
    return Response(status_code=204)


# ==========================================
# 🗂️ SubCategories (flat + nested under a category)
# ==========================================

@router.get("/categories/{category_id}/subcategories")
async def list_category_subcategories(category_id: int, request: Request, db: Session = Depends(get_db)):
    return subcategory_service.get_all(db, request.query_params, base_filter={"category_id": category_id})


@router.post("/categories/{category_id}/subcategories", status_code=201)
async def create_category_subcategory(
    category_id: int,
    body: SubCategoryCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    data = body.model_dump()
    data["category_id"] = category_id
    subcategory = subcategory_service.create_one(db, data)
    db.commit()
    return {"data": subcategory_service.serialize(subcategory)}


@router.get("/subcategories")
async def list_subcategories(request: Request, db: Session = Depends(get_db)):
    return subcategory_service.get_all(db, request.query_params)


@router.post("/subcategories", status_code=201)
async def create_subcategory(
    body: SubCategoryCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    subcategory = subcategory_service.create_one(db, body.model_dump())
    db.commit()
    return {"data": subcategory_service.serialize(subcategory)}


@router.get("/subcategories/{subcategory_id}")
async def get_subcategory(subcategory_id: int, db: Session = Depends(get_db)):
    return {"data": subcategory_service.serialize(subcategory_service.get_one(db, subcategory_id))}


@router.put("/subcategories/{subcategory_id}")
async def update_subcategory(
    subcategory_id: int,
    body: SubCategoryUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    subcategory = subcategory_service.update_one(db, subcategory_id, body.model_dump(exclude_unset=True))
    db.commit()
    return {"data": subcategory_service.serialize(subcategory)}


@router.delete("/subcategories/{subcategory_id}", status_code=204)
async def delete_subcategory(
    subcategory_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    subcategory_service.delete_one(db, subcategory_id)
    db.commit()
    return Response(status_code=204)


# ==========================================
# 🏷️ Brands
# ==========================================

@router.get("/brands")
async def list_brands(request: Request, db: Session = Depends(get_db)):
    return brand_service.get_all(db, request.query_params)


@router.post("/brands", status_code=201)
async def create_brand(
    body: BrandCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    brand = brand_service.create_one(db, body.model_dump())
    db.commit()
    return {"data": brand_service.serialize(brand)}


@router.get("/brands/{brand_id}")
async def get_brand(brand_id: int, db: Session = Depends(get_db)):
    return {"data": brand_service.serialize(brand_service.get_one(db, brand_id))}


@router.put("/brands/{brand_id}")
async def update_brand(
    brand_id: int,
    body: BrandUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    brand = brand_service.update_one(db, brand_id, body.model_dump(exclude_unset=True))
    db.commit()
    return {"data": brand_service.serialize(brand)}


@router.delete("/brands/{brand_id}", status_code=204)
async def delete_brand(
    brand_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    brand_service.delete_one(db, brand_id)
    db.commit()
    return Response(status_code=204)


# ==========================================
# 📦 Products
# ==========================================

@router.get("/products")
async def list_products(request: Request, db: Session = Depends(get_db)):
    return product_service.get_all(db, request.query_params)


@router.post("/products", status_code=201)
async def create_product(
    body: ProductCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    product = product_service.create_one(db, body.model_dump())
    db.commit()
    return {"data": product_service.serialize(product)}


@router.get("/products/{product_id}")
async def get_product(product_id: int, db: Session = Depends(get_db)):
    product = product_service.get_one(db, product_id)
    data = product_service.serialize(product)
    data["reviews"] = [review_service.serialize(r) for r in product.reviews]
    return {"data": data}


@router.put("/products/{product_id}")
async def update_product(
    product_id: int,
    body: ProductUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    product = product_service.update_one(db, product_id, body.model_dump(exclude_unset=True, exclude_none=True))
    db.commit()
    return {"data": product_service.serialize(product)}


@router.delete("/products/{product_id}", status_code=204)
async def delete_product(
    product_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_admin),
):
    product_service.delete_one(db, product_id)
    db.commit()
    return Response(status_code=204)
