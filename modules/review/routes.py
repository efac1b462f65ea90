"""
Review Module - Routes
=======================
Endpoints (prefix /api/v1):
  GET    /reviews                       — List reviews
  POST   /reviews                       — Create review (user)
  GET    /reviews/{id}                  — Get review
  PUT    /reviews/{id}                  — Update own review (user)
  DELETE /reviews/{id}                  — Delete own review (user) or any (admin/manager)
  GET    /products/{id}/reviews         — Reviews of one product
  POST   /products/{id}/reviews         — Review a product (user)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from common.exceptions import ValidationError
from modules.auth.deps import allowed_to
from modules.review.service import review_service
from modules.user.models import User, UserRole

router = APIRouter(tags=["reviews"])


# ==========================================
# Schemas
# ==========================================

class ReviewCreateRequest(BaseModel):
    text: Optional[str] = Field(None, max_length=2000)
    ratings: float = Field(..., ge=1, le=5)
    product_id: Optional[int] = None


class ReviewUpdateRequest(BaseModel):
    text: Optional[str] = Field(None, max_length=2000)
    ratings: Optional[float] = Field(None, ge=1, le=5)


# ==========================================
# Routes
# ==========================================

@router.get("/reviews")
async def list_reviews(request: Request, db: Session = Depends(get_db)):
    return review_service.get_all(db, request.query_params)


@router.get("/products/{product_id}/reviews")
async def list_product_reviews(product_id: int, request: Request, db: Session = Depends(get_db)):
    return review_service.get_all(db, request.query_params, base_filter={"product_id": product_id})


@router.post("/reviews", status_code=201)
async def create_review(
    body: ReviewCreateRequest,
    db: Session = Depends(get_db),
    me: User = Depends(allowed_to(UserRole.USER)),
):
    if body.product_id is None:
        raise ValidationError("Review must belong to a product.")
    review = review_service.create_review(db, me, body.product_id, body.ratings, body.text)
    db.commit()
    return {"data": review_service.serialize(review)}


@router.post("/products/{product_id}/reviews", status_code=201)
async def create_product_review(
    product_id: int,
    body: ReviewCreateRequest,
    db: Session = Depends(get_db),
    me: User = Depends(allowed_to(UserRole.USER)),
):
    review = review_service.create_review(db, me, product_id, body.ratings, body.text)
    db.commit()
    return {"data": review_service.serialize(review)}


@router.get("/reviews/{review_id}")
async def get_review(review_id: int, db: Session = Depends(get_db)):
    return {"data": review_service.serialize(review_service.get_one(db, review_id))}


@router.put("/reviews/{review_id}")
async def update_review(
    review_id: int,
    body: ReviewUpdateRequest,
    db: Session = Depends(get_db),
    me: User = Depends(allowed_to(UserRole.USER)),
):
    review = review_service.update_review(db, me, review_id, body.model_dump(exclude_unset=True, exclude_none=True))
    db.commit()
    return {"data": review_service.serialize(review)}


@router.delete("/reviews/{review_id}", status_code=204)
async def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(allowed_to(UserRole.USER, UserRole.ADMIN, UserRole.MANAGER)),
):
    review_service.delete_review(db, me, review_id)
    db.commit()
    return Response(status_code=204)
