"""
Coupon Routes
==============
Coupon management for staff (admin / manager).

Endpoints (prefix /api/v1/coupons):
  GET / POST          /
  GET / PUT / DELETE  /{id}
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.orm import Session

from config.database import get_db
from common.helpers import as_utc, now_utc
from modules.auth.deps import allowed_to, STAFF
from modules.coupon.service import coupon_service
from modules.user.models import User

router = APIRouter(prefix="/coupons", tags=["coupons"])

require_staff = allowed_to(*STAFF)


# ==========================================
# Schemas
# ==========================================

class CouponCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    expire: datetime
    discount: float = Field(..., gt=0, le=100)

    @field_validator("name")
    @classmethod
    def uppercase_name(cls, v: str) -> str:
        return v.strip().upper()

    @field_validator("expire")
    @classmethod
    def expire_in_future(cls, v: datetime) -> datetime:
        v = as_utc(v)
        if v <= now_utc():
            raise ValueError("Expiration date must be in the future.")
        return v


class CouponUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    expire: Optional[datetime] = None
    discount: Optional[float] = Field(None, gt=0, le=100)

    @field_validator("name")
    @classmethod
    def uppercase_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip().upper() if v else v

    @field_validator("expire")
    @classmethod
    def expire_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


# ==========================================
# Routes
# ==========================================

@router.get("")
async def list_coupons(
    request: Request,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    return coupon_service.get_all(db, request.query_params)


@router.post("", status_code=201)
async def create_coupon(
    body: CouponCreateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    coupon = coupon_service.create_one(db, body.model_dump())
    db.commit()
    return {"data": coupon_service.serialize(coupon)}


@router.get("/{coupon_id}")
async def get_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    return {"data": coupon_service.serialize(coupon_service.get_one(db, coupon_id))}


@router.put("/{coupon_id}")
async def update_coupon(
    coupon_id: int,
    body: CouponUpdateRequest,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    coupon = coupon_service.update_one(db, coupon_id, body.model_dump(exclude_unset=True, exclude_none=True))
    db.commit()
    return {"data": coupon_service.serialize(coupon)}


@router.delete("/{coupon_id}", status_code=204)
async def delete_coupon(
    coupon_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(require_staff),
):
    coupon_service.delete_one(db, coupon_id)
    db.commit()
    return Response(status_code=204)
