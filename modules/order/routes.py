"""
Order Routes
==============
Endpoints (prefix /api/v1/orders):
  POST /{cart_id}                    — Place a cash order (user)
  GET  /checkout-session/{cart_id}   — Stripe checkout session (user)
  GET  /                             — List orders (users see their own)
  GET  /{id}                         — Get order (users: own only)
  PUT  /{id}/pay                     — Mark paid (admin/manager)
  PUT  /{id}/deliver                 — Mark delivered (admin/manager)
"""

from typing import Optional

from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import allowed_to, STAFF
from modules.order.service import order_service
from modules.payment.service import payment_service
from modules.user.models import User, UserRole

router = APIRouter(prefix="/orders", tags=["orders"])

require_shopper = allowed_to(UserRole.USER)
require_staff = allowed_to(*STAFF)


# ==========================================
# Schemas
# ==========================================

class ShippingAddress(BaseModel):
    details: Optional[str] = Field(None, min_length=1, max_length=500)
    phone: Optional[str] = Field(None, min_length=1, max_length=30)
    city: Optional[str] = Field(None, min_length=1, max_length=100)
    postal_code: Optional[str] = Field(None, min_length=1, max_length=20)


class CashOrderRequest(BaseModel):
    shipping_address: Optional[ShippingAddress] = None


def _own_orders_filter(user: User) -> Optional[dict]:
    return {"user_id": user.id} if user.role == UserRole.USER.value else None


# ==========================================
# 🧾 Placement
# ==========================================

@router.post("/{cart_id}", status_code=201)
async def create_cash_order(
    cart_id: int,
    body: Optional[CashOrderRequest] = None,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    shipping = body.shipping_address.model_dump() if body and body.shipping_address else None
    order = order_service.create_cash_order(db, me, cart_id, shipping)
    return {"status": "Success", "data": order_service.serialize(order)}


@router.get("/checkout-session/{cart_id}")
async def checkout_session(
    cart_id: int,
    request: Request,
    shipping: ShippingAddress = Depends(),
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    session = payment_service.create_checkout_session(
        db, me, cart_id,
        base_url=str(request.base_url),
        shipping_address=shipping.model_dump(exclude_none=True),
    )
    return {"status": "Success", "session": session}


# ==========================================
# 📋 Listing & status
# ==========================================

@router.get("")
async def list_orders(
    request: Request,
    db: Session = Depends(get_db),
    me: User = Depends(allowed_to(UserRole.USER, UserRole.ADMIN, UserRole.MANAGER)),
):
    return order_service.get_all(db, request.query_params, base_filter=_own_orders_filter(me))


@router.get("/{order_id}")
async def get_order(
    order_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(allowed_to(UserRole.USER, UserRole.ADMIN, UserRole.MANAGER)),
):
    order = order_service.get_one(db, order_id, base_filter=_own_orders_filter(me))
    return {"data": order_service.serialize(order)}


@router.put("/{order_id}/pay")
async def mark_order_paid(
    order_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_staff),
):
    order = order_service.mark_paid(db, order_id)
    db.commit()
    return {"status": "Success", "data": order_service.serialize(order)}


@router.put("/{order_id}/deliver")
async def mark_order_delivered(
    order_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_staff),
):
    order = order_service.mark_delivered(db, order_id)
    db.commit()
    return {"status": "Success", "data": order_service.serialize(order)}
