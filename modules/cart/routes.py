"""
Cart Routes
=============
The logged-in shopper's cart (role: user).

Endpoints (prefix /api/v1/cart):
  POST   /              — Add product (find-or-create cart)
  GET    /              — View cart
  DELETE /              — Clear cart
  PUT    /applyCoupon   — Apply coupon by name
  PUT    /{item_id}     — Update item quantity
  DELETE /{item_id}     — Remove item
"""

from typing import Optional

from fastapi import APIRouter, Depends, Response
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import allowed_to
from modules.cart.models import Cart
from modules.cart.service import cart_service
from modules.user.models import User, UserRole

router = APIRouter(prefix="/cart", tags=["cart"])

require_shopper = allowed_to(UserRole.USER)


# ==========================================
# Schemas
# ==========================================

class AddToCartRequest(BaseModel):
    product_id: int
    color: Optional[str] = Field(None, max_length=50)


class UpdateQuantityRequest(BaseModel):
    quantity: int = Field(..., ge=1)


class ApplyCouponRequest(BaseModel):
    coupon: str = Field(..., min_length=1)


def _cart_response(cart: Cart, message: str = None) -> dict:
    body = {
        "status": "Success",
        "numberOfCartItems": len(cart.items),
        "data": cart_service.serialize(cart),
    }
    if message:
        body["message"] = message
    return body


# ==========================================
# 🛒 Cart
# ==========================================

@router.post("")
async def add_to_cart(
    body: AddToCartRequest,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    cart = cart_service.add_product(db, me.id, body.product_id, body.color)
    db.commit()
    return _cart_response(cart, "Product added to cart successfully")


@router.get("")
async def get_cart(db: Session = Depends(get_db), me: User = Depends(require_shopper)):
    return _cart_response(cart_service.get_cart_or_404(db, me.id))


@router.delete("", status_code=204)
async def clear_cart(db: Session = Depends(get_db), me: User = Depends(require_shopper)):
    cart_service.clear_cart(db, me.id)
    db.commit()
    return Response(status_code=204)


@router.put("/applyCoupon")
async def apply_coupon(
    body: ApplyCouponRequest,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    cart = cart_service.apply_coupon(db, me.id, body.coupon)
    db.commit()
    return _cart_response(cart)


@router.put("/{item_id}")
async def update_item_quantity(
    item_id: int,
    body: UpdateQuantityRequest,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    cart = cart_service.update_item_quantity(db, me.id, item_id, body.quantity)
    db.commit()
    return _cart_response(cart)


@router.delete("/{item_id}")
async def remove_item(
    item_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    cart = cart_service.remove_item(db, me.id, item_id)
    db.commit()
    return _cart_response(cart)
