"""
Wishlist Routes
=================
Endpoints (prefix /api/v1/wishlist, role: user):
  POST   /               — Add product
  DELETE /{product_id}   — Remove product
  GET    /               — List products
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import allowed_to
from modules.catalog.service import product_service
from modules.user.models import User, UserRole
from modules.wishlist.service import wishlist_service

router = APIRouter(prefix="/wishlist", tags=["wishlist"])

require_shopper = allowed_to(UserRole.USER)


class WishlistAddRequest(BaseModel):
    product_id: int


@router.post("")
async def add_to_wishlist(
    body: WishlistAddRequest,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    wishlist_service.add_product(db, me, body.product_id)
    db.commit()
    return {
        "status": "Success",
        "message": "Product added successfully to your wishlist.",
        "data": [p.id for p in me.wishlist],
    }


@router.delete("/{product_id}")
async def remove_from_wishlist(
    product_id: int,
    db: Session = Depends(get_db),
    me: User = Depends(require_shopper),
):
    wishlist_service.remove_product(db, me, product_id)
    db.commit()
    return {
        "status": "Success",
        "message": "Product removed successfully from your wishlist.",
        "data": [p.id for p in me.wishlist],
    }


@router.get("")
async def get_wishlist(me: User = Depends(require_shopper)):
    products = me.wishlist
    return {
        "status": "Success",
        "results": len(products),
        "data": [product_service.serialize(p) for p in products],
    }
