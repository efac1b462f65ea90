"""
Wishlist Module - Service Layer
=================================
Add (set semantics) / remove / list the logged-in user's wishlist products.
"""

from typing import List

from sqlalchemy.orm import Session

from common.exceptions import NotFoundError
from modules.catalog.models import Product
from modules.user.models import User


class WishlistService:

    def add_product(self, db: Session, user: User, product_id: int) -> List[Product]:
        product = db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"No product found for ID: {product_id}")
        if product not in user.wishlist:
            user.wishlist.append(product)
            db.flush()
        return user.wishlist

    def remove_product(self, db: Session, user: User, product_id: int) -> List[Product]:
        user.wishlist = [p for p in user.wishlist if p.id != product_id]
        db.flush()
        return user.wishlist


# Singleton
wishlist_service = WishlistService()
