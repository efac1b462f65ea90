"""
Cart Module - Service Layer
==============================
Cart management: find-or-create, add/remove/update items, totals, coupons.

Any line-item change recomputes total_cart_price and clears
total_price_after_discount; only apply_coupon sets the discounted total.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from common.exceptions import NotFoundError
from common.helpers import money
from modules.cart.models import Cart, CartItem
from modules.catalog.models import Product
from modules.coupon.service import coupon_service


class CartService:

    def get_cart(self, db: Session, user_id: int) -> Optional[Cart]:
        return db.query(Cart).filter(Cart.user_id == user_id).first()

    def get_cart_or_404(self, db: Session, user_id: int) -> Cart:
        cart = self.get_cart(db, user_id)
        if not cart:
            raise NotFoundError(f"There is no cart for this user id: {user_id}")
        return cart

    def get_or_create_cart(self, db: Session, user_id: int) -> Cart:
        """Get existing cart or create one. carts.user_id is unique, so a concurrent
        creator loses the insert and picks up the winner's row instead."""
        cart = self.get_cart(db, user_id)
        if cart:
            return cart
        try:
            with db.begin_nested():
                cart = Cart(user_id=user_id, total_cart_price=Decimal("0"))
                db.add(cart)
        except IntegrityError:
            cart = db.query(Cart).filter(Cart.user_id == user_id).one()
        return cart

    # ==========================================
    # Line items
    # ==========================================

    def add_product(self, db: Session, user_id: int, product_id: int, color: Optional[str] = None) -> Cart:
        product = db.get(Product, product_id)
        if not product:
            raise NotFoundError(f"No product found for ID: {product_id}")

        cart = self.get_or_create_cart(db, user_id)
        item = next(
            (it for it in cart.items if it.product_id == product_id and it.color == color),
            None,
        )
        if item:
            item.quantity += 1
        else:
            cart.items.append(CartItem(
                product_id=product_id,
                color=color,
                quantity=1,
                price=product.price,
            ))

        self._recalculate(cart)
        db.flush()
        return cart

    def remove_item(self, db: Session, user_id: int, item_id: int) -> Cart:
        cart = self.get_cart_or_404(db, user_id)
        item = self._find_item(cart, item_id)
        cart.items.remove(item)
        self._recalculate(cart)
        db.flush()
        return cart

    def update_item_quantity(self, db: Session, user_id: int, item_id: int, quantity: int) -> Cart:
        cart = self.get_cart_or_404(db, user_id)
        item = self._find_item(cart, item_id)
        item.quantity = quantity
        self._recalculate(cart)
        db.flush()
        return cart

    def clear_cart(self, db: Session, user_id: int):
        """Delete the user's cart entirely (no-op when there is none)."""
        cart = self.get_cart(db, user_id)
        if cart:
            db.delete(cart)
            db.flush()

    # ==========================================
    # Coupons
    # ==========================================

    def apply_coupon(self, db: Session, user_id: int, coupon_name: str) -> Cart:
        # Coupon first: an invalid coupon must leave the cart untouched
        coupon = coupon_service.get_valid_coupon(db, coupon_name)
        cart = self.get_cart_or_404(db, user_id)

        total = money(cart.total_cart_price)
        discount = Decimal(str(coupon.discount))
        cart.total_price_after_discount = money(total - (total * discount / 100))
        db.flush()
        return cart

    # ==========================================
    # Serialization
    # ==========================================

    def serialize(self, cart: Cart) -> dict:
        return {
            "id": cart.id,
            "user_id": cart.user_id,
            "cart_items": [
                {
                    "id": it.id,
                    "product_id": it.product_id,
                    "quantity": it.quantity,
                    "color": it.color,
                    "price": it.price,
                }
                for it in cart.items
            ],
            "total_cart_price": cart.total_cart_price,
            "total_price_after_discount": cart.total_price_after_discount,
            "created_at": cart.created_at,
            "updated_at": cart.updated_at,
        }

    # ==========================================
    # Private helpers
    # ==========================================

    def _find_item(self, cart: Cart, item_id: int) -> CartItem:
        for it in cart.items:
            if it.id == item_id:
                return it
        raise NotFoundError(f"There is no item for this id: {item_id}")

    def _recalculate(self, cart: Cart):
        total = sum((money(it.price) * it.quantity for it in cart.items), Decimal("0"))
        cart.total_cart_price = money(total)
        cart.total_price_after_discount = None


# Singleton
cart_service = CartService()
