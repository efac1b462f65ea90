"""
Order Module - Service Layer
==============================
Order placement protocol: turns a cart into an order as one atomic unit.

    1. create the Order (line items copy the cart's price snapshot)
    2. batch-adjust stock: quantity -= q, sold += q  (one executemany UPDATE)
    3. delete the cart
    4. commit; on any failure roll back everything and re-raise

Cash orders run it directly. Card orders run it from the Stripe
`checkout.session.completed` webhook, keyed by the Stripe session id so a
redelivered event cannot create a second order.
"""

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy import update, bindparam
from sqlalchemy.orm import Session

from common.crud import CrudService
from common.exceptions import (
    InsufficientInventoryError, NotFoundError, ValidationError,
)
from common.helpers import money, from_minor_units, now_utc, safe_int
from config.settings import TAX_PRICE, SHIPPING_PRICE
from modules.cart.models import Cart, CartItem
from modules.catalog.models import Product
from modules.order.models import Order, OrderItem, PaymentMethod
from modules.user.models import User

logger = logging.getLogger("eshop.order")

SHIPPING_FIELDS = ("details", "phone", "city", "postal_code")


class OrderService(CrudService):

    def __init__(self):
        super().__init__(Order)

    # ==========================================
    # Cash path
    # ==========================================

    def create_cash_order(self, db: Session, user: User, cart_id: int,
                          shipping_address: Optional[Dict[str, Any]] = None) -> Order:
        cart = db.query(Cart).filter(Cart.id == cart_id).first()
        if not cart or cart.user_id != user.id:
            raise NotFoundError(f"There is no cart with this ID: {cart_id}")
        if not cart.items:
            raise ValidationError("Cart is empty. Cannot create an order.")

        order = self._build_order(
            user_id=user.id,
            cart=cart,
            shipping_address=shipping_address,
            total=self.cart_order_price(cart),
            payment_method=PaymentMethod.CASH,
        )
        return self._commit_purchase(db, cart, order)

    # ==========================================
    # Card path (webhook reconciliation)
    # ==========================================

    def create_card_order(self, db: Session, session: Dict[str, Any]) -> Order:
        """
        Finalize a paid Stripe checkout session. Returns the existing order
        when this session was already reconciled.
        """
        session_id = session.get("id")
        if not session_id:
            raise ValidationError("Checkout session has no id")

        existing = db.query(Order).filter(Order.payment_session_id == session_id).first()
        if existing:
            logger.info(f"Checkout session {session_id} already reconciled as order #{existing.id}")
            return existing

        cart_id = safe_int(session.get("client_reference_id"))
        cart = db.get(Cart, cart_id) if cart_id else None
        if not cart:
            raise NotFoundError(f"There is no cart with this ID: {session.get('client_reference_id')}")

        email = session.get("customer_email") or (session.get("customer_details") or {}).get("email")
        user = db.query(User).filter(User.email == (email or "").strip().lower()).first() if email else None
        if not user:
            raise NotFoundError(f"There is no user with email: {email}")
        if cart.user_id != user.id:
            raise ValidationError(f"Cart {cart.id} does not belong to {email}")
        if not cart.items:
            raise ValidationError("Cart is empty. Cannot create an order.")

        order = self._build_order(
            user_id=user.id,
            cart=cart,
            shipping_address=session.get("metadata"),
            total=from_minor_units(session.get("amount_total")),
            payment_method=PaymentMethod.CARD,
            paid=True,
            session_id=session_id,
        )
        return self._commit_purchase(db, cart, order)

    # ==========================================
    # Shared pricing / inventory
    # ==========================================

    def cart_order_price(self, cart: Cart) -> Decimal:
        """Discounted total when a coupon was applied, else the plain total; plus tax and shipping."""
        if cart.total_price_after_discount is not None:
            cart_price = cart.total_price_after_discount
        else:
            cart_price = cart.total_cart_price
        return money(cart_price) + money(TAX_PRICE) + money(SHIPPING_PRICE)

    def adjust_inventory(self, db: Session, items: Iterable[CartItem]):
        """
        One batched UPDATE for every line item: quantity -= q, sold += q.
        Raises InsufficientInventoryError if any product ends up below zero;
        the caller's rollback then undoes the whole batch.
        """
        qty_by_product: Dict[int, int] = defaultdict(int)
        for item in items:
            qty_by_product[item.product_id] += item.quantity
        if not qty_by_product:
            return

        products = Product.__table__
        stmt = (
            update(products)
            .where(products.c.id == bindparam("b_id"))
            .values(
                quantity=products.c.quantity - bindparam("b_qty"),
                sold=products.c.sold + bindparam("b_qty"),
            )
        )
        db.connection().execute(stmt, [
            {"b_id": pid, "b_qty": qty} for pid, qty in qty_by_product.items()
        ])

        short = db.query(Product.title).filter(
            Product.id.in_(list(qty_by_product)),
            Product.quantity < 0,
        ).all()
        if short:
            raise InsufficientInventoryError([title for (title,) in short])

    # ==========================================
    # Status flags
    # ==========================================

    def mark_paid(self, db: Session, order_id: int) -> Order:
        order = self._get_order(db, order_id)
        order.is_paid = True
        order.paid_at = now_utc()
        db.flush()
        return order

    def mark_delivered(self, db: Session, order_id: int) -> Order:
        order = self._get_order(db, order_id)
        order.is_delivered = True
        order.delivered_at = now_utc()
        db.flush()
        return order

    # ==========================================
    # Serialization
    # ==========================================

    def serialize(self, obj: Order, fields: Optional[List[str]] = None) -> dict:
        data = super().serialize(obj, fields)
        if not fields:
            data["cart_items"] = [
                {
                    "id": it.id,
                    "product": (
                        {"id": it.product.id, "title": it.product.title, "image_cover": it.product.image_cover}
                        if it.product else None
                    ),
                    "quantity": it.quantity,
                    "color": it.color,
                    "price": it.price,
                }
                for it in obj.items
            ]
            data["user"] = (
                {"id": obj.user.id, "name": obj.user.name, "email": obj.user.email, "phone": obj.user.phone}
                if obj.user else None
            )
        return data

    # ==========================================
    # Private helpers
    # ==========================================

    def _get_order(self, db: Session, order_id: int) -> Order:
        order = db.get(Order, order_id)
        if not order:
            raise NotFoundError(f"No order found for this ID: {order_id}")
        return order

    def _build_order(self, user_id: int, cart: Cart, shipping_address: Optional[Dict[str, Any]],
                     total: Decimal, payment_method: PaymentMethod,
                     paid: bool = False, session_id: str = None) -> Order:
        shipping = shipping_address or {}
        order = Order(
            user_id=user_id,
            tax_price=money(TAX_PRICE),
            shipping_price=money(SHIPPING_PRICE),
            total_order_price=money(total),
            payment_method=payment_method.value,
            payment_session_id=session_id,
            **{f"shipping_{key}": shipping.get(key) for key in SHIPPING_FIELDS},
        )
        if paid:
            order.is_paid = True
            order.paid_at = now_utc()
        order.items = [
            OrderItem(
                product_id=item.product_id,
                quantity=item.quantity,
                color=item.color,
                price=item.price,
            )
            for item in cart.items
        ]
        return order

    def _commit_purchase(self, db: Session, cart: Cart, order: Order) -> Order:
        try:
            db.add(order)
            db.flush()
            self.adjust_inventory(db, cart.items)
            db.delete(cart)
            db.flush()
            db.commit()
        except Exception:
            db.rollback()
            raise

        logger.info(
            f"Order #{order.id} placed ({order.payment_method}) "
            f"for user {order.user_id}: {order.total_order_price}"
        )
        return order


# Singleton
order_service = OrderService()
