"""
Order Module - Models
======================
Orders are immutable purchase snapshots: line items copy the cart's price
snapshot, never the live product price. Only the paid / delivered flags
change after creation.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, ForeignKey, DateTime, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func, expression
from config.database import Base


class PaymentMethod(str, enum.Enum):
    CASH = "cash"
    CARD = "card"


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Pricing
    tax_price = Column(Numeric(12, 2), default=0, nullable=False)
    shipping_price = Column(Numeric(12, 2), default=0, nullable=False)
    total_order_price = Column(Numeric(12, 2), nullable=False)

    # Shipping address snapshot
    shipping_details = Column(String(500), nullable=True)
    shipping_phone = Column(String(30), nullable=True)
    shipping_city = Column(String(100), nullable=True)
    shipping_postal_code = Column(String(20), nullable=True)

    payment_method = Column(String(10), default=PaymentMethod.CASH.value, nullable=False)
    # Stripe checkout session id; unique so one session yields at most one order
    payment_session_id = Column(String(255), unique=True, nullable=True)

    is_paid = Column(Boolean, default=False, server_default=expression.false(), nullable=False)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    is_delivered = Column(Boolean, default=False, server_default=expression.false(), nullable=False)
    delivered_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    user = relationship("User", foreign_keys=[user_id])
    items = relationship(
        "OrderItem", back_populates="order",
        cascade="all, delete-orphan", order_by="OrderItem.id",
    )

    __table_args__ = (
        Index("ix_order_user", "user_id"),
    )


class OrderItem(Base):
    __tablename__ = "order_items"

    id = Column(Integer, primary_key=True)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True)
    quantity = Column(Integer, nullable=False)
    color = Column(String(50), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)   # unit price at time of purchase

    order = relationship("Order", back_populates="items")
    product = relationship("Product")
