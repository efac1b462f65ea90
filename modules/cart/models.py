"""
Cart Module - Models
=====================
One cart per user (unique at the data layer). Line items carry a price
snapshot taken when the product was added.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, ForeignKey, DateTime,
    CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class Cart(Base):
    __tablename__ = "carts"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    total_cart_price = Column(Numeric(12, 2), default=0, nullable=False)
    total_price_after_discount = Column(Numeric(12, 2), nullable=True)   # set only by apply_coupon
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", foreign_keys=[user_id])
    items = relationship(
        "CartItem", back_populates="cart",
        cascade="all, delete-orphan", order_by="CartItem.id",
    )


class CartItem(Base):
    __tablename__ = "cart_items"

    id = Column(Integer, primary_key=True)
    cart_id = Column(Integer, ForeignKey("carts.id", ondelete="CASCADE"), nullable=False)
    product_id = Column(Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False)
    quantity = Column(Integer, default=1, nullable=False)
    color = Column(String(50), nullable=True)
    price = Column(Numeric(12, 2), nullable=False)   # unit price snapshot

    cart = relationship("Cart", back_populates="items")
    product = relationship("Product")

    __table_args__ = (
        CheckConstraint("quantity >= 1", name="ck_cart_qty"),
    )
