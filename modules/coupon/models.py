"""
Coupon Module - Models
=======================
Named, expiring percentage discounts. Applied by name lookup; there is no
per-use redemption tracking, so a coupon stays usable until it expires.
"""

from sqlalchemy import Column, Integer, String, Float, DateTime, CheckConstraint
from sqlalchemy.orm import validates
from sqlalchemy.sql import func
from config.database import Base


class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    name = Column(String(50), unique=True, nullable=False, index=True)
    expire = Column(DateTime(timezone=True), nullable=False)
    discount = Column(Float, nullable=False)   # percent, (0, 100]
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        CheckConstraint("discount > 0 AND discount <= 100", name="ck_coupon_discount"),
    )

    @validates("name")
    def _normalize_name(self, key, value):
        return value.strip().upper() if value else value

    def __repr__(self):
        return f"<Coupon {self.name} {self.discount}%>"
