"""
User Module - Models
=====================
Single User table for shoppers and staff. Role decides what a user may do:
    user     -> shopper (cart, orders, wishlist, addresses, reviews)
    manager  -> catalog/coupon/order management
    admin    -> everything, including user management
"""

import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime
from sqlalchemy.orm import relationship, validates
from sqlalchemy.sql import func, expression
from config.database import Base


class UserRole(str, enum.Enum):
    USER = "user"
    MANAGER = "manager"
    ADMIN = "admin"


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone = Column(String(30), nullable=True)
    profile_image = Column(String, nullable=True)

    password_hash = Column(String(128), nullable=False)
    password_changed_at = Column(DateTime(timezone=True), nullable=True)
    password_reset_code = Column(String(64), nullable=True)
    password_reset_expire = Column(DateTime(timezone=True), nullable=True)
    password_reset_verified = Column(Boolean, nullable=True)

    role = Column(String(20), default=UserRole.USER.value, server_default=UserRole.USER.value, nullable=False)
    active = Column(Boolean, default=True, server_default=expression.true(), nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    addresses = relationship(
        "UserAddress", back_populates="user",
        cascade="all, delete-orphan", order_by="UserAddress.id",
    )
    wishlist = relationship("Product", secondary="wishlist_items", order_by="Product.id")

    @validates("email")
    def _normalize_email(self, key, value):
        return value.strip().lower() if value else value

    def __repr__(self):
        return f"<User id={self.id} email={self.email} role={self.role}>"


# Never included in API responses
USER_HIDDEN_FIELDS = (
    "password_hash",
    "password_reset_code",
    "password_reset_expire",
    "password_reset_verified",
)
