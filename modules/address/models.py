"""
Address Module - Models
========================
Saved shipping addresses (address book) per user.
"""

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


class UserAddress(Base):
    __tablename__ = "user_addresses"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    alias = Column(String(100), nullable=True)       # e.g. "Home", "Work"
    details = Column(String(500), nullable=True)
    phone = Column(String(30), nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    user = relationship("User", back_populates="addresses")

    __table_args__ = (
        Index("ix_user_address_user", "user_id"),
    )
