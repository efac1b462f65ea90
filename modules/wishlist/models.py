"""
Wishlist Module - Models
=========================
User <-> Product link table. The composite primary key gives set semantics:
a product appears at most once in a user's wishlist.
"""

from sqlalchemy import Table, Column, Integer, DateTime, ForeignKey
from sqlalchemy.sql import func
from config.database import Base


wishlist_items = Table(
    "wishlist_items",
    Base.metadata,
    Column("user_id", Integer, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("created_at", DateTime(timezone=True), server_default=func.now(), nullable=False),
)
