"""
Catalog Module - Models
========================
Category, SubCategory, Brand and Product.
Product stock counters (quantity / sold) are only ever changed by the order
placement protocol in modules/order/service.py.
"""

from sqlalchemy import (
    Column, Integer, String, Numeric, Float, Text, JSON,
    ForeignKey, DateTime, Table, CheckConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base


# ==========================================
# 🗂️ Category
# ==========================================

class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(32), nullable=False, unique=True)
    slug = Column(String(64), nullable=True, index=True)
    image = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    subcategories = relationship("SubCategory", back_populates="category", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Category {self.name}>"


# ==========================================
# 🗂️ SubCategory
# ==========================================

class SubCategory(Base):
    __tablename__ = "subcategories"

    id = Column(Integer, primary_key=True)
    name = Column(String(32), nullable=False, unique=True)
    slug = Column(String(64), nullable=True, index=True)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    category = relationship("Category", back_populates="subcategories")

    def __repr__(self):
        return f"<SubCategory {self.name}>"


# ==========================================
# 🏷️ Brand
# ==========================================

class Brand(Base):
    __tablename__ = "brands"

    id = Column(Integer, primary_key=True)
    name = Column(String(32), nullable=False, unique=True)
    slug = Column(String(64), nullable=True, index=True)
    image = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<Brand {self.name}>"


# ==========================================
# 🔗 Product ↔ SubCategory (M2M Junction)
# ==========================================

product_subcategories = Table(
    "product_subcategories",
    Base.metadata,
    Column("product_id", Integer, ForeignKey("products.id", ondelete="CASCADE"), primary_key=True),
    Column("subcategory_id", Integer, ForeignKey("subcategories.id", ondelete="CASCADE"), primary_key=True),
)


# ==========================================
# 📦 Product
# ==========================================

class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(100), nullable=False)
    slug = Column(String(120), nullable=True, index=True)
    description = Column(Text, nullable=False)
    quantity = Column(Integer, default=0, nullable=False)        # available stock
    sold = Column(Integer, default=0, nullable=False)            # cumulative units sold
    price = Column(Numeric(12, 2), nullable=False)
    price_after_discount = Column(Numeric(12, 2), nullable=True)
    colors = Column(JSON, default=list, nullable=False)
    image_cover = Column(String, nullable=True)
    images = Column(JSON, default=list, nullable=False)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False)
    brand_id = Column(Integer, ForeignKey("brands.id", ondelete="SET NULL"), nullable=True)
    ratings_average = Column(Float, default=0, nullable=False)
    ratings_quantity = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    # Relationships
    category = relationship("Category", foreign_keys=[category_id])
    brand = relationship("Brand", foreign_keys=[brand_id])
    subcategories = relationship("SubCategory", secondary=product_subcategories, order_by="SubCategory.id")
    reviews = relationship("Review", back_populates="product", cascade="all, delete-orphan")

    __table_args__ = (
        CheckConstraint("price >= 0", name="ck_product_price"),
        CheckConstraint("sold >= 0", name="ck_product_sold"),
    )

    def __repr__(self):
        return f"<Product {self.title}>"
