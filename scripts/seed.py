"""
EShop - Sample Data Seeder
===========================
Seeds staff accounts, a small catalog and a coupon for local testing.

Usage:
    python scripts/seed.py -i   # Insert sample data
    python scripts/seed.py -d   # Delete catalog, coupons, carts and orders
"""

import sys
import os
from datetime import timedelta
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import SessionLocal, Base, engine
from common.helpers import now_utc, slugify
from common.security import hash_password
from modules.user.models import User, UserRole
from modules.address.models import UserAddress  # noqa: F401
from modules.wishlist.models import wishlist_items  # noqa: F401
from modules.catalog.models import Category, SubCategory, Brand, Product
from modules.review.models import Review
from modules.cart.models import Cart
from modules.coupon.models import Coupon
from modules.order.models import Order

STAFF = [
    ("Admin", "admin@eshop.com", UserRole.ADMIN),
    ("Manager", "manager@eshop.com", UserRole.MANAGER),
]

CATALOG = {
    "Electronics": {
        "subcategories": ["Phones", "Laptops"],
        "products": [
            ("Pixel Phone 128GB", "Phones", "Acme", Decimal("499.00"), 40),
            ("UltraBook 14", "Laptops", "Globex", Decimal("1199.99"), 15),
        ],
    },
    "Home": {
        "subcategories": ["Kitchen"],
        "products": [
            ("Steel Kettle 1.7L", "Kitchen", "Acme", Decimal("39.90"), 120),
        ],
    },
}


def insert_data():
    db = SessionLocal()
    try:
        for name, email, role in STAFF:
            if not db.query(User).filter(User.email == email).first():
                db.add(User(
                    name=name, slug=slugify(name), email=email,
                    password_hash=hash_password("pass1234"), role=role.value,
                ))
                print(f"  + user {email} ({role.value})")

        brands = {}
        for category_name, spec in CATALOG.items():
            category = Category(name=category_name, slug=slugify(category_name))
            db.add(category)
            db.flush()
            subs = {}
            for sub_name in spec["subcategories"]:
                sub = SubCategory(name=sub_name, slug=slugify(sub_name), category_id=category.id)
                db.add(sub)
                subs[sub_name] = sub
            for title, sub_name, brand_name, price, quantity in spec["products"]:
                if brand_name not in brands:
                    brands[brand_name] = Brand(name=brand_name, slug=slugify(brand_name))
                    db.add(brands[brand_name])
                db.flush()
                product = Product(
                    title=title, slug=slugify(title),
                    description=f"{title} - sample product",
                    quantity=quantity, price=price,
                    category_id=category.id, brand_id=brands[brand_name].id,
                )
                product.subcategories = [subs[sub_name]]
                db.add(product)
                print(f"  + product {title}")

        db.add(Coupon(name="WELCOME10", expire=now_utc() + timedelta(days=30), discount=10))
        db.commit()
        print("Data inserted.")
    except Exception as e:
        db.rollback()
        print(f"[ERROR] Seed failed: {e}")
        sys.exit(1)
    finally:
        db.close()


def destroy_data():
    db = SessionLocal()
    try:
        for model in (Order, Cart, Review, Coupon, Product, SubCategory, Brand, Category):
            deleted = db.query(model).delete()
            print(f"  - {model.__tablename__}: {deleted}")
        db.commit()
        print("Data destroyed.")
    except Exception as e:
        db.rollback()
        print(f"[ERROR] Destroy failed: {e}")
        sys.exit(1)
    finally:
        db.close()


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    if "-i" in sys.argv:
        insert_data()
    elif "-d" in sys.argv:
        destroy_data()
    else:
        print(__doc__)
