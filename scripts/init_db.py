"""
EShop - Database Initialization
================================
Creates all tables if they don't exist.
Safe to run multiple times (CREATE IF NOT EXISTS).

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --drop   # Drop and recreate all tables
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from sqlalchemy import inspect

from config.database import Base, engine

# Import ALL models so Base.metadata knows about them
from modules.user.models import User  # noqa
from modules.address.models import UserAddress  # noqa
from modules.wishlist.models import wishlist_items  # noqa
from modules.catalog.models import Category, SubCategory, Brand, Product  # noqa
from modules.review.models import Review  # noqa
from modules.cart.models import Cart, CartItem  # noqa
from modules.coupon.models import Coupon  # noqa
from modules.order.models import Order, OrderItem  # noqa


def init_db(drop_first=False):
    if drop_first:
        print("Dropping all tables...")
        Base.metadata.drop_all(bind=engine)

    print("Creating all tables...")
    Base.metadata.create_all(bind=engine)

    tables = inspect(engine).get_table_names()
    print(f"\nTables in database ({len(tables)}):")
    for t in sorted(tables):
        print(f"  - {t}")


if __name__ == "__main__":
    drop = "--drop" in sys.argv
    if drop:
        confirm = input("This will DROP all tables. Type 'yes': ")
        if confirm.strip().lower() != "yes":
            print("Aborted.")
            sys.exit(0)
    init_db(drop_first=drop)
