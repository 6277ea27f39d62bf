"""
GiftShop - Database Initialization
====================================
Creates the coupons, orders and coupon_usage tables when missing and
prints a row count per table. For schema changes use Alembic.

Usage:
    python scripts/init_db.py
    python scripts/init_db.py --drop   # wipe and recreate (asks first)
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import Base, engine, session_scope
from modules.order.models import Order
from modules.coupon.models import Coupon, CouponUsage

MODELS = (Coupon, Order, CouponUsage)


def init_db(drop_first: bool = False):
    if drop_first:
        print("Dropping coupon_usage, orders, coupons...")
        Base.metadata.drop_all(bind=engine)

    Base.metadata.create_all(bind=engine)

    with session_scope() as db:
        print(f"\nDatabase ready ({engine.url.get_backend_name()}):")
        for model in MODELS:
            print(f"  {model.__tablename__:<14} {db.query(model).count():>6} rows")


if __name__ == "__main__":
    drop = "--drop" in sys.argv
    if drop and input("All orders and coupons will be deleted. Type 'yes': ").strip().lower() != "yes":
        print("Aborted.")
        sys.exit(0)
    init_db(drop_first=drop)
