"""
GiftShop - Coupon Seeder
=========================
Seeds sample coupons for local testing of the checkout flow.

Usage:
    python scripts/seed.py
"""

import sys
import os
from datetime import timedelta
from decimal import Decimal

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.database import Base, engine, session_scope
from modules.order.models import Order  # noqa: F401
from modules.coupon.models import DiscountType
from modules.coupon.service import coupon_service
from common.helpers import now_utc


def coupon_fixtures():
    now = now_utc()
    return [
        {
            "code": "SAVE10",
            "description": "10% off on orders above ₹500",
            "discount_type": DiscountType.PERCENTAGE.value,
            "discount_value": Decimal("10"),
            "min_order_amount": Decimal("500"),
        },
        {
            "code": "WELCOME20",
            "description": "20% off your first gift, up to ₹200",
            "discount_type": DiscountType.PERCENTAGE.value,
            "discount_value": Decimal("20"),
            "max_discount_amount": Decimal("200"),
            "per_user_limit": 1,
        },
        {
            "code": "FLAT100",
            "description": "₹100 off, first 50 orders",
            "discount_type": DiscountType.FIXED.value,
            "discount_value": Decimal("100"),
            "min_order_amount": Decimal("999"),
            "usage_limit": 50,
        },
        {
            "code": "HAMPER15",
            "description": "15% off hampers this week",
            "discount_type": DiscountType.PERCENTAGE.value,
            "discount_value": Decimal("15"),
            "applicable_categories": ["Hampers"],
            "start_date": now,
            "end_date": now + timedelta(days=7),
        },
    ]


def seed():
    Base.metadata.create_all(bind=engine)
    print("Seeding coupons...")
    with session_scope() as db:
        for cd in coupon_fixtures():
            if coupon_service.get_by_code(db, cd["code"], active_only=False):
                print(f"  = exists: {cd['code']}")
                continue
            coupon_service.create_coupon(db, cd)
            print(f"  + {cd['code']}")
    print("Done.")


if __name__ == "__main__":
    seed()
