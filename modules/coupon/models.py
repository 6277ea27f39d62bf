"""
Coupon Module - Models
========================
Discount coupons and their redemption audit trail.

Features:
  - Percentage or Fixed amount
  - Cap on percentage discounts (max_discount_amount)
  - Usage limits (total + per-customer e-mail)
  - Date range (start_date / end_date)
  - Min order amount
  - Category restriction (applicable_categories, empty = all)
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Column, Integer, String, Boolean, Text, JSON,
    DateTime, ForeignKey, Numeric, Index,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from config.database import Base
from common.helpers import as_utc, iso, money_json


# ==========================================
# Enums
# ==========================================

class DiscountType(str, enum.Enum):
    PERCENTAGE = "percentage"
    FIXED = "fixed"


# ==========================================
# Coupon
# ==========================================

class Coupon(Base):
    __tablename__ = "coupons"

    id = Column(Integer, primary_key=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    description = Column(Text, nullable=True)

    # Discount
    discount_type = Column(String(20), default=DiscountType.PERCENTAGE.value, nullable=False)
    discount_value = Column(Numeric(12, 2), nullable=False)  # percent (1-100) or fixed amount
    max_discount_amount = Column(Numeric(12, 2), nullable=True)  # cap, percentage only

    # Constraints
    min_order_amount = Column(Numeric(12, 2), nullable=True)
    applicable_categories = Column(JSON, nullable=True)  # list of category names

    # Usage limits
    usage_limit = Column(Integer, nullable=True)
    used_count = Column(Integer, default=0, nullable=False)
    per_user_limit = Column(Integer, nullable=True)

    # Date range
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)

    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    usages = relationship("CouponUsage", back_populates="coupon", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_coupon_code_active", "code", "is_active"),
    )

    @property
    def is_percentage(self) -> bool:
        return self.discount_type == DiscountType.PERCENTAGE.value

    def has_expired(self, now: datetime) -> bool:
        return bool(self.end_date) and as_utc(self.end_date) < now

    def has_started(self, now: datetime) -> bool:
        return not self.start_date or as_utc(self.start_date) <= now

    def is_live(self, now: datetime) -> bool:
        """Active flag set and inside the validity window."""
        return bool(self.is_active) and self.has_started(now) and not self.has_expired(now)

    @property
    def usage_exhausted(self) -> bool:
        return bool(self.usage_limit) and (self.used_count or 0) >= self.usage_limit

    def category_set(self) -> set:
        return {c for c in (self.applicable_categories or []) if c}

    def public_dict(self) -> dict:
        """Fields shown to shoppers on the checkout page."""
        return {
            "code": self.code,
            "description": self.description,
            "discount_type": self.discount_type,
            "discount_value": money_json(self.discount_value),
            "min_order_amount": money_json(self.min_order_amount),
            "max_discount_amount": money_json(self.max_discount_amount),
        }

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            **self.public_dict(),
            "usage_limit": self.usage_limit,
            "used_count": self.used_count or 0,
            "per_user_limit": self.per_user_limit,
            "start_date": iso(self.start_date),
            "end_date": iso(self.end_date),
            "applicable_categories": list(self.applicable_categories or []),
            "is_active": bool(self.is_active),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }


# ==========================================
# CouponUsage (audit trail)
# ==========================================

class CouponUsage(Base):
    __tablename__ = "coupon_usage"

    id = Column(Integer, primary_key=True)
    coupon_id = Column(Integer, ForeignKey("coupons.id", ondelete="CASCADE"), nullable=False)
    order_id = Column(Integer, ForeignKey("orders.id", ondelete="SET NULL"), nullable=True)
    customer_email = Column(String(255), nullable=True)
    discount_amount = Column(Numeric(12, 2), nullable=False)  # amount actually applied
    used_at = Column(DateTime(timezone=True), server_default=func.now())

    coupon = relationship("Coupon", back_populates="usages")
    order = relationship("Order")

    __table_args__ = (
        Index("ix_usage_coupon_email", "coupon_id", "customer_email"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "coupon_id": self.coupon_id,
            "order_id": self.order_id,
            "customer_email": self.customer_email,
            "discount_amount": money_json(self.discount_amount),
            "used_at": iso(self.used_at),
        }