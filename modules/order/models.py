"""
Order Module - Models
======================
Order with an item snapshot and denormalized coupon info for display.
"""

import enum
from sqlalchemy import (
    Column, Integer, String, Numeric, Text, JSON,
    DateTime, Index,
)
from sqlalchemy.sql import func
from config.database import Base
from common.helpers import iso, money_json


class PaymentMethod(str, enum.Enum):
    COD = "cod"
    ONLINE = "online"


class OrderStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    PAID = "paid"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


ORDER_STATUSES = [s.value for s in OrderStatus]


class Order(Base):
    __tablename__ = "orders"

    id = Column(Integer, primary_key=True, index=True)

    # Items snapshot: [{name, price, quantity, category, ...}]
    items = Column(JSON, nullable=False, default=list)

    # Amounts
    subtotal = Column(Numeric(12, 2), default=0, nullable=False)
    shipping_charge = Column(Numeric(12, 2), default=0, nullable=False)
    cod_charge = Column(Numeric(12, 2), default=0, nullable=False)
    coupon_code = Column(String(50), nullable=True)
    coupon_discount = Column(Numeric(12, 2), default=0, nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)

    payment_method = Column(String(20), nullable=False)
    status = Column(String(20), default=OrderStatus.PENDING.value, nullable=False, index=True)

    # Customer
    customer_name = Column(String(200), nullable=False)
    customer_email = Column(String(255), nullable=False, index=True)
    customer_phone = Column(String(30), nullable=False)
    special_requests = Column(Text, nullable=True)

    # Shipping
    shipping_address = Column(Text, nullable=True)
    shipping_city = Column(String(100), nullable=True)
    shipping_state = Column(String(100), nullable=True)
    shipping_pincode = Column(String(20), nullable=True)
    shipping_country = Column(String(100), nullable=True)
    tracking_number = Column(String(100), nullable=True)
    admin_notes = Column(Text, nullable=True)

    # Payment (online path only)
    gateway_order_id = Column(String(100), nullable=True)
    gateway_payment_id = Column(String(100), unique=True, nullable=True)
    gateway_signature = Column(String(128), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        Index("ix_order_created", "created_at"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "items": self.items or [],
            "subtotal": money_json(self.subtotal),
            "shipping_charge": money_json(self.shipping_charge),
            "cod_charge": money_json(self.cod_charge),
            "coupon_code": self.coupon_code,
            "coupon_discount": money_json(self.coupon_discount),
            "total_amount": money_json(self.total_amount),
            "payment_method": self.payment_method,
            "status": self.status,
            "customer_name": self.customer_name,
            "customer_email": self.customer_email,
            "customer_phone": self.customer_phone,
            "special_requests": self.special_requests,
            "shipping_address": self.shipping_address,
            "shipping_city": self.shipping_city,
            "shipping_state": self.shipping_state,
            "shipping_pincode": self.shipping_pincode,
            "shipping_country": self.shipping_country,
            "tracking_number": self.tracking_number,
            "admin_notes": self.admin_notes,
            "gateway_order_id": self.gateway_order_id,
            "gateway_payment_id": self.gateway_payment_id,
            "paid_at": iso(self.paid_at),
            "created_at": iso(self.created_at),
            "updated_at": iso(self.updated_at),
        }
