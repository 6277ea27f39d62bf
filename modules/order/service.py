"""
Order Module - Service Layer
===============================
Order recording (COD and post-payment), customer lookup, admin status updates.
"""

import logging
from typing import List, Optional

from sqlalchemy import desc, func as sa_func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.settings import SHIPPING_COUNTRY
from common.exceptions import ValidationError, NotFoundError, OrderSaveError
from common.helpers import round_money, normalize_email
from modules.order.models import Order, OrderStatus, PaymentMethod, ORDER_STATUSES
from modules.order.schemas import OrderData

logger = logging.getLogger("giftshop.order")


class OrderService:

    # ==========================================
    # Validation
    # ==========================================

    def validate_order_data(self, data: OrderData):
        """
        Checks shared by the COD path and payment verification.
        Raises ValidationError.
        """
        if not data.name.strip() or not data.email.strip() or not data.phone.strip():
            raise ValidationError("Missing customer information")
        if data.total_amount < 0:
            raise ValidationError("Invalid order total")

    # ==========================================
    # Place order
    # ==========================================

    def place_order(
        self,
        db: Session,
        data: OrderData,
        payment_method: PaymentMethod,
        status: OrderStatus,
        payment: Optional[dict] = None,
    ) -> Order:
        """
        Validate, persist, and commit an order; then track the applied coupon.

        payment keys (online path): gateway_order_id, gateway_payment_id,
        gateway_signature, paid_at.

        Raises ValidationError for bad input and OrderSaveError when the
        database write fails. Coupon tracking failures are only logged.
        """
        from modules.coupon.service import coupon_service

        self.validate_order_data(data)

        order = self._build_order(data, payment_method, status, payment or {})
        try:
            db.add(order)
            db.commit()
            db.refresh(order)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Order save failed for {data.email} ({payment_method.value}): {e}")
            raise OrderSaveError(f"Failed to save order: {e}")

        logger.info(
            f"Order #{order.id} recorded: {payment_method.value}, status={order.status}, "
            f"total={order.total_amount}"
        )

        coupon_service.track_order_usage(db, order)
        return order

    def place_cod_order(self, db: Session, data: OrderData) -> Order:
        return self.place_order(db, data, PaymentMethod.COD, OrderStatus.PENDING)

    def _build_order(
        self, data: OrderData, payment_method: PaymentMethod, status: OrderStatus, payment: dict,
    ) -> Order:
        coupon_code = (data.coupon_code or "").strip().upper() or None
        return Order(
            items=[item.model_dump(mode="json") for item in data.items],
            subtotal=round_money(data.subtotal),
            shipping_charge=round_money(data.shipping_charge),
            cod_charge=round_money(data.cod_charge),
            coupon_code=coupon_code,
            coupon_discount=round_money(data.coupon_discount) if coupon_code else 0,
            total_amount=round_money(data.total_amount),
            payment_method=payment_method.value,
            status=status.value,
            customer_name=data.name.strip(),
            customer_email=data.email.strip(),
            customer_phone=data.phone.strip(),
            special_requests=data.special_requests or "",
            shipping_address=data.address,
            shipping_city=data.city,
            shipping_state=data.state,
            shipping_pincode=data.pincode,
            shipping_country=SHIPPING_COUNTRY,
            gateway_order_id=payment.get("gateway_order_id"),
            gateway_payment_id=payment.get("gateway_payment_id"),
            gateway_signature=payment.get("gateway_signature"),
            paid_at=payment.get("paid_at"),
        )

    # ==========================================
    # Admin: status updates
    # ==========================================

    def update_order(
        self,
        db: Session,
        order_id: int,
        status: Optional[str] = None,
        tracking_number: Optional[str] = None,
        admin_notes: Optional[str] = None,
        fields_set: Optional[set] = None,
    ) -> Order:
        """
        Any status in the enumeration can be set from any other status;
        there is no transition graph. Only fields in `fields_set` are touched.
        """
        order = self.get_order_by_id(db, order_id)
        fields_set = fields_set if fields_set is not None else {"status", "tracking_number", "admin_notes"}

        if "status" in fields_set and status is not None:
            if status not in ORDER_STATUSES:
                raise ValidationError(f"Invalid status. Allowed: {', '.join(ORDER_STATUSES)}")
            if status != order.status:
                logger.info(f"Order #{order.id} status {order.status} -> {status}")
            order.status = status
        if "tracking_number" in fields_set:
            order.tracking_number = tracking_number
        if "admin_notes" in fields_set:
            order.admin_notes = admin_notes

        db.flush()
        return order

    # ==========================================
    # Query
    # ==========================================

    def get_order_by_id(self, db: Session, order_id: int) -> Order:
        order = db.query(Order).filter(Order.id == order_id).first()
        if not order:
            raise NotFoundError("Order not found")
        return order

    def get_by_payment_id(self, db: Session, gateway_payment_id: str) -> Optional[Order]:
        return db.query(Order).filter(Order.gateway_payment_id == gateway_payment_id).first()

    def get_customer_orders(self, db: Session, email: str) -> List[Order]:
        return (
            db.query(Order)
            .filter(sa_func.lower(Order.customer_email) == normalize_email(email))
            .order_by(desc(Order.created_at), desc(Order.id))
            .all()
        )

    def get_all_orders(self, db: Session, status: str = None) -> List[Order]:
        q = db.query(Order).order_by(desc(Order.created_at), desc(Order.id))
        if status:
            q = q.filter(Order.status == status)
        return q.all()


# Singleton
order_service = OrderService()
