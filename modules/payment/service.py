"""
Payment Service
=================
Verifies the gateway callback signature and hands off to the order service.

Outcomes of verify_and_record():
  - rejected          -> PaymentError / ValidationError (nothing persisted)
  - verified + saved  -> {"success": True, "order": ...}
  - verified + NOT saved -> {"success": True, "order_saved": False, ...}
    (customer has been charged; must never look like a rejected payment)
"""

import logging
from typing import Dict, Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.exceptions import PaymentError, OrderSaveError
from common.helpers import now_utc
from modules.order.models import OrderStatus, PaymentMethod
from modules.order.schemas import OrderData
from modules.order.service import order_service

# Import gateway modules to trigger register_gateway() calls
from modules.payment.gateways import GatewayCallback, get_gateway
import modules.payment.gateways.razorpay  # noqa: F401

logger = logging.getLogger("giftshop.payment")

DEFAULT_GATEWAY = "razorpay"
SAVE_FAILED_MESSAGE = "payment verified but order save failed"


class PaymentService:

    def verify_and_record(
        self,
        db: Session,
        gateway_order_id: str,
        gateway_payment_id: str,
        gateway_signature: str,
        order_data: OrderData,
        gateway_name: str = DEFAULT_GATEWAY,
    ) -> Dict[str, Any]:
        """
        1. Require the three gateway fields
        2. Validate order data (before the signature: bad input is rejected up front)
        3. Verify signature (constant-time)
        4. Record the order as paid (idempotent per payment id)
        """
        callback = GatewayCallback(gateway_order_id, gateway_payment_id, gateway_signature)
        if not callback.complete:
            raise PaymentError("Missing payment details")

        order_service.validate_order_data(order_data)

        gw = get_gateway(gateway_name)
        if not gw:
            raise PaymentError(f"Gateway {gateway_name} is not available")

        result = gw.verify_callback(callback)
        if not result.success:
            raise PaymentError(result.error_message or "Invalid payment signature")

        # Same payment posted twice (double click / retried callback)
        existing = order_service.get_by_payment_id(db, gateway_payment_id)
        if existing:
            logger.info(f"Payment {gateway_payment_id} already recorded as order #{existing.id}")
            return self._success(existing, gateway_payment_id)

        try:
            order = order_service.place_order(
                db, order_data,
                payment_method=PaymentMethod.ONLINE,
                status=OrderStatus.PAID,
                payment={
                    "gateway_order_id": gateway_order_id,
                    "gateway_payment_id": gateway_payment_id,
                    "gateway_signature": gateway_signature,
                    "paid_at": now_utc(),
                },
            )
        except OrderSaveError as e:
            # Concurrent callback for the same payment won the unique gateway_payment_id
            existing = self._recorded_order(db, gateway_payment_id)
            if existing:
                logger.info(f"Payment {gateway_payment_id} recorded concurrently as order #{existing.id}")
                return self._success(existing, gateway_payment_id)

            logger.error(
                f"Payment {gateway_payment_id} (order {gateway_order_id}) verified "
                f"but order save failed: {e.message}"
            )
            return {
                "success": True,
                "payment_verified": True,
                "order_saved": False,
                "message": SAVE_FAILED_MESSAGE,
                "payment_id": gateway_payment_id,
                "gateway_order_id": gateway_order_id,
            }

        return self._success(order, gateway_payment_id)

    def _recorded_order(self, db: Session, gateway_payment_id: str):
        try:
            return order_service.get_by_payment_id(db, gateway_payment_id)
        except SQLAlchemyError as e:
            db.rollback()
            logger.error(f"Lookup of payment {gateway_payment_id} after save failure failed: {e}")
            return None

    def _success(self, order, payment_id: str) -> Dict[str, Any]:
        return {
            "success": True,
            "payment_verified": True,
            "order_saved": True,
            "message": "Payment verified successfully",
            "order": order.to_dict(),
            "order_id": order.id,
            "payment_id": payment_id,
        }


# Singleton
payment_service = PaymentService()
