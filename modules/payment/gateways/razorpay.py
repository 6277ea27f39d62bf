"""
Razorpay Gateway
=================
Checkout callback verification: the browser posts back
razorpay_order_id, razorpay_payment_id and razorpay_signature, where
signature = HMAC-SHA256("<order_id>|<payment_id>", key_secret).
"""

import logging

from config.settings import RAZORPAY_KEY_SECRET
from common.security import verify_payment_signature
from modules.payment.gateways import (
    BaseGateway, GatewayCallback, GatewayVerifyResult, register_gateway,
)

logger = logging.getLogger("giftshop.gateway.razorpay")


class RazorpayGateway(BaseGateway):
    name = "razorpay"

    def __init__(self, key_secret: str):
        self.key_secret = key_secret

    def verify_callback(self, callback: GatewayCallback) -> GatewayVerifyResult:
        ok = verify_payment_signature(
            callback.gateway_order_id,
            callback.gateway_payment_id,
            callback.gateway_signature,
            self.key_secret,
        )
        if ok:
            logger.info(f"Razorpay signature verified [{callback.gateway_order_id} / {callback.gateway_payment_id}]")
            return GatewayVerifyResult(success=True, payment_id=callback.gateway_payment_id)

        logger.warning(f"Razorpay signature mismatch [{callback.gateway_order_id} / {callback.gateway_payment_id}]")
        return GatewayVerifyResult(success=False, error_message="Invalid payment signature")


register_gateway(RazorpayGateway(RAZORPAY_KEY_SECRET))
