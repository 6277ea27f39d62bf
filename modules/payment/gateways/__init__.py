"""
Payment Gateway Abstraction
=============================
The storefront completes payment on the gateway's hosted checkout and
posts the callback fields back to us; each gateway checks them in
verify_callback(). Gateways register themselves by name.
"""

import logging
from typing import Dict, Optional
from dataclasses import dataclass

logger = logging.getLogger("giftshop.gateway")


@dataclass
class GatewayCallback:
    """Fields returned by the hosted checkout."""
    gateway_order_id: str
    gateway_payment_id: str
    gateway_signature: str

    @property
    def complete(self) -> bool:
        return bool(self.gateway_order_id and self.gateway_payment_id and self.gateway_signature)


@dataclass
class GatewayVerifyResult:
    """Result of verify_callback()."""
    success: bool
    payment_id: Optional[str] = None
    error_message: Optional[str] = None


class BaseGateway:
    """Abstract gateway interface."""
    name: str = ""

    def verify_callback(self, callback: GatewayCallback) -> GatewayVerifyResult:
        raise NotImplementedError


# ── Registry ──

_GATEWAYS: Dict[str, BaseGateway] = {}


def register_gateway(gw: BaseGateway):
    if gw.name in _GATEWAYS:
        logger.warning(f"Gateway {gw.name} registered twice, replacing")
    _GATEWAYS[gw.name] = gw


def get_gateway(name: str) -> Optional[BaseGateway]:
    return _GATEWAYS.get(name)
