"""
Order Module - Request Schemas
================================
Checkout payload shared by the COD route and payment verification.
Field names follow the storefront's checkout form.
"""

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, AliasChoices


class OrderItemIn(BaseModel):
    """Cart line snapshot, stored as sent (the cart is priced by the storefront)."""
    model_config = ConfigDict(extra="allow")

    name: str = ""
    price: float = 0
    quantity: int = 1
    category: Optional[str] = None


class OrderData(BaseModel):
    """Customer, address and amount fields of a finalized checkout."""
    model_config = ConfigDict(populate_by_name=True)

    # Customer (presence checked by the order service, not here)
    name: str = ""
    email: str = ""
    phone: str = ""
    special_requests: str = Field(
        "", validation_alias=AliasChoices("special_requests", "specialRequests"),
    )

    # Address
    address: str = ""
    city: str = ""
    state: str = ""
    pincode: str = ""

    # Cart + amounts
    items: List[OrderItemIn] = Field(default_factory=list)
    subtotal: Decimal = Field(Decimal("0"), ge=0)
    shipping_charge: Decimal = Field(Decimal("0"), ge=0)
    cod_charge: Decimal = Field(Decimal("0"), ge=0)
    coupon_code: Optional[str] = None
    coupon_discount: Decimal = Field(Decimal("0"), ge=0)
    total_amount: Decimal = Decimal("0")
