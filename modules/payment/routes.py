"""
Payment Routes
================
Gateway callback verification for the online checkout path.
"""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field, AliasChoices
from sqlalchemy.orm import Session

from config.database import get_db
from modules.order.schemas import OrderData
from modules.payment.service import payment_service

router = APIRouter(prefix="/api/payment", tags=["payment"])


class VerifyPaymentRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    gateway_order_id: str = Field(
        "", validation_alias=AliasChoices("gateway_order_id", "razorpay_order_id"),
    )
    gateway_payment_id: str = Field(
        "", validation_alias=AliasChoices("gateway_payment_id", "razorpay_payment_id"),
    )
    gateway_signature: str = Field(
        "", validation_alias=AliasChoices("gateway_signature", "razorpay_signature"),
    )
    order_data: OrderData = Field(default_factory=OrderData)


@router.post("/verify-payment")
async def verify_payment(body: VerifyPaymentRequest, db: Session = Depends(get_db)):
    """
    Verify the checkout signature, then record the order as paid.
    A verified payment whose order could not be saved still answers 200
    with order_saved=false so the storefront can tell the customer to contact support.
    """
    return payment_service.verify_and_record(
        db,
        body.gateway_order_id.strip(),
        body.gateway_payment_id.strip(),
        body.gateway_signature.strip(),
        body.order_data,
    )
