"""
Coupon Routes - Customer Facing
==================================
Coupon validation for the checkout page, usage tracking after an order,
and the public list of running offers.
"""

import logging
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config.database import get_db
from modules.coupon.service import coupon_service

logger = logging.getLogger("giftshop.coupon")

router = APIRouter(prefix="/api/coupons", tags=["coupon"])


# ==========================================
# Schemas
# ==========================================

class ValidateRequest(BaseModel):
    code: Optional[str] = ""
    subtotal: Decimal = Field(Decimal("0"), ge=0)
    email: Optional[str] = None
    categories: Optional[List[str]] = None


class TrackUsageRequest(BaseModel):
    coupon_id: int = Field(..., gt=0)
    order_id: Optional[int] = None
    customer_email: Optional[str] = None
    discount_amount: Decimal = Field(..., ge=0)


# ==========================================
# GET /api/coupons/active
# ==========================================

@router.get("/active")
async def active_coupons(db: Session = Depends(get_db)):
    """Running offers shown at checkout (public fields only)."""
    return [c.public_dict() for c in coupon_service.get_active_coupons(db)]


# ==========================================
# POST /api/coupons/validate
# ==========================================

@router.post("/validate")
async def validate_coupon(body: ValidateRequest, db: Session = Depends(get_db)):
    """Validate a coupon code against the current cart. No side effects."""
    try:
        status_code, result = coupon_service.quick_check(
            db, body.code, body.subtotal,
            email=body.email,
            categories=body.categories,
        )
    except SQLAlchemyError:
        logger.exception("Error validating coupon")
        return JSONResponse({"valid": False, "message": "Error validating coupon"}, status_code=500)

    return JSONResponse(result, status_code=status_code)


# ==========================================
# POST /api/coupons/track-usage
# ==========================================

@router.post("/track-usage")
async def track_usage(body: TrackUsageRequest, db: Session = Depends(get_db)):
    """Record a redemption after a successful order (insert + counter, atomically)."""
    try:
        coupon_service.track_usage(
            db, body.coupon_id, body.order_id, body.customer_email, body.discount_amount,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return {"success": True}
