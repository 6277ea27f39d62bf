"""
Coupon Admin Routes
=====================
CRUD for coupons, usage history, stats.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_admin
from modules.coupon.models import DiscountType
from modules.coupon.service import coupon_service

router = APIRouter(prefix="/api/admin/coupons", tags=["admin-coupon"])


# ==========================================
# Schemas
# ==========================================

class CouponUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, gt=0)
    min_order_amount: Optional[Decimal] = Field(None, ge=0)
    max_discount_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=0)
    per_user_limit: Optional[int] = Field(None, ge=0)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    applicable_categories: Optional[List[str]] = None
    is_active: Optional[bool] = None


class CouponCreate(CouponUpdate):
    code: str = Field(..., min_length=1, max_length=50)
    discount_type: DiscountType = DiscountType.PERCENTAGE
    discount_value: Decimal = Field(..., gt=0)
    is_active: bool = True


def _dump(body: BaseModel, **kwargs) -> dict:
    data = body.model_dump(**kwargs)
    if isinstance(data.get("discount_type"), DiscountType):
        data["discount_type"] = data["discount_type"].value
    return data


# ==========================================
# 📋 Coupon List / Stats
# ==========================================

@router.get("")
async def coupon_list(
    search: Optional[str] = Query(None),
    active: Optional[bool] = Query(None),
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    coupons = coupon_service.get_all_coupons(db, search=search, active=active)
    return [c.to_dict() for c in coupons]


@router.get("/stats")
async def coupon_stats(
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return coupon_service.get_stats(db)


# ==========================================
# 👁️ Coupon Detail
# ==========================================

@router.get("/{coupon_id}")
async def coupon_detail(
    coupon_id: int,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    coupon = coupon_service.get_coupon_by_id(db, coupon_id)
    usages = coupon_service.get_coupon_usages(db, coupon_id)
    return {
        **coupon.to_dict(),
        "usages": [u.to_dict() for u in usages],
    }


# ==========================================
# ➕ Create / ✏️ Update / 🗑️ Delete
# ==========================================

@router.post("")
async def coupon_create(
    body: CouponCreate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    coupon = coupon_service.create_coupon(db, _dump(body))
    db.commit()
    db.refresh(coupon)
    return coupon.to_dict()


@router.put("/{coupon_id}")
async def coupon_update(
    coupon_id: int,
    body: CouponUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    coupon = coupon_service.update_coupon(db, coupon_id, _dump(body, exclude_unset=True))
    db.commit()
    db.refresh(coupon)
    return coupon.to_dict()


@router.delete("/{coupon_id}")
async def coupon_delete(
    coupon_id: int,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    coupon_service.delete_coupon(db, coupon_id)
    db.commit()
    return {"success": True, "message": "Coupon deleted successfully"}
