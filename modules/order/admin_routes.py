"""
Order Module - Admin Routes
==============================
Order management for admin: list, detail, status / tracking updates.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session

from config.database import get_db
from modules.auth.deps import require_admin
from modules.order.service import order_service

router = APIRouter(prefix="/api/admin/orders", tags=["order-admin"])


class OrderUpdate(BaseModel):
    status: Optional[str] = None
    tracking_number: Optional[str] = None
    admin_notes: Optional[str] = None


@router.get("")
async def admin_orders(
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return [o.to_dict() for o in order_service.get_all_orders(db, status=status)]


@router.get("/{order_id}")
async def admin_order_detail(
    order_id: int,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    return order_service.get_order_by_id(db, order_id).to_dict()


@router.put("/{order_id}")
async def admin_update_order(
    order_id: int,
    body: OrderUpdate,
    db: Session = Depends(get_db),
    admin=Depends(require_admin),
):
    """Set status (any enumerated value, no transition rules), tracking number, notes."""
    order = order_service.update_order(
        db, order_id,
        status=body.status,
        tracking_number=body.tracking_number,
        admin_notes=body.admin_notes,
        fields_set=body.model_fields_set,
    )
    db.commit()
    db.refresh(order)
    return {"success": True, "order": order.to_dict()}
