"""
Order Routes - Customer Facing
================================
Cash-on-delivery checkout and order lookup by e-mail.
"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from config.database import get_db
from modules.order.schemas import OrderData
from modules.order.service import order_service

router = APIRouter(prefix="/api/orders", tags=["order"])


@router.post("/cod")
async def place_cod_order(body: OrderData, db: Session = Depends(get_db)):
    """Record a COD order (status=pending). Coupon usage is tracked best-effort."""
    order = order_service.place_cod_order(db, body)
    return {"success": True, "order": order.to_dict()}


@router.get("/customer/{email}")
async def customer_orders(email: str, db: Session = Depends(get_db)):
    """Order history for one customer e-mail, newest first."""
    return [o.to_dict() for o in order_service.get_customer_orders(db, email)]
