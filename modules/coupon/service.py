"""
Coupon Service
================
Validate, calculate, track, and administer coupons.

Validation chain (first failure wins):
  1. Code present
  2. Code exists & is active (case-insensitive)
  3. Not expired (end_date)
  4. Already started (start_date)
  5. Min order amount
  6. Total usage limit
  7. Per-customer (e-mail) usage limit
  8. Category overlap with the cart
  9. Calculate discount amount with caps
"""

import logging
from datetime import datetime
from decimal import Decimal
from typing import Optional, Dict, Any, List, Tuple

from sqlalchemy import func as sa_func, desc, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from modules.coupon.models import Coupon, CouponUsage, DiscountType
from common.exceptions import GiftShopError, NotFoundError, DuplicateError, ValidationError
from common.helpers import now_utc, as_utc, round_money, to_decimal, money_json, format_amount, normalize_email

logger = logging.getLogger("giftshop.coupon")


class CouponValidationError(GiftShopError):
    """Raised when a coupon is rejected. status_code is 404 for unknown codes, 400 otherwise."""
    pass


# Columns an administrator may set through create/update
_EDITABLE_FIELDS = (
    "description", "discount_type", "discount_value", "min_order_amount",
    "max_discount_amount", "usage_limit", "per_user_limit", "start_date",
    "end_date", "applicable_categories", "is_active",
)

# NOT NULL columns: an explicit null in an update is rejected
_REQUIRED_FIELDS = ("discount_type", "discount_value", "is_active")


class CouponService:

    # ------------------------------------------
    # Lookup
    # ------------------------------------------

    def get_by_code(self, db: Session, code: str, active_only: bool = True) -> Optional[Coupon]:
        q = db.query(Coupon).filter(sa_func.upper(Coupon.code) == code.strip().upper())
        if active_only:
            q = q.filter(Coupon.is_active.is_(True))
        return q.first()

    # ------------------------------------------
    # Validate coupon (raises CouponValidationError)
    # ------------------------------------------

    def validate(
        self,
        db: Session,
        code: Optional[str],
        subtotal,
        email: Optional[str] = None,
        categories: Optional[List[str]] = None,
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Full validation chain. Returns the coupon's public fields plus
        the calculated discount_amount (Decimal).
        Raises CouponValidationError on failure.
        """
        # 1. Code present
        if not code or not code.strip():
            raise CouponValidationError("Coupon code is required")

        # 2. Exists & active
        coupon = self.get_by_code(db, code)
        if not coupon:
            raise CouponValidationError("Invalid coupon code", status_code=404)

        now = now or now_utc()
        subtotal = to_decimal(subtotal)

        # 3-4. Date range
        if coupon.has_expired(now):
            raise CouponValidationError("Coupon has expired")
        if not coupon.has_started(now):
            raise CouponValidationError("Coupon is not active yet")

        # 5. Min order amount
        if coupon.min_order_amount and subtotal < coupon.min_order_amount:
            raise CouponValidationError(
                f"Minimum order amount should be {format_amount(coupon.min_order_amount)}"
            )

        # 6. Total usage limit
        if coupon.usage_exhausted:
            raise CouponValidationError("Coupon usage limit exceeded")

        # 7. Per-customer usage limit
        email = normalize_email(email)
        if email and coupon.per_user_limit:
            used = self.count_customer_usages(db, coupon.id, email)
            if used >= coupon.per_user_limit:
                raise CouponValidationError(f"You have already used this coupon {used} times")

        # 8. Category check (skipped when either side is empty)
        allowed = coupon.category_set()
        cart_categories = {c for c in (categories or []) if c}
        if allowed and cart_categories and not allowed.intersection(cart_categories):
            raise CouponValidationError("Coupon not applicable for items in your cart")

        # 9. Calculate discount
        discount_amount = self.calculate_discount(coupon, subtotal)

        return {
            "id": coupon.id,
            "code": coupon.code,
            "discount_type": coupon.discount_type,
            "discount_value": coupon.discount_value,
            "discount_amount": discount_amount,
        }

    def quick_check(
        self,
        db: Session,
        code: Optional[str],
        subtotal,
        email: Optional[str] = None,
        categories: Optional[List[str]] = None,
    ) -> Tuple[int, Dict[str, Any]]:
        """
        Same as validate but returns (http_status, response body) for the checkout page.
        """
        try:
            result = self.validate(db, code, subtotal, email=email, categories=categories)
        except CouponValidationError as e:
            return e.status_code, {"valid": False, "message": e.message}

        return 200, {
            "valid": True,
            "coupon": {
                **result,
                "discount_value": money_json(result["discount_value"]),
                "discount_amount": money_json(result["discount_amount"]),
            },
        }

    # ------------------------------------------
    # Calculate discount amount
    # ------------------------------------------

    def calculate_discount(self, coupon: Coupon, subtotal) -> Decimal:
        """
        Percentage: subtotal * value / 100, rounded half-up to paise, then capped.
        Fixed: the stored value, not clamped to the subtotal.
        """
        if coupon.discount_type == DiscountType.PERCENTAGE.value:
            raw = round_money(to_decimal(subtotal) * to_decimal(coupon.discount_value) / 100)
            if coupon.max_discount_amount:
                raw = min(raw, round_money(coupon.max_discount_amount))
            return raw
        return round_money(coupon.discount_value)

    def count_customer_usages(self, db: Session, coupon_id: int, email: str) -> int:
        return (
            db.query(CouponUsage)
            .filter(
                CouponUsage.coupon_id == coupon_id,
                sa_func.lower(CouponUsage.customer_email) == normalize_email(email),
            )
            .count()
        )

    # ------------------------------------------
    # Track usage (one transaction: insert + increment)
    # ------------------------------------------

    def track_usage(
        self,
        db: Session,
        coupon_id: int,
        order_id: Optional[int],
        customer_email: Optional[str],
        discount_amount,
    ) -> CouponUsage:
        """
        Record one redemption and bump used_count in the caller's transaction.
        The counter is claimed with a conditional UPDATE so concurrent
        redemptions can never push used_count past usage_limit.
        Caller commits on success and rolls back on any exception.
        """
        exists = db.query(Coupon.id).filter(Coupon.id == coupon_id).first()
        if not exists:
            raise NotFoundError("Coupon not found")

        claimed = (
            db.query(Coupon)
            .filter(
                Coupon.id == coupon_id,
                or_(
                    Coupon.usage_limit.is_(None),
                    Coupon.usage_limit == 0,
                    Coupon.used_count < Coupon.usage_limit,
                ),
            )
            .update(
                {Coupon.used_count: Coupon.used_count + 1, Coupon.updated_at: now_utc()},
                synchronize_session=False,
            )
        )
        if not claimed:
            raise CouponValidationError("Coupon usage limit exceeded")

        usage = CouponUsage(
            coupon_id=coupon_id,
            order_id=order_id,
            customer_email=normalize_email(customer_email) or None,
            discount_amount=round_money(discount_amount),
        )
        db.add(usage)
        db.flush()
        return usage

    def track_order_usage(self, db: Session, order) -> Optional[CouponUsage]:
        """
        Best-effort redemption tracking after an order is committed.
        Never raises: a failure here must not fail the order.
        """
        if not order.coupon_code or not order.coupon_discount or order.coupon_discount <= 0:
            return None

        try:
            coupon = self.get_by_code(db, order.coupon_code, active_only=False)
            if not coupon:
                logger.warning(f"Order #{order.id}: coupon {order.coupon_code} not found, usage not tracked")
                return None

            usage = self.track_usage(
                db, coupon.id, order.id, order.customer_email, order.coupon_discount,
            )
            db.commit()
            logger.info(f"Coupon {coupon.code} usage tracked for order #{order.id}")
            return usage
        except Exception as e:
            db.rollback()
            logger.error(f"Error tracking coupon {order.coupon_code} for order #{order.id}: {e}")
            return None

    # ------------------------------------------
    # Public listing
    # ------------------------------------------

    def get_active_coupons(self, db: Session, now: Optional[datetime] = None) -> List[Coupon]:
        """Active coupons inside their validity window, newest first."""
        now = now or now_utc()
        coupons = (
            db.query(Coupon)
            .filter(Coupon.is_active.is_(True))
            .order_by(desc(Coupon.created_at), desc(Coupon.id))
            .all()
        )
        return [c for c in coupons if c.is_live(now)]

    # ------------------------------------------
    # Admin: CRUD
    # ------------------------------------------

    def get_all_coupons(
        self, db: Session, search: str = None, active: Optional[bool] = None,
    ) -> List[Coupon]:
        q = db.query(Coupon)
        if active is not None:
            q = q.filter(Coupon.is_active.is_(active))
        if search:
            q = q.filter(
                (Coupon.code.ilike(f"%{search}%")) | (Coupon.description.ilike(f"%{search}%"))
            )
        return q.order_by(desc(Coupon.created_at), desc(Coupon.id)).all()

    def get_coupon_by_id(self, db: Session, coupon_id: int) -> Coupon:
        coupon = db.query(Coupon).filter(Coupon.id == coupon_id).first()
        if not coupon:
            raise NotFoundError("Coupon not found")
        return coupon

    def get_coupon_usages(self, db: Session, coupon_id: int) -> List[CouponUsage]:
        return (
            db.query(CouponUsage)
            .filter(CouponUsage.coupon_id == coupon_id)
            .order_by(desc(CouponUsage.used_at), desc(CouponUsage.id))
            .all()
        )

    def create_coupon(self, db: Session, data: dict) -> Coupon:
        code = (data.get("code") or "").strip().upper()
        if not code:
            raise ValidationError("Coupon code is required")
        if self.get_by_code(db, code, active_only=False):
            raise DuplicateError(f"Coupon {code} already exists")

        coupon = Coupon(code=code, used_count=0)
        for key in _EDITABLE_FIELDS:
            if key in data and data[key] is not None:
                setattr(coupon, key, self._clean(key, data[key]))
        self._check_discount(coupon)

        db.add(coupon)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            raise DuplicateError(f"Coupon {code} already exists")
        logger.info(f"Coupon {code} created")
        return coupon

    def update_coupon(self, db: Session, coupon_id: int, data: dict) -> Coupon:
        coupon = self.get_coupon_by_id(db, coupon_id)

        if data.get("code"):
            new_code = data["code"].strip().upper()
            if new_code != coupon.code:
                if self.get_by_code(db, new_code, active_only=False):
                    raise DuplicateError(f"Coupon {new_code} already exists")
                coupon.code = new_code

        for key in _EDITABLE_FIELDS:
            if key in data:
                if data[key] is None and key in _REQUIRED_FIELDS:
                    raise ValidationError(f"{key} cannot be empty")
                setattr(coupon, key, self._clean(key, data[key]))
        self._check_discount(coupon)

        db.flush()
        return coupon

    def delete_coupon(self, db: Session, coupon_id: int) -> None:
        """Delete usage records first, then the coupon (same transaction)."""
        coupon = self.get_coupon_by_id(db, coupon_id)
        removed = (
            db.query(CouponUsage)
            .filter(CouponUsage.coupon_id == coupon_id)
            .delete(synchronize_session=False)
        )
        db.expire(coupon, ["usages"])
        db.delete(coupon)
        db.flush()
        logger.info(f"Coupon {coupon.code} deleted ({removed} usage records removed)")

    def _clean(self, key: str, value):
        if value is None:
            return None
        if key in ("start_date", "end_date"):
            return as_utc(value)
        if key == "applicable_categories":
            return [c.strip() for c in value if c and c.strip()]
        return value

    def _check_discount(self, coupon: Coupon):
        if coupon.discount_type not in (DiscountType.PERCENTAGE.value, DiscountType.FIXED.value):
            raise ValidationError("discount_type must be 'percentage' or 'fixed'")
        if coupon.discount_value is None:
            raise ValidationError("discount_value is required")
        value = to_decimal(coupon.discount_value)
        if coupon.discount_type == DiscountType.PERCENTAGE.value:
            if value != value.to_integral_value() or not 1 <= value <= 100:
                raise ValidationError("Percentage discount must be a whole number between 1 and 100")
        elif value <= 0:
            raise ValidationError("Fixed discount must be greater than 0")

    # ------------------------------------------
    # Stats
    # ------------------------------------------

    def get_stats(self, db: Session) -> Dict[str, Any]:
        total = db.query(Coupon).count()
        active = db.query(Coupon).filter(Coupon.is_active.is_(True)).count()
        total_usages = db.query(CouponUsage).count()
        total_discount = (
            db.query(sa_func.coalesce(sa_func.sum(CouponUsage.discount_amount), 0))
            .scalar()
        )
        return {
            "total_coupons": total,
            "active_coupons": active,
            "total_usages": total_usages,
            "total_discount": money_json(total_discount),
        }


# Singleton
coupon_service = CouponService()
