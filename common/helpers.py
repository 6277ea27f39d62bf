"""
GiftShop - Shared Helpers
==========================
Pure utility functions with NO database or module dependencies.
"""

from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP, InvalidOperation
from typing import Optional

from config.settings import CURRENCY_SYMBOL
from common.exceptions import ValidationError

_PAISE = Decimal("0.01")


def now_utc() -> datetime:
    """Returns current UTC datetime (timezone-aware)."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes (as returned by SQLite) as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def to_decimal(value) -> Decimal:
    """
    Convert int/float/str/Decimal to Decimal; None (unset column) becomes 0.
    Raises ValidationError for anything that is not a finite number.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        raise ValidationError(f"Invalid amount: {value!r}")
    try:
        d = value if isinstance(value, Decimal) else Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        raise ValidationError(f"Invalid amount: {value!r}")
    if not d.is_finite():
        raise ValidationError(f"Invalid amount: {value!r}")
    return d


def round_money(value) -> Decimal:
    """Round half-up to the smallest currency unit (paise)."""
    return to_decimal(value).quantize(_PAISE, rounding=ROUND_HALF_UP)


def money_json(value) -> Optional[float]:
    """Render a monetary value for a JSON response."""
    if value is None:
        return None
    return float(round_money(value))


def format_amount(value) -> str:
    """Format an amount with the currency symbol: 500 -> '₹500', 499.5 -> '₹499.50'."""
    d = round_money(value)
    if d == d.to_integral_value():
        return f"{CURRENCY_SYMBOL}{int(d)}"
    return f"{CURRENCY_SYMBOL}{d}"


def iso(value: Optional[datetime]) -> Optional[str]:
    """ISO-8601 string for a datetime column (UTC)."""
    if value is None:
        return None
    return as_utc(value).isoformat()


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()
