"""
GiftShop - Security Utilities
==============================
JWT tokens for the admin API and HMAC payment signatures.
"""

import hmac
import hashlib
import logging
from datetime import timedelta
from typing import Optional

from jose import jwt, JWTError

from config.settings import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES
from common.helpers import now_utc

logger = logging.getLogger("giftshop.security")


# ==========================================
# JWT Tokens
# ==========================================

def create_token(data: dict, expires_minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    """Create a signed JWT. `data` should carry `sub` and `role`."""
    to_encode = data.copy()
    to_encode["exp"] = now_utc() + timedelta(minutes=expires_minutes)
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def decode_token(token: str) -> Optional[dict]:
    """Decode a JWT token. Returns payload or None."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.debug(f"Rejected token: {e}")
        return None


# ==========================================
# Payment Signatures
# ==========================================

def sign_payment(order_id: str, payment_id: str, secret: str) -> str:
    """HMAC-SHA256 hex digest of "<order_id>|<payment_id>" (Razorpay checkout scheme)."""
    msg = f"{order_id}|{payment_id}".encode("utf-8")
    return hmac.new(secret.encode("utf-8"), msg, hashlib.sha256).hexdigest()


def verify_payment_signature(order_id: str, payment_id: str, signature: str, secret: str) -> bool:
    """Constant-time comparison of the expected signature with the one received."""
    if not signature:
        return False
    expected = sign_payment(order_id, payment_id, secret)
    return hmac.compare_digest(expected.encode("utf-8"), signature.encode("utf-8"))
