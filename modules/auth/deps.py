"""
Auth Module - Dependencies
===========================
FastAPI dependencies for the admin API.
These are injected into route handlers via Depends().

Admin requests carry `Authorization: Bearer <jwt>`; tokens are minted
with scripts/create_admin_token.py.
"""

from typing import Optional

from fastapi import Request, Depends, HTTPException, status

from common.security import decode_token


def get_token_payload(request: Request) -> Optional[dict]:
    """
    Read the bearer token from the Authorization header.
    Returns the decoded payload or None.
    """
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return decode_token(token.strip())


def require_admin(payload=Depends(get_token_payload)) -> dict:
    """Only allow admin tokens. Raises 401 without a valid token, 403 for other roles."""
    if not payload or not payload.get("sub"):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    if payload.get("role") != "admin":
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return payload
