"""
GiftShop - Admin Token
=======================
Mints a JWT for the admin API (Authorization: Bearer <token>).

Usage:
    python scripts/create_admin_token.py admin@example.com
    python scripts/create_admin_token.py admin@example.com 60   # expires in 60 minutes
"""

import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import ACCESS_TOKEN_EXPIRE_MINUTES
from common.security import create_token


def create_admin_token(subject: str, minutes: int = ACCESS_TOKEN_EXPIRE_MINUTES) -> str:
    return create_token({"sub": subject, "role": "admin"}, expires_minutes=minutes)


if __name__ == "__main__":
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    minutes = int(sys.argv[2]) if len(sys.argv) > 2 else ACCESS_TOKEN_EXPIRE_MINUTES
    print(create_admin_token(sys.argv[1].strip(), minutes))
