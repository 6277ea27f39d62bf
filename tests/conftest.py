"""
Pytest configuration and shared fixtures
"""

import os

# Settings are read at import time; set them before any app import
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["RAZORPAY_KEY_SECRET"] = "test-razorpay-secret"
os.environ.setdefault("LOG_LEVEL", "WARNING")

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from config.database import Base, get_db
from common.security import create_token, sign_payment
from modules.coupon.models import Coupon, DiscountType
from main import app


RAZORPAY_SECRET = os.environ["RAZORPAY_KEY_SECRET"]


@pytest.fixture(scope="function")
def db_session():
    """
    Create a fresh database session for each test.

    Uses in-memory SQLite database for fast test execution.
    """
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    session = sessionmaker(bind=engine, autoflush=False)()
    try:
        yield session
    finally:
        session.rollback()
        session.close()
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def client(db_session):
    """
    HTTP client for the FastAPI app.
    Override the database dependency to use the test database.
    """
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin_headers():
    token = create_token({"sub": "admin@giftshop.in", "role": "admin"})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_coupon(db_session):
    """Factory: make_coupon(code="SAVE10", **columns) -> committed Coupon."""
    def _make(code="SAVE10", **overrides):
        fields = {
            "code": code,
            "discount_type": DiscountType.PERCENTAGE.value,
            "discount_value": Decimal("10"),
            "used_count": 0,
            "is_active": True,
        }
        fields.update(overrides)
        coupon = Coupon(**fields)
        db_session.add(coupon)
        db_session.commit()
        db_session.refresh(coupon)
        return coupon

    return _make


@pytest.fixture
def order_payload():
    """A valid checkout body as posted by the storefront."""
    def _payload(**overrides):
        data = {
            "name": "Asha Rao",
            "email": "asha@example.com",
            "phone": "9876543210",
            "specialRequests": "Gift wrap please",
            "address": "12 MG Road",
            "city": "Bengaluru",
            "state": "Karnataka",
            "pincode": "560001",
            "items": [
                {"name": "Rose Hamper", "price": 800, "quantity": 1, "category": "Hampers", "image": "rose.jpg"},
                {"name": "Greeting Card", "price": 100, "quantity": 2, "category": "Cards"},
            ],
            "subtotal": 1000,
            "shipping_charge": 50,
            "cod_charge": 0,
            "coupon_code": None,
            "coupon_discount": 0,
            "total_amount": 1050,
        }
        data.update(overrides)
        return data

    return _payload


@pytest.fixture
def signed_payment():
    """Factory for gateway callback fields carrying a valid signature."""
    def _signed(order_id="order_TEST001", payment_id="pay_TEST001"):
        return {
            "gateway_order_id": order_id,
            "gateway_payment_id": payment_id,
            "gateway_signature": sign_payment(order_id, payment_id, RAZORPAY_SECRET),
        }

    return _signed
