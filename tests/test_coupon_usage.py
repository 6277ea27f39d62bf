"""
Coupon usage tracking: counter/audit-row consistency and limits.
"""

from decimal import Decimal

import pytest

from common.exceptions import NotFoundError
from modules.coupon.models import CouponUsage
from modules.coupon.service import coupon_service, CouponValidationError


def _track(client, coupon_id, **kw):
    body = {
        "coupon_id": coupon_id,
        "order_id": None,
        "customer_email": "asha@example.com",
        "discount_amount": 50,
    }
    body.update(kw)
    return client.post("/api/coupons/track-usage", json=body)


def test_track_usage_records_row_and_increments(client, db_session, make_coupon):
    coupon = make_coupon("SAVE10")

    resp = _track(client, coupon.id, customer_email="Asha@Example.com", discount_amount=49.5)

    assert resp.status_code == 200
    assert resp.json() == {"success": True}

    db_session.refresh(coupon)
    assert coupon.used_count == 1
    usage = db_session.query(CouponUsage).one()
    assert usage.coupon_id == coupon.id
    assert usage.customer_email == "asha@example.com"
    assert usage.discount_amount == Decimal("49.50")


def test_used_count_matches_usage_rows(client, db_session, make_coupon):
    coupon = make_coupon("SAVE10", usage_limit=10)

    for i in range(4):
        assert _track(client, coupon.id, customer_email=f"c{i}@example.com").status_code == 200

    db_session.refresh(coupon)
    rows = db_session.query(CouponUsage).filter(CouponUsage.coupon_id == coupon.id).count()
    assert coupon.used_count == rows == 4


def test_limit_exhausted_rejects_without_side_effects(client, db_session, make_coupon):
    coupon = make_coupon("LAST", usage_limit=2)

    assert _track(client, coupon.id).status_code == 200
    assert _track(client, coupon.id).status_code == 200
    resp = _track(client, coupon.id)

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Coupon usage limit exceeded"}

    db_session.refresh(coupon)
    assert coupon.used_count == 2
    assert db_session.query(CouponUsage).count() == 2


def test_zero_limit_is_unlimited(client, db_session, make_coupon):
    coupon = make_coupon("OPEN", usage_limit=0, used_count=7)

    assert _track(client, coupon.id).status_code == 200

    db_session.refresh(coupon)
    assert coupon.used_count == 8


def test_unknown_coupon(client, db_session):
    resp = _track(client, 999)

    assert resp.status_code == 404
    assert resp.json() == {"success": False, "error": "Coupon not found"}
    assert db_session.query(CouponUsage).count() == 0


def test_missing_fields_rejected(client):
    resp = client.post("/api/coupons/track-usage", json={"customer_email": "asha@example.com"})

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid coupon_id: Field required"}


def test_service_raises_for_exhausted_coupon(db_session, make_coupon):
    coupon = make_coupon("ONE", usage_limit=1, used_count=1)

    with pytest.raises(CouponValidationError) as exc:
        coupon_service.track_usage(db_session, coupon.id, None, "a@example.com", Decimal("10"))
    assert exc.value.message == "Coupon usage limit exceeded"


def test_service_raises_for_unknown_coupon(db_session):
    with pytest.raises(NotFoundError):
        coupon_service.track_usage(db_session, 12345, None, "a@example.com", Decimal("10"))


def test_track_then_validate_respects_per_user_limit(client, make_coupon):
    coupon = make_coupon("ONCE", per_user_limit=1)

    assert _track(client, coupon.id, customer_email="asha@example.com").status_code == 200

    resp = client.post("/api/coupons/validate", json={
        "code": "ONCE", "subtotal": 500, "email": "ASHA@example.com",
    })
    assert resp.status_code == 400
    assert resp.json()["message"] == "You have already used this coupon 1 times"


def test_validate_then_track_until_limit(client, db_session, make_coupon):
    limit = 3
    coupon = make_coupon("TRIO", usage_limit=limit)

    for i in range(limit):
        check = client.post("/api/coupons/validate", json={"code": "TRIO", "subtotal": 1000})
        assert check.status_code == 200
        discount = check.json()["coupon"]["discount_amount"]

        assert _track(client, coupon.id, customer_email=f"c{i}@example.com", discount_amount=discount).status_code == 200
        assert db_session.query(CouponUsage).count() <= limit

    rejected = client.post("/api/coupons/validate", json={"code": "TRIO", "subtotal": 1000})
    assert rejected.status_code == 400
    assert rejected.json() == {"valid": False, "message": "Coupon usage limit exceeded"}

    assert _track(client, coupon.id).status_code == 400
    db_session.refresh(coupon)
    assert coupon.used_count == limit
    assert db_session.query(CouponUsage).count() == limit
