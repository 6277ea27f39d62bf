"""
Payment verification: signature check, order recording, save failure, idempotency.
"""

import pytest
from sqlalchemy.exc import OperationalError

from common.exceptions import PaymentError
from modules.coupon.models import CouponUsage
from modules.order.models import Order
from modules.order.schemas import OrderData
from modules.order.service import order_service
from modules.payment.service import payment_service


def _verify(client, payment, order_data):
    return client.post("/api/payment/verify-payment", json={**payment, "order_data": order_data})


def test_valid_signature_records_paid_order(client, db_session, signed_payment, order_payload):
    payment = signed_payment("order_A1", "pay_A1")

    resp = _verify(client, payment, order_payload())

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["order_saved"] is True
    assert body["message"] == "Payment verified successfully"
    assert body["payment_id"] == "pay_A1"

    order = body["order"]
    assert body["order_id"] == order["id"]
    assert order["status"] == "paid"
    assert order["payment_method"] == "online"
    assert order["gateway_order_id"] == "order_A1"
    assert order["gateway_payment_id"] == "pay_A1"
    assert order["paid_at"] is not None

    assert db_session.query(Order).count() == 1


def test_storefront_field_names_accepted(client, signed_payment, order_payload):
    payment = signed_payment("order_B1", "pay_B1")

    resp = client.post("/api/payment/verify-payment", json={
        "razorpay_order_id": payment["gateway_order_id"],
        "razorpay_payment_id": payment["gateway_payment_id"],
        "razorpay_signature": payment["gateway_signature"],
        "order_data": order_payload(),
    })

    assert resp.status_code == 200
    assert resp.json()["order"]["gateway_payment_id"] == "pay_B1"


def test_invalid_signature_rejected(client, db_session, signed_payment, order_payload):
    payment = signed_payment("order_C1", "pay_C1")
    payment["gateway_signature"] = "0" * 64

    resp = _verify(client, payment, order_payload())

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid payment signature"}
    assert db_session.query(Order).count() == 0


def test_signature_bound_to_order_and_payment(client, db_session, signed_payment, order_payload):
    # Signature of another payment must not verify this one
    payment = signed_payment("order_D1", "pay_D1")
    payment["gateway_payment_id"] = "pay_D2"

    resp = _verify(client, payment, order_payload())

    assert resp.status_code == 400
    assert db_session.query(Order).count() == 0


def test_missing_payment_details(client, signed_payment, order_payload):
    for field in ("gateway_order_id", "gateway_payment_id", "gateway_signature"):
        payment = signed_payment()
        payment[field] = ""

        resp = _verify(client, payment, order_payload())

        assert resp.status_code == 400
        assert resp.json() == {"success": False, "error": "Missing payment details"}


def test_order_data_checked_before_signature(client, db_session, signed_payment, order_payload):
    payment = signed_payment()
    payment["gateway_signature"] = "bad"

    resp = _verify(client, payment, order_payload(name=""))

    assert resp.status_code == 400
    assert resp.json()["error"] == "Missing customer information"
    assert db_session.query(Order).count() == 0


def test_save_failure_still_reports_verified_payment(client, db_session, signed_payment, order_payload, monkeypatch):
    payment = signed_payment("order_E1", "pay_E1")

    def failing_commit():
        raise OperationalError("INSERT INTO orders", {}, Exception("disk I/O error"))

    monkeypatch.setattr(db_session, "commit", failing_commit)

    resp = _verify(client, payment, order_payload())

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["payment_verified"] is True
    assert body["order_saved"] is False
    assert body["message"] == "payment verified but order save failed"
    assert body["payment_id"] == "pay_E1"
    assert body["gateway_order_id"] == "order_E1"

    monkeypatch.undo()
    assert db_session.query(Order).count() == 0


def test_repeated_verification_is_idempotent(client, db_session, make_coupon, signed_payment, order_payload):
    coupon = make_coupon("SAVE10")
    payment = signed_payment("order_F1", "pay_F1")
    data = order_payload(coupon_code="SAVE10", coupon_discount=100, total_amount=950)

    first = _verify(client, payment, data).json()
    second = _verify(client, payment, data).json()

    assert first["order_id"] == second["order_id"]
    assert db_session.query(Order).count() == 1

    db_session.refresh(coupon)
    assert coupon.used_count == 1
    assert db_session.query(CouponUsage).count() == 1


def test_unknown_gateway_rejected(db_session, signed_payment, order_payload):
    payment = signed_payment()
    with pytest.raises(PaymentError) as exc:
        payment_service.verify_and_record(
            db_session, **payment, order_data=OrderData(**order_payload()), gateway_name="stripe",
        )
    assert exc.value.message == "Gateway stripe is not available"


def test_concurrent_duplicate_callback_reports_saved_order(
    client, db_session, signed_payment, order_payload, monkeypatch,
):
    payment = signed_payment("order_G1", "pay_G1")
    first = _verify(client, payment, order_payload()).json()

    # Second callback misses the pre-insert lookup, as when both arrive together
    real_lookup = order_service.get_by_payment_id
    calls = []

    def racing_lookup(db, payment_id):
        calls.append(payment_id)
        if len(calls) == 1:
            return None
        return real_lookup(db, payment_id)

    monkeypatch.setattr(order_service, "get_by_payment_id", racing_lookup)

    resp = _verify(client, payment, order_payload())

    assert resp.status_code == 200
    body = resp.json()
    assert body["order_saved"] is True
    assert body["message"] == "Payment verified successfully"
    assert body["order_id"] == first["order_id"]
    assert db_session.query(Order).count() == 1


def test_paid_order_keeps_cart_lines_as_sent(client, db_session, signed_payment, order_payload):
    payment = signed_payment("order_H1", "pay_H1")
    items = [{"name": "", "price": 0, "quantity": 0, "category": "Cards", "sku": "GC-1"}]

    resp = _verify(client, payment, order_payload(items=items))

    assert resp.status_code == 200
    assert resp.json()["order_saved"] is True
    saved = db_session.query(Order).one()
    assert saved.items[0]["quantity"] == 0
    assert saved.items[0]["sku"] == "GC-1"


def test_malformed_order_data_answers_400(client, db_session, signed_payment, order_payload):
    payment = signed_payment("order_H2", "pay_H2")

    resp = _verify(client, payment, order_payload(total_amount="lots"))

    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["error"].startswith("Invalid order_data.total_amount")
    assert db_session.query(Order).count() == 0


def test_single_character_signature_change_rejected(client, db_session, signed_payment, order_payload):
    payment = signed_payment("order_I1", "pay_I1")
    sig = payment["gateway_signature"]
    payment["gateway_signature"] = sig[:10] + ("1" if sig[10] != "1" else "2") + sig[11:]

    resp = _verify(client, payment, order_payload())

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid payment signature"}
    assert db_session.query(Order).count() == 0
