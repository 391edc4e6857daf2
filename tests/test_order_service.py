"""
Unit tests for the order creation service.
"""
import re

import pytest
from sqlalchemy.exc import SQLAlchemyError

from app.db.models import Payment
from app.schemas.payment import CreateOrderRequest
from app.services import order_service
from app.services.order_service import create_order, generate_internal_order_id, to_minor_units
from app.services.payment_errors import (
    ConfigurationError,
    GatewayError,
    InvalidAmount,
    MissingUser,
    UserNotFound,
)
from conftest import FakeGateway


def order_request(**overrides):
    data = {
        "amount": 499,
        "planId": "pro-monthly",
        "planName": "Pro Monthly",
        "planDurationDays": 30,
        "userId": "ext_123",
    }
    data.update(overrides)
    return CreateOrderRequest(**data)


def test_internal_order_id_format():
    order_id = generate_internal_order_id(now_ms=1700000000000)

    assert len(order_id) <= 45
    assert re.fullmatch(r"order_[0-9a-z]+_[0-9a-z]{8}", order_id)
    # base36 of the timestamp
    assert order_id.startswith("order_loyw3v28_")


def test_internal_order_ids_are_unique():
    ids = {generate_internal_order_id(now_ms=1700000000000) for _ in range(200)}
    assert len(ids) == 200


@pytest.mark.parametrize("amount, paise", [
    (499, 49900),
    (1, 100),
    (99.99, 9999),
    (10.005, 1001),
    (300.5, 30050),
])
def test_to_minor_units(amount, paise):
    assert to_minor_units(amount) == paise


def test_create_order_success(db, basic_user, gateway):
    response = create_order(db, gateway, order_request())

    assert response.order_id == "order_rzp000001"
    assert response.internal_order_id.startswith("order_")
    assert len(response.internal_order_id) <= 45
    assert response.key_id == gateway.key_id
    assert response.amount == 49900
    assert response.currency == "INR"
    assert response.customer_name == basic_user.name
    assert response.customer_email == basic_user.email
    assert response.customer_phone == ""

    sent = gateway.orders[0]
    assert sent["amount"] == 49900
    assert sent["currency"] == "INR"
    assert sent["receipt"] == response.internal_order_id
    assert sent["notes"] == {"plan_id": "pro-monthly", "plan_name": "Pro Monthly", "user_id": "ext_123"}


def test_create_order_persists_pending_payment(db, basic_user, gateway):
    response = create_order(db, gateway, order_request())

    payment = db.query(Payment).filter(Payment.order_id == response.internal_order_id).one()
    assert payment.status == "PENDING"
    assert payment.amount == 499
    assert payment.currency == "INR"
    assert payment.user_id == basic_user.id
    assert payment.gateway_order_id == response.order_id
    assert payment.plan_id == "pro-monthly"
    assert payment.payment_metadata["schema_version"] == 1
    assert payment.payment_metadata["plan_duration_days"] == 30
    assert payment.payment_metadata["razorpay_response"]["id"] == response.order_id


def test_create_order_prefers_request_customer_fields(db, basic_user, gateway):
    response = create_order(db, gateway, order_request(
        customerName="Asha Rao",
        customerEmail="asha@example.com",
        customerPhone="+919800000000",
    ))

    assert response.customer_name == "Asha Rao"
    assert response.customer_email == "asha@example.com"
    assert response.customer_phone == "+919800000000"


@pytest.mark.parametrize("amount", [0, -5, 0.5, None, float("nan"), float("inf"), float("-inf")])
def test_create_order_rejects_invalid_amount_without_gateway_call(db, basic_user, gateway, amount):
    with pytest.raises(InvalidAmount):
        create_order(db, gateway, order_request(amount=amount))

    assert gateway.orders == []
    assert db.query(Payment).count() == 0


def test_create_order_requires_user_id(db, gateway):
    with pytest.raises(MissingUser):
        create_order(db, gateway, order_request(userId=None))
    assert gateway.orders == []


def test_create_order_requires_credentials(db, basic_user):
    gateway = FakeGateway(key_id="", key_secret="")

    with pytest.raises(ConfigurationError) as exc_info:
        create_order(db, gateway, order_request())

    assert exc_info.value.status_code == 500
    assert gateway.orders == []


def test_create_order_unknown_user(db, gateway):
    with pytest.raises(UserNotFound):
        create_order(db, gateway, order_request(userId="ext_missing"))
    assert gateway.orders == []


def test_gateway_failure_persists_nothing(db, basic_user):
    gateway = FakeGateway(fail=True)

    with pytest.raises(GatewayError):
        create_order(db, gateway, order_request())

    assert db.query(Payment).count() == 0


def test_payment_insert_failure_still_returns_order(db, basic_user, gateway, monkeypatch):
    def broken_commit():
        raise SQLAlchemyError("database unavailable")

    monkeypatch.setattr(db, "commit", broken_commit)

    response = create_order(db, gateway, order_request())

    assert response.order_id == "order_rzp000001"
    assert db.query(Payment).count() == 0


def test_order_id_helper_is_used_for_receipt(db, basic_user, gateway, monkeypatch):
    monkeypatch.setattr(order_service, "generate_internal_order_id", lambda: "order_fixed_abcdefgh")

    response = create_order(db, gateway, order_request())

    assert response.internal_order_id == "order_fixed_abcdefgh"
    assert gateway.orders[0]["receipt"] == "order_fixed_abcdefgh"
