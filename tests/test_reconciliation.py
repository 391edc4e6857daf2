"""
Tests for entitlement reconciliation and subscription expiry.
"""
from datetime import datetime, timedelta

from app.db.models import Payment, Subscription, User
from app.services.entitlement_service import build_subscription
from app.services.reconciliation_service import expire_subscriptions, reconcile_successful_payments


def make_paid_payment(db, user, order_id="order_paid_0001", status="SUCCESS", duration_days=30):
    payment = Payment(
        user_id=user.id,
        order_id=order_id,
        gateway_order_id=f"rzp_{order_id}",
        plan_id="pro-monthly",
        plan_name="Pro Monthly",
        amount=499,
        currency="INR",
        status=status,
        payment_metadata={"schema_version": 1, "plan_duration_days": duration_days},
        payment_time=datetime(2026, 1, 1, 12, 0, 0) if status == "SUCCESS" else None,
    )
    db.add(payment)
    db.commit()
    db.refresh(payment)
    return payment


def test_reconcile_grants_missing_subscription_and_role(db, basic_user):
    payment = make_paid_payment(db, basic_user, duration_days=60)

    result = reconcile_successful_payments(db)

    assert result == {"payments_scanned": 1, "subscriptions_created": 1, "users_promoted": 1}
    db.expire_all()
    assert db.query(User).filter(User.id == basic_user.id).one().role == "pro"
    subscription = db.query(Subscription).filter(Subscription.payment_id == payment.id).one()
    assert subscription.start_date == datetime(2026, 1, 1, 12, 0, 0)
    assert subscription.end_date == datetime(2026, 3, 2, 12, 0, 0)


def test_reconcile_is_noop_when_consistent(db, basic_user):
    make_paid_payment(db, basic_user)
    reconcile_successful_payments(db)

    result = reconcile_successful_payments(db)

    assert result == {"payments_scanned": 0, "subscriptions_created": 0, "users_promoted": 0}
    assert db.query(Subscription).count() == 1


def test_reconcile_ignores_pending_payments(db, basic_user):
    make_paid_payment(db, basic_user, status="PENDING")

    result = reconcile_successful_payments(db)

    assert result["payments_scanned"] == 0
    db.expire_all()
    assert db.query(User).filter(User.id == basic_user.id).one().role == "basic"


def test_reconcile_never_touches_admin(db, admin_user):
    make_paid_payment(db, admin_user)

    result = reconcile_successful_payments(db)

    assert result["users_promoted"] == 0
    db.expire_all()
    assert db.query(User).filter(User.id == admin_user.id).one().role == "admin"


def test_expire_subscriptions(db, basic_user):
    payment = make_paid_payment(db, basic_user)
    subscription = build_subscription(payment, datetime(2026, 1, 1))
    db.add(subscription)
    db.commit()

    assert expire_subscriptions(db, now=datetime(2026, 1, 15)) == 0
    assert expire_subscriptions(db, now=datetime(2026, 2, 1)) == 1

    db.expire_all()
    assert db.query(Subscription).one().status == "EXPIRED"
    # Role stays until an admin or a later job decides otherwise
    assert db.query(User).filter(User.id == basic_user.id).one().role == "basic"
    assert expire_subscriptions(db, now=datetime(2026, 2, 1) + timedelta(days=1)) == 0
