"""
Payment verification and entitlement service.

Turns an authenticated Razorpay Checkout callback into a SUCCESS payment,
a pro role and exactly one subscription per payment.

State machine per payment:
    PENDING --valid signature--> SUCCESS (entitlement granted once)
    PENDING --invalid signature--> PENDING (rejected, nothing written)
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.user import User, UserRole
from app.db.models.payment import Payment, PaymentStatus
from app.db.models.subscription import Subscription, SubscriptionStatus
from app.core.logging_config import sanitize_log_data
from app.schemas.payment import PaymentMetadata, VerifyPaymentRequest
from app.services.payment_errors import (
    MissingFields,
    ConfigurationError,
    SignatureInvalid,
    PaymentRecordNotFound,
    PersistenceError,
)
from app.services.razorpay_client import RazorpayGateway

logger = logging.getLogger(__name__)

PAYMENT_METHOD = "razorpay"
SUCCESS_MESSAGE = "Payment verified and processed successfully."


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def find_payment(
    db: Session,
    gateway_order_id: str,
    internal_order_id: Optional[str] = None
) -> Optional[Payment]:
    """Locate a payment by internal order id when given, else by Razorpay order id. Row is locked where supported."""
    query = db.query(Payment)
    if internal_order_id:
        query = query.filter(Payment.order_id == internal_order_id)
    else:
        query = query.filter(Payment.gateway_order_id == gateway_order_id)
    return query.with_for_update().first()


def mark_payment_successful(
    payment: Payment,
    gateway_payment_id: str,
    signature: str,
    paid_at: datetime
) -> bool:
    """
    Move a payment to SUCCESS.

    Returns:
        True if the status changed, False if the payment was already SUCCESS
    """
    if payment.status == PaymentStatus.SUCCESS.value:
        return False

    payment.status = PaymentStatus.SUCCESS.value
    payment.gateway_payment_id = gateway_payment_id
    payment.gateway_signature = signature
    payment.payment_method = PAYMENT_METHOD
    payment.payment_time = paid_at
    payment.error_message = None
    return True


def promote_user_role(db: Session, user_id: int) -> bool:
    """
    Promote a basic user to pro.

    Admins and users already on pro are left alone; this path never demotes.

    Returns:
        True if the role changed
    """
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        logger.warning(f"Role promotion skipped, user missing: user_id={user_id}")
        return False

    if user.role in (UserRole.ADMIN.value, UserRole.PRO.value):
        return False

    previous_role = user.role
    user.role = UserRole.PRO.value
    db.flush()
    logger.info(f"User promoted: user_id={user_id}, {previous_role} -> {user.role}")
    return True


def find_subscription_for_payment(db: Session, payment_id: int) -> Optional[Subscription]:
    return db.query(Subscription).filter(Subscription.payment_id == payment_id).first()


def build_subscription(payment: Payment, start_date: datetime) -> Subscription:
    metadata = PaymentMetadata.model_validate(payment.payment_metadata or {})
    duration_days = metadata.duration_days()
    return Subscription(
        user_id=payment.user_id,
        payment_id=payment.id,
        plan_id=payment.plan_id,
        plan_name=payment.plan_name,
        plan_duration_days=duration_days,
        start_date=start_date,
        end_date=start_date + timedelta(days=duration_days),
        status=SubscriptionStatus.ACTIVE.value,
        auto_renew=False,
    )


def grant_subscription(db: Session, payment: Payment, start_date: datetime) -> Optional[Subscription]:
    """
    Insert the subscription for a payment unless one already exists.

    The insert runs in a savepoint; the unique constraint on payment_id turns
    a concurrent duplicate into an IntegrityError, which counts as already granted.

    Returns:
        The new subscription, or None if the payment was already granted
    """
    if find_subscription_for_payment(db, payment.id):
        logger.info(f"Subscription already granted: payment_id={payment.id}")
        return None

    subscription = build_subscription(payment, start_date)
    try:
        with db.begin_nested():
            db.add(subscription)
    except IntegrityError:
        logger.info(f"Subscription granted concurrently: payment_id={payment.id}")
        return None

    logger.info(
        f"Subscription granted: subscription_id={subscription.id}, user_id={payment.user_id}, "
        f"payment_id={payment.id}, plan={payment.plan_id}, days={subscription.plan_duration_days}"
    )
    return subscription


def verify_payment(db: Session, request: VerifyPaymentRequest, gateway: RazorpayGateway) -> Dict:
    """
    Verify a Checkout callback and grant the purchased entitlement.

    Each step is a gate; failing one stops everything after it. Status update,
    role promotion and subscription insert share one commit.

    Args:
        db: Database session
        request: razorpay_order_id, razorpay_payment_id, razorpay_signature, optional internal_order_id
        gateway: Razorpay gateway holding the secret the signature is checked against

    Returns:
        Dictionary with payment, subscription (None if already granted),
        status_changed, role_promoted and message

    Raises:
        MissingFields, ConfigurationError, SignatureInvalid,
        PaymentRecordNotFound, PersistenceError
    """
    if not (request.razorpay_order_id and request.razorpay_payment_id and request.razorpay_signature):
        raise MissingFields()

    if not gateway.key_secret:
        logger.error("Payment verification refused: Razorpay secret is not configured")
        raise ConfigurationError("Razorpay secret not configured.")

    if not gateway.verify_signature(
        request.razorpay_order_id,
        request.razorpay_payment_id,
        request.razorpay_signature,
    ):
        logger.warning(f"Invalid payment signature (possible tampering): {sanitize_log_data(request.model_dump())}")
        raise SignatureInvalid()

    payment = find_payment(db, request.razorpay_order_id, request.internal_order_id)
    if not payment:
        logger.error(
            f"Payment record not found: gateway_order_id={request.razorpay_order_id}, "
            f"internal_order_id={request.internal_order_id}"
        )
        raise PaymentRecordNotFound()

    # The signature only covers the Razorpay order id; the row must belong to that order
    if payment.gateway_order_id != request.razorpay_order_id:
        logger.warning(
            f"Signed order does not match payment record (possible tampering): payment_id={payment.id}, "
            f"gateway_order_id={request.razorpay_order_id}, internal_order_id={request.internal_order_id}"
        )
        db.rollback()
        raise SignatureInvalid()

    now = utcnow()
    try:
        status_changed = mark_payment_successful(
            payment, request.razorpay_payment_id, request.razorpay_signature, now
        )
        db.flush()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to update payment status: payment_id={payment.id}, error={e}", exc_info=True)
        raise PersistenceError() from e

    if not status_changed:
        logger.info(f"Payment already verified: payment_id={payment.id}")

    # Best effort: a failure here must not undo the SUCCESS status
    role_promoted = False
    try:
        with db.begin_nested():
            role_promoted = promote_user_role(db, payment.user_id)
    except SQLAlchemyError as e:
        logger.error(
            f"Role promotion failed, needs reconciliation: user_id={payment.user_id}, payment_id={payment.id}, error={e}",
            exc_info=True
        )

    subscription = None
    try:
        subscription = grant_subscription(db, payment, now)
    except SQLAlchemyError as e:
        logger.error(
            f"Subscription grant failed, needs reconciliation: payment_id={payment.id}, error={e}",
            exc_info=True
        )

    try:
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Failed to commit payment verification: payment_id={payment.id}, error={e}", exc_info=True)
        raise PersistenceError() from e

    logger.info(
        f"Payment verified: payment_id={payment.id}, user_id={payment.user_id}, "
        f"status_changed={status_changed}, role_promoted={role_promoted}, "
        f"subscription_created={subscription is not None}"
    )

    return {
        "payment": payment,
        "subscription": subscription,
        "status_changed": status_changed,
        "role_promoted": role_promoted,
        "message": SUCCESS_MESSAGE,
    }


def as_naive_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; compare everything as naive UTC."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


def get_active_subscriptions(db: Session, user_id: int, now: Optional[datetime] = None) -> List[Subscription]:
    """ACTIVE subscriptions of a user that have not reached their end date, newest first."""
    now = as_naive_utc(now or utcnow())
    subscriptions = (
        db.query(Subscription)
        .filter(Subscription.user_id == user_id, Subscription.status == SubscriptionStatus.ACTIVE.value)
        .order_by(Subscription.end_date.desc())
        .all()
    )
    return [s for s in subscriptions if as_naive_utc(s.end_date) > now]
