"""
Repair and housekeeping for the entitlement flow.

Finds SUCCESS payments whose entitlement was not fully applied (no
subscription, owner still on the basic role) and finishes the grant, and
expires subscriptions past their end date.
"""
import logging
from datetime import datetime, timezone
from typing import Dict, Optional

from sqlalchemy.orm import Session

from app.db.models.user import User, UserRole
from app.db.models.payment import Payment, PaymentStatus
from app.db.models.subscription import Subscription, SubscriptionStatus
from app.services.entitlement_service import as_naive_utc, grant_subscription, promote_user_role

logger = logging.getLogger(__name__)


def reconcile_successful_payments(db: Session) -> Dict[str, int]:
    """
    Grant missing subscriptions and roles for verified payments.

    Returns:
        Counts of payments scanned, subscriptions created and users promoted
    """
    missing_subscription = (
        db.query(Payment)
        .outerjoin(Subscription, Subscription.payment_id == Payment.id)
        .filter(Payment.status == PaymentStatus.SUCCESS.value, Subscription.id.is_(None))
        .all()
    )
    basic_owners = (
        db.query(User.id)
        .join(Payment, Payment.user_id == User.id)
        .filter(Payment.status == PaymentStatus.SUCCESS.value, User.role == UserRole.BASIC.value)
        .distinct()
        .all()
    )

    subscriptions_created = 0
    for payment in missing_subscription:
        start_date = payment.payment_time or datetime.now(timezone.utc)
        if grant_subscription(db, payment, start_date):
            subscriptions_created += 1

    users_promoted = 0
    for (user_id,) in basic_owners:
        if promote_user_role(db, user_id):
            users_promoted += 1

    db.commit()

    result = {
        "payments_scanned": len(missing_subscription),
        "subscriptions_created": subscriptions_created,
        "users_promoted": users_promoted,
    }
    if subscriptions_created or users_promoted:
        logger.warning(f"Entitlement drift repaired: {result}")
    else:
        logger.info(f"Entitlements consistent: {result}")
    return result


def expire_subscriptions(db: Session, now: Optional[datetime] = None) -> int:
    """
    Mark ACTIVE subscriptions past their end date as EXPIRED.

    Roles are not touched.

    Returns:
        Number of subscriptions expired
    """
    now = as_naive_utc(now or datetime.now(timezone.utc))
    expired = 0
    active = db.query(Subscription).filter(Subscription.status == SubscriptionStatus.ACTIVE.value).all()
    for subscription in active:
        if as_naive_utc(subscription.end_date) <= now:
            subscription.status = SubscriptionStatus.EXPIRED.value
            expired += 1

    db.commit()
    logger.info(f"Subscriptions expired: count={expired}")
    return expired
