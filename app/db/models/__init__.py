"""
Database models module.

Imports every model so it is registered on Base.metadata before table
creation and Alembic autogenerate.
"""
from app.db.models.user import User, UserRole
from app.db.models.payment import Payment, PaymentStatus
from app.db.models.subscription import Subscription, SubscriptionStatus

__all__ = [
    "User",
    "UserRole",
    "Payment",
    "PaymentStatus",
    "Subscription",
    "SubscriptionStatus",
]
