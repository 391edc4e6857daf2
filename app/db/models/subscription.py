import enum
from sqlalchemy import Column, Integer, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship, backref
from app.db.base import Base


class SubscriptionStatus(str, enum.Enum):
    ACTIVE = "ACTIVE"
    EXPIRED = "EXPIRED"
    CANCELLED = "CANCELLED"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    payment_id = Column(Integer, ForeignKey("payments.id"), nullable=False)

    plan_id = Column(String, nullable=False)
    plan_name = Column(String, nullable=False)
    plan_duration_days = Column(Integer, nullable=False, default=30)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default=SubscriptionStatus.ACTIVE.value)  # ACTIVE | EXPIRED | CANCELLED
    auto_renew = Column(Boolean, nullable=False, default=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", backref="subscriptions")
    payment = relationship("Payment", backref=backref("subscription", uselist=False))

    # One grant per payment; concurrent verification relies on this
    __table_args__ = (
        UniqueConstraint("payment_id", name="uq_subscriptions_payment_id"),
    )

    def __repr__(self):
        return f"<Subscription(id={self.id}, payment_id={self.payment_id}, status='{self.status}')>"
