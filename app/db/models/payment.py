"""
Payment model - one row per checkout attempt with the payment gateway.
"""
import enum
from sqlalchemy import Column, Integer, String, Numeric, DateTime, ForeignKey, JSON, Text, Index
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from app.db.base import Base


class PaymentStatus(str, enum.Enum):
    """Payment lifecycle states. PENDING -> SUCCESS happens at most once."""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Internal order id doubles as the gateway receipt (max 45 chars)
    order_id = Column(String(45), unique=True, nullable=False, index=True)
    gateway_order_id = Column(String, unique=True, nullable=True, index=True)

    plan_id = Column(String, nullable=False)
    plan_name = Column(String, nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)  # major units (rupees)
    currency = Column(String(3), nullable=False, default="INR")
    status = Column(String, nullable=False, default=PaymentStatus.PENDING.value, index=True)

    # "metadata" is reserved on declarative classes
    payment_metadata = Column("metadata", JSON, nullable=True)

    # Populated by verification
    gateway_payment_id = Column(String, nullable=True)
    gateway_signature = Column(String, nullable=True)
    payment_method = Column(String, nullable=True)
    payment_time = Column(DateTime(timezone=True), nullable=True)
    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    user = relationship("User", backref="payments")

    __table_args__ = (
        Index("idx_payments_user_status", "user_id", "status"),
    )

    def __repr__(self):
        return f"<Payment(id={self.id}, order_id='{self.order_id}', status='{self.status}')>"
