"""
Order creation service.

Validates a purchase request, opens a Razorpay order and records a PENDING
payment linked to the buyer.
"""
import logging
import math
import secrets
import string
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.models.user import User
from app.db.models.payment import Payment, PaymentStatus
from app.schemas.payment import CreateOrderRequest, CreateOrderResponse, PaymentMetadata
from app.services.payment_errors import (
    InvalidAmount,
    MissingUser,
    ConfigurationError,
    UserNotFound,
)
from app.services.razorpay_client import RazorpayGateway

logger = logging.getLogger(__name__)

CURRENCY = "INR"
MAX_ORDER_ID_LENGTH = 45  # Razorpay receipt limit
ORDER_SUFFIX_LENGTH = 8
_BASE36_ALPHABET = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36_ALPHABET[remainder])
    return "".join(reversed(digits))


def generate_internal_order_id(now_ms: Optional[int] = None) -> str:
    """
    Build a receipt id: "order_<base36 epoch millis>_<8 random chars>".

    The time prefix keeps ids roughly sortable; the suffix makes collisions
    within the same millisecond unlikely.
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    suffix = "".join(secrets.choice(_BASE36_ALPHABET) for _ in range(ORDER_SUFFIX_LENGTH))
    return f"order_{_to_base36(now_ms)}_{suffix}"[:MAX_ORDER_ID_LENGTH]


def to_minor_units(amount) -> int:
    """Rupees -> paise, rounded half-up."""
    paise = (Decimal(str(amount)) * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
    return int(paise)


def get_user_by_external_id(db: Session, external_id: str) -> Optional[User]:
    return db.query(User).filter(User.external_id == external_id).first()


def create_order(
    db: Session,
    gateway: RazorpayGateway,
    request: CreateOrderRequest
) -> CreateOrderResponse:
    """
    Open a Razorpay order for a plan purchase.

    Args:
        db: Database session
        gateway: Razorpay gateway carrying the configured credentials
        request: Purchase request from the checkout page

    Returns:
        Order details for the Razorpay Checkout widget

    Raises:
        InvalidAmount: amount missing, not a finite number or below ₹1
        MissingUser: no identity provider user id
        ConfigurationError: Razorpay key id or secret missing
        UserNotFound: no internal user for the external id
        GatewayError: Razorpay did not create the order (nothing persisted)
    """
    if request.amount is None or not math.isfinite(request.amount) or request.amount < 1:
        raise InvalidAmount()

    if not request.user_id:
        raise MissingUser()

    if not gateway.is_configured:
        logger.error("Order creation refused: Razorpay credentials are not configured")
        raise ConfigurationError()

    user = get_user_by_external_id(db, request.user_id)
    if not user:
        logger.warning(f"Order creation for unknown user: external_id={request.user_id}")
        raise UserNotFound()

    internal_order_id = generate_internal_order_id()
    amount_paise = to_minor_units(request.amount)

    order = gateway.create_order(
        amount_paise=amount_paise,
        receipt=internal_order_id,
        currency=CURRENCY,
        notes={
            "plan_id": request.plan_id or "",
            "plan_name": request.plan_name or "",
            "user_id": request.user_id,
        },
    )

    metadata = PaymentMetadata(
        plan_duration_days=request.plan_duration_days,
        razorpay_response=dict(order),
    )
    payment = Payment(
        user_id=user.id,
        order_id=internal_order_id,
        gateway_order_id=order["id"],
        plan_id=request.plan_id or "",
        plan_name=request.plan_name or "",
        amount=Decimal(str(request.amount)),
        currency=CURRENCY,
        status=PaymentStatus.PENDING.value,
        payment_metadata=metadata.model_dump(),
    )

    # The gateway order already exists; a lost row is resolved at verification time
    try:
        db.add(payment)
        db.commit()
        logger.info(
            f"Payment recorded: payment_id={payment.id}, user_id={user.id}, order_id={internal_order_id}, "
            f"gateway_order_id={order['id']}, plan={request.plan_id}, amount={request.amount}"
        )
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(
            f"Failed to record payment: order_id={internal_order_id}, gateway_order_id={order['id']}, error={e}",
            exc_info=True
        )

    return CreateOrderResponse(
        order_id=order["id"],
        internal_order_id=internal_order_id,
        key_id=gateway.key_id,
        amount=int(order.get("amount", amount_paise)),
        currency=order.get("currency", CURRENCY),
        customer_name=request.customer_name or user.name or "User",
        customer_email=request.customer_email or user.email,
        customer_phone=request.customer_phone or "",
    )
