"""
Razorpay gateway client for order creation and checkout signature checks.
"""
import logging
from typing import Dict, Optional

import razorpay
from razorpay.errors import BadRequestError, SignatureVerificationError

from app.core import config
from app.services.payment_errors import GatewayError

logger = logging.getLogger(__name__)


class RazorpayGateway:
    """
    Thin wrapper around razorpay.Client.

    Holds the credentials the services need (public key id for the checkout
    widget, secret for signature checks) and opens orders with a timeout.
    """

    def __init__(self, key_id: str, key_secret: str, timeout: float = 5.0):
        self.key_id = key_id or ""
        self.key_secret = key_secret or ""
        self.timeout = timeout
        self._client: Optional[razorpay.Client] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.key_id and self.key_secret)

    @property
    def client(self) -> razorpay.Client:
        if self._client is None:
            self._client = razorpay.Client(auth=(self.key_id, self.key_secret))
        return self._client

    def create_order(self, amount_paise: int, receipt: str, notes: Dict[str, str], currency: str = "INR") -> Dict:
        """
        Open a Razorpay order.

        Args:
            amount_paise: Amount in minor units
            receipt: Internal order id used as the receipt reference
            notes: Plan and user details attached to the order
            currency: ISO currency code

        Returns:
            Order dictionary as returned by Razorpay (id, amount, currency, receipt, ...)

        Raises:
            GatewayError: If Razorpay rejects the request or is unreachable
        """
        data = {
            "amount": amount_paise,
            "currency": currency,
            "receipt": receipt,
            "notes": notes,
        }
        try:
            order = self.client.order.create(data=data, timeout=self.timeout)
        except BadRequestError as e:
            logger.error(f"Razorpay rejected order: receipt={receipt}, error={e}")
            raise GatewayError() from e
        except Exception as e:
            logger.error(f"Razorpay order creation failed: receipt={receipt}, error={type(e).__name__}: {e}")
            raise GatewayError() from e

        if not order or not order.get("id"):
            logger.error(f"Razorpay returned an empty order: receipt={receipt}")
            raise GatewayError()

        logger.info(f"Razorpay order created: order_id={order['id']}, receipt={receipt}, amount={amount_paise}")
        return order

    def verify_signature(self, gateway_order_id: str, gateway_payment_id: str, signature: str) -> bool:
        """
        Check a Checkout callback signature with the SDK's HMAC-SHA256 verifier.

        This is the only proof that the payment really happened, so every
        entitlement grant must pass through it.
        """
        if not self.key_secret or not signature or not signature.isascii():
            return False
        try:
            self.client.utility.verify_payment_signature({
                "razorpay_order_id": gateway_order_id,
                "razorpay_payment_id": gateway_payment_id,
                "razorpay_signature": signature,
            })
        except SignatureVerificationError:
            return False
        return True


def get_payment_gateway() -> RazorpayGateway:
    """FastAPI dependency building the gateway from environment config."""
    return RazorpayGateway(
        key_id=config.RAZORPAY_KEY_ID,
        key_secret=config.RAZORPAY_KEY_SECRET,
        timeout=config.RAZORPAY_TIMEOUT_SECONDS,
    )
