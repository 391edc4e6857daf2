"""
Error taxonomy for the payment and entitlement services.

Each error carries the HTTP status it maps to and a message that is safe to
show to the caller. Messages never include secrets or internal details.
"""


class PaymentError(Exception):
    """Base class for payment flow failures."""
    status_code = 500
    message = "Payment request failed."

    def __init__(self, message: str = None):
        self.message = message or self.message
        super().__init__(self.message)


# Validation (4xx, no state mutation)

class InvalidAmount(PaymentError):
    status_code = 400
    message = "Invalid amount. Amount must be at least ₹1."


class MissingUser(PaymentError):
    status_code = 400
    message = "User ID is required."


class MissingFields(PaymentError):
    status_code = 400
    message = "Missing required payment details."


# Configuration (5xx)

class ConfigurationError(PaymentError):
    status_code = 500
    message = "Razorpay credentials are not configured."


# Authenticity

class SignatureInvalid(PaymentError):
    status_code = 400
    message = "Payment verification failed. Invalid signature."


# Not found

class UserNotFound(PaymentError):
    status_code = 404
    message = "User record not found. Please re-login and try again."


class PaymentRecordNotFound(PaymentError):
    status_code = 404
    message = "Payment record not found."


# Downstream

class GatewayError(PaymentError):
    status_code = 502
    message = "Failed to create Razorpay order."


class PersistenceError(PaymentError):
    status_code = 500
    message = "Failed to update payment status."
