"""
Pydantic schemas for Razorpay payment endpoints.

Field aliases keep the wire format the checkout widget already sends
(camelCase for order creation, razorpay_* for verification).
"""
from typing import Any, Dict, List, Optional
from datetime import datetime
from pydantic import BaseModel, Field


PAYMENT_METADATA_SCHEMA_VERSION = 1
DEFAULT_PLAN_DURATION_DAYS = 30


class PaymentMetadata(BaseModel):
    """Typed shape of payments.metadata."""
    schema_version: int = Field(default=PAYMENT_METADATA_SCHEMA_VERSION, description="Metadata layout version")
    plan_duration_days: Optional[int] = Field(None, description="Days of access purchased")
    razorpay_response: Optional[Dict[str, Any]] = Field(None, description="Raw order echo from Razorpay")

    def duration_days(self) -> int:
        """Purchased duration, falling back to the default when missing or invalid."""
        if self.plan_duration_days and self.plan_duration_days > 0:
            return self.plan_duration_days
        return DEFAULT_PLAN_DURATION_DAYS


class CreateOrderRequest(BaseModel):
    """Request schema for opening a Razorpay order. Validation happens in the service."""
    amount: Optional[float] = Field(None, description="Price in rupees (major units)")
    plan_id: Optional[str] = Field(None, alias="planId", description="Plan identifier")
    plan_name: Optional[str] = Field(None, alias="planName", description="Plan display name")
    plan_duration_days: Optional[int] = Field(None, alias="planDurationDays", description="Days of access")
    user_id: Optional[str] = Field(None, alias="userId", description="Identity provider user id")
    customer_name: Optional[str] = Field(None, alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    customer_phone: Optional[str] = Field(None, alias="customerPhone")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "amount": 499,
                "planId": "pro-monthly",
                "planName": "Pro Monthly",
                "planDurationDays": 30,
                "userId": "user_2abc123",
                "customerName": "Asha Rao",
                "customerEmail": "asha@example.com",
                "customerPhone": "+919800000000"
            }
        }


class CreateOrderResponse(BaseModel):
    """Response schema for order creation, fed straight into Razorpay Checkout."""
    success: bool = True
    order_id: str = Field(..., alias="orderId", description="Razorpay order id")
    internal_order_id: str = Field(..., alias="internalOrderId", description="Receipt reference")
    key_id: str = Field(..., alias="keyId", description="Public Razorpay key id")
    amount: int = Field(..., description="Amount in paise")
    currency: str = Field(default="INR")
    customer_name: str = Field(..., alias="customerName")
    customer_email: Optional[str] = Field(None, alias="customerEmail")
    customer_phone: str = Field(default="", alias="customerPhone")

    class Config:
        populate_by_name = True
        json_schema_extra = {
            "example": {
                "success": True,
                "orderId": "order_NXa1b2c3d4e5f6",
                "internalOrderId": "order_lz8k2m9q_x7f3k2pa",
                "keyId": "rzp_test_1234567890",
                "amount": 49900,
                "currency": "INR",
                "customerName": "Asha Rao",
                "customerEmail": "asha@example.com",
                "customerPhone": ""
            }
        }


class VerifyPaymentRequest(BaseModel):
    """Request schema for the Checkout success callback."""
    razorpay_order_id: Optional[str] = Field(None, description="Razorpay order id")
    razorpay_payment_id: Optional[str] = Field(None, description="Razorpay payment id")
    razorpay_signature: Optional[str] = Field(None, description="HMAC-SHA256 hex signature")
    internal_order_id: Optional[str] = Field(None, description="Receipt reference from create-order")


class VerifyPaymentResponse(BaseModel):
    success: bool = True
    message: str = Field(..., description="Confirmation message")


class PaymentErrorResponse(BaseModel):
    """Envelope returned for every failed payment request."""
    success: bool = False
    error: str = Field(..., description="Human readable error message")

    class Config:
        json_schema_extra = {
            "example": {
                "success": False,
                "error": "Payment verification failed. Invalid signature."
            }
        }


class SubscriptionResponse(BaseModel):
    id: int
    plan_id: str
    plan_name: str
    plan_duration_days: int
    start_date: datetime
    end_date: datetime
    status: str
    auto_renew: bool

    class Config:
        from_attributes = True


class EntitlementResponse(BaseModel):
    """Current role and active subscriptions of the calling user."""
    success: bool = True
    role: str
    is_pro: bool
    subscriptions: List[SubscriptionResponse] = Field(default_factory=list)
