"""
Razorpay payment endpoints.

Every response is a {"success": bool, ...} envelope; failures carry a
human readable "error" and never a traceback.
"""
import logging
from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from app.core.auth_dependency import get_db, get_current_user_obj
from app.core.rate_limit import limit_create_order
from app.db.models.user import User, UserRole
from app.schemas.payment import (
    CreateOrderRequest,
    CreateOrderResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
    EntitlementResponse,
    PaymentErrorResponse,
    SubscriptionResponse,
)
from app.services.order_service import create_order
from app.services.entitlement_service import verify_payment, get_active_subscriptions
from app.services.payment_errors import PaymentError
from app.services.razorpay_client import RazorpayGateway, get_payment_gateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/payment", tags=["Payments"])


ERROR_RESPONSES = {
    400: {"model": PaymentErrorResponse},
    404: {"model": PaymentErrorResponse},
    500: {"model": PaymentErrorResponse},
    502: {"model": PaymentErrorResponse},
}


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


@router.post(
    "/razorpay/create-order",
    response_model=CreateOrderResponse,
    responses=ERROR_RESPONSES,
    dependencies=[Depends(limit_create_order)],
)
def create_razorpay_order(
    payload: CreateOrderRequest,
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway)
):
    """
    Open a Razorpay order for a plan and record it as a PENDING payment.
    """
    try:
        return create_order(db, gateway, payload)
    except PaymentError as e:
        logger.info(f"Order creation rejected: {type(e).__name__}, user={payload.user_id}, plan={payload.plan_id}")
        return error_response(e.status_code, e.message)
    except Exception:
        logger.exception("Unexpected error while creating Razorpay order")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unknown error while creating order.")


@router.post("/razorpay/verify", response_model=VerifyPaymentResponse, responses=ERROR_RESPONSES)
def verify_razorpay_payment(
    payload: VerifyPaymentRequest,
    db: Session = Depends(get_db),
    gateway: RazorpayGateway = Depends(get_payment_gateway)
):
    """
    Verify the Checkout signature, mark the payment SUCCESS and grant the plan.

    Safe to call more than once for the same payment.
    """
    try:
        result = verify_payment(db, payload, gateway)
    except PaymentError as e:
        logger.info(f"Payment verification rejected: {type(e).__name__}, gateway_order_id={payload.razorpay_order_id}")
        return error_response(e.status_code, e.message)
    except Exception:
        logger.exception("Unexpected error while verifying Razorpay payment")
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Unknown error during verification.")

    return VerifyPaymentResponse(success=True, message=result["message"])


@router.get("/entitlement", response_model=EntitlementResponse)
def get_entitlement(
    user: User = Depends(get_current_user_obj),
    db: Session = Depends(get_db)
):
    """
    Current role and active subscriptions of the signed-in user.

    Verification does not echo entitlement details, so clients read them here.
    """
    subscriptions = get_active_subscriptions(db, user.id)
    return EntitlementResponse(
        role=user.role,
        is_pro=user.role in (UserRole.PRO.value, UserRole.ADMIN.value),
        subscriptions=[SubscriptionResponse.model_validate(s) for s in subscriptions],
    )
