"""
Payments Router - PayPal order creation and payment reconciliation endpoints
"""

import logging
from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from auth import get_current_user
from config.settings import settings
from database import get_db
from models.payment import CreateOrderRequest, WebhookRequest
from models.user import CurrentUser
from services.order_service import OrderService
from services.paypal_client import PayPalClient, get_paypal_client
from services.subscription_service import SubscriptionService
from utils.errors import ConfigurationError, StoreWriteError, UpstreamRequestError, ValidationError
from utils.responses import success_response, error_response
from utils.shared_utils import log_endpoint_event

logger = logging.getLogger(__name__)

payments_router = APIRouter(prefix="/api/payments", tags=["payments"])


def _caller_origin(request: Request) -> str:
    return request.headers.get("origin") or settings.frontend_url


@payments_router.post("/create-order")
async def create_order(
    body: CreateOrderRequest,
    request: Request,
    paypal: PayPalClient = Depends(get_paypal_client),
):
    """Create a PayPal order for a plan and return the approval URL."""
    service = OrderService(paypal)
    try:
        order = await service.create_order(body.plan, body.amount, _caller_origin(request))
    except ConfigurationError as e:
        log_endpoint_event("/payments/create-order", result="error", details={"reason": "configuration"})
        return error_response(str(e), status=500)
    except UpstreamRequestError as e:
        log_endpoint_event("/payments/create-order", result="error", details={"reason": "upstream"})
        return error_response(str(e), status=502)

    log_endpoint_event("/payments/create-order", details={"order_id": order.order_id, "plan": body.plan.value})
    return success_response(order.model_dump(by_alias=True))


@payments_router.post("/webhook")
async def payment_webhook(
    body: WebhookRequest,
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    paypal: PayPalClient = Depends(get_paypal_client),
):
    """
    Re-verify an order with PayPal and activate the caller's subscription.

    Returns 200 {success: true} once active, 400 {success: false} when the
    provider does not report the order as completed.
    """
    if body.user_id and body.user_id != current_user.user_id:
        logger.warning(f"Webhook userId {body.user_id} does not match authenticated user {current_user.user_id}")
        return error_response("userId does not match the authenticated user", status=403)

    service = SubscriptionService(db, paypal)
    try:
        result = await service.activate_subscription(
            order_id=body.order_id,
            user_id=body.user_id,
            plan_id=body.plan_id,
            plan_name=body.plan_name,
        )
    except ValidationError as e:
        return error_response(str(e), status=400, fields=e.fields)
    except ConfigurationError as e:
        return error_response(str(e), status=500)
    except UpstreamRequestError as e:
        return error_response(str(e), status=502)
    except StoreWriteError as e:
        return error_response(str(e), status=500)

    log_endpoint_event(
        "/payments/webhook",
        user_id=current_user.user_id,
        result="success" if result.success else "unverified",
        details={"order_id": body.order_id},
    )
    return success_response(result.model_dump(), status=200 if result.success else 400)


@payments_router.get("/subscription")
async def get_subscription(
    current_user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """The caller's subscription row, or null when they never paid."""
    subscription = await SubscriptionService(db).get_subscription(current_user.user_id)
    if subscription is None:
        return {"subscription": None}
    return {
        "subscription": {
            "planId": subscription.plan_id,
            "planName": subscription.plan_name,
            "status": subscription.status,
            "providerOrderReference": subscription.provider_order_reference,
            "updatedAt": subscription.updated_at.isoformat(),
        }
    }
