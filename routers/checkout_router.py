"""
Checkout Router - pricing catalog, plan purchase redirect and payment return route
"""

import logging
from typing import AsyncGenerator

import httpx
from fastapi import APIRouter, Depends, Request
from fastapi.responses import RedirectResponse

from auth import get_current_user
from config.plans import PLANS
from config.settings import settings
from models.user import CurrentUser
from services.checkout_flow import CheckoutFlow, CheckoutState, InvalidCheckoutTransition
from utils.responses import success_response, error_response

logger = logging.getLogger(__name__)

checkout_router = APIRouter(tags=["checkout"])


async def get_api_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """HTTP client the checkout flow uses to reach the payments API."""
    async with httpx.AsyncClient(base_url=settings.api_base_url, timeout=settings.http_timeout_seconds) as client:
        yield client


@checkout_router.get("/pricing")
async def pricing():
    """Plan catalog for the pricing page."""
    return {
        "plans": [
            {
                "planId": plan.plan_id.value,
                "name": plan.name,
                "price": plan.price,
                "currency": plan.currency,
                "description": plan.description,
                "features": list(plan.features),
                "purchasable": plan.is_paid,
            }
            for plan in PLANS.values()
        ]
    }


@checkout_router.post("/pricing/{plan_id}/checkout")
async def start_checkout(
    plan_id: str,
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    api: httpx.AsyncClient = Depends(get_api_client),
):
    """Create an order for the plan and redirect the browser to the provider."""
    flow = CheckoutFlow(api, current_user, origin=str(request.base_url))
    try:
        approval_url = await flow.select_plan(plan_id)
    except (ValueError, InvalidCheckoutTransition) as e:
        return error_response(str(e), status=400)

    if flow.state != CheckoutState.AWAITING_APPROVAL or not approval_url:
        return error_response(flow.message, status=502, state=flow.state.value)

    return RedirectResponse(approval_url, status_code=303)


@checkout_router.get("/payment-success")
async def payment_success(
    request: Request,
    current_user: CurrentUser = Depends(get_current_user),
    api: httpx.AsyncClient = Depends(get_api_client),
):
    """Provider return route: reconcile the order named by ?token= and report the outcome."""
    flow = CheckoutFlow(api, current_user, origin=str(request.base_url))
    outcome = await flow.handle_return(request.query_params)
    status = 200 if outcome.state == CheckoutState.ACTIVATED else 400
    return success_response(outcome.to_dict(), status=status)
