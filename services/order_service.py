"""
Order Service - creates PayPal checkout orders for plan purchases
"""

import logging
from decimal import Decimal
from urllib.parse import urlencode

from config.plans import CURRENCY, PlanId, get_plan
from config.settings import settings
from models.payment import OrderResult
from services.paypal_client import PayPalClient, find_link
from utils.errors import UpstreamRequestError

logger = logging.getLogger(__name__)

SUCCESS_ROUTE = "/payment-success"
CANCEL_ROUTE = "/pricing"


class OrderService:
    """
    Builds the order payload for a plan and hands back the approval redirect.
    Nothing is persisted locally; the provider-side order is the only resource created.
    """

    def __init__(self, paypal: PayPalClient, brand_name: str = None):
        self.paypal = paypal
        self.brand_name = brand_name or settings.brand_name

    def build_order_payload(self, plan_id: PlanId, amount: str, origin: str) -> dict:
        """
        Orders v2 request body for a single capture-intent purchase unit.

        The provider appends ?token=<order id> to return_url; plan context rides
        along in the same query string so the success route can reconcile.
        """
        plan_id = PlanId(plan_id).value
        plan_name = get_plan(plan_id).name
        origin = origin.rstrip("/")
        return_query = urlencode({"plan_id": plan_id, "plan_name": plan_name})
        return {
            "intent": "CAPTURE",
            "purchase_units": [
                {
                    "amount": {
                        "currency_code": CURRENCY,
                        "value": amount,
                    },
                    "description": f"{plan_name} Plan Subscription",
                }
            ],
            "application_context": {
                "return_url": f"{origin}{SUCCESS_ROUTE}?{return_query}",
                "cancel_url": f"{origin}{CANCEL_ROUTE}",
                "brand_name": self.brand_name,
                "user_action": "PAY_NOW",
            },
        }

    async def create_order(self, plan_id: PlanId, amount: str, origin: str) -> OrderResult:
        """
        Create a provider order and return its id, approval URL and status.

        Args:
            plan_id: Plan being purchased
            amount: Positive decimal string charged in USD
            origin: Caller origin the provider redirects back to

        Returns:
            OrderResult; approval_url is None when the provider sent no approve link

        Raises:
            ConfigurationError: PayPal credentials are missing
            UpstreamRequestError: token exchange or order creation failed
        """
        logger.info(f"Creating PayPal order for plan: {PlanId(plan_id).value} amount: {amount}")

        # TODO: reject amounts that differ from the catalog price once server-side price enforcement is confirmed
        catalog_price = get_plan(plan_id).price
        if Decimal(amount) != Decimal(catalog_price):
            logger.warning(
                f"Order amount {amount} differs from catalog price {catalog_price} for plan {PlanId(plan_id).value}"
            )

        order = await self.paypal.create_order(self.build_order_payload(plan_id, amount, origin))
        if not order.get("id"):
            logger.error(f"PayPal order response had no id: {order}")
            raise UpstreamRequestError("PayPal order response did not include an id")

        approval_url = find_link(order, "approve")
        if not approval_url:
            logger.warning(f"PayPal order {order.get('id')} returned no approve link")

        return OrderResult(
            order_id=order.get("id"),
            approval_url=approval_url,
            status=order.get("status") or "UNKNOWN",
        )
