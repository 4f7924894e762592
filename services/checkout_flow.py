"""
Checkout Flow - drives the plan purchase journey against the payments API

idle -> awaiting_approval -> processing -> activated | failed
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Mapping, Optional

import httpx

from config.plans import get_plan
from models.user import CurrentUser

logger = logging.getLogger(__name__)

CREATE_ORDER_PATH = "/api/payments/create-order"
WEBHOOK_PATH = "/api/payments/webhook"

PAYMENT_START_ERROR = "Failed to initiate payment. Please try again."
PAYMENT_CONFIRM_ERROR = "We couldn't confirm your payment. Please choose your plan and try again."


class CheckoutState(str, Enum):
    IDLE = "idle"
    AWAITING_APPROVAL = "awaiting_approval"
    PROCESSING = "processing"
    ACTIVATED = "activated"
    FAILED = "failed"


class InvalidCheckoutTransition(RuntimeError):
    pass


@dataclass
class NextAction:
    label: str
    href: str


@dataclass
class CheckoutOutcome:
    state: CheckoutState
    message: str
    plan_name: Optional[str] = None
    actions: List[NextAction] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "state": self.state.value,
            "message": self.message,
            "plan_name": self.plan_name,
            "actions": [{"label": a.label, "href": a.href} for a in self.actions],
        }


class CheckoutFlow:
    """
    One purchase attempt for one user.

    Holds no state beyond this instance; after a page reload the flow is
    rebuilt from the return URL alone. Failed steps are never retried here,
    the user starts again from plan selection.
    """

    def __init__(self, api: httpx.AsyncClient, current_user: CurrentUser, origin: Optional[str] = None):
        """
        Args:
            api: Client whose base_url points at the payments API
            current_user: Injected authenticated user; its id is sent for activation
            origin: Public origin the provider should return the browser to
        """
        self.api = api
        self.current_user = current_user
        self.origin = origin
        self.state = CheckoutState.IDLE
        self.in_progress = False
        self.order_id: Optional[str] = None
        self.approval_url: Optional[str] = None
        self.message: Optional[str] = None

    def _headers(self) -> dict:
        headers = {}
        if self.current_user.access_token:
            headers["Authorization"] = f"Bearer {self.current_user.access_token}"
        if self.origin:
            headers["Origin"] = self.origin.rstrip("/")
        return headers

    def _transition(self, state: CheckoutState, message: Optional[str] = None) -> None:
        logger.info(f"Checkout for user {self.current_user.user_id}: {self.state.value} -> {state.value}")
        self.state = state
        self.message = message

    def _fail(self, message: str, plan_name: Optional[str] = None) -> CheckoutOutcome:
        self._transition(CheckoutState.FAILED, message)
        return CheckoutOutcome(
            state=self.state,
            message=message,
            plan_name=plan_name,
            actions=[NextAction("Back to Pricing", "/pricing")],
        )

    async def select_plan(self, plan_id: str) -> Optional[str]:
        """
        Create an order for the plan and return the provider approval URL.

        Returns None, leaving the flow in FAILED, when no URL could be obtained.
        A call made while a previous one is still in flight is ignored.

        Raises:
            ValueError: unknown plan, or a plan that needs no payment
            InvalidCheckoutTransition: the flow is already past plan selection
        """
        if self.in_progress:
            logger.warning(f"Ignoring plan selection for user {self.current_user.user_id}: checkout already in progress")
            return None
        if self.state not in (CheckoutState.IDLE, CheckoutState.FAILED):
            raise InvalidCheckoutTransition(f"Cannot select a plan while {self.state.value}")

        plan = get_plan(plan_id)
        if not plan.is_paid:
            raise ValueError(f"The {plan.name} plan does not require payment")

        self.in_progress = True
        try:
            response = await self.api.post(
                CREATE_ORDER_PATH,
                json={"plan": plan.plan_id.value, "amount": plan.price},
                headers=self._headers(),
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Payment error: {e}")
            self._fail(PAYMENT_START_ERROR, plan.name)
            return None
        finally:
            self.in_progress = False

        if not response.is_success or not data.get("approvalUrl"):
            logger.error(f"Payment error: create-order returned {response.status_code}: {data}")
            self._fail(PAYMENT_START_ERROR, plan.name)
            return None

        self.order_id = data.get("orderId")
        self.approval_url = data["approvalUrl"]
        self._transition(CheckoutState.AWAITING_APPROVAL)
        return self.approval_url

    async def handle_return(self, params: Mapping[str, str]) -> CheckoutOutcome:
        """
        Complete the purchase after the provider redirects back.

        Args:
            params: Query parameters of the return URL (token, plan_id, plan_name)
        """
        if self.state not in (CheckoutState.IDLE, CheckoutState.AWAITING_APPROVAL):
            raise InvalidCheckoutTransition(f"Cannot process a payment return while {self.state.value}")

        token = params.get("token")
        plan_id = params.get("plan_id")
        plan_name = params.get("plan_name")
        if not token or not plan_id or not plan_name:
            logger.warning(f"Payment return missing parameters for user {self.current_user.user_id}: {dict(params)}")
            return self._fail(PAYMENT_CONFIRM_ERROR, plan_name)

        self.order_id = token
        self._transition(CheckoutState.PROCESSING)
        self.in_progress = True
        try:
            response = await self.api.post(
                WEBHOOK_PATH,
                json={
                    "orderId": token,
                    "userId": self.current_user.user_id,
                    "planId": plan_id,
                    "planName": plan_name,
                },
                headers=self._headers(),
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"Payment confirmation error: {e}")
            return self._fail(PAYMENT_CONFIRM_ERROR, plan_name)
        finally:
            self.in_progress = False

        if not response.is_success or data.get("success") is not True:
            logger.error(f"Payment confirmation failed: {response.status_code}: {data}")
            return self._fail(PAYMENT_CONFIRM_ERROR, plan_name)

        message = f"Payment successful! Your {plan_name} plan is now active."
        self._transition(CheckoutState.ACTIVATED, message)
        return CheckoutOutcome(
            state=self.state,
            message=message,
            plan_name=plan_name,
            actions=[
                NextAction("Start Creating Proposals", "/"),
                NextAction("View Pricing", "/pricing"),
            ],
        )
