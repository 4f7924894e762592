"""
Subscription Service - reconciles completed PayPal orders into active subscriptions
"""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from config.plans import PLANS, Plan, PlanId
from crud.subscription import SubscriptionRepository
from database_models import Subscription
from models.payment import ActivationResult
from services.paypal_client import PayPalClient
from utils.errors import ConfigurationError, StoreWriteError, ValidationError

logger = logging.getLogger(__name__)

COMPLETED = "COMPLETED"
STATUS_ACTIVE = "active"


class SubscriptionService:
    """
    Service class for subscription activation and plan lookup.

    The provider is the only source of truth for payment status: whatever
    status a caller claims is ignored, and a subscription becomes active only
    after the order is fetched from PayPal and reads COMPLETED.
    """

    def __init__(self, db: AsyncSession, paypal: Optional[PayPalClient] = None):
        """
        Args:
            db: AsyncSession instance for database operations
            paypal: Client used to re-verify orders; only needed for activation
        """
        self.db = db
        self.paypal = paypal
        self.repo = SubscriptionRepository(db)

    @staticmethod
    def _validate(order_id, user_id, plan_id, plan_name) -> None:
        fields = {
            "orderId": order_id,
            "userId": user_id,
            "planId": plan_id,
            "planName": plan_name,
        }
        missing = [name for name, value in fields.items() if value is None or not str(value).strip()]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}", fields=missing)
        if plan_id not in {p.value for p in PlanId}:
            raise ValidationError(f"Unknown plan: {plan_id}", fields=["planId"])

    async def activate_subscription(
        self,
        order_id: Optional[str],
        user_id: Optional[str],
        plan_id: Optional[str],
        plan_name: Optional[str],
    ) -> ActivationResult:
        """
        Verify an order with PayPal and, if completed, upsert the user's active subscription.

        Safe to call repeatedly for the same order: the row is keyed by user_id.

        Returns:
            ActivationResult(success=True) once the subscription is active,
            ActivationResult(success=False) when the provider does not report COMPLETED
            for this exact order id

        Raises:
            ValidationError: a field is missing or the plan is unknown (no provider call made)
            ConfigurationError: PayPal credentials are missing
            UpstreamRequestError: the order lookup failed; nothing written
            StoreWriteError: the upsert failed; transaction rolled back
        """
        self._validate(order_id, user_id, plan_id, plan_name)
        if self.paypal is None:
            raise ConfigurationError("SubscriptionService needs a PayPal client to activate subscriptions")
        logger.info(
            f"Processing payment completion: order={order_id} user={user_id} plan={plan_id} ({plan_name})"
        )

        order = await self.paypal.get_order(order_id)
        if order.get("id") != order_id:
            logger.warning(f"Lookup for order {order_id} returned resource {order.get('id')}; subscription unchanged")
            return ActivationResult(success=False, message="Payment not completed")

        status = order.get("status")
        if status != COMPLETED:
            logger.warning(f"Order {order_id} not completed (status={status}); subscription unchanged")
            return ActivationResult(success=False, message="Payment not completed")

        try:
            subscription = await self.repo.upsert({
                "user_id": user_id,
                "plan_id": plan_id,
                "plan_name": plan_name,
                "status": STATUS_ACTIVE,
                "provider_order_reference": order_id,
            })
            await self.db.commit()
        except StoreWriteError:
            await self.db.rollback()
            logger.error(f"Error creating subscription for user {user_id}", exc_info=True)
            raise
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error committing subscription for user {user_id}: {e}", exc_info=True)
            raise StoreWriteError("Failed to save subscription") from e

        logger.info(f"Subscription activated: user={subscription.user_id} plan={subscription.plan_id}")
        return ActivationResult(success=True, message="Subscription activated")

    async def get_subscription(self, user_id: str) -> Optional[Subscription]:
        return await self.repo.get_by_user_id(user_id)

    async def get_active_plan(self, user_id: str) -> Plan:
        """
        Plan the user is currently entitled to; free unless an active paid subscription exists.
        """
        subscription = await self.repo.get_by_user_id(user_id)
        if subscription is None or subscription.status != STATUS_ACTIVE:
            return PLANS[PlanId.FREE]
        try:
            return PLANS[PlanId(subscription.plan_id)]
        except ValueError:
            logger.warning(f"Subscription for user {user_id} references unknown plan {subscription.plan_id}")
            return PLANS[PlanId.FREE]
