"""
Static plan catalog. Prices are monthly and charged in USD.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional, Tuple

CURRENCY = "USD"


class PlanId(str, Enum):
    FREE = "free"
    PRO = "pro"
    ENTERPRISE = "enterprise"


@dataclass(frozen=True)
class Plan:
    plan_id: PlanId
    name: str
    price: str
    description: str
    features: Tuple[str, ...] = field(default_factory=tuple)
    # None means unlimited
    monthly_proposal_quota: Optional[int] = None
    export_formats: Tuple[str, ...] = ("pdf",)
    currency: str = CURRENCY

    @property
    def is_paid(self) -> bool:
        return Decimal(self.price) > 0


PLANS = {
    PlanId.FREE: Plan(
        plan_id=PlanId.FREE,
        name="Free",
        price="0.00",
        description="Perfect for trying out our platform",
        features=(
            "3 proposals per month",
            "Basic emotional analysis",
            "Standard templates",
            "Email support",
            "PDF export",
        ),
        monthly_proposal_quota=3,
        export_formats=("pdf",),
    ),
    PlanId.PRO: Plan(
        plan_id=PlanId.PRO,
        name="Pro",
        price="29.00",
        description="For professionals who need more",
        features=(
            "Unlimited proposals",
            "Advanced emotional analysis",
            "All premium templates",
            "Priority email support",
            "Multi-format export (PDF, DOCX, HTML)",
            "Custom branding",
            "Analytics dashboard",
        ),
        export_formats=("pdf", "docx", "html"),
    ),
    PlanId.ENTERPRISE: Plan(
        plan_id=PlanId.ENTERPRISE,
        name="Enterprise",
        price="99.00",
        description="For teams and agencies",
        features=(
            "Everything in Pro",
            "Team collaboration (up to 10 users)",
            "API access",
            "White-label solutions",
            "Dedicated account manager",
            "Custom integrations",
            "SLA guarantee",
            "Advanced security features",
        ),
        export_formats=("pdf", "docx", "html"),
    ),
}


def get_plan(plan_id) -> Plan:
    """Look up a plan by id or raw string. Raises ValueError for unknown ids."""
    return PLANS[PlanId(plan_id)]

