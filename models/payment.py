import re
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from config.plans import PlanId

_AMOUNT_PATTERN = re.compile(r"^\d+(\.\d{1,2})?$")


class CreateOrderRequest(BaseModel):
    plan: PlanId
    amount: str = Field(..., description="Positive decimal string, e.g. 29.00")

    @field_validator("amount")
    @classmethod
    def amount_must_be_positive_decimal(cls, value: str) -> str:
        value = value.strip()
        if not _AMOUNT_PATTERN.match(value) or Decimal(value) <= 0:
            raise ValueError("amount must be a positive decimal string")
        return value


class OrderResult(BaseModel):
    order_id: str = Field(..., alias="orderId")
    approval_url: Optional[str] = Field(None, alias="approvalUrl")
    status: str

    model_config = {"populate_by_name": True}


class WebhookRequest(BaseModel):
    # All optional here so missing fields reach the service as a ValidationError
    order_id: Optional[str] = Field(None, alias="orderId")
    user_id: Optional[str] = Field(None, alias="userId")
    plan_id: Optional[str] = Field(None, alias="planId")
    plan_name: Optional[str] = Field(None, alias="planName")

    model_config = {"populate_by_name": True}


class ActivationResult(BaseModel):
    success: bool
    message: str
