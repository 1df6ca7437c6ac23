"""Payment and subscription plan Pydantic schemas."""

from datetime import datetime
from decimal import Decimal
from typing import Literal

from pydantic import Field

from otakusensei.models import SubscriptionPlan
from otakusensei.schemas.common import APIResponse, CamelModel
from otakusensei.timeutil import as_utc

PlanType = Literal["monthly", "quarterly", "yearly"]


class InitiatePaymentRequest(CamelModel):
    plan_type: PlanType


class VerifyPaymentRequest(CamelModel):
    payment_id: str = Field(min_length=1)


class PlanIn(CamelModel):
    plan_type: PlanType
    price: Decimal = Field(gt=0, max_digits=10, decimal_places=2)
    duration_days: int = Field(ge=1)


class PlanOut(CamelModel):
    plan_type: str
    price: float
    duration_days: int
    updated_at: datetime | None = None

    @classmethod
    def from_plan(cls, plan: SubscriptionPlan) -> "PlanOut":
        return cls(
            plan_type=plan.plan_type,
            price=float(plan.price),
            duration_days=plan.duration_days,
            updated_at=as_utc(plan.updated_at),
        )


class PlanResponse(APIResponse):
    data: PlanOut


class PlanListResponse(APIResponse):
    data: list[PlanOut]


class InitiatePaymentResponse(APIResponse):
    client_secret: str | None
    payment_id: str
