from datetime import datetime
from decimal import Decimal
from typing import Self
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from subscribe.models.plan import MonthlyBehavior, PlanType


class PlanCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = None
    plan_type: PlanType = PlanType.MONTHLY
    plan_day_interval: int | None = Field(default=None, ge=1)
    plan_month_interval: int | None = Field(default=None, ge=1)
    plan_month_day: int | None = Field(default=None, ge=1, le=31)
    plan_monthly_behavior: MonthlyBehavior | None = None
    plan_year_interval: int | None = Field(default=None, ge=1)
    renewal_period: int | None = Field(default=None, ge=0)
    price: Decimal = Field(default=Decimal("0"), ge=0)
    setup_price: Decimal | None = Field(default=None, ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    is_custom_membership: bool = False
    membership_price: Decimal | None = Field(default=None, ge=0)
    trial_days: int | None = Field(default=None, ge=0)
    grace_days: int | None = Field(default=None, ge=0)

    @model_validator(mode="after")
    def validate_cadence_fields(self) -> Self:
        """Validate the interval fields the plan type relies on are present."""
        if self.plan_type == PlanType.DAILY and not self.plan_day_interval:
            raise ValueError("plan_day_interval is required for daily plans")
        if self.plan_type == PlanType.YEARLY and not self.plan_year_interval:
            raise ValueError("plan_year_interval is required for yearly plans")
        if self.plan_type == PlanType.MONTHLY:
            if self.plan_monthly_behavior is None:
                raise ValueError("plan_monthly_behavior is required for monthly plans")
            if self.plan_monthly_behavior != MonthlyBehavior.SIGNUP and not self.plan_month_day:
                msg = (
                    "plan_month_day is required for monthly behavior "
                    f"'{self.plan_monthly_behavior.value}'"
                )
                raise ValueError(msg)
        return self


class PlanUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    is_active: bool | None = None
    price: Decimal | None = Field(default=None, ge=0)
    setup_price: Decimal | None = Field(default=None, ge=0)
    is_custom_membership: bool | None = None
    membership_price: Decimal | None = Field(default=None, ge=0)
    trial_days: int | None = Field(default=None, ge=0)
    grace_days: int | None = Field(default=None, ge=0)
    renewal_period: int | None = Field(default=None, ge=0)


class PlanResponse(BaseModel):
    id: UUID
    code: str
    name: str
    description: str | None
    is_active: bool
    plan_type: PlanType
    plan_day_interval: int | None
    plan_month_interval: int | None
    plan_month_day: int | None
    plan_monthly_behavior: MonthlyBehavior | None
    plan_year_interval: int | None
    renewal_period: int | None
    price: Decimal
    setup_price: Decimal | None
    currency: str
    is_custom_membership: bool
    membership_price: Decimal | None
    trial_days: int | None
    grace_days: int | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PlanScheduleResponse(BaseModel):
    """Billing cycle preview for a plan at a reference instant."""

    reference_date: datetime
    period_start: datetime
    period_end: datetime | None
    days_until_billing: int | None
    days_in_cycle: int | None
    price: Decimal
    adjusted_price: Decimal
    description: str
