from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, Integer, Numeric, String, Text, func

from subscribe.core.database import Base
from subscribe.models.shared import UUIDType, generate_uuid


class PlanType(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"
    LIFETIME = "lifetime"


class MonthlyBehavior(str, Enum):
    SIGNUP = "monthly_signup"
    PRORATE = "monthly_prorate"
    FREE = "monthly_free"
    NONE = "monthly_none"


class Plan(Base):
    __tablename__ = "plans"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    code = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    # Cadence
    plan_type = Column(String(20), nullable=False, default=PlanType.MONTHLY.value)
    plan_day_interval = Column(Integer, nullable=True)
    plan_month_interval = Column(Integer, nullable=True)
    plan_month_day = Column(Integer, nullable=True)
    plan_monthly_behavior = Column(String(30), nullable=True)
    plan_year_interval = Column(Integer, nullable=True)
    renewal_period = Column(Integer, nullable=True)

    # Pricing
    price = Column(Numeric(12, 4), nullable=False, default=0)
    setup_price = Column(Numeric(12, 4), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")

    # Membership overrides, only honoured when is_custom_membership is set
    is_custom_membership = Column(Boolean, nullable=False, default=False)
    membership_price = Column(Numeric(12, 4), nullable=True)
    trial_days = Column(Integer, nullable=True)
    grace_days = Column(Integer, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
