"""Commercial terms of a plan: trial, grace, setup and membership pricing.

Trial days, grace days and the membership price come from the plan only when
it is a custom membership; otherwise the global defaults in settings apply.
"""

from decimal import Decimal
from typing import Any

from subscribe.core.config import Settings, settings
from subscribe.models.plan import MonthlyBehavior, PlanType


def _config(config: Settings | None) -> Settings:
    return config if config is not None else settings


def _plural(word: str, count: int) -> str:
    return word if count == 1 else f"{word}s"


def _ordinal(number: int) -> str:
    if 10 <= number % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(number % 10, "th")
    return f"{number}{suffix}"


def get_trial_period(plan: Any, config: Settings | None = None) -> int:
    if plan.is_custom_membership:
        return int(plan.trial_days or 0)
    return _config(config).DEFAULT_TRIAL_DAYS


def has_trial_period(plan: Any, config: Settings | None = None) -> bool:
    return get_trial_period(plan, config) > 0


def get_grace_period(plan: Any, config: Settings | None = None) -> int:
    if plan.is_custom_membership:
        return int(plan.grace_days or 0)
    return _config(config).DEFAULT_GRACE_DAYS


def has_grace_period(plan: Any, config: Settings | None = None) -> bool:
    return get_grace_period(plan, config) > 0


def get_membership_price(plan: Any, config: Settings | None = None) -> Decimal:
    if plan.is_custom_membership:
        return Decimal(plan.membership_price or 0)
    return Decimal(_config(config).DEFAULT_MEMBERSHIP_PRICE)


def has_membership_price(plan: Any, config: Settings | None = None) -> bool:
    return get_membership_price(plan, config) > 0


def get_setup_price(plan: Any) -> Decimal:
    return Decimal(plan.setup_price or 0)


def has_setup_price(plan: Any) -> bool:
    return get_setup_price(plan) > 0


def get_total(plan: Any) -> Decimal:
    """Price of the first period including the setup fee."""
    return Decimal(plan.price or 0) + get_setup_price(plan)


def is_free(plan: Any) -> bool:
    return Decimal(plan.price or 0) == 0


def is_renewable(plan: Any) -> bool:
    return plan.plan_type != PlanType.LIFETIME.value


def is_trial_inclusive(plan: Any, config: Settings | None = None) -> bool:
    """Whether the trial counts as part of the first paid period.

    Prorated monthly plans are always trial inclusive.
    """
    if (
        plan.plan_type == PlanType.MONTHLY.value
        and plan.plan_monthly_behavior == MonthlyBehavior.PRORATE.value
    ):
        return True
    return _config(config).IS_TRIAL_INCLUSIVE


def has_reached_renewal_limit(plan: Any, service: Any) -> bool:
    """A plan with a renewal period stops renewing after that many periods."""
    if not plan.renewal_period:
        return False
    return int(service.count_renewal or 0) >= int(plan.renewal_period)


def get_switch_price(plan: Any, service: Any) -> Decimal:
    """Price to switch a service onto this plan."""
    return max(Decimal(plan.price or 0) - Decimal(service.price or 0), Decimal("0"))


def is_upgrade(plan: Any, service: Any) -> bool:
    return Decimal(plan.price or 0) > Decimal(service.price or 0)


def is_downgrade(plan: Any, service: Any) -> bool:
    return Decimal(service.price or 0) > Decimal(plan.price or 0)


def describe_plan(plan: Any, config: Settings | None = None) -> str:
    """Human readable summary of a plan's cadence, trial and grace terms."""
    message = ""

    trial_days = get_trial_period(plan, config)
    if trial_days > 0:
        message += f"Trial period for {trial_days} {_plural('day', trial_days)} then "

    if plan.plan_type == PlanType.DAILY.value:
        interval = plan.plan_day_interval or 1
        message += f"Renew every {interval} days" if interval > 1 else "Renew every day"
    elif plan.plan_type == PlanType.MONTHLY.value:
        behavior = plan.plan_monthly_behavior
        if behavior == MonthlyBehavior.SIGNUP.value:
            interval = plan.plan_month_interval or 1
            every = f"{interval} months" if interval > 1 else "month"
            message += f"Renew every {every} based on the signup date"
        elif behavior == MonthlyBehavior.PRORATE.value:
            message += (
                f"Renew on the {_ordinal(plan.plan_month_day)} of the month"
                " and prorate billing for used time"
            )
        elif behavior == MonthlyBehavior.FREE.value:
            message += (
                f"Renew on the {_ordinal(plan.plan_month_day)} of the month"
                " and do not bill until the renewal date"
            )
        elif behavior == MonthlyBehavior.NONE.value:
            message += (
                f"Renew on the {_ordinal(plan.plan_month_day)} of the month"
                " and do not start the subscription until the renewal date"
            )
    elif plan.plan_type == PlanType.YEARLY.value:
        interval = plan.plan_year_interval or 1
        message += f"Renew every {interval} years" if interval > 1 else "Renew every year"
    elif plan.plan_type == PlanType.LIFETIME.value:
        message += "Never renew (lifetime membership)"

    if is_renewable(plan) and plan.renewal_period:
        message += f" for {plan.renewal_period} renewal periods"

    grace_days = get_grace_period(plan, config)
    if grace_days > 0:
        message += f" and Grace period for {grace_days} {_plural('day', grace_days)}"

    return message
