"""Billing cycle calculation for plan cadences.

Every plan maps onto exactly one cadence. Monthly plans choose one of four
renewal behaviors:

- signup: renew on the signup day-of-month every N months
- prorate: renew on a fixed day-of-month and bill the partial first period
- free: renew on a fixed day-of-month, the partial first period is free
- none: do not start the subscription until the fixed day-of-month

A fixed day-of-month larger than the month it lands in is clamped to the
last day of that month; it never rolls over into the following month.
"""

import calendar as cal
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from subscribe.core.clock import Clock
from subscribe.core.exceptions import InvalidPlanConfiguration
from subscribe.models.plan import MonthlyBehavior, PlanType

CENTS = Decimal("0.01")


def check_date(day: int, month: int, year: int) -> int:
    """Return the last valid day of the month that is not after ``day``."""
    # Every month has at least 28 days
    if day <= 28:
        return day
    return min(day, cal.monthrange(year, month)[1])


def _shift_month(year: int, month: int, months: int) -> tuple[int, int]:
    month = month - 1 + months
    return year + month // 12, month % 12 + 1


def _month_anchor(dt: datetime, months: int, day: int) -> datetime:
    """Move ``dt`` by ``months`` and pin it to ``day``, clamped to that month."""
    year, month = _shift_month(dt.year, dt.month, months)
    return dt.replace(year=year, month=month, day=check_date(day, month, year))


def _add_months(dt: datetime, months: int) -> datetime:
    """Add months to a datetime, clamping to last day of month."""
    return _month_anchor(dt, months, dt.day)


def _days_in_month(dt: datetime) -> int:
    return cal.monthrange(dt.year, dt.month)[1]


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


class Cadence(ABC):
    """How often, and on what date, a plan renews."""

    def period_start(self, current: datetime) -> datetime:
        return current

    @abstractmethod
    def period_end(self, start: datetime) -> datetime | None:
        """End of the period beginning at ``start``; None when it never ends."""

    def days_until_billing(self, current: datetime) -> int | None:
        return None

    @abstractmethod
    def days_in_cycle(self, current: datetime) -> int | None:
        """Length of the cycle ``current`` falls in."""

    def adjust_price(self, original_price: Any, current: datetime) -> Any:
        return original_price


@dataclass(frozen=True)
class DailyCadence(Cadence):
    interval: int

    def period_end(self, start: datetime) -> datetime:
        return start + timedelta(days=self.interval)

    def days_in_cycle(self, current: datetime) -> int:
        return self.interval


@dataclass(frozen=True)
class YearlyCadence(Cadence):
    interval: int

    def period_end(self, start: datetime) -> datetime:
        # Feb 29 lands on Feb 28 in a common year
        return _add_months(start, 12 * self.interval)

    def days_in_cycle(self, current: datetime) -> int:
        return self.interval


@dataclass(frozen=True)
class LifetimeCadence(Cadence):
    def period_end(self, start: datetime) -> None:
        return None

    def days_in_cycle(self, current: datetime) -> None:
        return None


@dataclass(frozen=True)
class MonthlyCadence(Cadence):
    """Shared arithmetic for monthly plans anchored to a day-of-month."""

    interval: int
    month_day: int

    def anchor_day(self, current: datetime) -> int:
        return check_date(self.month_day, current.month, current.year)

    def next_anchor(self, current: datetime) -> datetime:
        return _month_anchor(current, 1, self.month_day)

    def days_until_billing(self, current: datetime) -> int | None:
        end_day = self.anchor_day(current)

        if current.day == end_day:
            return 0

        if current.day < end_day:
            return end_day - current.day

        return (self.next_anchor(current) - current).days

    def days_in_cycle(self, current: datetime) -> int | None:
        end_day = self.anchor_day(current)

        if current.day == end_day:
            return 0

        # Before the anchor day the cycle started last month
        if current.day < end_day:
            current = _add_months(current, -1)

        return _days_in_month(current)


class SignupMonthlyCadence(MonthlyCadence):
    """Renews on the signup day-of-month; there is no fixed anchor day."""

    def period_end(self, start: datetime) -> datetime:
        return _add_months(start, self.interval)

    def days_until_billing(self, current: datetime) -> None:
        return None

    def days_in_cycle(self, current: datetime) -> None:
        return None


class ProrateMonthlyCadence(MonthlyCadence):
    def period_end(self, start: datetime) -> datetime:
        end_day = self.anchor_day(start)

        # Renews later this month
        if start.day < end_day:
            return start.replace(day=end_day)

        # On the anchor day, or already past it
        return self.next_anchor(start)

    def adjust_price(self, original_price: Any, current: datetime) -> Any:
        billable_days = self.days_until_billing(current)
        if not billable_days or billable_days <= 0:
            return original_price

        total_days = self.days_in_cycle(current)
        if not total_days or total_days <= 0:
            return original_price

        prorated = _to_decimal(original_price) * billable_days / total_days
        return prorated.quantize(CENTS, rounding=ROUND_HALF_UP)


class FreeMonthlyCadence(MonthlyCadence):
    def period_end(self, start: datetime) -> datetime:
        return self.next_anchor(start)


class NoStartMonthlyCadence(FreeMonthlyCadence):
    def period_start(self, current: datetime) -> datetime:
        start_day = self.anchor_day(current)

        if current.day <= start_day:
            return current.replace(day=start_day)

        return self.next_anchor(current)


_MONTHLY_CADENCES: dict[MonthlyBehavior, type[MonthlyCadence]] = {
    MonthlyBehavior.SIGNUP: SignupMonthlyCadence,
    MonthlyBehavior.PRORATE: ProrateMonthlyCadence,
    MonthlyBehavior.FREE: FreeMonthlyCadence,
    MonthlyBehavior.NONE: NoStartMonthlyCadence,
}


def _require_positive(value: int | None, field: str) -> int:
    if value is None or int(value) < 1:
        raise InvalidPlanConfiguration(f"{field} must be a positive integer, got {value!r}")
    return int(value)


def cadence_for(plan: Any) -> Cadence:
    """Build the cadence described by a plan's configuration.

    Raises:
        InvalidPlanConfiguration: The plan type or monthly behavior is unknown,
            or a required interval/day is missing.
    """
    try:
        plan_type = PlanType(plan.plan_type)
    except ValueError:
        raise InvalidPlanConfiguration(f"Unknown plan type: {plan.plan_type}") from None

    if plan_type == PlanType.DAILY:
        return DailyCadence(_require_positive(plan.plan_day_interval, "plan_day_interval"))

    if plan_type == PlanType.YEARLY:
        return YearlyCadence(_require_positive(plan.plan_year_interval, "plan_year_interval"))

    if plan_type == PlanType.LIFETIME:
        return LifetimeCadence()

    try:
        behavior = MonthlyBehavior(plan.plan_monthly_behavior)
    except ValueError:
        raise InvalidPlanConfiguration(
            f"Unknown monthly behavior: {plan.plan_monthly_behavior}"
        ) from None

    interval = _require_positive(plan.plan_month_interval or 1, "plan_month_interval")
    if behavior == MonthlyBehavior.SIGNUP:
        month_day = plan.plan_month_day or 1
    else:
        month_day = _require_positive(plan.plan_month_day, "plan_month_day")
        if month_day > 31:
            raise InvalidPlanConfiguration(f"plan_month_day must be 1-31, got {month_day}")

    return _MONTHLY_CADENCES[behavior](interval=interval, month_day=month_day)


class BillingCycleCalculator:
    """Period dates, cycle lengths and proration for a plan.

    Stateless apart from the clock, which only supplies the reference instant
    when a caller does not pass one.
    """

    def __init__(self, clock: Clock | None = None):
        self.clock = clock or Clock()

    def _reference(self, value: datetime | None) -> datetime:
        return value if value is not None else self.clock.now()

    def get_period_start_date(self, plan: Any, current: datetime | None = None) -> datetime:
        """Get the instant a period bought at ``current`` starts.

        Only monthly "none" plans move the start, forward to the plan's day-of-month.
        """
        return cadence_for(plan).period_start(self._reference(current))

    def get_period_end_date(self, plan: Any, start: datetime | None = None) -> datetime | None:
        """Get the end of the period starting at ``start``.

        Returns:
            The period end, or None for lifetime plans.
        """
        return cadence_for(plan).period_end(self._reference(start))

    def days_until_billing(self, plan: Any, current: datetime | None = None) -> int | None:
        """Get the number of days until the plan's next billing day.

        Returns None when the plan has no fixed billing day (lifetime, daily,
        yearly and signup-date monthly plans).
        """
        return cadence_for(plan).days_until_billing(self._reference(current))

    def days_in_cycle(self, plan: Any, current: datetime | None = None) -> int | None:
        """Get how many days are in the billing cycle containing ``current``.

        - daily: day interval
        - yearly: year interval
        - monthly: days in last month if the billing day is still ahead,
          or the days in the current month if it has passed
        """
        return cadence_for(plan).days_in_cycle(self._reference(current))

    def adjust_price(
        self, plan: Any, original_price: Any, current: datetime | None = None
    ) -> Any:
        """Prorate a price for the part of the cycle left at ``current``.

        Only prorated monthly plans are adjusted; on the billing day, or when the
        cycle length is unknown, the original price is returned unchanged.

        Returns:
            The prorated price rounded half-up to 2 decimal places.
        """
        return cadence_for(plan).adjust_price(original_price, self._reference(current))
