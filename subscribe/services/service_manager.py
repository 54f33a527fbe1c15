"""Service for persisting service status transitions and billing periods."""

import logging
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from subscribe.core.clock import Clock
from subscribe.core.config import Settings, settings
from subscribe.core.exceptions import CollaboratorFailure, InvalidStatusTransition
from subscribe.models.plan import Plan
from subscribe.models.service import Service, ServiceStatus, can_transition
from subscribe.models.shared import as_utc
from subscribe.repositories.plan_repository import PlanRepository
from subscribe.services import plan_terms
from subscribe.services.billing_cycle import BillingCycleCalculator
from subscribe.services.collaborators import ActivationCollaborator

logger = logging.getLogger(__name__)


class ServiceManager(ActivationCollaborator):
    """SQLAlchemy-backed activation collaborator.

    Every method validates the status change against ``ALLOWED_TRANSITIONS``
    and commits the status together with the period fields, or nothing.
    """

    def __init__(self, db: Session, clock: Clock, config: Settings | None = None):
        self.db = db
        self.clock = clock
        self.config = config or settings
        self.plan_repo = PlanRepository(db)
        self.calculator = BillingCycleCalculator(clock)

    def get_plan(self, service: Service) -> Plan:
        plan = self.plan_repo.get_by_id(UUID(str(service.plan_id)))
        if not plan:
            self.db.rollback()
            raise CollaboratorFailure(f"Plan {service.plan_id} not found for service {service.id}")
        return plan

    def create_service(self, code: str, plan: Plan) -> Service:
        """Create a service for a plan.

        The service starts in trial when the plan grants one, otherwise it is new
        and waits for its first payment.
        """
        now = self.clock.now()
        service = Service(
            code=code,
            plan_id=plan.id,
            price=plan.price,
            status=ServiceStatus.NEW.value,
            status_updated_at=now,
            count_renewal=0,
        )

        trial_days = plan_terms.get_trial_period(plan, self.config)
        if trial_days > 0:
            service.status = ServiceStatus.TRIAL.value  # type: ignore[assignment]
            service.status_reason = f"Trial period for {trial_days} days"  # type: ignore[assignment]
            service.current_period_start = now  # type: ignore[assignment]
            service.current_period_end = now + timedelta(days=trial_days)  # type: ignore[assignment]

        self.db.add(service)
        self._commit(service)
        logger.info("Created service %s on plan %s in status %s", code, plan.code, service.status)
        return service

    def activate(self, service: Service) -> Service:
        plan = self.get_plan(service)
        now = self.clock.now()
        previous = self._set_status(service, ServiceStatus.ACTIVE, "Service activated", now)

        reference = as_utc(service.delay_activated_at) or now  # type: ignore[arg-type]
        start = self.calculator.get_period_start_date(plan, reference)
        service.activated_at = now  # type: ignore[assignment]
        service.current_period_start = start  # type: ignore[assignment]
        service.current_period_end = self.calculator.get_period_end_date(plan, start)  # type: ignore[assignment]
        service.grace_ends_at = None  # type: ignore[assignment]

        self._commit(service)
        logger.info(
            "Service %s activated from %s, period %s - %s",
            service.id,
            previous.value,
            service.current_period_start,
            service.current_period_end,
        )
        return service

    def renew(self, service: Service) -> Service:
        plan = self.get_plan(service)
        now = self.clock.now()
        previous = self._set_status(service, ServiceStatus.ACTIVE, "Service renewed", now)

        start = as_utc(service.current_period_end) or now  # type: ignore[arg-type]
        service.current_period_start = start  # type: ignore[assignment]
        service.current_period_end = self.calculator.get_period_end_date(plan, start)  # type: ignore[assignment]
        service.count_renewal = int(service.count_renewal or 0) + 1  # type: ignore[assignment]
        service.grace_ends_at = None  # type: ignore[assignment]

        self._commit(service)
        logger.info(
            "Service %s renewed from %s, renewal %d ends %s",
            service.id,
            previous.value,
            service.count_renewal,
            service.current_period_end,
        )
        return service

    def start_grace(self, service: Service, reason: str) -> Service:
        plan = self.get_plan(service)
        now = self.clock.now()
        previous = self._set_status(service, ServiceStatus.GRACE, reason, now)

        # A repeated failure inside the grace window does not extend it
        if previous != ServiceStatus.GRACE or service.grace_ends_at is None:
            grace_days = plan_terms.get_grace_period(plan, self.config)
            service.grace_ends_at = now + timedelta(days=grace_days)  # type: ignore[assignment]

        self._commit(service)
        logger.info(
            "Service %s in grace until %s: %s", service.id, service.grace_ends_at, reason
        )
        return service

    def mark_past_due(self, service: Service, reason: str) -> Service:
        now = self.clock.now()
        self._set_status(service, ServiceStatus.PAST_DUE, reason, now)
        service.grace_ends_at = None  # type: ignore[assignment]

        self._commit(service)
        logger.info("Service %s is past due: %s", service.id, reason)
        return service

    def cancel(self, service: Service, reason: str | None = None) -> Service:
        now = self.clock.now()
        self._set_status(service, ServiceStatus.CANCELLED, reason or "Service cancelled", now)
        service.cancelled_at = now  # type: ignore[assignment]
        service.grace_ends_at = None  # type: ignore[assignment]

        self._commit(service)
        logger.info("Service %s cancelled", service.id)
        return service

    def _set_status(
        self, service: Service, target: ServiceStatus, reason: str, now: datetime
    ) -> ServiceStatus:
        current = ServiceStatus(service.status)
        if not can_transition(current, target):
            # Discard anything the caller staged on the service for this transition
            self.db.rollback()
            raise InvalidStatusTransition(current.value, target.value)

        service.status = target.value  # type: ignore[assignment]
        service.status_reason = reason  # type: ignore[assignment]
        service.status_updated_at = now  # type: ignore[assignment]
        return current

    def _commit(self, service: Service) -> None:
        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise CollaboratorFailure(f"Could not save service {service.code}: {exc}") from exc
        self.db.refresh(service)
