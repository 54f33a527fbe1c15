"""Renewal state machine for subscribed services.

Two events drive a service through its statuses:

- a payment is received for one of its invoices (``receive_payment``)
- its current period runs out (``attempt_renew_service``)

What a payment does depends only on the service's current status, see
``SubscriptionEngine._payment_handlers``. Which status changes are legal at all
is fixed by ``ALLOWED_TRANSITIONS`` and enforced by the activation collaborator.
"""

import logging
from collections.abc import Callable

from sqlalchemy.orm import Session

from subscribe.core.clock import Clock
from subscribe.core.config import Settings, settings
from subscribe.models.invoice import Invoice
from subscribe.models.service import Service, ServiceStatus
from subscribe.models.shared import as_utc
from subscribe.services import plan_terms
from subscribe.services.collaborators import ActivationCollaborator, InvoiceCollaborator
from subscribe.services.invoice_manager import InvoiceManager, PaymentHandler
from subscribe.services.service_manager import ServiceManager

logger = logging.getLogger(__name__)

PAYMENT_FAILED_REASON = "Automatic payment failed"
GRACE_EXPIRED_REASON = "Grace period expired"
RENEWAL_LIMIT_REASON = "Renewal limit reached"


class SubscriptionEngine:
    """Moves services between statuses in response to payments and period ends.

    The engine holds no state of its own. Callers must not run two transitions
    for the same service concurrently.
    """

    def __init__(
        self,
        services: ActivationCollaborator,
        invoices: InvoiceCollaborator,
        clock: Clock,
        config: Settings | None = None,
    ):
        self.services = services
        self.invoices = invoices
        self.clock = clock
        self.config = config or settings
        self._payment_handlers: dict[ServiceStatus, Callable[[Service], None]] = {
            ServiceStatus.NEW: self._activate_on_payment,
            ServiceStatus.TRIAL: self._activate_on_payment,
            ServiceStatus.ACTIVE: self._renew_on_payment,
            ServiceStatus.GRACE: self._catch_up_on_payment,
            ServiceStatus.PAST_DUE: self._catch_up_on_payment,
        }

    #
    # Hooks
    #

    def invoice_after_payment(self, invoice: Invoice, service: Service | None) -> None:
        """Payment listener: route a paid invoice to the service it bills."""
        if service is None or str(invoice.service_id) != str(service.id):
            return
        self.receive_payment(service, invoice)

    #
    # Services
    #

    def has_service_period_ended(self, service: Service) -> bool:
        period_end = as_utc(service.current_period_end)  # type: ignore[arg-type]
        return period_end is not None and period_end <= self.clock.now()

    def receive_payment(self, service: Service, invoice: Invoice | None = None) -> None:
        """Apply a received payment to the service.

        - new or trial: activate the first period
        - active: renew for another period
        - grace or past due: renew, then catch up any periods that have also ended
        - cancelled: ignored
        """
        status = ServiceStatus(service.status)
        handler = self._payment_handlers.get(status)
        if handler is None:
            logger.info(
                "Ignoring payment %s for service %s in status %s",
                invoice.invoice_number if invoice is not None else "-",
                service.id,
                status.value,
            )
            return
        handler(service)

    def attempt_renew_service(self, service: Service) -> Invoice | None:
        """Called at the end of a service period.

        Raises an invoice, if not existing already, and tries to pay it. When
        the payment fails the service enters its grace period, or becomes past
        due when the plan has none. A service that has used up its plan's
        renewal periods is cancelled instead.

        Returns:
            The renewal invoice, or None when the service is not due for renewal.
        """
        status = ServiceStatus(service.status)
        if status == ServiceStatus.CANCELLED:
            return None

        if not self.has_service_period_ended(service):
            logger.debug("Service %s period has not ended, nothing to renew", service.id)
            return None

        plan = self.services.get_plan(service)
        if not plan_terms.is_renewable(plan):
            return None

        # A fixed-term service ends with its last paid period
        if plan_terms.has_reached_renewal_limit(plan, service):
            logger.info(
                "Service %s reached the renewal limit of %s periods", service.id, plan.renewal_period
            )
            self.services.cancel(service, RENEWAL_LIMIT_REASON)
            return None

        invoice = self.invoices.raise_renewal_invoice(service)

        if self.invoices.attempt_automatic_payment(invoice, service):
            return invoice

        if plan_terms.has_grace_period(plan, self.config) and status != ServiceStatus.PAST_DUE:
            self.services.start_grace(service, PAYMENT_FAILED_REASON)
        else:
            self.services.mark_past_due(service, PAYMENT_FAILED_REASON)
        return invoice

    def expire_grace_period(self, service: Service) -> bool:
        """Lapse a service whose grace period has run out.

        Returns:
            True if the service was moved to past due.
        """
        if service.status != ServiceStatus.GRACE.value:
            return False
        grace_ends_at = as_utc(service.grace_ends_at)  # type: ignore[arg-type]
        if grace_ends_at is None or grace_ends_at > self.clock.now():
            return False
        self.services.mark_past_due(service, GRACE_EXPIRED_REASON)
        return True

    #
    # Payment handlers
    #

    def _activate_on_payment(self, service: Service) -> None:
        plan = self.services.get_plan(service)

        # Include the trial as part of the first period
        if service.status == ServiceStatus.TRIAL.value and plan_terms.is_trial_inclusive(
            plan, self.config
        ):
            service.delay_activated_at = service.current_period_end  # type: ignore[assignment]

        service.count_renewal = 1  # type: ignore[assignment]
        self.services.activate(service)

    def _renew_on_payment(self, service: Service) -> None:
        self.services.renew(service)

    def _catch_up_on_payment(self, service: Service) -> None:
        self.services.renew(service)

        # The service may have been delinquent for several periods
        for _ in range(self.config.RENEWAL_CATCH_UP_LIMIT):
            if not self.has_service_period_ended(service):
                return

            period_end = as_utc(service.current_period_end)  # type: ignore[arg-type]
            self.attempt_renew_service(service)

            renewed = (
                service.status == ServiceStatus.ACTIVE.value
                and as_utc(service.current_period_end) != period_end  # type: ignore[arg-type]
            )
            if not renewed:
                return

        if self.has_service_period_ended(service):
            logger.warning(
                "Service %s still behind after %d catch-up renewals",
                service.id,
                self.config.RENEWAL_CATCH_UP_LIMIT,
            )


def build_subscription_engine(
    db: Session,
    clock: Clock,
    config: Settings | None = None,
    payment_handler: PaymentHandler | None = None,
    invoices: InvoiceManager | None = None,
) -> SubscriptionEngine:
    """Wire the engine to the database-backed collaborators.

    The engine is registered as a payment listener on the invoice manager, so
    every invoice it marks paid is applied to its service. Pass ``invoices`` to
    keep a handle on that manager.
    """
    if invoices is None:
        invoices = InvoiceManager(db, clock, config=config, payment_handler=payment_handler)
    engine = SubscriptionEngine(ServiceManager(db, clock, config=config), invoices, clock, config)
    invoices.add_payment_listener(engine.invoice_after_payment)
    return engine

