"""Service for raising and collecting service invoices."""

import logging
from collections.abc import Callable
from datetime import datetime, timedelta
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from subscribe.core.clock import Clock
from subscribe.core.config import Settings, settings
from subscribe.core.exceptions import CollaboratorFailure
from subscribe.models.invoice import Invoice, InvoiceKind, InvoiceStatus
from subscribe.models.plan import MonthlyBehavior, Plan, PlanType
from subscribe.models.service import Service, ServiceStatus
from subscribe.models.shared import as_utc
from subscribe.repositories.invoice_repository import InvoiceRepository
from subscribe.repositories.plan_repository import PlanRepository
from subscribe.repositories.service_repository import ServiceRepository
from subscribe.services import plan_terms
from subscribe.services.billing_cycle import BillingCycleCalculator
from subscribe.services.collaborators import InvoiceCollaborator

logger = logging.getLogger(__name__)

# Charges an invoice against the customer's stored payment method. Returns
# False on a declined payment; gateway errors are raised as CollaboratorFailure.
PaymentHandler = Callable[[Invoice, Service], bool]

# Notified once per invoice when it becomes paid.
PaymentListener = Callable[[Invoice, Service], None]


class InvoiceManager(InvoiceCollaborator):
    """SQLAlchemy-backed invoice collaborator.

    Invoices are unique per (service, period start), so raising an invoice for a
    period that already has one returns the existing invoice.
    """

    def __init__(
        self,
        db: Session,
        clock: Clock,
        config: Settings | None = None,
        payment_handler: PaymentHandler | None = None,
    ):
        self.db = db
        self.clock = clock
        self.config = config or settings
        self.payment_handler = payment_handler
        self.invoice_repo = InvoiceRepository(db)
        self.plan_repo = PlanRepository(db)
        self.service_repo = ServiceRepository(db)
        self.calculator = BillingCycleCalculator(clock)
        self._payment_listeners: list[PaymentListener] = []

    def add_payment_listener(self, listener: PaymentListener) -> None:
        self._payment_listeners.append(listener)

    def _get_plan(self, service: Service) -> Plan:
        plan = self.plan_repo.get_by_id(UUID(str(service.plan_id)))
        if not plan:
            raise CollaboratorFailure(f"Plan {service.plan_id} not found for service {service.id}")
        return plan

    def _first_period_price(self, plan: Plan, reference: datetime) -> Decimal:
        # Free-days plans do not bill the partial period before the renewal day
        if (
            plan.plan_type == PlanType.MONTHLY.value
            and plan.plan_monthly_behavior == MonthlyBehavior.FREE.value
        ):
            return Decimal("0")
        return Decimal(self.calculator.adjust_price(plan, Decimal(plan.price or 0), reference))

    def _create(
        self,
        service: Service,
        plan: Plan,
        kind: InvoiceKind,
        period_start: datetime,
        amount: Decimal,
    ) -> Invoice:
        existing = self.invoice_repo.get_for_period(UUID(str(service.id)), period_start)
        if existing:
            logger.debug(
                "Invoice %s already raised for service %s period %s",
                existing.invoice_number,
                service.id,
                period_start,
            )
            return existing

        now = self.clock.now()
        invoice = self.invoice_repo.create(
            service_id=UUID(str(service.id)),
            kind=kind,
            period_start=period_start,
            period_end=self.calculator.get_period_end_date(plan, period_start),
            subtotal=amount,
            currency=str(plan.currency or self.config.DEFAULT_CURRENCY),
            issued_at=now,
            due_date=now + timedelta(days=self.config.INVOICE_DUE_DAYS),
        )
        logger.info(
            "Raised %s invoice %s for service %s: %s %s",
            kind.value,
            invoice.invoice_number,
            service.id,
            invoice.total,
            invoice.currency,
        )
        return invoice

    def raise_first_invoice(self, service: Service) -> Invoice:
        """Raise the invoice for a service's first paid period.

        Includes the prorated plan price, the setup price and the membership price.
        A service in trial is billed from the end of its trial.
        """
        existing = self.invoice_repo.get_first_for_service(UUID(str(service.id)))
        if existing:
            return existing

        plan = self._get_plan(service)
        reference = self.clock.now()
        if service.status == ServiceStatus.TRIAL.value and service.current_period_end:
            reference = as_utc(service.current_period_end)  # type: ignore[assignment]

        period_start = self.calculator.get_period_start_date(plan, reference)
        amount = (
            self._first_period_price(plan, reference)
            + plan_terms.get_setup_price(plan)
            + plan_terms.get_membership_price(plan, self.config)
        )
        return self._create(service, plan, InvoiceKind.FIRST, period_start, amount)

    def raise_renewal_invoice(self, service: Service) -> Invoice:
        # A service that never activated still owes its first invoice
        if not service.count_renewal:
            return self.raise_first_invoice(service)

        plan = self._get_plan(service)
        period_start = as_utc(service.current_period_end) or self.clock.now()  # type: ignore[arg-type]
        return self._create(
            service, plan, InvoiceKind.RENEWAL, period_start, Decimal(plan.price or 0)
        )

    def attempt_automatic_payment(self, invoice: Invoice, service: Service) -> bool:
        if invoice.status == InvoiceStatus.PAID.value:
            return True
        if invoice.status == InvoiceStatus.VOIDED.value:
            return False

        if Decimal(invoice.total or 0) <= 0:
            self.mark_paid(invoice, service)
            return True

        if self.payment_handler is None:
            logger.info(
                "No automatic payment method, invoice %s left unpaid", invoice.invoice_number
            )
            return False

        try:
            paid = self.payment_handler(invoice, service)
        except CollaboratorFailure as exc:
            logger.warning("Automatic payment failed for %s: %s", invoice.invoice_number, exc)
            return False

        if not paid:
            logger.info("Automatic payment declined for invoice %s", invoice.invoice_number)
            return False

        self.mark_paid(invoice, service)
        return True

    def mark_paid(self, invoice: Invoice, service: Service | None = None) -> Invoice:
        """Mark an invoice paid and notify payment listeners.

        Paying an invoice that is already paid is a no-op.
        """
        if invoice.status == InvoiceStatus.PAID.value:
            return invoice
        if invoice.status == InvoiceStatus.VOIDED.value:
            raise ValueError(f"Invoice {invoice.invoice_number} is voided")

        invoice = self.invoice_repo.mark_paid(invoice, self.clock.now())
        logger.info("Invoice %s paid", invoice.invoice_number)

        if service is None:
            service = self.service_repo.get_by_id(UUID(str(invoice.service_id)))
        if service is None:
            logger.warning("Service %s not found for paid invoice", invoice.service_id)
            return invoice

        for listener in self._payment_listeners:
            listener(invoice, service)
        return invoice
