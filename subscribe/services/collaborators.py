"""Contracts the subscription engine relies on to persist and bill services."""

from abc import ABC, abstractmethod

from subscribe.models.invoice import Invoice
from subscribe.models.plan import Plan
from subscribe.models.service import Service


class ActivationCollaborator(ABC):
    """Applies status and period changes to a service.

    Each call either persists the whole change or raises ``CollaboratorFailure``.
    """

    @abstractmethod
    def get_plan(self, service: Service) -> Plan:
        """Return the plan the service is subscribed to."""
        pass  # pragma: no cover

    @abstractmethod
    def activate(self, service: Service) -> Service:
        """Move the service to active and compute its first period."""
        pass  # pragma: no cover

    @abstractmethod
    def renew(self, service: Service) -> Service:
        """Advance the service by one period and keep it active."""
        pass  # pragma: no cover

    @abstractmethod
    def start_grace(self, service: Service, reason: str) -> Service:
        """Put the service into its grace period."""
        pass  # pragma: no cover

    @abstractmethod
    def mark_past_due(self, service: Service, reason: str) -> Service:
        """Lapse the service after an unrecovered payment."""
        pass  # pragma: no cover

    @abstractmethod
    def cancel(self, service: Service, reason: str | None = None) -> Service:
        """End the service for good."""
        pass  # pragma: no cover


class InvoiceCollaborator(ABC):
    """Raises and collects renewal invoices, at most one per service period."""

    @abstractmethod
    def raise_renewal_invoice(self, service: Service) -> Invoice:
        """Return the invoice for the service's next period, creating it if needed."""
        pass  # pragma: no cover

    @abstractmethod
    def attempt_automatic_payment(self, invoice: Invoice, service: Service) -> bool:
        """Try to collect the invoice; False means the payment did not go through."""
        pass  # pragma: no cover
