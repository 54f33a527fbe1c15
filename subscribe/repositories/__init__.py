from subscribe.repositories.invoice_repository import InvoiceRepository
from subscribe.repositories.plan_repository import PlanRepository
from subscribe.repositories.service_repository import ServiceRepository

__all__ = [
    "InvoiceRepository",
    "PlanRepository",
    "ServiceRepository",
]
