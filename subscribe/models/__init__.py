from subscribe.models.invoice import Invoice, InvoiceKind, InvoiceStatus
from subscribe.models.plan import MonthlyBehavior, Plan, PlanType
from subscribe.models.service import ALLOWED_TRANSITIONS, Service, ServiceStatus

__all__ = [
    "ALLOWED_TRANSITIONS",
    "Invoice",
    "InvoiceKind",
    "InvoiceStatus",
    "MonthlyBehavior",
    "Plan",
    "PlanType",
    "Service",
    "ServiceStatus",
]
