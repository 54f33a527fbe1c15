from subscribe.schemas.invoice import InvoiceResponse
from subscribe.schemas.plan import PlanCreate, PlanResponse, PlanScheduleResponse, PlanUpdate
from subscribe.schemas.service import (
    ServiceCancel,
    ServiceCreate,
    ServicePayment,
    ServiceResponse,
)

__all__ = [
    "InvoiceResponse",
    "PlanCreate",
    "PlanResponse",
    "PlanScheduleResponse",
    "PlanUpdate",
    "ServiceCancel",
    "ServiceCreate",
    "ServicePayment",
    "ServiceResponse",
]
