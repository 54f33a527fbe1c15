from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel

from subscribe.models.invoice import InvoiceKind, InvoiceStatus


class InvoiceResponse(BaseModel):
    id: UUID
    invoice_number: str
    service_id: UUID
    kind: InvoiceKind
    status: InvoiceStatus
    period_start: datetime
    period_end: datetime | None
    subtotal: Decimal
    total: Decimal
    currency: str
    due_date: datetime | None
    paid_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
