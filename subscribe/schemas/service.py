from datetime import datetime
from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, Field

from subscribe.models.service import ServiceStatus


class ServiceCreate(BaseModel):
    code: str = Field(..., min_length=1, max_length=255)
    plan_id: UUID


class ServiceCancel(BaseModel):
    reason: str | None = Field(default=None, max_length=1000)


class ServicePayment(BaseModel):
    """Record an out-of-band payment against one of the service's invoices."""

    invoice_id: UUID


class ServiceResponse(BaseModel):
    id: UUID
    code: str
    plan_id: UUID
    status: ServiceStatus
    status_reason: str | None
    status_updated_at: datetime | None
    price: Decimal
    count_renewal: int
    activated_at: datetime | None
    delay_activated_at: datetime | None
    current_period_start: datetime | None
    current_period_end: datetime | None
    grace_ends_at: datetime | None
    cancelled_at: datetime | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
