from enum import Enum

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Numeric,
    String,
    UniqueConstraint,
    func,
)

from subscribe.core.database import Base
from subscribe.models.shared import UUIDType, generate_uuid


class InvoiceStatus(str, Enum):
    UNPAID = "unpaid"
    PAID = "paid"
    VOIDED = "voided"


class InvoiceKind(str, Enum):
    FIRST = "first"
    RENEWAL = "renewal"


class Invoice(Base):
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("service_id", "period_start", name="uq_invoices_service_period"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    invoice_number = Column(String(50), unique=True, index=True, nullable=False)
    service_id = Column(
        UUIDType, ForeignKey("services.id", ondelete="RESTRICT"), nullable=False, index=True
    )
    kind = Column(String(20), nullable=False, default=InvoiceKind.RENEWAL.value)
    status = Column(String(20), nullable=False, default=InvoiceStatus.UNPAID.value)

    # Billing period
    period_start = Column(DateTime(timezone=True), nullable=False)
    period_end = Column(DateTime(timezone=True), nullable=True)

    # Amounts (stored as Decimal with 4 decimal places for precision)
    subtotal = Column(Numeric(12, 4), nullable=False, default=0)
    total = Column(Numeric(12, 4), nullable=False, default=0)
    currency = Column(String(3), nullable=False, default="USD")

    # Dates
    due_date = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
