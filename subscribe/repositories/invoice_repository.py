from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy.orm import Session

from subscribe.models.invoice import Invoice, InvoiceKind, InvoiceStatus


class InvoiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def _generate_invoice_number(self, issued_at: datetime) -> str:
        """Generate a unique invoice number."""
        prefix = f"INV-{issued_at.strftime('%Y%m%d')}-"

        # Get the highest invoice number for the day
        result = (
            self.db.query(Invoice.invoice_number)
            .filter(Invoice.invoice_number.like(f"{prefix}%"))
            .order_by(Invoice.invoice_number.desc())
            .first()
        )

        if result:
            # Extract number from INV-YYYYMMDD-XXXX format
            try:
                new_num = int(result[0].split("-")[-1]) + 1
            except (ValueError, IndexError):
                new_num = 1
        else:
            new_num = 1

        return f"{prefix}{new_num:04d}"

    def get_all(
        self,
        service_id: UUID | None = None,
        status: InvoiceStatus | None = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[Invoice]:
        query = self.db.query(Invoice)
        if service_id:
            query = query.filter(Invoice.service_id == service_id)
        if status:
            query = query.filter(Invoice.status == status.value)
        return query.order_by(Invoice.period_start).offset(skip).limit(limit).all()

    def get_by_id(self, invoice_id: UUID) -> Invoice | None:
        return self.db.query(Invoice).filter(Invoice.id == invoice_id).first()

    def get_for_period(self, service_id: UUID, period_start: datetime) -> Invoice | None:
        """The invoice already raised for a service's period, if any."""
        return (
            self.db.query(Invoice)
            .filter(
                Invoice.service_id == service_id,
                Invoice.period_start == period_start,
            )
            .first()
        )

    def get_first_for_service(self, service_id: UUID) -> Invoice | None:
        return (
            self.db.query(Invoice)
            .filter(
                Invoice.service_id == service_id,
                Invoice.kind == InvoiceKind.FIRST.value,
            )
            .first()
        )

    def create(
        self,
        service_id: UUID,
        kind: InvoiceKind,
        period_start: datetime,
        period_end: datetime | None,
        subtotal: Decimal,
        currency: str,
        issued_at: datetime,
        due_date: datetime | None = None,
    ) -> Invoice:
        invoice = Invoice(
            invoice_number=self._generate_invoice_number(issued_at),
            service_id=service_id,
            kind=kind.value,
            status=InvoiceStatus.UNPAID.value,
            period_start=period_start,
            period_end=period_end,
            subtotal=subtotal,
            total=subtotal,
            currency=currency,
            due_date=due_date,
        )
        self.db.add(invoice)
        self.db.commit()
        self.db.refresh(invoice)
        return invoice

    def mark_paid(self, invoice: Invoice, paid_at: datetime) -> Invoice:
        invoice.status = InvoiceStatus.PAID.value  # type: ignore[assignment]
        invoice.paid_at = paid_at  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(invoice)
        return invoice
