from datetime import datetime
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Query, Session

from subscribe.models.service import Service, ServiceStatus


class ServiceRepository:
    def __init__(self, db: Session):
        self.db = db

    def _filtered(
        self, query: Query, status: ServiceStatus | None, plan_id: UUID | None
    ) -> Query:
        if status:
            query = query.filter(Service.status == status.value)
        if plan_id:
            query = query.filter(Service.plan_id == plan_id)
        return query

    def get_all(
        self,
        skip: int = 0,
        limit: int = 100,
        status: ServiceStatus | None = None,
        plan_id: UUID | None = None,
    ) -> list[Service]:
        query = self._filtered(self.db.query(Service), status, plan_id)
        return query.order_by(Service.created_at).offset(skip).limit(limit).all()

    def count(self, status: ServiceStatus | None = None, plan_id: UUID | None = None) -> int:
        query = self._filtered(self.db.query(func.count(Service.id)), status, plan_id)
        return query.scalar() or 0

    def get_by_id(self, service_id: UUID) -> Service | None:
        return self.db.query(Service).filter(Service.id == service_id).first()

    def get_by_code(self, code: str) -> Service | None:
        return self.db.query(Service).filter(Service.code == code).first()

    def get_with_ended_period(
        self,
        now: datetime,
        statuses: tuple[ServiceStatus, ...] = (
            ServiceStatus.TRIAL,
            ServiceStatus.ACTIVE,
            ServiceStatus.GRACE,
        ),
    ) -> list[Service]:
        """Services whose current period has run out and is due for renewal.

        Services in grace keep the period that failed to renew, so they are
        picked up again for another payment attempt.
        """
        return (
            self.db.query(Service)
            .filter(
                Service.status.in_([s.value for s in statuses]),
                Service.current_period_end.isnot(None),
                Service.current_period_end <= now,
            )
            .order_by(Service.current_period_end)
            .all()
        )

    def get_with_expired_grace(self, now: datetime) -> list[Service]:
        return (
            self.db.query(Service)
            .filter(
                Service.status == ServiceStatus.GRACE.value,
                Service.grace_ends_at.isnot(None),
                Service.grace_ends_at <= now,
            )
            .all()
        )
