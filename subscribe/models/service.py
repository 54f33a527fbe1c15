from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, Numeric, String, Text, func

from subscribe.core.database import Base
from subscribe.models.shared import UUIDType, generate_uuid


class ServiceStatus(str, Enum):
    NEW = "new"
    TRIAL = "trial"
    ACTIVE = "active"
    GRACE = "grace"
    PAST_DUE = "past_due"
    CANCELLED = "cancelled"


# Every status a service may move to from its current status.
ALLOWED_TRANSITIONS: dict[ServiceStatus, frozenset[ServiceStatus]] = {
    ServiceStatus.NEW: frozenset(
        {ServiceStatus.TRIAL, ServiceStatus.ACTIVE, ServiceStatus.CANCELLED}
    ),
    ServiceStatus.TRIAL: frozenset(
        {
            ServiceStatus.ACTIVE,
            ServiceStatus.GRACE,
            ServiceStatus.PAST_DUE,
            ServiceStatus.CANCELLED,
        }
    ),
    ServiceStatus.ACTIVE: frozenset(
        {
            ServiceStatus.ACTIVE,
            ServiceStatus.GRACE,
            ServiceStatus.PAST_DUE,
            ServiceStatus.CANCELLED,
        }
    ),
    ServiceStatus.GRACE: frozenset(
        {
            ServiceStatus.ACTIVE,
            ServiceStatus.GRACE,
            ServiceStatus.PAST_DUE,
            ServiceStatus.CANCELLED,
        }
    ),
    ServiceStatus.PAST_DUE: frozenset(
        {ServiceStatus.ACTIVE, ServiceStatus.PAST_DUE, ServiceStatus.CANCELLED}
    ),
    ServiceStatus.CANCELLED: frozenset(),
}


def can_transition(current: ServiceStatus, target: ServiceStatus) -> bool:
    return target in ALLOWED_TRANSITIONS[current]


class Service(Base):
    __tablename__ = "services"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    code = Column(String(255), unique=True, index=True, nullable=False)
    plan_id = Column(
        UUIDType,
        ForeignKey("plans.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status = Column(String(20), nullable=False, default=ServiceStatus.NEW.value, index=True)
    status_reason = Column(Text, nullable=True)
    status_updated_at = Column(DateTime(timezone=True), nullable=True)

    # Price the service was signed up at
    price = Column(Numeric(12, 4), nullable=False, default=0)

    count_renewal = Column(Integer, nullable=False, default=0)
    activated_at = Column(DateTime(timezone=True), nullable=True)
    delay_activated_at = Column(DateTime(timezone=True), nullable=True)
    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True, index=True)
    grace_ends_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
