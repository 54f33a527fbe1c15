from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from subscribe.models.plan import Plan
from subscribe.schemas.plan import PlanCreate, PlanUpdate


class PlanRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_all(self, skip: int = 0, limit: int = 100, active_only: bool = False) -> list[Plan]:
        query = self.db.query(Plan)
        if active_only:
            query = query.filter(Plan.is_active.is_(True))
        return query.order_by(Plan.created_at).offset(skip).limit(limit).all()

    def count(self, active_only: bool = False) -> int:
        query = self.db.query(func.count(Plan.id))
        if active_only:
            query = query.filter(Plan.is_active.is_(True))
        return query.scalar() or 0

    def get_by_id(self, plan_id: UUID) -> Plan | None:
        return self.db.query(Plan).filter(Plan.id == plan_id).first()

    def get_by_code(self, code: str) -> Plan | None:
        return self.db.query(Plan).filter(Plan.code == code).first()

    def code_exists(self, code: str) -> bool:
        """Check if a plan with the given code already exists."""
        return self.get_by_code(code) is not None

    def create(self, data: PlanCreate) -> Plan:
        plan = Plan(
            code=data.code,
            name=data.name,
            description=data.description,
            plan_type=data.plan_type.value,
            plan_day_interval=data.plan_day_interval,
            plan_month_interval=data.plan_month_interval,
            plan_month_day=data.plan_month_day,
            plan_monthly_behavior=(
                data.plan_monthly_behavior.value if data.plan_monthly_behavior else None
            ),
            plan_year_interval=data.plan_year_interval,
            renewal_period=data.renewal_period,
            price=data.price,
            setup_price=data.setup_price,
            currency=data.currency,
            is_custom_membership=data.is_custom_membership,
            membership_price=data.membership_price,
            trial_days=data.trial_days,
            grace_days=data.grace_days,
        )
        self.db.add(plan)
        self.db.commit()
        self.db.refresh(plan)
        return plan

    def update(self, plan_id: UUID, data: PlanUpdate) -> Plan | None:
        plan = self.get_by_id(plan_id)
        if not plan:
            return None

        update_data = data.model_dump(exclude_unset=True)
        for key, value in update_data.items():
            setattr(plan, key, value)

        self.db.commit()
        self.db.refresh(plan)
        return plan
