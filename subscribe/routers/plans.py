from datetime import datetime
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from subscribe.core.clock import Clock, get_clock
from subscribe.core.database import get_db
from subscribe.core.exceptions import InvalidPlanConfiguration
from subscribe.models.plan import Plan
from subscribe.models.shared import as_utc
from subscribe.repositories.plan_repository import PlanRepository
from subscribe.schemas.plan import PlanCreate, PlanResponse, PlanScheduleResponse, PlanUpdate
from subscribe.services import plan_terms
from subscribe.services.billing_cycle import BillingCycleCalculator

router = APIRouter()


@router.get(
    "/",
    response_model=list[PlanResponse],
    summary="List plans",
)
async def list_plans(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    active_only: bool = Query(default=False),
    db: Session = Depends(get_db),
) -> list[Plan]:
    """List all plans with pagination."""
    repo = PlanRepository(db)
    response.headers["X-Total-Count"] = str(repo.count(active_only=active_only))
    return repo.get_all(skip=skip, limit=limit, active_only=active_only)


@router.get(
    "/{plan_id}",
    response_model=PlanResponse,
    summary="Get plan",
    responses={404: {"description": "Plan not found"}},
)
async def get_plan(plan_id: UUID, db: Session = Depends(get_db)) -> Plan:
    """Get a plan by ID."""
    plan = PlanRepository(db).get_by_id(plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan


@router.post(
    "/",
    response_model=PlanResponse,
    status_code=201,
    summary="Create plan",
    responses={
        409: {"description": "Plan with this code already exists"},
        422: {"description": "Validation error"},
    },
)
async def create_plan(data: PlanCreate, db: Session = Depends(get_db)) -> Plan:
    """Create a new plan."""
    repo = PlanRepository(db)
    if repo.code_exists(data.code):
        raise HTTPException(status_code=409, detail="Plan with this code already exists")
    return repo.create(data)


@router.put(
    "/{plan_id}",
    response_model=PlanResponse,
    summary="Update plan",
    responses={404: {"description": "Plan not found"}},
)
async def update_plan(plan_id: UUID, data: PlanUpdate, db: Session = Depends(get_db)) -> Plan:
    """Update a plan's pricing and membership terms.

    The cadence of an existing plan cannot be changed.
    """
    plan = PlanRepository(db).update(plan_id, data)
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")
    return plan


@router.get(
    "/{plan_id}/schedule",
    response_model=PlanScheduleResponse,
    summary="Preview plan billing cycle",
    responses={
        400: {"description": "Plan cadence is misconfigured"},
        404: {"description": "Plan not found"},
    },
)
async def get_plan_schedule(
    plan_id: UUID,
    at: datetime | None = Query(default=None, description="Reference date, defaults to now"),
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> PlanScheduleResponse:
    """Preview the period, cycle length and prorated price for a signup at ``at``."""
    plan = PlanRepository(db).get_by_id(plan_id)
    if not plan:
        raise HTTPException(status_code=404, detail="Plan not found")

    calculator = BillingCycleCalculator(clock)
    reference = as_utc(at) or clock.now()
    price = Decimal(plan.price or 0)
    try:
        period_start = calculator.get_period_start_date(plan, reference)
        return PlanScheduleResponse(
            reference_date=reference,
            period_start=period_start,
            period_end=calculator.get_period_end_date(plan, period_start),
            days_until_billing=calculator.days_until_billing(plan, reference),
            days_in_cycle=calculator.days_in_cycle(plan, reference),
            price=price,
            adjusted_price=calculator.adjust_price(plan, price, reference),
            description=plan_terms.describe_plan(plan),
        )
    except InvalidPlanConfiguration as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
