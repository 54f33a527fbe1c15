from typing import NoReturn
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from subscribe.core.clock import Clock, get_clock
from subscribe.core.database import get_db
from subscribe.core.exceptions import (
    CollaboratorFailure,
    InvalidPlanConfiguration,
    InvalidStatusTransition,
)
from subscribe.models.invoice import Invoice
from subscribe.models.service import Service, ServiceStatus
from subscribe.repositories.invoice_repository import InvoiceRepository
from subscribe.repositories.plan_repository import PlanRepository
from subscribe.repositories.service_repository import ServiceRepository
from subscribe.schemas.invoice import InvoiceResponse
from subscribe.schemas.service import (
    ServiceCancel,
    ServiceCreate,
    ServicePayment,
    ServiceResponse,
)
from subscribe.services.invoice_manager import InvoiceManager
from subscribe.services.service_manager import ServiceManager
from subscribe.services.subscription_engine import build_subscription_engine

router = APIRouter()


def _get_service_or_404(db: Session, service_id: UUID) -> Service:
    service = ServiceRepository(db).get_by_id(service_id)
    if not service:
        raise HTTPException(status_code=404, detail="Service not found")
    return service


def _raise_for_engine_error(exc: Exception) -> NoReturn:
    if isinstance(exc, InvalidStatusTransition):
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if isinstance(exc, InvalidPlanConfiguration):
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    raise HTTPException(status_code=502, detail=str(exc)) from exc


@router.get(
    "/",
    response_model=list[ServiceResponse],
    summary="List services",
)
async def list_services(
    response: Response,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    status: ServiceStatus | None = Query(default=None),
    plan_id: UUID | None = Query(default=None),
    db: Session = Depends(get_db),
) -> list[Service]:
    """List services, optionally filtered by status or plan."""
    repo = ServiceRepository(db)
    response.headers["X-Total-Count"] = str(repo.count(status=status, plan_id=plan_id))
    return repo.get_all(skip=skip, limit=limit, status=status, plan_id=plan_id)


@router.post(
    "/",
    response_model=ServiceResponse,
    status_code=201,
    summary="Create service",
    responses={
        400: {"description": "Plan not found or inactive"},
        409: {"description": "Service with this code already exists"},
    },
)
async def create_service(
    data: ServiceCreate,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Service:
    """Subscribe to a plan.

    A plan with a trial starts the service in trial. Otherwise the service is new
    and its first invoice is raised immediately.
    """
    if ServiceRepository(db).get_by_code(data.code):
        raise HTTPException(status_code=409, detail="Service with this code already exists")

    plan = PlanRepository(db).get_by_id(data.plan_id)
    if not plan or not plan.is_active:
        raise HTTPException(status_code=400, detail=f"Plan {data.plan_id} not found")

    try:
        service = ServiceManager(db, clock).create_service(data.code, plan)
        if service.status == ServiceStatus.NEW.value:
            InvoiceManager(db, clock).raise_first_invoice(service)
    except (CollaboratorFailure, InvalidPlanConfiguration) as exc:
        _raise_for_engine_error(exc)
    return service


@router.get(
    "/{service_id}",
    response_model=ServiceResponse,
    summary="Get service",
    responses={404: {"description": "Service not found"}},
)
async def get_service(service_id: UUID, db: Session = Depends(get_db)) -> Service:
    """Get a service by ID."""
    return _get_service_or_404(db, service_id)


@router.get(
    "/{service_id}/invoices",
    response_model=list[InvoiceResponse],
    summary="List service invoices",
    responses={404: {"description": "Service not found"}},
)
async def list_service_invoices(service_id: UUID, db: Session = Depends(get_db)) -> list[Invoice]:
    """List every invoice raised for a service, oldest period first."""
    _get_service_or_404(db, service_id)
    return InvoiceRepository(db).get_all(service_id=service_id)


@router.post(
    "/{service_id}/payments",
    response_model=ServiceResponse,
    summary="Record service payment",
    responses={
        400: {"description": "Invoice does not belong to the service or is voided"},
        404: {"description": "Service or invoice not found"},
        409: {"description": "Payment cannot be applied in the service's status"},
        502: {"description": "Service could not be updated"},
    },
)
async def record_payment(
    service_id: UUID,
    data: ServicePayment,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Service:
    """Mark one of the service's invoices paid and apply the payment to the service."""
    service = _get_service_or_404(db, service_id)
    invoice = InvoiceRepository(db).get_by_id(data.invoice_id)
    if not invoice:
        raise HTTPException(status_code=404, detail="Invoice not found")
    if str(invoice.service_id) != str(service.id):
        raise HTTPException(status_code=400, detail="Invoice does not belong to this service")

    invoices = InvoiceManager(db, clock)
    build_subscription_engine(db, clock, invoices=invoices)
    try:
        invoices.mark_paid(invoice, service)
    except (CollaboratorFailure, InvalidStatusTransition, InvalidPlanConfiguration) as exc:
        _raise_for_engine_error(exc)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return service


@router.post(
    "/{service_id}/renew",
    response_model=ServiceResponse,
    summary="Renew service",
    responses={
        404: {"description": "Service not found"},
        409: {"description": "Service cannot be renewed in its status"},
        502: {"description": "Service could not be updated"},
    },
)
async def renew_service(
    service_id: UUID,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Service:
    """Raise and collect the renewal invoice if the service's period has ended."""
    service = _get_service_or_404(db, service_id)
    engine = build_subscription_engine(db, clock)
    try:
        engine.attempt_renew_service(service)
    except (CollaboratorFailure, InvalidStatusTransition, InvalidPlanConfiguration) as exc:
        _raise_for_engine_error(exc)
    return service


@router.post(
    "/{service_id}/cancel",
    response_model=ServiceResponse,
    summary="Cancel service",
    responses={
        404: {"description": "Service not found"},
        409: {"description": "Service is already cancelled"},
    },
)
async def cancel_service(
    service_id: UUID,
    data: ServiceCancel,
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> Service:
    """Cancel a service. Cancelled services ignore later payments."""
    service = _get_service_or_404(db, service_id)
    try:
        ServiceManager(db, clock).cancel(service, data.reason)
    except (CollaboratorFailure, InvalidStatusTransition) as exc:
        _raise_for_engine_error(exc)
    return service
