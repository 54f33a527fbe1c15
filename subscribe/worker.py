import logging
from typing import Any

from arq import cron

from subscribe.core.clock import get_clock
from subscribe.core.database import SessionLocal
from subscribe.core.exceptions import CollaboratorFailure, InvalidPlanConfiguration
from subscribe.repositories.service_repository import ServiceRepository
from subscribe.services.subscription_engine import build_subscription_engine
from subscribe.tasks import redis_settings

logger = logging.getLogger(__name__)


async def process_ended_services_task(ctx: dict[str, Any]) -> int:
    """Background task: renew trial, active and grace services whose period has ended.

    Each service gets its renewal invoice raised and an automatic payment attempt.
    Services whose payment fails enter grace or become past due. A service already
    in grace is retried against the same invoice. The payment handler, if any, is
    read from the worker context under ``payment_handler``.

    Runs hourly.
    """
    db = SessionLocal()
    try:
        clock = get_clock()
        engine = build_subscription_engine(
            db, clock, payment_handler=ctx.get("payment_handler")
        )
        services = ServiceRepository(db).get_with_ended_period(clock.now())

        count = 0
        for service in services:
            try:
                if engine.attempt_renew_service(service) is not None:
                    count += 1
            except (CollaboratorFailure, InvalidPlanConfiguration) as exc:
                logger.error("Failed to renew service %s: %s", service.id, exc)

        if count > 0:
            logger.info("Processed renewal for %d services", count)
        return count
    finally:
        db.close()


async def process_expired_grace_task(ctx: dict[str, Any]) -> int:
    """Background task: move services whose grace period has run out to past due.

    Runs hourly.
    """
    db = SessionLocal()
    try:
        clock = get_clock()
        engine = build_subscription_engine(db, clock)
        services = ServiceRepository(db).get_with_expired_grace(clock.now())

        count = 0
        for service in services:
            try:
                if engine.expire_grace_period(service):
                    count += 1
            except CollaboratorFailure as exc:
                logger.error("Failed to expire grace for service %s: %s", service.id, exc)

        if count > 0:
            logger.info("Expired grace period for %d services", count)
        return count
    finally:
        db.close()


class WorkerSettings:
    functions = [
        process_ended_services_task,
        process_expired_grace_task,
    ]
    cron_jobs = [
        cron(process_ended_services_task, minute={0}),  # hourly
        cron(process_expired_grace_task, minute={30}),  # hourly
    ]
    redis_settings = redis_settings
