"""Helpers for queueing the renewal worker's jobs on demand."""

from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from subscribe.core.config import settings

redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def get_redis_pool() -> ArqRedis:
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job:
    """Queue ``task_name`` on the worker and return its arq job.

    A fresh pool is opened for the call and closed afterwards.
    """
    pool = await get_redis_pool()
    try:
        return await pool.enqueue_job(task_name, *args, **kwargs)  # type: ignore[return-value]
    finally:
        await pool.close()


async def enqueue_process_ended_services() -> Job:
    """Run a renewal pass now instead of waiting for the hourly cron."""
    return await enqueue_task("process_ended_services_task")


async def enqueue_process_expired_grace() -> Job:
    """Lapse services whose grace period has run out without waiting for the cron."""
    return await enqueue_task("process_expired_grace_task")
