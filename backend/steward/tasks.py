from typing import Any

from arq import create_pool
from arq.connections import ArqRedis, RedisSettings
from arq.jobs import Job

from steward.core.config import settings

redis_settings = RedisSettings.from_dsn(settings.REDIS_URL)


async def get_redis_pool() -> ArqRedis:
    return await create_pool(redis_settings)


async def enqueue_task(task_name: str, *args: Any, **kwargs: Any) -> Job:
    """Push a job onto the arq queue by function name.

    The pool is opened per call and closed again even if enqueueing fails.
    """
    pool = await get_redis_pool()
    try:
        job = await pool.enqueue_job(task_name, *args, **kwargs)
        return job  # type: ignore[return-value]
    finally:
        await pool.close()


async def enqueue_tenant_pledge_run(tenant_id: str, action: str = "process") -> Job:
    """Enqueue a processing, retry or dunning run for one tenant."""
    return await enqueue_task("run_tenant_pledges_task", tenant_id, action)
