import logging
from typing import Any
from uuid import UUID

from arq import cron

from steward.core.config import settings
from steward.core.database import open_session
from steward.repositories.idempotency_repository import IdempotencyRepository
from steward.repositories.tenant_repository import TenantRepository
from steward.schemas.processing import ProcessAction
from steward.services.pledge_runner import run_pledge_action
from steward.tasks import redis_settings

logger = logging.getLogger(__name__)


async def _run_for_all_tenants(action: ProcessAction) -> int:
    db = open_session()
    try:
        total = 0
        for tenant in TenantRepository(db).get_pledge_enabled():
            result = await run_pledge_action(db, tenant.id, action)  # type: ignore[arg-type]
            total += result.processed
        logger.info("Pledge %s run finished: %d pledges handled", action.value, total)
        return total
    finally:
        db.close()


async def process_due_pledges_task(ctx: dict[str, Any]) -> int:
    """Background task: charge due pledges for every tenant with recurring pledges on."""
    return await _run_for_all_tenants(ProcessAction.PROCESS)


async def retry_failed_pledges_task(ctx: dict[str, Any]) -> int:
    """Background task: retry failing pledges whose retry interval has elapsed."""
    return await _run_for_all_tenants(ProcessAction.RETRY)


async def send_dunning_reminders_task(ctx: dict[str, Any]) -> int:
    """Background task: email donors whose pledges keep failing."""
    return await _run_for_all_tenants(ProcessAction.DUNNING)


async def run_tenant_pledges_task(
    ctx: dict[str, Any], tenant_id: str, action: str = "process",
) -> dict[str, Any]:
    """Run one action for one tenant. Enqueued on demand."""
    db = open_session()
    try:
        result = await run_pledge_action(db, UUID(tenant_id), ProcessAction(action))
        return result.model_dump(mode="json", by_alias=True)
    finally:
        db.close()


async def cleanup_idempotency_records_task(ctx: dict[str, Any]) -> int:
    """Background task: purge cached idempotent responses past their TTL."""
    db = open_session()
    try:
        count = IdempotencyRepository(db).delete_expired(settings.IDEMPOTENCY_TTL_HOURS)
        if count > 0:
            logger.info("Deleted %d expired idempotency records", count)
        return count
    finally:
        db.close()


def _cron_jobs() -> list[Any]:
    if not settings.PLEDGE_SCHEDULER_ENABLED:
        return []
    return [
        cron(process_due_pledges_task, minute={0}),  # hourly
        cron(retry_failed_pledges_task, minute={30}),  # hourly, offset from processing
        cron(send_dunning_reminders_task, hour={9}, minute={0}),  # daily
        cron(cleanup_idempotency_records_task, hour={3}, minute={0}),  # daily
    ]


class WorkerSettings:
    """arq worker settings."""

    functions = [
        process_due_pledges_task,
        retry_failed_pledges_task,
        send_dunning_reminders_task,
        run_tenant_pledges_task,
        cleanup_idempotency_records_task,
    ]
    cron_jobs = _cron_jobs()
    redis_settings = redis_settings
