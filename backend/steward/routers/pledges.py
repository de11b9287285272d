from datetime import datetime, timedelta
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from steward.core.auth import get_actor_id, require_recurring_pledges
from steward.core.database import get_db
from steward.core.idempotency import (
    IdempotencyResult,
    check_idempotency,
    record_idempotency_response,
    release_idempotency_key,
)
from steward.models.fund import Fund
from steward.models.pledge import Pledge, PledgeStatus
from steward.models.shared import utc_now
from steward.models.tenant import Tenant
from steward.repositories.audit_log_repository import AuditLogRepository
from steward.repositories.fund_repository import FundRepository
from steward.repositories.pledge_charge_repository import PledgeChargeRepository
from steward.repositories.pledge_repository import PledgeRepository
from steward.schemas.audit_log import AuditLogResponse
from steward.schemas.fund import FundResponse
from steward.schemas.pledge import (
    Pagination,
    PledgeCreate,
    PledgeListResponse,
    PledgeResponse,
    PledgeStatsResponse,
    PledgeUpdate,
)
from steward.schemas.pledge_charge import PledgeChargeResponse
from steward.schemas.pledge_settings import (
    PledgeSettingsResponse,
    PledgeSettingsUpdate,
    PledgeSettingsValues,
)
from steward.schemas.processing import ProcessAction, ProcessResponse
from steward.services.pledge_runner import run_pledge_action
from steward.services.pledge_schedule import estimated_monthly_cents
from steward.services.pledge_service import PledgeService
from steward.services.pledge_settings_service import PledgeSettingsService
from steward.services.pledge_state import display_status

router = APIRouter()

FEATURE_DISABLED = {403: {"description": "Recurring pledges are not enabled for this tenant"}}
PLEDGE_NOT_FOUND = {404: {"description": "Pledge not found"}}


def _pledge_to_response(
    pledge: Pledge,
    fund: Fund | None,
    settings: PledgeSettingsValues,
    now: datetime,
) -> PledgeResponse:
    response = PledgeResponse.model_validate(pledge)
    response.fund = FundResponse.model_validate(fund) if fund is not None else None
    response.display_status = display_status(pledge, settings, now)
    return response


def _get_pledge_or_404(db: Session, pledge_id: UUID, tenant_id: UUID) -> Pledge:
    pledge = PledgeRepository(db).get_by_id(pledge_id, tenant_id)
    if not pledge:
        raise HTTPException(status_code=404, detail="Pledge not found")
    return pledge


def _single_response(db: Session, pledge: Pledge) -> PledgeResponse:
    tenant_id: UUID = pledge.tenant_id  # type: ignore[assignment]
    settings = PledgeSettingsService(db).get_settings(tenant_id)
    fund = FundRepository(db).get_by_id(pledge.fund_id, tenant_id)  # type: ignore[arg-type]
    return _pledge_to_response(pledge, fund, settings, utc_now())


@router.get(
    "",
    response_model=PledgeListResponse,
    summary="List pledges",
    responses={**FEATURE_DISABLED, 404: {"description": "Tenant not found"}},
)
async def list_pledges(
    response: Response,
    status: PledgeStatus | None = Query(default=None),
    fund_id: UUID | None = Query(default=None, alias="fundId"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
    order_by: str | None = Query(default=None, alias="orderBy"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
) -> PledgeListResponse:
    """List pledges with optional status and fund filters.

    ``status=FAILED`` selects active pledges that have been failing for longer
    than the tenant's grace period.
    """
    tenant_id: UUID = tenant.id  # type: ignore[assignment]
    settings = PledgeSettingsService(db).get_settings(tenant_id)
    now = utc_now()
    at_risk_cutoff = now - timedelta(days=settings.grace_period_days)

    repo = PledgeRepository(db)
    total = repo.count(tenant_id, status=status, fund_id=fund_id, at_risk_cutoff=at_risk_cutoff)
    pledges = repo.get_all(
        tenant_id,
        skip=skip,
        limit=limit,
        status=status,
        fund_id=fund_id,
        at_risk_cutoff=at_risk_cutoff,
        order_by=order_by,
    )
    funds = {
        f.id: f for f in FundRepository(db).get_all(tenant_id, include_archived=True)
    }
    response.headers["X-Total-Count"] = str(total)
    return PledgeListResponse(
        pledges=[
            _pledge_to_response(p, funds.get(p.fund_id), settings, now)  # type: ignore[call-overload]
            for p in pledges
        ],
        pagination=Pagination(skip=skip, limit=limit, total=total),
    )


@router.post(
    "",
    response_model=PledgeResponse,
    status_code=201,
    summary="Create pledge",
    responses={
        **FEATURE_DISABLED,
        400: {"description": "Fund not found, archived, or amount outside fund limits"},
        422: {"description": "Validation error"},
    },
)
async def create_pledge(
    data: PledgeCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
    actor_id: str | None = Depends(get_actor_id),
) -> PledgeResponse:
    try:
        pledge = PledgeService(db).create_pledge(tenant.id, data, actor_id=actor_id)  # type: ignore[arg-type]
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return _single_response(db, pledge)


@router.get(
    "/stats",
    response_model=PledgeStatsResponse,
    summary="Pledge statistics",
    responses=FEATURE_DISABLED,
)
async def get_pledge_stats(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
) -> PledgeStatsResponse:
    """Counts per status, the at-risk count, and the estimated monthly income."""
    tenant_id: UUID = tenant.id  # type: ignore[assignment]
    settings = PledgeSettingsService(db).get_settings(tenant_id)
    repo = PledgeRepository(db)
    counts = repo.count_by_status(tenant_id)
    at_risk = repo.count(
        tenant_id,
        status=PledgeStatus.FAILED,
        at_risk_cutoff=utc_now() - timedelta(days=settings.grace_period_days),
    )
    monthly = sum(
        estimated_monthly_cents(int(p.amount_cents), str(p.frequency))
        for p in repo.get_active(tenant_id)
    )
    return PledgeStatsResponse(
        total=sum(counts.values()),
        active=counts.get(PledgeStatus.ACTIVE.value, 0),
        paused=counts.get(PledgeStatus.PAUSED.value, 0),
        cancelled=counts.get(PledgeStatus.CANCELLED.value, 0),
        completed=counts.get(PledgeStatus.COMPLETED.value, 0),
        at_risk=at_risk,
        estimated_monthly_cents=monthly,
    )


@router.get(
    "/settings",
    response_model=PledgeSettingsResponse,
    summary="Get pledge settings",
    responses=FEATURE_DISABLED,
)
async def get_pledge_settings(
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
) -> PledgeSettingsResponse:
    """Return the tenant's pledge settings, or the defaults if none were saved."""
    return PledgeSettingsService(db).get_settings_response(tenant.id)  # type: ignore[arg-type]


@router.put(
    "/settings",
    response_model=PledgeSettingsResponse,
    summary="Save pledge settings",
    responses={**FEATURE_DISABLED, 422: {"description": "Out-of-range setting"}},
)
async def save_pledge_settings(
    data: PledgeSettingsUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
) -> PledgeSettingsResponse:
    """Save pledge settings. Omitted fields keep their current values."""
    service = PledgeSettingsService(db)
    try:
        service.save_settings(tenant.id, data)  # type: ignore[arg-type]
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from None
    return service.get_settings_response(tenant.id)  # type: ignore[arg-type]


@router.post(
    "/process",
    response_model=ProcessResponse,
    summary="Run pledge processing",
    responses={
        **FEATURE_DISABLED,
        409: {"description": "Idempotency-Key still in progress"},
        422: {"description": "Unknown action, or Idempotency-Key used for another request"},
    },
)
async def process_pledges(
    request: Request,
    action: ProcessAction = Query(default=ProcessAction.PROCESS),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
) -> ProcessResponse | JSONResponse:
    """Charge due pledges, retry failing ones, or send dunning reminders."""
    tenant_id: UUID = tenant.id  # type: ignore[assignment]
    idempotency = check_idempotency(request, db, tenant_id)
    if isinstance(idempotency, JSONResponse):
        return idempotency

    try:
        result = await run_pledge_action(db, tenant_id, action)
    except Exception:
        if isinstance(idempotency, IdempotencyResult):
            release_idempotency_key(db, tenant_id, idempotency.key)
        raise

    if isinstance(idempotency, IdempotencyResult):
        record_idempotency_response(
            db,
            tenant_id,
            idempotency.key,
            200,
            result.model_dump(mode="json", by_alias=True),
        )
    return result


@router.get(
    "/{pledge_id}",
    response_model=PledgeResponse,
    summary="Get pledge",
    responses={**FEATURE_DISABLED, **PLEDGE_NOT_FOUND},
)
async def get_pledge(
    pledge_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
) -> PledgeResponse:
    pledge = _get_pledge_or_404(db, pledge_id, tenant.id)  # type: ignore[arg-type]
    return _single_response(db, pledge)


@router.put(
    "/{pledge_id}",
    response_model=PledgeResponse,
    summary="Update pledge",
    responses={
        **FEATURE_DISABLED,
        **PLEDGE_NOT_FOUND,
        400: {"description": "Invalid update or override"},
        422: {"description": "Validation error"},
    },
)
async def update_pledge(
    pledge_id: UUID,
    data: PledgeUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
    actor_id: str | None = Depends(get_actor_id),
) -> PledgeResponse:
    """Update a pledge.

    A body with ``adminOverride`` forces status, next charge date or failure
    count, bypassing the state machine; any other fields are then ignored.
    """
    pledge = _get_pledge_or_404(db, pledge_id, tenant.id)  # type: ignore[arg-type]
    service = PledgeService(db)
    try:
        if data.admin_override is not None:
            pledge = service.override_pledge(pledge, data.admin_override, actor_id=actor_id)
        else:
            pledge = service.update_pledge(pledge, data, actor_id=actor_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return _single_response(db, pledge)


@router.delete(
    "/{pledge_id}",
    response_model=PledgeResponse,
    summary="Cancel pledge",
    responses={
        **FEATURE_DISABLED,
        **PLEDGE_NOT_FOUND,
        400: {"description": "Pledge already completed"},
    },
)
async def cancel_pledge(
    pledge_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
    actor_id: str | None = Depends(get_actor_id),
) -> PledgeResponse:
    """Cancel a pledge. The row is kept for history."""
    pledge = _get_pledge_or_404(db, pledge_id, tenant.id)  # type: ignore[arg-type]
    try:
        pledge = PledgeService(db).cancel_pledge(pledge, actor_id=actor_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return _single_response(db, pledge)


@router.post(
    "/{pledge_id}/resume",
    response_model=PledgeResponse,
    summary="Resume pledge",
    responses={
        **FEATURE_DISABLED,
        **PLEDGE_NOT_FOUND,
        400: {"description": "Only paused pledges can be resumed"},
    },
)
async def resume_pledge(
    pledge_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
    actor_id: str | None = Depends(get_actor_id),
) -> PledgeResponse:
    """Resume a paused pledge: failures reset, next charge one period from now."""
    pledge = _get_pledge_or_404(db, pledge_id, tenant.id)  # type: ignore[arg-type]
    try:
        pledge = PledgeService(db).resume_pledge(pledge, actor_id=actor_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from None
    return _single_response(db, pledge)


@router.get(
    "/{pledge_id}/charges",
    response_model=list[PledgeChargeResponse],
    summary="List pledge charges",
    responses={**FEATURE_DISABLED, **PLEDGE_NOT_FOUND},
)
async def list_pledge_charges(
    pledge_id: UUID,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
) -> list[PledgeChargeResponse]:
    """Charge attempts for a pledge, newest first."""
    pledge = _get_pledge_or_404(db, pledge_id, tenant.id)  # type: ignore[arg-type]
    charges = PledgeChargeRepository(db).get_for_pledge(
        pledge.id, tenant.id, skip=skip, limit=limit  # type: ignore[arg-type]
    )
    return [PledgeChargeResponse.model_validate(c) for c in charges]


@router.get(
    "/{pledge_id}/audit",
    response_model=list[AuditLogResponse],
    summary="Pledge audit trail",
    responses={**FEATURE_DISABLED, **PLEDGE_NOT_FOUND},
)
async def list_pledge_audit(
    pledge_id: UUID,
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=100, ge=1, le=1000),
    action: str | None = None,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_recurring_pledges),
) -> list[AuditLogResponse]:
    pledge = _get_pledge_or_404(db, pledge_id, tenant.id)  # type: ignore[arg-type]
    logs = AuditLogRepository(db).get_by_resource(
        tenant.id,  # type: ignore[arg-type]
        "pledge",
        pledge.id,  # type: ignore[arg-type]
        skip=skip,
        limit=limit,
        action=action,
    )
    return [AuditLogResponse.model_validate(log) for log in logs]
