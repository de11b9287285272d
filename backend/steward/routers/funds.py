from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from steward.core.auth import get_actor_id, require_donations
from steward.core.database import get_db
from steward.models.fund import Fund
from steward.models.shared import ensure_utc, utc_now
from steward.models.tenant import Tenant
from steward.repositories.fund_repository import FundRepository
from steward.schemas.fund import FundCreate, FundResponse, FundUpdate
from steward.services.audit_service import ACTOR_ADMIN, AuditService

router = APIRouter()

FEATURE_DISABLED = {403: {"description": "Donations are not enabled for this tenant"}}


def _fund_to_response(fund: Fund, amount_raised_cents: int = 0) -> FundResponse:
    response = FundResponse.model_validate(fund)
    response.amount_raised_cents = amount_raised_cents
    return response


def _audit_data(fund: Fund) -> dict[str, object]:
    return {
        "name": fund.name,
        "type": fund.type,
        "visibility": fund.visibility,
        "currency": fund.currency,
        "goal_amount_cents": fund.goal_amount_cents,
        "min_amount_cents": fund.min_amount_cents,
        "max_amount_cents": fund.max_amount_cents,
        "allow_anonymous": fund.allow_anonymous,
    }


@router.get(
    "",
    response_model=list[FundResponse],
    summary="List funds",
    responses={**FEATURE_DISABLED, 404: {"description": "Tenant not found"}},
)
async def list_funds(
    response: Response,
    include_archived: bool = Query(default=False, alias="includeArchived"),
    order_by: str | None = Query(default=None, alias="orderBy"),
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_donations),
) -> list[FundResponse]:
    """List funds, newest first, each with the total raised so far."""
    repo = FundRepository(db)
    funds = repo.get_all(tenant.id, include_archived=include_archived, order_by=order_by)  # type: ignore[arg-type]
    raised = repo.amounts_raised(tenant.id, [f.id for f in funds])  # type: ignore[arg-type, misc]
    response.headers["X-Total-Count"] = str(len(funds))
    return [_fund_to_response(f, raised.get(f.id, 0)) for f in funds]  # type: ignore[call-overload]


@router.post(
    "",
    response_model=FundResponse,
    status_code=201,
    summary="Create fund",
    responses={**FEATURE_DISABLED, 422: {"description": "Validation error"}},
)
async def create_fund(
    data: FundCreate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_donations),
    actor_id: str | None = Depends(get_actor_id),
) -> FundResponse:
    fund = FundRepository(db).create(data, tenant.id)  # type: ignore[arg-type]
    AuditService(db).log_create(
        resource_type="fund",
        resource_id=fund.id,  # type: ignore[arg-type]
        tenant_id=tenant.id,  # type: ignore[arg-type]
        actor_type=ACTOR_ADMIN,
        actor_id=actor_id,
        data=_audit_data(fund),
    )
    return _fund_to_response(fund)


@router.get(
    "/{fund_id}",
    response_model=FundResponse,
    summary="Get fund",
    responses={**FEATURE_DISABLED, 404: {"description": "Fund not found"}},
)
async def get_fund(
    fund_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_donations),
) -> FundResponse:
    repo = FundRepository(db)
    fund = repo.get_by_id(fund_id, tenant.id)  # type: ignore[arg-type]
    if not fund:
        raise HTTPException(status_code=404, detail="Fund not found")
    raised = repo.amounts_raised(tenant.id, [fund_id])  # type: ignore[arg-type]
    return _fund_to_response(fund, raised.get(fund_id, 0))


@router.patch(
    "/{fund_id}",
    response_model=FundResponse,
    summary="Update fund",
    responses={
        **FEATURE_DISABLED,
        400: {"description": "Invalid date range"},
        404: {"description": "Fund not found"},
        422: {"description": "Validation error"},
    },
)
async def update_fund(
    fund_id: UUID,
    data: FundUpdate,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_donations),
    actor_id: str | None = Depends(get_actor_id),
) -> FundResponse:
    """Partially update a fund. The resulting start date may not follow the end date."""
    repo = FundRepository(db)
    fund = repo.get_by_id(fund_id, tenant.id)  # type: ignore[arg-type]
    if not fund:
        raise HTTPException(status_code=404, detail="Fund not found")

    changes = data.model_dump(exclude_unset=True)
    start = ensure_utc(changes["start_date"] if "start_date" in changes else fund.start_date)  # type: ignore[arg-type]
    end = ensure_utc(changes["end_date"] if "end_date" in changes else fund.end_date)  # type: ignore[arg-type]
    if start and end and start > end:
        raise HTTPException(status_code=400, detail="Start date must be before end date")

    old_data = _audit_data(fund)
    fund = repo.update(fund, data)
    AuditService(db).log_update(
        resource_type="fund",
        resource_id=fund.id,  # type: ignore[arg-type]
        tenant_id=tenant.id,  # type: ignore[arg-type]
        actor_type=ACTOR_ADMIN,
        actor_id=actor_id,
        old_data=old_data,
        new_data=_audit_data(fund),
    )
    raised = repo.amounts_raised(tenant.id, [fund_id])  # type: ignore[arg-type]
    return _fund_to_response(fund, raised.get(fund_id, 0))


@router.delete(
    "/{fund_id}",
    response_model=FundResponse,
    summary="Archive fund",
    responses={**FEATURE_DISABLED, 404: {"description": "Fund not found"}},
)
async def archive_fund(
    fund_id: UUID,
    db: Session = Depends(get_db),
    tenant: Tenant = Depends(require_donations),
    actor_id: str | None = Depends(get_actor_id),
) -> FundResponse:
    """Archive a fund. Existing pledges keep pointing at it; new pledges cannot."""
    repo = FundRepository(db)
    fund = repo.get_by_id(fund_id, tenant.id)  # type: ignore[arg-type]
    if not fund:
        raise HTTPException(status_code=404, detail="Fund not found")
    already_archived = fund.archived_at is not None
    fund = repo.archive(fund, utc_now())
    if not already_archived:
        AuditService(db).log_archive(
            resource_type="fund",
            resource_id=fund.id,  # type: ignore[arg-type]
            tenant_id=tenant.id,  # type: ignore[arg-type]
            actor_id=actor_id,
        )
    raised = repo.amounts_raised(tenant.id, [fund_id])  # type: ignore[arg-type]
    return _fund_to_response(fund, raised.get(fund_id, 0))
