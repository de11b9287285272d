from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from steward.core.auth import get_tenant
from steward.core.database import get_db
from steward.models.tenant import Tenant
from steward.repositories.tenant_repository import TenantRepository
from steward.schemas.tenant import TenantCreate, TenantResponse, TenantUpdate

router = APIRouter()


@router.post(
    "",
    response_model=TenantResponse,
    status_code=201,
    summary="Create tenant",
    responses={422: {"description": "Validation error"}},
)
async def create_tenant(
    data: TenantCreate,
    db: Session = Depends(get_db),
) -> Tenant:
    """Create a community with its giving feature flags."""
    return TenantRepository(db).create(data)


@router.get(
    "/{tenant_id}",
    response_model=TenantResponse,
    summary="Get tenant",
    responses={404: {"description": "Tenant not found"}},
)
async def get_tenant_detail(tenant: Tenant = Depends(get_tenant)) -> Tenant:
    return tenant


@router.patch(
    "/{tenant_id}",
    response_model=TenantResponse,
    summary="Update tenant",
    responses={
        404: {"description": "Tenant not found"},
        422: {"description": "Validation error"},
    },
)
async def update_tenant(
    tenant_id: UUID,
    data: TenantUpdate,
    db: Session = Depends(get_db),
) -> Tenant:
    """Update tenant settings, including the donation and recurring pledge flags."""
    tenant = TenantRepository(db).update(tenant_id, data)
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant
