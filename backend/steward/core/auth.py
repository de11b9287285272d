from uuid import UUID

from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from steward.core.database import get_db
from steward.models.tenant import Tenant
from steward.repositories.tenant_repository import TenantRepository

PLEDGES_DISABLED = "Recurring pledges are not enabled for this tenant"
DONATIONS_DISABLED = "Donations are not enabled for this tenant"


def get_tenant(tenant_id: UUID, db: Session = Depends(get_db)) -> Tenant:
    """Resolve the tenant addressed by the ``tenant_id`` path segment."""
    tenant = TenantRepository(db).get_by_id(tenant_id)
    if not tenant:
        raise HTTPException(status_code=404, detail="Tenant not found")
    return tenant


def require_donations(tenant: Tenant = Depends(get_tenant)) -> Tenant:
    if not tenant.donations_enabled:
        raise HTTPException(status_code=403, detail=DONATIONS_DISABLED)
    return tenant


def require_recurring_pledges(tenant: Tenant = Depends(get_tenant)) -> Tenant:
    if not (tenant.donations_enabled and tenant.recurring_pledges_enabled):
        raise HTTPException(status_code=403, detail=PLEDGES_DISABLED)
    return tenant


def get_actor_id(x_actor_id: str | None = Header(default=None)) -> str | None:
    """Caller identity for the audit trail. Authentication happens upstream."""
    return x_actor_id or None
