from uuid import UUID

from sqlalchemy.orm import Session

from steward.models.tenant import Tenant
from steward.schemas.tenant import TenantCreate, TenantUpdate


class TenantRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_id(self, tenant_id: UUID) -> Tenant | None:
        return self.db.query(Tenant).filter(Tenant.id == tenant_id).first()

    def get_pledge_enabled(self) -> list[Tenant]:
        """Tenants whose recurring pledges should be processed by the worker."""
        return (
            self.db.query(Tenant)
            .filter(
                Tenant.donations_enabled.is_(True),
                Tenant.recurring_pledges_enabled.is_(True),
            )
            .all()
        )

    def create(self, data: TenantCreate) -> Tenant:
        tenant = Tenant(**data.model_dump())
        self.db.add(tenant)
        self.db.commit()
        self.db.refresh(tenant)
        return tenant

    def update(self, tenant_id: UUID, data: TenantUpdate) -> Tenant | None:
        tenant = self.get_by_id(tenant_id)
        if not tenant:
            return None
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(tenant, key, value)
        self.db.commit()
        self.db.refresh(tenant)
        return tenant
