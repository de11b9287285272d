from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from steward.models.pledge_settings import PledgeSettings


class PledgeSettingsRepository:
    def __init__(self, db: Session):
        self.db = db

    def get_by_tenant(self, tenant_id: UUID) -> PledgeSettings | None:
        return (
            self.db.query(PledgeSettings)
            .filter(PledgeSettings.tenant_id == tenant_id)
            .first()
        )

    def upsert(self, tenant_id: UUID, values: dict[str, Any]) -> PledgeSettings:
        """Create the tenant's settings row or overwrite the existing one."""
        row = self.get_by_tenant(tenant_id)
        if row is None:
            row = PledgeSettings(tenant_id=tenant_id, **values)
            self.db.add(row)
        else:
            for key, value in values.items():
                setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row
