"""Fund repository for data access."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from steward.core.sorting import apply_order_by
from steward.models.donation_record import DonationRecord
from steward.models.fund import Fund
from steward.models.shared import ensure_utc
from steward.schemas.fund import FundCreate, FundUpdate

_DATE_FIELDS = ("start_date", "end_date")


def _normalise_dates(values: dict[str, Any]) -> dict[str, Any]:
    for key in _DATE_FIELDS:
        if values.get(key) is not None:
            values[key] = ensure_utc(values[key])
    return values


class FundRepository:
    """Repository for Fund model."""

    def __init__(self, db: Session):
        self.db = db

    def get_all(
        self,
        tenant_id: UUID,
        include_archived: bool = False,
        order_by: str | None = None,
    ) -> list[Fund]:
        """Get funds for a tenant, active ones only unless ``include_archived``."""
        query = self.db.query(Fund).filter(Fund.tenant_id == tenant_id)
        if not include_archived:
            query = query.filter(Fund.archived_at.is_(None))
        query = apply_order_by(query, Fund, order_by)
        return query.all()

    def get_by_id(self, fund_id: UUID, tenant_id: UUID) -> Fund | None:
        return (
            self.db.query(Fund)
            .filter(Fund.id == fund_id, Fund.tenant_id == tenant_id)
            .first()
        )

    def get_active_by_id(self, fund_id: UUID, tenant_id: UUID) -> Fund | None:
        """Get a fund that can still receive pledges (not archived)."""
        return (
            self.db.query(Fund)
            .filter(
                Fund.id == fund_id,
                Fund.tenant_id == tenant_id,
                Fund.archived_at.is_(None),
            )
            .first()
        )

    def create(self, data: FundCreate, tenant_id: UUID) -> Fund:
        values = _normalise_dates(data.model_dump())
        fund = Fund(**values, tenant_id=tenant_id)
        self.db.add(fund)
        self.db.commit()
        self.db.refresh(fund)
        return fund

    def update(self, fund: Fund, data: FundUpdate) -> Fund:
        values = _normalise_dates(data.model_dump(exclude_unset=True))
        for key, value in values.items():
            setattr(fund, key, value)
        self.db.commit()
        self.db.refresh(fund)
        return fund

    def archive(self, fund: Fund, archived_at: datetime) -> Fund:
        if fund.archived_at is None:
            fund.archived_at = archived_at  # type: ignore[assignment]
            self.db.commit()
            self.db.refresh(fund)
        return fund

    def amounts_raised(self, tenant_id: UUID, fund_ids: list[UUID]) -> dict[UUID, int]:
        """Sum donation records per fund."""
        if not fund_ids:
            return {}
        rows = (
            self.db.query(DonationRecord.fund_id, func.sum(DonationRecord.amount_cents))
            .filter(
                DonationRecord.tenant_id == tenant_id,
                DonationRecord.fund_id.in_(fund_ids),
            )
            .group_by(DonationRecord.fund_id)
            .all()
        )
        return {fund_id: int(total or 0) for fund_id, total in rows}
