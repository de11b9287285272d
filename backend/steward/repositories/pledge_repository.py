"""Pledge repository for data access."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, or_, update
from sqlalchemy.orm import Query, Session

from steward.core.sorting import apply_order_by
from steward.models.pledge import Pledge, PledgeStatus
from steward.models.shared import ensure_utc

SORTABLE_FIELDS = (
    "created_at",
    "updated_at",
    "next_charge_at",
    "last_charged_at",
    "last_failed_at",
    "amount_cents",
    "failure_count",
    "total_amount_cents",
    "status",
)


def _unlocked(now: datetime) -> Any:
    return or_(Pledge.locked_until.is_(None), Pledge.locked_until <= now)


def retry_statuses(include_paused: bool) -> list[str]:
    """Statuses a retry run may charge."""
    if include_paused:
        return [PledgeStatus.ACTIVE.value, PledgeStatus.PAUSED.value]
    return [PledgeStatus.ACTIVE.value]


class PledgeRepository:
    """Repository for Pledge model."""

    def __init__(self, db: Session):
        self.db = db

    def _filtered(
        self,
        tenant_id: UUID,
        status: PledgeStatus | None = None,
        fund_id: UUID | None = None,
        at_risk_cutoff: datetime | None = None,
    ) -> Query:  # type: ignore[type-arg]
        query = self.db.query(Pledge).filter(Pledge.tenant_id == tenant_id)
        if status == PledgeStatus.FAILED:
            # FAILED is derived: active, failing, and past the grace period
            query = query.filter(
                Pledge.status == PledgeStatus.ACTIVE.value,
                Pledge.failure_count > 0,
                Pledge.failing_since.isnot(None),
            )
            if at_risk_cutoff is not None:
                query = query.filter(Pledge.failing_since <= at_risk_cutoff)
        elif status is not None:
            query = query.filter(Pledge.status == status.value)
        if fund_id is not None:
            query = query.filter(Pledge.fund_id == fund_id)
        return query

    def get_all(
        self,
        tenant_id: UUID,
        skip: int = 0,
        limit: int = 100,
        status: PledgeStatus | None = None,
        fund_id: UUID | None = None,
        at_risk_cutoff: datetime | None = None,
        order_by: str | None = None,
    ) -> list[Pledge]:
        """Get pledges for a tenant with optional status and fund filters."""
        query = self._filtered(tenant_id, status, fund_id, at_risk_cutoff)
        query = apply_order_by(query, Pledge, order_by, allowed_fields=SORTABLE_FIELDS)
        return query.offset(skip).limit(limit).all()

    def count(
        self,
        tenant_id: UUID,
        status: PledgeStatus | None = None,
        fund_id: UUID | None = None,
        at_risk_cutoff: datetime | None = None,
    ) -> int:
        query = self._filtered(tenant_id, status, fund_id, at_risk_cutoff)
        return int(query.with_entities(func.count(Pledge.id)).scalar() or 0)

    def count_by_status(self, tenant_id: UUID) -> dict[str, int]:
        rows = (
            self.db.query(Pledge.status, func.count(Pledge.id))
            .filter(Pledge.tenant_id == tenant_id)
            .group_by(Pledge.status)
            .all()
        )
        return {str(status): int(count) for status, count in rows}

    def get_active(self, tenant_id: UUID) -> list[Pledge]:
        return (
            self.db.query(Pledge)
            .filter(
                Pledge.tenant_id == tenant_id,
                Pledge.status == PledgeStatus.ACTIVE.value,
            )
            .all()
        )

    def get_by_id(self, pledge_id: UUID, tenant_id: UUID) -> Pledge | None:
        return (
            self.db.query(Pledge)
            .filter(Pledge.id == pledge_id, Pledge.tenant_id == tenant_id)
            .first()
        )

    def create(self, tenant_id: UUID, values: dict[str, Any]) -> Pledge:
        pledge = Pledge(**values, tenant_id=tenant_id)
        self.db.add(pledge)
        self.db.commit()
        self.db.refresh(pledge)
        return pledge

    def save(self, pledge: Pledge) -> Pledge:
        """Commit pending attribute changes on a pledge."""
        self.db.commit()
        self.db.refresh(pledge)
        return pledge

    # ------------------------------------------------------------------
    # Processor selection and claims
    # ------------------------------------------------------------------

    def get_due(self, tenant_id: UUID, now: datetime) -> list[Pledge]:
        """Active pledges whose next charge is at or before ``now``."""
        return (
            self.db.query(Pledge)
            .filter(
                Pledge.tenant_id == tenant_id,
                Pledge.status == PledgeStatus.ACTIVE.value,
                Pledge.next_charge_at <= now,
                _unlocked(now),
            )
            .order_by(Pledge.next_charge_at.asc())
            .all()
        )

    def get_retryable(
        self,
        tenant_id: UUID,
        failed_before: datetime,
        now: datetime,
        include_paused: bool,
    ) -> list[Pledge]:
        """Failing pledges whose last failed attempt is older than ``failed_before``."""
        statuses = retry_statuses(include_paused)
        return (
            self.db.query(Pledge)
            .filter(
                Pledge.tenant_id == tenant_id,
                Pledge.status.in_(statuses),
                Pledge.failure_count > 0,
                Pledge.last_failed_at <= failed_before,
                _unlocked(now),
            )
            .order_by(Pledge.last_failed_at.asc())
            .all()
        )

    def get_failing(self, tenant_id: UUID) -> list[Pledge]:
        """Active or paused pledges inside an unresolved failure streak."""
        return (
            self.db.query(Pledge)
            .filter(
                Pledge.tenant_id == tenant_id,
                Pledge.status.in_([PledgeStatus.ACTIVE.value, PledgeStatus.PAUSED.value]),
                Pledge.failure_count > 0,
                Pledge.failing_since.isnot(None),
            )
            .all()
        )

    def claim(
        self,
        pledge_id: UUID,
        expected_version: int,
        now: datetime,
        lease_until: datetime,
        *criteria: Any,
    ) -> Pledge | None:
        """Atomically take exclusive processing rights on a pledge.

        ``expected_version`` is the ``lock_version`` seen when the pledge was
        selected. The update only matches when the row still has that version,
        nobody else holds an unexpired lease, and every ``criteria`` clause
        (such as "still ACTIVE and due") holds against the current row.
        Returns the freshly loaded pledge to the winner and ``None`` otherwise.
        """
        result = self.db.execute(
            update(Pledge)
            .where(
                Pledge.id == pledge_id,
                Pledge.lock_version == expected_version,
                _unlocked(now),
                *criteria,
            )
            .values(
                lock_version=Pledge.lock_version + 1,
                locked_until=lease_until,
            )
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        if result.rowcount != 1:  # type: ignore[attr-defined]
            return None
        return self.db.get(Pledge, pledge_id, populate_existing=True)

    def release(self, pledge: Pledge) -> Pledge:
        """Write processing results and drop the lease in one commit."""
        pledge.locked_until = None  # type: ignore[assignment]
        pledge.lock_version = int(pledge.lock_version) + 1  # type: ignore[assignment]
        return self.save(pledge)

    def is_locked(self, pledge: Pledge, now: datetime) -> bool:
        locked_until = ensure_utc(pledge.locked_until)  # type: ignore[arg-type]
        return locked_until is not None and locked_until > now
