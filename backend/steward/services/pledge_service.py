"""Pledge lifecycle operations initiated by admins."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from steward.models.fund import Fund
from steward.models.pledge import Pledge, PledgeStatus
from steward.models.shared import ensure_utc, utc_now
from steward.repositories.fund_repository import FundRepository
from steward.repositories.pledge_repository import PledgeRepository
from steward.schemas.pledge import AdminOverride, PledgeCreate, PledgeUpdate
from steward.services.audit_service import ACTOR_ADMIN, AuditService
from steward.services.pledge_schedule import first_charge_at
from steward.services.pledge_state import apply_admin_override, cancel, is_terminal, resume

logger = logging.getLogger(__name__)

# Fields a regular update may clear by sending null.
NULLABLE_FIELDS = frozenset(
    {
        "end_date",
        "donor_name",
        "donor_email",
        "payment_method_token",
        "payment_method_last4",
        "payment_method_brand",
        "dedication_note",
    }
)

# Fields mirrored into the audit trail. The payment method token is left out.
AUDITED_FIELDS = (
    "amount_cents",
    "frequency",
    "fund_id",
    "end_date",
    "donor_name",
    "donor_email",
    "payment_method_last4",
    "payment_method_brand",
    "is_anonymous",
    "dedication_note",
)


def _snapshot(pledge: Pledge) -> dict[str, Any]:
    data: dict[str, Any] = {}
    for key in AUDITED_FIELDS:
        value = getattr(pledge, key)
        if isinstance(value, datetime):
            value = ensure_utc(value).isoformat()  # type: ignore[union-attr]
        elif isinstance(value, UUID):
            value = str(value)
        data[key] = value
    return data


def check_amount(fund: Fund, amount_cents: int) -> None:
    """Enforce the fund's minimum and maximum gift."""
    if fund.min_amount_cents and amount_cents < fund.min_amount_cents:
        raise ValueError(f"Minimum amount is {fund.min_amount_cents / 100:.2f} {fund.currency}")
    if fund.max_amount_cents and amount_cents > fund.max_amount_cents:
        raise ValueError(f"Maximum amount is {fund.max_amount_cents / 100:.2f} {fund.currency}")


class PledgeService:
    """Create, edit, override, cancel and resume pledges, auditing every change."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = PledgeRepository(db)
        self.fund_repo = FundRepository(db)
        self.audit_service = AuditService(db)

    def _active_fund(self, fund_id: UUID, tenant_id: UUID) -> Fund:
        fund = self.fund_repo.get_active_by_id(fund_id, tenant_id)
        if fund is None:
            raise ValueError("Fund not found or is archived")
        return fund

    def create_pledge(
        self,
        tenant_id: UUID,
        data: PledgeCreate,
        actor_id: str | None = None,
    ) -> Pledge:
        """Create an ACTIVE pledge whose first charge is one period after its start."""
        fund = self._active_fund(data.fund_id, tenant_id)
        check_amount(fund, data.amount_cents)

        start_date = ensure_utc(data.start_date)
        end_date = ensure_utc(data.end_date)
        if end_date is not None and end_date <= start_date:  # type: ignore[operator]
            raise ValueError("End date must be after start date")

        values = data.model_dump()
        values.update(
            frequency=data.frequency.value,
            currency=data.currency.upper(),
            start_date=start_date,
            end_date=end_date,
            next_charge_at=first_charge_at(start_date, data.frequency.value),  # type: ignore[arg-type]
            status=PledgeStatus.ACTIVE.value,
        )
        pledge = self.repo.create(tenant_id, values)

        self.audit_service.log_create(
            resource_type="pledge",
            resource_id=pledge.id,  # type: ignore[arg-type]
            tenant_id=tenant_id,
            actor_type=ACTOR_ADMIN,
            actor_id=actor_id,
            data=_snapshot(pledge),
        )
        return pledge

    def update_pledge(
        self,
        pledge: Pledge,
        data: PledgeUpdate,
        actor_id: str | None = None,
    ) -> Pledge:
        """Apply a regular (non-override) edit. Terminal pledges cannot be edited."""
        if is_terminal(str(pledge.status)):
            raise ValueError(f"Cannot update a {str(pledge.status).lower()} pledge")

        tenant_id: UUID = pledge.tenant_id  # type: ignore[assignment]
        changes = data.model_dump(exclude_unset=True, exclude={"admin_override"})
        changes = {
            key: value
            for key, value in changes.items()
            if value is not None or key in NULLABLE_FIELDS
        }

        fund_id = changes.get("fund_id") or pledge.fund_id
        if "fund_id" in changes and changes["fund_id"] != pledge.fund_id:
            fund = self._active_fund(changes["fund_id"], tenant_id)
        else:
            fund = self.fund_repo.get_by_id(fund_id, tenant_id)  # type: ignore[arg-type]
        amount = changes.get("amount_cents", pledge.amount_cents)
        if fund is not None and ("amount_cents" in changes or "fund_id" in changes):
            check_amount(fund, int(amount))

        if changes.get("end_date") is not None:
            changes["end_date"] = ensure_utc(changes["end_date"])
            if changes["end_date"] <= ensure_utc(pledge.start_date):  # type: ignore[arg-type, operator]
                raise ValueError("End date must be after start date")
        if changes.get("frequency") is not None:
            changes["frequency"] = changes["frequency"].value

        before = _snapshot(pledge)
        for key, value in changes.items():
            setattr(pledge, key, value)
        pledge = self.repo.save(pledge)

        self.audit_service.log_update(
            resource_type="pledge",
            resource_id=pledge.id,  # type: ignore[arg-type]
            tenant_id=tenant_id,
            actor_type=ACTOR_ADMIN,
            actor_id=actor_id,
            old_data=before,
            new_data=_snapshot(pledge),
        )
        return pledge

    def override_pledge(
        self,
        pledge: Pledge,
        override: AdminOverride,
        actor_id: str | None = None,
        now: datetime | None = None,
    ) -> Pledge:
        """Force status, next charge date or failure count, bypassing the state machine."""
        now = ensure_utc(now) if now is not None else utc_now()
        changes = apply_admin_override(
            pledge,
            now,  # type: ignore[arg-type]
            status=override.status,
            next_charge_at=override.next_charge_at,
            failure_count=override.failure_count,
        )
        pledge = self.repo.save(pledge)
        if changes:
            self.audit_service.log_admin_override(
                resource_type="pledge",
                resource_id=pledge.id,  # type: ignore[arg-type]
                tenant_id=pledge.tenant_id,  # type: ignore[arg-type]
                changes=changes,
                actor_id=actor_id,
            )
            logger.info("Admin override on pledge %s by %s: %s", pledge.id, actor_id, changes)
        return pledge

    def cancel_pledge(
        self,
        pledge: Pledge,
        actor_id: str | None = None,
        now: datetime | None = None,
    ) -> Pledge:
        transition = cancel(pledge, ensure_utc(now) if now is not None else utc_now())  # type: ignore[arg-type]
        pledge = self.repo.save(pledge)
        if transition.status_changed:
            self.audit_service.log_status_change(
                resource_type="pledge",
                resource_id=pledge.id,  # type: ignore[arg-type]
                tenant_id=pledge.tenant_id,  # type: ignore[arg-type]
                old_status=transition.old_status,
                new_status=transition.new_status,
                actor_type=ACTOR_ADMIN,
                actor_id=actor_id,
            )
        return pledge

    def resume_pledge(
        self,
        pledge: Pledge,
        actor_id: str | None = None,
        now: datetime | None = None,
    ) -> Pledge:
        """Resume a paused pledge with a clean failure slate."""
        transition = resume(pledge, ensure_utc(now) if now is not None else utc_now())  # type: ignore[arg-type]
        pledge = self.repo.save(pledge)
        self.audit_service.log_status_change(
            resource_type="pledge",
            resource_id=pledge.id,  # type: ignore[arg-type]
            tenant_id=pledge.tenant_id,  # type: ignore[arg-type]
            old_status=transition.old_status,
            new_status=transition.new_status,
            actor_type=ACTOR_ADMIN,
            actor_id=actor_id,
        )
        return pledge
