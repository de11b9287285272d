"""Pledge processor: charges due pledges and retries failing ones.

Each pledge is claimed atomically before it is charged, so overlapping runs
(a cron tick and an admin clicking "process") never charge the same pledge
twice. A charge failure is an outcome, not an error: it is recorded on the
pledge and the batch moves on. Database errors propagate and abort the run.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from steward.core.config import settings as app_settings
from steward.models.pledge import Pledge, PledgeStatus
from steward.models.pledge_charge import ChargeKind
from steward.models.shared import ensure_utc
from steward.repositories.donation_record_repository import DonationRecordRepository
from steward.repositories.pledge_charge_repository import PledgeChargeRepository
from steward.repositories.pledge_repository import PledgeRepository, retry_statuses
from steward.schemas.pledge_settings import PledgeSettingsValues
from steward.services.audit_service import ACTOR_SYSTEM, AuditService
from steward.services.payment_gateway import ChargeResult, PaymentGatewayBase
from steward.services.pledge_state import apply_charge_failure, apply_charge_success

logger = logging.getLogger(__name__)

PROCESSING_ERROR = "Payment processing error"


@dataclass
class PledgeOutcome:
    """Result of charging one pledge."""

    pledge_id: UUID
    success: bool
    status: str
    transaction_id: str | None = None
    error: str | None = None
    paused: bool = False
    resumed: bool = False
    completed: bool = False


@dataclass
class ProcessingSummary:
    """Counts and per-pledge results of one processor run."""

    action: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    paused: int = 0
    completed: int = 0
    resumed: int = 0
    skipped: int = 0
    results: list[PledgeOutcome] = field(default_factory=list)

    @property
    def message(self) -> str:
        verb = "Retried" if self.action == "retry" else "Processed"
        message = f"{verb} {self.processed} pledges: {self.succeeded} succeeded, {self.failed} failed"
        if self.skipped:
            message += f", {self.skipped} skipped"
        return message

    def record(self, outcome: PledgeOutcome) -> None:
        self.processed += 1
        self.results.append(outcome)
        if outcome.success:
            self.succeeded += 1
        else:
            self.failed += 1
        self.paused += int(outcome.paused)
        self.resumed += int(outcome.resumed)
        self.completed += int(outcome.completed)

    def to_dict(self) -> dict[str, Any]:
        return {
            "action": self.action,
            "message": self.message,
            "processed": self.processed,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "paused": self.paused,
            "completed": self.completed,
            "resumed": self.resumed,
            "skipped": self.skipped,
            "results": [
                {
                    "pledge_id": outcome.pledge_id,
                    "success": outcome.success,
                    "status": outcome.status,
                    "transaction_id": outcome.transaction_id,
                    "error": outcome.error,
                }
                for outcome in self.results
            ],
        }


def _now(now: datetime | None) -> datetime:
    return ensure_utc(now) if now is not None else datetime.now(UTC)  # type: ignore[return-value]


def _selected(pledges: list[Pledge]) -> list[tuple[UUID, int]]:
    """Pin each candidate to the version it had when the batch selected it."""
    return [(pledge.id, int(pledge.lock_version)) for pledge in pledges]  # type: ignore[misc]


class PledgeProcessor:
    """Runs scheduled charges and retries for one tenant at a time.

    Settings are passed into every call rather than read from storage, so a
    run always applies exactly the rules its caller resolved.
    """

    def __init__(self, db: Session, gateway: PaymentGatewayBase):
        self.db = db
        self.gateway = gateway
        self.pledge_repo = PledgeRepository(db)
        self.charge_repo = PledgeChargeRepository(db)
        self.donation_repo = DonationRecordRepository(db)
        self.audit_service = AuditService(db)

    def process_due_pledges(
        self,
        tenant_id: UUID,
        settings: PledgeSettingsValues,
        now: datetime | None = None,
    ) -> ProcessingSummary:
        """Charge every active pledge whose next charge date has arrived."""
        now = _now(now)
        summary = ProcessingSummary(action="process")
        due = _selected(self.pledge_repo.get_due(tenant_id, now))
        logger.info("Found %d pledges due for processing for tenant %s", len(due), tenant_id)

        for pledge_id, version in due:
            self._charge_one(
                pledge_id,
                version,
                settings,
                now,
                ChargeKind.SCHEDULED,
                summary,
                Pledge.status == PledgeStatus.ACTIVE.value,
                Pledge.next_charge_at <= now,
            )

        logger.info("%s for tenant %s", summary.message, tenant_id)
        return summary

    def retry_failed_pledges(
        self,
        tenant_id: UUID,
        settings: PledgeSettingsValues,
        now: datetime | None = None,
    ) -> ProcessingSummary:
        """Retry failing pledges whose last attempt is at least one retry interval old.

        Paused pledges are only retried when the tenant auto-resumes on
        success; otherwise they wait for an admin.
        """
        now = _now(now)
        summary = ProcessingSummary(action="retry")
        failed_before = now - timedelta(hours=settings.retry_interval_hours)
        include_paused = settings.auto_resume_on_success
        candidates = _selected(
            self.pledge_repo.get_retryable(tenant_id, failed_before, now, include_paused)
        )
        logger.info("Found %d pledges to retry for tenant %s", len(candidates), tenant_id)

        for pledge_id, version in candidates:
            self._charge_one(
                pledge_id,
                version,
                settings,
                now,
                ChargeKind.RETRY,
                summary,
                Pledge.status.in_(retry_statuses(include_paused)),
                Pledge.failure_count > 0,
                Pledge.last_failed_at <= failed_before,
            )

        logger.info("%s for tenant %s", summary.message, tenant_id)
        return summary

    def _charge_one(
        self,
        pledge_id: UUID,
        version: int,
        settings: PledgeSettingsValues,
        now: datetime,
        kind: ChargeKind,
        summary: ProcessingSummary,
        *still_eligible: Any,
    ) -> None:
        lease_until = now + timedelta(minutes=app_settings.PLEDGE_CLAIM_LEASE_MINUTES)
        pledge = self.pledge_repo.claim(pledge_id, version, now, lease_until, *still_eligible)
        if pledge is None:
            logger.warning("Pledge %s changed or is held by another run, skipping", pledge_id)
            summary.skipped += 1
            return

        charge = self.charge_repo.create_pending(pledge, kind)
        result = self._call_gateway(pledge, str(charge.id))

        if result.success:
            self.charge_repo.mark_succeeded(charge, result.transaction_id, now)
            transition = apply_charge_success(pledge, settings, now)
            self.pledge_repo.release(pledge)
            self.donation_repo.create_from_pledge(pledge)
        else:
            reason = result.failure_reason or PROCESSING_ERROR
            self.charge_repo.mark_failed(charge, reason, now)
            transition = apply_charge_failure(pledge, settings, now, reason)
            self.pledge_repo.release(pledge)

        if transition.status_changed:
            self.audit_service.log_status_change(
                resource_type="pledge",
                resource_id=pledge.id,  # type: ignore[arg-type]
                tenant_id=pledge.tenant_id,  # type: ignore[arg-type]
                old_status=transition.old_status,
                new_status=transition.new_status,
                actor_type=ACTOR_SYSTEM,
                metadata={"charge_id": str(charge.id), "kind": kind.value},
            )

        summary.record(
            PledgeOutcome(
                pledge_id=pledge.id,  # type: ignore[arg-type]
                success=result.success,
                status=transition.new_status,
                transaction_id=result.transaction_id if result.success else None,
                error=None if result.success else (result.failure_reason or PROCESSING_ERROR),
                paused=transition.paused,
                resumed=transition.resumed,
                completed=transition.completed,
            )
        )

    def _call_gateway(self, pledge: Pledge, charge_id: str) -> ChargeResult:
        try:
            return self.gateway.charge(
                amount_cents=int(pledge.amount_cents),
                currency=str(pledge.currency),
                payment_method_token=pledge.payment_method_token,  # type: ignore[arg-type]
                idempotency_key=charge_id,
                description="Recurring pledge payment",
                metadata={
                    "pledge_id": str(pledge.id),
                    "tenant_id": str(pledge.tenant_id),
                    "fund_id": str(pledge.fund_id),
                },
            )
        except Exception:
            logger.exception("Payment gateway error for pledge %s", pledge.id)
            return ChargeResult(success=False, failure_reason=PROCESSING_ERROR)
