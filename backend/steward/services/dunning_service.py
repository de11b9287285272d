"""Dunning service: reminder scheduling for pledges stuck in a failure streak."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from steward.models.pledge import Pledge, PledgeStatus
from steward.models.shared import ensure_utc
from steward.repositories.pledge_repository import PledgeRepository
from steward.schemas.pledge_settings import PledgeSettingsValues

logger = logging.getLogger(__name__)


@dataclass
class DunningReminder:
    """One reminder owed to a donor."""

    pledge_id: UUID
    tenant_id: UUID
    fund_id: UUID
    donor_email: str | None
    donor_name: str | None
    amount_cents: int
    currency: str
    failure_count: int
    failure_reason: str | None
    days_failing: int
    notice_days: list[int]
    paused: bool
    failing_since: datetime | None = None


def due_notice_days(
    pledge: Pledge,
    dunning_days: list[int],
    now: datetime,
) -> list[int]:
    """Configured day offsets that are due and not yet sent for the current streak."""
    failing_since = ensure_utc(pledge.failing_since)  # type: ignore[arg-type]
    if failing_since is None or not pledge.failure_count:
        return []
    elapsed = now - failing_since
    already_sent = set(pledge.dunning_notices_sent or [])
    return sorted(
        day
        for day in set(dunning_days)
        if day not in already_sent and elapsed.total_seconds() >= day * 86400
    )


class DunningService:
    """Finds failing pledges that are owed a reminder.

    Collecting does not change anything. Offsets are recorded only through
    ``mark_sent`` once the reminder has been handled, so a delivery failure
    leaves the reminder due for the next run.
    """

    def __init__(self, db: Session):
        self.db = db
        self.pledge_repo = PledgeRepository(db)

    def collect_due_reminders(
        self,
        tenant_id: UUID,
        settings: PledgeSettingsValues,
        now: datetime,
    ) -> list[DunningReminder]:
        """Return the reminders due now.

        All due day offsets of a pledge collapse into one reminder, so a donor
        receives at most one email per run.
        """
        now = ensure_utc(now)  # type: ignore[assignment]
        reminders: list[DunningReminder] = []
        if not settings.dunning_email_days:
            return reminders

        for pledge in self.pledge_repo.get_failing(tenant_id):
            days = due_notice_days(pledge, settings.dunning_email_days, now)
            if not days:
                continue
            failing_since = ensure_utc(pledge.failing_since)  # type: ignore[arg-type]
            reminders.append(
                DunningReminder(
                    pledge_id=pledge.id,  # type: ignore[arg-type]
                    tenant_id=pledge.tenant_id,  # type: ignore[arg-type]
                    fund_id=pledge.fund_id,  # type: ignore[arg-type]
                    donor_email=pledge.donor_email,  # type: ignore[arg-type]
                    donor_name=pledge.donor_name,  # type: ignore[arg-type]
                    amount_cents=int(pledge.amount_cents),
                    currency=str(pledge.currency),
                    failure_count=int(pledge.failure_count),
                    failure_reason=pledge.last_failure_reason,  # type: ignore[arg-type]
                    days_failing=(now - failing_since).days,  # type: ignore[operator]
                    notice_days=days,
                    paused=pledge.status == PledgeStatus.PAUSED.value,
                    failing_since=failing_since,
                )
            )

        logger.info("Collected %d dunning reminders for tenant %s", len(reminders), tenant_id)
        return reminders

    def mark_sent(self, reminder: DunningReminder) -> bool:
        """Record the reminder's day offsets as notified.

        Does nothing when the pledge has left the failure streak the reminder
        was built for, so a stale reminder cannot mark days of a new streak.
        """
        pledge = self.pledge_repo.get_by_id(reminder.pledge_id, reminder.tenant_id)
        if pledge is None:
            return False
        if ensure_utc(pledge.failing_since) != reminder.failing_since:  # type: ignore[arg-type]
            return False
        sent = set(pledge.dunning_notices_sent or [])
        pledge.dunning_notices_sent = sorted(sent | set(reminder.notice_days))  # type: ignore[assignment]
        self.pledge_repo.save(pledge)
        return True
