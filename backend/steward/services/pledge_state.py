"""Pledge state machine.

Pure functions that mutate a pledge in memory. Persisting the result and
recording audit entries is the caller's job. Settings are always passed in
explicitly so every transition can be tested without a database.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from steward.models.pledge import PERSISTED_STATUSES, TERMINAL_STATUSES, Pledge, PledgeStatus
from steward.models.shared import ensure_utc
from steward.schemas.pledge_settings import PledgeSettingsValues
from steward.services.pledge_schedule import add_period, next_charge_after, retry_at

ALLOWED_TRANSITIONS: dict[PledgeStatus, frozenset[PledgeStatus]] = {
    PledgeStatus.ACTIVE: frozenset(
        {PledgeStatus.PAUSED, PledgeStatus.CANCELLED, PledgeStatus.COMPLETED}
    ),
    PledgeStatus.PAUSED: frozenset({PledgeStatus.ACTIVE, PledgeStatus.CANCELLED}),
    PledgeStatus.CANCELLED: frozenset(),
    PledgeStatus.COMPLETED: frozenset(),
}


@dataclass
class Transition:
    """What a single state-machine step did to a pledge."""

    old_status: str
    new_status: str
    paused: bool = False
    resumed: bool = False
    completed: bool = False

    @property
    def status_changed(self) -> bool:
        return self.old_status != self.new_status


def is_terminal(status: str) -> bool:
    return PledgeStatus(status) in TERMINAL_STATUSES


def check_transition(old: str, new: str) -> None:
    """Raise ValueError unless ``old -> new`` is a legal state-machine move."""
    old_status = PledgeStatus(old)
    new_status = PledgeStatus(new)
    if new_status not in ALLOWED_TRANSITIONS.get(old_status, frozenset()):
        raise ValueError(f"Cannot transition pledge from {old_status.value} to {new_status.value}")


def _reset_failures(pledge: Pledge) -> None:
    pledge.failure_count = 0  # type: ignore[assignment]
    pledge.failing_since = None  # type: ignore[assignment]
    pledge.dunning_notices_sent = []  # type: ignore[assignment]


def schedule_anchor(pledge: Pledge) -> datetime:
    """Date the regular schedule counts whole periods from.

    The start date, unless an admin moved the next charge or resumed the
    pledge, which restarts the schedule from the new date.
    """
    for value in (pledge.schedule_anchor_at, pledge.start_date):
        if value is not None:
            return value  # type: ignore[return-value]
    return pledge.next_charge_at  # type: ignore[return-value]


def apply_charge_success(
    pledge: Pledge,
    settings: PledgeSettingsValues,
    now: datetime,
) -> Transition:
    """Record a successful charge.

    Resets failure bookkeeping, bumps the running totals, and schedules the
    next charge on the grid set by ``schedule_anchor``, so retry delays do
    not shift it. A paused pledge is resumed only when the tenant allows
    auto-resume. A pledge whose end date falls on or before its next charge
    is completed.
    """
    old_status = str(pledge.status)
    transition = Transition(old_status=old_status, new_status=old_status)

    _reset_failures(pledge)
    pledge.total_amount_cents = int(pledge.total_amount_cents or 0) + int(pledge.amount_cents)  # type: ignore[assignment]
    pledge.total_charges_count = int(pledge.total_charges_count or 0) + 1  # type: ignore[assignment]
    pledge.last_charged_at = now  # type: ignore[assignment]
    pledge.next_charge_at = next_charge_after(schedule_anchor(pledge), str(pledge.frequency), now)  # type: ignore[assignment, arg-type]

    if old_status == PledgeStatus.PAUSED.value and settings.auto_resume_on_success:
        pledge.status = PledgeStatus.ACTIVE.value  # type: ignore[assignment]
        pledge.paused_at = None  # type: ignore[assignment]
        transition.resumed = True

    end_date = ensure_utc(pledge.end_date)  # type: ignore[arg-type]
    if (
        pledge.status == PledgeStatus.ACTIVE.value
        and end_date is not None
        and end_date <= ensure_utc(pledge.next_charge_at)  # type: ignore[arg-type, operator]
    ):
        pledge.status = PledgeStatus.COMPLETED.value  # type: ignore[assignment]
        pledge.completed_at = now  # type: ignore[assignment]
        transition.completed = True

    transition.new_status = str(pledge.status)
    return transition


def apply_charge_failure(
    pledge: Pledge,
    settings: PledgeSettingsValues,
    now: datetime,
    reason: str,
) -> Transition:
    """Record a failed charge.

    An active pledge is paused once its failure count reaches the tenant's
    threshold. Below the threshold it is rescheduled after the retry
    interval. A paused pledge only accumulates failures.
    """
    old_status = str(pledge.status)
    transition = Transition(old_status=old_status, new_status=old_status)

    failures = int(pledge.failure_count or 0)
    if failures == 0:
        pledge.failing_since = now  # type: ignore[assignment]
        pledge.dunning_notices_sent = []  # type: ignore[assignment]
    failures += 1
    pledge.failure_count = failures  # type: ignore[assignment]
    pledge.last_failed_at = now  # type: ignore[assignment]
    pledge.last_failure_reason = reason  # type: ignore[assignment]

    if old_status == PledgeStatus.ACTIVE.value:
        if failures >= settings.max_failures_before_pause:
            pledge.status = PledgeStatus.PAUSED.value  # type: ignore[assignment]
            pledge.paused_at = now  # type: ignore[assignment]
            transition.paused = True
        else:
            pledge.next_charge_at = retry_at(now, settings.retry_interval_hours)  # type: ignore[assignment]

    transition.new_status = str(pledge.status)
    return transition


def resume(pledge: Pledge, now: datetime) -> Transition:
    """Admin resume of a paused pledge: clean slate, next charge one period out."""
    old_status = str(pledge.status)
    if old_status != PledgeStatus.PAUSED.value:
        raise ValueError("Only paused pledges can be resumed")
    check_transition(old_status, PledgeStatus.ACTIVE.value)
    _reset_failures(pledge)
    pledge.status = PledgeStatus.ACTIVE.value  # type: ignore[assignment]
    pledge.paused_at = None  # type: ignore[assignment]
    pledge.next_charge_at = add_period(now, str(pledge.frequency))  # type: ignore[assignment]
    pledge.schedule_anchor_at = pledge.next_charge_at
    return Transition(old_status=old_status, new_status=PledgeStatus.ACTIVE.value, resumed=True)


def cancel(pledge: Pledge, now: datetime) -> Transition:
    """Cancel a pledge. Cancelling an already cancelled pledge is a no-op."""
    old_status = str(pledge.status)
    if old_status == PledgeStatus.CANCELLED.value:
        return Transition(old_status=old_status, new_status=old_status)
    check_transition(old_status, PledgeStatus.CANCELLED.value)
    pledge.status = PledgeStatus.CANCELLED.value  # type: ignore[assignment]
    pledge.cancelled_at = now  # type: ignore[assignment]
    return Transition(old_status=old_status, new_status=PledgeStatus.CANCELLED.value)


def _audit_value(value: Any) -> Any:
    if isinstance(value, datetime):
        return ensure_utc(value).isoformat()  # type: ignore[union-attr]
    return value


def apply_admin_override(
    pledge: Pledge,
    now: datetime,
    status: PledgeStatus | None = None,
    next_charge_at: datetime | None = None,
    failure_count: int | None = None,
) -> dict[str, dict[str, Any]]:
    """Force pledge fields, bypassing the transition table.

    Only persisted statuses may be forced; FAILED is a derived view. Returns
    the audit diff of the fields that actually changed.
    """
    if status is not None and status not in PERSISTED_STATUSES:
        raise ValueError(f"Status {status.value} cannot be set directly")
    if failure_count is not None and failure_count < 0:
        raise ValueError("failureCount must be non-negative")

    before = {
        "status": pledge.status,
        "next_charge_at": _audit_value(pledge.next_charge_at),
        "failure_count": pledge.failure_count,
    }

    if status is not None and status.value != pledge.status:
        pledge.status = status.value  # type: ignore[assignment]
        if status == PledgeStatus.PAUSED:
            pledge.paused_at = now  # type: ignore[assignment]
        elif status == PledgeStatus.ACTIVE:
            pledge.paused_at = None  # type: ignore[assignment]
        elif status == PledgeStatus.CANCELLED:
            pledge.cancelled_at = now  # type: ignore[assignment]
        elif status == PledgeStatus.COMPLETED:
            pledge.completed_at = now  # type: ignore[assignment]

    if next_charge_at is not None:
        pledge.next_charge_at = ensure_utc(next_charge_at)  # type: ignore[assignment]
        pledge.schedule_anchor_at = pledge.next_charge_at

    if failure_count is not None:
        if failure_count == 0:
            _reset_failures(pledge)
        else:
            if pledge.failing_since is None:
                pledge.failing_since = now  # type: ignore[assignment]
            pledge.failure_count = failure_count  # type: ignore[assignment]

    after = {
        "status": pledge.status,
        "next_charge_at": _audit_value(pledge.next_charge_at),
        "failure_count": pledge.failure_count,
    }
    return {
        key: {"old": before[key], "new": after[key]}
        for key in before
        if before[key] != after[key]
    }


def is_at_risk(pledge: Pledge, settings: PledgeSettingsValues, now: datetime) -> bool:
    """Active pledge that has kept failing for longer than the grace period."""
    if pledge.status != PledgeStatus.ACTIVE.value or not pledge.failure_count:
        return False
    failing_since = ensure_utc(pledge.failing_since)  # type: ignore[arg-type]
    if failing_since is None:
        return False
    return failing_since <= now - timedelta(days=settings.grace_period_days)


def display_status(pledge: Pledge, settings: PledgeSettingsValues, now: datetime) -> str:
    """Status shown to admins: the stored status, or FAILED for at-risk pledges."""
    if is_at_risk(pledge, settings, now):
        return PledgeStatus.FAILED.value
    return str(pledge.status)
