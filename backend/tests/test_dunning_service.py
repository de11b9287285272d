"""Tests for dunning reminder scheduling."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace

import pytest
from sqlalchemy.orm import Session

from steward.core.database import get_db
from steward.models.fund import Fund
from steward.models.pledge import Pledge
from steward.schemas.pledge_settings import PledgeSettingsValues
from steward.services.dunning_service import DunningService, due_notice_days
from tests.conftest import DEFAULT_TENANT_ID

NOW = datetime(2026, 6, 15, 9, 0, tzinfo=UTC)


@pytest.fixture
def db_session():
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def fund(db_session: Session) -> Fund:
    fund = Fund(tenant_id=DEFAULT_TENANT_ID, name="Missions", type="SPECIAL", currency="USD")
    db_session.add(fund)
    db_session.commit()
    db_session.refresh(fund)
    return fund


def _settings(days: list[int]) -> PledgeSettingsValues:
    return PledgeSettingsValues(
        max_failures_before_pause=3,
        retry_interval_hours=24,
        grace_period_days=7,
        auto_resume_on_success=True,
        dunning_email_days=days,
    )


def _failing_pledge(db: Session, fund: Fund, days_failing: float, **overrides) -> Pledge:  # type: ignore[no-untyped-def]
    values = {
        "tenant_id": DEFAULT_TENANT_ID,
        "fund_id": fund.id,
        "amount_cents": 2500,
        "currency": "USD",
        "frequency": "MONTHLY",
        "status": "ACTIVE",
        "start_date": NOW - timedelta(days=60),
        "next_charge_at": NOW + timedelta(hours=12),
        "donor_name": "Ruth Miller",
        "donor_email": "ruth@example.com",
        "failure_count": 2,
        "failing_since": NOW - timedelta(days=days_failing),
        "last_failed_at": NOW - timedelta(hours=12),
        "last_failure_reason": "Card declined",
    }
    values.update(overrides)
    pledge = Pledge(**values)
    db.add(pledge)
    db.commit()
    db.refresh(pledge)
    return pledge


class TestDueNoticeDays:
    def test_due_days(self):
        pledge = SimpleNamespace(
            failing_since=NOW - timedelta(days=8), failure_count=2, dunning_notices_sent=[3]
        )
        assert due_notice_days(pledge, [3, 7, 14], NOW) == [7]

    def test_healthy_pledge_owes_nothing(self):
        pledge = SimpleNamespace(failing_since=None, failure_count=0, dunning_notices_sent=[])
        assert due_notice_days(pledge, [0, 3], NOW) == []

    def test_day_zero_is_due_immediately(self):
        pledge = SimpleNamespace(failing_since=NOW, failure_count=1, dunning_notices_sent=[])
        assert due_notice_days(pledge, [0], NOW) == [0]


class TestCollectDueReminders:
    def test_collects_without_marking(self, db_session, fund):
        pledge = _failing_pledge(db_session, fund, days_failing=4)

        reminders = DunningService(db_session).collect_due_reminders(
            DEFAULT_TENANT_ID, _settings([3, 7]), NOW
        )

        assert len(reminders) == 1
        reminder = reminders[0]
        assert reminder.pledge_id == pledge.id
        assert reminder.notice_days == [3]
        assert reminder.days_failing == 4
        assert reminder.failure_reason == "Card declined"
        assert reminder.paused is False
        assert reminder.failing_since == NOW - timedelta(days=4)
        db_session.refresh(pledge)
        assert pledge.dunning_notices_sent == []

    def test_same_day_not_sent_twice(self, db_session, fund):
        _failing_pledge(db_session, fund, days_failing=4)
        service = DunningService(db_session)

        first = service.collect_due_reminders(DEFAULT_TENANT_ID, _settings([3, 7]), NOW)
        service.mark_sent(first[0])
        second = service.collect_due_reminders(DEFAULT_TENANT_ID, _settings([3, 7]), NOW)

        assert second == []

    def test_unmarked_reminder_is_due_again(self, db_session, fund):
        _failing_pledge(db_session, fund, days_failing=4)
        service = DunningService(db_session)

        service.collect_due_reminders(DEFAULT_TENANT_ID, _settings([3]), NOW)
        again = service.collect_due_reminders(DEFAULT_TENANT_ID, _settings([3]), NOW)

        assert [r.notice_days for r in again] == [[3]]

    def test_overdue_days_collapse_into_one_reminder(self, db_session, fund):
        pledge = _failing_pledge(db_session, fund, days_failing=15)
        service = DunningService(db_session)

        reminders = service.collect_due_reminders(DEFAULT_TENANT_ID, _settings([3, 7, 14]), NOW)
        service.mark_sent(reminders[0])

        assert len(reminders) == 1
        assert reminders[0].notice_days == [3, 7, 14]
        db_session.refresh(pledge)
        assert pledge.dunning_notices_sent == [3, 7, 14]

    def test_paused_pledges_included(self, db_session, fund):
        _failing_pledge(db_session, fund, days_failing=8, status="PAUSED", failure_count=3)

        reminders = DunningService(db_session).collect_due_reminders(
            DEFAULT_TENANT_ID, _settings([7]), NOW
        )

        assert reminders[0].paused is True

    def test_cancelled_pledges_skipped(self, db_session, fund):
        _failing_pledge(db_session, fund, days_failing=8, status="CANCELLED")

        reminders = DunningService(db_session).collect_due_reminders(
            DEFAULT_TENANT_ID, _settings([7]), NOW
        )

        assert reminders == []

    def test_no_configured_days(self, db_session, fund):
        _failing_pledge(db_session, fund, days_failing=8)

        reminders = DunningService(db_session).collect_due_reminders(
            DEFAULT_TENANT_ID, _settings([]), NOW
        )

        assert reminders == []


class TestMarkSent:
    def test_records_notice_days(self, db_session, fund):
        pledge = _failing_pledge(db_session, fund, days_failing=8, dunning_notices_sent=[3])
        service = DunningService(db_session)
        reminder = service.collect_due_reminders(DEFAULT_TENANT_ID, _settings([3, 7]), NOW)[0]

        assert service.mark_sent(reminder) is True

        db_session.refresh(pledge)
        assert pledge.dunning_notices_sent == [3, 7]

    def test_ignored_after_streak_ends(self, db_session, fund):
        pledge = _failing_pledge(db_session, fund, days_failing=8)
        service = DunningService(db_session)
        reminder = service.collect_due_reminders(DEFAULT_TENANT_ID, _settings([7]), NOW)[0]
        pledge.failure_count = 0
        pledge.failing_since = None
        db_session.commit()

        assert service.mark_sent(reminder) is False

        db_session.refresh(pledge)
        assert pledge.dunning_notices_sent == []
