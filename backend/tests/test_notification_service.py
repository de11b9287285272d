"""Tests for donor notifications after processing runs and dunning."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import aiosmtplib
import pytest
from sqlalchemy.orm import Session

from steward.core.database import get_db
from steward.models.fund import Fund
from steward.models.pledge import Pledge
from steward.schemas.pledge_settings import PledgeSettingsValues
from steward.services.dunning_service import DunningReminder, DunningService
from steward.services.notification_service import DEFAULT_FUND_NAME, PledgeNotificationService
from steward.services.pledge_processor import PledgeOutcome, ProcessingSummary
from tests.conftest import DEFAULT_TENANT_ID

NOW = datetime(2026, 6, 15, 12, tzinfo=UTC)


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
    fund = Fund(tenant_id=DEFAULT_TENANT_ID, name="Building Fund", type="PROJECT", currency="USD")
    db_session.add(fund)
    db_session.commit()
    db_session.refresh(fund)
    return fund


@pytest.fixture
def email_service() -> MagicMock:
    service = MagicMock()
    service.send_pledge_receipt = AsyncMock(return_value=True)
    service.send_pledge_failure = AsyncMock(return_value=True)
    service.send_dunning_reminder = AsyncMock(return_value=True)
    return service


def _pledge(db: Session, fund: Fund, **overrides) -> Pledge:  # type: ignore[no-untyped-def]
    values = {
        "tenant_id": DEFAULT_TENANT_ID,
        "fund_id": fund.id,
        "amount_cents": 5000,
        "currency": "USD",
        "frequency": "MONTHLY",
        "status": "ACTIVE",
        "start_date": NOW - timedelta(days=30),
        "next_charge_at": NOW + timedelta(days=30),
        "last_charged_at": NOW,
        "donor_name": "Ruth Miller",
        "donor_email": "ruth@example.com",
    }
    values.update(overrides)
    pledge = Pledge(**values)
    db.add(pledge)
    db.commit()
    db.refresh(pledge)
    return pledge


def _summary(*outcomes: PledgeOutcome) -> ProcessingSummary:
    summary = ProcessingSummary(action="process")
    for outcome in outcomes:
        summary.record(outcome)
    return summary


def _reminder(fund_id, **overrides) -> DunningReminder:  # type: ignore[no-untyped-def]
    values = {
        "pledge_id": uuid4(),
        "tenant_id": DEFAULT_TENANT_ID,
        "fund_id": fund_id,
        "donor_email": "ruth@example.com",
        "donor_name": "Ruth Miller",
        "amount_cents": 5000,
        "currency": "USD",
        "failure_count": 2,
        "failure_reason": "Card declined",
        "days_failing": 3,
        "notice_days": [3],
        "paused": False,
    }
    values.update(overrides)
    return DunningReminder(**values)


class TestNotifyOutcomes:
    @pytest.mark.asyncio
    async def test_receipt_for_success(self, db_session, fund, email_service):
        pledge = _pledge(db_session, fund)
        summary = _summary(
            PledgeOutcome(pledge_id=pledge.id, success=True, status="ACTIVE", transaction_id="t1")
        )

        sent = await PledgeNotificationService(db_session, email_service).notify_outcomes(
            DEFAULT_TENANT_ID, summary
        )

        assert sent == 1
        kwargs = email_service.send_pledge_receipt.call_args.kwargs
        assert kwargs["fund_name"] == "Building Fund"
        assert kwargs["transaction_id"] == "t1"
        assert kwargs["next_charge_at"] == NOW + timedelta(days=30)

    @pytest.mark.asyncio
    async def test_completed_pledge_has_no_next_charge(self, db_session, fund, email_service):
        pledge = _pledge(db_session, fund, status="COMPLETED")
        summary = _summary(
            PledgeOutcome(pledge_id=pledge.id, success=True, status="COMPLETED", completed=True)
        )

        await PledgeNotificationService(db_session, email_service).notify_outcomes(
            DEFAULT_TENANT_ID, summary
        )

        assert email_service.send_pledge_receipt.call_args.kwargs["next_charge_at"] is None

    @pytest.mark.asyncio
    async def test_failure_notice(self, db_session, fund, email_service):
        pledge = _pledge(db_session, fund, status="PAUSED")
        summary = _summary(
            PledgeOutcome(
                pledge_id=pledge.id, success=False, status="PAUSED", error="Card declined", paused=True
            )
        )

        await PledgeNotificationService(db_session, email_service).notify_outcomes(
            DEFAULT_TENANT_ID, summary
        )

        kwargs = email_service.send_pledge_failure.call_args.kwargs
        assert kwargs["reason"] == "Card declined"
        assert kwargs["paused"] is True

    @pytest.mark.asyncio
    async def test_pledge_without_email_skipped(self, db_session, fund, email_service):
        pledge = _pledge(db_session, fund, donor_email=None)
        summary = _summary(PledgeOutcome(pledge_id=pledge.id, success=True, status="ACTIVE"))

        sent = await PledgeNotificationService(db_session, email_service).notify_outcomes(
            DEFAULT_TENANT_ID, summary
        )

        assert sent == 0
        email_service.send_pledge_receipt.assert_not_called()

    @pytest.mark.asyncio
    async def test_smtp_error_does_not_propagate(self, db_session, fund, email_service):
        first = _pledge(db_session, fund)
        second = _pledge(db_session, fund)
        email_service.send_pledge_receipt = AsyncMock(
            side_effect=[aiosmtplib.SMTPException("connection lost"), True]
        )
        summary = _summary(
            PledgeOutcome(pledge_id=first.id, success=True, status="ACTIVE"),
            PledgeOutcome(pledge_id=second.id, success=True, status="ACTIVE"),
        )

        sent = await PledgeNotificationService(db_session, email_service).notify_outcomes(
            DEFAULT_TENANT_ID, summary
        )

        assert sent == 1
        assert email_service.send_pledge_receipt.await_count == 2


class TestSendReminders:
    @pytest.mark.asyncio
    async def test_sends_each_reminder(self, db_session, fund, email_service):
        reminders = [_reminder(fund.id), _reminder(fund.id, paused=True)]

        sent = await PledgeNotificationService(db_session, email_service).send_reminders(reminders)

        assert sent == 2
        kwargs = email_service.send_dunning_reminder.call_args.kwargs
        assert kwargs["fund_name"] == "Building Fund"
        assert kwargs["paused"] is True

    @pytest.mark.asyncio
    async def test_unknown_fund_uses_default_name(self, db_session, email_service):
        await PledgeNotificationService(db_session, email_service).send_reminders(
            [_reminder(uuid4())]
        )

        kwargs = email_service.send_dunning_reminder.call_args.kwargs
        assert kwargs["fund_name"] == DEFAULT_FUND_NAME

    @pytest.mark.asyncio
    async def test_reminder_without_email_skipped(self, db_session, fund, email_service):
        sent = await PledgeNotificationService(db_session, email_service).send_reminders(
            [_reminder(fund.id, donor_email=None)]
        )

        assert sent == 0
        email_service.send_dunning_reminder.assert_not_called()

    @pytest.mark.asyncio
    async def test_os_error_is_contained(self, db_session, fund, email_service):
        email_service.send_dunning_reminder = AsyncMock(side_effect=OSError("refused"))

        sent = await PledgeNotificationService(db_session, email_service).send_reminders(
            [_reminder(fund.id)]
        )

        assert sent == 0


def _failing(db: Session, fund: Fund, **overrides) -> Pledge:  # type: ignore[no-untyped-def]
    values = {
        "failure_count": 2,
        "failing_since": NOW - timedelta(days=4),
        "last_failed_at": NOW - timedelta(days=1),
        "last_failure_reason": "Card declined",
    }
    values.update(overrides)
    return _pledge(db, fund, **values)


def _dunning_settings() -> PledgeSettingsValues:
    return PledgeSettingsValues(
        max_failures_before_pause=3,
        retry_interval_hours=24,
        grace_period_days=7,
        auto_resume_on_success=True,
        dunning_email_days=[3],
    )


class TestReminderDelivery:
    @pytest.mark.asyncio
    async def test_delivered_reminder_is_marked(self, db_session, fund, email_service):
        pledge = _failing(db_session, fund)
        reminders = DunningService(db_session).collect_due_reminders(
            DEFAULT_TENANT_ID, _dunning_settings(), NOW
        )

        await PledgeNotificationService(db_session, email_service).send_reminders(reminders)

        db_session.refresh(pledge)
        assert pledge.dunning_notices_sent == [3]

    @pytest.mark.asyncio
    async def test_smtp_failure_leaves_reminder_due(self, db_session, fund, email_service):
        pledge = _failing(db_session, fund)
        dunning = DunningService(db_session)
        email_service.send_dunning_reminder = AsyncMock(
            side_effect=aiosmtplib.SMTPServerDisconnected("connection lost")
        )
        notifier = PledgeNotificationService(db_session, email_service)

        first = dunning.collect_due_reminders(DEFAULT_TENANT_ID, _dunning_settings(), NOW)
        assert await notifier.send_reminders(first) == 0

        db_session.refresh(pledge)
        assert pledge.dunning_notices_sent == []
        email_service.send_dunning_reminder = AsyncMock(return_value=True)
        second = dunning.collect_due_reminders(
            DEFAULT_TENANT_ID, _dunning_settings(), NOW + timedelta(hours=1)
        )
        assert [r.pledge_id for r in second] == [pledge.id]
        assert await notifier.send_reminders(second) == 1
        db_session.refresh(pledge)
        assert pledge.dunning_notices_sent == [3]

    @pytest.mark.asyncio
    async def test_donor_without_email_is_marked_handled(self, db_session, fund, email_service):
        pledge = _failing(db_session, fund, donor_email=None)
        reminders = DunningService(db_session).collect_due_reminders(
            DEFAULT_TENANT_ID, _dunning_settings(), NOW
        )

        await PledgeNotificationService(db_session, email_service).send_reminders(reminders)

        email_service.send_dunning_reminder.assert_not_called()
        db_session.refresh(pledge)
        assert pledge.dunning_notices_sent == [3]
