"""Donor notifications for pledge processing outcomes and dunning reminders."""

from __future__ import annotations

import logging
from collections.abc import Awaitable
from uuid import UUID

import aiosmtplib
from sqlalchemy.orm import Session

from steward.models.shared import ensure_utc, utc_now
from steward.repositories.fund_repository import FundRepository
from steward.repositories.pledge_repository import PledgeRepository
from steward.services.dunning_service import DunningReminder, DunningService
from steward.services.email_service import EmailService
from steward.services.pledge_processor import ProcessingSummary

logger = logging.getLogger(__name__)

DEFAULT_FUND_NAME = "General Fund"


class PledgeNotificationService:
    """Emails donors about their pledges. Delivery errors never propagate."""

    def __init__(self, db: Session, email_service: EmailService | None = None):
        self.pledge_repo = PledgeRepository(db)
        self.fund_repo = FundRepository(db)
        self.dunning_service = DunningService(db)
        self.email_service = email_service or EmailService()

    def _fund_name(self, fund_id: UUID, tenant_id: UUID) -> str:
        fund = self.fund_repo.get_by_id(fund_id, tenant_id)
        return str(fund.name) if fund is not None else DEFAULT_FUND_NAME

    async def _deliver(self, send: Awaitable[bool], pledge_id: UUID) -> bool:
        try:
            return await send
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.warning("Failed to send pledge email for %s: %s", pledge_id, e)
            return False

    async def notify_outcomes(self, tenant_id: UUID, summary: ProcessingSummary) -> int:
        """Send a receipt or failure email for every processed pledge. Returns emails sent."""
        sent = 0
        for outcome in summary.results:
            pledge = self.pledge_repo.get_by_id(outcome.pledge_id, tenant_id)
            if pledge is None:
                continue
            if not pledge.donor_email:
                logger.warning("Pledge %s has no donor email, skipping notification", pledge.id)
                continue
            fund_name = self._fund_name(pledge.fund_id, tenant_id)  # type: ignore[arg-type]
            if outcome.success:
                send = self.email_service.send_pledge_receipt(
                    str(pledge.donor_email),
                    amount_cents=int(pledge.amount_cents),
                    currency=str(pledge.currency),
                    fund_name=fund_name,
                    transaction_id=outcome.transaction_id,
                    charged_at=ensure_utc(pledge.last_charged_at) or utc_now(),  # type: ignore[arg-type]
                    next_charge_at=None if outcome.completed else ensure_utc(pledge.next_charge_at),  # type: ignore[arg-type]
                )
            else:
                send = self.email_service.send_pledge_failure(
                    str(pledge.donor_email),
                    amount_cents=int(pledge.amount_cents),
                    currency=str(pledge.currency),
                    fund_name=fund_name,
                    reason=outcome.error or "Unknown error",
                    paused=outcome.paused,
                )
            if await self._deliver(send, outcome.pledge_id):
                sent += 1
        return sent

    async def send_reminders(self, reminders: list[DunningReminder]) -> int:
        """Email each dunning reminder. Returns the number delivered.

        A reminder is marked sent once delivered, or when the donor has no
        email address. A failed delivery stays due for the next run.
        """
        sent = 0
        for reminder in reminders:
            if not reminder.donor_email:
                logger.warning(
                    "Pledge %s has no donor email, skipping dunning reminder", reminder.pledge_id
                )
                self.dunning_service.mark_sent(reminder)
                continue
            send = self.email_service.send_dunning_reminder(
                reminder.donor_email,
                donor_name=reminder.donor_name,
                amount_cents=reminder.amount_cents,
                currency=reminder.currency,
                fund_name=self._fund_name(reminder.fund_id, reminder.tenant_id),
                days_failing=reminder.days_failing,
                paused=reminder.paused,
            )
            if await self._deliver(send, reminder.pledge_id):
                self.dunning_service.mark_sent(reminder)
                sent += 1
        return sent
