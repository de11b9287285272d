"""Email service for sending donor emails via SMTP."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from email.message import EmailMessage

from steward.core.config import settings

logger = logging.getLogger(__name__)


def format_cents(amount_cents: int | None, currency: str) -> str:
    """Format an amount in minor units, e.g. ``2500, "USD"`` -> ``"25.00 USD"``."""
    value = Decimal(int(amount_cents or 0)) / 100
    return f"{value:.2f} {currency}"


def _format_date(dt: datetime | None) -> str:
    if dt is None:
        return ""
    return dt.strftime("%Y-%m-%d")


class EmailService:
    """Service for sending transactional emails via SMTP."""

    async def send_email(self, to: str, subject: str, html_body: str, text_body: str = "") -> bool:
        """Send an email via SMTP.

        Args:
            to: Recipient email address.
            subject: Email subject line.
            html_body: HTML content of the email.
            text_body: Plain-text alternative.

        Returns:
            True if sent successfully (or no-op when SMTP unconfigured).
        """
        if not settings.SMTP_HOST:
            logger.info("SMTP not configured, skipping email to %s: %s", to, subject)
            return True

        import aiosmtplib

        msg = EmailMessage()
        msg["From"] = f"{settings.SMTP_FROM_NAME} <{settings.SMTP_FROM_EMAIL}>"
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content(text_body or "Please view this email in an HTML-capable client.")
        msg.add_alternative(html_body, subtype="html")

        await aiosmtplib.send(
            msg,
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USERNAME or None,
            password=settings.SMTP_PASSWORD or None,
            start_tls=settings.SMTP_USE_TLS,
        )
        logger.info("Email sent to %s: %s", to, subject)
        return True

    async def send_pledge_receipt(
        self,
        to: str,
        *,
        amount_cents: int,
        currency: str,
        fund_name: str,
        transaction_id: str | None,
        charged_at: datetime,
        next_charge_at: datetime | None,
    ) -> bool:
        """Thank the donor for a successful recurring charge."""
        amount = format_cents(amount_cents, currency)
        subject = f"Receipt for your recurring donation - {fund_name}"
        next_line = ""
        if next_charge_at is not None:
            next_line = (
                f"<p>Your next scheduled charge will be on {_format_date(next_charge_at)}.</p>"
            )
        html_body = (
            "<h2>Thank you for your recurring donation!</h2>"
            f"<p><strong>Amount:</strong> {amount}</p>"
            f"<p><strong>Fund:</strong> {fund_name}</p>"
            f"<p><strong>Transaction ID:</strong> {transaction_id or ''}</p>"
            f"<p><strong>Date:</strong> {_format_date(charged_at)}</p>"
            f"{next_line}"
            "<p>Thank you for your continued support!</p>"
        )
        text_body = (
            "Thank you for your recurring donation!\n\n"
            f"Amount: {amount}\nFund: {fund_name}\n"
            f"Transaction ID: {transaction_id or ''}\nDate: {_format_date(charged_at)}\n"
        )
        return await self.send_email(to, subject, html_body, text_body)

    async def send_pledge_failure(
        self,
        to: str,
        *,
        amount_cents: int,
        currency: str,
        fund_name: str,
        reason: str,
        paused: bool,
    ) -> bool:
        """Tell the donor a charge failed, and whether the pledge is now paused."""
        amount = format_cents(amount_cents, currency)
        if paused:
            subject = "Action required: Your recurring donation has been paused"
            outcome = (
                "Your recurring donation has been paused after multiple failed attempts. "
                "Please update your payment method to resume."
            )
        else:
            subject = "Payment issue with your recurring donation"
            outcome = (
                "We will automatically retry your payment. "
                "If the issue persists, please update your payment method."
            )
        html_body = (
            "<h2>Payment Issue</h2>"
            "<p>We were unable to process your recurring donation.</p>"
            f"<p><strong>Amount:</strong> {amount}</p>"
            f"<p><strong>Fund:</strong> {fund_name}</p>"
            f"<p><strong>Reason:</strong> {reason}</p>"
            f"<p>{outcome}</p>"
            "<p>Please log in to your account to update your payment information.</p>"
        )
        text_body = (
            "We were unable to process your recurring donation.\n\n"
            f"Amount: {amount}\nFund: {fund_name}\nReason: {reason}\n\n{outcome}\n"
        )
        return await self.send_email(to, subject, html_body, text_body)

    async def send_dunning_reminder(
        self,
        to: str,
        *,
        donor_name: str | None,
        amount_cents: int,
        currency: str,
        fund_name: str,
        days_failing: int,
        paused: bool,
    ) -> bool:
        """Remind a donor that their pledge has been failing for a while."""
        amount = format_cents(amount_cents, currency)
        subject = f"Reminder: please update your payment method for {fund_name}"
        state = "is paused" if paused else "could not be collected"
        html_body = (
            f"<p>Dear {donor_name or 'Friend'},</p>"
            f"<p>Your recurring donation of {amount} to {fund_name} {state} "
            f"and has been failing for {days_failing} days.</p>"
            "<p>Please log in to your account to update your payment information.</p>"
        )
        return await self.send_email(to, subject, html_body)
