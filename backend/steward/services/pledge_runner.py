"""One entry point for a processing, retry or dunning run, shared by the API and worker."""

from uuid import UUID

from sqlalchemy.orm import Session

from steward.models.shared import utc_now
from steward.schemas.processing import ProcessAction, ProcessResponse
from steward.services.dunning_service import DunningService
from steward.services.notification_service import PledgeNotificationService
from steward.services.payment_gateway import PaymentGatewayBase, get_payment_gateway
from steward.services.pledge_processor import PledgeProcessor
from steward.services.pledge_settings_service import PledgeSettingsService


async def run_pledge_action(
    db: Session,
    tenant_id: UUID,
    action: ProcessAction,
    gateway: PaymentGatewayBase | None = None,
) -> ProcessResponse:
    """Resolve the tenant's settings, run ``action`` and email the donors affected."""
    settings = PledgeSettingsService(db).get_settings(tenant_id)
    notifier = PledgeNotificationService(db)

    if action == ProcessAction.DUNNING:
        reminders = DunningService(db).collect_due_reminders(tenant_id, settings, utc_now())
        sent = await notifier.send_reminders(reminders)
        return ProcessResponse(
            action=action,
            message=f"Sent {sent} dunning reminders for {len(reminders)} pledges",
            processed=len(reminders),
            reminders_sent=sent,
        )

    processor = PledgeProcessor(db, gateway or get_payment_gateway())
    if action == ProcessAction.RETRY:
        summary = processor.retry_failed_pledges(tenant_id, settings)
    else:
        summary = processor.process_due_pledges(tenant_id, settings)
    await notifier.notify_outcomes(tenant_id, summary)
    return ProcessResponse.model_validate(summary.to_dict())
