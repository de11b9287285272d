from sqlalchemy.orm import Session

from steward.models.donation_record import DonationRecord
from steward.models.pledge import Pledge

ANONYMOUS_DISPLAY_NAME = "Anonymous"


class DonationRecordRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_from_pledge(self, pledge: Pledge) -> DonationRecord:
        """Record one successful recurring charge as a donation."""
        display_name = ANONYMOUS_DISPLAY_NAME
        if not pledge.is_anonymous and pledge.donor_name:
            display_name = str(pledge.donor_name)
        record = DonationRecord(
            tenant_id=pledge.tenant_id,
            fund_id=pledge.fund_id,
            pledge_id=pledge.id,
            user_id=pledge.user_id,
            display_name=display_name,
            amount_cents=pledge.amount_cents,
            currency=pledge.currency,
            is_anonymous=pledge.is_anonymous,
            designation_note=pledge.dedication_note,
            message="Recurring pledge payment",
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record
