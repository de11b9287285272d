from datetime import datetime
from uuid import UUID

from sqlalchemy.orm import Session

from steward.models.pledge import Pledge
from steward.models.pledge_charge import ChargeKind, ChargeStatus, PledgeCharge


class PledgeChargeRepository:
    def __init__(self, db: Session):
        self.db = db

    def create_pending(self, pledge: Pledge, kind: ChargeKind) -> PledgeCharge:
        charge = PledgeCharge(
            tenant_id=pledge.tenant_id,
            pledge_id=pledge.id,
            amount_cents=pledge.amount_cents,
            currency=pledge.currency,
            status=ChargeStatus.PENDING.value,
            kind=kind.value,
        )
        self.db.add(charge)
        self.db.commit()
        self.db.refresh(charge)
        return charge

    def mark_succeeded(
        self, charge: PledgeCharge, transaction_id: str | None, charged_at: datetime,
    ) -> PledgeCharge:
        charge.status = ChargeStatus.SUCCESS.value  # type: ignore[assignment]
        charge.transaction_id = transaction_id  # type: ignore[assignment]
        charge.charged_at = charged_at  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(charge)
        return charge

    def mark_failed(
        self, charge: PledgeCharge, reason: str, failed_at: datetime,
    ) -> PledgeCharge:
        charge.status = ChargeStatus.FAILED.value  # type: ignore[assignment]
        charge.failure_reason = reason  # type: ignore[assignment]
        charge.failed_at = failed_at  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(charge)
        return charge

    def get_for_pledge(
        self, pledge_id: UUID, tenant_id: UUID, skip: int = 0, limit: int = 100,
    ) -> list[PledgeCharge]:
        return (
            self.db.query(PledgeCharge)
            .filter(
                PledgeCharge.pledge_id == pledge_id,
                PledgeCharge.tenant_id == tenant_id,
            )
            .order_by(PledgeCharge.created_at.desc(), PledgeCharge.id)
            .offset(skip)
            .limit(limit)
            .all()
        )
