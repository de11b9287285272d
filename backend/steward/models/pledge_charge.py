"""PledgeCharge model: one row per charge attempt against a pledge."""

from enum import Enum

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, func

from steward.core.database import Base
from steward.models.shared import DEFAULT_TENANT_ID, UUIDType, generate_uuid


class ChargeStatus(str, Enum):
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ChargeKind(str, Enum):
    SCHEDULED = "scheduled"
    RETRY = "retry"


class PledgeCharge(Base):
    __tablename__ = "pledge_charges"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_TENANT_ID,
    )
    pledge_id = Column(
        UUIDType,
        ForeignKey("pledges.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    status = Column(String(20), nullable=False, default=ChargeStatus.PENDING.value)
    kind = Column(String(20), nullable=False, default=ChargeKind.SCHEDULED.value)
    transaction_id = Column(String(255), nullable=True)
    failure_reason = Column(String(500), nullable=True)
    charged_at = Column(DateTime(timezone=True), nullable=True)
    failed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
