"""Pledge model: a donor's recurring commitment to a fund."""

from enum import Enum

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)

from steward.core.database import Base
from steward.models.shared import DEFAULT_TENANT_ID, UUIDType, generate_uuid


class PledgeStatus(str, Enum):
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    CANCELLED = "CANCELLED"
    COMPLETED = "COMPLETED"
    # Derived: active pledge failing for longer than the grace period. Never stored.
    FAILED = "FAILED"


PERSISTED_STATUSES = frozenset(
    {
        PledgeStatus.ACTIVE,
        PledgeStatus.PAUSED,
        PledgeStatus.CANCELLED,
        PledgeStatus.COMPLETED,
    }
)
TERMINAL_STATUSES = frozenset({PledgeStatus.CANCELLED, PledgeStatus.COMPLETED})


class PledgeFrequency(str, Enum):
    WEEKLY = "WEEKLY"
    BIWEEKLY = "BIWEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    YEARLY = "YEARLY"


class Pledge(Base):
    __tablename__ = "pledges"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_TENANT_ID,
    )
    user_id = Column(String(255), nullable=True, index=True)
    donor_name = Column(String(255), nullable=True)
    donor_email = Column(String(255), nullable=True)
    fund_id = Column(
        UUIDType,
        ForeignKey("funds.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    frequency = Column(String(20), nullable=False, default=PledgeFrequency.MONTHLY.value)
    status = Column(String(20), nullable=False, default=PledgeStatus.ACTIVE.value, index=True)

    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=True)
    next_charge_at = Column(DateTime(timezone=True), nullable=False, index=True)
    # Regular charges fall on whole periods from here; NULL means the start date
    schedule_anchor_at = Column(DateTime(timezone=True), nullable=True)
    last_charged_at = Column(DateTime(timezone=True), nullable=True)

    # Failure bookkeeping
    failure_count = Column(Integer, nullable=False, default=0)
    failing_since = Column(DateTime(timezone=True), nullable=True)
    last_failed_at = Column(DateTime(timezone=True), nullable=True)
    last_failure_reason = Column(String(500), nullable=True)
    dunning_notices_sent = Column(JSON, nullable=False, default=list)

    # Running totals, only ever incremented by successful charges
    total_amount_cents = Column(Integer, nullable=False, default=0)
    total_charges_count = Column(Integer, nullable=False, default=0)

    payment_method_token = Column(String(255), nullable=True)
    payment_method_last4 = Column(String(4), nullable=True)
    payment_method_brand = Column(String(50), nullable=True)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    dedication_note = Column(Text, nullable=True)

    paused_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)

    # Claim bookkeeping for the processor's compare-and-swap
    lock_version = Column(Integer, nullable=False, default=0)
    locked_until = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
