from steward.models.audit_log import AuditLog
from steward.models.donation_record import DonationRecord
from steward.models.fund import Fund, FundType, FundVisibility
from steward.models.idempotency_record import IdempotencyRecord
from steward.models.pledge import (
    PERSISTED_STATUSES,
    TERMINAL_STATUSES,
    Pledge,
    PledgeFrequency,
    PledgeStatus,
)
from steward.models.pledge_charge import ChargeKind, ChargeStatus, PledgeCharge
from steward.models.pledge_settings import PledgeSettings
from steward.models.tenant import Tenant

__all__ = [
    "AuditLog",
    "ChargeKind",
    "ChargeStatus",
    "DonationRecord",
    "Fund",
    "FundType",
    "FundVisibility",
    "IdempotencyRecord",
    "PERSISTED_STATUSES",
    "Pledge",
    "PledgeCharge",
    "PledgeFrequency",
    "PledgeSettings",
    "PledgeStatus",
    "TERMINAL_STATUSES",
    "Tenant",
]
