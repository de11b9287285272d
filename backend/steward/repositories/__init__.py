from steward.repositories.audit_log_repository import AuditLogRepository
from steward.repositories.donation_record_repository import DonationRecordRepository
from steward.repositories.fund_repository import FundRepository
from steward.repositories.idempotency_repository import IdempotencyRepository
from steward.repositories.pledge_charge_repository import PledgeChargeRepository
from steward.repositories.pledge_repository import PledgeRepository
from steward.repositories.pledge_settings_repository import PledgeSettingsRepository
from steward.repositories.tenant_repository import TenantRepository

__all__ = [
    "AuditLogRepository",
    "DonationRecordRepository",
    "FundRepository",
    "IdempotencyRepository",
    "PledgeChargeRepository",
    "PledgeRepository",
    "PledgeSettingsRepository",
    "TenantRepository",
]
