from steward.schemas.audit_log import AuditLogResponse
from steward.schemas.common import ApiModel, ErrorResponse
from steward.schemas.fund import FundCreate, FundResponse, FundUpdate
from steward.schemas.pledge import (
    AdminOverride,
    PledgeCreate,
    PledgeListResponse,
    PledgeResponse,
    PledgeStatsResponse,
    PledgeUpdate,
)
from steward.schemas.pledge_charge import PledgeChargeResponse
from steward.schemas.pledge_settings import (
    PledgeSettingsResponse,
    PledgeSettingsUpdate,
    PledgeSettingsValues,
)
from steward.schemas.processing import PledgeProcessResult, ProcessAction, ProcessResponse
from steward.schemas.tenant import TenantCreate, TenantResponse, TenantUpdate

__all__ = [
    "AdminOverride",
    "ApiModel",
    "AuditLogResponse",
    "ErrorResponse",
    "FundCreate",
    "FundResponse",
    "FundUpdate",
    "PledgeChargeResponse",
    "PledgeCreate",
    "PledgeListResponse",
    "PledgeProcessResult",
    "PledgeResponse",
    "PledgeSettingsResponse",
    "PledgeSettingsUpdate",
    "PledgeSettingsValues",
    "PledgeStatsResponse",
    "PledgeUpdate",
    "ProcessAction",
    "ProcessResponse",
    "TenantCreate",
    "TenantResponse",
    "TenantUpdate",
]
