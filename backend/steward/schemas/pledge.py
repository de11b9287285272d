"""Pledge schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from steward.models.pledge import PledgeFrequency, PledgeStatus
from steward.schemas.common import ApiModel, UtcDatetime
from steward.schemas.fund import FundResponse


class PledgeCreate(ApiModel):
    """Schema for creating a pledge."""

    fund_id: UUID
    amount_cents: int = Field(..., gt=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    frequency: PledgeFrequency
    start_date: datetime
    end_date: datetime | None = None
    user_id: str | None = Field(default=None, max_length=255)
    donor_name: str | None = Field(default=None, max_length=255)
    donor_email: str | None = Field(default=None, max_length=255)
    payment_method_token: str | None = Field(default=None, max_length=255)
    payment_method_last4: str | None = Field(default=None, max_length=4)
    payment_method_brand: str | None = Field(default=None, max_length=50)
    is_anonymous: bool = False
    dedication_note: str | None = Field(default=None, max_length=500)


class AdminOverride(ApiModel):
    """Out-of-band mutation that bypasses the pledge state machine."""

    status: PledgeStatus | None = None
    next_charge_at: datetime | None = None
    failure_count: int | None = Field(default=None, ge=0)


class PledgeUpdate(ApiModel):
    """Schema for updating a pledge.

    When ``admin_override`` is present, only the override is applied.
    """

    amount_cents: int | None = Field(default=None, gt=0)
    frequency: PledgeFrequency | None = None
    fund_id: UUID | None = None
    end_date: datetime | None = None
    donor_name: str | None = Field(default=None, max_length=255)
    donor_email: str | None = Field(default=None, max_length=255)
    payment_method_token: str | None = Field(default=None, max_length=255)
    payment_method_last4: str | None = Field(default=None, max_length=4)
    payment_method_brand: str | None = Field(default=None, max_length=50)
    is_anonymous: bool | None = None
    dedication_note: str | None = Field(default=None, max_length=500)
    admin_override: AdminOverride | None = None


class PledgeResponse(ApiModel):
    """Schema for pledge response. The payment method token is never returned."""

    id: UUID
    tenant_id: UUID
    user_id: str | None = None
    donor_name: str | None = None
    donor_email: str | None = None
    fund_id: UUID
    fund: FundResponse | None = None
    amount_cents: int
    currency: str
    frequency: str
    status: str
    display_status: str | None = None
    start_date: UtcDatetime
    end_date: UtcDatetime | None = None
    next_charge_at: UtcDatetime
    last_charged_at: UtcDatetime | None = None
    failure_count: int
    failing_since: UtcDatetime | None = None
    last_failed_at: UtcDatetime | None = None
    last_failure_reason: str | None = None
    total_amount_cents: int
    total_charges_count: int
    payment_method_last4: str | None = None
    payment_method_brand: str | None = None
    is_anonymous: bool
    dedication_note: str | None = None
    paused_at: UtcDatetime | None = None
    cancelled_at: UtcDatetime | None = None
    completed_at: UtcDatetime | None = None
    created_at: UtcDatetime
    updated_at: UtcDatetime


class Pagination(ApiModel):
    skip: int
    limit: int
    total: int


class PledgeListResponse(ApiModel):
    pledges: list[PledgeResponse] = Field(default_factory=list)
    pagination: Pagination


class PledgeStatsResponse(ApiModel):
    """Aggregate view used by the admin dashboard."""

    total: int
    active: int
    paused: int
    cancelled: int
    completed: int
    at_risk: int
    estimated_monthly_cents: int
