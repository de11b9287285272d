"""PledgeSettings schemas."""

from typing import Annotated
from uuid import UUID

from pydantic import ConfigDict, Field

from steward.schemas.common import ApiModel, UtcDatetime

MAX_FAILURES_LIMIT = 10
RETRY_INTERVAL_HOURS_LIMIT = 168
GRACE_PERIOD_DAYS_LIMIT = 30
DUNNING_DAY_LIMIT = 30

DunningDay = Annotated[int, Field(ge=0, le=DUNNING_DAY_LIMIT)]


class PledgeSettingsValues(ApiModel):
    """The rules the processor applies. Passed explicitly into every run."""

    model_config = ConfigDict(frozen=True)

    max_failures_before_pause: int
    retry_interval_hours: int
    grace_period_days: int
    auto_resume_on_success: bool
    dunning_email_days: list[int]


class PledgeSettingsUpdate(ApiModel):
    """Schema for saving pledge settings. Omitted fields keep their current value."""

    max_failures_before_pause: int | None = Field(default=None, ge=1, le=MAX_FAILURES_LIMIT)
    retry_interval_hours: int | None = Field(default=None, ge=1, le=RETRY_INTERVAL_HOURS_LIMIT)
    grace_period_days: int | None = Field(default=None, ge=0, le=GRACE_PERIOD_DAYS_LIMIT)
    auto_resume_on_success: bool | None = None
    dunning_email_days: list[DunningDay] | None = None


class PledgeSettingsResponse(ApiModel):
    """Schema for pledge settings response.

    ``is_default`` is true when the tenant has never saved settings.
    """

    tenant_id: UUID
    max_failures_before_pause: int
    retry_interval_hours: int
    grace_period_days: int
    auto_resume_on_success: bool
    dunning_email_days: list[int]
    is_default: bool = False
    created_at: UtcDatetime | None = None
    updated_at: UtcDatetime | None = None
