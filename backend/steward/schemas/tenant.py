from uuid import UUID

from pydantic import Field

from steward.schemas.common import ApiModel, UtcDatetime


class TenantCreate(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    default_currency: str = Field(default="USD", min_length=3, max_length=3)
    timezone: str = Field(default="UTC", max_length=50)
    donations_enabled: bool = True
    recurring_pledges_enabled: bool = True


class TenantUpdate(ApiModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    default_currency: str | None = Field(default=None, min_length=3, max_length=3)
    timezone: str | None = Field(default=None, max_length=50)
    donations_enabled: bool | None = None
    recurring_pledges_enabled: bool | None = None


class TenantResponse(ApiModel):
    id: UUID
    name: str
    default_currency: str
    timezone: str
    donations_enabled: bool
    recurring_pledges_enabled: bool
    created_at: UtcDatetime
    updated_at: UtcDatetime
