"""Fund schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import Field, model_validator

from steward.models.fund import FundType, FundVisibility
from steward.schemas.common import ApiModel, UtcDatetime


class FundCreate(ApiModel):
    """Schema for creating a fund."""

    name: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)
    type: FundType
    visibility: FundVisibility = FundVisibility.PUBLIC
    currency: str = Field(..., min_length=3, max_length=3)
    goal_amount_cents: int | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_amount_cents: int | None = Field(default=None, ge=0)
    max_amount_cents: int | None = Field(default=None, ge=0)
    allow_anonymous: bool = True

    @model_validator(mode="after")
    def _check_dates(self) -> "FundCreate":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("Start date must be before end date")
        return self


class FundUpdate(ApiModel):
    """Schema for updating a fund. Only provided fields change."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = Field(default=None, max_length=500)
    type: FundType | None = None
    visibility: FundVisibility | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    goal_amount_cents: int | None = Field(default=None, ge=0)
    start_date: datetime | None = None
    end_date: datetime | None = None
    min_amount_cents: int | None = Field(default=None, ge=0)
    max_amount_cents: int | None = Field(default=None, ge=0)
    allow_anonymous: bool | None = None


class FundResponse(ApiModel):
    """Schema for fund response."""

    id: UUID
    tenant_id: UUID
    name: str
    description: str | None = None
    type: str
    visibility: str
    currency: str
    goal_amount_cents: int | None = None
    start_date: UtcDatetime | None = None
    end_date: UtcDatetime | None = None
    min_amount_cents: int | None = None
    max_amount_cents: int | None = None
    allow_anonymous: bool
    archived_at: UtcDatetime | None = None
    amount_raised_cents: int = 0
    created_at: UtcDatetime
    updated_at: UtcDatetime
