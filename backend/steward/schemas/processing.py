"""Schemas for pledge processing runs."""

from enum import Enum
from uuid import UUID

from pydantic import Field

from steward.schemas.common import ApiModel


class ProcessAction(str, Enum):
    PROCESS = "process"
    RETRY = "retry"
    DUNNING = "dunning"


class PledgeProcessResult(ApiModel):
    pledge_id: UUID
    success: bool
    status: str | None = None
    transaction_id: str | None = None
    error: str | None = None


class ProcessResponse(ApiModel):
    action: ProcessAction
    message: str
    processed: int = 0
    succeeded: int = 0
    failed: int = 0
    paused: int = 0
    completed: int = 0
    resumed: int = 0
    skipped: int = 0
    reminders_sent: int = 0
    results: list[PledgeProcessResult] = Field(default_factory=list)
