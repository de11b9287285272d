"""Pydantic schemas for AuditLog."""

from typing import Any
from uuid import UUID

from pydantic import Field

from steward.schemas.common import ApiModel, UtcDatetime


class AuditLogResponse(ApiModel):
    id: UUID
    tenant_id: UUID
    resource_type: str
    resource_id: UUID
    action: str
    changes: dict[str, Any]
    actor_type: str
    actor_id: str | None
    metadata_: dict[str, Any] | None = Field(default=None, serialization_alias="metadata")

    created_at: UtcDatetime
