"""Audit service for recording changes to funds and pledges."""

from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from steward.models.audit_log import ActorType, AuditAction
from steward.repositories.audit_log_repository import AuditLogRepository

ACTOR_ADMIN = ActorType.ADMIN.value
ACTOR_SYSTEM = ActorType.SYSTEM.value


def diff(old: dict[str, Any], new: dict[str, Any]) -> dict[str, Any]:
    """Per-field ``{"old", "new"}`` map of the keys whose values differ."""
    changes: dict[str, Any] = {}
    for key in set(old.keys()) | set(new.keys()):
        old_val = old.get(key)
        new_val = new.get(key)
        if old_val != new_val:
            changes[key] = {"old": old_val, "new": new_val}
    return changes


class AuditService:
    """Service for recording audit trail entries."""

    def __init__(self, db: Session):
        self.repo = AuditLogRepository(db)

    def log_create(
        self,
        resource_type: str,
        resource_id: UUID,
        tenant_id: UUID,
        actor_type: str = ACTOR_SYSTEM,
        actor_id: str | None = None,
        data: dict[str, Any] | None = None,
    ) -> None:
        """Log a resource creation event."""
        self.repo.create(
            tenant_id=tenant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=AuditAction.CREATED.value,
            changes=data or {},
            actor_type=actor_type,
            actor_id=actor_id,
        )

    def log_update(
        self,
        resource_type: str,
        resource_id: UUID,
        tenant_id: UUID,
        actor_type: str = ACTOR_SYSTEM,
        actor_id: str | None = None,
        old_data: dict[str, Any] | None = None,
        new_data: dict[str, Any] | None = None,
    ) -> None:
        """Log a resource update event, auto-diffing changed fields."""
        changes = diff(old_data or {}, new_data or {})
        if not changes:
            return
        self.repo.create(
            tenant_id=tenant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=AuditAction.UPDATED.value,
            changes=changes,
            actor_type=actor_type,
            actor_id=actor_id,
        )

    def log_status_change(
        self,
        resource_type: str,
        resource_id: UUID,
        tenant_id: UUID,
        old_status: str,
        new_status: str,
        actor_type: str = ACTOR_SYSTEM,
        actor_id: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        """Log a status change event."""
        self.repo.create(
            tenant_id=tenant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=AuditAction.STATUS_CHANGED.value,
            changes={"status": {"old": old_status, "new": new_status}},
            actor_type=actor_type,
            actor_id=actor_id,
            metadata=metadata,
        )

    def log_admin_override(
        self,
        resource_type: str,
        resource_id: UUID,
        tenant_id: UUID,
        changes: dict[str, Any],
        actor_id: str | None = None,
    ) -> None:
        """Log a forced field change that bypassed the state machine."""
        self.repo.create(
            tenant_id=tenant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=AuditAction.ADMIN_OVERRIDE.value,
            changes=changes,
            actor_type=ACTOR_ADMIN,
            actor_id=actor_id,
        )

    def log_archive(
        self,
        resource_type: str,
        resource_id: UUID,
        tenant_id: UUID,
        actor_type: str = ACTOR_ADMIN,
        actor_id: str | None = None,
    ) -> None:
        self.repo.create(
            tenant_id=tenant_id,
            resource_type=resource_type,
            resource_id=resource_id,
            action=AuditAction.ARCHIVED.value,
            changes={},
            actor_type=actor_type,
            actor_id=actor_id,
        )
