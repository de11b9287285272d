"""Audit trail of fund and pledge changes."""

from enum import Enum

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, func

from steward.core.database import Base
from steward.models.shared import DEFAULT_TENANT_ID, UUIDType, generate_uuid


class AuditAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    STATUS_CHANGED = "status_changed"
    ADMIN_OVERRIDE = "admin_override"
    ARCHIVED = "archived"


class ActorType(str, Enum):
    ADMIN = "admin"
    SYSTEM = "system"


class AuditLog(Base):
    """One change to a fund or pledge.

    ``changes`` maps each field to ``{"old": ..., "new": ...}``. Processor
    transitions are written with actor ``system``; requests through the admin
    API with actor ``admin`` and the caller's ``X-Actor-Id``.
    """

    __tablename__ = "audit_logs"
    __table_args__ = (
        Index("ix_audit_logs_resource", "tenant_id", "resource_type", "resource_id", "created_at"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_TENANT_ID,
    )
    resource_type = Column(String(50), nullable=False)
    resource_id = Column(UUIDType, nullable=False)
    action = Column(String(50), nullable=False, index=True)
    changes = Column(JSON, nullable=False, default=dict)
    actor_type = Column(String(50), nullable=False, default=ActorType.SYSTEM.value)
    actor_id = Column(String(255), nullable=True)
    metadata_ = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
