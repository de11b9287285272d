"""PledgeSettings model: per-tenant rules for processing pledges."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, func

from steward.core.database import Base
from steward.models.shared import UUIDType, generate_uuid


class PledgeSettings(Base):
    """One row per tenant; created on first save (upsert)."""

    __tablename__ = "pledge_settings"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
    )
    max_failures_before_pause = Column(Integer, nullable=False, default=3)
    retry_interval_hours = Column(Integer, nullable=False, default=24)
    grace_period_days = Column(Integer, nullable=False, default=7)
    auto_resume_on_success = Column(Boolean, nullable=False, default=True)
    dunning_email_days = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
