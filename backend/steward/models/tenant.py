from sqlalchemy import Boolean, Column, DateTime, String, func

from steward.core.database import Base
from steward.models.shared import UUIDType, generate_uuid


class Tenant(Base):
    __tablename__ = "tenants"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    name = Column(String(255), nullable=False)
    default_currency = Column(String(3), nullable=False, default="USD")
    timezone = Column(String(50), nullable=False, default="UTC")
    donations_enabled = Column(Boolean, nullable=False, default=True)
    recurring_pledges_enabled = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
