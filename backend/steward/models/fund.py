"""Fund model: a named destination for donations and pledges."""

from enum import Enum

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func

from steward.core.database import Base
from steward.models.shared import DEFAULT_TENANT_ID, UUIDType, generate_uuid


class FundType(str, Enum):
    TITHE = "TITHE"
    OFFERING = "OFFERING"
    PROJECT = "PROJECT"
    SPECIAL = "SPECIAL"


class FundVisibility(str, Enum):
    PUBLIC = "PUBLIC"
    MEMBERS_ONLY = "MEMBERS_ONLY"
    HIDDEN = "HIDDEN"


class Fund(Base):
    """Fund model - referenced (never owned) by pledges and donation records.

    Funds are archived via ``archived_at`` instead of being deleted.
    """

    __tablename__ = "funds"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_TENANT_ID,
    )
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    type = Column(String(20), nullable=False, default=FundType.OFFERING.value)
    visibility = Column(String(20), nullable=False, default=FundVisibility.PUBLIC.value)
    currency = Column(String(3), nullable=False, default="USD")
    goal_amount_cents = Column(Integer, nullable=True)
    start_date = Column(DateTime(timezone=True), nullable=True)
    end_date = Column(DateTime(timezone=True), nullable=True)
    min_amount_cents = Column(Integer, nullable=True)
    max_amount_cents = Column(Integer, nullable=True)
    allow_anonymous = Column(Boolean, nullable=False, default=True)
    archived_at = Column(DateTime(timezone=True), nullable=True, index=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())
