"""DonationRecord model: a completed gift, one per successful pledge charge."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Text, func

from steward.core.database import Base
from steward.models.shared import DEFAULT_TENANT_ID, UUIDType, generate_uuid


class DonationRecord(Base):
    __tablename__ = "donation_records"

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_TENANT_ID,
    )
    fund_id = Column(
        UUIDType,
        ForeignKey("funds.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    pledge_id = Column(
        UUIDType,
        ForeignKey("pledges.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    user_id = Column(String(255), nullable=True)
    display_name = Column(String(255), nullable=False, default="Anonymous")
    amount_cents = Column(Integer, nullable=False)
    currency = Column(String(3), nullable=False)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    designation_note = Column(Text, nullable=True)
    message = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
