"""Reserved Idempotency-Key values and the responses stored against them."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, UniqueConstraint, func

from steward.core.database import Base
from steward.models.shared import DEFAULT_TENANT_ID, UUIDType, generate_uuid


class IdempotencyRecord(Base):
    """A key is reserved when its first request starts.

    ``response_status`` stays NULL until that request finishes; a NULL row is
    an in-progress run. ``request_path`` includes the query string, so one key
    cannot be replayed against a different processing action.
    """

    __tablename__ = "idempotency_records"
    __table_args__ = (
        UniqueConstraint("tenant_id", "idempotency_key", name="uq_tenant_idempotency_key"),
    )

    id = Column(UUIDType, primary_key=True, default=generate_uuid)
    tenant_id = Column(
        UUIDType,
        ForeignKey("tenants.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        default=DEFAULT_TENANT_ID,
    )
    idempotency_key = Column(String(255), nullable=False, index=True)
    request_method = Column(String(10), nullable=False)
    request_path = Column(String(500), nullable=False)
    response_status = Column(Integer, nullable=True)
    response_body = Column(JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
