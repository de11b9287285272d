"""Data access for Idempotency-Key reservations and their stored responses."""

from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Query, Session

from steward.models.idempotency_record import IdempotencyRecord
from steward.models.shared import generate_uuid


class IdempotencyRepository:
    def __init__(self, db: Session):
        self.db = db

    def _by_key(self, tenant_id: UUID, idempotency_key: str) -> Query:  # type: ignore[type-arg]
        return self.db.query(IdempotencyRecord).filter(
            IdempotencyRecord.tenant_id == tenant_id,
            IdempotencyRecord.idempotency_key == idempotency_key,
        )

    def get_by_key(self, tenant_id: UUID, idempotency_key: str) -> IdempotencyRecord | None:
        return self._by_key(tenant_id, idempotency_key).first()

    def create(
        self,
        *,
        tenant_id: UUID,
        idempotency_key: str,
        request_method: str,
        request_path: str,
    ) -> IdempotencyRecord:
        """Reserve a key. Commits, so a concurrent duplicate fails on the unique constraint."""
        record = IdempotencyRecord(
            id=generate_uuid(),
            tenant_id=tenant_id,
            idempotency_key=idempotency_key,
            request_method=request_method,
            request_path=request_path,
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        return record

    def update_response(
        self,
        record: IdempotencyRecord,
        response_status: int,
        response_body: dict[str, Any],
    ) -> IdempotencyRecord:
        record.response_status = response_status  # type: ignore[assignment]
        record.response_body = response_body  # type: ignore[assignment]
        self.db.commit()
        self.db.refresh(record)
        return record

    def delete_pending(self, tenant_id: UUID, idempotency_key: str) -> bool:
        """Drop a reservation that never got a response. Finished keys are kept."""
        count = (
            self._by_key(tenant_id, idempotency_key)
            .filter(IdempotencyRecord.response_status.is_(None))
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return bool(count)

    def delete_expired(self, max_age_hours: int) -> int:
        cutoff = datetime.now(UTC) - timedelta(hours=max_age_hours)
        count = (
            self.db.query(IdempotencyRecord)
            .filter(IdempotencyRecord.created_at < cutoff)
            .delete(synchronize_session=False)
        )
        self.db.commit()
        return int(count)
