"""Idempotency-Key handling for the pledge processing endpoint.

An admin who re-clicks "process" after a timeout sends the same key again.
``check_idempotency`` answers the repeat from the stored response when the
first run finished, rejects it with 409 while that run is still going, and
treats it as a fresh run when the first attempt failed and released its key
through ``release_idempotency_key``.
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from steward.repositories.idempotency_repository import IdempotencyRepository

KEY_HEADER = "Idempotency-Key"
KEY_IN_PROGRESS = "A request with this Idempotency-Key is still being processed"
KEY_REUSED = "Idempotency-Key was already used for a different request"


@dataclass
class IdempotencyResult:
    """A key reserved for the current request."""

    key: str
    method: str
    target: str


def _request_target(request: Request) -> str:
    """Path plus query string, so ``?action=retry`` and ``?action=process`` differ."""
    query = request.url.query
    return f"{request.url.path}?{query}" if query else request.url.path


def check_idempotency(
    request: Request,
    db: Session,
    tenant_id: UUID,
) -> JSONResponse | IdempotencyResult | None:
    """Resolve the ``Idempotency-Key`` header before running the request.

    Returns ``None`` without a header, the stored response (with
    ``Idempotency-Replayed: true``) for a finished key, or an
    ``IdempotencyResult`` after reserving a new key.

    Raises:
        HTTPException: 409 while the key's first request is still running,
            422 when the key was used for another method, path or action.
    """
    key = request.headers.get(KEY_HEADER)
    if not key:
        return None

    target = _request_target(request)
    repo = IdempotencyRepository(db)
    existing = repo.get_by_key(tenant_id, key)

    if existing is not None:
        if existing.request_method != request.method or existing.request_path != target:
            raise HTTPException(status_code=422, detail=KEY_REUSED)
        if existing.response_status is None:
            raise HTTPException(status_code=409, detail=KEY_IN_PROGRESS)
        response = JSONResponse(
            content=existing.response_body,
            status_code=int(existing.response_status),
        )
        response.headers["Idempotency-Replayed"] = "true"
        return response

    try:
        repo.create(
            tenant_id=tenant_id,
            idempotency_key=key,
            request_method=request.method,
            request_path=target,
        )
    except IntegrityError:
        # Another request reserved the same key between our read and insert.
        db.rollback()
        raise HTTPException(status_code=409, detail=KEY_IN_PROGRESS) from None
    return IdempotencyResult(key=key, method=request.method, target=target)


def record_idempotency_response(
    db: Session,
    tenant_id: UUID,
    key: str,
    status: int,
    body: dict[str, Any],
) -> None:
    """Store the finished response so repeats of the key replay it."""
    repo = IdempotencyRepository(db)
    record = repo.get_by_key(tenant_id, key)
    if record is not None:
        repo.update_response(record, status, body)


def release_idempotency_key(db: Session, tenant_id: UUID, key: str) -> None:
    """Forget a reserved key whose request failed, so the caller can retry it."""
    db.rollback()
    IdempotencyRepository(db).delete_pending(tenant_id, key)
