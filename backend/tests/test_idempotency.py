"""Tests for idempotency repository, core dependency, and endpoint integration."""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from steward.core.database import get_db
from steward.core.idempotency import (
    IdempotencyResult,
    check_idempotency,
    record_idempotency_response,
    release_idempotency_key,
)
from steward.main import app
from steward.models.idempotency_record import IdempotencyRecord
from steward.repositories.idempotency_repository import IdempotencyRepository
from tests.conftest import DEFAULT_TENANT_ID

PROCESS_URL = f"/api/tenants/{DEFAULT_TENANT_ID}/donations/pledges/process"


@pytest.fixture
def db_session():
    """Create a database session for direct testing."""
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def repo(db_session: Session) -> IdempotencyRepository:
    return IdempotencyRepository(db_session)


def _request(key: str | None = None, query: bytes = b"") -> Request:
    headers = []
    if key is not None:
        headers.append((b"idempotency-key", key.encode()))
    scope = {
        "type": "http",
        "method": "POST",
        "path": PROCESS_URL,
        "headers": headers,
        "query_string": query,
        "server": ("testserver", 80),
        "scheme": "http",
    }
    return Request(scope)


class TestIdempotencyRepository:
    def test_create_and_get(self, repo: IdempotencyRepository) -> None:
        repo.create(
            tenant_id=DEFAULT_TENANT_ID,
            idempotency_key="key-1",
            request_method="POST",
            request_path=PROCESS_URL,
        )

        record = repo.get_by_key(DEFAULT_TENANT_ID, "key-1")

        assert record is not None
        assert record.response_status is None

    def test_update_response(self, repo: IdempotencyRepository) -> None:
        record = repo.create(
            tenant_id=DEFAULT_TENANT_ID,
            idempotency_key="key-2",
            request_method="POST",
            request_path=PROCESS_URL,
        )

        repo.update_response(record, 200, {"processed": 1})

        stored = repo.get_by_key(DEFAULT_TENANT_ID, "key-2")
        assert stored.response_status == 200  # type: ignore[union-attr]
        assert stored.response_body == {"processed": 1}  # type: ignore[union-attr]

    def test_delete_expired(self, repo: IdempotencyRepository, db_session: Session) -> None:
        old = repo.create(
            tenant_id=DEFAULT_TENANT_ID,
            idempotency_key="old",
            request_method="POST",
            request_path=PROCESS_URL,
        )
        repo.create(
            tenant_id=DEFAULT_TENANT_ID,
            idempotency_key="fresh",
            request_method="POST",
            request_path=PROCESS_URL,
        )
        old.created_at = datetime.now(UTC) - timedelta(hours=48)
        db_session.commit()

        deleted = repo.delete_expired(max_age_hours=24)

        assert deleted == 1
        assert db_session.query(IdempotencyRecord).count() == 1


class TestCheckIdempotency:
    def test_no_header(self, db_session: Session) -> None:
        assert check_idempotency(_request(), db_session, DEFAULT_TENANT_ID) is None

    def test_new_key_creates_record(self, db_session: Session, repo: IdempotencyRepository) -> None:
        result = check_idempotency(_request("abc"), db_session, DEFAULT_TENANT_ID)

        assert isinstance(result, IdempotencyResult)
        assert result.key == "abc"
        assert repo.get_by_key(DEFAULT_TENANT_ID, "abc") is not None

    def test_completed_key_replays(self, db_session: Session) -> None:
        check_idempotency(_request("abc"), db_session, DEFAULT_TENANT_ID)
        record_idempotency_response(db_session, DEFAULT_TENANT_ID, "abc", 200, {"processed": 2})

        result = check_idempotency(_request("abc"), db_session, DEFAULT_TENANT_ID)

        assert isinstance(result, JSONResponse)
        assert result.status_code == 200
        assert result.headers["Idempotency-Replayed"] == "true"

    def test_in_progress_key_conflicts(self, db_session: Session) -> None:
        check_idempotency(_request("abc"), db_session, DEFAULT_TENANT_ID)

        with pytest.raises(HTTPException) as exc_info:
            check_idempotency(_request("abc"), db_session, DEFAULT_TENANT_ID)

        assert exc_info.value.status_code == 409


class TestProcessEndpointIdempotency:
    def test_in_progress_key_returns_409(self, repo: IdempotencyRepository) -> None:
        repo.create(
            tenant_id=DEFAULT_TENANT_ID,
            idempotency_key="busy",
            request_method="POST",
            request_path=PROCESS_URL,
        )
        client = TestClient(app)

        response = client.post(PROCESS_URL, headers={"Idempotency-Key": "busy"})

        assert response.status_code == 409
        assert response.json() == {
            "error": "A request with this Idempotency-Key is still being processed"
        }

    def test_response_is_recorded_for_replay(self, repo: IdempotencyRepository) -> None:
        client = TestClient(app)
        first = client.post(PROCESS_URL, headers={"Idempotency-Key": "shared"})
        assert first.status_code == 200

        record = repo.get_by_key(DEFAULT_TENANT_ID, "shared")
        assert record is not None
        assert record.response_status == 200
        assert record.response_body["action"] == "process"  # type: ignore[index]

    def test_failed_run_releases_key(self, repo: IdempotencyRepository) -> None:
        client = TestClient(app, raise_server_exceptions=False)
        outage = OperationalError("UPDATE pledges", {}, Exception("database is locked"))

        with patch("steward.routers.pledges.run_pledge_action", AsyncMock(side_effect=outage)):
            failed = client.post(PROCESS_URL, headers={"Idempotency-Key": "retry-me"})

        assert failed.status_code == 500
        assert repo.get_by_key(DEFAULT_TENANT_ID, "retry-me") is None

        again = client.post(PROCESS_URL, headers={"Idempotency-Key": "retry-me"})

        assert again.status_code == 200
        assert again.json()["action"] == "process"
        assert "Idempotency-Replayed" not in again.headers

    def test_key_reused_for_other_action_rejected(self) -> None:
        client = TestClient(app)
        client.post(PROCESS_URL, headers={"Idempotency-Key": "run-1"})

        response = client.post(
            PROCESS_URL, params={"action": "retry"}, headers={"Idempotency-Key": "run-1"}
        )

        assert response.status_code == 422
        assert response.json() == {
            "error": "Idempotency-Key was already used for a different request"
        }


class TestReleaseIdempotencyKey:
    def test_pending_key_is_deleted(self, db_session: Session, repo: IdempotencyRepository) -> None:
        check_idempotency(_request("pending"), db_session, DEFAULT_TENANT_ID)

        release_idempotency_key(db_session, DEFAULT_TENANT_ID, "pending")

        assert repo.get_by_key(DEFAULT_TENANT_ID, "pending") is None

    def test_finished_key_is_kept(self, db_session: Session, repo: IdempotencyRepository) -> None:
        check_idempotency(_request("done"), db_session, DEFAULT_TENANT_ID)
        record_idempotency_response(db_session, DEFAULT_TENANT_ID, "done", 200, {"processed": 0})

        release_idempotency_key(db_session, DEFAULT_TENANT_ID, "done")

        assert repo.get_by_key(DEFAULT_TENANT_ID, "done") is not None

    def test_query_string_is_part_of_request(self, db_session: Session) -> None:
        request = _request("q", query=b"action=retry")

        result = check_idempotency(request, db_session, DEFAULT_TENANT_ID)

        assert isinstance(result, IdempotencyResult)
        assert result.target == f"{PROCESS_URL}?action=retry"
