"""Tests for the fund API."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from steward.core.database import get_db
from steward.main import app
from steward.models.audit_log import AuditLog
from steward.models.tenant import Tenant
from tests.conftest import DEFAULT_TENANT_ID

FUNDS_URL = f"/api/tenants/{DEFAULT_TENANT_ID}/donations/funds"


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db_session():
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


def _create_fund(client: TestClient, **overrides) -> dict:  # type: ignore[no-untyped-def, type-arg]
    payload = {"name": "General Fund", "type": "OFFERING", "currency": "USD"}
    payload.update(overrides)
    response = client.post(FUNDS_URL, json=payload)
    assert response.status_code == 201, response.text
    return response.json()  # type: ignore[no-any-return]


class TestCreateFund:
    def test_create(self, client):
        data = _create_fund(
            client,
            name="Building Fund",
            type="PROJECT",
            goalAmountCents=5000000,
            minAmountCents=500,
        )

        assert data["name"] == "Building Fund"
        assert data["type"] == "PROJECT"
        assert data["visibility"] == "PUBLIC"
        assert data["goalAmountCents"] == 5000000
        assert data["minAmountCents"] == 500
        assert data["allowAnonymous"] is True
        assert data["archivedAt"] is None
        assert data["amountRaisedCents"] == 0
        assert data["tenantId"] == str(DEFAULT_TENANT_ID)

    def test_create_is_audited(self, client, db_session: Session):
        fund = _create_fund(client)

        logs = db_session.query(AuditLog).filter(AuditLog.resource_type == "fund").all()

        assert len(logs) == 1
        assert str(logs[0].resource_id) == fund["id"]
        assert logs[0].action == "created"

    @pytest.mark.parametrize(
        "payload",
        [
            {"name": "", "type": "OFFERING", "currency": "USD"},
            {"name": "Tithe", "type": "GIFT", "currency": "USD"},
            {"name": "Tithe", "type": "TITHE", "currency": "US"},
            {"name": "Tithe", "type": "TITHE", "currency": "USD", "goalAmountCents": -1},
        ],
    )
    def test_invalid_payload_returns_422(self, client, payload):
        response = client.post(FUNDS_URL, json=payload)
        assert response.status_code == 422
        assert response.json()["error"] == "Validation error"

    def test_start_after_end_returns_422(self, client):
        response = client.post(
            FUNDS_URL,
            json={
                "name": "Advent",
                "type": "SPECIAL",
                "currency": "USD",
                "startDate": "2026-12-25T00:00:00Z",
                "endDate": "2026-12-01T00:00:00Z",
            },
        )
        assert response.status_code == 422

    def test_donations_disabled(self, client, db_session: Session):
        tenant = db_session.query(Tenant).filter(Tenant.id == DEFAULT_TENANT_ID).one()
        tenant.donations_enabled = False
        db_session.commit()

        response = client.post(FUNDS_URL, json={"name": "X", "type": "OFFERING", "currency": "USD"})

        assert response.status_code == 403
        assert response.json() == {"error": "Donations are not enabled for this tenant"}


class TestListFunds:
    def test_archived_hidden_by_default(self, client):
        keep = _create_fund(client, name="Missions")
        archived = _create_fund(client, name="Old Roof")
        client.delete(f"{FUNDS_URL}/{archived['id']}")

        response = client.get(FUNDS_URL)

        assert [f["id"] for f in response.json()] == [keep["id"]]
        assert response.headers["X-Total-Count"] == "1"

    def test_include_archived(self, client):
        _create_fund(client, name="Missions")
        archived = _create_fund(client, name="Old Roof")
        client.delete(f"{FUNDS_URL}/{archived['id']}")

        response = client.get(FUNDS_URL, params={"includeArchived": "true"})

        assert len(response.json()) == 2

    def test_order_by_name(self, client):
        _create_fund(client, name="Youth")
        _create_fund(client, name="Benevolence")

        names = [f["name"] for f in client.get(FUNDS_URL, params={"orderBy": "name:asc"}).json()]

        assert names == ["Benevolence", "Youth"]


class TestGetFund:
    def test_get(self, client):
        fund = _create_fund(client)
        response = client.get(f"{FUNDS_URL}/{fund['id']}")
        assert response.status_code == 200
        assert response.json()["name"] == "General Fund"

    def test_not_found(self, client):
        response = client.get(f"{FUNDS_URL}/{uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"error": "Fund not found"}

    def test_other_tenant_fund_not_visible(self, client, db_session: Session):
        other = Tenant(id=uuid4(), name="St. Mark's Parish")
        db_session.add(other)
        db_session.commit()
        fund = _create_fund(client)

        response = client.get(f"/api/tenants/{other.id}/donations/funds/{fund['id']}")

        assert response.status_code == 404


class TestUpdateFund:
    def test_partial_update(self, client):
        fund = _create_fund(client, description="Weekly giving")

        response = client.patch(f"{FUNDS_URL}/{fund['id']}", json={"name": "Tithes & Offerings"})

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Tithes & Offerings"
        assert data["description"] == "Weekly giving"

    def test_update_audit_records_diff(self, client, db_session: Session):
        fund = _create_fund(client)
        client.patch(f"{FUNDS_URL}/{fund['id']}", json={"visibility": "HIDDEN"})

        log = db_session.query(AuditLog).filter(AuditLog.action == "updated").one()

        assert log.changes == {"visibility": {"old": "PUBLIC", "new": "HIDDEN"}}

    def test_dates_checked_against_stored_values(self, client):
        fund = _create_fund(client, startDate="2026-12-01T00:00:00Z")

        response = client.patch(f"{FUNDS_URL}/{fund['id']}", json={"endDate": "2026-11-01T00:00:00Z"})

        assert response.status_code == 400
        assert response.json()["error"] == "Start date must be before end date"

    def test_not_found(self, client):
        response = client.patch(f"{FUNDS_URL}/{uuid4()}", json={"name": "X"})
        assert response.status_code == 404


class TestArchiveFund:
    def test_archive(self, client):
        fund = _create_fund(client)

        response = client.delete(f"{FUNDS_URL}/{fund['id']}")

        assert response.status_code == 200
        assert response.json()["archivedAt"] is not None
        assert client.get(f"{FUNDS_URL}/{fund['id']}").status_code == 200

    def test_archive_twice_keeps_first_timestamp(self, client, db_session: Session):
        fund = _create_fund(client)
        first = client.delete(f"{FUNDS_URL}/{fund['id']}").json()

        second = client.delete(f"{FUNDS_URL}/{fund['id']}").json()

        assert second["archivedAt"] == first["archivedAt"]
        assert db_session.query(AuditLog).filter(AuditLog.action == "archived").count() == 1
