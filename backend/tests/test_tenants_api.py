"""Tests for the tenant API."""

from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from steward.main import app
from tests.conftest import DEFAULT_TENANT_ID


@pytest.fixture
def client():
    return TestClient(app)


class TestTenantsAPI:
    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_create(self, client):
        response = client.post("/api/tenants", json={"name": "St. Mark's Parish"})

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "St. Mark's Parish"
        assert data["defaultCurrency"] == "USD"
        assert data["donationsEnabled"] is True
        assert data["recurringPledgesEnabled"] is True

    def test_create_requires_name(self, client):
        response = client.post("/api/tenants", json={"name": ""})
        assert response.status_code == 422

    def test_get(self, client):
        response = client.get(f"/api/tenants/{DEFAULT_TENANT_ID}")
        assert response.status_code == 200
        assert response.json()["id"] == str(DEFAULT_TENANT_ID)

    def test_get_not_found(self, client):
        response = client.get(f"/api/tenants/{uuid4()}")
        assert response.status_code == 404
        assert response.json() == {"error": "Tenant not found"}

    def test_disable_recurring_pledges(self, client):
        response = client.patch(
            f"/api/tenants/{DEFAULT_TENANT_ID}", json={"recurringPledgesEnabled": False}
        )

        assert response.status_code == 200
        assert response.json()["recurringPledgesEnabled"] is False
        pledges = client.get(f"/api/tenants/{DEFAULT_TENANT_ID}/donations/pledges")
        assert pledges.status_code == 403

    def test_update_not_found(self, client):
        response = client.patch(f"/api/tenants/{uuid4()}", json={"name": "X"})
        assert response.status_code == 404
