"""Tests for the sorting utility used by list endpoints."""

from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.orm import Session

from steward.core.database import get_db
from steward.core.sorting import apply_order_by
from steward.models.fund import Fund
from steward.models.pledge import Pledge
from steward.repositories.pledge_repository import SORTABLE_FIELDS
from tests.conftest import DEFAULT_TENANT_ID


@pytest.fixture
def db_session():
    gen = get_db()
    db = next(gen)
    try:
        yield db
    finally:
        for _ in gen:
            pass


@pytest.fixture
def funds(db_session: Session) -> list[Fund]:
    base = datetime(2026, 1, 1, tzinfo=UTC)
    created = []
    for index, name in enumerate(["Missions", "Benevolence", "Youth"]):
        fund = Fund(
            tenant_id=DEFAULT_TENANT_ID,
            name=name,
            type="OFFERING",
            currency="USD",
            created_at=base + timedelta(days=index),
        )
        db_session.add(fund)
        created.append(fund)
    db_session.commit()
    return created


def _names(query) -> list[str]:  # type: ignore[no-untyped-def]
    return [fund.name for fund in query.all()]


class TestApplyOrderBy:
    def test_default_sort_created_at_desc(self, db_session: Session, funds):
        query = apply_order_by(db_session.query(Fund), Fund, None)
        assert _names(query) == ["Youth", "Benevolence", "Missions"]

    def test_camel_case_field(self, db_session: Session, funds):
        query = apply_order_by(db_session.query(Fund), Fund, "createdAt:asc")
        assert _names(query) == ["Missions", "Benevolence", "Youth"]

    def test_snake_case_field(self, db_session: Session, funds):
        query = apply_order_by(db_session.query(Fund), Fund, "name:desc")
        assert _names(query) == ["Youth", "Missions", "Benevolence"]

    def test_direction_defaults_to_asc(self, db_session: Session, funds):
        query = apply_order_by(db_session.query(Fund), Fund, "name")
        assert _names(query) == ["Benevolence", "Missions", "Youth"]

    def test_unknown_field_falls_back(self, db_session: Session, funds):
        query = apply_order_by(db_session.query(Fund), Fund, "nonsense:asc")
        assert _names(query) == ["Youth", "Benevolence", "Missions"]

    def test_invalid_direction_keeps_default(self, db_session: Session, funds):
        query = apply_order_by(db_session.query(Fund), Fund, "name:sideways")
        assert _names(query) == ["Youth", "Missions", "Benevolence"]

    def test_field_outside_allow_list_ignored(self, db_session: Session):
        query = apply_order_by(
            db_session.query(Pledge), Pledge, "paymentMethodToken:asc", allowed_fields=SORTABLE_FIELDS
        )
        assert "payment_method_token" not in str(query.statement).split("ORDER BY")[1]
