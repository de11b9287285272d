"""Shared sorting utilities for repository queries."""

from __future__ import annotations

from collections.abc import Collection

from pydantic.alias_generators import to_snake
from sqlalchemy import asc, desc
from sqlalchemy.orm import Query

from steward.core.database import Base


def apply_order_by(
    query: Query,  # type: ignore[type-arg]
    model: type[Base],
    order_by: str | None,
    default_field: str = "created_at",
    default_direction: str = "desc",
    allowed_fields: Collection[str] | None = None,
) -> Query:  # type: ignore[type-arg]
    """Apply ordering to a SQLAlchemy query.

    Args:
        query: The SQLAlchemy query to sort.
        model: The SQLAlchemy model class.
        order_by: Sort string in "field:direction" format (e.g. "nextChargeAt:asc").
            Field names may be camelCase or snake_case. Unknown fields fall back
            to the default.
        default_field: Default column to sort by.
        default_direction: Default sort direction ("asc" or "desc").
        allowed_fields: Optional allow-list of sortable columns.

    Returns:
        The query with ordering applied.
    """
    field = default_field
    direction = default_direction

    if order_by:
        parts = order_by.split(":", 1)
        candidate_field = to_snake(parts[0].strip())
        candidate_direction = parts[1].strip().lower() if len(parts) > 1 else "asc"

        allowed = allowed_fields is None or candidate_field in allowed_fields
        if allowed and candidate_field in model.__table__.columns:
            field = candidate_field
            if candidate_direction in ("asc", "desc"):
                direction = candidate_direction

    column = getattr(model, field)
    order_func = asc if direction == "asc" else desc
    return query.order_by(order_func(column), model.id)
