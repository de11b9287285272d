"""Per-tenant pledge settings: read with defaults, validate, and save."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy.orm import Session

from steward.core.config import settings as app_settings
from steward.models.pledge_settings import PledgeSettings
from steward.repositories.pledge_settings_repository import PledgeSettingsRepository
from steward.schemas.pledge_settings import (
    DUNNING_DAY_LIMIT,
    GRACE_PERIOD_DAYS_LIMIT,
    MAX_FAILURES_LIMIT,
    RETRY_INTERVAL_HOURS_LIMIT,
    PledgeSettingsResponse,
    PledgeSettingsUpdate,
    PledgeSettingsValues,
)

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    "max_failures_before_pause",
    "retry_interval_hours",
    "grace_period_days",
    "auto_resume_on_success",
    "dunning_email_days",
)


def default_settings() -> PledgeSettingsValues:
    """Tenant defaults from application config."""
    return PledgeSettingsValues(
        max_failures_before_pause=app_settings.PLEDGE_DEFAULT_MAX_FAILURES,
        retry_interval_hours=app_settings.PLEDGE_DEFAULT_RETRY_INTERVAL_HOURS,
        grace_period_days=app_settings.PLEDGE_DEFAULT_GRACE_PERIOD_DAYS,
        auto_resume_on_success=app_settings.PLEDGE_DEFAULT_AUTO_RESUME,
        dunning_email_days=list(app_settings.PLEDGE_DEFAULT_DUNNING_DAYS),
    )


def _check_int(name: str, value: Any, low: int, high: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer")
    if value < low or value > high:
        raise ValueError(f"{name} must be between {low} and {high}")
    return value


def validate_settings(values: dict[str, Any]) -> dict[str, Any]:
    """Check a complete settings dict. Out-of-range values raise, never clamp."""
    _check_int("maxFailuresBeforePause", values["max_failures_before_pause"], 1, MAX_FAILURES_LIMIT)
    _check_int("retryIntervalHours", values["retry_interval_hours"], 1, RETRY_INTERVAL_HOURS_LIMIT)
    _check_int("gracePeriodDays", values["grace_period_days"], 0, GRACE_PERIOD_DAYS_LIMIT)
    if not isinstance(values["auto_resume_on_success"], bool):
        raise ValueError("autoResumeOnSuccess must be a boolean")
    days = values["dunning_email_days"]
    if not isinstance(days, list):
        raise ValueError("dunningEmailDays must be a list of integers")
    for day in days:
        _check_int("dunningEmailDays entries", day, 0, DUNNING_DAY_LIMIT)
    return values


class PledgeSettingsService:
    """Reads and writes the pledge rules of a tenant."""

    def __init__(self, db: Session):
        self.repo = PledgeSettingsRepository(db)

    @staticmethod
    def _values_of(row: PledgeSettings) -> PledgeSettingsValues:
        return PledgeSettingsValues(
            max_failures_before_pause=int(row.max_failures_before_pause),
            retry_interval_hours=int(row.retry_interval_hours),
            grace_period_days=int(row.grace_period_days),
            auto_resume_on_success=bool(row.auto_resume_on_success),
            dunning_email_days=list(row.dunning_email_days or []),
        )

    def get_settings(self, tenant_id: UUID) -> PledgeSettingsValues:
        """Persisted settings for the tenant, or the defaults when none were saved."""
        row = self.repo.get_by_tenant(tenant_id)
        if row is None:
            return default_settings()
        return self._values_of(row)

    def get_settings_response(self, tenant_id: UUID) -> PledgeSettingsResponse:
        row = self.repo.get_by_tenant(tenant_id)
        if row is None:
            return PledgeSettingsResponse(
                tenant_id=tenant_id,
                is_default=True,
                **default_settings().model_dump(),
            )
        return PledgeSettingsResponse(
            tenant_id=tenant_id,
            is_default=False,
            created_at=row.created_at,
            updated_at=row.updated_at,
            **self._values_of(row).model_dump(),
        )

    def save_settings(
        self,
        tenant_id: UUID,
        data: PledgeSettingsUpdate | dict[str, Any],
    ) -> PledgeSettingsValues:
        """Merge a partial payload over the current settings, validate, and upsert.

        Raises:
            ValueError: If any resulting value is out of range.
        """
        if isinstance(data, PledgeSettingsUpdate):
            incoming = data.model_dump(exclude_unset=True)
        else:
            incoming = {k: v for k, v in data.items() if k in SETTINGS_FIELDS}

        merged = self.get_settings(tenant_id).model_dump()
        for key, value in incoming.items():
            if value is None:
                continue
            merged[key] = list(value) if key == "dunning_email_days" else value

        validate_settings(merged)
        row = self.repo.upsert(tenant_id, merged)
        logger.info("Saved pledge settings for tenant %s", tenant_id)
        return self._values_of(row)
