"""Charge-date arithmetic for recurring pledges."""

import calendar as cal
from datetime import datetime, timedelta

from steward.models.pledge import PledgeFrequency
from steward.models.shared import ensure_utc

# Average number of charges per month, used for the dashboard estimate only.
MONTHLY_MULTIPLIERS: dict[str, float] = {
    PledgeFrequency.WEEKLY.value: 4.33,
    PledgeFrequency.BIWEEKLY.value: 2.17,
    PledgeFrequency.MONTHLY.value: 1.0,
    PledgeFrequency.QUARTERLY.value: 1 / 3,
    PledgeFrequency.YEARLY.value: 1 / 12,
}


def _add_months(dt: datetime, months: int) -> datetime:
    """Add months to a datetime, clamping to last day of month."""
    month = dt.month - 1 + months
    year = dt.year + month // 12
    month = month % 12 + 1
    max_day = cal.monthrange(year, month)[1]
    day = min(dt.day, max_day)
    return dt.replace(year=year, month=month, day=day)


def _add_periods(dt: datetime, frequency: str, periods: int) -> datetime:
    if frequency == PledgeFrequency.WEEKLY.value:
        return dt + timedelta(weeks=periods)
    elif frequency == PledgeFrequency.BIWEEKLY.value:
        return dt + timedelta(weeks=2 * periods)
    elif frequency == PledgeFrequency.MONTHLY.value:
        return _add_months(dt, periods)
    elif frequency == PledgeFrequency.QUARTERLY.value:
        return _add_months(dt, 3 * periods)
    elif frequency == PledgeFrequency.YEARLY.value:
        return _add_months(dt, 12 * periods)
    raise ValueError(f"Unknown frequency: {frequency}")


def add_period(dt: datetime, frequency: str) -> datetime:
    """Advance a datetime by one pledge period."""
    return _add_periods(dt, frequency, 1)


def first_charge_at(start_date: datetime, frequency: str) -> datetime:
    """Next charge date for a new pledge: one period after its start date."""
    return add_period(_utc(start_date), frequency)


def next_charge_after(scheduled: datetime, frequency: str, now: datetime) -> datetime:
    """Advance a scheduled charge date by whole periods until it is after ``now``.

    The anchor day is preserved (a pledge charged on the 15th stays on the
    15th) and periods missed while a pledge was overdue are skipped, not
    charged in a burst. Every candidate is computed from the anchor, so
    month-end clamping (Jan 31 -> Feb 28) does not drift later periods.
    """
    anchor = _utc(scheduled)
    now = _utc(now)
    periods = 1
    candidate = _add_periods(anchor, frequency, periods)
    while candidate <= now:
        periods += 1
        candidate = _add_periods(anchor, frequency, periods)
    return candidate


def retry_at(failed_at: datetime, retry_interval_hours: int) -> datetime:
    """When an active pledge that just failed should be attempted again."""
    return _utc(failed_at) + timedelta(hours=retry_interval_hours)


def estimated_monthly_cents(amount_cents: int, frequency: str) -> int:
    """Rough monthly equivalent of a pledge amount."""
    return round(amount_cents * MONTHLY_MULTIPLIERS.get(frequency, 1.0))


def _utc(value: datetime) -> datetime:
    result = ensure_utc(value)
    if result is None:
        raise ValueError("A datetime is required")
    return result
