"""Time-based inference that an application thread went silent."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union

from skills.application_sync.types import ApplicationRecord

DEFAULT_GHOSTING_THRESHOLD_DAYS = 45

DateLike = Union[date, datetime, str, None]


def _to_datetime(value: DateLike) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        candidate = str(value).strip()
        if candidate.endswith("Z"):
            candidate = candidate[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(candidate)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def last_activity(record: Optional[ApplicationRecord], fallback_date: DateLike = None) -> Optional[datetime]:
    values: list[DateLike] = [fallback_date]
    if record is not None:
        values.extend([record.last_status_change_date, record.last_email_date, record.applied_date])
    dates = [d for d in (_to_datetime(v) for v in values) if d is not None]
    return max(dates) if dates else None


def is_ghosted(
    record: Optional[ApplicationRecord],
    fallback_date: DateLike = None,
    threshold_days: int = DEFAULT_GHOSTING_THRESHOLD_DAYS,
    *,
    now: Optional[datetime] = None,
) -> bool:
    """True when the most recent known activity is at least ``threshold_days`` old.

    With no usable date at all there is no evidence of staleness, so the
    answer is False regardless of the threshold.
    """
    latest = last_activity(record, fallback_date)
    if latest is None:
        return False
    current = now or datetime.now(timezone.utc)
    if current.tzinfo is None:
        current = current.replace(tzinfo=timezone.utc)
    days_since = (current - latest).total_seconds() / 86400
    return days_since >= threshold_days
