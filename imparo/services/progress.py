from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Optional, Union

from imparo.constants import DAYS_PER_WEEK, PROGRAM_DAYS, PROGRAM_WEEKS
from imparo.models.plan import ProgressSnapshot

Instant = Union[datetime, date]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_date(value: Instant) -> date:
    """
    Calendar day of an instant in UTC.
    Naive datetimes are taken as UTC already (sqlite and the memory store
    both hand them back that way).
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc)
        return value.date()
    return value


def days_between(earlier: Instant, later: Instant) -> int:
    """Midnight-anchored day count; 23:59 -> 00:01 the next day is 1."""
    return (utc_date(later) - utc_date(earlier)).days


def compute_progress(enrolled_at: Instant, now: Optional[Instant] = None) -> ProgressSnapshot:
    elapsed = days_between(enrolled_at, now if now is not None else utc_now())
    # enrollment in the future (clock skew, manual override) reads as day one
    elapsed = max(0, elapsed)

    return ProgressSnapshot(
        week_number=min(elapsed // DAYS_PER_WEEK + 1, PROGRAM_WEEKS),
        day_number=elapsed % DAYS_PER_WEEK + 1,
        total_elapsed_days=elapsed + 1,
        completed=elapsed >= PROGRAM_DAYS,
    )


def progress_percentage(snapshot: ProgressSnapshot) -> int:
    if snapshot.completed:
        return 100
    done = snapshot.total_elapsed_days - 1
    return int(round(min(done / PROGRAM_DAYS, 1.0) * 100))
