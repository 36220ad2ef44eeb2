"""
Time window helpers shared by the overlap checker and the batch jobs.
All timestamps are naive UTC, matching what is stored in the database.
"""

from dataclasses import dataclass
from datetime import datetime, time, timedelta, timezone

from ..errors import ValidationError


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_naive_utc(value: datetime) -> datetime:
    """Normalize an aware datetime to naive UTC; naive values pass through"""
    if value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


@dataclass(frozen=True)
class TimeWindow:
    start: datetime
    end: datetime
    end_inclusive: bool = True

    def contains(self, ts: datetime) -> bool:
        if ts < self.start:
            return False
        return ts <= self.end if self.end_inclusive else ts < self.end


def intervals_overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> bool:
    """Half-open overlap: [a_start, a_end) and [b_start, b_end) share at least one instant"""
    return a_start < b_end and b_start < a_end


def validate_interval(start: datetime, end: datetime) -> None:
    if start is None or end is None:
        raise ValidationError("Both start and end are required")
    if not start < end:
        raise ValidationError(f"Invalid interval: start {start.isoformat()} is not before end {end.isoformat()}")


def tomorrow_window(now: datetime) -> TimeWindow:
    """[00:00:00, 23:59:59.999999] of the day after ``now``"""
    start = datetime.combine(now.date() + timedelta(days=1), time.min)
    end = datetime.combine(start.date(), time.max)
    return TimeWindow(start=start, end=end)


def upcoming_window(now: datetime, delta: timedelta) -> TimeWindow:
    return TimeWindow(start=now, end=now + delta)


def retention_cutoff(now: datetime, days: int) -> datetime:
    if days <= 0:
        raise ValidationError("Retention must be a positive number of days")
    return now - timedelta(days=days)
