"""
Half-open time intervals.

An Interval covers ``[start, end)``: it includes its start instant and excludes
its end instant, so a booking ending at 11:00 and another starting at 11:00
never collide. Both bounds are timezone-aware and normalised to UTC.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from roombook.core.errors import InvalidInterval


def ensure_utc(value: datetime) -> datetime:
    """Normalise an aware datetime to UTC. Naive datetimes are rejected."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        raise InvalidInterval("Timestamps must include a timezone offset")
    return value.astimezone(timezone.utc)


@dataclass(frozen=True)
class Interval:
    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        start = ensure_utc(self.start)
        end = ensure_utc(self.end)
        if start >= end:
            raise InvalidInterval()
        object.__setattr__(self, "start", start)
        object.__setattr__(self, "end", end)

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, other: "Interval") -> bool:
        # [a, b) and [c, d) overlap iff a < d and c < b
        return self.start < other.end and other.start < self.end

    def contains(self, instant: datetime) -> bool:
        return self.start <= ensure_utc(instant) < self.end

    def is_past(self, now: datetime) -> bool:
        return ensure_utc(now) >= self.end
