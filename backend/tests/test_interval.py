"""
Tests for the half-open interval algebra.
"""

from datetime import datetime, timedelta, timezone

import pytest

from roombook.core.errors import InvalidInterval
from roombook.domain.interval import Interval

BASE = datetime(2030, 1, 7, tzinfo=timezone.utc)


def span(start_hour: float, end_hour: float) -> Interval:
    return Interval(BASE + timedelta(hours=start_hour), BASE + timedelta(hours=end_hour))


def test_start_must_precede_end():
    with pytest.raises(InvalidInterval):
        span(11, 10)
    with pytest.raises(InvalidInterval):
        span(10, 10)


def test_naive_datetimes_rejected():
    with pytest.raises(InvalidInterval):
        Interval(datetime(2030, 1, 7, 10), datetime(2030, 1, 7, 11))


def test_bounds_normalised_to_utc():
    plus_two = timezone(timedelta(hours=2))
    interval = Interval(datetime(2030, 1, 7, 12, tzinfo=plus_two), datetime(2030, 1, 7, 13, tzinfo=plus_two))
    assert interval.start == BASE + timedelta(hours=10)
    assert interval.start.tzinfo == timezone.utc


@pytest.mark.parametrize(
    "existing, candidate",
    [
        ((10, 12), (11, 13)),  # starts inside
        ((10, 12), (9, 11)),  # ends inside
        ((10, 14), (11, 12)),  # contained
        ((11, 12), (10, 14)),  # contains
        ((10, 12), (10, 12)),  # identical
    ],
)
def test_overlapping_shapes(existing, candidate):
    assert span(*existing).overlaps(span(*candidate))
    assert span(*candidate).overlaps(span(*existing))


def test_back_to_back_intervals_do_not_overlap():
    morning = span(10, 11)
    next_slot = span(11, 12)
    assert not morning.overlaps(next_slot)
    assert not next_slot.overlaps(morning)


def test_disjoint_intervals_do_not_overlap():
    assert not span(8, 9).overlaps(span(13, 14))


def test_contains_is_half_open():
    interval = span(10, 11)
    assert interval.contains(BASE + timedelta(hours=10))
    assert interval.contains(BASE + timedelta(hours=10, minutes=59))
    assert not interval.contains(BASE + timedelta(hours=11))


def test_duration_and_is_past():
    interval = span(10, 11.5)
    assert interval.duration == timedelta(minutes=90)
    assert interval.is_past(BASE + timedelta(hours=11.5))
    assert not interval.is_past(BASE + timedelta(hours=11))
