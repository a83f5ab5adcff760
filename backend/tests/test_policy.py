"""
Tests for the pure admission rules (capacity, start, interval, duration)
and their fixed evaluation order.
"""

from datetime import datetime, timedelta, timezone

import pytest

from roombook.core.config import Settings
from roombook.core.errors import (
    CapacityExceeded,
    DurationTooLong,
    DurationTooShort,
    InvalidAttendees,
    InvalidInterval,
    InvalidStart,
)
from roombook.domain.lifecycle import ReservationStatus
from roombook.domain.policy import BookingPolicy, ReservationCandidate, RoomSnapshot

NOW = datetime(2030, 1, 7, 8, 0, tzinfo=timezone.utc)
ROOM = RoomSnapshot(id=1, capacity=10, is_active=True)


def candidate(start_offset=timedelta(hours=2), duration=timedelta(hours=1), attendees=5):
    start = NOW + start_offset
    return ReservationCandidate(
        user_id=1,
        room_id=ROOM.id,
        start=start,
        end=start + duration,
        attendees=attendees,
        purpose="Sprint planning",
    )


@pytest.fixture
def policy():
    return BookingPolicy()


def test_valid_candidate_returns_interval(policy):
    interval = policy.validate(candidate(), ROOM, NOW)
    assert interval.start == NOW + timedelta(hours=2)
    assert interval.duration == timedelta(hours=1)


def test_capacity_boundary(policy):
    policy.validate(candidate(attendees=10), ROOM, NOW)
    with pytest.raises(CapacityExceeded) as exc_info:
        policy.validate(candidate(attendees=11), ROOM, NOW)
    assert "10" in exc_info.value.message


def test_non_positive_attendees(policy):
    with pytest.raises(InvalidAttendees):
        policy.validate(candidate(attendees=0), ROOM, NOW)


def test_start_must_be_strictly_in_future(policy):
    with pytest.raises(InvalidStart):
        policy.validate(candidate(start_offset=timedelta(0)), ROOM, NOW)
    with pytest.raises(InvalidStart):
        policy.validate(candidate(start_offset=-timedelta(hours=1)), ROOM, NOW)


def test_end_before_start(policy):
    with pytest.raises(InvalidInterval):
        policy.validate(candidate(duration=-timedelta(hours=1)), ROOM, NOW)
    with pytest.raises(InvalidInterval):
        policy.validate(candidate(duration=timedelta(0)), ROOM, NOW)


@pytest.mark.parametrize(
    "duration, error",
    [
        (timedelta(minutes=30), None),
        (timedelta(minutes=29), DurationTooShort),
        (timedelta(hours=8), None),
        (timedelta(hours=8, minutes=1), DurationTooLong),
    ],
)
def test_duration_boundaries(policy, duration, error):
    if error is None:
        assert policy.validate(candidate(duration=duration), ROOM, NOW).duration == duration
    else:
        with pytest.raises(error):
            policy.validate(candidate(duration=duration), ROOM, NOW)


def test_duration_messages_use_policy_values():
    policy = BookingPolicy(min_duration=timedelta(minutes=45), max_duration=timedelta(hours=2))
    with pytest.raises(DurationTooShort, match="45 minutes"):
        policy.validate(candidate(duration=timedelta(minutes=30)), ROOM, NOW)
    with pytest.raises(DurationTooLong, match="2 hours"):
        policy.validate(candidate(duration=timedelta(hours=3)), ROOM, NOW)


def test_capacity_checked_before_start_time(policy):
    # Over capacity and in the past: capacity is rule 2, start is rule 3
    with pytest.raises(CapacityExceeded):
        policy.validate(candidate(attendees=50, start_offset=-timedelta(hours=1)), ROOM, NOW)


def test_start_checked_before_interval_order(policy):
    with pytest.raises(InvalidStart):
        policy.validate(
            candidate(start_offset=-timedelta(hours=1), duration=-timedelta(minutes=30)),
            ROOM,
            NOW,
        )


def test_interval_order_checked_before_duration(policy):
    with pytest.raises(InvalidInterval):
        policy.validate(candidate(duration=-timedelta(hours=10)), ROOM, NOW)


def test_initial_status_follows_approval_setting():
    assert BookingPolicy().initial_status is ReservationStatus.CONFIRMED
    assert BookingPolicy(requires_approval=True).initial_status is ReservationStatus.PENDING


def test_policy_from_settings():
    settings = Settings(
        MIN_BOOKING_MINUTES=15,
        MAX_BOOKING_MINUTES=120,
        CANCELLATION_LEAD_MINUTES=60,
        RESERVATION_REQUIRES_APPROVAL=True,
        BOOKING_MAX_RETRIES=5,
    )
    policy = BookingPolicy.from_settings(settings)
    assert policy.min_duration == timedelta(minutes=15)
    assert policy.max_duration == timedelta(hours=2)
    assert policy.cancellation_lead_time == timedelta(hours=1)
    assert policy.requires_approval is True
    assert policy.max_retries == 5
