"""Tests for minute arithmetic and the buffered overlap test."""

from __future__ import annotations

import itertools
from datetime import time

import pytest

from app.domain.timeslots import (
    TimeSlot,
    build_slot,
    minutes_to_time,
    overlaps,
    time_to_minutes,
)


def test_time_round_trip_over_whole_day():
    """Every minute of the day survives a round trip through HH:MM."""
    for minutes in range(0, 24 * 60):
        assert time_to_minutes(minutes_to_time(minutes)) == minutes


def test_time_to_minutes_accepts_seconds_and_time_objects():
    """Seconds are dropped and time objects are accepted."""
    assert time_to_minutes("23:00:00") == 1380
    assert time_to_minutes(time(9, 45)) == 585


@pytest.mark.parametrize("bad", ["", "9", "25:00", "10:60", "ab:cd"])
def test_time_to_minutes_rejects_malformed(bad):
    """Malformed times raise ValueError."""
    with pytest.raises(ValueError):
        time_to_minutes(bad)


def test_minutes_to_time_does_not_wrap_past_midnight():
    """Minutes past midnight format as 24:xx rather than wrapping."""
    assert minutes_to_time(1470) == "24:30"


def test_build_slot_adds_buffer_after_end():
    """The buffer is added after the booking ends."""
    slot = build_slot(600, 60, 15)
    assert (slot.start_minutes, slot.end_minutes, slot.cleanup_end_minutes) == (600, 660, 675)
    assert slot.buffer_minutes == 15


def test_slot_rejects_non_positive_duration():
    """A slot must have a positive duration."""
    with pytest.raises(ValueError):
        TimeSlot(start_minutes=600, end_minutes=600, cleanup_end_minutes=600)


def test_overlap_is_symmetric():
    """The overlap test gives the same answer either way round."""
    slots = [
        build_slot(start, duration, buffer)
        for start, duration, buffer in itertools.product(
            (540, 600, 630, 660, 675), (15, 60, 90), (0, 15)
        )
    ]
    for a, b in itertools.product(slots, repeat=2):
        assert overlaps(a, b) == overlaps(b, a)


def test_start_inside_buffer_conflicts():
    """Starting inside another slot's buffer is a conflict."""
    existing = build_slot(600, 60, 15)
    assert overlaps(build_slot(670, 30, 15), existing)


def test_start_at_cleanup_end_is_free():
    """Starting exactly at the cleanup end is free."""
    existing = build_slot(600, 60, 15)
    assert not overlaps(build_slot(675, 30, 15), existing)


def test_candidate_buffer_blocks_following_booking():
    """Our own buffer can run into the next booking."""
    later = build_slot(600, 60, 15)
    assert overlaps(build_slot(540, 55, 15), later)


def test_touching_without_buffer_is_not_a_conflict():
    """Back-to-back slots without a buffer don't conflict."""
    assert not overlaps(build_slot(600, 60, 0), build_slot(660, 30, 0))


def test_plain_intersection_conflicts():
    """Intersecting slots conflict."""
    assert overlaps(build_slot(600, 60, 0), build_slot(630, 60, 0))
