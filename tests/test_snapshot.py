"""Tests for prefetching and the snapshot-backed checks."""

from __future__ import annotations

import random
from datetime import date, datetime, time, timedelta

import pytest

from app.domain.errors import StoreQueryError
from app.domain.models import BlackoutWindow, Booking, BookingCandidate, ConflictSnapshot
from app.domain.timeslots import minutes_to_time
from app.repos.memory import InMemoryBookingStore
from app.services.availability import check_unavailable
from app.services.conflicts import (
    GENERIC_ERROR_REASON,
    check_boat_conflict,
    check_coach_conflict,
    check_driver_conflict,
)
from app.services.snapshot import (
    check_boat_conflict_from_cache,
    check_boat_unavailable_from_cache,
    check_coach_conflict_from_cache,
    check_driver_conflict_from_cache,
    prefetch_conflict_data,
)

_DAY = date(2026, 4, 6)


def _candidate(**overrides) -> BookingCandidate:
    defaults = dict(boat_id=1, booking_date=_DAY, start_time="10:00", duration_min=60)
    defaults.update(overrides)
    return BookingCandidate(**defaults)


def _seeded_store() -> InMemoryBookingStore:
    store = InMemoryBookingStore()
    store.add_booking(
        Booking(
            id=1,
            boat_id=1,
            start_at=datetime(2026, 4, 6, 9, 0),
            duration_min=60,
            contact_name="Ana",
            coach_ids=["amy"],
            driver_ids=["kai"],
        )
    )
    store.add_booking(
        Booking(
            id=2,
            boat_id=2,
            start_at=datetime(2026, 4, 13, 9, 0),
            duration_min=60,
            contact_name="Bo",
            coach_ids=["ben"],
        )
    )
    store.add_booking(
        Booking(
            id=3,
            boat_id=1,
            start_at=datetime(2026, 5, 1, 9, 0),
            duration_min=60,
            contact_name="Outside span",
        )
    )
    store.add_blackout_window(
        BlackoutWindow(
            boat_id=2,
            start_date=date(2026, 4, 13),
            end_date=date(2026, 4, 13),
            start_time=time(15, 0),
            reason="fuel dock",
        )
    )
    return store


# ---------------------------------------------------------------------------
# prefetch_conflict_data
# ---------------------------------------------------------------------------


def test_prefetch_issues_one_read_per_category():
    """Prefetch reads each category once for the whole batch."""
    store = _seeded_store()
    candidates = [
        _candidate(coach_ids=["amy"]),
        _candidate(boat_id=2, booking_date=date(2026, 4, 13), driver_ids=["kai"]),
    ]

    snapshot = prefetch_conflict_data(store, candidates)

    assert store.read_count == 4
    assert snapshot.start_date == _DAY
    assert snapshot.end_date == date(2026, 4, 13)
    assert snapshot.boat_ids == frozenset({1, 2})
    assert snapshot.person_ids == frozenset({"amy", "kai"})
    assert {b.id for b in snapshot.boat_bookings} == {1, 2}
    assert [b.id for b in snapshot.coach_bookings] == [1]
    assert [b.id for b in snapshot.driver_bookings] == [1]
    assert [w.reason for w in snapshot.blackout_windows] == ["fuel dock"]


def test_prefetch_lookahead_widens_the_span():
    """Lookahead extends the prefetched date range."""
    store = _seeded_store()
    snapshot = prefetch_conflict_data(store, [_candidate()], lookahead_days=30)
    assert snapshot.end_date == _DAY + timedelta(days=30)
    assert 3 in {b.id for b in snapshot.boat_bookings}


def test_prefetch_without_people_skips_people_reads():
    """Batches with no people skip the coach and driver reads."""
    store = _seeded_store()
    prefetch_conflict_data(store, [_candidate()])
    assert store.read_count == 2


def test_prefetch_of_empty_batch_reads_nothing():
    """An empty batch gives an empty snapshot without reads."""
    store = _seeded_store()
    snapshot = prefetch_conflict_data(store, [])
    assert snapshot == ConflictSnapshot()
    assert store.read_count == 0


def test_prefetch_propagates_store_errors():
    """A failed booking read escapes the prefetch."""

    class FailingStore(InMemoryBookingStore):
        def list_boat_bookings(self, boat_ids, start_date, end_date):
            raise StoreQueryError("list_boat_bookings")

    with pytest.raises(StoreQueryError):
        prefetch_conflict_data(FailingStore(), [_candidate()])


def test_prefetch_records_failed_blackout_read():
    """A failed blackout read is recorded and availability passes."""

    class FailingStore(InMemoryBookingStore):
        def list_blackout_windows(self, boat_ids, start_date, end_date):
            raise StoreQueryError("list_blackout_windows")

    snapshot = prefetch_conflict_data(FailingStore(), [_candidate()])

    assert snapshot.blackouts_loaded is False
    result = check_boat_unavailable_from_cache(snapshot, 1, _DAY, "10:00", duration_min=60)
    assert result.is_unavailable is False


def test_snapshot_is_immutable():
    """Snapshots cannot be modified after they are built."""
    snapshot = prefetch_conflict_data(_seeded_store(), [_candidate()])
    with pytest.raises(Exception):
        snapshot.boat_bookings = ()


# ---------------------------------------------------------------------------
# Cached checks
# ---------------------------------------------------------------------------


def test_cached_checks_do_not_read_the_store():
    """Checks against a snapshot never touch the store."""
    store = _seeded_store()
    snapshot = prefetch_conflict_data(store, [_candidate(coach_ids=["amy"])])
    reads = store.read_count

    check_boat_unavailable_from_cache(snapshot, 1, _DAY, "09:30", duration_min=30)
    check_boat_conflict_from_cache(snapshot, 1, _DAY, "09:30", 30)
    check_coach_conflict_from_cache(snapshot, "amy", _DAY, "09:30", 30)

    assert store.read_count == reads


def test_cached_availability_matches_live():
    """Cached availability agrees with the live check."""
    store = _seeded_store()
    day = date(2026, 4, 13)
    snapshot = prefetch_conflict_data(store, [_candidate(boat_id=2, booking_date=day)])

    for start in ("14:00", "14:30", "15:00", "20:00"):
        live = check_unavailable(store, 2, day, start, duration_min=45)
        cached = check_boat_unavailable_from_cache(snapshot, 2, day, start, duration_min=45)
        assert live == cached


def test_cached_person_checks_match_live():
    """Cached coach and driver checks agree with the live ones."""
    store = _seeded_store()
    snapshot = prefetch_conflict_data(
        store, [_candidate(coach_ids=["amy"], driver_ids=["kai"])]
    )
    for start in ("08:00", "08:30", "09:30", "10:00"):
        assert check_coach_conflict(store, "amy", _DAY, start, 30) == (
            check_coach_conflict_from_cache(snapshot, "amy", _DAY, start, 30)
        )
        assert check_driver_conflict(store, "kai", _DAY, start, 30) == (
            check_driver_conflict_from_cache(snapshot, "kai", _DAY, start, 30)
        )


def test_cached_check_outside_snapshot_fails_closed():
    """Asking a snapshot about data it never loaded is a conflict."""
    snapshot = prefetch_conflict_data(_seeded_store(), [_candidate()])

    other_day = check_boat_conflict_from_cache(snapshot, 1, date(2026, 6, 1), "10:00", 60)
    other_boat = check_boat_conflict_from_cache(snapshot, 9, _DAY, "10:00", 60)

    assert other_day.has_conflict and other_day.reason == GENERIC_ERROR_REASON
    assert other_boat.has_conflict and other_boat.reason == GENERIC_ERROR_REASON


def test_cached_and_live_boat_checks_agree_on_random_scenarios():
    """Cached and live boat checks agree across random layouts."""
    rng = random.Random(20260406)
    for scenario in range(40):
        store = InMemoryBookingStore()
        for booking_id in range(1, rng.randint(1, 6) + 1):
            start = rng.randrange(6 * 60, 20 * 60, 5)
            store.add_booking(
                Booking(
                    id=booking_id,
                    boat_id=1,
                    start_at=datetime.combine(_DAY, time(start // 60, start % 60)),
                    duration_min=rng.choice([30, 45, 60, 90, 120]),
                    contact_name=f"Guest {booking_id}",
                    cleanup_minutes=rng.choice([None, 0, 15, 30]),
                )
            )

        start_time = minutes_to_time(rng.randrange(6 * 60, 20 * 60, 5))
        duration = rng.choice([30, 60, 90])
        is_facility = rng.random() < 0.25
        exclude_id = rng.choice([None, 1, 2])

        snapshot = prefetch_conflict_data(
            store, [_candidate(start_time=start_time, duration_min=duration)]
        )
        live = check_boat_conflict(
            store, 1, _DAY, start_time, duration, is_facility, exclude_id
        )
        cached = check_boat_conflict_from_cache(
            snapshot, 1, _DAY, start_time, duration, is_facility, exclude_id
        )
        assert live == cached, f"scenario {scenario} diverged"
