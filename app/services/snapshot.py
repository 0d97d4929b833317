"""Prefetch-once conflict checks for bulk creation and bulk edits.

``prefetch_conflict_data`` issues one read per category for a whole batch of
candidates. The ``*_from_cache`` checks then run the same evaluation as their
live counterparts against the resulting snapshot, so for the same data they
return the same results.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, timedelta

from app.config import ConflictSettings
from app.domain.models import (
    AvailabilityResult,
    BookingCandidate,
    ConflictResult,
    ConflictSnapshot,
    ResourceKind,
)
from app.repos.base import BookingStore
from app.services.availability import evaluate_unavailable
from app.services.conflicts import evaluate_boat_conflict, evaluate_person_conflict
from app.services.sources import SnapshotSource

logger = logging.getLogger(__name__)


def prefetch_conflict_data(
    store: BookingStore,
    candidates: Sequence[BookingCandidate],
    lookahead_days: int = 0,
) -> ConflictSnapshot:
    """Load blackout windows and bookings for every resource in *candidates*.

    The date span runs from the earliest candidate date to the latest plus
    *lookahead_days*. Exactly four reads are issued (two when no candidate
    has a coach or driver, none for an empty batch). A failed blackout read is
    logged and recorded on the snapshot so availability checks fail open;
    any other store error propagates.
    """
    if lookahead_days < 0:
        raise ValueError("lookahead_days must not be negative")
    if not candidates:
        return ConflictSnapshot()

    boat_ids = sorted({c.boat_id for c in candidates})
    person_ids = sorted({p for c in candidates for p in c.person_ids()})
    start_date = min(c.booking_date for c in candidates)
    end_date = max(c.booking_date for c in candidates) + timedelta(days=lookahead_days)

    blackouts_loaded = True
    try:
        blackout_windows = store.list_blackout_windows(boat_ids, start_date, end_date)
    except Exception:
        logger.error(
            "Blackout prefetch failed for boats %s; availability checks will pass",
            boat_ids,
            exc_info=True,
        )
        blackout_windows, blackouts_loaded = [], False
    boat_bookings = store.list_boat_bookings(boat_ids, start_date, end_date)
    if person_ids:
        coach_bookings = store.list_coach_bookings(person_ids, start_date, end_date)
        driver_bookings = store.list_driver_bookings(person_ids, start_date, end_date)
    else:
        coach_bookings, driver_bookings = [], []

    logger.debug(
        "Prefetched %d windows, %d boat, %d coach, %d driver bookings for %s..%s",
        len(blackout_windows),
        len(boat_bookings),
        len(coach_bookings),
        len(driver_bookings),
        start_date,
        end_date,
    )
    return ConflictSnapshot(
        start_date=start_date,
        end_date=end_date,
        boat_ids=frozenset(boat_ids),
        person_ids=frozenset(person_ids),
        blackout_windows=tuple(blackout_windows),
        blackouts_loaded=blackouts_loaded,
        boat_bookings=tuple(boat_bookings),
        coach_bookings=tuple(coach_bookings),
        driver_bookings=tuple(driver_bookings),
    )


def check_boat_unavailable_from_cache(
    snapshot: ConflictSnapshot,
    boat_id: int,
    on: date,
    start_time: str,
    end_time: str | None = None,
    duration_min: int | None = None,
) -> AvailabilityResult:
    return evaluate_unavailable(
        SnapshotSource(snapshot), boat_id, on, start_time, end_time, duration_min
    )


def check_boat_conflict_from_cache(
    snapshot: ConflictSnapshot,
    boat_id: int,
    on: date,
    start_time: str,
    duration_min: int,
    is_facility: bool = False,
    exclude_id: int | None = None,
    display_name: str | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    return evaluate_boat_conflict(
        SnapshotSource(snapshot),
        boat_id,
        on,
        start_time,
        duration_min,
        is_facility=is_facility,
        exclude_id=exclude_id,
        display_name=display_name,
        settings=settings,
    )


def check_coach_conflict_from_cache(
    snapshot: ConflictSnapshot,
    coach_id: str,
    on: date,
    start_time: str,
    duration_min: int,
    exclude_id: int | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    return evaluate_person_conflict(
        SnapshotSource(snapshot),
        ResourceKind.COACH,
        coach_id,
        on,
        start_time,
        duration_min,
        exclude_id=exclude_id,
        settings=settings,
    )


def check_driver_conflict_from_cache(
    snapshot: ConflictSnapshot,
    driver_id: str,
    on: date,
    start_time: str,
    duration_min: int,
    exclude_id: int | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    return evaluate_person_conflict(
        SnapshotSource(snapshot),
        ResourceKind.DRIVER,
        driver_id,
        on,
        start_time,
        duration_min,
        exclude_id=exclude_id,
        settings=settings,
    )
