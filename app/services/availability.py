"""Service for checking administrative blackout windows on a boat."""

from __future__ import annotations

import logging
from datetime import date

from app.domain.models import AvailabilityResult, BlackoutWindow
from app.domain.timeslots import MINUTES_PER_DAY, intervals_intersect, time_to_minutes
from app.repos.base import BookingStore
from app.services.sources import ConflictDataSource, LiveSource

logger = logging.getLogger(__name__)


def query_bounds(
    start_time: str, end_time: str | None = None, duration_min: int | None = None
) -> tuple[int, int]:
    """Minute range being asked about.

    Without an end time or a duration the query is the zero-length point
    at *start_time*.
    """
    start = time_to_minutes(start_time)
    if end_time:
        return start, time_to_minutes(end_time)
    if duration_min:
        return start, start + duration_min
    return start, start


def window_bounds(window: BlackoutWindow, on: date) -> tuple[int, int]:
    """Effective ``[lower, upper)`` minutes of a partial window on *on*.

    Days strictly inside a multi-day window are blocked from midnight to
    midnight; the time bounds only apply on the first and last day.
    """
    lower = 0
    upper = MINUTES_PER_DAY
    if on == window.start_date and window.start_time is not None:
        lower = time_to_minutes(window.start_time)
    if on == window.end_date and window.end_time is not None:
        upper = time_to_minutes(window.end_time)
    return lower, upper


def find_blocking_window(
    windows: list[BlackoutWindow], on: date, start: int, end: int
) -> BlackoutWindow | None:
    for window in windows:
        if not window.covers_date(on):
            continue
        # Whole-day windows are matched on the date alone.
        if window.is_whole_day:
            return window
        lower, upper = window_bounds(window, on)
        if intervals_intersect(start, end, lower, upper):
            return window
    return None


def evaluate_unavailable(
    source: ConflictDataSource,
    boat_id: int,
    on: date,
    start_time: str,
    end_time: str | None = None,
    duration_min: int | None = None,
) -> AvailabilityResult:
    """Blackout check against any data source. Fails open on every error."""
    try:
        start, end = query_bounds(start_time, end_time, duration_min)
        windows = source.blackout_windows(boat_id, on)
        blocking = find_blocking_window(windows, on, start, end)
    except Exception:
        logger.error(
            "Blackout lookup failed for boat %s on %s; treating boat as available",
            boat_id,
            on,
            exc_info=True,
        )
        return AvailabilityResult(is_unavailable=False)

    if blocking is None:
        return AvailabilityResult(is_unavailable=False)

    logger.debug("Boat %s blocked on %s by window %s", boat_id, on, blocking.id)
    return AvailabilityResult(is_unavailable=True, reason=blocking.reason)


def check_unavailable(
    store: BookingStore,
    boat_id: int,
    on: date,
    start_time: str,
    end_time: str | None = None,
    duration_min: int | None = None,
) -> AvailabilityResult:
    """Return whether *boat_id* is blacked out for the given time on *on*.

    Issues one read. A failed read is logged and reported as available.
    """
    return evaluate_unavailable(
        LiveSource(store), boat_id, on, start_time, end_time, duration_min
    )
