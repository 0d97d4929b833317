"""Service for expanding a repeating booking into one candidate per week."""

from __future__ import annotations

from datetime import date, datetime, time
from itertools import islice

from dateutil.rrule import WEEKLY, rrule

from app.domain.models import BookingCandidate

MAX_OCCURRENCES = 104  # two years of weekly bookings


def weekly_dates(
    first: date, count: int | None = None, until: date | None = None
) -> list[date]:
    """Dates of a weekly series starting on *first*.

    Exactly one of *count* and *until* must be given; *until* is inclusive.
    """
    if (count is None) == (until is None):
        raise ValueError("exactly one of count or until is required")
    if count is not None and not 0 < count <= MAX_OCCURRENCES:
        raise ValueError(f"count must be between 1 and {MAX_OCCURRENCES}")

    start = datetime.combine(first, time.min)
    if count is not None:
        rule = rrule(WEEKLY, dtstart=start, count=count)
    else:
        rule = rrule(WEEKLY, dtstart=start, until=datetime.combine(until, time.max))
    return [dt.date() for dt in islice(rule, MAX_OCCURRENCES)]


def expand_weekly(
    candidate: BookingCandidate, count: int | None = None, until: date | None = None
) -> list[BookingCandidate]:
    """Copy *candidate* onto every date of its weekly series, itself included.

    Each copy keeps the boat, time, duration and people. ``exclude_id`` is
    dropped because a repeat never edits an existing booking.
    """
    return [
        candidate.model_copy(update={"booking_date": d, "exclude_id": None})
        for d in weekly_dates(candidate.booking_date, count=count, until=until)
    ]
