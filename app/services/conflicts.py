"""Service for detecting booking conflicts on boats, coaches and drivers."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import date

from app.config import ConflictSettings, get_settings
from app.domain.models import Booking, ConflictResult, ResourceKind
from app.domain.timeslots import (
    TimeSlot,
    build_slot,
    minutes_to_time,
    overlaps,
    starts_in_buffer,
    time_to_minutes,
)
from app.repos.base import BookingStore
from app.services.sources import ConflictDataSource, LiveSource

logger = logging.getLogger(__name__)

GENERIC_ERROR_REASON = "Error while checking for conflicts"
DEFAULT_PARTY = "your booking"

_ROLE_PREFIX = {
    ResourceKind.COACH: "Coach already booked",
    ResourceKind.DRIVER: "Driver already booked",
}


def _fail_closed(what: str, resource_id: object, on: date) -> ConflictResult:
    logger.error(
        "Conflict check for %s %s on %s failed; blocking the booking",
        what,
        resource_id,
        on,
        exc_info=True,
    )
    return ConflictResult(has_conflict=True, reason=GENERIC_ERROR_REASON)


# ---------------------------------------------------------------------------
# Pure evaluation over already-loaded bookings
# ---------------------------------------------------------------------------


def describe_boat_conflict(
    candidate: TimeSlot, existing: Booking, existing_slot: TimeSlot, party: str
) -> str:
    """Explain why *candidate* cannot share the boat with *existing*."""
    other = existing.contact_name
    start = minutes_to_time(candidate.start_minutes)
    end = minutes_to_time(candidate.end_minutes)

    if starts_in_buffer(candidate, existing_slot):
        return (
            f"Conflicts with {other}: their booking ends at "
            f"{minutes_to_time(existing_slot.end_minutes)} and needs "
            f"{existing_slot.buffer_minutes} minutes of cleanup time; "
            f"{party} at {start} starts too soon."
        )
    if starts_in_buffer(existing_slot, candidate):
        return (
            f"Conflicts with {other}: {party} ends at {end} and needs "
            f"{candidate.buffer_minutes} minutes of cleanup time before "
            f"{other} starts at {existing.start_time}."
        )
    return (
        f"Overlaps with {other}: {party} {start}-{end}, "
        f"{other} {existing.time_range()}"
    )


def find_boat_conflict(
    bookings: Iterable[Booking],
    start_time: str,
    duration_min: int,
    is_facility: bool,
    settings: ConflictSettings,
    exclude_id: int | None = None,
    display_name: str | None = None,
) -> str | None:
    """Return the reason for the first conflicting booking, or ``None``.

    The candidate's buffer depends on whether the boat is a facility; every
    existing booking keeps the buffer it was stored with.
    """
    candidate = build_slot(
        time_to_minutes(start_time), duration_min, settings.buffer_for(is_facility)
    )
    for existing in bookings:
        if exclude_id is not None and existing.id == exclude_id:
            continue
        existing_slot = existing.time_slot(settings)
        if overlaps(candidate, existing_slot):
            return describe_boat_conflict(
                candidate, existing, existing_slot, display_name or DEFAULT_PARTY
            )
    return None


def find_person_conflict(
    bookings: Iterable[Booking],
    role: ResourceKind,
    start_time: str,
    duration_min: int,
    settings: ConflictSettings,
    exclude_id: int | None = None,
) -> str | None:
    """First overlap between the candidate and a person's bookings. No buffer applies."""
    candidate = build_slot(time_to_minutes(start_time), duration_min)
    for existing in bookings:
        if exclude_id is not None and existing.id == exclude_id:
            continue
        if overlaps(candidate, existing.time_slot(settings, with_buffer=False)):
            return (
                f"{_ROLE_PREFIX[role]}: overlaps with {existing.contact_name}'s "
                f"booking ({existing.time_range()})"
            )
    return None


# ---------------------------------------------------------------------------
# Checks against a data source
# ---------------------------------------------------------------------------


def evaluate_boat_conflict(
    source: ConflictDataSource,
    boat_id: int,
    on: date,
    start_time: str,
    duration_min: int,
    is_facility: bool = False,
    exclude_id: int | None = None,
    display_name: str | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    settings = settings or get_settings()
    try:
        reason = find_boat_conflict(
            source.boat_bookings(boat_id, on),
            start_time,
            duration_min,
            is_facility,
            settings,
            exclude_id=exclude_id,
            display_name=display_name,
        )
    except Exception:
        return _fail_closed("boat", boat_id, on)

    if reason is None:
        return ConflictResult(has_conflict=False)
    return ConflictResult(has_conflict=True, reason=reason)


def evaluate_person_conflict(
    source: ConflictDataSource,
    role: ResourceKind,
    person_id: str,
    on: date,
    start_time: str,
    duration_min: int,
    exclude_id: int | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    settings = settings or get_settings()
    try:
        if role == ResourceKind.COACH:
            bookings = source.coach_bookings(person_id, on)
        elif role == ResourceKind.DRIVER:
            bookings = source.driver_bookings(person_id, on)
        else:
            raise ValueError(f"{role} is not a person role")
        reason = find_person_conflict(
            bookings, role, start_time, duration_min, settings, exclude_id=exclude_id
        )
    except Exception:
        return _fail_closed(str(role), person_id, on)

    if reason is None:
        return ConflictResult(has_conflict=False)
    return ConflictResult(has_conflict=True, reason=reason)


def check_boat_conflict(
    store: BookingStore,
    boat_id: int,
    on: date,
    start_time: str,
    duration_min: int,
    is_facility: bool = False,
    exclude_id: int | None = None,
    display_name: str | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    """Check a candidate against every booking on *boat_id* that day.

    Overlap includes trailing cleanup buffers. A failed read blocks the
    booking with a generic reason.
    """
    return evaluate_boat_conflict(
        LiveSource(store),
        boat_id,
        on,
        start_time,
        duration_min,
        is_facility=is_facility,
        exclude_id=exclude_id,
        display_name=display_name,
        settings=settings,
    )


def check_coach_conflict(
    store: BookingStore,
    coach_id: str,
    on: date,
    start_time: str,
    duration_min: int,
    exclude_id: int | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    return evaluate_person_conflict(
        LiveSource(store),
        ResourceKind.COACH,
        coach_id,
        on,
        start_time,
        duration_min,
        exclude_id=exclude_id,
        settings=settings,
    )


def check_driver_conflict(
    store: BookingStore,
    driver_id: str,
    on: date,
    start_time: str,
    duration_min: int,
    exclude_id: int | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    return evaluate_person_conflict(
        LiveSource(store),
        ResourceKind.DRIVER,
        driver_id,
        on,
        start_time,
        duration_min,
        exclude_id=exclude_id,
        settings=settings,
    )
