"""Composes the individual checks into the decisions booking workflows ask for.

Order for one candidate: blackout windows, then the boat, then every coach
and driver. The first failing stage decides the result and later stages are
not run.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from collections.abc import Callable, Mapping, Sequence
from datetime import date

from app.config import ConflictSettings, get_settings
from app.domain.models import (
    Booking,
    BookingCandidate,
    CandidateResult,
    CoachBatchResult,
    ConflictResult,
    ConflictingCoach,
    ResourceKind,
)
from app.repos.base import BookingStore
from app.services.availability import evaluate_unavailable
from app.services.conflicts import (
    GENERIC_ERROR_REASON,
    evaluate_boat_conflict,
    find_person_conflict,
)
from app.services.snapshot import prefetch_conflict_data
from app.services.sources import ConflictDataSource, LiveSource, SnapshotSource

logger = logging.getLogger(__name__)

UNKNOWN_COACH = "Unknown coach"
DEFAULT_UNAVAILABLE_REASON = "under maintenance"

BookingLookup = Callable[[str], list[Booking]]


def _scan_people(
    person_ids: Sequence[str],
    coach_bookings_for: BookingLookup,
    driver_bookings_for: BookingLookup,
    start_time: str,
    duration_min: int,
    coach_names: Mapping[str, str],
    exclude_id: int | None,
    settings: ConflictSettings,
) -> CoachBatchResult:
    """Report at most one conflict per person, in input order."""
    conflicts: list[ConflictingCoach] = []
    for person_id in dict.fromkeys(person_ids):
        reason = find_person_conflict(
            coach_bookings_for(person_id),
            ResourceKind.COACH,
            start_time,
            duration_min,
            settings,
            exclude_id=exclude_id,
        ) or find_person_conflict(
            driver_bookings_for(person_id),
            ResourceKind.DRIVER,
            start_time,
            duration_min,
            settings,
            exclude_id=exclude_id,
        )
        if reason is not None:
            conflicts.append(
                ConflictingCoach(
                    id=person_id,
                    name=coach_names.get(person_id, UNKNOWN_COACH),
                    reason=reason,
                )
            )
    return CoachBatchResult(has_conflict=bool(conflicts), conflict_coaches=conflicts)


def check_coaches_conflict_batch(
    store: BookingStore,
    coach_ids: Sequence[str],
    on: date,
    start_time: str,
    duration_min: int,
    coach_names: Mapping[str, str],
    exclude_id: int | None = None,
    settings: ConflictSettings | None = None,
) -> CoachBatchResult:
    """Check several people at once with two reads in total.

    Each person is checked against bookings where they coach and bookings
    where they drive. An empty *coach_ids* returns immediately without
    reading. A failed read flags every requested person.
    """
    if not coach_ids:
        return CoachBatchResult(has_conflict=False)

    settings = settings or get_settings()
    unique_ids = list(dict.fromkeys(coach_ids))
    try:
        coach_rows = store.list_coach_bookings(unique_ids, on, on)
        driver_rows = store.list_driver_bookings(unique_ids, on, on)

        wanted = set(unique_ids)
        by_coach: dict[str, list[Booking]] = defaultdict(list)
        by_driver: dict[str, list[Booking]] = defaultdict(list)
        for booking in coach_rows:
            for person_id in wanted.intersection(booking.coach_ids):
                by_coach[person_id].append(booking)
        for booking in driver_rows:
            for person_id in wanted.intersection(booking.driver_ids):
                by_driver[person_id].append(booking)

        return _scan_people(
            unique_ids,
            lambda pid: by_coach.get(pid, []),
            lambda pid: by_driver.get(pid, []),
            start_time,
            duration_min,
            coach_names,
            exclude_id,
            settings,
        )
    except Exception:
        logger.error(
            "Coach batch check for %s on %s failed; blocking all of them",
            unique_ids,
            on,
            exc_info=True,
        )
        return CoachBatchResult(
            has_conflict=True,
            conflict_coaches=[
                ConflictingCoach(
                    id=pid,
                    name=coach_names.get(pid, UNKNOWN_COACH),
                    reason=GENERIC_ERROR_REASON,
                )
                for pid in unique_ids
            ],
        )


def format_coach_conflicts(result: CoachBatchResult) -> str:
    lines = [f"{c.name}: {c.reason}" for c in result.conflict_coaches]
    return "Coach conflict:\n" + "\n".join(lines)


def _check_candidate(
    source: ConflictDataSource,
    candidate: BookingCandidate,
    people_check: Callable[[BookingCandidate], CoachBatchResult],
    settings: ConflictSettings,
) -> ConflictResult:
    on = candidate.booking_date

    availability = evaluate_unavailable(
        source,
        candidate.boat_id,
        on,
        candidate.start_time,
        duration_min=candidate.duration_min,
    )
    if availability.is_unavailable:
        reason = availability.reason or DEFAULT_UNAVAILABLE_REASON
        logger.debug("Boat %s unavailable on %s: %s", candidate.boat_id, on, reason)
        return ConflictResult(has_conflict=True, reason=f"Boat unavailable: {reason}")

    boat = evaluate_boat_conflict(
        source,
        candidate.boat_id,
        on,
        candidate.start_time,
        candidate.duration_min,
        is_facility=candidate.facility(settings),
        exclude_id=candidate.exclude_id,
        display_name=candidate.contact_name,
        settings=settings,
    )
    if boat.has_conflict:
        return boat

    if candidate.person_ids():
        people = people_check(candidate)
        if people.has_conflict:
            return ConflictResult(has_conflict=True, reason=format_coach_conflicts(people))

    return ConflictResult(has_conflict=False)


def check_booking(
    store: BookingStore,
    candidate: BookingCandidate,
    coach_names: Mapping[str, str] | None = None,
    settings: ConflictSettings | None = None,
) -> ConflictResult:
    """Full conflict check for one new or edited booking, with fresh reads."""
    settings = settings or get_settings()
    names = coach_names or {}

    def people_check(c: BookingCandidate) -> CoachBatchResult:
        return check_coaches_conflict_batch(
            store,
            c.person_ids(),
            c.booking_date,
            c.start_time,
            c.duration_min,
            names,
            exclude_id=c.exclude_id,
            settings=settings,
        )

    try:
        return _check_candidate(LiveSource(store), candidate, people_check, settings)
    except Exception:
        logger.exception("Unexpected error while checking booking on boat %s", candidate.boat_id)
        return ConflictResult(has_conflict=True, reason=GENERIC_ERROR_REASON)


def check_candidates(
    store: BookingStore,
    candidates: Sequence[BookingCandidate],
    coach_names: Mapping[str, str] | None = None,
    lookahead_days: int = 0,
    settings: ConflictSettings | None = None,
) -> list[CandidateResult]:
    """Check a batch of candidates against one shared prefetch.

    Candidates are checked one after another against the same snapshot;
    they are not checked against each other.
    """
    if not candidates:
        return []

    settings = settings or get_settings()
    names = coach_names or {}

    try:
        snapshot = prefetch_conflict_data(store, candidates, lookahead_days)
    except Exception:
        logger.error(
            "Prefetch for %d candidates failed; blocking all of them",
            len(candidates),
            exc_info=True,
        )
        return [
            CandidateResult(candidate=c, has_conflict=True, reason=GENERIC_ERROR_REASON)
            for c in candidates
        ]

    source = SnapshotSource(snapshot)

    def people_check(c: BookingCandidate) -> CoachBatchResult:
        return _scan_people(
            c.person_ids(),
            lambda pid: source.coach_bookings(pid, c.booking_date),
            lambda pid: source.driver_bookings(pid, c.booking_date),
            c.start_time,
            c.duration_min,
            names,
            c.exclude_id,
            settings,
        )

    results: list[CandidateResult] = []
    for candidate in candidates:
        try:
            outcome = _check_candidate(source, candidate, people_check, settings)
        except Exception:
            logger.exception(
                "Unexpected error while checking candidate on %s", candidate.booking_date
            )
            outcome = ConflictResult(has_conflict=True, reason=GENERIC_ERROR_REASON)
        results.append(
            CandidateResult(
                candidate=candidate,
                has_conflict=outcome.has_conflict,
                reason=outcome.reason,
            )
        )
    return results
