"""FastAPI application: conflict checks for booking workflows."""

from __future__ import annotations

from datetime import date

from fastapi import FastAPI, HTTPException, Query

from app.config import configure_logging
from app.domain.models import (
    AvailabilityResult,
    BookingCandidate,
    CandidateResult,
    CoachBatchRequest,
    CoachBatchResult,
    ConflictResult,
    RepeatCheckRequest,
    ResourceKind,
)
from app.domain.timeslots import time_to_minutes
from app.repos.memory import create_booking_store
from app.services.availability import check_unavailable
from app.services.orchestration import (
    check_booking,
    check_candidates,
    check_coaches_conflict_batch,
)
from app.services.recurrence import expand_weekly

configure_logging()

app = FastAPI(title="Boat Booking Conflict Service")

# ── Singletons (created at import time for simplicity) ────────────────
booking_store = create_booking_store()


def _person_names() -> dict[str, str]:
    return {
        r.id: r.name
        for kind in (ResourceKind.COACH, ResourceKind.DRIVER)
        for r in booking_store.list_resources(kind)
    }


def _with_boat_details(candidate: BookingCandidate) -> BookingCandidate:
    """Fill in the boat name and facility flag from the store when missing."""
    boat = booking_store.get_resource(str(candidate.boat_id))
    if boat is None:
        return candidate
    update: dict = {}
    if candidate.boat_name is None:
        update["boat_name"] = boat.name
    if candidate.is_facility is None:
        update["is_facility"] = boat.is_facility
    return candidate.model_copy(update=update) if update else candidate


# ── Routes ────────────────────────────────────────────────────────────


@app.post("/conflicts/check", response_model=ConflictResult)
def check_single_booking(candidate: BookingCandidate) -> ConflictResult:
    """Check one new or edited booking: blackout, boat, then people."""
    return check_booking(booking_store, _with_boat_details(candidate), _person_names())


@app.post("/conflicts/check-repeat", response_model=list[CandidateResult])
def check_repeat_booking(body: RepeatCheckRequest) -> list[CandidateResult]:
    """Expand a weekly repeat and check every occurrence against one prefetch."""
    try:
        candidates = expand_weekly(
            _with_boat_details(body.candidate), count=body.count, until=body.until
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    if not candidates:
        raise HTTPException(status_code=422, detail="No dates to check")
    return check_candidates(
        booking_store,
        candidates,
        _person_names(),
        lookahead_days=body.lookahead_days,
    )


@app.post("/conflicts/coaches", response_model=CoachBatchResult)
def check_coaches(body: CoachBatchRequest) -> CoachBatchResult:
    """Check several coaches for the same slot with two reads."""
    return check_coaches_conflict_batch(
        booking_store,
        body.coach_ids,
        body.booking_date,
        body.start_time,
        body.duration_min,
        _person_names(),
        exclude_id=body.exclude_id,
    )


@app.get("/boats/{boat_id}/availability", response_model=AvailabilityResult)
def get_boat_availability(
    boat_id: int,
    on: date,
    start_time: str,
    end_time: str | None = None,
    duration_min: int | None = Query(default=None, gt=0),
) -> AvailabilityResult:
    """Return whether a boat is blacked out for the given time."""
    boat = booking_store.get_resource(str(boat_id))
    if boat is None or boat.kind != ResourceKind.BOAT:
        raise HTTPException(status_code=404, detail="Boat not found")
    try:
        time_to_minutes(start_time)
        if end_time:
            time_to_minutes(end_time)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return check_unavailable(
        booking_store, boat_id, on, start_time, end_time=end_time, duration_min=duration_min
    )
