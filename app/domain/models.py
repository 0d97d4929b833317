"""Domain models for the booking conflict engine."""

from __future__ import annotations

from datetime import date, datetime, time
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from app.config import ConflictSettings
from app.domain.timeslots import TimeSlot, build_slot, minutes_to_time, time_to_minutes


class ResourceKind(StrEnum):
    BOAT = "boat"
    COACH = "coach"
    DRIVER = "driver"


# ---------------------------------------------------------------------------
# Stored records (read-only to the engine)
# ---------------------------------------------------------------------------


class Resource(BaseModel):
    id: str
    kind: ResourceKind
    name: str
    is_facility: bool = False


class Booking(BaseModel):
    id: int
    boat_id: int
    start_at: datetime
    duration_min: int = Field(gt=0)
    contact_name: str
    cleanup_minutes: int | None = Field(default=None, ge=0)
    coach_ids: list[str] = Field(default_factory=list)
    driver_ids: list[str] = Field(default_factory=list)

    @property
    def booking_date(self) -> date:
        return self.start_at.date()

    @property
    def start_time(self) -> str:
        return self.start_at.strftime("%H:%M")

    def buffer_minutes(self, settings: ConflictSettings) -> int:
        """The trailing buffer this booking holds on its boat."""
        if self.cleanup_minutes is None:
            return settings.default_buffer_minutes
        return self.cleanup_minutes

    def time_slot(self, settings: ConflictSettings, with_buffer: bool = True) -> TimeSlot:
        buffer = self.buffer_minutes(settings) if with_buffer else 0
        return build_slot(time_to_minutes(self.start_at.time()), self.duration_min, buffer)

    def time_range(self) -> str:
        start = time_to_minutes(self.start_at.time())
        return f"{self.start_time}-{minutes_to_time(start + self.duration_min)}"


class BlackoutWindow(BaseModel):
    id: int | None = None
    boat_id: int
    start_date: date
    end_date: date
    start_time: time | None = None
    end_time: time | None = None
    reason: str | None = None
    is_active: bool = True

    @model_validator(mode="after")
    def _end_not_before_start(self) -> BlackoutWindow:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self

    @property
    def is_whole_day(self) -> bool:
        return self.start_time is None and self.end_time is None

    def covers_date(self, on: date) -> bool:
        return self.start_date <= on <= self.end_date


# ---------------------------------------------------------------------------
# Candidates and results
# ---------------------------------------------------------------------------


class BookingCandidate(BaseModel):
    """A booking that has not been written yet (or an edit of an existing one)."""

    boat_id: int
    boat_name: str | None = None
    is_facility: bool | None = None
    booking_date: date
    start_time: str
    duration_min: int = Field(gt=0)
    coach_ids: list[str] = Field(default_factory=list)
    driver_ids: list[str] = Field(default_factory=list)
    contact_name: str | None = None
    exclude_id: int | None = None

    @field_validator("start_time")
    @classmethod
    def _valid_start_time(cls, value: str) -> str:
        return minutes_to_time(time_to_minutes(value))

    def facility(self, settings: ConflictSettings) -> bool:
        if self.is_facility is not None:
            return self.is_facility
        return settings.is_facility(self.boat_name)

    def person_ids(self) -> list[str]:
        """Coach ids then driver ids, first occurrence wins."""
        return list(dict.fromkeys([*self.coach_ids, *self.driver_ids]))


class AvailabilityResult(BaseModel):
    is_unavailable: bool
    reason: str | None = None


class ConflictResult(BaseModel):
    has_conflict: bool
    reason: str = ""


class ConflictingCoach(BaseModel):
    id: str
    name: str
    reason: str


class CoachBatchResult(BaseModel):
    has_conflict: bool
    conflict_coaches: list[ConflictingCoach] = Field(default_factory=list)


class CandidateResult(BaseModel):
    candidate: BookingCandidate
    has_conflict: bool
    reason: str = ""


class ConflictSnapshot(BaseModel):
    """Request-scoped, read-only prefetch of everything a batch of checks needs."""

    model_config = ConfigDict(frozen=True)

    start_date: date | None = None
    end_date: date | None = None
    boat_ids: frozenset[int] = frozenset()
    person_ids: frozenset[str] = frozenset()
    blackout_windows: tuple[BlackoutWindow, ...] = ()
    blackouts_loaded: bool = True
    boat_bookings: tuple[Booking, ...] = ()
    coach_bookings: tuple[Booking, ...] = ()
    driver_bookings: tuple[Booking, ...] = ()

    def covers(self, on: date) -> bool:
        if self.start_date is None or self.end_date is None:
            return False
        return self.start_date <= on <= self.end_date


# ---------------------------------------------------------------------------
# Request DTOs
# ---------------------------------------------------------------------------


class RepeatCheckRequest(BaseModel):
    candidate: BookingCandidate
    count: int | None = Field(default=None, gt=0)
    until: date | None = None
    lookahead_days: int = Field(default=0, ge=0)

    @model_validator(mode="after")
    def _one_end_condition(self) -> RepeatCheckRequest:
        if (self.count is None) == (self.until is None):
            raise ValueError("exactly one of count or until is required")
        return self


class CoachBatchRequest(BaseModel):
    coach_ids: list[str]
    booking_date: date
    start_time: str
    duration_min: int = Field(gt=0)
    exclude_id: int | None = None

    @field_validator("start_time")
    @classmethod
    def _valid_start_time(cls, value: str) -> str:
        return minutes_to_time(time_to_minutes(value))
