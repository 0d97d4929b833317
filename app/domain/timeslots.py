"""Minute-of-day arithmetic and the buffered overlap test."""

from __future__ import annotations

from datetime import time

from pydantic import BaseModel, ConfigDict, model_validator

MINUTES_PER_DAY = 24 * 60


class TimeSlot(BaseModel):
    """Occupancy of a resource on one day, in minutes since midnight.

    ``cleanup_end_minutes - end_minutes`` is the trailing buffer during which
    nothing else may start on the same resource.
    """

    model_config = ConfigDict(frozen=True)

    start_minutes: int
    end_minutes: int
    cleanup_end_minutes: int

    @model_validator(mode="after")
    def _ordered(self) -> TimeSlot:
        if self.end_minutes <= self.start_minutes:
            raise ValueError("end_minutes must be after start_minutes")
        if self.cleanup_end_minutes < self.end_minutes:
            raise ValueError("cleanup_end_minutes must not precede end_minutes")
        return self

    @property
    def buffer_minutes(self) -> int:
        return self.cleanup_end_minutes - self.end_minutes


def time_to_minutes(value: str | time) -> int:
    """Convert ``"HH:MM"`` (or ``"HH:MM:SS"``, or a ``time``) to minutes since midnight."""
    if isinstance(value, time):
        return value.hour * 60 + value.minute

    parts = value.strip().split(":")
    if len(parts) not in (2, 3):
        raise ValueError(f"invalid time string: {value!r}")
    try:
        hour, minute = int(parts[0]), int(parts[1])
    except ValueError:
        raise ValueError(f"invalid time string: {value!r}") from None
    if not (0 <= hour < 24 and 0 <= minute < 60):
        raise ValueError(f"time out of range: {value!r}")
    return hour * 60 + minute


def minutes_to_time(minutes: int) -> str:
    """Format minutes since midnight as ``"HH:MM"``.

    Values past midnight are not wrapped: 1470 renders as ``"24:30"``.
    """
    hour, minute = divmod(minutes, 60)
    return f"{hour:02d}:{minute:02d}"


def build_slot(start_minutes: int, duration_minutes: int, buffer_minutes: int = 0) -> TimeSlot:
    end = start_minutes + duration_minutes
    return TimeSlot(
        start_minutes=start_minutes,
        end_minutes=end,
        cleanup_end_minutes=end + buffer_minutes,
    )


def intervals_intersect(start_a: int, end_a: int, start_b: int, end_b: int) -> bool:
    """Half-open intersection of ``[start_a, end_a)`` and ``[start_b, end_b)``."""
    return not (end_a <= start_b or start_a >= end_b)


def starts_in_buffer(a: TimeSlot, b: TimeSlot) -> bool:
    """True when *a* begins inside *b*'s trailing buffer ``[b.end, b.cleanup_end)``."""
    return b.end_minutes <= a.start_minutes < b.cleanup_end_minutes


def overlaps(a: TimeSlot, b: TimeSlot) -> bool:
    """Buffered overlap test between two slots on the same resource.

    Touching at ``end == start`` is not a conflict once the buffer is zero,
    and ``cleanup_end`` itself is free.
    """
    return (
        starts_in_buffer(a, b)
        or starts_in_buffer(b, a)
        or intervals_intersect(
            a.start_minutes, a.end_minutes, b.start_minutes, b.end_minutes
        )
    )
