"""Where a check gets its data: a fresh read now, or a prefetched snapshot.

The checkers in ``availability`` and ``conflicts`` only talk to a
``ConflictDataSource``, so live and cached checks share one evaluation path.
"""

from __future__ import annotations

from datetime import date
from typing import Protocol

from app.domain.errors import SnapshotMissError
from app.domain.models import BlackoutWindow, Booking, ConflictSnapshot
from app.repos.base import BookingStore


class ConflictDataSource(Protocol):
    def blackout_windows(self, boat_id: int, on: date) -> list[BlackoutWindow]: ...

    def boat_bookings(self, boat_id: int, on: date) -> list[Booking]: ...

    def coach_bookings(self, person_id: str, on: date) -> list[Booking]: ...

    def driver_bookings(self, person_id: str, on: date) -> list[Booking]: ...


class LiveSource:
    """One store round trip per call."""

    def __init__(self, store: BookingStore) -> None:
        self.store = store

    def blackout_windows(self, boat_id: int, on: date) -> list[BlackoutWindow]:
        return self.store.list_blackout_windows([boat_id], on, on)

    def boat_bookings(self, boat_id: int, on: date) -> list[Booking]:
        return self.store.list_boat_bookings([boat_id], on, on)

    def coach_bookings(self, person_id: str, on: date) -> list[Booking]:
        return self.store.list_coach_bookings([person_id], on, on)

    def driver_bookings(self, person_id: str, on: date) -> list[Booking]:
        return self.store.list_driver_bookings([person_id], on, on)


class SnapshotSource:
    """Filters a ``ConflictSnapshot`` in memory; never touches the store."""

    def __init__(self, snapshot: ConflictSnapshot) -> None:
        self.snapshot = snapshot

    def _require_boat(self, boat_id: int, on: date) -> None:
        if boat_id not in self.snapshot.boat_ids or not self.snapshot.covers(on):
            raise SnapshotMissError(f"snapshot has no data for boat {boat_id} on {on}")

    def _require_person(self, person_id: str, on: date) -> None:
        if person_id not in self.snapshot.person_ids or not self.snapshot.covers(on):
            raise SnapshotMissError(f"snapshot has no data for {person_id!r} on {on}")

    def blackout_windows(self, boat_id: int, on: date) -> list[BlackoutWindow]:
        self._require_boat(boat_id, on)
        if not self.snapshot.blackouts_loaded:
            raise SnapshotMissError("blackout windows were not loaded into the snapshot")
        return [
            w
            for w in self.snapshot.blackout_windows
            if w.is_active and w.boat_id == boat_id and w.covers_date(on)
        ]

    def boat_bookings(self, boat_id: int, on: date) -> list[Booking]:
        self._require_boat(boat_id, on)
        return [
            b
            for b in self.snapshot.boat_bookings
            if b.boat_id == boat_id and b.booking_date == on
        ]

    def coach_bookings(self, person_id: str, on: date) -> list[Booking]:
        self._require_person(person_id, on)
        return [
            b
            for b in self.snapshot.coach_bookings
            if person_id in b.coach_ids and b.booking_date == on
        ]

    def driver_bookings(self, person_id: str, on: date) -> list[Booking]:
        self._require_person(person_id, on)
        return [
            b
            for b in self.snapshot.driver_bookings
            if person_id in b.driver_ids and b.booking_date == on
        ]
