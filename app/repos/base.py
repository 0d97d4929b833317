"""Read-only store interface consumed by the conflict engine."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from typing import Protocol

from app.domain.models import BlackoutWindow, Booking, Resource, ResourceKind


class BookingStore(Protocol):
    """Every ``list_*`` call is one round trip to the underlying store.

    Implementations raise ``StoreQueryError`` when a read fails. Date ranges
    are inclusive on both ends.
    """

    def list_blackout_windows(
        self, boat_ids: Iterable[int], start_date: date, end_date: date
    ) -> list[BlackoutWindow]:
        """Active windows for *boat_ids* that intersect the date range."""
        ...

    def list_boat_bookings(
        self, boat_ids: Iterable[int], start_date: date, end_date: date
    ) -> list[Booking]: ...

    def list_coach_bookings(
        self, person_ids: Iterable[str], start_date: date, end_date: date
    ) -> list[Booking]:
        """Bookings in which any of *person_ids* is assigned as a coach."""
        ...

    def list_driver_bookings(
        self, person_ids: Iterable[str], start_date: date, end_date: date
    ) -> list[Booking]:
        """Bookings in which any of *person_ids* is assigned as a driver."""
        ...

    def get_resource(self, resource_id: str) -> Resource | None: ...

    def list_resources(self, kind: ResourceKind | None = None) -> list[Resource]: ...
