"""In-memory booking store."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime, time, timedelta

from app.domain.models import BlackoutWindow, Booking, Resource, ResourceKind


class InMemoryBookingStore:
    """Dict-backed store for bookings, blackout windows and resources.

    ``read_count`` counts ``list_*`` round trips so callers can verify how
    many reads a check issued.
    """

    def __init__(self) -> None:
        self._bookings: dict[int, Booking] = {}
        self._windows: list[BlackoutWindow] = []
        self._resources: dict[str, Resource] = {}
        self.read_count = 0

    # ------------------------------------------------------------------
    # Writes (used by seeding and tests; the engine never calls these)
    # ------------------------------------------------------------------

    def add_booking(self, booking: Booking) -> None:
        self._bookings[booking.id] = booking

    def add_blackout_window(self, window: BlackoutWindow) -> None:
        self._windows.append(window)

    def add_resource(self, resource: Resource) -> None:
        self._resources[resource.id] = resource

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_blackout_windows(
        self, boat_ids: Iterable[int], start_date: date, end_date: date
    ) -> list[BlackoutWindow]:
        self.read_count += 1
        wanted = set(boat_ids)
        return [
            w
            for w in self._windows
            if w.is_active
            and w.boat_id in wanted
            and w.start_date <= end_date
            and w.end_date >= start_date
        ]

    def list_boat_bookings(
        self, boat_ids: Iterable[int], start_date: date, end_date: date
    ) -> list[Booking]:
        self.read_count += 1
        wanted = set(boat_ids)
        return self._in_range(
            (b for b in self._bookings.values() if b.boat_id in wanted),
            start_date,
            end_date,
        )

    def list_coach_bookings(
        self, person_ids: Iterable[str], start_date: date, end_date: date
    ) -> list[Booking]:
        self.read_count += 1
        wanted = set(person_ids)
        return self._in_range(
            (b for b in self._bookings.values() if wanted.intersection(b.coach_ids)),
            start_date,
            end_date,
        )

    def list_driver_bookings(
        self, person_ids: Iterable[str], start_date: date, end_date: date
    ) -> list[Booking]:
        self.read_count += 1
        wanted = set(person_ids)
        return self._in_range(
            (b for b in self._bookings.values() if wanted.intersection(b.driver_ids)),
            start_date,
            end_date,
        )

    def get_resource(self, resource_id: str) -> Resource | None:
        return self._resources.get(resource_id)

    def list_resources(self, kind: ResourceKind | None = None) -> list[Resource]:
        return [r for r in self._resources.values() if kind is None or r.kind == kind]

    @staticmethod
    def _in_range(
        bookings: Iterable[Booking], start_date: date, end_date: date
    ) -> list[Booking]:
        return sorted(
            (b for b in bookings if start_date <= b.booking_date <= end_date),
            key=lambda b: (b.start_at, b.id),
        )


# ---------------------------------------------------------------------------
# Seed data – a small fleet and a busy day useful for conflict testing
# ---------------------------------------------------------------------------


def _seed(store: InMemoryBookingStore) -> None:
    for boat_id, name, facility in (
        ("1", "G23", False),
        ("2", "G21", False),
        ("3", "Trampoline", True),
    ):
        store.add_resource(
            Resource(id=boat_id, kind=ResourceKind.BOAT, name=name, is_facility=facility)
        )
    for coach_id, name in (("c-amy", "Amy"), ("c-ben", "Ben"), ("c-kai", "Kai")):
        store.add_resource(Resource(id=coach_id, kind=ResourceKind.COACH, name=name))

    tomorrow = date.today() + timedelta(days=1)

    def at(hour: int, minute: int = 0) -> datetime:
        return datetime.combine(tomorrow, time(hour, minute))

    store.add_booking(
        Booking(
            id=1,
            boat_id=1,
            start_at=at(8),
            duration_min=60,
            contact_name="Morning wakeboard",
            cleanup_minutes=15,
            coach_ids=["c-amy"],
            driver_ids=["c-kai"],
        )
    )
    store.add_booking(
        Booking(
            id=2,
            boat_id=2,
            start_at=at(10, 30),
            duration_min=90,
            contact_name="Surf lesson",
            coach_ids=["c-ben"],
        )
    )
    store.add_booking(
        Booking(
            id=3,
            boat_id=3,
            start_at=at(14),
            duration_min=30,
            contact_name="Trampoline session",
            cleanup_minutes=0,
        )
    )
    store.add_blackout_window(
        BlackoutWindow(
            id=1,
            boat_id=2,
            start_date=tomorrow,
            end_date=tomorrow,
            start_time=time(16),
            reason="Engine service",
        )
    )


def create_booking_store() -> InMemoryBookingStore:
    """Return an InMemoryBookingStore pre-loaded with sample data."""
    store = InMemoryBookingStore()
    _seed(store)
    return store
