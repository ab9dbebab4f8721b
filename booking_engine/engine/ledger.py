"""
Committed bookings and the read-side figures built from them.

Bookings are appended and never removed; the only change a booking can
undergo is a status transition. Revenue counts every status,
cancelled bookings included.
"""

import json
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Optional, Union

from booking_engine.logging_context import get_request_logger
from booking_engine.schemas.booking_schema import (
    BookingStatus,
    RangeBooking,
    SingleDayBooking,
    booking_adapter,
)
from booking_engine.utils import DateLike, format_date, inclusive_date_range

logger = get_request_logger(__name__)

AnyBooking = Union[SingleDayBooking, RangeBooking]


class UnknownBookingError(KeyError):
    """Raised when a booking id is not in the ledger."""


@dataclass
class LedgerStats:
    """Headline figures for the admin dashboard."""

    total_revenue: float = 0.0
    total_bookings: int = 0
    todays_bookings: int = 0
    by_status: dict[str, int] = field(default_factory=dict)


class BookingLedger:
    """Ordered, append-only collection of bookings."""

    def __init__(self, bookings: Optional[Iterable[AnyBooking]] = None) -> None:
        self._bookings: list[AnyBooking] = list(bookings or [])

    def __len__(self) -> int:
        return len(self._bookings)

    def __iter__(self):
        return iter(list(self._bookings))

    def append(self, booking: AnyBooking) -> None:
        self._bookings.append(booking)
        logger.debug("Ledger append: %s (%s)", booking.id, booking.kind)

    def extend(self, bookings: Iterable[AnyBooking]) -> int:
        added = 0
        for booking in bookings:
            self.append(booking)
            added += 1
        return added

    def get(self, booking_id: str) -> AnyBooking:
        for booking in self._bookings:
            if booking.id == booking_id:
                return booking
        raise UnknownBookingError(f"Booking {booking_id} not found")

    # --- Aggregation ---

    def total_revenue(self) -> float:
        """Sum of total prices over every booking regardless of status."""
        return sum(booking.total_price for booking in self._bookings)

    def count_for_date(self, date: DateLike) -> int:
        """Bookings whose primary date (check-in for ranges) is ``date``."""
        key = format_date(date)
        return sum(1 for booking in self._bookings if booking.date == key)

    def for_date(self, date: DateLike) -> list[AnyBooking]:
        key = format_date(date)
        return [booking for booking in self._bookings if booking.date == key]

    def sorted_for_display(self) -> list[AnyBooking]:
        """Newest first by creation time."""
        return sorted(self._bookings, key=lambda b: b.created_at, reverse=True)

    def in_range(self, start: DateLike, end: DateLike) -> list[AnyBooking]:
        """Bookings occupying at least one date of the inclusive range."""
        window = set(inclusive_date_range(start, end))
        return [
            booking
            for booking in self._bookings
            if window.intersection(booking.occupied_dates())
        ]

    def stats(self, today: DateLike) -> LedgerStats:
        counts = Counter(booking.status.value for booking in self._bookings)
        return LedgerStats(
            total_revenue=self.total_revenue(),
            total_bookings=len(self._bookings),
            todays_bookings=self.count_for_date(today),
            by_status=dict(counts),
        )

    def format_summary(self, today: DateLike) -> str:
        """Human-readable dashboard summary."""
        stats = self.stats(today)
        lines = [
            "=" * 40,
            "BOOKINGS SUMMARY",
            "=" * 40,
            f"  Total revenue:     ${stats.total_revenue:,.2f}",
            f"  Total bookings:    {stats.total_bookings}",
            f"  Today's bookings:  {stats.todays_bookings}",
        ]
        for status in BookingStatus:
            lines.append(f"  {status.value.capitalize() + ':':<19}{stats.by_status.get(status.value, 0)}")
        lines.append("=" * 40)
        return "\n".join(lines)

    # --- Status changes ---

    def update_status(self, booking_id: str, status: BookingStatus, now: datetime) -> AnyBooking:
        for index, booking in enumerate(self._bookings):
            if booking.id == booking_id:
                updated = booking.with_status(status, now)
                self._bookings[index] = updated
                logger.info("Booking %s status: %s -> %s", booking_id, booking.status.value, status.value)
                return updated
        raise UnknownBookingError(f"Booking {booking_id} not found")

    def set_status_in_range(
        self, start: DateLike, end: DateLike, status: BookingStatus, now: datetime
    ) -> list[str]:
        """Apply one status to every booking touching the range. Returns ids changed."""
        changed = [booking.id for booking in self.in_range(start, end) if booking.status != status]
        for booking_id in changed:
            self.update_status(booking_id, status, now)
        return changed

    # --- Snapshots ---

    def to_snapshot(self) -> list[dict]:
        return [booking.to_snapshot() for booking in self._bookings]

    @classmethod
    def from_snapshot(cls, records: Iterable[dict]) -> "BookingLedger":
        return cls(booking_adapter.validate_python(record) for record in records)

    def to_json(self) -> str:
        return json.dumps(self.to_snapshot(), indent=2)

    @classmethod
    def from_json(cls, payload: str) -> "BookingLedger":
        return cls.from_snapshot(json.loads(payload))
