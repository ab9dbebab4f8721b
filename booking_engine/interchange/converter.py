"""
Booking <-> calendar event mapping.

Export keeps the stay shape: range bookings become multi-day events,
single-day bookings become one-day events. Import is lossy:
every event becomes a confirmed single-day booking for one unit at the
default price, dated at the event's start. Range length, price and
quantity are not recovered.
"""

import logging
from datetime import datetime
from typing import Iterable, Union

from booking_engine.config import BookingSettings
from booking_engine.interchange.ical import UID_DOMAIN, parse_calendar, render_calendar
from booking_engine.schemas.booking_schema import BookingStatus, RangeBooking, SingleDayBooking
from booking_engine.schemas.interchange_schema import CalendarEvent, ImportReport
from booking_engine.utils import format_date_for_display

logger = logging.getLogger(__name__)

IMPORTED_EMAIL = "imported@example.com"
IMPORTED_NAME = "Imported Booking"


def _money(amount: float) -> str:
    return f"{amount:.0f}" if float(amount).is_integer() else f"{amount:.2f}"


def _description(booking: Union[SingleDayBooking, RangeBooking]) -> str:
    lines = [
        f"Customer: {booking.customer_name}",
        f"Email: {booking.customer_email}",
        f"Phone: {booking.customer_phone or 'N/A'}",
        f"Quantity: {booking.quantity}",
        f"Total: ${_money(booking.total_price)}",
        f"Notes: {booking.notes or 'N/A'}",
    ]
    if isinstance(booking, RangeBooking):
        lines.append(f"Check-in: {format_date_for_display(booking.check_in_date)}")
        lines.append(f"Check-out: {format_date_for_display(booking.check_out_date)}")
    return "\n".join(lines)


def booking_to_event(
    booking: Union[SingleDayBooking, RangeBooking], location: str
) -> CalendarEvent:
    """Map one booking to one calendar event."""
    uid = f"{booking.id}@{UID_DOMAIN}"
    if isinstance(booking, RangeBooking):
        return CalendarEvent(
            summary=f"Booking - {booking.customer_name} ({booking.number_of_nights} nights)",
            description=_description(booking),
            start_date=booking.check_in_date,
            end_date=booking.check_out_date,
            start_time=booking.check_in_time,
            end_time=booking.check_out_time,
            all_day=not booking.check_in_time and not booking.check_out_time,
            location=location,
            uid=uid,
        )
    return CalendarEvent(
        summary=f"Booking - {booking.customer_name}",
        description=_description(booking),
        start_date=booking.date,
        end_date=booking.date,
        start_time=booking.start_time,
        end_time=booking.end_time,
        all_day=not booking.start_time,
        location=location,
        uid=uid,
    )


def event_to_booking(
    event: CalendarEvent, index: int, settings: BookingSettings, now: datetime
) -> SingleDayBooking:
    """Map an imported event to a default-priced single-day booking."""
    return SingleDayBooking(
        id=f"imported-{int(now.timestamp() * 1000)}-{index}",
        date=event.start_date,
        start_time=event.start_time,
        end_time=event.end_time,
        quantity=1,
        total_price=settings.default_price,
        customer_name=event.summary or IMPORTED_NAME,
        customer_email=IMPORTED_EMAIL,
        notes=event.description,
        status=BookingStatus.CONFIRMED,
        created_at=now,
        updated_at=now,
    )


def events_to_bookings(
    events: Iterable[CalendarEvent], settings: BookingSettings, now: datetime
) -> list[SingleDayBooking]:
    return [event_to_booking(event, index, settings, now) for index, event in enumerate(events)]


def export_bookings(
    bookings: Iterable[Union[SingleDayBooking, RangeBooking]],
    settings: BookingSettings,
    now: datetime,
) -> str:
    """Render bookings as a VCALENDAR document."""
    location = settings.business_name or "Booking Location"
    events = [booking_to_event(booking, location) for booking in bookings]
    logger.info("Exporting %d booking(s)", len(events))
    return render_calendar(events, now)


def import_bookings(
    text: str, settings: BookingSettings, now: datetime
) -> tuple[list[SingleDayBooking], ImportReport]:
    """Parse a calendar file into bookings, returning the parse report as well."""
    report = parse_calendar(text)
    bookings = events_to_bookings(report.events, settings, now)
    logger.info("Imported %d booking(s), %d event(s) skipped", len(bookings), report.skipped)
    return bookings, report
