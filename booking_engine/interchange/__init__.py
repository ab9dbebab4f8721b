from booking_engine.interchange.converter import (
    booking_to_event,
    event_to_booking,
    events_to_bookings,
    export_bookings,
    import_bookings,
)
from booking_engine.interchange.ical import parse_calendar, render_calendar

__all__ = [
    "booking_to_event",
    "event_to_booking",
    "events_to_bookings",
    "export_bookings",
    "import_bookings",
    "parse_calendar",
    "render_calendar",
]
