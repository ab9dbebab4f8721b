"""Availability, pricing and booking engine for a single-tenant reservation manager."""

from booking_engine.config import BookingSettings, WorkingHours
from booking_engine.engine import AvailabilityStore, BookingEngine, BookingLedger, compute_fees
from booking_engine.schemas.availability_schema import BulkUpdate, DayAvailability, TimeSlot
from booking_engine.schemas.booking_schema import (
    BookingErrorCode,
    BookingRequest,
    BookingResult,
    BookingStatus,
    RangeBooking,
    SingleDayBooking,
)

__all__ = [
    "BookingSettings",
    "WorkingHours",
    "AvailabilityStore",
    "BookingEngine",
    "BookingLedger",
    "compute_fees",
    "BulkUpdate",
    "DayAvailability",
    "TimeSlot",
    "BookingErrorCode",
    "BookingRequest",
    "BookingResult",
    "BookingStatus",
    "RangeBooking",
    "SingleDayBooking",
]
