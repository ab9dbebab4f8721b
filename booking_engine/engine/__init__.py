from booking_engine.engine.availability import (
    AvailabilityStore,
    CapacityExceededError,
    DayStatus,
    UnknownDateError,
    UnknownSlotError,
    add_time_slot,
    available_quantity,
    default_time_slots,
    describe_day,
    remove_time_slot,
    to_hourly,
    to_whole_day,
    toggle_hourly,
    update_time_slot,
)
from booking_engine.engine.booking import BookingEngine
from booking_engine.engine.fees import FeeBreakdown, compute_fees
from booking_engine.engine.ledger import BookingLedger, LedgerStats, UnknownBookingError

__all__ = [
    "AvailabilityStore",
    "CapacityExceededError",
    "DayStatus",
    "UnknownDateError",
    "UnknownSlotError",
    "add_time_slot",
    "available_quantity",
    "default_time_slots",
    "describe_day",
    "remove_time_slot",
    "to_hourly",
    "to_whole_day",
    "toggle_hourly",
    "update_time_slot",
    "BookingEngine",
    "FeeBreakdown",
    "compute_fees",
    "BookingLedger",
    "LedgerStats",
    "UnknownBookingError",
]
