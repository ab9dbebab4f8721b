"""Shared test fixtures and helpers."""

import itertools
from datetime import datetime, timezone
from typing import Optional

import pytest

from booking_engine.config import BookingSettings, WorkingHours
from booking_engine.engine.availability import AvailabilityStore
from booking_engine.engine.booking import BookingEngine
from booking_engine.engine.ledger import BookingLedger
from booking_engine.schemas.availability_schema import DayAvailability, TimeSlot
from booking_engine.schemas.booking_schema import (
    BookingRequest,
    BookingStatus,
    RangeBooking,
    SingleDayBooking,
)
from booking_engine.utils import nights_between

FIXED_NOW = datetime(2024, 5, 20, 9, 30, tzinfo=timezone.utc)


def make_settings(**overrides) -> BookingSettings:
    """Settings with explicit values so the environment cannot leak in."""
    values = dict(
        business_name="Test Lodge",
        default_price=100.0,
        default_quantity=10,
        use_hourly_booking=False,
        allow_range_booking=True,
        minimum_nights=1,
        working_hours=WorkingHours(start="09:00", end="12:00"),
        slot_duration=60,
        advance_booking_days=30,
        check_in_time="14:00",
        check_out_time="10:00",
        enforce_check_in_out_times=False,
        early_check_in_fee=25.0,
        late_check_out_fee=30.0,
        early_check_in_fee_enabled=True,
        late_check_out_fee_enabled=True,
        timezone="UTC",
        log_level="INFO",
    )
    values.update(overrides)
    return BookingSettings(**values)


def make_slot(
    slot_id: str = "slot-0",
    start: str = "09:00",
    end: str = "10:00",
    quantity: int = 5,
    booked: int = 0,
    price: float = 120.0,
    available: bool = True,
) -> TimeSlot:
    return TimeSlot(
        id=slot_id,
        start_time=start,
        end_time=end,
        available=available,
        quantity=quantity,
        booked_quantity=booked,
        price=price,
    )


def make_day(
    date: str,
    base_price: float = 100.0,
    max_quantity: int = 10,
    booked: int = 0,
    available: bool = True,
    slots: Optional[list[TimeSlot]] = None,
) -> DayAvailability:
    return DayAvailability(
        date=date,
        is_available=available,
        base_price=base_price,
        max_quantity=max_quantity,
        booked_quantity=booked,
        use_hourly_booking=slots is not None,
        time_slots=slots,
    )


def make_request(**overrides) -> BookingRequest:
    """Booking request for Jane Doe on 2024-06-01 unless overridden."""
    values = dict(
        customer_name="Jane Doe",
        customer_email="jane@example.com",
        date="2024-06-01",
        quantity=1,
    )
    values.update(overrides)
    return BookingRequest(**values)


def make_range_request(check_in: str, check_out: str, **overrides) -> BookingRequest:
    values = dict(
        is_range_booking=True,
        check_in_date=check_in,
        check_out_date=check_out,
        date=None,
    )
    values.update(overrides)
    return make_request(**values)


def make_booking(
    booking_id: str = "booking-1",
    date: str = "2024-06-01",
    total_price: float = 100.0,
    quantity: int = 1,
    status: BookingStatus = BookingStatus.CONFIRMED,
    created_at: datetime = FIXED_NOW,
    start_time: Optional[str] = None,
    end_time: Optional[str] = None,
    customer_name: str = "Jane Doe",
) -> SingleDayBooking:
    return SingleDayBooking(
        id=booking_id,
        date=date,
        start_time=start_time,
        end_time=end_time,
        quantity=quantity,
        total_price=total_price,
        customer_name=customer_name,
        customer_email="jane@example.com",
        status=status,
        created_at=created_at,
        updated_at=created_at,
    )


def make_range_booking(
    booking_id: str = "booking-r1",
    check_in: str = "2024-07-01",
    check_out: str = "2024-07-04",
    total_price: float = 300.0,
    check_in_time: Optional[str] = None,
    check_out_time: Optional[str] = None,
    created_at: datetime = FIXED_NOW,
) -> RangeBooking:
    return RangeBooking(
        id=booking_id,
        date=check_in,
        check_in_date=check_in,
        check_out_date=check_out,
        number_of_nights=nights_between(check_in, check_out),
        check_in_time=check_in_time,
        check_out_time=check_out_time,
        quantity=1,
        total_price=total_price,
        customer_name="John Smith",
        customer_email="john@example.com",
        created_at=created_at,
        updated_at=created_at,
    )


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def store():
    return AvailabilityStore()


@pytest.fixture
def ledger():
    return BookingLedger()


@pytest.fixture
def engine(settings):
    ids = itertools.count(1)
    return BookingEngine(
        settings,
        id_factory=lambda now: f"booking-{next(ids)}",
        clock=lambda: FIXED_NOW,
    )
