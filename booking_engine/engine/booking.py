"""
Booking engine: validate a request against inventory, price it, commit it.

Checks run in a fixed order and stop at the first failure, so every
rejected attempt carries exactly one typed error and leaves the store
untouched:

    1. customer name and email present
    2. range bookings: range enabled, both dates present, minimum stay met
    3. every occupied date exists and is available
    4. slot (if one is selected on an hourly day) and capacity per date
    5. price: unit price x quantity x nights, plus range surcharges
    6. record construction
    7. commit every capacity delta

Usage:
    engine = BookingEngine(settings)
    result = engine.book(request, store, ledger)
    if not result.success:
        show_error(result.error.code, result.message)
"""

import uuid
from datetime import datetime, timezone
from typing import Callable, Optional

from booking_engine.config import BookingSettings
from booking_engine.engine.availability import AvailabilityStore
from booking_engine.engine.fees import FeeBreakdown, compute_fees
from booking_engine.engine.ledger import BookingLedger
from booking_engine.logging_context import booking_attempt, get_request_logger
from booking_engine.schemas.availability_schema import TimeSlot
from booking_engine.schemas.booking_schema import (
    BookingError,
    BookingErrorCode,
    BookingRequest,
    BookingResult,
    BookingStatus,
    CapacityDelta,
    RangeBooking,
    SingleDayBooking,
)
from booking_engine.utils import date_range, is_earlier_clock, is_later_clock, nights_between

logger = get_request_logger(__name__)


def _default_clock() -> datetime:
    return datetime.now(timezone.utc)


def _default_booking_id(now: datetime) -> str:
    return f"booking-{int(now.timestamp() * 1000)}-{uuid.uuid4().hex[:9]}"


def _reject(code: BookingErrorCode, message: str, date: Optional[str] = None) -> BookingResult:
    logger.warning("Booking rejected [%s]: %s", code.value, message)
    return BookingResult(
        success=False,
        message=message,
        error=BookingError(code=code, message=message, date=date),
    )


class BookingEngine:
    """
    Stateless validator and pricer for booking requests.

    The engine holds only its settings and id/clock factories. Stores and
    ledgers are passed in per call and never retained.
    """

    def __init__(
        self,
        settings: BookingSettings,
        id_factory: Optional[Callable[[datetime], str]] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self.settings = settings
        self._id_factory = id_factory or _default_booking_id
        self._clock = clock or _default_clock

    def plan(self, request: BookingRequest, store: AvailabilityStore) -> BookingResult:
        """Validate and price ``request`` without touching the store.

        On success the result carries the new booking and the capacity
        deltas that ``book`` would commit.
        """
        with booking_attempt():
            return self._plan(request, store)

    def _plan(self, request: BookingRequest, store: AvailabilityStore) -> BookingResult:
        settings = self.settings

        # 1. Customer details
        if not request.customer_name.strip() or not request.customer_email.strip():
            return _reject(
                BookingErrorCode.INVALID_CUSTOMER_INFO,
                "Please fill in all required customer information.",
            )

        # 2. Stay dates
        nights = 1
        if request.is_range_booking:
            if not settings.allow_range_booking:
                return _reject(
                    BookingErrorCode.RANGE_BOOKING_DISABLED,
                    "Multi-day bookings are not enabled.",
                )
            if not request.check_in_date or not request.check_out_date:
                return _reject(
                    BookingErrorCode.MISSING_DATES,
                    "Check-in and check-out dates are required for a multi-day booking.",
                )
            nights = nights_between(request.check_in_date, request.check_out_date)
            minimum_nights = max(settings.minimum_nights, 1)
            if nights < minimum_nights:
                return _reject(
                    BookingErrorCode.BELOW_MINIMUM_STAY,
                    f"Minimum stay is {minimum_nights} night(s), "
                    f"requested {max(nights, 0)}.",
                    request.check_in_date,
                )
            primary_date = request.check_in_date
            occupied = list(date_range(request.check_in_date, request.check_out_date))
        else:
            if not request.date:
                return _reject(BookingErrorCode.MISSING_DATES, "A booking date is required.")
            primary_date = request.date
            occupied = [primary_date]

        # 3. Every occupied date must be open
        for date in occupied:
            day = store.get(date)
            if day is None or not day.is_available:
                return _reject(
                    BookingErrorCode.DATE_UNAVAILABLE,
                    f"Date {date} is not available for booking.",
                    date,
                )

        # 4. Slot selection (from the check-in day) and capacity per date
        primary_day = store.get(primary_date)
        selected_slot: Optional[TimeSlot] = None
        if primary_day.use_hourly_booking and (request.slot_id or request.start_time):
            selected_slot = primary_day.find_slot(request.slot_id, request.start_time)
            if selected_slot is None:
                return _reject(
                    BookingErrorCode.SLOT_UNAVAILABLE,
                    "Selected time slot is not available.",
                    primary_date,
                )

        deltas = []
        for date in occupied:
            day = store.get(date)
            slot_id = selected_slot.id if selected_slot and day.use_hourly_booking else None
            if slot_id is not None:
                slot = day.find_slot(slot_id=slot_id)
                if slot is None or not slot.available:
                    return _reject(
                        BookingErrorCode.SLOT_UNAVAILABLE,
                        f"Time slot {slot_id} is not available on {date}.",
                        date,
                    )
            remaining = store.remaining_capacity(date, slot_id)
            logger.debug(
                "Capacity check %s (slot=%s): remaining=%d requested=%d",
                date, slot_id, remaining, request.quantity,
            )
            if remaining < request.quantity:
                return _reject(
                    BookingErrorCode.INSUFFICIENT_CAPACITY,
                    f"Not enough capacity available for {date}.",
                    date,
                )
            deltas.append(CapacityDelta(date=date, amount=request.quantity, slot_id=slot_id))

        # 5. Price, always from the check-in day's record
        unit_price = selected_slot.price if selected_slot else primary_day.base_price
        base_price = unit_price * request.quantity * nights

        # Fees only see the times the customer asked for; policy times filled
        # in below are recorded on the booking but never charged.
        fees = FeeBreakdown()
        if request.is_range_booking:
            fees = compute_fees(
                request.check_in_time,
                request.check_out_time,
                settings.check_in_time,
                settings.check_out_time,
                settings.early_check_in_fee if settings.early_check_in_fee_enabled else 0.0,
                settings.late_check_out_fee if settings.late_check_out_fee_enabled else 0.0,
                request.check_in_date,
                request.check_out_date,
                primary_day.base_price,
            )
        total_price = round(base_price + fees.total, 2)

        check_in_time = request.check_in_time
        check_out_time = request.check_out_time
        if request.is_range_booking and settings.enforce_check_in_out_times:
            check_in_time = check_in_time or settings.check_in_time
            check_out_time = check_out_time or settings.check_out_time

        # 6. Record
        now = self._clock()
        common = dict(
            id=self._id_factory(now),
            date=primary_date,
            start_time=selected_slot.start_time if selected_slot else request.start_time,
            end_time=selected_slot.end_time if selected_slot else request.end_time,
            slot_id=selected_slot.id if selected_slot else None,
            quantity=request.quantity,
            total_price=total_price,
            customer_name=request.customer_name.strip(),
            customer_email=request.customer_email.strip(),
            customer_phone=request.customer_phone,
            notes=request.notes,
            status=BookingStatus.CONFIRMED,
            created_at=now,
            updated_at=now,
        )
        if request.is_range_booking:
            booking = RangeBooking(
                **common,
                check_in_date=request.check_in_date,
                check_out_date=request.check_out_date,
                number_of_nights=nights,
                check_in_time=check_in_time,
                check_out_time=check_out_time,
                early_check_in_fee=fees.early_fee,
                late_check_out_fee=fees.late_fee,
                over_24h_penalty=fees.over_24h_penalty,
                early_check_in_requested=bool(
                    request.check_in_time
                    and settings.check_in_time
                    and is_earlier_clock(request.check_in_time, settings.check_in_time)
                ),
                late_check_out_requested=bool(
                    request.check_out_time
                    and settings.check_out_time
                    and is_later_clock(request.check_out_time, settings.check_out_time)
                ),
            )
            message = (
                f"Range booking confirmed: {request.check_in_date} to "
                f"{request.check_out_date} ({nights} night(s))."
            )
        else:
            booking = SingleDayBooking(**common)
            message = f"Booking confirmed for {primary_date}."

        return BookingResult(success=True, message=message, booking=booking, deltas=deltas)

    def book(
        self,
        request: BookingRequest,
        store: AvailabilityStore,
        ledger: Optional[BookingLedger] = None,
    ) -> BookingResult:
        """Validate, price and commit a booking in one step.

        Either every delta is committed (and the booking appended to
        ``ledger`` when one is given) or nothing changes.
        """
        with booking_attempt():
            result = self._plan(request, store)
            if not result.success:
                return result

            # 7. Commit
            store.apply_deltas(result.deltas)
            if ledger is not None:
                ledger.append(result.booking)
            logger.info(
                "Booking %s committed: %s x%d on %d date(s), total %.2f",
                result.booking.id,
                result.booking.customer_name,
                result.booking.quantity,
                len(result.deltas),
                result.booking.total_price,
            )
            return result
