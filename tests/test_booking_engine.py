"""Tests for booking validation, pricing and commit."""

import logging
import re

import pytest
from pydantic import ValidationError

from booking_engine.engine.availability import AvailabilityStore
from booking_engine.engine.booking import BookingEngine
from booking_engine.logging_context import NO_REQUEST_ID, get_request_id
from booking_engine.schemas.booking_schema import (
    BookingErrorCode,
    BookingStatus,
    RangeBooking,
    SingleDayBooking,
)
from tests.conftest import (
    FIXED_NOW,
    make_day,
    make_range_request,
    make_request,
    make_settings,
    make_slot,
)


def _july_store(**overrides) -> AvailabilityStore:
    """2024-06-30 .. 2024-07-05 at base price 100, capacity 10."""
    days = {
        date: make_day(date)
        for date in (
            "2024-06-30", "2024-07-01", "2024-07-02",
            "2024-07-03", "2024-07-04", "2024-07-05",
        )
    }
    days.update(overrides)
    return AvailabilityStore(days.values())


class TestSingleDayBooking:
    def test_end_to_end_example(self, engine):
        store = AvailabilityStore([make_day("2024-06-01", base_price=100.0, max_quantity=10, booked=2)])
        result = engine.book(make_request(quantity=3), store)

        assert result.success
        assert result.error is None
        assert result.booking.total_price == 300.0
        assert store.get("2024-06-01").booked_quantity == 5
        assert store.remaining_capacity("2024-06-01") == 5

    def test_booking_record_fields(self, engine):
        store = AvailabilityStore([make_day("2024-06-01")])
        booking = engine.book(make_request(customer_phone="555-0100", notes="Window seat"), store).booking

        assert isinstance(booking, SingleDayBooking)
        assert booking.id == "booking-1"
        assert booking.date == "2024-06-01"
        assert booking.status == BookingStatus.CONFIRMED
        assert booking.created_at == FIXED_NOW
        assert booking.updated_at == booking.created_at
        assert booking.customer_phone == "555-0100"
        assert booking.notes == "Window seat"
        assert not booking.is_range_booking

    def test_customer_details_are_trimmed(self, engine):
        store = AvailabilityStore([make_day("2024-06-01")])
        booking = engine.book(
            make_request(customer_name="  Jane Doe ", customer_email=" jane@example.com"), store
        ).booking
        assert booking.customer_name == "Jane Doe"
        assert booking.customer_email == "jane@example.com"

    def test_confirmation_message(self, engine):
        store = AvailabilityStore([make_day("2024-06-01")])
        assert engine.book(make_request(), store).message == "Booking confirmed for 2024-06-01."

    def test_ids_are_unique_per_booking(self, engine):
        store = AvailabilityStore([make_day("2024-06-01")])
        first = engine.book(make_request(), store).booking
        second = engine.book(make_request(), store).booking
        assert first.id != second.id

    def test_exact_remaining_capacity_is_accepted(self, engine):
        store = AvailabilityStore([make_day("2024-06-01", max_quantity=10, booked=7)])
        assert engine.book(make_request(quantity=3), store).success
        assert store.remaining_capacity("2024-06-01") == 0

    def test_appends_to_ledger(self, engine, ledger):
        store = AvailabilityStore([make_day("2024-06-01")])
        result = engine.book(make_request(), store, ledger)
        assert len(ledger) == 1
        assert ledger.get(result.booking.id) == result.booking

    def test_default_id_format(self, settings):
        store = AvailabilityStore([make_day("2024-06-01")])
        booking = BookingEngine(settings).book(make_request(), store).booking
        assert re.match(r"^booking-\d+-[0-9a-f]{9}$", booking.id)

    def test_attempt_logs_share_one_request_id(self, engine, caplog):
        store = AvailabilityStore([make_day("2024-06-01")])
        with caplog.at_level(logging.DEBUG, logger="booking_engine"):
            engine.book(make_request(), store)
        ids = {record.request_id for record in caplog.records}
        assert len(ids) == 1
        assert ids.pop().startswith("REQ-")

    def test_request_id_ends_with_attempt(self, engine):
        store = AvailabilityStore([make_day("2024-06-01")])
        engine.plan(make_request(), store)
        engine.book(make_request(), store)
        assert get_request_id() == NO_REQUEST_ID

    def test_zero_quantity_rejected_by_request_model(self):
        with pytest.raises(ValidationError):
            make_request(quantity=0)


class TestValidationFailures:
    @pytest.mark.parametrize("name,email", [
        ("", "jane@example.com"),
        ("Jane Doe", ""),
        ("   ", "jane@example.com"),
        ("Jane Doe", "  "),
    ])
    def test_invalid_customer_info(self, engine, name, email):
        store = AvailabilityStore([make_day("2024-06-01")])
        result = engine.book(make_request(customer_name=name, customer_email=email), store)
        assert not result.success
        assert result.error.code == BookingErrorCode.INVALID_CUSTOMER_INFO
        assert store.get("2024-06-01").booked_quantity == 0

    def test_customer_check_runs_first(self, engine, store):
        result = engine.book(make_request(customer_name=""), store)
        assert result.error.code == BookingErrorCode.INVALID_CUSTOMER_INFO

    def test_single_day_without_date(self, engine, store):
        result = engine.book(make_request(date=None), store)
        assert result.error.code == BookingErrorCode.MISSING_DATES

    def test_unavailable_date(self, engine):
        store = AvailabilityStore([make_day("2024-06-01", available=False)])
        result = engine.book(make_request(), store)
        assert result.error.code == BookingErrorCode.DATE_UNAVAILABLE
        assert result.error.date == "2024-06-01"

    def test_missing_day_record_is_unavailable(self, engine, store):
        result = engine.book(make_request(), store)
        assert result.error.code == BookingErrorCode.DATE_UNAVAILABLE

    def test_insufficient_capacity(self, engine):
        store = AvailabilityStore([make_day("2024-06-01", max_quantity=10, booked=9)])
        result = engine.book(make_request(quantity=2), store)
        assert result.error.code == BookingErrorCode.INSUFFICIENT_CAPACITY
        assert result.error.date == "2024-06-01"
        assert store.get("2024-06-01").booked_quantity == 9

    def test_failure_carries_no_booking_or_deltas(self, engine, store):
        result = engine.book(make_request(), store)
        assert result.booking is None
        assert result.deltas == []
        assert result.message == result.error.message

    def test_rejection_is_logged(self, engine, store, caplog):
        with caplog.at_level(logging.WARNING, logger="booking_engine.engine.booking"):
            engine.book(make_request(), store)
        assert "DateUnavailable" in caplog.text


class TestRangeBooking:
    def test_commits_every_night_and_nothing_else(self, engine):
        store = _july_store()
        result = engine.book(make_range_request("2024-07-01", "2024-07-04", quantity=2), store)

        assert result.success
        booked = {date: store.get(date).booked_quantity for date in store.dates()}
        assert booked == {
            "2024-06-30": 0,
            "2024-07-01": 2,
            "2024-07-02": 2,
            "2024-07-03": 2,
            "2024-07-04": 0,
            "2024-07-05": 0,
        }

    def test_record_shape(self, engine):
        store = _july_store()
        result = engine.book(make_range_request("2024-07-01", "2024-07-04"), store)
        booking = result.booking

        assert isinstance(booking, RangeBooking)
        assert booking.date == "2024-07-01"
        assert booking.number_of_nights == 3
        assert booking.occupied_dates() == ["2024-07-01", "2024-07-02", "2024-07-03"]
        assert booking.total_price == 300.0
        assert booking.is_range_booking
        assert result.message == "Range booking confirmed: 2024-07-01 to 2024-07-04 (3 night(s))."

    def test_below_minimum_stay(self):
        engine = BookingEngine(make_settings(minimum_nights=2), clock=lambda: FIXED_NOW)
        store = _july_store()
        result = engine.book(make_range_request("2024-07-01", "2024-07-02"), store)

        assert not result.success
        assert result.error.code == BookingErrorCode.BELOW_MINIMUM_STAY
        assert store.get("2024-07-01").booked_quantity == 0

    @pytest.mark.parametrize("with_record", [True, False])
    def test_same_day_range_rejected_even_without_minimum(self, with_record):
        engine = BookingEngine(make_settings(minimum_nights=0), clock=lambda: FIXED_NOW)
        store = _july_store() if with_record else AvailabilityStore()
        result = engine.book(make_range_request("2024-07-01", "2024-07-01"), store)

        assert not result.success
        assert result.error.code == BookingErrorCode.BELOW_MINIMUM_STAY
        assert result.message == "Minimum stay is 1 night(s), requested 0."

    def test_inverted_range_is_below_minimum_stay(self, engine):
        result = engine.book(make_range_request("2024-07-04", "2024-07-01"), _july_store())
        assert result.error.code == BookingErrorCode.BELOW_MINIMUM_STAY

    def test_missing_dates(self, engine):
        result = engine.book(make_range_request("2024-07-01", ""), _july_store())
        assert result.error.code == BookingErrorCode.MISSING_DATES

    def test_range_booking_disabled(self):
        engine = BookingEngine(make_settings(allow_range_booking=False))
        result = engine.book(make_range_request("2024-07-01", "2024-07-03"), _july_store())
        assert result.error.code == BookingErrorCode.RANGE_BOOKING_DISABLED

    def test_unavailable_middle_night_blocks_whole_range(self, engine):
        store = _july_store(**{"2024-07-02": make_day("2024-07-02", available=False)})
        result = engine.book(make_range_request("2024-07-01", "2024-07-04"), store)

        assert result.error.code == BookingErrorCode.DATE_UNAVAILABLE
        assert result.error.date == "2024-07-02"
        assert all(store.get(date).booked_quantity == 0 for date in store.dates())

    def test_full_last_night_blocks_whole_range(self, engine):
        store = _july_store(**{"2024-07-03": make_day("2024-07-03", max_quantity=10, booked=10)})
        result = engine.book(make_range_request("2024-07-01", "2024-07-04"), store)

        assert result.error.code == BookingErrorCode.INSUFFICIENT_CAPACITY
        assert result.error.date == "2024-07-03"
        assert store.get("2024-07-01").booked_quantity == 0
        assert store.get("2024-07-02").booked_quantity == 0

    def test_checkout_day_may_be_unavailable(self, engine):
        store = _july_store(**{"2024-07-04": make_day("2024-07-04", available=False)})
        assert engine.book(make_range_request("2024-07-01", "2024-07-04"), store).success

    def test_priced_from_check_in_day_only(self, engine):
        store = _july_store(**{"2024-07-02": make_day("2024-07-02", base_price=500.0)})
        result = engine.book(make_range_request("2024-07-01", "2024-07-03"), store)
        assert result.booking.total_price == 200.0


class TestRangeFees:
    def test_early_late_and_over_24h(self, engine):
        request = make_range_request(
            "2024-07-01", "2024-07-02", check_in_time="10:00", check_out_time="13:00"
        )
        booking = engine.book(request, _july_store()).booking

        assert booking.early_check_in_fee == 25.0
        assert booking.late_check_out_fee == 30.0
        assert booking.over_24h_penalty == 100.0
        assert booking.additional_fees == pytest.approx(155.0)
        assert booking.total_price == pytest.approx(255.0)
        assert booking.early_check_in_requested
        assert booking.late_check_out_requested

    def test_standard_times_add_nothing(self, engine):
        request = make_range_request(
            "2024-07-01", "2024-07-02", check_in_time="14:00", check_out_time="10:00"
        )
        booking = engine.book(request, _july_store()).booking
        assert booking.additional_fees == 0.0
        assert booking.total_price == 100.0
        assert not booking.early_check_in_requested

    def test_disabled_fee_is_not_charged(self):
        engine = BookingEngine(make_settings(early_check_in_fee_enabled=False))
        request = make_range_request(
            "2024-07-01", "2024-07-02", check_in_time="10:00", check_out_time="13:00"
        )
        booking = engine.book(request, _july_store()).booking
        assert booking.early_check_in_fee == 0.0
        assert booking.early_check_in_requested
        assert booking.total_price == pytest.approx(100.0 + 30.0 + 100.0)

    def test_penalty_uses_check_in_base_price(self, engine):
        store = _july_store(**{"2024-07-01": make_day("2024-07-01", base_price=80.0)})
        request = make_range_request(
            "2024-07-01", "2024-07-02", check_in_time="10:00", check_out_time="13:00"
        )
        assert engine.book(request, store).booking.over_24h_penalty == 80.0

    def test_enforced_times_fill_missing_values(self):
        engine = BookingEngine(make_settings(enforce_check_in_out_times=True))
        booking = engine.book(make_range_request("2024-07-01", "2024-07-03"), _july_store()).booking
        assert booking.check_in_time == "14:00"
        assert booking.check_out_time == "10:00"
        assert booking.over_24h_penalty == 0.0
        assert booking.total_price == 200.0
        assert not booking.early_check_in_requested

    def test_enforced_times_do_not_hide_requested_surcharges(self):
        engine = BookingEngine(make_settings(enforce_check_in_out_times=True))
        request = make_range_request("2024-07-01", "2024-07-03", check_in_time="11:00")
        booking = engine.book(request, _july_store()).booking
        assert booking.check_in_time == "11:00"
        assert booking.check_out_time == "10:00"
        assert booking.early_check_in_fee == 25.0
        assert booking.over_24h_penalty == 0.0
        assert booking.total_price == 225.0

    def test_requested_multi_night_times_pay_over_24h(self, engine):
        request = make_range_request(
            "2024-07-01", "2024-07-03", check_in_time="14:00", check_out_time="10:00"
        )
        booking = engine.book(request, _july_store()).booking
        assert booking.over_24h_penalty == 100.0
        assert booking.total_price == 300.0

    def test_no_fees_on_single_day_bookings(self, engine):
        store = AvailabilityStore([make_day("2024-06-01")])
        request = make_request(check_in_time="06:00", check_out_time="23:00")
        assert engine.book(request, store).booking.total_price == 100.0


class TestHourlyBooking:
    def _hourly_day(self, date: str = "2024-06-01", **slot_overrides):
        return make_day(date, slots=[
            make_slot("slot-0", "09:00", "10:00", **slot_overrides),
            make_slot("slot-1", "10:00", "11:00", price=150.0),
        ])

    def test_slot_price_and_capacity(self, engine):
        store = AvailabilityStore([self._hourly_day()])
        result = engine.book(make_request(slot_id="slot-0", quantity=2), store)

        assert result.success
        assert result.booking.total_price == 240.0
        assert result.booking.slot_id == "slot-0"
        assert result.booking.start_time == "09:00"
        assert result.booking.end_time == "10:00"
        day = store.get("2024-06-01")
        assert day.find_slot("slot-0").booked_quantity == 2
        assert day.booked_quantity == 0

    def test_slot_selected_by_start_time(self, engine):
        store = AvailabilityStore([self._hourly_day()])
        booking = engine.book(make_request(start_time="10:00"), store).booking
        assert booking.slot_id == "slot-1"
        assert booking.total_price == 150.0

    def test_selected_slot_times_win_over_request_times(self, engine):
        store = AvailabilityStore([self._hourly_day()])
        booking = engine.book(make_request(slot_id="slot-0", start_time="10:00", end_time="11:00"), store).booking

        assert booking.slot_id == "slot-0"
        assert (booking.start_time, booking.end_time) == ("09:00", "10:00")
        assert store.get("2024-06-01").find_slot("slot-0").booked_quantity == 1
        assert store.get("2024-06-01").find_slot("slot-1").booked_quantity == 0

    def test_unknown_slot(self, engine):
        store = AvailabilityStore([self._hourly_day()])
        result = engine.book(make_request(slot_id="slot-9"), store)
        assert result.error.code == BookingErrorCode.SLOT_UNAVAILABLE

    def test_closed_slot(self, engine):
        store = AvailabilityStore([self._hourly_day(available=False)])
        result = engine.book(make_request(slot_id="slot-0"), store)
        assert result.error.code == BookingErrorCode.SLOT_UNAVAILABLE

    def test_full_slot(self, engine):
        store = AvailabilityStore([self._hourly_day(quantity=5, booked=4)])
        result = engine.book(make_request(slot_id="slot-0", quantity=2), store)
        assert result.error.code == BookingErrorCode.INSUFFICIENT_CAPACITY

    def test_no_slot_selected_uses_day_capacity(self, engine):
        store = AvailabilityStore([self._hourly_day()])
        result = engine.book(make_request(quantity=3), store)
        assert result.booking.total_price == 300.0
        assert store.get("2024-06-01").booked_quantity == 3

    def test_slot_ignored_on_whole_day_record(self, engine):
        store = AvailabilityStore([make_day("2024-06-01")])
        result = engine.book(make_request(slot_id="slot-0"), store)
        assert result.success
        assert result.booking.slot_id is None
        assert store.get("2024-06-01").booked_quantity == 1

    def test_range_needs_same_slot_every_night(self, engine):
        store = AvailabilityStore([
            self._hourly_day("2024-07-01"),
            make_day("2024-07-02", slots=[make_slot("other")]),
        ])
        result = engine.book(make_range_request("2024-07-01", "2024-07-03", slot_id="slot-0"), store)

        assert result.error.code == BookingErrorCode.SLOT_UNAVAILABLE
        assert result.error.date == "2024-07-02"
        assert store.get("2024-07-01").find_slot("slot-0").booked_quantity == 0

    def test_range_commits_slot_on_every_night(self, engine):
        store = AvailabilityStore([self._hourly_day("2024-07-01"), self._hourly_day("2024-07-02")])
        result = engine.book(make_range_request("2024-07-01", "2024-07-03", slot_id="slot-0"), store)

        assert result.success
        assert result.booking.total_price == 240.0
        for date in ("2024-07-01", "2024-07-02"):
            assert store.get(date).find_slot("slot-0").booked_quantity == 1


class TestPlan:
    def test_plan_does_not_mutate(self, engine):
        store = AvailabilityStore([make_day("2024-06-01", booked=2)])
        result = engine.plan(make_request(quantity=3), store)

        assert result.success
        assert store.get("2024-06-01").booked_quantity == 2
        assert [(d.date, d.amount, d.slot_id) for d in result.deltas] == [("2024-06-01", 3, None)]

    def test_range_plan_has_one_delta_per_night(self, engine):
        result = engine.plan(make_range_request("2024-07-01", "2024-07-04"), _july_store())
        assert [d.date for d in result.deltas] == ["2024-07-01", "2024-07-02", "2024-07-03"]

    def test_planned_deltas_can_be_committed(self, engine):
        store = AvailabilityStore([make_day("2024-06-01")])
        result = engine.plan(make_request(quantity=4), store)
        store.apply_deltas(result.deltas)
        assert store.remaining_capacity("2024-06-01") == 6
