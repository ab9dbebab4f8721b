"""
Per-date inventory store.

Holds one DayAvailability record per calendar date and answers capacity
queries. Capacity is only ever changed through ``commit``/``release`` (for
bookings) or through the admin edit operations (``upsert`` and
``apply_bulk_update``), which bypass customer-facing validation.

Usage:
    store = AvailabilityStore.from_snapshot(records)
    store.ensure_window(date.today(), settings.advance_booking_days, settings)
    if store.remaining_capacity("2024-06-01") >= 3:
        store.commit("2024-06-01", None, 3)
"""

import json
from collections import defaultdict
from dataclasses import dataclass
from datetime import date as date_type, timedelta
from typing import Iterable, Optional

from booking_engine.config import BookingSettings
from booking_engine.logging_context import get_request_logger
from booking_engine.schemas.availability_schema import BulkUpdate, DayAvailability, TimeSlot
from booking_engine.schemas.booking_schema import CapacityDelta
from booking_engine.utils import DateLike, format_date, generate_slots, inclusive_date_range, parse_date

logger = get_request_logger(__name__)


class UnknownDateError(KeyError):
    """Raised when mutating a date that has no inventory record."""


class UnknownSlotError(KeyError):
    """Raised when a slot id is not on the day being edited or booked."""


class CapacityExceededError(Exception):
    """Raised when a commit would book more than the remaining capacity.

    This signals a caller bug: the booking engine checks capacity before
    it commits anything.
    """


def default_day(date: DateLike, settings: BookingSettings) -> DayAvailability:
    """A fresh whole-day record built from the settings defaults."""
    return DayAvailability(
        date=format_date(date),
        is_available=True,
        base_price=settings.default_price,
        max_quantity=settings.default_quantity,
        booked_quantity=0,
        use_hourly_booking=False,
    )


def default_time_slots(settings: BookingSettings) -> list[TimeSlot]:
    """Slots spanning the working hours, each with default quantity and price."""
    pairs = generate_slots(
        settings.working_hours.start, settings.working_hours.end, settings.slot_duration
    )
    return [
        TimeSlot(
            id=f"slot-{index}",
            start_time=start,
            end_time=end,
            available=True,
            quantity=settings.default_quantity,
            booked_quantity=0,
            price=settings.default_price,
        )
        for index, (start, end) in enumerate(pairs)
    ]


def to_hourly(day: DayAvailability, slots: Iterable[TimeSlot]) -> DayAvailability:
    """Switch a day to hourly mode with exactly ``slots``."""
    return day.model_copy(
        update={"use_hourly_booking": True, "time_slots": [s.model_copy() for s in slots]}
    )


def to_whole_day(day: DayAvailability) -> DayAvailability:
    """Switch a day to whole-day mode, dropping its slot list."""
    return day.model_copy(update={"use_hourly_booking": False, "time_slots": None})


def toggle_hourly(
    day: DayAvailability, enabled: bool, settings: BookingSettings
) -> DayAvailability:
    """Day-editor hourly switch.

    Enabling keeps an existing slot list and otherwise generates default
    slots. Disabling clears the slot list, so enabling again afterwards
    starts from freshly generated slots with nothing booked.
    """
    if not enabled:
        return to_whole_day(day)
    if day.use_hourly_booking:
        return day
    return to_hourly(day, default_time_slots(settings))


def available_quantity(day: DayAvailability) -> int:
    """Units still bookable on a day, summed over slots for hourly days.

    An overbooked slot counts as zero rather than eating into the others.
    """
    if day.use_hourly_booking:
        return sum(max(0, slot.remaining) for slot in day.time_slots or [])
    return day.max_quantity - day.booked_quantity


# --- Day-editor slot edits ---


def _with_slots(day: DayAvailability, slots: list[TimeSlot]) -> DayAvailability:
    # full validation so slot ids stay unique
    return DayAvailability.model_validate(
        {**day.model_dump(), "use_hourly_booking": True, "time_slots": slots}
    )


def _require_hourly(day: DayAvailability) -> list[TimeSlot]:
    if not day.use_hourly_booking:
        raise ValueError(f"Day {day.date} is not in hourly mode")
    return list(day.time_slots or [])


def _require_slot(day: DayAvailability, slot_id: str) -> TimeSlot:
    slot = day.find_slot(slot_id=slot_id)
    if slot is None:
        raise UnknownSlotError(f"No slot {slot_id!r} on {day.date}")
    return slot


def add_time_slot(
    day: DayAvailability,
    settings: BookingSettings,
    start_time: str = "09:00",
    end_time: str = "10:00",
    slot_id: Optional[str] = None,
) -> DayAvailability:
    """Append a slot with the settings' default quantity and price."""
    slots = _require_hourly(day)
    if slot_id is None:
        taken = {slot.id for slot in slots}
        index = len(slots)
        while f"slot-{index}" in taken:
            index += 1
        slot_id = f"slot-{index}"
    slots.append(
        TimeSlot(
            id=slot_id,
            start_time=start_time,
            end_time=end_time,
            available=True,
            quantity=settings.default_quantity,
            booked_quantity=0,
            price=settings.default_price,
        )
    )
    return _with_slots(day, slots)


def update_time_slot(day: DayAvailability, slot_id: str, **changes) -> DayAvailability:
    """Merge ``changes`` (field names, e.g. ``price=90``) into one slot."""
    slots = _require_hourly(day)
    current = _require_slot(day, slot_id)
    updated = TimeSlot.model_validate({**current.model_dump(), **changes})
    return _with_slots(day, [updated if slot.id == slot_id else slot for slot in slots])


def remove_time_slot(day: DayAvailability, slot_id: str) -> DayAvailability:
    """Drop one slot. Units booked in it are not moved anywhere."""
    slots = _require_hourly(day)
    _require_slot(day, slot_id)
    return _with_slots(day, [slot for slot in slots if slot.id != slot_id])


# --- Calendar view ---


@dataclass(frozen=True)
class DayStatus:
    """What the booking calendar shows for one date."""

    date: str
    is_past: bool
    is_bookable: bool
    has_bookings: bool
    available_quantity: int


def describe_day(date: DateLike, day: Optional[DayAvailability], today: DateLike) -> DayStatus:
    """
    Calendar status of a date.

    Past dates and dates without a record are never bookable. An hourly day
    is bookable while at least one open slot has capacity; a whole-day
    record while it has any capacity left.
    """
    key = format_date(date)
    is_past = parse_date(key) < parse_date(today)
    if day is None:
        return DayStatus(key, is_past, False, False, 0)

    quantity = available_quantity(day)
    if day.use_hourly_booking:
        slots = day.time_slots or []
        has_capacity = any(slot.available and slot.remaining > 0 for slot in slots)
        has_bookings = any(slot.booked_quantity > 0 for slot in slots)
    else:
        has_capacity = quantity > 0
        has_bookings = day.booked_quantity > 0

    return DayStatus(
        date=key,
        is_past=is_past,
        is_bookable=day.is_available and not is_past and has_capacity,
        has_bookings=has_bookings,
        available_quantity=quantity,
    )


class AvailabilityStore:
    """Mutable collection of day records keyed by ISO date."""

    def __init__(self, days: Optional[Iterable[DayAvailability]] = None) -> None:
        self._days: dict[str, DayAvailability] = {}
        for day in days or []:
            self._days[day.date] = day

    def __len__(self) -> int:
        return len(self._days)

    def __contains__(self, date: object) -> bool:
        if not isinstance(date, (str, date_type)):
            return False
        try:
            return format_date(date) in self._days
        except ValueError:
            return False

    def get(self, date: DateLike) -> Optional[DayAvailability]:
        return self._days.get(format_date(date))

    def dates(self) -> list[str]:
        return sorted(self._days)

    def days(self) -> list[DayAvailability]:
        return [self._days[key] for key in self.dates()]

    def _require(self, date: DateLike) -> DayAvailability:
        key = format_date(date)
        day = self._days.get(key)
        if day is None:
            raise UnknownDateError(f"No availability record for {key}")
        return day

    # --- Window maintenance ---

    def ensure_window(
        self, today: DateLike, horizon_days: int, settings: BookingSettings
    ) -> list[str]:
        """Create default records for ``[today, today + horizon_days]``.

        Existing records are never touched. Returns the dates created.
        """
        start = parse_date(today)
        created = []
        for key in inclusive_date_range(start, start + timedelta(days=horizon_days)):
            if key not in self._days:
                self._days[key] = default_day(key, settings)
                created.append(key)
        if created:
            logger.info(
                "Availability window extended: %d day(s) created (%s..%s)",
                len(created), created[0], created[-1],
            )
        return created

    # --- Capacity ---

    def remaining_capacity(self, date: DateLike, slot_id: Optional[str] = None) -> int:
        """Units left on a day, or in one slot of it.

        A missing record, or a missing or unavailable slot, has no capacity.
        Day-level availability is the caller's concern.
        """
        day = self.get(date)
        if day is None:
            return 0
        if slot_id is not None:
            slot = day.find_slot(slot_id=slot_id)
            if slot is None or not slot.available:
                return 0
            return slot.remaining
        return day.max_quantity - day.booked_quantity

    def day_status(self, date: DateLike, today: DateLike) -> DayStatus:
        return describe_day(date, self.get(date), today)

    def _adjust(self, date: DateLike, slot_id: Optional[str], amount: int) -> None:
        day = self._require(date)
        if slot_id is None:
            booked = max(day.booked_quantity + amount, 0)
            self._days[day.date] = day.model_copy(update={"booked_quantity": booked})
            return

        if day.find_slot(slot_id=slot_id) is None:
            raise UnknownSlotError(f"No slot {slot_id!r} on {day.date}")
        slots = [
            slot.model_copy(update={"booked_quantity": max(slot.booked_quantity + amount, 0)})
            if slot.id == slot_id
            else slot
            for slot in day.time_slots or []
        ]
        self._days[day.date] = day.model_copy(update={"time_slots": slots})

    def commit(self, date: DateLike, slot_id: Optional[str], amount: int) -> None:
        """Book ``amount`` units on a day or slot."""
        self._require(date)
        remaining = self.remaining_capacity(date, slot_id)
        if amount > remaining:
            raise CapacityExceededError(
                f"Cannot commit {amount} on {format_date(date)}"
                f"{f' slot {slot_id}' if slot_id else ''}: only {remaining} remaining"
            )
        self._adjust(date, slot_id, amount)
        logger.debug("Committed %d on %s (slot=%s)", amount, format_date(date), slot_id)

    def release(self, date: DateLike, slot_id: Optional[str], amount: int) -> None:
        """Give back ``amount`` units; booked quantity never drops below zero."""
        self._adjust(date, slot_id, -amount)
        logger.debug("Released %d on %s (slot=%s)", amount, format_date(date), slot_id)

    def apply_deltas(self, deltas: Iterable[CapacityDelta]) -> None:
        """Commit a batch of deltas, or none of them if any would overbook."""
        deltas = list(deltas)
        requested: dict[tuple[str, Optional[str]], int] = defaultdict(int)
        for delta in deltas:
            requested[(format_date(delta.date), delta.slot_id)] += delta.amount

        for (date, slot_id), amount in requested.items():
            self._require(date)
            remaining = self.remaining_capacity(date, slot_id)
            if amount > remaining:
                raise CapacityExceededError(
                    f"Cannot commit {amount} on {date}"
                    f"{f' slot {slot_id}' if slot_id else ''}: only {remaining} remaining"
                )

        for delta in deltas:
            self._adjust(delta.date, delta.slot_id, delta.amount)
        logger.debug("Applied %d capacity delta(s)", len(deltas))

    # --- Admin edits ---

    def upsert(self, day: DayAvailability) -> None:
        """Insert or fully replace the record for ``day.date``."""
        replaced = day.date in self._days
        self._days[day.date] = day
        logger.info("Day %s %s", day.date, "replaced" if replaced else "added")

    def apply_bulk_update(
        self,
        start: DateLike,
        end: DateLike,
        updates: BulkUpdate,
        settings: BookingSettings,
    ) -> list[str]:
        """
        Merge ``updates`` into every day of the inclusive range.

        Missing days are created from defaults first. When the hourly flag
        is part of the update the slot list is replaced wholesale: custom
        slots if given, generated default slots otherwise, or no slots when
        hourly mode is switched off. Replacement slots start with nothing
        booked.
        """
        if parse_date(end) < parse_date(start):
            raise ValueError(f"Bulk update range is inverted: {start} > {end}")

        scalars = updates.scalar_updates()
        replacement_slots: Optional[list[TimeSlot]] = None
        if updates.changes_hourly_mode and updates.use_hourly_booking:
            source = updates.time_slots if updates.time_slots is not None else default_time_slots(settings)
            replacement_slots = [slot.model_copy(update={"booked_quantity": 0}) for slot in source]

        updated = []
        for key in inclusive_date_range(start, end):
            day = self._days.get(key) or default_day(key, settings)
            if scalars:
                day = day.model_copy(update=scalars)
            if updates.changes_hourly_mode:
                if replacement_slots is not None:
                    day = to_hourly(day, replacement_slots)
                else:
                    day = to_whole_day(day)
            self._days[key] = day
            updated.append(key)

        logger.info(
            "Bulk update applied to %d day(s) %s..%s: %s",
            len(updated), format_date(start), format_date(end),
            sorted(updates.model_fields_set),
        )
        return updated

    # --- Snapshots ---

    def to_snapshot(self) -> list[dict]:
        return [day.to_snapshot() for day in self.days()]

    @classmethod
    def from_snapshot(cls, records: Iterable[dict]) -> "AvailabilityStore":
        return cls(DayAvailability.model_validate(record) for record in records)

    def to_json(self) -> str:
        return json.dumps(self.to_snapshot(), indent=2)

    @classmethod
    def from_json(cls, payload: str) -> "AvailabilityStore":
        return cls.from_snapshot(json.loads(payload))
