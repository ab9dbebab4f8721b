"""Day and time-slot inventory models."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from booking_engine.utils import format_date, parse_clock


class SnapshotModel(BaseModel):
    """Base for records persisted in camelCase snapshots."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_snapshot(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class TimeSlot(SnapshotModel):
    """A bookable sub-interval of a day with its own capacity and price."""

    id: str
    start_time: str
    end_time: str
    available: bool = True
    quantity: int = Field(ge=0)
    booked_quantity: int = Field(default=0, ge=0)
    price: float = Field(ge=0)

    @model_validator(mode="after")
    def _check_times(self) -> "TimeSlot":
        if parse_clock(self.start_time) >= parse_clock(self.end_time):
            raise ValueError(
                f"Slot {self.id} must start before it ends "
                f"({self.start_time}-{self.end_time})"
            )
        return self

    @property
    def remaining(self) -> int:
        return self.quantity - self.booked_quantity


class DayAvailability(SnapshotModel):
    """
    Inventory record for one calendar date.

    A day is either whole-day (capacity tracked by ``max_quantity`` and
    ``booked_quantity``) or hourly (capacity tracked per slot). The model
    keeps the two shapes apart: ``time_slots`` is a list exactly when
    ``use_hourly_booking`` is set and ``None`` otherwise.
    """

    date: str
    is_available: bool = True
    base_price: float = Field(ge=0)
    max_quantity: int = Field(ge=0)
    booked_quantity: int = Field(default=0, ge=0)
    use_hourly_booking: bool = False
    time_slots: Optional[list[TimeSlot]] = None

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: str) -> str:
        return format_date(value)

    @model_validator(mode="after")
    def _check_shape(self) -> "DayAvailability":
        if not self.use_hourly_booking:
            self.time_slots = None
            return self
        if self.time_slots is None:
            self.time_slots = []
        ids = [slot.id for slot in self.time_slots]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate slot ids on {self.date}: {ids}")
        return self

    def find_slot(
        self, slot_id: Optional[str] = None, start_time: Optional[str] = None
    ) -> Optional[TimeSlot]:
        """Look up a slot by id, falling back to a start-time match."""
        for slot in self.time_slots or []:
            if slot_id is not None and slot.id == slot_id:
                return slot
            if slot_id is None and start_time is not None and slot.start_time == start_time:
                return slot
        return None


class BulkUpdate(SnapshotModel):
    """
    Field changes applied to every day in a bulk-edit range.

    Only fields explicitly set are merged. ``time_slots`` is consulted
    only together with ``use_hourly_booking=True``.
    """

    is_available: Optional[bool] = None
    base_price: Optional[float] = Field(default=None, ge=0)
    max_quantity: Optional[int] = Field(default=None, ge=0)
    use_hourly_booking: Optional[bool] = None
    time_slots: Optional[list[TimeSlot]] = None

    def scalar_updates(self) -> dict:
        """Set fields other than the hourly mode and slot list."""
        return {
            name: getattr(self, name)
            for name in ("is_available", "base_price", "max_quantity")
            if name in self.model_fields_set and getattr(self, name) is not None
        }

    @property
    def changes_hourly_mode(self) -> bool:
        return "use_hourly_booking" in self.model_fields_set and self.use_hourly_booking is not None
