"""Booking request, booking record and engine result models."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from booking_engine.schemas.availability_schema import SnapshotModel
from booking_engine.utils import date_range, format_date, parse_date


class BookingStatus(str, Enum):
    CONFIRMED = "confirmed"
    PENDING = "pending"
    CANCELLED = "cancelled"


class BookingErrorCode(str, Enum):
    """Reasons a booking attempt or import record is rejected."""

    INVALID_CUSTOMER_INFO = "InvalidCustomerInfo"
    RANGE_BOOKING_DISABLED = "RangeBookingDisabled"
    MISSING_DATES = "MissingDates"
    BELOW_MINIMUM_STAY = "BelowMinimumStay"
    DATE_UNAVAILABLE = "DateUnavailable"
    INSUFFICIENT_CAPACITY = "InsufficientCapacity"
    SLOT_UNAVAILABLE = "SlotUnavailable"
    MALFORMED_INTERCHANGE_RECORD = "MalformedInterchangeRecord"


def _optional_date(value: Optional[str]) -> Optional[str]:
    if value is None or not str(value).strip():
        return None
    return format_date(value)


class BookingRequest(BaseModel):
    """
    Customer booking request as collected by the booking form.

    Contact fields are unconstrained here: blank values are a
    business rejection reported by the engine, not a schema error.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    customer_name: str = ""
    customer_email: str = ""
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[str] = None
    quantity: int = Field(default=1, ge=1)
    is_range_booking: bool = False
    check_in_date: Optional[str] = None
    check_out_date: Optional[str] = None
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    slot_id: Optional[str] = None

    @field_validator("date", "check_in_date", "check_out_date")
    @classmethod
    def _normalize_dates(cls, value: Optional[str]) -> Optional[str]:
        return _optional_date(value)


class _BookingBase(SnapshotModel):
    """Fields shared by single-day and range bookings."""

    model_config = ConfigDict(frozen=True)

    id: str
    date: str
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    slot_id: Optional[str] = None
    quantity: int = Field(ge=1)
    total_price: float = Field(ge=0)
    customer_name: str = Field(min_length=1)
    customer_email: str = Field(min_length=1)
    customer_phone: Optional[str] = None
    notes: Optional[str] = None
    status: BookingStatus = BookingStatus.CONFIRMED
    created_at: datetime
    updated_at: datetime

    @field_validator("date")
    @classmethod
    def _normalize_date(cls, value: str) -> str:
        return format_date(value)

    def with_status(self, status: BookingStatus, now: datetime):
        """Return a copy with a new status; the only permitted mutation."""
        return self.model_copy(update={"status": status, "updated_at": now})

    def occupied_dates(self) -> list[str]:
        return [self.date]


class SingleDayBooking(_BookingBase):
    """A booking for one calendar date, optionally within a time slot."""

    kind: Literal["single_day"] = "single_day"

    @computed_field(alias="isRangeBooking")
    @property
    def is_range_booking(self) -> bool:
        return False


class RangeBooking(_BookingBase):
    """A multi-night stay from check-in (inclusive) to check-out (exclusive)."""

    kind: Literal["range"] = "range"
    check_in_date: str
    check_out_date: str
    number_of_nights: int = Field(ge=1)
    check_in_time: Optional[str] = None
    check_out_time: Optional[str] = None
    early_check_in_fee: float = Field(default=0.0, ge=0)
    late_check_out_fee: float = Field(default=0.0, ge=0)
    over_24h_penalty: float = Field(default=0.0, ge=0)
    early_check_in_requested: bool = False
    late_check_out_requested: bool = False

    @field_validator("check_in_date", "check_out_date")
    @classmethod
    def _normalize_stay_dates(cls, value: str) -> str:
        return format_date(value)

    @model_validator(mode="after")
    def _check_stay(self) -> "RangeBooking":
        if parse_date(self.check_out_date) <= parse_date(self.check_in_date):
            raise ValueError(
                f"Check-out {self.check_out_date} must be after check-in {self.check_in_date}"
            )
        if self.date != self.check_in_date:
            raise ValueError("Range booking date must equal its check-in date")
        return self

    @computed_field(alias="isRangeBooking")
    @property
    def is_range_booking(self) -> bool:
        return True

    @property
    def additional_fees(self) -> float:
        return self.early_check_in_fee + self.late_check_out_fee + self.over_24h_penalty

    def occupied_dates(self) -> list[str]:
        return list(date_range(self.check_in_date, self.check_out_date))


def _booking_kind(value: Any) -> Optional[str]:
    """Pick the variant, accepting legacy snapshots keyed on isRangeBooking."""
    if isinstance(value, dict):
        if "kind" in value:
            return value["kind"]
        flag = value.get("isRangeBooking", value.get("is_range_booking", False))
        return "range" if flag else "single_day"
    return getattr(value, "kind", None)


Booking = Annotated[
    Union[
        Annotated[SingleDayBooking, Tag("single_day")],
        Annotated[RangeBooking, Tag("range")],
    ],
    Discriminator(_booking_kind),
]

booking_adapter: TypeAdapter = TypeAdapter(Booking)


@dataclass(frozen=True)
class CapacityDelta:
    """Quantity to commit against a day, or a slot within it."""

    date: str
    amount: int
    slot_id: Optional[str] = None


@dataclass(frozen=True)
class BookingError:
    """Typed rejection reported back to the presentation layer."""

    code: BookingErrorCode
    message: str
    date: Optional[str] = None


@dataclass
class BookingResult:
    """Outcome of a booking attempt. Exactly one of booking/error is set."""

    success: bool
    message: str
    booking: Optional[Union[SingleDayBooking, RangeBooking]] = None
    deltas: list[CapacityDelta] = field(default_factory=list)
    error: Optional[BookingError] = None
