"""Calendar interchange event models."""

from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel

from booking_engine.schemas.booking_schema import BookingError


class CalendarEvent(BaseModel):
    """One VEVENT worth of data, independent of the text encoding."""

    summary: str
    start_date: str
    end_date: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    all_day: bool = True
    description: Optional[str] = None
    location: Optional[str] = None
    uid: Optional[str] = None


@dataclass
class ImportReport:
    """Events accepted from a calendar file and the blocks that were skipped."""

    events: list[CalendarEvent] = field(default_factory=list)
    errors: list[BookingError] = field(default_factory=list)

    @property
    def skipped(self) -> int:
        return len(self.errors)
