"""Calendar-date and clock-time helpers shared across the booking engine.

Dates are timezone-naive ``YYYY-MM-DD`` strings and clock values are
``HH:MM`` strings, matching the snapshot format.
"""

import math
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Iterator, Optional, Union

DATE_FORMAT = "%Y-%m-%d"
CLOCK_FORMAT = "%H:%M"

DateLike = Union[str, date]


def parse_date(value: DateLike) -> date:
    """Parse an ISO calendar date. ``date`` instances pass through."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError:
        raise ValueError(f"Invalid date {value!r}, expected YYYY-MM-DD") from None


def format_date(value: DateLike) -> str:
    return parse_date(value).strftime(DATE_FORMAT)


def parse_clock(value: str) -> datetime:
    """Parse an HH:MM value onto the 1900-01-01 epoch used for comparisons."""
    try:
        return datetime.strptime(value.strip(), CLOCK_FORMAT)
    except ValueError:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM") from None


def add_minutes(clock: str, minutes: int) -> str:
    """Shift a clock value, wrapping past midnight like a wall clock."""
    return (parse_clock(clock) + timedelta(minutes=minutes)).strftime(CLOCK_FORMAT)


def nights_between(check_in: DateLike, check_out: DateLike) -> int:
    """Number of nights between two dates; 0 when they are equal.

    Examples:
        >>> nights_between("2024-07-01", "2024-07-04")
        3
    """
    delta = parse_date(check_out) - parse_date(check_in)
    return math.ceil(delta.total_seconds() / 86400)


@dataclass(frozen=True)
class DateRange:
    """Half-open ``[start, end)`` run of calendar dates.

    Iterating yields ISO strings and can be repeated any number of times.
    The end date is never included, so a check-out day is not occupied.
    """

    start: date
    end: date

    def __iter__(self) -> Iterator[str]:
        current = self.start
        while current < self.end:
            yield current.strftime(DATE_FORMAT)
            current += timedelta(days=1)

    def __len__(self) -> int:
        return max((self.end - self.start).days, 0)

    def __contains__(self, item: object) -> bool:
        if not isinstance(item, (str, date)):
            return False
        try:
            value = parse_date(item)
        except ValueError:
            return False
        return self.start <= value < self.end


def date_range(start: DateLike, end: DateLike) -> DateRange:
    """Dates from ``start`` up to but excluding ``end``."""
    return DateRange(parse_date(start), parse_date(end))


def inclusive_date_range(start: DateLike, end: DateLike) -> DateRange:
    """Dates from ``start`` through ``end`` inclusive (admin edits, windows)."""
    return DateRange(parse_date(start), parse_date(end) + timedelta(days=1))


def generate_slots(start: str, end: str, duration_minutes: int) -> list[tuple[str, str]]:
    """Build ``(start, end)`` slot pairs covering ``[start, end)``.

    Each slot starts at ``start + n * duration``; the last start is strictly
    before ``end``. The paired end time is ``slot start + duration``.
    """
    if duration_minutes <= 0:
        raise ValueError(f"Slot duration must be positive, got {duration_minutes}")
    slots = []
    current = parse_clock(start)
    limit = parse_clock(end)
    step = timedelta(minutes=duration_minutes)
    while current < limit:
        slots.append((current.strftime(CLOCK_FORMAT), (current + step).strftime(CLOCK_FORMAT)))
        current += step
    return slots


def is_earlier_clock(a: str, b: str) -> bool:
    return parse_clock(a) < parse_clock(b)


def is_later_clock(a: str, b: str) -> bool:
    return parse_clock(a) > parse_clock(b)


def stay_duration_hours(
    check_in_date: DateLike,
    check_in_time: Optional[str],
    check_out_date: DateLike,
    check_out_time: Optional[str],
) -> float:
    """Hours between check-in and check-out instants; 0.0 without both times."""
    if not check_in_time or not check_out_time:
        return 0.0
    start = datetime.combine(parse_date(check_in_date), parse_clock(check_in_time).time())
    end = datetime.combine(parse_date(check_out_date), parse_clock(check_out_time).time())
    return (end - start).total_seconds() / 3600


def format_date_for_display(value: DateLike) -> str:
    """Long form such as ``Saturday, June 1, 2024``."""
    d = parse_date(value)
    return f"{d.strftime('%A, %B')} {d.day}, {d.year}"


def format_time_for_display(clock: str) -> str:
    """12-hour form such as ``2:30 PM``."""
    parsed = parse_clock(clock)
    hour = parsed.hour % 12 or 12
    period = "AM" if parsed.hour < 12 else "PM"
    return f"{hour}:{parsed.minute:02d} {period}"


def format_date_range(check_in: DateLike, check_out: DateLike) -> str:
    """Short stay label such as ``Jul 1 - Jul 4, 2024 (3 nights)``."""
    start = parse_date(check_in)
    end = parse_date(check_out)
    nights = nights_between(start, end)
    label = "night" if nights == 1 else "nights"
    start_text = f"{start.strftime('%b')} {start.day}"
    if start.year != end.year:
        start_text += f", {start.year}"
    return f"{start_text} - {end.strftime('%b')} {end.day}, {end.year} ({nights} {label})"
