"""
Minimal VCALENDAR reader and writer.

Only the properties the booking export uses are understood: SUMMARY,
DESCRIPTION, DTSTART, DTEND, LOCATION, UID and DTSTAMP. Anything else is
ignored on import. Timestamps are floating (no timezone), written as
``YYYYMMDDTHHMMSS``; all-day values use ``;VALUE=DATE`` and ``YYYYMMDD``.
"""

import logging
import re
import uuid
from datetime import datetime
from typing import Iterable, Optional

from booking_engine.schemas.booking_schema import BookingError, BookingErrorCode
from booking_engine.schemas.interchange_schema import CalendarEvent, ImportReport
from booking_engine.utils import parse_date

logger = logging.getLogger(__name__)

PRODID = "-//Booking Engine//EN"
UID_DOMAIN = "bookingengine.com"
CRLF = "\r\n"

_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_STAMP_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})T(\d{2})(\d{2})(\d{2})Z?$")


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace("\r\n", "\n").replace("\n", "\\n")


def _unescape(text: str) -> str:
    return re.sub(r"\\([\\nN,;])", lambda m: "\n" if m.group(1) in "nN" else m.group(1), text)


def _format_day(date: str) -> str:
    return parse_date(date).strftime("%Y%m%d")


def _format_stamp(date: str, clock: Optional[str]) -> str:
    hh, mm = (clock or "00:00").split(":")
    return f"{_format_day(date)}T{hh}{mm}00"


def _event_lines(event: CalendarEvent, now: datetime) -> list[str]:
    end_date = event.end_date or event.start_date
    if event.all_day:
        start = f"DTSTART;VALUE=DATE:{_format_day(event.start_date)}"
        end = f"DTEND;VALUE=DATE:{_format_day(end_date)}"
    else:
        start = f"DTSTART:{_format_stamp(event.start_date, event.start_time)}"
        end = f"DTEND:{_format_stamp(end_date, event.end_time or event.start_time)}"

    lines = ["BEGIN:VEVENT", start, end, f"SUMMARY:{_escape(event.summary)}"]
    if event.description:
        lines.append(f"DESCRIPTION:{_escape(event.description)}")
    if event.location:
        lines.append(f"LOCATION:{_escape(event.location)}")
    lines.append(f"UID:{event.uid or f'{uuid.uuid4().hex}@{UID_DOMAIN}'}")
    lines.append(f"DTSTAMP:{now.strftime('%Y%m%dT%H%M%S')}")
    lines.append("END:VEVENT")
    return lines


def render_calendar(events: Iterable[CalendarEvent], now: datetime) -> str:
    """Serialize events into a VCALENDAR document with CRLF line endings."""
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
    ]
    count = 0
    for event in events:
        lines.extend(_event_lines(event, now))
        count += 1
    lines.append("END:VCALENDAR")
    logger.debug("Rendered calendar with %d event(s)", count)
    return CRLF.join(lines)


def _unfold(text: str) -> list[str]:
    """Split into logical lines, joining RFC 5545 continuation lines."""
    lines: list[str] = []
    for raw in text.replace("\r\n", "\n").replace("\r", "\n").split("\n"):
        if raw[:1] in (" ", "\t") and lines:
            lines[-1] += raw[1:]
        else:
            lines.append(raw.strip())
    return lines


def _parse_when(params: str, value: str) -> Optional[tuple[str, Optional[str]]]:
    """Return ``(iso_date, HH:MM or None)`` or None when unparseable."""
    value = value.strip()
    stamp = _STAMP_RE.match(value)
    if stamp and "VALUE=DATE" not in params.upper():
        year, month, day, hour, minute, second = (int(part) for part in stamp.groups())
        try:
            parsed = datetime(year, month, day, hour, minute, second)
        except ValueError:
            return None
        return parsed.strftime("%Y-%m-%d"), parsed.strftime("%H:%M")

    day_match = _DATE_RE.match(value) or (stamp and _DATE_RE.match(value[:8]))
    if day_match:
        try:
            return parse_date("-".join(day_match.groups()[:3])).isoformat(), None
        except ValueError:
            return None
    return None


def _build_event(index: int, fields: dict[str, tuple[str, str]]) -> tuple[Optional[CalendarEvent], Optional[str]]:
    summary = _unescape(fields["SUMMARY"][1]).strip() if "SUMMARY" in fields else ""
    if not summary:
        return None, f"Event {index} skipped: missing SUMMARY"
    if "DTSTART" not in fields:
        return None, f"Event {index} skipped: missing DTSTART"

    start = _parse_when(*fields["DTSTART"])
    if start is None:
        return None, f"Event {index} skipped: unparseable DTSTART {fields['DTSTART'][1]!r}"
    start_date, start_time = start

    end_date, end_time = start_date, None
    if "DTEND" in fields:
        end = _parse_when(*fields["DTEND"])
        if end is not None:
            end_date, end_time = end

    def text(name: str) -> Optional[str]:
        return _unescape(fields[name][1]) if name in fields else None

    return CalendarEvent(
        summary=summary,
        start_date=start_date,
        end_date=end_date,
        start_time=start_time,
        end_time=end_time,
        all_day=start_time is None,
        description=text("DESCRIPTION"),
        location=text("LOCATION"),
        uid=text("UID"),
    ), None


def _skip(report: ImportReport, problem: str) -> None:
    logger.warning("Calendar import: %s", problem)
    report.errors.append(
        BookingError(code=BookingErrorCode.MALFORMED_INTERCHANGE_RECORD, message=problem)
    )


def parse_calendar(text: str) -> ImportReport:
    """
    Read every VEVENT block in ``text``.

    Unknown properties are ignored. A block without a SUMMARY, a
    parseable DTSTART or its own END:VEVENT is skipped and reported; the
    rest still import.
    """
    report = ImportReport()
    fields: Optional[dict[str, tuple[str, str]]] = None
    index = 0

    for line in _unfold(text):
        if line == "BEGIN:VEVENT":
            if fields is not None:
                _skip(report, f"Event {index} skipped: missing END:VEVENT")
            fields = {}
            index += 1
            continue
        if line == "END:VEVENT" and fields is not None:
            event, problem = _build_event(index, fields)
            if event is not None:
                report.events.append(event)
            else:
                _skip(report, problem)
            fields = None
            continue
        if fields is None or ":" not in line:
            continue
        key, value = line.split(":", 1)
        name, _, params = key.partition(";")
        fields.setdefault(name.upper(), (params, value))

    if fields is not None:
        _skip(report, f"Event {index} skipped: missing END:VEVENT")

    logger.info(
        "Calendar parsed: %d event(s) accepted, %d skipped",
        len(report.events), len(report.errors),
    )
    return report
