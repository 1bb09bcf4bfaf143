"""
ICS (iCalendar) parsing for calendar attachments.

Only the subset the relay needs is understood: one VCALENDAR, its NAME and
its VEVENTs with UID / SUMMARY / DESCRIPTION / LOCATION / DTSTART / DTEND /
DURATION / X-ALT-DESC. STATUS and RRULE are recognized but not interpreted.
"""
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Tuple

import pytz

logger = logging.getLogger(__name__)

DURATION_PATTERN = re.compile(r"PT(\d+)H(\d+)M")
# content lines end at CRLF or LF only; other unicode breaks belong to the value
LINE_BREAK = re.compile(r"\r?\n")


# =========================================================
# ERRORS
# =========================================================
class CalendarParseError(Exception):
    """Base class for everything parse_calendar can raise."""


class NoCalendarFound(CalendarParseError):
    def __init__(self) -> None:
        super().__init__("no calendar found")


class MalformedDocument(CalendarParseError):
    def __init__(self, line_no: int, reason: str) -> None:
        super().__init__(f"line {line_no}: {reason}")
        self.line_no = line_no
        self.reason = reason


class MissingField(CalendarParseError):
    def __init__(self, field_name: str) -> None:
        super().__init__(f"no {field_name}")
        self.field_name = field_name


class UnsupportedDuration(CalendarParseError):
    def __init__(self, value: str) -> None:
        super().__init__(f"duration parsing not implemented for {value!r}")
        self.value = value


class InvalidTimestampLength(CalendarParseError):
    def __init__(self, value: str) -> None:
        super().__init__(f"invalid dt length: {value!r}")
        self.value = value


class InvalidTimestamp(CalendarParseError):
    def __init__(self, value: str, reason: str) -> None:
        super().__init__(f"invalid dt {value!r}: {reason}")
        self.value = value


# =========================================================
# DATA
# =========================================================
@dataclass
class CalendarEvent:
    uid: str
    summary: str
    description: str
    start: datetime
    end: datetime
    location: str
    description_html: Optional[str] = None
    duration: Optional[timedelta] = None


@dataclass
class Calendar:
    name: str
    events: List[CalendarEvent] = field(default_factory=list)


@dataclass
class Property:
    name: str
    value: str
    params: Dict[str, List[str]] = field(default_factory=dict)


@dataclass
class Component:
    name: str
    properties: List[Property] = field(default_factory=list)
    children: List["Component"] = field(default_factory=list)


# =========================================================
# CONTENT LINES
# =========================================================
def _unfold(text: str) -> List[Tuple[int, str]]:
    """Join folded lines; returns (first line number, logical line) pairs."""
    lines: List[Tuple[int, str]] = []
    for line_no, raw in enumerate(LINE_BREAK.split(text), start=1):
        if raw[:1] in (" ", "\t") and lines:
            first_no, prev = lines[-1]
            lines[-1] = (first_no, prev + raw[1:])
        elif raw.strip():
            lines.append((line_no, raw))
    return lines


def _split_unquoted(text: str, sep: str) -> List[str]:
    parts = []
    current = []
    quoted = False
    for ch in text:
        if ch == '"':
            quoted = not quoted
        elif ch == sep and not quoted:
            parts.append("".join(current))
            current = []
            continue
        current.append(ch)
    parts.append("".join(current))
    return parts


def _find_value_colon(line: str) -> int:
    quoted = False
    for i, ch in enumerate(line):
        if ch == '"':
            quoted = not quoted
        elif ch == ":" and not quoted:
            return i
    return -1


def parse_content_line(line: str, line_no: int = 0) -> Property:
    """Split `NAME;PARAM=a,b:VALUE` into its parts."""
    colon = _find_value_colon(line)
    if colon < 0:
        raise MalformedDocument(line_no, "missing ':' in content line")

    head, value = line[:colon], line[colon + 1:]
    name, *raw_params = _split_unquoted(head, ";")
    if not name:
        raise MalformedDocument(line_no, "empty property name")

    params: Dict[str, List[str]] = {}
    for raw in raw_params:
        key, eq, raw_values = raw.partition("=")
        if not eq or not key:
            raise MalformedDocument(line_no, f"bad parameter {raw!r}")
        params[key] = [v.strip('"') for v in _split_unquoted(raw_values, ",")]

    return Property(name=name, value=value, params=params)


def read_components(text: str) -> List[Component]:
    """Build the BEGIN/END component tree of a document."""
    roots: List[Component] = []
    stack: List[Component] = []

    for line_no, line in _unfold(text):
        prop = parse_content_line(line, line_no)
        if prop.name == "BEGIN":
            component = Component(name=prop.value)
            if stack:
                stack[-1].children.append(component)
            else:
                roots.append(component)
            stack.append(component)
        elif prop.name == "END":
            if not stack or stack[-1].name != prop.value:
                raise MalformedDocument(line_no, f"unexpected END:{prop.value}")
            stack.pop()
        elif stack:
            stack[-1].properties.append(prop)
        else:
            raise MalformedDocument(line_no, f"property {prop.name} outside of a component")

    if stack:
        raise MalformedDocument(0, f"component {stack[-1].name} is never closed")
    return roots


# =========================================================
# VALUES
# =========================================================
def parse_datetime(value: str, tz=None) -> datetime:
    """
    Decode `YYYYMMDDTHHMMSS` (local) or `YYYYMMDDTHHMMSSZ` (UTC).

    UTC values are converted to `tz` (system local zone when None) and
    returned naive, so every result is local wall-clock time.
    """
    if len(value) not in (15, 16):
        raise InvalidTimestampLength(value)

    groups = [value[0:4], value[4:6], value[6:8], value[9:11], value[11:13], value[13:15]]
    if not all(g.isascii() and g.isdigit() for g in groups):
        raise InvalidTimestamp(value, "non-digit in date or time")

    try:
        parsed = datetime(*(int(g) for g in groups))
    except ValueError as e:
        raise InvalidTimestamp(value, str(e)) from e

    if value.endswith("Z"):
        aware = pytz.utc.localize(parsed)
        try:
            local = aware.astimezone(tz) if tz is not None else aware.astimezone()
        except OverflowError as e:
            raise InvalidTimestamp(value, "out of range in local time") from e
        parsed = local.replace(tzinfo=None)
    return parsed


def parse_duration(value: str) -> timedelta:
    match = DURATION_PATTERN.search(value)
    if not match:
        raise UnsupportedDuration(value)
    try:
        return timedelta(minutes=int(match.group(1)) * 60 + int(match.group(2)))
    except OverflowError as e:
        raise UnsupportedDuration(value) from e


def _is_html(prop: Property) -> bool:
    values = prop.params.get("FMTTYPE")
    return bool(values) and values[0] == "text/html"


# =========================================================
# CALENDAR
# =========================================================
def parse_event(component: Component, tz=None) -> CalendarEvent:
    uid = summary = description = location = None
    description_html = None
    start = end = duration = None

    for prop in component.properties:
        if prop.name == "UID":
            uid = prop.value
        elif prop.name == "SUMMARY":
            summary = prop.value
        elif prop.name == "LOCATION":
            location = prop.value
        elif prop.name == "DESCRIPTION":
            description = prop.value
        elif prop.name == "DTSTART":
            start = parse_datetime(prop.value, tz)
        elif prop.name == "DTEND":
            end = parse_datetime(prop.value, tz)
        elif prop.name == "DURATION":
            duration = parse_duration(prop.value)
        elif prop.name == "X-ALT-DESC":
            if _is_html(prop):
                description_html = prop.value
        elif prop.name in ("STATUS", "RRULE"):
            # recurrence and status are stored with the file, not evaluated
            pass

    if start is None:
        raise MissingField("dtstart")
    if end is None:
        if duration is None:
            raise MissingField("dtend")
        try:
            end = start + duration
        except OverflowError as e:
            raise InvalidTimestamp(start.isoformat(), "end is out of range") from e

    return CalendarEvent(
        uid=uid or "",
        summary=summary or "",
        description=description or "",
        description_html=description_html,
        start=start,
        end=end,
        duration=duration,
        location=location or "",
    )


def parse_calendar(text: str, tz=None) -> Calendar:
    """
    Parse the first VCALENDAR in `text`.

    Raises a CalendarParseError subclass when the document is not usable;
    nothing is returned partially.
    """
    calendars = [c for c in read_components(text) if c.name == "VCALENDAR"]
    if not calendars:
        raise NoCalendarFound()
    cal = calendars[0]

    name = ""
    for prop in cal.properties:
        if prop.name == "NAME":
            name = prop.value

    events = [parse_event(child, tz) for child in cal.children if child.name == "VEVENT"]
    logger.debug(f"Parsed calendar {name!r} with {len(events)} event(s)")
    return Calendar(name=name, events=events)
