"""Block-structured ICS parser and the Parser facade that owns loaded calendars."""

import hashlib
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone, tzinfo
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple, Union

from ..config.settings import ICSCalSettings, get_settings
from ..utils.logging import VERBOSE
from .datetime_utils import as_instant, parse_duration, parse_ics_datetime
from .exceptions import (
    ICSContentTooLargeError,
    ICSError,
    ICSParseError,
    MalformedTimestampError,
    MissingCalendarError,
)
from .index import IndexOptions
from .lexer import ContentLine, split_property, unfold_lines
from .models import Attendee, Calendar, Event, Geo, Organizer

logger = logging.getLogger(__name__)

CALENDAR_BLOCK = "VCALENDAR"
EVENT_BLOCK = "VEVENT"

# Size validation constants
MAX_ICS_SIZE_WARNING = 10 * 1024 * 1024  # 10MB warning threshold


@dataclass
class CalendarFrame:
    """Open VCALENDAR block."""

    fields: Dict[str, Any] = field(default_factory=dict)
    events: List[Event] = field(default_factory=list)
    name: str = CALENDAR_BLOCK


@dataclass
class EventFrame:
    """Open VEVENT block collecting field values until END:VEVENT."""

    fields: Dict[str, Any] = field(default_factory=dict)
    attendees: List[Attendee] = field(default_factory=list)
    duration: Optional[timedelta] = None
    name: str = EVENT_BLOCK

    def build(self, zone: tzinfo) -> Event:
        """Turn the collected values into a frozen Event.

        Args:
            zone: Zone the end must stay representable in for date indexing
        """
        start: Optional[datetime] = self.fields.get("start")
        end: Optional[datetime] = self.fields.get("end")

        if end is None and start is not None:
            end = start
            if self.duration:
                try:
                    end = start + self.duration
                    end.astimezone(timezone.utc).astimezone(zone)
                except OverflowError:
                    logger.warning(
                        f"Event {self.fields.get('imported_id', '')} DURATION runs past the "
                        "supported date range, using start as end"
                    )
                    end = start

        if start is not None and end is not None and end < start:
            logger.warning(
                f"Event {self.fields.get('imported_id', '')} ends before it starts, "
                "clamping end to start"
            )
            end = start

        imported_id = self.fields.get("imported_id", "")
        digest_source = f"{imported_id}|{start.isoformat() if start else ''}"
        event_id = hashlib.sha1(digest_source.encode("utf-8")).hexdigest()

        return Event(
            **{**self.fields, "end": end},
            id=event_id,
            attendees=tuple(self.attendees),
        )


@dataclass
class SkippedFrame:
    """Any other block (VTIMEZONE, VALARM, ...) whose properties are dropped."""

    name: str


Frame = Union[CalendarFrame, EventFrame, SkippedFrame]

CalendarHandler = Callable[[Dict[str, Any], ContentLine], None]
EventHandler = Callable[[EventFrame, ContentLine, tzinfo], None]


# Calendar property handlers


def _calendar_text(attribute: str) -> CalendarHandler:
    def handler(fields: Dict[str, Any], line: ContentLine) -> None:
        fields[attribute] = line.value

    return handler


def _calendar_version(fields: Dict[str, Any], line: ContentLine) -> None:
    try:
        fields["version"] = float(line.value.strip())
    except ValueError:
        logger.debug(f"Undecodable VERSION {line.value!r} ignored")


_CALENDAR_PROPERTIES: Dict[str, CalendarHandler] = {
    "X-WR-CALNAME": _calendar_text("name"),
    "X-WR-CALDESC": _calendar_text("description"),
    "X-WR-TIMEZONE": _calendar_text("timezone"),
    "PRODID": _calendar_text("prodid"),
    "VERSION": _calendar_version,
}


# Event property handlers


def _event_text(attribute: str) -> EventHandler:
    def handler(frame: EventFrame, line: ContentLine, default_tz: tzinfo) -> None:
        frame.fields[attribute] = line.value

    return handler


def _event_timestamp(attribute: str) -> EventHandler:
    def handler(frame: EventFrame, line: ContentLine, default_tz: tzinfo) -> None:
        if line.param("TZID"):
            logger.debug(f"{line.name} TZID={line.param('TZID')} not resolved, using default zone")

        # MalformedTimestampError propagates and aborts the load
        value = parse_ics_datetime(line.value, line.param("VALUE") or None, line.name, default_tz)
        instant = as_instant(value, default_tz)
        try:
            # Must stay representable in UTC and in the zone dates are indexed in
            instant.astimezone(timezone.utc).astimezone(default_tz)
        except OverflowError as e:
            raise MalformedTimestampError(line.value.strip(), line.name) from e
        frame.fields[attribute] = instant
        if attribute == "start":
            frame.fields["whole_day"] = not isinstance(value, datetime)

    return handler


def _event_sequence(frame: EventFrame, line: ContentLine, default_tz: tzinfo) -> None:
    try:
        frame.fields["sequence"] = int(line.value.strip())
    except ValueError:
        logger.debug(f"Undecodable SEQUENCE {line.value!r}, keeping default")


def _event_duration(frame: EventFrame, line: ContentLine, default_tz: tzinfo) -> None:
    duration = parse_duration(line.value)
    if duration is None:
        logger.debug(f"Undecodable DURATION {line.value!r} ignored")
        return
    frame.duration = duration


def _event_geo(frame: EventFrame, line: ContentLine, default_tz: tzinfo) -> None:
    latitude, sep, longitude = line.value.strip().partition(";")
    try:
        float(latitude)
        float(longitude)
    except ValueError:
        logger.debug(f"Undecodable GEO {line.value!r} ignored")
        return
    if sep:
        frame.fields["geo"] = Geo(latitude=latitude.strip(), longitude=longitude.strip())


def _strip_mailto(value: str) -> str:
    value = value.strip()
    if value.lower().startswith("mailto:"):
        return value[len("mailto:") :]
    return value


def _event_attendee(frame: EventFrame, line: ContentLine, default_tz: tzinfo) -> None:
    frame.attendees.append(
        Attendee(
            name=line.param("CN"),
            email=_strip_mailto(line.value),
            status=line.param("PARTSTAT"),
            role=line.param("ROLE"),
        )
    )


def _event_organizer(frame: EventFrame, line: ContentLine, default_tz: tzinfo) -> None:
    frame.fields["organizer"] = Organizer(name=line.param("CN"), email=_strip_mailto(line.value))


_EVENT_PROPERTIES: Dict[str, EventHandler] = {
    "UID": _event_text("imported_id"),
    "SUMMARY": _event_text("summary"),
    "DESCRIPTION": _event_text("description"),
    "LOCATION": _event_text("location"),
    "STATUS": _event_text("status"),
    "CLASS": _event_text("event_class"),
    "URL": _event_text("url"),
    "RRULE": _event_text("rrule"),
    "DTSTART": _event_timestamp("start"),
    "DTEND": _event_timestamp("end"),
    "CREATED": _event_timestamp("created"),
    "LAST-MODIFIED": _event_timestamp("last_modified"),
    "SEQUENCE": _event_sequence,
    "DURATION": _event_duration,
    "GEO": _event_geo,
    "ATTENDEE": _event_attendee,
    "ORGANIZER": _event_organizer,
}


class BlockParser:
    """Single forward pass over logical lines with an explicit frame stack.

    Only the first VCALENDAR block of a document becomes a Calendar; any later
    one is skipped whole. Blocks other than VCALENDAR and VEVENT are skipped so
    that, for example, a VALARM description never overwrites its event's.
    """

    def __init__(
        self,
        index_options: IndexOptions,
        default_tz: tzinfo,
        source: Optional[str] = None,
    ) -> None:
        self.index_options = index_options
        self.default_tz = default_tz
        self.source = source
        self._stack: List[Frame] = []
        self._result: Optional[Calendar] = None
        self._calendar_seen = False

    def parse(self, lines: Iterable[str]) -> Calendar:
        """Build a Calendar from unfolded lines.

        Raises:
            MalformedTimestampError: If a timestamp property cannot be normalized
            DuplicateEventError: If UIDs repeat under the ``error`` policy
            MissingCalendarError: If no VCALENDAR block was found
        """
        for line_number, raw in enumerate(lines, start=1):
            if not raw.strip():
                continue

            content = split_property(raw)
            if content is None:
                logger.debug(f"Line {line_number} has no value separator, ignored")
                continue

            if content.name == "BEGIN":
                self._begin(content.value.strip().upper())
            elif content.name == "END":
                self._end(content.value.strip().upper())
            else:
                self._assign(content)

        while self._stack:
            frame = self._stack.pop()
            logger.warning(f"Unterminated {frame.name} block closed at end of document")
            self._close(frame)

        if self._result is None:
            raise MissingCalendarError("No BEGIN:VCALENDAR block found")
        return self._result

    def _begin(self, block: str) -> None:
        top = self._stack[-1] if self._stack else None

        if block == CALENDAR_BLOCK and top is None and not self._calendar_seen:
            self._calendar_seen = True
            self._stack.append(CalendarFrame())
            return

        if block == EVENT_BLOCK and isinstance(top, CalendarFrame):
            self._stack.append(EventFrame())
            return

        if block == CALENDAR_BLOCK:
            logger.warning("Additional VCALENDAR block skipped, one calendar per document")
        self._stack.append(SkippedFrame(block))

    def _end(self, block: str) -> None:
        if not self._stack or self._stack[-1].name != block:
            open_block = self._stack[-1].name if self._stack else "none"
            logger.warning(f"Unbalanced END:{block} ignored (open block: {open_block})")
            return
        self._close(self._stack.pop())

    def _close(self, frame: Frame) -> None:
        if isinstance(frame, EventFrame):
            owner = self._stack[-1]
            if isinstance(owner, CalendarFrame):
                owner.events.append(frame.build(self.index_options.zone))
        elif isinstance(frame, CalendarFrame):
            self._result = Calendar.from_events(
                frame.events,
                index_options=self.index_options,
                source=self.source,
                **frame.fields,
            )

    def _assign(self, content: ContentLine) -> None:
        if not self._stack:
            logger.debug(f"Property {content.name} outside any block ignored")
            return

        top = self._stack[-1]
        if isinstance(top, CalendarFrame):
            calendar_handler = _CALENDAR_PROPERTIES.get(content.name)
            if calendar_handler:
                calendar_handler(top.fields, content)
        elif isinstance(top, EventFrame):
            event_handler = _EVENT_PROPERTIES.get(content.name)
            if event_handler:
                event_handler(top, content, self.default_tz)


class Parser:
    """Owns the calendars loaded so far and exposes queries over them."""

    def __init__(self, settings: Optional[ICSCalSettings] = None) -> None:
        """Initialize parser.

        Args:
            settings: Application settings, process-wide settings when omitted
        """
        self.settings = settings or get_settings()
        self._calendars: List[Calendar] = []
        self._errors: List[ICSError] = []
        logger.debug("ICS parser initialized")

    @property
    def calendars(self) -> Tuple[Calendar, ...]:
        """Loaded calendars in load order."""
        return tuple(self._calendars)

    @property
    def errors(self) -> Tuple[ICSError, ...]:
        """Errors of failed loads, oldest first."""
        return tuple(self._errors)

    def record_error(self, error: ICSError) -> None:
        """Remember a failure that happened before text reached ``load``."""
        self._errors.append(error)

    def _index_options(self) -> IndexOptions:
        return IndexOptions(
            zone=self.settings.default_tzinfo,
            duplicate_policy=self.settings.duplicate_id_policy,
            max_span_days=self.settings.max_event_span_days,
        )

    def _validate_ics_size(self, ics_content: str) -> None:
        """Validate ICS content size before processing.

        Raises:
            ICSContentTooLargeError: If content exceeds maximum size limit
        """
        size_bytes = len(ics_content.encode("utf-8"))
        limit = self.settings.max_content_bytes

        if size_bytes > limit:
            raise ICSContentTooLargeError(
                f"ICS content too large: {size_bytes} bytes exceeds {limit} limit"
            )

        if size_bytes > MAX_ICS_SIZE_WARNING:
            logger.warning(
                f"Large ICS content detected: {size_bytes} bytes "
                f"(threshold: {MAX_ICS_SIZE_WARNING})"
            )

    def load(self, ics_content: str, source: Optional[str] = None) -> Calendar:
        """Parse one document and append its calendar.

        On failure nothing is appended; the partially built calendar is dropped
        and the error is recorded in ``errors`` before being re-raised.

        Args:
            ics_content: Raw ICS text
            source: Optional path or URL the text came from

        Returns:
            The newly appended Calendar

        Raises:
            ICSParseError: If the document cannot be turned into a calendar
        """
        origin = f" from {source}" if source else ""

        try:
            self._validate_ics_size(ics_content)
            block_parser = BlockParser(
                self._index_options(), self.settings.default_tzinfo, source=source
            )
            calendar = block_parser.parse(unfold_lines(ics_content))
        except ICSParseError as e:
            logger.error(f"Failed to load calendar{origin}: {e}")
            self._errors.append(e)
            raise

        self._calendars.append(calendar)
        logger.log(
            VERBOSE,
            f"Loaded calendar {calendar.name!r}{origin}: {len(calendar.events)} events",
        )
        return calendar
