"""Data models for parsed ICS calendars and their remote sources."""

import base64
from datetime import date, datetime
from datetime import timezone as dt_timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .datetime_utils import as_instant, to_calendar_date
from .index import CalendarIndex, IndexOptions, build_index


class Geo(BaseModel):
    """Event geolocation, kept exactly as written in the document."""

    latitude: str = Field(..., description="Latitude as its source decimal string")
    longitude: str = Field(..., description="Longitude as its source decimal string")

    model_config = ConfigDict(frozen=True)


class Attendee(BaseModel):
    """Calendar event attendee."""

    name: str = Field(default="", description="Attendee common name (CN)")
    email: str = Field(default="", description="Attendee email address")
    status: str = Field(default="", description="Participation status (PARTSTAT)")
    role: str = Field(default="", description="Participation role (ROLE)")

    model_config = ConfigDict(frozen=True)


class Organizer(BaseModel):
    """Calendar event organizer."""

    name: str = Field(default="", description="Organizer common name (CN)")
    email: str = Field(default="", description="Organizer email address")

    model_config = ConfigDict(frozen=True)


class Event(BaseModel):
    """Calendar event as read from a VEVENT block."""

    # Identity
    id: str = Field(..., description="Stable digest of UID and start")
    imported_id: str = Field(default="", description="UID from the source document")

    # Time information
    start: Optional[datetime] = Field(default=None, description="Event start (DTSTART)")
    end: Optional[datetime] = Field(default=None, description="Event end (DTEND)")
    whole_day: bool = Field(default=False, description="DTSTART was a date-only value")
    created: Optional[datetime] = Field(default=None, description="Creation time")
    last_modified: Optional[datetime] = Field(default=None, description="Last modification time")

    # Descriptive properties
    summary: str = Field(default="", description="Event title")
    description: str = Field(default="", description="Event description, escapes left as written")
    location: str = Field(default="", description="Event location")
    geo: Optional[Geo] = Field(default=None, description="Event geolocation")
    url: str = Field(default="", description="Event URL")

    # Scheduling metadata
    sequence: int = Field(default=0, description="Revision counter (SEQUENCE)")
    status: str = Field(default="", description="Status token, e.g. CONFIRMED")
    event_class: str = Field(default="", description="Access class (CLASS)")
    rrule: str = Field(default="", description="Recurrence rule, kept opaque")

    # People
    attendees: Tuple[Attendee, ...] = Field(
        default_factory=tuple, description="Attendees in order"
    )
    organizer: Optional[Organizer] = Field(default=None, description="Event organizer")

    model_config = ConfigDict(frozen=True)

    @property
    def is_recurring(self) -> bool:
        return bool(self.rrule)


class Calendar(BaseModel):
    """A parsed VCALENDAR block with its events and derived indices."""

    name: str = Field(default="", description="Calendar name (X-WR-CALNAME)")
    description: str = Field(default="", description="Calendar description (X-WR-CALDESC)")
    version: float = Field(default=0.0, description="Format version (VERSION)")
    timezone: Optional[str] = Field(default=None, description="Declared zone (X-WR-TIMEZONE)")
    prodid: Optional[str] = Field(default=None, description="Producer identifier (PRODID)")
    source: Optional[str] = Field(default=None, description="Path or URL the text came from")

    index_options: IndexOptions = Field(
        default_factory=IndexOptions, exclude=True, repr=False
    )

    _events: Tuple[Event, ...] = PrivateAttr(default_factory=tuple)
    _index: CalendarIndex = PrivateAttr(default_factory=CalendarIndex.empty)

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_events(
        cls,
        events: Sequence[Event],
        index_options: Optional[IndexOptions] = None,
        **metadata: Any,
    ) -> "Calendar":
        """Create a calendar holding ``events`` with both indices built once.

        Args:
            events: Events in document order
            index_options: Zone, duplicate policy and span cap, defaults when omitted
            **metadata: Calendar fields such as ``name`` or ``version``

        Returns:
            Read-only calendar

        Raises:
            DuplicateEventError: If a UID repeats and the policy is ``error``
        """
        options = index_options or IndexOptions()
        calendar = cls(index_options=options, **metadata)
        calendar._events = tuple(events)
        calendar._index = build_index(calendar._events, options)
        return calendar

    @property
    def events(self) -> Tuple[Event, ...]:
        """Events in document order."""
        return self._events

    def event_by_imported_id(self, imported_id: str) -> Optional[Event]:
        """Look up an event by its document UID.

        Returns:
            The matching event, or None when no event carries that UID
        """
        return self._index.by_id.get(imported_id)

    def events_by_date(self, day: Union[date, datetime]) -> Optional[List[Event]]:
        """Events whose span covers the given calendar date.

        Args:
            day: Date to query; aware datetimes are first moved into the index zone

        Returns:
            Events in document order, or None when no event covers that date
        """
        key = to_calendar_date(day, self.index_options.zone)
        events = self._index.by_date.get(key)
        return list(events) if events else None

    def events_by_dates(self) -> Dict[date, List[Event]]:
        """Copy of the complete date index."""
        return {day: list(events) for day, events in self._index.by_date.items()}

    def upcoming_events(self, limit: int, now: Optional[datetime] = None) -> List[Event]:
        """Events starting at or after ``now``, soonest first.

        Args:
            limit: Maximum number of events to return
            now: Reference point; defaults to the current time, naive values are
                read in the index zone
        """
        if limit <= 0:
            return []

        reference = as_instant(now or datetime.now(dt_timezone.utc), self.index_options.zone)
        upcoming = [e for e in self._events if e.start is not None and e.start >= reference]
        upcoming.sort(key=lambda e: e.start)  # type: ignore[arg-type, return-value]
        return upcoming[:limit]


class AuthType(str, Enum):
    """Supported authentication types for ICS sources."""

    NONE = "none"
    BASIC = "basic"
    BEARER = "bearer"


class ICSAuth(BaseModel):
    """Authentication configuration for ICS sources."""

    type: AuthType = AuthType.NONE
    username: Optional[str] = None
    password: Optional[str] = None
    bearer_token: Optional[str] = None

    def get_headers(self) -> Dict[str, str]:
        """Get HTTP headers for authentication."""
        headers = {}

        if self.type == AuthType.BASIC and self.username and self.password:
            credentials = f"{self.username}:{self.password}"
            encoded = base64.b64encode(credentials.encode()).decode()
            headers["Authorization"] = f"Basic {encoded}"

        elif self.type == AuthType.BEARER and self.bearer_token:
            headers["Authorization"] = f"Bearer {self.bearer_token}"

        return headers


class ICSSource(BaseModel):
    """Remote location of an ICS document."""

    url: str = Field(..., description="ICS calendar URL")
    auth: ICSAuth = Field(default_factory=ICSAuth, description="Authentication configuration")
    timeout: Optional[int] = Field(
        default=None, description="HTTP timeout in seconds, settings value when unset"
    )
    custom_headers: Dict[str, str] = Field(default_factory=dict, description="Custom HTTP headers")

    model_config = ConfigDict(use_enum_values=True)


class ICSResponse(BaseModel):
    """Successful download of an ICS document."""

    content: str
    status_code: int
    url: str = Field(..., description="Final URL after redirects")
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def content_length(self) -> int:
        """Content length in bytes."""
        return len(self.content.encode("utf-8"))
