"""ICS calendar parsing, indexing and retrieval."""

from .exceptions import (
    DuplicateEventError,
    ICSAuthError,
    ICSContentTooLargeError,
    ICSError,
    ICSNetworkError,
    ICSParseError,
    ICSRetrievalError,
    ICSTimeoutError,
    MalformedTimestampError,
    MissingCalendarError,
)
from .fetcher import ICSFetcher
from .models import (
    Attendee,
    AuthType,
    Calendar,
    Event,
    Geo,
    ICSAuth,
    ICSResponse,
    ICSSource,
    Organizer,
)
from .parser import Parser
from .sources import load_from_location

__all__ = [
    "Attendee",
    "AuthType",
    "Calendar",
    "DuplicateEventError",
    "Event",
    "Geo",
    "ICSAuth",
    "ICSAuthError",
    "ICSContentTooLargeError",
    "ICSError",
    "ICSFetcher",
    "ICSNetworkError",
    "ICSParseError",
    "ICSResponse",
    "ICSRetrievalError",
    "ICSSource",
    "ICSTimeoutError",
    "MalformedTimestampError",
    "MissingCalendarError",
    "Organizer",
    "Parser",
    "load_from_location",
]
