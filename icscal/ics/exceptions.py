"""ICS-specific exceptions for error handling."""

from typing import Optional


class ICSError(Exception):
    """Base exception for ICS-related errors."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ICSRetrievalError(ICSError):
    """Exception raised when ICS text cannot be read from a path or URL."""


class ICSNetworkError(ICSRetrievalError):
    """Exception raised for network-related ICS errors."""


class ICSAuthError(ICSRetrievalError):
    """Exception raised when ICS authentication fails."""


class ICSTimeoutError(ICSRetrievalError):
    """Exception raised when ICS request times out."""


class ICSParseError(ICSError):
    """Exception raised when ICS content cannot be parsed."""


class MalformedTimestampError(ICSParseError):
    """Raised when a timestamp property holds a value in no known format."""

    def __init__(self, token: str, property_name: str = ""):
        owner = property_name or "<unknown>"
        super().__init__(f"Malformed timestamp {token!r} in property {owner}")
        self.token = token
        self.property_name = property_name


class MissingCalendarError(ICSParseError):
    """Raised when a document contains no BEGIN:VCALENDAR block."""


class ICSContentTooLargeError(ICSParseError):
    """Raised when ICS content exceeds size limits."""


class DuplicateEventError(ICSParseError):
    """Raised when two events share a UID and duplicates are not allowed."""

    def __init__(self, imported_id: str):
        super().__init__(f"Duplicate event UID: {imported_id}")
        self.imported_id = imported_id
