"""Date-time normalization for ICS property values.

Every timestamp value found in a document goes through ``parse_ics_datetime``,
which accepts the compact iCalendar encodings as well as a human-readable
``YYYY-MM-DD HH:MM:SS`` form. Values without a zone designator are placed in a
single default zone (UTC unless configured otherwise), so a compact UTC value
and the readable form of the same wall-clock time resolve to the same instant.
"""

import logging
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Optional, Union

from .exceptions import MalformedTimestampError

logger = logging.getLogger(__name__)

_COMPACT_DATETIME = re.compile(
    r"^(?P<y>\d{4})(?P<m>\d{2})(?P<d>\d{2})"
    r"T(?P<H>\d{2})(?P<M>\d{2})(?P<S>\d{2})(?P<zone>Z|[+-]\d{4})?$"
)
_COMPACT_DATE = re.compile(r"^(?P<y>\d{4})(?P<m>\d{2})(?P<d>\d{2})$")
_READABLE_DATETIME = re.compile(
    r"^(?P<y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})[ T]"
    r"(?P<H>\d{2}):(?P<M>\d{2})(?::(?P<S>\d{2}))?(?P<zone>Z|[+-]\d{2}:?\d{2})?$"
)
_READABLE_DATE = re.compile(r"^(?P<y>\d{4})-(?P<m>\d{2})-(?P<d>\d{2})$")
_OFFSET = re.compile(r"^(?P<sign>[+-])(?P<hours>\d{2}):?(?P<minutes>\d{2})$")
_DURATION = re.compile(
    r"^(?P<sign>[+-])?P(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)

DateOrDateTime = Union[date, datetime]


def parse_utc_offset(text: str) -> tzinfo:
    """Turn ``Z``, ``UTC`` or a literal ``+HH:MM`` / ``-HHMM`` offset into a tzinfo.

    Args:
        text: Offset designator

    Returns:
        Fixed-offset timezone

    Raises:
        ValueError: If the text is not a literal offset
    """
    cleaned = text.strip()
    if cleaned.upper() in ("Z", "UTC"):
        return timezone.utc

    match = _OFFSET.match(cleaned)
    if not match:
        raise ValueError(f"Not a UTC offset: {text!r}")

    hours = int(match.group("hours"))
    minutes = int(match.group("minutes"))
    if hours > 23 or minutes > 59:
        raise ValueError(f"UTC offset out of range: {text!r}")

    delta = timedelta(hours=hours, minutes=minutes)
    if match.group("sign") == "-":
        delta = -delta
    return timezone(delta) if delta else timezone.utc


def parse_ics_datetime(
    token: str,
    value_type: Optional[str] = None,
    property_name: str = "",
    default_tz: tzinfo = timezone.utc,
) -> DateOrDateTime:
    """Normalize a timestamp token into an aware datetime or a calendar date.

    Args:
        token: Raw property value, e.g. ``20140616T060000Z`` or ``2014-06-16 06:00:00``
        value_type: The property's VALUE parameter, if any; ``DATE`` forces a date
        property_name: Owning property, used in the error message
        default_tz: Zone applied to values carrying no zone designator

    Returns:
        Timezone-aware datetime, or a date for date-only values

    Raises:
        MalformedTimestampError: If the token matches none of the known encodings
    """
    cleaned = token.strip()

    try:
        result = _match_datetime(cleaned, default_tz)
    except ValueError as e:
        # Shape matched but a component was out of range (month 13 and the like)
        logger.debug(f"Rejected {property_name} value {cleaned!r}: {e}")
        raise MalformedTimestampError(cleaned, property_name) from e

    if result is None:
        raise MalformedTimestampError(cleaned, property_name)

    if value_type and value_type.upper() == "DATE" and isinstance(result, datetime):
        return result.date()
    return result


def _match_datetime(cleaned: str, default_tz: tzinfo) -> Optional[DateOrDateTime]:
    for pattern in (_COMPACT_DATETIME, _READABLE_DATETIME):
        match = pattern.match(cleaned)
        if match:
            zone = match.group("zone")
            tz = parse_utc_offset(zone) if zone else default_tz
            return datetime(
                int(match.group("y")),
                int(match.group("m")),
                int(match.group("d")),
                int(match.group("H")),
                int(match.group("M")),
                int(match.group("S") or 0),
                tzinfo=tz,
            )

    for pattern in (_COMPACT_DATE, _READABLE_DATE):
        match = pattern.match(cleaned)
        if match:
            return date(int(match.group("y")), int(match.group("m")), int(match.group("d")))

    return None


def as_instant(value: DateOrDateTime, default_tz: tzinfo = timezone.utc) -> datetime:
    """Place a normalized value on the timeline.

    Dates become midnight in ``default_tz``; naive datetimes get ``default_tz``.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=default_tz)
    return datetime.combine(value, time.min, tzinfo=default_tz)


def to_calendar_date(value: DateOrDateTime, tz: tzinfo = timezone.utc) -> date:
    """Reduce a date or datetime to the calendar date it falls on in ``tz``.

    Naive datetimes keep their wall-clock date.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.date()
        return value.astimezone(tz).date()
    return value


def parse_duration(token: str) -> Optional[timedelta]:
    """Decode an iCalendar DURATION value such as ``PT1H30M`` or ``-P1W``.

    Returns:
        The duration, or None when the token is not a duration or is out of range
    """
    match = _DURATION.match(token.strip().upper())
    if not match:
        return None

    parts = {
        name: int(value)
        for name, value in match.groupdict().items()
        if name != "sign" and value is not None
    }
    if not parts:
        return None

    try:
        delta = timedelta(**parts)
    except OverflowError:
        logger.debug(f"DURATION {token!r} out of range")
        return None
    return -delta if match.group("sign") == "-" else delta
