"""Derived lookup indices for a calendar's events."""

import logging
from datetime import date, timedelta, timezone, tzinfo
from typing import TYPE_CHECKING, Dict, List, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field

from .datetime_utils import to_calendar_date
from .exceptions import DuplicateEventError

if TYPE_CHECKING:
    from .models import Event

logger = logging.getLogger(__name__)

DuplicatePolicy = Literal["last", "first", "error"]


class IndexOptions(BaseModel):
    """How a calendar derives its indices from its events."""

    zone: tzinfo = Field(
        default=timezone.utc, description="Zone in which event spans are cut into dates"
    )
    duplicate_policy: DuplicatePolicy = Field(
        default="last", description="Which event wins when two share a UID"
    )
    max_span_days: int = Field(
        default=3660, ge=1, description="Cap on dates indexed for one event"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)


class CalendarIndex:
    """Read-only pair of mappings derived from an event sequence."""

    def __init__(
        self,
        by_id: Dict[str, "Event"],
        by_date: Dict[date, List["Event"]],
    ) -> None:
        self.by_id = by_id
        self.by_date = by_date

    @classmethod
    def empty(cls) -> "CalendarIndex":
        return cls({}, {})


def covered_dates(event: "Event", options: IndexOptions) -> List[date]:
    """List every calendar date an event touches, start and end inclusive.

    An event ending exactly at midnight still covers the date of that midnight.

    Args:
        event: Event to expand
        options: Index options supplying the zone and span cap

    Returns:
        Dates in ascending order, empty for events without a start
    """
    if event.start is None:
        return []

    first = to_calendar_date(event.start, options.zone)
    last = to_calendar_date(event.end or event.start, options.zone)
    if last < first:
        last = first

    span = (last - first).days + 1
    if span > options.max_span_days:
        logger.warning(
            f"Event {event.imported_id or event.id} spans {span} days, "
            f"indexing only the first {options.max_span_days}"
        )
        span = options.max_span_days

    return [first + timedelta(days=offset) for offset in range(span)]


def build_index(events: Sequence["Event"], options: IndexOptions) -> CalendarIndex:
    """Rebuild both indices from scratch.

    Args:
        events: The calendar's events in document order
        options: Zone, duplicate policy and span cap

    Returns:
        Fresh index; prior index state is never consulted

    Raises:
        DuplicateEventError: If a UID repeats and the policy is ``error``
    """
    by_id: Dict[str, "Event"] = {}
    by_date: Dict[date, List["Event"]] = {}

    for event in events:
        if event.imported_id:
            if event.imported_id in by_id:
                if options.duplicate_policy == "error":
                    raise DuplicateEventError(event.imported_id)
                if options.duplicate_policy == "last":
                    by_id[event.imported_id] = event
            else:
                by_id[event.imported_id] = event

        for day in covered_dates(event, options):
            by_date.setdefault(day, []).append(event)

    return CalendarIndex(by_id, by_date)
