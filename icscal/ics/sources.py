"""Loading calendars from local paths and http(s) URLs."""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

from .exceptions import ICSRetrievalError
from .fetcher import ICSFetcher
from .models import Calendar, ICSSource
from .parser import Parser

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https")


def is_remote_location(location: Union[str, Path]) -> bool:
    """Whether a location names an http(s) URL rather than a file."""
    if isinstance(location, Path):
        return False
    return urlparse(location).scheme.lower() in REMOTE_SCHEMES


def read_local_document(path: Path) -> str:
    """Read a local ICS file as UTF-8 text.

    Raises:
        ICSRetrievalError: If the file is missing or unreadable
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ICSRetrievalError(f"ICS file not found: {path}", 404) from e
    except (OSError, UnicodeDecodeError) as e:
        raise ICSRetrievalError(f"Cannot read ICS file {path}: {e}") from e


async def fetch_remote_document(parser: Parser, url: str, fetcher: Optional[ICSFetcher]) -> str:
    """Download an ICS document, opening a short-lived fetcher when none is given."""
    source = ICSSource(url=url)
    if fetcher is not None:
        response = await fetcher.fetch_ics(source)
    else:
        async with ICSFetcher(parser.settings) as owned:
            response = await owned.fetch_ics(source)
    return response.content


async def load_from_location(
    parser: Parser,
    location: Union[str, Path],
    fetcher: Optional[ICSFetcher] = None,
) -> Calendar:
    """Retrieve a document from a path or URL and load it into ``parser``.

    Retrieval failures are recorded in ``parser.errors`` just like parse
    failures, and in both cases no calendar is appended.

    Args:
        parser: Parser that receives the calendar
        location: Local file path or http(s) URL
        fetcher: Fetcher to reuse for remote locations

    Returns:
        The newly loaded Calendar

    Raises:
        ICSRetrievalError: If the text cannot be read or downloaded
        ICSParseError: If the text cannot be parsed
    """
    source = str(location)
    logger.debug(f"Loading calendar from {source}")

    try:
        if is_remote_location(location):
            content = await fetch_remote_document(parser, source, fetcher)
        else:
            content = read_local_document(Path(location))
    except ICSRetrievalError as e:
        logger.error(f"Failed to retrieve calendar from {source}: {e}")
        parser.record_error(e)
        raise

    return parser.load(content, source=source)
