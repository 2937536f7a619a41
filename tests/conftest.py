"""Shared test fixtures."""

from pathlib import Path
from typing import Callable, Iterator

import pytest

from icscal.config.settings import ICSCalSettings, get_settings
from icscal.ics.parser import Parser

CALENDARS_DIR = Path(__file__).parent / "fixtures" / "calendars"

MINIMAL_CALENDAR = """BEGIN:VCALENDAR
VERSION:2.0
X-WR-CALNAME:Minimal
BEGIN:VEVENT
UID:minimal-1@example.com
DTSTART:20240305T090000Z
DTEND:20240305T100000Z
SUMMARY:Standup
END:VEVENT
END:VCALENDAR
"""


@pytest.fixture
def calendars_dir() -> Path:
    """Directory holding the sample ICS documents."""
    return CALENDARS_DIR


@pytest.fixture
def read_calendar() -> Callable[[str], str]:
    """Return a helper reading a sample document by file name."""

    def _read(name: str) -> str:
        return (CALENDARS_DIR / name).read_text(encoding="utf-8")

    return _read


@pytest.fixture
def test_settings() -> ICSCalSettings:
    """Settings isolated from the environment and any .env file."""
    return ICSCalSettings(
        _env_file=None,
        app_name="icscal-test",
        request_timeout=5,
        max_retries=0,
        retry_backoff_factor=0.0,
    )


@pytest.fixture
def parser(test_settings: ICSCalSettings) -> Parser:
    """Fresh parser with test settings."""
    return Parser(test_settings)


@pytest.fixture
def minimal_calendar() -> str:
    """Smallest document with one event."""
    return MINIMAL_CALENDAR


@pytest.fixture(autouse=True)
def clear_settings_cache() -> Iterator[None]:
    """Keep the process-wide settings cache from leaking between tests."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
