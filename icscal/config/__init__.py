"""Configuration package."""

from .settings import ICSCalSettings, LoggingSettings, get_settings

__all__ = [
    "ICSCalSettings",
    "LoggingSettings",
    "get_settings",
]
