"""icscal - ICS calendar parser with per-date and per-UID event lookup."""

__version__ = "1.0.0"
__description__ = "ICS calendar parser with per-date and per-UID event lookup"

# Package metadata
__all__ = [
    "__description__",
    "__version__",
]
