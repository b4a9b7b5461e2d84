"""Version information for mailview."""

__version__ = "0.1.0"
__version_info__ = tuple(int(x) for x in __version__.split("."))

# Release information
__title__ = "mailview"
__description__ = "Message text view with clickable links and link spoofing checks"
__author__ = "mailview developers"
__license__ = "MIT"
__copyright__ = "Copyright 2025-2026 mailview developers"


def get_version() -> str:
    """Return the current version string."""
    return __version__


def get_version_info() -> tuple[int, ...]:
    """Return the version as a tuple of integers."""
    return __version_info__
