"""
Selection and ordering of the headers shown above a message body.
"""

from __future__ import annotations

import logging
import re
from email.errors import HeaderParseError
from email.header import decode_header, make_header
from typing import Iterable

from ...common.config import ViewerSettings

logger = logging.getLogger(__name__)

Header = tuple[str, str]

UNFOLDED_HEADERS = frozenset({"subject", "from", "to", "cc"})

_FOLD_RE = re.compile(r"\r?\n[ \t]*")


def unfold_header(value: str) -> str:
    """Join a folded header value into one line."""
    return _FOLD_RE.sub(" ", value).strip()


def decode_header_value(value: str) -> str:
    """Decode RFC 2047 encoded words in a header value.

    Values that cannot be decoded are returned unchanged.
    """
    try:
        return str(make_header(decode_header(value)))
    except (HeaderParseError, LookupError, UnicodeDecodeError) as e:
        logger.debug(f"Leaving undecodable header as-is: {e}")
        return value


def filter_headers(headers: Iterable[Header], settings: ViewerSettings) -> list[Header]:
    """Pick the headers to display, in display order.

    Args:
        headers: (name, value) pairs in message order.
        settings: Viewer settings with the display header list.

    Returns:
        (name, value) pairs to show. Subject, From, To and Cc values
        are unfolded.
    """
    remaining = list(headers)

    if settings.show_all_headers:
        return remaining

    if not settings.display_header:
        return []

    shown: list[Header] = []
    for prop in settings.display_headers:
        wanted = prop.name.lower()
        matched = [header for header in remaining if header[0].lower() == wanted]
        if not matched:
            continue
        remaining = [header for header in remaining if header[0].lower() != wanted]
        if not prop.hidden:
            shown.extend(matched)

    if settings.show_other_header:
        shown.extend(remaining)

    return [_prepare(name, value) for name, value in shown]


def _prepare(name: str, value: str) -> Header:
    if name.lower() in UNFOLDED_HEADERS:
        value = unfold_header(value)
    return name, value
