"""
Link spoofing check.

A link is suspicious when the text shown for it looks like a URI but
points somewhere else than the link's real target, for example an
anchor reading "http://bank.example/" whose href is
"http://evil.example/". Such links must be confirmed by the user
before they are opened.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from urllib.parse import urlsplit

from ...common.exceptions import UriParseError

logger = logging.getLogger(__name__)

URI_PREFIXES = ("http://", "https://", "ftp://", "www.")


class ConfirmResponse(Enum):
    """Answers to the "open it anyway?" question."""

    YES = "yes"
    NO = "no"


def is_uri_string(value: str) -> bool:
    """Check whether a string looks like a web or FTP URI."""
    return value.lower().startswith(URI_PREFIXES)


def get_uri_path(uri: str) -> str:
    """Return the authority and path of a URI, without its scheme.

    The host is compared case-insensitively and the fragment is ignored;
    the query is kept. Bare "www." URIs are treated as http.

    Args:
        uri: A string for which is_uri_string() is true.

    Returns:
        "authority/path?query".

    Raises:
        UriParseError: If the URI cannot be split or has no authority.
    """
    candidate = uri
    if candidate.lower().startswith("www."):
        candidate = "http://" + candidate

    try:
        parts = urlsplit(candidate)
    except ValueError as e:
        raise UriParseError(uri, str(e))

    if not parts.netloc:
        raise UriParseError(uri, "missing authority")

    result = parts.netloc.lower() + parts.path
    if parts.query:
        result += "?" + parts.query
    return result


@dataclass(frozen=True)
class TrustVerdict:
    """Outcome of comparing a link's target with its visible text."""

    trusted: bool
    uri: str
    visible_text: str
    reason: Optional[str] = None

    @property
    def prompt_message(self) -> str:
        """Text for the confirmation prompt shown for untrusted links."""
        return (
            f"The real URL ({self.uri}) is different from\n"
            f"the apparent URL ({self.visible_text}).\n"
            "Open it anyway?"
        )


def verify_uri(uri: str, visible_text: Optional[str]) -> TrustVerdict:
    """Decide whether a link can be opened without asking the user.

    Args:
        uri: The link's real target.
        visible_text: The text currently displayed for the link.

    Returns:
        A TrustVerdict. Links whose visible text is plain prose, or
        whose visible URI has the same authority and path as the target,
        are trusted. Anything that cannot be compared is not.
    """
    if not is_uri_string(uri) or visible_text is None:
        return TrustVerdict(trusted=True, uri=uri, visible_text=visible_text or "")

    if visible_text == uri:
        return TrustVerdict(trusted=True, uri=uri, visible_text=visible_text)

    if not is_uri_string(visible_text):
        return TrustVerdict(trusted=True, uri=uri, visible_text=visible_text)

    try:
        uri_path = get_uri_path(uri)
        visible_path = get_uri_path(visible_text)
    except UriParseError as e:
        logger.warning(f"Treating link as untrusted: {e}")
        return TrustVerdict(
            trusted=False,
            uri=uri,
            visible_text=visible_text,
            reason=e.message,
        )

    if uri_path != visible_path:
        logger.warning(f"Link text '{visible_text}' does not match target '{uri}'")
        return TrustVerdict(
            trusted=False,
            uri=uri,
            visible_text=visible_text,
            reason="visible URI differs from the link target",
        )

    return TrustVerdict(trusted=True, uri=uri, visible_text=visible_text)


def resolve_confirmation(response: Union[ConfirmResponse, str, None]) -> bool:
    """Map a confirmation dialog response to "open the link or not".

    Only an explicit yes proceeds. Dismissing the dialog, cancelling it
    or any unknown response means the link is not opened.
    """
    if isinstance(response, ConfirmResponse):
        return response is ConfirmResponse.YES
    return response == ConfirmResponse.YES.value


__all__ = [
    "ConfirmResponse",
    "TrustVerdict",
    "URI_PREFIXES",
    "get_uri_path",
    "is_uri_string",
    "resolve_confirmation",
    "verify_uri",
]
