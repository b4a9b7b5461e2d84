"""
Registry of the links shown in the message text view.

Every clickable part written to the view is recorded here with its
offsets in the view's buffer. The registry belongs to the displayed
document and is emptied whenever a new message replaces it.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Iterator, Optional

from ...common.exceptions import ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegisteredLink:
    """A link committed to the buffer, in buffer offsets."""

    uri: str
    start: int
    end: int

    def contains(self, offset: int) -> bool:
        return self.start <= offset < self.end


class LinkRegistry:
    """Ordered collection of the links of one displayed document."""

    def __init__(self) -> None:
        self._links: list[RegisteredLink] = []
        self._lock = threading.Lock()

    def append(self, uri: str, start: int, end: int) -> RegisteredLink:
        """Record a link.

        Args:
            uri: Link target.
            start: Buffer offset of the first character of the link.
            end: Buffer offset just past the link.

        Returns:
            The recorded link.

        Raises:
            ValidationError: If end is before start.
        """
        if end < start:
            raise ValidationError("end", end, f"link ends before it starts ({start})")

        link = RegisteredLink(uri=uri, start=start, end=end)
        with self._lock:
            self._links.append(link)
        logger.debug(f"Registered link {start}-{end}: {uri}")
        return link

    def clear(self) -> None:
        with self._lock:
            self._links = []

    def lookup(self, start: int, end: int) -> Optional[RegisteredLink]:
        """Find the link registered for exactly this offset range."""
        for link in self.links():
            if link.start == start and link.end == end:
                return link
        return None

    def links(self) -> list[RegisteredLink]:
        """Return a snapshot of the registered links."""
        with self._lock:
            return list(self._links)

    def __len__(self) -> int:
        with self._lock:
            return len(self._links)

    def __iter__(self) -> Iterator[RegisteredLink]:
        return iter(self.links())
