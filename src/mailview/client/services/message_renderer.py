"""
Message rendering for the text view.

MessageRenderer turns an e-mail message into tagged text held in a
TextDocument, registering every clickable part it writes. The GTK text
view copies the document into its buffer, so document offsets and
buffer offsets are the same. Keeping the document free of GTK lets the
renderer, link lookup and link activation run headless.
"""

from __future__ import annotations

import email
import logging
import re
from dataclasses import dataclass
from email.message import Message
from enum import Enum
from functools import partial
from pathlib import Path
from typing import Any, Callable, Iterable, Optional, Sequence

from ...common.config import ViewerSettings
from ...common.exceptions import InvalidMessageError
from .header_filter import decode_header_value, filter_headers
from .html_text import html_to_chunks
from .link_registry import LinkRegistry, RegisteredLink
from .link_scanner import DEFAULT_RULES, TokenRule, split_line
from .uri_opener import open_uri
from .uri_trust import TrustVerdict, resolve_confirmation, verify_uri

logger = logging.getLogger(__name__)

# Tag names shared with the GTK text view
HEADER_TAG = "header"
HEADER_TITLE_TAG = "header_title"
LINK_TAG = "link"
QUOTE_TAGS = ("quote0", "quote1", "quote2")


def get_quote_level(line: str) -> int:
    """Return the quotation depth of a line, starting at 0.

    ">", "foo>" and "_>" count as quote marks; "<foo>", "foo bar>" and
    "foo->" do not.

    Returns:
        The quote level, or -1 for an unquoted line.
    """
    first = line.find(">")
    if first < 0:
        return -1
    # skip a line if it contains a '<' before the initial '>'
    if "<" in line[:first]:
        return -1
    last = line.rfind(">")

    level = -1
    i = 0
    while i <= last:
        while i < last and line[i].isspace():
            i += 1

        if line[i] == ">":
            level += 1
        elif line[i] != "-" and not line[i].isspace():
            # any characters are allowed except '-' and space
            while (
                line[i] != "-"
                and line[i] != ">"
                and not line[i].isspace()
                and i < last
            ):
                i += 1
            if line[i] == ">":
                level += 1
            else:
                break

        i += 1

    return level


def quote_tag(level: int, recycle: bool = False) -> Optional[str]:
    """Map a quote level to one of the three quote tags."""
    if level < 0:
        return None
    if level > 2:
        level = level % 3 if recycle else 2
    return QUOTE_TAGS[level]


def _search_pattern(query: str, case_sensitive: bool) -> re.Pattern[str]:
    flags = 0 if case_sensitive else re.IGNORECASE
    return re.compile(re.escape(query), flags)


def trim_uri(uri: str, length: int = 60) -> str:
    """Shorten a URI for the status line."""
    if len(uri) <= length:
        return uri
    return uri[:length] + "..."


@dataclass(frozen=True)
class TextRun:
    """A run of document text carrying the same tags."""

    start: int
    end: int
    tags: tuple[str, ...]


class TextDocument:
    """Append-only tagged text, addressed by character offsets."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._runs: list[TextRun] = []
        self._length = 0

    @property
    def length(self) -> int:
        return self._length

    @property
    def text(self) -> str:
        if len(self._parts) > 1:
            self._parts = ["".join(self._parts)]
        return self._parts[0] if self._parts else ""

    @property
    def runs(self) -> list[TextRun]:
        return list(self._runs)

    def insert(self, text: str, *tags: Optional[str]) -> tuple[int, int]:
        """Append text with the given tags; None tags are ignored.

        Returns:
            (start, end) offsets of the inserted text.
        """
        start = self._length
        if not text:
            return start, start
        self._parts.append(text)
        self._length += len(text)
        self._runs.append(
            TextRun(start, self._length, tuple(tag for tag in tags if tag))
        )
        return start, self._length

    def get_text(self, start: int, end: int) -> str:
        return self.text[start:end]

    def tags_at(self, offset: int) -> tuple[str, ...]:
        for run in self._runs:
            if run.start <= offset < run.end:
                return run.tags
        return ()

    def tag_range_at(self, offset: int, tag: str) -> Optional[tuple[int, int]]:
        """Return the contiguous range carrying tag around offset.

        Adjacent runs that both carry the tag form one range, the same
        way a text buffer reports tag toggles.
        """
        start: Optional[int] = None
        end = 0
        for run in self._runs:
            if tag not in run.tags:
                if start is not None and start <= offset < end:
                    return start, end
                start = None
                continue
            if start is None or run.start != end:
                if start is not None and start <= offset < end:
                    return start, end
                start = run.start
            end = run.end
        if start is not None and start <= offset < end:
            return start, end
        return None

    def find(self, query: str, start: int = 0, case_sensitive: bool = False) -> Optional[int]:
        """Find query at or after start.

        Returns:
            Offset of the match, or None.
        """
        if not query:
            return None
        match = _search_pattern(query, case_sensitive).search(self.text, start)
        return match.start() if match else None

    def rfind(
        self, query: str, end: Optional[int] = None, case_sensitive: bool = False
    ) -> Optional[int]:
        """Find the last occurrence of query that starts before end.

        The match itself may run past end.

        Returns:
            Offset of the match, or None.
        """
        if not query:
            return None
        text = self.text
        if end is None or end > len(text):
            end = len(text)
        pattern = _search_pattern(query, case_sensitive)
        for pos in range(end - 1, -1, -1):
            if pattern.match(text, pos):
                return pos
        return None

    def clear(self) -> None:
        self._parts = []
        self._runs = []
        self._length = 0


def load_message(path: str | Path) -> Message:
    """Read and parse a message file.

    Raises:
        InvalidMessageError: If the file cannot be read.
    """
    path = Path(path)
    try:
        data = path.read_bytes()
    except OSError as e:
        raise InvalidMessageError(str(path), e.strerror or str(e))
    if not data.strip():
        raise InvalidMessageError(str(path), "file is empty")
    return email.message_from_bytes(data)


class MessageRenderer:
    """Write messages into a TextDocument and track their links."""

    def __init__(
        self,
        settings: Optional[ViewerSettings] = None,
        rules: Sequence[TokenRule] = DEFAULT_RULES,
    ) -> None:
        self.settings = settings or ViewerSettings()
        self.rules = rules
        self.document = TextDocument()
        self.registry = LinkRegistry()
        self.body_pos = 0

    @property
    def links(self) -> list[RegisteredLink]:
        return self.registry.links()

    def clear(self) -> None:
        """Forget the displayed document and all of its links."""
        self.document.clear()
        self.registry.clear()
        self.body_pos = 0

    def write_line(self, line: str, fg_tag: Optional[str] = None) -> None:
        """Write one line, colouring quotes and making links clickable.

        Args:
            line: Decoded text, normally ending with a newline.
            fg_tag: Tag for the whole line; computed from the quote
                level when not given.
        """
        if line.endswith("\r\n"):
            line = line[:-2] + "\n"

        if fg_tag is None and self.settings.enable_color and ">" in line:
            level = get_quote_level(line)
            fg_tag = quote_tag(level, self.settings.recycle_quote_colors)

        uri_tag = LINK_TAG if self.settings.enable_color else None
        self._make_clickable_parts(line, fg_tag, uri_tag)

    def write_text(self, text: str, fg_tag: Optional[str] = None) -> None:
        """Write text made of several lines."""
        for line in text.splitlines(keepends=True):
            self.write_line(line, fg_tag)

    def write_link(self, text: str, uri: str) -> Optional[RegisteredLink]:
        """Write link text whose target is known, e.g. an HTML anchor.

        Leading whitespace is written as plain text and is not part of
        the link.
        """
        if not text:
            return None
        if text.endswith("\r\n"):
            text = text[:-2] + "\n"

        stripped = text.lstrip()
        if len(stripped) < len(text):
            self.document.insert(text[:len(text) - len(stripped)])
        if not stripped:
            return None

        uri_tag = LINK_TAG if self.settings.enable_color else None
        start, end = self.document.insert(stripped, uri_tag)
        return self.registry.append(uri, start, end)

    def show_headers(self, headers: Iterable[tuple[str, str]]) -> None:
        """Write header lines; header values get clickable parts too."""
        uri_tag = LINK_TAG if self.settings.enable_color else None
        for name, value in headers:
            self.document.insert(f"{name}:", HEADER_TITLE_TAG, HEADER_TAG)
            self._make_clickable_parts(f" {value}", HEADER_TAG, uri_tag)
            self.document.insert("\n", HEADER_TAG)

    def render_message(self, message: Message) -> None:
        """Replace the document with the given message."""
        self.clear()
        self._write_header_block(message)
        self.body_pos = self.document.length

        self._render_tree(message)

        logger.debug(
            f"Rendered message: {self.document.length} characters, "
            f"{len(self.registry)} links"
        )

    def link_at(self, offset: int) -> Optional[RegisteredLink]:
        """Return the link displayed at a document offset."""
        span = self.document.tag_range_at(offset, LINK_TAG)
        if span is not None:
            link = self.registry.lookup(*span)
            if link is not None:
                return link

        # uncoloured links carry no tag, and adjacent links share one range
        for link in self.registry:
            if link.contains(offset):
                return link
        return None

    def visible_text(self, link: RegisteredLink) -> str:
        """Return the text currently displayed for a link."""
        return self.document.get_text(link.start, link.end)

    def search(self, query: str, start: int = 0, case_sensitive: bool = False) -> Optional[int]:
        return self.document.find(query, start, case_sensitive)

    def search_backward(
        self, query: str, end: Optional[int] = None, case_sensitive: bool = False
    ) -> Optional[int]:
        return self.document.rfind(query, end, case_sensitive)

    def _make_clickable_parts(
        self, line: str, fg_tag: Optional[str], uri_tag: Optional[str]
    ) -> None:
        for text, part in split_line(line, self.rules):
            if part is None:
                self.document.insert(text, fg_tag)
                continue
            start, end = self.document.insert(text, uri_tag, fg_tag)
            self.registry.append(part.uri, start, end)

    def _write_header_block(self, message: Message, separate: bool = False) -> None:
        headers = [
            (name, decode_header_value(str(value)))
            for name, value in message.items()
        ]
        shown = filter_headers(headers, self.settings)
        if not shown:
            return
        if separate and not self.document.text.endswith("\n\n"):
            self.document.insert("\n")
        self.show_headers(shown)
        self.document.insert("\n")

    def _render_tree(self, part: Message) -> None:
        """Render a MIME tree in document order.

        Only the first alternative of a multipart/alternative is shown.
        An attached message shows its headers before its own parts.
        """
        content_type = part.get_content_type()
        payload = part.get_payload()

        if content_type == "message/rfc822" and isinstance(payload, list):
            for inner in payload:
                self._write_header_block(inner, separate=True)
                self._render_tree(inner)
            return

        if part.is_multipart():
            children = payload if isinstance(payload, list) else []
            if content_type == "multipart/alternative":
                children = children[:1]
            for child in children:
                self._render_tree(child)
            return

        self._render_part(part)

    def _render_part(self, part: Message) -> None:
        if self.document.length > self.body_pos and not self.document.text.endswith("\n"):
            self.document.insert("\n")

        content_type = part.get_content_type()
        is_attachment = part.get_content_disposition() == "attachment"

        if part.get_content_maintype() != "text" or is_attachment:
            payload = part.get_payload(decode=True) or b""
            name = part.get_filename() or "unnamed"
            self.document.insert(f"[{name} ({content_type}, {len(payload)} bytes)]\n")
            return

        text = self._decode_payload(part)
        if content_type == "text/html":
            for chunk in html_to_chunks(text):
                if chunk.href:
                    self.write_link(chunk.text, chunk.href)
                else:
                    self.write_text(chunk.text)
        else:
            self.write_text(text)

    def _decode_payload(self, part: Message) -> str:
        payload = part.get_payload(decode=True)
        if payload is None:
            return ""
        if isinstance(payload, str):
            return payload

        charset = self.settings.force_charset or part.get_content_charset() or "utf-8"
        try:
            return payload.decode(charset, errors="replace")
        except LookupError:
            logger.warning(f"Unknown charset '{charset}', decoding as UTF-8")
            return payload.decode("utf-8", errors="replace")


class ActivationResult(Enum):
    """What happened when a link was activated."""

    COMPOSED = "composed"
    OPENED = "opened"
    CONFIRMING = "confirming"
    REFUSED = "refused"
    FAILED = "failed"
    NO_LINK = "no_link"


ConfirmCallback = Callable[[TrustVerdict, Callable[[Any], None]], None]


class LinkActivator:
    """Act on a clicked link.

    mailto: links start a new message. Other links are opened, after
    the user confirmed them if their visible text disagrees with their
    target. The confirm callback receives the verdict and a function to
    call with the user's answer; anything but an explicit yes leaves
    the link unopened.
    """

    def __init__(
        self,
        renderer: MessageRenderer,
        opener: Optional[Callable[[str], bool]] = None,
        compose: Optional[Callable[[str], None]] = None,
        confirm: Optional[ConfirmCallback] = None,
    ) -> None:
        self._renderer = renderer
        self._open = opener or partial(
            open_uri, command=renderer.settings.uri_command
        )
        self._compose = compose
        self._confirm = confirm

    def activate_at(self, offset: int) -> ActivationResult:
        return self.activate(self._renderer.link_at(offset))

    def activate(self, link: Optional[RegisteredLink]) -> ActivationResult:
        if link is None:
            return ActivationResult.NO_LINK

        if link.uri.lower().startswith("mailto:"):
            if self._compose is None:
                logger.warning(f"No composer available for {link.uri}")
                return ActivationResult.REFUSED
            self._compose(link.uri[len("mailto:"):])
            return ActivationResult.COMPOSED

        verdict = verify_uri(link.uri, self._renderer.visible_text(link))
        if verdict.trusted:
            return self._open_link(link.uri)

        if self._confirm is None:
            logger.warning(f"Not opening suspicious link {link.uri}")
            return ActivationResult.REFUSED

        def on_response(response: Any) -> None:
            if resolve_confirmation(response):
                logger.info(f"User chose to open suspicious link {link.uri}")
                self._open_link(link.uri)
            else:
                logger.info(f"User declined suspicious link {link.uri}")

        self._confirm(verdict, on_response)
        return ActivationResult.CONFIRMING

    def _open_link(self, uri: str) -> ActivationResult:
        if self._open(uri):
            return ActivationResult.OPENED
        return ActivationResult.FAILED
