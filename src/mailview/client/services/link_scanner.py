"""
Clickable link scanner for message text.

This module finds the clickable parts of a single line of decoded
message text: URIs starting with one of the known prefixes and bare
e-mail addresses. Scanning is driven by an ordered table of token
rules, so supporting another kind of clickable token only means adding
a rule to the table.
"""

from __future__ import annotations

import logging
import re
import string
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, Sequence

from ...common.exceptions import ValidationError

logger = logging.getLogger(__name__)

SearchFunc = Callable[[str, str, int], Optional[int]]
ExtractFunc = Callable[[str, int, int], Optional[tuple[int, int]]]
BuildFunc = Callable[[str, int, int], str]

# Characters that end a URI
URI_DELIMITERS = frozenset('()<>"')

# Characters that end an e-mail address
EMAIL_DELIMITERS = frozenset('(),;<>"')

_PUNCTUATION = frozenset(string.punctuation)


@lru_cache(maxsize=32)
def _needle_pattern(needle: str) -> re.Pattern[str]:
    return re.compile(re.escape(needle), re.IGNORECASE)


def find_needle(haystack: str, needle: str, start: int = 0) -> Optional[int]:
    """Case-insensitive search for needle in haystack from start.

    Args:
        haystack: Text to search.
        needle: Literal text to look for.
        start: Offset to start searching from.

    Returns:
        Offset of the first match, or None.
    """
    match = _needle_pattern(needle).search(haystack, start)
    if match is None:
        return None
    return match.start()


def _is_uri_char(ch: str) -> bool:
    # printable, non-space 7-bit ASCII
    return "!" <= ch <= "~" and ch not in URI_DELIMITERS


def _is_real_punct(ch: str) -> bool:
    return ch in _PUNCTUATION and ch != "/"


def _is_address_char(ch: str) -> bool:
    return "!" <= ch <= "~" and ch not in EMAIL_DELIMITERS


def _is_ascii_alnum(ch: str) -> bool:
    return ch.isascii() and ch.isalnum()


def get_uri_part(line: str, start: int, pos: int) -> Optional[tuple[int, int]]:
    """Extract a URI beginning at pos.

    The URI runs until the first character that is not printable ASCII
    or is one of the URI delimiters. Trailing punctuation other than '/'
    is then dropped, keeping at least two characters after pos.

    Args:
        line: The whole line.
        start: Current scan position (unused, URIs never extend backwards).
        pos: Offset of the matched prefix.

    Returns:
        (begin, end) offsets of the URI.
    """
    end = pos
    length = len(line)
    while end < length and _is_uri_char(line[end]):
        end += 1

    while end - 1 > pos + 1 and _is_real_punct(line[end - 1]):
        end -= 1

    return pos, end


def get_email_part(line: str, start: int, pos: int) -> Optional[tuple[int, int]]:
    """Extract an e-mail address around the '@' at pos.

    The local part is scanned backwards from pos (never before start)
    and must begin with an ASCII letter or digit. The domain is scanned
    forwards and must end with an ASCII letter or digit.

    Args:
        line: The whole line.
        start: Current scan position; the address cannot begin before it.
        pos: Offset of the '@'.

    Returns:
        (begin, end) offsets of the address, or None if there is no
        usable local part or domain.
    """
    begin = pos - 1
    while begin >= start and _is_address_char(line[begin]):
        begin -= 1
    begin += 1
    while begin < pos and not _is_ascii_alnum(line[begin]):
        begin += 1

    if begin == pos:
        return None

    end = pos + 1
    length = len(line)
    while end < length and _is_address_char(line[end]):
        end += 1

    last = end - 1
    while last > pos and not _is_ascii_alnum(line[last]):
        last -= 1
    end = last + 1

    if end <= pos + 1:
        return None

    return begin, end


def make_uri_string(line: str, begin: int, end: int) -> str:
    """Return the matched URI text unchanged."""
    return line[begin:end]


def make_email_string(line: str, begin: int, end: int) -> str:
    """Return a mailto: URI for a bare address.

    The mailto: prefix is also how activation tells compose links
    apart from links to be opened.
    """
    return "mailto:" + line[begin:end]


@dataclass(frozen=True)
class TokenRule:
    """A family of clickable tokens.

    Attributes:
        needle: Literal text that triggers the rule.
        search: Finds the needle in a line from a start offset.
        extract: Grows a needle match into a (begin, end) span.
        build_uri: Builds the link target for a span.
    """

    needle: str
    search: SearchFunc
    extract: ExtractFunc
    build_uri: BuildFunc

    def __post_init__(self) -> None:
        if not self.needle:
            raise ValidationError("needle", self.needle, "needle must not be empty")


@dataclass(frozen=True)
class Span:
    """A clickable region of a line, as half-open offsets."""

    begin: int
    end: int
    rule_index: int

    @property
    def length(self) -> int:
        return self.end - self.begin


@dataclass(frozen=True)
class ClickablePart:
    """A span together with its link target and text."""

    begin: int
    end: int
    uri: str
    text: str


# Parse table, in order of priority
DEFAULT_RULES: tuple[TokenRule, ...] = (
    TokenRule("http://", find_needle, get_uri_part, make_uri_string),
    TokenRule("https://", find_needle, get_uri_part, make_uri_string),
    TokenRule("ftp://", find_needle, get_uri_part, make_uri_string),
    TokenRule("www.", find_needle, get_uri_part, make_uri_string),
    TokenRule("mailto:", find_needle, get_uri_part, make_uri_string),
    TokenRule("@", find_needle, get_email_part, make_email_string),
)


def scan_line(line: str, rules: Sequence[TokenRule] = DEFAULT_RULES) -> list[Span]:
    """Find the clickable spans of a line.

    At every step the left-most needle occurrence wins; on a tie the
    rule listed first wins. A span is kept only when it is more than one
    character longer than its needle. Otherwise scanning resumes right
    after the needle.

    Args:
        line: One line of decoded text.
        rules: Token rules in priority order.

    Returns:
        Non-overlapping spans in left-to-right order.
    """
    spans: list[Span] = []
    walk = 0

    while True:
        scanpos: Optional[int] = None
        index = -1

        for n, rule in enumerate(rules):
            found = rule.search(line, rule.needle, walk)
            if found is not None and (scanpos is None or found < scanpos):
                scanpos = found
                index = n

        if scanpos is None:
            break

        rule = rules[index]
        part = rule.extract(line, walk, scanpos)
        if part is not None:
            begin, end = part
            if end - begin - 1 > len(rule.needle):
                spans.append(Span(begin, end, index))
                walk = end
                continue

        logger.debug(f"Ignoring '{rule.needle}' at offset {scanpos}")
        walk = scanpos + len(rule.needle)

    return spans


def find_clickable_parts(
    line: str, rules: Sequence[TokenRule] = DEFAULT_RULES
) -> list[ClickablePart]:
    """Scan a line and build the link target of every span."""
    return [
        ClickablePart(
            begin=span.begin,
            end=span.end,
            uri=rules[span.rule_index].build_uri(line, span.begin, span.end),
            text=line[span.begin:span.end],
        )
        for span in scan_line(line, rules)
    ]


def split_line(
    line: str, rules: Sequence[TokenRule] = DEFAULT_RULES
) -> list[tuple[str, Optional[ClickablePart]]]:
    """Split a line into plain and clickable segments.

    Args:
        line: One line of decoded text.
        rules: Token rules in priority order.

    Returns:
        (text, part) pairs covering the whole line in order; part is
        None for plain text.
    """
    segments: list[tuple[str, Optional[ClickablePart]]] = []
    normal = 0

    for part in find_clickable_parts(line, rules):
        if part.begin > normal:
            segments.append((line[normal:part.begin], None))
        segments.append((part.text, part))
        normal = part.end

    if normal < len(line):
        segments.append((line[normal:], None))

    return segments


__all__ = [
    "ClickablePart",
    "DEFAULT_RULES",
    "Span",
    "TokenRule",
    "find_clickable_parts",
    "find_needle",
    "get_email_part",
    "get_uri_part",
    "make_email_string",
    "make_uri_string",
    "scan_line",
    "split_line",
]
