"""
HTML to text conversion for the message text view.

HTML parts are shown as text. Anchors keep their target so the
renderer can register them as links and check their visible text
against the real target when they are clicked.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from html.parser import HTMLParser
from typing import Optional

BLOCK_TAGS = frozenset({
    "address", "blockquote", "dd", "div", "dl", "dt", "h1", "h2", "h3",
    "h4", "h5", "h6", "hr", "li", "ol", "table", "tr", "ul",
})
PARAGRAPH_TAGS = frozenset({"p", "pre", "h1", "h2", "h3", "h4", "h5", "h6"})
SKIP_TAGS = frozenset({"head", "script", "style", "title"})

_WHITESPACE_RE = re.compile(r"\s+")


@dataclass(frozen=True)
class HtmlChunk:
    """A run of text, with the anchor target when it is link text."""

    text: str
    href: Optional[str] = None


class HtmlTextParser(HTMLParser):
    """Collect the text of an HTML document as plain and link chunks."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.chunks: list[HtmlChunk] = []
        self._text: list[str] = []
        self._href: Optional[str] = None
        self._skip_depth = 0
        self._pre_depth = 0
        # start of document counts as a paragraph break
        self._tail = "\n\n"

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        tag = tag.lower()
        if tag in SKIP_TAGS:
            self._skip_depth += 1
            return
        if tag == "br":
            self._emit("\n")
        elif tag in PARAGRAPH_TAGS:
            self._break_paragraph()
        elif tag in BLOCK_TAGS:
            self._break_line()

        if tag == "pre":
            self._pre_depth += 1
        elif tag == "li":
            self._emit("* ")
        elif tag == "a":
            href = None
            for name, value in attrs:
                if name.lower() == "href" and value:
                    href = value.strip()
            self._flush()
            self._href = href or None

    def handle_endtag(self, tag: str) -> None:
        tag = tag.lower()
        if tag in SKIP_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if tag == "a":
            self._flush()
            self._href = None
        elif tag == "pre":
            self._pre_depth = max(0, self._pre_depth - 1)

        if tag in PARAGRAPH_TAGS:
            self._break_paragraph()
        elif tag in BLOCK_TAGS:
            self._break_line()

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        if not self._pre_depth:
            data = _WHITESPACE_RE.sub(" ", data)
            if self._tail.endswith(("\n", " ")):
                data = data.lstrip(" ")
        self._emit(data)

    def close(self) -> None:
        super().close()
        self._flush()

    def _emit(self, text: str) -> None:
        if not text:
            return
        self._text.append(text)
        self._tail = (self._tail + text)[-2:]

    def _break_line(self) -> None:
        if not self._tail.endswith("\n"):
            self._emit("\n")

    def _break_paragraph(self) -> None:
        self._break_line()
        if not self._tail.endswith("\n\n"):
            self._emit("\n")

    def _flush(self) -> None:
        if not self._text:
            return
        text = "".join(self._text)
        self._text = []
        self.chunks.append(HtmlChunk(text=text, href=self._href))


def html_to_chunks(markup: str) -> list[HtmlChunk]:
    """Convert an HTML document into text chunks in document order."""
    parser = HtmlTextParser()
    parser.feed(markup)
    parser.close()
    return parser.chunks
