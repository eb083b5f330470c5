"""Minimal HTML scanning for generated article bodies.

Built on :class:`html.parser.HTMLParser`: a tag scanner used to check
body structure, tag stripping for descriptions and word counts, and
H2-delimited section extraction for FAQ and how-to derivation.
"""

from __future__ import annotations

import re
from html.parser import HTMLParser
from typing import NamedTuple

ELLIPSIS = "…"

# Tags whose boundaries separate words when markup is stripped.
_BLOCK_TAGS = frozenset(
    {
        "address", "article", "aside", "blockquote", "br", "dd", "div", "dl",
        "dt", "figcaption", "figure", "footer", "h1", "h2", "h3", "h4", "h5",
        "h6", "header", "hr", "li", "main", "nav", "ol", "p", "pre", "section",
        "table", "tbody", "td", "tfoot", "th", "thead", "tr", "ul",
    }
)
_SKIP_CONTENT_TAGS = frozenset({"script", "style"})
_VOID_TAGS = frozenset({"br", "hr", "img", "input", "meta", "link", "wbr", "col", "source"})

_WS_RE = re.compile(r"\s+")
# HTMLParser asserts on marked sections it does not know, e.g. "<![foo]>".
_MARKED_SECTION_RE = re.compile(r"<!\[")


class TagEvent(NamedTuple):
    """A single tag seen by the scanner."""

    name: str
    kind: str  # "start", "end" or "self"


class _Scanner(HTMLParser):
    """Collects tag events, visible text and H2 sections in one pass."""

    def __init__(self) -> None:
        super().__init__(convert_charrefs=True)
        self.events: list[TagEvent] = []
        self.text_parts: list[str] = []
        self.sections: list[tuple[list[str], list[str]]] = []
        self._skip_depth = 0
        self._in_h2 = False

    def handle_starttag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        kind = "self" if tag in _VOID_TAGS else "start"
        self.events.append(TagEvent(tag, kind))
        if tag in _SKIP_CONTENT_TAGS:
            self._skip_depth += 1
            return
        if tag == "h2":
            self._in_h2 = True
            self.sections.append(([], []))
        self._separate(tag)

    def handle_startendtag(self, tag: str, attrs: list[tuple[str, str | None]]) -> None:
        self.events.append(TagEvent(tag, "self"))
        self._separate(tag)

    def handle_endtag(self, tag: str) -> None:
        self.events.append(TagEvent(tag, "end"))
        if tag in _SKIP_CONTENT_TAGS:
            self._skip_depth = max(0, self._skip_depth - 1)
            return
        if tag == "h2":
            self._in_h2 = False
        self._separate(tag)

    def handle_data(self, data: str) -> None:
        if self._skip_depth:
            return
        self.text_parts.append(data)
        if self.sections:
            heading, body = self.sections[-1]
            (heading if self._in_h2 else body).append(data)

    def _separate(self, tag: str) -> None:
        if tag in _BLOCK_TAGS:
            self.handle_data(" ")


def _scan(html: str) -> _Scanner:
    scanner = _Scanner()
    scanner.feed(_MARKED_SECTION_RE.sub("&lt;![", html or ""))
    scanner.close()
    return scanner


def _squash(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def scan_tags(html: str) -> list[TagEvent]:
    """Return every tag event in document order."""
    return _scan(html).events


def has_markup(text: str) -> bool:
    """Check whether the text contains at least one real HTML tag."""
    if "<" not in text or ">" not in text:
        return False
    return bool(scan_tags(text))


def has_tags(html: str, names: set[str] | frozenset[str]) -> bool:
    """Check whether any opening tag in *html* has one of *names*."""
    return any(e.kind != "end" and e.name in names for e in scan_tags(html))


def strip_tags(html: str) -> str:
    """Return the visible text of *html* with whitespace collapsed.

    Script and style content is dropped; block-level boundaries become
    word separators.
    """
    return _squash("".join(_scan(html).text_parts))


def h2_sections(html: str) -> list[tuple[str, str]]:
    """Pair every ``<h2>`` heading with the text that follows it.

    Each section runs from the end of its heading to the next ``<h2>``
    or the end of the document. Both halves come back stripped of
    markup; content before the first heading is ignored.
    """
    return [
        (_squash("".join(heading)), _squash("".join(body)))
        for heading, body in _scan(html).sections
    ]


def count_words(text: str) -> int:
    """Count whitespace-separated tokens."""
    return len(text.split())


def trim_words(text: str, limit: int, more: str = ELLIPSIS) -> str:
    """Keep the first *limit* words of *text*, appending *more* when cut."""
    words = text.split()
    if len(words) <= limit:
        return " ".join(words)
    return " ".join(words[:limit]) + more
