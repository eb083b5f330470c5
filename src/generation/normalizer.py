"""Normalization of raw model replies into a title/HTML body pair.

Models are asked for ``{"title": ..., "content": ...}`` but regularly
wrap it in code fences, surround it with chatter, leak JSON fragments
into the body, or skip JSON altogether. Normalization tries, in order:

1. strip code-fence markers,
2. parse the whole reply as the expected JSON object,
3. parse the first balanced ``{...}`` object found in the reply,
4. treat the reply as plain text (first line is the title).

It never raises: a paid generation call is worth more than a perfectly
formed body.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable
from datetime import datetime
from typing import Any

import bleach
from aioverview.generation.models import SCHEMA_CONTEXT, ContentTypeKind, NormalizedContent
from aioverview.schema.html import has_markup, has_tags, strip_tags, trim_words

logger = logging.getLogger(__name__)

FALLBACK_PARAGRAPH = "<p>Content could not be generated properly. Please try again.</p>"

# Punctuation left behind when a JSON envelope is torn apart.
_EDGE_ARTIFACTS = "\"}]{[ \t\r\n.,;:-"
_BRACKET_ARTIFACTS = "\"}]{["

_TEXT_BLOCK_TAGS = frozenset({"p", "h1", "h2", "h3", "h4", "h5", "h6"})

# Markup allowed to reach a stored article body.
ALLOWED_TAGS = frozenset(
    {
        "p", "br", "h1", "h2", "h3", "h4", "h5", "h6", "ul", "ol", "li",
        "table", "caption", "thead", "tbody", "tfoot", "tr", "th", "td",
        "strong", "em", "b", "i", "u", "mark", "small", "sub", "sup",
        "blockquote", "code", "pre", "a",
    }
)
ALLOWED_ATTRIBUTES = {
    "a": ["href", "title", "rel"],
    "th": ["colspan", "rowspan", "scope"],
    "td": ["colspan", "rowspan"],
}
ALLOWED_PROTOCOLS = frozenset({"http", "https", "mailto"})

_FENCE_MARKER_RE = re.compile(r"```(?:json)?[ \t]*", re.IGNORECASE)
_CODE_BLOCK_RE = re.compile(r"```.*?```", re.DOTALL)
_TITLE_URL_RE = re.compile(r"https?://\S+", re.IGNORECASE)
_BARE_URL_RE = re.compile(r"(?<![=\"'/\w])https?://[^\s<>\"']+", re.IGNORECASE)
_TITLE_CHARS_RE = re.compile(r"[{}\"\[\]]")
_MULTI_SPACE_RE = re.compile(r"\s{2,}")
_PARAGRAPH_SPLIT_RE = re.compile(r"\n\s*\n")
_FRAGMENT_KEY_RE = re.compile(r'"[^"<>\n]*"\s*:\s*(?=[{\[])')
_DANGLING_KEY_RE = re.compile(r'\{\s*"[^"<>\n]*"\s*:\s*"?')
_DANGLING_CLOSE_RE = re.compile(r'"?\s*\}\s*,\s*"')
_UNSAFE_BLOCK_RE = re.compile(
    r"<(script|style|iframe|object|embed|template)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL
)

# Assistant chatter occasionally echoed into article bodies.
_CHATTER_PHRASES = (
    "Before you make changes, please push our current version to Github",
    "Please push our current version to Github",
    "push our current version to Github",
)


# ---------------------------------------------------------------------------
# Balanced JSON scanning
# ---------------------------------------------------------------------------


def balanced_end(text: str, start: int) -> int | None:
    """Return the index just past the structure opening at ``text[start]``.

    ``text[start]`` must be ``{`` or ``[``. Brace and bracket depth is
    tracked together, and characters inside JSON strings (including
    escaped quotes) are ignored. Returns None when the structure never
    closes.
    """
    depth = 0
    in_string = False
    escaped = False
    for index in range(start, len(text)):
        char = text[index]
        if in_string:
            if escaped:
                escaped = False
            elif char == "\\":
                escaped = True
            elif char == '"':
                in_string = False
            continue
        if char == '"':
            in_string = True
        elif char in "{[":
            depth += 1
        elif char in "}]":
            depth -= 1
            if depth == 0:
                return index + 1
    return None


def extract_json_object(text: str) -> str | None:
    """Return the first balanced ``{...}`` substring of *text*, if any."""
    start = text.find("{")
    if start == -1:
        return None
    end = balanced_end(text, start)
    if end is None:
        return None
    return text[start:end]


def _load_article_json(text: str) -> dict[str, str] | None:
    try:
        data = json.loads(text)
    except (ValueError, RecursionError):
        return None
    if not isinstance(data, dict):
        return None
    title = data.get("title")
    content = data.get("content")
    if not isinstance(title, str) or not isinstance(content, str):
        return None
    return {"title": title, "content": content}


# ---------------------------------------------------------------------------
# Text cleaning
# ---------------------------------------------------------------------------


def strip_code_fences(text: str) -> str:
    """Remove markdown fence markers (with an optional ``json`` tag) and trim."""
    return _FENCE_MARKER_RE.sub("", text or "").strip()


def clean_title(title: str) -> str:
    """Reduce a title to plain text.

    Drops fenced code, markup, URLs, braces, brackets and double quotes,
    then collapses whitespace.
    """
    title = _CODE_BLOCK_RE.sub("", title or "")
    if has_markup(title):
        title = strip_tags(title)
    title = _TITLE_URL_RE.sub("", title)
    title = _TITLE_CHARS_RE.sub("", title)
    title = _MULTI_SPACE_RE.sub(" ", title)
    return title.strip()


def strip_json_fragments(content: str) -> str:
    """Remove ``"key": {...}`` and ``"key": [...]`` fragments from *content*.

    A fragment whose value never closes is left in place.
    """
    pieces: list[str] = []
    pos = 0
    while True:
        match = _FRAGMENT_KEY_RE.search(content, pos)
        if match is None:
            break
        end = balanced_end(content, match.end())
        if end is None:
            break
        pieces.append(content[pos : match.start()])
        pos = end
    pieces.append(content[pos:])
    content = "".join(pieces)
    content = _DANGLING_CLOSE_RE.sub("", content)
    return _DANGLING_KEY_RE.sub("", content)


def _scrub(content: str) -> str:
    content = _CODE_BLOCK_RE.sub("", content)
    content = _UNSAFE_BLOCK_RE.sub("", content)
    content = _BARE_URL_RE.sub("", content)
    for phrase in _CHATTER_PHRASES:
        content = re.sub(re.escape(phrase), "", content, flags=re.IGNORECASE)
    return content


def _is_artifact(text: str) -> bool:
    return not text.strip(_EDGE_ARTIFACTS)


def sanitize_html(html: str) -> str:
    """Reduce *html* to :data:`ALLOWED_TAGS` and :data:`ALLOWED_ATTRIBUTES`.

    Disallowed tags are dropped but their text is kept; comments and
    event-handler attributes are removed and stray ``<`` is escaped.
    """
    html = _UNSAFE_BLOCK_RE.sub("", html)
    return bleach.clean(
        html,
        tags=ALLOWED_TAGS,
        attributes=ALLOWED_ATTRIBUTES,
        protocols=ALLOWED_PROTOCOLS,
        strip=True,
        strip_comments=True,
    )


def ensure_html(content: str) -> str:
    """Turn model content into a safe HTML fragment.

    Markup is kept, minus leaked JSON fragments and edge punctuation,
    reduced to :data:`ALLOWED_TAGS` and wrapped in a paragraph when it
    carries no paragraph or heading tag. Plain text is split on blank
    lines into paragraphs. Anything that cleans down to nothing becomes
    :data:`FALLBACK_PARAGRAPH`.
    """
    content = _scrub(content or "")
    if _is_artifact(content):
        return FALLBACK_PARAGRAPH

    if has_markup(content):
        content = sanitize_html(strip_json_fragments(content).strip(_EDGE_ARTIFACTS))
        if _is_artifact(strip_tags(content)):
            return FALLBACK_PARAGRAPH
        if not has_tags(content, _TEXT_BLOCK_TAGS):
            content = f"<p>{content}</p>"
        return content

    html = ""
    for paragraph in _PARAGRAPH_SPLIT_RE.split(content):
        paragraph = paragraph.strip()
        if not paragraph or _is_artifact(paragraph):
            continue
        html += f"<p>{paragraph}</p>\n"
    html = sanitize_html(html)
    if _is_artifact(strip_tags(html)):
        return FALLBACK_PARAGRAPH
    return html


def final_cleanup(content: str) -> str:
    """Strip stray brackets/quotes at the edges and collapse whitespace runs."""
    content = content.strip().strip(_BRACKET_ARTIFACTS).strip()
    content = _MULTI_SPACE_RE.sub(" ", content)
    return content.strip() or FALLBACK_PARAGRAPH


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------


class ResponseNormalizer:
    """Turns raw model replies into :class:`NormalizedContent`.

    Author and publisher details only feed the minimal schema hints built
    on the plain-text fallback path.
    """

    def __init__(
        self,
        *,
        author_name: str = "",
        publisher_name: str = "",
        publisher_logo: str = "",
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._author_name = author_name
        self._publisher_name = publisher_name
        self._publisher_logo = publisher_logo
        self._clock = clock or (lambda: datetime.now().astimezone())

    def normalize(
        self, raw: str | None, content_type: ContentTypeKind | str = ContentTypeKind.GENERIC
    ) -> NormalizedContent:
        """Parse and repair a raw reply. Never raises."""
        kind = ContentTypeKind.resolve(content_type)
        cleaned = strip_code_fences(raw or "")

        data = _load_article_json(cleaned)
        if data is None and "{" in cleaned and "}" in cleaned:
            embedded = extract_json_object(cleaned)
            if embedded is not None:
                data = _load_article_json(embedded)
                if data is not None:
                    logger.debug("Recovered JSON object embedded in model reply")

        if data is not None:
            return self._from_json(data, kind)

        logger.warning("Model reply was not valid JSON; falling back to plain text")
        return self._from_plain_text(cleaned, kind)

    def _from_json(self, data: dict[str, str], kind: ContentTypeKind) -> NormalizedContent:
        title = clean_title(data["title"]) or self._synthesize_title(kind)
        body = final_cleanup(ensure_html(data["content"]))
        return NormalizedContent(title=title, html_body=body, structured_hints={})

    def _from_plain_text(self, text: str, kind: ContentTypeKind) -> NormalizedContent:
        title = ""
        paragraphs: list[list[str]] = [[]]
        for line in text.split("\n"):
            line = line.strip()
            if not line:
                if paragraphs[-1]:
                    paragraphs.append([])
                continue
            if not title and not line.startswith(("<", "{")):
                title = clean_title(line)
                continue
            paragraphs[-1].append(line)

        content = "\n\n".join("\n".join(lines) for lines in paragraphs if lines)
        title = title or self._synthesize_title(kind)
        body = final_cleanup(ensure_html(content))
        return NormalizedContent(
            title=title,
            html_body=body,
            structured_hints=self._basic_hints(title, body, kind),
        )

    def _synthesize_title(self, kind: ContentTypeKind) -> str:
        return f"{kind.label} About {self._clock():%Y-%m-%d %H:%M:%S}"

    def _basic_hints(self, title: str, body: str, kind: ContentTypeKind) -> dict[str, Any]:
        now = self._clock().isoformat()
        return {
            "@context": SCHEMA_CONTEXT,
            "@type": kind.schema_type,
            "headline": title,
            "description": trim_words(strip_tags(body), 30),
            "datePublished": now,
            "dateModified": now,
            "author": {"@type": "Person", "name": self._author_name},
            "publisher": {
                "@type": "Organization",
                "name": self._publisher_name,
                "logo": {"@type": "ImageObject", "url": self._publisher_logo},
            },
        }
