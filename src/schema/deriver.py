"""JSON-LD structured data for stored articles.

Derives FAQPage, HowTo, Article and BreadcrumbList objects from an
article's stored structured-data hints or, failing that, from the H2
sections of its HTML body. Derivation is deterministic, makes no
external calls and never raises.
"""

from __future__ import annotations

import copy
import json
import logging
import math
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING, Any

from aioverview.content.models import Article
from aioverview.generation.models import (
    META_AUTHOR_NAME,
    META_SCHEMA_TYPES,
    META_STRUCTURED_DATA,
    SCHEMA_CONTEXT,
    FaqEntry,
    SchemaKind,
    StepEntry,
)
from aioverview.schema.html import count_words, h2_sections, strip_tags, trim_words

if TYPE_CHECKING:
    from aioverview.config import SiteSettings
    from aioverview.content.store import DocumentStore

logger = logging.getLogger(__name__)

MAX_FAQ_ENTRIES = 10
MAX_HOWTO_STEPS = 15
FAQ_ANSWER_WORDS = 100
HOWTO_STEP_WORDS = 150
DESCRIPTION_WORDS = 30
WORDS_PER_MINUTE = 200

Schema = dict[str, Any]


def extract_faqs(html: str) -> list[FaqEntry]:
    """Pair each H2 with the text below it, at most 10 entries."""
    faqs: list[FaqEntry] = []
    for heading, body in h2_sections(html):
        answer = trim_words(body, FAQ_ANSWER_WORDS).strip()
        if heading and answer:
            faqs.append(FaqEntry(question=heading, answer=answer))
    return faqs[:MAX_FAQ_ENTRIES]


def extract_steps(html: str) -> list[StepEntry]:
    """Turn each H2 section into a numbered step, at most 15."""
    steps: list[StepEntry] = []
    for heading, body in h2_sections(html):
        text = trim_words(body, HOWTO_STEP_WORDS).strip()
        if heading and text:
            steps.append(StepEntry(title=heading, text=text, position=len(steps) + 1))
    return steps[:MAX_HOWTO_STEPS]


def validate(schema: Any) -> bool:
    """Check that *schema* is a mapping with the schema.org context and a type."""
    if not isinstance(schema, Mapping):
        return False
    if schema.get("@context") != SCHEMA_CONTEXT:
        return False
    return bool(schema.get("@type"))


def render_json_ld(schema: Schema | list[Schema] | None) -> str:
    """Serialize derived schema as a single JSON-LD script block.

    Returns an empty string when there is nothing to emit.
    """
    if not schema:
        return ""
    payload = json.dumps(schema, ensure_ascii=False).replace("</", "<\\/")
    return f'<script type="application/ld+json">{payload}</script>\n'


class SchemaDeriver:
    """Builds schema.org objects for articles in a :class:`DocumentStore`."""

    def __init__(self, site: SiteSettings, store: DocumentStore) -> None:
        self._site = site
        self._store = store

    def derive_schema(
        self,
        article: Article,
        kinds: Iterable[SchemaKind | str] | SchemaKind | str,
    ) -> Schema | list[Schema]:
        """Derive the requested schema kinds for *article*.

        Args:
            article: Stored article to describe.
            kinds: Requested kinds, in output order. Unknown kinds are
                ignored.

        Returns:
            The base Article object when no kind yields a schema, the
            single object when exactly one does, otherwise a list in
            request order.
        """
        if isinstance(kinds, str):
            kinds = [kinds]

        hints = article.metadata.get(META_STRUCTURED_DATA)
        if not isinstance(hints, Mapping):
            hints = {}

        base = self._base_schema(article)
        results: list[Schema] = []
        for raw_kind in kinds:
            try:
                kind = SchemaKind(raw_kind)
            except ValueError:
                logger.debug("Skipping unknown schema kind %r", raw_kind)
                continue
            schema = self._derive_one(kind, article, base, hints)
            if schema is not None:
                results.append(schema)

        if not results:
            return base
        if len(results) == 1:
            return results[0]
        return results

    def _derive_one(
        self,
        kind: SchemaKind,
        article: Article,
        base: Schema,
        hints: Mapping[str, Any],
    ) -> Schema | None:
        if kind is SchemaKind.FAQ:
            return self.faq_schema(article, hints)
        if kind is SchemaKind.HOWTO:
            return self.howto_schema(article, hints)
        if kind is SchemaKind.ARTICLE:
            return self.article_schema(article, base)
        return self.breadcrumb_schema(article)

    # ── Individual kinds ─────────────────────────────────────────

    def faq_schema(self, article: Article, hints: Mapping[str, Any]) -> Schema | None:
        """FAQPage from stored ``mainEntity`` hints, else from H2 sections."""
        # Stored hints win even if the body was edited after generation.
        if hints.get("mainEntity"):
            return {
                "@context": SCHEMA_CONTEXT,
                "@type": "FAQPage",
                "mainEntity": copy.deepcopy(hints["mainEntity"]),
            }

        faqs = extract_faqs(article.html_body)
        if not faqs:
            return None
        return {
            "@context": SCHEMA_CONTEXT,
            "@type": "FAQPage",
            "mainEntity": [
                {
                    "@type": "Question",
                    "name": faq.question,
                    "acceptedAnswer": {"@type": "Answer", "text": faq.answer},
                }
                for faq in faqs
            ],
        }

    def howto_schema(self, article: Article, hints: Mapping[str, Any]) -> Schema | None:
        """HowTo from stored ``step`` hints, else from H2 sections."""
        if hints.get("step"):
            steps: list[Any] = copy.deepcopy(hints["step"])
        else:
            steps = [
                {
                    "@type": "HowToStep",
                    "position": step.position,
                    "name": step.title,
                    "text": step.text,
                }
                for step in extract_steps(article.html_body)
            ]
        if not steps:
            return None
        return {
            "@context": SCHEMA_CONTEXT,
            "@type": "HowTo",
            "name": article.title,
            "description": self._description(article),
            "step": steps,
        }

    def article_schema(self, article: Article, base: Schema) -> Schema:
        """Base schema plus section, keywords, word count and reading time."""
        schema = copy.deepcopy(base)
        schema["@type"] = "Article"
        category = self._store.resolve_category(article.category_id)
        schema["articleSection"] = category.name if category else ""
        schema["keywords"] = ", ".join(article.tags)

        words = count_words(strip_tags(article.html_body))
        schema["wordCount"] = words
        schema["timeRequired"] = f"PT{math.ceil(words / WORDS_PER_MINUTE)}M"
        return schema

    def breadcrumb_schema(self, article: Article) -> Schema:
        """Home, then the primary category if any, then the article."""
        items: list[Schema] = [
            {
                "@type": "ListItem",
                "position": 1,
                "name": "Home",
                "item": self._site.home_url,
            }
        ]
        category = self._store.resolve_category(article.category_id)
        if category is not None:
            items.append(
                {
                    "@type": "ListItem",
                    "position": 2,
                    "name": category.name,
                    "item": self._store.category_link(category),
                }
            )
        items.append(
            {
                "@type": "ListItem",
                "position": len(items) + 1,
                "name": article.title,
                "item": self._store.permalink(article),
            }
        )
        return {
            "@context": SCHEMA_CONTEXT,
            "@type": "BreadcrumbList",
            "itemListElement": items,
        }

    # ── Helpers ──────────────────────────────────────────────────

    def _description(self, article: Article) -> str:
        return trim_words(strip_tags(article.html_body), DESCRIPTION_WORDS)

    def _base_schema(self, article: Article) -> Schema:
        author_name = article.metadata.get(META_AUTHOR_NAME) or self._site.name
        schema: Schema = {
            "@context": SCHEMA_CONTEXT,
            "@type": "Article",
            "headline": article.title,
            "description": self._description(article),
            "datePublished": article.published_at.isoformat(),
            "dateModified": article.modified_at.isoformat(),
            "author": {"@type": "Person", "name": author_name},
            "publisher": {
                "@type": "Organization",
                "name": self._site.name,
                "logo": {"@type": "ImageObject", "url": self._site.logo_url},
            },
            "mainEntityOfPage": {
                "@type": "WebPage",
                "@id": self._store.permalink(article),
            },
        }
        cover = article.cover_image
        if cover is not None and cover.url:
            schema["image"] = {
                "@type": "ImageObject",
                "url": cover.url,
                "width": cover.width,
                "height": cover.height,
            }
        return schema


def render_schema_markup(store: DocumentStore, article_id: str, deriver: SchemaDeriver) -> str:
    """Emit the JSON-LD block for a stored article.

    Uses the schema kinds recorded at generation time; returns an empty
    string for unknown articles or articles with no recorded kinds.
    """
    article = store.get_document(article_id)
    if article is None:
        return ""
    kinds = article.metadata.get(META_SCHEMA_TYPES)
    if not kinds:
        return ""
    return render_json_ld(deriver.derive_schema(article, kinds))
