"""Pure data models for article generation.

Enums, request/response records and the metadata keys written alongside
generated articles. No I/O and no business logic live here.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, SecretStr

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ContentTypeKind(StrEnum):
    """Prompt template and extraction shape of an article."""

    FAQ = "faq"
    HOWTO = "howto"
    COMPARISON = "comparison"
    LISTICLE = "listicle"
    GENERIC = "generic"

    @classmethod
    def resolve(cls, value: str | ContentTypeKind) -> ContentTypeKind:
        """Map a configured value to a kind, treating unknown values as generic."""
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.GENERIC

    @property
    def label(self) -> str:
        return _CONTENT_TYPE_LABELS[self]

    @property
    def schema_type(self) -> str:
        """schema.org ``@type`` used for pre-populated hints."""
        if self is ContentTypeKind.FAQ:
            return "FAQPage"
        if self is ContentTypeKind.HOWTO:
            return "HowTo"
        return "Article"


_CONTENT_TYPE_LABELS: dict[ContentTypeKind, str] = {
    ContentTypeKind.FAQ: "FAQ",
    ContentTypeKind.HOWTO: "How-To",
    ContentTypeKind.COMPARISON: "Comparison",
    ContentTypeKind.LISTICLE: "Listicle",
    ContentTypeKind.GENERIC: "Article",
}


class ProviderId(StrEnum):
    """Supported model providers."""

    GEMINI = "gemini"
    OPENAI = "openai"


class SchemaKind(StrEnum):
    """Structured-data kinds that can be requested for an article."""

    FAQ = "faq"
    HOWTO = "howto"
    ARTICLE = "article"
    BREADCRUMB = "breadcrumb"


SCHEMA_CONTEXT = "https://schema.org"

# ---------------------------------------------------------------------------
# Metadata keys
# ---------------------------------------------------------------------------

META_GENERATED = "ai_overview_generated"
META_TOPIC = "ai_overview_topic"
META_CONTENT_TYPE = "ai_overview_content_type"
META_PROVIDER = "ai_overview_provider"
META_SCHEMA_TYPES = "ai_overview_schema_types"
META_GENERATION_DATE = "ai_overview_generation_date"
META_AUTHOR_NAME = "ai_overview_author_name"
META_STRUCTURED_DATA = "ai_overview_structured_data"


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


class GenerationRequest(BaseModel):
    """A fully resolved generation call."""

    model_config = ConfigDict(frozen=True)

    topic: str
    content_type: ContentTypeKind = ContentTypeKind.FAQ
    provider: ProviderId = ProviderId.GEMINI
    api_key: SecretStr


class NormalizedContent(BaseModel):
    """Title/body pair recovered from a model reply.

    ``html_body`` only carries the tags in
    :data:`aioverview.generation.normalizer.ALLOWED_TAGS`, with no script
    content or event-handler attributes. ``title`` never carries markup,
    URLs or brace characters.
    """

    title: str
    html_body: str
    structured_hints: dict[str, Any] = Field(default_factory=dict)


class FaqEntry(BaseModel):
    """A question/answer pair extracted from an H2 section."""

    question: str
    answer: str


class StepEntry(BaseModel):
    """A numbered how-to step extracted from an H2 section."""

    title: str
    text: str
    position: int = Field(ge=1)
