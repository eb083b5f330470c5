"""Article generation for AI overview surfaces.

Builds a content-type prompt, sends it to a model provider, repairs the
reply into a title/HTML body pair and stores the result as an article
with generation metadata.
"""

from aioverview.generation.generator import ArticleGenerator
from aioverview.generation.models import (
    ContentTypeKind,
    FaqEntry,
    GenerationRequest,
    NormalizedContent,
    ProviderId,
    SchemaKind,
    StepEntry,
)
from aioverview.generation.normalizer import (
    FALLBACK_PARAGRAPH,
    ResponseNormalizer,
    clean_title,
    ensure_html,
    extract_json_object,
)
from aioverview.generation.prompts import build_prompt

__all__ = [
    "FALLBACK_PARAGRAPH",
    "ArticleGenerator",
    "ContentTypeKind",
    "FaqEntry",
    "GenerationRequest",
    "NormalizedContent",
    "ProviderId",
    "ResponseNormalizer",
    "SchemaKind",
    "StepEntry",
    "build_prompt",
    "clean_title",
    "ensure_html",
    "extract_json_object",
]
