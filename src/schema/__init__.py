"""schema.org structured data for generated articles."""

from aioverview.schema.deriver import (
    SchemaDeriver,
    extract_faqs,
    extract_steps,
    render_json_ld,
    render_schema_markup,
    validate,
)

__all__ = [
    "SchemaDeriver",
    "extract_faqs",
    "extract_steps",
    "render_json_ld",
    "render_schema_markup",
    "validate",
]
