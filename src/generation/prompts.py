"""Prompt templates for AI-overview article generation."""

from aioverview.generation.models import ContentTypeKind

_BASE_PROMPT = (
    "You are an expert content writer specializing in SEO and"
    " AI overview optimization. "
)

_FORMATTING_RULES = (
    "\n\nIMPORTANT FORMATTING:\n"
    "- Use proper HTML: {tags}\n"
    "- NO JSON, NO curly braces, NO structured data in the content\n"
    "- Write naturally like a blog post"
)

_OUTPUT_FORMAT = (
    "\n\nOUTPUT FORMAT:\n"
    "Respond with ONLY a clean JSON object:\n\n"
    "{{\n"
    '  "title": "{title_example}",\n'
    '  "content": "{content_example}"\n'
    "}}"
)

_CLOSING_INSTRUCTION = (
    "\n\nIMPORTANT:\n"
    "- Write naturally and conversationally\n"
    "- Focus on providing value and answering user intent\n"
    "- Use proper HTML formatting\n"
    "- Ensure content is original and comprehensive\n"
    "- NO external links or references\n"
    "- Return ONLY the JSON object, no additional text"
)


class _Template:
    """One content-type template: task line, requirements and output example."""

    def __init__(
        self,
        task: str,
        requirements: list[str],
        tags: str,
        title_example: str,
        content_example: str,
    ) -> None:
        self.task = task
        self.requirements = requirements
        self.tags = tags
        self.title_example = title_example
        self.content_example = content_example

    def render(self, topic: str) -> str:
        lines = [f"{self.task}: {topic}", "", "REQUIREMENTS:"]
        lines.extend(f"- {req}" for req in self.requirements)
        return (
            "\n".join(lines)
            + _FORMATTING_RULES.format(tags=self.tags)
            + _OUTPUT_FORMAT.format(
                title_example=self.title_example,
                content_example=self.content_example,
            )
        )


CONTENT_PROMPTS: dict[ContentTypeKind, _Template] = {
    ContentTypeKind.FAQ: _Template(
        task="Create a comprehensive FAQ article about",
        requirements=[
            "Create an engaging title that includes the main question or topic",
            "Structure as FAQ with clear H2 headings for each question",
            "Each question should be a common search query",
            "Provide detailed, helpful answers (150-300 words each)",
            "Include 8-12 frequently asked questions",
            "Use natural, conversational language",
            "Include relevant facts, statistics, and examples",
            "End with a conclusion paragraph",
            "Do NOT include comparison tables",
        ],
        tags="<h2> for questions, <p> for answers",
        title_example="Your SEO-optimized title",
        content_example=(
            "<h2>What is [topic]?</h2><p>Detailed answer here...</p>"
            "<h2>How does [topic] work?</h2><p>Another detailed answer...</p>"
        ),
    ),
    ContentTypeKind.HOWTO: _Template(
        task="Create a detailed How-To guide about",
        requirements=[
            "Create a compelling title",
            "Structure with clear steps using H2 headings",
            "Include introduction, step-by-step instructions, and conclusion",
            "Each step should be actionable and detailed",
            "Include tips, warnings, and best practices",
            "Use bullet points and numbered lists",
            "Total length: 1500-2500 words",
            "Do NOT include comparison tables",
        ],
        tags="<h2> for steps, <p> for instructions, <ul>/<ol> for lists",
        title_example="How to [Topic] - Complete Guide",
        content_example=(
            "<p>Introduction paragraph...</p>"
            "<h2>Step 1: First Step</h2><p>Detailed instructions...</p>"
            "<h2>Step 2: Next Step</h2><p>More instructions...</p>"
        ),
    ),
    ContentTypeKind.COMPARISON: _Template(
        task="Create a detailed comparison article about",
        requirements=[
            "Create an engaging comparison title",
            "Compare at least 3-5 options/alternatives",
            "Structure with clear sections for each option",
            "Include pros, cons, features, pricing, and recommendations",
            "Use comparison tables in HTML format",
            "Provide unbiased analysis",
            "End with clear recommendations",
        ],
        tags="<h2> for sections, <p> for descriptions, <table> for comparisons",
        title_example="[Option A] vs [Option B] vs [Option C] - Complete Comparison",
        content_example=(
            "<p>Introduction to comparison...</p>"
            "<h2>What is [Topic]?</h2><p>Explanation...</p>"
            "<h2>Comparison Table</h2><table>...</table>"
        ),
    ),
    ContentTypeKind.LISTICLE: _Template(
        task="Create an engaging listicle article about",
        requirements=[
            "Create a click-worthy title with a number",
            "Structure as a numbered or bulleted list with detailed explanations",
            "Each list item should be substantial (200-400 words)",
            "Include 10-15 list items",
            "Use engaging subheadings for each item",
            "Include examples, tips, and practical advice",
            "Do NOT include comparison tables",
        ],
        tags="<h2> for list items, <p> for descriptions",
        title_example="[Number] Best [Topic] - Complete Guide",
        content_example=(
            "<p>Introduction...</p>"
            "<h2>1. First Item</h2><p>Detailed explanation...</p>"
            "<h2>2. Second Item</h2><p>More details...</p>"
        ),
    ),
    ContentTypeKind.GENERIC: _Template(
        task="Create an informative article about",
        requirements=[
            "SEO-optimized title",
            "Well-structured content with H2/H3 headings",
            "Comprehensive coverage of the topic",
            "Include facts, examples, and practical information",
            "Do NOT include comparison tables",
        ],
        tags="<h2> for sections, <p> for paragraphs",
        title_example="Your SEO Title",
        content_example=(
            "<p>Introduction paragraph...</p>"
            "<h2>First Section</h2><p>Content here...</p>"
            "<h2>Second Section</h2><p>More content...</p>"
        ),
    ),
}


def build_prompt(topic: str, content_type: ContentTypeKind | str) -> str:
    """Build the instruction text sent to the model provider.

    The topic is substituted verbatim; unknown content types use the
    generic template. Output is byte-identical for identical inputs.

    Args:
        topic: Article topic, treated as opaque text.
        content_type: Template to use.

    Returns:
        The full prompt string.
    """
    kind = ContentTypeKind.resolve(content_type)
    return _BASE_PROMPT + CONTENT_PROMPTS[kind].render(topic) + _CLOSING_INSTRUCTION
