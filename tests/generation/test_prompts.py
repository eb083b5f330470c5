"""Tests for prompt construction per content type."""

import pytest
from aioverview.generation.models import ContentTypeKind
from aioverview.generation.prompts import CONTENT_PROMPTS, build_prompt


class TestBuildPrompt:
    def test_deterministic(self):
        first = build_prompt("Solar panels", ContentTypeKind.FAQ)
        second = build_prompt("Solar panels", ContentTypeKind.FAQ)
        assert first == second

    @pytest.mark.parametrize("kind", list(ContentTypeKind))
    def test_topic_included_verbatim(self, kind):
        topic = 'Café "latte" {art} & <foam>'
        assert topic in build_prompt(topic, kind)

    @pytest.mark.parametrize("kind", list(ContentTypeKind))
    def test_every_kind_asks_for_json(self, kind):
        prompt = build_prompt("x", kind)
        assert '"title":' in prompt
        assert '"content":' in prompt
        assert "Return ONLY the JSON object" in prompt

    def test_templates_cover_every_kind(self):
        assert set(CONTENT_PROMPTS) == set(ContentTypeKind)

    def test_accepts_string_kind(self):
        assert build_prompt("x", "howto") == build_prompt("x", ContentTypeKind.HOWTO)

    def test_unknown_kind_uses_generic(self):
        assert build_prompt("x", "poem") == build_prompt("x", ContentTypeKind.GENERIC)

    def test_faq_mentions_questions(self):
        prompt = build_prompt("x", ContentTypeKind.FAQ)
        assert "FAQ" in prompt
        assert "<h2> for questions" in prompt

    def test_only_comparison_allows_tables(self):
        assert "Use comparison tables" in build_prompt("x", ContentTypeKind.COMPARISON)
        for kind in ContentTypeKind:
            if kind is ContentTypeKind.COMPARISON:
                continue
            assert "Do NOT include comparison tables" in build_prompt("x", kind)

    def test_kinds_differ(self):
        prompts = {build_prompt("x", kind) for kind in ContentTypeKind}
        assert len(prompts) == len(ContentTypeKind)

    def test_braces_are_literal(self):
        prompt = build_prompt("x", ContentTypeKind.GENERIC)
        assert "{\n" in prompt
        assert "{{" not in prompt
