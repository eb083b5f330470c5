"""Tests for ArticleGenerator: prompt, provider call, normalization, storage."""

import json
import re
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from aioverview.config import GeneratorSettings
from aioverview.content.store import ArticleStore
from aioverview.errors import ApiError, ConfigError, GenerationError, NoApiKeyError
from aioverview.generation.generator import ArticleGenerator
from aioverview.generation.models import (
    META_AUTHOR_NAME,
    META_CONTENT_TYPE,
    META_GENERATED,
    META_GENERATION_DATE,
    META_PROVIDER,
    META_SCHEMA_TYPES,
    META_STRUCTURED_DATA,
    META_TOPIC,
    ContentTypeKind,
    ProviderId,
    SchemaKind,
)
from aioverview.generation.prompts import build_prompt
from aioverview.llm import ProviderClient

_GOOD_REPLY = json.dumps(
    {"title": "Solar Panels FAQ", "content": "<h2>Do they work?</h2><p>Yes.</p>"}
)


class FakeClient:
    """Records generate_text calls and returns a canned reply."""

    def __init__(self, reply: str = _GOOD_REPLY, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.calls: list[tuple[ProviderId, str, str]] = []

    def generate_text(self, provider, api_key, prompt):
        self.calls.append((provider, api_key, prompt))
        if self.error:
            raise self.error
        return self.reply


def _settings(**kwargs: object) -> GeneratorSettings:
    defaults: dict = {
        "provider": ProviderId.GEMINI,
        "api_keys": {ProviderId.GEMINI: "stored-gemini"},
        "content_type": ContentTypeKind.FAQ,
        "schema_types": (SchemaKind.FAQ, SchemaKind.BREADCRUMB),
    }
    defaults.update(kwargs)
    return GeneratorSettings(**defaults)


@pytest.fixture
def store(tmp_path: Path) -> ArticleStore:
    return ArticleStore(tmp_path)


class TestKeyResolution:
    def test_call_key_wins(self, store):
        client = FakeClient()
        ArticleGenerator(_settings(), store, client).generate("solar", api_key="call-key")
        assert client.calls[0][1] == "call-key"

    def test_stored_key_used(self, store):
        client = FakeClient()
        ArticleGenerator(_settings(), store, client).generate("solar")
        assert client.calls[0][1] == "stored-gemini"

    def test_blank_call_key_falls_back(self, store):
        client = FakeClient()
        ArticleGenerator(_settings(), store, client).generate("solar", api_key="  ")
        assert client.calls[0][1] == "stored-gemini"

    def test_missing_key_names_provider(self, store):
        generator = ArticleGenerator(_settings(), store, FakeClient())
        with pytest.raises(NoApiKeyError) as exc_info:
            generator.generate("solar", provider="openai")
        assert exc_info.value.provider == "openai"
        assert "openai" in str(exc_info.value)
        assert store.list_documents() == []

    def test_no_key_error_is_config_error(self):
        assert issubclass(NoApiKeyError, ConfigError)

    def test_invalid_provider(self, store):
        generator = ArticleGenerator(_settings(), store, FakeClient())
        with pytest.raises(ConfigError, match="Invalid provider"):
            generator.generate("solar", provider="claude")


class TestGenerate:
    def test_prompt_matches_builder(self, store):
        client = FakeClient()
        ArticleGenerator(_settings(), store, client).generate("solar panels")
        provider, _key, prompt = client.calls[0]
        assert provider == ProviderId.GEMINI
        assert prompt == build_prompt("solar panels", ContentTypeKind.FAQ)

    def test_provider_override(self, store):
        client = FakeClient()
        settings = _settings(api_keys={ProviderId.OPENAI: "stored-openai"})
        ArticleGenerator(settings, store, client).generate("solar", provider="OpenAI")
        assert client.calls[0][:2] == (ProviderId.OPENAI, "stored-openai")

    def test_article_stored_with_metadata(self, store):
        generator = ArticleGenerator(_settings(author_name="Jane"), store, FakeClient())
        article_id = generator.generate("  solar   panels ")

        article = store.get_document(article_id)
        assert article.title == "Solar Panels FAQ"
        assert article.html_body == "<h2>Do they work?</h2><p>Yes.</p>"
        assert article.status.value == "draft"

        meta = article.metadata
        assert meta[META_GENERATED] is True
        assert meta[META_TOPIC] == "solar panels"
        assert meta[META_CONTENT_TYPE] == "faq"
        assert meta[META_PROVIDER] == "gemini"
        assert meta[META_SCHEMA_TYPES] == ["faq", "breadcrumb"]
        assert meta[META_AUTHOR_NAME] == "Jane"
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}", meta[META_GENERATION_DATE])
        assert META_STRUCTURED_DATA not in meta

    def test_fallback_hints_persisted(self, store):
        client = FakeClient(reply="Plain Title\n\nJust some prose.")
        article_id = ArticleGenerator(_settings(), store, client).generate("solar")

        hints = store.get_metadata(article_id, META_STRUCTURED_DATA)
        assert hints["@type"] == "FAQPage"
        assert hints["headline"] == "Plain Title"

    def test_fallback_hints_carry_publisher(self, store):
        settings = _settings(
            author_name="Jane",
            publisher_name="Example Site",
            publisher_logo="https://example.com/logo.png",
        )
        client = FakeClient(reply="Plain Title\n\nJust some prose.")
        article_id = ArticleGenerator(settings, store, client).generate("solar")

        hints = store.get_metadata(article_id, META_STRUCTURED_DATA)
        assert hints["author"]["name"] == "Jane"
        assert hints["publisher"]["name"] == "Example Site"
        assert hints["publisher"]["logo"]["url"] == "https://example.com/logo.png"

    def test_hostile_body_sanitized_before_storage(self, store):
        reply = json.dumps(
            {"title": "T", "content": "<p>Hi</p><script>alert(1)</script><p onclick=\"x()\">y</p>"}
        )
        article_id = ArticleGenerator(_settings(), store, FakeClient(reply=reply)).generate("solar")
        assert store.get_document(article_id).html_body == "<p>Hi</p><p>y</p>"

    def test_post_status_and_category(self, store):
        category = store.add_category("Energy")
        settings = _settings(post_status="publish", category="Energy")
        article_id = ArticleGenerator(settings, store, FakeClient()).generate("solar")

        article = store.get_document(article_id)
        assert article.status.value == "publish"
        assert article.category_id == category.id

    def test_provider_failure_creates_nothing(self, store):
        client = FakeClient(error=ApiError("Gemini request failed: HTTP 500", status=500))
        generator = ArticleGenerator(_settings(), store, client)

        with pytest.raises(GenerationError, match="Content generation failed: Gemini"):
            generator.generate("solar")
        assert store.list_documents() == []

    def test_undecodable_provider_body_wrapped(self, store):
        mock_response = MagicMock()
        mock_response.status = 200
        mock_response.read.return_value = b'{"candidates": "\xff\xfe"}'
        mock_response.__enter__ = lambda s: s
        mock_response.__exit__ = MagicMock(return_value=False)
        generator = ArticleGenerator(_settings(), store, ProviderClient())

        with patch("urllib.request.urlopen", return_value=mock_response):
            with pytest.raises(GenerationError, match="not UTF-8"):
                generator.generate("solar")
        assert store.list_documents() == []

    def test_store_failure_wrapped(self, tmp_path: Path):
        blocker = tmp_path / "blocked"
        blocker.write_text("file")
        store = ArticleStore(blocker / "nested")
        generator = ArticleGenerator(_settings(), store, FakeClient())

        with pytest.raises(GenerationError, match="Could not save article"):
            generator.generate("solar")

    def test_garbage_reply_still_stored(self, store):
        article_id = ArticleGenerator(_settings(), store, FakeClient(reply="")).generate("solar")
        article = store.get_document(article_id)
        assert article.title.startswith("FAQ About ")
        assert "could not be generated" in article.html_body


class TestAuthorResolution:
    def test_display_name_match(self, store):
        jane = store.add_author("Jane Doe", login="jdoe")
        article_id = ArticleGenerator(
            _settings(author_name="Jane Doe"), store, FakeClient()
        ).generate("solar")
        assert store.get_document(article_id).author_id == jane.id

    def test_login_match(self, store):
        author = store.add_author("Someone Else", login="Jane Doe")
        article_id = ArticleGenerator(
            _settings(author_name="Jane <Doe>"), store, FakeClient()
        ).generate("solar")
        assert store.get_document(article_id).author_id == author.id

    def test_falls_back_to_current_user(self, store):
        store.set_current_user(42)
        article_id = ArticleGenerator(
            _settings(author_name="Nobody"), store, FakeClient()
        ).generate("solar")
        assert store.get_document(article_id).author_id == 42

    def test_no_author_configured(self, store):
        article_id = ArticleGenerator(_settings(), store, FakeClient()).generate("solar")
        assert store.get_document(article_id).author_id is None


class TestBuildRequest:
    def test_request_fields(self, store):
        generator = ArticleGenerator(
            _settings(content_type=ContentTypeKind.HOWTO), store, FakeClient()
        )
        request = generator.build_request("tea", api_key="sk-very-secret")
        assert request.topic == "tea"
        assert request.content_type == ContentTypeKind.HOWTO
        assert request.provider == ProviderId.GEMINI
        assert request.api_key.get_secret_value() == "sk-very-secret"
        assert "sk-very-secret" not in repr(request)
