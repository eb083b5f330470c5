"""Tests for ArticleStore: JSON-backed document store."""

import json
from pathlib import Path

import pytest
from aioverview.content.models import ArticleStatus, CoverImage
from aioverview.content.store import STORE_FILENAME, ArticleStore, sanitize_login, slugify
from aioverview.errors import PersistenceError


def _fields(title: str = "Test Article", **kwargs: object) -> dict:
    """Helper to build create_document fields with sensible defaults."""
    fields = {
        "title": title,
        "html_body": "<p>Body</p>",
        "status": "draft",
        "metadata": {"ai_overview_generated": True},
    }
    fields.update(kwargs)
    return fields


class TestHelpers:
    def test_slugify(self):
        assert slugify("What Is Solar Power? A Guide!") == "what-is-solar-power-a-guide"

    def test_slugify_collapses_dashes(self):
        assert slugify("  A -- B  ") == "a-b"

    def test_sanitize_login(self):
        assert sanitize_login("Jane <O'Neil>  Doe!") == "Jane ONeil Doe"

    def test_sanitize_login_keeps_allowed(self):
        assert sanitize_login("jane.doe@example_1-x") == "jane.doe@example_1-x"


class TestCreateDocument:
    def test_creates_article(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        article_id = store.create_document(_fields())

        article = store.get_document(article_id)
        assert article is not None
        assert article.title == "Test Article"
        assert article.slug == "test-article"
        assert article.status == ArticleStatus.DRAFT
        assert article.metadata == {"ai_overview_generated": True}
        assert article.published_at == article.modified_at

    def test_persists_to_disk(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        article_id = store.create_document(_fields())

        assert (tmp_path / STORE_FILENAME).exists()
        reloaded = ArticleStore(tmp_path)
        assert reloaded.get_document(article_id).title == "Test Article"

    def test_unique_slugs(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        first = store.create_document(_fields("Same Title"))
        second = store.create_document(_fields("Same Title"))
        assert store.get_document(first).slug == "same-title"
        assert store.get_document(second).slug == "same-title-2"

    def test_missing_title_rejected(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        with pytest.raises(PersistenceError, match="title"):
            store.create_document(_fields("   "))
        assert store.list_documents() == []

    def test_invalid_status_rejected(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        with pytest.raises(PersistenceError):
            store.create_document(_fields(status="archived"))

    def test_category_resolved_by_id_and_name(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        category = store.add_category("Energy")

        by_id = store.create_document(_fields(category=str(category.id)))
        by_name = store.create_document(_fields(category="Energy"))
        unknown = store.create_document(_fields(category="Nope"))

        assert store.get_document(by_id).category_id == category.id
        assert store.get_document(by_name).category_id == category.id
        assert store.get_document(unknown).category_id is None

    def test_cover_image(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        cover = CoverImage(url="https://example.com/a.jpg", width=800, height=600)
        article_id = store.create_document(_fields(cover_image=cover))
        assert store.get_document(article_id).cover_image == cover

    def test_write_failure_rolls_back(self, tmp_path: Path):
        blocker = tmp_path / "blocked"
        blocker.write_text("not a directory")
        store = ArticleStore(blocker / "nested")

        with pytest.raises(PersistenceError):
            store.create_document(_fields())
        assert store.list_documents() == []


class TestMetadata:
    def test_get_and_set(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        article_id = store.create_document(_fields())

        store.set_metadata(article_id, "ai_overview_topic", "tea")
        assert store.get_metadata(article_id, "ai_overview_topic") == "tea"
        assert ArticleStore(tmp_path).get_metadata(article_id, "ai_overview_topic") == "tea"

    def test_missing_key_is_none(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        article_id = store.create_document(_fields())
        assert store.get_metadata(article_id, "absent") is None
        assert store.get_metadata("no-such-id", "absent") is None

    def test_set_on_missing_article(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        with pytest.raises(KeyError):
            store.set_metadata("no-such-id", "k", "v")


class TestAuthors:
    def test_find_by_display_name(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        jane = store.add_author("Jane Doe")
        assert store.find_author(display_name="Jane Doe") == jane
        assert store.find_author(display_name="jane doe") is None

    def test_find_by_login(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        bob = store.add_author("Robert", login="bob")
        assert store.find_author(login="bob") == bob

    def test_display_name_wins_over_login(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        store.add_author("Someone", login="Alex")
        alex = store.add_author("Alex", login="alex2")
        assert store.find_author(display_name="Alex", login="Alex") == alex

    def test_ids_increment(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        assert store.add_author("A").id == 1
        assert store.add_author("B").id == 2

    def test_current_user(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        assert store.current_user_id() is None
        store.set_current_user(3)
        assert ArticleStore(tmp_path).current_user_id() == 3


class TestLinks:
    def test_permalink(self, tmp_path: Path):
        store = ArticleStore(tmp_path, home_url="https://example.com/")
        article = store.get_document(store.create_document(_fields("Hello World")))
        assert store.permalink(article) == "https://example.com/hello-world/"

    def test_category_link(self, tmp_path: Path):
        store = ArticleStore(tmp_path, home_url="https://example.com")
        category = store.add_category("Green Energy")
        assert store.category_link(category) == "https://example.com/category/green-energy/"

    def test_resolve_category_by_slug(self, tmp_path: Path):
        store = ArticleStore(tmp_path)
        category = store.add_category("Green Energy")
        assert store.resolve_category("green-energy") == category
        assert store.resolve_category(category.id) == category
        assert store.resolve_category(None) is None


class TestLoad:
    def test_corrupt_file_starts_fresh(self, tmp_path: Path):
        (tmp_path / STORE_FILENAME).write_text("{not json")
        store = ArticleStore(tmp_path)
        assert store.list_documents() == []

    def test_reads_existing_file(self, tmp_path: Path):
        (tmp_path / STORE_FILENAME).write_text(
            json.dumps({"categories": [{"id": 5, "name": "News", "slug": "news"}]})
        )
        store = ArticleStore(tmp_path)
        assert store.resolve_category("5").name == "News"
