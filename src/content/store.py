"""Document store for generated articles.

:class:`DocumentStore` is the contract generation and schema rendering
rely on. :class:`ArticleStore` implements it on a single JSON file,
loaded on init and saved after every write.
"""

from __future__ import annotations

import json
import logging
import re
import uuid
from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import Any

from aioverview.content.models import Article, ArticleStatus, Author, Category
from aioverview.errors import PersistenceError
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

STORE_FILENAME = ".aioverview-store.json"

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_SLUG_DASH_RE = re.compile(r"[\s-]+")
_LOGIN_STRIP_RE = re.compile(r"[^A-Za-z0-9 _.@-]")


def slugify(text: str) -> str:
    """Lowercase, drop punctuation and join words with dashes."""
    slug = _SLUG_STRIP_RE.sub("", text.lower())
    return _SLUG_DASH_RE.sub("-", slug).strip("-")


def sanitize_login(name: str) -> str:
    """Reduce a display name to the characters allowed in a login."""
    login = _LOGIN_STRIP_RE.sub("", name)
    return " ".join(login.split())


class DocumentStore(ABC):
    """Storage contract for articles, metadata, authors and categories."""

    @abstractmethod
    def create_document(self, fields: dict[str, Any]) -> str:
        """Persist a new article and return its id.

        Raises:
            PersistenceError: If the store rejects the write.
        """

    @abstractmethod
    def get_document(self, article_id: str) -> Article | None:
        """Return an article, or None if it does not exist."""

    @abstractmethod
    def get_metadata(self, article_id: str, key: str) -> Any:
        """Return one metadata value, or None."""

    @abstractmethod
    def set_metadata(self, article_id: str, key: str, value: Any) -> None:
        """Set one metadata value."""

    @abstractmethod
    def find_author(self, *, display_name: str = "", login: str = "") -> Author | None:
        """Look up an author by display name or login."""

    @abstractmethod
    def resolve_category(self, value: int | str | None) -> Category | None:
        """Resolve a category by id or name."""

    @abstractmethod
    def current_user_id(self) -> int | None:
        """Id of the acting user, used when no author matches."""

    @abstractmethod
    def permalink(self, article: Article) -> str:
        """Canonical URL of an article."""

    @abstractmethod
    def category_link(self, category: Category) -> str:
        """Archive URL of a category."""


class _StoreData(BaseModel):
    """Internal wrapper for JSON serialization."""

    articles: list[Article] = Field(default_factory=list)
    authors: list[Author] = Field(default_factory=list)
    categories: list[Category] = Field(default_factory=list)
    current_user_id: int | None = None


class ArticleStore(DocumentStore):
    """JSON-backed :class:`DocumentStore`."""

    def __init__(self, directory: Path, *, home_url: str = "http://localhost") -> None:
        self._path = Path(directory) / STORE_FILENAME
        self._home_url = home_url.rstrip("/")
        self._data = self._load()

    # ── Private helpers ──────────────────────────────────────────

    def _load(self) -> _StoreData:
        if not self._path.exists():
            return _StoreData()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
            return _StoreData.model_validate(raw)
        except (json.JSONDecodeError, ValueError, KeyError):
            logger.warning("Corrupt article store at %s, starting fresh", self._path)
            return _StoreData()

    def _save(self) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(self._data.model_dump_json(indent=2), encoding="utf-8")
        except OSError as exc:
            raise PersistenceError(f"Could not write {self._path}: {exc}") from exc

    def _find(self, article_id: str) -> Article | None:
        for article in self._data.articles:
            if article.id == article_id:
                return article
        return None

    def _require(self, article_id: str) -> Article:
        article = self._find(article_id)
        if article is None:
            raise KeyError(article_id)
        return article

    def _unique_slug(self, title: str) -> str:
        base = slugify(title) or "article"
        taken = {a.slug for a in self._data.articles}
        slug, n = base, 2
        while slug in taken:
            slug = f"{base}-{n}"
            n += 1
        return slug

    # ── Write operations ─────────────────────────────────────────

    def create_document(self, fields: dict[str, Any]) -> str:
        title = str(fields.get("title") or "").strip()
        if not title:
            raise PersistenceError("Article title is required")

        now = datetime.now().astimezone()
        category = self.resolve_category(fields.get("category"))
        try:
            article = Article(
                id=uuid.uuid4().hex[:12],
                slug=self._unique_slug(title),
                title=title,
                html_body=fields.get("html_body", ""),
                status=ArticleStatus(fields.get("status") or ArticleStatus.DRAFT),
                category_id=category.id if category else None,
                tags=list(fields.get("tags") or []),
                author_id=fields.get("author_id"),
                cover_image=fields.get("cover_image"),
                published_at=now,
                modified_at=now,
                metadata=dict(fields.get("metadata") or {}),
            )
        except (ValidationError, ValueError) as exc:
            raise PersistenceError(f"Invalid article fields: {exc}") from exc

        self._data.articles.append(article)
        try:
            self._save()
        except PersistenceError:
            self._data.articles.remove(article)
            raise
        logger.info("Stored article %s (%s)", article.id, article.slug)
        return article.id

    def set_metadata(self, article_id: str, key: str, value: Any) -> None:
        """Set one metadata value.

        Raises KeyError if the article does not exist.
        """
        article = self._require(article_id)
        article.metadata[key] = value
        article.modified_at = datetime.now().astimezone()
        self._save()

    def add_author(self, display_name: str, login: str = "") -> Author:
        """Register an author, deriving the login from the display name."""
        author = Author(
            id=max((a.id for a in self._data.authors), default=0) + 1,
            display_name=display_name,
            login=login or sanitize_login(display_name),
        )
        self._data.authors.append(author)
        self._save()
        return author

    def add_category(self, name: str, slug: str = "") -> Category:
        """Register a category."""
        category = Category(
            id=max((c.id for c in self._data.categories), default=0) + 1,
            name=name,
            slug=slug or slugify(name),
        )
        self._data.categories.append(category)
        self._save()
        return category

    def set_current_user(self, author_id: int | None) -> None:
        self._data.current_user_id = author_id
        self._save()

    # ── Read operations ──────────────────────────────────────────

    def get_document(self, article_id: str) -> Article | None:
        return self._find(article_id)

    def get_metadata(self, article_id: str, key: str) -> Any:
        article = self._find(article_id)
        if article is None:
            return None
        return article.metadata.get(key)

    def list_documents(self) -> list[Article]:
        return list(self._data.articles)

    def find_author(self, *, display_name: str = "", login: str = "") -> Author | None:
        if display_name:
            for author in self._data.authors:
                if author.display_name == display_name:
                    return author
        if login:
            for author in self._data.authors:
                if author.login == login:
                    return author
        return None

    def get_author(self, author_id: int | None) -> Author | None:
        for author in self._data.authors:
            if author.id == author_id:
                return author
        return None

    def resolve_category(self, value: int | str | None) -> Category | None:
        if value is None or value == "":
            return None
        text = str(value).strip()
        for category in self._data.categories:
            if text.isdigit() and category.id == int(text):
                return category
            if category.name == text or category.slug == text:
                return category
        return None

    def current_user_id(self) -> int | None:
        return self._data.current_user_id

    def permalink(self, article: Article) -> str:
        return f"{self._home_url}/{article.slug}/"

    def category_link(self, category: Category) -> str:
        return f"{self._home_url}/category/{category.slug}/"
