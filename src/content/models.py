"""Document store models: pure Pydantic v2 data types.

An :class:`Article` is the persisted form of a generated post. Authors
and categories live beside articles in the same store so that
generation can resolve attribution and render time can build
breadcrumbs.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field


class ArticleStatus(StrEnum):
    """Publication status of an article."""

    DRAFT = "draft"
    PENDING = "pending"
    PUBLISH = "publish"
    PRIVATE = "private"


class Author(BaseModel):
    """A user who can be credited with an article."""

    id: int
    display_name: str
    login: str


class Category(BaseModel):
    """An article category."""

    id: int
    name: str
    slug: str


class CoverImage(BaseModel):
    """Featured image attached to an article."""

    url: str
    width: int | None = None
    height: int | None = None


class Article(BaseModel):
    """A persisted article with its generation metadata."""

    id: str
    slug: str
    title: str
    html_body: str
    status: ArticleStatus = ArticleStatus.DRAFT
    category_id: int | None = None
    tags: list[str] = Field(default_factory=list)
    author_id: int | None = None
    cover_image: CoverImage | None = None
    published_at: datetime
    modified_at: datetime
    metadata: dict[str, Any] = Field(default_factory=dict)
