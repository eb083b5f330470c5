"""Content domain: persisted articles, authors, categories and the store.

Generation writes articles through the :class:`DocumentStore` contract;
render-time schema derivation reads them back through the same contract.
"""

from aioverview.content.models import (
    Article,
    ArticleStatus,
    Author,
    Category,
    CoverImage,
)
from aioverview.content.store import ArticleStore, DocumentStore

__all__ = [
    "Article",
    "ArticleStatus",
    "ArticleStore",
    "Author",
    "Category",
    "CoverImage",
    "DocumentStore",
]
