"""Article generation: prompt → provider → normalizer → document store."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Any

from aioverview.content.store import DocumentStore, sanitize_login
from aioverview.errors import (
    ApiError,
    ConfigError,
    GenerationError,
    NoApiKeyError,
    PersistenceError,
)
from aioverview.generation.models import (
    META_AUTHOR_NAME,
    META_CONTENT_TYPE,
    META_GENERATED,
    META_GENERATION_DATE,
    META_PROVIDER,
    META_SCHEMA_TYPES,
    META_STRUCTURED_DATA,
    META_TOPIC,
    GenerationRequest,
    NormalizedContent,
    ProviderId,
)
from aioverview.generation.normalizer import ResponseNormalizer
from aioverview.generation.prompts import build_prompt

if TYPE_CHECKING:
    from aioverview.config import GeneratorSettings
    from aioverview.llm import ProviderClient

logger = logging.getLogger(__name__)


class ArticleGenerator:
    """Generates one article per call and persists it with its metadata."""

    def __init__(
        self,
        settings: GeneratorSettings,
        store: DocumentStore,
        client: ProviderClient,
        normalizer: ResponseNormalizer | None = None,
    ) -> None:
        self._settings = settings
        self._store = store
        self._client = client
        self._normalizer = normalizer or ResponseNormalizer(
            author_name=settings.author_name,
            publisher_name=settings.publisher_name,
            publisher_logo=settings.publisher_logo,
        )

    def build_request(
        self,
        topic: str,
        provider: ProviderId | str | None = None,
        api_key: str | None = None,
    ) -> GenerationRequest:
        """Resolve provider and API key for *topic*.

        The key comes from the call, then from the provider's stored key.

        Raises:
            ConfigError: If the provider is unknown.
            NoApiKeyError: If no key can be found for the provider.
        """
        resolved = self._resolve_provider(provider)
        key = (api_key or "").strip() or self._settings.stored_key(resolved)
        if not key:
            raise NoApiKeyError(resolved.value)
        return GenerationRequest(
            topic=topic,
            content_type=self._settings.content_type,
            provider=resolved,
            api_key=key,
        )

    def generate(
        self,
        topic: str,
        provider: ProviderId | str | None = None,
        api_key: str | None = None,
    ) -> str:
        """Generate and store an article about *topic*.

        Args:
            topic: Article topic.
            provider: Optional provider override.
            api_key: Optional call-time API key.

        Returns:
            Id of the created article.

        Raises:
            ConfigError: If the provider is unknown.
            NoApiKeyError: If no key can be found for the provider.
            GenerationError: If the provider call or the store write fails.
        """
        request = self.build_request(topic, provider, api_key)
        logger.info(
            "Generating %s article about %r via %s",
            request.content_type.value,
            topic,
            request.provider.value,
        )

        prompt = build_prompt(request.topic, request.content_type)
        try:
            raw = self._client.generate_text(
                request.provider, request.api_key.get_secret_value(), prompt
            )
        except ApiError as exc:
            raise GenerationError(f"Content generation failed: {exc.reason}") from exc

        content = self._normalizer.normalize(raw, request.content_type)
        fields = self._document_fields(request, content)
        try:
            article_id = self._store.create_document(fields)
        except PersistenceError as exc:
            raise GenerationError(f"Could not save article: {exc}") from exc

        logger.info("Created article %s: %s", article_id, content.title)
        return article_id

    def _resolve_provider(self, provider: ProviderId | str | None) -> ProviderId:
        if provider is None or provider == "":
            return self._settings.provider
        try:
            return ProviderId(str(provider).strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Invalid provider: {provider}") from exc

    def _resolve_author_id(self) -> int | None:
        name = self._settings.author_name
        author = None
        if name:
            author = self._store.find_author(display_name=name)
            if author is None:
                author = self._store.find_author(login=sanitize_login(name))
        if author is not None:
            return author.id
        return self._store.current_user_id()

    def _document_fields(
        self, request: GenerationRequest, content: NormalizedContent
    ) -> dict[str, Any]:
        metadata: dict[str, Any] = {
            META_GENERATED: True,
            META_TOPIC: " ".join(request.topic.split()),
            META_CONTENT_TYPE: request.content_type.value,
            META_PROVIDER: request.provider.value,
            META_SCHEMA_TYPES: [kind.value for kind in self._settings.schema_types],
            META_GENERATION_DATE: datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
            META_AUTHOR_NAME: self._settings.author_name,
        }
        if content.structured_hints:
            metadata[META_STRUCTURED_DATA] = content.structured_hints

        return {
            "title": content.title,
            "html_body": content.html_body,
            "status": self._settings.post_status,
            "category": self._settings.category,
            "author_id": self._resolve_author_id(),
            "metadata": metadata,
        }
