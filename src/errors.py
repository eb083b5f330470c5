"""Error taxonomy for article generation.

Configuration, provider and persistence failures are terminal for the
current call and carry a human-readable reason. Response normalization
and schema derivation never raise; they degrade to a smaller result.
"""

from __future__ import annotations


class AIOverviewError(Exception):
    """Base error for the aioverview package."""


class ConfigError(AIOverviewError):
    """Raised when a provider or API key is missing or invalid."""


class NoApiKeyError(ConfigError):
    """Raised when no API key can be resolved for a provider."""

    def __init__(self, provider: str) -> None:
        self.provider = provider
        super().__init__(f"API key not configured for {provider}")


class ApiError(AIOverviewError):
    """Raised on transport failure, non-2xx status or malformed provider reply."""

    def __init__(self, reason: str, *, status: int | None = None) -> None:
        self.reason = reason
        self.status = status
        super().__init__(reason)


class PersistenceError(AIOverviewError):
    """Raised when the document store rejects a write."""


class GenerationError(AIOverviewError):
    """Raised when article generation fails after configuration was resolved."""
