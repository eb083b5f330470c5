"""Model provider clients.

One :class:`ModelProvider` per supported provider, registered in
:data:`PROVIDERS` and selected by :class:`ProviderId`. Calls go out as
JSON over ``urllib.request`` and are never retried; every failure
surfaces as :class:`ApiError`.
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from abc import ABC, abstractmethod
from typing import Any

from aioverview.errors import ApiError, ConfigError
from aioverview.generation.models import ProviderId

logger = logging.getLogger(__name__)

GENERATION_TIMEOUT = 120
TEST_TIMEOUT = 15

TEMPERATURE = 0.7
MAX_OUTPUT_TOKENS = 8000


def _post_json(
    url: str,
    payload: dict[str, Any],
    *,
    timeout: int,
    headers: dict[str, str] | None = None,
) -> tuple[int, dict[str, Any]]:
    """POST a JSON payload and return ``(status, decoded body)``.

    Raises:
        ApiError: On transport failure, non-2xx status or a body that is
            not a JSON object.
    """
    req = urllib.request.Request(
        url,
        data=json.dumps(payload).encode("utf-8"),
        method="POST",
        headers={"Content-Type": "application/json", **(headers or {})},
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = getattr(resp, "status", 200)
            raw = resp.read().decode("utf-8")
    except urllib.error.HTTPError as exc:
        raise ApiError(f"HTTP {exc.code}: {exc.reason}", status=exc.code) from exc
    except (urllib.error.URLError, http.client.HTTPException, TimeoutError, OSError) as exc:
        raise ApiError(f"Request failed: {exc}") from exc
    except UnicodeDecodeError as exc:
        raise ApiError(f"Response body is not UTF-8: {exc}") from exc

    if not 200 <= status < 300:
        raise ApiError(f"HTTP {status}", status=status)
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise ApiError(f"Response body is not JSON: {exc}", status=status) from exc
    if not isinstance(data, dict):
        raise ApiError("Response body is not a JSON object", status=status)
    return status, data


def _dig(data: Any, *path: str | int) -> Any:
    """Follow a key/index path, returning None at the first missing step."""
    for step in path:
        try:
            data = data[step]
        except (KeyError, IndexError, TypeError):
            return None
    return data


class ModelProvider(ABC):
    """A model provider reachable over HTTP."""

    name: str = ""

    @abstractmethod
    def generate(self, prompt: str, api_key: str, timeout: int) -> str:
        """Send a generation prompt and return the reply text."""

    @abstractmethod
    def ping(self, api_key: str, timeout: int) -> None:
        """Send a minimal request; raise :class:`ApiError` unless it succeeds."""


class GeminiProvider(ModelProvider):
    """Google Gemini ``generateContent`` endpoint."""

    name = "Gemini"
    base_url = "https://generativelanguage.googleapis.com/v1beta/models"

    def __init__(self, model: str = "gemini-2.0-flash-exp") -> None:
        self.model = model

    def _url(self, api_key: str) -> str:
        key = urllib.parse.quote(api_key, safe="")
        return f"{self.base_url}/{self.model}:generateContent?key={key}"

    def generate(self, prompt: str, api_key: str, timeout: int) -> str:
        payload = {
            "contents": [{"parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": TEMPERATURE,
                "maxOutputTokens": MAX_OUTPUT_TOKENS,
            },
        }
        _status, data = _post_json(self._url(api_key), payload, timeout=timeout)
        text = _dig(data, "candidates", 0, "content", "parts", 0, "text")
        if not isinstance(text, str):
            raise ApiError("Invalid response from Gemini API")
        return text

    def ping(self, api_key: str, timeout: int) -> None:
        payload = {
            "contents": [{"parts": [{"text": 'Say "test successful" if you can read this.'}]}],
        }
        _post_json(self._url(api_key), payload, timeout=timeout)


class OpenAIProvider(ModelProvider):
    """OpenAI chat completions endpoint."""

    name = "OpenAI"
    url = "https://api.openai.com/v1/chat/completions"

    def __init__(self, model: str = "gpt-4", test_model: str = "gpt-3.5-turbo") -> None:
        self.model = model
        self.test_model = test_model

    def generate(self, prompt: str, api_key: str, timeout: int) -> str:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": MAX_OUTPUT_TOKENS,
            "temperature": TEMPERATURE,
        }
        _status, data = _post_json(
            self.url, payload, timeout=timeout, headers={"Authorization": f"Bearer {api_key}"}
        )
        text = _dig(data, "choices", 0, "message", "content")
        if not isinstance(text, str):
            raise ApiError("Invalid response from OpenAI API")
        return text

    def ping(self, api_key: str, timeout: int) -> None:
        payload = {
            "model": self.test_model,
            "messages": [{"role": "user", "content": 'Say "test successful"'}],
            "max_tokens": 10,
        }
        _post_json(self.url, payload, timeout=timeout, headers={"Authorization": f"Bearer {api_key}"})


PROVIDERS: dict[ProviderId, ModelProvider] = {
    ProviderId.GEMINI: GeminiProvider(),
    ProviderId.OPENAI: OpenAIProvider(),
}


class ProviderClient:
    """Dispatches prompts to the provider registered for a :class:`ProviderId`."""

    def __init__(
        self,
        providers: dict[ProviderId, ModelProvider] | None = None,
        *,
        generation_timeout: int = GENERATION_TIMEOUT,
        test_timeout: int = TEST_TIMEOUT,
    ) -> None:
        self._providers = dict(PROVIDERS if providers is None else providers)
        self._generation_timeout = generation_timeout
        self._test_timeout = test_timeout

    def _resolve(self, provider: ProviderId | str) -> ModelProvider:
        try:
            return self._providers[ProviderId(provider)]
        except (ValueError, KeyError) as exc:
            raise ConfigError(f"Invalid provider: {provider}") from exc

    def generate_text(self, provider: ProviderId | str, api_key: str, prompt: str) -> str:
        """Send *prompt* and return the raw reply text.

        Raises:
            ConfigError: If the provider is not registered.
            ApiError: On any transport or response failure.
        """
        impl = self._resolve(provider)
        logger.debug("Requesting generation from %s (%d chars)", impl.name, len(prompt))
        try:
            return impl.generate(prompt, api_key, self._generation_timeout)
        except ApiError as exc:
            raise ApiError(f"{impl.name} request failed: {exc.reason}", status=exc.status) from exc

    def test_connection(self, provider: ProviderId | str, api_key: str) -> bool:
        """Check that *api_key* is accepted by the provider.

        Returns True for a 2xx reply and False for any API failure.

        Raises:
            ConfigError: If the provider is not registered.
        """
        impl = self._resolve(provider)
        try:
            impl.ping(api_key, self._test_timeout)
        except ApiError as exc:
            logger.warning("%s connection test failed: %s", impl.name, exc.reason)
            return False
        return True
