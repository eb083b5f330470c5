"""Unified configuration loaded from .aioverview.toml, env vars, and CLI flags.

Loading order: defaults → TOML file → env vars → CLI flags. The loaded
:class:`AIOverviewConfig` is converted into immutable snapshots
(:class:`GeneratorSettings`, :class:`SiteSettings`) that are passed into
generation and schema derivation at call time.
"""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path

from aioverview.content.models import ArticleStatus
from aioverview.errors import ConfigError
from aioverview.generation.models import ContentTypeKind, ProviderId, SchemaKind
from aioverview.llm import GeminiProvider, OpenAIProvider, ProviderClient
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator

logger = logging.getLogger(__name__)

CONFIG_FILENAME = ".aioverview.toml"
CONFIG_SEARCH_PATHS = [
    Path("."),
]
GLOBAL_CONFIG_PATH = Path.home() / ".config" / "aioverview" / "config.toml"


class ProviderSectionConfig(BaseModel):
    """[provider] section."""

    name: str = "gemini"
    gemini_key: str = ""
    openai_key: str = ""
    gemini_model: str = "gemini-2.0-flash-exp"
    openai_model: str = "gpt-4"
    openai_test_model: str = "gpt-3.5-turbo"
    generation_timeout: int = 120
    test_timeout: int = 15


class GenerationSectionConfig(BaseModel):
    """[generation] section."""

    post_status: ArticleStatus = ArticleStatus.DRAFT
    content_type: str = "faq"
    category: str = "1"
    author_name: str = ""
    schema_types: list[str] = Field(default_factory=lambda: ["faq"])

    @field_validator("post_status", mode="before")
    @classmethod
    def _status_lowercase(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("category", mode="before")
    @classmethod
    def _category_as_text(cls, value: object) -> object:
        return str(value) if isinstance(value, int) else value


class SiteSectionConfig(BaseModel):
    """[site] section: identity used in publisher and breadcrumb markup."""

    name: str = ""
    home_url: str = "http://localhost"
    site_icon_url: str = ""
    custom_logo_url: str = ""
    template: str = "default"


class StoreSectionConfig(BaseModel):
    """[store] section."""

    directory: str = "."


class GeneratorSettings(BaseModel):
    """Immutable snapshot of everything article generation reads."""

    model_config = ConfigDict(frozen=True)

    provider: ProviderId = ProviderId.GEMINI
    api_keys: dict[ProviderId, SecretStr] = Field(default_factory=dict)
    content_type: ContentTypeKind = ContentTypeKind.FAQ
    post_status: ArticleStatus = ArticleStatus.DRAFT
    category: str = "1"
    author_name: str = ""
    publisher_name: str = ""
    publisher_logo: str = ""
    schema_types: tuple[SchemaKind, ...] = (SchemaKind.FAQ,)

    def stored_key(self, provider: ProviderId) -> str:
        """Return the configured key for *provider*, or an empty string."""
        secret = self.api_keys.get(provider)
        return secret.get_secret_value() if secret else ""


class SiteSettings(BaseModel):
    """Immutable snapshot of site identity for structured data."""

    model_config = ConfigDict(frozen=True)

    name: str = ""
    home_url: str = "http://localhost"
    site_icon_url: str = ""
    custom_logo_url: str = ""
    template: str = "default"

    @property
    def logo_url(self) -> str:
        """Site icon, then custom logo, then the theme's default logo path."""
        if self.site_icon_url:
            return self.site_icon_url
        if self.custom_logo_url:
            return self.custom_logo_url
        return f"{self.home_url.rstrip('/')}/wp-content/themes/{self.template}/images/logo.png"


class AIOverviewConfig(BaseModel):
    """Top-level configuration model."""

    provider: ProviderSectionConfig = Field(default_factory=ProviderSectionConfig)
    generation: GenerationSectionConfig = Field(default_factory=GenerationSectionConfig)
    site: SiteSectionConfig = Field(default_factory=SiteSectionConfig)
    store: StoreSectionConfig = Field(default_factory=StoreSectionConfig)

    def to_generator_settings(self) -> GeneratorSettings:
        """Snapshot the generation options.

        Unknown schema kinds are dropped with a warning; unknown content
        types fall back to the generic template.
        """
        kinds: list[SchemaKind] = []
        for value in self.generation.schema_types:
            try:
                kinds.append(SchemaKind(value))
            except ValueError:
                logger.warning("Ignoring unknown schema type %r", value)

        keys = {
            ProviderId.GEMINI: SecretStr(self.provider.gemini_key),
            ProviderId.OPENAI: SecretStr(self.provider.openai_key),
        }
        try:
            provider = ProviderId(self.provider.name.strip().lower())
        except ValueError as exc:
            raise ConfigError(f"Invalid provider: {self.provider.name}") from exc

        return GeneratorSettings(
            provider=provider,
            api_keys={k: v for k, v in keys.items() if v.get_secret_value()},
            content_type=ContentTypeKind.resolve(self.generation.content_type),
            post_status=self.generation.post_status,
            category=self.generation.category,
            author_name=self.generation.author_name or self.site.name,
            publisher_name=self.site.name,
            publisher_logo=self.to_site_settings().logo_url,
            schema_types=tuple(kinds),
        )

    def to_site_settings(self) -> SiteSettings:
        return SiteSettings(**self.site.model_dump())

    def to_provider_client(self) -> ProviderClient:
        """Build a ProviderClient wired with the configured models and timeouts."""
        return ProviderClient(
            {
                ProviderId.GEMINI: GeminiProvider(model=self.provider.gemini_model),
                ProviderId.OPENAI: OpenAIProvider(
                    model=self.provider.openai_model,
                    test_model=self.provider.openai_test_model,
                ),
            },
            generation_timeout=self.provider.generation_timeout,
            test_timeout=self.provider.test_timeout,
        )


def load_config(path: str | Path | None = None) -> AIOverviewConfig:
    """Load configuration from a TOML file.

    Search order:
    1. Explicit path (if provided)
    2. .aioverview.toml in CWD
    3. ~/.config/aioverview/config.toml

    Then overlay environment variables.

    Args:
        path: Explicit path to a TOML file.

    Returns:
        Merged AIOverviewConfig.
    """
    data: dict[str, object] = {}

    if path is not None:
        toml_path = Path(path)
        if toml_path.exists():
            data = _load_toml(toml_path)
        else:
            logger.warning("Config file not found: %s", toml_path)
    else:
        for search_dir in CONFIG_SEARCH_PATHS:
            candidate = search_dir / CONFIG_FILENAME
            if candidate.exists():
                data = _load_toml(candidate)
                logger.info("Loaded config from %s", candidate)
                break
        if not data and GLOBAL_CONFIG_PATH.exists():
            data = _load_toml(GLOBAL_CONFIG_PATH)
            logger.info("Loaded config from %s", GLOBAL_CONFIG_PATH)

    config = _validate(data) if data else AIOverviewConfig()
    return _apply_env_vars(config)


def merge_cli_overrides(config: AIOverviewConfig, **cli_kwargs: object) -> AIOverviewConfig:
    """Overlay explicitly-set CLI flags onto the config.

    Only overrides values where the CLI flag was explicitly provided
    (i.e., not None).
    """
    data = config.model_dump()

    mapping: dict[str, tuple[str, str]] = {
        "provider": ("provider", "name"),
        "content_type": ("generation", "content_type"),
        "post_status": ("generation", "post_status"),
        "category": ("generation", "category"),
        "author_name": ("generation", "author_name"),
        "schema_types": ("generation", "schema_types"),
        "store_dir": ("store", "directory"),
    }

    for key, value in cli_kwargs.items():
        if value is None or key not in mapping:
            continue
        section, field = mapping[key]
        data[section][field] = value

    return _validate(data)


def _validate(data: dict[str, object]) -> AIOverviewConfig:
    try:
        return AIOverviewConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc


def _load_toml(path: Path) -> dict[str, object]:
    """Load a TOML file and return the data dict."""
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (tomllib.TOMLDecodeError, OSError) as exc:
        logger.warning("Failed to parse %s: %s", path, exc)
        return {}


def _apply_env_vars(config: AIOverviewConfig) -> AIOverviewConfig:
    """Apply environment variable overrides to config."""
    data = config.model_dump()

    env_mapping: dict[str, tuple[str, str]] = {
        "AIO_PROVIDER": ("provider", "name"),
        "GEMINI_API_KEY": ("provider", "gemini_key"),
        "OPENAI_API_KEY": ("provider", "openai_key"),
        "AIO_POST_STATUS": ("generation", "post_status"),
        "AIO_CONTENT_TYPE": ("generation", "content_type"),
        "AIO_CATEGORY": ("generation", "category"),
        "AIO_AUTHOR_NAME": ("generation", "author_name"),
        "AIO_STORE_DIR": ("store", "directory"),
        "AIO_SITE_URL": ("site", "home_url"),
        "AIO_SITE_NAME": ("site", "name"),
    }

    for env_var, (section, field) in env_mapping.items():
        value = os.environ.get(env_var)
        if value is not None:
            data[section][field] = value

    schema_raw = os.environ.get("AIO_SCHEMA_TYPES")
    if schema_raw is not None:
        data["generation"]["schema_types"] = [
            s.strip() for s in schema_raw.split(",") if s.strip()
        ]

    return _validate(data)
