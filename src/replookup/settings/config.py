"""Configuration loader for replookup services using Pydantic settings."""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

ENV_VAR_NAME = "REPLOOKUP_ENV"
DEFAULT_ENV = "local"
PROJECT_ROOT = Path(__file__).resolve().parents[3]
CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_CONFIG_FILE = CONFIG_DIR / "settings.default.toml"
LOCAL_CONFIG_FILE = CONFIG_DIR / "settings.local.toml"
SETTINGS_FILE_ENV_VAR = "REPLOOKUP_SETTINGS_FILE"


def _resolve_env(explicit_env: str | None = None) -> str:
    """Return the active environment name.

    Args:
        explicit_env: Environment value supplied directly by the caller.

    Returns:
        A stripped environment name, falling back to ``DEFAULT_ENV``.
    """

    env = explicit_env or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV
    return env.strip()


def _env_file_candidates(env: str) -> list[Path]:
    """List candidate ``.env`` files used during settings resolution."""

    return [
        PROJECT_ROOT / ".env",
        PROJECT_ROOT / f".env.{env}",
        PROJECT_ROOT / ".env.local",
    ]


def _resolve_config_path(raw_path: str | None) -> Path | None:
    """Return an absolute config path from user input."""

    if not raw_path:
        return None
    candidate = Path(raw_path).expanduser()
    if not candidate.is_absolute():
        candidate = (PROJECT_ROOT / candidate).resolve()
    return candidate


def _config_file_priority(include_missing: bool = False) -> tuple[Path, ...]:
    """Return config files in descending precedence order."""

    ordered: list[Path] = []
    env_override = _resolve_config_path(os.getenv(SETTINGS_FILE_ENV_VAR))
    if env_override:
        ordered.append(env_override)
    ordered.append(LOCAL_CONFIG_FILE)
    ordered.append(DEFAULT_CONFIG_FILE)
    if include_missing:
        return tuple(ordered)
    return tuple(path for path in ordered if path.exists())


class TomlConfigSettingsSource(PydanticBaseSettingsSource):
    """Pydantic settings source that loads values from a TOML file."""

    def __init__(self, settings_cls: type[BaseSettings], path: Path) -> None:
        super().__init__(settings_cls)
        self.path = path
        self._data: dict[str, Any] | None = None

    def _load(self) -> dict[str, Any]:
        if self._data is not None:
            return self._data
        if not self.path.exists():
            self._data = {}
            return self._data
        try:
            with self.path.open("rb") as handle:
                self._data = tomllib.load(handle)
        except tomllib.TOMLDecodeError as exc:  # pragma: no cover - invalid files surface immediately
            raise ValueError(f"Invalid TOML syntax in {self.path}") from exc
        return self._data

    def __call__(self) -> dict[str, Any]:  # pragma: no cover - trivial wrapper
        return self._load()

    def get_field_value(self, field_name: str, field):  # pragma: no cover - passthrough helper
        data = self._load()
        return data.get(field_name), field_name in data


class RuntimeSettings(BaseSettings):
    """Process-level runtime controls."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    log_level: str = Field(
        default="INFO",
        validation_alias=AliasChoices("LOG_LEVEL", "RUNTIME__LOG_LEVEL"),
    )


class SourceSettings(BaseSettings):
    """Credentials and HTTP defaults for the upstream platform adapters."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    perplexity_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("PERPLEXITY_API_KEY", "SOURCES__PERPLEXITY_API_KEY"),
    )
    perplexity_model: str = Field(
        default="llama-3.1-sonar-small-128k-online",
        validation_alias=AliasChoices("PERPLEXITY_MODEL", "SOURCES__PERPLEXITY_MODEL"),
    )
    serpapi_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("SERP_API_KEY", "SOURCES__SERPAPI_API_KEY"),
    )
    youtube_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("YOUTUBE_API_KEY", "SOURCES__YOUTUBE_API_KEY"),
    )
    reddit_client_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("REDDIT_CLIENT_ID", "SOURCES__REDDIT_CLIENT_ID"),
    )
    reddit_client_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("REDDIT_CLIENT_SECRET", "SOURCES__REDDIT_CLIENT_SECRET"),
    )
    twitter_bearer_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("TWITTER_BEARER_TOKEN", "SOURCES__TWITTER_BEARER_TOKEN"),
    )
    github_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GITHUB_TOKEN", "SOURCES__GITHUB_TOKEN"),
    )
    linkedin_access_token: str | None = Field(
        default=None,
        validation_alias=AliasChoices("LINKEDIN_ACCESS_TOKEN", "SOURCES__LINKEDIN_ACCESS_TOKEN"),
    )
    user_agent: str = Field(
        default="ReputationLookup/1.0",
        validation_alias=AliasChoices("SOURCES_USER_AGENT", "SOURCES__USER_AGENT"),
    )
    request_timeout_seconds: float = Field(
        default=15.0,
        validation_alias=AliasChoices("SOURCES_REQUEST_TIMEOUT", "SOURCES__REQUEST_TIMEOUT_SECONDS"),
    )
    enabled: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("SOURCES_ENABLED", "SOURCES__ENABLED"),
    )


class RetrievalSettings(BaseSettings):
    """Fan-out controls for the retrieval orchestrator."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    adapter_timeout_seconds: float = Field(
        default=30.0,
        validation_alias=AliasChoices("RETRIEVAL_ADAPTER_TIMEOUT", "RETRIEVAL__ADAPTER_TIMEOUT_SECONDS"),
    )


class PhotoMatchingSettings(BaseSettings):
    """Thresholds for the approximate photo-identity matcher."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    min_confidence: float = Field(
        default=0.6,
        ge=0.0,
        le=1.0,
        validation_alias=AliasChoices("PHOTO_MIN_CONFIDENCE", "PHOTO_MATCHING__MIN_CONFIDENCE"),
    )
    max_matches: int = Field(
        default=10,
        ge=1,
        validation_alias=AliasChoices("PHOTO_MAX_MATCHES", "PHOTO_MATCHING__MAX_MATCHES"),
    )
    candidate_timeout_seconds: float = Field(
        default=20.0,
        validation_alias=AliasChoices("PHOTO_CANDIDATE_TIMEOUT", "PHOTO_MATCHING__CANDIDATE_TIMEOUT_SECONDS"),
    )
    max_image_bytes: int = Field(
        default=5 * 1024 * 1024,
        validation_alias=AliasChoices("PHOTO_MAX_IMAGE_BYTES", "PHOTO_MATCHING__MAX_IMAGE_BYTES"),
    )


class LLMSettings(BaseSettings):
    """Large language model provider settings."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    provider: Literal["ollama", "mock"] = Field(
        default="ollama",
        validation_alias=AliasChoices("LLM_PROVIDER", "LLM__PROVIDER"),
    )
    chat_model: str = Field(
        default="llama3",
        validation_alias=AliasChoices("LLM_CHAT_MODEL", "LLM__CHAT_MODEL"),
    )
    temperature: float = Field(
        default=0.3,
        validation_alias=AliasChoices("LLM_TEMPERATURE", "LLM__TEMPERATURE"),
    )
    ollama_base_url: str = Field(
        default="http://127.0.0.1:11434",
        validation_alias=AliasChoices("OLLAMA_BASE_URL", "LLM__OLLAMA_BASE_URL"),
    )
    call_timeout_seconds: float = Field(
        default=60.0,
        validation_alias=AliasChoices("LLM_CALL_TIMEOUT", "LLM__CALL_TIMEOUT_SECONDS"),
    )
    max_content_chars: int = Field(
        default=12000,
        validation_alias=AliasChoices("LLM_MAX_CONTENT_CHARS", "LLM__MAX_CONTENT_CHARS"),
    )


class StorageSettings(BaseSettings):
    """Retrieval session persistence configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    backend: Literal["none", "firestore"] = Field(
        default="none",
        validation_alias=AliasChoices("STORAGE_BACKEND", "STORAGE__BACKEND"),
    )
    firestore_project: str | None = Field(
        default=None,
        validation_alias=AliasChoices("FIRESTORE_PROJECT", "STORAGE__FIRESTORE__PROJECT"),
    )
    sessions_collection: str = Field(
        default="retrievalSessions",
        validation_alias=AliasChoices("STORAGE_SESSIONS_COLLECTION", "STORAGE__SESSIONS_COLLECTION"),
    )
    results_collection: str = Field(
        default="retrievalResults",
        validation_alias=AliasChoices("STORAGE_RESULTS_COLLECTION", "STORAGE__RESULTS_COLLECTION"),
    )


class ObservabilitySettings(BaseSettings):
    """Logging and metrics configuration."""

    model_config = SettingsConfigDict(extra="ignore", populate_by_name=True)

    structured_logging: bool = Field(
        default=True,
        validation_alias=AliasChoices("OBS_STRUCTURED_LOGGING", "OBSERVABILITY__STRUCTURED_LOGGING"),
    )
    statsd_host: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OBS_STATSD_HOST", "OBSERVABILITY__STATSD_HOST"),
    )
    statsd_port: int = Field(
        default=8125,
        validation_alias=AliasChoices("OBS_STATSD_PORT", "OBSERVABILITY__STATSD_PORT"),
    )
    statsd_prefix: str = Field(
        default="replookup",
        validation_alias=AliasChoices("OBS_STATSD_PREFIX", "OBSERVABILITY__STATSD_PREFIX"),
    )
    service_name: str = Field(
        default="replookup-api",
        validation_alias=AliasChoices("OBS_SERVICE_NAME", "OBSERVABILITY__SERVICE_NAME"),
    )


class Settings(BaseSettings):
    """Top-level configuration model with nested sections for each subsystem."""

    env: str = Field(
        default_factory=lambda: _resolve_env(),
        validation_alias=AliasChoices("ENV", "ENVIRONMENT", "RUNTIME__ENV"),
    )
    project_root: Path = Field(default=PROJECT_ROOT)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)
    sources: SourceSettings = Field(default_factory=SourceSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)
    photo_matching: PhotoMatchingSettings = Field(default_factory=PhotoMatchingSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    observability: ObservabilitySettings = Field(default_factory=ObservabilitySettings)
    env_files: tuple[Path, ...] = Field(default_factory=tuple, exclude=True)
    config_files: tuple[Path, ...] = Field(default_factory=tuple, exclude=True)

    model_config = SettingsConfigDict(
        env_prefix="REPLOOKUP_",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Extend settings sources with TOML-based config files."""

        config_sources = [TomlConfigSettingsSource(settings_cls, path) for path in _config_file_priority()]
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            *config_sources,
            file_secret_settings,
        )

    @model_validator(mode="after")
    def _apply_environment_overrides(self) -> "Settings":
        """Force environment-specific defaults after basic resolution."""

        if self.env.lower() == "local":
            storage_update = {"backend": "none", "firestore_project": None}
            object.__setattr__(self, "storage", self.storage.model_copy(update=storage_update))

            observability_update = {"structured_logging": False}
            object.__setattr__(self, "observability", self.observability.model_copy(update=observability_update))

        if self.sources.enabled:
            normalized = [name.strip().lower() for name in self.sources.enabled if name and name.strip()]
            object.__setattr__(self, "sources", self.sources.model_copy(update={"enabled": normalized}))

        return self

    @property
    def log_level(self) -> str:
        """str: Effective logging level for the running process."""

        return self.runtime.log_level

    @property
    def is_local(self) -> bool:
        """bool: True when the active environment is ``local``."""

        return self.env.lower() == "local"


def _load_settings(env: str | None = None) -> Settings:
    """Load settings with optional environment override.

    Args:
        env: Environment name supplied programmatically.

    Returns:
        Fully parsed :class:`Settings` instance with env files applied.
    """

    resolved_env = _resolve_env(env)
    candidate_files = [path for path in _env_file_candidates(resolved_env) if path.exists()]
    config_files = _config_file_priority()
    return Settings(
        _env_file=[str(path) for path in candidate_files],
        _env_file_encoding="utf-8",
        env=resolved_env,
        env_files=tuple(candidate_files),
        config_files=config_files,
    )


@lru_cache(maxsize=1)
def get_settings(env: str | None = None) -> Settings:
    """Return cached settings for the requested environment."""

    return _load_settings(env)


def reload_settings(env: str | None = None) -> Settings:
    """Clear the cached settings and reload from disk."""

    get_settings.cache_clear()
    return get_settings(env)


__all__ = [
    "Settings",
    "get_settings",
    "reload_settings",
    "PROJECT_ROOT",
    "ENV_VAR_NAME",
]
