"""Pydantic models and helper utilities for configuration values."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    ValidationError,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from lexiweave import logging_manager

from .constants import (
    DEFAULT_BATCH_DELAY_SECONDS,
    DEFAULT_BATCH_SIZE,
    DEFAULT_DATA_RELATIVE,
    DEFAULT_DENSITY,
    DEFAULT_FREQUENCY_MAX_WORDS,
    DEFAULT_MAX_WORD_LENGTH,
    DEFAULT_MIN_WORD_LENGTH,
    DEFAULT_MIN_WORD_SPACING,
    DEFAULT_PROVIDER_TIMEOUT_SECONDS,
    DEFAULT_SOURCE_LANGUAGE,
    DEFAULT_TARGET_LANGUAGE,
    DEFAULT_TRANSLATION_CACHE_SIZE,
    DEFAULT_UNRANKED_RANK,
)

logger = logging_manager.get_logger().getChild("config")

VALID_PROFICIENCY_LEVELS = ("beginner", "intermediate", "advanced")
VALID_SELECTION_STRATEGIES = ("random", "frequency", "distributed")


class ProviderSettings(BaseModel):
    """Configuration of one translation provider in the fallback chain."""

    model_config = ConfigDict(extra="ignore")

    name: str
    enabled: bool = True
    base_url: Optional[str] = None
    mirrors: List[str] = Field(default_factory=list)
    api_key: Optional[SecretStr] = None
    rate_limit_per_minute: Optional[int] = Field(default=None, ge=1)
    timeout_seconds: float = Field(default=DEFAULT_PROVIDER_TIMEOUT_SECONDS, gt=0)


def _default_providers() -> List[ProviderSettings]:
    return [
        ProviderSettings(name="libretranslate"),
        ProviderSettings(name="mymemory"),
        ProviderSettings(name="lingva"),
    ]


class LexiweaveSettings(BaseModel):
    """Typed representation of the application configuration."""

    model_config = ConfigDict(extra="allow")

    source_language: str = DEFAULT_SOURCE_LANGUAGE
    target_language: str = DEFAULT_TARGET_LANGUAGE
    proficiency_level: str = "beginner"
    density: float = Field(default=DEFAULT_DENSITY, ge=0.0, le=1.0)
    min_word_spacing: int = Field(default=DEFAULT_MIN_WORD_SPACING, ge=0)
    selection_strategy: str = "distributed"
    exclude_words: List[str] = Field(default_factory=list)
    preferred_parts_of_speech: List[str] = Field(default_factory=list)
    min_word_length: int = Field(default=DEFAULT_MIN_WORD_LENGTH, ge=1)
    max_word_length: int = Field(default=DEFAULT_MAX_WORD_LENGTH, ge=1)
    data_dir: str = str(DEFAULT_DATA_RELATIVE)
    dictionary_path: Optional[str] = None
    translation_cache_dir: Optional[str] = None
    frequency_cache_dir: Optional[str] = None
    translation_cache_size: int = Field(default=DEFAULT_TRANSLATION_CACHE_SIZE, ge=1)
    translation_batch_size: int = Field(default=DEFAULT_BATCH_SIZE, ge=1)
    translation_batch_delay_seconds: float = Field(default=DEFAULT_BATCH_DELAY_SECONDS, ge=0)
    unranked_proficiency: str = "intermediate"
    unranked_frequency_rank: int = Field(default=DEFAULT_UNRANKED_RANK, ge=1)
    frequency_max_words: int = Field(default=DEFAULT_FREQUENCY_MAX_WORDS, ge=1)
    frequency_timeout_seconds: float = Field(default=15.0, gt=0)
    providers: List[ProviderSettings] = Field(default_factory=_default_providers)
    log_level: str = "INFO"
    debug: bool = False

    @field_validator("proficiency_level", "unranked_proficiency")
    @classmethod
    def _check_proficiency(cls, value: str) -> str:
        normalized = str(value).strip().lower()
        if normalized not in VALID_PROFICIENCY_LEVELS:
            raise ValueError(f"unknown proficiency level {value!r}")
        return normalized

    @field_validator("selection_strategy")
    @classmethod
    def _check_strategy(cls, value: str) -> str:
        normalized = str(value).strip().lower()
        if normalized not in VALID_SELECTION_STRATEGIES:
            raise ValueError(f"unknown selection strategy {value!r}")
        return normalized

    @field_validator("source_language", "target_language")
    @classmethod
    def _check_language(cls, value: str) -> str:
        normalized = str(value).strip().lower()
        if not normalized:
            raise ValueError("language code must not be empty")
        return normalized

    def provider(self, name: str) -> Optional[ProviderSettings]:
        for entry in self.providers:
            if entry.name == name:
                return entry
        return None


class EnvironmentOverrides(BaseSettings):
    """Configuration overrides sourced from environment variables."""

    model_config = SettingsConfigDict(env_prefix="", extra="ignore")

    source_language: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_SOURCE_LANGUAGE")
    )
    target_language: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_TARGET_LANGUAGE")
    )
    proficiency_level: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("LEXIWEAVE_PROFICIENCY", "LEXIWEAVE_PROFICIENCY_LEVEL"),
    )
    density: Optional[float] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_DENSITY")
    )
    selection_strategy: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_STRATEGY")
    )
    data_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_DATA_DIR")
    )
    dictionary_path: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_DICTIONARY_PATH")
    )
    translation_cache_dir: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_TRANSLATION_CACHE_DIR")
    )
    log_level: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_LOG_LEVEL", "LOG_LEVEL")
    )
    libretranslate_api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("LIBRETRANSLATE_API_KEY", "LEXIWEAVE_LIBRETRANSLATE_API_KEY"),
    )
    mymemory_email: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("LEXIWEAVE_MYMEMORY_EMAIL")
    )


def load_environment_overrides() -> Dict[str, Any]:
    """Return configuration overrides sourced from environment variables."""

    try:
        overrides = EnvironmentOverrides()
    except ValidationError as exc:
        logger.warning(
            "Invalid environment configuration detected; using defaults.",
            extra={
                "event": "config.env.validation_error",
                "error": str(exc),
                "console_suppress": True,
            },
        )
        return {}
    return overrides.model_dump(exclude_none=True)


def apply_settings_updates(
    settings: LexiweaveSettings, updates: Dict[str, Any]
) -> LexiweaveSettings:
    """Return a copy of ``settings`` revalidated with ``updates`` applied."""

    if not updates:
        return settings
    updates = dict(updates)
    providers = [entry.model_copy() for entry in settings.providers]

    api_key = updates.pop("libretranslate_api_key", None)
    if api_key is not None:
        providers = [
            entry.model_copy(update={"api_key": api_key}) if entry.name == "libretranslate" else entry
            for entry in providers
        ]
    email = updates.pop("mymemory_email", None)
    if email is not None:
        # MyMemory raises the anonymous quota when a contact address is sent.
        providers = [
            entry.model_copy(update={"api_key": SecretStr(email)}) if entry.name == "mymemory" else entry
            for entry in providers
        ]

    payload = settings.model_dump()
    payload.update(updates)
    payload["providers"] = providers
    return LexiweaveSettings.model_validate(payload)


__all__ = [
    "EnvironmentOverrides",
    "LexiweaveSettings",
    "ProviderSettings",
    "VALID_PROFICIENCY_LEVELS",
    "VALID_SELECTION_STRATEGIES",
    "apply_settings_updates",
    "load_environment_overrides",
]
