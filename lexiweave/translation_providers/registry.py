"""Provider registry and construction of the default fallback chain."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, List, Optional, Type

import requests

from lexiweave import logging_manager as log_mgr
from lexiweave.config_manager import LexiweaveSettings, ProviderSettings
from lexiweave.errors import ConfigurationError
from lexiweave.storage.kv_store import JsonFileStore, KeyValueStore

from .base import BaseTranslationProvider, ProviderConfig
from .libretranslate import LIBRETRANSLATE_MIRRORS, LIBRETRANSLATE_URL, LibreTranslateProvider
from .lingva import LINGVA_URL, LingvaProvider
from .mymemory import MYMEMORY_URL, MyMemoryProvider
from .orchestrator import TranslationOrchestrator

logger = log_mgr.get_logger().getChild("translation_providers.registry")

PROVIDER_CLASSES: Dict[str, Type[BaseTranslationProvider]] = {
    "libretranslate": LibreTranslateProvider,
    "mymemory": MyMemoryProvider,
    "lingva": LingvaProvider,
}

DEFAULT_PROVIDERS: List[ProviderConfig] = [
    ProviderConfig(
        name="libretranslate",
        base_url=LIBRETRANSLATE_URL,
        mirrors=list(LIBRETRANSLATE_MIRRORS),
        rate_limit=30,
    ),
    ProviderConfig(name="mymemory", base_url=MYMEMORY_URL, rate_limit=100),
    ProviderConfig(name="lingva", base_url=LINGVA_URL, rate_limit=60),
]


def _default_config(name: str) -> ProviderConfig:
    for config in DEFAULT_PROVIDERS:
        if config.name == name:
            return ProviderConfig(
                name=config.name,
                base_url=config.base_url,
                mirrors=list(config.mirrors),
                rate_limit=config.rate_limit,
            )
    raise ConfigurationError(f"Unknown translation provider {name!r}")


def provider_config_from_settings(entry: ProviderSettings) -> ProviderConfig:
    """Overlay configured values onto the built-in defaults for ``entry.name``."""

    config = _default_config(entry.name)
    if entry.base_url:
        config.base_url = entry.base_url
    if entry.mirrors:
        config.mirrors = list(entry.mirrors)
    if entry.rate_limit_per_minute:
        config.rate_limit = entry.rate_limit_per_minute
    if entry.api_key is not None:
        config.api_key = entry.api_key.get_secret_value() or None
    config.enabled = entry.enabled
    config.timeout_seconds = entry.timeout_seconds
    return config


def create_provider(
    config: ProviderConfig,
    *,
    session: Optional[requests.Session] = None,
) -> BaseTranslationProvider:
    provider_class = PROVIDER_CLASSES.get(config.name)
    if provider_class is None:
        raise ConfigurationError(f"Unknown translation provider {config.name!r}")
    return provider_class(config, session=session)


def create_orchestrator_from_config(
    settings: LexiweaveSettings,
    *,
    cache_dir: Optional[Path] = None,
    cache_store: Optional[KeyValueStore] = None,
    session: Optional[requests.Session] = None,
) -> TranslationOrchestrator:
    """Build the provider chain in configured order.

    Args:
        settings: Active configuration.
        cache_dir: Directory for the persisted translation cache.
        cache_store: Explicit cache store; takes precedence over ``cache_dir``.
        session: Shared HTTP session for all providers.

    Returns:
        A ready :class:`TranslationOrchestrator`.
    """
    providers: List[BaseTranslationProvider] = []
    for entry in settings.providers:
        try:
            config = provider_config_from_settings(entry)
        except ConfigurationError as exc:
            logger.warning(
                "Ignoring provider entry: %s",
                exc,
                extra={"event": "translation.registry.unknown_provider"},
            )
            continue
        providers.append(create_provider(config, session=session))

    if not providers:
        raise ConfigurationError("No translation providers configured")

    store = cache_store
    if store is None and cache_dir is not None:
        store = JsonFileStore(cache_dir)

    logger.debug(
        "Configured translation providers: %s",
        [p.name for p in providers],
        extra={"event": "translation.registry.configured", "console_suppress": True},
    )
    return TranslationOrchestrator(
        providers,
        cache_store=store,
        max_cache_entries=settings.translation_cache_size,
        batch_size=settings.translation_batch_size,
        batch_delay_seconds=settings.translation_batch_delay_seconds,
    )


__all__ = [
    "DEFAULT_PROVIDERS",
    "PROVIDER_CLASSES",
    "create_orchestrator_from_config",
    "create_provider",
    "provider_config_from_settings",
]
