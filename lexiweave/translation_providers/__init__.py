"""Translation provider implementations.

This package contains the HTTP translation backends (LibreTranslate, MyMemory,
Lingva) and the orchestrator that chains them with caching and rate limits.
"""

from lexiweave.translation_providers.base import (
    AttemptOutcome,
    BaseTranslationProvider,
    ProviderAttempt,
    ProviderConfig,
    ProviderTranslation,
)
from lexiweave.translation_providers.libretranslate import LibreTranslateProvider
from lexiweave.translation_providers.lingva import LingvaProvider
from lexiweave.translation_providers.mymemory import MyMemoryProvider
from lexiweave.translation_providers.orchestrator import TranslationOrchestrator
from lexiweave.translation_providers.rate_limit import FixedWindowRateLimiter
from lexiweave.translation_providers.registry import (
    DEFAULT_PROVIDERS,
    create_orchestrator_from_config,
    create_provider,
)

__all__ = [
    "AttemptOutcome",
    "BaseTranslationProvider",
    "DEFAULT_PROVIDERS",
    "FixedWindowRateLimiter",
    "LibreTranslateProvider",
    "LingvaProvider",
    "MyMemoryProvider",
    "ProviderAttempt",
    "ProviderConfig",
    "ProviderTranslation",
    "TranslationOrchestrator",
    "create_orchestrator_from_config",
    "create_provider",
]
