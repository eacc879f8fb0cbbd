"""Ordered, cached, rate-limited fallback across translation providers."""

from __future__ import annotations

import threading
import time
from collections import OrderedDict
from typing import Callable, Dict, Iterable, List, Optional, Sequence

from lexiweave import logging_manager as log_mgr
from lexiweave.engine.models import BulkTranslationResult, TranslationResult
from lexiweave.errors import AllProvidersFailedError, ProviderError, RateLimited
from lexiweave.languages import LANGUAGE_NAMES, all_language_codes, get_language_name
from lexiweave.storage.kv_store import KeyValueStore
from lexiweave.text_normalization import normalize_word

from .base import AttemptOutcome, BaseTranslationProvider, ProviderAttempt
from .rate_limit import FixedWindowRateLimiter

logger = log_mgr.get_logger().getChild("translation_providers.orchestrator")

CACHE_KEY_PREFIX = "translation_"
DEFAULT_MAX_CACHE_ENTRIES = 10000
DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY_SECONDS = 0.2


def cache_key(text: str, source: str, target: str) -> str:
    return f"{source}_{target}_{normalize_word(text)}"


class TranslationOrchestrator:
    """Translate through a priority-ordered provider chain.

    The orchestrator:
    1. Answers from the memory cache, then the persistent cache
    2. Walks providers in order, skipping disabled and rate-limited ones
    3. Rotates the mirror of a failing mirror-capable provider for later calls
    4. Caches the first successful answer and charges that provider's budget
    5. Raises :class:`AllProvidersFailedError` when nobody answered

    Every consideration of a provider is recorded as a
    :class:`~lexiweave.translation_providers.base.ProviderAttempt`.
    """

    def __init__(
        self,
        providers: Sequence[BaseTranslationProvider],
        *,
        cache_store: Optional[KeyValueStore] = None,
        max_cache_entries: int = DEFAULT_MAX_CACHE_ENTRIES,
        batch_size: int = DEFAULT_BATCH_SIZE,
        batch_delay_seconds: float = DEFAULT_BATCH_DELAY_SECONDS,
        rate_limiter: Optional[FixedWindowRateLimiter] = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._providers: List[BaseTranslationProvider] = list(providers)
        self._cache_store = cache_store
        self._max_cache_entries = max(1, max_cache_entries)
        self._batch_size = max(1, batch_size)
        self._batch_delay = max(0.0, batch_delay_seconds)
        self._rate_limiter = rate_limiter or FixedWindowRateLimiter()
        self._sleep = sleep
        self._memory_cache: "OrderedDict[str, TranslationResult]" = OrderedDict()
        self._cache_lock = threading.Lock()
        self._provider_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._last_attempts: List[ProviderAttempt] = []

    @property
    def providers(self) -> List[BaseTranslationProvider]:
        return list(self._providers)

    @property
    def last_attempts(self) -> List[ProviderAttempt]:
        """Attempts recorded by the most recent uncached :meth:`translate` call."""
        return list(self._last_attempts)

    def get_provider(self, name: str) -> Optional[BaseTranslationProvider]:
        for provider in self._providers:
            if provider.name == name:
                return provider
        return None

    def translate(self, text: str, source: str, target: str) -> TranslationResult:
        """Translate ``text``; raises :class:`AllProvidersFailedError` on exhaustion."""

        if not text or not text.strip():
            raise ValueError("text to translate must not be empty")
        key = cache_key(text, source, target)
        cached = self._get_cached(key)
        if cached is not None:
            return cached

        attempts: List[ProviderAttempt] = []
        for provider in self._providers:
            attempt = self._try_provider(provider, text, source, target)
            attempts.append(attempt.record)
            if attempt.result is not None:
                self._last_attempts = attempts
                self._store_cached(key, attempt.result)
                return attempt.result

        self._last_attempts = attempts
        logger.warning(
            "All translation providers failed for %r",
            text,
            extra={
                "event": "translation.all_failed",
                "language_pair": f"{source}-{target}",
                "attempts": [
                    {"provider": a.provider, "outcome": a.outcome.value, "reason": a.reason}
                    for a in attempts
                ],
            },
        )
        raise AllProvidersFailedError(text, attempts)

    def _try_provider(
        self,
        provider: BaseTranslationProvider,
        text: str,
        source: str,
        target: str,
    ) -> "_AttemptResult":
        name = provider.name
        if not provider.enabled:
            return _AttemptResult(ProviderAttempt(name, AttemptOutcome.SKIPPED, "disabled"))
        if self._rate_limiter.is_limited(name, provider.config.rate_limit):
            logger.debug(
                "Skipping rate-limited provider %s",
                name,
                extra={"event": "translation.provider.rate_limited", "provider": name, "console_suppress": True},
            )
            return _AttemptResult(ProviderAttempt(name, AttemptOutcome.SKIPPED, "rate limited"))

        base_url = provider.base_url
        try:
            answer = provider.translate(text, source, target)
        except RateLimited as exc:
            return _AttemptResult(
                ProviderAttempt(name, AttemptOutcome.SKIPPED, str(exc), base_url)
            )
        except ProviderError as exc:
            if provider.supports_mirrors:
                with self._provider_lock:
                    next_url = provider.rotate_mirror()
                logger.info(
                    "Provider %s failed on %s; next call uses %s",
                    name,
                    base_url,
                    next_url,
                    extra={"event": "translation.provider.mirror_rotated", "provider": name},
                )
            logger.warning(
                "Provider %s failed: %s",
                name,
                exc,
                extra={"event": "translation.provider.failed", "provider": name},
            )
            return _AttemptResult(ProviderAttempt(name, AttemptOutcome.FAILED, str(exc), base_url))

        self._rate_limiter.record(name)
        result = TranslationResult(
            translated_text=answer.translated_text,
            source_language=source,
            target_language=target,
            provider=answer.provider,
            confidence=answer.confidence,
            cached=False,
        )
        logger.debug(
            "Provider %s translated %r",
            name,
            text,
            extra={"event": "translation.provider.success", "provider": name, "console_suppress": True},
        )
        return _AttemptResult(
            ProviderAttempt(name, AttemptOutcome.SUCCESS, None, base_url), result
        )

    def translate_bulk(
        self, words: Iterable[str], source: str, target: str
    ) -> BulkTranslationResult:
        """Translate many words, pacing uncached ones in fixed-size batches.

        Failures are collected in ``failed`` rather than raised.
        """

        outcome = BulkTranslationResult()
        pending: List[str] = []
        for word in dict.fromkeys(w for w in words if w and w.strip()):
            cached = self._get_cached(cache_key(word, source, target))
            if cached is not None:
                outcome.translations[word] = cached.translated_text
                outcome.providers[word] = cached.provider
            else:
                pending.append(word)

        batches = [
            pending[index : index + self._batch_size]
            for index in range(0, len(pending), self._batch_size)
        ]
        for batch_number, batch in enumerate(batches):
            if batch_number and self._batch_delay:
                self._sleep(self._batch_delay)
            for word in batch:
                try:
                    result = self.translate(word, source, target)
                except AllProvidersFailedError:
                    outcome.failed.append(word)
                    continue
                outcome.translations[word] = result.translated_text
                outcome.providers[word] = result.provider
                outcome.provider = result.provider

        logger.info(
            "Bulk translation finished: %d translated, %d failed",
            len(outcome.translations),
            len(outcome.failed),
            extra={
                "event": "translation.bulk.complete",
                "language_pair": f"{source}-{target}",
                "console_suppress": True,
            },
        )
        return outcome

    def get_supported_languages(self, provider: Optional[str] = None) -> List[str]:
        """Ask one provider (default: the first enabled) for its languages."""

        candidate = self.get_provider(provider) if provider else next(
            (p for p in self._providers if p.enabled), None
        )
        if candidate is None:
            return all_language_codes()
        try:
            languages = candidate.supported_languages()
        except ProviderError as exc:
            logger.warning(
                "Failed to get supported languages from %s: %s",
                candidate.name,
                exc,
                extra={"event": "translation.languages.error", "provider": candidate.name},
            )
            return all_language_codes()
        return languages or all_language_codes()

    def is_language_pair_supported(self, source: str, target: str) -> bool:
        supported = self.get_supported_languages()
        return source in supported and target in supported

    def set_provider_enabled(self, name: str, enabled: bool) -> bool:
        provider = self.get_provider(name)
        if provider is None:
            return False
        with self._provider_lock:
            provider.set_enabled(enabled)
        return True

    def set_api_key(self, name: str, api_key: Optional[str]) -> bool:
        provider = self.get_provider(name)
        if provider is None:
            return False
        with self._provider_lock:
            provider.set_api_key(api_key)
        return True

    def clear_cache(self) -> int:
        """Drop memory and persisted translations; returns the memory entry count."""

        with self._cache_lock:
            removed = len(self._memory_cache)
            self._memory_cache.clear()
            self._hits = 0
            self._misses = 0
        if self._cache_store is not None:
            for key in list(self._cache_store.keys(CACHE_KEY_PREFIX)):
                self._cache_store.delete(key)
        return removed

    def get_cache_stats(self) -> Dict[str, int]:
        with self._cache_lock:
            return {
                "size": len(self._memory_cache),
                "max_size": self._max_cache_entries,
                "hits": self._hits,
                "misses": self._misses,
            }

    @staticmethod
    def get_language_name(code: str) -> str:
        return get_language_name(code)

    @staticmethod
    def get_all_languages() -> Dict[str, str]:
        return dict(LANGUAGE_NAMES)

    def close(self) -> None:
        for provider in self._providers:
            provider.close()

    def _get_cached(self, key: str) -> Optional[TranslationResult]:
        with self._cache_lock:
            result = self._memory_cache.get(key)
            if result is not None:
                self._hits += 1
                return _as_cached(result)

        if self._cache_store is not None:
            payload = self._cache_store.get(CACHE_KEY_PREFIX + key)
            if isinstance(payload, dict) and payload.get("translated_text"):
                result = TranslationResult.from_dict(payload)
                with self._cache_lock:
                    self._remember(key, result)
                    self._hits += 1
                return _as_cached(result)

        with self._cache_lock:
            self._misses += 1
        return None

    def _store_cached(self, key: str, result: TranslationResult) -> None:
        with self._cache_lock:
            self._remember(key, result)
        if self._cache_store is not None:
            self._cache_store.set(CACHE_KEY_PREFIX + key, result.to_dict())

    def _remember(self, key: str, result: TranslationResult) -> None:
        self._memory_cache[key] = result
        while len(self._memory_cache) > self._max_cache_entries:
            self._memory_cache.popitem(last=False)


class _AttemptResult:
    __slots__ = ("record", "result")

    def __init__(self, record: ProviderAttempt, result: Optional[TranslationResult] = None) -> None:
        self.record = record
        self.result = result


def _as_cached(result: TranslationResult) -> TranslationResult:
    return TranslationResult(
        translated_text=result.translated_text,
        source_language=result.source_language,
        target_language=result.target_language,
        provider=result.provider,
        confidence=result.confidence,
        cached=True,
    )


__all__ = ["TranslationOrchestrator", "cache_key"]
