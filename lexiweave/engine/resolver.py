"""Three-tier word resolution: memory cache, dictionary store, translation API."""

from __future__ import annotations

import random
import threading
import time
from typing import Dict, Iterable, List, Optional

from lexiweave import logging_manager as log_mgr
from lexiweave.errors import AllProvidersFailedError, DuplicateEntryError, StoreError
from lexiweave.storage.dictionary_store import DictionaryStore
from lexiweave.text_normalization import normalize_word
from lexiweave.translation_providers.orchestrator import TranslationOrchestrator

from .frequency import FrequencyListService, proficiency_for_rank
from .models import LookupResult, ProficiencyLevel, ResolutionSource, WordEntry

logger = log_mgr.get_logger().getChild("engine.resolver")

DEFAULT_UNRANKED_RANK = 1000


class WordResolver:
    """Resolve source words to :class:`WordEntry` objects.

    Lookups never raise: every failure ends as ``LookupResult(None, NONE)``.
    Entries produced by the translation tier are written back to the memory
    cache and the dictionary store.
    """

    def __init__(
        self,
        store: DictionaryStore,
        orchestrator: TranslationOrchestrator,
        frequency_service: FrequencyListService,
        *,
        default_proficiency: ProficiencyLevel = ProficiencyLevel.INTERMEDIATE,
        default_rank: int = DEFAULT_UNRANKED_RANK,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._store = store
        self._orchestrator = orchestrator
        self._frequency = frequency_service
        self._default_proficiency = ProficiencyLevel.parse(default_proficiency)
        self._default_rank = default_rank
        self._rng = rng or random.Random()
        self._memory_cache: Dict[str, WordEntry] = {}
        self._lock = threading.Lock()

    @staticmethod
    def _cache_key(word: str, source: str, target: str) -> str:
        return WordEntry.make_id(source, target, word)

    def lookup_word(self, word: str, source: str, target: str) -> LookupResult:
        normalized = normalize_word(word)
        if not normalized:
            return LookupResult(None, ResolutionSource.NONE)

        local = self._lookup_local(normalized, source, target)
        if local is not None:
            return local

        try:
            translation = self._orchestrator.translate(normalized, source, target)
        except AllProvidersFailedError as exc:
            logger.info(
                "No translation for %r: %s",
                normalized,
                exc,
                extra={"event": "resolver.api.failed", "language_pair": f"{source}-{target}"},
            )
            return LookupResult(None, ResolutionSource.NONE)

        entry = self._create_and_cache_entry(
            normalized, translation.translated_text, source, target, translation.provider
        )
        if entry is None:
            return LookupResult(None, ResolutionSource.NONE)
        return LookupResult(entry, ResolutionSource.API)

    def lookup_words(
        self, words: Iterable[str], source: str, target: str
    ) -> Dict[str, LookupResult]:
        """Resolve many words, sending every local miss through one bulk call.

        The returned mapping is keyed by the words exactly as passed in.
        """

        results: Dict[str, LookupResult] = {}
        pending: Dict[str, List[str]] = {}
        for word in words:
            if word in results:
                continue
            normalized = normalize_word(word)
            if not normalized:
                results[word] = LookupResult(None, ResolutionSource.NONE)
                continue
            local = self._lookup_local(normalized, source, target)
            if local is not None:
                results[word] = local
            else:
                pending.setdefault(normalized, []).append(word)

        if pending:
            bulk = self._orchestrator.translate_bulk(list(pending), source, target)
            for normalized, originals in pending.items():
                translated = bulk.translations.get(normalized)
                entry = None
                if translated:
                    provider = bulk.providers.get(normalized, bulk.provider)
                    entry = self._create_and_cache_entry(
                        normalized, translated, source, target, provider
                    )
                result = (
                    LookupResult(entry, ResolutionSource.API)
                    if entry is not None
                    else LookupResult(None, ResolutionSource.NONE)
                )
                for original in originals:
                    results[original] = result
        return results

    def _lookup_local(self, normalized: str, source: str, target: str) -> Optional[LookupResult]:
        key = self._cache_key(normalized, source, target)
        with self._lock:
            cached = self._memory_cache.get(key)
        if cached is not None:
            return LookupResult(cached, ResolutionSource.CACHE)

        try:
            stored = self._store.get_by_word(normalized, source, target)
        except StoreError as exc:
            logger.warning(
                "Dictionary read failed for %r: %s",
                normalized,
                exc,
                extra={"event": "resolver.store.read_failed"},
            )
            return None
        if stored is None:
            return None
        with self._lock:
            self._memory_cache[key] = stored
        return LookupResult(stored, ResolutionSource.DATABASE)

    def _create_and_cache_entry(
        self,
        word: str,
        translated: str,
        source: str,
        target: str,
        provider: Optional[str],
    ) -> Optional[WordEntry]:
        if normalize_word(translated) == word and source != target:
            logger.debug(
                "Provider echoed %r untranslated",
                word,
                extra={"event": "resolver.api.echo", "console_suppress": True},
            )
            return None

        rank = self._frequency.get_word_rank(source, word)
        entry = WordEntry(
            id=WordEntry.make_id(source, target, word),
            source_word=word,
            target_word=translated,
            source_language=source,
            target_language=target,
            proficiency_level=(
                proficiency_for_rank(rank) if rank is not None else self._default_proficiency
            ),
            frequency_rank=rank if rank is not None else self._default_rank,
            part_of_speech="other",
            provider=provider,
            cached_at=time.time(),
        )

        try:
            self._store.insert(entry)
        except DuplicateEntryError:
            pass
        except StoreError as exc:
            logger.warning(
                "Failed to persist dictionary entry %s: %s",
                entry.id,
                exc,
                extra={"event": "resolver.store.write_failed"},
            )
            return None

        with self._lock:
            self._memory_cache[entry.id] = entry
        return entry

    def get_words_by_proficiency(
        self,
        source: str,
        target: str,
        level: ProficiencyLevel,
        limit: int = 50,
    ) -> List[WordEntry]:
        """Return up to ``limit`` resolved entries of ``level`` in random order."""

        level = ProficiencyLevel.parse(level)
        frequency_words = self._frequency.get_words_by_proficiency(source, level)
        if not frequency_words:
            try:
                return self._store.get_random_by_level(level, source, target, limit)
            except StoreError as exc:
                logger.warning(
                    "Dictionary read failed for level %s: %s",
                    level.value,
                    exc,
                    extra={"event": "resolver.store.read_failed"},
                )
                return []

        shuffled = list(frequency_words)
        self._rng.shuffle(shuffled)
        entries: List[WordEntry] = []
        for item in shuffled[:limit]:
            result = self.lookup_word(item.word, source, target)
            if result.entry is not None:
                entries.append(result.entry)
        return entries

    def pre_cache_common_words(
        self, source: str, target: str, count: int = 500
    ) -> Dict[str, int]:
        """Resolve the ``count`` most frequent beginner words ahead of time."""

        frequency_words = self._frequency.get_words_by_proficiency(
            source, ProficiencyLevel.BEGINNER
        )
        words = [item.word for item in frequency_words[:count]]
        if not words:
            return {"cached": 0, "failed": 0}
        results = self.lookup_words(words, source, target)
        cached = sum(1 for result in results.values() if result.found)
        return {"cached": cached, "failed": len(results) - cached}

    def is_language_pair_supported(self, source: str, target: str) -> bool:
        return self._orchestrator.is_language_pair_supported(source, target)

    def get_stats(self) -> Dict[str, object]:
        pairs = self._store.pair_counts()
        with self._lock:
            memory_entries = len(self._memory_cache)
        return {
            "total_cached_words": sum(pairs.values()),
            "language_pairs": [
                {"source": key.split("-", 1)[0], "target": key.split("-", 1)[1], "count": count}
                for key, count in pairs.items()
            ],
            "memory_entries": memory_entries,
        }

    def clear_cache(self, source: Optional[str] = None, target: Optional[str] = None) -> int:
        """Delete stored entries (all, or one language pair) and matching memory entries."""

        if source and target:
            removed = self._store.delete_pair(source, target)
            prefix = f"{source}_{target}_"
            with self._lock:
                for key in [k for k in self._memory_cache if k.startswith(prefix)]:
                    del self._memory_cache[key]
        else:
            removed = self._store.delete_pair()
            with self._lock:
                self._memory_cache.clear()
        return removed


__all__ = ["DEFAULT_UNRANKED_RANK", "WordResolver"]
