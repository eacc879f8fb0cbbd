"""Dictionary-only word matching backed by the bundled word lists."""

from __future__ import annotations

import json
import random
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional

from lexiweave import logging_manager as log_mgr
from lexiweave.errors import StoreError
from lexiweave.storage.dictionary_store import DictionaryStore
from lexiweave.text_normalization import normalize_word

from .frequency import proficiency_for_rank
from .models import ProficiencyLevel, WordEntry

logger = log_mgr.get_logger().getChild("engine.matcher")

BUNDLED_DATA_DIR = Path(__file__).resolve().parent.parent / "data"


def bundled_word_list_path(source_language: str, target_language: str) -> Path:
    return BUNDLED_DATA_DIR / f"words_{source_language}_{target_language}.json"


def load_bundled_entries(
    source_language: str,
    target_language: str,
    path: Optional[Path] = None,
) -> List[WordEntry]:
    """Read the bundled list for a language pair; missing lists yield ``[]``."""

    candidate = Path(path) if path is not None else bundled_word_list_path(
        source_language, target_language
    )
    if not candidate.is_file():
        return []
    try:
        with candidate.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning(
            "Unable to read bundled word list %s: %s",
            candidate,
            exc,
            extra={"event": "engine.matcher.bundled_unreadable"},
        )
        return []
    records = payload.get("words", []) if isinstance(payload, Mapping) else payload
    return entries_from_records(records, source_language, target_language)


def entries_from_records(
    records: Iterable[Mapping[str, Any]],
    source_language: str,
    target_language: str,
) -> List[WordEntry]:
    entries: List[WordEntry] = []
    for record in records:
        source_word = normalize_word(str(record.get("source", "")))
        target_word = str(record.get("target", "")).strip()
        if not source_word or not target_word:
            continue
        rank = int(record.get("rank", 0) or 0)
        entries.append(
            WordEntry(
                id=WordEntry.make_id(source_language, target_language, source_word),
                source_word=source_word,
                target_word=target_word,
                source_language=source_language,
                target_language=target_language,
                proficiency_level=proficiency_for_rank(rank),
                frequency_rank=rank,
                part_of_speech=str(record.get("pos") or "other"),
                variants=[normalize_word(str(v)) for v in record.get("variants", []) or []],
                pronunciation=record.get("pronunciation"),
            )
        )
    return entries


class WordMatcher:
    """Match words against the local dictionary only.

    On first use the dictionary is seeded from the bundled list when it holds
    no entries for the pair. If the store is unusable the matcher keeps
    working from an in-memory index of the bundled list.
    """

    def __init__(
        self,
        source_language: str,
        target_language: str,
        store: Optional[DictionaryStore] = None,
        bundled: Optional[Iterable[WordEntry]] = None,
        *,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.source_language = source_language
        self.target_language = target_language
        self._store = store
        self._bundled = list(bundled) if bundled is not None else None
        self._rng = rng or random.Random()
        self._initialized = False
        self._lock = threading.Lock()
        self._fallback_words: Dict[str, WordEntry] = {}
        self._fallback_variants: Dict[str, WordEntry] = {}

    @property
    def using_fallback(self) -> bool:
        return self._store is None

    def initialize(self) -> None:
        """Seed the dictionary if needed. Safe to call repeatedly."""

        with self._lock:
            if self._initialized:
                return
            bundled = self._bundled_entries()
            if self._store is not None:
                try:
                    if self._store.count(self.source_language, self.target_language) == 0 and bundled:
                        inserted = self._store.bulk_import(bundled)
                        logger.info(
                            "Seeded dictionary with %d bundled %s-%s entries",
                            inserted,
                            self.source_language,
                            self.target_language,
                            extra={
                                "event": "engine.matcher.seeded",
                                "language_pair": f"{self.source_language}-{self.target_language}",
                            },
                        )
                except StoreError as exc:
                    logger.warning(
                        "Dictionary unavailable, matching from bundled list: %s",
                        exc,
                        extra={"event": "engine.matcher.fallback"},
                    )
                    self._store = None
            if self._store is None:
                self._build_fallback_index(bundled)
            self._initialized = True

    def _bundled_entries(self) -> List[WordEntry]:
        if self._bundled is None:
            self._bundled = load_bundled_entries(self.source_language, self.target_language)
        return self._bundled

    def _build_fallback_index(self, entries: Iterable[WordEntry]) -> None:
        self._fallback_words.clear()
        self._fallback_variants.clear()
        for entry in entries:
            self._fallback_words.setdefault(entry.source_word, entry)
            for variant in entry.variants:
                self._fallback_variants.setdefault(variant, entry)

    def _lookup(self, word: str) -> Optional[WordEntry]:
        if self._store is not None:
            try:
                entry = self._store.get_by_word(word, self.source_language, self.target_language)
                if entry is None:
                    entry = self._store.get_by_variant(
                        word, self.source_language, self.target_language
                    )
                return entry
            except StoreError as exc:
                logger.warning(
                    "Dictionary lookup failed for %r: %s",
                    word,
                    exc,
                    extra={"event": "engine.matcher.lookup_failed"},
                )
                return None
        return self._fallback_words.get(word) or self._fallback_variants.get(word)

    def find_match(
        self,
        word: str,
        max_level: ProficiencyLevel = ProficiencyLevel.ADVANCED,
    ) -> Optional[WordEntry]:
        """Return the entry for ``word`` (or one of its variants) within ``max_level``."""

        self.initialize()
        normalized = normalize_word(word)
        if not normalized:
            return None
        entry = self._lookup(normalized)
        if entry is None:
            return None
        if not entry.proficiency_level.is_within(ProficiencyLevel.parse(max_level)):
            return None
        return entry

    def find_matches(
        self,
        words: Iterable[str],
        max_level: ProficiencyLevel = ProficiencyLevel.ADVANCED,
    ) -> Dict[str, WordEntry]:
        matches: Dict[str, WordEntry] = {}
        for word in words:
            if word in matches:
                continue
            entry = self.find_match(word, max_level)
            if entry is not None:
                matches[word] = entry
        return matches

    def get_words_by_level(
        self, level: ProficiencyLevel, limit: Optional[int] = None
    ) -> List[WordEntry]:
        self.initialize()
        level = ProficiencyLevel.parse(level)
        if self._store is not None:
            try:
                return self._store.get_by_level(
                    level, self.source_language, self.target_language, limit
                )
            except StoreError as exc:
                logger.warning(
                    "Dictionary read failed for level %s: %s",
                    level.value,
                    exc,
                    extra={"event": "engine.matcher.lookup_failed"},
                )
                return []
        entries = sorted(
            (e for e in self._fallback_words.values() if e.proficiency_level is level),
            key=lambda e: e.frequency_rank,
        )
        return entries[:limit] if limit is not None else entries

    def get_random_words(self, level: ProficiencyLevel, count: int = 10) -> List[WordEntry]:
        entries = self.get_words_by_level(level)
        if len(entries) <= count:
            shuffled = list(entries)
            self._rng.shuffle(shuffled)
            return shuffled
        return self._rng.sample(entries, count)

    def search_words(self, query: str, limit: int = 20) -> List[WordEntry]:
        """Prefix search over source and target words."""

        self.initialize()
        needle = query.strip().lower()
        if not needle:
            return []
        if self._store is not None:
            try:
                return self._store.search(
                    needle, self.source_language, self.target_language, limit
                )
            except StoreError as exc:
                logger.warning(
                    "Dictionary search failed for %r: %s",
                    query,
                    exc,
                    extra={"event": "engine.matcher.lookup_failed"},
                )
                return []
        results = [
            entry
            for entry in self._fallback_words.values()
            if entry.source_word.startswith(needle) or entry.target_word.lower().startswith(needle)
        ]
        results.sort(key=lambda e: e.frequency_rank)
        return results[:limit]

    def get_stats(self) -> Dict[str, object]:
        self.initialize()
        if self._store is not None:
            try:
                by_level = self._store.count_by_level(self.source_language, self.target_language)
            except StoreError as exc:
                logger.warning(
                    "Dictionary stats unavailable: %s",
                    exc,
                    extra={"event": "engine.matcher.lookup_failed"},
                )
                by_level = {level.value: 0 for level in ProficiencyLevel}
        else:
            by_level = {level.value: 0 for level in ProficiencyLevel}
            for entry in self._fallback_words.values():
                by_level[entry.proficiency_level.value] += 1
        return {
            "total": sum(by_level.values()),
            "by_level": by_level,
            "fallback": self.using_fallback,
        }


__all__ = [
    "BUNDLED_DATA_DIR",
    "WordMatcher",
    "bundled_word_list_path",
    "entries_from_records",
    "load_bundled_entries",
]
