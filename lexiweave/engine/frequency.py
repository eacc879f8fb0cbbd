"""Word frequency rankings and the rank-to-proficiency mapping.

Frequency lists come from the FrequencyWords project (OpenSubtitles 2018
corpus): plain text, one ``"word count"`` pair per line, most frequent first.
Lists are fetched once per language, trimmed, and kept both in memory and in a
:class:`~lexiweave.storage.KeyValueStore` so later sessions start offline.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Mapping, Optional

import regex
import requests

from lexiweave import logging_manager as log_mgr
from lexiweave.storage.kv_store import KeyValueStore
from lexiweave.text_normalization import normalize_word

from .models import ProficiencyLevel

logger = log_mgr.get_logger().getChild("engine.frequency")

_FREQUENCY_WORDS_URL = (
    "https://raw.githubusercontent.com/hermitdave/FrequencyWords/master/content/2018/{lang}/{lang}_50k.txt"
)
FREQUENCY_LIST_SOURCES: Dict[str, Optional[str]] = {
    lang: _FREQUENCY_WORDS_URL.format(lang=lang)
    for lang in ("en", "es", "fr", "de", "it", "pt", "ru", "el", "ar")
}
FREQUENCY_LIST_SOURCES.update({"ja": None, "zh": None, "ko": None})

STORAGE_PREFIX = "frequency_"
MAX_WORDS_TO_STORE = 5000
FAILED_FETCH_RETRY_SECONDS = 300.0

PROFICIENCY_THRESHOLDS: Dict[ProficiencyLevel, tuple[int, Optional[int]]] = {
    ProficiencyLevel.BEGINNER: (1, 500),
    ProficiencyLevel.INTERMEDIATE: (501, 2000),
    ProficiencyLevel.ADVANCED: (2001, None),
}

_ACCEPTED_WORD = regex.compile(r"^[\p{L}\p{M}]+$")


def proficiency_for_rank(rank: int) -> ProficiencyLevel:
    """Map a 1-based frequency rank to its proficiency tier."""

    if rank <= PROFICIENCY_THRESHOLDS[ProficiencyLevel.BEGINNER][1]:
        return ProficiencyLevel.BEGINNER
    if rank <= PROFICIENCY_THRESHOLDS[ProficiencyLevel.INTERMEDIATE][1]:
        return ProficiencyLevel.INTERMEDIATE
    return ProficiencyLevel.ADVANCED


@dataclass(slots=True)
class FrequencyWord:
    word: str
    rank: int
    frequency: Optional[int] = None


@dataclass(slots=True)
class FrequencyList:
    """A ranked word list for one language with an O(1) rank index."""

    language: str
    words: List[FrequencyWord]
    source: str = ""
    fetched_at: float = field(default_factory=time.time)
    _index: Dict[str, int] = field(default_factory=dict, repr=False)

    def __post_init__(self) -> None:
        for item in self.words:
            self._index.setdefault(item.word, item.rank)

    @property
    def word_count(self) -> int:
        return len(self.words)

    def rank_of(self, word: str) -> Optional[int]:
        return self._index.get(normalize_word(word))

    def to_dict(self) -> Dict[str, object]:
        return {
            "language": self.language,
            "source": self.source,
            "fetched_at": self.fetched_at,
            "words": [[item.word, item.frequency] for item in self.words],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> "FrequencyList":
        words = [
            FrequencyWord(word=str(pair[0]), rank=position, frequency=pair[1])
            for position, pair in enumerate(data.get("words") or [], start=1)
        ]
        return cls(
            language=str(data.get("language", "")),
            words=words,
            source=str(data.get("source", "")),
            fetched_at=float(data.get("fetched_at") or time.time()),
        )


def parse_frequency_list(text: str, max_words: int = MAX_WORDS_TO_STORE) -> List[FrequencyWord]:
    """Parse ``"word count"`` lines into ranked entries.

    Numbers, single characters and tokens containing anything other than
    letters are skipped; ranks are assigned to the kept words in file order.
    """

    words: List[FrequencyWord] = []
    seen: set[str] = set()
    for line in text.splitlines():
        parts = line.split()
        if not parts:
            continue
        word = parts[0].lower()
        if len(word) < 2 or not _ACCEPTED_WORD.match(word) or word in seen:
            continue
        frequency: Optional[int] = None
        if len(parts) > 1 and parts[1].isdigit():
            frequency = int(parts[1])
        seen.add(word)
        words.append(FrequencyWord(word=word, rank=len(words) + 1, frequency=frequency))
        if len(words) >= max_words:
            break
    return words


class FrequencyListService:
    """Serve frequency ranks from memory, then the key/value store, then HTTP."""

    def __init__(
        self,
        store: Optional[KeyValueStore] = None,
        *,
        session: Optional[requests.Session] = None,
        sources: Optional[Mapping[str, Optional[str]]] = None,
        max_words: int = MAX_WORDS_TO_STORE,
        timeout_seconds: float = 15.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._store = store
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._sources = dict(FREQUENCY_LIST_SOURCES if sources is None else sources)
        self._max_words = max_words
        self._timeout = timeout_seconds
        self._clock = clock
        self._cache: Dict[str, FrequencyList] = {}
        self._failed: Dict[str, float] = {}
        self._lock = threading.RLock()

    def get_frequency_list(self, language: str) -> Optional[FrequencyList]:
        """Return the list for ``language`` or ``None`` when it cannot be obtained."""

        with self._lock:
            cached = self._cache.get(language)
            if cached is not None:
                return cached

            stored = self._load_from_store(language)
            if stored is not None:
                self._cache[language] = stored
                return stored

            failed_at = self._failed.get(language)
            if failed_at is not None and self._clock() - failed_at < FAILED_FETCH_RETRY_SECONDS:
                return None

            fetched = self._fetch(language)
            if fetched is None:
                self._failed[language] = self._clock()
                return None
            self._failed.pop(language, None)
            self._cache[language] = fetched
            self._save_to_store(fetched)
            return fetched

    def get_word_rank(self, language: str, word: str) -> Optional[int]:
        frequency_list = self.get_frequency_list(language)
        if frequency_list is None:
            return None
        return frequency_list.rank_of(word)

    @staticmethod
    def get_proficiency_level(rank: int) -> ProficiencyLevel:
        return proficiency_for_rank(rank)

    def get_words_by_proficiency(
        self, language: str, level: ProficiencyLevel
    ) -> List[FrequencyWord]:
        frequency_list = self.get_frequency_list(language)
        if frequency_list is None:
            return []
        low, high = PROFICIENCY_THRESHOLDS[ProficiencyLevel.parse(level)]
        return [
            item
            for item in frequency_list.words
            if item.rank >= low and (high is None or item.rank <= high)
        ]

    def get_stats(self, language: str) -> Optional[Dict[str, object]]:
        frequency_list = self.get_frequency_list(language)
        if frequency_list is None:
            return None
        counts = {level.value: 0 for level in ProficiencyLevel}
        for item in frequency_list.words:
            counts[proficiency_for_rank(item.rank).value] += 1
        return {
            "language": language,
            "total_words": frequency_list.word_count,
            **counts,
            "source": frequency_list.source,
        }

    def has_frequency_list(self, language: str) -> bool:
        """Return True if a list is loaded, stored, or has a download source."""

        with self._lock:
            if language in self._cache:
                return True
        if self._store is not None and self._store.get(STORAGE_PREFIX + language) is not None:
            return True
        return bool(self._sources.get(language))

    def get_available_languages(self) -> List[str]:
        return [language for language, url in self._sources.items() if url]

    def refresh_frequency_list(self, language: str) -> Optional[FrequencyList]:
        """Drop cached copies of ``language`` and download it again."""

        self.clear_cache(language)
        return self.get_frequency_list(language)

    def clear_cache(self, language: Optional[str] = None) -> None:
        with self._lock:
            languages = [language] if language else list(self._sources) + list(self._cache)
            for code in set(languages):
                self._cache.pop(code, None)
                self._failed.pop(code, None)
                if self._store is not None:
                    self._store.delete(STORAGE_PREFIX + code)

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def _load_from_store(self, language: str) -> Optional[FrequencyList]:
        if self._store is None:
            return None
        payload = self._store.get(STORAGE_PREFIX + language)
        if not isinstance(payload, dict):
            return None
        try:
            return FrequencyList.from_dict(payload)
        except (TypeError, ValueError, IndexError) as exc:
            logger.warning(
                "Discarding unreadable frequency list for %s: %s",
                language,
                exc,
                extra={"event": "frequency.store.invalid"},
            )
            return None

    def _save_to_store(self, frequency_list: FrequencyList) -> None:
        if self._store is None:
            return
        self._store.set(STORAGE_PREFIX + frequency_list.language, frequency_list.to_dict())

    def _fetch(self, language: str) -> Optional[FrequencyList]:
        url = self._sources.get(language)
        if not url:
            logger.debug(
                "No frequency list source for %s",
                language,
                extra={"event": "frequency.fetch.unsupported", "console_suppress": True},
            )
            return None
        try:
            response = self._session.get(url, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.warning(
                "Failed to download frequency list for %s: %s",
                language,
                exc,
                extra={"event": "frequency.fetch.error"},
            )
            return None
        if response.status_code != 200:
            logger.warning(
                "Frequency list download for %s returned HTTP %s",
                language,
                response.status_code,
                extra={"event": "frequency.fetch.http_error"},
            )
            return None

        words = parse_frequency_list(response.text, self._max_words)
        if not words:
            logger.warning(
                "Frequency list for %s contained no usable words",
                language,
                extra={"event": "frequency.fetch.empty"},
            )
            return None
        logger.info(
            "Loaded %d frequency words for %s",
            len(words),
            language,
            extra={"event": "frequency.fetch.complete", "console_suppress": True},
        )
        return FrequencyList(language=language, words=words, source=url)


__all__ = [
    "FREQUENCY_LIST_SOURCES",
    "FrequencyList",
    "FrequencyListService",
    "FrequencyWord",
    "MAX_WORDS_TO_STORE",
    "PROFICIENCY_THRESHOLDS",
    "parse_frequency_list",
    "proficiency_for_rank",
]
