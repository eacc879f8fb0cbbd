"""High level entry point tying tokenizer, resolver, matcher and replacer together."""

from __future__ import annotations

import dataclasses
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import requests

from lexiweave import logging_manager as log_mgr
from lexiweave.config_manager import (
    LexiweaveSettings,
    dictionary_path,
    frequency_cache_dir,
    get_settings,
    translation_cache_dir,
)
from lexiweave.errors import LexiweaveError
from lexiweave.observability import pipeline_stage, record_metric
from lexiweave.storage.dictionary_store import DictionaryStore
from lexiweave.storage.kv_store import JsonFileStore, KeyValueStore
from lexiweave.translation_providers.registry import create_orchestrator_from_config

from .frequency import FrequencyListService
from .matcher import WordMatcher
from .models import (
    ProcessedContent,
    ProcessingStats,
    ProficiencyLevel,
    SelectionStrategy,
    WordEntry,
)
from .replacer import ReplacerOptions, WordReplacer
from .resolver import WordResolver
from .tokenizer import Tokenizer, TokenizerOptions

logger = log_mgr.get_logger().getChild("engine")

MatcherFactory = Callable[[str, str], WordMatcher]

_TOKENIZER_FIELDS = ("exclude_words", "min_word_length", "max_word_length")
_LANGUAGE_FIELDS = ("source_language", "target_language")


@dataclass(slots=True)
class TranslationOptions:
    """Per-engine learning configuration."""

    source_language: str = "en"
    target_language: str = "el"
    proficiency_level: ProficiencyLevel = ProficiencyLevel.BEGINNER
    density: float = 0.15
    exclude_words: List[str] = field(default_factory=list)
    preferred_parts_of_speech: List[str] = field(default_factory=list)
    min_word_spacing: int = 3
    selection_strategy: SelectionStrategy = SelectionStrategy.DISTRIBUTED
    min_word_length: int = 2
    max_word_length: int = 25

    def __post_init__(self) -> None:
        self.proficiency_level = ProficiencyLevel.parse(self.proficiency_level)
        self.selection_strategy = SelectionStrategy(self.selection_strategy)
        self.exclude_words = list(self.exclude_words or [])
        self.preferred_parts_of_speech = list(self.preferred_parts_of_speech or [])

    @classmethod
    def from_settings(cls, settings: LexiweaveSettings) -> "TranslationOptions":
        return cls(
            source_language=settings.source_language,
            target_language=settings.target_language,
            proficiency_level=settings.proficiency_level,
            density=settings.density,
            exclude_words=list(settings.exclude_words),
            preferred_parts_of_speech=list(settings.preferred_parts_of_speech),
            min_word_spacing=settings.min_word_spacing,
            selection_strategy=settings.selection_strategy,
            min_word_length=settings.min_word_length,
            max_word_length=settings.max_word_length,
        )


def _tokenizer_for(options: TranslationOptions) -> Tokenizer:
    return Tokenizer(
        TokenizerOptions(
            min_word_length=options.min_word_length,
            max_word_length=options.max_word_length,
            skip_words=set(options.exclude_words),
        )
    )


def _replacer_options_for(options: TranslationOptions) -> Dict[str, object]:
    return {
        "density": options.density,
        "max_proficiency": options.proficiency_level,
        "preferred_parts_of_speech": tuple(options.preferred_parts_of_speech),
        "exclude_words": frozenset(options.exclude_words),
        "min_word_spacing": options.min_word_spacing,
        "selection_strategy": options.selection_strategy,
    }


class TranslationEngine:
    """Rewrite markup so a share of its words appear in the target language.

    The engine is lazy: :meth:`initialize` runs on first use and only seeds
    the bundled-dictionary matcher. Words the resolver cannot translate fall
    back to the matcher, so content keeps being processed offline.
    """

    def __init__(
        self,
        options: TranslationOptions,
        resolver: WordResolver,
        matcher: Optional[WordMatcher] = None,
        tokenizer: Optional[Tokenizer] = None,
        replacer: Optional[WordReplacer] = None,
        *,
        matcher_factory: Optional[MatcherFactory] = None,
        resources: Sequence[object] = (),
    ) -> None:
        self._options = dataclasses.replace(options)
        self._resolver = resolver
        self._matcher_factory = matcher_factory
        if matcher is None and matcher_factory is not None:
            matcher = matcher_factory(options.source_language, options.target_language)
        self._matcher = matcher
        self._tokenizer = tokenizer or _tokenizer_for(self._options)
        self._replacer = replacer or WordReplacer(
            ReplacerOptions(**_replacer_options_for(self._options))
        )
        self._resources = list(resources)
        self._initialized = False
        self._init_lock = threading.Lock()

    @property
    def resolver(self) -> WordResolver:
        return self._resolver

    @property
    def matcher(self) -> Optional[WordMatcher]:
        return self._matcher

    def initialize(self) -> None:
        with self._init_lock:
            if self._initialized:
                return
            if self._matcher is not None:
                self._matcher.initialize()
            self._initialized = True
            logger.debug(
                "Engine initialized for %s-%s",
                self._options.source_language,
                self._options.target_language,
                extra={"event": "engine.initialized", "console_suppress": True},
            )

    def process_content(self, markup: str) -> ProcessedContent:
        """Tokenize, resolve and rewrite ``markup``; never discards the input."""

        self.initialize()
        return self._process(markup, self._options, self._tokenizer, self._replacer)

    def process_content_with_options(self, markup: str, **overrides) -> ProcessedContent:
        """Process ``markup`` with temporary option overrides; engine state is unchanged."""

        self.initialize()
        merged = dataclasses.replace(self._options, **overrides)
        tokenizer = (
            _tokenizer_for(merged)
            if any(name in overrides for name in _TOKENIZER_FIELDS)
            else self._tokenizer
        )
        replacer = WordReplacer(
            self._replacer.get_options(), **_replacer_options_for(merged)
        )
        return self._process(markup, merged, tokenizer, replacer)

    def _process(
        self,
        markup: str,
        options: TranslationOptions,
        tokenizer: Tokenizer,
        replacer: WordReplacer,
    ) -> ProcessedContent:
        started = time.perf_counter()
        pair = f"{options.source_language}-{options.target_language}"
        attributes = {"language_pair": pair}

        with pipeline_stage("tokenize", attributes):
            tokens = tokenizer.tokenize(markup)
            unique_words = Tokenizer.get_unique_words(tokens)

        with pipeline_stage("resolve", {**attributes, "words": len(unique_words)}):
            entries = self._resolve_words(unique_words, options)

        with pipeline_stage("replace", attributes):
            result = replacer.replace(markup, tokens, entries)

        elapsed_ms = (time.perf_counter() - started) * 1000.0
        stats = ProcessingStats(
            total_words=result.stats.total_tokens,
            eligible_words=result.stats.eligible_tokens,
            replaced_words=result.stats.replaced_tokens,
            processing_time_ms=elapsed_ms,
        )
        record_metric("engine.process.replaced_words", stats.replaced_words, attributes)
        logger.info(
            "Processed content: %d/%d words replaced",
            stats.replaced_words,
            stats.total_words,
            extra={
                "event": "engine.process.complete",
                "language_pair": pair,
                "duration_ms": round(elapsed_ms, 2),
                "console_suppress": True,
            },
        )
        return ProcessedContent(
            content=result.content, foreign_words=result.foreign_words, stats=stats
        )

    def _resolve_words(
        self, words: Iterable[str], options: TranslationOptions
    ) -> Dict[str, Optional[WordEntry]]:
        words = list(words)
        entries: Dict[str, Optional[WordEntry]] = {}
        if not words:
            return entries
        try:
            results = self._resolver.lookup_words(
                words, options.source_language, options.target_language
            )
        except LexiweaveError as exc:
            logger.warning(
                "Word resolution failed, using bundled dictionary only: %s",
                exc,
                extra={"event": "engine.resolve.failed"},
            )
            results = {}

        matcher = self._matcher_for(options)
        for word in words:
            result = results.get(word)
            entry = result.entry if result is not None else None
            if entry is None and matcher is not None:
                entry = matcher.find_match(word, options.proficiency_level)
            entries[word] = entry
        return entries

    def _matcher_for(self, options: TranslationOptions) -> Optional[WordMatcher]:
        matcher = self._matcher
        if matcher is None:
            return None
        if (matcher.source_language, matcher.target_language) != (
            options.source_language,
            options.target_language,
        ):
            return None
        return matcher

    def translate_word(self, word: str) -> Optional[WordEntry]:
        """Resolve a single word on demand, e.g. for a detail popup."""

        self.initialize()
        result = self._resolver.lookup_word(
            word, self._options.source_language, self._options.target_language
        )
        if result.entry is not None:
            return result.entry
        if self._matcher is not None:
            return self._matcher.find_match(word, ProficiencyLevel.ADVANCED)
        return None

    def get_words_for_practice(self, level: ProficiencyLevel, count: int) -> List[WordEntry]:
        self.initialize()
        return self._resolver.get_words_by_proficiency(
            self._options.source_language,
            self._options.target_language,
            ProficiencyLevel.parse(level),
            count,
        )

    def pre_cache_words(self, count: int = 500) -> Dict[str, int]:
        """Resolve the most frequent words of the pair so later reads work offline."""

        self.initialize()
        outcome = self._resolver.pre_cache_common_words(
            self._options.source_language, self._options.target_language, count
        )
        logger.info(
            "Pre-cached %d words (%d failed)",
            outcome["cached"],
            outcome["failed"],
            extra={
                "event": "engine.precache.complete",
                "language_pair": f"{self._options.source_language}-{self._options.target_language}",
            },
        )
        return outcome

    def is_language_pair_supported(self) -> bool:
        return self._resolver.is_language_pair_supported(
            self._options.source_language, self._options.target_language
        )

    def update_options(self, **changes) -> None:
        options = dataclasses.replace(self._options, **changes)
        self._replacer.update_options(**_replacer_options_for(options))
        self._options = options
        if any(name in changes for name in _TOKENIZER_FIELDS):
            self._tokenizer.update_options(
                min_word_length=self._options.min_word_length,
                max_word_length=self._options.max_word_length,
                skip_words=set(self._options.exclude_words),
            )
        if any(name in changes for name in _LANGUAGE_FIELDS):
            if self._matcher_factory is not None:
                self._matcher = self._matcher_factory(
                    self._options.source_language, self._options.target_language
                )
            with self._init_lock:
                self._initialized = False

    def get_options(self) -> TranslationOptions:
        return dataclasses.replace(self._options)

    def get_stats(self) -> Dict[str, object]:
        self.initialize()
        resolver_stats = self._resolver.get_stats()
        matcher_stats = (
            self._matcher.get_stats()
            if self._matcher is not None
            else {"total": 0, "by_level": {level.value: 0 for level in ProficiencyLevel}}
        )
        return {
            "cached_words": resolver_stats["total_cached_words"],
            "available_words": matcher_stats["total"],
            "by_proficiency": matcher_stats["by_level"],
            "language_pairs": resolver_stats["language_pairs"],
        }

    def close(self) -> None:
        for resource in self._resources:
            close = getattr(resource, "close", None)
            if callable(close):
                close()

    def __enter__(self) -> "TranslationEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def create_engine(
    settings: Optional[LexiweaveSettings] = None,
    *,
    options: Optional[TranslationOptions] = None,
    session: Optional[requests.Session] = None,
    store: Optional[DictionaryStore] = None,
    cache_store: Optional[KeyValueStore] = None,
    frequency_store: Optional[KeyValueStore] = None,
) -> TranslationEngine:
    """Wire a :class:`TranslationEngine` from configuration.

    Every collaborator can be passed in explicitly; anything omitted is built
    from ``settings`` (defaulting to :func:`get_settings`).
    """

    settings = settings or get_settings()
    options = options or TranslationOptions.from_settings(settings)
    dictionary = store or DictionaryStore(dictionary_path(settings))
    orchestrator = create_orchestrator_from_config(
        settings,
        cache_dir=translation_cache_dir(settings),
        cache_store=cache_store,
        session=session,
    )
    frequency = FrequencyListService(
        frequency_store or JsonFileStore(frequency_cache_dir(settings)),
        session=session,
        max_words=settings.frequency_max_words,
        timeout_seconds=settings.frequency_timeout_seconds,
    )
    resolver = WordResolver(
        dictionary,
        orchestrator,
        frequency,
        default_proficiency=ProficiencyLevel.parse(settings.unranked_proficiency),
        default_rank=settings.unranked_frequency_rank,
    )

    def matcher_factory(source: str, target: str) -> WordMatcher:
        return WordMatcher(source, target, dictionary)

    return TranslationEngine(
        options,
        resolver,
        matcher_factory=matcher_factory,
        resources=(orchestrator, frequency),
    )


def create_default_engine(source_language: str, target_language: str) -> TranslationEngine:
    """Engine for a language pair with beginner proficiency and 15% density."""

    settings = get_settings()
    options = TranslationOptions.from_settings(settings)
    options = dataclasses.replace(
        options,
        source_language=source_language,
        target_language=target_language,
        proficiency_level=ProficiencyLevel.BEGINNER,
        density=0.15,
    )
    return create_engine(settings, options=options)


__all__ = [
    "TranslationEngine",
    "TranslationOptions",
    "create_default_engine",
    "create_engine",
]
