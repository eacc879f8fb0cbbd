"""End-to-end tests for the translation engine with local collaborators."""

import random
from unittest.mock import MagicMock

import pytest
import requests

from lexiweave.config_manager import LexiweaveSettings
from lexiweave.engine.engine import TranslationEngine, TranslationOptions, create_engine
from lexiweave.engine.matcher import WordMatcher, entries_from_records
from lexiweave.engine.models import (
    BulkTranslationResult,
    LookupResult,
    ProficiencyLevel,
    ResolutionSource,
    WordEntry,
)
from lexiweave.engine.replacer import ReplacerOptions, WordReplacer
from lexiweave.engine.resolver import WordResolver
from lexiweave.errors import StoreError
from lexiweave.storage.dictionary_store import DictionaryStore
from lexiweave.storage.kv_store import MemoryStore

pytestmark = pytest.mark.engine


def _entry(word, target, *, dest="es", level=ProficiencyLevel.BEGINNER, rank=100):
    return WordEntry(
        id=WordEntry.make_id("en", dest, word),
        source_word=word,
        target_word=target,
        source_language="en",
        target_language=dest,
        proficiency_level=level,
        frequency_rank=rank,
        part_of_speech="noun",
    )


@pytest.fixture
def store(tmp_path):
    dictionary = DictionaryStore(tmp_path / "dictionary.db")
    dictionary.insert(_entry("house", "casa"))
    return dictionary


@pytest.fixture
def orchestrator():
    mock = MagicMock()
    mock.translate_bulk.return_value = BulkTranslationResult()
    mock.is_language_pair_supported.return_value = True
    return mock


@pytest.fixture
def frequency():
    mock = MagicMock()
    mock.get_word_rank.return_value = None
    mock.get_words_by_proficiency.return_value = []
    return mock


def _engine(store, orchestrator, frequency, **option_overrides):
    options = TranslationOptions(target_language="es", **option_overrides)
    resolver = WordResolver(store, orchestrator, frequency)
    replacer = WordReplacer(
        ReplacerOptions(
            density=options.density,
            max_proficiency=options.proficiency_level,
            min_word_spacing=options.min_word_spacing,
            rng=random.Random(1),
        )
    )
    return TranslationEngine(options, resolver, replacer=replacer)


class TestProcessContent:
    def test_replaces_known_word(self, store, orchestrator, frequency):
        engine = _engine(store, orchestrator, frequency, density=1.0)
        processed = engine.process_content("<p>The house is big.</p>")

        assert 'data-original="house"' in processed.content
        assert ">casa</span>" in processed.content
        assert processed.content.startswith("<p>The <span")
        assert processed.content.endswith(" is big.</p>")
        assert processed.stats.total_words == 4
        assert processed.stats.replaced_words == 1
        record = processed.foreign_words[0]
        assert processed.content[record.start:record.end].endswith("casa</span>")
        payload = processed.to_dict()
        assert payload["foreignWords"][0]["wordEntry"]["targetWord"] == "casa"
        assert "processingTimeMs" in payload["stats"]

    def test_unresolved_words_pass_through(self, store, orchestrator, frequency):
        engine = _engine(store, orchestrator, frequency, density=1.0)
        markup = "<p>Nothing matches here.</p>"
        assert engine.process_content(markup).content == markup

    def test_empty_content(self, store, orchestrator, frequency):
        processed = _engine(store, orchestrator, frequency).process_content("")
        assert processed.content == ""
        assert processed.stats.total_words == 0
        orchestrator.translate_bulk.assert_not_called()

    def test_resolver_failure_falls_back_to_matcher(self, store, orchestrator, frequency):
        resolver = MagicMock(spec=WordResolver)
        resolver.lookup_words.side_effect = StoreError("locked")
        matcher = WordMatcher(
            "en", "es", None, entries_from_records([{"source": "dog", "target": "perro", "rank": 5}], "en", "es")
        )
        engine = TranslationEngine(
            TranslationOptions(target_language="es", density=1.0, min_word_spacing=0),
            resolver,
            matcher=matcher,
        )
        processed = engine.process_content("the dog runs")
        assert [fw.foreign_word for fw in processed.foreign_words] == ["perro"]

    def test_matcher_is_ignored_for_other_pairs(self, store, orchestrator, frequency):
        matcher = WordMatcher(
            "en", "fr", None, entries_from_records([{"source": "dog", "target": "chien", "rank": 5}], "en", "fr")
        )
        resolver = WordResolver(store, orchestrator, frequency)
        engine = TranslationEngine(
            TranslationOptions(target_language="es", density=1.0), resolver, matcher=matcher
        )
        assert engine.process_content("the dog runs").foreign_words == []

    def test_process_with_temporary_options(self, store, orchestrator, frequency):
        engine = _engine(store, orchestrator, frequency, density=1.0)
        processed = engine.process_content_with_options(
            "<p>The house is big.</p>", exclude_words=["house"]
        )
        assert processed.foreign_words == []
        assert engine.get_options().exclude_words == []
        assert engine.process_content("<p>The house is big.</p>").stats.replaced_words == 1


class TestEngineOperations:
    def test_translate_word_prefers_resolver(self, store, orchestrator, frequency):
        engine = _engine(store, orchestrator, frequency)
        assert engine.translate_word("House").target_word == "casa"

    def test_translate_word_falls_back_to_matcher_at_any_level(self):
        resolver = MagicMock(spec=WordResolver)
        resolver.lookup_word.return_value = LookupResult(None, ResolutionSource.NONE)
        matcher = WordMatcher(
            "en", "es", None, entries_from_records([{"source": "odyssey", "target": "odisea", "rank": 9000}], "en", "es")
        )
        engine = TranslationEngine(TranslationOptions(target_language="es"), resolver, matcher=matcher)
        assert engine.translate_word("odyssey").target_word == "odisea"
        assert engine.translate_word("nothing") is None

    def test_practice_and_precache_delegate(self, store, orchestrator, frequency):
        engine = _engine(store, orchestrator, frequency)
        words = engine.get_words_for_practice("beginner", 5)
        assert [entry.source_word for entry in words] == ["house"]
        assert engine.pre_cache_words(10) == {"cached": 0, "failed": 0}
        assert engine.is_language_pair_supported() is True

    def test_update_options_rebuilds_matcher_on_language_change(self, store, orchestrator, frequency):
        built = []

        def factory(source, target):
            built.append((source, target))
            return WordMatcher(source, target, None, [])

        engine = TranslationEngine(
            TranslationOptions(target_language="es"),
            WordResolver(store, orchestrator, frequency),
            matcher_factory=factory,
        )
        engine.update_options(density=0.5)
        assert built == [("en", "es")]
        engine.update_options(target_language="fr")
        assert built == [("en", "es"), ("en", "fr")]
        assert engine.matcher.target_language == "fr"
        assert engine.get_options().density == 0.5

    def test_update_options_rejects_bad_density(self, store, orchestrator, frequency):
        engine = _engine(store, orchestrator, frequency)
        with pytest.raises(ValueError):
            engine.update_options(density=3)

    def test_stats(self, store, orchestrator, frequency):
        matcher = WordMatcher(
            "en", "es", None, entries_from_records([{"source": "dog", "target": "perro", "rank": 5}], "en", "es")
        )
        engine = TranslationEngine(
            TranslationOptions(target_language="es"),
            WordResolver(store, orchestrator, frequency),
            matcher=matcher,
        )
        stats = engine.get_stats()
        assert stats["cached_words"] == 1
        assert stats["available_words"] == 1
        assert stats["by_proficiency"]["beginner"] == 1
        assert stats["language_pairs"] == [{"source": "en", "target": "es", "count": 1}]

    def test_close_releases_resources(self, store, orchestrator, frequency):
        resource = MagicMock()
        engine = TranslationEngine(
            TranslationOptions(), WordResolver(store, orchestrator, frequency), resources=(resource,)
        )
        with engine:
            pass
        resource.close.assert_called_once_with()


class TestCreateEngine:
    def test_wires_offline_engine_from_settings(self, tmp_path):
        settings = LexiweaveSettings(
            target_language="el",
            density=1.0,
            min_word_spacing=0,
            data_dir=str(tmp_path / "data"),
            translation_cache_dir=str(tmp_path / "cache"),
            frequency_cache_dir=str(tmp_path / "frequency"),
        )
        session = MagicMock()
        session.request.side_effect = requests.ConnectionError("offline")
        store = DictionaryStore(tmp_path / "data" / "dictionary.db")

        with create_engine(settings, session=session, store=store, cache_store=MemoryStore()) as engine:
            processed = engine.process_content("<p>The house is big.</p>")

        assert "σπίτι" in processed.content
        assert "μεγάλος" in processed.content
        assert store.count("en", "el") > 0
