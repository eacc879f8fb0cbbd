"""Tests for the cache -> dictionary -> API word resolution tiers."""

from unittest.mock import MagicMock

import pytest

from lexiweave.engine.frequency import FrequencyWord
from lexiweave.engine.models import (
    BulkTranslationResult,
    ProficiencyLevel,
    ResolutionSource,
    TranslationResult,
    WordEntry,
)
from lexiweave.engine.resolver import WordResolver
from lexiweave.errors import AllProvidersFailedError, DuplicateEntryError, StoreError
from lexiweave.storage.dictionary_store import DictionaryStore

pytestmark = pytest.mark.engine


def _entry(word, target, level=ProficiencyLevel.BEGINNER, rank=50, dest="es"):
    return WordEntry(
        id=WordEntry.make_id("en", dest, word),
        source_word=word,
        target_word=target,
        source_language="en",
        target_language=dest,
        proficiency_level=level,
        frequency_rank=rank,
    )


@pytest.fixture
def store(tmp_path):
    return DictionaryStore(tmp_path / "dictionary.db")


@pytest.fixture
def orchestrator():
    mock = MagicMock()
    mock.translate_bulk.return_value = BulkTranslationResult()
    return mock


@pytest.fixture
def frequency():
    mock = MagicMock()
    mock.get_word_rank.return_value = None
    mock.get_words_by_proficiency.return_value = []
    return mock


@pytest.fixture
def resolver(store, orchestrator, frequency):
    return WordResolver(store, orchestrator, frequency)


class TestLookupWord:
    def test_database_then_cache(self, resolver, store, orchestrator):
        store.insert(_entry("house", "casa"))
        first = resolver.lookup_word("House", "en", "es")
        second = resolver.lookup_word("house", "en", "es")
        assert first.source is ResolutionSource.DATABASE
        assert second.source is ResolutionSource.CACHE
        assert second.entry.target_word == "casa"
        orchestrator.translate.assert_not_called()

    def test_api_result_is_ranked_and_persisted(self, resolver, store, orchestrator, frequency):
        orchestrator.translate.return_value = TranslationResult("perro", "en", "es", "mymemory")
        frequency.get_word_rank.return_value = 120

        result = resolver.lookup_word("dog", "en", "es")

        assert result.source is ResolutionSource.API
        assert result.entry.target_word == "perro"
        assert result.entry.proficiency_level is ProficiencyLevel.BEGINNER
        assert result.entry.frequency_rank == 120
        assert result.entry.provider == "mymemory"
        assert store.get_by_word("dog", "en", "es").target_word == "perro"
        assert resolver.lookup_word("dog", "en", "es").source is ResolutionSource.CACHE

    def test_unranked_words_use_defaults(self, store, orchestrator, frequency):
        orchestrator.translate.return_value = TranslationResult("lugar", "en", "es", "lingva")
        resolver = WordResolver(
            store, orchestrator, frequency, default_proficiency="advanced", default_rank=4000
        )
        entry = resolver.lookup_word("whereabouts", "en", "es").entry
        assert entry.proficiency_level is ProficiencyLevel.ADVANCED
        assert entry.frequency_rank == 4000

    def test_default_unranked_tier_is_intermediate(self, resolver, orchestrator):
        orchestrator.translate.return_value = TranslationResult("lugar", "en", "es", "lingva")
        entry = resolver.lookup_word("whereabouts", "en", "es").entry
        assert entry.proficiency_level is ProficiencyLevel.INTERMEDIATE
        assert entry.frequency_rank == 1000

    def test_all_providers_failed_is_not_found(self, resolver, orchestrator):
        orchestrator.translate.side_effect = AllProvidersFailedError("dog")
        result = resolver.lookup_word("dog", "en", "es")
        assert result.entry is None
        assert result.source is ResolutionSource.NONE
        assert not result.found

    def test_echoed_translation_is_not_found(self, resolver, orchestrator, store):
        orchestrator.translate.return_value = TranslationResult("Radio", "en", "es", "lingva")
        assert resolver.lookup_word("radio", "en", "es").entry is None
        assert store.count() == 0

    def test_empty_word(self, resolver, orchestrator):
        assert resolver.lookup_word("...", "en", "es").source is ResolutionSource.NONE
        orchestrator.translate.assert_not_called()

    def test_pairs_are_isolated(self, resolver, store, orchestrator):
        store.insert(_entry("house", "maison", dest="fr"))
        orchestrator.translate.side_effect = AllProvidersFailedError("house")
        assert resolver.lookup_word("house", "en", "es").entry is None


class TestStoreWrites:
    def _failing_store(self, error):
        failing = MagicMock(spec=DictionaryStore)
        failing.get_by_word.return_value = None
        failing.insert.side_effect = error
        failing.pair_counts.return_value = {}
        return failing

    def test_duplicate_insert_still_resolves(self, orchestrator, frequency):
        failing = self._failing_store(DuplicateEntryError("en_es_dog"))
        orchestrator.translate.return_value = TranslationResult("perro", "en", "es", "lingva")
        resolver = WordResolver(failing, orchestrator, frequency)

        result = resolver.lookup_word("dog", "en", "es")

        assert result.source is ResolutionSource.API
        assert result.entry.target_word == "perro"
        failing.insert.assert_called_once()
        assert resolver.lookup_word("dog", "en", "es").source is ResolutionSource.CACHE

    def test_store_failure_on_insert_resolves_to_none(self, orchestrator, frequency):
        failing = self._failing_store(StoreError("disk I/O error"))
        orchestrator.translate.return_value = TranslationResult("perro", "en", "es", "lingva")
        resolver = WordResolver(failing, orchestrator, frequency)

        result = resolver.lookup_word("dog", "en", "es")

        assert result.entry is None
        assert result.source is ResolutionSource.NONE
        assert resolver.get_stats()["memory_entries"] == 0


class TestLookupWords:
    def test_local_hits_and_one_bulk_call(self, resolver, store, orchestrator):
        store.insert(_entry("house", "casa"))
        orchestrator.translate_bulk.return_value = BulkTranslationResult(
            translations={"dog": "perro"}, provider="lingva", failed=["cat"]
        )

        results = resolver.lookup_words(["House", "dog", "Dog", "cat"], "en", "es")

        assert results["House"].source is ResolutionSource.DATABASE
        assert results["dog"].entry.target_word == "perro"
        assert results["Dog"].entry is results["dog"].entry
        assert results["cat"].source is ResolutionSource.NONE
        orchestrator.translate_bulk.assert_called_once_with(["dog", "cat"], "en", "es")

    def test_bulk_entries_keep_their_own_provider(self, resolver, store, orchestrator):
        orchestrator.translate_bulk.return_value = BulkTranslationResult(
            translations={"dog": "perro", "cat": "gato"},
            provider="lingva",
            providers={"dog": "libretranslate", "cat": "lingva"},
        )

        results = resolver.lookup_words(["dog", "cat"], "en", "es")

        assert results["dog"].entry.provider == "libretranslate"
        assert results["cat"].entry.provider == "lingva"
        assert store.get_by_word("dog", "en", "es").provider == "libretranslate"

    def test_no_bulk_call_when_everything_is_local(self, resolver, store, orchestrator):
        store.insert(_entry("house", "casa"))
        resolver.lookup_words(["house"], "en", "es")
        orchestrator.translate_bulk.assert_not_called()


class TestPracticeAndCaching:
    def test_words_by_proficiency_from_store_without_frequency_list(self, resolver, store):
        store.bulk_import([_entry("house", "casa"), _entry("cat", "gato")])
        entries = resolver.get_words_by_proficiency("en", "es", ProficiencyLevel.BEGINNER, limit=5)
        assert {entry.source_word for entry in entries} == {"house", "cat"}

    def test_words_by_proficiency_resolves_frequency_words(self, resolver, store, frequency):
        store.bulk_import([_entry("house", "casa"), _entry("cat", "gato")])
        frequency.get_words_by_proficiency.return_value = [
            FrequencyWord("house", 1),
            FrequencyWord("cat", 2),
        ]
        entries = resolver.get_words_by_proficiency("en", "es", "beginner", limit=1)
        assert len(entries) == 1

    def test_pre_cache_common_words(self, resolver, orchestrator, frequency):
        frequency.get_words_by_proficiency.return_value = [
            FrequencyWord("the", 1),
            FrequencyWord("house", 2),
            FrequencyWord("dog", 3),
        ]
        orchestrator.translate_bulk.return_value = BulkTranslationResult(
            translations={"the": "el", "house": "casa"}, provider="lingva", failed=["dog"]
        )
        assert resolver.pre_cache_common_words("en", "es", count=3) == {"cached": 2, "failed": 1}

    def test_pre_cache_without_frequency_list(self, resolver):
        assert resolver.pre_cache_common_words("en", "es") == {"cached": 0, "failed": 0}

    def test_stats_and_clear_cache(self, resolver, store):
        store.bulk_import([_entry("house", "casa"), _entry("house", "maison", dest="fr")])
        resolver.lookup_word("house", "en", "es")
        stats = resolver.get_stats()
        assert stats["total_cached_words"] == 2
        assert stats["memory_entries"] == 1
        assert {"source": "en", "target": "fr", "count": 1} in stats["language_pairs"]

        assert resolver.clear_cache("en", "es") == 1
        assert resolver.get_stats()["memory_entries"] == 0
        assert resolver.clear_cache() == 1
