import json

import pytest

from lexiweave.config_manager import (
    LexiweaveSettings,
    dictionary_path,
    export_configuration,
    get_settings,
    load_configuration,
    reset_settings,
    translation_cache_dir,
)
from lexiweave.config_manager.settings import apply_settings_updates
from lexiweave.errors import ConfigurationError

pytestmark = pytest.mark.config

_ENV_VARS = (
    "LEXIWEAVE_CONFIG_FILE",
    "LEXIWEAVE_SOURCE_LANGUAGE",
    "LEXIWEAVE_TARGET_LANGUAGE",
    "LEXIWEAVE_PROFICIENCY",
    "LEXIWEAVE_PROFICIENCY_LEVEL",
    "LEXIWEAVE_DENSITY",
    "LEXIWEAVE_STRATEGY",
    "LEXIWEAVE_DATA_DIR",
    "LEXIWEAVE_DICTIONARY_PATH",
    "LEXIWEAVE_TRANSLATION_CACHE_DIR",
    "LEXIWEAVE_LOG_LEVEL",
    "LOG_LEVEL",
    "LIBRETRANSLATE_API_KEY",
    "LEXIWEAVE_LIBRETRANSLATE_API_KEY",
    "LEXIWEAVE_MYMEMORY_EMAIL",
)


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "lexiweave.json"
    path.write_text(json.dumps({"target_language": "es", "density": 0.3}), encoding="utf-8")
    return path


class TestLoadConfiguration:
    def test_file_overrides_defaults(self, config_file):
        settings = load_configuration(str(config_file))
        assert settings.target_language == "es"
        assert settings.density == 0.3
        assert settings.source_language == "en"
        assert [entry.name for entry in settings.providers] == ["libretranslate", "mymemory", "lingva"]

    def test_missing_explicit_file_raises(self, tmp_path):
        with pytest.raises(ConfigurationError):
            load_configuration(str(tmp_path / "absent.json"))

    def test_invalid_values_raise(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"density": 2}), encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_configuration(str(path))

    def test_unknown_strategy_rejected(self, config_file):
        with pytest.raises(ConfigurationError):
            load_configuration(str(config_file), overrides={"selection_strategy": "alphabetical"})

    def test_unreadable_file_is_ignored(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        settings = load_configuration(str(path))
        assert settings.target_language == "el"

    def test_config_file_from_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("LEXIWEAVE_CONFIG_FILE", str(config_file))
        assert load_configuration().target_language == "es"

    def test_environment_overrides_file(self, config_file, monkeypatch):
        monkeypatch.setenv("LEXIWEAVE_TARGET_LANGUAGE", "FR")
        monkeypatch.setenv("LEXIWEAVE_PROFICIENCY", "Advanced")
        settings = load_configuration(str(config_file))
        assert settings.target_language == "fr"
        assert settings.proficiency_level == "advanced"

    def test_explicit_overrides_win(self, config_file, monkeypatch):
        monkeypatch.setenv("LEXIWEAVE_TARGET_LANGUAGE", "fr")
        settings = load_configuration(str(config_file), overrides={"target_language": "de"})
        assert settings.target_language == "de"

    def test_invalid_environment_value_is_ignored(self, config_file, monkeypatch):
        monkeypatch.setenv("LEXIWEAVE_DENSITY", "plenty")
        assert load_configuration(str(config_file)).density == 0.3

    def test_provider_credentials_from_environment(self, config_file, monkeypatch):
        monkeypatch.setenv("LIBRETRANSLATE_API_KEY", "secret-key")
        monkeypatch.setenv("LEXIWEAVE_MYMEMORY_EMAIL", "reader@example.com")
        settings = load_configuration(str(config_file))
        assert settings.provider("libretranslate").api_key.get_secret_value() == "secret-key"
        assert settings.provider("mymemory").api_key.get_secret_value() == "reader@example.com"
        assert settings.provider("lingva").api_key is None

    def test_loaded_settings_become_active(self, config_file):
        settings = load_configuration(str(config_file))
        assert get_settings() is settings


class TestSettingsHelpers:
    def test_get_settings_defaults(self):
        settings = get_settings()
        assert settings.source_language == "en"
        assert settings.selection_strategy == "distributed"

    def test_apply_updates_revalidates(self):
        settings = LexiweaveSettings()
        with pytest.raises(ValueError):
            apply_settings_updates(settings, {"proficiency_level": "expert"})
        assert apply_settings_updates(settings, {}) is settings

    def test_export_hides_secrets(self, config_file, monkeypatch):
        monkeypatch.setenv("LIBRETRANSLATE_API_KEY", "secret-key")
        exported = export_configuration(load_configuration(str(config_file)))
        assert "secret-key" not in json.dumps(exported)
        assert all("api_key" not in entry for entry in exported["providers"])

    def test_storage_paths(self, tmp_path):
        settings = LexiweaveSettings(
            data_dir=str(tmp_path / "data"),
            translation_cache_dir=str(tmp_path / "cache"),
        )
        assert dictionary_path(settings) == tmp_path / "data" / "dictionary.db"
        assert translation_cache_dir(settings).is_dir()
