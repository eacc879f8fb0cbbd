"""Shared constants for the configuration manager package."""
from __future__ import annotations

from pathlib import Path

MODULE_DIR = Path(__file__).resolve().parent
PACKAGE_DIR = MODULE_DIR.parent.resolve()
PROJECT_DIR = PACKAGE_DIR.parent.resolve()
CONF_DIR = PROJECT_DIR / "conf"
DEFAULT_CONFIG_PATH = CONF_DIR / "config.json"
DEFAULT_LOCAL_CONFIG_PATH = CONF_DIR / "config.local.json"
CONFIG_FILE_ENV = "LEXIWEAVE_CONFIG_FILE"

DEFAULT_DATA_RELATIVE = Path("storage")
DEFAULT_DICTIONARY_FILENAME = "dictionary.db"
DEFAULT_TRANSLATION_CACHE_RELATIVE = DEFAULT_DATA_RELATIVE / "cache" / "translations"
DEFAULT_FREQUENCY_CACHE_RELATIVE = DEFAULT_DATA_RELATIVE / "cache" / "frequency"

DEFAULT_SOURCE_LANGUAGE = "en"
DEFAULT_TARGET_LANGUAGE = "el"
DEFAULT_DENSITY = 0.15
DEFAULT_MIN_WORD_SPACING = 3
DEFAULT_MIN_WORD_LENGTH = 2
DEFAULT_MAX_WORD_LENGTH = 25
DEFAULT_FREQUENCY_MAX_WORDS = 5000
DEFAULT_UNRANKED_RANK = 1000
DEFAULT_TRANSLATION_CACHE_SIZE = 10000
DEFAULT_BATCH_SIZE = 10
DEFAULT_BATCH_DELAY_SECONDS = 0.2
DEFAULT_PROVIDER_TIMEOUT_SECONDS = 10.0

SENSITIVE_CONFIG_KEYS = {"api_key"}

__all__ = [
    "CONF_DIR",
    "CONFIG_FILE_ENV",
    "DEFAULT_BATCH_DELAY_SECONDS",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_DATA_RELATIVE",
    "DEFAULT_DENSITY",
    "DEFAULT_DICTIONARY_FILENAME",
    "DEFAULT_FREQUENCY_CACHE_RELATIVE",
    "DEFAULT_FREQUENCY_MAX_WORDS",
    "DEFAULT_LOCAL_CONFIG_PATH",
    "DEFAULT_MAX_WORD_LENGTH",
    "DEFAULT_MIN_WORD_LENGTH",
    "DEFAULT_MIN_WORD_SPACING",
    "DEFAULT_PROVIDER_TIMEOUT_SECONDS",
    "DEFAULT_SOURCE_LANGUAGE",
    "DEFAULT_TARGET_LANGUAGE",
    "DEFAULT_TRANSLATION_CACHE_RELATIVE",
    "DEFAULT_TRANSLATION_CACHE_SIZE",
    "DEFAULT_UNRANKED_RANK",
    "MODULE_DIR",
    "PACKAGE_DIR",
    "PROJECT_DIR",
    "SENSITIVE_CONFIG_KEYS",
]
