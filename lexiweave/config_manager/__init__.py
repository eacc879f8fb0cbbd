"""High-level configuration management for lexiweave."""
from __future__ import annotations

from .constants import (
    CONF_DIR,
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOCAL_CONFIG_PATH,
    PROJECT_DIR,
)
from .loader import export_configuration, get_settings, load_configuration, reset_settings
from .paths import (
    dictionary_path,
    frequency_cache_dir,
    resolve_directory,
    resolve_file_path,
    translation_cache_dir,
)
from .settings import (
    EnvironmentOverrides,
    LexiweaveSettings,
    ProviderSettings,
    apply_settings_updates,
    load_environment_overrides,
)

__all__ = [
    "CONF_DIR",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_LOCAL_CONFIG_PATH",
    "EnvironmentOverrides",
    "LexiweaveSettings",
    "PROJECT_DIR",
    "ProviderSettings",
    "apply_settings_updates",
    "dictionary_path",
    "export_configuration",
    "frequency_cache_dir",
    "get_settings",
    "load_configuration",
    "load_environment_overrides",
    "reset_settings",
    "resolve_directory",
    "resolve_file_path",
    "translation_cache_dir",
]
