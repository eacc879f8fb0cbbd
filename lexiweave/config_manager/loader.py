"""Configuration loading utilities."""
from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from lexiweave import logging_manager
from lexiweave.errors import ConfigurationError

from .constants import (
    CONFIG_FILE_ENV,
    DEFAULT_CONFIG_PATH,
    DEFAULT_LOCAL_CONFIG_PATH,
)
from .settings import (
    LexiweaveSettings,
    apply_settings_updates,
    load_environment_overrides,
)

logger = logging_manager.get_logger().getChild("config")

_ACTIVE_SETTINGS: Optional[LexiweaveSettings] = None


def _read_config_json(path: Optional[Path], label: str = "configuration") -> Dict[str, Any]:
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = json.load(handle)
    except FileNotFoundError:
        logger.debug(
            "No %s found at %s.",
            label,
            path,
            extra={"event": "config.file.missing", "console_suppress": True},
        )
        return {}
    except (OSError, json.JSONDecodeError) as exc:
        logger.warning(
            "Error loading %s from %s: %s. Proceeding without it.",
            label,
            path,
            exc,
            extra={"event": "config.file.invalid"},
        )
        return {}
    if not isinstance(data, dict):
        logger.warning(
            "Ignoring %s at %s: expected a JSON object.",
            label,
            path,
            extra={"event": "config.file.invalid"},
        )
        return {}
    logger.debug(
        "Loaded %s from %s",
        label,
        path,
        extra={"event": "config.file.loaded", "console_suppress": True},
    )
    return data


def _deep_merge_dict(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    result = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _deep_merge_dict(result[key], value)
        else:
            result[key] = value
    return result


def _resolve_override_path(config_file: Optional[str]) -> Path:
    candidate = config_file or os.environ.get(CONFIG_FILE_ENV)
    if not candidate:
        return DEFAULT_LOCAL_CONFIG_PATH
    override_path = Path(candidate).expanduser()
    if not override_path.is_absolute():
        override_path = (Path.cwd() / override_path).resolve()
    return override_path


def load_configuration(
    config_file: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> LexiweaveSettings:
    """Load the layered configuration and make it the active settings.

    Layers, lowest precedence first: ``conf/config.json``, the local override
    (``conf/config.local.json``, ``config_file`` or ``$LEXIWEAVE_CONFIG_FILE``),
    environment variables, then explicit ``overrides``.
    """

    global _ACTIVE_SETTINGS

    payload = _read_config_json(DEFAULT_CONFIG_PATH, label="default configuration")
    override_path = _resolve_override_path(config_file)
    if config_file and not override_path.exists():
        raise ConfigurationError(f"Configuration file {override_path} does not exist")
    payload = _deep_merge_dict(
        payload, _read_config_json(override_path, label="local configuration")
    )

    try:
        settings = LexiweaveSettings.model_validate(payload)
        settings = apply_settings_updates(settings, load_environment_overrides())
        settings = apply_settings_updates(settings, dict(overrides or {}))
    except ValidationError as exc:
        raise ConfigurationError("Invalid configuration detected") from exc

    _ACTIVE_SETTINGS = settings
    return settings


def get_settings() -> LexiweaveSettings:
    """Return the currently loaded :class:`LexiweaveSettings` instance."""

    global _ACTIVE_SETTINGS
    if _ACTIVE_SETTINGS is None:
        settings = LexiweaveSettings()
        try:
            settings = apply_settings_updates(settings, load_environment_overrides())
        except ValidationError as exc:
            raise ConfigurationError("Invalid environment configuration") from exc
        _ACTIVE_SETTINGS = settings
    return _ACTIVE_SETTINGS


def reset_settings() -> None:
    """Forget the active settings so the next :func:`get_settings` reloads them."""

    global _ACTIVE_SETTINGS
    _ACTIVE_SETTINGS = None


def export_configuration(settings: LexiweaveSettings) -> Dict[str, Any]:
    """Return a JSON-safe view of ``settings`` without secret values."""

    exported = settings.model_dump(mode="json")
    for provider in exported.get("providers", []):
        provider.pop("api_key", None)
    return exported


__all__ = [
    "export_configuration",
    "get_settings",
    "load_configuration",
    "reset_settings",
]
