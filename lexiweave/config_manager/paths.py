"""Utilities for resolving configured storage locations."""
from __future__ import annotations

import os
from pathlib import Path
from typing import Optional, Union

from lexiweave import logging_manager

from .constants import (
    DEFAULT_DICTIONARY_FILENAME,
    DEFAULT_FREQUENCY_CACHE_RELATIVE,
    DEFAULT_TRANSLATION_CACHE_RELATIVE,
    PROJECT_DIR,
)
from .settings import LexiweaveSettings

logger = logging_manager.get_logger().getChild("config.paths")

PathLike = Union[str, Path]


def _normalize(candidate: PathLike) -> Path:
    expanded = Path(os.path.expanduser(str(candidate)))
    if expanded.is_absolute():
        return expanded
    return PROJECT_DIR / expanded


def resolve_directory(path_value: Optional[PathLike], default_relative: PathLike) -> Path:
    """Resolve a directory relative to the project root and ensure it exists."""

    base_value = path_value if path_value not in (None, "") else default_relative
    directory = _normalize(base_value)
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        logger.warning(
            "Unable to create directory %s: %s",
            directory,
            exc,
            extra={"event": "config.paths.mkdir_failed"},
        )
        raise
    return directory


def resolve_file_path(path_value: Optional[PathLike], default_path: PathLike) -> Path:
    """Resolve a file path relative to the project root, creating its parent."""

    candidate = _normalize(path_value if path_value not in (None, "") else default_path)
    candidate.parent.mkdir(parents=True, exist_ok=True)
    return candidate


def dictionary_path(settings: LexiweaveSettings) -> Path:
    data_dir = resolve_directory(settings.data_dir, settings.data_dir)
    return resolve_file_path(settings.dictionary_path, data_dir / DEFAULT_DICTIONARY_FILENAME)


def translation_cache_dir(settings: LexiweaveSettings) -> Path:
    return resolve_directory(settings.translation_cache_dir, DEFAULT_TRANSLATION_CACHE_RELATIVE)


def frequency_cache_dir(settings: LexiweaveSettings) -> Path:
    return resolve_directory(settings.frequency_cache_dir, DEFAULT_FREQUENCY_CACHE_RELATIVE)


__all__ = [
    "dictionary_path",
    "frequency_cache_dir",
    "resolve_directory",
    "resolve_file_path",
    "translation_cache_dir",
]
