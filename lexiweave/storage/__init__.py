"""Persistent stores used by the resolution pipeline."""

from .dictionary_store import DictionaryStore
from .kv_store import JsonFileStore, KeyValueStore, MemoryStore

__all__ = ["DictionaryStore", "JsonFileStore", "KeyValueStore", "MemoryStore"]
