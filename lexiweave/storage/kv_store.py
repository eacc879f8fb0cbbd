"""Key/value persistence for frequency lists and translation caches."""

from __future__ import annotations

import hashlib
import json
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Iterator, Optional, Protocol, runtime_checkable

from lexiweave import logging_manager as log_mgr

logger = log_mgr.get_logger().getChild("storage.kv")


@runtime_checkable
class KeyValueStore(Protocol):
    """Minimal persistent mapping from string keys to JSON-serializable values."""

    def get(self, key: str) -> Optional[Any]: ...

    def set(self, key: str, value: Any) -> None: ...

    def delete(self, key: str) -> bool: ...

    def keys(self, prefix: str = "") -> Iterator[str]: ...


class MemoryStore:
    """In-process :class:`KeyValueStore`, used by tests and ephemeral engines."""

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            value = self._data.get(key)
        return json.loads(value) if value is not None else None

    def set(self, key: str, value: Any) -> None:
        payload = json.dumps(value, ensure_ascii=False)
        with self._lock:
            self._data[key] = payload

    def delete(self, key: str) -> bool:
        with self._lock:
            return self._data.pop(key, None) is not None

    def keys(self, prefix: str = "") -> Iterator[str]:
        with self._lock:
            snapshot = [key for key in self._data if key.startswith(prefix)]
        return iter(snapshot)

    def clear(self, prefix: str = "") -> int:
        with self._lock:
            doomed = [key for key in self._data if key.startswith(prefix)]
            for key in doomed:
                del self._data[key]
        return len(doomed)


class JsonFileStore:
    """File-backed :class:`KeyValueStore`.

    Each key is stored as one JSON document whose filename is derived from the
    SHA-256 of the key; the key itself is kept inside the document so
    :meth:`keys` can enumerate entries.
    """

    def __init__(self, directory: Path) -> None:
        self._directory = Path(directory)
        self._directory.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._directory

    def _path_for(self, key: str) -> Path:
        digest = hashlib.sha256(key.encode("utf-8")).hexdigest()[:32]
        return self._directory / f"{digest}.json"

    def get(self, key: str) -> Optional[Any]:
        path = self._path_for(key)
        if not path.exists():
            return None
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.debug("Failed to read store file %s: %s", path, exc)
            return None
        if document.get("key") != key:
            return None
        return document.get("value")

    def set(self, key: str, value: Any) -> None:
        path = self._path_for(key)
        document = {
            "key": key,
            "stored_at": datetime.now(timezone.utc).isoformat(),
            "value": value,
        }
        tmp_path = path.with_suffix(".tmp")
        with self._lock:
            try:
                tmp_path.write_text(json.dumps(document, ensure_ascii=False), encoding="utf-8")
                tmp_path.replace(path)
            except OSError as exc:
                logger.warning(
                    "Failed to write store file %s: %s",
                    path,
                    exc,
                    extra={"event": "storage.kv.write_failed"},
                )

    def delete(self, key: str) -> bool:
        path = self._path_for(key)
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        return True

    def keys(self, prefix: str = "") -> Iterator[str]:
        for path in sorted(self._directory.glob("*.json")):
            try:
                key = json.loads(path.read_text(encoding="utf-8")).get("key")
            except (OSError, json.JSONDecodeError):
                continue
            if isinstance(key, str) and key.startswith(prefix):
                yield key

    def clear(self, prefix: str = "") -> int:
        """Delete every entry whose key starts with ``prefix``."""

        removed = 0
        for key in list(self.keys(prefix)):
            if self.delete(key):
                removed += 1
        logger.info("Cleared %d store entries", removed, extra={"event": "storage.kv.cleared"})
        return removed


__all__ = ["JsonFileStore", "KeyValueStore", "MemoryStore"]
