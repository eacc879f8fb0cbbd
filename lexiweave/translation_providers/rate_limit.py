"""Per-provider fixed-window request budgets."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict

WINDOW_SECONDS = 60.0


@dataclass(slots=True)
class _Window:
    started_at: float
    count: int = 0


class FixedWindowRateLimiter:
    """Count requests per provider in fixed 60-second windows.

    A provider is limited once its counter reaches the budget; the counter
    resets when a window has elapsed since the first request counted in it.
    """

    def __init__(
        self,
        window_seconds: float = WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._window_seconds = window_seconds
        self._clock = clock
        self._windows: Dict[str, _Window] = {}
        self._lock = threading.Lock()

    def _current(self, provider: str) -> _Window:
        now = self._clock()
        window = self._windows.get(provider)
        if window is None or now - window.started_at >= self._window_seconds:
            window = _Window(started_at=now)
            self._windows[provider] = window
        return window

    def _count(self, provider: str) -> int:
        window = self._windows.get(provider)
        if window is None or self._clock() - window.started_at >= self._window_seconds:
            return 0
        return window.count

    def is_limited(self, provider: str, limit: int) -> bool:
        with self._lock:
            return self._count(provider) >= limit

    def record(self, provider: str) -> int:
        """Count one request against ``provider`` and return the window total."""
        with self._lock:
            window = self._current(provider)
            window.count += 1
            return window.count

    def remaining(self, provider: str, limit: int) -> int:
        with self._lock:
            return max(0, limit - self._count(provider))

    def reset(self, provider: str | None = None) -> None:
        with self._lock:
            if provider is None:
                self._windows.clear()
            else:
                self._windows.pop(provider, None)


__all__ = ["FixedWindowRateLimiter", "WINDOW_SECONDS"]
