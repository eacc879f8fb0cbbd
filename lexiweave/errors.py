"""Exception hierarchy shared across lexiweave."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from .translation_providers.base import ProviderAttempt


class LexiweaveError(Exception):
    """Base class for all lexiweave errors."""


class ConfigurationError(LexiweaveError):
    """Raised when configuration values cannot be loaded or validated."""


class StoreError(LexiweaveError):
    """Raised when a persistent store operation fails."""


class DuplicateEntryError(StoreError):
    """Raised when inserting a dictionary entry whose id already exists."""

    def __init__(self, entry_id: str) -> None:
        super().__init__(f"Dictionary entry {entry_id!r} already exists")
        self.entry_id = entry_id


class ProviderError(LexiweaveError):
    """Base class for failures raised by a single translation provider."""

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class NetworkError(ProviderError):
    """The provider could not be reached (connection error or timeout)."""


class ProviderHTTPError(ProviderError):
    """The provider answered with a non-success HTTP status."""

    def __init__(self, provider: str, status_code: int, message: str = "") -> None:
        super().__init__(provider, f"HTTP {status_code} {message}".strip())
        self.status_code = status_code


class MalformedResponse(ProviderError):
    """The provider answered but the payload did not contain a translation."""


class RateLimited(ProviderError):
    """The provider's per-minute request budget is exhausted."""


class AllProvidersFailedError(LexiweaveError):
    """Raised when every provider was skipped or failed for one translation."""

    def __init__(
        self,
        text: str,
        attempts: Optional[Sequence["ProviderAttempt"]] = None,
    ) -> None:
        self.text = text
        self.attempts = list(attempts or [])
        summary = ", ".join(
            f"{attempt.provider}={attempt.outcome.value}" for attempt in self.attempts
        )
        super().__init__(
            f"All translation providers failed for {text!r}"
            + (f" ({summary})" if summary else "")
        )


class BridgeMessageError(LexiweaveError):
    """Raised when a reader bridge message cannot be parsed or validated."""


__all__ = [
    "AllProvidersFailedError",
    "BridgeMessageError",
    "ConfigurationError",
    "DuplicateEntryError",
    "LexiweaveError",
    "MalformedResponse",
    "NetworkError",
    "ProviderError",
    "ProviderHTTPError",
    "RateLimited",
    "StoreError",
]
