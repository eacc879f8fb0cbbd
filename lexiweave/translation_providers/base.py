"""Base class and shared types for HTTP translation providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping, Optional, Sequence

import requests

from lexiweave.errors import MalformedResponse, NetworkError, ProviderHTTPError, RateLimited

DEFAULT_TIMEOUT_SECONDS = 10.0
USER_AGENT = "lexiweave/0.1"


class AttemptOutcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(slots=True)
class ProviderAttempt:
    """What happened when the orchestrator considered one provider."""

    provider: str
    outcome: AttemptOutcome
    reason: Optional[str] = None
    base_url: Optional[str] = None


@dataclass(slots=True)
class ProviderConfig:
    """Static configuration of a provider instance."""

    name: str
    base_url: str
    mirrors: List[str] = field(default_factory=list)
    api_key: Optional[str] = None
    rate_limit: int = 60
    """Requests per minute."""

    enabled: bool = True
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS


@dataclass(slots=True)
class ProviderTranslation:
    """A provider's answer before orchestration adds caching metadata."""

    translated_text: str
    provider: str
    confidence: Optional[float] = None


class BaseTranslationProvider(ABC):
    """Abstract base class for translation API clients.

    Subclasses implement :meth:`translate` and raise a
    :class:`~lexiweave.errors.ProviderError` subclass on every failure; they
    never return an empty translation.
    """

    name: str
    supports_mirrors: bool = False

    def __init__(
        self,
        config: ProviderConfig,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self._config = config
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._base_urls = [config.base_url.rstrip("/")] + [
            mirror.rstrip("/") for mirror in config.mirrors if mirror
        ]
        self._mirror_index = 0

    @property
    def config(self) -> ProviderConfig:
        return self._config

    @property
    def base_url(self) -> str:
        return self._base_urls[self._mirror_index]

    @property
    def base_urls(self) -> Sequence[str]:
        return tuple(self._base_urls)

    @property
    def enabled(self) -> bool:
        return self._config.enabled

    def set_enabled(self, enabled: bool) -> None:
        self._config.enabled = enabled

    def set_api_key(self, api_key: Optional[str]) -> None:
        self._config.api_key = api_key or None

    def rotate_mirror(self) -> str:
        """Advance to the next base URL and return it.

        Single-endpoint providers keep their URL.
        """
        if self.supports_mirrors and len(self._base_urls) > 1:
            self._mirror_index = (self._mirror_index + 1) % len(self._base_urls)
        return self.base_url

    @abstractmethod
    def translate(self, text: str, source: str, target: str) -> ProviderTranslation:
        """Translate ``text`` from ``source`` to ``target``."""
        ...

    @abstractmethod
    def supported_languages(self) -> List[str]:
        """Return the language codes the provider accepts."""
        ...

    def close(self) -> None:
        """Release resources."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> "BaseTranslationProvider":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _request_json(
        self,
        method: str,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json_body: Optional[Mapping[str, Any]] = None,
    ) -> Any:
        """Perform a request and return the decoded JSON body.

        Raises:
            NetworkError: connection failures and timeouts.
            RateLimited: HTTP 429.
            ProviderHTTPError: any other non-200 status.
            MalformedResponse: a body that is not JSON.
        """
        try:
            response = self._session.request(
                method,
                url,
                params=params,
                json=json_body,
                headers={"Accept": "application/json", "User-Agent": USER_AGENT},
                timeout=self._config.timeout_seconds,
            )
        except requests.Timeout as exc:
            raise NetworkError(self.name, f"timed out after {self._config.timeout_seconds}s") from exc
        except requests.RequestException as exc:
            raise NetworkError(self.name, str(exc)) from exc

        if response.status_code == 429:
            raise RateLimited(self.name, f"HTTP 429 {response.reason or 'Too Many Requests'}")
        if response.status_code != 200:
            raise ProviderHTTPError(self.name, response.status_code, response.reason or "")
        try:
            return response.json()
        except ValueError as exc:
            raise MalformedResponse(self.name, "response body is not JSON") from exc


__all__ = [
    "AttemptOutcome",
    "BaseTranslationProvider",
    "DEFAULT_TIMEOUT_SECONDS",
    "ProviderAttempt",
    "ProviderConfig",
    "ProviderTranslation",
]
