"""Typed messages posted by the reader surface and an explicit channel to deliver them."""

from __future__ import annotations

import json
import queue
import threading
from typing import Annotated, Any, Callable, Dict, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from lexiweave import logging_manager as log_mgr
from lexiweave.errors import BridgeMessageError

logger = log_mgr.get_logger().getChild("bridge")


def to_camel(string: str) -> str:
    """Convert snake_case to camelCase for JSON serialization."""
    components = string.split("_")
    return components[0] + "".join(word.capitalize() for word in components[1:])


class CamelModel(BaseModel):
    """Base model that reads and writes camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ElementRect(CamelModel):
    x: float = 0.0
    y: float = 0.0
    width: float = 0.0
    height: float = 0.0


class WordTapMessage(CamelModel):
    type: Literal["wordTap"] = "wordTap"
    foreign_word: str
    original_word: str
    word_id: str
    pronunciation: Optional[str] = None
    part_of_speech: str = "unknown"
    context: Optional[str] = None
    position: Optional[ElementRect] = None


class WordLongPressMessage(WordTapMessage):
    type: Literal["wordLongPress"] = "wordLongPress"  # type: ignore[assignment]


class WordHoverEndMessage(CamelModel):
    type: Literal["wordHoverEnd"] = "wordHoverEnd"


class ProgressMessage(CamelModel):
    type: Literal["progress"] = "progress"
    progress: float = Field(ge=0.0, le=100.0)
    scroll_y: Optional[float] = None
    scroll_height: Optional[float] = None

    @property
    def fraction(self) -> float:
        return self.progress / 100.0


BridgeMessage = Annotated[
    Union[WordTapMessage, WordLongPressMessage, WordHoverEndMessage, ProgressMessage],
    Field(discriminator="type"),
]

MESSAGE_TYPES = ("wordTap", "wordLongPress", "wordHoverEnd", "progress")

_ADAPTER: TypeAdapter = TypeAdapter(BridgeMessage)

Handler = Callable[[Any], None]


def parse_bridge_message(raw: Union[str, bytes, Mapping[str, Any]]) -> BridgeMessage:
    """Validate ``raw`` (a JSON string or a mapping) into a bridge message.

    Raises:
        BridgeMessageError: when the payload is not JSON, has an unknown
            ``type`` or misses required fields.
    """

    if isinstance(raw, (str, bytes)):
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise BridgeMessageError(f"Bridge message is not valid JSON: {exc}") from exc
    else:
        payload = raw
    if not isinstance(payload, Mapping):
        raise BridgeMessageError("Bridge message must be a JSON object")
    try:
        return _ADAPTER.validate_python(dict(payload))
    except ValidationError as exc:
        raise BridgeMessageError(
            f"Invalid bridge message of type {payload.get('type')!r}: {exc.error_count()} error(s)"
        ) from exc


class BridgeChannel:
    """In-process channel between the reader surface and its host.

    ``publish`` validates and queues a message; ``dispatch`` drains the queue
    and hands each message to the subscribers registered for its type (or for
    every type).
    """

    def __init__(self) -> None:
        self._pending: "queue.Queue[Any]" = queue.Queue()
        self._handlers: Dict[Optional[str], List[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, handler: Handler, message_type: Optional[str] = None) -> Callable[[], None]:
        """Register ``handler``; returns a callable that removes it again."""

        if message_type is not None and message_type not in MESSAGE_TYPES:
            raise BridgeMessageError(f"Unknown bridge message type {message_type!r}")
        with self._lock:
            self._handlers.setdefault(message_type, []).append(handler)

        def unsubscribe() -> None:
            with self._lock:
                handlers = self._handlers.get(message_type, [])
                if handler in handlers:
                    handlers.remove(handler)

        return unsubscribe

    def publish(self, message: Union[BaseModel, str, bytes, Mapping[str, Any]]) -> Any:
        parsed = message if isinstance(message, BaseModel) else parse_bridge_message(message)
        self._pending.put(parsed)
        return parsed

    @property
    def pending(self) -> int:
        return self._pending.qsize()

    def dispatch(self) -> int:
        """Deliver every queued message; returns how many were delivered."""

        delivered = 0
        while True:
            try:
                message = self._pending.get_nowait()
            except queue.Empty:
                break
            with self._lock:
                handlers = list(self._handlers.get(message.type, [])) + list(
                    self._handlers.get(None, [])
                )
            logger.debug(
                "Dispatching %s to %d handler(s)",
                message.type,
                len(handlers),
                extra={"event": "bridge.dispatch", "console_suppress": True},
            )
            for handler in handlers:
                handler(message)
            delivered += 1
        return delivered


__all__ = [
    "BridgeChannel",
    "BridgeMessage",
    "ElementRect",
    "MESSAGE_TYPES",
    "ProgressMessage",
    "WordHoverEndMessage",
    "WordLongPressMessage",
    "WordTapMessage",
    "parse_bridge_message",
]
