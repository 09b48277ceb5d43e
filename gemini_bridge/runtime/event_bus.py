from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Callable

import structlog

logger = structlog.get_logger()


class BridgeEventKind(StrEnum):
    AUTHENTICATION_REQUIRED = "authentication_required"
    AUTHENTICATION_COMPLETED = "authentication_completed"
    AUTH_URL_DISCOVERED = "auth_url_discovered"
    ACTIVE_ACCOUNT_CHANGED = "active_account_changed"


@dataclass(frozen=True, slots=True)
class BridgeEvent:
    kind: BridgeEventKind
    payload: dict[str, Any] = field(default_factory=dict)
    timestamp_ms: int = field(default_factory=lambda: int(time.time() * 1000))


EventHandler = Callable[[BridgeEvent], None]


class EventBus:
    """
    Synchronous fan-out of service notifications to host subscribers.

    Handlers run on the publishing task; a failing handler is logged and skipped.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        with self._lock:
            self._handlers.append(handler)

        def _unsubscribe() -> None:
            with self._lock:
                try:
                    self._handlers.remove(handler)
                except ValueError:
                    pass

        return _unsubscribe

    def publish(self, kind: BridgeEventKind, **payload: Any) -> BridgeEvent:
        event = BridgeEvent(kind=kind, payload=dict(payload))
        with self._lock:
            handlers = list(self._handlers)
        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.warning("event_handler_failed", kind=str(kind), error=str(e))
        return event
