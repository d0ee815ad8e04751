"""In-process lifecycle event emission."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from typing import Any, Protocol

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


class EventSink(Protocol):
    """Anything the queue can publish lifecycle events to."""

    def emit(self, event: str, payload: Any) -> None:
        """Deliver one event."""


class EventEmitter:
    """Synchronous named-event emitter.

    Listeners run in registration order inside ``emit``. A failing listener is
    logged and does not stop delivery to the remaining ones, so publishing
    never raises into the caller.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}

    def on(self, event: str, listener: Listener) -> Listener:
        """Register ``listener`` for ``event``; returns it so it works as a decorator."""

        with self._lock:
            self._listeners.setdefault(event, []).append((listener, False))
        return listener

    def once(self, event: str, listener: Listener) -> Listener:
        """Register ``listener`` for the next ``event`` only."""

        with self._lock:
            self._listeners.setdefault(event, []).append((listener, True))
        return listener

    def off(self, event: str, listener: Listener) -> None:
        """Remove ``listener`` when previously registered."""

        with self._lock:
            entries = self._listeners.get(event)
            if not entries:
                return
            self._listeners[event] = [entry for entry in entries if entry[0] is not listener]
            if not self._listeners[event]:
                del self._listeners[event]

    def listeners(self, event: str) -> list[Listener]:
        with self._lock:
            return [listener for listener, _ in self._listeners.get(event, [])]

    def emit(self, event: str, payload: Any) -> None:
        with self._lock:
            entries = list(self._listeners.get(event, []))
            if any(once for _, once in entries):
                self._listeners[event] = [entry for entry in entries if not entry[1]]
                if not self._listeners[event]:
                    del self._listeners[event]

        for listener, _ in entries:
            try:
                listener(payload)
            except Exception:
                logger.exception("Listener for event %r failed", event)
