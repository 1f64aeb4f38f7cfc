"""Event Bus - Fire-and-forget notifications for engine state changes"""

from __future__ import annotations

import logging
import threading
from concurrent.futures import Executor
from typing import Any, Callable

from models.events import EngineEvent, EventType

logger = logging.getLogger(__name__)

Listener = Callable[[EngineEvent], None]


class EventBus:
    """Simple listener list.

    Listeners are called after the state change they describe. With an
    executor they run in the background; without one they are called inline
    and must not block. A failing listener never affects the emitter.
    """

    def __init__(self, executor: Executor | None = None):
        self._listeners: list[Listener] = []
        self._lock = threading.Lock()
        self._executor = executor

    def subscribe(self, listener: Listener) -> None:
        with self._lock:
            self._listeners.append(listener)

    def unsubscribe(self, listener: Listener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def emit(self, event_type: EventType, **payload: Any) -> EngineEvent:
        event = EngineEvent(type=event_type, payload=payload)
        with self._lock:
            listeners = list(self._listeners)

        for listener in listeners:
            if self._executor is not None:
                self._executor.submit(self._deliver, listener, event)
            else:
                self._deliver(listener, event)
        return event

    def _deliver(self, listener: Listener, event: EngineEvent) -> None:
        try:
            listener(event)
        except Exception:
            logger.exception("Event listener failed for %s", event.type.value)
