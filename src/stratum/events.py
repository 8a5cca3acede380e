"""Synchronous event publication.

Listeners are plain callables, optionally restricted to an event type. Events
are delivered in registration order on the publishing thread; an exception
raised by a listener propagates to the publisher.
"""

import logging
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Optional

__all__ = [
    "ApplicationEvent",
    "ContextRefreshedEvent",
    "ContextClosedEvent",
    "SimpleEventPublisher",
]

logger = logging.getLogger(__name__)

Listener = Callable[[Any], None]


@dataclass(frozen=True)
class ApplicationEvent:
    source: Any
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class ContextRefreshedEvent(ApplicationEvent):
    """Published once a context has become active."""


@dataclass(frozen=True)
class ContextClosedEvent(ApplicationEvent):
    """Published when a context starts closing, while its components are still available."""


class SimpleEventPublisher:
    def __init__(self):
        self._listeners: list[tuple[Listener, Optional[type]]] = []
        self._lock = threading.Lock()

    def add_listener(self, listener: Listener, event_type: Optional[type] = None) -> None:
        with self._lock:
            self._listeners.append((listener, event_type))

    def remove_listener(self, listener: Listener) -> None:
        with self._lock:
            self._listeners = [(l, t) for l, t in self._listeners if l != listener]

    def publish_event(self, event: Any) -> None:
        with self._lock:
            listeners = list(self._listeners)
        delivered = 0
        for listener, event_type in listeners:
            if event_type is None or isinstance(event, event_type):
                listener(event)
                delivered += 1
        logger.debug(f"Delivered {type(event).__name__} to {delivered} listener(s)")
