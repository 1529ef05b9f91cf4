"""Minimal synchronous event dispatcher.

Every event is logged at DEBUG level and handed to subscribed listeners.
Listener errors are logged and never interrupt the request path.
"""

import logging
from typing import Callable, List, Optional

from figmadl.domain.events.api_events import DomainEvent

logger = logging.getLogger(__name__)

EventListener = Callable[[DomainEvent], None]


class EventDispatcher:
    """Publishes domain events to registered listeners."""

    def __init__(self, listeners: Optional[List[EventListener]] = None):
        self._listeners: List[EventListener] = list(listeners or [])

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def dispatch(self, event: DomainEvent) -> None:
        logger.debug(f"EVENT: {event}")
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Event listener {listener!r} failed on {type(event).__name__}: {e}", exc_info=True)
