"""In-process event bus.

Producers (gamification, enrollment, generation) publish typed payloads;
consumers subscribe to the payload class. Dispatch is synchronous and by
exact class. A failing handler is logged and skipped so the publisher and
the remaining handlers are unaffected.

Example:
    bus = EventBus()

    def on_level_up(event: LevelUp) -> None:
        print(event.new_level)

    bus.subscribe(LevelUp, on_level_up)
    bus.publish(LevelUp(user_id="u1", old_level=1, new_level=2))
"""

from __future__ import annotations

from typing import Any, Callable, TypeVar

import structlog

logger = structlog.get_logger(__name__)

E = TypeVar("E")
EventHandler = Callable[[Any], None]


class EventBus:
    """Typed synchronous publish/subscribe."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = {}
        self._published = 0

    def subscribe(self, event_type: type[E], handler: Callable[[E], None]) -> None:
        """Register a handler for one payload class."""
        self._handlers.setdefault(event_type, []).append(handler)
        logger.debug("event_handler_subscribed", event_type=event_type.__name__)

    def unsubscribe(self, event_type: type[E], handler: Callable[[E], None]) -> bool:
        """Remove a handler.

        Returns:
            True if the handler was registered, False otherwise.
        """
        handlers = self._handlers.get(event_type)
        if not handlers or handler not in handlers:
            return False

        handlers.remove(handler)
        if not handlers:
            del self._handlers[event_type]
        return True

    def publish(self, event: object) -> int:
        """Deliver an event to every handler subscribed to its class.

        Returns:
            Number of handlers that ran without raising.
        """
        self._published += 1
        event_name = type(event).__name__
        delivered = 0

        for handler in list(self._handlers.get(type(event), [])):
            try:
                handler(event)
                delivered += 1
            except Exception:
                logger.exception(
                    "event_handler_failed",
                    event_type=event_name,
                    handler=getattr(handler, "__qualname__", repr(handler)),
                )

        logger.debug("event_published", event_type=event_name, handlers=delivered)
        return delivered

    def handler_count(self, event_type: type) -> int:
        return len(self._handlers.get(event_type, []))

    @property
    def published_count(self) -> int:
        return self._published
