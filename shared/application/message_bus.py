"""
Message Bus

Routes domain events to the side-effect handlers that subscribed to them
(notifications, real-time pushes). Handlers are isolated from each other:
a failing handler is logged and the remaining ones still run, so a broken
notification channel never fails the request that produced the event.
"""

from typing import Callable, Dict, Iterable, List, Type
import logging

from shared.domain.base import DomainEvent

logger = logging.getLogger(__name__)

EventHandler = Callable[[DomainEvent], None]


class MessageBus:
    """Event dispatcher: many handlers per event type (1:N)."""

    def __init__(self):
        self._event_handlers: Dict[Type[DomainEvent], List[EventHandler]] = {}

    def register_event_handler(self, event_type: Type[DomainEvent], handler: EventHandler):
        """
        Register an event handler

        Registering the same handler twice for one event type is a no-op,
        since app registries may run ready() more than once under test runners.
        """
        handlers = self._event_handlers.setdefault(event_type, [])
        if handler in handlers:
            return
        handlers.append(handler)
        logger.debug(f"Registered event handler {handler.__name__} for {event_type.__name__}")

    def subscribe(self, *event_types: Type[DomainEvent]):
        """Decorator form of register_event_handler"""

        def decorator(handler: EventHandler) -> EventHandler:
            for event_type in event_types:
                self.register_event_handler(event_type, handler)
            return handler

        return decorator

    def handlers_for(self, event: DomainEvent) -> List[EventHandler]:
        """Handlers registered for the event's class and its base classes"""
        found: List[EventHandler] = []
        for klass in type(event).__mro__:
            for handler in self._event_handlers.get(klass, []):
                if handler not in found:
                    found.append(handler)
        return found

    def publish_events(self, events: Iterable[DomainEvent]):
        """
        Publish domain events

        All registered handlers for each event type are called.
        Errors in handlers are logged but don't stop other handlers.
        """
        for event in events:
            event_name = type(event).__name__
            handlers = self.handlers_for(event)

            if not handlers:
                logger.warning(f"No handlers registered for event {event_name}")
                continue

            logger.info(f"Publishing event: {event_name} (ID: {event.event_id})")

            for handler in handlers:
                try:
                    handler(event)
                except Exception as e:
                    logger.error(
                        f"Error in event handler {handler.__name__} "
                        f"for event {event_name}: {e}",
                        exc_info=True
                    )

    def clear(self):
        self._event_handlers.clear()


# Process-wide bus; handlers are attached from AppConfig.ready()
message_bus = MessageBus()
