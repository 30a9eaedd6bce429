"""EventHandlerRegistry — maps outbox event types to handler callables."""

import logging
from collections import defaultdict
from collections.abc import Callable

logger = logging.getLogger(__name__)

Handler = Callable[[dict], None]


class EventHandlerRegistry:
    """Process-wide registry of event handlers.

    Handlers are plain synchronous callables taking the event payload. They
    run inside the Celery outbox worker, so they should only enqueue work
    (e.g. notification tasks) rather than perform slow I/O themselves.
    """

    _handlers: dict[str, list[Handler]] = defaultdict(list)

    @classmethod
    def register(cls, event_type: str, handler: Handler) -> None:
        if handler in cls._handlers[event_type]:
            return
        cls._handlers[event_type].append(handler)
        logger.info("Registered handler %s for event type %s", handler.__name__, event_type)

    @classmethod
    def handles(cls, event_type: str) -> Callable[[Handler], Handler]:
        """Decorator form of :meth:`register`."""

        def decorator(handler: Handler) -> Handler:
            cls.register(event_type, handler)
            return handler

        return decorator

    @classmethod
    def get_handlers(cls, event_type: str) -> list[Handler]:
        return list(cls._handlers.get(event_type, []))

    @classmethod
    def clear(cls) -> None:
        """Remove all registered handlers. Used by tests."""
        cls._handlers.clear()
