"""In-process event bus for address lifecycle notifications.

Publishing is fire-and-forget: a failing subscriber is logged and never
breaks the write or job that published the event.
"""

import inspect
from collections import defaultdict
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol

from loguru import logger

if TYPE_CHECKING:
    from geoaddress.models.address import Address

EventHandler = Callable[[Any], Awaitable[None] | None]


@dataclass(frozen=True)
class AddressGeocoded:
    """Fired when an address receives coordinates.

    ``provider`` names the geocoder that resolved the address, or is None
    when the caller supplied the coordinates directly.
    """

    address: "Address"
    provider: str | None = None


class EventBus(Protocol):
    """Protocol for publishing events to subscribers."""

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        """Register a handler for an event type."""
        ...

    async def publish(self, event: object) -> None:
        """Deliver an event to every handler subscribed to its type."""
        ...


class InProcessEventBus:
    """Event bus that calls subscribers in the publishing task."""

    def __init__(self) -> None:
        self._handlers: dict[type, list[EventHandler]] = defaultdict(list)

    def subscribe(self, event_type: type, handler: EventHandler) -> None:
        """Register a sync or async handler for an event type."""
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: type, handler: EventHandler) -> None:
        """Remove a previously registered handler.

        Raises:
            ValueError: If the handler is not subscribed to the event type.
        """
        self._handlers[event_type].remove(handler)

    async def publish(self, event: object) -> None:
        """Deliver an event to its subscribers, logging handler failures."""
        for handler in list(self._handlers.get(type(event), [])):
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.exception(f"Event handler {handler!r} failed for {type(event).__name__}")


# Singleton instance for the application
event_bus = InProcessEventBus()
