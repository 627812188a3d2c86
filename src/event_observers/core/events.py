"""Bus adapter contract and a minimal synchronous host bus."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Protocol

from event_observers.core.exceptions import ConfigError

logger = logging.getLogger(__name__)

# Type alias for the callable a host bus invokes with one event.
EventHandler = Callable[[Any], None]


class Priority(IntEnum):
    """Ordering hint forwarded to the host bus.

    Handlers with a lower value are called first, so ``MONITOR`` observers
    see an event after every other handler has had its turn.
    """

    LOWEST = 0
    LOW = 1
    NORMAL = 2
    HIGH = 3
    HIGHEST = 4
    MONITOR = 5

    @classmethod
    def parse(cls, value: str | int | Priority) -> Priority:
        """Resolve a priority from its name (case-insensitive) or ordinal.

        Raises:
            ConfigError: If *value* names no priority.
        """
        if isinstance(value, Priority):
            return value
        try:
            if isinstance(value, int):
                return cls(value)
            return cls[value.strip().upper()]
        except (KeyError, ValueError, AttributeError):
            msg = f"Unknown priority {value!r}, expected one of {[p.name.lower() for p in cls]}"
            raise ConfigError(msg) from None


@dataclass(frozen=True, slots=True)
class BusToken:
    """Opaque registration token handed out by a host bus."""

    id: int


class BusAdapter(Protocol):
    """The two operations the observer layer needs from a host bus."""

    def register(self, event_type: type, priority: Priority, handler: EventHandler) -> BusToken:
        """Route events of *event_type* (or a broader category) to *handler*."""

    def deactivate(self, token: BusToken) -> None:
        """Stop routing to the handler behind *token*."""


@dataclass(frozen=True, slots=True)
class _Route:
    token: BusToken
    event_type: type
    priority: Priority
    handler: EventHandler


class LocalBus:
    """Minimal in-process host bus implementing ``BusAdapter``.

    Events are delivered by ``isinstance``, so a handler registered for a
    base class also receives subclass instances.  Handlers run in
    ``(priority, registration order)`` order on the publishing thread.
    """

    def __init__(self) -> None:
        """Initialise a bus with no routes."""
        self._next_id = 1
        self._routes: dict[int, _Route] = {}

    def register(self, event_type: type, priority: Priority, handler: EventHandler) -> BusToken:
        """Register *handler* for *event_type* and its subclasses.

        Args:
            event_type: Category of events to route.
            priority: Position of the handler in the call order.
            handler: Callable receiving one event per invocation.

        Returns:
            The token identifying this route.
        """
        token = BusToken(self._next_id)
        self._next_id += 1
        self._routes[token.id] = _Route(token, event_type, Priority.parse(priority), handler)
        return token

    def deactivate(self, token: BusToken) -> None:
        """Remove a route if present."""
        self._routes.pop(token.id, None)

    def deactivate_all(self) -> None:
        """Remove every route."""
        self._routes.clear()

    @property
    def route_count(self) -> int:
        """Return the number of registered routes."""
        return len(self._routes)

    def publish(self, event: object) -> int:
        """Deliver one event and return the number of handlers invoked.

        Args:
            event: The event instance to deliver.
        """
        matching = sorted(
            (route for route in self._routes.values() if isinstance(event, route.event_type)),
            key=lambda route: (route.priority, route.token.id),
        )
        invoked = 0
        for route in matching:
            # A handler earlier in this pass may have deactivated a later one.
            if route.token.id not in self._routes:
                continue
            try:
                route.handler(event)
            except Exception:
                logger.exception("Error in handler %r for event %s", route.handler, type(event).__name__)
            invoked += 1
        return invoked
