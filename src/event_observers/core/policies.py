"""Dispatch policies — decide whether a delivery runs and whether it ends the subscription."""

from __future__ import annotations

import math
import time
from abc import ABC, abstractmethod
from collections.abc import Callable
from datetime import timedelta
from typing import Any

from event_observers.core.exceptions import ValidationError

# ``invoke(callback, event, *args)`` runs a callback through the sanitizer.
Invoker = Callable[..., None]
Clock = Callable[[], float]


class DispatchPolicy(ABC):
    """Per-subscription lifecycle rule wrapping the user callback.

    Subclasses implement :meth:`dispatch`, which is called once for every
    delivery whose event type matches the subscription exactly.

    Args:
        handler: The user callback.
    """

    name: str
    # Deactivated before the callback runs, so a nested delivery cannot reach it.
    one_shot = False

    def __init__(self, handler: Callable[..., Any]) -> None:
        """Store the callback after checking it is present."""
        if handler is None:
            msg = "handler cannot be None"
            raise ValidationError(msg)
        self.handler = handler

    @abstractmethod
    def dispatch(self, event: Any, invoke: Invoker) -> bool:
        """Handle one delivery.

        Args:
            event: The delivered event.
            invoke: Sanitizing invoker; never raises for callback failures.

        Returns:
            ``True`` when the subscription must deactivate.
        """
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.handler!r})"


class Once(DispatchPolicy):
    """Handle a single event, then deactivate whether or not the callback failed."""

    name = "once"
    one_shot = True

    def dispatch(self, event: Any, invoke: Invoker) -> bool:
        """Invoke the callback and request deactivation."""
        invoke(self.handler, event)
        return True


class Persistent(DispatchPolicy):
    """Handle every event until cancelled from outside."""

    name = "all"

    def dispatch(self, event: Any, invoke: Invoker) -> bool:
        """Invoke the callback; never request deactivation."""
        invoke(self.handler, event)
        return False


class Filtered(DispatchPolicy):
    """Handle only the events accepted by a predicate.

    The predicate is user code, so it runs inside the sanitizer too: a
    predicate that raises is reported and counts as a rejection.

    Args:
        handler: The user callback.
        predicate: Decides whether an event reaches *handler*.
    """

    name = "if"

    def __init__(self, handler: Callable[..., Any], predicate: Callable[[Any], bool]) -> None:
        """Store the callback and predicate."""
        super().__init__(handler)
        if predicate is None:
            msg = "predicate cannot be None"
            raise ValidationError(msg)
        self.predicate = predicate

    def dispatch(self, event: Any, invoke: Invoker) -> bool:
        """Invoke the callback when the predicate holds; never request deactivation."""
        invoke(self._handle_if_accepted, event)
        return False

    def _handle_if_accepted(self, event: Any) -> None:
        if self.predicate(event):
            self.handler(event)


class TimeBounded(DispatchPolicy):
    """Handle events until a deadline, detected lazily on the next delivery.

    There is no timer: the first delivery after the deadline deactivates
    the subscription and is itself not handed to the callback.

    Args:
        handler: The user callback.
        duration: Finite, non-negative lifetime in seconds (or a ``timedelta``),
                  counted from construction.  Build it with
                  :meth:`Observers.observe_for` so the deadline starts at
                  registration and uses the façade's clock.
        clock: Monotonic time source in seconds.
        pass_remaining: If ``True`` the callback is called as
                        ``handler(event, remaining_seconds)``.
    """

    name = "for"

    def __init__(
        self,
        handler: Callable[..., Any],
        duration: float | timedelta,
        *,
        clock: Clock = time.monotonic,
        pass_remaining: bool = False,
    ) -> None:
        """Compute the absolute deadline from *duration*."""
        super().__init__(handler)
        seconds = _seconds(duration)
        self._clock = clock
        self.pass_remaining = pass_remaining
        self.deadline = clock() + seconds

    def remaining(self) -> float:
        """Return the seconds left before the deadline (negative once expired)."""
        return self.deadline - self._clock()

    def dispatch(self, event: Any, invoke: Invoker) -> bool:
        """Invoke the callback before the deadline; request deactivation after it."""
        now = self._clock()
        if now > self.deadline:
            return True
        if self.pass_remaining:
            invoke(self.handler, event, self.deadline - now)
        else:
            invoke(self.handler, event)
        return False


def _seconds(duration: float | timedelta) -> float:
    """Convert a lifetime to seconds, rejecting missing, negative and non-finite values."""
    if isinstance(duration, timedelta):
        seconds = duration.total_seconds()
    else:
        try:
            seconds = float(duration)
        except (TypeError, ValueError):
            msg = f"duration must be a number of seconds or a timedelta, got {duration!r}"
            raise ValidationError(msg) from None
    if not math.isfinite(seconds) or seconds < 0:
        msg = f"duration must be finite and not negative, got {seconds}"
        raise ValidationError(msg)
    return seconds
