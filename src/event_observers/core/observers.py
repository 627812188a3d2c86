"""Observers — registration façade binding dispatch policies to a host bus."""

from __future__ import annotations

import contextlib
import functools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING, Any, TypeVar

from event_observers.core.events import BusAdapter, BusToken, Priority
from event_observers.core.exceptions import ValidationError
from event_observers.core.policies import Clock, DispatchPolicy, Filtered, Once, Persistent, TimeBounded
from event_observers.core.sanitizer import ExceptionSanitizer

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from event_observers.core.config import ConfigManager

logger = logging.getLogger(__name__)

TEvent = TypeVar("TEvent")


@dataclass(eq=False)
class Subscription:
    """Mutable state of one registered observer.

    Attributes:
        event_type: Exact runtime class the observer accepts.
        priority: Ordering hint forwarded to the bus.
        policy: Lifecycle rule holding the user callback.
        token: Bus-side registration token, set once the bus accepted it.
        active: ``False`` once deactivated; never flips back.
        mismatched: Deliveries dropped because the runtime type differed.
    """

    event_type: type
    priority: Priority
    policy: DispatchPolicy
    token: BusToken | None = None
    active: bool = True
    mismatched: int = 0


class SubscriptionHandle:
    """Caller-facing token for a subscription; its one operation is :meth:`cancel`."""

    __slots__ = ("_cancel", "_subscription")

    def __init__(self, subscription: Subscription, cancel: Callable[[Subscription], None]) -> None:
        self._subscription = subscription
        self._cancel = cancel

    @property
    def active(self) -> bool:
        """Return whether the subscription can still receive events."""
        return self._subscription.active

    @property
    def event_type(self) -> type:
        """Return the observed event type."""
        return self._subscription.event_type

    @property
    def priority(self) -> Priority:
        """Return the priority the subscription was registered with."""
        return self._subscription.priority

    @property
    def policy_name(self) -> str:
        """Return the short name of the dispatch policy (``once``, ``all``, ``if``, ``for``)."""
        return self._subscription.policy.name

    @property
    def mismatched(self) -> int:
        """Return how many deliveries were ignored for not matching the type exactly."""
        return self._subscription.mismatched

    def cancel(self) -> None:
        """Deactivate the subscription.  Further calls are no-ops."""
        self._cancel(self._subscription)

    def __repr__(self) -> str:
        state = "active" if self.active else "inactive"
        return f"<SubscriptionHandle {self.event_type.__name__} {self._subscription.policy.name} {state}>"


class Observers:
    """Registration façade: subscribe callbacks to a host bus with a lifecycle policy.

    Every subscription only sees events whose runtime type *is* the
    requested type; the bus may deliver a broader category (subclasses)
    and those deliveries are dropped before any policy runs.

    Delivery is assumed to be synchronous and serial.  When the host bus
    dispatches from several threads, pass a reentrant ``lock`` (for example
    ``threading.RLock()``); it is held around every read and write of
    subscription state.  It must be reentrant because callbacks may cancel
    their own handle.

    Args:
        bus: The host bus.
        sanitizer: Failure isolation for callbacks.  A default one logging
                   at INFO is created if omitted.
        default_priority: Priority used when a call does not pass one.
        lock: Context manager guarding subscription state.
        trace_mismatches: Log ignored deliveries at DEBUG.
        clock: Time source for time-bounded subscriptions.
    """

    def __init__(
        self,
        bus: BusAdapter,
        *,
        sanitizer: ExceptionSanitizer | None = None,
        default_priority: Priority = Priority.NORMAL,
        lock: AbstractContextManager[Any] | None = None,
        trace_mismatches: bool = False,
        clock: Clock = time.monotonic,
    ) -> None:
        """Initialise the façade over *bus*."""
        if bus is None:
            msg = "bus cannot be None"
            raise ValidationError(msg)
        self._bus = bus
        self._sanitizer = sanitizer or ExceptionSanitizer()
        self._default_priority = Priority.parse(default_priority)
        self._lock = lock if lock is not None else contextlib.nullcontext()
        self._trace_mismatches = trace_mismatches
        self._clock = clock
        self._live: list[Subscription] = []

    @classmethod
    def from_config(
        cls,
        bus: BusAdapter,
        config: ConfigManager,
        *,
        owner: str | None = None,
        **kwargs: Any,
    ) -> Observers:
        """Build a façade using settings from a ``ConfigManager``.

        Args:
            bus: The host bus.
            config: Loaded configuration.
            owner: Optional owner name whose overrides apply.
            **kwargs: Forwarded to the constructor (e.g. ``lock``).  Explicit
                      ``sanitizer``, ``default_priority`` or ``trace_mismatches``
                      values take precedence over the configuration.
        """
        if "sanitizer" not in kwargs:
            kwargs["sanitizer"] = ExceptionSanitizer(level=config.failure_level(owner=owner))
        if "default_priority" not in kwargs:
            kwargs["default_priority"] = config.default_priority(owner=owner)
        if "trace_mismatches" not in kwargs:
            kwargs["trace_mismatches"] = config.trace_mismatches(owner=owner)
        return cls(bus, **kwargs)

    @property
    def sanitizer(self) -> ExceptionSanitizer:
        """Return the sanitizer wrapping every callback."""
        return self._sanitizer

    @property
    def default_priority(self) -> Priority:
        """Return the priority used when none is given."""
        return self._default_priority

    @property
    def active_count(self) -> int:
        """Return the number of live subscriptions created by this façade."""
        return len(self._live)

    # ── registration ──────────────────────────────────────────
    def register(
        self,
        event_type: type,
        policy: DispatchPolicy,
        *,
        priority: Priority | None = None,
    ) -> SubscriptionHandle:
        """Bind *policy* to events of exactly *event_type*.

        A hand-built :class:`TimeBounded` keeps the clock it was constructed
        with and its deadline counts from construction, not from this call.
        Use :meth:`observe_for` to start the deadline at registration on the
        façade's clock.

        Args:
            event_type: The class to observe.
            policy: Lifecycle rule holding the callback.
            priority: Ordering hint; the façade default if ``None``.

        Returns:
            A handle whose ``cancel()`` removes the subscription.

        Raises:
            ValidationError: If *event_type* is not a class or *policy* is missing.
        """
        if not isinstance(event_type, type):
            msg = f"event_type must be a class, got {event_type!r}"
            raise ValidationError(msg)
        if policy is None:
            msg = "policy cannot be None"
            raise ValidationError(msg)

        subscription = Subscription(
            event_type=event_type,
            priority=self._default_priority if priority is None else Priority.parse(priority),
            policy=policy,
        )
        with self._lock:
            subscription.token = self._bus.register(event_type, subscription.priority, self._bridge(subscription))
            self._live.append(subscription)
        logger.debug(
            "Registered %s observer for %s at %s", policy.name, event_type.__name__, subscription.priority.name
        )
        return SubscriptionHandle(subscription, self._deactivate)

    def observe(
        self,
        event_type: type[TEvent],
        handler: Callable[[TEvent], Any],
        *,
        priority: Priority | None = None,
    ) -> SubscriptionHandle:
        """Handle the next event of *event_type* once, then unsubscribe."""
        return self.register(event_type, Once(handler), priority=priority)

    def observe_all(
        self,
        event_type: type[TEvent],
        handler: Callable[[TEvent], Any],
        *,
        priority: Priority | None = None,
    ) -> SubscriptionHandle:
        """Handle every event of *event_type* until cancelled."""
        return self.register(event_type, Persistent(handler), priority=priority)

    def observe_if(
        self,
        event_type: type[TEvent],
        handler: Callable[[TEvent], Any],
        predicate: Callable[[TEvent], bool],
        *,
        priority: Priority | None = None,
    ) -> SubscriptionHandle:
        """Handle every event of *event_type* for which *predicate* holds."""
        return self.register(event_type, Filtered(handler, predicate), priority=priority)

    def observe_for(
        self,
        event_type: type[TEvent],
        handler: Callable[..., Any],
        duration: float | timedelta,
        *,
        priority: Priority | None = None,
        pass_remaining: bool = False,
    ) -> SubscriptionHandle:
        """Handle events of *event_type* for *duration* seconds.

        With ``pass_remaining=True`` the handler is called as
        ``handler(event, remaining_seconds)``.
        """
        policy = TimeBounded(handler, duration, clock=self._clock, pass_remaining=pass_remaining)
        return self.register(event_type, policy, priority=priority)

    # ── teardown ──────────────────────────────────────────────
    def cancel_all(self) -> int:
        """Cancel every live subscription and return how many there were."""
        with self._lock:
            live = list(self._live)
            for subscription in live:
                self._deactivate(subscription)
        return len(live)

    # ── dispatch ──────────────────────────────────────────────
    def _bridge(self, subscription: Subscription) -> Callable[[Any], None]:
        invoke = functools.partial(self._sanitizer.invoke, event_type=subscription.event_type)

        def deliver(event: Any) -> None:
            with self._lock:
                if not subscription.active:
                    return
                if type(event) is not subscription.event_type:
                    subscription.mismatched += 1
                    if self._trace_mismatches:
                        logger.debug(
                            "Ignored %s delivered to %s observer",
                            type(event).__name__,
                            subscription.event_type.__name__,
                        )
                    return
                if subscription.policy.one_shot:
                    self._deactivate(subscription)
                if subscription.policy.dispatch(event, invoke):
                    self._deactivate(subscription)

        return deliver

    def _deactivate(self, subscription: Subscription) -> None:
        with self._lock:
            if not subscription.active:
                return
            subscription.active = False
            self._live.remove(subscription)
            if subscription.token is not None:
                self._bus.deactivate(subscription.token)
        logger.debug("Deactivated %s observer for %s", subscription.policy.name, subscription.event_type.__name__)
