"""Pure scenario logic — one small run per dispatch policy."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from event_observers.core.config import ConfigManager
from event_observers.core.datatypes import ScenarioResult
from event_observers.core.events import LocalBus
from event_observers.core.observers import Observers, SubscriptionHandle
from event_observers.core.sanitizer import DiagnosticSink, ExceptionSanitizer

logger = logging.getLogger(__name__)


# ── Events ────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Ping:
    """Event without payload."""


@dataclass(frozen=True)
class LoudPing(Ping):
    """Subclass of ``Ping``; never reaches a ``Ping`` observer."""


@dataclass(frozen=True)
class Msg:
    """Event carrying a short text."""

    text: str


@dataclass(frozen=True)
class Tick:
    """Clock tick event."""


class ManualClock:
    """Monotonic clock that only moves when told to.

    Args:
        start: Initial reading in seconds.
    """

    def __init__(self, start: float = 0.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        """Move the clock forward by *seconds*."""
        self.now += seconds


# ── Runner ────────────────────────────────────────────────────────────────


class _Counter:
    def __init__(self) -> None:
        self.count = 0
        self.remaining: list[float] = []

    def __call__(self, _event: Any, remaining: float | None = None) -> None:
        self.count += 1
        if remaining is not None:
            self.remaining.append(remaining)


def _boom(counter: _Counter) -> Callable[[Any], None]:
    def handler(event: Any) -> None:
        counter(event)
        msg = "All your base are belong to us"
        raise RuntimeError(msg)

    return handler


def run_scenarios(
    *,
    config: ConfigManager | None = None,
    sink: DiagnosticSink | None = None,
    duration: float = 3.0,
) -> list[ScenarioResult]:
    """Run every policy scenario and return the observed callback counts.

    Each scenario gets a fresh ``LocalBus`` and façade.  The time-bounded
    scenario uses a ``ManualClock`` so it completes instantly.

    Args:
        config: Optional configuration for the façades.
        sink: Where callback failure reports go (default: logging).
        duration: Lifetime of the time-bounded observer in seconds.

    Returns:
        One ``ScenarioResult`` per scenario, in execution order.
    """
    results: list[ScenarioResult] = []

    def make(clock: ManualClock) -> tuple[LocalBus, Observers]:
        bus = LocalBus()
        level = config.failure_level() if config is not None else logging.INFO
        sanitizer = ExceptionSanitizer(sink=sink, level=level)
        if config is not None:
            return bus, Observers.from_config(bus, config, sanitizer=sanitizer, clock=clock)
        return bus, Observers(bus, sanitizer=sanitizer, clock=clock)

    def record(
        name: str,
        handle: SubscriptionHandle,
        observers: Observers,
        deliveries: int,
        counter: _Counter,
    ) -> None:
        result = ScenarioResult(
            name=name,
            policy=handle.policy_name,
            deliveries=deliveries,
            fired=counter.count,
            active=handle.active,
            failures=observers.sanitizer.failures,
        )
        logger.info("Scenario %s: fired %d of %d", name, result.fired, deliveries)
        results.append(result)

    # once: two pings, one callback
    clock = ManualClock()
    bus, observers = make(clock)
    counter = _Counter()
    handle = observers.observe(Ping, counter)
    bus.publish(Ping())
    bus.publish(Ping())
    record("once", handle, observers, 2, counter)

    # all: every ping handled
    bus, observers = make(clock)
    counter = _Counter()
    handle = observers.observe_all(Ping, counter)
    for _ in range(3):
        bus.publish(Ping())
    record("all", handle, observers, 3, counter)

    # if: only texts starting with "H"
    bus, observers = make(clock)
    counter = _Counter()
    handle = observers.observe_if(Msg, counter, lambda event: event.text.startswith("H"))
    bus.publish(Msg("Hello"))
    bus.publish(Msg("Bye"))
    record("if", handle, observers, 2, counter)

    # for: a tick now, another after the deadline
    bus, observers = make(clock)
    counter = _Counter()
    handle = observers.observe_for(Tick, counter, duration, pass_remaining=True)
    bus.publish(Tick())
    clock.advance(duration + 0.5)
    bus.publish(Tick())
    record("for", handle, observers, 2, counter)

    # exact: a subclass instance is not a Ping
    bus, observers = make(clock)
    counter = _Counter()
    handle = observers.observe_all(Ping, counter)
    bus.publish(LoudPing())
    record("exact", handle, observers, 1, counter)

    # failing: a raising callback stays subscribed
    bus, observers = make(clock)
    counter = _Counter()
    handle = observers.observe_all(Ping, _boom(counter))
    bus.publish(Ping())
    bus.publish(Ping())
    record("failing", handle, observers, 2, counter)

    return results
