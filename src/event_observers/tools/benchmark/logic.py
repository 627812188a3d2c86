"""Pure benchmark logic — publishes many events through a filtered observer."""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Iterable
from dataclasses import dataclass

import numpy as np

from event_observers.core.config import ConfigManager
from event_observers.core.datatypes import BenchmarkResult
from event_observers.core.events import LocalBus, Priority
from event_observers.core.exceptions import ValidationError
from event_observers.core.observers import Observers

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Message:
    """Event carrying a line of text."""

    text: str


def random_texts(count: int) -> list[str]:
    """Return *count* random UUID strings."""
    return [str(uuid.uuid4()) for _ in range(count)]


def run_benchmark(
    events: int = 100_000,
    *,
    min_length: int = 5,
    priority: Priority | None = None,
    texts: Iterable[str] | None = None,
    config: ConfigManager | None = None,
) -> BenchmarkResult:
    """Publish ``Message`` events through one filtered observer and time it.

    The observer accepts messages longer than *min_length* characters.
    Texts are prepared up front so only dispatch is timed.

    Args:
        events: Number of events to publish when *texts* is not given.
        min_length: Predicate threshold.
        priority: Priority of the observer (façade default if ``None``).
        texts: Explicit message texts; overrides *events*.
        config: Optional configuration used to build the façade.

    Returns:
        A ``BenchmarkResult`` with totals and per-publish latency percentiles.

    Raises:
        ValidationError: If *events* is negative.
    """
    if texts is None:
        if events < 0:
            msg = f"events must not be negative, got {events}"
            raise ValidationError(msg)
        payload = [Message(text) for text in random_texts(events)]
    else:
        payload = [Message(text) for text in texts]

    bus = LocalBus()
    observers = Observers.from_config(bus, config) if config is not None else Observers(bus)

    fired = 0

    def count(_event: Message) -> None:
        nonlocal fired
        fired += 1

    handle = observers.observe_if(Message, count, lambda event: len(event.text) > min_length, priority=priority)

    latencies = np.empty(len(payload), dtype=np.float64)
    start = time.perf_counter()
    for index, message in enumerate(payload):
        before = time.perf_counter_ns()
        bus.publish(message)
        latencies[index] = time.perf_counter_ns() - before
    elapsed_ms = (time.perf_counter() - start) * 1000.0
    handle.cancel()

    if len(payload):
        p50, p99 = np.percentile(latencies, [50, 99]) / 1000.0
    else:
        p50 = p99 = 0.0

    logger.info("Benchmark: %d events, %d fired in %.1f ms", len(payload), fired, elapsed_ms)
    return BenchmarkResult(
        events=len(payload),
        fired=fired,
        elapsed_ms=elapsed_ms,
        p50_us=float(p50),
        p99_us=float(p99),
    )
