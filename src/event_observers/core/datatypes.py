"""Shared value objects produced by the bundled tools."""

from dataclasses import dataclass


@dataclass(frozen=True)
class BenchmarkResult:
    """Outcome of a dispatch benchmark run."""

    events: int
    fired: int
    elapsed_ms: float
    p50_us: float
    p99_us: float

    @property
    def events_per_second(self) -> float:
        """Return throughput over the whole run."""
        if self.elapsed_ms <= 0:
            return float("inf")
        return self.events / (self.elapsed_ms / 1000.0)


@dataclass(frozen=True)
class ScenarioResult:
    """Callback count observed for one demo scenario."""

    name: str
    policy: str
    deliveries: int
    fired: int
    active: bool
    failures: int = 0
