"""Scenario demo — exercises each dispatch policy against a local bus."""

from event_observers.tools.scenarios.logic import ManualClock, run_scenarios

__all__ = ["ManualClock", "run_scenarios"]
