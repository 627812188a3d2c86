"""Dispatch benchmark — measures filtered-observer overhead on a local bus."""

from event_observers.tools.benchmark.logic import Message, run_benchmark

__all__ = ["Message", "run_benchmark"]
