"""Shared fixtures for the core test-suite."""

from __future__ import annotations

import pytest

from event_observers.core.events import LocalBus
from event_observers.core.observers import Observers
from event_observers.tools.scenarios.logic import ManualClock


@pytest.fixture()
def bus() -> LocalBus:
    """Return an empty local bus."""
    return LocalBus()


@pytest.fixture()
def clock() -> ManualClock:
    """Return a manual clock starting at 100 s."""
    return ManualClock(start=100.0)


@pytest.fixture()
def observers(bus: LocalBus, clock: ManualClock) -> Observers:
    """Return a façade over ``bus`` driven by ``clock``."""
    return Observers(bus, clock=clock)
