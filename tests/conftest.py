"""
Shared pytest fixtures and configuration for wellwisher tests.

This module provides:
- Location-based marker assignment (integration / unit)
- An event factory with scheduling-relevant defaults
- Deterministic clock, timer backend, store and sender doubles
- Settings that ignore the developer's environment

Usage:
    Fixtures are auto-discovered by pytest; request them by name.

    def test_something(scheduler, clock, backend, store):
        ...
"""

from __future__ import annotations

import sys
from collections.abc import Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import pytest

# Make tests._support importable when run from any directory
sys.path.insert(0, str(Path(__file__).parent.parent))
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from tests._support import FakeClock, ManualTimerBackend, MemoryEventStore, RecordingSender  # noqa: E402
from wellwisher.core.models import Event  # noqa: E402
from wellwisher.core.settings import WellWisherSettings  # noqa: E402
from wellwisher.scheduling import TaskScheduler, TaskWorkerPool  # noqa: E402


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration", "slow"}):
            item.add_marker(pytest.mark.unit)


# =============================================================================
# Events
# =============================================================================


@pytest.fixture
def make_event() -> Callable[..., Event]:
    """Factory for events; keyword arguments override the defaults."""
    counter = iter(range(1, 10_000))

    def _make(**overrides: Any) -> Event:
        fields: dict[str, Any] = {
            "id": f"evt-{next(counter)}",
            "name": "Birthday",
            "event_date": datetime(2024, 6, 15, tzinfo=UTC),
            "message_date": datetime(2024, 6, 10, tzinfo=UTC),
            "invitees": ["a@example.com", "b@example.com"],
            "message": "See you there",
        }
        fields.update(overrides)
        return Event(**fields)

    return _make


# =============================================================================
# Scheduler collaborators
# =============================================================================


@pytest.fixture
def settings() -> WellWisherSettings:
    """UTC settings with defaults otherwise; environment and .env are ignored."""
    return WellWisherSettings(_env_file=None, timezone="UTC", worker_count=1)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 1, 1, tzinfo=UTC))


@pytest.fixture
def backend(clock: FakeClock) -> ManualTimerBackend:
    return ManualTimerBackend(clock)


@pytest.fixture
def store() -> MemoryEventStore:
    return MemoryEventStore()


@pytest.fixture
def sender() -> RecordingSender:
    return RecordingSender()


@pytest.fixture
def scheduler(
    store: MemoryEventStore,
    sender: RecordingSender,
    backend: ManualTimerBackend,
    settings: WellWisherSettings,
    clock: FakeClock,
) -> Generator[TaskScheduler, None, None]:
    """Started scheduler on the manual backend with a one-thread pool."""
    sched = TaskScheduler(
        store,
        sender,
        backend=backend,
        settings=settings,
        clock=clock,
        pool=TaskWorkerPool(max_workers=1),
    )
    sched.start()
    yield sched
    sched.stop(timeout=5)

