"""Pytest fixtures for scheduling tests."""

from __future__ import annotations

from datetime import datetime

import pytest

from tests._support import FakeClock, ManualTimerBackend
from wellwisher.scheduling import TaskId, TaskRegistry


@pytest.fixture
def registry(backend: ManualTimerBackend, clock: FakeClock) -> TaskRegistry:
    """Registry on the manual backend."""
    return TaskRegistry(backend, clock=clock)


@pytest.fixture
def calls() -> list[tuple[TaskId, datetime]]:
    """Sink for task actions."""
    return []


@pytest.fixture
def action(calls):
    def _action(task_id: TaskId, due_at: datetime) -> None:
        calls.append((task_id, due_at))

    return _action
