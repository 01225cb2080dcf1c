"""
Test support utilities for wellwisher tests.

Deterministic stand-ins for the scheduler's collaborators: a settable clock,
a timer backend that only fires when told to, an in-memory event store with
failure injection, and a sender that records what it was asked to deliver.
"""

from __future__ import annotations

from tests._support.doubles import FailingStore, MemoryEventStore, RecordingSender
from tests._support.timers import FakeClock, ManualTimer, ManualTimerBackend, fire_and_settle

__all__ = [
    "FailingStore",
    "FakeClock",
    "ManualTimer",
    "ManualTimerBackend",
    "MemoryEventStore",
    "RecordingSender",
    "fire_and_settle",
]
