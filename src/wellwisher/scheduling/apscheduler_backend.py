"""APScheduler-based timer backend.

Wraps APScheduler 3.x ``BackgroundScheduler`` to provide the
``TimerBackend`` protocol.  Each armed timer is a ``date`` job with
``misfire_grace_time=None`` so an instant that is already in the past still
runs (immediately) instead of being dropped as a misfire.

Requires the ``[apscheduler]`` extra::

    pip install wellwisher[apscheduler]

.. note::

    For most deployments the zero-dependency ``ThreadTimerBackend`` is
    sufficient.  Use this backend when APScheduler is already part of the
    process and its executors and event listeners are wanted.
"""

from __future__ import annotations

import logging
import threading
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from wellwisher.core.timestamps import ensure_utc

from .protocol import FireCallback

logger = logging.getLogger(__name__)


def _require_apscheduler():
    """Validate that apscheduler is installed."""
    try:
        from apscheduler.schedulers.background import BackgroundScheduler  # noqa: F401

        return BackgroundScheduler
    except ImportError:
        raise ImportError(
            "APScheduler is required for APSchedulerTimerBackend. "
            "Install it with: pip install wellwisher[apscheduler]"
        ) from None


class APSchedulerTimer:
    """Handle for a single APScheduler date job."""

    def __init__(self, backend: APSchedulerTimerBackend, job_id: str, fire_at: datetime):
        self._backend = backend
        self.job_id = job_id
        self._fire_at = fire_at
        self._cancelled = False

    @property
    def fire_at(self) -> datetime:
        return self._fire_at

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._backend._remove_job(self.job_id)


class APSchedulerTimerBackend:
    """APScheduler-based timer backend.

    Example::

        >>> backend = APSchedulerTimerBackend()
        >>> backend.start()
        >>> handle = backend.schedule(fire_at, callback)
        >>> handle.cancel()
        >>> backend.stop()
    """

    name: str = "apscheduler"

    def __init__(self) -> None:
        BackgroundScheduler = _require_apscheduler()  # noqa: N806
        self._scheduler = BackgroundScheduler(timezone=UTC)
        self._fired = 0
        self._lock = threading.Lock()
        self._handles: dict[str, APSchedulerTimer] = {}

    # ------------------------------------------------------------------
    # TimerBackend protocol
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._scheduler.running:
            logger.warning("APSchedulerTimerBackend already started")
            return
        self._scheduler.start()
        logger.info("APSchedulerTimerBackend started")

    def stop(self) -> None:
        """Shut APScheduler down, waiting for running callbacks.

        Handles still armed are marked cancelled.
        """
        with self._lock:
            for handle in self._handles.values():
                handle._cancelled = True
            self._handles.clear()
        if self._scheduler.running:
            self._scheduler.remove_all_jobs()
            self._scheduler.shutdown(wait=True)
            logger.info("APSchedulerTimerBackend stopped")

    def schedule(self, fire_at: datetime, callback: FireCallback) -> APSchedulerTimer:
        run_date = ensure_utc(fire_at)
        job_id = f"wellwisher-{uuid4().hex}"
        handle = APSchedulerTimer(self, job_id, run_date)

        def _fire() -> None:
            with self._lock:
                self._fired += 1
                self._handles.pop(job_id, None)
            callback()

        with self._lock:
            self._handles[job_id] = handle
        self._scheduler.add_job(
            _fire,
            "date",
            run_date=run_date,
            id=job_id,
            misfire_grace_time=None,
            coalesce=True,
            replace_existing=False,
        )
        return handle

    def _remove_job(self, job_id: str) -> None:
        from apscheduler.jobstores.base import JobLookupError

        with self._lock:
            self._handles.pop(job_id, None)
        try:
            self._scheduler.remove_job(job_id)
        except JobLookupError:
            # Already ran or already removed
            logger.debug("Job %s already gone", job_id)

    def health(self) -> dict[str, Any]:
        running = self._scheduler.running if hasattr(self._scheduler, "running") else False
        return {
            "healthy": running,
            "backend": self.name,
            "pending": len(self._scheduler.get_jobs()),
            "fired": self._fired,
        }
