"""Worker pool - runs executor jobs off the timer thread.

Timer callbacks must return quickly, and the registry lock must never be
held across an SMTP round trip or a database delete.  Firing callbacks
therefore only ``submit`` a job here; the I/O happens on a pool thread.

ARCHITECTURE
────────────
::

    TaskWorkerPool(max_workers=2)
      ├── .submit(name, fn)   ─ fire-and-forget, errors logged
      ├── .in_flight          ─ jobs queued or running
      ├── .drain(timeout)     ─ wait for in-flight jobs
      └── .shutdown(wait)     ─ stop accepting work

Tags:
    wellwisher, scheduling, worker, thread-pool

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor, wait
from typing import Any

from wellwisher.core.logging import LogContext, get_logger

logger = get_logger(__name__)


class TaskWorkerPool:
    """ThreadPoolExecutor wrapper with in-flight tracking.

    Example:
        >>> pool = TaskWorkerPool(max_workers=2)
        >>> pool.submit("reminder:evt-1", lambda: send_reminder(store, sender, "evt-1"))
        >>> pool.drain(timeout=5)
        True
        >>> pool.shutdown()
    """

    def __init__(self, max_workers: int = 2, thread_name_prefix: str = "wellwisher-worker") -> None:
        self.max_workers = max_workers
        self._pool = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix=thread_name_prefix)
        self._lock = threading.Lock()
        self._futures: set[Future] = set()
        self._closed = False
        self.completed = 0
        self.errored = 0

    def submit(
        self,
        name: str,
        fn: Callable[[], Any],
        on_done: Callable[[Any], None] | None = None,
    ) -> Future | None:
        """Queue *fn*.  ``on_done`` receives its return value on the pool thread.

        Returns ``None`` if the pool is already shut down.
        """
        with self._lock:
            if self._closed:
                logger.warning("job_rejected", job=name, reason="pool_shutdown")
                return None

            def run() -> Any:
                with LogContext(job=name):
                    try:
                        result = fn()
                        if on_done is not None:
                            on_done(result)
                        return result
                    except Exception as exc:
                        logger.exception("job_failed", error=str(exc))
                        with self._lock:
                            self.errored += 1
                        return None

            future = self._pool.submit(run)
            self._futures.add(future)
        future.add_done_callback(self._forget)
        return future

    def _forget(self, future: Future) -> None:
        with self._lock:
            self._futures.discard(future)
            self.completed += 1

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def in_flight(self) -> int:
        with self._lock:
            return len(self._futures)

    def drain(self, timeout: float | None = None) -> bool:
        """Wait for in-flight jobs.  Returns ``True`` if none remain."""
        with self._lock:
            pending = list(self._futures)
        if pending:
            _, not_done = wait(pending, timeout=timeout)
            return not not_done
        return True

    def shutdown(self, wait: bool = True) -> None:
        """Stop accepting work; optionally wait for queued jobs to finish."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._pool.shutdown(wait=wait)
        logger.debug("worker_pool_shutdown", completed=self.completed, errored=self.errored)

    def __enter__(self) -> TaskWorkerPool:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.shutdown(wait=True)
