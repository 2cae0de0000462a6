# -*- coding: utf-8 -*-
"""
Worker Pool - Bounded thread pool for operator invocations.

Wraps a ThreadPoolExecutor and tracks how many submitted callables are
executing, so the scheduler can keep dispatch within the pool size even
when timed-out invocations are still occupying threads.

Author
------
UOR Engine contributors

License
-------
MIT License
Copyright (c) 2026 UOR Engine contributors
See LICENSE file for full text.

Created
-------
2026-10-16

Modified
--------
2026-10-16
"""

# Standard library
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

logger = logging.getLogger(__name__)


class WorkerPool:
    """Manages a pool of worker threads for operator invocations.

    Parameters
    ----------
    max_workers : int
        Maximum number of concurrent invocations. Default 4.
    """

    def __init__(self, max_workers: int = 4) -> None:
        if max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._max_workers = max_workers
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="uor-worker",
        )
        self._lock = threading.Lock()
        self._in_flight = 0
        self._peak = 0

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def in_flight(self) -> int:
        """Callables currently executing on a worker thread."""
        with self._lock:
            return self._in_flight

    @property
    def peak(self) -> int:
        """Highest ``in_flight`` value observed."""
        with self._lock:
            return self._peak

    def submit(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Future:
        """Submit a callable to run in the pool.

        Returns
        -------
        Future
        """
        return self._executor.submit(self._execute, fn, args, kwargs)

    def _execute(self, fn: Callable[..., Any], args: tuple, kwargs: dict) -> Any:
        with self._lock:
            self._in_flight += 1
            self._peak = max(self._peak, self._in_flight)
        try:
            return fn(*args, **kwargs)
        finally:
            with self._lock:
                self._in_flight -= 1

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the thread pool.

        Parameters
        ----------
        wait : bool
            If True, wait for running invocations to complete.
        """
        if not wait and self.in_flight:
            logger.warning(
                "Shutting down with %d invocation(s) still running; "
                "their results will be discarded", self.in_flight,
            )
        self._executor.shutdown(wait=wait)

    def __enter__(self) -> 'WorkerPool':
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.shutdown(wait=True)
