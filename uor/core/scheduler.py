# -*- coding: utf-8 -*-
"""
Scheduler - Concurrent, dependency-ordered execution of a manifold.

A single coordinating loop keeps a ready set of nodes whose dependencies
are all computed, dispatches them to a bounded worker pool, and suspends
only while waiting for the next completion among the invocations in
flight. A failed node marks every transitive dependent as skipped;
unrelated subtrees keep running. Node failures are aggregated into one
ExecutionError raised when the run ends.

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
import itertools
import logging
import time
from collections import deque
from concurrent.futures import FIRST_COMPLETED, Future, wait
from dataclasses import dataclass
from typing import Any, Callable, Deque, Dict, Optional, Set, Tuple

# UOR internal
from uor.core.cache import ResultCache
from uor.core.config import EngineConfig
from uor.core.errors import (
    BuildError,
    CancellationError,
    ComputeError,
    CycleError,
    ExecutionError,
    InvariantViolation,
    OperatorError,
    OperatorTimeout,
    UnknownOperatorError,
)
from uor.core.manifold import Manifold, ManifoldNode, NodeStatus
from uor.core.operators import Operator
from uor.core.pool import WorkerPool

logger = logging.getLogger(__name__)


class _Task:
    """A pending node, its operator, and its unresolved dependency count."""

    __slots__ = ('node', 'operator', 'unresolved', 'deadline')

    def __init__(self, node: ManifoldNode, operator: Operator,
                 unresolved: int) -> None:
        self.node = node
        self.operator = operator
        self.unresolved = unresolved
        self.deadline: Optional[float] = None


@dataclass
class RunReport:
    """Summary of the most recent run of a Scheduler.

    Attributes
    ----------
    dispatched : int
        Operator invocations started.
    computed : int
    failed : int
    skipped : int
    timed_out : int
    cache_hits : int
    peak_in_flight : int
        Highest number of simultaneous invocations.
    cancelled : bool
    duration : float
        Wall-clock seconds.
    """

    dispatched: int = 0
    computed: int = 0
    failed: int = 0
    skipped: int = 0
    timed_out: int = 0
    cache_hits: int = 0
    peak_in_flight: int = 0
    cancelled: bool = False
    duration: float = 0.0


class Scheduler:
    """Execute manifolds with bounded parallelism.

    Parameters
    ----------
    registry : OperatorRegistry
        Resolves node types to operators.
    max_workers : Optional[int]
        Concurrency limit N. Defaults to ``config.max_workers``.
    timeout : Optional[float]
        Default per-invocation limit in seconds. Operators may override
        it with their own ``timeout``. Defaults to
        ``config.invocation_timeout``.
    config : Optional[EngineConfig]
    cache : Optional[ResultCache]
        Memo for deterministic operators. Created when
        ``config.cache_results`` is set and none is given.
    """

    def __init__(
        self,
        registry: Any,
        max_workers: Optional[int] = None,
        timeout: Optional[float] = None,
        config: Optional[EngineConfig] = None,
        cache: Optional[ResultCache] = None,
    ) -> None:
        self._config = config or EngineConfig()
        self._registry = registry
        self._max_workers = (
            max_workers if max_workers is not None
            else self._config.max_workers
        )
        if self._max_workers < 1:
            raise ValueError("max_workers must be at least 1")
        self._timeout = (
            timeout if timeout is not None
            else self._config.invocation_timeout
        )
        if cache is None and self._config.cache_results:
            cache = ResultCache()
        self._cache = cache
        self.last_report = RunReport()

    @property
    def registry(self) -> Any:
        return self._registry

    @property
    def max_workers(self) -> int:
        return self._max_workers

    @property
    def timeout(self) -> Optional[float]:
        return self._timeout

    @property
    def cache(self) -> Optional[ResultCache]:
        return self._cache

    def run(
        self,
        manifold: Manifold,
        cancel: Optional[Any] = None,
        progress_callback: Optional[Callable[[float], None]] = None,
    ) -> Manifold:
        """Run every unresolved node of a manifold.

        Nodes already computed (bound inputs, carried-over payloads) are
        not invoked again. Failed or skipped nodes from an earlier run are
        retried.

        Parameters
        ----------
        manifold : Manifold
            Mutated in place; the scheduler owns it for the duration.
        cancel : Optional[threading.Event]
            When set, no new nodes are dispatched; in-flight invocations
            are awaited and CancellationError is raised.
        progress_callback : Optional[Callable[[float], None]]
            Called with the resolved fraction in [0.0, 1.0] each time a
            node is resolved.

        Returns
        -------
        Manifold
            The same manifold, every node resolved.

        Raises
        ------
        BuildError
            If a node's operator cannot be resolved. Nothing executes.
        ExecutionError
            If any node failed, after all other nodes are resolved.
        CancellationError
            If ``cancel`` was set before the run finished.
        InvariantViolation
            If the manifold has a cycle or nodes can never become ready.
        RuntimeError
            If the manifold is already being run.
        """
        if not manifold._run_lock.acquire(blocking=False):
            raise RuntimeError(
                f"Manifold '{manifold.name}' is already being run"
            )
        try:
            return self._run(manifold, cancel, progress_callback)
        finally:
            manifold._run_lock.release()

    # -- setup -------------------------------------------------------------

    def _plan(self, manifold: Manifold) -> Dict[str, _Task]:
        """Resolve operators and build tasks for unresolved nodes."""
        try:
            order = manifold.topological_order()
        except CycleError as e:
            raise InvariantViolation(
                f"Manifold '{manifold.name}' reached the scheduler with a "
                f"cycle: {e}"
            ) from e

        tasks: Dict[str, _Task] = {}
        for nid in order:
            node = manifold.node(nid)
            if node.status is NodeStatus.COMPUTED:
                continue
            if node.is_input:
                raise BuildError(f"Input node '{nid}' has no bound payload")
            try:
                op = self._registry.get(node.type)
            except UnknownOperatorError as e:
                raise BuildError(
                    f"Node '{nid}' uses unknown operator type '{node.type}'"
                ) from e
            if op.terminal and manifold.dependents(nid):
                raise BuildError(
                    f"Node '{nid}' uses terminal operator '{node.type}' "
                    f"but has dependents"
                )
            tasks[nid] = _Task(node, op, 0)

        for nid, task in tasks.items():
            task.node.reset()
            task.unresolved = sum(
                1 for d in task.node.dependencies
                if manifold.node(d).status is not NodeStatus.COMPUTED
            )
        return tasks

    # -- coordinator -------------------------------------------------------

    def _run(
        self,
        manifold: Manifold,
        cancel: Optional[Any],
        progress_callback: Optional[Callable[[float], None]],
    ) -> Manifold:
        started = time.monotonic()
        tasks = self._plan(manifold)
        report = RunReport()
        self.last_report = report
        total = len(tasks)
        resolved = 0
        seq = itertools.count()

        ready: Deque[str] = deque()
        for nid, task in tasks.items():
            if task.unresolved == 0:
                task.node.mark_ready()
                ready.append(nid)

        running: Dict[Future, _Task] = {}
        abandoned: Set[Future] = set()
        failures: Dict[str, OperatorError] = {}

        def resolve_count(n: int) -> None:
            nonlocal resolved
            resolved += n
            if progress_callback is not None and total:
                progress_callback(resolved / total)

        def fail(task: _Task, error: OperatorError) -> None:
            nid = task.node.id
            task.node.mark_failed(error)
            failures[nid] = error
            report.failed += 1
            logger.error(
                "Node '%s' (%s) failed: %s: %s",
                nid, task.node.type, type(error).__name__, error,
            )
            skipped = 0
            for desc in manifold.descendants(nid):
                node = manifold.node(desc)
                if node.status is NodeStatus.PENDING:
                    node.mark_skipped(nid)
                    skipped += 1
            if skipped:
                logger.info(
                    "Skipped %d dependent(s) of failed node '%s'",
                    skipped, nid,
                )
            report.skipped += skipped
            resolve_count(1 + skipped)

        def succeed(task: _Task, payload: Any) -> None:
            node = task.node
            node.mark_computed(payload, replayable=task.operator.deterministic)
            node.complete_seq = next(seq)
            report.computed += 1
            for dep_id in manifold.dependents(node.id):
                dependent = tasks.get(dep_id)
                if dependent is None:
                    continue
                dependent.unresolved -= 1
                if (dependent.unresolved == 0
                        and dependent.node.status is NodeStatus.PENDING):
                    dependent.node.mark_ready()
                    ready.append(dep_id)
            resolve_count(1)

        pool = WorkerPool(self._max_workers)
        try:
            cancelled = False
            while True:
                if cancel is not None and not cancelled and cancel.is_set():
                    cancelled = True
                    logger.warning(
                        "Run of '%s' cancelled; awaiting %d in-flight "
                        "invocation(s)", manifold.name, len(running),
                    )
                abandoned = {f for f in abandoned if not f.done()}

                while (not cancelled and ready
                       and len(running) + len(abandoned) < self._max_workers):
                    task = tasks[ready.popleft()]
                    future = self._dispatch(pool, task, manifold)
                    task.node.dispatch_seq = next(seq)
                    running[future] = task
                    report.dispatched += 1

                if not running and (cancelled or not ready):
                    break

                wait_on = set(running)
                if ready and not cancelled:
                    wait_on |= abandoned
                done, _ = wait(
                    wait_on,
                    timeout=self._wait_timeout(running, cancel),
                    return_when=FIRST_COMPLETED,
                )

                for future in done:
                    task = running.pop(future, None)
                    if task is None:
                        continue
                    exc = future.exception()
                    if exc is None:
                        payload, t0, t1, hit = future.result()
                        task.node.started_at = t0
                        task.node.finished_at = t1
                        report.cache_hits += int(hit)
                        succeed(task, payload)
                    elif isinstance(exc, OperatorError):
                        fail(task, exc)
                    else:
                        error = ComputeError(
                            f"{task.node.type} failed: "
                            f"{type(exc).__name__}: {exc}"
                        )
                        error.__cause__ = exc
                        fail(task, error)

                now = time.monotonic()
                for future, task in list(running.items()):
                    if task.deadline is not None and now >= task.deadline:
                        del running[future]
                        abandoned.add(future)
                        report.timed_out += 1
                        logger.warning(
                            "Node '%s' (%s) timed out; abandoning invocation",
                            task.node.id, task.node.type,
                        )
                        fail(task, OperatorTimeout(
                            f"{task.node.type} exceeded "
                            f"{self._task_timeout(task)}s"
                        ))
        finally:
            abandoned = {f for f in abandoned if not f.done()}
            report.peak_in_flight = pool.peak
            pool.shutdown(wait=not abandoned)

        report.cancelled = cancelled
        report.duration = time.monotonic() - started

        unresolved = [
            n.id for n in manifold
            if n.status in (NodeStatus.PENDING, NodeStatus.READY)
        ]
        logger.info(
            "Run of '%s' v%d finished in %.3fs: %d computed, %d failed, "
            "%d skipped, %d unresolved",
            manifold.name, manifold.version, report.duration,
            report.computed, report.failed, report.skipped, len(unresolved),
        )

        if cancelled and unresolved:
            raise CancellationError(
                manifold, failures,
                message=(
                    f"Run cancelled with {len(unresolved)} node(s) "
                    f"unresolved and {len(failures)} failed"
                ),
            )
        if unresolved:
            raise InvariantViolation(
                f"Node(s) never became ready: {', '.join(unresolved)}"
            )
        if failures:
            raise ExecutionError(manifold, failures)
        return manifold

    # -- helpers -----------------------------------------------------------

    def _task_timeout(self, task: _Task) -> Optional[float]:
        if task.operator.timeout is not None:
            return task.operator.timeout
        return self._timeout

    def _wait_timeout(
        self,
        running: Dict[Future, _Task],
        cancel: Optional[Any],
    ) -> Optional[float]:
        """Seconds until the next deadline or cancellation check."""
        deadlines = [t.deadline for t in running.values()
                     if t.deadline is not None]
        timeout: Optional[float] = None
        if deadlines:
            timeout = max(0.0, min(deadlines) - time.monotonic())
        if cancel is not None:
            poll = self._config.poll_interval
            timeout = poll if timeout is None else min(timeout, poll)
        return timeout

    def _dispatch(
        self,
        pool: WorkerPool,
        task: _Task,
        manifold: Manifold,
    ) -> Future:
        node = task.node
        inputs = tuple(manifold.node(d).payload for d in node.dependencies)
        params = dict(node.params)
        limit = self._task_timeout(task)
        task.deadline = time.monotonic() + limit if limit is not None else None
        logger.debug("Dispatching node '%s' (%s)", node.id, node.type)
        return pool.submit(self._invoke, task.operator, node.type, inputs, params)

    def _invoke(
        self,
        op: Operator,
        name: str,
        inputs: Tuple[Any, ...],
        params: Dict[str, Any],
    ) -> Tuple[Any, float, float, bool]:
        """Worker body. Returns ``(payload, start, finish, cache_hit)``."""
        t0 = time.monotonic()
        key = None
        if op.deterministic and self._cache is not None:
            key = self._cache.key(_operator_key(op, name), params, inputs)
            found, payload = self._cache.lookup(key)
            if found:
                return payload, t0, time.monotonic(), True
        payload = op.invoke(inputs, params)
        if key is not None:
            self._cache.store(key, payload, owner=op)
        return payload, t0, time.monotonic(), False


def _operator_key(op: Operator, name: str) -> str:
    """Cache namespace of an operator instance."""
    cls = type(op)
    qualname = getattr(op, '__qualname__', cls.__qualname__)
    return f"{name}:{cls.__module__}.{qualname}:{op.cache_token()}"
