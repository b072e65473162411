"""Run solves off the calling thread.

A solve is strictly sequential internally. These helpers only offload whole
solves onto worker threads so a caller (e.g. a UI) stays responsive, and run
independent solves side by side. Each solve owns its own network; nothing
mutable is shared between them.
"""

from __future__ import annotations

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from typing import List, Optional, Sequence, Tuple

from flowassign.algorithms.builder import CostCell, TaskInput
from flowassign.config import SolverConfig
from flowassign.logging import get_logger
from flowassign.solver import Result, solve

logger = get_logger(__name__)

Instance = Tuple[Sequence[TaskInput], Sequence[Sequence[CostCell]]]


class SolveJob:
    """A single solve running on a background thread.

    The job reports progress as ``(assigned, num_workers)`` and can be
    cancelled cooperatively; cancellation takes effect between augmentations
    and yields a `Failure` of kind ``CANCELLED``.

    Args:
        tasks: Task bounds, as for `solve`.
        cost_table: Worker-major cost table, as for `solve`.
        config: Optional solver configuration.
        executor: Optional executor to submit to. When omitted the job owns a
            single-thread executor that is shut down once the solve finishes.
    """

    def __init__(
        self,
        tasks: Sequence[TaskInput],
        cost_table: Sequence[Sequence[CostCell]],
        config: Optional[SolverConfig] = None,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._cancel = threading.Event()
        self._lock = threading.Lock()
        self._progress: Tuple[int, int] = (0, len(cost_table))
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="flowassign-solve"
        )
        self._future: Future = self._executor.submit(
            solve,
            tasks,
            cost_table,
            config=config,
            cancel=self._cancel,
            progress=self._on_progress,
        )
        if self._owns_executor:
            self._future.add_done_callback(lambda _f: self._executor.shutdown(wait=False))

    def _on_progress(self, assigned: int, total: int) -> None:
        with self._lock:
            self._progress = (assigned, total)

    @property
    def progress(self) -> Tuple[int, int]:
        """Latest ``(assigned, num_workers)`` reported by the augmenter."""
        with self._lock:
            return self._progress

    @property
    def fraction(self) -> float:
        assigned, total = self.progress
        return assigned / total if total else 1.0

    def cancel(self) -> None:
        """Request cooperative cancellation."""
        self._cancel.set()

    @property
    def cancelled(self) -> bool:
        return self._cancel.is_set()

    def done(self) -> bool:
        return self._future.done()

    def result(self, timeout: Optional[float] = None) -> Result:
        """Block until the solve finishes and return its result.

        Raises:
            concurrent.futures.TimeoutError: If ``timeout`` elapses first.
        """
        return self._future.result(timeout=timeout)


def solve_many(
    instances: Sequence[Instance],
    parallelism: int = 1,
    config: Optional[SolverConfig] = None,
) -> List[Result]:
    """Solve independent instances, optionally on several threads.

    Args:
        instances: ``(tasks, cost_table)`` pairs.
        parallelism: Number of worker threads. ``1`` runs serially.
        config: Solver configuration shared (read-only) by all solves.

    Returns:
        Results in input order.
    """
    if parallelism < 1:
        raise ValueError(f"parallelism must be >= 1, got {parallelism}")

    start_time = time.time()
    if parallelism == 1 or len(instances) <= 1:
        logger.info(f"Solving {len(instances)} instances serially")
        results = [solve(tasks, costs, config=config) for tasks, costs in instances]
    else:
        workers = min(parallelism, len(instances))
        logger.info(f"Solving {len(instances)} instances with {workers} threads")
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = [
                pool.submit(solve, tasks, costs, config=config) for tasks, costs in instances
            ]
            results = [f.result() for f in futures]

    logger.info(f"Solved {len(instances)} instances in {time.time() - start_time:.2f} seconds")
    return results
