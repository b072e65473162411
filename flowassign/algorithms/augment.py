"""Two-phase min-cost augmentation with task lower bounds.

The augmenter is a small state machine:

``FEASIBILITY``
    Every task -> sink arc is relaxed to effective bounds ``[0, lower]``.
    Shortest residual paths are augmented until none remain. Every task with a
    positive minimum must then carry exactly ``lower`` workers, otherwise the
    solve fails with `TaskInfeasibleError`.

``OPTIMIZATION``
    Task -> sink arcs get their true bounds ``[lower, upper]`` back. Flow
    values are unchanged, so the minimums already placed can no longer be
    undone (backward capacity ``flow - lower`` is zero) while ``upper - flow``
    extra forward capacity opens up. Augmentation continues until max flow.

``DONE``
    Every source -> worker arc must be saturated, otherwise the solve fails
    with `WorkerUnassignableError` (unless full assignment is not required).

Each augmentation pushes the integral bottleneck of a minimum-cost residual
path, so the loop runs at most once per worker.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, List, Optional, Protocol

from flowassign.algorithms.spf import ShortestPathOracle
from flowassign.algorithms.types import NetworkIndex, ResidualPath
from flowassign.config import DEFAULT_CONFIG, SolverConfig
from flowassign.exceptions import (
    ConsistencyError,
    SolveCancelled,
    TaskInfeasibleError,
    WorkerUnassignableError,
)
from flowassign.graph.flow_network import FlowNetwork
from flowassign.logging import get_logger

logger = get_logger(__name__)

ProgressCallback = Callable[[int, int], None]


class CancelToken(Protocol):
    """Anything with ``is_set()``, e.g. `threading.Event`."""

    def is_set(self) -> bool: ...


class Phase(Enum):
    FEASIBILITY = "feasibility"
    OPTIMIZATION = "optimization"
    DONE = "done"


class MinCostAugmenter:
    """Drive successive shortest-path augmentation over an assignment network.

    Args:
        graph: Network produced by `build_network`; mutated in place.
        index: Node/arc index produced alongside the network.
        config: Solver configuration.
        cancel: Optional cancellation signal polled between augmentations.
        progress: Optional ``progress(assigned_workers, num_workers)`` callback
            invoked after every augmentation.

    Attributes:
        phase: Current `Phase`.
        iterations: Number of augmentations performed so far.
        flow_value: Number of workers currently assigned.
        unassigned_workers: Filled once the augmenter reaches ``DONE``.
    """

    def __init__(
        self,
        graph: FlowNetwork,
        index: NetworkIndex,
        config: Optional[SolverConfig] = None,
        cancel: Optional[CancelToken] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.graph = graph
        self.index = index
        self.config = config or DEFAULT_CONFIG
        self.cancel = cancel
        self.progress = progress
        self.oracle = ShortestPathOracle(self.config.spf_method)

        self.iterations = 0
        self.flow_value = 0
        self.unassigned_workers: List[int] = []
        self.required_flow = sum(b.lower for b in index.bounds)

        self.phase = Phase.FEASIBILITY
        for arc_id, bounds in zip(index.sink_arcs, index.bounds):
            graph.set_effective_bounds(arc_id, 0, bounds.lower)

    def run(self) -> int:
        """Run both phases to completion.

        Returns:
            Number of workers assigned.

        Raises:
            TaskInfeasibleError: If task minimums cannot be met.
            WorkerUnassignableError: If workers remain unassigned at max flow.
            NegativeCycleError: If the residual network contains a negative cycle.
            SolveCancelled: If the cancellation signal is set.
        """
        logger.debug(
            f"Phase {self.phase.value}: {self.required_flow} workers needed for task minimums"
        )
        while self.phase is Phase.FEASIBILITY:
            if self.flow_value >= self.required_flow or not self.step():
                self._finish_feasibility()

        while self.phase is Phase.OPTIMIZATION:
            if self.flow_value >= self.index.num_workers or not self.step():
                self._finish_optimization()

        return self.flow_value

    def step(self) -> bool:
        """Perform one augmentation in the current phase.

        Returns:
            True if flow was pushed, False if no augmenting path exists.
        """
        if self.phase is Phase.DONE:
            return False
        if self.cancel is not None and self.cancel.is_set():
            logger.info(f"Cancellation requested after {self.iterations} augmentations")
            raise SolveCancelled(self.iterations)

        path = self.oracle.find(self.graph, self.index.source, self.index.sink)
        if path is None:
            return False

        self._augment(path)
        return True

    def _augment(self, path: ResidualPath) -> None:
        for res in path.arcs:
            self.graph.push(res, path.bottleneck)
        self.iterations += 1
        self.flow_value += path.bottleneck

        if self.config.check_invariants:
            self._check_invariants()
        if self.config.log_every and self.iterations % self.config.log_every == 0:
            logger.debug(
                f"{self.iterations} augmentations, "
                f"{self.flow_value}/{self.index.num_workers} workers assigned"
            )
        if self.progress is not None:
            self.progress(self.flow_value, self.index.num_workers)

    def _finish_feasibility(self) -> None:
        shortfalls = {}
        for task, (arc_id, bounds) in enumerate(zip(self.index.sink_arcs, self.index.bounds)):
            if bounds.lower <= 0:
                continue
            flow = self.graph.arc(arc_id)["flow"]
            if flow < bounds.lower:
                shortfalls[task] = bounds.lower - flow
        if shortfalls:
            logger.debug(f"Feasibility phase ended with shortfalls {shortfalls}")
            raise TaskInfeasibleError(shortfalls)

        for arc_id in self.index.sink_arcs:
            self.graph.restore_bounds(arc_id)
        # Opening task -> sink capacity invalidates carried potentials
        self.oracle.invalidate()
        self.phase = Phase.OPTIMIZATION
        logger.debug(
            f"Task minimums met with {self.flow_value} workers after "
            f"{self.iterations} augmentations; entering phase {self.phase.value}"
        )

    def _finish_optimization(self) -> None:
        self.unassigned_workers = [
            worker
            for worker, arc_id in enumerate(self.index.source_arcs)
            if self.graph.arc(arc_id)["flow"] < 1
        ]
        self.phase = Phase.DONE
        logger.debug(
            f"Max flow {self.flow_value} reached after {self.iterations} augmentations"
        )
        if self.unassigned_workers and self.config.require_full_assignment:
            raise WorkerUnassignableError(self.unassigned_workers)

    def _check_invariants(self) -> None:
        unbalanced = self.graph.unbalanced_nodes()
        if unbalanced:
            raise ConsistencyError(f"Flow conservation violated at nodes {unbalanced}")
        out_of_bounds = self.graph.out_of_bounds_arcs(effective=True)
        if out_of_bounds:
            raise ConsistencyError(f"Flow outside arc bounds on arcs {out_of_bounds}")


def run_min_cost_augmentation(
    graph: FlowNetwork,
    index: NetworkIndex,
    config: Optional[SolverConfig] = None,
    cancel: Optional[CancelToken] = None,
    progress: Optional[ProgressCallback] = None,
) -> MinCostAugmenter:
    """Run `MinCostAugmenter` to completion and return it for inspection."""
    augmenter = MinCostAugmenter(graph, index, config, cancel, progress)
    augmenter.run()
    return augmenter
