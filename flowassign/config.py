"""Configuration classes for the assignment solver."""

from dataclasses import dataclass

from flowassign.algorithms.base import SpfMethod


@dataclass
class SolverConfig:
    """Knobs for a single solve."""

    # Shortest-path method used by the augmenter
    spf_method: SpfMethod = SpfMethod.LABEL_CORRECTING

    # Fail with WorkerUnassignableError when max flow leaves workers unassigned.
    # When False, unassigned workers are reported on the result instead.
    require_full_assignment: bool = True

    # Verify conservation and arc bounds after every augmentation step
    check_invariants: bool = False

    # Emit a DEBUG progress line every N augmentations (0 disables)
    log_every: int = 100

    def __post_init__(self) -> None:
        self.spf_method = SpfMethod(self.spf_method)
        if self.log_every < 0:
            raise ValueError(f"log_every must be non-negative, got {self.log_every}")


# Global configuration instance
DEFAULT_CONFIG = SolverConfig()
