from __future__ import annotations

from enum import IntEnum
from typing import Union

#: Represents numeric cost of assigning a worker to a task.
Cost = Union[int, float]

#: Cost differences smaller than this are treated as ties.
COST_EPSILON = 1e-9

#: Smallest residual capacity an arc needs to be traversable (flows are integral).
MIN_CAP = 1


class SpfMethod(IntEnum):
    """Shortest-path methods available to the augmenter."""

    #: FIFO label-correcting relaxation (Bellman-Ford); handles negative costs.
    LABEL_CORRECTING = 1
    #: Dijkstra over reduced costs with potentials carried between augmentations.
    #: Falls back to LABEL_CORRECTING whenever the potentials are not valid.
    DIJKSTRA_POTENTIALS = 2
