from __future__ import annotations

"""Stimulus layouts for the PsychoPy visual search task.

Responsibilities:
- Place `set_size` items on distinct cells of the search grid.
- Mark exactly one item as the target on target-present trials.
- Assign every other item one of two distractor kinds at random.

Distractor kinds are drawn independently per item (p = 0.5 each), so the
ratio of the two kinds is not balanced within a display. Only the target
count is controlled.
"""

import random
from dataclasses import dataclass
from typing import List, Optional

from .def_parameters import GRID_SIZE

TARGET = "target"
DISTRACTOR_A = "distractor_a"
DISTRACTOR_B = "distractor_b"
KINDS = (TARGET, DISTRACTOR_A, DISTRACTOR_B)


@dataclass(frozen=True)
class StimulusItem:
    """One item of a search display.

    Fields:
    - kind: "target", "distractor_a" or "distractor_b"
    - grid_x: column, 0..GRID_SIZE-1
    - grid_y: row, 0..GRID_SIZE-1
    """
    kind: str
    grid_x: int
    grid_y: int


def generate_stimuli(set_size: int, target_present: bool,
                     rng: Optional[random.Random] = None) -> List[StimulusItem]:
    """Build the item layout for one trial.

    The grid cells are permuted uniformly and the first `set_size` are used.
    On target-present trials the first drawn cell holds the target.
    """
    n_cells = GRID_SIZE * GRID_SIZE
    if not 1 <= set_size <= n_cells:
        raise ValueError(f"set_size must be within 1..{n_cells}, got {set_size}")
    rng = rng or random.Random()

    cells = list(range(n_cells))
    rng.shuffle(cells)

    items: List[StimulusItem] = []
    for i, cell in enumerate(cells[:set_size]):
        if i == 0 and target_present:
            kind = TARGET
        else:
            kind = DISTRACTOR_A if rng.random() < 0.5 else DISTRACTOR_B
        items.append(StimulusItem(kind=kind, grid_x=cell % GRID_SIZE, grid_y=cell // GRID_SIZE))
    return items


__all__ = [
    "TARGET",
    "DISTRACTOR_A",
    "DISTRACTOR_B",
    "KINDS",
    "StimulusItem",
    "generate_stimuli",
]
