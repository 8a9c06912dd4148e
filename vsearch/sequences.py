from __future__ import annotations

"""Session building and trial sequencing for the PsychoPy visual search task.

Responsibilities:
- Validate the fixed per-session configuration (`SessionConfig`).
- Build the trial list: for every set size, half target-present and half
    target-absent trials, then one uniform shuffle of the whole list.
- Walk the list with a cursor (`TrialSequencer`).

Ordering notes:
- Shuffles use `random.Random.shuffle` (Fisher-Yates), which gives every
    permutation the same probability. A sort with a random comparator does not.
- `Trial.index` keeps the construction order; list position is the
    presentation order.
"""

import random
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Tuple, Union

from .def_parameters import SET_SIZES, TIMEOUT_MS, TRIALS_PER_SET

RESPONSE_PRESENT = "present"
RESPONSE_ABSENT = "absent"
RESPONSE_TIMEOUT = "timeout"


@dataclass(frozen=True)
class SessionConfig:
    """Per-session settings, fixed once the session starts."""
    participant_id: str
    set_sizes: Tuple[int, ...] = SET_SIZES
    trials_per_set: int = TRIALS_PER_SET
    timeout_ms: int = TIMEOUT_MS

    def __post_init__(self) -> None:
        pid = (self.participant_id or "").strip()
        if not pid:
            raise ValueError("participant_id must not be empty")
        object.__setattr__(self, "participant_id", pid)
        object.__setattr__(self, "set_sizes", tuple(int(s) for s in self.set_sizes))
        if not self.set_sizes:
            raise ValueError("set_sizes must not be empty")
        if len(set(self.set_sizes)) != len(self.set_sizes):
            raise ValueError(f"set_sizes must be unique: {self.set_sizes}")
        if self.trials_per_set <= 0 or self.trials_per_set % 2:
            raise ValueError(f"trials_per_set must be a positive even number, got {self.trials_per_set}")
        if self.timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {self.timeout_ms}")

    @property
    def total_trials(self) -> int:
        return len(self.set_sizes) * self.trials_per_set


@dataclass
class Trial:
    """One row of the experiment.

    Fields:
    - index: construction order (0-based), fixed at creation
    - set_size: number of items in the display
    - target_present: whether the display holds the target
    - start_time / end_time: session clock (ms) at onset and at response/timeout
    - reaction_time_ms: end_time - start_time, rounded
    - response: "present", "absent" or "timeout"
    - correct: scored outcome; timeouts are incorrect
    """
    index: int
    set_size: int
    target_present: bool
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    reaction_time_ms: Optional[int] = None
    response: Optional[str] = None
    correct: Optional[bool] = field(default=None)

    @property
    def started(self) -> bool:
        return self.start_time is not None

    @property
    def completed(self) -> bool:
        return self.response is not None

    def mark_onset(self, now: float) -> None:
        if self.started:
            raise RuntimeError(f"trial {self.index} already started")
        self.start_time = now

    def record(self, response: str, now: float) -> None:
        """Write the terminal fields once, from a response or a timeout."""
        if not self.started:
            raise RuntimeError(f"trial {self.index} has not started")
        if self.completed:
            raise RuntimeError(f"trial {self.index} already has a response")
        self.end_time = now
        self.reaction_time_ms = int(round(now - self.start_time))
        self.response = response
        if response == RESPONSE_TIMEOUT:
            self.correct = False
        else:
            self.correct = (response == RESPONSE_PRESENT) == self.target_present


def build_session(config: SessionConfig, rng: Optional[random.Random] = None) -> List[Trial]:
    """Build the shuffled trial list for one session."""
    rng = rng or random.Random()
    half = config.trials_per_set // 2
    trials: List[Trial] = []
    for size in config.set_sizes:
        for i in range(config.trials_per_set):
            trials.append(Trial(index=len(trials), set_size=size, target_present=i < half))
    rng.shuffle(trials)
    return trials


class _SessionComplete:
    """Sentinel returned by the sequencer once every trial has been handed out."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SESSION_COMPLETE"

    def __bool__(self) -> bool:
        return False


SESSION_COMPLETE = _SessionComplete()


class TrialSequencer:
    """Cursor over a session's trial list in presentation order."""

    def __init__(self, trials: List[Trial]):
        self._trials = trials
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._trials)

    def __iter__(self) -> Iterator[Trial]:
        return iter(self._trials)

    @property
    def position(self) -> int:
        return self._cursor

    @property
    def total(self) -> int:
        return len(self._trials)

    @property
    def current(self) -> Union[Trial, _SessionComplete]:
        if self._cursor < len(self._trials):
            return self._trials[self._cursor]
        return SESSION_COMPLETE

    def advance(self) -> Union[Trial, _SessionComplete]:
        if self._cursor < len(self._trials):
            self._cursor += 1
        return self.current


__all__ = [
    "RESPONSE_PRESENT",
    "RESPONSE_ABSENT",
    "RESPONSE_TIMEOUT",
    "SessionConfig",
    "Trial",
    "build_session",
    "SESSION_COMPLETE",
    "TrialSequencer",
]
