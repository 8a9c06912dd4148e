"""Session summary and CSV export for the visual search task."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence

from .sequences import Trial
from .utilities import safe_filename

EXPORT_HEADER = ["Participant", "Trial", "SetSize", "TargetPresent", "Response", "ReactionTimeMs", "Correct"]


@dataclass(frozen=True)
class Summary:
    """Aggregate performance of a (possibly partial) session.

    - per_size: mean RT (ms) of correct trials per set size, 0.0 when none
    - n_correct_per_size: number of correct trials per set size
    - n_correct / n_trials: counts over the whole trial list
    - overall_accuracy: n_correct / n_trials (0.0 for an empty list)
    """
    per_size: Dict[int, float]
    n_correct_per_size: Dict[int, int]
    n_correct: int
    n_trials: int
    overall_accuracy: float

    @property
    def accuracy_percent(self) -> int:
        return int(round(self.overall_accuracy * 100))


def summarize(trials: Iterable[Trial], set_sizes: Sequence[int]) -> Summary:
    """Mean correct-trial RT per set size and overall accuracy.

    Incorrect and timed-out trials are left out of the RT means but stay in the
    accuracy denominator, as do trials that have not been answered yet.
    """
    trials = list(trials)
    per_size: Dict[int, float] = {}
    n_correct_per_size: Dict[int, int] = {}
    for size in set_sizes:
        rts = [t.reaction_time_ms for t in trials
               if t.set_size == size and t.correct and t.reaction_time_ms is not None]
        per_size[size] = (sum(rts) / len(rts)) if rts else 0.0
        n_correct_per_size[size] = len(rts)
    n_correct = sum(1 for t in trials if t.correct)
    n_trials = len(trials)
    return Summary(
        per_size=per_size,
        n_correct_per_size=n_correct_per_size,
        n_correct=n_correct,
        n_trials=n_trials,
        overall_accuracy=(n_correct / n_trials) if n_trials else 0.0,
    )


def export_rows(trials: Iterable[Trial], participant_id: str) -> List[List[str]]:
    rows: List[List[str]] = []
    for pos, t in enumerate(trials, start=1):
        rows.append([
            participant_id,
            str(pos),
            str(t.set_size),
            "Yes" if t.target_present else "No",
            t.response or "",
            "" if t.reaction_time_ms is None else str(t.reaction_time_ms),
            "1" if t.correct else "0",
        ])
    return rows


def export_csv(trials: Iterable[Trial], participant_id: str) -> str:
    """Render the trial table as comma-separated text, one line per trial.

    Fields are joined as-is, without quoting or escaping.
    """
    lines = [",".join(EXPORT_HEADER)]
    lines.extend(",".join(row) for row in export_rows(trials, participant_id))
    return "\n".join(lines)


def export_filename(participant_id: str) -> str:
    return f"experiment_p{safe_filename(participant_id) or 'anon'}.csv"


__all__ = [
    "EXPORT_HEADER",
    "Summary",
    "summarize",
    "export_rows",
    "export_csv",
    "export_filename",
]
