"""Experiment state machine for the visual search task.

States run SETUP -> INSTRUCTIONS -> FIXATION -> TRIAL -> FEEDBACK, looping over
FIXATION/TRIAL/FEEDBACK once per trial, and end in RESULTS.

The machine owns the whole session. Input arrives through `start`,
`proceed_from_instructions`, `respond`, `restart` and `export`; output leaves
through `snapshot()`. Inputs that the current state does not accept return
False and change nothing. Automatic transitions (fixation delay, response
timeout, feedback dwell) are scheduler timers tagged with the token of the
state entry that created them; a timer whose token is stale does nothing.
"""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from psychopy import logging

from .def_parameters import (
    FEEDBACK_CORRECT,
    FEEDBACK_INCORRECT,
    FEEDBACK_MS,
    FEEDBACK_TIMEOUT,
    FIXATION_MAX_MS,
    FIXATION_MIN_MS,
    MSG_MISSING_PARTICIPANT,
    SET_SIZES,
    TIMEOUT_MS,
    TRIALS_PER_SET,
)
from .results import Summary, export_csv, export_filename, summarize
from .sequences import (
    RESPONSE_ABSENT,
    RESPONSE_PRESENT,
    RESPONSE_TIMEOUT,
    SESSION_COMPLETE,
    SessionConfig,
    Trial,
    TrialSequencer,
    build_session,
)
from .stimuli import StimulusItem, generate_stimuli
from .timers import Clock, Scheduler, Timer


class ExperimentState(str, enum.Enum):
    SETUP = "SETUP"
    INSTRUCTIONS = "INSTRUCTIONS"
    FIXATION = "FIXATION"
    TRIAL = "TRIAL"
    FEEDBACK = "FEEDBACK"
    RESULTS = "RESULTS"


@dataclass(frozen=True)
class Snapshot:
    """What the presentation layer needs to draw the current state."""
    state: ExperimentState
    participant_id: str
    trial_number: int
    total_trials: int
    progress: float
    stimuli: Tuple[StimulusItem, ...] = ()
    feedback: Optional[str] = None
    summary: Optional[Summary] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class Export:
    filename: str
    text: str


def psychopy_clock() -> Clock:
    """Return a millisecond clock backed by a PsychoPy `core.Clock`."""
    from psychopy import core
    clock = core.Clock()
    return lambda: clock.getTime() * 1000.0


class ExperimentStateMachine:
    def __init__(self,
                 clock: Optional[Clock] = None,
                 rng: Optional[random.Random] = None,
                 *,
                 set_sizes: Sequence[int] = SET_SIZES,
                 trials_per_set: int = TRIALS_PER_SET,
                 timeout_ms: int = TIMEOUT_MS,
                 fixation_range_ms: Tuple[float, float] = (FIXATION_MIN_MS, FIXATION_MAX_MS),
                 feedback_ms: float = FEEDBACK_MS):
        self._clock = clock or psychopy_clock()
        self._rng = rng or random.Random()
        self._scheduler = Scheduler(self._clock)
        self._set_sizes = tuple(set_sizes)
        self._trials_per_set = int(trials_per_set)
        self._timeout_ms = int(timeout_ms)
        self._fixation_range_ms = fixation_range_ms
        self._feedback_ms = feedback_ms
        self._listeners: List[Callable[[ExperimentState, ExperimentState], None]] = []
        self._entry_token = 0
        self._reset()

    # -------------------------
    # Session state
    # -------------------------

    def _reset(self) -> None:
        self._state = ExperimentState.SETUP
        self._entry_token += 1
        self._config: Optional[SessionConfig] = None
        self._sequencer: Optional[TrialSequencer] = None
        self._stimuli: Tuple[StimulusItem, ...] = ()
        self._feedback: Optional[str] = None
        self._message: Optional[str] = None
        self._timeout_timer: Optional[Timer] = None

    @property
    def state(self) -> ExperimentState:
        return self._state

    @property
    def config(self) -> Optional[SessionConfig]:
        return self._config

    @property
    def trials(self) -> Tuple[Trial, ...]:
        if self._sequencer is None:
            return ()
        return tuple(self._sequencer)

    @property
    def current_trial(self) -> Optional[Trial]:
        if self._sequencer is None:
            return None
        trial = self._sequencer.current
        return trial if trial is not SESSION_COMPLETE else None

    @property
    def pending_timers(self) -> int:
        return self._scheduler.pending

    def next_deadline(self) -> Optional[float]:
        """Clock time (ms) of the next automatic transition, if one is pending."""
        return self._scheduler.next_due()

    def add_listener(self, callback: Callable[[ExperimentState, ExperimentState], None]) -> None:
        """Register a callback run on every transition with (old_state, new_state)."""
        self._listeners.append(callback)

    def _enter(self, state: ExperimentState) -> int:
        old = self._state
        self._state = state
        self._entry_token += 1
        logging.exp(f"vsearch: {old.value} -> {state.value}")
        for cb in self._listeners:
            cb(old, state)
        return self._entry_token

    def _is_current(self, token: int, state: ExperimentState) -> bool:
        return token == self._entry_token and self._state is state

    # -------------------------
    # Inputs
    # -------------------------

    def start(self, participant_id: str) -> bool:
        """Begin a session for `participant_id`; SETUP only."""
        if self._state is not ExperimentState.SETUP:
            return False
        if not (participant_id or "").strip():
            self._message = MSG_MISSING_PARTICIPANT
            logging.warning("vsearch: start refused, empty participant id")
            return False
        try:
            config = SessionConfig(
                participant_id=participant_id,
                set_sizes=self._set_sizes,
                trials_per_set=self._trials_per_set,
                timeout_ms=self._timeout_ms,
            )
        except ValueError as e:
            self._message = str(e)
            logging.warning(f"vsearch: start refused, {e}")
            return False
        self._config = config
        self._sequencer = TrialSequencer(build_session(config, self._rng))
        self._message = None
        logging.exp(f"vsearch: session built for participant {config.participant_id}, "
                    f"{config.total_trials} trials")
        self._enter(ExperimentState.INSTRUCTIONS)
        return True

    def proceed_from_instructions(self) -> bool:
        if self._state is not ExperimentState.INSTRUCTIONS:
            return False
        self._begin_fixation()
        return True

    def respond(self, present: bool, timestamp: Optional[float] = None) -> bool:
        """Record a present/absent response for the trial on screen.

        `timestamp` is the clock time of the key press (defaults to now, and is
        capped at now). A press stamped at or after the timeout deadline loses
        to the timeout.
        """
        if self._state is not ExperimentState.TRIAL:
            return False
        now = self._scheduler.now()
        if timestamp is not None:
            now = min(float(timestamp), now)
        if now < self.current_trial.start_time:
            # pressed before the display was up
            return False
        timer = self._timeout_timer
        if timer is not None and now >= timer.due:
            self._scheduler.poll()
            return False
        self._scheduler.cancel(timer)
        self._timeout_timer = None
        self._finish_trial(RESPONSE_PRESENT if present else RESPONSE_ABSENT, now)
        return True

    def restart(self) -> bool:
        """Drop the session and every pending timer and return to SETUP."""
        self._scheduler.cancel_all()
        old = self._state
        self._reset()
        logging.exp(f"vsearch: restart from {old.value}")
        for cb in self._listeners:
            cb(old, self._state)
        return True

    def export(self) -> Optional[Export]:
        """Return the CSV export of a finished session; RESULTS only."""
        if self._state is not ExperimentState.RESULTS or self._config is None:
            return None
        pid = self._config.participant_id
        return Export(filename=export_filename(pid), text=export_csv(self.trials, pid))

    def tick(self) -> int:
        """Fire due timers; the runner calls this once per frame."""
        return self._scheduler.poll()

    # -------------------------
    # Automatic transitions
    # -------------------------

    def _begin_fixation(self) -> None:
        trial = self.current_trial
        assert trial is not None
        self._stimuli = tuple(generate_stimuli(trial.set_size, trial.target_present, self._rng))
        self._feedback = None
        token = self._enter(ExperimentState.FIXATION)
        lo, hi = self._fixation_range_ms
        delay = lo + self._rng.random() * (hi - lo)
        self._scheduler.schedule(delay, self._on_fixation_elapsed, token)

    def _on_fixation_elapsed(self, due: float, token: int) -> None:
        if not self._is_current(token, ExperimentState.FIXATION):
            return
        trial = self.current_trial
        assert trial is not None
        trial.mark_onset(self._scheduler.now())
        token = self._enter(ExperimentState.TRIAL)
        logging.exp(f"vsearch: trial {self._sequencer.position + 1} onset, "
                    f"set_size={trial.set_size} target_present={trial.target_present}")
        self._timeout_timer = self._scheduler.schedule(self._config.timeout_ms, self._on_timeout, token)

    def _on_timeout(self, due: float, token: int) -> None:
        if not self._is_current(token, ExperimentState.TRIAL):
            return
        self._timeout_timer = None
        self._finish_trial(RESPONSE_TIMEOUT, due)

    def _finish_trial(self, response: str, now: float) -> None:
        trial = self.current_trial
        assert trial is not None
        trial.record(response, now)
        logging.exp(f"vsearch: trial {self._sequencer.position + 1} response={response} "
                    f"rt_ms={trial.reaction_time_ms} correct={trial.correct}")
        if response == RESPONSE_TIMEOUT:
            self._feedback = FEEDBACK_TIMEOUT
        else:
            self._feedback = FEEDBACK_CORRECT if trial.correct else FEEDBACK_INCORRECT
        token = self._enter(ExperimentState.FEEDBACK)
        self._scheduler.schedule(self._feedback_ms, self._on_feedback_elapsed, token)

    def _on_feedback_elapsed(self, due: float, token: int) -> None:
        if not self._is_current(token, ExperimentState.FEEDBACK):
            return
        self._feedback = None
        self._stimuli = ()
        if self._sequencer.advance() is SESSION_COMPLETE:
            self._enter(ExperimentState.RESULTS)
        else:
            self._begin_fixation()

    # -------------------------
    # Outputs
    # -------------------------

    def summary(self) -> Summary:
        return summarize(self.trials, self._set_sizes)

    def snapshot(self) -> Snapshot:
        total = len(self._sequencer) if self._sequencer is not None else 0
        position = self._sequencer.position if self._sequencer is not None else 0
        state = self._state
        if state is ExperimentState.RESULTS:
            progress = 1.0
        else:
            progress = position / total if total else 0.0
        in_trial_loop = state in (ExperimentState.FIXATION, ExperimentState.TRIAL, ExperimentState.FEEDBACK)
        return Snapshot(
            state=state,
            participant_id=self._config.participant_id if self._config else "",
            trial_number=position + 1 if in_trial_loop else 0,
            total_trials=total,
            progress=progress,
            stimuli=self._stimuli if state is ExperimentState.TRIAL else (),
            feedback=self._feedback if state is ExperimentState.FEEDBACK else None,
            summary=self.summary() if state is ExperimentState.RESULTS else None,
            message=self._message if state is ExperimentState.SETUP else None,
        )


__all__ = [
    "ExperimentState",
    "Snapshot",
    "Export",
    "psychopy_clock",
    "ExperimentStateMachine",
]
