from __future__ import annotations

import random

import pytest

from vsearch.machine import ExperimentState, ExperimentStateMachine


class FakeClock:
    """Millisecond clock that only moves when a test moves it."""

    def __init__(self, start: float = 0.0) -> None:
        self.t = start

    def __call__(self) -> float:
        return self.t

    def advance(self, ms: float) -> None:
        self.t += ms


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def rng() -> random.Random:
    return random.Random(7)


@pytest.fixture
def machine(clock, rng) -> ExperimentStateMachine:
    return ExperimentStateMachine(clock=clock, rng=rng)


def run_until_due(machine: ExperimentStateMachine, clock: FakeClock) -> None:
    """Jump the clock to the next pending timer and fire it."""
    due = machine.next_deadline()
    assert due is not None, f"nothing pending in {machine.state}"
    clock.t = max(clock.t, due)
    machine.tick()


def drive_to(machine: ExperimentStateMachine, clock: FakeClock, state: ExperimentState,
             participant: str = "p01") -> None:
    """Walk a fresh machine forward until it reaches `state` for the first trial."""
    if state is ExperimentState.SETUP:
        return
    assert machine.start(participant)
    if state is ExperimentState.INSTRUCTIONS:
        return
    assert machine.proceed_from_instructions()
    if state is ExperimentState.FIXATION:
        return
    run_until_due(machine, clock)
    if state is ExperimentState.TRIAL:
        return
    machine.respond(True)
    if state is ExperimentState.FEEDBACK:
        return
    raise ValueError(f"use complete_session() to reach {state}")


def complete_session(machine: ExperimentStateMachine, clock: FakeClock, rt_ms: float = 300.0,
                     correct: bool = True, participant: str = "p01") -> None:
    """Run a whole session, answering every trial after `rt_ms`."""
    assert machine.start(participant)
    assert machine.proceed_from_instructions()
    while machine.state is not ExperimentState.RESULTS:
        if machine.state is ExperimentState.TRIAL:
            clock.advance(rt_ms)
            trial = machine.current_trial
            answer = trial.target_present if correct else not trial.target_present
            assert machine.respond(answer)
        else:
            run_until_due(machine, clock)
