from __future__ import annotations

import random
from collections import Counter

import pytest

from vsearch.def_parameters import SET_SIZES, TIMEOUT_MS, TRIALS_PER_SET
from vsearch.sequences import (
    RESPONSE_ABSENT,
    RESPONSE_PRESENT,
    RESPONSE_TIMEOUT,
    SESSION_COMPLETE,
    SessionConfig,
    Trial,
    TrialSequencer,
    build_session,
)


def test_config_defaults():
    cfg = SessionConfig(participant_id="  42 ")
    assert cfg.participant_id == "42"
    assert cfg.set_sizes == SET_SIZES
    assert cfg.trials_per_set == TRIALS_PER_SET
    assert cfg.timeout_ms == TIMEOUT_MS
    assert cfg.total_trials == 40


@pytest.mark.parametrize("kwargs", [
    dict(participant_id=""),
    dict(participant_id="   "),
    dict(participant_id="p", set_sizes=()),
    dict(participant_id="p", set_sizes=(5, 5)),
    dict(participant_id="p", trials_per_set=0),
    dict(participant_id="p", trials_per_set=3),
    dict(participant_id="p", timeout_ms=0),
])
def test_config_rejects_invalid_values(kwargs):
    with pytest.raises(ValueError):
        SessionConfig(**kwargs)


def test_session_counts_and_balance():
    trials = build_session(SessionConfig(participant_id="p"), random.Random(0))
    assert len(trials) == len(SET_SIZES) * TRIALS_PER_SET
    per_size = Counter(t.set_size for t in trials)
    present = Counter(t.set_size for t in trials if t.target_present)
    for size in SET_SIZES:
        assert per_size[size] == TRIALS_PER_SET
        assert present[size] == TRIALS_PER_SET // 2


def test_indices_keep_construction_order():
    trials = build_session(SessionConfig(participant_id="p"), random.Random(5))
    by_index = sorted(trials, key=lambda t: t.index)
    assert [t.index for t in by_index] == list(range(len(trials)))
    # construction order: sizes in order, present trials first within each size
    first = by_index[:TRIALS_PER_SET]
    assert all(t.set_size == SET_SIZES[0] for t in first)
    assert [t.target_present for t in first] == [True] * (TRIALS_PER_SET // 2) + [False] * (TRIALS_PER_SET // 2)


def test_presentation_order_is_shuffled():
    trials = build_session(SessionConfig(participant_id="p"), random.Random(5))
    assert [t.index for t in trials] != list(range(len(trials)))


def test_shuffle_is_uniform_fisher_yates():
    # Intentional: every trial is equally likely to land first. A comparator
    # "random sort" fails this kind of check.
    cfg = SessionConfig(participant_id="p", set_sizes=(5, 10), trials_per_set=2)
    rng = random.Random(123)
    first = Counter(build_session(cfg, rng)[0].index for _ in range(4000))
    assert set(first) == {0, 1, 2, 3}
    for count in first.values():
        assert 850 < count < 1150


def test_sequencer_cursor_and_completion():
    trials = build_session(SessionConfig(participant_id="p", set_sizes=(5,), trials_per_set=2), random.Random(1))
    seq = TrialSequencer(trials)
    assert seq.position == 0
    assert seq.total == len(seq) == 2
    assert seq.current is trials[0]
    assert seq.advance() is trials[1]
    assert seq.advance() is SESSION_COMPLETE
    assert seq.advance() is SESSION_COMPLETE
    assert seq.position == 2
    assert not SESSION_COMPLETE


def test_trial_record_scores_response():
    t = Trial(index=0, set_size=5, target_present=True)
    t.mark_onset(1000.0)
    t.record(RESPONSE_PRESENT, 1312.4)
    assert t.reaction_time_ms == 312
    assert t.correct is True
    assert t.completed

    t = Trial(index=1, set_size=5, target_present=True)
    t.mark_onset(0.0)
    t.record(RESPONSE_ABSENT, 500.0)
    assert t.correct is False


def test_trial_timeout_is_incorrect():
    t = Trial(index=0, set_size=20, target_present=False)
    t.mark_onset(0.0)
    t.record(RESPONSE_TIMEOUT, 4000.0)
    assert t.response == RESPONSE_TIMEOUT
    assert t.correct is False
    assert t.reaction_time_ms == 4000


def test_trial_terminal_fields_written_once():
    t = Trial(index=0, set_size=5, target_present=False)
    with pytest.raises(RuntimeError):
        t.record(RESPONSE_ABSENT, 10.0)
    t.mark_onset(0.0)
    with pytest.raises(RuntimeError):
        t.mark_onset(5.0)
    t.record(RESPONSE_ABSENT, 10.0)
    with pytest.raises(RuntimeError):
        t.record(RESPONSE_TIMEOUT, 4000.0)
    assert t.response == RESPONSE_ABSENT
