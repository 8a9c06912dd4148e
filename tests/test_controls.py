from __future__ import annotations

from conftest import complete_session, drive_to

from vsearch.controls import (
    ACTION_QUIT,
    ACTION_SAVE,
    ParticipantEntry,
    dispatch_key,
    dispatch_keys,
    keys_for_state,
)
from vsearch.def_parameters import KEY_ABSENT, KEY_PRESENT, KEY_PROCEED, KEY_QUIT, MSG_MISSING_PARTICIPANT
from vsearch.machine import ExperimentState

S = ExperimentState


def test_typing_and_submitting_participant_id(machine):
    entry = ParticipantEntry()
    dispatch_keys(machine, entry, ["4", "x", "backspace", "2", "num_7"])
    assert entry.text == "427"
    assert machine.state is S.SETUP
    dispatch_key(machine, entry, "return")
    assert machine.state is S.INSTRUCTIONS
    assert machine.config.participant_id == "427"


def test_empty_submit_shows_message(machine):
    entry = ParticipantEntry()
    dispatch_key(machine, entry, "return")
    assert machine.state is S.SETUP
    assert machine.snapshot().message == MSG_MISSING_PARTICIPANT


def test_entry_ignores_non_id_keys():
    entry = ParticipantEntry("ab")
    for key in ("lshift", "space", "tab", "comma"):
        entry.feed(key)
    assert entry.text == "ab"


def test_space_leaves_instructions(machine, clock):
    entry = ParticipantEntry()
    drive_to(machine, clock, S.INSTRUCTIONS)
    dispatch_key(machine, entry, KEY_PRESENT)
    assert machine.state is S.INSTRUCTIONS
    dispatch_key(machine, entry, KEY_PROCEED)
    assert machine.state is S.FIXATION


def test_j_and_f_map_to_present_and_absent(machine, clock):
    entry = ParticipantEntry()
    drive_to(machine, clock, S.TRIAL)
    trial = machine.current_trial
    clock.advance(333)
    dispatch_key(machine, entry, KEY_ABSENT)
    assert trial.response == "absent"
    assert trial.reaction_time_ms == 333
    # a second key during feedback is dropped
    dispatch_key(machine, entry, KEY_PRESENT)
    assert trial.response == "absent"


def test_key_timestamp_is_used_for_rt(machine, clock):
    entry = ParticipantEntry()
    drive_to(machine, clock, S.TRIAL)
    trial = machine.current_trial
    clock.advance(50)
    dispatch_key(machine, entry, KEY_PRESENT, timestamp=trial.start_time + 20)
    assert trial.reaction_time_ms == 20


def test_results_keys(machine, clock):
    entry = ParticipantEntry("p01")
    complete_session(machine, clock)
    assert dispatch_key(machine, entry, "s") == ACTION_SAVE
    assert machine.state is S.RESULTS
    assert dispatch_key(machine, entry, "r") is None
    assert machine.state is S.SETUP
    assert entry.text == ""


def test_escape_quits_everywhere(machine, clock):
    entry = ParticipantEntry()
    assert dispatch_key(machine, entry, KEY_QUIT) == ACTION_QUIT
    drive_to(machine, clock, S.TRIAL)
    assert dispatch_keys(machine, entry, [KEY_QUIT, KEY_PRESENT]) == [ACTION_QUIT]
    assert machine.state is S.TRIAL


def test_keys_for_state():
    assert keys_for_state(S.SETUP) is None
    assert set(keys_for_state(S.TRIAL)) == {KEY_PRESENT, KEY_ABSENT, KEY_QUIT}
    assert keys_for_state(S.FIXATION) == [KEY_QUIT]
    assert keys_for_state(S.FEEDBACK) == [KEY_QUIT]
