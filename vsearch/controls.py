"""Keyboard mapping for the visual search task.

Turns PsychoPy key names into state machine inputs. Kept free of any window
or keyboard objects so the mapping can be exercised without a display.
"""

from __future__ import annotations

from typing import Iterable, List, Optional

from .def_parameters import (
    KEY_ABSENT,
    KEY_DELETE,
    KEY_PRESENT,
    KEY_PROCEED,
    KEY_QUIT,
    KEY_RESTART,
    KEY_SAVE,
    KEY_SUBMIT,
)
from .machine import ExperimentState, ExperimentStateMachine

ACTION_QUIT = "quit"
ACTION_SAVE = "save"

MAX_ID_LENGTH = 32


class ParticipantEntry:
    """Text typed on the SETUP screen."""

    def __init__(self, initial: str = ""):
        self.text = initial[:MAX_ID_LENGTH]

    def feed(self, key: str) -> None:
        if key == KEY_DELETE:
            self.text = self.text[:-1]
        elif len(key) == 1 and (key.isalnum() or key in "-_.") and len(self.text) < MAX_ID_LENGTH:
            self.text += key
        elif key.startswith("num_") and key[4:].isdigit() and len(self.text) < MAX_ID_LENGTH:
            self.text += key[4:]

    def clear(self) -> None:
        self.text = ""


def keys_for_state(state: ExperimentState) -> Optional[List[str]]:
    """Keys worth polling in `state`; None means every key (text entry)."""
    if state is ExperimentState.SETUP:
        return None
    if state is ExperimentState.INSTRUCTIONS:
        return [KEY_PROCEED, KEY_QUIT]
    if state is ExperimentState.TRIAL:
        return [KEY_PRESENT, KEY_ABSENT, KEY_QUIT]
    if state is ExperimentState.RESULTS:
        return [KEY_RESTART, KEY_SAVE, KEY_QUIT]
    return [KEY_QUIT]


def dispatch_key(machine: ExperimentStateMachine, entry: ParticipantEntry, key: str,
                 timestamp: Optional[float] = None) -> Optional[str]:
    """Route one key press to the machine.

    Returns ACTION_QUIT or ACTION_SAVE when the runner has to act, else None.
    Keys the current state does not accept are dropped.
    """
    if key == KEY_QUIT:
        return ACTION_QUIT
    state = machine.state
    if state is ExperimentState.SETUP:
        if key in (KEY_SUBMIT, "num_enter"):
            machine.start(entry.text)
        else:
            entry.feed(key)
    elif state is ExperimentState.INSTRUCTIONS:
        if key == KEY_PROCEED:
            machine.proceed_from_instructions()
    elif state is ExperimentState.TRIAL:
        if key == KEY_PRESENT:
            machine.respond(True, timestamp)
        elif key == KEY_ABSENT:
            machine.respond(False, timestamp)
    elif state is ExperimentState.RESULTS:
        if key == KEY_RESTART:
            machine.restart()
            entry.clear()
        elif key == KEY_SAVE:
            return ACTION_SAVE
    return None


def dispatch_keys(machine: ExperimentStateMachine, entry: ParticipantEntry,
                  keys: Iterable[str]) -> List[str]:
    actions: List[str] = []
    for key in keys:
        action = dispatch_key(machine, entry, key)
        if action is not None:
            actions.append(action)
            if action == ACTION_QUIT:
                break
    return actions


__all__ = [
    "ACTION_QUIT",
    "ACTION_SAVE",
    "ParticipantEntry",
    "keys_for_state",
    "dispatch_key",
    "dispatch_keys",
]
