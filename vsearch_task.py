#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
PsychoPy visual search task (find the red T among rotated Ls).

Structure: Participant setup → Instructions → 40 trials
          (fixation → search display → feedback) → Results (chart + accuracy)
          → Save CSV / Restart

Keys: J = target present, F = target absent, SPACE leaves the instructions,
S saves the results, R restarts, ESC quits without saving.

Data: Writes trial-wise CSV to ./data/experiment_p{participantID}.csv plus a
.meta.json sidecar and a PsychoPy log file.
"""

from __future__ import annotations

import argparse
import json
import os
import random
import sys
from typing import Dict, List, Optional

from psychopy import core, event, logging, visual
try:
    from psychopy.hardware import keyboard as hw_keyboard
    _HAVE_HW_KB = True
except Exception:
    _HAVE_HW_KB = False

from vsearch import __version__
from vsearch.controls import (
    ACTION_QUIT,
    ACTION_SAVE,
    ParticipantEntry,
    dispatch_key,
    keys_for_state,
)
from vsearch.def_parameters import (
    BACKGROUND_COLOR,
    BAR_COLOR,
    CELL_SPACING,
    CORRECT_COLOR,
    DISTRACTOR_A_COLOR,
    DISTRACTOR_B_COLOR,
    ERROR_COLOR,
    FEEDBACK_CORRECT,
    FEEDBACK_MS,
    FIXATION_HEIGHT,
    FIXATION_MAX_MS,
    FIXATION_MIN_MS,
    FONT,
    FONT_HEIGHT,
    GRID_SIZE,
    ITEM_HEIGHT,
    SET_SIZES,
    TARGET_COLOR,
    TEXT_COLOR,
    TIMEOUT_MS,
    TRIALS_PER_SET,
)
from vsearch.machine import ExperimentState, ExperimentStateMachine, Snapshot
from vsearch.results import Summary
from vsearch.stimuli import StimulusItem
from vsearch.utilities import (
    load_text,
    make_autosized_text,
    make_data_dir,
    safe_filename,
    timestamp,
    unique_path,
)

"""Main visual search task entry point.

The experiment logic lives in vsearch.machine; this file owns the window,
the frame loop, key collection, drawing and file output. Each frame:
- collect keys (time-stamped on the session clock) and dispatch them,
- let the state machine fire due timers,
- draw the current snapshot and flip.
"""

# Paths
ROOT_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(ROOT_DIR, "data")
TEXTS_DIR = os.path.join(ROOT_DIR, "texts")
INSTR_SETUP_FILE = os.path.join(TEXTS_DIR, "instructions_setup.txt")
INSTR_TASK_FILE = os.path.join(TEXTS_DIR, "instructions_task.txt")
INSTR_RESULTS_FILE = os.path.join(TEXTS_DIR, "instructions_results.txt")

CFG_USE_HW_KB = False  # toggled by --kb-backend

SESSION_TS = ""

# Pre-created stimuli (initialized after window creation)
STIMS: Dict[str, visual.BaseVisualStim] = {}


# =========================
# Drawing helpers
# =========================

def _text(win: visual.Window, name: str, **kwargs) -> visual.TextStim:
    """Return a cached TextStim, creating it on first use."""
    stim = STIMS.get(name)
    if stim is None:
        kwargs.setdefault("color", TEXT_COLOR)
        kwargs.setdefault("font", FONT)
        kwargs.setdefault("height", FONT_HEIGHT)
        stim = visual.TextStim(win, **kwargs)
        STIMS[name] = stim
    return stim


def _ensure_stims(win: visual.Window) -> None:
    """Create the shared item, fixation and progress stimuli if missing."""
    if "target" in STIMS:
        return
    STIMS["target"] = visual.TextStim(win, text="T", color=TARGET_COLOR, font=FONT, height=ITEM_HEIGHT, bold=True)
    STIMS["distractor_a"] = visual.TextStim(win, text="L", color=DISTRACTOR_A_COLOR, font=FONT, height=ITEM_HEIGHT, bold=True, ori=180)
    STIMS["distractor_b"] = visual.TextStim(win, text="L", color=DISTRACTOR_B_COLOR, font=FONT, height=ITEM_HEIGHT, bold=True)
    STIMS["fixation"] = visual.TextStim(win, text="+", color=TEXT_COLOR, font=FONT, height=FIXATION_HEIGHT)
    STIMS["progress_bg"] = visual.Rect(win, width=1.6, height=0.01, pos=(0, -0.495), fillColor="#e5e7eb", lineColor=None)
    STIMS["progress"] = visual.Rect(win, width=0.0, height=0.01, pos=(-0.8, -0.495), fillColor=BAR_COLOR, lineColor=None, anchor="left")
    STIMS["bar"] = visual.Rect(win, width=0.12, height=0.1, fillColor=BAR_COLOR, lineColor=None, anchor="bottom")


def _cell_pos(item: StimulusItem) -> tuple:
    half = (GRID_SIZE - 1) / 2.0
    return ((item.grid_x - half) * CELL_SPACING, (half - item.grid_y) * CELL_SPACING)


def _draw_header(win: visual.Window, snap: Snapshot) -> None:
    _text(win, "title", text="Visual Search Lab", pos=(-0.55, 0.45), height=0.035, anchorHoriz="left").draw()
    right: List[str] = []
    if snap.trial_number:
        right.append(f"Trial {snap.trial_number} / {snap.total_trials}")
    if snap.participant_id:
        right.append(f"ID: {snap.participant_id}")
    if right:
        hdr = _text(win, "header", text="", pos=(0.55, 0.45), height=0.03, anchorHoriz="right")
        hdr.text = "    ".join(right)
        hdr.draw()


def _draw_progress(win: visual.Window, snap: Snapshot) -> None:
    STIMS["progress_bg"].draw()
    if snap.progress > 0:
        STIMS["progress"].width = 1.6 * snap.progress
        STIMS["progress"].draw()


def _draw_setup(win: visual.Window, snap: Snapshot, entry: ParticipantEntry) -> None:
    _text(win, "setup_title", text="Participant Setup", pos=(0, 0.2), height=0.06, bold=True).draw()
    prompt = load_text(INSTR_SETUP_FILE, "Enter the participant's unique ID to begin the session.\nPress ENTER to start.")
    _text(win, "setup_prompt", text=prompt, pos=(0, 0.08), wrapWidth=1.2).draw()
    box = _text(win, "setup_entry", text="", pos=(0, -0.05), height=0.06)
    box.text = entry.text + "_"
    box.draw()
    if snap.message:
        msg = _text(win, "setup_message", text="", pos=(0, -0.18), color=ERROR_COLOR)
        msg.text = snap.message
        msg.draw()


def _draw_instructions(win: visual.Window) -> None:
    if "instructions" not in STIMS:
        txt = load_text(
            INSTR_TASK_FILE,
            "Find the red 'T' as fast as you can.\n\n"
            "Press J if the target is PRESENT.\n"
            "Press F if the target is ABSENT.\n\n"
            "(Press SPACE to start)",
        )
        STIMS["instructions"] = make_autosized_text(win, txt, pos=(0, 0.05), color=TEXT_COLOR, font=FONT)
    STIMS["instructions"].draw()
    for name, x in (("target", -0.1), ("distractor_a", 0.1)):
        stim = STIMS[name]
        stim.pos = (x, -0.3)
        stim.draw()


def _draw_search(win: visual.Window, snap: Snapshot) -> None:
    for item in snap.stimuli:
        stim = STIMS[item.kind]
        stim.pos = _cell_pos(item)
        stim.draw()
    _text(win, "hint", text="F = ABSENT        J = PRESENT", pos=(0, -0.42), height=0.03).draw()


def _draw_feedback(win: visual.Window, snap: Snapshot) -> None:
    fb = _text(win, "feedback", text="", height=0.08, bold=True)
    fb.text = snap.feedback or ""
    fb.color = CORRECT_COLOR if snap.feedback == FEEDBACK_CORRECT else ERROR_COLOR
    fb.draw()


def _draw_results(win: visual.Window, snap: Snapshot) -> None:
    summary: Optional[Summary] = snap.summary
    if summary is None:
        return
    heading = _text(win, "results_title", text="", pos=(0, 0.36), height=0.05, bold=True)
    heading.text = f"Results: ID #{snap.participant_id}"
    heading.draw()
    _text(win, "chart_title", text="Reaction Time (ms) per Set Size", pos=(-0.3, 0.26), height=0.03).draw()

    # Bar chart of mean correct RT per set size
    base_y, max_h = -0.2, 0.38
    peak = max(summary.per_size.values()) if summary.per_size else 0.0
    sizes = list(summary.per_size.keys())
    bar = STIMS["bar"]
    label = _text(win, "bar_label", text="", height=0.025)
    for i, size in enumerate(sizes):
        x = -0.55 + i * (0.5 / max(1, len(sizes) - 1))
        rt = summary.per_size[size]
        h = (rt / peak) * max_h if peak > 0 else 0.0
        if h > 0:
            bar.pos = (x, base_y)
            bar.height = h
            bar.draw()
        label.pos = (x, base_y - 0.03)
        label.text = f"Size {size}"
        label.draw()
        label.pos = (x, base_y + h + 0.02)
        label.text = f"{rt:.0f}"
        label.draw()

    stats = _text(win, "stats", text="", pos=(0.35, 0.05), height=0.035)
    stats.text = (
        "Accuracy Statistics\n\n"
        f"Total Correct: {summary.n_correct} / {summary.n_trials}\n"
        f"Avg. Accuracy: {summary.accuracy_percent}%"
    )
    stats.draw()
    footer = load_text(INSTR_RESULTS_FILE, "S = save CSV    R = restart    ESC = quit")
    _text(win, "results_footer", text=footer, pos=(0, -0.38), height=0.03).draw()
    status = STIMS.get("save_status")
    if status is not None:
        status.draw()


def draw_snapshot(win: visual.Window, snap: Snapshot, entry: ParticipantEntry) -> None:
    """Draw one frame for the current state (does not flip)."""
    _ensure_stims(win)
    _draw_header(win, snap)
    state = snap.state
    if state is ExperimentState.SETUP:
        _draw_setup(win, snap, entry)
    elif state is ExperimentState.INSTRUCTIONS:
        _draw_instructions(win)
    elif state is ExperimentState.FIXATION:
        STIMS["fixation"].draw()
    elif state is ExperimentState.TRIAL:
        _draw_search(win, snap)
    elif state is ExperimentState.FEEDBACK:
        _draw_feedback(win, snap)
    elif state is ExperimentState.RESULTS:
        _draw_results(win, snap)
    _draw_progress(win, snap)


# =========================
# Key collection
# =========================

def collect_keys(kb, state: ExperimentState, session_clock: core.Clock) -> List[tuple]:
    """Return (key_name, timestamp_ms) pairs pressed since the last frame."""
    key_list = keys_for_state(state)
    out: List[tuple] = []
    if CFG_USE_HW_KB and kb is not None:
        for k in kb.getKeys(keyList=key_list, waitRelease=False, clear=True):
            out.append((k.name, (k.rt or 0.0) * 1000.0))
    else:
        for name, t in event.getKeys(keyList=key_list, timeStamped=session_clock):
            out.append((name, t * 1000.0))
    return out


# =========================
# Saving and quitting
# =========================

def save_results(machine: ExperimentStateMachine, data_dir: str, meta: Dict) -> Optional[str]:
    """Write the CSV export and its metadata sidecar; returns the CSV path."""
    export = machine.export()
    if export is None:
        return None
    make_data_dir(data_dir)
    csv_path = unique_path(data_dir, export.filename, SESSION_TS)
    with open(csv_path, "w", newline="", encoding="utf-8") as f:
        f.write(export.text + "\n")
    meta_path = os.path.splitext(csv_path)[0] + ".meta.json"
    try:
        meta = dict(meta, participant_id=machine.config.participant_id)
        with open(meta_path, "w", encoding="utf-8") as mf:
            json.dump(meta, mf, indent=2)
    except OSError as e:
        logging.warning(f"Could not write metadata sidecar {meta_path}: {e}")
    logging.exp(f"Saved results to {csv_path}")
    return csv_path


def print_summary(machine: ExperimentStateMachine, csv_path: Optional[str]) -> None:
    summary = machine.summary()
    if not summary.n_trials:
        return
    print("\n===== Session Summary =====")
    if csv_path:
        print(f"File: {csv_path}")
    print(f"Trials: {summary.n_trials}")
    print(f"Overall accuracy: {summary.accuracy_percent}% ({summary.n_correct}/{summary.n_trials})")
    for size, rt in summary.per_size.items():
        print(f"Set size {size:>2}: mean RT (correct) {rt:.0f} ms (n={summary.n_correct_per_size[size]})")
    print("===========================\n")


def graceful_quit(win: Optional[visual.Window]) -> None:
    """Close the window and end the PsychoPy session; unsaved data is dropped."""
    try:
        if win is not None:
            win.close()
    except Exception:
        pass
    logging.flush()
    core.quit()


# =========================
# Main
# =========================

def main(argv: Optional[List[str]] = None) -> int:
    """CLI entry-point for running the visual search task.

    Flow:
    - Parse CLI, configure input backend, display and logging.
    - Run the frame loop until the participant quits with ESC.
    - Results are saved on request from the results screen.
    """
    global SESSION_TS, CFG_USE_HW_KB

    parser = argparse.ArgumentParser(description="PsychoPy Visual Search Task")
    parser.add_argument("--participant", "-p", default="", help="Participant ID (prefills the setup screen)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducibility")
    parser.add_argument("--windowed", action="store_true", help="Run windowed for debugging (default: fullscreen)")
    parser.add_argument("--screen", type=int, default=None, help="Display/screen index (0=primary). If unset, PsychoPy default is used.")
    parser.add_argument("--kb-backend", choices=["ptb", "event"], default="event", help="Keyboard backend: 'ptb' (hardware; low-latency) or 'event' (fallback)")
    parser.add_argument("--data-dir", default=DATA_DIR, help="Directory for CSV, metadata and log files")
    args = parser.parse_args(argv)

    SESSION_TS = timestamp()
    data_dir = os.path.abspath(args.data_dir)
    make_data_dir(data_dir)

    # Logging: experiment events to file, warnings to console
    logging.console.setLevel(logging.WARNING)
    log_path = os.path.join(data_dir, f"vsearch_{safe_filename(args.participant) or 'session'}_{SESSION_TS}.log")
    logging.LogFile(log_path, level=logging.EXP, filemode="w")

    # Keyboard backend selection
    CFG_USE_HW_KB = (args.kb_backend == "ptb") and _HAVE_HW_KB
    if args.kb_backend == "ptb" and not _HAVE_HW_KB:
        print("Note: psychtoolbox keyboard backend unavailable; falling back to 'event' backend.")

    # Configure window
    fullscr = not bool(args.windowed)
    win_kwargs = dict(size=(1280, 720), color=BACKGROUND_COLOR, units="height", fullscr=fullscr, allowGUI=False)
    if args.screen is not None:
        win_kwargs["screen"] = int(args.screen)
    win = visual.Window(**win_kwargs)
    try:
        win.mouseVisible = False
    except Exception:
        pass
    try:
        win.waitBlanking = True
    except Exception:
        pass

    refresh_hz = None
    try:
        refresh_hz = win.getActualFrameRate(nIdentical=20, nMaxFrames=240, nWarmUpFrames=20, threshold=1)
    except Exception:
        refresh_hz = None
    if refresh_hz:
        print(f"Detected display refresh: {refresh_hz:.3f} Hz (frame ≈ {1000.0/refresh_hz:.2f} ms)")
    else:
        print("Warning: Could not detect display refresh rate; proceeding without it.")

    # One clock for timers and key timestamps
    session_clock = core.Clock()
    kb = None
    if CFG_USE_HW_KB:
        try:
            kb = hw_keyboard.Keyboard(clock=session_clock)
        except Exception:
            kb = None
            CFG_USE_HW_KB = False

    rng = random.Random(args.seed)
    machine = ExperimentStateMachine(clock=lambda: session_clock.getTime() * 1000.0, rng=rng)
    entry = ParticipantEntry(safe_filename(args.participant))

    meta = {
        "session_timestamp": SESSION_TS,
        "seed": args.seed,
        "set_sizes": list(SET_SIZES),
        "trials_per_set": TRIALS_PER_SET,
        "timeout_ms": TIMEOUT_MS,
        "fixation_range_ms": [FIXATION_MIN_MS, FIXATION_MAX_MS],
        "feedback_ms": FEEDBACK_MS,
        "task_version": __version__,
        "psychopy_version": None,
        "display_refresh_hz": refresh_hz,
        "window_fullscreen": bool(fullscr),
        "screen_index": args.screen,
        "kb_backend": "ptb" if CFG_USE_HW_KB else "event",
    }
    try:
        import psychopy
        meta["psychopy_version"] = getattr(psychopy, "__version__", None)
    except Exception:
        pass

    def _on_transition(old: ExperimentState, new: ExperimentState) -> None:
        # Drop keys pressed during automatic states so they cannot leak into the next trial
        if new in (ExperimentState.TRIAL, ExperimentState.SETUP, ExperimentState.INSTRUCTIONS):
            if kb is not None:
                kb.clearEvents()
            else:
                event.clearEvents()
        if new is ExperimentState.SETUP:
            STIMS.pop("save_status", None)

    machine.add_listener(_on_transition)

    csv_path: Optional[str] = None
    event.clearEvents()
    while True:
        for name, t_ms in collect_keys(kb, machine.state, session_clock):
            action = dispatch_key(machine, entry, name, timestamp=t_ms)
            if action == ACTION_QUIT:
                print_summary(machine, csv_path)
                graceful_quit(win)
                return 0
            if action == ACTION_SAVE:
                csv_path = save_results(machine, data_dir, meta)
                if csv_path:
                    status = _text(win, "save_status", text="", pos=(0, -0.44), height=0.025, color=CORRECT_COLOR)
                    status.text = f"Saved: {os.path.basename(csv_path)}"
        machine.tick()
        draw_snapshot(win, machine.snapshot(), entry)
        win.flip()


if __name__ == "__main__":
    try:
        sys.exit(main())
    except SystemExit as e:
        raise e
    except Exception as e:
        # Ensure graceful close if window exists
        try:
            core.quit()
        except Exception:
            pass
        raise
