"""Default parameters and constants for the visual search task.

Separated from the runner so the state machine and the tests share them.
"""

from __future__ import annotations

# Task structure
SET_SIZES = (5, 10, 15, 20)
TRIALS_PER_SET = 10

# Search grid (GRID_SIZE x GRID_SIZE cells)
GRID_SIZE = 5

# Timing (ms)
FIXATION_MIN_MS = 500
FIXATION_MAX_MS = 1000  # exclusive upper bound of the fixation jitter
TIMEOUT_MS = 4000
FEEDBACK_MS = 800

# Feedback texts
FEEDBACK_CORRECT = "Correct!"
FEEDBACK_INCORRECT = "Incorrect"
FEEDBACK_TIMEOUT = "Too Slow!"

# Validation
MSG_MISSING_PARTICIPANT = "Please enter a participant number."

# Visuals
BACKGROUND_COLOR = [0.9, 0.9, 0.9]
TEXT_COLOR = [-0.8, -0.8, -0.8]
TARGET_COLOR = "#ef4444"
DISTRACTOR_A_COLOR = "#3b82f6"
DISTRACTOR_B_COLOR = "#10b981"
CORRECT_COLOR = "#22c55e"
ERROR_COLOR = "#ef4444"
BAR_COLOR = "#3b82f6"
FONT = "Arial"
FONT_HEIGHT = 0.05  # normalized (height) units
ITEM_HEIGHT = 0.07
CELL_SPACING = 0.12
FIXATION_HEIGHT = 0.12

# Keys
KEY_PRESENT = "j"
KEY_ABSENT = "f"
KEY_PROCEED = "space"
KEY_SUBMIT = "return"
KEY_DELETE = "backspace"
KEY_RESTART = "r"
KEY_SAVE = "s"
KEY_QUIT = "escape"

__all__ = [
    # structure
    "SET_SIZES",
    "TRIALS_PER_SET",
    "GRID_SIZE",
    # timing
    "FIXATION_MIN_MS",
    "FIXATION_MAX_MS",
    "TIMEOUT_MS",
    "FEEDBACK_MS",
    # texts
    "FEEDBACK_CORRECT",
    "FEEDBACK_INCORRECT",
    "FEEDBACK_TIMEOUT",
    "MSG_MISSING_PARTICIPANT",
    # visuals
    "BACKGROUND_COLOR",
    "TEXT_COLOR",
    "TARGET_COLOR",
    "DISTRACTOR_A_COLOR",
    "DISTRACTOR_B_COLOR",
    "CORRECT_COLOR",
    "ERROR_COLOR",
    "BAR_COLOR",
    "FONT",
    "FONT_HEIGHT",
    "ITEM_HEIGHT",
    "CELL_SPACING",
    "FIXATION_HEIGHT",
    # keys
    "KEY_PRESENT",
    "KEY_ABSENT",
    "KEY_PROCEED",
    "KEY_SUBMIT",
    "KEY_DELETE",
    "KEY_RESTART",
    "KEY_SAVE",
    "KEY_QUIT",
]
