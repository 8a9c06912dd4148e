"""Utility helpers for the visual search task (file/paths, time, text stimulus helpers)."""

from __future__ import annotations

import os
from datetime import datetime
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from psychopy import visual


def make_data_dir(path: str) -> None:
    os.makedirs(path, exist_ok=True)


def timestamp() -> str:
    return datetime.now().strftime("%Y%m%d_%H%M%S")


def safe_filename(name: str) -> str:
    return "".join(c for c in name if c.isalnum() or c in ("-", "_", ".")).strip()


def unique_path(directory: str, filename: str, suffix: str) -> str:
    """Join `directory` and `filename`, picking a free name if it is taken.

    Tries `{base}_{suffix}{ext}` next, then `{base}_{suffix}_2{ext}`,
    `{base}_{suffix}_3{ext}` and so on.
    """
    path = os.path.join(directory, filename)
    if not os.path.exists(path):
        return path
    base, ext = os.path.splitext(filename)
    path = os.path.join(directory, f"{base}_{suffix}{ext}")
    n = 2
    while os.path.exists(path):
        path = os.path.join(directory, f"{base}_{suffix}_{n}{ext}")
        n += 1
    return path


def load_text(path: str, fallback: str) -> str:
    try:
        with open(path, "r", encoding="utf-8") as f:
            txt = f.read().strip()
            return txt if txt else fallback
    except OSError:
        return fallback


def _default_wrap_width(win: visual.Window, margin: float = 0.95) -> float:
    try:
        aspect = win.size[0] / float(win.size[1])
    except Exception:
        aspect = 16/9
    return aspect * margin


def make_autosized_text(
    win: visual.Window,
    text: str,
    start_height: float = 0.05,
    min_height: float = 0.02,
    max_height_frac: float = 0.9,
    shrink_factor: float = 0.9,
    align: str = 'center',
    *,
    color = (-0.8, -0.8, -0.8),
    font: str = "Arial",
    pos = (0, 0),
) -> visual.TextStim:
    """Build a TextStim that shrinks its letter height until it fits the window."""
    from psychopy import visual

    wrap_w = _default_wrap_width(win)
    h = start_height
    if align not in {'left', 'center'}:
        align = 'center'
    stim = visual.TextStim(
        win,
        text=text,
        color=color,
        font=font,
        height=h,
        pos=pos,
        wrapWidth=wrap_w,
        alignText=align,
        anchorHoriz='center',
        anchorVert='center',
    )
    try:
        while True:
            bb = getattr(stim, 'boundingBox', None)
            if not bb:
                break
            bb_h = bb[1] if isinstance(bb, (list, tuple)) and len(bb) > 1 else 0
            if bb_h <= win.size[1] * max_height_frac:
                break
            h *= shrink_factor
            if h < min_height:
                break
            stim.height = h
    except Exception:
        pass
    return stim


__all__ = [
    "make_data_dir",
    "timestamp",
    "safe_filename",
    "unique_path",
    "load_text",
    "make_autosized_text",
]
