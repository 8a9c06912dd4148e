#!/usr/bin/env python3
from __future__ import annotations

"""Preview a generated visual search session without opening a window.

Usage:
    PYTHONPATH=. python scripts/preview_session.py [trials_per_set] [seed]

Defaults: trials_per_set=10, seed unset
"""

import sys
import random
from vsearch.def_parameters import GRID_SIZE
from vsearch.sequences import SessionConfig, build_session
from vsearch.stimuli import TARGET, DISTRACTOR_A, generate_stimuli

trials_per_set = int(sys.argv[1]) if len(sys.argv) > 1 else 10
seed = int(sys.argv[2]) if len(sys.argv) > 2 else None
rng = random.Random(seed)
trials = build_session(SessionConfig(participant_id='preview', trials_per_set=trials_per_set), rng)
print('trials:    ', len(trials))
print('set_size:  ', [t.set_size for t in trials])
print('target:    ', ''.join('P' if t.target_present else 'A' for t in trials))

first = trials[0]
items = generate_stimuli(first.set_size, first.target_present, rng)
grid = [['.'] * GRID_SIZE for _ in range(GRID_SIZE)]
for it in items:
    grid[it.grid_y][it.grid_x] = 'T' if it.kind == TARGET else ('a' if it.kind == DISTRACTOR_A else 'b')
print(f'trial 1 layout (set_size={first.set_size}, target_present={first.target_present}):')
for row in grid:
    print('  ' + ' '.join(row))
