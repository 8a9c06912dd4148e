"""vsearch package

Core modules for the PsychoPy visual search task.
Stimulus layouts, trial sequencing, timers, the experiment state machine and
results/export helpers live here; the main runner is `vsearch_task.py` at the
repository root.
"""

__all__ = [
	"__version__",
]

__version__ = "1.0.0"
