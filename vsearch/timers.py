"""Scheduled, cancellable callbacks driven by a millisecond clock.

Nothing here runs on a thread. The runner's frame loop calls `Scheduler.poll`
once per frame, and every due timer fires inside that call. Each timer carries
the state-entry token it was scheduled under so the owner can ignore timers
that belong to a state it has already left.
"""

from __future__ import annotations

import itertools
from dataclasses import dataclass, field
from typing import Callable, List, Optional

Clock = Callable[[], float]
TimerCallback = Callable[[float, int], None]


@dataclass(order=True)
class Timer:
    due: float
    seq: int
    token: int = field(compare=False)
    callback: TimerCallback = field(compare=False, repr=False)
    cancelled: bool = field(default=False, compare=False)


class Scheduler:
    def __init__(self, clock: Clock):
        self._clock = clock
        self._timers: List[Timer] = []
        self._seq = itertools.count()

    @property
    def pending(self) -> int:
        return sum(1 for t in self._timers if not t.cancelled)

    def now(self) -> float:
        return self._clock()

    def schedule(self, delay_ms: float, callback: TimerCallback, token: int) -> Timer:
        timer = Timer(due=self._clock() + max(0.0, float(delay_ms)), seq=next(self._seq),
                      token=token, callback=callback)
        self._timers.append(timer)
        return timer

    def cancel(self, timer: Optional[Timer]) -> None:
        if timer is None:
            return
        timer.cancelled = True
        self._timers = [t for t in self._timers if t is not timer]

    def cancel_all(self) -> None:
        for t in self._timers:
            t.cancelled = True
        self._timers = []

    def next_due(self) -> Optional[float]:
        live = [t.due for t in self._timers if not t.cancelled]
        return min(live) if live else None

    def poll(self) -> int:
        """Fire every timer due at the current clock time, earliest first.

        Timers scheduled by a callback fire in the same poll when they are
        already due. Returns the number of callbacks run.
        """
        fired = 0
        while True:
            now = self._clock()
            due = sorted(t for t in self._timers if not t.cancelled and t.due <= now)
            if not due:
                return fired
            timer = due[0]
            self._timers = [t for t in self._timers if t is not timer]
            timer.callback(timer.due, timer.token)
            fired += 1


__all__ = [
    "Clock",
    "Timer",
    "Scheduler",
]
