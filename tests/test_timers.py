from __future__ import annotations

from conftest import FakeClock

from vsearch.timers import Scheduler


def test_fires_only_when_due():
    clock = FakeClock()
    sched = Scheduler(clock)
    fired = []
    sched.schedule(100, lambda due, token: fired.append((due, token)), token=3)
    assert sched.poll() == 0
    clock.advance(99.9)
    assert sched.poll() == 0
    clock.advance(0.1)
    assert sched.poll() == 1
    assert fired == [(100.0, 3)]
    assert sched.pending == 0


def test_fires_in_due_order():
    clock = FakeClock()
    sched = Scheduler(clock)
    fired = []
    sched.schedule(300, lambda due, token: fired.append("late"), token=0)
    sched.schedule(100, lambda due, token: fired.append("early"), token=0)
    assert sched.next_due() == 100
    clock.advance(1000)
    sched.poll()
    assert fired == ["early", "late"]


def test_cancelled_timer_never_fires():
    clock = FakeClock()
    sched = Scheduler(clock)
    fired = []
    timer = sched.schedule(50, lambda due, token: fired.append(due), token=0)
    sched.cancel(timer)
    sched.cancel(None)
    clock.advance(100)
    assert sched.poll() == 0
    assert fired == []
    assert sched.next_due() is None


def test_cancel_all():
    clock = FakeClock()
    sched = Scheduler(clock)
    for d in (10, 20, 30):
        sched.schedule(d, lambda due, token: None, token=0)
    assert sched.pending == 3
    sched.cancel_all()
    assert sched.pending == 0
    clock.advance(100)
    assert sched.poll() == 0


def test_chained_timers_fire_in_same_poll_when_due():
    clock = FakeClock()
    sched = Scheduler(clock)
    fired = []

    def first(due, token):
        fired.append("first")
        sched.schedule(10, lambda d, t: fired.append("second"), token)

    sched.schedule(10, first, token=0)
    clock.advance(50)
    assert sched.poll() == 2
    assert fired == ["first", "second"]
