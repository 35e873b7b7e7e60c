import threading

import pytest

from shadow_duel.clock import TurnClock


@pytest.fixture
def clock(tasks, manual_clock):
    clock = TurnClock(10, lockout_seconds=1.0, start_task=tasks, sleep=lambda seconds: None, now=manual_clock)
    fired = []
    clock.bind(fired.append)
    clock.fired = fired
    return clock


def test_arm_schedules_a_wait_for_the_turn_limit(clock, tasks):
    generation = clock.arm("g1")
    assert clock.is_armed("g1")
    assert clock.active_timers() == ["g1"]
    _, args = tasks[-1]
    assert args == ("g1", generation, 10)

    tasks.run_last()
    assert clock.fired == ["g1"]
    assert not clock.is_armed("g1")


def test_rearm_makes_the_earlier_timer_stale(clock, tasks):
    clock.arm("g1")
    stale = tasks.pop(0)
    clock.arm("g1", delay=3)

    fn, args = stale
    fn(*args)
    assert clock.fired == []

    tasks.run_last()
    assert clock.fired == ["g1"]


def test_disarm_cancels_a_pending_timer(clock, tasks):
    clock.arm("g1")
    assert clock.disarm("g1") is True
    assert clock.disarm("g1") is False
    tasks.run_last()
    assert clock.fired == []


def test_claim_refuses_inside_lockout_window(clock, manual_clock):
    assert clock.claim("g1") is True
    assert clock.claim("g1") is False
    assert clock.claim("g2") is True
    manual_clock.advance(1.5)
    assert clock.claim("g1") is True


def test_forget_clears_claims(clock):
    clock.claim("g1")
    clock.forget("g1")
    assert clock.claim("g1") is True


def test_expiry_failure_is_logged_and_swallowed(tasks, caplog):
    def explode(match_id):
        raise RuntimeError("boom")

    clock = TurnClock(10, start_task=tasks, sleep=lambda seconds: None)
    clock.bind(explode)
    clock.arm("g1")
    tasks.run_last()
    assert "Timeout handling failed for match g1" in caplog.text


def test_call_later_runs_the_job_and_survives_errors(clock, tasks, caplog):
    ran = []
    clock.call_later(30, lambda: ran.append(True))
    tasks.run_last()
    assert ran == [True]

    clock.call_later(30, lambda: 1 / 0)
    tasks.run_last()
    assert "Deferred job failed" in caplog.text


def test_default_tasks_run_on_background_threads():
    fired = threading.Event()
    clock = TurnClock(0.01)
    clock.bind(lambda match_id: fired.set())
    clock.arm("g1")
    assert fired.wait(2)
