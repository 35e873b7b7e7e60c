import random
from types import SimpleNamespace

import pytest

from shadow_duel.clock import TurnClock
from shadow_duel.config import ArenaConfig
from shadow_duel.orchestrator import MatchOrchestrator
from shadow_duel.state import ArenaState
from shadow_duel.store import MemoryStateStore


class ManualClock:
    def __init__(self, start=1000.0):
        self.value = start

    def __call__(self):
        return self.value

    def advance(self, seconds):
        self.value += seconds


class CapturedTasks(list):
    """start_task replacement: records (fn, args) instead of spawning anything."""

    def __call__(self, fn, *args):
        self.append((fn, args))

    def __bool__(self):
        # an injected start_task must stay truthy even while nothing is captured
        return True

    def run_last(self):
        fn, args = self.pop()
        return fn(*args)


@pytest.fixture
def manual_clock():
    return ManualClock()


@pytest.fixture
def tasks():
    return CapturedTasks()


@pytest.fixture
def arena(manual_clock, tasks):
    config = ArenaConfig()
    store = MemoryStateStore(clock=manual_clock)
    state = ArenaState(store, config, clock=manual_clock)
    clock = TurnClock(
        config.turn_time_limit,
        lockout_seconds=config.timeout_lockout_seconds,
        start_task=tasks,
        sleep=lambda seconds: None,
        now=manual_clock,
    )
    orchestrator = MatchOrchestrator(state, clock, config, now=manual_clock, rng=random.Random(7))
    return SimpleNamespace(
        config=config,
        store=store,
        state=state,
        clock=clock,
        tasks=tasks,
        time=manual_clock,
        orchestrator=orchestrator,
    )
