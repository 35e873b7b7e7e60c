# shadow_duel/clock.py
"""
Per-match turn timers.

One TurnClock is built per process and handed to the orchestrator. Each armed
match holds a generation number; a sleeping timer only fires if its generation
is still the current one when it wakes, so re-arming or disarming a match
cancels any timer already in flight.

Timers run through ``start_task(fn, *args)`` and ``sleep(seconds)``. With
Flask-SocketIO these are ``socketio.start_background_task`` and
``socketio.sleep`` so timers cooperate with eventlet/gevent workers.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


def _thread_task(fn: Callable[..., Any], *args: Any) -> threading.Thread:
    worker = threading.Thread(target=fn, args=args, daemon=True)
    worker.start()
    return worker


class TurnClock:
    def __init__(
        self,
        turn_time_limit: float,
        lockout_seconds: float = 1.0,
        start_task: Optional[Callable[..., Any]] = None,
        sleep: Optional[Callable[[float], Any]] = None,
        now: Callable[[], float] = time.time,
    ) -> None:
        self.turn_time_limit = turn_time_limit
        self.lockout_seconds = lockout_seconds
        self._start_task = start_task or _thread_task
        self._sleep = sleep or time.sleep
        self._now = now
        self._on_expire: Optional[Callable[[str], Any]] = None
        self._generations = itertools.count(1)
        self._armed: Dict[str, int] = {}
        self._last_claim: Dict[str, float] = {}
        self._lock = threading.Lock()

    @classmethod
    def for_socketio(cls, socketio, turn_time_limit: float, lockout_seconds: float = 1.0) -> "TurnClock":
        return cls(
            turn_time_limit,
            lockout_seconds=lockout_seconds,
            start_task=socketio.start_background_task,
            sleep=socketio.sleep,
        )

    def bind(self, on_expire: Callable[[str], Any]) -> None:
        self._on_expire = on_expire

    def arm(self, match_id: str, delay: Optional[float] = None) -> int:
        """Start (or restart) the countdown for the turn in progress."""
        delay = self.turn_time_limit if delay is None else delay
        with self._lock:
            generation = next(self._generations)
            replaced = match_id in self._armed
            self._armed[match_id] = generation
        if replaced:
            logger.debug("Replaced pending timeout for match %s", match_id)
        self._start_task(self._wait, match_id, generation, delay)
        logger.debug("Scheduled timeout check for match %s in %ss", match_id, delay)
        return generation

    def disarm(self, match_id: str) -> bool:
        with self._lock:
            removed = self._armed.pop(match_id, None) is not None
        if removed:
            logger.debug("Cleared timeout check for match %s", match_id)
        return removed

    def forget(self, match_id: str) -> None:
        """Drop every trace of a finished match."""
        with self._lock:
            self._armed.pop(match_id, None)
            self._last_claim.pop(match_id, None)

    def is_armed(self, match_id: str) -> bool:
        with self._lock:
            return match_id in self._armed

    def active_timers(self) -> List[str]:
        with self._lock:
            return sorted(self._armed)

    def claim(self, match_id: str) -> bool:
        """
        Re-entrancy guard for timeout handling. The first caller wins; any other
        caller inside the lockout window is refused.
        """
        now = self._now()
        with self._lock:
            last = self._last_claim.get(match_id)
            if last is not None and now - last < self.lockout_seconds:
                return False
            self._last_claim[match_id] = now
            return True

    def call_later(self, delay: float, fn: Callable[[], Any]) -> None:
        self._start_task(self._run_later, delay, fn)

    def _run_later(self, delay: float, fn: Callable[[], Any]) -> None:
        self._sleep(delay)
        try:
            fn()
        except Exception:
            logger.exception("Deferred job failed")

    def _wait(self, match_id: str, generation: int, delay: float) -> None:
        self._sleep(delay)
        self.fire(match_id, generation)

    def fire(self, match_id: str, generation: int) -> bool:
        """Expire a timer. Stale or cancelled generations are ignored."""
        with self._lock:
            if self._armed.get(match_id) != generation:
                return False
            del self._armed[match_id]
        logger.info("Turn timer expired for match %s", match_id)
        if self._on_expire is None:
            return True
        try:
            self._on_expire(match_id)
        except Exception:
            # a failed expiry must not kill the scheduler; the next read re-arms
            logger.exception("Timeout handling failed for match %s", match_id)
        return True
