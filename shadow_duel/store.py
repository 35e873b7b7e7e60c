# shadow_duel/store.py
"""
Key-value state stores with expiring writes.

Values are JSON-compatible objects. ``RedisStateStore`` is the production
backend; ``MemoryStateStore`` keeps everything in-process for local runs and
tests. Backend failures surface as ``StoreUnavailableError``.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from typing import Any, Callable, Dict, Optional, Tuple

import redis
from redis.exceptions import RedisError

from .errors import StoreUnavailableError

logger = logging.getLogger(__name__)


class StateStore:
    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        raise NotImplementedError

    def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError

    def incr(self, key: str, amount: int = 1) -> int:
        raise NotImplementedError


class MemoryStateStore(StateStore):
    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._data: Dict[str, Tuple[str, Optional[float]]] = {}
        self._lock = threading.Lock()

    def _live(self, key: str) -> Optional[str]:
        entry = self._data.get(key)
        if entry is None:
            return None
        raw, expires_at = entry
        if expires_at is not None and expires_at <= self._clock():
            self._data.pop(key, None)
            return None
        return raw

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        expires_at = self._clock() + ttl_seconds if ttl_seconds else None
        with self._lock:
            self._data[key] = (json.dumps(value), expires_at)

    def get(self, key: str) -> Optional[Any]:
        with self._lock:
            raw = self._live(key)
        return None if raw is None else json.loads(raw)

    def delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def incr(self, key: str, amount: int = 1) -> int:
        with self._lock:
            raw = self._live(key)
            value = (json.loads(raw) if raw is not None else 0) + amount
            expires_at = self._data[key][1] if key in self._data else None
            self._data[key] = (json.dumps(value), expires_at)
        return value


class RedisStateStore(StateStore):
    def __init__(self, client: "redis.Redis") -> None:
        self._client = client

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 5.0) -> "RedisStateStore":
        client = redis.Redis.from_url(
            url,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
            decode_responses=True,
        )
        return cls(client)

    def _call(self, op: str, key: str, fn: Callable[[], Any]) -> Any:
        try:
            return fn()
        except RedisError as exc:
            logger.warning("Redis %s failed for %s: %s", op, key, exc)
            raise StoreUnavailableError(f"State store {op} failed", details={"key": key}) from exc

    def put(self, key: str, value: Any, ttl_seconds: Optional[int] = None) -> None:
        payload = json.dumps(value)
        self._call("set", key, lambda: self._client.set(key, payload, ex=ttl_seconds or None))

    def get(self, key: str) -> Optional[Any]:
        raw = self._call("get", key, lambda: self._client.get(key))
        if raw is None:
            return None
        return json.loads(raw)

    def delete(self, key: str) -> None:
        self._call("delete", key, lambda: self._client.delete(key))

    def incr(self, key: str, amount: int = 1) -> int:
        return int(self._call("incrby", key, lambda: self._client.incrby(key, amount)))
