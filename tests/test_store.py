import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from shadow_duel.config import ArenaConfig
from shadow_duel.errors import StoreUnavailableError
from shadow_duel.store import MemoryStateStore, RedisStateStore


class DictRedis:
    """Just enough of redis.Redis for RedisStateStore."""

    def __init__(self):
        self.data = {}
        self.expiry = {}

    def set(self, key, value, ex=None):
        self.data[key] = value
        self.expiry[key] = ex

    def get(self, key):
        return self.data.get(key)

    def delete(self, key):
        self.data.pop(key, None)

    def incrby(self, key, amount):
        self.data[key] = str(int(self.data.get(key, 0)) + amount)
        return int(self.data[key])


class DownRedis:
    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise RedisConnectionError("connection refused")
        return fail


def test_memory_store_expires_entries(manual_clock):
    store = MemoryStateStore(clock=manual_clock)
    store.put("a", {"x": 1}, ttl_seconds=30)
    store.put("b", [1, 2])
    manual_clock.advance(29)
    assert store.get("a") == {"x": 1}
    manual_clock.advance(1)
    assert store.get("a") is None
    assert store.get("b") == [1, 2]
    assert "a" not in store._data


def test_memory_store_returns_copies(manual_clock):
    store = MemoryStateStore(clock=manual_clock)
    store.put("a", {"x": 1})
    store.get("a")["x"] = 2
    assert store.get("a") == {"x": 1}


def test_memory_store_incr(manual_clock):
    store = MemoryStateStore(clock=manual_clock)
    assert store.incr("n") == 1
    assert store.incr("n", 4) == 5
    store.delete("n")
    assert store.get("n") is None


def test_redis_store_round_trips_json():
    client = DictRedis()
    store = RedisStateStore(client)
    store.put("game:1", {"status": "active"}, ttl_seconds=300)
    assert client.expiry["game:1"] == 300
    assert store.get("game:1") == {"status": "active"}
    assert store.incr("stats") == 1
    store.delete("game:1")
    assert store.get("game:1") is None


def test_redis_failures_are_retryable():
    store = RedisStateStore(DownRedis())
    with pytest.raises(StoreUnavailableError) as excinfo:
        store.get("game:1")
    assert excinfo.value.is_retryable
    assert excinfo.value.details == {"key": "game:1"}


def test_config_overrides():
    config = ArenaConfig.load(
        {"ARENA_TURN_TIME_LIMIT": 20, "REDIS_URL": "redis://cache:6379/0"},
        environ={"SHADOW_DUEL_TIMEOUT_HP_PENALTY": "7"},
    )
    assert config.turn_time_limit == 20
    assert config.timeout_hp_penalty == 7
    assert config.redis_url == "redis://cache:6379/0"
    assert config.finished_game_ttl == 30


def test_config_defaults_without_overrides():
    config = ArenaConfig.load({}, environ={})
    assert config == ArenaConfig()
    assert config.redis_url is None


def test_config_env_values_follow_field_types():
    config = ArenaConfig.load(
        {"ARENA_TIMEOUT_LOCKOUT_SECONDS": "0.5"},
        environ={"SHADOW_DUEL_TURN_TIME_LIMIT": "7.5", "SHADOW_DUEL_BATTLE_MAX_TURNS": "12"},
    )
    assert config.turn_time_limit == 7.5
    assert config.timeout_lockout_seconds == 0.5
    assert config.battle_max_turns == 12
    assert isinstance(config.battle_max_turns, int)
