import pytest

from factories import make_profile
from shadow_duel.engine.models import ShadowData
from shadow_duel.errors import StoreUnavailableError
from shadow_duel.state import best_effort


def test_new_profile_gets_starter_kit(arena):
    profile = arena.state.get_or_create_profile("u1", "alice")
    assert profile.coins == 500
    assert profile.unlocked_characters == ["mage", "knight", "ranger"]
    assert arena.state.get_profile("u1") == profile


def test_stored_profile_is_normalized(arena):
    arena.state.save_profile(make_profile("u1", xp=250, level=1, wins=3, losses=1, total_battles=9, unlocked_abilities=[]))
    profile = arena.state.get_or_create_profile("u1", "alice")
    assert profile.level == 3
    assert profile.total_battles == 4
    assert profile.unlocked_abilities == ["basic_attack", "defend", "fireball", "heal"]


def test_invitation_lifecycle(arena):
    arena.state.create_invitation("u2", "g1", "alice", "player2")
    assert arena.state.get_invitation("u2") == {"game_id": "g1", "player_role": "player2", "inviter_username": "alice"}

    arena.state.decline_invitation("u2")
    assert arena.state.get_invitation("u2") is None
    arena.time.advance(61)
    assert arena.store.get("invitation:u2") is None


def test_invitation_expires(arena):
    arena.state.create_invitation("u2", "g1", "alice", "player2")
    arena.time.advance(600)
    assert arena.state.get_invitation("u2") is None


def test_presence_window(arena):
    arena.state.set_online("u1")
    arena.time.advance(200)
    arena.state.set_online("u2")
    assert arena.state.online_players() == ["u1", "u2"]
    arena.time.advance(150)
    assert arena.state.online_players() == ["u2"]


def test_shadow_pool_keeps_the_latest(arena):
    for i in range(3):
        shadow = ShadowData(original_username="alice", recorded_at=float(i), original_character="knight", original_rank=0)
        arena.state.save_shadow("u1", shadow)
    assert [s.recorded_at for s in arena.state.get_shadows()] == [0.0, 1.0, 2.0]


def test_leaderboard_orders_by_rank_points(arena):
    arena.state.update_leaderboard(make_profile("u1", rank_points=40))
    arena.state.update_leaderboard(make_profile("u2", rank_points=90))
    arena.state.update_leaderboard(make_profile("u1", rank_points=120))
    board = arena.state.get_leaderboard("monthly")
    assert [(e["user_id"], e["rank"]) for e in board] == [("u1", 1), ("u2", 2)]


def test_best_effort_retries_then_gives_up(caplog):
    calls = []

    def flaky():
        calls.append(1)
        raise StoreUnavailableError("down")

    assert best_effort("poke store", flaky) is None
    assert len(calls) == 2
    assert "poke store failed" in caplog.text


def test_best_effort_does_not_swallow_programming_errors():
    with pytest.raises(ZeroDivisionError):
        best_effort("divide", lambda: 1 / 0)
