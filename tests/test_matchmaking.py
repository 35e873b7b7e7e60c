import random

from factories import make_profile
from shadow_duel.engine.models import ShadowData
from shadow_duel.matchmaking import (
    TRAINING_SHADOW_ID,
    combatant_from_profile,
    combatant_from_shadow,
    find_opponent,
    select_shadow,
)

NOW = 1_000_000.0


def _shadow(username, rank, recorded_at=NOW - 60, character="mage"):
    return ShadowData(
        original_username=username,
        recorded_at=recorded_at,
        original_character=character,
        original_rank=rank,
    )


def test_prefers_live_player_of_similar_rank():
    me = make_profile("u1", rank_points=100)
    near = make_profile("u2", rank_points=130)
    far = make_profile("u3", rank_points=400)

    result = find_opponent(me, "ranked", [far, near], lambda: [], rng=random.Random(1), now=NOW)
    assert not result.is_shadow
    assert result.opponent.user_id == "u2"


def test_quick_match_takes_any_live_player():
    me = make_profile("u1", rank_points=0)
    far = make_profile("u3", rank_points=900)

    result = find_opponent(me, "quick_match", [far], lambda: [], rng=random.Random(1), now=NOW)
    assert not result.is_shadow
    assert result.opponent.user_id == "u3"


def test_ranked_falls_back_to_shadow():
    me = make_profile("u1", rank_points=0)
    far = make_profile("u3", rank_points=900)
    shadow = _shadow("carol", 20)

    result = find_opponent(me, "ranked", [far], lambda: [shadow], rng=random.Random(1), now=NOW)
    assert result.is_shadow
    assert result.shadow_data == shadow
    assert result.opponent.username == "Shadow of carol"


def test_ignores_the_requester_in_the_online_list():
    me = make_profile("u1")
    result = find_opponent(me, "quick_match", [me], lambda: [], rng=random.Random(1), now=NOW)
    assert result.is_shadow
    assert result.opponent.user_id == TRAINING_SHADOW_ID


def test_select_shadow_prefers_recent_in_range():
    me = make_profile("u1", rank_points=500)
    old = _shadow("old", 520, recorded_at=NOW - 2 * 86400)
    recent = _shadow("recent", 480)
    out_of_range = _shadow("far", 50)

    for seed in range(5):
        assert select_shadow(me, [old, recent, out_of_range], random.Random(seed), NOW) is recent


def test_select_shadow_random_when_none_in_range():
    me = make_profile("u1", rank_points=500)
    far = _shadow("far", 50)
    assert select_shadow(me, [far], random.Random(1), NOW) is far
    assert select_shadow(me, [], random.Random(1), NOW) is None


def test_combatant_loadouts():
    profile = make_profile("u1", unlocked_abilities=["basic_attack", "defend", "fireball", "heal", "power_strike"])
    combatant = combatant_from_profile(profile, "tank")
    assert combatant.abilities == ["basic_attack", "defend", "fireball", "heal"]
    assert combatant.hp == combatant.max_hp == 130

    shadow = combatant_from_shadow(_shadow("carol", 20, character="ranger"))
    assert shadow.character == "ranger"
    assert shadow.abilities == ["basic_attack", "shield_break", "heal", "ultimate"]
