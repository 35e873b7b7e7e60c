# shadow_duel/progression.py
from __future__ import annotations

import dataclasses
import time
from typing import Dict, List, Optional, Tuple

from .content.balance import ABILITY_UNLOCK_LEVELS, GAME_CONFIG
from .content.characters import CHARACTERS
from .engine.models import PlayerProfile


def level_info(xp: int) -> Dict[str, int]:
    per_level = GAME_CONFIG["xp_per_level"]
    in_level = xp % per_level
    return {"level": xp // per_level + 1, "xp_in_level": in_level, "xp_for_next": per_level - in_level}


def rank_tier(rank_points: int) -> str:
    if rank_points < 100:
        return "Bronze"
    if rank_points < 300:
        return "Silver"
    if rank_points < 600:
        return "Gold"
    if rank_points < 1000:
        return "Platinum"
    if rank_points < 2000:
        return "Diamond"
    return "Legend"


def xp_for(won: bool, is_draw: bool) -> int:
    if is_draw:
        return GAME_CONFIG["xp_per_draw"]
    return GAME_CONFIG["xp_per_win"] if won else GAME_CONFIG["xp_per_loss"]


def award_coins(won: bool, is_draw: bool = False) -> int:
    if is_draw:
        return GAME_CONFIG["coins_per_draw"]
    return GAME_CONFIG["coins_per_win"] if won else GAME_CONFIG["coins_per_loss"]


def character_unlocks(level: int) -> List[str]:
    return [cid for cid, data in CHARACTERS.items() if data.get("unlock_level") and level >= data["unlock_level"]]


def ability_unlocks(level: int) -> List[str]:
    return [aid for aid, min_level in ABILITY_UNLOCK_LEVELS.items() if level >= min_level]


def _merge(existing: List[str], extra: List[str]) -> List[str]:
    merged = list(existing)
    for item in extra:
        if item not in merged:
            merged.append(item)
    return merged


def award_outcome(
    profile: PlayerProfile,
    won: bool,
    is_draw: bool = False,
    now: Optional[float] = None,
) -> Tuple[PlayerProfile, bool]:
    """
    XP, level, battle counts, streaks and unlocks for one finished battle.
    Returns (updated profile, leveled_up). A draw counts as neither win nor loss
    and resets the streak.
    """
    new_xp = profile.xp + xp_for(won, is_draw)
    old_level = level_info(profile.xp)["level"]
    new_level = level_info(new_xp)["level"]
    won = won and not is_draw

    updated = dataclasses.replace(
        profile,
        xp=new_xp,
        level=new_level,
        total_battles=profile.total_battles + 1,
        wins=profile.wins + (1 if won else 0),
        losses=profile.losses + (1 if not won and not is_draw else 0),
        current_streak=profile.current_streak + 1 if won else 0,
        best_streak=max(profile.best_streak, profile.current_streak + 1) if won else profile.best_streak,
        last_active=time.time() if now is None else now,
    )
    updated.unlocked_characters = _merge(profile.unlocked_characters, character_unlocks(new_level))
    updated.unlocked_abilities = _merge(profile.unlocked_abilities, ability_unlocks(new_level))
    return updated, new_level > old_level


def update_rank_points(profile: PlayerProfile, won: bool, is_draw: bool = False, ranked: bool = True) -> Tuple[int, int]:
    """Returns (new_points, delta). Only ranked matches move rank points; draws never do."""
    if not ranked or is_draw:
        return profile.rank_points, 0
    delta = GAME_CONFIG["rank_points_win"] if won else GAME_CONFIG["rank_points_loss"]
    new_points = max(0, profile.rank_points + delta)
    return new_points, new_points - profile.rank_points
