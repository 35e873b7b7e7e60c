# shadow_duel/matchmaking.py
from __future__ import annotations

import logging
import random
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from .content.balance import MATCHMAKING
from .content.characters import (
    DEFAULT_CHARACTER,
    STARTER_ABILITIES,
    character_for,
    characters_for_level,
    is_valid_character,
)
from .engine.models import BattlePlayer, PlayerProfile, ShadowData

logger = logging.getLogger(__name__)

TRAINING_SHADOW_ID = "shadow_generic"
TRAINING_SHADOW_NAME = "Training Shadow"


@dataclass
class MatchmakingResult:
    opponent: BattlePlayer
    is_shadow: bool
    shadow_data: Optional[ShadowData] = None


def build_combatant(user_id: str, username: str, character: str, abilities: Sequence[str]) -> BattlePlayer:
    data = character_for(character)
    return BattlePlayer(
        user_id=user_id,
        username=username or "Player",
        character=character if is_valid_character(character) else DEFAULT_CHARACTER,
        hp=data["base_hp"],
        max_hp=data["base_hp"],
        energy=data["base_energy"],
        max_energy=data["base_energy"],
        abilities=list(abilities),
    )


def combatant_from_profile(profile: PlayerProfile, character: str) -> BattlePlayer:
    # the first four unlocked abilities form the loadout
    return build_combatant(profile.user_id, profile.username, character, profile.unlocked_abilities[:4])


def combatant_from_shadow(shadow: ShadowData) -> BattlePlayer:
    data = character_for(shadow.original_character)
    return build_combatant(
        f"shadow_{shadow.original_username}_{int(shadow.recorded_at)}",
        f"Shadow of {shadow.original_username}",
        shadow.original_character,
        data["shadow_abilities"],
    )


def training_shadow(rng: random.Random) -> BattlePlayer:
    character = rng.choice(characters_for_level(1))
    return build_combatant(TRAINING_SHADOW_ID, TRAINING_SHADOW_NAME, character, STARTER_ABILITIES)


def random_character(profile: PlayerProfile, rng: random.Random) -> str:
    return rng.choice(characters_for_level(profile.level))


def find_similar_rank(profile: PlayerProfile, candidates: List[PlayerProfile], rng: random.Random) -> Optional[PlayerProfile]:
    window = MATCHMAKING["live_rank_window"]
    similar = [p for p in candidates if abs(p.rank_points - profile.rank_points) < window]
    if not similar:
        return None
    return rng.choice(similar)


def select_shadow(profile: PlayerProfile, shadows: List[ShadowData], rng: random.Random, now: float) -> Optional[ShadowData]:
    if not shadows:
        return None
    window = MATCHMAKING["shadow_rank_window"]
    eligible = [s for s in shadows if abs(s.original_rank - profile.rank_points) < window]
    if not eligible:
        return rng.choice(shadows)
    recent = [s for s in eligible if now - s.recorded_at < MATCHMAKING["shadow_recent_seconds"]]
    return rng.choice(recent or eligible)


def find_opponent(
    profile: PlayerProfile,
    mode: str,
    online: List[PlayerProfile],
    get_shadows: Callable[[], List[ShadowData]],
    rng: Optional[random.Random] = None,
    now: Optional[float] = None,
) -> MatchmakingResult:
    """
    Live player within the rank window, then (quick_match only) any live player,
    then a recorded Shadow, then the Training Shadow. Always returns an opponent.
    """
    rng = rng or random.Random()
    now = time.time() if now is None else now
    others = [p for p in online if p.user_id != profile.user_id]
    logger.debug("Matchmaking for %s: %d other players online", profile.username, len(others))

    if others:
        similar = find_similar_rank(profile, others, rng)
        if similar is not None:
            logger.info("Matching %s with %s (similar rank)", profile.username, similar.username)
            return MatchmakingResult(combatant_from_profile(similar, random_character(similar, rng)), False)
        if mode == "quick_match":
            pick = rng.choice(others)
            logger.info("Quick matching %s with %s", profile.username, pick.username)
            return MatchmakingResult(combatant_from_profile(pick, random_character(pick, rng)), False)

    shadow = select_shadow(profile, get_shadows(), rng, now)
    if shadow is not None:
        return MatchmakingResult(combatant_from_shadow(shadow), True, shadow)

    return MatchmakingResult(training_shadow(rng), True)
