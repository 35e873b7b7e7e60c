# shadow_duel/engine/shadow_ai.py
from __future__ import annotations

import time
from typing import List, Optional

from .models import PLAYER1, PLAYER2, BattleMove, BattlePlayer, GameState, ShadowData
from .resolver import get_available_abilities

LOW_HP = 30
LOW_ENERGY = 20


def scripted_move(shadow: Optional[ShadowData], turn_number: int) -> Optional[str]:
    """The recorded move at this turn index, or None once the transcript runs out."""
    if shadow is None or turn_number < 0 or turn_number >= len(shadow.moves):
        return None
    return shadow.moves[turn_number].ability


def reactive_move(combatant: BattlePlayer) -> str:
    if combatant.hp < LOW_HP:
        return "heal"
    if combatant.energy < LOW_ENERGY:
        return "defend"
    return "basic_attack"


def choose_move(state: GameState) -> str:
    """
    Pick the Shadow's reply for the current turn.

    The transcript cursor is the match turn number, so no AI state is stored.
    Falls back to the reactive heuristic when the script is exhausted or no
    longer playable, and to the first available ability after that.
    """
    shadow = state.player(PLAYER2)  # the Shadow always sits in player2
    available: List[str] = get_available_abilities(shadow)

    move = scripted_move(state.shadow_data, state.turn_number)
    if move in available:
        return move
    move = reactive_move(shadow)
    if move in available:
        return move
    return available[0]


def record_shadow(
    combatant: BattlePlayer,
    rank_points: int,
    result: str,
    recorded_at: Optional[float] = None,
) -> ShadowData:
    moves = tuple(
        BattleMove(
            turn=idx + 1,
            player=PLAYER1,
            ability=move.ability,
            timestamp=move.timestamp,
            damage=move.damage,
        )
        for idx, move in enumerate(combatant.moves)
    )
    return ShadowData(
        original_username=combatant.username,
        recorded_at=time.time() if recorded_at is None else recorded_at,
        original_character=combatant.character,
        original_rank=rank_points,
        moves=moves,
        battle_result=result,
    )
