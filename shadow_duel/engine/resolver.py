# shadow_duel/engine/resolver.py
"""
Pure combat resolution.

Every entry point takes value inputs and returns new values; arguments are never
mutated, so a caller can retry or replay a resolution from the same inputs.
"""

from __future__ import annotations

import copy
import logging
import time
from typing import Any, Dict, List, Optional, Tuple

from ..content.abilities import (
    ABILITIES,
    DAMAGE_ABILITIES,
    FALLBACK_ABILITY,
    energy_cost,
    get_ability,
)
from ..content.balance import ABILITY_EFFECTS, GAME_CONFIG
from .effects import add_effect, has_effect, prune_expired, tick_durations, tick_poison
from .models import DRAW, PLAYER1, PLAYER2, BattleLogEntry, BattlePlayer, GameState
from .rules import archetype_multiplier, clamp, scale

logger = logging.getLogger(__name__)


def _entry(turn: int, message: str, kind: str) -> BattleLogEntry:
    return BattleLogEntry(turn=turn, message=message, type=kind, timestamp=time.time())


def calculate_damage(
    ability: Dict[str, Any],
    attacker: BattlePlayer,
    defender: BattlePlayer,
    use_bonus: bool = True,
) -> int:
    """
    Damage pipeline: archetype multiplier -> berserk x2 -> defense x0.5,
    each step truncated. Shield Break resets to raw base damage, discarding
    every modifier applied before it.
    """
    base = int(ability.get("damage", 0) or 0)
    damage = scale(base, archetype_multiplier(attacker.character))

    if use_bonus and has_effect(attacker, "berserk"):
        damage = scale(damage, ABILITY_EFFECTS["berserk_multiplier"])

    if has_effect(defender, "defense"):
        damage = scale(damage, ABILITY_EFFECTS["defense_multiplier"])

    if ability.get("id") == "shield_break":
        damage = base

    # counter is read but reflects nothing back to the attacker
    if ability.get("category") == "attack" and has_effect(defender, "counter"):
        logger.debug(
            "%s has counter up; %s would reflect %d",
            defender.username,
            ability.get("id"),
            scale(damage, ABILITY_EFFECTS["counter_ratio"]),
        )

    return max(0, damage)


def apply_ability(
    ability_id: str,
    attacker: BattlePlayer,
    defender: BattlePlayer,
) -> Tuple[BattlePlayer, BattlePlayer, List[BattleLogEntry]]:
    """
    Resolve one ability. Returns (attacker', defender', log entries).

    Affordability is not checked here; callers filter with
    get_available_abilities first.
    """
    ability = get_ability(ability_id)
    a = copy.deepcopy(attacker)
    d = copy.deepcopy(defender)
    turn = len(attacker.moves)
    logs: List[BattleLogEntry] = []

    a.energy = max(0, a.energy - energy_cost(ability))
    logs.append(_entry(turn, f"{a.username} used {ability['name']}!", "action"))

    if ability_id in DAMAGE_ABILITIES:
        damage = calculate_damage(ability, a, d)
        d.hp = max(0, d.hp - damage)
        d.total_damage_taken += damage
        a.total_damage_dealt += damage
        logs.append(_entry(turn, f"{d.username} took {damage} damage!", "damage"))

    elif ability_id == "rest":
        recover = ABILITY_EFFECTS["rest_energy"]
        hp_cost = ABILITY_EFFECTS["rest_hp_cost"]
        a.energy = clamp(a.energy + recover, 0, a.max_energy)
        a.hp = max(0, a.hp - hp_cost)
        logs.append(_entry(turn, f"{a.username} rested: +{recover} energy, -{hp_cost} HP", "status"))

    elif ability_id == "defend":
        add_effect(a, "defense", turns=1)
        logs.append(_entry(turn, f"{a.username} is defending!", "status"))

    elif ability_id == "heal":
        before = a.hp
        a.hp = clamp(a.hp + ABILITY_EFFECTS["heal_amount"], 0, a.max_hp)
        healed = a.hp - before
        logs.append(_entry(turn, f"{a.username} healed {healed} HP!", "heal"))

    elif ability_id == "energy_drain":
        drained = min(ABILITY_EFFECTS["drain_amount"], d.energy)
        d.energy -= drained
        a.energy = clamp(a.energy + drained, 0, a.max_energy)
        logs.append(_entry(turn, f"{a.username} drained {drained} energy from {d.username}!", "action"))

    elif ability_id == "berserk":
        self_damage = ABILITY_EFFECTS["berserk_self_damage"]
        add_effect(a, "berserk", turns=1)
        a.hp = max(0, a.hp - self_damage)
        logs.append(_entry(turn, f"{a.username} entered berserk mode! (took {self_damage} self damage)", "status"))

    elif ability_id == "poison":
        add_effect(d, "poison", turns=ABILITY_EFFECTS["poison_turns"], value=ABILITY_EFFECTS["poison_damage"])
        logs.append(_entry(turn, f"{d.username} is now poisoned!", "status"))

    elif ability_id == "counter":
        add_effect(a, "counter", turns=1)
        logs.append(_entry(turn, f"{a.username} is ready to counter!", "status"))

    elif ability_id == "sacrifice":
        a.hp = max(0, a.hp - ABILITY_EFFECTS["sacrifice_hp_cost"])
        a.energy = a.max_energy
        logs.append(_entry(turn, f"{a.username} sacrificed HP for full energy!", "action"))

    poisoned = tick_poison(d, a)
    if poisoned:
        logs.append(_entry(turn, f"{d.username} took {poisoned} poison damage!", "damage"))

    # only the attacker is pruned inline; the defender waits for process_turn_end
    a.status_effects = prune_expired(a.status_effects)

    return a, d, logs


def process_turn_end(combatant: BattlePlayer) -> BattlePlayer:
    """End-of-turn status tick. Energy does not regenerate."""
    updated = copy.deepcopy(combatant)
    updated.status_effects = tick_durations(updated.status_effects)
    return updated


def is_battle_over(state: GameState, max_turns: Optional[int] = None) -> Optional[str]:
    """Returns 'player1', 'player2', 'draw' or None while the battle continues."""
    limit = GAME_CONFIG["battle_max_turns"] if max_turns is None else max_turns
    p1, p2 = state.player1, state.player2

    if p1.hp <= 0 and p2 is not None and p2.hp <= 0:
        return DRAW
    if p1.hp <= 0:
        return PLAYER2
    if p2 is not None and p2.hp <= 0:
        return PLAYER1

    if state.turn_number >= limit:
        logger.info(
            "Turn limit reached: %d/%d turns. Player1 HP: %d, Player2 HP: %d",
            state.turn_number,
            limit,
            p1.hp,
            p2.hp if p2 else 0,
        )
        if p2 is None:
            return PLAYER1
        if p1.hp > p2.hp:
            return PLAYER1
        if p2.hp > p1.hp:
            return PLAYER2
        return DRAW

    return None


def turns_since_last_use(combatant: BattlePlayer, ability_id: str) -> Optional[int]:
    for index in range(len(combatant.moves) - 1, -1, -1):
        if combatant.moves[index].ability == ability_id:
            return (len(combatant.moves) - 1) - index
    return None


def is_on_cooldown(combatant: BattlePlayer, ability_id: str, ability: Dict[str, Any]) -> bool:
    cooldown = int(ability.get("cooldown", 0) or 0)
    if cooldown <= 0:
        return False
    since = turns_since_last_use(combatant, ability_id)
    return since is not None and since < cooldown


def get_available_abilities(combatant: BattlePlayer) -> List[str]:
    available: List[str] = []
    for ability_id in combatant.abilities:
        ability = ABILITIES.get(ability_id)
        if not ability:
            continue
        if combatant.energy < energy_cost(ability):
            continue
        if is_on_cooldown(combatant, ability_id, ability):
            continue
        if ability.get("once_per_match") and any(m.ability == ability_id for m in combatant.moves):
            continue
        available.append(ability_id)

    if not available:
        return [FALLBACK_ABILITY]
    return available
