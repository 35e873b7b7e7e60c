# shadow_duel/engine/effects.py
from __future__ import annotations

from typing import List, Optional

from .models import BattlePlayer, StatusEffect


def get_effect(target: BattlePlayer, effect_type: str) -> Optional[StatusEffect]:
    """First active effect of a type (duplicates may coexist)."""
    for effect in target.status_effects:
        if effect.type == effect_type and effect.turns > 0:
            return effect
    return None


def has_effect(target: BattlePlayer, effect_type: str) -> bool:
    return get_effect(target, effect_type) is not None


def add_effect(target: BattlePlayer, effect_type: str, turns: int, value: Optional[int] = None) -> StatusEffect:
    effect = StatusEffect(type=effect_type, turns=turns, value=value)
    target.status_effects.append(effect)
    return effect


def prune_expired(effects: List[StatusEffect]) -> List[StatusEffect]:
    return [e for e in effects if e.turns > 0]


def tick_durations(effects: List[StatusEffect]) -> List[StatusEffect]:
    """Decrement every effect by one turn; drop expired ones."""
    new_list: List[StatusEffect] = []
    for e in effects:
        turns = e.turns - 1
        if turns > 0:
            new_list.append(StatusEffect(type=e.type, turns=turns, value=e.value))
    return new_list


def tick_poison(defender: BattlePlayer, attacker: BattlePlayer) -> int:
    """Apply one poison tick to the defender and credit the attacker. Returns damage dealt."""
    poison = get_effect(defender, "poison")
    if poison is None or defender.hp <= 0:
        return 0
    damage = int(poison.value or 10)
    defender.hp = max(0, defender.hp - damage)
    defender.total_damage_taken += damage
    attacker.total_damage_dealt += damage

    poison.turns -= 1
    if poison.turns <= 0:
        defender.status_effects = [e for e in defender.status_effects if e.type != "poison"]
    return damage
