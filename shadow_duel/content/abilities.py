# shadow_duel/content/abilities.py
from typing import Any, Dict

from ..errors import InvariantViolation

ABILITIES: Dict[str, Dict[str, Any]] = {
    "basic_attack": {
        "name": "Basic Attack",
        "description": "A reliable strike.",
        "damage": 20,
        "cost": {"energy": 10},
        "cooldown": 0,
        "category": "attack",
    },
    "defend": {
        "name": "Defend",
        "description": "Halve incoming damage until your next turn.",
        "damage": 0,
        "cost": {"energy": 15},
        "cooldown": 0,
        "category": "defense",
    },
    "fireball": {
        "name": "Fireball",
        "description": "Hurl a ball of flame.",
        "damage": 30,
        "cost": {"energy": 20},
        "cooldown": 1,
        "category": "attack",
    },
    "heal": {
        "name": "Heal",
        "description": "Restore 30 HP.",
        "damage": 0,
        "cost": {"energy": 25},
        "cooldown": 2,
        "category": "support",
    },
    "rest": {
        "name": "Rest",
        "description": "Recover 15 energy at the cost of 5 HP.",
        "damage": 0,
        "cost": {"energy": 0},
        "cooldown": 0,
        "category": "support",
    },
    "power_strike": {
        "name": "Power Strike",
        "description": "A heavy blow.",
        "damage": 35,
        "cost": {"energy": 25},
        "cooldown": 2,
        "category": "attack",
    },
    "energy_drain": {
        "name": "Energy Drain",
        "description": "Steal up to 20 energy from the enemy.",
        "damage": 0,
        "cost": {"energy": 10},
        "cooldown": 2,
        "category": "support",
    },
    "shield_break": {
        "name": "Shield Break",
        "description": "Strike that ignores Defend.",
        "damage": 25,
        "cost": {"energy": 20},
        "cooldown": 2,
        "category": "attack",
    },
    "berserk": {
        "name": "Berserk",
        "description": "Double your damage next hit, take 20 damage.",
        "damage": 0,
        "cost": {"energy": 15},
        "cooldown": 3,
        "category": "support",
    },
    "poison": {
        "name": "Poison",
        "description": "Poison the enemy for 10 damage over 3 turns.",
        "damage": 0,
        "cost": {"energy": 20},
        "cooldown": 3,
        "category": "attack",
    },
    "counter": {
        "name": "Counter",
        "description": "Prepare to counter the next attack.",
        "damage": 0,
        "cost": {"energy": 15},
        "cooldown": 2,
        "category": "defense",
    },
    "ultimate": {
        "name": "Ultimate",
        "description": "Devastating finisher. Once per battle.",
        "damage": 60,
        "cost": {"energy": 40},
        "cooldown": 5,
        "category": "attack",
        "once_per_match": True,
    },
    "sacrifice": {
        "name": "Sacrifice",
        "description": "Lose 40 HP to refill your energy.",
        "damage": 0,
        "cost": {"energy": 0},
        "cooldown": 4,
        "category": "support",
    },
}

DAMAGE_ABILITIES = frozenset({"basic_attack", "fireball", "power_strike", "shield_break", "ultimate"})

FALLBACK_ABILITY = "rest"


def is_known_ability(ability_id: str) -> bool:
    return ability_id in ABILITIES


def get_ability(ability_id: str) -> Dict[str, Any]:
    """Catalog lookup. Unknown ids are a programming error, never user input."""
    ability = ABILITIES.get(ability_id)
    if ability is None:
        raise InvariantViolation(f"Unknown ability '{ability_id}'", details={"ability_id": ability_id})
    return dict(ability, id=ability_id)


def energy_cost(ability: Dict[str, Any]) -> int:
    return int((ability.get("cost") or {}).get("energy", 0) or 0)
