# shadow_duel/engine/rules.py
from ..content.characters import CHARACTERS


def clamp(x: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, x))


def archetype_multiplier(character: str) -> float:
    return float(CHARACTERS.get(character, {}).get("damage_modifier", 1.0))


def scale(damage: int, multiplier: float) -> int:
    # truncate after every multiplication
    return int(damage * multiplier)
