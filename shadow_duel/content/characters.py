# shadow_duel/content/characters.py
CHARACTERS = {
    "mage": {
        "name": "Mage",
        "emoji": "🧙",
        "base_hp": 80,
        "base_energy": 60,
        "damage_modifier": 1.1,
        "unlock_level": None,
        "shadow_abilities": ["basic_attack", "fireball", "energy_drain", "ultimate"],
        "description": "Fragile caster with amplified damage.",
    },
    "knight": {
        "name": "Knight",
        "emoji": "🛡️",
        "base_hp": 100,
        "base_energy": 50,
        "damage_modifier": 1.0,
        "unlock_level": None,
        "shadow_abilities": ["basic_attack", "power_strike", "defend", "counter"],
        "description": "Balanced frontline fighter.",
    },
    "ranger": {
        "name": "Ranger",
        "emoji": "🏹",
        "base_hp": 90,
        "base_energy": 55,
        "damage_modifier": 1.0,
        "unlock_level": None,
        "shadow_abilities": ["basic_attack", "shield_break", "heal", "ultimate"],
        "description": "Steady marksman.",
    },
    "assassin": {
        "name": "Assassin",
        "emoji": "🗡️",
        "base_hp": 70,
        "base_energy": 65,
        "damage_modifier": 1.2,
        "unlock_level": 5,
        "shadow_abilities": ["basic_attack", "power_strike", "berserk", "ultimate"],
        "description": "Glass cannon with +20% damage.",
    },
    "tank": {
        "name": "Tank",
        "emoji": "🪨",
        "base_hp": 130,
        "base_energy": 45,
        "damage_modifier": 0.8,
        "unlock_level": 10,
        "shadow_abilities": ["basic_attack", "defend", "counter", "heal"],
        "description": "Huge HP pool, -20% damage.",
    },
    "healer": {
        "name": "Healer",
        "emoji": "✨",
        "base_hp": 95,
        "base_energy": 60,
        "damage_modifier": 1.0,
        "unlock_level": 15,
        "shadow_abilities": ["basic_attack", "heal", "energy_drain", "ultimate"],
        "description": "Outlasts opponents.",
    },
}

DEFAULT_CHARACTER = "knight"
STARTER_CHARACTERS = ["mage", "knight", "ranger"]
STARTER_ABILITIES = ["basic_attack", "defend", "fireball", "heal"]


def character_for(character_id):
    return CHARACTERS.get(character_id or "", CHARACTERS[DEFAULT_CHARACTER])


def is_valid_character(character_id) -> bool:
    return character_id in CHARACTERS


def characters_for_level(level: int):
    return [cid for cid, data in CHARACTERS.items() if (data.get("unlock_level") or 0) <= level]
