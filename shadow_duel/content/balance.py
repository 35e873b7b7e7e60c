# shadow_duel/content/balance.py
GAME_CONFIG = {
    "turn_time_limit": 10,
    "timeout_hp_penalty": 5,
    "battle_max_turns": 10,
    "timeout_lockout_seconds": 1.0,
    "xp_per_win": 50,
    "xp_per_loss": 20,
    "xp_per_draw": 30,
    "xp_per_level": 100,
    "coins_per_win": 100,
    "coins_per_loss": 25,
    "coins_per_draw": 75,
    "starting_coins": 500,
    "rank_points_win": 25,
    "rank_points_loss": -15,
}

TTLS = {
    "active_game": 300,
    "waiting_game": 600,
    "finished_game": 30,
    "invitation": 600,
    "declined_invitation": 60,
    "battle_active": 300,
    "presence": 300,
}

ABILITY_EFFECTS = {
    "rest_energy": 15,
    "rest_hp_cost": 5,
    "heal_amount": 30,
    "drain_amount": 20,
    "berserk_self_damage": 20,
    "poison_turns": 3,
    "poison_damage": 10,
    "sacrifice_hp_cost": 40,
    "defense_multiplier": 0.5,
    "berserk_multiplier": 2,
    "counter_ratio": 0.3,
}

ABILITY_UNLOCK_LEVELS = {
    "power_strike": 3,
    "energy_drain": 5,
    "shield_break": 7,
    "berserk": 10,
    "poison": 12,
    "counter": 15,
    "ultimate": 20,
    "sacrifice": 25,
}

MATCHMAKING = {
    "live_rank_window": 50,
    "shadow_rank_window": 100,
    "shadow_recent_seconds": 86400,
    "max_shadows": 100,
    "online_window_seconds": 300,
    "online_list_window_seconds": 600,
    "max_online_list": 100,
}
