# shadow_duel/state.py
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

from .config import ArenaConfig
from .content.balance import GAME_CONFIG, MATCHMAKING
from .content.characters import STARTER_ABILITIES, STARTER_CHARACTERS
from .engine.models import GameState, MatchStatus, PlayerProfile, ShadowData
from .errors import ArenaError, InvariantViolation
from .progression import level_info
from .store import StateStore

logger = logging.getLogger(__name__)

LEADERBOARD_TYPES = ("global", "weekly", "monthly")
LEADERBOARD_SIZE = 100


def game_key(game_id: str) -> str:
    return f"game:{game_id}"


def best_effort(label: str, fn: Callable[[], Any], attempts: int = 2) -> Any:
    """Run a non-critical store side effect, retrying once; failures are logged, not raised."""
    for attempt in range(1, attempts + 1):
        try:
            return fn()
        except ArenaError as exc:
            if not exc.is_retryable or attempt == attempts:
                logger.warning("%s failed (attempt %d/%d): %s", label, attempt, attempts, exc)
                return None
    return None


class ArenaState:
    """Everything the arena keeps between requests, on top of a StateStore."""

    def __init__(self, store: StateStore, config: ArenaConfig, clock: Callable[[], float] = time.time) -> None:
        self.store = store
        self.config = config
        self.clock = clock

    # --- matches -----------------------------------------------------------

    def get_game(self, game_id: str) -> Optional[GameState]:
        data = self.store.get(game_key(game_id))
        if data is None:
            return None
        return GameState.from_dict(data)

    def save_game(self, state: GameState, ttl: Optional[int] = None) -> None:
        if ttl is None:
            if state.status == MatchStatus.WAITING:
                ttl = self.config.waiting_game_ttl
            elif state.status == MatchStatus.FINISHED:
                ttl = self.config.finished_game_ttl
            else:
                ttl = self.config.active_game_ttl
        self.store.put(game_key(state.game_id), state.to_dict(), ttl)

    def delete_game(self, game_id: str) -> None:
        self.store.delete(game_key(game_id))

    # --- invitations & notifications --------------------------------------

    def create_invitation(self, invitee_id: str, game_id: str, inviter_username: str, role: str) -> None:
        invitation = {
            "game_id": game_id,
            "player_role": role,
            "inviter_username": inviter_username,
            "timestamp": self.clock(),
            "type": "battle_invitation",
            "status": "pending",
        }
        self.store.put(f"invitation:{invitee_id}", invitation, self.config.invitation_ttl)

    def get_invitation(self, user_id: str) -> Optional[Dict[str, Any]]:
        invitation = self.store.get(f"invitation:{user_id}")
        if not invitation or invitation.get("status") != "pending":
            return None
        return {
            "game_id": invitation["game_id"],
            "player_role": invitation["player_role"],
            "inviter_username": invitation["inviter_username"],
        }

    def _set_invitation_status(self, user_id: str, status: str, ttl: int) -> None:
        invitation = self.store.get(f"invitation:{user_id}")
        if invitation:
            invitation["status"] = status
            self.store.put(f"invitation:{user_id}", invitation, ttl)

    def accept_invitation(self, user_id: str) -> None:
        self._set_invitation_status(user_id, "accepted", self.config.invitation_ttl)

    def decline_invitation(self, user_id: str) -> None:
        self._set_invitation_status(user_id, "declined", self.config.declined_invitation_ttl)

    def clear_invitation(self, user_id: str) -> None:
        self.store.delete(f"invitation:{user_id}")

    def notify_battle_active(self, user_id: str, game_id: str) -> None:
        notice = {"type": "battle_active", "game_id": game_id, "timestamp": self.clock()}
        self.store.put(f"battle_active:{user_id}", notice, self.config.battle_active_ttl)

    def pop_battle_active(self, user_id: str) -> Optional[Dict[str, Any]]:
        """Deliver-and-clear read of the battle-active notice."""
        notice = self.store.get(f"battle_active:{user_id}")
        if not notice or notice.get("type") != "battle_active":
            return None
        self.store.delete(f"battle_active:{user_id}")
        return {"game_id": notice["game_id"]}

    def clear_notifications(self, user_id: str) -> None:
        self.clear_invitation(user_id)
        self.store.delete(f"battle_active:{user_id}")

    def active_battle_for(self, user_id: str) -> Optional[str]:
        invitation = self.get_invitation(user_id)
        if not invitation:
            return None
        state = self.get_game(invitation["game_id"])
        if state is not None and state.status == MatchStatus.ACTIVE:
            return state.game_id
        if state is None or state.status == MatchStatus.FINISHED:
            self.clear_invitation(user_id)
        return None

    # --- presence ----------------------------------------------------------

    def set_online(self, user_id: str) -> None:
        now = self.clock()
        self.store.put(f"player:online:{user_id}", now, self.config.presence_ttl)
        entries = self.store.get("players:online_list") or []
        entries = [e for e in entries if e.get("user_id") != user_id]
        entries.append({"user_id": user_id, "timestamp": now})
        cutoff = now - MATCHMAKING["online_list_window_seconds"]
        entries = [e for e in entries if e["timestamp"] > cutoff][-MATCHMAKING["max_online_list"]:]
        self.store.put("players:online_list", entries)

    def online_players(self) -> List[str]:
        entries = self.store.get("players:online_list") or []
        cutoff = self.clock() - MATCHMAKING["online_window_seconds"]
        return [e["user_id"] for e in entries if e.get("timestamp", 0) > cutoff]

    # --- profiles ----------------------------------------------------------

    def get_profile(self, user_id: str) -> Optional[PlayerProfile]:
        data = self.store.get(f"profile:{user_id}")
        if data is None:
            return None
        return PlayerProfile.from_dict(data)

    def save_profile(self, profile: PlayerProfile) -> None:
        self.store.put(f"profile:{profile.user_id}", profile.to_dict())

    def get_or_create_profile(self, user_id: str, username: str) -> PlayerProfile:
        profile = self.get_profile(user_id)
        if profile is None:
            now = self.clock()
            profile = PlayerProfile(
                user_id=user_id,
                username=username,
                coins=GAME_CONFIG["starting_coins"],
                unlocked_characters=list(STARTER_CHARACTERS),
                unlocked_abilities=list(STARTER_ABILITIES),
                created_at=now,
                last_active=now,
            )
            self.save_profile(profile)
            return profile

        changed = False
        level = level_info(profile.xp)["level"]
        if profile.level != level:
            profile.level = level
            changed = True
        if profile.total_battles != profile.wins + profile.losses:
            profile.total_battles = max(0, profile.wins) + max(0, profile.losses)
            changed = True
        if not profile.unlocked_characters:
            profile.unlocked_characters = list(STARTER_CHARACTERS)
            changed = True
        if not profile.unlocked_abilities:
            profile.unlocked_abilities = list(STARTER_ABILITIES)
            changed = True
        if changed:
            logger.info("Normalized stored profile for %s", profile.username)
            self.save_profile(profile)
        return profile

    # --- shadows -----------------------------------------------------------

    def save_shadow(self, user_id: str, shadow: ShadowData) -> None:
        key = f"shadow:{user_id}:{shadow.recorded_at}"
        self.store.put(key, shadow.to_dict())
        keys = self.store.get("shadows:list") or []
        if key not in keys:
            keys.append(key)
            self.store.put("shadows:list", keys[-MATCHMAKING["max_shadows"]:])

    def get_shadows(self) -> List[ShadowData]:
        shadows: List[ShadowData] = []
        for key in self.store.get("shadows:list") or []:
            data = self.store.get(key)
            if not data:
                continue
            try:
                shadows.append(ShadowData.from_dict(data))
            except (InvariantViolation, KeyError, TypeError, ValueError):
                logger.warning("Skipping unreadable shadow record %s", key)
        return shadows

    # --- counters & leaderboard --------------------------------------------

    def _today(self) -> str:
        return datetime.fromtimestamp(self.clock(), tz=timezone.utc).strftime("%Y-%m-%d")

    def increment_battles_today(self) -> int:
        return self.store.incr(f"stats:battles:{self._today()}")

    def battles_today(self) -> int:
        return int(self.store.get(f"stats:battles:{self._today()}") or 0)

    def update_leaderboard(self, profile: PlayerProfile) -> None:
        entry = {
            "user_id": profile.user_id,
            "username": profile.username,
            "rank_points": profile.rank_points,
            "level": profile.level,
            "wins": profile.wins,
            "losses": profile.losses,
        }
        for board in LEADERBOARD_TYPES:
            entries = [e for e in (self.store.get(f"leaderboard:{board}") or []) if e["user_id"] != profile.user_id]
            entries.append(entry)
            entries.sort(key=lambda e: (-e["rank_points"], -e["level"]))
            self.store.put(f"leaderboard:{board}", entries[:LEADERBOARD_SIZE])

    def get_leaderboard(self, board: str = "global") -> List[Dict[str, Any]]:
        entries = self.store.get(f"leaderboard:{board}") or []
        return [dict(e, rank=i + 1) for i, e in enumerate(entries)]
