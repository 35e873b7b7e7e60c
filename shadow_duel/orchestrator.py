# shadow_duel/orchestrator.py
"""
Request-level match lifecycle.

Every call reloads the match from the store, mutates a local GameState and
writes it back; no match object outlives a request. The only process state is
the TurnClock's timer map.
"""

from __future__ import annotations

import logging
import random
import time
import uuid
from typing import Any, Callable, Dict, List, Optional

from .clock import TurnClock
from .config import ArenaConfig
from .content.abilities import is_known_ability
from .content.characters import is_valid_character
from .engine import resolver, shadow_ai
from .engine.models import (
    DRAW,
    MODES,
    PLAYER1,
    PLAYER2,
    BattleLogEntry,
    BattleMove,
    GameState,
    MatchStatus,
    PlayerProfile,
    other_side,
)
from .errors import (
    ArenaError,
    IllegalMoveError,
    InvalidRequestError,
    MatchNotActiveError,
    NotAuthorizedError,
    NotFoundError,
    NotYourTurnError,
)
from .matchmaking import MatchmakingResult, combatant_from_profile, find_opponent, training_shadow
from .progression import award_coins, award_outcome, level_info, rank_tier, update_rank_points
from .state import ArenaState, best_effort

logger = logging.getLogger(__name__)

Listener = Callable[[str, Dict[str, Any]], Any]


def generate_game_id(now: float) -> str:
    return f"game_{int(now * 1000)}_{uuid.uuid4().hex[:9]}"


class MatchOrchestrator:
    def __init__(
        self,
        state: ArenaState,
        clock: TurnClock,
        config: Optional[ArenaConfig] = None,
        now: Callable[[], float] = time.time,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.state = state
        self.clock = clock
        self.config = config or state.config
        self.now = now
        self.rng = rng or random.Random()
        self._listeners: List[Listener] = []
        clock.bind(self.timeout_tick)

    def add_listener(self, listener: Listener) -> None:
        """Called with (game_id, payload) whenever a match changes outside a client request."""
        self._listeners.append(listener)

    def _emit(self, game_id: str, payload: Dict[str, Any]) -> None:
        for listener in self._listeners:
            try:
                listener(game_id, payload)
            except Exception:
                logger.exception("Match listener failed for %s", game_id)

    # --- helpers -----------------------------------------------------------

    def _load(self, game_id: str) -> GameState:
        state = self.state.get_game(game_id)
        if state is None:
            raise NotFoundError("Game not found", details={"game_id": game_id})
        return state

    @staticmethod
    def _role(state: GameState, user_id: str) -> str:
        role = state.role_of(user_id)
        if role is None:
            raise NotAuthorizedError("Player not found in this game", details={"game_id": state.game_id})
        return role

    def _is_over(self, state: GameState) -> Optional[str]:
        return resolver.is_battle_over(state, self.config.battle_max_turns)

    @staticmethod
    def _snapshot(state: GameState) -> Dict[str, Any]:
        return state.to_dict()

    # --- players -----------------------------------------------------------

    def get_player(self, user_id: str, username: str) -> Dict[str, Any]:
        profile = self.state.get_or_create_profile(user_id, username)
        best_effort("mark online", lambda: self.state.set_online(user_id))
        return {
            "type": "player",
            "player": profile.to_dict(),
            "rank_tier": rank_tier(profile.rank_points),
            "level_progress": level_info(profile.xp),
        }

    def heartbeat(self, user_id: str) -> Dict[str, Any]:
        best_effort("mark online", lambda: self.state.set_online(user_id))
        return {
            "type": "heartbeat",
            "battle_invitation": self.state.get_invitation(user_id),
            "active_battle_id": self.state.active_battle_for(user_id),
            "battle_active_notification": self.state.pop_battle_active(user_id),
        }

    def get_stats(self) -> Dict[str, Any]:
        online = best_effort("count online", self.state.online_players) or []
        battles = best_effort("read battle counter", self.state.battles_today) or 0
        return {"type": "stats", "online_count": max(1, len(online)), "battles_today": battles}

    def get_leaderboard(self, board: str = "global") -> Dict[str, Any]:
        return {"type": "leaderboard", "entries": self.state.get_leaderboard(board)}

    def active_timeouts(self) -> List[str]:
        return self.clock.active_timers()

    # --- battle start / invitations ----------------------------------------

    def _online_profiles(self, requester_id: str) -> List[PlayerProfile]:
        ids = best_effort("list online players", self.state.online_players) or []
        profiles = []
        for user_id in ids:
            if user_id == requester_id:
                continue
            profile = best_effort(f"load profile {user_id}", lambda uid=user_id: self.state.get_profile(uid))
            if profile is not None:
                profiles.append(profile)
        return profiles

    def start_battle(self, requester: str, mode: str, character: str) -> Dict[str, Any]:
        if mode not in MODES:
            raise InvalidRequestError(f"Unknown mode '{mode}'", details={"mode": mode})
        if not is_valid_character(character):
            raise InvalidRequestError(f"Unknown character '{character}'", details={"character": character})

        profile = self.state.get_profile(requester)
        if profile is None:
            raise NotFoundError("Player not found", details={"user_id": requester})
        best_effort("mark online", lambda: self.state.set_online(requester))

        online = self._online_profiles(requester)
        try:
            match = find_opponent(profile, mode, online, self.state.get_shadows, rng=self.rng, now=self.now())
        except ArenaError as exc:
            logger.warning("Matchmaking failed for %s, using training shadow: %s", requester, exc)
            match = MatchmakingResult(training_shadow(self.rng), True)

        now = self.now()
        state = GameState(
            game_id=generate_game_id(now),
            mode=mode,
            player1=combatant_from_profile(profile, character),
            player2=match.opponent,
            is_shadow_match=match.is_shadow,
            shadow_data=match.shadow_data,
            current_turn=PLAYER1,
            created_at=now,
            updated_at=now,
        )

        if not match.is_shadow:
            self.state.save_game(state)
            self.state.create_invitation(match.opponent.user_id, state.game_id, state.player1.username, PLAYER2)
            logger.info("PvP invitation: %s invites %s (%s)", state.player1.username, match.opponent.username, state.game_id)
            return {
                "type": "battle_started",
                "game_id": state.game_id,
                "opponent": match.opponent.to_dict(),
                "is_shadow": False,
                "message": f"Battle invitation sent to {match.opponent.username}!",
            }

        state.activate(now)
        self.state.save_game(state)
        self.clock.arm(state.game_id)
        logger.info("Shadow battle started: %s vs %s (%s)", state.player1.username, match.opponent.username, state.game_id)
        return {
            "type": "battle_started",
            "game_id": state.game_id,
            "opponent": match.opponent.to_dict(),
            "is_shadow": True,
            "game_state": self._snapshot(state),
        }

    def accept_invitation(self, game_id: str, requester: str) -> Dict[str, Any]:
        state = self.state.get_game(game_id)
        if state is None:
            raise NotFoundError("Battle invitation expired", details={"game_id": game_id})
        role = self._role(state, requester)
        if role != PLAYER2:
            raise NotAuthorizedError("Only the invited player can accept", details={"game_id": game_id})
        if state.status != MatchStatus.WAITING:
            raise MatchNotActiveError(f"Battle is already {state.status.value}", details={"status": state.status.value})

        best_effort("accept invitation", lambda: self.state.accept_invitation(requester))
        state.activate(self.now())
        self.state.save_game(state)
        self.clock.arm(game_id)

        best_effort("clear invitation", lambda: self.state.clear_invitation(requester))
        for user_id in (state.player1.user_id, state.player(PLAYER2).user_id):
            best_effort("notify battle active", lambda uid=user_id: self.state.notify_battle_active(uid, game_id))
        logger.info("Battle accepted: %s vs %s (%s)", state.player1.username, state.player(PLAYER2).username, game_id)
        return {
            "type": "battle_accepted",
            "game_id": game_id,
            "game_state": self._snapshot(state),
            "player_role": role,
        }

    def decline_invitation(self, game_id: str, requester: str) -> Dict[str, Any]:
        state = self.state.get_game(game_id)
        if state is not None:
            self._role(state, requester)
            if state.status != MatchStatus.WAITING:
                raise MatchNotActiveError(f"Battle is already {state.status.value}", details={"status": state.status.value})
        self.state.decline_invitation(requester)
        self.state.delete_game(game_id)
        logger.info("Battle %s declined by %s", game_id, requester)
        return {"type": "battle_declined", "message": "Battle invitation declined"}

    def get_match_state(self, game_id: str, requester: str) -> Dict[str, Any]:
        state = self._load(game_id)
        role = self._role(state, requester)
        # a timer lost to a failed write comes back on the next successful read
        if state.status == MatchStatus.ACTIVE and not self.clock.is_armed(game_id):
            remaining = state.require_turn_started_at() + self.config.turn_time_limit - self.now()
            self.clock.arm(game_id, delay=max(0.0, remaining))
        return {"type": "battle_state", "game_state": self._snapshot(state), "player_role": role}

    # --- moves -------------------------------------------------------------

    def _act(self, state: GameState, side: str, ability_id: str) -> None:
        """Record and resolve one move for ``side``, writing results back into ``state``."""
        attacker = state.player(side)
        defender = state.player(other_side(side))
        attacker.moves.append(
            BattleMove(turn=state.turn_number + 1, player=side, ability=ability_id, timestamp=self.now())
        )
        dealt_before = attacker.total_damage_dealt
        attacker_new, defender_new, log = resolver.apply_ability(ability_id, attacker, defender)
        attacker_new.moves[-1].damage = attacker_new.total_damage_dealt - dealt_before
        state.set_player(side, attacker_new)
        state.set_player(other_side(side), defender_new)
        state.battle_log.extend(log)

    def submit_move(self, game_id: str, ability_id: str, requester: str) -> Dict[str, Any]:
        state = self._load(game_id)
        role = self._role(state, requester)
        if state.status != MatchStatus.ACTIVE:
            raise MatchNotActiveError(f"Battle is {state.status.value}", details={"status": state.status.value})
        if state.current_turn != role:
            raise NotYourTurnError(state.current_turn, role)

        # a timeout penalty may already have ended the battle
        pre_winner = self._is_over(state)
        if pre_winner:
            return self.finalize_battle(game_id, state, pre_winner)

        combatant = state.player(role)
        available = resolver.get_available_abilities(combatant)
        if not is_known_ability(ability_id) or ability_id not in available:
            raise IllegalMoveError(
                f"Ability '{ability_id}' is not available",
                details={"ability": ability_id, "available": available},
            )

        self.clock.disarm(game_id)
        logger.debug("Move %s by %s in %s", ability_id, role, game_id)
        self._act(state, role, ability_id)

        winner = self._is_over(state)
        if winner:
            return self.finalize_battle(game_id, state, winner)

        if state.is_shadow_match:
            shadow_move = shadow_ai.choose_move(state)
            self._act(state, PLAYER2, shadow_move)
            state.player1 = resolver.process_turn_end(state.player1)
            state.player2 = resolver.process_turn_end(state.player(PLAYER2))
            winner = self._is_over(state)
            if winner:
                return self.finalize_battle(game_id, state, winner)
        else:
            # the side about to move ages its effects once per opposing move
            waiting = other_side(role)
            state.set_player(waiting, resolver.process_turn_end(state.player(waiting)))
            state.current_turn = waiting

        now = self.now()
        state.turn_number += 1
        state.updated_at = now
        state.turn_started_at = now

        winner = self._is_over(state)
        if winner:
            logger.info("Battle %s ended on turn limit (%d). Winner: %s", game_id, state.turn_number, winner)
            return self.finalize_battle(game_id, state, winner)

        self.state.save_game(state)
        self.clock.arm(game_id)
        return {"type": "move_submitted", "current_state": self._snapshot(state)}

    # --- timeouts ----------------------------------------------------------

    def timeout_tick(self, game_id: str, requester: Optional[str] = None) -> Dict[str, Any]:
        """
        Penalize the side to move if its turn timer has run out.

        Safe to call from both the server timer and client polling: early calls
        are no-ops and overlapping calls collapse through the clock's guard.
        A requester, when given, must be one of the combatants.
        """
        state = self.state.get_game(game_id)
        if state is not None and requester is not None:
            self._role(state, requester)
        if state is None or state.status != MatchStatus.ACTIVE:
            return {"type": "no_op", "current_state": self._snapshot(state) if state else None}

        now = self.now()
        limit = self.config.turn_time_limit
        elapsed = max(0.0, now - state.require_turn_started_at())
        if elapsed < limit:
            return {"type": "tick", "current_state": self._snapshot(state), "remaining": limit - elapsed}

        if not self.clock.claim(game_id):
            logger.debug("Timeout for %s already being handled", game_id)
            return {"type": "no_op", "current_state": self._snapshot(state)}

        penalty = self.config.timeout_hp_penalty
        side = state.current_turn
        combatant = state.player(side)
        combatant.hp = max(0, combatant.hp - penalty)
        state.battle_log.append(
            BattleLogEntry(
                turn=state.turn_number + 1,
                message=f"⏰ {combatant.username} took too long (-{penalty} HP)",
                type="status",
                timestamp=now,
            )
        )
        state.turn_started_at = now
        state.updated_at = now
        logger.info("Timeout penalty for %s in %s: -%d HP", combatant.username, game_id, penalty)

        winner = self._is_over(state)
        if winner:
            result = self.finalize_battle(game_id, state, winner)
            self._emit(game_id, result)
            return result

        try:
            self.state.save_game(state)
        except ArenaError:
            logger.exception("Could not persist timeout penalty for %s", game_id)
            self.clock.arm(game_id)
            raise
        self.clock.arm(game_id)

        result = {
            "type": "timeout_penalty",
            "current_state": self._snapshot(state),
            "penalty_applied": penalty,
            "penalized_player": combatant.username,
        }
        self._emit(game_id, result)
        return result

    # --- finalization ------------------------------------------------------

    def _settle(self, state: GameState, side: str, winner: str) -> None:
        combatant = state.player(side)
        profile = self.state.get_profile(combatant.user_id)
        if profile is None:
            logger.warning("No profile for %s; skipping progression", combatant.user_id)
            return
        won = winner == side
        is_draw = winner == DRAW

        updated, leveled_up = award_outcome(profile, won, is_draw, now=self.now())
        coins = award_coins(won, is_draw)
        updated.coins += coins
        updated.rank_points, rank_delta = update_rank_points(profile, won, is_draw, ranked=state.mode == "ranked")
        self.state.save_profile(updated)
        logger.info(
            "%s progression: level %d, coins +%d, rank points %+d",
            updated.username,
            updated.level,
            coins,
            rank_delta,
        )
        if leveled_up:
            logger.info("%s leveled up to %d", updated.username, updated.level)

        best_effort("update leaderboard", lambda: self.state.update_leaderboard(updated))
        result = "draw" if is_draw else ("win" if won else "loss")
        shadow = shadow_ai.record_shadow(combatant, profile.rank_points, result, recorded_at=self.now())
        best_effort("save shadow", lambda: self.state.save_shadow(combatant.user_id, shadow))

    def finalize_battle(self, game_id: str, state: GameState, winner: str) -> Dict[str, Any]:
        state.finish(winner, self.now())
        self.clock.disarm(game_id)
        self.state.save_game(state, ttl=self.config.finished_game_ttl)

        sides = [PLAYER1] if state.is_shadow_match else [PLAYER1, PLAYER2]
        for side in sides:
            try:
                self._settle(state, side, winner)
            except ArenaError as exc:
                logger.warning("Progression for %s in %s failed: %s", side, game_id, exc)

        for combatant in (state.player1, state.player2):
            if combatant is not None:
                best_effort("clear notifications", lambda uid=combatant.user_id: self.state.clear_notifications(uid))
        best_effort("increment battles today", self.state.increment_battles_today)

        self.clock.forget(game_id)
        self.clock.call_later(
            self.config.finished_game_ttl,
            lambda: best_effort("delete finished game", lambda: self.state.delete_game(game_id)),
        )
        logger.info(
            "Battle %s finished: %s vs %s, winner %s",
            game_id,
            state.player1.username,
            state.player2.username if state.player2 else "?",
            winner,
        )
        return {
            "type": "battle_complete",
            "winner": winner,
            "current_state": self._snapshot(state),
            "stats": {
                "total_damage_dealt": state.player1.total_damage_dealt,
                "total_damage_taken": state.player1.total_damage_taken,
                "turns_survived": state.turn_number,
                "energy_efficiency": 0,
            },
        }
