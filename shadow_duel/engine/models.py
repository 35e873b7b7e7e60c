# shadow_duel/engine/models.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from ..errors import InvariantViolation

PLAYER1 = "player1"
PLAYER2 = "player2"
DRAW = "draw"
SIDES = (PLAYER1, PLAYER2)
MODES = ("quick_match", "ranked")


class MatchStatus(str, Enum):
    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


def other_side(side: str) -> str:
    return PLAYER2 if side == PLAYER1 else PLAYER1


@dataclass
class StatusEffect:
    type: str                              # poison | berserk | counter | defense
    turns: int
    value: Optional[int] = None            # poison tick damage

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StatusEffect":
        return cls(type=data["type"], turns=int(data["turns"]), value=data.get("value"))


@dataclass
class BattleMove:
    turn: int
    player: str
    ability: str
    timestamp: float
    damage: Optional[int] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BattleMove":
        return cls(
            turn=int(data["turn"]),
            player=data.get("player", PLAYER1),
            ability=data["ability"],
            timestamp=float(data.get("timestamp", 0) or 0),
            damage=data.get("damage"),
        )


@dataclass
class BattleLogEntry:
    turn: int
    message: str
    type: str                              # action | damage | heal | status
    timestamp: float

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BattleLogEntry":
        return cls(
            turn=int(data["turn"]),
            message=data["message"],
            type=data["type"],
            timestamp=float(data.get("timestamp", 0) or 0),
        )


@dataclass
class BattlePlayer:
    user_id: str
    username: str
    character: str
    hp: int
    max_hp: int
    energy: int
    max_energy: int
    status_effects: List[StatusEffect] = field(default_factory=list)
    abilities: List[str] = field(default_factory=list)
    moves: List[BattleMove] = field(default_factory=list)
    total_damage_dealt: int = 0
    total_damage_taken: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BattlePlayer":
        try:
            return cls(
                user_id=data["user_id"],
                username=data.get("username") or "Player",
                character=data["character"],
                hp=int(data["hp"]),
                max_hp=int(data["max_hp"]),
                energy=int(data["energy"]),
                max_energy=int(data["max_energy"]),
                status_effects=[StatusEffect.from_dict(e) for e in data.get("status_effects", [])],
                abilities=list(data.get("abilities", [])),
                moves=[BattleMove.from_dict(m) for m in data.get("moves", [])],
                total_damage_dealt=int(data.get("total_damage_dealt", 0) or 0),
                total_damage_taken=int(data.get("total_damage_taken", 0) or 0),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvariantViolation(f"Malformed combatant record: {exc}") from exc


@dataclass(frozen=True)
class ShadowData:
    """Read-only recording of a past combatant, replayed as a scripted opponent."""

    original_username: str
    recorded_at: float
    original_character: str
    original_rank: int
    moves: Tuple[BattleMove, ...] = ()
    battle_result: str = "loss"            # win | loss | draw

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["moves"] = [asdict(m) for m in self.moves]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ShadowData":
        return cls(
            original_username=data["original_username"],
            recorded_at=float(data["recorded_at"]),
            original_character=data["original_character"],
            original_rank=int(data.get("original_rank", 0) or 0),
            moves=tuple(BattleMove.from_dict(m) for m in data.get("moves", [])),
            battle_result=data.get("battle_result", "loss"),
        )


@dataclass
class GameState:
    game_id: str
    mode: str                              # quick_match | ranked
    player1: BattlePlayer
    player2: Optional[BattlePlayer]
    is_shadow_match: bool = False
    shadow_data: Optional[ShadowData] = None
    current_turn: str = PLAYER1
    turn_number: int = 0
    status: MatchStatus = MatchStatus.WAITING
    winner: Optional[str] = None           # player1 | player2 | draw
    turn_started_at: Optional[float] = None  # only set once the match is active
    created_at: float = 0.0
    updated_at: float = 0.0
    battle_log: List[BattleLogEntry] = field(default_factory=list)

    def player(self, side: str) -> BattlePlayer:
        combatant = self.player1 if side == PLAYER1 else self.player2
        if combatant is None:
            raise InvariantViolation(f"Match {self.game_id} has no {side}")
        return combatant

    def set_player(self, side: str, combatant: BattlePlayer) -> None:
        if side == PLAYER1:
            self.player1 = combatant
        else:
            self.player2 = combatant

    def role_of(self, user_id: str) -> Optional[str]:
        if self.player1.user_id == user_id:
            return PLAYER1
        if self.player2 is not None and self.player2.user_id == user_id:
            return PLAYER2
        return None

    def activate(self, now: float) -> None:
        if self.status != MatchStatus.WAITING:
            raise InvariantViolation(f"Cannot activate match {self.game_id} from {self.status.value}")
        if self.player2 is None:
            raise InvariantViolation(f"Cannot activate match {self.game_id} without an opponent")
        self.status = MatchStatus.ACTIVE
        self.turn_started_at = now
        self.updated_at = now

    def finish(self, winner: str, now: float) -> None:
        if self.status != MatchStatus.ACTIVE:
            raise InvariantViolation(f"Cannot finish match {self.game_id} from {self.status.value}")
        self.status = MatchStatus.FINISHED
        self.winner = winner
        self.updated_at = now

    def require_turn_started_at(self) -> float:
        if self.status != MatchStatus.ACTIVE or self.turn_started_at is None:
            raise InvariantViolation(f"Match {self.game_id} has no running turn")
        return self.turn_started_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            "game_id": self.game_id,
            "mode": self.mode,
            "player1": self.player1.to_dict(),
            "player2": self.player2.to_dict() if self.player2 else None,
            "is_shadow_match": self.is_shadow_match,
            "shadow_data": self.shadow_data.to_dict() if self.shadow_data else None,
            "current_turn": self.current_turn,
            "turn_number": self.turn_number,
            "status": self.status.value,
            "winner": self.winner,
            "turn_started_at": self.turn_started_at,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "battle_log": [asdict(entry) for entry in self.battle_log],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameState":
        try:
            status = MatchStatus(data.get("status", MatchStatus.WAITING.value))
            player2_data = data.get("player2")
            shadow_data = data.get("shadow_data")
            state = cls(
                game_id=data["game_id"],
                mode=data.get("mode", "quick_match"),
                player1=BattlePlayer.from_dict(data["player1"]),
                player2=BattlePlayer.from_dict(player2_data) if player2_data else None,
                is_shadow_match=bool(data.get("is_shadow_match", False)),
                shadow_data=ShadowData.from_dict(shadow_data) if shadow_data else None,
                current_turn=data.get("current_turn", PLAYER1),
                turn_number=int(data.get("turn_number", 0) or 0),
                status=status,
                winner=data.get("winner"),
                turn_started_at=data.get("turn_started_at"),
                created_at=float(data.get("created_at", 0) or 0),
                updated_at=float(data.get("updated_at", 0) or 0),
                battle_log=[BattleLogEntry.from_dict(e) for e in data.get("battle_log", [])],
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise InvariantViolation(f"Malformed match record: {exc}") from exc

        if state.current_turn not in SIDES:
            raise InvariantViolation(f"Match {state.game_id} has invalid turn owner {state.current_turn!r}")
        if state.status == MatchStatus.ACTIVE:
            if state.player2 is None or state.turn_started_at is None:
                raise InvariantViolation(f"Active match {state.game_id} is missing an opponent or turn start")
        return state


@dataclass
class PlayerProfile:
    user_id: str
    username: str
    level: int = 1
    xp: int = 0
    rank_points: int = 0
    total_battles: int = 0
    wins: int = 0
    losses: int = 0
    current_streak: int = 0
    best_streak: int = 0
    coins: int = 0
    favorite_character: str = "knight"
    unlocked_characters: List[str] = field(default_factory=list)
    unlocked_abilities: List[str] = field(default_factory=list)
    achievements: List[str] = field(default_factory=list)
    created_at: float = 0.0
    last_active: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PlayerProfile":
        known = {k: v for k, v in data.items() if k in cls.__dataclass_fields__}
        return cls(**known)
