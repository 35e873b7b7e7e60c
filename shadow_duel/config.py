# shadow_duel/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, get_type_hints

from .content.balance import GAME_CONFIG, TTLS

ENV_PREFIX = "SHADOW_DUEL_"
APP_PREFIX = "ARENA_"


@dataclass(frozen=True)
class ArenaConfig:
    turn_time_limit: float = GAME_CONFIG["turn_time_limit"]
    timeout_hp_penalty: int = GAME_CONFIG["timeout_hp_penalty"]
    battle_max_turns: int = GAME_CONFIG["battle_max_turns"]
    timeout_lockout_seconds: float = GAME_CONFIG["timeout_lockout_seconds"]
    active_game_ttl: int = TTLS["active_game"]
    waiting_game_ttl: int = TTLS["waiting_game"]
    finished_game_ttl: int = TTLS["finished_game"]
    invitation_ttl: int = TTLS["invitation"]
    declined_invitation_ttl: int = TTLS["declined_invitation"]
    battle_active_ttl: int = TTLS["battle_active"]
    presence_ttl: int = TTLS["presence"]
    redis_url: Optional[str] = None
    redis_socket_timeout: float = 5.0

    @classmethod
    def load(cls, app_config: Optional[Mapping[str, Any]] = None, environ: Optional[Mapping[str, str]] = None) -> "ArenaConfig":
        """Defaults, then Flask ``ARENA_*`` keys, then ``SHADOW_DUEL_*`` env vars."""
        app_config = app_config or {}
        environ = os.environ if environ is None else environ
        hints = get_type_hints(cls)
        values = {}
        for f in fields(cls):
            key = f.name.upper()
            raw = environ.get(ENV_PREFIX + key, app_config.get(APP_PREFIX + key))
            if key == "REDIS_URL" and raw is None:
                raw = environ.get("REDIS_URL", app_config.get("REDIS_URL"))
            if raw is None:
                continue
            values[f.name] = _coerce(raw, hints[f.name])
        return cls(**values)


def _coerce(raw: Any, kind: Any) -> Any:
    # Optional[str] and other non-scalar fields pass through untouched
    if kind is bool:
        return raw if isinstance(raw, bool) else str(raw).lower() in ("1", "true", "yes", "on")
    if kind in (int, float):
        return kind(raw)
    return raw
