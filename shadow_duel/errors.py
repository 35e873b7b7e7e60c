# shadow_duel/errors.py
"""
Error taxonomy for the arena.

Every error carries a stable ``error_code``, an HTTP-ish ``status_code`` for the
surfaces, structured ``details`` and an ``is_retryable`` hint. Surfaces turn
these into JSON / socket payloads with ``to_dict``.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class ArenaError(Exception):
    error_code = "arena_error"
    status_code = 500
    is_retryable = False

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "type": "error",
            "error": self.error_code,
            "message": self.message,
            "retryable": self.is_retryable,
        }
        if self.details:
            payload["details"] = dict(self.details)
        return payload


class NotFoundError(ArenaError):
    error_code = "not_found"
    status_code = 404


class NotAuthorizedError(ArenaError):
    error_code = "not_authorized"
    status_code = 403


class PreconditionError(ArenaError):
    error_code = "precondition_failed"
    status_code = 409


class NotYourTurnError(PreconditionError):
    error_code = "not_your_turn"

    def __init__(self, expected_turn: str, role: str) -> None:
        super().__init__(
            f"Not your turn. Current turn: {expected_turn}, your role: {role}",
            details={"current_turn": expected_turn, "role": role},
        )
        self.expected_turn = expected_turn


class MatchNotActiveError(PreconditionError):
    error_code = "match_not_active"


class IllegalMoveError(PreconditionError):
    error_code = "illegal_move"


class InvalidRequestError(ArenaError):
    error_code = "invalid_request"
    status_code = 400


class StoreUnavailableError(ArenaError):
    """The state store failed or timed out. Safe to retry."""

    error_code = "store_unavailable"
    status_code = 503
    is_retryable = True


class InvariantViolation(ArenaError):
    """A programming error: unknown catalog id, malformed persisted match."""

    error_code = "invariant_violation"
    status_code = 500
