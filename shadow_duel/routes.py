# shadow_duel/routes.py
from flask import Blueprint, current_app, jsonify, request

from .errors import ArenaError, InvalidRequestError, NotAuthorizedError

arena_bp = Blueprint("arena", __name__, url_prefix="/api/arena")

USER_HEADER = "X-Arena-User"
USERNAME_HEADER = "X-Arena-Username"


def _orchestrator():
    return current_app.extensions["shadow_duel"]


def _requester():
    user_id = request.headers.get(USER_HEADER, "").strip()
    if not user_id:
        raise NotAuthorizedError("Missing player identity")
    return user_id


def _body():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else {}


def _require(payload, *names):
    missing = [n for n in names if not payload.get(n)]
    if missing:
        raise InvalidRequestError(f"Missing required field(s): {', '.join(missing)}", details={"missing": missing})
    return [payload[n] for n in names]


@arena_bp.errorhandler(ArenaError)
def arena_error(exc):
    return jsonify(exc.to_dict()), exc.status_code


@arena_bp.route("/player", methods=["GET", "POST"])
def player():
    user_id = _requester()
    username = request.headers.get(USERNAME_HEADER) or _body().get("username") or user_id
    return jsonify(_orchestrator().get_player(user_id, username))


@arena_bp.route("/battle/start", methods=["POST"])
def battle_start():
    payload = _body()
    mode = payload.get("mode", "quick_match")
    character = payload.get("character", "knight")
    return jsonify(_orchestrator().start_battle(_requester(), mode, character))


@arena_bp.route("/battle/move", methods=["POST"])
def battle_move():
    game_id, ability = _require(_body(), "game_id", "ability")
    return jsonify(_orchestrator().submit_move(game_id, ability, _requester()))


@arena_bp.route("/battle/state/<game_id>")
def battle_state(game_id):
    return jsonify(_orchestrator().get_match_state(game_id, _requester()))


@arena_bp.route("/battle/accept", methods=["POST"])
def battle_accept():
    (game_id,) = _require(_body(), "game_id")
    return jsonify(_orchestrator().accept_invitation(game_id, _requester()))


@arena_bp.route("/battle/decline", methods=["POST"])
def battle_decline():
    (game_id,) = _require(_body(), "game_id")
    return jsonify(_orchestrator().decline_invitation(game_id, _requester()))


@arena_bp.route("/battle/timeout", methods=["POST"])
def battle_timeout():
    (game_id,) = _require(_body(), "game_id")
    return jsonify(_orchestrator().timeout_tick(game_id, _requester()))


@arena_bp.route("/heartbeat", methods=["POST"])
def heartbeat():
    return jsonify(_orchestrator().heartbeat(_requester()))


@arena_bp.route("/stats")
def stats():
    return jsonify(_orchestrator().get_stats())


@arena_bp.route("/leaderboard")
def leaderboard():
    board = request.args.get("type", "global")
    return jsonify(_orchestrator().get_leaderboard(board))


@arena_bp.route("/debug/timeouts")
def debug_timeouts():
    active = _orchestrator().active_timeouts()
    return jsonify({"active_timeouts": active, "count": len(active)})
