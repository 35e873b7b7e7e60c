# shadow_duel/sockets.py
from flask import request
from flask_socketio import emit, join_room, leave_room

from .errors import ArenaError, InvalidRequestError


def room_for(game_id):
    return f"arena:{game_id}"


def register_arena_socket_handlers(socketio, orchestrator):
    """
    Socket events mirror the HTTP operations. Each client joins the room of the
    match it plays; moves, accepts and server-side timeouts push a fresh
    ``arena_snapshot`` to the room.
    """

    def push(game_id, payload):
        socketio.emit("arena_snapshot", payload, to=room_for(game_id))

    orchestrator.add_listener(push)

    def handler(event):
        def wrap(fn):
            @socketio.on(event)
            def _on(payload=None):
                payload = payload if isinstance(payload, dict) else {}
                try:
                    return fn(payload)
                except ArenaError as exc:
                    emit("arena_error", exc.to_dict())
                    return None
            return _on
        return wrap

    def user_of(payload):
        user_id = payload.get("user_id")
        if not user_id:
            raise InvalidRequestError("Missing user_id")
        return user_id

    def game_of(payload):
        game_id = payload.get("game_id")
        if not game_id:
            raise InvalidRequestError("Missing game_id")
        return game_id

    @handler("arena_join")
    def arena_join(payload):
        game_id = game_of(payload)
        result = orchestrator.get_match_state(game_id, user_of(payload))
        join_room(room_for(game_id), sid=request.sid)
        emit("arena_snapshot", result)

    @handler("arena_leave")
    def arena_leave(payload):
        leave_room(room_for(game_of(payload)), sid=request.sid)

    @handler("arena_start")
    def arena_start(payload):
        result = orchestrator.start_battle(
            user_of(payload),
            payload.get("mode", "quick_match"),
            payload.get("character", "knight"),
        )
        join_room(room_for(result["game_id"]), sid=request.sid)
        emit("arena_started", result)

    @handler("arena_accept")
    def arena_accept(payload):
        game_id = game_of(payload)
        result = orchestrator.accept_invitation(game_id, user_of(payload))
        join_room(room_for(game_id), sid=request.sid)
        push(game_id, result)

    @handler("arena_decline")
    def arena_decline(payload):
        emit("arena_declined", orchestrator.decline_invitation(game_of(payload), user_of(payload)))

    @handler("arena_move")
    def arena_move(payload):
        game_id = game_of(payload)
        ability = payload.get("ability")
        if not ability:
            raise InvalidRequestError("Missing ability")
        push(game_id, orchestrator.submit_move(game_id, ability, user_of(payload)))

    @handler("arena_timeout")
    def arena_timeout(payload):
        # penalties are pushed by the orchestrator listener
        result = orchestrator.timeout_tick(game_of(payload), user_of(payload))
        if result["type"] in ("tick", "no_op"):
            emit("arena_snapshot", result)

    @handler("arena_heartbeat")
    def arena_heartbeat(payload):
        emit("arena_heartbeat", orchestrator.heartbeat(user_of(payload)))
