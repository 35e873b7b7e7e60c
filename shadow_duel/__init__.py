# shadow_duel/__init__.py
import logging

from .clock import TurnClock
from .config import ArenaConfig
from .orchestrator import MatchOrchestrator
from .routes import arena_bp
from .sockets import register_arena_socket_handlers
from .state import ArenaState
from .store import MemoryStateStore, RedisStateStore

logger = logging.getLogger(__name__)


def init_arena(app, socketio, store=None):
    config = ArenaConfig.load(app.config)
    if store is None:
        if config.redis_url:
            store = RedisStateStore.from_url(config.redis_url, socket_timeout=config.redis_socket_timeout)
        else:
            logger.warning("No REDIS_URL configured; arena state is kept in memory")
            store = MemoryStateStore()

    clock = TurnClock.for_socketio(socketio, config.turn_time_limit, config.timeout_lockout_seconds)
    orchestrator = MatchOrchestrator(ArenaState(store, config), clock, config)
    app.extensions["shadow_duel"] = orchestrator

    app.register_blueprint(arena_bp)
    register_arena_socket_handlers(socketio, orchestrator)
    return orchestrator
