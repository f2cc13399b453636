"""
Health check endpoints.

Provides:
- /health - Basic liveness check (is the app running?)
- /ready - Readiness check (can the app handle requests?)
- /metrics - Room and game counts for monitoring
"""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])

# Set during app initialization
_room_manager = None


def set_health_dependencies(room_manager=None):
    """Set dependencies for health checks."""
    global _room_manager
    _room_manager = room_manager


@router.get("/health")
async def health_check():
    """
    Basic liveness check - is the app running?

    Always returns 200 while the process is alive.
    """
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/ready")
async def readiness_check():
    """
    Readiness check - can the app accept players?

    There are no external services; the server is ready once the room
    manager has been wired up by the lifespan handler.
    """
    ready = _room_manager is not None
    return {
        "status": "ok" if ready else "starting",
        "checks": {"room_manager": {"status": "ok" if ready else "not_configured"}},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/metrics")
async def metrics():
    """Expose room and game counts for dashboards."""
    metrics_data = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }

    if _room_manager is not None:
        rooms = _room_manager.rooms
        metrics_data.update({
            "active_rooms": len(rooms),
            "total_players": sum(len(r.players) for r in rooms.values()),
            "games_in_progress": sum(
                1 for r in rooms.values()
                if r.game.phase.name == "AWAITING_ACTION"
            ),
            "games_finished": sum(
                1 for r in rooms.values()
                if r.game.phase.name == "GAME_OVER"
            ),
        })

    return metrics_data
