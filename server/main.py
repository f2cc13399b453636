"""FastAPI WebSocket server for the Zilch dice game."""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from config import config
from errors import GameError, MalformedMessage
from game import GamePhase
from handlers import HANDLERS, ConnectionContext
from logging_config import game_id_var, player_id_var, room_code_var, setup_logging
from room import Room, RoomManager
from routers.health import router as health_router, set_health_dependencies

# Configure logging based on environment
setup_logging(
    level=config.LOG_LEVEL,
    environment=config.ENVIRONMENT,
)
logger = logging.getLogger(__name__)

room_manager = RoomManager()


async def _close_all_websockets():
    """Close all active WebSocket connections gracefully."""
    for room in list(room_manager.rooms.values()):
        for player in room.players.values():
            if player.websocket:
                try:
                    await player.websocket.close(code=1001, reason="Server shutting down")
                except Exception as e:
                    logger.debug(f"Error closing websocket for {player.id}: {e}")
    logger.info("All WebSocket connections closed")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    set_health_dependencies(room_manager=room_manager)
    logger.info(f"Zilch server started (environment={config.ENVIRONMENT})")

    yield

    logger.info("Shutdown initiated...")
    await _close_all_websockets()
    room_manager.rooms.clear()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Zilch Dice Game",
    debug=config.DEBUG,
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(health_router)


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()

    connection_id = str(uuid.uuid4())
    player_id_var.set(connection_id)
    logger.debug(f"WebSocket connected as {connection_id}")

    ctx = ConnectionContext(
        websocket=websocket,
        connection_id=connection_id,
        player_id=connection_id,
    )

    # Shared dependencies passed to every handler
    handler_deps = dict(
        room_manager=room_manager,
        broadcast_game_state=broadcast_game_state,
        handle_player_leave=handle_player_leave,
    )

    try:
        while True:
            try:
                data = await websocket.receive_json()
            except (ValueError, KeyError, TypeError):
                # Undecodable text, or a binary frame
                data = None
            if not isinstance(data, dict):
                await websocket.send_json(MalformedMessage("Messages must be JSON objects").to_message())
                continue

            handler = HANDLERS.get(data.get("type"))
            if not handler:
                logger.debug(f"Ignoring unknown message type: {data.get('type')}")
                continue
            try:
                await handler(data, ctx, **handler_deps)
            except GameError as e:
                logger.info(f"Rejected {data.get('type')}: {e.kind.value} ({e.message})")
                await websocket.send_json(e.to_message())
            except WebSocketDisconnect:
                raise
            except Exception:
                logger.exception(f"Handler for {data.get('type')} failed")
                await websocket.send_json({
                    "type": "error",
                    "kind": "internal_error",
                    "message": "Something went wrong",
                })
    except WebSocketDisconnect:
        logger.debug(f"WebSocket {connection_id} disconnected")
    finally:
        # Any way out of the loop frees the seat
        if ctx.current_room:
            await handle_player_leave(ctx.current_room, ctx.player_id)
            ctx.current_room = None
        room_code_var.set(None)
        game_id_var.set(None)


async def broadcast_game_state(room: Room):
    """Broadcast game state to all players in a room."""
    game = room.game

    for pid, player in room.players.items():
        if not player.websocket:
            continue

        await player.websocket.send_json({
            "type": "game_state",
            "game_state": game.get_state(pid),
        })

        if game.phase == GamePhase.GAME_OVER:
            winner = game.get_player(game.winner_id)
            await player.websocket.send_json({
                "type": "game_over",
                "winner_id": game.winner_id,
                "winner_number": winner.number if winner else None,
                "final_scores": game.final_scores(),
            })


async def handle_player_leave(room: Room, player_id: str):
    """Handle a player leaving a room."""
    async with room.game_lock:
        room_player = room.remove_player(player_id)

        if room.is_empty():
            room_manager.remove_room(room.code)
        elif room_player:
            logger.info(
                f"Player {room_player.number} left",
                extra={"room_code": room.code, "player_id": player_id},
            )
            await room.broadcast({
                "type": "player_left",
                "player_id": player_id,
                "player_number": room_player.number,
                "players": room.player_list(),
            })
            if room.game.phase == GamePhase.AWAITING_ACTION:
                await broadcast_game_state(room)


def run():
    """Run the server using uvicorn."""
    import uvicorn

    logger.info(f"Starting Zilch server on {config.HOST}:{config.PORT}")
    logger.info(f"Debug mode: {config.DEBUG}")

    uvicorn.run(
        "main:app",
        host=config.HOST,
        port=config.PORT,
        reload=config.DEBUG,
        log_level=config.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    run()
