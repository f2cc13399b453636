"""WebSocket message handlers for the Zilch dice game.

Each handler corresponds to a single message type from the client.
Handlers are dispatched via the HANDLERS dict in main.py.

Handlers that touch a game hold ``room.game_lock`` from validation through
broadcast. Rejected actions raise a GameError, which the WebSocket loop
turns into an ``error`` message for the sender only.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import WebSocket

from errors import IllegalTransition, NotInGame, RoomUnavailable
from game import GameOptions, GamePhase
from logging_config import game_id_var, room_code_var
from room import Room
from scoring import validate_mask

logger = logging.getLogger(__name__)


@dataclass
class ConnectionContext:
    """State tracked per WebSocket connection."""

    websocket: WebSocket
    connection_id: str
    player_id: str
    current_room: Optional[Room] = None


def _require_room(ctx: ConnectionContext) -> Room:
    if not ctx.current_room:
        raise NotInGame("Join a game first")
    return ctx.current_room


# ---------------------------------------------------------------------------
# Lobby handlers
# ---------------------------------------------------------------------------

def _accepting_players(room: Room) -> bool:
    return not room.is_full() and room.game.phase == GamePhase.WAITING


async def _seat_player(room: Room, ctx: ConnectionContext, player_name: str) -> None:
    """Add the player to `room` and start the game once it fills. Caller holds the lock."""
    room_player = room.add_player(ctx.player_id, player_name, ctx.websocket)
    ctx.current_room = room
    room_code_var.set(room.code)
    game_id_var.set(room.game.game_id)

    await ctx.websocket.send_json({
        "type": "player_assigned",
        "player_id": ctx.player_id,
        "player_number": room_player.number,
        "room_code": room.code,
    })

    await room.broadcast({
        "type": "player_joined",
        "players": room.player_list(),
    })

    if room.ready_to_start():
        room.game.start_game()
        logger.info(
            f"Game started with {len(room.players)} players",
            extra={"room_code": room.code},
        )
        for pid, player in room.players.items():
            if player.websocket:
                await player.websocket.send_json({
                    "type": "game_started",
                    "game_state": room.game.get_state(pid),
                })


async def handle_join(data: dict, ctx: ConnectionContext, *, room_manager, **kw) -> None:
    if ctx.current_room:
        raise IllegalTransition("Already in a game")

    room_code = data.get("room_code")
    player_name = data.get("player_name") or "Player"

    if room_code:
        room = room_manager.get_room(room_code)
        if not room:
            raise RoomUnavailable("Room not found")
        async with room.game_lock:
            if not _accepting_players(room):
                raise RoomUnavailable("Game already in progress")
            await _seat_player(room, ctx, player_name)
        return

    # The open room can fill up while we wait for its lock; try the next one
    while True:
        room = room_manager.find_open_room()
        if not room:
            room = room_manager.create_room()
            room.game.options = GameOptions.from_client_data(data)

        async with room.game_lock:
            if _accepting_players(room):
                await _seat_player(room, ctx, player_name)
                return

        logger.debug(f"Room {room.code} filled before {ctx.player_id} could join")


# ---------------------------------------------------------------------------
# Turn action handlers
# ---------------------------------------------------------------------------

async def handle_select_dice(data: dict, ctx: ConnectionContext, **kw) -> None:
    """Relay a player's checkbox choices to everyone else; the game is not touched."""
    room = _require_room(ctx)

    async with room.game_lock:
        if room.game.phase != GamePhase.AWAITING_ACTION:
            raise IllegalTransition("No dice in play")
        mask = validate_mask(data.get("dice"), room.game.dice, allow_locked=False)
        await room.broadcast({
            "type": "dice_choices",
            "player_id": ctx.player_id,
            "dice": mask,
        }, exclude=ctx.player_id)


async def handle_score(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    room = _require_room(ctx)

    async with room.game_lock:
        game = room.game
        outcome = game.score(ctx.player_id, data.get("dice"))

        current = game.current_player()
        message = {
            "type": "scoring_options",
            "player_id": ctx.player_id,
            "outcome": outcome.to_dict(),
            "potential_score": game.accumulated_points + outcome.total_points,
        }

        if current and current.id == ctx.player_id:
            await room.broadcast(message)
            await broadcast_game_state(room)
        else:
            # Someone else's dice: answer the asker, nothing changed
            await room.send_to(ctx.player_id, message)


async def handle_roll_more(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    room = _require_room(ctx)

    async with room.game_lock:
        outcome = room.game.roll_more(ctx.player_id, data.get("dice"))
        logger.debug(
            f"Committed {outcome.total_points}, rolling {sum(1 for d in room.game.dice if d.available)} dice",
            extra={"room_code": room.code, "player_id": ctx.player_id},
        )
        await broadcast_game_state(room)


async def handle_bank(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    room = _require_room(ctx)

    async with room.game_lock:
        game = room.game
        points = game.bank(ctx.player_id)
        player = game.get_player(ctx.player_id)

        logger.info(
            f"Player {player.number} banked {points}",
            extra={"room_code": room.code, "player_id": ctx.player_id},
        )
        await room.broadcast({
            "type": "banked_score_update",
            "player_id": player.id,
            "player_number": player.number,
            "score": player.banked_score,
        })
        await broadcast_game_state(room)


async def handle_zilch(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    room = _require_room(ctx)

    async with room.game_lock:
        game = room.game
        penalized = game.declare_zilch(ctx.player_id)

        if penalized:
            player = game.get_player(ctx.player_id)
            logger.info(
                f"Player {player.number} penalized for consecutive zilches",
                extra={"room_code": room.code, "player_id": ctx.player_id},
            )
            await room.broadcast({
                "type": "banked_score_update",
                "player_id": player.id,
                "player_number": player.number,
                "score": player.banked_score,
            })
        await broadcast_game_state(room)


async def handle_free_roll(data: dict, ctx: ConnectionContext, *, broadcast_game_state, **kw) -> None:
    room = _require_room(ctx)

    async with room.game_lock:
        room.game.free_roll(ctx.player_id)
        await broadcast_game_state(room)


# ---------------------------------------------------------------------------
# Leave handler
# ---------------------------------------------------------------------------

async def handle_leave(data: dict, ctx: ConnectionContext, *, handle_player_leave, **kw) -> None:
    if ctx.current_room:
        await handle_player_leave(ctx.current_room, ctx.player_id)
        ctx.current_room = None
        room_code_var.set(None)
        game_id_var.set(None)


# ---------------------------------------------------------------------------
# Handler dispatch table
# ---------------------------------------------------------------------------

HANDLERS = {
    "join": handle_join,
    "select_dice": handle_select_dice,
    "score": handle_score,
    "roll_more": handle_roll_more,
    "bank": handle_bank,
    "zilch": handle_zilch,
    "free_roll": handle_free_roll,
    "leave": handle_leave,
}
