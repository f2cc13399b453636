"""
Room management for multiplayer Zilch games.

This module handles room creation, player seating, and WebSocket
communication for multiplayer game sessions.

A Room contains:
    - A unique 4-letter code
    - A collection of RoomPlayers, numbered in join order
    - A Game instance with the actual game state
    - A lock that serializes every read and write of that game
"""

import asyncio
import logging
import random
import string
from dataclasses import dataclass, field
from typing import Optional

from fastapi import WebSocket

from config import config
from dice import DicePool
from game import Game, GamePhase, Player
from models.events import GameEvent

logger = logging.getLogger(__name__)


@dataclass
class RoomPlayer:
    """
    A player in a game room (connection-level representation).

    This is separate from game.Player - RoomPlayer tracks the WebSocket,
    while game.Player tracks banked score and zilch streak.

    Attributes:
        id: Unique player identifier (connection_id).
        name: Display name.
        number: 1-based seat number assigned on join.
        websocket: WebSocket connection (None in tests that don't need one).
    """

    id: str
    name: str
    number: int
    websocket: Optional[WebSocket] = None


@dataclass
class Room:
    """
    A game room that hosts one Zilch game.

    Attributes:
        code: 4-letter room code (e.g., "ABCD").
        players: Dict mapping player IDs to RoomPlayer objects.
        game: The Game instance containing actual game state.
        capacity: Players needed before the game starts.
        game_lock: asyncio.Lock serializing all game access, so broadcasts
            go out in the order actions were accepted.
    """

    code: str
    players: dict[str, RoomPlayer] = field(default_factory=dict)
    game: Game = field(default_factory=Game)
    capacity: int = field(default_factory=lambda: config.game_defaults.players_per_game)
    game_lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    _next_number: int = field(default=1, repr=False)

    def __post_init__(self) -> None:
        self.game.set_event_emitter(self._log_event)

    def _log_event(self, event: GameEvent) -> None:
        logger.debug(
            f"Game event {event.sequence_num}: {event.event_type.value}",
            extra={"room_code": self.code, "player_id": event.player_id},
        )

    def add_player(
        self,
        player_id: str,
        name: str,
        websocket: Optional[WebSocket] = None,
    ) -> RoomPlayer:
        """
        Seat a player in the room.

        Args:
            player_id: Unique identifier for the player (connection_id).
            name: Display name.
            websocket: The player's WebSocket connection.

        Returns:
            The created RoomPlayer, carrying the assigned player number.

        Raises:
            ValueError: The room is full or its game already started.
        """
        if self.is_full() or self.game.phase != GamePhase.WAITING:
            raise ValueError(f"Room {self.code} is not accepting players")

        number = self._next_number
        self._next_number += 1
        room_player = RoomPlayer(id=player_id, name=name, number=number, websocket=websocket)
        self.players[player_id] = room_player
        self.game.add_player(Player(id=player_id, name=name, number=number))

        logger.info(
            f"{name} joined as player {number}",
            extra={"room_code": self.code, "player_id": player_id},
        )
        return room_player

    def remove_player(self, player_id: str) -> Optional[RoomPlayer]:
        """
        Remove a player from the room and its game.

        Returns:
            The removed RoomPlayer, or None if not found.
        """
        if player_id not in self.players:
            return None

        room_player = self.players.pop(player_id)
        self.game.remove_player(player_id)
        return room_player

    def get_player(self, player_id: str) -> Optional[RoomPlayer]:
        """Get a player by ID, or None if not found."""
        return self.players.get(player_id)

    def is_empty(self) -> bool:
        return len(self.players) == 0

    def is_full(self) -> bool:
        return len(self.players) >= self.capacity

    def ready_to_start(self) -> bool:
        """True once enough players are seated and the game hasn't started."""
        return self.is_full() and self.game.phase == GamePhase.WAITING

    def player_list(self) -> list[dict]:
        """Get list of players for client display."""
        return [
            {"id": p.id, "name": p.name, "number": p.number}
            for p in self.players.values()
        ]

    async def broadcast(self, message: dict, exclude: Optional[str] = None) -> None:
        """
        Send a message to all players in the room.

        Delivery is fire-and-forget; a failing socket is logged and skipped.

        Args:
            message: JSON-serializable message dict.
            exclude: Optional player ID to skip.
        """
        for player_id, player in self.players.items():
            if player_id != exclude and player.websocket:
                try:
                    await player.websocket.send_json(message)
                except Exception as e:
                    logger.warning(
                        f"Failed to send {message.get('type')} to {player_id}: {e}",
                        extra={"room_code": self.code},
                    )

    async def send_to(self, player_id: str, message: dict) -> None:
        """Send a message to a specific player."""
        player = self.players.get(player_id)
        if player and player.websocket:
            try:
                await player.websocket.send_json(message)
            except Exception as e:
                logger.warning(
                    f"Failed to send {message.get('type')} to {player_id}: {e}",
                    extra={"room_code": self.code},
                )


class RoomManager:
    """
    Manages all active game rooms.

    Provides room creation with unique codes, lookup, pairing of players
    who join without a code, and cleanup. A single RoomManager instance
    is used by the server.
    """

    def __init__(self) -> None:
        self.rooms: dict[str, Room] = {}

    def _generate_code(self, max_attempts: int = 100) -> str:
        """Generate a unique room code."""
        for _ in range(max_attempts):
            code = "".join(random.choices(string.ascii_uppercase, k=config.ROOM_CODE_LENGTH))
            if code not in self.rooms:
                return code
        raise RuntimeError("Could not generate unique room code")

    def create_room(self, capacity: Optional[int] = None) -> Room:
        """
        Create a new room with a unique code.

        Args:
            capacity: Players needed to start; defaults to configuration.
        """
        if len(self.rooms) >= config.MAX_ROOMS:
            raise RuntimeError("Too many active rooms")
        code = self._generate_code()
        room = Room(code=code)
        if capacity:
            room.capacity = capacity
        if config.DICE_SEED is not None:
            room.game.pool = DicePool(seed=config.DICE_SEED)
        self.rooms[code] = room
        logger.info(f"Room {code} created", extra={"room_code": code})
        return room

    def get_room(self, code: str) -> Optional[Room]:
        """Get a room by its code (case-insensitive)."""
        return self.rooms.get(code.upper())

    def find_open_room(self) -> Optional[Room]:
        """Oldest room still waiting for players, if any."""
        for room in self.rooms.values():
            if not room.is_full() and room.game.phase == GamePhase.WAITING:
                return room
        return None

    def remove_room(self, code: str) -> None:
        if code in self.rooms:
            del self.rooms[code]
            logger.info(f"Room {code} removed", extra={"room_code": code})
