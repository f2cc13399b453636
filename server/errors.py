"""
Exceptions raised by the Zilch rule engine.

Every rejected action raises a GameError before any state is touched, so
callers can report it to the originating player and carry on. The ``kind``
is what goes over the wire in ``error`` messages.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Wire names for rejected actions."""

    OUT_OF_TURN = "out_of_turn"
    INVALID_SELECTION = "invalid_selection"
    ILLEGAL_TRANSITION = "illegal_transition"
    GAME_ALREADY_OVER = "game_already_over"
    NOT_IN_GAME = "not_in_game"
    ROOM_UNAVAILABLE = "room_unavailable"
    MALFORMED_MESSAGE = "malformed_message"


class GameError(Exception):
    """Base exception for all rejected game actions."""

    kind: ErrorKind = ErrorKind.ILLEGAL_TRANSITION

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)

    def to_message(self) -> dict:
        """Build the ``error`` message sent back to the originator."""
        return {
            "type": "error",
            "kind": self.kind.value,
            "message": self.message,
        }


class OutOfTurn(GameError):
    """A player other than the current one tried to act."""

    kind = ErrorKind.OUT_OF_TURN


class InvalidSelection(GameError):
    """The dice mask is malformed or selects a locked die."""

    kind = ErrorKind.INVALID_SELECTION


class IllegalTransition(GameError):
    """The action is not allowed in the current turn state."""

    kind = ErrorKind.ILLEGAL_TRANSITION


class GameAlreadyOver(GameError):
    """Someone already reached the score limit."""

    kind = ErrorKind.GAME_ALREADY_OVER


class NotInGame(GameError):
    """The connection has not joined a room."""

    kind = ErrorKind.NOT_IN_GAME


class RoomUnavailable(GameError):
    """The requested room does not exist or is not taking players."""

    kind = ErrorKind.ROOM_UNAVAILABLE


class MalformedMessage(GameError):
    """The frame was not a JSON object."""

    kind = ErrorKind.MALFORMED_MESSAGE
