"""
Event definitions for the Zilch move history.

Every accepted action is recorded as an immutable event in the game's
history, in the order the server accepted it. Events are kept in memory
only and go away with the game.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class EventType(str, Enum):
    """All possible event types in a Zilch game."""

    # Lifecycle events
    PLAYER_JOINED = "player_joined"
    PLAYER_LEFT = "player_left"
    GAME_STARTED = "game_started"
    TURN_STARTED = "turn_started"
    GAME_ENDED = "game_ended"

    # Gameplay events
    DICE_ROLLED = "dice_rolled"
    POINTS_BANKED = "points_banked"
    ZILCHED = "zilched"
    ZILCH_PENALTY = "zilch_penalty"
    FREE_ROLL = "free_roll"


@dataclass
class GameEvent:
    """
    A single entry in a game's history.

    Attributes:
        event_type: The type of event (from EventType enum).
        game_id: UUID of the game this event belongs to.
        sequence_num: Monotonically increasing sequence number within game.
        timestamp: When the event occurred (UTC).
        player_id: ID of player who triggered the event (if applicable).
        data: Event-specific payload data.
    """

    event_type: EventType
    game_id: str
    sequence_num: int
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    player_id: Optional[str] = None
    data: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        """Serialize event to dictionary for JSON output."""
        return {
            "event_type": self.event_type.value,
            "game_id": self.game_id,
            "sequence_num": self.sequence_num,
            "timestamp": self.timestamp.isoformat(),
            "player_id": self.player_id,
            "data": self.data,
        }
