"""Models package for the Zilch server."""

from .events import EventType, GameEvent

__all__ = [
    "EventType",
    "GameEvent",
]
