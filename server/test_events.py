"""
Tests for the game history events.

Run with: pytest test_events.py -v
"""

from datetime import datetime, timezone

from models.events import EventType, GameEvent


def make_event(**overrides) -> GameEvent:
    fields = dict(
        event_type=EventType.POINTS_BANKED,
        game_id="game-1",
        sequence_num=3,
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
        player_id="p0",
        data={"points": 350, "banked_score": 1200},
    )
    fields.update(overrides)
    return GameEvent(**fields)


class TestGameEvent:

    def test_to_dict(self):
        assert make_event().to_dict() == {
            "event_type": "points_banked",
            "game_id": "game-1",
            "sequence_num": 3,
            "timestamp": "2024-05-01T12:00:00+00:00",
            "player_id": "p0",
            "data": {"points": 350, "banked_score": 1200},
        }

    def test_defaults(self):
        event = GameEvent(event_type=EventType.GAME_STARTED, game_id="g", sequence_num=1)
        assert event.player_id is None
        assert event.data == {}
        assert event.timestamp.tzinfo is timezone.utc

    def test_event_type_is_str(self):
        assert EventType.ZILCH_PENALTY == "zilch_penalty"
