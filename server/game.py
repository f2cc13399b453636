"""
Game logic for Zilch.

This module implements the turn state machine for the Zilch dice game:
players, turn points, banking, zilches and the win condition. Dice rolling
lives in dice.py and combination scoring in scoring.py.

Zilch Rules Summary:
    - Each turn starts with a roll of six dice
    - The player selects scoring dice and either rolls the rest again
      (locking the selected dice) or banks the turn's points
    - A roll with nothing to score is a zilch: the turn's points are lost
    - Three zilches in a row cost 500 banked points
    - When every die has been scored the player may take a free roll of
      all six dice and keep the turn going
    - The first player to bank up to the score limit wins

Turn flow:
    WAITING -> AWAITING_ACTION -> (roll_more | free_roll) -> AWAITING_ACTION
                               -> (bank | declare_zilch) -> next player's AWAITING_ACTION
                               -> bank reaching the limit -> GAME_OVER
"""

import logging
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Optional

from constants import (
    DEFAULT_MIN_BANK_POINTS,
    DEFAULT_SCORE_LIMIT,
    DEFAULT_ZILCH_PENALTY,
    DEFAULT_ZILCH_PENALTY_THRESHOLD,
)
from dice import DicePool, Die, all_resolved, dice_to_dict, rollable_count
from errors import GameAlreadyOver, IllegalTransition, NotInGame, OutOfTurn
from models.events import EventType, GameEvent
from scoring import OutcomeKind, ScoringOutcome, evaluate, validate_mask

logger = logging.getLogger(__name__)


class GamePhase(Enum):
    """
    Phases of a Zilch game.

    Flow: WAITING -> AWAITING_ACTION -> GAME_OVER
    """

    WAITING = "waiting"                  # Lobby, waiting for players to join
    AWAITING_ACTION = "awaiting_action"  # Current player deciding what to do
    GAME_OVER = "game_over"              # Someone banked up to the score limit


@dataclass
class GameOptions:
    """
    Rule settings for a game.

    All options default to the server configuration.
    """

    score_limit: int = DEFAULT_SCORE_LIMIT
    """Banked score that wins the game."""

    min_bank_points: int = DEFAULT_MIN_BANK_POINTS
    """Turn total needed before the bank button is offered."""

    zilch_penalty: int = DEFAULT_ZILCH_PENALTY
    """Points deducted after too many consecutive zilches."""

    zilch_penalty_threshold: int = DEFAULT_ZILCH_PENALTY_THRESHOLD
    """Consecutive zilches that trigger the penalty."""

    initial_player_index: Optional[int] = None
    """Who starts; None picks a random player."""

    @classmethod
    def from_client_data(cls, data: dict) -> "GameOptions":
        """Build options from a client message, clamping to sane ranges."""
        defaults = cls()
        score_limit = data.get("score_limit", defaults.score_limit)
        if not isinstance(score_limit, int):
            score_limit = defaults.score_limit
        return cls(
            score_limit=max(500, min(100000, score_limit)),
            min_bank_points=defaults.min_bank_points,
            zilch_penalty=defaults.zilch_penalty,
            zilch_penalty_threshold=defaults.zilch_penalty_threshold,
        )


@dataclass
class Player:
    """
    A player in a Zilch game.

    Attributes:
        id: Unique identifier for the player.
        name: Display name.
        number: 1-based seat number, in join order.
        banked_score: Permanent score. Can go negative through penalties.
        consecutive_zilches: Zilches since the player last banked.
    """

    id: str
    name: str
    number: int = 0
    banked_score: int = 0
    consecutive_zilches: int = 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "number": self.number,
            "banked_score": self.banked_score,
            "consecutive_zilches": self.consecutive_zilches,
        }


@dataclass
class Game:
    """
    Main game state and turn logic for Zilch.

    Every public action validates the request and raises a GameError
    before changing anything, so a rejected action leaves the game
    exactly as it was.

    Attributes:
        players: Players in seat order.
        dice: The six dice, position-stable for the whole turn.
        phase: Current game phase.
        current_player_index: Index of the player whose turn it is.
        accumulated_points: Points committed by earlier rolls this turn.
        potential_roll_score: Points of the current player's current selection.
        rolls_this_turn: Rolls (including the opening roll) seen this turn.
        last_outcome: Last evaluation of the current player's selection.
        winner_id: Set once the game is over.
        options: Rule settings.
        pool: Random source for dice.
        game_id: Unique identifier for the history.
        history: Accepted actions, in order.
    """

    players: list[Player] = field(default_factory=list)
    dice: list[Die] = field(default_factory=list)
    phase: GamePhase = GamePhase.WAITING
    current_player_index: int = 0
    accumulated_points: int = 0
    potential_roll_score: int = 0
    rolls_this_turn: int = 0
    last_outcome: Optional[ScoringOutcome] = None
    winner_id: Optional[str] = None
    options: GameOptions = field(default_factory=GameOptions)
    pool: DicePool = field(default_factory=DicePool, repr=False)

    game_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    history: list[GameEvent] = field(default_factory=list, repr=False)
    _event_emitter: Optional[Callable[[GameEvent], None]] = field(
        default=None, repr=False, compare=False
    )
    _sequence_num: int = field(default=0, repr=False, compare=False)

    def set_event_emitter(self, emitter: Callable[[GameEvent], None]) -> None:
        """
        Set callback for event emission.

        The emitter is called with each GameEvent after it is added to
        the history.
        """
        self._event_emitter = emitter

    def _emit(
        self,
        event_type: EventType,
        player_id: Optional[str] = None,
        **data: Any,
    ) -> None:
        self._sequence_num += 1
        event = GameEvent(
            event_type=event_type,
            game_id=self.game_id,
            sequence_num=self._sequence_num,
            player_id=player_id,
            data=data,
        )
        self.history.append(event)
        if self._event_emitter is not None:
            self._event_emitter(event)

    # -------------------------------------------------------------------------
    # Player Management
    # -------------------------------------------------------------------------

    def add_player(self, player: Player) -> bool:
        """
        Add a player to the game.

        Players can only join before the game starts.

        Returns:
            True if added, False if the game is already running.
        """
        if self.phase != GamePhase.WAITING:
            return False
        if not player.number:
            player.number = len(self.players) + 1
        self.players.append(player)
        self._emit(EventType.PLAYER_JOINED, player_id=player.id, player_name=player.name)
        return True

    def remove_player(self, player_id: str) -> Optional[Player]:
        """
        Remove a player from the game by ID.

        Keeps current_player_index pointing at a valid seat. The game
        itself carries on with whoever is left; if the leaving player held
        the dice, the next player starts a fresh turn.

        Returns:
            The removed Player, or None if not found.
        """
        for i, player in enumerate(self.players):
            if player.id == player_id:
                was_current = i == self.current_player_index
                removed = self.players.pop(i)
                self._emit(EventType.PLAYER_LEFT, player_id=player_id)

                if not self.players:
                    self.current_player_index = 0
                    return removed

                if i < self.current_player_index:
                    self.current_player_index -= 1
                self.current_player_index %= len(self.players)
                if was_current and self.phase == GamePhase.AWAITING_ACTION:
                    self._start_turn()
                return removed
        return None

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def current_player(self) -> Optional[Player]:
        """Get the player whose turn it currently is."""
        if self.players:
            return self.players[self.current_player_index]
        return None

    # -------------------------------------------------------------------------
    # Game Lifecycle
    # -------------------------------------------------------------------------

    def start_game(self, options: Optional[GameOptions] = None) -> None:
        """
        Start a new game with the current players.

        Args:
            options: Rule settings; defaults to the server configuration.

        Raises:
            IllegalTransition: No players have joined.
        """
        if not self.players:
            raise IllegalTransition("Cannot start a game without players")

        self.options = options or self.options
        for player in self.players:
            player.banked_score = 0
            player.consecutive_zilches = 0
        self.winner_id = None

        if self.options.initial_player_index is not None:
            self.current_player_index = self.options.initial_player_index % len(self.players)
        else:
            self.current_player_index = self.pool.pick_index(len(self.players))

        self.phase = GamePhase.AWAITING_ACTION
        self._emit(
            EventType.GAME_STARTED,
            player_order=[p.id for p in self.players],
            score_limit=self.options.score_limit,
            dice_seed=self.pool.seed,
        )
        self._start_turn()

    def _start_turn(self) -> None:
        self.accumulated_points = 0
        self.potential_roll_score = 0
        self.last_outcome = None
        self.dice = self.pool.roll_all()
        self.rolls_this_turn = 1

        current = self.current_player()
        self._emit(
            EventType.TURN_STARTED,
            player_id=current.id if current else None,
            dice=[d.value for d in self.dice],
        )

    def _next_turn(self) -> None:
        """Hand the dice to the next player and roll for them."""
        self.current_player_index = (self.current_player_index + 1) % len(self.players)
        self._start_turn()

    def _check_active(self) -> None:
        if self.phase == GamePhase.GAME_OVER:
            raise GameAlreadyOver("The game is over")
        if self.phase == GamePhase.WAITING:
            raise IllegalTransition("The game has not started yet")

    def _require_turn(self, player_id: str) -> Player:
        """Validate that `player_id` may act now and return their Player."""
        self._check_active()
        current = self.current_player()
        if current is None or current.id != player_id:
            raise OutOfTurn("It is not your turn")
        return current

    # -------------------------------------------------------------------------
    # Turn Actions
    # -------------------------------------------------------------------------

    def score(self, player_id: str, selection_mask) -> ScoringOutcome:
        """
        Evaluate a selection of the current dice.

        Any player may ask. For the current player this also updates the
        dice's scored flags and the potential roll score; for anyone else
        the dice are evaluated on a copy and the game is left untouched.

        Raises:
            NotInGame: The player is not part of this game.
            InvalidSelection: The mask is malformed or selects a locked die.
        """
        self._check_active()
        if self.get_player(player_id) is None:
            raise NotInGame("You are not in this game")

        mask = validate_mask(selection_mask, self.dice, allow_locked=False)

        current = self.current_player()
        if current is None or current.id != player_id:
            return evaluate(mask, [replace(d) for d in self.dice])

        outcome = evaluate(mask, self.dice)
        self.potential_roll_score = outcome.total_points
        self.last_outcome = outcome
        return outcome

    def roll_more(self, player_id: str, selection_mask) -> ScoringOutcome:
        """
        Commit the selected scoring dice and roll the rest.

        The selection is re-evaluated here rather than trusting the last
        `score` call. Scored dice are locked for the rest of the turn and
        their points move into accumulated_points.

        Returns:
            The outcome that was committed.

        Raises:
            OutOfTurn, GameAlreadyOver, InvalidSelection,
            IllegalTransition: Nothing scored, or nothing would be left to roll.
        """
        self._require_turn(player_id)
        mask = validate_mask(selection_mask, self.dice, allow_locked=False)

        trial = [replace(d) for d in self.dice]
        outcome = evaluate(mask, trial)
        if outcome.kind != OutcomeKind.OPTIONS:
            raise IllegalTransition("Select at least one scoring die before rolling")
        if rollable_count(trial) == 0:
            raise IllegalTransition("Every die is scored; take a free roll instead")

        for die in trial:
            if die.scored:
                die.available = False
                die.scored = False

        self.accumulated_points += outcome.total_points
        self.potential_roll_score = 0
        self.last_outcome = None
        self.dice = self.pool.reroll(trial)
        self.rolls_this_turn += 1

        self._emit(
            EventType.DICE_ROLLED,
            player_id=player_id,
            committed=[o.to_dict() for o in outcome.options],
            accumulated_points=self.accumulated_points,
            dice=[d.value for d in self.dice],
        )
        return outcome

    def bank(self, player_id: str) -> int:
        """
        Bank the turn's points and end the turn.

        Adds accumulated + potential points to the player's banked score,
        clears their zilch streak and either ends the game (score limit
        reached) or passes the dice on.

        Returns:
            Points banked this turn.

        Raises:
            OutOfTurn, GameAlreadyOver,
            IllegalTransition: The current roll has nothing to score, or no
                scoring dice are selected.
        """
        player = self._require_turn(player_id)
        # Every turn opens with a roll, so there is always a roll to judge
        if not self._roll_can_score():
            raise IllegalTransition("Nothing scores; declare the zilch instead")
        if self.last_outcome is None or self.last_outcome.kind != OutcomeKind.OPTIONS:
            raise IllegalTransition("Select scoring dice before banking")

        points = self.accumulated_points + self.potential_roll_score
        player.banked_score += points
        player.consecutive_zilches = 0

        self._emit(
            EventType.POINTS_BANKED,
            player_id=player_id,
            points=points,
            banked_score=player.banked_score,
        )
        logger.debug(f"{player.name} banked {points} (total {player.banked_score})")

        if player.banked_score >= self.options.score_limit:
            # First to the limit wins; trailing players get no catch-up turn
            self.phase = GamePhase.GAME_OVER
            self.winner_id = player.id
            self.accumulated_points = 0
            self.potential_roll_score = 0
            self._emit(EventType.GAME_ENDED, player_id=player_id, final_scores=self.final_scores())
        else:
            self._next_turn()

        return points

    def declare_zilch(self, player_id: str) -> bool:
        """
        Give up the turn after a roll with nothing to score.

        Unbanked points are lost. Reaching the zilch threshold deducts the
        penalty (no floor) and starts a fresh streak.

        Returns:
            True if the penalty was applied.

        Raises:
            OutOfTurn, GameAlreadyOver
        """
        player = self._require_turn(player_id)

        player.consecutive_zilches += 1
        forfeited = self.accumulated_points + self.potential_roll_score
        self._emit(
            EventType.ZILCHED,
            player_id=player_id,
            forfeited=forfeited,
            consecutive_zilches=player.consecutive_zilches,
        )

        penalized = False
        if player.consecutive_zilches >= self.options.zilch_penalty_threshold:
            player.banked_score -= self.options.zilch_penalty
            player.consecutive_zilches = 0
            penalized = True
            self._emit(
                EventType.ZILCH_PENALTY,
                player_id=player_id,
                penalty=self.options.zilch_penalty,
                banked_score=player.banked_score,
            )

        self._next_turn()
        return penalized

    def free_roll(self, player_id: str) -> None:
        """
        Hot dice: every die is scored or locked, so roll all six again.

        The current selection's points are kept and the turn continues.

        Raises:
            OutOfTurn, GameAlreadyOver,
            IllegalTransition: Some die is neither scored nor locked.
        """
        self._require_turn(player_id)
        if not all_resolved(self.dice):
            raise IllegalTransition("A free roll needs every die scored")

        self.accumulated_points += self.potential_roll_score
        self.potential_roll_score = 0
        self.last_outcome = None
        self.dice = self.pool.roll_all()
        self.rolls_this_turn += 1

        self._emit(
            EventType.FREE_ROLL,
            player_id=player_id,
            accumulated_points=self.accumulated_points,
            dice=[d.value for d in self.dice],
        )

    # -------------------------------------------------------------------------
    # Derived State
    # -------------------------------------------------------------------------

    @property
    def turn_total(self) -> int:
        return self.accumulated_points + self.potential_roll_score

    def _has_scored_dice(self) -> bool:
        return any(d.scored for d in self.dice)

    def _roll_can_score(self) -> bool:
        """Whether any combination exists among the dice still in play."""
        mask = [die.available for die in self.dice]
        outcome = evaluate(mask, [replace(d) for d in self.dice])
        return outcome.kind == OutcomeKind.OPTIONS

    def _busted(self) -> bool:
        return self.last_outcome is not None and self.last_outcome.is_bust

    def can_bank(self) -> bool:
        """Bank is offered once the turn total reaches the threshold with a scoring selection."""
        return (
            self.phase == GamePhase.AWAITING_ACTION
            and self.turn_total >= self.options.min_bank_points
            and self._has_scored_dice()
            and not self._busted()
        )

    def can_roll_more(self) -> bool:
        return (
            self.phase == GamePhase.AWAITING_ACTION
            and self._has_scored_dice()
            and rollable_count(self.dice) > 0
        )

    def can_free_roll(self) -> bool:
        return (
            self.phase == GamePhase.AWAITING_ACTION
            and bool(self.dice)
            and all_resolved(self.dice)
        )

    def can_zilch(self) -> bool:
        return self.phase == GamePhase.AWAITING_ACTION and self._busted()

    def final_scores(self) -> list[dict]:
        """Players ordered by banked score, highest first."""
        ranked = sorted(self.players, key=lambda p: -p.banked_score)
        return [
            {"id": p.id, "name": p.name, "number": p.number, "banked_score": p.banked_score}
            for p in ranked
        ]

    def get_state(self, for_player_id: Optional[str] = None) -> dict:
        """
        Get the full game state.

        Nothing is hidden in Zilch, so every player gets the same data
        apart from `is_your_turn`.

        Args:
            for_player_id: The player who will receive this state.

        Returns:
            Dict suitable for JSON serialization.
        """
        current = self.current_player()
        is_current = current is not None and current.id == for_player_id
        winner = self.get_player(self.winner_id) if self.winner_id else None

        return {
            "game_id": self.game_id,
            "phase": self.phase.value,
            "players": [p.to_dict() for p in self.players],
            "current_player_id": current.id if current else None,
            "current_player_number": current.number if current else None,
            "is_your_turn": is_current and self.phase == GamePhase.AWAITING_ACTION,
            "dice": dice_to_dict(self.dice),
            "accumulated_points": self.accumulated_points,
            "potential_roll_score": self.potential_roll_score,
            "turn_total": self.turn_total,
            "rolls_this_turn": self.rolls_this_turn,
            "last_outcome": self.last_outcome.to_dict() if self.last_outcome else None,
            "score_limit": self.options.score_limit,
            "winner_id": self.winner_id,
            "winner_number": winner.number if winner else None,
            "can_bank": self.can_bank(),
            "can_roll_more": self.can_roll_more(),
            "can_free_roll": self.can_free_roll(),
            "can_zilch": self.can_zilch(),
            "history_length": len(self.history),
            "last_event": self.history[-1].to_dict() if self.history else None,
        }
