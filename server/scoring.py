"""
Scoring engine for Zilch.

Maps a selection over the six dice to the scoring combinations it contains.
Only selected dice that are still available count; dice locked by an earlier
commit this turn are ignored.

Evaluation order:
    1. Whole-set combinations (One to Six, Three Pairs). These need all six
       dice and exclude everything else.
    2. Per-face rules from FACE_RULES, each face producing at most one option.
    3. If nothing scored: six selected dice earn the "No scoring dice"
       consolation, a selection that leaves nothing to roll is a bust, and
       anything else is still waiting for the player to pick dice.

``evaluate`` recomputes every die's ``scored`` flag from scratch, so calling
it repeatedly with the same inputs always gives the same answer.
"""

from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence

from constants import (
    FACE_NAMES,
    NO_SCORING_DICE_POINTS,
    NUMBER_OF_DICE,
    SET_BASE_POINTS,
    SET_ONLY_FACES,
    SINGLE_FACE_POINTS,
    STRAIGHT_POINTS,
    THREE_PAIRS_POINTS,
)
from dice import Die, locked_count
from errors import InvalidSelection

AWAITING_SELECTION_MESSAGE = "Choose some dice to see your options"
ZILCH_MESSAGE = "Zilch!"


@dataclass(frozen=True)
class ScoringOption:
    """One scoring combination found in a selection."""

    label: str
    points: int

    def to_dict(self) -> dict:
        return {"label": self.label, "points": self.points}


class OutcomeKind(str, Enum):
    """
    Result of evaluating a selection.

    OPTIONS: at least one combination scored.
    BUST: nothing scores and no dice would be left to roll.
    AWAITING_SELECTION: nothing scores yet, but the selection is partial.
    """

    OPTIONS = "options"
    BUST = "bust"
    AWAITING_SELECTION = "awaiting_selection"


@dataclass(frozen=True)
class ScoringOutcome:
    """Tagged result of ``evaluate``. A BUST carries a single zero-point "Zilch!" option."""

    kind: OutcomeKind
    options: tuple[ScoringOption, ...] = ()
    message: Optional[str] = None

    @classmethod
    def of(cls, options: Sequence[ScoringOption]) -> "ScoringOutcome":
        return cls(kind=OutcomeKind.OPTIONS, options=tuple(options))

    @classmethod
    def bust(cls) -> "ScoringOutcome":
        return cls(
            kind=OutcomeKind.BUST,
            options=(ScoringOption(ZILCH_MESSAGE, 0),),
            message=ZILCH_MESSAGE,
        )

    @classmethod
    def awaiting_selection(cls) -> "ScoringOutcome":
        return cls(kind=OutcomeKind.AWAITING_SELECTION, message=AWAITING_SELECTION_MESSAGE)

    @property
    def is_bust(self) -> bool:
        return self.kind == OutcomeKind.BUST

    @property
    def total_points(self) -> int:
        return sum(option.points for option in self.options)

    def to_dict(self) -> dict:
        return {
            "kind": self.kind.value,
            "options": [option.to_dict() for option in self.options],
            "total_points": self.total_points,
            "is_bust": self.is_bust,
            "message": self.message,
        }


# =============================================================================
# Rule Table
# =============================================================================


def _plural(face: int) -> str:
    name = FACE_NAMES[face]
    return f"{name}es" if name.endswith("x") else f"{name}s"


@dataclass(frozen=True)
class WholeSetRule:
    """A combination that uses all six selected dice."""

    label: str
    points: int
    matches: Callable[[Counter], bool]


@dataclass(frozen=True)
class FaceRule:
    """
    Scoring for a group of faces, applied independently per face.

    Attributes:
        faces: Faces this rule covers, in evaluation order.
        min_count: Fewest dice of a face that score.
        points: (face, count) -> points.
        label: (face, count) -> display label.
    """

    faces: tuple[int, ...]
    min_count: int
    points: Callable[[int, int], int]
    label: Callable[[int, int], str]


def _is_straight(counts: Counter) -> bool:
    return all(counts[face] == 1 for face in FACE_NAMES)


def _is_three_pairs(counts: Counter) -> bool:
    return sum(1 for count in counts.values() if count == 2) == 3


def _set_points(face: int, count: int) -> int:
    return face * 100 * (count - 2)


def _set_label(face: int, count: int) -> str:
    return f"{count} {_plural(face)}"


def _single_face_points(face: int, count: int) -> int:
    # One or two dice score per die; three or more become a set
    if count < 3:
        return SINGLE_FACE_POINTS[face] * count
    return SET_BASE_POINTS[face] * (count - 2)


def _single_face_label(face: int, count: int) -> str:
    if count == 1:
        return f"Single {FACE_NAMES[face]}"
    return f"{count} {_plural(face)}"


WHOLE_SET_RULES: tuple[WholeSetRule, ...] = (
    WholeSetRule(label="One to Six", points=STRAIGHT_POINTS, matches=_is_straight),
    WholeSetRule(label="Three Pairs", points=THREE_PAIRS_POINTS, matches=_is_three_pairs),
)

FACE_RULES: tuple[FaceRule, ...] = (
    FaceRule(faces=SET_ONLY_FACES, min_count=3, points=_set_points, label=_set_label),
    FaceRule(
        faces=tuple(SINGLE_FACE_POINTS),
        min_count=1,
        points=_single_face_points,
        label=_single_face_label,
    ),
)


# =============================================================================
# Evaluation
# =============================================================================


def validate_mask(selection_mask, dice: Sequence[Die], allow_locked: bool = True) -> list[bool]:
    """
    Check a client-supplied selection mask.

    Args:
        selection_mask: Expected to be a list of six booleans.
        dice: Current dice.
        allow_locked: If False, selecting a locked die is rejected.

    Returns:
        The mask as a list of bools.

    Raises:
        InvalidSelection: Wrong type or length, or a locked die selected
            when allow_locked is False.
    """
    if not isinstance(selection_mask, (list, tuple)):
        raise InvalidSelection("Dice selection must be a list")
    if len(selection_mask) != len(dice):
        raise InvalidSelection(
            f"Dice selection must have {len(dice)} entries, got {len(selection_mask)}"
        )
    if not all(isinstance(selected, bool) for selected in selection_mask):
        raise InvalidSelection("Dice selection entries must be true or false")

    if not allow_locked:
        for i, (selected, die) in enumerate(zip(selection_mask, dice)):
            if selected and not die.available:
                raise InvalidSelection(f"Die {i} is locked for the rest of the turn")

    return list(selection_mask)


def count_faces(selection_mask: Sequence[bool], dice: Sequence[Die]) -> Counter:
    """Histogram of face values over selected, available dice."""
    return Counter(
        die.value
        for selected, die in zip(selection_mask, dice)
        if selected and die.available
    )


def _mark_scored(selection_mask: Sequence[bool], dice: Sequence[Die], face: Optional[int] = None) -> None:
    for selected, die in zip(selection_mask, dice):
        if selected and die.available and (face is None or die.value == face):
            die.scored = True


def evaluate(selection_mask: Sequence[bool], dice: Sequence[Die]) -> ScoringOutcome:
    """
    Evaluate a selection of dice.

    Side effect: each die's ``scored`` flag is reset, then set for the dice
    that make up the returned combinations.

    Args:
        selection_mask: One bool per die; True means selected.
        dice: The current dice, in position order.

    Returns:
        ScoringOutcome describing the combinations, a bust, or a partial selection.
    """
    for die in dice:
        die.scored = False

    counts = count_faces(selection_mask, dice)
    selected_count = sum(counts.values())

    if selected_count == NUMBER_OF_DICE:
        for rule in WHOLE_SET_RULES:
            if rule.matches(counts):
                _mark_scored(selection_mask, dice)
                return ScoringOutcome.of([ScoringOption(rule.label, rule.points)])

    options = []
    for rule in FACE_RULES:
        for face in rule.faces:
            count = counts[face]
            if count >= rule.min_count:
                options.append(ScoringOption(rule.label(face, count), rule.points(face, count)))
                _mark_scored(selection_mask, dice, face)

    if options:
        return ScoringOutcome.of(options)

    if selected_count == NUMBER_OF_DICE:
        _mark_scored(selection_mask, dice)
        return ScoringOutcome.of([ScoringOption("No scoring dice", NO_SCORING_DICE_POINTS)])

    if selected_count + locked_count(dice) == NUMBER_OF_DICE:
        return ScoringOutcome.bust()

    return ScoringOutcome.awaiting_selection()
