"""
Dice pool for Zilch.

Six dice are rolled at the start of every turn. Dice committed to a scoring
combination are locked (``available=False``) and keep their face value until
the turn ends or the player takes a free roll; everything else is re-rolled.

Die flags:
    available: the die can still be rolled this turn.
    scored:    the die is part of the current (uncommitted) selection's
               scoring combinations. Never True for a locked die.
"""

import random
from dataclasses import dataclass
from typing import Iterable, Optional

from constants import DIE_FACES, NUMBER_OF_DICE


@dataclass
class Die:
    """
    A single die.

    Attributes:
        value: Face value, 1-6.
        available: Whether the die can still be rolled this turn.
        scored: Whether the die counts toward the currently selected combination.
    """

    value: int
    available: bool = True
    scored: bool = False

    def to_dict(self) -> dict:
        """Convert die to dictionary for JSON serialization."""
        return {
            "value": self.value,
            "available": self.available,
            "scored": self.scored,
        }


class DicePool:
    """
    Source of dice rolls.

    Wraps its own random.Random so a seeded pool gives reproducible games
    without touching the module-level random state.
    """

    def __init__(self, seed: Optional[int] = None) -> None:
        """
        Initialize the pool.

        Args:
            seed: Optional seed for deterministic rolls. If None, a random
                  seed is generated and stored.
        """
        self.seed: int = seed if seed is not None else random.randint(0, 2**31 - 1)
        self._rng = random.Random(self.seed)

    def _face(self) -> int:
        return self._rng.randint(1, DIE_FACES)

    def pick_index(self, count: int) -> int:
        """Random index in range(count), drawn from the same seeded source."""
        return self._rng.randrange(count)

    def roll_all(self) -> list[Die]:
        """Roll a fresh set of six available dice."""
        return [Die(value=self._face()) for _ in range(NUMBER_OF_DICE)]

    def reroll(self, existing: Iterable[Die]) -> list[Die]:
        """
        Re-roll every available die, leaving locked dice untouched.

        The input dice are not modified; a new list is returned.

        Args:
            existing: Current dice in position order.

        Returns:
            New dice list. Available dice get a new value and scored=False;
            locked dice keep their value and stay locked.
        """
        result = []
        for die in existing:
            if die.available:
                result.append(Die(value=self._face()))
            else:
                result.append(Die(value=die.value, available=False, scored=False))
        return result


def all_resolved(dice: Iterable[Die]) -> bool:
    """True when every die is either scored or locked (hot dice)."""
    return all(die.scored or not die.available for die in dice)


def locked_count(dice: Iterable[Die]) -> int:
    """Number of dice locked by earlier commits this turn."""
    return sum(1 for die in dice if not die.available)


def rollable_count(dice: Iterable[Die]) -> int:
    """Number of dice that would be re-rolled if the current selection were committed."""
    return sum(1 for die in dice if die.available and not die.scored)


def dice_to_dict(dice: Iterable[Die]) -> list[dict]:
    return [die.to_dict() for die in dice]
