"""
Rule constants for Zilch.

This module is the single source of truth for dice counts and the point
values of every scoring combination. Turn-level settings (score limit,
zilch penalty, bank threshold) come from config.py and can be customized
via environment variables.

Standard Zilch Scoring:
    - One to Six (straight): 1500
    - Three Pairs: 1500
    - Three or more 2s, 3s, 4s, 6s: face x 100, doubled for each extra die
      beyond three (face x 100 x (count - 2))
    - Ones: 100 each for one or two, 1000 x (count - 2) for three or more
    - Fives: 50 each for one or two, 500 x (count - 2) for three or more
    - Six dice with nothing scoring: 500 consolation
"""

from config import config


# =============================================================================
# Dice
# =============================================================================

NUMBER_OF_DICE = 6
DIE_FACES = 6


# =============================================================================
# Combination Values
# =============================================================================

STRAIGHT_POINTS = 1500
THREE_PAIRS_POINTS = 1500
NO_SCORING_DICE_POINTS = 500

# Faces that only score as three or more of a kind
SET_ONLY_FACES: tuple[int, ...] = (2, 3, 4, 6)

# Singles/pairs value for faces that also score alone, and their set base
SINGLE_FACE_POINTS: dict[int, int] = {1: 100, 5: 50}
SET_BASE_POINTS: dict[int, int] = {1: 1000, 5: 500}

FACE_NAMES: dict[int, str] = {
    1: "one",
    2: "two",
    3: "three",
    4: "four",
    5: "five",
    6: "six",
}


# =============================================================================
# Turn Rules
# =============================================================================

DEFAULT_SCORE_LIMIT = config.game_defaults.score_limit
DEFAULT_MIN_BANK_POINTS = config.game_defaults.min_bank_points
DEFAULT_ZILCH_PENALTY = config.game_defaults.zilch_penalty
DEFAULT_ZILCH_PENALTY_THRESHOLD = config.game_defaults.zilch_penalty_threshold
