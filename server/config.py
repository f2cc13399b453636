"""
Centralized configuration for the Zilch dice server.

Configuration is loaded from (in order of precedence):
1. Environment variables
2. .env file (if exists)
3. Default values

Usage:
    from config import config
    print(config.PORT)
    print(config.game_defaults.score_limit)
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load .env file if it exists
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def get_env(key: str, default: str = "") -> str:
    """Get environment variable with default."""
    return os.environ.get(key, default)


def get_env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable."""
    val = os.environ.get(key, "").lower()
    if val in ("true", "1", "yes", "on"):
        return True
    if val in ("false", "0", "no", "off"):
        return False
    return default


def get_env_int(key: str, default: int = 0) -> int:
    """Get integer environment variable."""
    try:
        return int(os.environ.get(key, str(default)))
    except ValueError:
        return default


def get_env_optional_int(key: str) -> Optional[int]:
    """Get integer environment variable, or None when unset or not a number."""
    try:
        return int(os.environ[key])
    except (KeyError, ValueError):
        return None


@dataclass
class GameDefaults:
    """Default rule settings for new games."""
    score_limit: int = 10000
    players_per_game: int = 2
    min_bank_points: int = 300      # Bank button threshold (turn total)
    zilch_penalty: int = 500        # Deducted after too many zilches in a row
    zilch_penalty_threshold: int = 3


@dataclass
class ServerConfig:
    """Server configuration."""
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    ENVIRONMENT: str = "development"

    # Room settings
    ROOM_CODE_LENGTH: int = 4
    MAX_ROOMS: int = 500

    # Optional RNG seed for reproducible dice (tests, demos)
    DICE_SEED: Optional[int] = None

    # Game defaults
    game_defaults: GameDefaults = field(default_factory=GameDefaults)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Load configuration from environment variables."""
        return cls(
            HOST=get_env("HOST", "0.0.0.0"),
            PORT=get_env_int("PORT", 8000),
            DEBUG=get_env_bool("DEBUG", False),
            LOG_LEVEL=get_env("LOG_LEVEL", "INFO"),
            ENVIRONMENT=get_env("ENVIRONMENT", "development"),
            ROOM_CODE_LENGTH=get_env_int("ROOM_CODE_LENGTH", 4),
            MAX_ROOMS=get_env_int("MAX_ROOMS", 500),
            DICE_SEED=get_env_optional_int("DICE_SEED"),
            game_defaults=GameDefaults(
                score_limit=get_env_int("SCORE_LIMIT", 10000),
                players_per_game=get_env_int("PLAYERS_PER_GAME", 2),
                min_bank_points=get_env_int("MIN_BANK_POINTS", 300),
                zilch_penalty=get_env_int("ZILCH_PENALTY", 500),
                zilch_penalty_threshold=get_env_int("ZILCH_PENALTY_THRESHOLD", 3),
            ),
        )


# Global config instance - loaded once at module import
config = ServerConfig.from_env()
