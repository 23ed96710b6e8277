"""
Color Match Core - the round and scoring engine.

This module provides the game state machine, round generation, scoring,
leaderboard persistence and a Gymnasium wrapper for automated players.

Main exports:
- ColorMatchGame: The engine a UI shell drives (start_game / tap / tick)
- RoundState: Immutable snapshot published on every state change
- RoundGenerator: Seedable tile-grid generator
- is_correct: Win condition for a tapped tile
- ScoreTracker: Base, speed and streak scoring
- BestScoreLeaderboard / AppendLeaderboard: Leaderboard policies
- ColorMatchEnv: Gymnasium environment
- GameConfig: Configuration loaded from game_config.yaml
"""

from colormatch.core.config_loader import GameConfig, load_config
from colormatch.core.catalog import Mode, Shape
from colormatch.core.clock import ManualClock, SystemClock
from colormatch.core.errors import ColorMatchError, ConfigError, GameNotStartedError
from colormatch.core.palette import Color, generate_distinct_colors
from colormatch.core.rounds import RoundGenerator, RoundLayout, Tile
from colormatch.core.rules import is_correct
from colormatch.core.scoring import Bonus, BonusKind, ScoreEvent, ScoreTracker
from colormatch.core.state_snapshot import Phase, RoundState
from colormatch.core.game import ColorMatchGame
from colormatch.core.leaderboard import (
    AppendLeaderboard,
    BestScoreLeaderboard,
    JsonFileStorage,
    MemoryStorage,
    ScoreEntry,
    make_leaderboard,
)
from colormatch.core.env_gym import ColorMatchEnv

__all__ = [
    "GameConfig",
    "load_config",
    "Mode",
    "Shape",
    "ManualClock",
    "SystemClock",
    "ColorMatchError",
    "ConfigError",
    "GameNotStartedError",
    "Color",
    "generate_distinct_colors",
    "RoundGenerator",
    "RoundLayout",
    "Tile",
    "is_correct",
    "Bonus",
    "BonusKind",
    "ScoreEvent",
    "ScoreTracker",
    "Phase",
    "RoundState",
    "ColorMatchGame",
    "AppendLeaderboard",
    "BestScoreLeaderboard",
    "JsonFileStorage",
    "MemoryStorage",
    "ScoreEntry",
    "make_leaderboard",
    "ColorMatchEnv",
]
