"""
Errors
======

Exception types raised by the engine. Recoverable conditions (corrupt
leaderboard data, exhausted palettes, stray taps) never raise.
"""

from __future__ import annotations


class ColorMatchError(Exception):
    """Base class for engine errors."""


class ConfigError(ColorMatchError, ValueError):
    """game_config.yaml is malformed or inconsistent."""


class GameNotStartedError(ColorMatchError, RuntimeError):
    """An operation needs a running game but start_game() was never called."""
