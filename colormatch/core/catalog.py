"""
Mode & Shape Catalog
====================

Fixed difficulty tiers and tile shapes. These are compile-time constants and
are not configurable from game_config.yaml.
"""

from __future__ import annotations

from enum import Enum
from typing import Tuple


class Mode(Enum):
    """
    Difficulty tier controlling grid size and round duration.

    Values are the lower-case names used in persisted leaderboard records.
    """
    EASY = "easy"
    MODERATE = "moderate"
    HARD = "hard"

    @property
    def grid_size(self) -> int:
        """Side length of the square tile grid."""
        return _GRID_SIZES[self]

    @property
    def grid_count(self) -> int:
        """Total number of tiles per round."""
        return self.grid_size * self.grid_size

    @property
    def round_duration(self) -> int:
        """Round countdown length in whole seconds."""
        return _ROUND_DURATIONS[self]

    @property
    def title(self) -> str:
        return self.value.capitalize()

    @property
    def subtitle(self) -> str:
        return f"{self.grid_size} × {self.grid_size} Grid"

    @classmethod
    def parse(cls, value) -> "Mode":
        """Accept a Mode, its value or its name (any case)."""
        if isinstance(value, cls):
            return value
        text = str(value).strip().lower()
        for mode in cls:
            if mode.value == text:
                return mode
        raise ValueError(f"Unknown mode: {value!r}")


_GRID_SIZES = {Mode.EASY: 3, Mode.MODERATE: 5, Mode.HARD: 7}
_ROUND_DURATIONS = {Mode.EASY: 15, Mode.MODERATE: 25, Mode.HARD: 35}

# Largest grid of any mode, used to size fixed observation arrays
MAX_GRID_COUNT = max(mode.grid_count for mode in Mode)


class Shape(Enum):
    """Tile shape, only meaningful when shape-mode is enabled."""
    CIRCLE = "circle"
    DIAMOND = "diamond"
    TRIANGLE = "triangle"
    STAR = "star"

    @property
    def index(self) -> int:
        """Stable integer id (declaration order)."""
        return ALL_SHAPES.index(self)


ALL_SHAPES: Tuple[Shape, ...] = tuple(Shape)
