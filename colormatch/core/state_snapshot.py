"""
State Snapshot
==============

Immutable view of the engine state handed to the presentation layer, plus a
packing into fixed-size numpy arrays for agents and renderers.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

import numpy as np

from colormatch.core.catalog import MAX_GRID_COUNT, Mode, Shape
from colormatch.core.palette import Color
from colormatch.core.rounds import Tile


class Phase(Enum):
    """Round state machine phases."""
    IN_ROUND = "in_round"
    EVALUATING = "evaluating"
    ROUND_WON = "round_won"
    TIMEOUT = "timeout"
    RUN_COMPLETE = "run_complete"


@dataclass(frozen=True)
class RoundState:
    """
    Complete round snapshot.

    ``generation`` increases every time a new tile set is generated; hosts can
    use it to key animations on round changes.
    """
    # Round definition
    mode: Mode
    shape_mode_enabled: bool
    target_color: Color
    target_shape: Shape
    tiles: Tuple[Tile, ...]

    # Timer
    deadline: float
    time_left: int

    # Run progress
    round_index: int
    max_rounds: int
    score: int
    streak: int
    phase: Phase
    generation: int
    player_name: str

    # Transient feedback flags
    wrong_flash: bool = False
    celebrating: bool = False
    toast: Optional[str] = None

    @property
    def progress(self) -> float:
        """Remaining time as a fraction of the round duration, in [0, 1]."""
        duration = self.mode.round_duration
        if duration <= 0:
            return 0.0
        return max(0.0, min(1.0, self.time_left / duration))

    @property
    def show_streak(self) -> bool:
        """Streak badge is shown from two consecutive hits on."""
        return self.streak >= 2

    @property
    def prompt(self) -> str:
        return "Match color + shape" if self.shape_mode_enabled else "Match this color"

    def tile_by_id(self, tile_id: str) -> Optional[Tile]:
        for tile in self.tiles:
            if tile.id == tile_id:
                return tile
        return None

    def to_obs_dict(self) -> Dict[str, np.ndarray]:
        """
        Convert to a dictionary of fixed-size arrays.

        Tile arrays are padded to the largest grid; ``tile_mask`` marks the
        real tiles. Padded shapes are -1.
        """
        tiles_rgb = np.zeros((MAX_GRID_COUNT, 3), dtype=np.uint8)
        tiles_hsv = np.zeros((MAX_GRID_COUNT, 3), dtype=np.float32)
        tile_shape = np.full((MAX_GRID_COUNT,), -1, dtype=np.int16)
        tile_mask = np.zeros((MAX_GRID_COUNT,), dtype=bool)

        for i, tile in enumerate(self.tiles):
            tiles_rgb[i] = tile.color.to_rgb()
            tiles_hsv[i] = (tile.color.hue, tile.color.saturation, tile.color.brightness)
            tile_shape[i] = tile.shape.index
            tile_mask[i] = True

        target = self.target_color
        return {
            "target_rgb": np.array(target.to_rgb(), dtype=np.uint8),
            "target_hsv": np.array(
                (target.hue, target.saturation, target.brightness), dtype=np.float32
            ),
            "target_shape": np.array(self.target_shape.index, dtype=np.int32),
            "shape_mode": np.array(int(self.shape_mode_enabled), dtype=np.int8),
            "grid_size": np.array(self.mode.grid_size, dtype=np.int32),
            "time_left": np.array(self.time_left, dtype=np.int32),
            "round_index": np.array(self.round_index, dtype=np.int32),
            "score": np.array(self.score, dtype=np.int64),
            "streak": np.array(self.streak, dtype=np.int32),
            "tiles_rgb": tiles_rgb,
            "tiles_hsv": tiles_hsv,
            "tile_shape": tile_shape,
            "tile_mask": tile_mask,
        }
