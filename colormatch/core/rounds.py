"""
Round Generator
===============

Builds the tile grid for a round: one target tile at a random position, the
rest filled with decoys drawn from a shuffled, oversized palette.
"""

from __future__ import annotations

import logging
import random
import uuid
from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Union

from colormatch.core.catalog import ALL_SHAPES, Mode, Shape
from colormatch.core.config_loader import GameConfig, get_config
from colormatch.core.palette import Color, fallback_color, generate_distinct_colors

logger = logging.getLogger(__name__)


def _new_tile_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Tile:
    """A single grid cell. Immutable for the lifetime of its round."""
    color: Color
    shape: Shape
    id: str = field(default_factory=_new_tile_id)


@dataclass(frozen=True)
class RoundLayout:
    """Target and tiles of one round."""
    mode: Mode
    shape_mode_enabled: bool
    target_color: Color
    target_shape: Shape
    tiles: Tuple[Tile, ...]
    correct_index: int

    @property
    def correct_tile(self) -> Tile:
        return self.tiles[self.correct_index]

    def find_tile(self, tile_id: str) -> Optional[Tile]:
        for tile in self.tiles:
            if tile.id == tile_id:
                return tile
        return None


class RoundGenerator:
    """
    Generates round layouts from an injectable random source.

    Two generators built with the same seed produce the same sequence of
    colors, shapes and correct positions (tile ids are always fresh).
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        rng: Union[random.Random, int, None] = None
    ):
        """
        Initialize round generator.

        Args:
            config: Game configuration. Uses default if None.
            rng: A ``random.Random`` instance or a seed. Random if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._rng = rng if isinstance(rng, random.Random) else random.Random(rng)
        self._fallback = fallback_color(config)

    @property
    def rng(self) -> random.Random:
        return self._rng

    def reseed(self, seed: Optional[int]) -> None:
        """Replace the random source with a freshly seeded one."""
        self._rng = random.Random(seed)

    def generate(self, mode: Mode, shape_mode_enabled: bool) -> RoundLayout:
        """
        Build a fresh round.

        Args:
            mode: Difficulty tier (grid size).
            shape_mode_enabled: Whether the win condition includes the shape.

        Returns:
            RoundLayout with exactly ``mode.grid_count`` tiles.
        """
        rng = self._rng
        grid_count = mode.grid_count

        palette = generate_distinct_colors(
            self._config.palette.pool_size(grid_count), rng, self._config
        )
        rng.shuffle(palette)

        target_color = palette.pop(0)
        target_shape = rng.choice(ALL_SHAPES)
        correct_index = rng.randrange(grid_count)

        tiles: List[Tile] = []
        for i in range(grid_count):
            if i == correct_index:
                tiles.append(Tile(target_color, target_shape))
                continue

            color = palette.pop(0) if palette else self._fallback
            shape = rng.choice(ALL_SHAPES)
            # Color-only rounds skip this guard, so a fallback decoy can still win
            if shape_mode_enabled and color == target_color and shape == target_shape:
                shape = rng.choice([s for s in ALL_SHAPES if s != target_shape])
            tiles.append(Tile(color, shape))

        logger.debug(
            "round generated mode=%s shape_mode=%s correct_index=%d pool_left=%d",
            mode.value, shape_mode_enabled, correct_index, len(palette)
        )

        return RoundLayout(
            mode=mode,
            shape_mode_enabled=shape_mode_enabled,
            target_color=target_color,
            target_shape=target_shape,
            tiles=tuple(tiles),
            correct_index=correct_index
        )
