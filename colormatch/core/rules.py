"""
Match Rules
===========

Win condition for a tapped tile.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from colormatch.core.rounds import RoundLayout, Tile


def is_correct(tile: "Tile", round: "RoundLayout") -> bool:
    """
    Whether ``tile`` satisfies the round's win condition.

    ``round`` may be anything exposing ``target_color``, ``target_shape`` and
    ``shape_mode_enabled`` (a RoundLayout or a RoundState snapshot).
    """
    if round.shape_mode_enabled:
        return tile.color == round.target_color and tile.shape == round.target_shape
    return tile.color == round.target_color


def winning_tiles(round: "RoundLayout") -> List["Tile"]:
    """All tiles that would win the round (normally exactly one)."""
    return [tile for tile in round.tiles if is_correct(tile, round)]
