"""
Palette Generator
=================

Produces evenly hue-spaced colors for a round. Saturation and brightness are
jittered independently per color, so two rounds never share a palette.
"""

from __future__ import annotations

import colorsys
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from colormatch.core.config_loader import GameConfig, get_config


@dataclass(frozen=True)
class Color:
    """
    HSV color with components in [0, 1].

    Equality is exact float equality. Matching never uses a tolerance, so a
    decoy is only ever confused with the target when it is the very same value.
    """
    hue: float
    saturation: float
    brightness: float

    def to_rgb(self) -> Tuple[int, int, int]:
        """8-bit RGB tuple for rendering."""
        r, g, b = colorsys.hsv_to_rgb(self.hue % 1.0, self.saturation, self.brightness)
        return (int(round(r * 255)), int(round(g * 255)), int(round(b * 255)))

    def to_hex(self) -> str:
        return "#{:02x}{:02x}{:02x}".format(*self.to_rgb())

    @classmethod
    def from_hsv(cls, hsv) -> "Color":
        h, s, v = hsv
        return cls(float(h), float(s), float(v))


def generate_distinct_colors(
    count: int,
    rng: random.Random,
    config: Optional[GameConfig] = None
) -> List[Color]:
    """
    Generate ``count`` colors evenly spaced around the hue circle.

    Args:
        count: Number of colors. Zero or negative yields an empty list.
        rng: Random source for saturation/brightness jitter.
        config: Game configuration. Uses default if None.

    Returns:
        Colors in hue order (hue = index / count).
    """
    if count <= 0:
        return []
    if config is None:
        config = get_config()

    sat_low, sat_high = config.palette.saturation
    bri_low, bri_high = config.palette.brightness

    colors: List[Color] = []
    for i in range(count):
        colors.append(Color(
            hue=i / count,
            saturation=rng.uniform(sat_low, sat_high),
            brightness=rng.uniform(bri_low, bri_high)
        ))
    return colors


def fallback_color(config: Optional[GameConfig] = None) -> Color:
    """Fixed substitute used when a round's palette runs out."""
    if config is None:
        config = get_config()
    return Color.from_hsv(config.palette.fallback_color)
