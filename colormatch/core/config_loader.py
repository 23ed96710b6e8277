"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml

from colormatch.core.errors import ConfigError


LEADERBOARD_POLICIES = ("upsert_best", "append_all")
AUTO_SAVE_POLICIES = ("off", "on_correct")


@dataclass(frozen=True)
class PaletteConfig:
    """Per-round color pool settings."""
    min_colors: int                            # Pool size floor
    extra_colors: int                          # Pool = max(grid_count + extra, min)
    saturation: Tuple[float, float]            # Uniform range
    brightness: Tuple[float, float]            # Uniform range
    fallback_color: Tuple[float, float, float]  # HSV used when the pool is empty

    def pool_size(self, grid_count: int) -> int:
        """Number of colors to generate for a grid of ``grid_count`` tiles."""
        return max(grid_count + self.extra_colors, self.min_colors)


@dataclass(frozen=True)
class ScoringConfig:
    """Points awarded per correct tap."""
    base_points: int
    fast_seconds: int
    fast_bonus: int
    quick_seconds: int
    quick_bonus: int
    streak_bonuses: Tuple[Tuple[int, int], ...]  # (threshold, bonus) pairs

    def streak_bonus_for(self, streak: int) -> int:
        """Bonus for reaching exactly ``streak``, or 0."""
        for threshold, bonus in self.streak_bonuses:
            if threshold == streak:
                return bonus
        return 0


@dataclass(frozen=True)
class RoundsConfig:
    """Run length."""
    max_rounds: int


@dataclass(frozen=True)
class TimingConfig:
    """Tick granularity and transient flag lifetimes (seconds)."""
    tick_interval: float
    wrong_flash_seconds: float
    toast_seconds: float
    celebration_seconds: float


@dataclass(frozen=True)
class LeaderboardConfig:
    """Leaderboard policy and limits."""
    policy: str
    upsert_cap: int
    append_cap: int
    top_n: int
    fallback_name: str
    auto_save: str
    save_on_exit: bool

    @property
    def cap(self) -> int:
        """Retained entry count for the active policy."""
        return self.upsert_cap if self.policy == "upsert_best" else self.append_cap


@dataclass(frozen=True)
class EnvConfig:
    """Gymnasium environment parameters."""
    seconds_per_step: float
    max_steps: int


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    palette: PaletteConfig
    scoring: ScoringConfig
    rounds: RoundsConfig
    timing: TimingConfig
    leaderboard: LeaderboardConfig
    env: EnvConfig


def _parse_range(data, name: str) -> Tuple[float, float]:
    """Parse a [low, high] pair from YAML."""
    if not isinstance(data, (list, tuple)) or len(data) != 2:
        raise ConfigError(f"{name} must have 2 values [low, high], got {data}")
    return (float(data[0]), float(data[1]))


def _parse_hsv(data) -> Tuple[float, float, float]:
    """Parse an HSV triple from YAML."""
    if not isinstance(data, (list, tuple)) or len(data) != 3:
        raise ConfigError(f"Color must have 3 values [H, S, V], got {data}")
    return (float(data[0]), float(data[1]), float(data[2]))


def _parse_streak_bonuses(data: Optional[Dict]) -> Tuple[Tuple[int, int], ...]:
    """Parse the threshold -> bonus map, sorted by threshold."""
    if data is None:
        return ()
    if not isinstance(data, dict):
        raise ConfigError(f"streak_bonuses must be a mapping, got {data!r}")
    return tuple(sorted((int(k), int(v)) for k, v in data.items()))


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    palette = config.palette
    if palette.min_colors < 1:
        raise ConfigError(f"palette.min_colors must be >= 1, got {palette.min_colors}")
    for name, (low, high) in (("saturation", palette.saturation), ("brightness", palette.brightness)):
        if not 0.0 <= low <= high <= 1.0:
            raise ConfigError(f"palette.{name} must satisfy 0 <= low <= high <= 1, got {(low, high)}")

    scoring = config.scoring
    if scoring.fast_seconds > scoring.quick_seconds:
        raise ConfigError(
            f"scoring.fast_seconds ({scoring.fast_seconds}) must not exceed "
            f"quick_seconds ({scoring.quick_seconds})"
        )
    if any(threshold < 1 for threshold, _ in scoring.streak_bonuses):
        raise ConfigError("streak bonus thresholds must be >= 1")

    if config.rounds.max_rounds < 1:
        raise ConfigError(f"rounds.max_rounds must be >= 1, got {config.rounds.max_rounds}")

    if config.timing.tick_interval <= 0:
        raise ConfigError("timing.tick_interval must be positive")

    board = config.leaderboard
    if board.policy not in LEADERBOARD_POLICIES:
        raise ConfigError(f"leaderboard.policy must be one of {LEADERBOARD_POLICIES}, got '{board.policy}'")
    if board.auto_save not in AUTO_SAVE_POLICIES:
        raise ConfigError(f"leaderboard.auto_save must be one of {AUTO_SAVE_POLICIES}, got '{board.auto_save}'")
    if min(board.upsert_cap, board.append_cap, board.top_n) < 1:
        raise ConfigError("leaderboard caps and top_n must be >= 1")
    if not board.fallback_name.strip():
        raise ConfigError("leaderboard.fallback_name must not be blank")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ConfigError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    try:
        palette_data = raw["palette"]
        palette = PaletteConfig(
            min_colors=int(palette_data.get("min_colors", 90)),
            extra_colors=int(palette_data.get("extra_colors", 10)),
            saturation=_parse_range(palette_data.get("saturation", [0.70, 0.95]), "saturation"),
            brightness=_parse_range(palette_data.get("brightness", [0.75, 0.95]), "brightness"),
            fallback_color=_parse_hsv(palette_data.get("fallback_color", [2 / 3, 1.0, 1.0]))
        )

        scoring_data = raw["scoring"]
        scoring = ScoringConfig(
            base_points=int(scoring_data["base_points"]),
            fast_seconds=int(scoring_data["fast_seconds"]),
            fast_bonus=int(scoring_data["fast_bonus"]),
            quick_seconds=int(scoring_data["quick_seconds"]),
            quick_bonus=int(scoring_data["quick_bonus"]),
            streak_bonuses=_parse_streak_bonuses(scoring_data.get("streak_bonuses"))
        )

        rounds = RoundsConfig(max_rounds=int(raw["rounds"]["max_rounds"]))

        timing_data = raw.get("timing", {})
        timing = TimingConfig(
            tick_interval=float(timing_data.get("tick_interval", 0.2)),
            wrong_flash_seconds=float(timing_data.get("wrong_flash_seconds", 0.3)),
            toast_seconds=float(timing_data.get("toast_seconds", 1.1)),
            celebration_seconds=float(timing_data.get("celebration_seconds", 0.5))
        )

        board_data = raw.get("leaderboard", {})
        leaderboard = LeaderboardConfig(
            policy=str(board_data.get("policy", "upsert_best")),
            upsert_cap=int(board_data.get("upsert_cap", 100)),
            append_cap=int(board_data.get("append_cap", 50)),
            top_n=int(board_data.get("top_n", 10)),
            fallback_name=str(board_data.get("fallback_name", "Player")),
            auto_save=str(board_data.get("auto_save", "on_correct")),
            save_on_exit=bool(board_data.get("save_on_exit", True))
        )

        env_data = raw.get("env", {})
        env = EnvConfig(
            seconds_per_step=float(env_data.get("seconds_per_step", 1.0)),
            max_steps=int(env_data.get("max_steps", 500))
        )
    except (KeyError, TypeError, AttributeError) as exc:
        raise ConfigError(f"Malformed config {config_path}: {exc!r}") from exc

    config = GameConfig(
        palette=palette,
        scoring=scoring,
        rounds=rounds,
        timing=timing,
        leaderboard=leaderboard,
        env=env
    )

    _validate_config(config)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
