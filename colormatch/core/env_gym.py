"""
Gymnasium Environment Wrapper
=============================

Provides a standard Gymnasium interface to the Color Match engine.
Reward is always 0.0 - agents compute their own from info.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple, Union

import numpy as np
import gymnasium as gym
from gymnasium import spaces

from colormatch.core.catalog import ALL_SHAPES, MAX_GRID_COUNT, Mode
from colormatch.core.clock import ManualClock
from colormatch.core.config_loader import GameConfig, load_config
from colormatch.core.events import RunCompleted
from colormatch.core.game import ColorMatchGame


class ColorMatchEnv(gym.Env):
    """
    Color Match as a Gymnasium environment.

    Action Space:
        Discrete(grid_count): index of the tile to tap.

    Observation Space:
        Dict of the arrays produced by ``RoundState.to_obs_dict()``.

    Time:
        Each step advances an internal ManualClock by ``seconds_per_step``
        before the tap, so slow agents see speed bonuses vanish and rounds
        time out exactly as a human would.

    Episode end:
        terminated when a run completes (the round counter wraps),
        truncated after ``max_steps`` steps.
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        mode: Union[Mode, str] = Mode.EASY,
        shape_mode: bool = False,
        config_path: Optional[str] = None,
        config: Optional[GameConfig] = None,
        seconds_per_step: Optional[float] = None,
        max_steps: Optional[int] = None,
        debug: bool = False,
    ):
        """
        Initialize Color Match environment.

        Args:
            mode: Difficulty tier.
            shape_mode: Require shape as well as color.
            config_path: Path to game_config.yaml. Uses default if None.
            config: Preloaded configuration (takes precedence over config_path).
            seconds_per_step: Simulated think time per step. Config value if None.
            max_steps: Truncation horizon. Config value if None.
            debug: If True, prints a trace of every step.
        """
        super().__init__()

        self._config = config if config is not None else load_config(config_path)
        self._mode = Mode.parse(mode)
        self._shape_mode = bool(shape_mode)
        self._seconds_per_step = (
            self._config.env.seconds_per_step if seconds_per_step is None else float(seconds_per_step)
        )
        self._max_steps = self._config.env.max_steps if max_steps is None else int(max_steps)
        self._debug = debug

        self._clock = ManualClock()
        self._game = ColorMatchGame(config=self._config, clock=self._clock)
        self._game.subscribe(self._on_event)
        self._steps = 0
        self._run_final_score: Optional[int] = None

        self.action_space = spaces.Discrete(self._mode.grid_count)
        self.observation_space = self._build_observation_space()

    def _build_observation_space(self) -> spaces.Dict:
        """Build the observation space definition."""
        int_max = np.iinfo(np.int32).max
        return spaces.Dict({
            "target_rgb": spaces.Box(low=0, high=255, shape=(3,), dtype=np.uint8),
            "target_hsv": spaces.Box(low=0.0, high=1.0, shape=(3,), dtype=np.float32),
            "target_shape": spaces.Box(low=0, high=len(ALL_SHAPES) - 1, shape=(), dtype=np.int32),
            "shape_mode": spaces.Box(low=0, high=1, shape=(), dtype=np.int8),
            "grid_size": spaces.Box(low=0, high=7, shape=(), dtype=np.int32),
            "time_left": spaces.Box(low=0, high=int_max, shape=(), dtype=np.int32),
            "round_index": spaces.Box(low=1, high=self._config.rounds.max_rounds, shape=(), dtype=np.int32),
            "score": spaces.Box(low=0, high=np.iinfo(np.int64).max, shape=(), dtype=np.int64),
            "streak": spaces.Box(low=0, high=int_max, shape=(), dtype=np.int32),
            "tiles_rgb": spaces.Box(low=0, high=255, shape=(MAX_GRID_COUNT, 3), dtype=np.uint8),
            "tiles_hsv": spaces.Box(low=0.0, high=1.0, shape=(MAX_GRID_COUNT, 3), dtype=np.float32),
            "tile_shape": spaces.Box(low=-1, high=len(ALL_SHAPES) - 1, shape=(MAX_GRID_COUNT,), dtype=np.int16),
            "tile_mask": spaces.MultiBinary(MAX_GRID_COUNT),
        })

    def _on_event(self, event: object) -> None:
        if isinstance(event, RunCompleted):
            self._run_final_score = event.final_score

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        Reset the environment.

        Args:
            seed: Random seed for reproducible rounds.
            options: Optional ``player_name``.

        Returns:
            (observation, info) tuple.
        """
        super().reset(seed=seed)
        if seed is not None:
            self._game.reseed(seed)

        options = options or {}
        self._steps = 0
        self._run_final_score = None
        self._game.start_game(self._mode, self._shape_mode, options.get("player_name"))

        info = self._game.get_info()
        info["delta_score"] = 0
        return self._game.state.to_obs_dict(), info

    def step(
        self,
        action: Union[int, np.ndarray]
    ) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        Advance the clock, then tap the tile at index ``action``.

        Returns:
            (observation, reward, terminated, truncated, info) tuple.
            Reward is always 0.0.
        """
        if isinstance(action, np.ndarray):
            action = int(action.item())
        index = int(action)

        score_before = self._game.score
        self._clock.advance(self._seconds_per_step)
        timed_out = self._game.tick()

        result = None
        tiles = self._game.tiles
        if not timed_out and 0 <= index < len(tiles):
            result = self._game.tap(tiles[index].id)

        self._steps += 1
        terminated = self._run_final_score is not None
        truncated = not terminated and self._steps >= self._max_steps

        info = self._game.get_info()
        if terminated:
            info["final_score"] = self._run_final_score
            info["delta_score"] = self._run_final_score - score_before
        else:
            info["delta_score"] = self._game.score - score_before
        info["timed_out"] = timed_out
        info["tap_correct"] = bool(result is not None and result.correct)

        if self._debug:
            print(f"[DEBUG] Step {self._steps}: action={index}, tap_correct={info['tap_correct']}, "
                  f"delta_score={info['delta_score']}, timed_out={timed_out}")
            if terminated:
                print(f"[DEBUG] RUN COMPLETE: final_score={self._run_final_score}")

        return self._game.state.to_obs_dict(), 0.0, terminated, truncated, info

    def correct_action(self) -> int:
        """Index of the winning tile (for scripted baselines and tests)."""
        return self._game.layout.correct_index

    def close(self) -> None:
        self._game.close()

    @property
    def game(self) -> ColorMatchGame:
        """Access to underlying game (for debugging/tools)."""
        return self._game

    @property
    def config(self) -> GameConfig:
        """Game configuration."""
        return self._config
