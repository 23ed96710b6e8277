"""
Test suite for the observation arrays.

Ensures snapshots pack into correctly shaped and typed arrays, padded to
the largest grid.
"""

import numpy as np
import pytest

from colormatch.core.catalog import MAX_GRID_COUNT, Mode
from colormatch.core.env_gym import ColorMatchEnv


class TestObservationAPI:
    """Verify all observation space elements."""

    @pytest.fixture
    def env(self):
        """Create fresh environment for each test."""
        env = ColorMatchEnv(mode=Mode.MODERATE, shape_mode=True)
        yield env
        env.close()

    @pytest.fixture
    def obs_after_reset(self, env):
        """Get observation after reset."""
        obs, info = env.reset(seed=42)
        return obs

    # =========================================================================
    # Target
    # =========================================================================

    def test_target_rgb(self, obs_after_reset):
        assert obs_after_reset["target_rgb"].dtype == np.uint8
        assert obs_after_reset["target_rgb"].shape == (3,)

    def test_target_hsv(self, obs_after_reset):
        """target_hsv components should lie in [0, 1]."""
        hsv = obs_after_reset["target_hsv"]
        assert hsv.dtype == np.float32
        assert hsv.shape == (3,)
        assert np.all((hsv >= 0.0) & (hsv <= 1.0))

    def test_target_shape(self, obs_after_reset):
        assert obs_after_reset["target_shape"].dtype == np.int32
        assert obs_after_reset["target_shape"].shape == ()
        assert 0 <= int(obs_after_reset["target_shape"]) <= 3

    # =========================================================================
    # Scalars
    # =========================================================================

    def test_scalars(self, obs_after_reset):
        assert int(obs_after_reset["shape_mode"]) == 1
        assert int(obs_after_reset["grid_size"]) == 5
        assert int(obs_after_reset["time_left"]) == 25
        assert int(obs_after_reset["round_index"]) == 1
        assert obs_after_reset["score"].dtype == np.int64
        assert int(obs_after_reset["streak"]) == 0

    # =========================================================================
    # Tiles
    # =========================================================================

    def test_tile_arrays_padded(self, obs_after_reset):
        """Tile arrays are sized for the largest grid."""
        assert obs_after_reset["tiles_rgb"].shape == (MAX_GRID_COUNT, 3)
        assert obs_after_reset["tiles_hsv"].shape == (MAX_GRID_COUNT, 3)
        assert obs_after_reset["tile_shape"].shape == (MAX_GRID_COUNT,)
        assert obs_after_reset["tile_mask"].shape == (MAX_GRID_COUNT,)

    def test_tile_mask(self, obs_after_reset):
        """Only the real tiles are masked in; padding shape is -1."""
        mask = obs_after_reset["tile_mask"]
        assert mask.dtype == bool
        assert int(mask.sum()) == 25
        assert np.all(mask[:25])
        assert np.all(obs_after_reset["tile_shape"][25:] == -1)
        assert np.all(obs_after_reset["tiles_rgb"][25:] == 0)

    def test_correct_tile_matches_target(self, env, obs_after_reset):
        index = env.correct_action()

        np.testing.assert_array_equal(obs_after_reset["tiles_rgb"][index], obs_after_reset["target_rgb"])
        assert obs_after_reset["tile_shape"][index] == obs_after_reset["target_shape"]

    def test_observation_keys_match_space(self, env, obs_after_reset):
        assert set(obs_after_reset) == set(env.observation_space.spaces)

    # =========================================================================
    # Snapshot helpers
    # =========================================================================

    def test_snapshot_helpers(self, env, obs_after_reset):
        state = env.game.state

        assert state.progress == pytest.approx(1.0)
        assert state.prompt == "Match color + shape"
        assert not state.show_streak
        assert state.tile_by_id(state.tiles[0].id) == state.tiles[0]
        assert state.tile_by_id("missing") is None
