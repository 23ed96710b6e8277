"""
Tests for the round state machine: taps, timeouts, run wrap and
transient feedback flags.
"""

from dataclasses import replace

import pytest

from colormatch.core.catalog import Mode
from colormatch.core.clock import ManualClock
from colormatch.core.config_loader import load_config
from colormatch.core.errors import GameNotStartedError
from colormatch.core.events import (
    BonusAwarded,
    RoundTimedOut,
    RunCompleted,
    ScoreSaved,
    StateChanged,
    TapResult,
    Toast,
    WrongTap,
)
from colormatch.core.game import NEW_RUN_TOAST, SAVED_TOAST, TIMEOUT_TOAST, ColorMatchGame
from colormatch.core.leaderboard import MemoryStorage, make_leaderboard
from colormatch.core.state_snapshot import Phase


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def game(config, clock):
    game = ColorMatchGame(config=config, clock=clock, rng=42)
    game.start_game(Mode.EASY, player_name="Ada")
    return game


def correct_id(game):
    return game.layout.correct_tile.id


def wrong_id(game):
    index = (game.layout.correct_index + 1) % len(game.tiles)
    return game.tiles[index].id


class FailingStorage:
    """Storage whose writes always fail, like a full disk."""

    def read(self):
        return None

    def write(self, text):
        raise OSError("disk full")


class TestStartGame:
    """Test run initialization."""

    def test_initial_state(self, game):
        state = game.state

        assert state.round_index == 1
        assert state.score == 0
        assert state.streak == 0
        assert state.time_left == 15
        assert state.phase is Phase.IN_ROUND
        assert len(state.tiles) == 9

    @pytest.mark.parametrize("mode,count,seconds", [
        (Mode.EASY, 9, 15), (Mode.MODERATE, 25, 25), (Mode.HARD, 49, 35),
    ])
    def test_mode_grid_and_duration(self, config, mode, count, seconds):
        game = ColorMatchGame(config=config, clock=ManualClock(), rng=1)
        state = game.start_game(mode.value)

        assert len(state.tiles) == count
        assert state.time_left == seconds

    def test_blank_name_falls_back(self, config):
        game = ColorMatchGame(config=config, clock=ManualClock(), rng=1)
        game.start_game(Mode.EASY, player_name="   ")

        assert game.player_name == "Player"

    def test_restart_resets_score(self, game):
        game.tap(correct_id(game))
        game.start_game(Mode.MODERATE)

        assert game.score == 0
        assert game.round_index == 1
        assert len(game.tiles) == 25

    def test_unknown_mode_rejected(self, config):
        game = ColorMatchGame(config=config, clock=ManualClock(), rng=1)
        with pytest.raises(ValueError):
            game.start_game("extreme")


class TestBeforeStart:
    """Test calls made before start_game."""

    def test_state_raises(self, config):
        game = ColorMatchGame(config=config, clock=ManualClock())
        with pytest.raises(GameNotStartedError):
            game.state

    def test_save_raises(self, config):
        game = ColorMatchGame(config=config, clock=ManualClock())
        with pytest.raises(GameNotStartedError):
            game.save_score()

    def test_tap_and_tick_ignored(self, config):
        game = ColorMatchGame(config=config, clock=ManualClock())

        assert game.tap("nope") is None
        assert game.tick() is False


class TestCorrectTap:
    """Test scoring through the engine."""

    @pytest.mark.parametrize("wait,points", [(2.0, 4), (5.0, 3), (6.0, 1)])
    def test_speed_bonus_by_wait(self, game, clock, wait, points):
        """Elapsed 2/5/6 seconds give +3/+2/+0 on top of the base point."""
        clock.advance(wait)
        result = game.tap(correct_id(game))

        assert result.correct
        assert result.points == points
        assert game.score == points

    def test_fractional_wait_rounds_by_countdown(self, game, clock):
        """2.5s in, the countdown still shows 13, so elapsed is 2."""
        clock.advance(2.5)
        assert game.tap(correct_id(game)).points == 4

    def test_advances_round(self, game):
        generation = game.generation
        old_tiles = game.tiles

        result = game.tap(correct_id(game))

        assert result.round_index == 2
        assert result.next_round_needed
        assert game.round_index == 2
        assert game.generation == generation + 1
        assert game.tiles != old_tiles
        assert game.time_left() == 15

    def test_five_slow_taps(self, game, clock):
        """Streak bonuses on the 3rd and 5th correct tap only."""
        points = []
        for _ in range(5):
            clock.advance(10.0)
            points.append(game.tap(correct_id(game)).points)

        assert points == [1, 1, 3, 1, 6]
        assert game.score == 12
        assert game.streak == 5

    def test_bonus_events(self, game, clock):
        events = []
        game.subscribe(events.append)

        game.tap(correct_id(game))

        bonuses = [e for e in events if isinstance(e, BonusAwarded)]
        assert [b.label for b in bonuses] == ["⚡️ Speed Bonus +3"]
        assert isinstance(events[-1], TapResult)
        assert any(isinstance(e, StateChanged) for e in events)

    def test_celebration_flag(self, game, clock):
        game.tap(correct_id(game))
        assert game.celebrating

        game.tick(0.4)
        assert game.celebrating
        game.tick(0.6)
        assert not game.celebrating


class TestWrongTap:
    """Test misses."""

    def test_same_round_continues(self, game, clock):
        clock.advance(4.0)
        game.tap(correct_id(game))
        game.tap(correct_id(game))
        generation = game.generation
        tiles = game.tiles
        deadline = game.deadline

        result = game.tap(wrong_id(game))

        assert not result.correct
        assert result.points == 0
        assert game.streak == 0
        assert game.score == 7
        assert game.generation == generation
        assert game.tiles == tiles
        assert game.deadline == deadline
        assert game.round_index == 3

    def test_wrong_flash_clears(self, game):
        game.tap(wrong_id(game), now=0.0)
        assert game.wrong_flash

        game.tick(0.2)
        assert game.wrong_flash
        game.tick(0.31)
        assert not game.wrong_flash

    def test_stale_clear_is_noop(self, game):
        """A clear scheduled in an earlier round must not touch the current flag."""
        game.tap(wrong_id(game), now=0.0)
        game.tap(correct_id(game), now=0.1)
        assert not game.wrong_flash

        game.tap(wrong_id(game), now=0.2)
        game.tick(0.31)
        assert game.wrong_flash

        game.tick(0.6)
        assert not game.wrong_flash

    def test_repeated_miss_extends_flash(self, game):
        game.tap(wrong_id(game), now=0.0)
        game.tap(wrong_id(game), now=0.2)

        game.tick(0.31)
        assert game.wrong_flash
        game.tick(0.6)
        assert not game.wrong_flash

    def test_emits_wrong_tap(self, game):
        events = []
        game.subscribe(events.append)

        tile_id = wrong_id(game)
        game.tap(tile_id)

        assert WrongTap(tile_id, 1) in events


class TestTimeout:
    """Test countdown expiry."""

    def test_tick_before_deadline(self, game, clock):
        clock.advance(14.5)
        assert game.tick() is False
        assert game.time_left() == 1

    def test_timeout_resets_streak_keeps_score(self, game, clock):
        game.tap(correct_id(game))
        game.tap(correct_id(game))
        score = game.score
        generation = game.generation

        clock.advance(15.0)
        assert game.tick() is True

        assert game.streak == 0
        assert game.score == score
        assert game.round_index == 3
        assert game.generation == generation + 1
        assert game.toast == TIMEOUT_TOAST
        assert game.time_left() == 15

    def test_fires_once_per_round(self, game, clock):
        events = []
        game.subscribe(events.append)

        clock.advance(15.0)
        game.tick()
        game.tick()
        clock.advance(0.2)
        game.tick()

        assert sum(isinstance(e, RoundTimedOut) for e in events) == 1

    def test_tap_after_deadline_is_timeout(self, game, clock):
        """A late tap loses to the timeout even on the right tile."""
        game.tap(correct_id(game))
        generation = game.generation
        score = game.score

        clock.advance(16.0)
        result = game.tap(correct_id(game))

        assert result is None
        assert game.score == score
        assert game.streak == 0
        assert game.generation == generation + 1


class TestIgnoredTaps:
    """Test taps that must not change anything."""

    def test_unknown_tile(self, game):
        state = game.state
        assert game.tap("not-a-tile") is None
        assert game.state == state

    def test_tile_from_previous_round(self, game):
        old_tile = correct_id(game)
        game.tap(old_tile)
        score = game.score

        assert game.tap(old_tile) is None
        assert game.score == score

    def test_reentrant_tap_ignored(self, game):
        """A listener tapping during evaluation does not start a second transition."""
        nested = []

        def listener(event):
            if isinstance(event, BonusAwarded):
                nested.append(game.tap(correct_id(game)))

        game.subscribe(listener)
        game.tap(correct_id(game))

        assert nested == [None]
        assert game.round_index == 2

    def test_tap_from_state_listener_ignored(self, game):
        """A listener tapping on the new round's state change does not advance twice."""
        nested = []

        def listener(event):
            if isinstance(event, StateChanged) and not nested:
                nested.append(game.tap(correct_id(game)))

        game.subscribe(listener)
        result = game.tap(correct_id(game))

        assert nested == [None]
        assert result.round_index == 2
        assert game.round_index == 2
        assert game.tap(correct_id(game)).round_index == 3

    def test_tap_during_timeout_ignored(self, game, clock):
        """Taps made while a tick processes a timeout are dropped."""
        nested = []

        def listener(event):
            if isinstance(event, StateChanged):
                nested.append(game.tap(correct_id(game)))

        clock.advance(15.0)
        game.subscribe(listener)
        assert game.tick() is True

        assert nested == [None]
        assert game.score == 0
        assert game.round_index == 1


class TestRunWrap:
    """Test completion of a full run."""

    def test_wraps_after_max_rounds(self, game):
        for _ in range(99):
            game.tap(correct_id(game))
        assert game.round_index == 100
        assert game.score > 0

        events = []
        game.subscribe(events.append)
        game.tap(correct_id(game))

        completed = [e for e in events if isinstance(e, RunCompleted)]
        assert len(completed) == 1
        assert completed[0].rounds_played == 100
        assert completed[0].final_score > 0
        assert game.round_index == 1
        assert game.score == 0
        assert game.streak == 0
        assert Toast(NEW_RUN_TOAST) in events

    def test_best_score_saved_before_wrap(self, config):
        short = replace(config, rounds=replace(config.rounds, max_rounds=3))
        game = ColorMatchGame(config=short, clock=ManualClock(), rng=5)
        game.start_game(Mode.EASY, player_name="Ada")

        for _ in range(3):
            game.tap(correct_id(game))

        best = game.leaderboard.best_for("Ada", Mode.EASY)
        assert best.score == 4 + 4 + 6
        assert game.score == 0


class TestToasts:
    """Test transient messages."""

    def test_toast_expires(self, game):
        game.tap(correct_id(game), now=0.0)
        assert game.toast == "⚡️ Speed Bonus +3"

        game.tick(1.0)
        assert game.toast is not None
        game.tick(1.2)
        assert game.toast is None

    def test_newer_toast_survives_older_clear(self, game):
        game.tap(correct_id(game), now=0.0)
        game.tap(correct_id(game), now=0.5)

        game.tick(1.2)
        assert game.toast == "⚡️ Speed Bonus +3"
        game.tick(1.7)
        assert game.toast is None


class TestSaving:
    """Test leaderboard integration."""

    @pytest.fixture
    def manual_config(self, config):
        return replace(config, leaderboard=replace(config.leaderboard, auto_save="off"))

    def test_auto_save_after_correct(self, game):
        game.tap(correct_id(game))
        game.tap(correct_id(game))

        assert game.leaderboard.best_for("ada", Mode.EASY).score == game.score

    def test_auto_save_off(self, manual_config):
        game = ColorMatchGame(config=manual_config, clock=ManualClock(), rng=3)
        game.start_game(Mode.EASY, player_name="Ada")
        result = game.tap(correct_id(game))

        assert not result.save_offered
        assert len(game.leaderboard) == 0

    def test_manual_save(self, manual_config):
        game = ColorMatchGame(config=manual_config, clock=ManualClock(), rng=3)
        game.start_game(Mode.HARD, player_name="Ada")
        game.tap(correct_id(game))
        events = []
        game.subscribe(events.append)

        entry = game.save_score()

        assert entry.score == game.score
        assert entry.mode is Mode.HARD
        assert game.toast == SAVED_TOAST
        assert ScoreSaved(entry, "manual") in events

    def test_exit_save(self, manual_config):
        storage = MemoryStorage()
        board = make_leaderboard(manual_config, storage)
        game = ColorMatchGame(config=manual_config, clock=ManualClock(), rng=3, leaderboard=board)
        game.start_game(Mode.EASY, player_name="Ada")
        game.tap(correct_id(game))

        entry = game.close()

        assert entry is not None
        assert '"Ada"' in storage.read()

    def test_no_exit_save_for_zero_score(self, manual_config):
        game = ColorMatchGame(config=manual_config, clock=ManualClock(), rng=3)
        game.start_game(Mode.EASY)

        assert game.close() is None
        assert len(game.leaderboard) == 0

    def test_lower_score_keeps_best(self, game, clock):
        game.tap(correct_id(game))
        best = game.score
        game.start_game(Mode.EASY, player_name="ADA")
        clock.advance(10.0)
        game.tap(correct_id(game))

        assert game.save_score() is None
        assert game.leaderboard.best_for("Ada", Mode.EASY).score == best

    def test_failed_auto_save_keeps_game_running(self, config):
        """A storage error during auto-save does not stall the round."""
        board = make_leaderboard(config, FailingStorage())
        game = ColorMatchGame(config=config, clock=ManualClock(), rng=3, leaderboard=board)
        game.start_game(Mode.EASY, player_name="Ada")

        result = game.tap(correct_id(game))

        assert result.correct
        assert game.phase is Phase.IN_ROUND
        assert game.round_index == 2
        assert game.tap(correct_id(game)).round_index == 3
        assert len(board) == 0

    def test_saved_toast_follows_caller_time(self, manual_config):
        game = ColorMatchGame(config=manual_config, clock=ManualClock(), rng=3)
        game.start_game(Mode.EASY)

        game.save_score(now=5.0)

        game.tick(1.2)
        assert game.toast == SAVED_TOAST
        game.tick(6.2)
        assert game.toast is None
