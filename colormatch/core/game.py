"""
Core Game
=========

Round state machine combining round generation, tap evaluation, scoring,
timing and leaderboard saves.
"""

from __future__ import annotations

import logging
import math
import random
from typing import Any, Callable, Dict, Optional, Union

from colormatch.core.catalog import Mode
from colormatch.core.clock import Clock, SystemClock
from colormatch.core.config_loader import GameConfig, get_config
from colormatch.core.errors import GameNotStartedError
from colormatch.core.events import (
    BonusAwarded,
    EventBus,
    RoundTimedOut,
    RunCompleted,
    ScoreSaved,
    StateChanged,
    TapResult,
    Toast,
    WrongTap,
)
from colormatch.core.leaderboard import LeaderboardStore, ScoreEntry, make_leaderboard, normalize_name
from colormatch.core.rounds import RoundGenerator, RoundLayout
from colormatch.core.rules import is_correct
from colormatch.core.scheduler import Scheduler
from colormatch.core.scoring import ScoreTracker
from colormatch.core.state_snapshot import Phase, RoundState

logger = logging.getLogger(__name__)

TIMEOUT_TOAST = "Time’s up! Restarting…"
NEW_RUN_TOAST = "New run started!"
SAVED_TOAST = "Saved ✅"


class ColorMatchGame:
    """
    Main game engine.

    Orchestrates:
    - Round generation (injected RNG)
    - Tap evaluation and scoring
    - Countdown from an absolute deadline (injected clock)
    - Transient feedback flags via guarded scheduled callbacks
    - Leaderboard saves

    The engine is single-threaded. Every public entry point processes at most
    one state transition; while a tap is being evaluated, re-entrant taps and
    ticks from listeners are ignored.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        clock: Optional[Clock] = None,
        rng: Union[random.Random, int, None] = None,
        leaderboard: Optional[LeaderboardStore] = None
    ):
        """
        Initialize game.

        Args:
            config: Game configuration. Uses default if None.
            clock: Time source. SystemClock if None.
            rng: Random instance or seed for round generation.
            leaderboard: Score store. In-memory store of the configured policy if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._clock = clock if clock is not None else SystemClock()
        self._generator = RoundGenerator(config, rng)
        self._scorer = ScoreTracker(config)
        self._scheduler = Scheduler()
        self._events = EventBus()
        self._leaderboard = leaderboard if leaderboard is not None else make_leaderboard(config)

        # Run settings
        self._mode: Optional[Mode] = None
        self._shape_mode_enabled: bool = False
        self._player_name: str = config.leaderboard.fallback_name

        # Round state
        self._layout: Optional[RoundLayout] = None
        self._deadline: float = 0.0
        self._round_index: int = 1
        self._generation: int = 0
        self._phase: Phase = Phase.IN_ROUND

        # Transient flags and the tokens guarding their scheduled clears
        self._wrong_flash: bool = False
        self._wrong_token: int = 0
        self._celebrating: bool = False
        self._celebration_token: int = 0
        self._toast: Optional[str] = None
        self._toast_token: int = 0

        # Set while a tap or tick is being processed
        self._busy: bool = False

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def leaderboard(self) -> LeaderboardStore:
        return self._leaderboard

    @property
    def is_started(self) -> bool:
        return self._layout is not None

    @property
    def mode(self) -> Optional[Mode]:
        return self._mode

    @property
    def shape_mode_enabled(self) -> bool:
        return self._shape_mode_enabled

    @property
    def player_name(self) -> str:
        return self._player_name

    @property
    def phase(self) -> Phase:
        return self._phase

    @property
    def layout(self) -> Optional[RoundLayout]:
        """Current round layout (None before start_game)."""
        return self._layout

    @property
    def target_color(self):
        return self._require_layout().target_color

    @property
    def target_shape(self):
        return self._require_layout().target_shape

    @property
    def tiles(self):
        return self._require_layout().tiles

    @property
    def round_index(self) -> int:
        return self._round_index

    @property
    def max_rounds(self) -> int:
        return self._config.rounds.max_rounds

    @property
    def score(self) -> int:
        return self._scorer.score

    @property
    def streak(self) -> int:
        return self._scorer.streak

    @property
    def deadline(self) -> float:
        return self._deadline

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def wrong_flash(self) -> bool:
        return self._wrong_flash

    @property
    def celebrating(self) -> bool:
        return self._celebrating

    @property
    def toast(self) -> Optional[str]:
        return self._toast

    @property
    def state(self) -> RoundState:
        """Snapshot of the current state."""
        layout = self._require_layout()
        return RoundState(
            mode=layout.mode,
            shape_mode_enabled=layout.shape_mode_enabled,
            target_color=layout.target_color,
            target_shape=layout.target_shape,
            tiles=layout.tiles,
            deadline=self._deadline,
            time_left=self.time_left(),
            round_index=self._round_index,
            max_rounds=self.max_rounds,
            score=self._scorer.score,
            streak=self._scorer.streak,
            phase=self._phase,
            generation=self._generation,
            player_name=self._player_name,
            wrong_flash=self._wrong_flash,
            celebrating=self._celebrating,
            toast=self._toast
        )

    def _require_layout(self) -> RoundLayout:
        if self._layout is None:
            raise GameNotStartedError("start_game() has not been called")
        return self._layout

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[object], None]) -> Callable[[], None]:
        """Register an event listener; returns its unsubscribe function."""
        return self._events.subscribe(listener)

    def _publish_state(self) -> None:
        self._events.publish(StateChanged(self.state))

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def _now(self, now: Optional[float]) -> float:
        return self._clock.now() if now is None else float(now)

    def time_left(self, now: Optional[float] = None) -> int:
        """Whole seconds left, ceil(deadline - now) clamped to >= 0."""
        if self._layout is None:
            return 0
        return max(0, int(math.ceil(self._deadline - self._now(now))))

    def elapsed(self, now: Optional[float] = None) -> int:
        """Whole seconds since the round started, as shown on the countdown."""
        if self._mode is None:
            return 0
        return self._mode.round_duration - self.time_left(now)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def reseed(self, seed: Optional[int]) -> None:
        """Reseed round generation (takes effect from the next round)."""
        self._generator.reseed(seed)

    def start_game(
        self,
        mode: Union[Mode, str],
        shape_mode_enabled: bool = False,
        player_name: Optional[str] = None
    ) -> RoundState:
        """
        Begin a fresh run.

        Args:
            mode: Difficulty tier (Mode or its value).
            shape_mode_enabled: Require shape as well as color.
            player_name: Leaderboard name; blank becomes the fallback name.

        Returns:
            Initial state: round 1, score 0, streak 0.
        """
        self._mode = Mode.parse(mode)
        self._shape_mode_enabled = bool(shape_mode_enabled)
        self._player_name = normalize_name(player_name, self._config.leaderboard.fallback_name)

        self._scheduler.cancel_all()
        self._scorer.reset()
        self._round_index = 1
        self._toast = None
        self._celebrating = False

        logger.info(
            "Game started mode=%s shape_mode=%s player=%s",
            self._mode.value, self._shape_mode_enabled, self._player_name
        )
        return self.start_round(reset_timer=True)

    def start_round(self, reset_timer: bool = True, now: Optional[float] = None) -> RoundState:
        """
        Generate a new tile set for the current mode.

        Args:
            reset_timer: Set the deadline to now + round duration.
            now: Round start time. Reads the clock if None.

        Returns:
            The new state (also published as StateChanged).
        """
        if self._mode is None:
            raise GameNotStartedError("start_game() has not been called")

        self._layout = self._generator.generate(self._mode, self._shape_mode_enabled)
        self._generation += 1
        if reset_timer:
            self._deadline = self._now(now) + self._mode.round_duration
        self._wrong_flash = False
        self._phase = Phase.IN_ROUND

        logger.debug(
            "Round %d/%d started generation=%d deadline=%.3f",
            self._round_index, self.max_rounds, self._generation, self._deadline
        )
        self._publish_state()
        return self.state

    def close(self) -> Optional[ScoreEntry]:
        """Host is exiting: save if configured, drop pending callbacks."""
        saved = None
        try:
            if self.is_started and self._config.leaderboard.save_on_exit and self.score > 0:
                saved = self.save_score(reason="exit")
        finally:
            self._scheduler.cancel_all()
        return saved

    # ------------------------------------------------------------------
    # Events from the host
    # ------------------------------------------------------------------

    def tick(self, now: Optional[float] = None) -> bool:
        """
        Periodic update: expire transient flags and detect timeout.

        Args:
            now: Current time. Reads the clock if None.

        Returns:
            True if this tick timed the round out.
        """
        if self._layout is None or self._busy:
            return False
        now = self._now(now)

        self._busy = True
        try:
            self._scheduler.run_due(now)
            if self._phase is Phase.IN_ROUND and self.time_left(now) == 0:
                self._handle_timeout(now)
                return True
            return False
        finally:
            self._busy = False

    def tap(self, tile_id: str, now: Optional[float] = None) -> Optional[TapResult]:
        """
        Process a tap on a tile.

        Unknown tiles, taps before start_game, taps outside IN_ROUND and taps
        made by listeners while another tap or tick is being processed are
        ignored. If the deadline has already passed the round times out
        instead and the tap is ignored.

        Args:
            tile_id: Id of the tapped tile.
            now: Time of the tap. Reads the clock if None.

        Returns:
            TapResult, or None when the tap was ignored.
        """
        if self._layout is None or self._busy or self._phase is not Phase.IN_ROUND:
            return None
        now = self._now(now)

        self._busy = True
        try:
            if self.time_left(now) == 0:
                self._handle_timeout(now)
                return None

            tile = self._layout.find_tile(tile_id)
            if tile is None:
                logger.debug("Ignoring tap on unknown tile %s", tile_id)
                return None

            self._phase = Phase.EVALUATING
            if is_correct(tile, self._layout):
                result = self._handle_correct(tile_id, now)
            else:
                result = self._handle_wrong(tile_id, now)
            self._events.publish(result)
            return result
        finally:
            self._busy = False

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def _handle_correct(self, tile_id: str, now: float) -> TapResult:
        self._phase = Phase.ROUND_WON
        event = self._scorer.apply_correct(self.elapsed(now))
        won_round = self._round_index

        for bonus in event.bonuses:
            self._show_toast(bonus.label, now)
            self._events.publish(BonusAwarded(bonus, won_round))
        self._start_celebration(now)

        save_offered = self._config.leaderboard.auto_save == "on_correct"
        if save_offered:
            try:
                self.save_score(reason="auto", now=now)
            except OSError as exc:
                logger.warning("Auto-save after round %d failed: %s", won_round, exc)

        self._round_index += 1
        if self._round_index > self.max_rounds:
            self._complete_run(now)

        logger.debug("Round %d won %r", won_round, event)
        self.start_round(reset_timer=True, now=now)

        return TapResult(
            tile_id=tile_id,
            correct=True,
            points=event.points,
            score=self._scorer.score,
            streak=self._scorer.streak,
            round_index=self._round_index,
            bonuses=tuple(event.bonuses),
            next_round_needed=True,
            save_offered=save_offered
        )

    def _handle_wrong(self, tile_id: str, now: float) -> TapResult:
        self._scorer.apply_miss()
        self._wrong_flash = True
        self._wrong_token += 1
        token, generation = self._wrong_token, self._generation
        self._scheduler.schedule(
            now + self._config.timing.wrong_flash_seconds,
            "wrong-flash-clear",
            self._clear_wrong_flash,
            guard=lambda: self._wrong_token == token and self._generation == generation
        )
        self._phase = Phase.IN_ROUND

        self._events.publish(WrongTap(tile_id, self._round_index))
        self._publish_state()

        return TapResult(
            tile_id=tile_id,
            correct=False,
            points=0,
            score=self._scorer.score,
            streak=0,
            round_index=self._round_index
        )

    def _handle_timeout(self, now: float) -> None:
        self._phase = Phase.TIMEOUT
        timed_out = self._round_index
        self._scorer.break_streak()
        logger.debug("Round %d timed out", timed_out)

        self._events.publish(RoundTimedOut(timed_out, self._scorer.score))
        self._show_toast(TIMEOUT_TOAST, now)
        self.start_round(reset_timer=True, now=now)

    def _complete_run(self, now: float) -> None:
        self._phase = Phase.RUN_COMPLETE
        final_score = self._scorer.score
        logger.info("Run complete after %d rounds, score=%d", self.max_rounds, final_score)

        self._scorer.reset()
        self._round_index = 1
        self._events.publish(RunCompleted(final_score, self.max_rounds))
        self._show_toast(NEW_RUN_TOAST, now)

    # ------------------------------------------------------------------
    # Transient flags
    # ------------------------------------------------------------------

    def _clear_wrong_flash(self) -> None:
        self._wrong_flash = False
        self._publish_state()

    def _start_celebration(self, now: float) -> None:
        self._celebrating = True
        self._celebration_token += 1
        token = self._celebration_token

        def clear() -> None:
            self._celebrating = False
            self._publish_state()

        self._scheduler.schedule(
            now + self._config.timing.celebration_seconds,
            "celebration-clear",
            clear,
            guard=lambda: self._celebration_token == token
        )

    def _show_toast(self, text: str, now: float) -> None:
        self._toast = text
        self._toast_token += 1
        token = self._toast_token

        def clear() -> None:
            self._toast = None
            if self._layout is not None:
                self._publish_state()

        self._scheduler.schedule(
            now + self._config.timing.toast_seconds,
            "toast-clear",
            clear,
            guard=lambda: self._toast_token == token
        )
        self._events.publish(Toast(text))

    # ------------------------------------------------------------------
    # Leaderboard
    # ------------------------------------------------------------------

    def save_score(self, reason: str = "manual", now: Optional[float] = None) -> Optional[ScoreEntry]:
        """
        Push the current score to the leaderboard.

        Args:
            reason: "manual" (save button), "auto" (after a correct tap) or "exit".
            now: Time of the save, used for the confirmation toast. Reads the clock if None.

        Returns:
            The stored entry, or None when the store kept an existing best.
        """
        if self._mode is None:
            raise GameNotStartedError("start_game() has not been called")

        entry = ScoreEntry(name=self._player_name, score=self._scorer.score, mode=self._mode)
        stored = self._leaderboard.save(entry)
        if stored is not None:
            self._events.publish(ScoreSaved(stored, reason))
        if reason == "manual":
            self._show_toast(SAVED_TOAST, self._now(now))
        return stored

    def get_info(self) -> Dict[str, Any]:
        """Summary dict for tools and the Gymnasium wrapper."""
        return {
            "mode": self._mode.value if self._mode else None,
            "shape_mode": self._shape_mode_enabled,
            "round": self._round_index,
            "score": self._scorer.score,
            "streak": self._scorer.streak,
            "best_streak": self._scorer.best_streak,
            "correct": self._scorer.correct,
            "misses": self._scorer.misses,
            "time_left": self.time_left(),
            "phase": self._phase.value,
        }
