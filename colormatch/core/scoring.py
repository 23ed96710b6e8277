"""
Scoring System
==============

Applies tap scores and tracks the streak based on game configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

from colormatch.core.config_loader import GameConfig, get_config


class BonusKind(Enum):
    """Bonus categories surfaced to the player."""
    FAST = "fast"              # Speed bonus, tapped within fast_seconds
    QUICK = "quick"            # Speed bonus, tapped within quick_seconds
    STREAK = "streak"          # First streak threshold
    HOT_STREAK = "hot_streak"  # Any later streak threshold


@dataclass(frozen=True)
class Bonus:
    """A single bonus that fired on a tap."""
    kind: BonusKind
    points: int

    @property
    def label(self) -> str:
        if self.kind in (BonusKind.FAST, BonusKind.QUICK):
            return f"⚡️ Speed Bonus +{self.points}"
        return f"🔥 Streak Bonus +{self.points}"


@dataclass
class ScoreEvent:
    """Record of a scoring event."""
    points: int
    elapsed: int
    streak: int
    bonuses: List[Bonus] = field(default_factory=list)

    @property
    def bonus_points(self) -> int:
        return sum(b.points for b in self.bonuses)

    def __repr__(self) -> str:
        kinds = ",".join(b.kind.value for b in self.bonuses) or "none"
        return f"ScoreEvent(points={self.points}, streak={self.streak}, bonuses={kinds})"


class ScoreTracker:
    """
    Tracks run score and consecutive-correct streak.

    Speed bonuses are exclusive (fast wins over quick). Streak bonuses fire
    once, when the streak reaches a configured threshold exactly; a streak of
    4 or 6 earns nothing extra with the default thresholds of 3 and 5.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize score tracker.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._score: int = 0
        self._streak: int = 0
        self._best_streak: int = 0
        self._correct: int = 0
        self._misses: int = 0

        thresholds = [t for t, _ in config.scoring.streak_bonuses]
        self._first_threshold: Optional[int] = thresholds[0] if thresholds else None

    @property
    def score(self) -> int:
        """Current run score."""
        return self._score

    @property
    def streak(self) -> int:
        """Consecutive correct taps since the last miss or timeout."""
        return self._streak

    @property
    def best_streak(self) -> int:
        """Longest streak of the current run."""
        return self._best_streak

    @property
    def correct(self) -> int:
        return self._correct

    @property
    def misses(self) -> int:
        return self._misses

    def speed_bonus(self, elapsed: int) -> Optional[Bonus]:
        """
        Speed bonus for a tap ``elapsed`` whole seconds into the round.

        Args:
            elapsed: round_duration - time_left.

        Returns:
            The bonus, or None when the tap was too slow.
        """
        scoring = self._config.scoring
        if elapsed <= scoring.fast_seconds:
            return Bonus(BonusKind.FAST, scoring.fast_bonus)
        if elapsed <= scoring.quick_seconds:
            return Bonus(BonusKind.QUICK, scoring.quick_bonus)
        return None

    def streak_bonus(self, streak: int) -> Optional[Bonus]:
        """Bonus for reaching exactly ``streak``, or None."""
        points = self._config.scoring.streak_bonus_for(streak)
        if points <= 0:
            return None
        kind = BonusKind.STREAK if streak == self._first_threshold else BonusKind.HOT_STREAK
        return Bonus(kind, points)

    def apply_correct(self, elapsed: int) -> ScoreEvent:
        """
        Apply score for a correct tap and return the event.

        Args:
            elapsed: Whole seconds since the round started.

        Returns:
            ScoreEvent describing the points awarded.
        """
        bonuses: List[Bonus] = []

        speed = self.speed_bonus(elapsed)
        if speed is not None:
            bonuses.append(speed)

        self._streak += 1
        self._best_streak = max(self._best_streak, self._streak)
        streak = self.streak_bonus(self._streak)
        if streak is not None:
            bonuses.append(streak)

        points = self._config.scoring.base_points + sum(b.points for b in bonuses)
        self._score += points
        self._correct += 1

        return ScoreEvent(points=points, elapsed=elapsed, streak=self._streak, bonuses=bonuses)

    def apply_miss(self) -> None:
        """Wrong tap: streak resets, score is unchanged."""
        self._misses += 1
        self._streak = 0

    def break_streak(self) -> None:
        """Timeout: streak resets, score is unchanged."""
        self._streak = 0

    def reset(self) -> None:
        """Reset score and streak to zero."""
        self._score = 0
        self._streak = 0
        self._best_streak = 0
        self._correct = 0
        self._misses = 0

    def get_state(self) -> Tuple[int, int]:
        """(score, streak) pair."""
        return (self._score, self._streak)
