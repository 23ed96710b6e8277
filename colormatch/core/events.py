"""
Engine Events
=============

Notifications published by ColorMatchGame for the presentation layer.
Every event is a small immutable record; hosts subscribe to an EventBus and
switch on the event type.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Callable, List, Tuple

if TYPE_CHECKING:
    from colormatch.core.leaderboard import ScoreEntry
    from colormatch.core.scoring import Bonus
    from colormatch.core.state_snapshot import RoundState


@dataclass(frozen=True)
class StateChanged:
    """Emitted after every state change with the fresh snapshot."""
    state: "RoundState"


@dataclass(frozen=True)
class TapResult:
    """Outcome of a processed tap."""
    tile_id: str
    correct: bool
    points: int
    score: int
    streak: int
    round_index: int
    bonuses: Tuple["Bonus", ...] = ()
    next_round_needed: bool = False
    save_offered: bool = False


@dataclass(frozen=True)
class BonusAwarded:
    bonus: "Bonus"
    round_index: int

    @property
    def label(self) -> str:
        return self.bonus.label


@dataclass(frozen=True)
class WrongTap:
    tile_id: str
    round_index: int


@dataclass(frozen=True)
class RoundTimedOut:
    round_index: int
    score: int


@dataclass(frozen=True)
class RunCompleted:
    """The round counter wrapped; the score has been reset."""
    final_score: int
    rounds_played: int


@dataclass(frozen=True)
class Toast:
    text: str


@dataclass(frozen=True)
class ScoreSaved:
    entry: "ScoreEntry"
    reason: str


Listener = Callable[[object], None]


@dataclass
class EventBus:
    """Synchronous observer list."""
    _listeners: List[Listener] = field(default_factory=list)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """
        Register ``listener`` for every future event.

        Returns:
            A callable that removes the listener again.
        """
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def publish(self, event: object) -> None:
        for listener in list(self._listeners):
            listener(event)

    def __len__(self) -> int:
        return len(self._listeners)
