"""
Leaderboard Store
=================

Best scores per player and mode, persisted as a JSON array of
``{id, name, score, mode, date}`` records in a pluggable string storage.

Two retention policies exist and are kept apart:

- ``BestScoreLeaderboard`` (upsert-best, default): one entry per
  case-insensitive (name, mode), raised only by a strictly higher score,
  top 100 retained.
- ``AppendLeaderboard`` (append-all): every save is a new entry, top 50
  retained, ``clear()`` available.

Every mutation is a single locked read-modify-sort-truncate-write step.
Corrupt persisted data loads as an empty leaderboard.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple, Union

from colormatch.core.catalog import Mode
from colormatch.core.config_loader import GameConfig, get_config

logger = logging.getLogger(__name__)

DEFAULT_FALLBACK_NAME = "Player"


def normalize_name(name: Optional[str], fallback: str = DEFAULT_FALLBACK_NAME) -> str:
    """Trim whitespace; blank names become ``fallback``."""
    trimmed = (name or "").strip()
    return trimmed if trimmed else fallback


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_entry_id() -> str:
    return str(uuid.uuid4())


@dataclass(frozen=True)
class ScoreEntry:
    """One leaderboard row."""
    name: str
    score: int
    mode: Mode
    date: datetime = field(default_factory=_utcnow)
    id: str = field(default_factory=_new_entry_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "score": self.score,
            "mode": self.mode.value,
            "date": self.date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScoreEntry":
        """
        Build an entry from a persisted record.

        Raises:
            ValueError, KeyError, TypeError: If the record is malformed.
        """
        score = data["score"]
        if isinstance(score, bool) or not isinstance(score, int):
            raise TypeError(f"score must be an integer, got {score!r}")
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            score=score,
            mode=Mode.parse(data["mode"]),
            date=datetime.fromisoformat(str(data["date"]))
        )


def serialize_entries(entries) -> str:
    """Encode entries as a JSON array string."""
    return json.dumps([entry.to_dict() for entry in entries], ensure_ascii=False)


def deserialize_entries(text: str) -> List[ScoreEntry]:
    """
    Decode a JSON array string.

    Raises:
        ValueError: If the payload is not a list of valid records.
    """
    raw = json.loads(text)
    if not isinstance(raw, list):
        raise ValueError(f"Leaderboard payload must be a JSON array, got {type(raw).__name__}")
    try:
        return [ScoreEntry.from_dict(record) for record in raw]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Invalid leaderboard record: {exc!r}") from exc


# ----------------------------------------------------------------------------
# Storage backends
# ----------------------------------------------------------------------------

class MemoryStorage:
    """In-process string slot (the default, like a key/value preference)."""

    def __init__(self, initial: Optional[str] = None):
        self._text = initial

    def read(self) -> Optional[str]:
        return self._text

    def write(self, text: str) -> None:
        self._text = text


class JsonFileStorage:
    """
    Single JSON file.

    Writes go to a temporary file in the same directory and are moved into
    place, so a crash never leaves a half-written leaderboard.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def read(self) -> Optional[str]:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                return f.read()
        except FileNotFoundError:
            return None

    def write(self, text: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=str(self.path.parent)
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise


# ----------------------------------------------------------------------------
# Stores
# ----------------------------------------------------------------------------

class LeaderboardStore:
    """
    Shared persistence, ordering and query logic.

    Subclasses implement ``save(entry)`` with their retention policy.
    """

    policy: str = ""

    def __init__(
        self,
        storage=None,
        config: Optional[GameConfig] = None,
        cap: Optional[int] = None
    ):
        """
        Initialize the store and load persisted entries.

        Args:
            storage: Object with ``read()``/``write(text)``. MemoryStorage if None.
            config: Game configuration. Uses default if None.
            cap: Retained entry count. Policy default from config if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._storage = storage if storage is not None else MemoryStorage()
        self._cap = cap if cap is not None else self._default_cap(config)
        self._lock = threading.RLock()
        self._entries: List[ScoreEntry] = []
        self.load()

    def _default_cap(self, config: GameConfig) -> int:
        raise NotImplementedError

    @property
    def cap(self) -> int:
        return self._cap

    @property
    def entries(self) -> Tuple[ScoreEntry, ...]:
        """All retained entries, score descending."""
        with self._lock:
            return tuple(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def load(self) -> None:
        """(Re)load from storage. Unreadable data yields an empty store."""
        with self._lock:
            try:
                text = self._storage.read()
                if text is None or not text.strip():
                    self._entries = []
                    return
                entries = deserialize_entries(text)
            except (OSError, ValueError) as exc:
                logger.warning("Leaderboard data unreadable, starting empty: %s", exc)
                self._entries = []
                return
            entries.sort(key=lambda e: -e.score)
            self._entries = entries[: self._cap]

    def to_json(self) -> str:
        with self._lock:
            return serialize_entries(self._entries)

    def _commit(self, mutate: Callable[[List[ScoreEntry]], Optional[ScoreEntry]]) -> Optional[ScoreEntry]:
        """
        Apply ``mutate`` to a working copy, then sort, truncate and persist.

        Returns:
            The entry reported by ``mutate`` if it survived truncation.
        """
        with self._lock:
            working = list(self._entries)
            touched = mutate(working)
            if touched is None:
                return None
            working.sort(key=lambda e: -e.score)
            del working[self._cap:]
            self._storage.write(serialize_entries(working))
            self._entries = working
            return touched if touched in working else None

    def save(self, entry: ScoreEntry) -> Optional[ScoreEntry]:
        """Record ``entry`` under this store's policy."""
        raise NotImplementedError

    def top(self, mode: Optional[Mode] = None, limit: Optional[int] = None) -> List[ScoreEntry]:
        """
        Best entries, optionally filtered by mode.

        Args:
            mode: Only entries of this mode if given.
            limit: Maximum rows. Config top_n (10) if None.

        Returns:
            Up to ``limit`` entries, score descending, ties in insertion order.
        """
        if limit is None:
            limit = self._config.leaderboard.top_n
        with self._lock:
            filtered = [e for e in self._entries if mode is None or e.mode == mode]
        filtered.sort(key=lambda e: -e.score)
        return filtered[:max(0, limit)]

    def best_for(self, name: str, mode: Mode) -> Optional[ScoreEntry]:
        """Highest entry of ``name`` (case-insensitive) in ``mode``."""
        key = normalize_name(name, self._config.leaderboard.fallback_name).casefold()
        with self._lock:
            for entry in self._entries:
                if entry.mode == mode and entry.name.casefold() == key:
                    return entry
        return None


class BestScoreLeaderboard(LeaderboardStore):
    """Upsert-best policy: one entry per (name, mode), keeps the maximum."""

    policy = "upsert_best"

    def _default_cap(self, config: GameConfig) -> int:
        return config.leaderboard.upsert_cap

    def upsert_best_score(self, name: Optional[str], score: int, mode: Mode) -> Optional[ScoreEntry]:
        """
        Insert or raise the best score of ``name`` in ``mode``.

        Args:
            name: Player name; trimmed, blank becomes the fallback name.
            score: Run score.
            mode: Difficulty tier.

        Returns:
            The stored entry when something changed, None for a no-op.
        """
        normalized = normalize_name(name, self._config.leaderboard.fallback_name)
        key = normalized.casefold()

        def mutate(entries: List[ScoreEntry]) -> Optional[ScoreEntry]:
            for i, existing in enumerate(entries):
                if existing.mode == mode and existing.name.casefold() == key:
                    if score <= existing.score:
                        return None
                    updated = replace(existing, score=score, date=_utcnow())
                    entries[i] = updated
                    return updated
            created = ScoreEntry(name=normalized, score=score, mode=mode)
            entries.append(created)
            return created

        stored = self._commit(mutate)
        if stored is not None:
            logger.info("Leaderboard best %s/%s -> %d", stored.name, mode.value, score)
        return stored

    def save(self, entry: ScoreEntry) -> Optional[ScoreEntry]:
        return self.upsert_best_score(entry.name, entry.score, entry.mode)


class AppendLeaderboard(LeaderboardStore):
    """Append-all policy: every save is kept until pushed out of the top 50."""

    policy = "append_all"

    def _default_cap(self, config: GameConfig) -> int:
        return config.leaderboard.append_cap

    def save_entry(self, entry: ScoreEntry) -> Optional[ScoreEntry]:
        """
        Append ``entry``, then sort and truncate.

        Returns:
            The entry, or None if it did not make the retained top list.
        """
        def mutate(entries: List[ScoreEntry]) -> ScoreEntry:
            entries.append(entry)
            return entry

        stored = self._commit(mutate)
        logger.info(
            "Leaderboard append %s/%s %d (%s)",
            entry.name, entry.mode.value, entry.score, "kept" if stored else "dropped"
        )
        return stored

    def save(self, entry: ScoreEntry) -> Optional[ScoreEntry]:
        return self.save_entry(entry)

    def clear(self) -> None:
        """Remove every entry and persist the empty list."""
        with self._lock:
            self._entries = []
            self._storage.write("[]")
        logger.info("Leaderboard cleared")


def make_leaderboard(
    config: Optional[GameConfig] = None,
    storage=None
) -> LeaderboardStore:
    """Build the store selected by ``leaderboard.policy``."""
    if config is None:
        config = get_config()
    if config.leaderboard.policy == "append_all":
        return AppendLeaderboard(storage, config)
    return BestScoreLeaderboard(storage, config)
