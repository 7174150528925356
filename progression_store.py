# -*- coding: utf-8 -*-
########################
# progression_store.py
########################
# Purpose:
# - Owns all persistent player progression: statistics, per-level best results, session history,
#   badge unlock state and the onboarding flag.
# - Hydrates from and flushes to an opaque KeyValueStore, one key per entity.
#
# Design notes:
# - No Qt usage. An explicitly constructed instance with a lifecycle: open() -> ... -> close().
# - A single re-entrant lock guards every read and write. SessionRecorder holds it through
#   transaction() while a session is recorded and badges are evaluated, so no other session
#   can interleave. An exception escaping the outermost transaction restores the in-memory state
#   captured on entry.
# - Persistence is best-effort: load() treats an unreadable key as missing and flush() logs and
#   skips a key that fails to save. In-memory state stays authoritative for the process lifetime.
# - Query methods return copies; callers never hold references into the store.
#
########################
# Interfaces:
# Public classes:
# - class ProgressionStore
#   - open(kv_store, *, clock=None) -> ProgressionStore       (classmethod, hydrates)
#   - load() / flush() / close() -> None
#   - transaction() -> context manager
#   - now() -> float
#   - has_completed_onboarding -> bool / complete_onboarding() -> None
#   - record_session(session: GameSession) -> None
#   - mark_badge_unlocked(badge_id: str, timestamp: float) -> bool
#   - statistics() -> PlayerStatistics
#   - sessions() / recent_sessions(limit) -> list[GameSession]
#   - level_progress() -> list[LevelProgressEntry]
#   - level_progress_entry(game_type, difficulty, level) -> Optional[LevelProgressEntry]
#   - completed_levels_count(game_type) -> int
#   - highest_completed_level(game_type, difficulty) -> int
#   - is_level_unlocked(game_type, difficulty, level) -> bool
#   - best_score(game_type, difficulty, level) -> Optional[int]
#   - badges() / unlocked_badges() / locked_badges() -> list[Badge]
#   - badge(badge_id) -> Optional[Badge]
#   - reset_all() -> None
#   - summary() -> dict
#
# Inputs:
# - GameSession records from SessionRecorder, unlock requests from BadgeEngine.
#
# Outputs:
# - Read-only copies for the controller, the CLI and badge evaluation.
#
########################

from __future__ import annotations

import copy
import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import replace
from typing import Callable, Dict, Iterator, List, Optional

import progress_codec
from game_models import (
    Badge,
    Difficulty,
    GameSession,
    GameType,
    LevelProgressEntry,
    PlayerStatistics,
    StoreClosedError,
    default_badge_catalog,
    level_progress_key,
)
from kv_store import KeyValueStore


logger = logging.getLogger(__name__)


class ProgressionStore:
    def __init__(self, kv_store: Optional[KeyValueStore] = None, *, clock: Optional[Callable[[], float]] = None) -> None:
        self._kv_store = kv_store
        self._clock = clock if clock is not None else time.time
        self._lock = threading.RLock()
        self._is_closed = False
        self._transaction_depth = 0

        self._onboarding_complete = False
        self._statistics = PlayerStatistics()
        self._level_progress: Dict[str, LevelProgressEntry] = {}
        self._sessions: List[GameSession] = []
        self._badges: List[Badge] = default_badge_catalog()

    @classmethod
    def open(cls, kv_store: Optional[KeyValueStore], *, clock: Optional[Callable[[], float]] = None) -> "ProgressionStore":
        store = cls(kv_store, clock=clock)
        store.load()
        return store

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def is_closed(self) -> bool:
        return self._is_closed

    def now(self) -> float:
        return float(self._clock())

    @contextmanager
    def transaction(self) -> Iterator["ProgressionStore"]:
        """Hold the store lock. If the outermost transaction raises, in-memory state is restored."""
        with self._lock:
            saved_state = self._capture_state() if self._transaction_depth == 0 else None
            self._transaction_depth += 1
            try:
                yield self
            except BaseException:
                if saved_state is not None:
                    self._restore_state(saved_state)
                    logger.warning("Transaction failed, progression state rolled back")
                raise
            finally:
                self._transaction_depth -= 1

    def _capture_state(self) -> tuple:
        return copy.deepcopy((
            self._onboarding_complete,
            self._statistics,
            self._level_progress,
            self._sessions,
            self._badges,
        ))

    def _restore_state(self, state: tuple) -> None:
        (
            self._onboarding_complete,
            self._statistics,
            self._level_progress,
            self._sessions,
            self._badges,
        ) = state

    def _load_blob(self, key: str) -> Optional[bytes]:
        try:
            return self._kv_store.load(key)
        except OSError as exception:
            logger.warning("Failed to read %s, using defaults: %s", key, exception)
            return None

    def load(self) -> None:
        if self._kv_store is None:
            return
        with self._lock:
            self._onboarding_complete = progress_codec.decode_onboarding(self._load_blob(progress_codec.ONBOARDING_KEY))
            self._statistics = progress_codec.decode_statistics(self._load_blob(progress_codec.STATISTICS_KEY))
            self._level_progress = progress_codec.decode_level_progress(self._load_blob(progress_codec.LEVEL_PROGRESS_KEY))
            self._sessions = progress_codec.decode_sessions(self._load_blob(progress_codec.SESSIONS_KEY))
            self._badges = progress_codec.decode_badges(self._load_blob(progress_codec.BADGES_KEY))
            if not self._badges:
                logger.warning("Badge catalog empty after load, re-seeding")
                self._badges = default_badge_catalog()

    def flush(self) -> None:
        if self._kv_store is None:
            return
        with self._lock:
            blobs = [
                (progress_codec.ONBOARDING_KEY, lambda: progress_codec.encode_onboarding(self._onboarding_complete)),
                (progress_codec.STATISTICS_KEY, lambda: progress_codec.encode_statistics(self._statistics)),
                (progress_codec.LEVEL_PROGRESS_KEY, lambda: progress_codec.encode_level_progress(self._level_progress.values())),
                (progress_codec.SESSIONS_KEY, lambda: progress_codec.encode_sessions(self._sessions)),
                (progress_codec.BADGES_KEY, lambda: progress_codec.encode_badges(self._badges)),
            ]
            for key, encode in blobs:
                try:
                    self._kv_store.save(key, encode())
                except (OSError, ValueError, TypeError) as exception:
                    logger.warning("Failed to persist %s: %s", key, exception)

    def close(self) -> None:
        with self._lock:
            if self._is_closed:
                return
            self.flush()
            self._is_closed = True
            self._kv_store = None

    # ------------------------------------------------------------------
    # Onboarding
    # ------------------------------------------------------------------

    @property
    def has_completed_onboarding(self) -> bool:
        with self._lock:
            return self._onboarding_complete

    def complete_onboarding(self) -> None:
        with self._lock:
            self._onboarding_complete = True
            self.flush()

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def record_session(self, session: GameSession) -> None:
        with self._lock:
            if self._is_closed:
                raise StoreClosedError("Cannot record a session into a closed ProgressionStore")

            self._sessions.append(session)

            statistics = self._statistics
            statistics.total_sessions += 1
            statistics.fold_accuracy(session.accuracy)
            statistics.last_played_timestamp = float(session.timestamp)

            if not session.completed:
                statistics.register_failure()
                return

            statistics.register_completion()
            key = level_progress_key(session.game_type, session.difficulty, session.level)
            entry = self._level_progress.get(key)
            if entry is None:
                entry = LevelProgressEntry(
                    game_type=GameType(session.game_type),
                    difficulty=Difficulty(session.difficulty),
                    level=int(session.level),
                )
                self._level_progress[key] = entry
            entry.apply_completion(score=session.score, accuracy=session.accuracy)

    def mark_badge_unlocked(self, badge_id: str, timestamp: float) -> bool:
        """Unlock one badge. Returns False when it was already unlocked or does not exist."""
        with self._lock:
            for badge in self._badges:
                if badge.id != badge_id:
                    continue
                if badge.is_unlocked:
                    return False
                badge.is_unlocked = True
                badge.unlocked_timestamp = float(timestamp)
                return True
            return False

    def reset_all(self) -> None:
        with self._lock:
            self._statistics = PlayerStatistics()
            self._level_progress = {}
            self._sessions = []
            self._badges = default_badge_catalog()
            self.flush()
        logger.info("All progression data reset")

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def statistics(self) -> PlayerStatistics:
        with self._lock:
            return replace(self._statistics)

    def sessions(self) -> List[GameSession]:
        with self._lock:
            return list(self._sessions)

    def recent_sessions(self, limit: int = 10) -> List[GameSession]:
        with self._lock:
            if int(limit) <= 0:
                return []
            return list(reversed(self._sessions[-int(limit):]))

    def level_progress(self) -> List[LevelProgressEntry]:
        with self._lock:
            return [replace(self._level_progress[key]) for key in sorted(self._level_progress)]

    def level_progress_entry(self, game_type: GameType, difficulty: Difficulty, level: int) -> Optional[LevelProgressEntry]:
        with self._lock:
            entry = self._level_progress.get(level_progress_key(game_type, difficulty, level))
            return replace(entry) if entry is not None else None

    def completed_levels_count(self, game_type: GameType) -> int:
        with self._lock:
            return sum(
                1
                for entry in self._level_progress.values()
                if entry.completed and entry.game_type == GameType(game_type)
            )

    def highest_completed_level(self, game_type: GameType, difficulty: Difficulty) -> int:
        with self._lock:
            levels = [
                entry.level
                for entry in self._level_progress.values()
                if entry.completed and entry.game_type == GameType(game_type) and entry.difficulty == Difficulty(difficulty)
            ]
            return max(levels) if levels else 0

    def is_level_unlocked(self, game_type: GameType, difficulty: Difficulty, level: int) -> bool:
        if int(level) <= 1:
            return True
        return self.highest_completed_level(game_type, difficulty) >= int(level) - 1

    def best_score(self, game_type: GameType, difficulty: Difficulty, level: int) -> Optional[int]:
        entry = self.level_progress_entry(game_type, difficulty, level)
        return entry.best_score if entry is not None else None

    def badges(self) -> List[Badge]:
        with self._lock:
            return [replace(badge) for badge in self._badges]

    def unlocked_badges(self) -> List[Badge]:
        return [badge for badge in self.badges() if badge.is_unlocked]

    def locked_badges(self) -> List[Badge]:
        return [badge for badge in self.badges() if not badge.is_unlocked]

    def badge(self, badge_id: str) -> Optional[Badge]:
        for badge in self.badges():
            if badge.id == badge_id:
                return badge
        return None

    def summary(self) -> Dict[str, object]:
        with self._lock:
            statistics = self._statistics
            return {
                "total_sessions": statistics.total_sessions,
                "completed_levels": statistics.completed_levels,
                "current_streak": statistics.current_streak,
                "best_streak": statistics.best_streak,
                "average_accuracy": round(statistics.average_accuracy, 2),
                "last_played_timestamp": statistics.last_played_timestamp,
                "badges_unlocked": sum(1 for badge in self._badges if badge.is_unlocked),
                "badges_total": len(self._badges),
                "completed_levels_by_game": {
                    game_type.value: self.completed_levels_count(game_type) for game_type in GameType
                },
                "onboarding_complete": self._onboarding_complete,
            }


def _run_unit_tests() -> None:
    from kv_store import InMemoryKeyValueStore

    kv = InMemoryKeyValueStore()
    store = ProgressionStore.open(kv, clock=lambda: 100.0)
    assert store.is_level_unlocked(GameType.SEQUENCE_GAME, Difficulty.EASY, 1)
    assert not store.is_level_unlocked(GameType.SEQUENCE_GAME, Difficulty.EASY, 2)

    won = GameSession("a", GameType.SEQUENCE_GAME, Difficulty.EASY, 1, 100, 100.0, True, 100.0)
    lost = GameSession("b", GameType.SEQUENCE_GAME, Difficulty.EASY, 2, 0, 50.0, False, 101.0)
    store.record_session(won)
    store.record_session(lost)
    statistics = store.statistics()
    assert statistics.total_sessions == 2 and statistics.current_streak == 0 and statistics.best_streak == 1
    assert store.is_level_unlocked(GameType.SEQUENCE_GAME, Difficulty.EASY, 2)
    assert store.best_score(GameType.SEQUENCE_GAME, Difficulty.EASY, 1) == 100
    assert store.best_score(GameType.SEQUENCE_GAME, Difficulty.EASY, 2) is None
    store.flush()

    reopened = ProgressionStore.open(kv)
    assert reopened.statistics() == statistics
    assert [session.id for session in reopened.recent_sessions(5)] == ["b", "a"]

    reopened.reset_all()
    assert reopened.sessions() == [] and reopened.statistics() == PlayerStatistics()


if __name__ == "__main__":
    _run_unit_tests()
    print("progression_store.py: ok")
