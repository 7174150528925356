# -*- coding: utf-8 -*-
########################
# game_models.py
########################
# Purpose:
# - Core data models shared by both game engines and the progression layer.
# - Defines difficulty and game type enums, round phases, terminal round outcomes,
#   immutable session records, level progress entries, player statistics and the badge catalog.
#
# Design notes:
# - Keep these models stable. Prefer extending with new optional fields rather than breaking changes.
# - No Qt usage. These are plain dataclasses and enums.
# - Difficulty-derived numbers are never stored here; difficulty_policy recomputes them from (difficulty, level).
# - Badge unlock rules are a closed set of frozen dataclasses (UnlockRule). The catalog is code, not data.
#
########################
# Interfaces:
# Public exceptions:
# - class PathbeatError(Exception)
# - class StoreClosedError(PathbeatError)
#
# Public enums:
# - Difficulty: EASY | MEDIUM | HARD  (score_multiplier: 1 | 2 | 3)
# - GameType: SEQUENCE_GAME | RHYTHM_GAME
# - RoundPhase: READY | SHOWING | PLAYING | LEVEL_COMPLETE | GAME_OVER | FINISHED
#
# Public dataclasses:
# - RoundOutcome(game_type, difficulty, level, score, accuracy, completed)
# - GameSession(id, game_type, difficulty, level, score, accuracy, completed, timestamp)
# - LevelProgressEntry(game_type, difficulty, level, best_score, best_accuracy, completed, attempts)
# - PlayerStatistics(total_sessions, completed_levels, current_streak, best_streak,
#                    running_accuracy_sum, accuracy_count, last_played_timestamp)
# - CompleteLevels | AchieveStreak | PerfectAccuracy | CompleteHardMode | TotalSessions  (UnlockRule)
# - Badge(id, name, description, icon_name, rule, is_unlocked, unlocked_timestamp)
#
# Public functions:
# - level_progress_key(game_type, difficulty, level) -> str
# - default_badge_catalog() -> list[Badge]
#
# Inputs/Outputs:
# - These types are exchanged between the engines, SessionRecorder, ProgressionStore,
#   BadgeEngine, progress_codec and GameController.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Union


MAX_LEVEL = 10


class PathbeatError(Exception):
    """Base error for the game core."""


class StoreClosedError(PathbeatError):
    """Raised when a session is recorded into a ProgressionStore after close()."""


class Difficulty(str, Enum):
    EASY = "Easy"
    MEDIUM = "Medium"
    HARD = "Hard"

    @property
    def score_multiplier(self) -> int:
        if self is Difficulty.EASY:
            return 1
        if self is Difficulty.MEDIUM:
            return 2
        return 3


class GameType(str, Enum):
    SEQUENCE_GAME = "Path Tiles"
    RHYTHM_GAME = "Rhythm Steps"

    @property
    def description(self) -> str:
        if self is GameType.SEQUENCE_GAME:
            return "Tap tiles in the correct sequence before time runs out"
        return "Tap objects at precise timing to create perfect combos"


class RoundPhase(str, Enum):
    READY = "READY"
    SHOWING = "SHOWING"
    PLAYING = "PLAYING"
    LEVEL_COMPLETE = "LEVEL_COMPLETE"
    GAME_OVER = "GAME_OVER"
    FINISHED = "FINISHED"

    @property
    def is_running(self) -> bool:
        return self in (RoundPhase.SHOWING, RoundPhase.PLAYING)


@dataclass(frozen=True)
class RoundOutcome:
    game_type: GameType
    difficulty: Difficulty
    level: int
    score: int
    accuracy: float
    completed: bool


@dataclass(frozen=True)
class GameSession:
    id: str
    game_type: GameType
    difficulty: Difficulty
    level: int
    score: int
    accuracy: float
    completed: bool
    timestamp: float


def level_progress_key(game_type: GameType, difficulty: Difficulty, level: int) -> str:
    return f"{GameType(game_type).value}_{Difficulty(difficulty).value}_{int(level)}"


@dataclass
class LevelProgressEntry:
    game_type: GameType
    difficulty: Difficulty
    level: int
    best_score: int = 0
    best_accuracy: float = 0.0
    completed: bool = False
    attempts: int = 0

    @property
    def key(self) -> str:
        return level_progress_key(self.game_type, self.difficulty, self.level)

    def apply_completion(self, *, score: int, accuracy: float) -> None:
        # bestScore and bestAccuracy never decrease; completed is sticky.
        self.attempts += 1
        self.completed = True
        if int(score) > self.best_score:
            self.best_score = int(score)
        if float(accuracy) > self.best_accuracy:
            self.best_accuracy = float(accuracy)


@dataclass
class PlayerStatistics:
    total_sessions: int = 0
    completed_levels: int = 0
    current_streak: int = 0
    best_streak: int = 0
    running_accuracy_sum: float = 0.0
    accuracy_count: int = 0
    last_played_timestamp: Optional[float] = None

    @property
    def average_accuracy(self) -> float:
        if self.accuracy_count <= 0:
            return 0.0
        return float(self.running_accuracy_sum) / float(self.accuracy_count)

    def fold_accuracy(self, accuracy: float) -> None:
        self.running_accuracy_sum += float(accuracy)
        self.accuracy_count += 1

    def register_completion(self) -> None:
        self.completed_levels += 1
        self.current_streak += 1
        if self.current_streak > self.best_streak:
            self.best_streak = self.current_streak

    def register_failure(self) -> None:
        self.current_streak = 0


########################
# Badge unlock rules
########################


@dataclass(frozen=True)
class CompleteLevels:
    count: int
    game_type: Optional[GameType] = None


@dataclass(frozen=True)
class AchieveStreak:
    count: int


@dataclass(frozen=True)
class PerfectAccuracy:
    threshold_percent: float


@dataclass(frozen=True)
class CompleteHardMode:
    count: int


@dataclass(frozen=True)
class TotalSessions:
    count: int


UnlockRule = Union[CompleteLevels, AchieveStreak, PerfectAccuracy, CompleteHardMode, TotalSessions]


@dataclass
class Badge:
    id: str
    name: str
    description: str
    icon_name: str
    rule: UnlockRule
    is_unlocked: bool = False
    unlocked_timestamp: Optional[float] = None


def default_badge_catalog() -> List[Badge]:
    """Fresh, all-locked copy of the fixed badge catalog in evaluation order."""
    return [
        Badge(
            id="focused_step",
            name="Focused Step",
            description="Complete your first challenge with focus and determination",
            icon_name="figure.walk",
            rule=CompleteLevels(count=1),
        ),
        Badge(
            id="swift_move",
            name="Swift Move",
            description="Complete 5 levels across any challenge",
            icon_name="bolt.fill",
            rule=CompleteLevels(count=5),
        ),
        Badge(
            id="calm_precision",
            name="Calm Precision",
            description="Achieve 90% accuracy in any challenge",
            icon_name="target",
            rule=PerfectAccuracy(threshold_percent=90.0),
        ),
        Badge(
            id="path_master",
            name="Path Master",
            description="Complete 10 Path Tiles challenges",
            icon_name="square.grid.3x3.fill",
            rule=CompleteLevels(count=10, game_type=GameType.SEQUENCE_GAME),
        ),
        Badge(
            id="rhythm_keeper",
            name="Rhythm Keeper",
            description="Complete 10 Rhythm Steps challenges",
            icon_name="waveform.path",
            rule=CompleteLevels(count=10, game_type=GameType.RHYTHM_GAME),
        ),
        Badge(
            id="steady_progress",
            name="Steady Progress",
            description="Achieve a 3-level winning streak",
            icon_name="flame.fill",
            rule=AchieveStreak(count=3),
        ),
        Badge(
            id="dedicated_traveler",
            name="Dedicated Traveler",
            description="Complete 10 play sessions",
            icon_name="star.fill",
            rule=TotalSessions(count=10),
        ),
        Badge(
            id="challenge_seeker",
            name="Challenge Seeker",
            description="Complete a level on Hard difficulty",
            icon_name="crown.fill",
            rule=CompleteHardMode(count=1),
        ),
        Badge(
            id="rising_sun",
            name="Rising Sun",
            description="Complete 25 levels total",
            icon_name="sun.max.fill",
            rule=CompleteLevels(count=25),
        ),
        Badge(
            id="golden_path",
            name="Golden Path",
            description="Achieve a 10-level winning streak",
            icon_name="sparkles",
            rule=AchieveStreak(count=10),
        ),
    ]


def _run_unit_tests() -> None:
    assert [d.score_multiplier for d in Difficulty] == [1, 2, 3]
    assert level_progress_key(GameType.SEQUENCE_GAME, Difficulty.HARD, 3) == "Path Tiles_Hard_3"

    stats = PlayerStatistics()
    assert stats.average_accuracy == 0.0
    stats.fold_accuracy(100.0)
    stats.fold_accuracy(50.0)
    assert abs(stats.average_accuracy - 75.0) < 1e-9
    stats.register_completion()
    stats.register_completion()
    stats.register_failure()
    assert stats.current_streak == 0 and stats.best_streak == 2

    entry = LevelProgressEntry(GameType.RHYTHM_GAME, Difficulty.EASY, 1)
    entry.apply_completion(score=300, accuracy=90.0)
    entry.apply_completion(score=100, accuracy=95.0)
    assert entry.best_score == 300 and entry.best_accuracy == 95.0 and entry.attempts == 2

    catalog = default_badge_catalog()
    assert len(catalog) == 10
    assert len({badge.id for badge in catalog}) == 10
    assert not any(badge.is_unlocked for badge in catalog)


if __name__ == "__main__":
    _run_unit_tests()
    print("game_models.py: ok")
