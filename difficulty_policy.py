# -*- coding: utf-8 -*-
########################
# difficulty_policy.py
########################
# Purpose:
# - Pure mapping from (difficulty, level) to the numeric parameters of both games.
#
# Design notes:
# - No Qt usage. Stateless functions over fixed per-difficulty tables.
# - Nothing else stores difficulty-derived numbers; engines call these at round setup.
# - Rhythm hit windows are distances from the hit line in playfield units (see note_field.PlayfieldGeometry).
#
########################
# Interfaces:
# Public dataclasses:
# - SequenceParameters(board_size, sequence_length, time_budget_seconds, highlight_seconds,
#                      allows_repeats, score_multiplier)
# - RhythmParameters(notes_per_level, lane_count, perfect_window, good_window,
#                    note_interval_seconds, max_misses, score_multiplier)
#
# Public functions:
# - board_size(difficulty, level) -> int
# - sequence_length(difficulty, level) -> int
# - time_budget_seconds(difficulty, level) -> float
# - highlight_seconds(difficulty) -> float
# - notes_per_level(difficulty, level) -> int
# - perfect_window(difficulty) -> float
# - good_window(difficulty) -> float
# - note_interval_seconds(difficulty, level) -> float
# - lane_count(difficulty) -> int
# - max_misses(difficulty, note_count) -> int
# - score_multiplier(difficulty) -> int
# - sequence_parameters(difficulty, level) -> SequenceParameters
# - rhythm_parameters(difficulty, level) -> RhythmParameters
#
# Inputs:
# - Difficulty and a level in 1..MAX_LEVEL.
#
# Outputs:
# - Parameters consumed by sequence_engine and rhythm_engine.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

from game_models import MAX_LEVEL, Difficulty


REVEAL_PAUSE_SECONDS = 0.2
MIN_NOTE_INTERVAL_SECONDS = 0.1

# (base, step, max)
_BOARD_SIZE: Dict[Difficulty, Tuple[int, int, int]] = {
    Difficulty.EASY: (2, 3, 4),
    Difficulty.MEDIUM: (3, 3, 5),
    Difficulty.HARD: (3, 2, 6),
}

# (base, max)
_SEQUENCE_LENGTH: Dict[Difficulty, Tuple[int, int]] = {
    Difficulty.EASY: (2, 6),
    Difficulty.MEDIUM: (3, 8),
    Difficulty.HARD: (4, 10),
}

# (base_time, time_per_tile)
_TIME_BUDGET: Dict[Difficulty, Tuple[float, float]] = {
    Difficulty.EASY: (15.0, 2.0),
    Difficulty.MEDIUM: (12.0, 1.5),
    Difficulty.HARD: (8.0, 1.0),
}

_HIGHLIGHT_SECONDS: Dict[Difficulty, float] = {
    Difficulty.EASY: 0.6,
    Difficulty.MEDIUM: 0.5,
    Difficulty.HARD: 0.35,
}

_NOTES_BASE: Dict[Difficulty, int] = {
    Difficulty.EASY: 8,
    Difficulty.MEDIUM: 12,
    Difficulty.HARD: 16,
}

_PERFECT_WINDOW: Dict[Difficulty, float] = {
    Difficulty.EASY: 80.0,
    Difficulty.MEDIUM: 50.0,
    Difficulty.HARD: 30.0,
}

_GOOD_WINDOW: Dict[Difficulty, float] = {
    Difficulty.EASY: 120.0,
    Difficulty.MEDIUM: 90.0,
    Difficulty.HARD: 60.0,
}

# (base_interval, step_down)
_NOTE_INTERVAL: Dict[Difficulty, Tuple[float, float]] = {
    Difficulty.EASY: (1.2, 0.05),
    Difficulty.MEDIUM: (1.0, 0.05),
    Difficulty.HARD: (0.8, 0.04),
}

_LANE_COUNT: Dict[Difficulty, int] = {
    Difficulty.EASY: 3,
    Difficulty.MEDIUM: 4,
    Difficulty.HARD: 5,
}

_MISS_DIVISOR: Dict[Difficulty, int] = {
    Difficulty.EASY: 2,
    Difficulty.MEDIUM: 3,
    Difficulty.HARD: 4,
}


@dataclass(frozen=True)
class SequenceParameters:
    board_size: int
    sequence_length: int
    time_budget_seconds: float
    highlight_seconds: float
    allows_repeats: bool
    score_multiplier: int

    @property
    def cell_count(self) -> int:
        return self.board_size * self.board_size


@dataclass(frozen=True)
class RhythmParameters:
    notes_per_level: int
    lane_count: int
    perfect_window: float
    good_window: float
    note_interval_seconds: float
    max_misses: int
    score_multiplier: int


def _check_level(level: int) -> int:
    value = int(level)
    if value < 1 or value > MAX_LEVEL:
        raise ValueError(f"level must be in 1..{MAX_LEVEL}, got: {level!r}")
    return value


def board_size(difficulty: Difficulty, level: int) -> int:
    base, step, maximum = _BOARD_SIZE[Difficulty(difficulty)]
    return min(base + _check_level(level) // step, maximum)


def sequence_length(difficulty: Difficulty, level: int) -> int:
    base, maximum = _SEQUENCE_LENGTH[Difficulty(difficulty)]
    return min(base + _check_level(level), maximum)


def time_budget_seconds(difficulty: Difficulty, level: int) -> float:
    base_time, time_per_tile = _TIME_BUDGET[Difficulty(difficulty)]
    return float(base_time + sequence_length(difficulty, level) * time_per_tile)


def highlight_seconds(difficulty: Difficulty) -> float:
    return float(_HIGHLIGHT_SECONDS[Difficulty(difficulty)])


def notes_per_level(difficulty: Difficulty, level: int) -> int:
    return _NOTES_BASE[Difficulty(difficulty)] + _check_level(level) * 2


def perfect_window(difficulty: Difficulty) -> float:
    """Largest hit line distance that still judges as Perfect."""
    return float(_PERFECT_WINDOW[Difficulty(difficulty)])


def good_window(difficulty: Difficulty) -> float:
    """Largest hit line distance that still judges as Good."""
    return float(_GOOD_WINDOW[Difficulty(difficulty)])


def note_interval_seconds(difficulty: Difficulty, level: int) -> float:
    base_interval, step_down = _NOTE_INTERVAL[Difficulty(difficulty)]
    interval = base_interval - _check_level(level) * step_down
    return float(max(MIN_NOTE_INTERVAL_SECONDS, interval))


def lane_count(difficulty: Difficulty) -> int:
    return _LANE_COUNT[Difficulty(difficulty)]


def max_misses(difficulty: Difficulty, note_count: int) -> int:
    return int(note_count) // _MISS_DIVISOR[Difficulty(difficulty)]


def score_multiplier(difficulty: Difficulty) -> int:
    return Difficulty(difficulty).score_multiplier


def sequence_parameters(difficulty: Difficulty, level: int) -> SequenceParameters:
    difficulty = Difficulty(difficulty)
    return SequenceParameters(
        board_size=board_size(difficulty, level),
        sequence_length=sequence_length(difficulty, level),
        time_budget_seconds=time_budget_seconds(difficulty, level),
        highlight_seconds=highlight_seconds(difficulty),
        allows_repeats=difficulty is Difficulty.HARD,
        score_multiplier=score_multiplier(difficulty),
    )


def rhythm_parameters(difficulty: Difficulty, level: int) -> RhythmParameters:
    difficulty = Difficulty(difficulty)
    note_count = notes_per_level(difficulty, level)
    return RhythmParameters(
        notes_per_level=note_count,
        lane_count=lane_count(difficulty),
        perfect_window=perfect_window(difficulty),
        good_window=good_window(difficulty),
        note_interval_seconds=note_interval_seconds(difficulty, level),
        max_misses=max_misses(difficulty, note_count),
        score_multiplier=score_multiplier(difficulty),
    )


def _run_unit_tests() -> None:
    easy_one = sequence_parameters(Difficulty.EASY, 1)
    assert easy_one.board_size == 2
    assert easy_one.sequence_length == 3
    assert abs(easy_one.time_budget_seconds - 21.0) < 1e-9

    for difficulty in Difficulty:
        previous = (0, 0)
        for level in range(1, MAX_LEVEL + 1):
            current = (board_size(difficulty, level), sequence_length(difficulty, level))
            assert current[0] >= previous[0] and current[1] >= previous[1]
            assert sequence_length(difficulty, level) <= board_size(difficulty, level) ** 2
            previous = current

    hard_one = rhythm_parameters(Difficulty.HARD, 1)
    assert hard_one.notes_per_level == 18
    assert hard_one.max_misses == 4
    assert hard_one.lane_count == 5

    try:
        board_size(Difficulty.EASY, 0)
    except ValueError:
        pass
    else:
        raise AssertionError("Expected ValueError for level 0")


if __name__ == "__main__":
    _run_unit_tests()
    print("difficulty_policy.py: ok")
