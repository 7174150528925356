# -*- coding: utf-8 -*-
########################
# progress_codec.py
########################
# Purpose:
# - Encode and decode each persisted progression entity to and from JSON bytes.
#
# Design notes:
# - No Qt usage. Validation goes through pydantic TypeAdapters over the domain dataclasses.
# - Each entity decodes independently. A blob that fails to decode yields that entity's default
#   value and a logged warning; it never aborts the other entities.
# - Badges persist only their unlock state. The catalog (names, rules) is rebuilt from code and the
#   stored state is merged by id. Unknown ids are dropped and missing ids stay locked.
#
########################
# Interfaces:
# Public constants (storage keys):
# - ONBOARDING_KEY, STATISTICS_KEY, BADGES_KEY, LEVEL_PROGRESS_KEY, SESSIONS_KEY
#
# Public dataclasses:
# - BadgeState(id: str, is_unlocked: bool, unlocked_timestamp: Optional[float])
#
# Public functions:
# - encode_onboarding(value: bool) -> bytes / decode_onboarding(data: Optional[bytes]) -> bool
# - encode_statistics(value) -> bytes / decode_statistics(data) -> PlayerStatistics
# - encode_badges(badges) -> bytes / decode_badges(data) -> list[Badge]
# - encode_level_progress(entries) -> bytes / decode_level_progress(data) -> dict[str, LevelProgressEntry]
# - encode_sessions(sessions) -> bytes / decode_sessions(data) -> list[GameSession]
#
# Inputs:
# - Domain objects from ProgressionStore, or raw blobs from a KeyValueStore.
#
# Outputs:
# - UTF-8 JSON bytes, or hydrated domain objects.
#
########################

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, TypeVar

from pydantic import TypeAdapter, ValidationError

from game_models import Badge, GameSession, LevelProgressEntry, PlayerStatistics, default_badge_catalog


logger = logging.getLogger(__name__)

ONBOARDING_KEY = "onboarding_complete"
STATISTICS_KEY = "player_statistics"
BADGES_KEY = "player_badges"
LEVEL_PROGRESS_KEY = "level_progress"
SESSIONS_KEY = "game_sessions"

ALL_KEYS = (ONBOARDING_KEY, STATISTICS_KEY, BADGES_KEY, LEVEL_PROGRESS_KEY, SESSIONS_KEY)


@dataclass(frozen=True)
class BadgeState:
    id: str
    is_unlocked: bool = False
    unlocked_timestamp: Optional[float] = None


_ONBOARDING_ADAPTER = TypeAdapter(bool)
_STATISTICS_ADAPTER = TypeAdapter(PlayerStatistics)
_BADGE_STATES_ADAPTER = TypeAdapter(List[BadgeState])
_LEVEL_PROGRESS_ADAPTER = TypeAdapter(List[LevelProgressEntry])
_SESSIONS_ADAPTER = TypeAdapter(List[GameSession])

T = TypeVar("T")


def _decode(adapter: TypeAdapter, data: Optional[bytes], *, key: str, default_factory: Callable[[], T]) -> T:
    if data is None:
        return default_factory()
    try:
        return adapter.validate_json(data)
    except (ValidationError, ValueError, TypeError) as exception:
        logger.warning("Discarding unreadable %s blob, using defaults: %s", key, exception)
        return default_factory()


def encode_onboarding(value: bool) -> bytes:
    return _ONBOARDING_ADAPTER.dump_json(bool(value))


def decode_onboarding(data: Optional[bytes]) -> bool:
    return bool(_decode(_ONBOARDING_ADAPTER, data, key=ONBOARDING_KEY, default_factory=lambda: False))


def encode_statistics(value: PlayerStatistics) -> bytes:
    return _STATISTICS_ADAPTER.dump_json(value)


def decode_statistics(data: Optional[bytes]) -> PlayerStatistics:
    statistics = _decode(_STATISTICS_ADAPTER, data, key=STATISTICS_KEY, default_factory=PlayerStatistics)
    counters = (
        statistics.total_sessions,
        statistics.completed_levels,
        statistics.current_streak,
        statistics.best_streak,
        statistics.accuracy_count,
    )
    if any(value < 0 for value in counters) or statistics.current_streak > statistics.best_streak:
        logger.warning("Discarding inconsistent %s blob, using defaults", STATISTICS_KEY)
        return PlayerStatistics()
    return statistics


def encode_badges(badges: Iterable[Badge]) -> bytes:
    states = [
        BadgeState(id=badge.id, is_unlocked=bool(badge.is_unlocked), unlocked_timestamp=badge.unlocked_timestamp)
        for badge in badges
    ]
    return _BADGE_STATES_ADAPTER.dump_json(states)


def decode_badges(data: Optional[bytes]) -> List[Badge]:
    catalog = default_badge_catalog()
    states = _decode(_BADGE_STATES_ADAPTER, data, key=BADGES_KEY, default_factory=list)
    states_by_id: Dict[str, BadgeState] = {state.id: state for state in states}
    for badge in catalog:
        state = states_by_id.get(badge.id)
        if state is not None and state.is_unlocked:
            badge.is_unlocked = True
            badge.unlocked_timestamp = state.unlocked_timestamp
    return catalog


def encode_level_progress(entries: Iterable[LevelProgressEntry]) -> bytes:
    return _LEVEL_PROGRESS_ADAPTER.dump_json(list(entries))


def decode_level_progress(data: Optional[bytes]) -> Dict[str, LevelProgressEntry]:
    entries = _decode(_LEVEL_PROGRESS_ADAPTER, data, key=LEVEL_PROGRESS_KEY, default_factory=list)
    return {entry.key: entry for entry in entries}


def encode_sessions(sessions: Iterable[GameSession]) -> bytes:
    return _SESSIONS_ADAPTER.dump_json(list(sessions))


def decode_sessions(data: Optional[bytes]) -> List[GameSession]:
    return list(_decode(_SESSIONS_ADAPTER, data, key=SESSIONS_KEY, default_factory=list))


def _run_unit_tests() -> None:
    from game_models import Difficulty, GameType

    session = GameSession(
        id="abc",
        game_type=GameType.RHYTHM_GAME,
        difficulty=Difficulty.HARD,
        level=2,
        score=900,
        accuracy=87.5,
        completed=True,
        timestamp=1700000000.0,
    )
    assert decode_sessions(encode_sessions([session])) == [session]
    assert decode_sessions(b"not json") == []
    assert decode_statistics(None) == PlayerStatistics()

    badges = default_badge_catalog()
    badges[2].is_unlocked = True
    badges[2].unlocked_timestamp = 5.0
    restored = decode_badges(encode_badges(badges))
    assert restored[2].is_unlocked and restored[2].unlocked_timestamp == 5.0
    assert sum(1 for badge in restored if badge.is_unlocked) == 1


if __name__ == "__main__":
    _run_unit_tests()
    print("progress_codec.py: ok")
