# -*- coding: utf-8 -*-
########################
# badge_engine.py
########################
# Purpose:
# - Evaluates the fixed badge catalog after each recorded session and unlocks what is earned.
#
# Design notes:
# - No Qt usage.
# - Rule dispatch is exhaustive over the UnlockRule variants; an unknown rule is a programming
#   error and raises TypeError.
# - Each rule reads only cumulative statistics, session history and the triggering session,
#   never other badges, so unlock results do not depend on catalog order.
# - Unlock is one-way. Already unlocked badges are skipped.
#
########################
# Interfaces:
# Public functions:
# - rule_satisfied(rule, *, statistics, sessions, triggering_session) -> bool
#
# Public classes:
# - class BadgeEngine
#   - evaluate(store: ProgressionStore, triggering_session: GameSession, *, now=None) -> list[Badge]
#
# Inputs:
# - ProgressionStore state after record_session().
#
# Outputs:
# - Newly unlocked badges, in catalog order.
#
########################

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from game_models import (
    AchieveStreak,
    Badge,
    CompleteHardMode,
    CompleteLevels,
    Difficulty,
    GameSession,
    PerfectAccuracy,
    PlayerStatistics,
    TotalSessions,
    UnlockRule,
)


logger = logging.getLogger(__name__)


def rule_satisfied(
    rule: UnlockRule,
    *,
    statistics: PlayerStatistics,
    sessions: Sequence[GameSession],
    triggering_session: GameSession,
) -> bool:
    if isinstance(rule, CompleteLevels):
        if rule.game_type is None:
            count = statistics.completed_levels
        else:
            count = sum(1 for session in sessions if session.completed and session.game_type == rule.game_type)
        return count >= rule.count

    if isinstance(rule, AchieveStreak):
        return statistics.best_streak >= rule.count

    if isinstance(rule, PerfectAccuracy):
        return float(triggering_session.accuracy) >= float(rule.threshold_percent)

    if isinstance(rule, CompleteHardMode):
        count = sum(1 for session in sessions if session.completed and session.difficulty == Difficulty.HARD)
        return count >= rule.count

    if isinstance(rule, TotalSessions):
        return statistics.total_sessions >= rule.count

    raise TypeError(f"Unknown badge unlock rule: {rule!r}")


class BadgeEngine:
    def evaluate(self, store, triggering_session: GameSession, *, now: Optional[float] = None) -> List[Badge]:
        """Unlock every locked badge whose rule now holds. Returns the newly unlocked badges."""
        timestamp = float(now) if now is not None else store.now()

        with store.transaction():
            statistics = store.statistics()
            sessions = store.sessions()
            unlocked: List[Badge] = []

            for badge in store.badges():
                if badge.is_unlocked:
                    continue
                if not rule_satisfied(
                    badge.rule,
                    statistics=statistics,
                    sessions=sessions,
                    triggering_session=triggering_session,
                ):
                    continue
                if store.mark_badge_unlocked(badge.id, timestamp):
                    logger.info("Badge unlocked: %s", badge.id)
                    unlocked.append(store.badge(badge.id))

        return unlocked


def _run_unit_tests() -> None:
    from game_models import GameType
    from progression_store import ProgressionStore

    store = ProgressionStore(clock=lambda: 42.0)
    session = GameSession("s1", GameType.RHYTHM_GAME, Difficulty.HARD, 1, 500, 95.0, True, 42.0)
    store.record_session(session)

    unlocked = BadgeEngine().evaluate(store, session)
    assert [badge.id for badge in unlocked] == ["focused_step", "calm_precision", "challenge_seeker"]
    assert all(badge.unlocked_timestamp == 42.0 for badge in unlocked)
    assert BadgeEngine().evaluate(store, session) == []

    try:
        rule_satisfied(object(), statistics=PlayerStatistics(), sessions=[], triggering_session=session)
    except TypeError:
        pass
    else:
        raise AssertionError("Expected TypeError for unknown rule")


if __name__ == "__main__":
    _run_unit_tests()
    print("badge_engine.py: ok")
