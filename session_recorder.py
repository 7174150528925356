# -*- coding: utf-8 -*-
########################
# session_recorder.py
########################
# Purpose:
# - Turns a terminal RoundOutcome into an immutable GameSession and applies it:
#   ProgressionStore update first, then BadgeEngine evaluation.
#
# Design notes:
# - No Qt usage.
# - Recording and badge evaluation run inside one store transaction, so no other session can be
#   recorded between the two steps. If badge evaluation raises, the transaction rolls the
#   recorded session back.
# - Persistence happens after the transaction via ProgressionStore.flush(), which is best-effort.
#
########################
# Interfaces:
# Public dataclasses:
# - RecordResult(session: GameSession, unlocked_badges: tuple[Badge, ...])
#
# Public classes:
# - class SessionRecorder
#   - __init__(store, *, badge_engine=None, id_factory=None)
#   - record(outcome: RoundOutcome) -> RecordResult
#
# Inputs:
# - RoundOutcome objects emitted by the game engines.
#
# Outputs:
# - RecordResult for the controller (session recorded, badges unlocked).
#
########################

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from badge_engine import BadgeEngine
from game_models import Badge, Difficulty, GameSession, GameType, RoundOutcome
from progression_store import ProgressionStore


logger = logging.getLogger(__name__)


def _new_session_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class RecordResult:
    session: GameSession
    unlocked_badges: Tuple[Badge, ...]


class SessionRecorder:
    def __init__(
        self,
        store: ProgressionStore,
        *,
        badge_engine: Optional[BadgeEngine] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ) -> None:
        self._store = store
        self._badge_engine = badge_engine if badge_engine is not None else BadgeEngine()
        self._id_factory = id_factory if id_factory is not None else _new_session_id

    @property
    def store(self) -> ProgressionStore:
        return self._store

    def record(self, outcome: RoundOutcome) -> RecordResult:
        with self._store.transaction():
            timestamp = self._store.now()
            session = GameSession(
                id=str(self._id_factory()),
                game_type=GameType(outcome.game_type),
                difficulty=Difficulty(outcome.difficulty),
                level=int(outcome.level),
                score=int(outcome.score),
                accuracy=max(0.0, min(100.0, float(outcome.accuracy))),
                completed=bool(outcome.completed),
                timestamp=timestamp,
            )
            self._store.record_session(session)
            unlocked = self._badge_engine.evaluate(self._store, session, now=timestamp)

        self._store.flush()
        logger.info(
            "Recorded %s %s level %d: score=%d accuracy=%.1f completed=%s",
            session.game_type.value,
            session.difficulty.value,
            session.level,
            session.score,
            session.accuracy,
            session.completed,
        )
        return RecordResult(session=session, unlocked_badges=tuple(unlocked))


def _run_unit_tests() -> None:
    store = ProgressionStore(clock=lambda: 7.0)
    counter = iter(range(100))
    recorder = SessionRecorder(store, id_factory=lambda: f"session-{next(counter)}")

    result = recorder.record(RoundOutcome(GameType.SEQUENCE_GAME, Difficulty.EASY, 1, 100, 100.0, True))
    assert result.session.id == "session-0" and result.session.timestamp == 7.0
    assert "focused_step" in [badge.id for badge in result.unlocked_badges]

    result = recorder.record(RoundOutcome(GameType.SEQUENCE_GAME, Difficulty.EASY, 2, 100, 33.3, False))
    assert result.unlocked_badges == ()
    assert store.statistics().current_streak == 0


if __name__ == "__main__":
    _run_unit_tests()
    print("session_recorder.py: ok")
