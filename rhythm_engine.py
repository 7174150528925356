# -*- coding: utf-8 -*-
########################
# rhythm_engine.py
########################
# Purpose:
# - Rhythm Steps game engine: notes scroll toward a hit line and the player taps their lane in time.
# - Integrates NoteField + RhythmJudge into the Ready / Playing / LevelComplete / GameOver state machine.
#
# Design notes:
# - No Qt usage. Pure gameplay logic driven by tick(elapsed_seconds) and tap(lane).
# - tick() converts elapsed time into whole fixed-rate frames; each frame advances every live note
#   by note_speed and then registers misses, checks the miss limit and checks level completion.
# - Pausing freezes frame advancement and ignores taps.
# - score and max_combo carry across levels of one play session; restart() clears everything.
# - Exactly one outcome is emitted per round, on LevelComplete or GameOver.
#
########################
# Interfaces:
# Public dataclasses:
# - RhythmSnapshot(phase, level, lane_count, notes, combo, max_combo, hits, misses,
#                  perfect_count, good_count, score, progress, accuracy, is_paused)
#
# Public classes:
# - class RhythmGameEngine
#   - __init__(difficulty, *, random_source=None, geometry=None, level=1)
#   - add_outcome_listener(callback) -> None
#   - start() -> None            Ready -> Playing
#   - tick(elapsed_seconds) -> None
#   - step_frame() -> None
#   - tap(lane) -> Optional[JudgementEvent]
#   - pause() / resume() -> None
#   - advance() -> None          LevelComplete -> Ready(level + 1) or Finished
#   - restart() -> None          any -> Ready(level 1), all counters reset
#   - exit() -> None             any -> Finished
#   - snapshot() -> RhythmSnapshot
#
# Inputs:
# - Elapsed time from a tick source and lane taps from the presentation layer.
#
# Outputs:
# - RoundOutcome delivered to outcome listeners, JudgementEvent per hit or miss.
#
########################

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Callable, List, Optional, Tuple

import difficulty_policy
import note_field
import rhythm_judge
from game_models import MAX_LEVEL, Difficulty, GameType, RoundOutcome, RoundPhase
from random_source import RandomSource, make_random_source


_EPSILON = 1e-9


@dataclass(frozen=True)
class RhythmSnapshot:
    phase: RoundPhase
    level: int
    lane_count: int
    notes: Tuple[note_field.RhythmNote, ...]
    combo: int
    max_combo: int
    hits: int
    misses: int
    perfect_count: int
    good_count: int
    score: int
    progress: float
    accuracy: float
    is_paused: bool


class RhythmGameEngine:
    game_type = GameType.RHYTHM_GAME

    def __init__(
        self,
        difficulty: Difficulty,
        *,
        random_source: Optional[RandomSource] = None,
        geometry: Optional[note_field.PlayfieldGeometry] = None,
        level: int = 1,
    ) -> None:
        if int(level) < 1 or int(level) > MAX_LEVEL:
            raise ValueError(f"level must be in 1..{MAX_LEVEL}, got: {level!r}")

        self._difficulty = Difficulty(difficulty)
        self._random = random_source if random_source is not None else make_random_source()
        self._geometry = geometry if geometry is not None else note_field.PlayfieldGeometry()
        if self._geometry.frame_rate_hz <= 0 or self._geometry.note_speed <= 0:
            raise ValueError("frame_rate_hz and note_speed must be positive")
        self._listeners: List[Callable[[RoundOutcome], None]] = []

        self._phase = RoundPhase.READY
        self._level = int(level)
        self._is_paused = False
        self._score_state = rhythm_judge.ScoreState()
        self._clear_round()

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    @property
    def difficulty(self) -> Difficulty:
        return self._difficulty

    @property
    def phase(self) -> RoundPhase:
        return self._phase

    @property
    def level(self) -> int:
        return self._level

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def parameters(self) -> difficulty_policy.RhythmParameters:
        return difficulty_policy.rhythm_parameters(self._difficulty, self._level)

    @property
    def geometry(self) -> note_field.PlayfieldGeometry:
        return self._geometry

    @property
    def score_state(self) -> rhythm_judge.ScoreState:
        return self._score_state

    @property
    def score(self) -> int:
        return self._score_state.score

    @property
    def accuracy(self) -> float:
        return self._score_state.accuracy

    @property
    def notes(self) -> List[note_field.RhythmNote]:
        if self._field is None:
            return []
        return self._field.notes()

    @property
    def progress(self) -> float:
        if self._field is None or len(self._field) == 0:
            return 0.0
        return min(1.0, self._field.processed_count() / float(len(self._field)))

    def distance_to_hit_line(self, note: note_field.RhythmNote) -> float:
        return abs(float(note.y) - float(self._geometry.hit_line_y))

    def snapshot(self) -> RhythmSnapshot:
        state = self._score_state
        return RhythmSnapshot(
            phase=self._phase,
            level=self._level,
            lane_count=difficulty_policy.lane_count(self._difficulty),
            notes=tuple(replace(note) for note in self.notes),
            combo=state.combo,
            max_combo=state.max_combo,
            hits=state.hits,
            misses=state.misses,
            perfect_count=state.perfect_count,
            good_count=state.good_count,
            score=state.score,
            progress=self.progress,
            accuracy=state.accuracy,
            is_paused=self._is_paused,
        )

    def add_outcome_listener(self, callback: Callable[[RoundOutcome], None]) -> None:
        self._listeners.append(callback)

    def remove_outcome_listener(self, callback: Callable[[RoundOutcome], None]) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._phase is not RoundPhase.READY:
            return

        parameters = self.parameters
        self._clear_round()
        self._score_state.reset_level()
        notes = note_field.build_notes(
            note_count=parameters.notes_per_level,
            lane_count=parameters.lane_count,
            interval_seconds=parameters.note_interval_seconds,
            geometry=self._geometry,
            random_source=self._random,
        )
        self._field = note_field.NoteField(notes, self._geometry)
        self._judge = rhythm_judge.RhythmJudge(
            self._field,
            rhythm_judge.JudgementWindows(perfect=parameters.perfect_window, good=parameters.good_window),
            score_multiplier=parameters.score_multiplier,
            score_state=self._score_state,
        )
        self._max_misses = parameters.max_misses
        self._is_paused = False
        self._phase = RoundPhase.PLAYING

    def tick(self, elapsed_seconds: float) -> None:
        if self._is_paused or self._phase is not RoundPhase.PLAYING:
            return
        elapsed = float(elapsed_seconds)
        if elapsed <= 0.0:
            return

        frame_seconds = self._geometry.frame_seconds
        self._frame_accumulator += elapsed
        while self._phase is RoundPhase.PLAYING and self._frame_accumulator + _EPSILON >= frame_seconds:
            self._frame_accumulator -= frame_seconds
            self.step_frame()

    def step_frame(self) -> None:
        if self._is_paused or self._phase is not RoundPhase.PLAYING or self._field is None:
            return

        self._field.advance(self._geometry.note_speed)
        self._judge.update_for_frame(max_misses=self._max_misses)
        if self._score_state.misses >= self._max_misses:
            self._finish_round(completed=False)
            return
        self._check_level_complete()

    def tap(self, lane: int) -> Optional[rhythm_judge.JudgementEvent]:
        if self._phase is not RoundPhase.PLAYING or self._is_paused or self._judge is None:
            return None

        lane_index = int(lane)
        if lane_index < 0 or lane_index >= difficulty_policy.lane_count(self._difficulty):
            return None

        event = self._judge.on_tap(lane_index)
        if event is not None:
            self._check_level_complete()
        return event

    def recent_judgements(self) -> List[rhythm_judge.JudgementEvent]:
        if self._judge is None:
            return []
        return self._judge.recent_judgements()

    def clear_recent_judgements(self) -> None:
        if self._judge is not None:
            self._judge.clear_recent_judgements()

    def pause(self) -> None:
        if self._phase is RoundPhase.PLAYING:
            self._is_paused = True

    def resume(self) -> None:
        self._is_paused = False

    def advance(self) -> None:
        if self._phase is not RoundPhase.LEVEL_COMPLETE:
            return
        self._clear_round()
        self._score_state.reset_level()
        if self._level >= MAX_LEVEL:
            self._phase = RoundPhase.FINISHED
            return
        self._level += 1
        self._phase = RoundPhase.READY

    def restart(self) -> None:
        self._clear_round()
        self._score_state = rhythm_judge.ScoreState()
        self._level = 1
        self._is_paused = False
        self._phase = RoundPhase.READY

    def exit(self) -> None:
        self._clear_round()
        self._is_paused = False
        self._phase = RoundPhase.FINISHED

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _clear_round(self) -> None:
        self._field: Optional[note_field.NoteField] = None
        self._judge: Optional[rhythm_judge.RhythmJudge] = None
        self._max_misses = 0
        self._frame_accumulator = 0.0
        self._outcome_emitted = False

    def _check_level_complete(self) -> None:
        if self._phase is RoundPhase.PLAYING and self._field is not None and self._field.all_processed():
            self._finish_round(completed=True)

    def _finish_round(self, *, completed: bool) -> None:
        if self._outcome_emitted:
            return
        self._outcome_emitted = True
        self._phase = RoundPhase.LEVEL_COMPLETE if completed else RoundPhase.GAME_OVER

        outcome = RoundOutcome(
            game_type=self.game_type,
            difficulty=self._difficulty,
            level=self._level,
            score=self._score_state.score,
            accuracy=self._score_state.accuracy,
            completed=bool(completed),
        )
        for listener in list(self._listeners):
            listener(outcome)


def _run_unit_tests() -> None:
    outcomes: List[RoundOutcome] = []
    engine = RhythmGameEngine(Difficulty.HARD, random_source=make_random_source(11))
    engine.add_outcome_listener(outcomes.append)
    engine.start()
    assert engine.phase is RoundPhase.PLAYING
    assert len(engine.notes) == 18

    # Nobody taps: the fourth miss ends the round.
    while engine.phase is RoundPhase.PLAYING:
        engine.step_frame()
    assert engine.phase is RoundPhase.GAME_OVER
    assert engine.score_state.misses == 4
    assert len(outcomes) == 1 and not outcomes[0].completed

    engine.restart()
    assert engine.phase is RoundPhase.READY and engine.level == 1 and engine.score == 0


if __name__ == "__main__":
    _run_unit_tests()
    print("rhythm_engine.py: ok")
