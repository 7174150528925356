# -*- coding: utf-8 -*-
########################
# rhythm_judge.py
########################
# Purpose:
# - Hit judgement and scoring engine for Rhythm Steps.
# - Matches a lane tap to the nearest live note in that lane and classifies it by hit line distance.
# - Registers misses for notes that scrolled past the miss line.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - NoteField owns the note list; RhythmJudge marks notes hit or missed through the NoteField boundary.
# - A tap outside the Good window is not a judgement: the note stays live for a later tap or a miss.
# - Scoring on a hit uses the combo before the hit: base * (1 + combo // 10) * multiplier, then combo += 1.
#
########################
# Interfaces:
# Public enums:
# - Judgement: PERFECT | GOOD | MISS
#
# Public dataclasses:
# - JudgementWindows(perfect: float, good: float)
#   - classify_distance(distance: float) -> Optional[Judgement]
# - ScoreState(combo, max_combo, score, hits, misses, perfect_count, good_count)
#   - apply_judgement(judgement: Judgement, score_multiplier: int) -> int
#   - reset_level() -> None
#   - accuracy -> float
# - JudgementEvent(lane, note_index, judgement, distance, points)
#
# Public classes:
# - class RhythmJudge
#   - __init__(note_field: NoteField, windows: JudgementWindows, score_multiplier: int, score_state: ScoreState)
#   - score_state() -> ScoreState
#   - recent_judgements() -> list[JudgementEvent]
#   - clear_recent_judgements() -> None
#   - on_tap(lane: int) -> Optional[JudgementEvent]
#   - update_for_frame() -> list[JudgementEvent]
#
# Inputs:
# - Lane taps and per-frame updates from RhythmGameEngine.
#
# Outputs:
# - JudgementEvent objects for UI feedback, and ScoreState counters for the round outcome.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

import note_field


class Judgement(str, Enum):
    PERFECT = "perfect"
    GOOD = "good"
    MISS = "miss"


BASE_POINTS: Dict[Judgement, int] = {
    Judgement.PERFECT: 100,
    Judgement.GOOD: 50,
    Judgement.MISS: 0,
}


@dataclass(frozen=True)
class JudgementWindows:
    perfect: float
    good: float

    def classify_distance(self, distance: float) -> Optional[Judgement]:
        abs_distance = abs(float(distance))
        if abs_distance <= float(self.perfect):
            return Judgement.PERFECT
        if abs_distance <= float(self.good):
            return Judgement.GOOD
        return None


@dataclass
class ScoreState:
    combo: int = 0
    max_combo: int = 0
    score: int = 0
    hits: int = 0
    misses: int = 0
    perfect_count: int = 0
    good_count: int = 0

    @property
    def accuracy(self) -> float:
        total = self.hits + self.misses
        if total <= 0:
            return 0.0
        return self.hits / float(total) * 100.0

    def apply_judgement(self, judgement: Judgement, score_multiplier: int) -> int:
        if judgement is Judgement.MISS:
            self.misses += 1
            self.combo = 0
            return 0

        points = BASE_POINTS[judgement] * (1 + self.combo // 10) * int(score_multiplier)
        self.score += points
        self.hits += 1
        if judgement is Judgement.PERFECT:
            self.perfect_count += 1
        else:
            self.good_count += 1

        self.combo += 1
        if self.combo > self.max_combo:
            self.max_combo = self.combo
        return points

    def reset_level(self) -> None:
        # score and max_combo carry over between levels of one play session.
        self.combo = 0
        self.hits = 0
        self.misses = 0
        self.perfect_count = 0
        self.good_count = 0


@dataclass(frozen=True)
class JudgementEvent:
    lane: int
    note_index: int
    judgement: Judgement
    distance: float
    points: int


class RhythmJudge:
    def __init__(
        self,
        note_field_obj: note_field.NoteField,
        windows: JudgementWindows,
        score_multiplier: int,
        score_state: Optional[ScoreState] = None,
    ) -> None:
        self._note_field = note_field_obj
        self._windows = windows
        self._score_multiplier = int(score_multiplier)
        self._score_state = score_state if score_state is not None else ScoreState()
        self._recent_judgements: List[JudgementEvent] = []

    def score_state(self) -> ScoreState:
        return self._score_state

    def windows(self) -> JudgementWindows:
        return self._windows

    def recent_judgements(self) -> List[JudgementEvent]:
        return list(self._recent_judgements)

    def clear_recent_judgements(self) -> None:
        self._recent_judgements.clear()

    def on_tap(self, lane: int) -> Optional[JudgementEvent]:
        candidate = self._note_field.find_nearest_live_note(int(lane))
        if candidate is None:
            return None

        distance = self._note_field.distance_to_hit_line(candidate)
        judgement = self._windows.classify_distance(distance)
        if judgement is None:
            return None

        self._note_field.mark_hit(candidate)
        points = self._score_state.apply_judgement(judgement, self._score_multiplier)
        event = JudgementEvent(
            lane=int(candidate.lane),
            note_index=int(candidate.index),
            judgement=judgement,
            distance=distance,
            points=points,
        )
        self._recent_judgements.append(event)
        return event

    def update_for_frame(self, *, max_misses: Optional[int] = None) -> List[JudgementEvent]:
        """Register misses for notes past the miss line, stopping once max_misses is reached."""
        misses: List[JudgementEvent] = []
        for candidate in self._note_field.live_notes_past_grace():
            if max_misses is not None and self._score_state.misses >= int(max_misses):
                break
            self._note_field.mark_missed(candidate)
            self._score_state.apply_judgement(Judgement.MISS, self._score_multiplier)
            event = JudgementEvent(
                lane=int(candidate.lane),
                note_index=int(candidate.index),
                judgement=Judgement.MISS,
                distance=self._note_field.distance_to_hit_line(candidate),
                points=0,
            )
            self._recent_judgements.append(event)
            misses.append(event)
        return misses


def _run_unit_tests() -> None:
    geometry = note_field.PlayfieldGeometry()
    notes = [
        note_field.RhythmNote(index=0, lane=0, scheduled_offset=0.0, y=geometry.hit_line_y),
        note_field.RhythmNote(index=1, lane=1, scheduled_offset=0.5, y=geometry.hit_line_y - 100.0),
    ]
    field = note_field.NoteField(notes, geometry)
    judge = RhythmJudge(field, JudgementWindows(perfect=80.0, good=120.0), score_multiplier=1)

    hit = judge.on_tap(0)
    assert hit is not None and hit.judgement is Judgement.PERFECT
    assert judge.score_state().score == 100

    stray = judge.on_tap(2)
    assert stray is None

    good = judge.on_tap(1)
    assert good is not None and good.judgement is Judgement.GOOD
    assert judge.score_state().score == 150
    assert judge.score_state().combo == 2

    late = note_field.RhythmNote(index=2, lane=0, scheduled_offset=1.0, y=geometry.miss_line_y + 1.0)
    judge = RhythmJudge(note_field.NoteField([late], geometry), JudgementWindows(80.0, 120.0), score_multiplier=1)
    misses = judge.update_for_frame()
    assert len(misses) == 1
    assert judge.score_state().misses == 1


if __name__ == "__main__":
    _run_unit_tests()
    print("rhythm_judge.py: ok")
