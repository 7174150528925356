# -*- coding: utf-8 -*-
########################
# note_field.py
########################
# Purpose:
# - Own the scrolling notes of one Rhythm Steps level and their hit/active state.
# - Organize notes into per-lane lists for nearest-note queries and miss detection.
#
# Design notes:
# - No Qt usage. Pure gameplay logic.
# - Positions are in playfield units. Notes move down (increasing y) toward the hit line.
# - A note is "live" while it is active and not hit. Hit and missed notes are both inactive.
# - Note order is deterministic: index order, which is also scheduled offset order.
#
########################
# Interfaces:
# Public dataclasses:
# - PlayfieldGeometry(frame_rate_hz, note_speed, hit_line_y, spawn_y, miss_grace)
# - RhythmNote(index, lane, scheduled_offset, y, is_hit=False, is_active=True)
#
# Public functions:
# - build_notes(*, note_count, lane_count, interval_seconds, geometry, random_source) -> list[RhythmNote]
#
# Public classes:
# - class NoteField
#   - __init__(notes: list[RhythmNote], geometry: PlayfieldGeometry)
#   - notes() -> list[RhythmNote]
#   - advance(distance: float) -> None
#   - distance_to_hit_line(note: RhythmNote) -> float
#   - find_nearest_live_note(lane: int) -> Optional[RhythmNote]
#   - live_notes_past_grace() -> list[RhythmNote]
#   - mark_hit(note) / mark_missed(note) -> None
#   - processed_count() -> int
#   - all_processed() -> bool
#
# Inputs:
# - Difficulty parameters from difficulty_policy and geometry from config.
#
# Outputs:
# - RhythmNote views for rendering and candidate selection for RhythmJudge.
#
########################

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional

from random_source import RandomSource


@dataclass(frozen=True)
class PlayfieldGeometry:
    frame_rate_hz: float = 60.0
    note_speed: float = 4.0
    hit_line_y: float = 630.0
    spawn_y: float = -50.0
    miss_grace: float = 60.0

    @property
    def frame_seconds(self) -> float:
        return 1.0 / float(self.frame_rate_hz)

    @property
    def speed_per_second(self) -> float:
        return float(self.note_speed) * float(self.frame_rate_hz)

    @property
    def lead_in_seconds(self) -> float:
        """Travel time from the spawn line to the hit line."""
        return (float(self.hit_line_y) - float(self.spawn_y)) / self.speed_per_second

    @property
    def miss_line_y(self) -> float:
        return float(self.hit_line_y) + float(self.miss_grace)


@dataclass
class RhythmNote:
    index: int
    lane: int
    scheduled_offset: float
    y: float
    is_hit: bool = False
    is_active: bool = True

    @property
    def is_live(self) -> bool:
        return self.is_active and not self.is_hit


def build_notes(
    *,
    note_count: int,
    lane_count: int,
    interval_seconds: float,
    geometry: PlayfieldGeometry,
    random_source: RandomSource,
) -> List[RhythmNote]:
    # Note i starts i * spacing above the spawn line, so it reaches the hit line
    # at lead_in + i * interval at the constant scroll speed.
    spacing = float(interval_seconds) * geometry.speed_per_second
    lead_in_seconds = geometry.lead_in_seconds
    notes: List[RhythmNote] = []
    for note_index in range(int(note_count)):
        notes.append(
            RhythmNote(
                index=note_index,
                lane=int(random_source.randrange(int(lane_count))),
                scheduled_offset=lead_in_seconds + note_index * float(interval_seconds),
                y=float(geometry.spawn_y) - note_index * spacing,
            )
        )
    return notes


class NoteField:
    def __init__(self, notes: List[RhythmNote], geometry: PlayfieldGeometry) -> None:
        self._notes = sorted(notes, key=lambda item: int(item.index))
        self._geometry = geometry
        self._lanes: Dict[int, List[RhythmNote]] = {}
        for note in self._notes:
            self._lanes.setdefault(int(note.lane), []).append(note)

    def notes(self) -> List[RhythmNote]:
        return list(self._notes)

    def geometry(self) -> PlayfieldGeometry:
        return self._geometry

    def __len__(self) -> int:
        return len(self._notes)

    def advance(self, distance: float) -> None:
        step = float(distance)
        for note in self._notes:
            if note.is_live:
                note.y += step

    def distance_to_hit_line(self, note: RhythmNote) -> float:
        return abs(float(note.y) - float(self._geometry.hit_line_y))

    def find_nearest_live_note(self, lane: int) -> Optional[RhythmNote]:
        best_note: Optional[RhythmNote] = None
        best_distance = 0.0
        for candidate in self._lanes.get(int(lane), []):
            if not candidate.is_live:
                continue
            distance = self.distance_to_hit_line(candidate)
            # Equidistant candidates keep the earlier note.
            if best_note is None or distance < best_distance:
                best_note = candidate
                best_distance = distance
        return best_note

    def live_notes_past_grace(self) -> List[RhythmNote]:
        miss_line_y = self._geometry.miss_line_y
        return [note for note in self._notes if note.is_live and note.y > miss_line_y]

    def mark_hit(self, note: RhythmNote) -> None:
        note.is_hit = True
        note.is_active = False

    def mark_missed(self, note: RhythmNote) -> None:
        note.is_active = False

    def processed_count(self) -> int:
        return sum(1 for note in self._notes if not note.is_live)

    def all_processed(self) -> bool:
        return bool(self._notes) and all(not note.is_live for note in self._notes)


def _run_unit_tests() -> None:
    import random_source

    geometry = PlayfieldGeometry()
    notes = build_notes(
        note_count=4,
        lane_count=3,
        interval_seconds=1.0,
        geometry=geometry,
        random_source=random_source.make_random_source(1),
    )
    assert [note.index for note in notes] == [0, 1, 2, 3]
    assert notes[1].y == geometry.spawn_y - geometry.speed_per_second

    field = NoteField(notes, geometry)
    frames_to_hit_line = int((geometry.hit_line_y - geometry.spawn_y) / geometry.note_speed)
    for _ in range(frames_to_hit_line):
        field.advance(geometry.note_speed)
    first = notes[0]
    assert field.distance_to_hit_line(first) < 1e-6
    assert field.find_nearest_live_note(first.lane) is first

    field.mark_hit(first)
    assert field.processed_count() == 1
    assert not field.all_processed()


if __name__ == "__main__":
    _run_unit_tests()
    print("note_field.py: ok")
