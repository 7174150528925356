# -*- coding: utf-8 -*-
########################
# sequence_engine.py
########################
# Purpose:
# - Path Tiles game engine: show a target sequence of grid cells, then have the player repeat it
#   before a countdown runs out.
#
# Design notes:
# - No Qt usage. Pure gameplay logic driven by tick(elapsed_seconds) and tap(cell_index).
# - The reveal animation is a step function over an engine-local clock with a single next_wake_time,
#   not a chain of deferred callbacks. Pausing freezes that clock and the countdown.
# - The countdown is held as an integer number of ticks so repeated decrements never drift.
# - Exactly one outcome is emitted per round, when Playing ends in LevelComplete or GameOver.
# - Hard mode may repeat cells in the target. A cell already in player_input can be tapped again
#   only when it is the next expected cell; any other re-tap is ignored.
#
########################
# Interfaces:
# Public dataclasses:
# - SequenceTiming(tick_seconds, lead_in_seconds, lead_out_seconds, reveal_pause_seconds)
# - SequenceSnapshot(phase, level, board_size, target_length, player_input, highlighted_cell,
#                    time_remaining, score, accuracy, is_paused)
#
# Public classes:
# - class SequenceGameEngine
#   - __init__(difficulty, *, random_source=None, timing=None, level=1)
#   - add_outcome_listener(callback) -> None
#   - start() -> None            Ready -> Showing
#   - tick(elapsed_seconds) -> None
#   - tap(cell_index) -> None    Playing only
#   - pause() / resume() -> None
#   - advance() -> None          LevelComplete -> Ready(level + 1) or Finished
#   - restart() -> None          any -> Ready(level 1), score reset
#   - exit() -> None             any -> Finished
#   - snapshot() -> SequenceSnapshot
#
# Inputs:
# - Elapsed time from a tick source and cell taps from the presentation layer.
#
# Outputs:
# - RoundOutcome delivered to outcome listeners (SessionRecorder via GameController).
#
########################

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import difficulty_policy
from game_models import MAX_LEVEL, Difficulty, GameType, RoundOutcome, RoundPhase
from random_source import RandomSource, make_random_source


_EPSILON = 1e-9

_STAGE_LEAD_IN = "lead_in"
_STAGE_HIGHLIGHT = "highlight"
_STAGE_PAUSE = "pause"
_STAGE_LEAD_OUT = "lead_out"


@dataclass(frozen=True)
class SequenceTiming:
    tick_seconds: float = 0.1
    lead_in_seconds: float = 0.5
    lead_out_seconds: float = 0.5
    reveal_pause_seconds: float = difficulty_policy.REVEAL_PAUSE_SECONDS


@dataclass(frozen=True)
class SequenceSnapshot:
    phase: RoundPhase
    level: int
    board_size: int
    target_length: int
    player_input: Tuple[int, ...]
    highlighted_cell: Optional[int]
    time_remaining: float
    score: int
    accuracy: float
    is_paused: bool


class SequenceGameEngine:
    game_type = GameType.SEQUENCE_GAME

    def __init__(
        self,
        difficulty: Difficulty,
        *,
        random_source: Optional[RandomSource] = None,
        timing: Optional[SequenceTiming] = None,
        level: int = 1,
    ) -> None:
        if int(level) < 1 or int(level) > MAX_LEVEL:
            raise ValueError(f"level must be in 1..{MAX_LEVEL}, got: {level!r}")
        if timing is not None and timing.tick_seconds <= 0.0:
            raise ValueError("tick_seconds must be positive")

        self._difficulty = Difficulty(difficulty)
        self._random = random_source if random_source is not None else make_random_source()
        self._timing = timing if timing is not None else SequenceTiming()
        self._listeners: List[Callable[[RoundOutcome], None]] = []

        self._phase = RoundPhase.READY
        self._level = int(level)
        self._score = 0
        self._is_paused = False
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
    def score(self) -> int:
        return self._score

    @property
    def accuracy(self) -> float:
        return self._accuracy

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def board_size(self) -> int:
        return difficulty_policy.board_size(self._difficulty, self._level)

    @property
    def target_sequence(self) -> Tuple[int, ...]:
        return tuple(self._target)

    @property
    def player_input(self) -> Tuple[int, ...]:
        return tuple(self._player_input)

    @property
    def highlighted_cell(self) -> Optional[int]:
        return self._highlighted_cell

    @property
    def time_remaining(self) -> float:
        return round(self._remaining_ticks * self._timing.tick_seconds, 6)

    @property
    def next_wake_time(self) -> Optional[float]:
        if self._phase is not RoundPhase.SHOWING:
            return None
        return self._next_wake_time

    def snapshot(self) -> SequenceSnapshot:
        return SequenceSnapshot(
            phase=self._phase,
            level=self._level,
            board_size=self.board_size,
            target_length=len(self._target),
            player_input=tuple(self._player_input),
            highlighted_cell=self._highlighted_cell,
            time_remaining=self.time_remaining,
            score=self._score,
            accuracy=self._accuracy,
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

        parameters = difficulty_policy.sequence_parameters(self._difficulty, self._level)
        self._clear_round()
        self._target = self._generate_sequence(parameters)
        self._highlight_seconds = parameters.highlight_seconds
        self._remaining_ticks = int(round(parameters.time_budget_seconds / self._timing.tick_seconds))
        self._stage = _STAGE_LEAD_IN
        self._next_wake_time = float(self._timing.lead_in_seconds)
        self._is_paused = False
        self._phase = RoundPhase.SHOWING

    def tick(self, elapsed_seconds: float) -> None:
        if self._is_paused or not self._phase.is_running:
            return
        remaining = float(elapsed_seconds)
        if remaining <= 0.0:
            return

        if self._phase is RoundPhase.SHOWING:
            remaining = self._advance_reveal(remaining)

        if self._phase is RoundPhase.PLAYING and remaining > 0.0:
            self._advance_countdown(remaining)

    def tap(self, cell_index: int) -> None:
        if self._phase is not RoundPhase.PLAYING or self._is_paused:
            return

        cell = int(cell_index)
        if cell < 0 or cell >= self.board_size * self.board_size:
            return

        expected = self._target[len(self._player_input)]
        if cell in self._player_input and cell != expected:
            return

        if cell == expected:
            self._player_input.append(cell)
            if len(self._player_input) == len(self._target):
                time_bonus = int(math.floor(round(self.time_remaining * 10.0, 6)))
                self._score += time_bonus * self._difficulty.score_multiplier
                self._finish_round(completed=True)
            return

        self._finish_round(completed=False)

    def pause(self) -> None:
        if self._phase.is_running:
            self._is_paused = True

    def resume(self) -> None:
        self._is_paused = False

    def advance(self) -> None:
        if self._phase is not RoundPhase.LEVEL_COMPLETE:
            return
        self._clear_round()
        if self._level >= MAX_LEVEL:
            self._phase = RoundPhase.FINISHED
            return
        self._level += 1
        self._phase = RoundPhase.READY

    def restart(self) -> None:
        self._clear_round()
        self._level = 1
        self._score = 0
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
        self._target: List[int] = []
        self._player_input: List[int] = []
        self._highlighted_cell: Optional[int] = None
        self._highlight_seconds = 0.0
        self._remaining_ticks = 0
        self._tick_accumulator = 0.0
        self._clock = 0.0
        self._next_wake_time = 0.0
        self._stage = _STAGE_LEAD_IN
        self._show_index = 0
        self._playing_started_at = 0.0
        self._accuracy = 0.0
        self._outcome_emitted = False

    def _generate_sequence(self, parameters: difficulty_policy.SequenceParameters) -> List[int]:
        cell_count = parameters.cell_count
        length = parameters.sequence_length
        if parameters.allows_repeats:
            return [int(self._random.randrange(cell_count)) for _ in range(length)]
        return [int(cell) for cell in self._random.sample(range(cell_count), length)]

    def _advance_reveal(self, elapsed_seconds: float) -> float:
        """Run reveal steps that are due. Returns time left over after entering Playing."""
        self._clock += elapsed_seconds
        while self._phase is RoundPhase.SHOWING and self._clock + _EPSILON >= self._next_wake_time:
            self._run_reveal_step(self._next_wake_time)

        if self._phase is RoundPhase.PLAYING:
            return max(0.0, self._clock - self._playing_started_at)
        return 0.0

    def _run_reveal_step(self, wake_time: float) -> None:
        if self._stage == _STAGE_LEAD_IN or self._stage == _STAGE_PAUSE:
            if self._show_index < len(self._target):
                self._highlighted_cell = self._target[self._show_index]
                self._stage = _STAGE_HIGHLIGHT
                self._next_wake_time = wake_time + self._highlight_seconds
            else:
                self._highlighted_cell = None
                self._stage = _STAGE_LEAD_OUT
                self._next_wake_time = wake_time + float(self._timing.lead_out_seconds)
        elif self._stage == _STAGE_HIGHLIGHT:
            self._highlighted_cell = None
            self._show_index += 1
            self._stage = _STAGE_PAUSE
            self._next_wake_time = wake_time + float(self._timing.reveal_pause_seconds)
        else:
            self._playing_started_at = wake_time
            self._tick_accumulator = 0.0
            self._phase = RoundPhase.PLAYING

    def _advance_countdown(self, elapsed_seconds: float) -> None:
        tick_seconds = float(self._timing.tick_seconds)
        self._tick_accumulator += elapsed_seconds
        while self._phase is RoundPhase.PLAYING and self._tick_accumulator + _EPSILON >= tick_seconds:
            self._tick_accumulator -= tick_seconds
            self._remaining_ticks -= 1
            if self._remaining_ticks <= 0:
                self._remaining_ticks = 0
                self._finish_round(completed=False)

    def _finish_round(self, *, completed: bool) -> None:
        if self._outcome_emitted:
            return
        self._outcome_emitted = True

        if completed:
            self._accuracy = 100.0
            self._phase = RoundPhase.LEVEL_COMPLETE
        else:
            self._accuracy = len(self._player_input) / float(len(self._target)) * 100.0
            self._phase = RoundPhase.GAME_OVER
        self._highlighted_cell = None

        outcome = RoundOutcome(
            game_type=self.game_type,
            difficulty=self._difficulty,
            level=self._level,
            score=self._score,
            accuracy=self._accuracy,
            completed=bool(completed),
        )
        for listener in list(self._listeners):
            listener(outcome)


def _run_unit_tests() -> None:
    outcomes: List[RoundOutcome] = []
    engine = SequenceGameEngine(Difficulty.EASY, random_source=make_random_source(3))
    engine.add_outcome_listener(outcomes.append)

    engine.start()
    assert engine.phase is RoundPhase.SHOWING
    assert len(engine.target_sequence) == 3
    engine.tap(engine.target_sequence[0])
    assert engine.player_input == ()

    while engine.phase is RoundPhase.SHOWING:
        engine.tick(0.05)
    assert engine.phase is RoundPhase.PLAYING

    remaining_before = engine.time_remaining
    engine.tick(remaining_before - 10.0)
    assert abs(engine.time_remaining - 10.0) < 1e-6

    for cell in engine.target_sequence:
        engine.tap(cell)
    assert engine.phase is RoundPhase.LEVEL_COMPLETE
    assert engine.score == 100
    assert len(outcomes) == 1 and outcomes[0].completed and outcomes[0].accuracy == 100.0

    engine.advance()
    assert engine.phase is RoundPhase.READY and engine.level == 2


if __name__ == "__main__":
    _run_unit_tests()
    print("sequence_engine.py: ok")
