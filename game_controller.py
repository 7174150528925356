# -*- coding: utf-8 -*-
########################
# game_controller.py
########################
# Purpose:
# - Command surface the presentation layer talks to: start a game, forward taps and lifecycle
#   commands, and publish phase and state changes as Qt signals.
# - Wires one engine, one TickDriver and the SessionRecorder together.
#
# Design notes:
# - The TickDriver runs only while the engine is Showing or Playing and not paused. It is stopped
#   (not merely ignored) on pause, round end, restart, exit and dispose.
# - Ticks carry the driver generation; ticks from an older generation are dropped, so a timer
#   callback queued before a teardown never touches the new round.
# - Terminal outcomes are recorded synchronously from inside the engine callback.
# - All commands are fire-and-forget. Commands that do not apply in the current phase are no-ops.
#
########################
# Interfaces:
# Public functions:
# - sequence_timing_from_config(app_config: AppConfig) -> SequenceTiming
# - playfield_geometry_from_config(app_config: AppConfig) -> PlayfieldGeometry
# - build_engine(game_type, difficulty, *, level=1, random_source=None, app_config=None) -> engine
#
# Public classes:
# - class GameController(PyQt6.QtCore.QObject)
#   - Signals:
#     - phaseChanged(RoundPhase)
#     - stateUpdated(SequenceSnapshot | RhythmSnapshot)
#     - sessionRecorded(GameSession)
#     - badgesUnlocked(list[Badge])
#   - Methods:
#     - start(game_type, difficulty, level=1) -> None
#     - tap(index: int) -> None
#     - pause() / resume() / restart() / advance() / exit() / dispose() -> None
#     - engine() -> Optional[engine]
#
# Inputs:
# - Commands from the presentation layer, ticks from TickDriver.
#
# Outputs:
# - Qt signals above; sessions and badges written through SessionRecorder.
#
########################

from __future__ import annotations

import logging
from typing import Optional, Union

from PyQt6.QtCore import QObject, pyqtSignal

import note_field
from config import AppConfig
from game_models import Difficulty, GameType, PathbeatError, RoundOutcome, RoundPhase
from random_source import RandomSource
from rhythm_engine import RhythmGameEngine
from sequence_engine import SequenceGameEngine, SequenceTiming
from session_recorder import SessionRecorder
from tick_driver import TickDriver


logger = logging.getLogger(__name__)

GameEngine = Union[SequenceGameEngine, RhythmGameEngine]


def sequence_timing_from_config(app_config: AppConfig) -> SequenceTiming:
    section = app_config.sequence
    return SequenceTiming(
        tick_seconds=float(section.tick_seconds),
        lead_in_seconds=float(section.lead_in_seconds),
        lead_out_seconds=float(section.lead_out_seconds),
        reveal_pause_seconds=float(section.reveal_pause_seconds),
    )


def playfield_geometry_from_config(app_config: AppConfig) -> note_field.PlayfieldGeometry:
    section = app_config.rhythm
    return note_field.PlayfieldGeometry(
        frame_rate_hz=float(section.frame_rate_hz),
        note_speed=float(section.note_speed),
        hit_line_y=float(section.hit_line_y),
        spawn_y=float(section.spawn_y),
        miss_grace=float(section.miss_grace),
    )


def build_engine(
    game_type: GameType,
    difficulty: Difficulty,
    *,
    level: int = 1,
    random_source: Optional[RandomSource] = None,
    app_config: Optional[AppConfig] = None,
) -> GameEngine:
    resolved_config = app_config if app_config is not None else AppConfig()
    if GameType(game_type) is GameType.SEQUENCE_GAME:
        return SequenceGameEngine(
            Difficulty(difficulty),
            random_source=random_source,
            timing=sequence_timing_from_config(resolved_config),
            level=level,
        )
    return RhythmGameEngine(
        Difficulty(difficulty),
        random_source=random_source,
        geometry=playfield_geometry_from_config(resolved_config),
        level=level,
    )


class GameController(QObject):
    phaseChanged = pyqtSignal(object)
    stateUpdated = pyqtSignal(object)
    sessionRecorded = pyqtSignal(object)
    badgesUnlocked = pyqtSignal(object)

    def __init__(
        self,
        recorder: Optional[SessionRecorder] = None,
        *,
        app_config: Optional[AppConfig] = None,
        random_source: Optional[RandomSource] = None,
        tick_driver: Optional[TickDriver] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._recorder = recorder
        self._app_config = app_config if app_config is not None else AppConfig()
        self._random_source = random_source

        if tick_driver is None:
            tick_driver = TickDriver.for_frame_rate(self._app_config.rhythm.frame_rate_hz, parent=self)
        self._driver = tick_driver
        self._driver.ticked.connect(self._on_tick)

        self._engine: Optional[GameEngine] = None
        self._last_phase: Optional[RoundPhase] = None
        self._is_disposed = False

    def engine(self) -> Optional[GameEngine]:
        return self._engine

    def tick_driver(self) -> TickDriver:
        return self._driver

    def is_disposed(self) -> bool:
        return bool(self._is_disposed)

    # -----------------
    # Commands
    # -----------------

    def start(self, game_type: GameType, difficulty: Difficulty, level: int = 1) -> None:
        if self._is_disposed:
            return
        self._teardown_engine()
        engine = build_engine(
            game_type,
            difficulty,
            level=level,
            random_source=self._random_source,
            app_config=self._app_config,
        )
        engine.add_outcome_listener(self._on_outcome)
        self._engine = engine
        self._last_phase = None
        engine.start()
        self._sync()

    def tap(self, index: int) -> None:
        if self._engine is None:
            return
        self._engine.tap(int(index))
        self._sync()

    def pause(self) -> None:
        if self._engine is None:
            return
        self._engine.pause()
        self._sync()

    def resume(self) -> None:
        if self._engine is None:
            return
        self._engine.resume()
        self._sync()

    def restart(self) -> None:
        if self._engine is None:
            return
        self._driver.stop()
        self._engine.restart()
        self._engine.start()
        self._sync()

    def advance(self) -> None:
        if self._engine is None or self._engine.phase is not RoundPhase.LEVEL_COMPLETE:
            return
        self._driver.stop()
        self._engine.advance()
        if self._engine.phase is RoundPhase.READY:
            self._engine.start()
        self._sync()

    def exit(self) -> None:
        if self._engine is None:
            return
        self._driver.stop()
        self._engine.exit()
        self._sync()

    def dispose(self) -> None:
        if self._is_disposed:
            return
        self._teardown_engine()
        try:
            self._driver.ticked.disconnect(self._on_tick)
        except TypeError:
            pass
        self._is_disposed = True

    # -----------------
    # Internals
    # -----------------

    def _teardown_engine(self) -> None:
        self._driver.stop()
        if self._engine is not None:
            self._engine.remove_outcome_listener(self._on_outcome)
            self._engine.exit()
        self._engine = None

    def _on_tick(self, generation: int, elapsed_seconds: float) -> None:
        if self._engine is None or int(generation) != self._driver.generation():
            return
        self._engine.tick(float(elapsed_seconds))
        self._sync()

    def _on_outcome(self, outcome: RoundOutcome) -> None:
        if self._recorder is None:
            return
        try:
            result = self._recorder.record(outcome)
        except PathbeatError as exception:
            logger.error("Failed to record session: %s", exception)
            return
        self.sessionRecorded.emit(result.session)
        if result.unlocked_badges:
            self.badgesUnlocked.emit(list(result.unlocked_badges))

    def _sync(self) -> None:
        engine = self._engine
        if engine is None:
            return

        should_run = engine.phase.is_running and not engine.is_paused
        if should_run and not self._driver.is_running():
            self._driver.start()
        elif not should_run and self._driver.is_running():
            self._driver.stop()

        if engine.phase is not self._last_phase:
            self._last_phase = engine.phase
            self.phaseChanged.emit(engine.phase)
        self.stateUpdated.emit(engine.snapshot())
