# -*- coding: utf-8 -*-
########################
# tick_driver.py
########################
# Purpose:
# - Fixed-rate tick source for the game engines, backed by a QTimer.
# - Emits measured elapsed seconds between ticks so engines advance by real time, not by timer count.
#
# Design notes:
# - Every start() and stop() bumps a generation counter. Each tick carries the generation it was
#   produced under, so a consumer can drop ticks that were queued before a restart or teardown.
# - stop() cancels the QTimer; a stopped driver never emits.
# - The time source is injectable so tests can drive the clock.
#
########################
# Interfaces:
# Public classes:
# - class TickDriver(PyQt6.QtCore.QObject)
#   - Signals:
#     - ticked(int generation, float elapsed_seconds)
#   - Methods:
#     - start() -> int
#     - stop() -> None
#     - is_running() -> bool
#     - generation() -> int
#     - interval_ms() -> int
#
# Inputs:
# - Qt event loop timer callbacks.
#
# Outputs:
# - ticked signal consumed by GameController.
#
########################

from __future__ import annotations

import time
from typing import Callable, Optional

from PyQt6.QtCore import QObject, Qt, QTimer, pyqtSignal


class TickDriver(QObject):
    ticked = pyqtSignal(int, float)

    def __init__(
        self,
        interval_ms: int = 16,
        *,
        time_source: Optional[Callable[[], float]] = None,
        parent: Optional[QObject] = None,
    ) -> None:
        super().__init__(parent)
        self._interval_ms = int(max(1, interval_ms))
        self._time_source = time_source if time_source is not None else time.monotonic
        self._generation = 0
        self._last_time_seconds: Optional[float] = None

        self._timer = QTimer(self)
        self._timer.setTimerType(Qt.TimerType.PreciseTimer)
        self._timer.setInterval(self._interval_ms)
        self._timer.timeout.connect(self._on_timeout)

    @classmethod
    def for_frame_rate(cls, frame_rate_hz: float, **kwargs) -> "TickDriver":
        return cls(int(round(1000.0 / max(1.0, float(frame_rate_hz)))), **kwargs)

    def interval_ms(self) -> int:
        return int(self._interval_ms)

    def generation(self) -> int:
        return int(self._generation)

    def is_running(self) -> bool:
        return bool(self._timer.isActive())

    def start(self) -> int:
        if self._timer.isActive():
            return self._generation
        self._generation += 1
        self._last_time_seconds = float(self._time_source())
        self._timer.start()
        return self._generation

    def stop(self) -> None:
        if self._timer.isActive():
            self._timer.stop()
        self._generation += 1
        self._last_time_seconds = None

    def _on_timeout(self) -> None:
        now_seconds = float(self._time_source())
        if self._last_time_seconds is None:
            self._last_time_seconds = now_seconds
            return
        elapsed_seconds = max(0.0, now_seconds - self._last_time_seconds)
        self._last_time_seconds = now_seconds
        self.ticked.emit(self._generation, elapsed_seconds)
