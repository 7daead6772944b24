"""Per-stage frame timers with a periodic summary in the log."""

from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from itertools import count
from typing import Any, Callable

from .system import System
from .tick import Tick

logger = logging.getLogger(__name__)

_LOG_INTERVAL = 10.0


@dataclass(frozen=True, order=True)
class FrameTimerId:
    """Handle for a frame timer, returned by ``FrameTimers``."""

    value: int


@dataclass
class _FrameTimer:
    debug_name: str
    last_start: float | None = None
    seconds_since_logged: float = 0.0
    times_since_logged: int = 0


def _ratio(numerator: float, denominator: float) -> float:
    if denominator:
        return numerator / denominator
    if numerator == 0:
        return math.nan
    return math.copysign(math.inf, numerator)


class FrameTimers(System):
    """Manages timers started and stopped around the stages of a frame.

    Every ten seconds a summary of the timer averages, tick drift and sleep
    time is written to the ``info`` log.
    """

    debug_name = "frame_timers"
    requires = Tick

    def __init__(self, *, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._timers: dict[FrameTimerId, _FrameTimer] = {}
        self._ids = count()
        self._last_logged: float | None = None
        self._reset_drift()
        self._reset_slept()
        self._tick_timer = self.new_stopped("tick")
        self._frame_timer = self.new_stopped("frame")

    @classmethod
    def create(cls, deps: Any) -> "FrameTimers":
        return cls()

    def new_stopped(self, debug_name: str) -> FrameTimerId:
        """Create a stopped timer; ``debug_name`` labels it in the summary."""
        timer_id = FrameTimerId(next(self._ids))
        self._timers[timer_id] = _FrameTimer(debug_name)
        return timer_id

    def _timer(self, timer_id: FrameTimerId) -> _FrameTimer:
        try:
            return self._timers[timer_id]
        except KeyError:
            raise KeyError(f"Invalid timer id: {timer_id!r}") from None

    def remove(self, timer_id: FrameTimerId) -> None:
        self._timer(timer_id)
        del self._timers[timer_id]

    def start(self, timer_id: FrameTimerId) -> float | None:
        """Start a timer; restarting returns seconds since the previous start."""
        timer = self._timer(timer_id)
        current_time = self._clock()
        previous, timer.last_start = timer.last_start, current_time
        if previous is None:
            return None
        elapsed = current_time - previous
        timer.seconds_since_logged += elapsed
        timer.times_since_logged += 1
        return elapsed

    def stop(self, timer_id: FrameTimerId) -> float | None:
        """Stop a timer and return elapsed seconds, or ``None`` if stopped."""
        timer = self._timer(timer_id)
        if timer.last_start is None:
            return None
        elapsed = self._clock() - timer.last_start
        timer.last_start = None
        timer.seconds_since_logged += elapsed
        timer.times_since_logged += 1
        return elapsed

    def query(self, timer_id: FrameTimerId) -> float | None:
        """Seconds since a running timer started, or ``None`` if stopped."""
        timer = self._timer(timer_id)
        if timer.last_start is None:
            return None
        return self._clock() - timer.last_start

    def update(self, deps: Any) -> None:
        tick = deps
        drift = tick.drift
        self._num_ticks += 1
        self._drift_mean += drift
        self._drift_max = max(self._drift_max, drift)
        self._drift_min = min(self._drift_min, drift)

        slept = tick.slept
        if slept > 0.0:
            self._num_slept += 1
            self._slept_mean += slept
            self._slept_max = max(self._slept_max, slept)
            self._slept_min = min(self._slept_min, slept)

        self.start(self._tick_timer)
        if tick.is_frame:
            self.start(self._frame_timer)
        self._maybe_log()

    def _reset_drift(self) -> None:
        self._num_ticks = 0
        self._drift_min = 100.0
        self._drift_max = -100.0
        self._drift_mean = 0.0

    def _reset_slept(self) -> None:
        self._num_slept = 0
        self._slept_min = 100.0
        self._slept_max = -100.0
        self._slept_mean = 0.0

    def _maybe_log(self) -> None:
        current_time = self._clock()
        if self._last_logged is None:
            self._last_logged = current_time
            return
        if current_time - self._last_logged < _LOG_INTERVAL:
            return
        self._last_logged = current_time

        lines = []
        for timer in self._timers.values():
            seconds, times = timer.seconds_since_logged, timer.times_since_logged
            timer.seconds_since_logged = 0.0
            timer.times_since_logged = 0
            lines.append(
                f"\n\t{timer.debug_name}\t{_ratio(times, seconds):.2f}/s "
                f"(avg {_ratio(seconds, times) * 1000.0:.2f}ms)"
            )
        logger.info("Frame timer summary:%s", "".join(lines))
        logger.info(
            "Drift summary: n=%d, min=%.2fms mean=%.2fms max=%.2fms",
            self._num_ticks,
            self._drift_min * 1e3,
            _ratio(self._drift_mean, self._num_ticks) * 1e3,
            self._drift_max * 1e3,
        )
        self._reset_drift()
        logger.info(
            "Sleep summary: n=%d, min=%.2fms mean=%.2fms max=%.2fms",
            self._num_slept,
            self._slept_min * 1e3,
            _ratio(self._slept_mean, self._num_slept) * 1e3,
            self._slept_max * 1e3,
        )
        self._reset_slept()