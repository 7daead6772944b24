"""Fixed-timestep simulation clock."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

from .system import System


@dataclass
class TickConfig:
    """Settings for the tick system."""

    timestep: float


@dataclass(frozen=True, order=True)
class TickIndex:
    """Deterministic index of a simulation tick."""

    value: int


class Tick(System):
    """Advances simulation time by a fixed timestep, sleeping when ahead."""

    debug_name = "tick"
    requires = TickConfig

    def __init__(
        self,
        timestep: float,
        *,
        clock: Callable[[], float] = time.perf_counter,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._timestep = timestep
        self._index = TickIndex(0)
        self._drift = 0.0
        self._slept = 0.0
        self._last_time: float | None = None
        self._is_frame = True
        self._clock = clock
        self._sleep = sleep

    @classmethod
    def create(cls, deps: TickConfig) -> "Tick":
        return cls(deps.timestep)

    @property
    def is_frame(self) -> bool:
        """Whether a frame should be rendered this tick."""
        return self._is_frame

    @property
    def timestep(self) -> float:
        return self._timestep

    @property
    def index(self) -> TickIndex:
        return self._index

    @property
    def drift(self) -> float:
        """Real time minus simulated time, in seconds."""
        return self._drift

    @property
    def slept(self) -> float:
        """Seconds slept during the last update."""
        return self._slept

    def seconds_since_tick(self, index: TickIndex) -> float:
        """Simulated seconds elapsed since ``index`` (negative if in the future)."""
        if index.value < self._index.value:
            return (self._index.value - index.value) * self._timestep
        return (index.value - self._index.value) * -self._timestep

    def update(self, deps: object = None) -> None:
        current_time = self._clock()
        if self._last_time is None:
            self._last_time = current_time
            return

        self._drift += (current_time - self._last_time) - self._timestep

        if self._drift < -self._timestep:
            sleep_duration = -self._drift - self._timestep + 1e-3
            sleep_until = current_time + sleep_duration
            self._sleep(max(sleep_duration - 1e-3, 0.0))
            while True:
                new_current_time = self._clock()
                if new_current_time >= sleep_until:
                    break
                self._sleep(0)
            self._slept = new_current_time - current_time
            self._drift += self._slept
            current_time = new_current_time
        else:
            self._slept = 0.0
        self._last_time = current_time

        self._is_frame = self._drift <= self._timestep
        self._index = TickIndex(self._index.value + 1)