"""Keyboard and mouse state with gesture and analog polling."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from .system import System

logger = logging.getLogger(__name__)

NUM_SCAN_CODES = 512
NUM_MOUSE_BUTTONS = 256

Vec2f = tuple[float, float]


def _check_scancode(code: int) -> None:
    if not 0 <= code < NUM_SCAN_CODES:
        raise ValueError(f"scancode {code} outside 0..{NUM_SCAN_CODES - 1}")


@dataclass(frozen=True)
class MouseButton:
    """A mouse button: left, middle, right or another numbered button."""

    kind: str
    number: int = 0

    LEFT: ClassVar["MouseButton"]
    MIDDLE: ClassVar["MouseButton"]
    RIGHT: ClassVar["MouseButton"]

    def __post_init__(self) -> None:
        if self.kind not in ("left", "middle", "right", "other"):
            raise ValueError(f"unknown mouse button kind {self.kind!r}")
        if self.number < 0:
            raise ValueError("mouse button number must not be negative")

    @classmethod
    def other(cls, number: int) -> "MouseButton":
        return cls("other", number)

    @property
    def slot(self) -> int:
        """Index of this button in the button state table."""
        if self.kind == "left":
            return 1
        if self.kind == "middle":
            return 2
        if self.kind == "right":
            return 3
        return min(self.number + 4, NUM_MOUSE_BUTTONS - 1)


MouseButton.LEFT = MouseButton("left")
MouseButton.MIDDLE = MouseButton("middle")
MouseButton.RIGHT = MouseButton("right")


class Gesture:
    """Base class of boolean input conditions."""


@dataclass(frozen=True)
class NoGesture(Gesture):
    """Never active."""


@dataclass(frozen=True)
class KeyHold(Gesture):
    """Active while the key is held down."""

    code: int

    def __post_init__(self) -> None:
        _check_scancode(self.code)


@dataclass(frozen=True)
class KeyTrigger(Gesture):
    """Active only on the update in which the key went down."""

    code: int

    def __post_init__(self) -> None:
        _check_scancode(self.code)


@dataclass(frozen=True)
class ButtonHold(Gesture):
    """Active while the mouse button is held down."""

    button: MouseButton


@dataclass(frozen=True)
class ButtonTrigger(Gesture):
    """Active only on the update in which the mouse button went down."""

    button: MouseButton


@dataclass(frozen=True)
class AnyOf(Gesture):
    """Active when any of its sub-gestures is."""

    gestures: tuple[Gesture, ...]

    def __init__(self, *gestures: Gesture) -> None:
        object.__setattr__(self, "gestures", tuple(gestures))


@dataclass(frozen=True)
class AllOf(Gesture):
    """Active when all of its sub-gestures are."""

    gestures: tuple[Gesture, ...]

    def __init__(self, *gestures: Gesture) -> None:
        object.__setattr__(self, "gestures", tuple(gestures))


@dataclass(frozen=True)
class QuitTrigger(Gesture):
    """Active on the update in which the window asked to close."""


class Analog2d:
    """Base class of two-dimensional analog inputs."""


@dataclass(frozen=True)
class NoAnalog2d(Analog2d):
    """Always zero."""


@dataclass(frozen=True)
class Mouse(Analog2d):
    """Relative mouse motion scaled by a sensitivity."""

    sensitivity: float


@dataclass(frozen=True)
class Gestures(Analog2d):
    """Digital gestures mapped to steps along each axis."""

    x_positive: Gesture
    x_negative: Gesture
    y_positive: Gesture
    y_negative: Gesture
    step: float


@dataclass(frozen=True)
class Sum(Analog2d):
    """Sum of several analog inputs."""

    analogs: tuple[Analog2d, ...]

    def __init__(self, *analogs: Analog2d) -> None:
        object.__setattr__(self, "analogs", tuple(analogs))


@dataclass(frozen=True)
class CloseRequested:
    """The window asked to close."""


@dataclass(frozen=True)
class KeyEvent:
    """A key changed state."""

    code: int
    pressed: bool

    def __post_init__(self) -> None:
        _check_scancode(self.code)


@dataclass(frozen=True)
class MotionEvent:
    """Relative mouse motion along one axis."""

    axis: int
    value: float


@dataclass(frozen=True)
class ButtonEvent:
    """A raw mouse button changed state."""

    button: int
    pressed: bool


Event = Union[CloseRequested, KeyEvent, MotionEvent, ButtonEvent]


@dataclass
class _ButtonState:
    down: bool = False
    index: int = 0


class Input(System):
    """Tracks keyboard and mouse state, updated once per step from queued events."""

    debug_name = "input"
    requires = None

    def __init__(self) -> None:
        self._current_update_index = 1
        self._keyboard = [_ButtonState() for _ in range(NUM_SCAN_CODES)]
        self._mouse_buttons = [_ButtonState() for _ in range(NUM_MOUSE_BUTTONS)]
        self._quit_requested_index = 0
        self._mouse_enabled = True
        self._mouse_grabbed = False
        self._new_mouse_grabbed = True
        self._mouse_rel: list[float] = [0.0, 0.0]
        self._events: deque[Any] = deque()

    @classmethod
    def create(cls, deps: Any) -> "Input":
        return cls()

    @property
    def cursor_grabbed(self) -> bool:
        """Whether the cursor is grabbed as of the last update."""
        return self._mouse_grabbed

    @property
    def mouse_enabled(self) -> bool:
        return self._mouse_enabled

    @property
    def mouse_rel(self) -> Vec2f:
        """Mouse motion accumulated during the last update."""
        return (self._mouse_rel[0], self._mouse_rel[1])

    def queue_event(self, event: Event) -> None:
        """Queue an event to be processed at the next update."""
        self._events.append(event)

    def set_cursor_grabbed(self, grabbed: bool) -> None:
        """Request a cursor grab change, applied at the next update."""
        self._new_mouse_grabbed = grabbed

    def set_mouse_enabled(self, enable: bool) -> None:
        self._mouse_enabled = enable

    def _is_triggered(self, state: _ButtonState) -> bool:
        return state.down and state.index == self._current_update_index

    def poll_gesture(self, gesture: Gesture) -> bool:
        """Whether ``gesture`` is active in the current update."""
        match gesture:
            case QuitTrigger():
                return self._quit_requested_index == self._current_update_index
            case KeyHold(code=code):
                return self._keyboard[code].down
            case KeyTrigger(code=code):
                return self._is_triggered(self._keyboard[code])
            case ButtonHold(button=button):
                return self._mouse_buttons[button.slot].down
            case ButtonTrigger(button=button):
                return self._is_triggered(self._mouse_buttons[button.slot])
            case AnyOf(gestures=gestures):
                return any(self.poll_gesture(sub) for sub in gestures)
            case AllOf(gestures=gestures):
                return all(self.poll_gesture(sub) for sub in gestures)
            case NoGesture():
                return False
        raise TypeError(f"not a gesture: {gesture!r}")

    def _axis(self, positive: Gesture, negative: Gesture, step: float) -> float:
        if self.poll_gesture(positive):
            return step
        if self.poll_gesture(negative):
            return -step
        return 0.0

    def poll_analog2d(self, motion: Analog2d) -> Vec2f:
        """Current value of an analog input as an ``(x, y)`` pair."""
        match motion:
            case Sum(analogs=analogs):
                x = y = 0.0
                for analog in analogs:
                    dx, dy = self.poll_analog2d(analog)
                    x += dx
                    y += dy
                return (x, y)
            case Mouse(sensitivity=sensitivity):
                return (self._mouse_rel[0] * sensitivity, self._mouse_rel[1] * sensitivity)
            case Gestures():
                return (
                    self._axis(motion.x_positive, motion.x_negative, motion.step),
                    self._axis(motion.y_positive, motion.y_negative, motion.step),
                )
            case NoAnalog2d():
                return (0.0, 0.0)
        raise TypeError(f"not an analog input: {motion!r}")

    def _handle(self, event: Any) -> None:
        index = self._current_update_index
        match event:
            case CloseRequested():
                self._quit_requested_index = index
            case KeyEvent(code=code, pressed=pressed):
                self._keyboard[code] = _ButtonState(pressed, index)
            case MotionEvent(axis=axis, value=value):
                if self._mouse_enabled and 0 <= axis < 2:
                    self._mouse_rel[axis] += float(value)
            case ButtonEvent(button=button, pressed=pressed):
                if self._mouse_enabled and 0 <= button < NUM_MOUSE_BUTTONS:
                    self._mouse_buttons[button] = _ButtonState(pressed, index)
            case _:
                logger.debug("Ignoring event %r.", event)

    def update(self, deps: Any = None) -> None:
        if self._new_mouse_grabbed != self._mouse_grabbed:
            self._mouse_grabbed = self._new_mouse_grabbed
        self._current_update_index += 1
        self._mouse_rel = [0.0, 0.0]
        while self._events:
            self._handle(self._events.popleft())