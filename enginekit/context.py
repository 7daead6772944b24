"""Context that owns injected values and systems and drives their life cycle."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import SimpleNamespace
from typing import Any

from .errors import ContextError, SystemFailure
from .system import System

logger = logging.getLogger(__name__)


@dataclass
class ControlFlow:
    """Shared flag through which any system can ask the context to stop."""

    quit_requested: bool = False


class _Kind(Enum):
    INJECT = "inject"
    INJECT_MUT = "inject_mut"
    SYSTEM = "system"


@dataclass
class _Slot:
    value: Any
    kind: _Kind


def _find(candidates: list[Any], kind: type) -> int:
    matches = [index for index, value in enumerate(candidates) if isinstance(value, kind)]
    if not matches:
        raise LookupError(f"no {kind.__name__} available in context")
    if len(matches) > 1:
        raise LookupError(f"ambiguous lookup: {len(matches)} values of type {kind.__name__}")
    return matches[0]


def dependencies_from(context: Iterable[Any], requires: Any) -> Any:
    """Resolve a ``requires`` declaration against the values in ``context``.

    ``None`` resolves to ``None``; a type resolves to the single value of that
    type; a mapping of field names to types resolves to a namespace, each field
    taking a distinct value. Missing or ambiguous types raise ``LookupError``.
    """
    pool = list(context)
    if requires is None:
        return None
    if isinstance(requires, Mapping):
        fields = {name: pool.pop(_find(pool, kind)) for name, kind in requires.items()}
        return SimpleNamespace(**fields)
    return pool[_find(pool, requires)]


def _view(slots: list[_Slot], end: int) -> list[Any]:
    """Values visible to the slot at ``end``: everything before it, newest first."""
    return [slot.value for slot in reversed(slots[:end])]


_STAGE_MESSAGES = {
    "setup": "Setting up system %r...",
    "teardown": "Tearing down system %r...",
    "destruction": "Destroying system %r...",
}


def _drive(slots: list[_Slot], stage: str, hook: str, newest_first: bool) -> None:
    order = range(len(slots) - 1, -1, -1) if newest_first else range(len(slots))
    try:
        for index in order:
            slot = slots[index]
            if slot.kind is not _Kind.SYSTEM:
                continue
            system = slot.value
            name = type(system).debug_name
            if stage in _STAGE_MESSAGES:
                logger.info(_STAGE_MESSAGES[stage], name)
            deps = dependencies_from(_view(slots, index), type(system).requires)
            try:
                getattr(system, hook)(deps)
            except Exception as exc:
                raise SystemFailure(stage, name) from exc
    except Exception as exc:
        raise ContextError(stage) from exc


class Context(ABC):
    """Something that can be stepped until a quit is requested."""

    @abstractmethod
    def quit_requested(self) -> bool:
        """Whether the main loop should stop."""

    @abstractmethod
    def step(self) -> None:
        """Advance every system by one update."""

    @abstractmethod
    def destroy(self) -> None:
        """Tear down and destroy every system."""

    def run(self) -> None:
        """Step until a quit is requested."""
        while not self.quit_requested():
            self.step()


class ContextBuilder:
    """Collects injected values and systems, then builds a ``ContextObject``.

    The builder always starts holding a mutable ``ControlFlow``. Each system is
    created immediately and sees only what was added before it.
    """

    def __init__(self) -> None:
        self._slots: list[_Slot] = [_Slot(ControlFlow(), _Kind.INJECT_MUT)]
        self._built = False

    def _open(self) -> list[_Slot]:
        if self._built:
            raise RuntimeError("context builder already built")
        return self._slots

    def inject(self, value: Any) -> "ContextBuilder":
        """Add a value that systems may read."""
        self._open().append(_Slot(value, _Kind.INJECT))
        return self

    def inject_mut(self, value: Any) -> "ContextBuilder":
        """Add a value that systems may read and modify."""
        self._open().append(_Slot(value, _Kind.INJECT_MUT))
        return self

    def system(self, system_cls: type[System]) -> "ContextBuilder":
        """Create a system from its dependencies and add it."""
        slots = self._open()
        deps = dependencies_from(_view(slots, len(slots)), system_cls.requires)
        logger.info("Creating system %r...", system_cls.debug_name)
        try:
            instance = system_cls.create(deps)
        except Exception as exc:
            raise SystemFailure("creation", system_cls.debug_name) from exc
        slots.append(_Slot(instance, _Kind.SYSTEM))
        return self

    def build(self) -> "ContextObject":
        """Set up every system, oldest first, and return the running context."""
        slots = self._open()
        self._built = True
        _drive(slots, "setup", "setup", newest_first=False)
        logger.info("Context set up.")
        return ContextObject(slots)


class ContextObject(Context):
    """A built context holding its systems until destroyed."""

    def __init__(self, slots: list[_Slot]) -> None:
        self._slots: list[_Slot] | None = slots

    def _live(self) -> list[_Slot]:
        if self._slots is None:
            raise RuntimeError("call on destroyed context")
        return self._slots

    def lookup(self, kind: type) -> Any:
        """Return the single value or system of type ``kind``."""
        values = _view(self._live(), len(self._live()))
        return values[_find(values, kind)]

    def quit_requested(self) -> bool:
        return self.lookup(ControlFlow).quit_requested

    def step(self) -> None:
        _drive(self._live(), "update", "update", newest_first=False)

    def destroy(self) -> None:
        if self._slots is None:
            return
        slots, self._slots = self._slots, None
        _drive(slots, "teardown", "teardown", newest_first=True)
        logger.info("Context tore down.")
        _drive(slots, "destruction", "destroy", newest_first=True)
        logger.info("Context destroyed.")

    def __enter__(self) -> "ContextObject":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.destroy()