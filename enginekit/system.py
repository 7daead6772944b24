"""Base class for the systems a context drives through their life cycle."""

from __future__ import annotations

import re
from enum import Enum
from typing import Any, ClassVar


def _snake_case(name: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", name).lower()


class Stage(Enum):
    """The last life-cycle hook a system went through."""

    CREATED = "created"
    SET_UP = "set_up"
    UPDATED = "updated"
    TORN_DOWN = "torn_down"
    DESTROYED = "destroyed"


class System:
    """A unit of engine state with create/setup/update/teardown/destroy hooks.

    ``requires`` declares the dependencies handed to each hook: ``None`` for
    none, a single type for one instance of it, or a mapping of field names
    to types for a namespace holding one instance per field.

    The default hooks only record the stage reached in ``stage``.
    """

    debug_name: ClassVar[str] = "system"
    requires: ClassVar[Any] = None
    stage: Stage = Stage.CREATED

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if "debug_name" not in cls.__dict__:
            cls.debug_name = _snake_case(cls.__name__)

    @classmethod
    def create(cls, deps: Any) -> "System":
        """Build a new instance from its dependencies."""
        return cls()

    def setup(self, deps: Any) -> None:
        """Called once after every system has been created."""
        self.stage = Stage.SET_UP

    def update(self, deps: Any) -> None:
        """Called once per step."""
        self.stage = Stage.UPDATED

    def teardown(self, deps: Any) -> None:
        """Called once before destruction begins."""
        self.stage = Stage.TORN_DOWN

    def destroy(self, deps: Any) -> None:
        """Called once when the context is destroyed."""
        self.stage = Stage.DESTROYED