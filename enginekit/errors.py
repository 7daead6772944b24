"""Exception hierarchy shared by the engine's systems."""

from __future__ import annotations

from typing import Any


class EngineError(Exception):
    """Base class of every error raised by the engine."""


class CreateWindowError(EngineError):
    """The window could not be created."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    @classmethod
    def for_size(cls, width: int, height: int, cause: object) -> "CreateWindowError":
        """Build the error reported when a window of the given size fails."""
        return cls(f"Window creation failed with {width}x{height}: {cause}")

    def __str__(self) -> str:
        return self.message


class ResourceIoError(EngineError):
    """Reading a resource from disk failed."""

    def __init__(self, what: str, resource: str) -> None:
        super().__init__(what, resource)
        self.what = what
        self.resource = resource

    def __str__(self) -> str:
        return f"I/O error when accessing `{self.what}` for resource `{self.resource}`."


class ShaderError(EngineError):
    """A shader failed to compile or link."""

    def __init__(self, log: str, needed_by: str) -> None:
        super().__init__(log, needed_by)
        self.log = log
        self.needed_by = needed_by

    def __str__(self) -> str:
        return f"Linking/compiling shader for `{self.needed_by}` failed with:\n{self.log}"


class UnsupportedFeatureError(EngineError):
    """A required feature is not available on this platform."""

    def __init__(self, needed_by: str) -> None:
        super().__init__(needed_by)
        self.needed_by = needed_by

    def __str__(self) -> str:
        return f"Feature needed by `{self.needed_by}` is not supported on this platform."


class OutOfVideoMemoryError(EngineError):
    """Video memory ran out during an allocation."""

    def __init__(self, needed_by: str) -> None:
        super().__init__(needed_by)
        self.needed_by = needed_by

    def __str__(self) -> str:
        return f"Out of video memory when trying to allocate `{self.needed_by}`."


class NoSuchEntityError(EngineError):
    """An entity id did not refer to a live entity."""

    def __init__(self, context: str, needed_by: str | None, id: Any) -> None:
        super().__init__(context, needed_by, id)
        self.context = context
        self.needed_by = needed_by
        self.id = id

    def __str__(self) -> str:
        return (
            f"No entity with id `{self.id!r}`, needed by `{self.needed_by!r}` "
            f"when `{self.context}`"
        )


class NoSuchComponentError(EngineError):
    """An id did not refer to an existing component."""

    def __init__(self, context: str, needed_by: str | None, id: Any) -> None:
        super().__init__(context, needed_by, id)
        self.context = context
        self.needed_by = needed_by
        self.id = id

    def __str__(self) -> str:
        return (
            f"No component with id `{self.id!r}`, needed by `{self.needed_by!r}` "
            f"when `{self.context}`"
        )


class ContextError(EngineError):
    """A stage of the context life cycle failed."""

    def __init__(self, stage: str) -> None:
        super().__init__(stage)
        self.stage = stage

    def __str__(self) -> str:
        return f"Context {self.stage} error"


class SystemFailure(EngineError):
    """A stage of a single system's life cycle failed."""

    def __init__(self, stage: str, system_name: str) -> None:
        super().__init__(stage, system_name)
        self.stage = stage
        self.system_name = system_name

    def __str__(self) -> str:
        return f"System {self.stage} failed for `{self.system_name}`."