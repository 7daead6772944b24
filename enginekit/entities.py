"""Hierarchical entity registry with lazy, cascading removal."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from itertools import count
from typing import Any

from .errors import NoSuchEntityError
from .system import System

logger = logging.getLogger(__name__)


@dataclass(frozen=True, order=True)
class EntityId:
    """Handle identifying one entity; never reused within an ``Entities``."""

    value: int

    def __repr__(self) -> str:
        return f"EntityId({self.value})"


class _Liveness(Enum):
    ALIVE = "alive"
    KILLED = "killed"
    DEAD_DUE_TO_PARENT = "dead_due_to_parent"


@dataclass
class Entity:
    """A node in the entity tree."""

    name: str
    parent: EntityId | None = None
    child: EntityId | None = None
    next: EntityId | None = None
    previous: EntityId | None = None
    _liveness: _Liveness = _Liveness.ALIVE

    @property
    def is_alive(self) -> bool:
        return self._liveness is _Liveness.ALIVE


class Entities(System):
    """Owns the entity tree.

    Removal is lazy: ``remove`` queues an id and the next ``update`` removes
    it together with all its descendants, recording them in ``last_removed``.
    """

    debug_name = "entities"
    requires = None

    def __init__(self) -> None:
        self._slab: dict[EntityId, Entity] = {}
        self._ids = count()
        self._first_root: EntityId | None = None
        self._removed: list[EntityId] = []
        self._last_removed: list[EntityId] = []

    @classmethod
    def create(cls, deps: Any) -> "Entities":
        return cls()

    def __len__(self) -> int:
        return len(self._slab)

    def __contains__(self, entity_id: object) -> bool:
        return entity_id in self._slab

    @property
    def last_removed(self) -> tuple[EntityId, ...]:
        """Ids removed by the most recent update that had work to do."""
        return tuple(self._last_removed)

    @property
    def pending_removals(self) -> tuple[EntityId, ...]:
        """Ids queued for removal at the next update."""
        return tuple(self._removed)

    def _new_id(self) -> EntityId:
        return EntityId(next(self._ids))

    def add_root(self, name: str) -> EntityId:
        """Add a new entity with no parent."""
        logger.debug("Adding root %r...", name)
        new_id = self._new_id()
        self._slab[new_id] = Entity(name=name, next=self._first_root)
        old_first_root, self._first_root = self._first_root, new_id
        if old_first_root is not None:
            old_entity = self._slab[old_first_root]
            logger.debug(
                "Patched previous of root %r %r to %r...",
                old_entity.name,
                old_first_root,
                new_id,
            )
            old_entity.previous = new_id
        logger.debug("Added root %r %r...", name, new_id)
        return new_id

    def add(self, parent: EntityId, name: str) -> EntityId:
        """Add a new entity as the first child of ``parent``."""
        logger.debug("Adding entity %r as child of %r...", name, parent)
        parent_entity = self._slab.get(parent)
        if parent_entity is None:
            raise NoSuchEntityError("add", name, parent)

        new_id = self._new_id()
        new = Entity(name=name, parent=parent)
        self._slab[new_id] = new
        parent_dead = not parent_entity.is_alive
        old_child, parent_entity.child = parent_entity.child, new_id

        if old_child is not None:
            logger.debug("Old child %r", old_child)
            new.next = old_child
            if parent_dead:
                logger.debug("Parent already dead, setting liveness appropriately.")
                new._liveness = _Liveness.DEAD_DUE_TO_PARENT
                self._removed.append(new_id)
            self._slab[old_child].previous = new_id
        elif parent_dead:
            logger.debug("No previous child, but parent is already dead.")
            new._liveness = _Liveness.DEAD_DUE_TO_PARENT
        else:
            logger.debug("No previous child.")
        logger.debug("Added entity %r %r as child of %r...", name, new_id, parent)
        return new_id

    def remove(self, entity_id: EntityId) -> None:
        """Queue an entity (and its subtree) for removal at the next update."""
        logger.debug("Lazily removed entity %r...", entity_id)
        self._removed.append(entity_id)

    def get(self, entity_id: EntityId) -> Entity | None:
        return self._slab.get(entity_id)

    def debug_name_of(self, entity_id: EntityId) -> str | None:
        entity = self._slab.get(entity_id)
        return entity.name if entity is not None else None

    def debug_tree_dump(self, indent: int) -> str:
        """Render the entity tree as indented text."""
        parts = ["Entity tree dump:\n"]
        if self._first_root is None:
            return parts[0]
        stack: list[tuple[int, EntityId]] = [(0, self._first_root)]
        while stack:
            depth, entity_id = stack.pop()
            margin = indent + depth * 4
            parts.append(" " * margin)
            entity = self._slab.get(entity_id)
            if entity is None:
                parts.append("|- <missing>\n")
                continue
            padding = max(0, 60 - (margin + 3 + len(entity.name) + 4))
            parts.append(f"|- {entity.name}  {'.' * padding}  ({entity_id!r})\n")
            if entity.next is not None:
                stack.append((depth, entity.next))
            if entity.child is not None:
                stack.append((depth + 1, entity.child))
        return "".join(parts)

    def _kill_explicit(self) -> None:
        """Mark explicitly removed live entities as killed, queueing their children."""
        for removed_id in self._removed[: len(self._removed)]:
            entity = self._slab.get(removed_id)
            if entity is None:
                logger.debug("Skipping already removed %r.", removed_id)
                continue
            if not entity.is_alive:
                logger.debug(
                    "Explicitly removed %r (%r) was already processed.",
                    entity.name,
                    removed_id,
                )
                continue
            entity._liveness = _Liveness.KILLED
            self._last_removed.append(removed_id)
            if entity.child is not None:
                logger.debug(
                    "Adding child %r of %r (%r) to orphan queue.",
                    entity.child,
                    entity.name,
                    removed_id,
                )

    def _remove_orphans(self, start: int) -> None:
        """Remove every sibling chain queued from ``start`` on, cascading down."""
        position = start
        while position < len(self._removed):
            current: EntityId | None = self._removed[position]
            while current is not None:
                entity = self._slab.pop(current)
                logger.debug("Removed orphan entity %r %r.", entity.name, current)
                if entity.is_alive:
                    self._last_removed.append(current)
                    if entity.child is not None:
                        self._removed.append(entity.child)
                else:
                    logger.debug(
                        "Entity %r (%r) was already marked as %s, skipping.",
                        entity.name,
                        current,
                        entity._liveness.value,
                    )
                current = entity.next
            position += 1

    def _unlink_killed(self, killed: list[EntityId]) -> None:
        for removed_id in killed:
            entity = self._slab.pop(removed_id, None)
            if entity is None:
                logger.debug("Skipped already removed %r.", removed_id)
                continue
            logger.debug("Removed killed %r (%r)", entity.name, removed_id)
            if entity.next is not None:
                self._slab[entity.next].previous = entity.previous
            if entity.previous is not None:
                self._slab[entity.previous].next = entity.next
            if entity.parent is not None:
                parent = self._slab[entity.parent]
                if parent.child == removed_id:
                    parent.child = entity.next
            elif self._first_root == removed_id:
                self._first_root = entity.next

    def update(self, deps: Any = None) -> None:
        """Carry out queued removals, recording removed ids in ``last_removed``."""
        if not self._removed:
            return
        num_explicit = len(self._removed)
        logger.debug("Collecting removed. Explicitly removed %d ids.", num_explicit)
        self._last_removed.clear()

        for removed_id in list(self._removed):
            entity = self._slab.get(removed_id)
            if entity is None:
                logger.debug("Skipping already removed %r.", removed_id)
                continue
            if not entity.is_alive:
                logger.debug(
                    "Explicitly removed %r (%r) was already processed.",
                    entity.name,
                    removed_id,
                )
                continue
            entity._liveness = _Liveness.KILLED
            self._last_removed.append(removed_id)
            if entity.child is not None:
                self._removed.append(entity.child)

        killed = list(self._last_removed)
        logger.debug("Deduplicated explicitly removed %d ids.", len(killed))
        self._remove_orphans(num_explicit)
        self._unlink_killed(killed)

        logger.debug("Collected %d removed ids.", len(self._last_removed))
        self._removed.clear()

    def teardown(self, deps: Any = None) -> None:
        self.update(deps)

    def destroy(self, deps: Any = None) -> None:
        self.update(deps)
        if self._slab:
            logger.error("Entities leaked. %s", self.debug_tree_dump(4))