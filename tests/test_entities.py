import logging
from dataclasses import dataclass

import pytest

from enginekit.entities import Entities, EntityId
from enginekit.errors import NoSuchEntityError


@dataclass
class Tree1:
    root_a: EntityId
    root_b: EntityId
    root_c: EntityId
    a1: EntityId
    a2: EntityId
    a2x: EntityId
    a2xa: EntityId
    a2xb: EntityId
    c1: EntityId
    a2y: EntityId

    @classmethod
    def build(cls, entities: Entities) -> "Tree1":
        root_a = entities.add_root("root_a")
        root_b = entities.add_root("root_b")
        root_c = entities.add_root("root_c")
        a1 = entities.add(root_a, "a1")
        a2 = entities.add(root_a, "a2")
        a2x = entities.add(a2, "a2x")
        a2xa = entities.add(a2x, "a2xa")
        a2xb = entities.add(a2x, "a2xb")
        c1 = entities.add(root_c, "c1")
        a2y = entities.add(a2, "a2y")
        return cls(root_a, root_b, root_c, a1, a2, a2x, a2xa, a2xb, c1, a2y)


@pytest.fixture
def entities():
    return Entities.create(None)


@pytest.fixture
def tree(entities):
    return Tree1.build(entities)


def check_removed(entities, expected):
    actual = set(entities.last_removed)
    assert len(entities.last_removed) == len(expected)
    assert actual == set(expected)


def test_add_contains(entities, tree):
    for entity_id in vars(tree).values():
        assert entity_id in entities
    assert len(entities) == 10
    assert entities.pending_removals == ()


def test_add_remove_single(entities, tree):
    entities.remove(tree.root_b)
    assert entities.pending_removals == (tree.root_b,)
    entities.update(None)
    assert entities.last_removed == (tree.root_b,)
    assert entities.pending_removals == ()
    assert tree.root_b not in entities


def test_add_remove_one_child(entities, tree):
    entities.remove(tree.root_c)
    entities.update(None)
    check_removed(entities, [tree.c1, tree.root_c])
    assert entities.pending_removals == ()
    assert tree.c1 not in entities
    assert tree.root_c not in entities


def test_add_remove_one_subtree(entities, tree):
    entities.remove(tree.a2x)
    entities.update(None)
    check_removed(entities, [tree.a2xa, tree.a2xb, tree.a2x])
    assert entities.pending_removals == ()
    assert tree.a2xa not in entities
    assert tree.a2xb not in entities
    assert tree.a2x not in entities
    assert tree.a2y in entities
    assert tree.a2 in entities
    assert tree.root_a in entities


def test_add_remove_all(entities, tree):
    entities.remove(tree.a2y)
    entities.update(None)
    assert entities.last_removed == (tree.a2y,)
    assert entities.pending_removals == ()

    entities.remove(tree.a2)
    entities.remove(tree.root_a)
    entities.remove(tree.root_c)
    c2 = entities.add(tree.root_c, "c2")
    entities.update(None)
    check_removed(
        entities,
        [
            tree.a2xa,
            tree.a2xb,
            tree.a2x,
            tree.a2,
            tree.a1,
            tree.root_a,
            tree.c1,
            tree.root_c,
            c2,
        ],
    )

    entities.remove(tree.root_b)
    entities.update(None)
    assert len(entities) == 0


def test_add_to_missing_parent_raises(entities):
    root = entities.add_root("root")
    entities.remove(root)
    entities.update(None)
    with pytest.raises(NoSuchEntityError) as info:
        entities.add(root, "orphan")
    assert info.value.context == "add"
    assert info.value.needed_by == "orphan"
    assert info.value.id == root
    assert len(entities) == 0


def test_duplicate_removal_is_deduplicated(entities, tree):
    entities.remove(tree.root_b)
    entities.remove(tree.root_b)
    entities.update(None)
    assert entities.last_removed == (tree.root_b,)
    assert len(entities) == 9


def test_removing_unknown_id_is_skipped(entities, tree):
    entities.remove(tree.root_b)
    entities.update(None)
    entities.remove(tree.root_b)
    entities.update(None)
    assert entities.last_removed == ()
    assert len(entities) == 9


def test_last_removed_kept_when_nothing_pending(entities, tree):
    entities.remove(tree.root_b)
    entities.update(None)
    entities.update(None)
    assert entities.last_removed == (tree.root_b,)


def test_get_parent_and_name(entities, tree):
    assert entities.get(tree.a2x).parent == tree.a2
    assert entities.get(tree.root_a).parent is None
    assert entities.debug_name_of(tree.a2xb) == "a2xb"
    entities.remove(tree.a2x)
    entities.update(None)
    assert entities.get(tree.a2xb) is None
    assert entities.debug_name_of(tree.a2xb) is None


def test_siblings_relinked_after_removal(entities, tree):
    entities.remove(tree.root_b)
    entities.update(None)
    assert entities.get(tree.root_c).next == tree.root_a
    assert entities.get(tree.root_a).previous == tree.root_c

    entities.remove(tree.a2y)
    entities.update(None)
    assert entities.get(tree.a2).child == tree.a2x
    assert entities.get(tree.a2x).previous is None


def test_removing_first_root_updates_dump(entities, tree):
    entities.remove(tree.root_c)
    entities.update(None)
    dump = entities.debug_tree_dump(0)
    assert "root_c" not in dump
    assert "c1" not in dump
    assert dump.splitlines()[1].startswith("|- root_b")


def test_debug_tree_dump_empty(entities):
    assert entities.debug_tree_dump(4) == "Entity tree dump:\n"


def test_debug_tree_dump_layout(entities):
    root = entities.add_root("a")
    child = entities.add(root, "b")
    dump = entities.debug_tree_dump(0)
    expected = (
        "Entity tree dump:\n"
        "|- a  " + "." * 52 + "  (EntityId(0))\n"
        "    |- b  " + "." * 48 + "  (EntityId(1))\n"
    )
    assert child == EntityId(1)
    assert dump == expected


def test_debug_tree_dump_order(entities):
    first = entities.add_root("first")
    entities.add_root("second")
    entities.add(first, "kid")
    lines = entities.debug_tree_dump(2).splitlines()[1:]
    assert [line.split()[1] for line in lines] == ["second", "first", "kid"]
    assert lines[2].startswith(" " * 6 + "|- kid")


def test_teardown_processes_removals(entities, tree):
    entities.remove(tree.root_a)
    entities.teardown(None)
    assert tree.a2xa not in entities
    assert len(entities) == 3


def test_destroy_logs_leak(entities, caplog):
    entities.add_root("leaky")
    with caplog.at_level(logging.ERROR, logger="enginekit.entities"):
        entities.destroy(None)
    assert any("Entities leaked" in record.getMessage() for record in caplog.records)


def test_destroy_clean_logs_nothing(entities, caplog):
    root = entities.add_root("clean")
    entities.remove(root)
    with caplog.at_level(logging.ERROR, logger="enginekit.entities"):
        entities.destroy(None)
    assert len(entities) == 0
    assert not [r for r in caplog.records if r.levelno >= logging.ERROR]