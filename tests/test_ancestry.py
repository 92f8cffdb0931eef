"""Tests for materialized path maintenance.

Covers path derivation on create, cascades to descendants when a subtree
moves, and that unrelated saves leave paths (and listeners) alone.
"""

import pytest

from pathtreelib import CycleError, InMemoryTreeStore, Tree, TreeConfig
from pathtreelib.core.hooks import AFTER_REARRANGE, BEFORE_REARRANGE
from pathtreelib.testing import assert_tree_consistent


class TestPathsOnCreate:
    """Paths assigned when nodes are first saved."""

    def test_root_has_empty_path(self, tree):
        root = tree.create("root")
        assert root.ancestor_ids == []
        assert root.is_root()
        assert root.depth() == 0

    def test_child_paths_follow_parent_chain(self, fixture):
        fixture.build("""
            - root:
                - child:
                    - subchild
        """)
        assert fixture.node("child").ancestor_ids == ["root"]
        assert fixture.node("subchild").ancestor_ids == ["root", "child"]
        assert fixture.node("subchild").depth() == 2

    def test_attach_rebuilds_paths(self, tree):
        root = tree.create("root")
        child = tree.create("child")
        subchild = tree.create("subchild")

        tree.attach(child, root)
        tree.attach(subchild, child)

        assert subchild.ancestor_ids == ["root", "child"]
        assert tree.reload(subchild).ancestor_ids == ["root", "child"]

    def test_generated_ids_are_unique(self, tree):
        first = tree.create(name="a")
        second = tree.create(name="b")
        assert first.id != second.id
        assert tree.get(first.id).name == "a"


class TestCascadeOnMove:
    """Moving a subtree rewrites every descendant path."""

    def test_moving_child_between_roots(self, fixture):
        fixture.build("""
            - r1:
                - c1
                - c2
            - r2:
                - c3
        """)
        tree = fixture.tree

        tree.reparent("c1", "r2")

        assert fixture.node("c1").ancestor_ids == ["r2"]
        assert fixture.node("c1").position == 1
        assert fixture.node("c2").position == 0
        assert fixture.node("c3").position == 0
        assert_tree_consistent(tree)

    def test_children_follow_their_parent(self, tree):
        root = tree.create("root")
        child = tree.create("child", parent=root)
        subchild = tree.create("subchild", parent=child)
        new_root = tree.create("new_root")

        tree.attach(child, new_root)

        assert tree.reload(subchild).ancestor_ids == ["new_root", "child"]

    def test_moving_into_another_subtree(self, fixture):
        fixture.build("""
            - root:
                - child:
                    - subchild:
                        - subsubchild
            - new_root:
                - new_child
        """)
        tree = fixture.tree
        assert fixture.node("subsubchild").ancestor_ids == ["root", "child", "subchild"]

        tree.attach("subchild", "new_child")

        assert fixture.node("subsubchild").ancestor_ids == ["new_root", "new_child", "subchild"]
        assert tree.is_leaf("child")
        assert_tree_consistent(tree)

    def test_detach_makes_subtree_a_tree_of_its_own(self, fixture):
        fixture.build("""
            - root:
                - child:
                    - subchild
        """)
        tree = fixture.tree

        tree.detach("child")

        assert fixture.node("child").is_root()
        assert fixture.node("subchild").ancestor_ids == ["child"]
        assert [r.id for r in tree.roots()] == ["root", "child"]

    def test_ancestors_keep_order_after_rearranging(self, fixture):
        fixture.build("""
            - root:
                - child:
                    - subchild
        """)
        tree = fixture.tree

        tree.detach("child")
        tree.reparent("root", "child")
        tree.reparent("subchild", "root")

        assert [n.id for n in tree.ancestors("subchild")] == ["child", "root"]
        assert_tree_consistent(tree)

    def test_caller_object_is_refreshed(self, fixture):
        fixture.build("""
            - a:
                - b
            - c
        """)
        b = fixture.node("b")

        fixture.tree.reparent(b, "c")

        assert b.parent_id == "c"
        assert b.ancestor_ids == ["c"]
        assert b.position == 0


class TestCascadeIdempotence:
    """Re-running the cascade over a consistent subtree writes nothing."""

    def test_second_cascade_writes_nothing(self, fixture):
        fixture.build("""
            - root:
                - child:
                    - subchild:
                        - leaf
            - other
        """)
        tree = fixture.tree
        tree.attach("child", "other")

        assert tree.cascade("child") == 0
        assert tree.cascade("child") == 0
        assert tree.cascade("other") == 0

    def test_bulk_transform_used_by_memory_store(self):
        store = InMemoryTreeStore()
        tree = Tree(store)
        tree.create("root")
        tree.create("child", parent="root")
        tree.create("leaf", parent="child")
        tree.create("other")
        store.reset_stats()

        tree.attach("child", "other")

        assert store.stats['transformed'] == 1
        assert store.get("leaf").ancestor_ids == ["other", "child"]

    def test_sequential_cascade_when_bulk_disabled(self):
        store = InMemoryTreeStore()
        tree = Tree(store, TreeConfig(bulk_cascade=False))
        tree.create("root")
        tree.create("child", parent="root")
        tree.create("leaf", parent="child")
        tree.create("other")
        store.reset_stats()

        tree.attach("child", "other")

        assert store.stats['transformed'] == 0
        assert store.get("leaf").ancestor_ids == ["other", "child"]


class TestUnrelatedSaves:
    """Saves that keep the parent do not rearrange anything."""

    def test_no_rearrange_when_parent_unchanged(self, fixture):
        fixture.build("""
            - root:
                - child
        """)
        tree = fixture.tree
        calls = []
        tree.hooks.register(BEFORE_REARRANGE, lambda node, **ctx: calls.append(node.id))
        tree.hooks.register(AFTER_REARRANGE, lambda node, **ctx: calls.append(node.id))

        root = fixture.node("root")
        root.data["title"] = "Root"
        tree.save(root)

        assert calls == []
        assert tree.get("root").data["title"] == "Root"

    def test_stale_cached_fields_are_ignored(self, fixture):
        fixture.build("""
            - root:
                - child:
                    - subchild
                - other_child
        """)
        tree = fixture.tree

        stale = fixture.node("subchild")
        stale.ancestor_ids = ["bogus"]
        stale.position = 42
        stale.data["note"] = "edited"
        tree.save(stale)

        stored = tree.get("subchild")
        assert stored.ancestor_ids == ["root", "child"]
        assert stored.position == 0
        assert stored.data["note"] == "edited"

    def test_failed_move_leaves_node_unchanged(self, fixture):
        fixture.build("""
            - root:
                - child
        """)
        tree = fixture.tree
        root = fixture.node("root")

        with pytest.raises(CycleError):
            tree.reparent(root, "child")

        assert root.parent_id is None
        assert tree.get("root").parent_id is None
        assert tree.get("child").ancestor_ids == ["root"]


@pytest.mark.slow
def test_large_subtree_move_is_one_bulk_transform():
    store = InMemoryTreeStore()
    tree = Tree(store)
    tree.create("top")
    tree.create("branch", parent="top")
    for i in range(2000):
        tree.create(f"n{i}", parent="branch")
    tree.create("target")
    store.reset_stats()

    tree.attach("branch", "target")

    assert store.stats['transformed'] == 2000
    assert store.stats['saves'] == 1
    assert tree.verify() == []
