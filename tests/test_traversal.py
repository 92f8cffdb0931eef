"""Tests for traversal strategies and visitor-based walks."""

import sys

import pytest

from pathtreelib import TraversalType, Tree, TreeConfig, UsageError, get_tree_stats
from pathtreelib.core.traverser import (
    BreadthFirstTraverser,
    DepthFirstPostOrderTraverser,
    DepthFirstPreOrderTraverser,
    create_traverser,
)
from pathtreelib.testing import TreeFixture


def names(tree, node, kind):
    return tree.traverse(node, kind, lambda n: n.name)


class TestDepthFirst:

    def test_pre_order(self, fixture):
        fixture.build("""
            node1:
                - node2:
                    - node3
                - node4:
                    - node5
                    - node6
                - node7
        """)
        result = names(fixture.tree, "node1", TraversalType.DEPTH_FIRST)
        assert result == ["node1", "node2", "node3", "node4", "node5", "node6", "node7"]

    def test_merged_trees(self, fixture):
        fixture.build("""
            - node4:
                - node5
                - node6:
                    - node7
            - node1:
                - node2:
                    - node3
        """)
        fixture.tree.attach("node4", "node1")

        result = names(fixture.tree, "node1", "depth_first")
        assert result == ["node1", "node2", "node3", "node4", "node5", "node6", "node7"]

    def test_follows_reordered_siblings(self, fixture):
        fixture.build("""
            node1:
                - node2:
                    - node3
                - node4:
                    - node6
                    - node5
                - node7
        """)
        fixture.tree.move_above("node5", "node6")

        result = fixture.tree.depth_first("node1", lambda n: n.name)
        assert result == ["node1", "node2", "node3", "node4", "node5", "node6", "node7"]

    def test_small_tree(self, fixture):
        fixture.build("""
            root:
                - c1:
                    - c1a
                - c2
        """)
        assert names(fixture.tree, "root", "dfs") == ["root", "c1", "c1a", "c2"]
        assert names(fixture.tree, "root", "dfs_post") == ["c1a", "c1", "c2", "root"]


class TestBreadthFirst:

    def test_level_order(self, fixture):
        fixture.build("""
            node1:
                - node2:
                    - node5
                - node3:
                    - node6
                    - node7
                - node4
        """)
        result = fixture.tree.breadth_first("node1", lambda n: n.name)
        assert result == ["node1", "node2", "node3", "node4", "node5", "node6", "node7"]

    def test_small_tree(self, fixture):
        fixture.build("""
            root:
                - c1:
                    - c1a
                - c2
        """)
        assert names(fixture.tree, "root", "bfs") == ["root", "c1", "c2", "c1a"]


class TestVisitorResults:

    def test_results_are_not_flattened(self, fixture):
        fixture.build("""
            root:
                - leaf
        """)
        result = fixture.tree.traverse("root", visit=lambda n: [n.id, n.depth()])
        assert result == [["root", 0], ["leaf", 1]]

    def test_rewalk_sees_current_state(self, fixture):
        fixture.build("""
            root:
                - a
                - b
        """)
        tree = fixture.tree
        assert tree.depth_first("root", lambda n: n.id) == ["root", "a", "b"]

        tree.move_to_top("b")

        assert tree.depth_first("root", lambda n: n.id) == ["root", "b", "a"]

    def test_traverse_all_walks_roots_in_order(self, fixture):
        fixture.build("""
            - r1:
                - a
            - r2:
                - b
        """)
        tree = fixture.tree
        tree.move_to_top("r2")

        assert tree.traverse_all(visit=lambda n: n.id) == ["r2", "b", "r1", "a"]
        assert tree.traverse_all("bfs", lambda n: n.id) == ["r2", "b", "r1", "a"]

    def test_traverse_all_uses_configured_default(self, store):
        tree = Tree(store, TreeConfig(default_traversal="dfs_post"))
        tree.create("r")
        tree.create("c", parent="r")

        assert tree.traverse_all(visit=lambda n: n.id) == ["c", "r"]

    def test_walk_is_lazy_and_depth_limited(self, fixture):
        fixture.build("""
            root:
                - a:
                    - deep
                - b
        """)
        walked = fixture.tree.walk("root", max_depth=1)
        assert next(walked).id == "root"
        assert [n.id for n in walked] == ["a", "b"]


class TestUsageErrors:

    @pytest.fixture(autouse=True)
    def setup_tree(self, tree):
        tree.create("root")
        self.tree = tree

    def test_missing_visitor(self):
        with pytest.raises(UsageError, match="No visitor"):
            self.tree.traverse("root")

    def test_non_callable_visitor(self):
        with pytest.raises(UsageError):
            self.tree.traverse("root", "depth_first", visit=42)

    def test_unknown_kind(self):
        with pytest.raises(UsageError):
            self.tree.traverse("root", "non_existing", lambda n: n)

    def test_missing_kind(self):
        with pytest.raises(UsageError):
            self.tree.traverse("root", None, lambda n: n)

    def test_collection_level_missing_visitor(self):
        with pytest.raises(UsageError):
            self.tree.traverse_all("bfs")

    def test_usage_error_is_value_error(self):
        with pytest.raises(ValueError):
            self.tree.traverse_all("sideways", lambda n: n)


class TestTraverserFactory:

    def test_creates_each_strategy(self, memory_store):
        assert isinstance(create_traverser("bfs", memory_store), BreadthFirstTraverser)
        assert isinstance(create_traverser("dfs_pre", memory_store), DepthFirstPreOrderTraverser)
        assert isinstance(create_traverser(TraversalType.DEPTH_FIRST_POST, memory_store),
                          DepthFirstPostOrderTraverser)

    def test_depth_window(self, memory_store):
        tree = Tree(memory_store)
        fixture = TreeFixture(tree)
        fixture.build("""
            root:
                - a:
                    - a1:
                        - a1x
                - b
        """)
        traverser = create_traverser("bfs", memory_store)

        result = [(n.id, d) for n, d in traverser.traverse(tree.get("root"), max_depth=2, min_depth=1)]

        assert result == [("a", 1), ("b", 1), ("a1", 2)]

    def test_post_order_depth_window(self, memory_store):
        tree = Tree(memory_store)
        TreeFixture(tree).build("""
            root:
                - a:
                    - a1:
                        - a1x
                - b
        """)
        traverser = create_traverser("dfs_post", memory_store)

        result = [(n.id, d) for n, d in traverser.traverse(tree.get("root"), max_depth=2, min_depth=1)]

        assert result == [("a1", 2), ("a", 1), ("b", 1)]


class TestDeepChains:
    """Walks deeper than the interpreter's recursion limit."""

    @pytest.fixture
    def chain(self, memory_store):
        tree = Tree(memory_store)
        length = sys.getrecursionlimit() + 200
        previous = None
        for i in range(length):
            previous = tree.create(f"n{i}", parent=previous)
        return tree, length

    def test_pre_order(self, chain):
        tree, length = chain
        result = tree.depth_first("n0", lambda n: n.id)
        assert len(result) == length
        assert result[0] == "n0"
        assert result[-1] == f"n{length - 1}"

    def test_post_order(self, chain):
        tree, length = chain
        result = tree.traverse("n0", "dfs_post", lambda n: n.id)
        assert len(result) == length
        assert result[0] == f"n{length - 1}"
        assert result[-1] == "n0"

    def test_walk_and_stats(self, chain):
        tree, length = chain
        assert sum(1 for _ in tree.walk("n0")) == length
        assert get_tree_stats(tree)['max_depth'] == length - 1
