"""Testing utilities for PathTreeLib consumers."""

from .fixtures import TreeFixture, assert_tree_consistent, build_tree, format_tree

__all__ = ['TreeFixture', 'assert_tree_consistent', 'build_tree', 'format_tree']
