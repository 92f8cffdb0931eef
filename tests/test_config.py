"""Tests for TreeConfig parsing and validation."""

import pytest

from pathtreelib import (
    ConfigurationError,
    ContinueOnErrorsPolicy,
    DestroyStrategy,
    InMemoryTreeStore,
    TraversalType,
    Tree,
    TreeConfig,
)
from pathtreelib.config import parse_destroy_strategy, parse_traversal_type


class TestTreeConfig:

    def test_defaults(self):
        config = TreeConfig()
        assert config.ordered is True
        assert config.counter_cache is False
        assert config.destroy_strategy is DestroyStrategy.NULLIFY
        assert config.default_traversal is TraversalType.DEPTH_FIRST
        assert config.validate() == []

    def test_strings_are_parsed(self):
        config = TreeConfig(
            destroy_strategy="move_children_to_parent",
            destroy_strategies={"folder": "DESTROY_CHILDREN"},
            default_traversal="bfs",
        )
        assert config.destroy_strategy is DestroyStrategy.REPARENT_TO_GRANDPARENT
        assert config.destroy_strategies == {"folder": DestroyStrategy.RECURSIVE_DESTROY}
        assert config.default_traversal is TraversalType.BREADTH_FIRST

    def test_strategy_per_kind(self):
        config = TreeConfig(destroy_strategies={"folder": "delete_descendants"})
        assert config.strategy_for("folder") is DestroyStrategy.BULK_DELETE_DESCENDANTS
        assert config.strategy_for("file") is DestroyStrategy.NULLIFY
        assert config.strategy_for(None) is DestroyStrategy.NULLIFY

    def test_unknown_strategy_rejected(self):
        with pytest.raises(ValueError, match="Unknown destroy strategy"):
            TreeConfig(destroy_strategy="shred")

    def test_convenience_constructors(self):
        assert TreeConfig.unordered().ordered is False
        assert TreeConfig.with_counter_cache(ordered=False).counter_cache is True

    def test_invalid_kind_key_reported(self):
        config = TreeConfig(destroy_strategies={"": "nullify"})
        assert any("non-empty" in e for e in config.validate())

    def test_policy_must_handle(self):
        assert TreeConfig(cascade_error_policy=ContinueOnErrorsPolicy()).validate() == []
        assert TreeConfig(cascade_error_policy=object()).validate() != []

    def test_tree_refuses_invalid_config(self):
        with pytest.raises(ConfigurationError):
            Tree(InMemoryTreeStore(), TreeConfig(cascade_error_policy=object()))


class TestParsing:

    @pytest.mark.parametrize("name,expected", [
        ("nullify", DestroyStrategy.NULLIFY),
        ("nullify_children", DestroyStrategy.NULLIFY),
        ("reparent_to_grandparent", DestroyStrategy.REPARENT_TO_GRANDPARENT),
        ("recursive_destroy", DestroyStrategy.RECURSIVE_DESTROY),
        ("bulk_delete_descendants", DestroyStrategy.BULK_DELETE_DESCENDANTS),
    ])
    def test_destroy_strategy_names(self, name, expected):
        assert parse_destroy_strategy(name) is expected

    @pytest.mark.parametrize("name,expected", [
        ("dfs", TraversalType.DEPTH_FIRST),
        ("Depth_First", TraversalType.DEPTH_FIRST),
        ("breadth_first", TraversalType.BREADTH_FIRST),
        ("dfs_post", TraversalType.DEPTH_FIRST_POST),
    ])
    def test_traversal_names(self, name, expected):
        assert parse_traversal_type(name) is expected

    def test_enum_passes_through(self):
        assert parse_traversal_type(TraversalType.BREADTH_FIRST) is TraversalType.BREADTH_FIRST

    def test_unknown_traversal(self):
        with pytest.raises(ValueError):
            parse_traversal_type("sideways")
