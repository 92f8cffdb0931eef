"""PathTreeLib - materialized-path trees over flat record stores.

PathTreeLib keeps a tree stored as a flat collection of records consistent:
every record carries its parent id, the ids of all its ancestors, its
position among its siblings and, optionally, a cached child count. The Tree
facade runs every mutation through one explicit pipeline that maintains
those caches with bulk store operations.

    from pathtreelib import Tree, InMemoryTreeStore

    tree = Tree(InMemoryTreeStore())
    root = tree.create("root", name="Root")
    child = tree.create("child", parent=root)
"""

import logging

__version__ = "0.1.0"

from .config import DestroyStrategy, TraversalType, TreeConfig
from .errors import (
    PathTreeError,
    TreeValidationError,
    CycleError,
    MissingParentError,
    NodeNotFoundError,
    UsageError,
    ConfigurationError,
    IntegrityWarning,
)
from .error_policies import (
    CascadeErrorPolicy,
    FailFastPolicy,
    ContinueOnErrorsPolicy,
    CollectErrorsPolicy,
    ThresholdPolicy,
)
from .core import HookRegistry, NodeFilter, TreeNode, TreeStore
from .adapters import InMemoryTreeStore, SQLiteTreeStore
from .tree import Tree
from .api import (
    traverse_tree,
    count_nodes,
    find_nodes,
    get_tree_paths,
    get_leaf_nodes,
    get_tree_stats,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    # Tree and records
    "Tree",
    "TreeNode",
    "TreeConfig",
    "DestroyStrategy",
    "TraversalType",
    "HookRegistry",
    # Stores
    "TreeStore",
    "NodeFilter",
    "InMemoryTreeStore",
    "SQLiteTreeStore",
    # Errors
    "PathTreeError",
    "TreeValidationError",
    "CycleError",
    "MissingParentError",
    "NodeNotFoundError",
    "UsageError",
    "ConfigurationError",
    "IntegrityWarning",
    "CascadeErrorPolicy",
    "FailFastPolicy",
    "ContinueOnErrorsPolicy",
    "CollectErrorsPolicy",
    "ThresholdPolicy",
    # High-level API
    "traverse_tree",
    "count_nodes",
    "find_nodes",
    "get_tree_paths",
    "get_leaf_nodes",
    "get_tree_stats",
]
