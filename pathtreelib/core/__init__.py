"""Core components of PathTreeLib.

This package contains the record type, the store contract and the
components of the consistency engine.
"""

from .node import TreeNode
from .store import ANY, NodeFilter, TreeStore, rewrite_path, sort_by_position
from .hooks import HookRegistry, HOOK_POINTS
from .cycle_guard import CycleGuard
from .ancestry import AncestryMaintainer
from .ordering import SiblingOrderer
from .destroy import DestroyCascade
from .counter_cache import CounterCache
from .traverser import (
    TreeTraverser,
    BreadthFirstTraverser,
    DepthFirstPreOrderTraverser,
    DepthFirstPostOrderTraverser,
    TraversalEngine,
    create_traverser,
)

__all__ = [
    "TreeNode",
    "ANY",
    "NodeFilter",
    "TreeStore",
    "rewrite_path",
    "sort_by_position",
    "HookRegistry",
    "HOOK_POINTS",
    "CycleGuard",
    "AncestryMaintainer",
    "SiblingOrderer",
    "DestroyCascade",
    "CounterCache",
    "TreeTraverser",
    "BreadthFirstTraverser",
    "DepthFirstPreOrderTraverser",
    "DepthFirstPostOrderTraverser",
    "TraversalEngine",
    "create_traverser",
]
