"""High-level API for PathTreeLib.

This module provides simple, functional interfaces for common read-only
operations over a Tree. These functions wrap the object-oriented API for
ease of use in simple cases.
"""

from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .config import TraversalType, parse_traversal_type
from .core.node import TreeNode
from .core.traverser import create_traverser
from .errors import UsageError
from .tree import NodeRef, Tree


def traverse_tree(
    tree: Tree,
    root: NodeRef,
    strategy: Union[TraversalType, str] = TraversalType.DEPTH_FIRST,
    max_depth: Optional[int] = None,
    min_depth: int = 0,
    include_filter: Optional[Callable[[TreeNode], bool]] = None,
    exclude_filter: Optional[Callable[[TreeNode], bool]] = None,
) -> Iterator[TreeNode]:
    """Simple interface for lazy subtree traversal.

    Unlike ``Tree.traverse`` this does not take a visitor; it yields the
    nodes themselves, read from the store step by step.

    Args:
        tree: Tree to read from
        root: Starting node or id
        strategy: Traversal kind (dfs, bfs, dfs_post, or a TraversalType)
        max_depth: Maximum depth relative to root (None = unlimited)
        min_depth: Minimum depth before yielding nodes
        include_filter: Only yield nodes for which this returns True
        exclude_filter: Skip nodes for which this returns True

    Yields:
        TreeNode instances that match the criteria

    Example:
        >>> for node in traverse_tree(tree, "root", strategy="bfs", max_depth=1):
        ...     print(node.name)
    """
    traverser = create_traverser(_parse_strategy(strategy), tree.store, ordered=tree.config.ordered)
    start = _lookup(tree, root)
    if start is None:
        return

    for node, _ in traverser.traverse(start, max_depth=max_depth, min_depth=min_depth):
        if include_filter is not None and not include_filter(node):
            continue
        if exclude_filter is not None and exclude_filter(node):
            continue
        yield node


def count_nodes(tree: Tree, root: NodeRef, **kwargs) -> int:
    """Count nodes in a subtree that match criteria.

    Args:
        tree: Tree to read from
        root: Starting node or id
        **kwargs: Traversal options (see traverse_tree)

    Returns:
        Number of nodes that match criteria
    """
    count = 0
    for _ in traverse_tree(tree, root, **kwargs):
        count += 1
    return count


def find_nodes(tree: Tree, root: NodeRef,
               predicate: Callable[[TreeNode], bool], **kwargs) -> Iterator[TreeNode]:
    """Find nodes that match a predicate.

    Example:
        >>> for node in find_nodes(tree, root, lambda n: n.kind == "folder"):
        ...     print(node.id)
    """
    kwargs['include_filter'] = predicate
    yield from traverse_tree(tree, root, **kwargs)


def get_tree_paths(tree: Tree, root: NodeRef, **kwargs) -> Iterator[List[Any]]:
    """Get the id path from the tree root to each node.

    The path is read from the materialized ``ancestor_ids``, so it starts at
    the real root even when ``root`` is an inner node.

    Yields:
        Lists of node ids, ending with the node's own id
    """
    for node in traverse_tree(tree, root, **kwargs):
        yield node.ancestor_ids_and_self()


def get_leaf_nodes(tree: Tree, root: NodeRef, **kwargs) -> Iterator[TreeNode]:
    """Get all leaf nodes under a node."""
    for node in traverse_tree(tree, root, **kwargs):
        if tree.is_leaf(node):
            yield node


def get_tree_stats(tree: Tree, root: Optional[NodeRef] = None) -> Dict[str, Any]:
    """Get statistics about one tree, or the whole collection.

    Args:
        tree: Tree to read from
        root: Node or id to start at (None = every root)

    Returns:
        Dictionary with tree statistics

    Example:
        >>> stats = get_tree_stats(tree)
        >>> print(f"Total nodes: {stats['total_nodes']}")
    """
    stats: Dict[str, Any] = {
        'total_nodes': 0,
        'leaf_nodes': 0,
        'max_depth': 0,
        'depths': {}
    }

    starts = [root] if root is not None else tree.roots()
    traverser = create_traverser(TraversalType.BREADTH_FIRST, tree.store, ordered=tree.config.ordered)

    resolved = 0
    for start in starts:
        start_node = _lookup(tree, start)
        if start_node is None:
            continue
        resolved += 1
        for node, _ in traverser.traverse(start_node):
            # Absolute depth comes from the path, not the walk
            depth = node.depth()
            stats['total_nodes'] += 1

            if tree.is_leaf(node):
                stats['leaf_nodes'] += 1

            stats['max_depth'] = max(stats['max_depth'], depth)
            stats['depths'][depth] = stats['depths'].get(depth, 0) + 1

    stats['internal_nodes'] = stats['total_nodes'] - stats['leaf_nodes']
    stats['average_branching'] = (
        (stats['total_nodes'] - resolved) / stats['internal_nodes']
        if stats['internal_nodes'] > 0 else 0
    )

    return stats


# Helper functions

def _parse_strategy(strategy: Union[TraversalType, str]) -> TraversalType:
    """Parse strategy from string or enum.

    Raises:
        UsageError: If the name is not a known traversal kind
    """
    try:
        return parse_traversal_type(strategy)
    except ValueError as error:
        raise UsageError(str(error)) from error


def _lookup(tree: Tree, ref: NodeRef) -> Optional[TreeNode]:
    """Stored copy of a node given the node or its id; None if absent."""
    return tree.get(ref.id if isinstance(ref, TreeNode) else ref)
