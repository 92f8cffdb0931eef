"""TreeStore abstraction for PathTreeLib.

The TreeStore is the narrow contract between the consistency engine and
whatever actually persists the records. The engine never walks the tree
recursively inside the store: every question it asks is a flat filter
query (children of X, records whose path contains X, siblings after
position N) and every cascade it issues is a bulk update where possible.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional, Sequence

from .node import TreeNode


class _AnyValue:
    """Sentinel meaning "do not filter on this attribute"."""

    def __repr__(self) -> str:
        return "ANY"

    def __bool__(self) -> bool:
        return False


ANY = _AnyValue()

# Numeric fields that support bulk increment
COUNTER_FIELDS = ('position', 'children_count')


@dataclass
class NodeFilter:
    """A flat predicate over stored nodes.

    Unset attributes do not constrain the match. ``parent_id=None`` means
    "roots only"; use the ``ANY`` sentinel (the default) to leave the parent
    unconstrained. Position bounds never match nodes whose position is unset.
    """

    ids: Optional[Sequence[Any]] = None
    parent_id: Any = ANY
    ancestor_id: Any = ANY
    position_gt: Optional[int] = None
    position_gte: Optional[int] = None
    position_lt: Optional[int] = None
    position_lte: Optional[int] = None
    exclude_ids: Optional[Sequence[Any]] = None

    def has_position_bounds(self) -> bool:
        return any(bound is not None for bound in (
            self.position_gt, self.position_gte, self.position_lt, self.position_lte
        ))

    def matches(self, node: TreeNode) -> bool:
        """Evaluate the filter against a node in memory.

        Args:
            node: Node to check

        Returns:
            True if the node satisfies every constraint
        """
        if self.ids is not None and node.id not in self.ids:
            return False
        if self.exclude_ids is not None and node.id in self.exclude_ids:
            return False
        if self.parent_id is not ANY and node.parent_id != self.parent_id:
            return False
        if self.ancestor_id is not ANY and self.ancestor_id not in node.ancestor_ids:
            return False

        if self.has_position_bounds():
            position = node.position
            if position is None:
                return False
            if self.position_gt is not None and not position > self.position_gt:
                return False
            if self.position_gte is not None and not position >= self.position_gte:
                return False
            if self.position_lt is not None and not position < self.position_lt:
                return False
            if self.position_lte is not None and not position <= self.position_lte:
                return False

        return True


def sort_by_position(nodes: Iterable[TreeNode]) -> List[TreeNode]:
    """Order nodes by position; unset positions go last, ties keep input order."""
    return sorted(nodes, key=lambda n: (n.position is None, n.position or 0))


class TreeStore(ABC):
    """Abstract store holding a flat collection of TreeNode records.

    Concrete stores must return detached copies from every read, so that
    callers never mutate stored state by accident. Writes happen only
    through ``save``, ``delete`` and the bulk operations.

    Capability flags follow the same idea as traversal adapters: a store
    declares what it can do natively and the engine falls back otherwise.
    """

    # Single-record operations

    @abstractmethod
    def get(self, node_id: Any) -> Optional[TreeNode]:
        """Fetch a node by id.

        Returns:
            A detached copy, or None if no such node exists
        """
        pass

    @abstractmethod
    def save(self, node: TreeNode) -> None:
        """Insert or replace a node (upsert by id)."""
        pass

    @abstractmethod
    def delete(self, node_id: Any) -> bool:
        """Delete a single node.

        Returns:
            True if a node was removed
        """
        pass

    # Queries

    @abstractmethod
    def find(self, node_filter: Optional[NodeFilter] = None,
             ordered: bool = False) -> List[TreeNode]:
        """Return every node matching a filter.

        Args:
            node_filter: Predicate (None matches everything)
            ordered: Sort by position when True, otherwise insertion order

        Returns:
            List of detached copies
        """
        pass

    def exists(self, node_id: Any) -> bool:
        return self.get(node_id) is not None

    def get_many(self, node_ids: Sequence[Any]) -> List[TreeNode]:
        """Fetch several nodes, returned in the order of ``node_ids``.

        Ids that do not resolve are skipped.
        """
        found = {node.id: node for node in self.find(NodeFilter(ids=list(node_ids)))}
        return [found[node_id] for node_id in node_ids if node_id in found]

    def children_of(self, parent_id: Optional[Any], ordered: bool = True) -> List[TreeNode]:
        """Direct children of a node (``parent_id=None`` returns roots)."""
        return self.find(NodeFilter(parent_id=parent_id), ordered=ordered)

    def roots(self, ordered: bool = True) -> List[TreeNode]:
        return self.children_of(None, ordered=ordered)

    def descendants_of(self, node_id: Any) -> List[TreeNode]:
        """All nodes whose materialized path contains ``node_id``."""
        return self.find(NodeFilter(ancestor_id=node_id))

    def all_nodes(self) -> List[TreeNode]:
        return self.find(None)

    def count(self, node_filter: Optional[NodeFilter] = None) -> int:
        return len(self.find(node_filter))

    def get_parent(self, node: TreeNode) -> Optional[TreeNode]:
        """Get the parent of a node, or None for roots and dangling parents."""
        if node.parent_id is None:
            return None
        return self.get(node.parent_id)

    def get_children(self, node: TreeNode) -> Iterator[TreeNode]:
        """Iterate over a node's children in sibling order."""
        return iter(self.children_of(node.id, ordered=True))

    # Bulk operations

    @abstractmethod
    def increment(self, field_name: str, amount: int, node_filter: NodeFilter) -> int:
        """Add ``amount`` to a numeric field on every matching node.

        Nodes whose field is unset are treated as 0 for ``children_count``
        and skipped for ``position``.

        Returns:
            Number of nodes updated
        """
        pass

    @abstractmethod
    def delete_matching(self, node_filter: NodeFilter) -> int:
        """Delete every matching node in one operation.

        Returns:
            Number of nodes removed
        """
        pass

    # Capability flags - stores declare what they support

    def supports_bulk_transform(self) -> bool:
        """Check if the store can rewrite descendant paths in one operation."""
        return False

    def transform_descendants(self, node_id: Any, new_prefix: Sequence[Any]) -> int:
        """Rewrite the path prefix of every descendant of ``node_id``.

        For each descendant, everything up to and including ``node_id`` is
        replaced with ``new_prefix``; the part below ``node_id`` is kept.
        Records whose path would not change must not be written.

        Returns:
            Number of descendants actually rewritten

        Raises:
            NotImplementedError: If bulk transform is not supported
        """
        raise NotImplementedError(f"{self.__class__.__name__} does not support bulk transform")

    def close(self) -> None:
        """Release any resources held by the store."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return None


def rewrite_path(ancestor_ids: Sequence[Any], node_id: Any, new_prefix: Sequence[Any]) -> List[Any]:
    """Replace the path prefix up to and including ``node_id``.

    ``new_prefix`` must already end with ``node_id``. Paths that do not
    contain ``node_id`` are returned unchanged.
    """
    path = list(ancestor_ids)
    if node_id not in path:
        return path
    index = path.index(node_id)
    return list(new_prefix) + path[index + 1:]
