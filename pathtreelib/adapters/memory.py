"""In-memory store for PathTreeLib.

A dictionary-backed TreeStore that implements every bulk operation
natively, including the descendant path transform. Useful for tests,
small tools, and as a reference for writing adapters over real stores.
"""

from typing import Any, Dict, Iterable, List, Optional, Sequence

from ..core.node import TreeNode
from ..core.store import COUNTER_FIELDS, NodeFilter, TreeStore, rewrite_path, sort_by_position


class InMemoryTreeStore(TreeStore):
    """TreeStore keeping records in an insertion-ordered dict.

    Reads return copies and writes store copies, so objects held by callers
    behave like rows loaded from a database: they go stale until reloaded.

    The ``stats`` counters record how many writes each kind of operation
    performed, which makes write amplification visible in tests.
    """

    def __init__(self, nodes: Optional[Iterable[TreeNode]] = None):
        """Initialize the store.

        Args:
            nodes: Records to load as-is (no pipeline runs for them)
        """
        self._nodes: Dict[Any, TreeNode] = {}
        self.stats = self._empty_stats()
        for node in nodes or []:
            self._nodes[node.id] = node.copy()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            'saves': 0,
            'deletes': 0,
            'incremented': 0,
            'bulk_deleted': 0,
            'transformed': 0,
        }

    def reset_stats(self) -> None:
        self.stats = self._empty_stats()

    # Single-record operations

    def get(self, node_id: Any) -> Optional[TreeNode]:
        node = self._nodes.get(node_id)
        return node.copy() if node is not None else None

    def save(self, node: TreeNode) -> None:
        self._nodes[node.id] = node.copy()
        self.stats['saves'] += 1

    def delete(self, node_id: Any) -> bool:
        removed = self._nodes.pop(node_id, None) is not None
        if removed:
            self.stats['deletes'] += 1
        return removed

    def exists(self, node_id: Any) -> bool:
        return node_id in self._nodes

    # Queries

    def find(self, node_filter: Optional[NodeFilter] = None,
             ordered: bool = False) -> List[TreeNode]:
        matches = [
            node.copy() for node in self._nodes.values()
            if node_filter is None or node_filter.matches(node)
        ]
        if ordered:
            return sort_by_position(matches)
        return matches

    def count(self, node_filter: Optional[NodeFilter] = None) -> int:
        if node_filter is None:
            return len(self._nodes)
        return sum(1 for node in self._nodes.values() if node_filter.matches(node))

    # Bulk operations

    def increment(self, field_name: str, amount: int, node_filter: NodeFilter) -> int:
        if field_name not in COUNTER_FIELDS:
            raise ValueError(f"Cannot increment field {field_name!r}; choose from {COUNTER_FIELDS}")

        updated = 0
        for node in self._nodes.values():
            if not node_filter.matches(node):
                continue
            current = getattr(node, field_name)
            if current is None:
                if field_name == 'position':
                    continue
                current = 0
            setattr(node, field_name, current + amount)
            updated += 1

        self.stats['incremented'] += updated
        return updated

    def delete_matching(self, node_filter: NodeFilter) -> int:
        doomed = [node_id for node_id, node in self._nodes.items() if node_filter.matches(node)]
        for node_id in doomed:
            del self._nodes[node_id]
        self.stats['bulk_deleted'] += len(doomed)
        return len(doomed)

    def supports_bulk_transform(self) -> bool:
        return True

    def transform_descendants(self, node_id: Any, new_prefix: Sequence[Any]) -> int:
        rewritten = 0
        for node in self._nodes.values():
            if node_id not in node.ancestor_ids:
                continue
            path = rewrite_path(node.ancestor_ids, node_id, new_prefix)
            if path != node.ancestor_ids:
                node.ancestor_ids = path
                rewritten += 1

        self.stats['transformed'] += rewritten
        return rewritten

    def clear(self) -> None:
        self._nodes.clear()

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: Any) -> bool:
        return node_id in self._nodes

    def __repr__(self) -> str:
        return f"InMemoryTreeStore({len(self._nodes)} nodes)"
