"""Sibling ordering for PathTreeLib.

Each sibling group (nodes sharing a parent; roots form one group) keeps its
positions as a contiguous permutation of ``0..k-1``. New nodes are appended
at the end of their group, gaps left by removed or departed nodes are closed
by a single bulk decrement, and explicit moves open a slot with a single
bulk increment or decrement over the siblings in between.

Lower siblings have a greater position (they come later in the list);
higher siblings have a smaller one.
"""

import logging
from typing import Any, Callable, List, Optional

from .node import TreeNode
from .store import NodeFilter, TreeStore
from ..errors import NodeNotFoundError, UsageError

logger = logging.getLogger(__name__)

ReparentCallback = Callable[[TreeNode, Optional[Any]], TreeNode]


class SiblingOrderer:
    """Assigns, maintains and changes positions within sibling groups."""

    def __init__(self, store: TreeStore, reparent: Optional[ReparentCallback] = None):
        """Initialize the orderer.

        Args:
            store: Store holding the tree records
            reparent: Callable ``(node, new_parent_id) -> node`` that runs the
                full save pipeline. Needed when a move crosses sibling groups.
        """
        self.store = store
        self.reparent = reparent

    # Queries

    def _group_filter(self, node: TreeNode, **bounds) -> NodeFilter:
        return NodeFilter(parent_id=node.parent_id, exclude_ids=[node.id], **bounds)

    def siblings(self, node: TreeNode) -> List[TreeNode]:
        return self.store.find(self._group_filter(node), ordered=True)

    def siblings_and_self(self, node: TreeNode) -> List[TreeNode]:
        return self.store.children_of(node.parent_id, ordered=True)

    def lower_siblings(self, node: TreeNode) -> List[TreeNode]:
        """Siblings placed after this node (greater position)."""
        if node.position is None:
            return []
        return self.store.find(self._group_filter(node, position_gt=node.position), ordered=True)

    def higher_siblings(self, node: TreeNode) -> List[TreeNode]:
        """Siblings placed before this node (smaller position)."""
        if node.position is None:
            return []
        return self.store.find(self._group_filter(node, position_lt=node.position), ordered=True)

    def siblings_between(self, node: TreeNode, other: TreeNode) -> List[TreeNode]:
        """Siblings strictly between two members of the same group."""
        if node.parent_id != other.parent_id or node.position is None or other.position is None:
            return []
        low, high = sorted((node.position, other.position))
        return self.store.find(
            NodeFilter(parent_id=node.parent_id, position_gt=low, position_lt=high,
                       exclude_ids=[node.id, other.id]),
            ordered=True,
        )

    def first_sibling_in_list(self, node: TreeNode) -> TreeNode:
        """The first member of the group (may be the node itself)."""
        group = self.siblings_and_self(node)
        return group[0] if group else node

    def last_sibling_in_list(self, node: TreeNode) -> TreeNode:
        """The last member of the group (may be the node itself)."""
        group = self.siblings_and_self(node)
        return group[-1] if group else node

    def at_top(self, node: TreeNode) -> bool:
        return not self.higher_siblings(node)

    def at_bottom(self, node: TreeNode) -> bool:
        return not self.lower_siblings(node)

    # Save / destroy pipeline steps

    def default_position(self, node: TreeNode) -> int:
        """One past the greatest sibling position, or 0."""
        positions = [s.position for s in self.siblings(node) if s.position is not None]
        if not positions:
            return 0
        return max(positions) + 1

    def assign_default_position(self, node: TreeNode, parent_changed: bool) -> bool:
        """Append the node to its group when it has no valid position.

        Runs when the position is unset or the node just arrived in a new
        group; unrelated saves keep the current position.

        Returns:
            True if a position was assigned
        """
        if node.position is not None and not parent_changed:
            return False
        node.position = self.default_position(node)
        return True

    def reposition_former_siblings(self, node: TreeNode, old_parent_id: Optional[Any],
                                   old_position: Optional[int]) -> int:
        """Close the gap a persisted node leaves in its previous group.

        Returns:
            Number of former siblings shifted
        """
        if old_position is None:
            return 0
        shifted = self.store.increment(
            'position', -1,
            NodeFilter(parent_id=old_parent_id, position_gt=old_position, exclude_ids=[node.id]),
        )
        logger.debug("closed gap at %r/%d: %d siblings shifted", old_parent_id, old_position, shifted)
        return shifted

    def on_destroy(self, node: TreeNode) -> int:
        """Close the gap left by a node that is about to be removed."""
        if node.position is None:
            return 0
        return self.store.increment('position', -1, self._group_filter(node, position_gt=node.position))

    def normalize(self, parent_id: Optional[Any]) -> int:
        """Renumber a group as ``0..k-1`` keeping its current order.

        Returns:
            Number of nodes whose position changed
        """
        writes = 0
        for index, member in enumerate(self.store.children_of(parent_id, ordered=True)):
            if member.position != index:
                member.position = index
                self.store.save(member)
                writes += 1
        return writes

    # Moves

    def move_above(self, node: TreeNode, other: TreeNode) -> bool:
        """Place ``node`` immediately before ``other``, reparenting if needed."""
        return self._move_relative(node, other, above=True)

    def move_below(self, node: TreeNode, other: TreeNode) -> bool:
        """Place ``node`` immediately after ``other``, reparenting if needed."""
        return self._move_relative(node, other, above=False)

    def move_up(self, node: TreeNode) -> bool:
        """Swap with the previous sibling. Returns False if already first."""
        node = self._fresh(node)
        if self.at_top(node):
            return False
        self._shift(node, +1, position_gte=node.position - 1, position_lte=node.position - 1)
        self._set_position(node, node.position - 1)
        return True

    def move_down(self, node: TreeNode) -> bool:
        """Swap with the next sibling. Returns False if already last."""
        node = self._fresh(node)
        if self.at_bottom(node):
            return False
        self._shift(node, -1, position_gte=node.position + 1, position_lte=node.position + 1)
        self._set_position(node, node.position + 1)
        return True

    def move_to_top(self, node: TreeNode) -> bool:
        node = self._fresh(node)
        if self.at_top(node):
            return True
        return self.move_above(node, self.first_sibling_in_list(node))

    def move_to_bottom(self, node: TreeNode) -> bool:
        node = self._fresh(node)
        if self.at_bottom(node):
            return True
        return self.move_below(node, self.last_sibling_in_list(node))

    def _move_relative(self, node: TreeNode, other: TreeNode, above: bool) -> bool:
        if node.id == other.id:
            return True

        node = self._fresh(node)
        other = self._fresh(other)

        if node.parent_id != other.parent_id:
            if self.reparent is None:
                raise UsageError(
                    f"Node {node.id!r} is not a sibling of {other.id!r} and no reparent step is configured"
                )
            node = self.reparent(node, other.parent_id)
            other = self._fresh(other)

        if node.position is None or other.position is None:
            raise UsageError("Cannot move nodes without positions; is ordering enabled?")

        if node.position > other.position:
            # Moving towards the top: the in-between siblings move down one slot
            if above:
                target = other.position
                self._shift(node, +1, position_gte=other.position, position_lt=node.position)
            else:
                target = other.position + 1
                self._shift(node, +1, position_gt=other.position, position_lt=node.position)
        else:
            # Moving towards the bottom: the in-between siblings move up one slot
            if above:
                target = other.position - 1
                self._shift(node, -1, position_gt=node.position, position_lt=other.position)
            else:
                target = other.position
                self._shift(node, -1, position_gt=node.position, position_lte=other.position)

        self._set_position(node, target)
        return True

    # Helpers

    def _fresh(self, node: TreeNode) -> TreeNode:
        fresh = self.store.get(node.id)
        if fresh is None:
            raise NodeNotFoundError(node.id)
        return fresh

    def _shift(self, node: TreeNode, amount: int, **bounds) -> int:
        return self.store.increment('position', amount, self._group_filter(node, **bounds))

    def _set_position(self, node: TreeNode, position: int) -> None:
        fresh = self._fresh(node)
        fresh.position = position
        self.store.save(fresh)
        node.position = position
