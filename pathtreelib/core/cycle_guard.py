"""Cycle prevention for parent assignments.

A node may not become a child of itself or of any of its own descendants.
Thanks to the materialized path this is a membership test on the candidate
parent's ``ancestor_ids`` rather than a walk up the parent chain.
"""

from typing import Any, List, Optional

from .node import TreeNode
from .store import TreeStore
from ..errors import CycleError, MissingParentError, TreeValidationError


class CycleGuard:
    """Validates proposed parent assignments. Has no side effects."""

    def __init__(self, store: TreeStore):
        self.store = store

    def validate(self, node: TreeNode, proposed_parent_id: Optional[Any]) -> List[TreeValidationError]:
        """Check that ``proposed_parent_id`` is a legal parent for ``node``.

        Args:
            node: The node being saved
            proposed_parent_id: Parent id about to be persisted (None = root)

        Returns:
            List of validation errors (empty if valid)
        """
        if proposed_parent_id is None:
            return []

        if proposed_parent_id == node.id:
            return [CycleError(
                f"Node {node.id!r} cannot be its own parent",
                field="parent_id", node_id=node.id,
            )]

        parent = self.store.get(proposed_parent_id)
        if parent is None:
            return [MissingParentError(
                f"Parent {proposed_parent_id!r} of node {node.id!r} does not exist",
                field="parent_id", node_id=node.id,
            )]

        if node.id in parent.ancestor_ids:
            return [CycleError(
                f"Node {node.id!r} cannot be moved under its own descendant {parent.id!r}",
                field="parent_id", node_id=node.id,
            )]

        return []

    def is_valid(self, node: TreeNode, proposed_parent_id: Optional[Any]) -> bool:
        return not self.validate(node, proposed_parent_id)
