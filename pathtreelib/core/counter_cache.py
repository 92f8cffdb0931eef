"""Denormalized child counts.

The CounterCache listens to the pipeline's structural events instead of
being called directly: a rearrange moves one unit of count from the old
parent to the new one, a destroy takes one unit from the former parent.
"""

import logging
from typing import Any, Optional

from .hooks import AFTER_DESTROY, AFTER_REARRANGE, BEFORE_SAVE, HookRegistry
from .node import TreeNode
from .store import NodeFilter, TreeStore

logger = logging.getLogger(__name__)


class CounterCache:
    """Keeps ``children_count`` equal to the live number of children."""

    def __init__(self, store: TreeStore):
        self.store = store

    def attach(self, hooks: HookRegistry) -> 'CounterCache':
        """Register this cache's listeners on a hook registry."""
        hooks.register(BEFORE_SAVE, self.before_save)
        hooks.register(AFTER_REARRANGE, self.after_rearrange)
        hooks.register(AFTER_DESTROY, self.after_destroy)
        return self

    def before_save(self, node: TreeNode, is_new: bool = False, **context: Any) -> None:
        if is_new or node.children_count is None:
            node.children_count = self.live_count(node)

    def after_rearrange(self, node: TreeNode, old_parent_id: Optional[Any] = None,
                        is_new: bool = False, **context: Any) -> None:
        if not is_new and old_parent_id is not None:
            self._bump(old_parent_id, -1)
        if node.parent_id is not None:
            self._bump(node.parent_id, +1)

    def after_destroy(self, node: TreeNode, **context: Any) -> None:
        if node.parent_id is not None:
            self._bump(node.parent_id, -1)

    def live_count(self, node: TreeNode) -> int:
        return self.store.count(NodeFilter(parent_id=node.id))

    def recount(self, node: TreeNode) -> int:
        """Reset a node's cached count from the live child count.

        Returns:
            The corrected count
        """
        fresh = self.store.get(node.id) or node
        count = self.live_count(fresh)
        if fresh.children_count != count:
            logger.debug("children_count of %r corrected %r -> %d", fresh.id, fresh.children_count, count)
            fresh.children_count = count
            self.store.save(fresh)
        node.children_count = count
        return count

    def _bump(self, node_id: Any, amount: int) -> None:
        self.store.increment('children_count', amount, NodeFilter(ids=[node_id]))
