"""Destroy strategies: what happens to the descendants of a removed node.

The strategy is picked per node kind from the TreeConfig and dispatched
through ``DestroyCascade.apply``. Strategies that move or destroy children
go through the full Tree pipeline for each child (so cycle checks, path
cascades, gap closing and counter updates all run); the bulk strategy
bypasses every per-node hook.
"""

import logging
from typing import Any, Callable, Dict, Optional

from .node import TreeNode
from .store import NodeFilter, TreeStore
from ..config import DestroyStrategy, TreeConfig, parse_destroy_strategy

logger = logging.getLogger(__name__)


class DestroyCascade:
    """Applies the configured destroy strategy to a node's descendants."""

    def __init__(self,
                 store: TreeStore,
                 config: TreeConfig,
                 reparent: Callable[[TreeNode, Optional[Any]], TreeNode],
                 destroy: Callable[[TreeNode], Any]):
        """Initialize the cascade.

        Args:
            store: Store holding the tree records
            config: Supplies the per-kind strategy table
            reparent: Runs the save pipeline for a parent change
            destroy: Runs the destroy pipeline for a single node
        """
        self.store = store
        self.config = config
        self.reparent = reparent
        self.destroy = destroy
        self._handlers: Dict[DestroyStrategy, Callable[[TreeNode], int]] = {
            DestroyStrategy.NULLIFY: self.nullify_children,
            DestroyStrategy.REPARENT_TO_GRANDPARENT: self.move_children_to_parent,
            DestroyStrategy.RECURSIVE_DESTROY: self.destroy_children,
            DestroyStrategy.BULK_DELETE_DESCENDANTS: self.delete_descendants,
        }

    def strategy_for(self, node: TreeNode) -> DestroyStrategy:
        return self.config.strategy_for(node.kind)

    def apply(self, node: TreeNode, strategy: Optional[Any] = None) -> int:
        """Run a strategy against a node's descendants.

        Args:
            node: The node being removed
            strategy: Override the configured strategy (enum or name)

        Returns:
            Number of descendants affected
        """
        chosen = parse_destroy_strategy(strategy) if strategy is not None else self.strategy_for(node)
        affected = self._handlers[chosen](node)
        logger.debug("%s on %r affected %d nodes", chosen.value, node.id, affected)
        return affected

    def nullify_children(self, node: TreeNode) -> int:
        """Every direct child becomes a root."""
        children = self.store.children_of(node.id, ordered=True)
        for child in children:
            self.reparent(child, None)
        return len(children)

    def move_children_to_parent(self, node: TreeNode) -> int:
        """Every direct child moves to the node's former parent.

        If that parent is gone already, the children become roots.
        """
        target = node.parent_id
        if target is not None and not self.store.exists(target):
            logger.debug("former parent %r of %r is gone; children become roots", target, node.id)
            target = None

        children = self.store.children_of(node.id, ordered=True)
        for child in children:
            self.reparent(child, target)
        return len(children)

    def destroy_children(self, node: TreeNode) -> int:
        """Destroy every child depth-first, each with its own strategy.

        A child whose own strategy hands its children up to this node adds
        them to the list; they are destroyed in turn.
        """
        destroyed = 0
        children = self.store.children_of(node.id, ordered=True)
        while children:
            self.destroy(children[0])
            destroyed += 1
            children = self.store.children_of(node.id, ordered=True)
        return destroyed

    def delete_descendants(self, node: TreeNode) -> int:
        """Delete the whole subtree below the node in one bulk operation."""
        return self.store.delete_matching(NodeFilter(ancestor_id=node.id))
