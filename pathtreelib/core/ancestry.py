"""Materialized path maintenance.

Every node stores its full ancestor path. When a node's parent changes the
node's own path is recomputed from its new parent, and then every descendant
has the prefix of its path (everything up to and including the moved node)
replaced. The suffix below the moved node is preserved, so one flat update
per descendant is enough; no recursion through the children is needed.

Derivation is idempotent: running a cascade again over an already-correct
subtree writes nothing, and re-running it after an interrupted cascade
repairs whatever was left stale.
"""

import logging
import warnings
from collections import deque
from typing import Any, Deque, List, Optional

from .hooks import AFTER_REARRANGE, BEFORE_REARRANGE, HookRegistry
from .node import TreeNode
from .store import TreeStore, rewrite_path
from ..error_policies import CascadeErrorPolicy, FailFastPolicy
from ..errors import IntegrityWarning

logger = logging.getLogger(__name__)


class AncestryMaintainer:
    """Computes ancestor paths and cascades them to descendants."""

    def __init__(self,
                 store: TreeStore,
                 hooks: Optional[HookRegistry] = None,
                 bulk: bool = True,
                 error_policy: Optional[CascadeErrorPolicy] = None):
        """Initialize the maintainer.

        Args:
            store: Store holding the tree records
            hooks: Registry receiving before/after rearrange events
            bulk: Use the store's bulk transform when it supports one
            error_policy: Policy for failed per-descendant writes
        """
        self.store = store
        self.hooks = hooks or HookRegistry()
        self.bulk = bulk
        self.error_policy = error_policy or FailFastPolicy()

    def compute_path(self, node: TreeNode) -> List[Any]:
        """Derive a node's ancestor path from its current parent.

        A parent id that no longer resolves is treated as "no parent".
        """
        if node.parent_id is None:
            return []
        parent = self.store.get(node.parent_id)
        if parent is None:
            return []
        return list(parent.ancestor_ids) + [parent.id]

    def rearrange(self, node: TreeNode, old_parent_id: Optional[Any] = None) -> bool:
        """Recompute the node's own path in place (not persisted).

        Fires ``before_rearrange`` first. The caller persists the node and
        then calls ``complete_rearrange``.

        Returns:
            True if the path differs from the one the node carried
        """
        self.hooks.fire(BEFORE_REARRANGE, node, old_parent_id=old_parent_id)
        path = self.compute_path(node)
        changed = path != list(node.ancestor_ids)
        node.ancestor_ids = path
        return changed

    def complete_rearrange(self, node: TreeNode, old_parent_id: Optional[Any] = None,
                           is_new: bool = False) -> int:
        """Cascade the node's (persisted) path and fire ``after_rearrange``.

        Returns:
            Number of descendants rewritten
        """
        writes = self.cascade(node)
        self.hooks.fire(AFTER_REARRANGE, node, old_parent_id=old_parent_id, is_new=is_new)
        return writes

    def cascade(self, node: TreeNode) -> int:
        """Propagate ``node``'s path to every descendant.

        Args:
            node: Node whose path was just persisted

        Returns:
            Number of descendants whose stored path actually changed
        """
        prefix = list(node.ancestor_ids) + [node.id]

        if self.bulk and self.store.supports_bulk_transform():
            try:
                writes = self.store.transform_descendants(node.id, prefix)
            except Exception:
                self._report_interrupted(node, None)
                raise
            logger.debug("bulk cascade from %r rewrote %d descendants", node.id, writes)
            return writes

        return self._cascade_sequential(node, prefix)

    def _cascade_sequential(self, node: TreeNode, prefix: List[Any]) -> int:
        writes = 0
        failures = 0

        for descendant in self.store.descendants_of(node.id):
            path = rewrite_path(descendant.ancestor_ids, node.id, prefix)
            if path == list(descendant.ancestor_ids):
                continue

            descendant.ancestor_ids = path
            try:
                self.store.save(descendant)
            except Exception as error:
                failures += 1
                try:
                    self.error_policy.handle(error, descendant, "cascade")
                except Exception:
                    self._report_interrupted(node, writes)
                    raise
                continue
            writes += 1

        if failures:
            self._report_interrupted(node, writes, failures)

        logger.debug("sequential cascade from %r rewrote %d descendants", node.id, writes)
        return writes

    def _report_interrupted(self, node: TreeNode, writes: Optional[int], skipped: int = 0) -> None:
        done = "an unknown number of" if writes is None else str(writes)
        message = (
            f"Ancestry cascade from node {node.id!r} was interrupted after {done} writes"
            + (f" ({skipped} descendants skipped)" if skipped else "")
            + "; remaining descendants keep stale paths until the next rearrange"
        )
        logger.warning(message)
        warnings.warn(message, IntegrityWarning, stacklevel=3)

    def rebuild(self, root: TreeNode) -> int:
        """Re-derive paths for a whole subtree from the live parent chain.

        Walks ``parent_id`` links breadth-first (they are authoritative) and
        rewrites every stored path that disagrees, including ``root``'s own.

        Returns:
            Number of records rewritten
        """
        writes = 0
        expected = self.compute_path(root)
        if expected != list(root.ancestor_ids):
            root.ancestor_ids = expected
            self.store.save(root)
            writes += 1

        queue: Deque[TreeNode] = deque([root])
        seen = {root.id}
        while queue:
            parent = queue.popleft()
            prefix = list(parent.ancestor_ids) + [parent.id]
            for child in self.store.children_of(parent.id, ordered=False):
                if child.id in seen:
                    continue
                seen.add(child.id)
                if list(child.ancestor_ids) != prefix:
                    child.ancestor_ids = list(prefix)
                    self.store.save(child)
                    writes += 1
                queue.append(child)

        if writes:
            logger.info("rebuild from %r repaired %d paths", root.id, writes)
        return writes
