"""The Tree: explicit mutation pipeline and query facade.

Every public mutation runs the same explicit sequence of steps instead of
relying on change tracking on the record:

    before_validate -> cycle check -> before_save -> before_rearrange ->
    path rebuild -> default position -> close gap in old group -> persist ->
    descendant cascade -> after_rearrange -> after_save

and for removal:

    before_destroy -> destroy strategy -> close gap -> delete -> after_destroy

Whether the parent changed is decided by comparing the incoming node with
the stored record. ``ancestor_ids``, ``position`` and ``children_count`` are
owned by the pipeline: values carried on a caller's object are ignored on
save (they may be stale) and the stored values are used instead.
"""

import logging
import uuid
from collections import defaultdict
from typing import Any, Dict, Iterator, List, Optional, Union

from .config import DestroyStrategy, TraversalType, TreeConfig
from .core.ancestry import AncestryMaintainer
from .core.counter_cache import CounterCache
from .core.cycle_guard import CycleGuard
from .core.destroy import DestroyCascade
from .core.hooks import (
    AFTER_DESTROY,
    AFTER_SAVE,
    BEFORE_DESTROY,
    BEFORE_SAVE,
    BEFORE_VALIDATE,
    HookRegistry,
)
from .core.node import TreeNode
from .core.ordering import SiblingOrderer
from .core.store import NodeFilter, TreeStore
from .core.traverser import TraversalEngine, Visitor, create_traverser
from .errors import ConfigurationError, NodeNotFoundError, TreeValidationError, UsageError

logger = logging.getLogger(__name__)

NodeRef = Union[TreeNode, Any]


class Tree:
    """A tree collection backed by a TreeStore.

    Example:
        >>> tree = Tree(InMemoryTreeStore())
        >>> root = tree.create("root")
        >>> child = tree.create("child", parent=root)
        >>> child.ancestor_ids
        ['root']
    """

    def __init__(self, store: TreeStore, config: Optional[TreeConfig] = None,
                 hooks: Optional[HookRegistry] = None):
        """Create a tree over a store.

        Args:
            store: Store holding the records
            config: Tree behaviour (defaults to ordered, nullify on destroy)
            hooks: Registry to fire lifecycle events on (a new one if None)

        Raises:
            ConfigurationError: If the configuration is inconsistent
        """
        self.store = store
        self.config = config or TreeConfig()

        config_errors = self.config.validate()
        if config_errors:
            raise ConfigurationError(f"Invalid configuration: {'; '.join(config_errors)}")

        self.hooks = hooks or HookRegistry()
        self.cycle_guard = CycleGuard(store)
        self.ancestry = AncestryMaintainer(
            store, self.hooks,
            bulk=self.config.bulk_cascade,
            error_policy=self.config.cascade_error_policy,
        )
        self.orderer = SiblingOrderer(store, reparent=self._reparent) if self.config.ordered else None
        self.destroyer = DestroyCascade(store, self.config, reparent=self._reparent, destroy=self.destroy)
        self.traversal = TraversalEngine(store, ordered=self.config.ordered)
        self.counter_cache = CounterCache(store).attach(self.hooks) if self.config.counter_cache else None

    # Creating and saving

    def create(self, node_id: Optional[Any] = None, parent: Optional[NodeRef] = None,
               kind: Optional[str] = None, **data: Any) -> TreeNode:
        """Create and persist a new node.

        Args:
            node_id: Identifier (a random hex id if None)
            parent: Parent node or id (None for a root)
            kind: Optional node kind, selects the destroy strategy
            **data: Payload stored on the node (e.g. ``name="..."``)

        Returns:
            The saved node
        """
        node = TreeNode(
            id=node_id if node_id is not None else uuid.uuid4().hex,
            parent_id=self._id_of(parent),
            kind=kind,
            data=data,
        )
        return self.save(node)

    def validate(self, node: TreeNode) -> List[TreeValidationError]:
        """Check a node's parent assignment without saving.

        Returns:
            List of validation errors (empty if valid)
        """
        stored = self.store.get(node.id)
        if stored is not None and stored.parent_id == node.parent_id:
            return []
        return self.cycle_guard.validate(node, node.parent_id)

    def save(self, node: TreeNode) -> TreeNode:
        """Persist a node through the full pipeline.

        The object's ``parent_id`` is authoritative: a value that differs from
        the stored record is a move. Saving an object held from before a
        structural change elsewhere (e.g. its parent was destroyed or its
        children moved up) re-applies the old parent. Use ``update`` for
        payload-only edits.

        Raises:
            CycleError: If the new parent is the node or one of its descendants
            MissingParentError: If the new parent does not exist
        """
        stored = self.store.get(node.id)
        is_new = stored is None
        old_parent_id = None if is_new else stored.parent_id
        parent_changed = is_new or node.parent_id != old_parent_id

        self.hooks.fire(BEFORE_VALIDATE, node, is_new=is_new, parent_changed=parent_changed)
        if parent_changed:
            errors = self.cycle_guard.validate(node, node.parent_id)
            if errors:
                error = errors[0]
                error.errors = errors
                logger.debug("save of %r rejected: %s", node.id, error)
                raise error

        if not is_new:
            node.ancestor_ids = list(stored.ancestor_ids)
            node.position = stored.position
            node.children_count = stored.children_count

        self.hooks.fire(BEFORE_SAVE, node, is_new=is_new, parent_changed=parent_changed)

        if parent_changed:
            self.ancestry.rearrange(node, old_parent_id)

        if self.orderer is not None:
            self.orderer.assign_default_position(node, parent_changed)
            if parent_changed and not is_new:
                self.orderer.reposition_former_siblings(node, old_parent_id, stored.position)

        self.store.save(node.copy())

        if parent_changed:
            self.ancestry.complete_rearrange(node, old_parent_id, is_new=is_new)
            self._refresh(node)

        self.hooks.fire(AFTER_SAVE, node, is_new=is_new, parent_changed=parent_changed)
        return node

    def update(self, node: NodeRef, **data: Any) -> TreeNode:
        """Merge ``data`` into a node's stored payload without moving it.

        Starts from the stored record, so a stale ``node`` object cannot
        re-apply an old parent. A passed object is refreshed in place.

        Raises:
            NodeNotFoundError: If the node is not stored
        """
        fresh = self._resolve(node)
        fresh.data.update(data)
        self.save(fresh)
        if isinstance(node, TreeNode):
            node.refresh_from(fresh)
            return node
        return fresh

    # Structural mutations

    def attach(self, child: NodeRef, parent: Optional[NodeRef]) -> TreeNode:
        """Make ``child`` a child of ``parent`` (``parent.children << child``).

        A failed validation leaves both the store and ``child`` unchanged.
        """
        return self.reparent(child, parent)

    def reparent(self, node: NodeRef, new_parent: Optional[NodeRef]) -> TreeNode:
        """Move a node (with its whole subtree) under a new parent.

        Args:
            node: Node or id to move
            new_parent: New parent node or id (None makes it a root)

        Returns:
            The updated node (the caller's object, when one was passed)
        """
        target = node if isinstance(node, TreeNode) else self._resolve(node)
        previous = target.parent_id
        target.parent_id = self._id_of(new_parent)
        try:
            return self.save(target)
        except TreeValidationError:
            target.parent_id = previous
            raise

    move_to = reparent

    def detach(self, node: NodeRef) -> TreeNode:
        """Make a node a root."""
        return self.reparent(node, None)

    def destroy(self, node: NodeRef) -> bool:
        """Remove a node, applying its destroy strategy to its descendants.

        Returns:
            True once the node is gone

        Raises:
            NodeNotFoundError: If the node is not stored
        """
        current = self._resolve(node)
        strategy = self.destroyer.strategy_for(current)

        self.hooks.fire(BEFORE_DESTROY, current, strategy=strategy)
        self.destroyer.apply(current, strategy)

        current = self._resolve(current)
        if self.orderer is not None:
            self.orderer.on_destroy(current)
        self.store.delete(current.id)

        self.hooks.fire(AFTER_DESTROY, current, strategy=strategy)
        logger.debug("destroyed %r (%s)", current.id, strategy.value)
        return True

    def apply_destroy_strategy(self, node: NodeRef,
                               strategy: Optional[Union[DestroyStrategy, str]] = None) -> int:
        """Run a destroy strategy on a node's descendants without removing it.

        Returns:
            Number of descendants affected
        """
        return self.destroyer.apply(self._resolve(node), strategy)

    def nullify_children(self, node: NodeRef) -> int:
        return self.apply_destroy_strategy(node, DestroyStrategy.NULLIFY)

    def move_children_to_parent(self, node: NodeRef) -> int:
        return self.apply_destroy_strategy(node, DestroyStrategy.REPARENT_TO_GRANDPARENT)

    def destroy_children(self, node: NodeRef) -> int:
        return self.apply_destroy_strategy(node, DestroyStrategy.RECURSIVE_DESTROY)

    def delete_descendants(self, node: NodeRef) -> int:
        return self.apply_destroy_strategy(node, DestroyStrategy.BULK_DELETE_DESCENDANTS)

    # Ordering

    def move_above(self, node: NodeRef, other: NodeRef) -> bool:
        """Place ``node`` immediately before ``other`` (reparenting if needed)."""
        result = self._ordering().move_above(self._resolve(node), self._resolve(other))
        self._refresh(node, other)
        return result

    def move_below(self, node: NodeRef, other: NodeRef) -> bool:
        """Place ``node`` immediately after ``other`` (reparenting if needed)."""
        result = self._ordering().move_below(self._resolve(node), self._resolve(other))
        self._refresh(node, other)
        return result

    def move_up(self, node: NodeRef) -> bool:
        result = self._ordering().move_up(self._resolve(node))
        self._refresh(node)
        return result

    def move_down(self, node: NodeRef) -> bool:
        result = self._ordering().move_down(self._resolve(node))
        self._refresh(node)
        return result

    def move_to_top(self, node: NodeRef) -> bool:
        result = self._ordering().move_to_top(self._resolve(node))
        self._refresh(node)
        return result

    def move_to_bottom(self, node: NodeRef) -> bool:
        result = self._ordering().move_to_bottom(self._resolve(node))
        self._refresh(node)
        return result

    def lower_siblings(self, node: NodeRef) -> List[TreeNode]:
        return self._ordering().lower_siblings(self._current(node))

    def higher_siblings(self, node: NodeRef) -> List[TreeNode]:
        return self._ordering().higher_siblings(self._current(node))

    def siblings_between(self, node: NodeRef, other: NodeRef) -> List[TreeNode]:
        return self._ordering().siblings_between(self._current(node), self._current(other))

    def first_sibling_in_list(self, node: NodeRef) -> TreeNode:
        return self._ordering().first_sibling_in_list(self._current(node))

    def last_sibling_in_list(self, node: NodeRef) -> TreeNode:
        return self._ordering().last_sibling_in_list(self._current(node))

    def at_top(self, node: NodeRef) -> bool:
        return self._ordering().at_top(self._current(node))

    def at_bottom(self, node: NodeRef) -> bool:
        return self._ordering().at_bottom(self._current(node))

    # Relationship queries

    def get(self, node_id: Any) -> Optional[TreeNode]:
        return self.store.get(node_id)

    def reload(self, node: NodeRef) -> TreeNode:
        """Return the stored state of a node, updating a passed object in place."""
        fresh = self._resolve(node)
        if isinstance(node, TreeNode):
            return node.refresh_from(fresh)
        return fresh

    def parent(self, node: NodeRef) -> Optional[TreeNode]:
        return self.store.get_parent(self._current(node))

    def children(self, node: NodeRef) -> List[TreeNode]:
        return self.store.children_of(self._id_of(node), ordered=self.config.ordered)

    def siblings(self, node: NodeRef) -> List[TreeNode]:
        current = self._current(node)
        return self.store.find(
            NodeFilter(parent_id=current.parent_id, exclude_ids=[current.id]),
            ordered=self.config.ordered,
        )

    def siblings_and_self(self, node: NodeRef) -> List[TreeNode]:
        return self.store.children_of(self._current(node).parent_id, ordered=self.config.ordered)

    def ancestors(self, node: NodeRef) -> List[TreeNode]:
        """Ancestors root first, resolved from the materialized path."""
        return self.store.get_many(self._current(node).ancestor_ids)

    def ancestors_and_self(self, node: NodeRef) -> List[TreeNode]:
        current = self._current(node)
        return self.ancestors(current) + [current]

    def descendants(self, node: NodeRef) -> List[TreeNode]:
        return self.store.descendants_of(self._id_of(node))

    def descendants_and_self(self, node: NodeRef) -> List[TreeNode]:
        current = self._current(node)
        return [current] + self.descendants(current)

    def root(self, node: NodeRef) -> TreeNode:
        current = self._current(node)
        if current.is_root():
            return current
        return self.store.get(current.root_id()) or current

    def roots(self) -> List[TreeNode]:
        return self.store.roots(ordered=self.config.ordered)

    def leaves(self) -> List[TreeNode]:
        """Every node without children, in store order."""
        nodes = self.store.all_nodes()
        parent_ids = {n.parent_id for n in nodes if n.parent_id is not None}
        return [n for n in nodes if n.id not in parent_ids]

    def is_leaf(self, node: NodeRef) -> bool:
        return self.store.count(NodeFilter(parent_id=self._id_of(node))) == 0

    def is_root(self, node: NodeRef) -> bool:
        return self._current(node).is_root()

    def depth(self, node: NodeRef) -> int:
        return self._current(node).depth()

    def has_children(self, node: NodeRef) -> bool:
        """Read the cached count when the counter cache is on, else query."""
        current = self._current(node)
        if self.counter_cache is not None and current.children_count is not None:
            return current.children_count > 0
        return not self.is_leaf(current)

    # Traversal

    def traverse(self, node: NodeRef, kind: Union[TraversalType, str, None] = TraversalType.DEPTH_FIRST,
                 visit: Optional[Visitor] = None) -> List[Any]:
        """Walk the subtree under ``node`` and collect visitor results.

        Raises:
            UsageError: If no visitor is given or the kind is unknown
        """
        self.traversal.prepare(kind, visit)
        return self.traversal.traverse(self._current(node), kind, visit)

    def traverse_all(self, kind: Union[TraversalType, str, None] = None,
                     visit: Optional[Visitor] = None) -> List[Any]:
        """Walk every tree, one root at a time in root order.

        Raises:
            UsageError: If no visitor is given or the kind is unknown
        """
        kind = kind if kind is not None else self.config.default_traversal
        return self.traversal.traverse_all(kind, visit)

    def depth_first(self, node: NodeRef, visit: Optional[Visitor]) -> List[Any]:
        return self.traverse(node, TraversalType.DEPTH_FIRST, visit)

    def breadth_first(self, node: NodeRef, visit: Optional[Visitor]) -> List[Any]:
        return self.traverse(node, TraversalType.BREADTH_FIRST, visit)

    def walk(self, node: NodeRef, kind: Union[TraversalType, str] = TraversalType.DEPTH_FIRST,
             max_depth: Optional[int] = None) -> Iterator[TreeNode]:
        """Lazily yield the nodes of a subtree."""
        traverser = create_traverser(kind, self.store, ordered=self.config.ordered)
        for current, _ in traverser.traverse(self._current(node), max_depth=max_depth):
            yield current

    # Maintenance

    def cascade(self, node: NodeRef) -> int:
        """Re-run the descendant path cascade for a node.

        Returns:
            Number of descendants rewritten (0 when already consistent)
        """
        return self.ancestry.cascade(self._resolve(node))

    def rebuild(self) -> Dict[str, int]:
        """Re-derive every cached attribute from the parent links.

        Repairs paths left stale by an interrupted cascade, renumbers every
        sibling group densely and, with the counter cache on, resets every
        child count.

        Returns:
            Number of repaired records per attribute
        """
        stats = {'paths': 0, 'positions': 0, 'counts': 0}
        nodes = self.store.all_nodes()
        ids = {n.id for n in nodes}

        # Records whose parent is gone are walked as roots of their own subtree
        starts = [n for n in nodes if n.parent_id is None or n.parent_id not in ids]
        for start in starts:
            stats['paths'] += self.ancestry.rebuild(start)

        if self.orderer is not None:
            for parent_id in {n.parent_id for n in nodes}:
                stats['positions'] += self.orderer.normalize(parent_id)

        if self.counter_cache is not None:
            counts: Dict[Any, int] = defaultdict(int)
            for n in nodes:
                if n.parent_id is not None:
                    counts[n.parent_id] += 1
            for n in self.store.all_nodes():
                if n.children_count != counts[n.id]:
                    self.counter_cache.recount(n)
                    stats['counts'] += 1

        logger.info("rebuild repaired %(paths)d paths, %(positions)d positions, %(counts)d counts", stats)
        return stats

    def recount(self, node: NodeRef) -> int:
        if self.counter_cache is None:
            raise UsageError("Counter cache is not enabled for this tree")
        return self.counter_cache.recount(self._resolve(node))

    def verify(self) -> List[str]:
        """Check every structural invariant against the stored records.

        Returns:
            Human-readable descriptions of violations (empty if consistent)
        """
        problems: List[str] = []
        nodes = {n.id: n for n in self.store.all_nodes()}
        groups: Dict[Any, List[TreeNode]] = defaultdict(list)

        for node in nodes.values():
            groups[node.parent_id].append(node)

            if len(set(node.ancestor_ids)) != len(node.ancestor_ids) or node.id in node.ancestor_ids:
                problems.append(f"{node.id!r}: repeated id in ancestor_ids {node.ancestor_ids!r}")

            if node.parent_id is None:
                expected: List[Any] = []
            elif node.parent_id in nodes:
                parent = nodes[node.parent_id]
                expected = list(parent.ancestor_ids) + [parent.id]
            else:
                problems.append(f"{node.id!r}: parent {node.parent_id!r} does not exist")
                continue
            if list(node.ancestor_ids) != expected:
                problems.append(f"{node.id!r}: ancestor_ids {node.ancestor_ids!r}, expected {expected!r}")

        if self.config.ordered:
            for parent_id, members in groups.items():
                positions = sorted(m.position for m in members if m.position is not None)
                if positions != list(range(len(members))):
                    problems.append(f"group {parent_id!r}: positions {positions!r} are not 0..{len(members) - 1}")

        if self.config.counter_cache:
            for node in nodes.values():
                live = len(groups.get(node.id, []))
                if node.children_count != live:
                    problems.append(f"{node.id!r}: children_count {node.children_count!r}, live {live}")

        return problems

    # Internal pipeline callbacks and helpers

    def _reparent(self, node: TreeNode, new_parent_id: Optional[Any]) -> TreeNode:
        fresh = self._resolve(node)
        fresh.parent_id = new_parent_id
        return self.save(fresh)

    def _ordering(self) -> SiblingOrderer:
        if self.orderer is None:
            raise UsageError("Sibling ordering is disabled for this tree (TreeConfig.ordered=False)")
        return self.orderer

    @staticmethod
    def _id_of(node: Optional[NodeRef]) -> Any:
        if isinstance(node, TreeNode):
            return node.id
        return node

    def _resolve(self, node: NodeRef) -> TreeNode:
        """Fresh stored copy of a node; the node must exist."""
        node_id = self._id_of(node)
        fresh = self.store.get(node_id)
        if fresh is None:
            raise NodeNotFoundError(node_id)
        return fresh

    def _current(self, node: NodeRef) -> TreeNode:
        """Stored copy when available, else the unsaved object itself."""
        fresh = self.store.get(self._id_of(node))
        if fresh is not None:
            return fresh
        if isinstance(node, TreeNode):
            return node
        raise NodeNotFoundError(node)

    def _refresh(self, *nodes: NodeRef) -> None:
        for node in nodes:
            if isinstance(node, TreeNode):
                fresh = self.store.get(node.id)
                if fresh is not None:
                    node.refresh_from(fresh)

    def __repr__(self) -> str:
        return f"Tree({self.store!r}, ordered={self.config.ordered}, counter_cache={self.config.counter_cache})"
