"""Tree traversal strategies for PathTreeLib.

Traversers implement different algorithms for walking through a stored
tree. Children are fetched from the store at each step in current sibling
order, so there is no snapshot: reordering that happens while a walk is in
progress is visible to the steps that follow.
"""

from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Callable, Deque, Iterator, List, Optional, Set, Tuple, Union

from .node import TreeNode
from .store import TreeStore
from ..config import TraversalType, parse_traversal_type
from ..errors import UsageError

Visitor = Callable[[TreeNode], Any]


class TreeTraverser(ABC):
    """Abstract base class for tree traversal strategies.

    Traversers implement the algorithms for walking through trees in
    different orders (breadth-first, depth-first, etc.). They work purely
    through the store's children query.
    """

    def __init__(self, store: TreeStore, ordered: bool = True):
        """Initialize traverser with a store.

        Args:
            store: TreeStore holding the records
            ordered: Visit children by position (False = insertion order)
        """
        self.store = store
        self.ordered = ordered

    @abstractmethod
    def traverse(self,
                 root: TreeNode,
                 max_depth: Optional[int] = None,
                 min_depth: int = 0) -> Iterator[Tuple[TreeNode, int]]:
        """Traverse the tree starting from root.

        Args:
            root: Starting node for traversal
            max_depth: Maximum depth to traverse (None = unlimited)
            min_depth: Minimum depth before yielding nodes

        Yields:
            Tuples of (node, depth) where depth is relative to root
        """
        pass

    def children(self, node: TreeNode) -> List[TreeNode]:
        return self.store.children_of(node.id, ordered=self.ordered)

    def _should_yield(self, depth: int, min_depth: int, max_depth: Optional[int]) -> bool:
        if depth < min_depth:
            return False
        if max_depth is not None and depth > max_depth:
            return False
        return True

    def _should_explore(self, depth: int, max_depth: Optional[int]) -> bool:
        if max_depth is None:
            return True
        return depth < max_depth


class BreadthFirstTraverser(TreeTraverser):
    """Breadth-first (level-order) traversal strategy.

    Visits all nodes at depth N before visiting nodes at depth N+1.
    """

    def traverse(self,
                 root: TreeNode,
                 max_depth: Optional[int] = None,
                 min_depth: int = 0) -> Iterator[Tuple[TreeNode, int]]:
        # Queue stores (node, depth) tuples
        queue: Deque[Tuple[TreeNode, int]] = deque([(root, 0)])
        visited: Set[Any] = set()

        while queue:
            node, depth = queue.popleft()

            # Skip if already visited (guards against corrupted parent links)
            if node.id in visited:
                continue
            visited.add(node.id)

            if self._should_yield(depth, min_depth, max_depth):
                yield (node, depth)

            if self._should_explore(depth, max_depth):
                for child in self.children(node):
                    queue.append((child, depth + 1))


class DepthFirstPreOrderTraverser(TreeTraverser):
    """Depth-first pre-order traversal strategy.

    Visits parent before children, children in sibling order. Uses an
    explicit stack, so depth is bounded by memory, not the recursion limit.
    """

    def traverse(self,
                 root: TreeNode,
                 max_depth: Optional[int] = None,
                 min_depth: int = 0) -> Iterator[Tuple[TreeNode, int]]:
        visited: Set[Any] = set()
        stack: List[Tuple[TreeNode, int]] = [(root, 0)]

        while stack:
            node, depth = stack.pop()
            if node.id in visited:
                continue
            visited.add(node.id)

            # Yield parent first (pre-order)
            if self._should_yield(depth, min_depth, max_depth):
                yield (node, depth)

            if self._should_explore(depth, max_depth):
                # Reversed so the first sibling is popped first
                for child in reversed(self.children(node)):
                    stack.append((child, depth + 1))


class DepthFirstPostOrderTraverser(TreeTraverser):
    """Depth-first post-order traversal strategy.

    Visits children before parent. Good for bottom-up work such as
    deleting or aggregating a subtree.
    """

    def traverse(self,
                 root: TreeNode,
                 max_depth: Optional[int] = None,
                 min_depth: int = 0) -> Iterator[Tuple[TreeNode, int]]:
        visited: Set[Any] = set()
        # (node, depth, children already pushed)
        stack: List[Tuple[TreeNode, int, bool]] = [(root, 0, False)]

        while stack:
            node, depth, expanded = stack.pop()
            if expanded:
                # Then yield parent (post-order)
                if self._should_yield(depth, min_depth, max_depth):
                    yield (node, depth)
                continue

            if node.id in visited:
                continue
            visited.add(node.id)

            stack.append((node, depth, True))
            if self._should_explore(depth, max_depth):
                for child in reversed(self.children(node)):
                    stack.append((child, depth + 1, False))


_TRAVERSERS = {
    TraversalType.DEPTH_FIRST: DepthFirstPreOrderTraverser,
    TraversalType.BREADTH_FIRST: BreadthFirstTraverser,
    TraversalType.DEPTH_FIRST_POST: DepthFirstPostOrderTraverser,
}


def create_traverser(strategy: Union[TraversalType, str], store: TreeStore,
                     ordered: bool = True) -> TreeTraverser:
    """Create a traverser instance by strategy name.

    Args:
        strategy: TraversalType or name (depth_first, breadth_first, dfs_post, ...)
        store: TreeStore for the tree
        ordered: Visit children by position

    Returns:
        TreeTraverser instance

    Raises:
        UsageError: If strategy name is not recognized
    """
    try:
        kind = parse_traversal_type(strategy)
    except ValueError as error:
        raise UsageError(str(error)) from error
    return _TRAVERSERS[kind](store, ordered=ordered)


class TraversalEngine:
    """Visitor-based walks over a store.

    Every walk returns the list of visitor results. Calling again re-walks
    the current state of the store.
    """

    def __init__(self, store: TreeStore, ordered: bool = True):
        self.store = store
        self.ordered = ordered

    def depth_first(self, node: TreeNode, visit: Optional[Visitor]) -> List[Any]:
        """Pre-order walk: the node, then each child subtree in sibling order."""
        return self.traverse(node, TraversalType.DEPTH_FIRST, visit)

    def breadth_first(self, node: TreeNode, visit: Optional[Visitor]) -> List[Any]:
        """Level-order walk starting at ``node``."""
        return self.traverse(node, TraversalType.BREADTH_FIRST, visit)

    def traverse(self, node: TreeNode, kind: Union[TraversalType, str, None],
                 visit: Optional[Visitor]) -> List[Any]:
        """Walk one subtree with the given traversal kind.

        Raises:
            UsageError: If no visitor is given or the kind is unknown
        """
        traverser = self.prepare(kind, visit)
        return [visit(current) for current, _ in traverser.traverse(node)]

    def traverse_all(self, kind: Union[TraversalType, str, None],
                     visit: Optional[Visitor]) -> List[Any]:
        """Walk every tree in the collection, one root at a time in root order.

        Raises:
            UsageError: If no visitor is given or the kind is unknown
        """
        traverser = self.prepare(kind, visit)
        results: List[Any] = []
        for root in self.store.roots(ordered=self.ordered):
            results.extend(visit(current) for current, _ in traverser.traverse(root))
        return results

    def prepare(self, kind: Union[TraversalType, str, None], visit: Optional[Visitor]) -> TreeTraverser:
        if visit is None:
            raise UsageError("No visitor given; pass a callable that receives each node")
        if not callable(visit):
            raise UsageError(f"Visitor must be callable, got {type(visit).__name__}")
        if kind is None:
            raise UsageError("No traversal kind given")
        return create_traverser(kind, self.store, ordered=self.ordered)
