"""Configuration system for PathTreeLib.

This module defines how users describe the behaviour of a tree collection:
whether siblings are ordered, whether child counts are cached, and what
happens to the descendants of a destroyed node.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Any, Dict, List, Union


class DestroyStrategy(Enum):
    """What happens to the descendants of a destroyed node.

    Chosen per node kind at configuration time.
    """
    NULLIFY = "nullify"                                   # Children become roots
    REPARENT_TO_GRANDPARENT = "reparent_to_grandparent"   # Children move up one level
    RECURSIVE_DESTROY = "recursive_destroy"               # Destroy each child with its own strategy
    BULK_DELETE_DESCENDANTS = "bulk_delete_descendants"   # One bulk delete, no hooks


class TraversalType(Enum):
    """How to walk a tree."""
    DEPTH_FIRST = "depth_first"       # Parent, then each child subtree in order
    BREADTH_FIRST = "breadth_first"   # Level by level
    DEPTH_FIRST_POST = "depth_first_post"  # Children before parent


@dataclass
class TreeConfig:
    """Complete configuration for a tree collection.

    The Tree validates this configuration on construction and refuses to
    start with an inconsistent one.
    """

    # Sibling ordering (positions 0..k-1 within each sibling group)
    ordered: bool = True

    # Denormalized children_count on each node
    counter_cache: bool = False

    # Destroy behaviour
    destroy_strategy: DestroyStrategy = DestroyStrategy.NULLIFY
    destroy_strategies: Dict[str, DestroyStrategy] = field(default_factory=dict)

    # Ancestry cascade
    bulk_cascade: bool = True  # Use the store's bulk transform when it has one
    cascade_error_policy: Optional[Any] = None  # CascadeErrorPolicy, fail fast if None

    # Traversal
    default_traversal: TraversalType = TraversalType.DEPTH_FIRST

    def __post_init__(self):
        self.destroy_strategy = parse_destroy_strategy(self.destroy_strategy)
        self.destroy_strategies = {
            kind: parse_destroy_strategy(strategy)
            for kind, strategy in self.destroy_strategies.items()
        }
        self.default_traversal = parse_traversal_type(self.default_traversal)

    def strategy_for(self, kind: Optional[str]) -> DestroyStrategy:
        """Return the destroy strategy configured for a node kind.

        Args:
            kind: Node kind (None for untyped nodes)

        Returns:
            The kind's strategy, or the default strategy
        """
        if kind is not None and kind in self.destroy_strategies:
            return self.destroy_strategies[kind]
        return self.destroy_strategy

    # Convenience constructors for common configurations

    @classmethod
    def unordered(cls, **kwargs) -> 'TreeConfig':
        """Create config for trees whose children have no explicit order."""
        return cls(ordered=False, **kwargs)

    @classmethod
    def with_counter_cache(cls, **kwargs) -> 'TreeConfig':
        """Create config that maintains children_count on every node."""
        return cls(counter_cache=True, **kwargs)

    def validate(self) -> List[str]:
        """Validate configuration for consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors = []

        if not isinstance(self.destroy_strategy, DestroyStrategy):
            errors.append(f"invalid destroy_strategy: {self.destroy_strategy!r}")

        for kind, strategy in self.destroy_strategies.items():
            if not isinstance(kind, str) or not kind:
                errors.append(f"destroy_strategies keys must be non-empty strings, got {kind!r}")
            if not isinstance(strategy, DestroyStrategy):
                errors.append(f"invalid destroy strategy for kind {kind!r}: {strategy!r}")

        if self.cascade_error_policy is not None and not hasattr(self.cascade_error_policy, 'handle'):
            errors.append("cascade_error_policy must provide a handle(error, node) method")

        return errors


# Helper functions

def parse_destroy_strategy(strategy: Union[DestroyStrategy, str]) -> DestroyStrategy:
    """Parse a destroy strategy from string or enum.

    Accepts the enum value, the enum name in any case, and the short
    aliases used by other tree libraries (``move_children_to_parent`` etc).

    Raises:
        ValueError: If the name is not recognized
    """
    if isinstance(strategy, DestroyStrategy):
        return strategy

    strategy_map = {
        'nullify': DestroyStrategy.NULLIFY,
        'nullify_children': DestroyStrategy.NULLIFY,
        'reparent_to_grandparent': DestroyStrategy.REPARENT_TO_GRANDPARENT,
        'move_children_to_parent': DestroyStrategy.REPARENT_TO_GRANDPARENT,
        'recursive_destroy': DestroyStrategy.RECURSIVE_DESTROY,
        'destroy_children': DestroyStrategy.RECURSIVE_DESTROY,
        'bulk_delete_descendants': DestroyStrategy.BULK_DELETE_DESCENDANTS,
        'delete_descendants': DestroyStrategy.BULK_DELETE_DESCENDANTS,
    }

    strategy_lower = strategy.lower() if isinstance(strategy, str) else str(strategy)
    if strategy_lower in strategy_map:
        return strategy_map[strategy_lower]

    raise ValueError(
        f"Unknown destroy strategy: {strategy}. "
        f"Choose from: {', '.join(strategy_map.keys())}"
    )


def parse_traversal_type(kind: Union[TraversalType, str]) -> TraversalType:
    """Parse a traversal type from string or enum.

    Raises:
        ValueError: If the name is not recognized
    """
    if isinstance(kind, TraversalType):
        return kind

    kind_map = {
        'dfs': TraversalType.DEPTH_FIRST,
        'dfs_pre': TraversalType.DEPTH_FIRST,
        'depth_first': TraversalType.DEPTH_FIRST,
        'bfs': TraversalType.BREADTH_FIRST,
        'breadth_first': TraversalType.BREADTH_FIRST,
        'dfs_post': TraversalType.DEPTH_FIRST_POST,
        'depth_first_post': TraversalType.DEPTH_FIRST_POST,
    }

    kind_lower = kind.lower() if isinstance(kind, str) else str(kind)
    if kind_lower in kind_map:
        return kind_map[kind_lower]

    raise ValueError(f"Unknown traversal type: {kind}")
