"""TreeNode record for PathTreeLib.

The TreeNode is intentionally kept simple - it's primarily a data container.
The structural attributes (``ancestor_ids``, ``position``, ``children_count``)
are caches owned by the Tree pipeline; they can always be re-derived from the
parent chain and the sibling set.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(eq=False)
class TreeNode:
    """A single record in a flat tree collection.

    Attributes:
        id: Unique, stable identifier
        parent_id: Identifier of the parent (None for roots)
        ancestor_ids: Materialized path, root first, immediate parent last
        position: Index among siblings (None for unordered trees)
        children_count: Cached number of direct children (None if not cached)
        kind: Optional discriminant used to pick a destroy strategy
        data: Free-form payload (name, title, ...)
    """

    id: Any
    parent_id: Optional[Any] = None
    ancestor_ids: List[Any] = field(default_factory=list)
    position: Optional[int] = None
    children_count: Optional[int] = None
    kind: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)

    def identifier(self) -> Any:
        """Return the unique identifier for this node."""
        return self.id

    @property
    def name(self) -> Optional[str]:
        """Shortcut for ``data['name']``; handy in tests and debugging."""
        return self.data.get('name')

    def is_root(self) -> bool:
        """Check if this node has no parent."""
        return self.parent_id is None

    def depth(self) -> int:
        """Depth in the tree, root = 0.

        Read from the materialized path, no store access needed.
        """
        return len(self.ancestor_ids)

    def root_id(self) -> Any:
        """Identifier of the root of this node's tree."""
        return self.ancestor_ids[0] if self.ancestor_ids else self.id

    def ancestor_ids_and_self(self) -> List[Any]:
        return list(self.ancestor_ids) + [self.id]

    def is_ancestor_of(self, other: 'TreeNode') -> bool:
        return self.id in other.ancestor_ids

    def is_descendant_of(self, other: 'TreeNode') -> bool:
        return other.id in self.ancestor_ids

    def is_sibling_of(self, other: 'TreeNode') -> bool:
        """Check if both nodes share a parent (roots are siblings of roots)."""
        return self.id != other.id and self.parent_id == other.parent_id

    def has_children(self) -> bool:
        """Check the cached child count.

        Only meaningful when the counter cache is enabled; returns False
        when no count has been cached.
        """
        return bool(self.children_count)

    def metadata(self) -> Dict[str, Any]:
        """Return a lightweight description of this node."""
        meta = dict(self.data)
        meta.update({
            'id': self.id,
            'parent_id': self.parent_id,
            'depth': self.depth(),
            'position': self.position,
            'kind': self.kind,
        })
        if self.children_count is not None:
            meta['children_count'] = self.children_count
        return meta

    def copy(self) -> 'TreeNode':
        """Return a detached copy (lists and payload are not shared)."""
        return TreeNode(
            id=self.id,
            parent_id=self.parent_id,
            ancestor_ids=list(self.ancestor_ids),
            position=self.position,
            children_count=self.children_count,
            kind=self.kind,
            data=dict(self.data),
        )

    def refresh_from(self, other: 'TreeNode') -> 'TreeNode':
        """Overwrite this object's attributes with those of a fresher copy.

        Used by the Tree to keep caller-held objects in step with the store.
        """
        self.parent_id = other.parent_id
        self.ancestor_ids = list(other.ancestor_ids)
        self.position = other.position
        self.children_count = other.children_count
        self.kind = other.kind
        self.data = dict(other.data)
        return self

    def __str__(self) -> str:
        """String representation defaults to identifier."""
        return str(self.identifier())

    def __repr__(self) -> str:
        """Detailed representation for debugging."""
        label = f", name={self.name!r}" if self.name is not None else ""
        return (f"{self.__class__.__name__}(id={self.id!r}{label}, "
                f"parent_id={self.parent_id!r}, position={self.position!r})")

    def __eq__(self, other: object) -> bool:
        """Nodes are equal if they have the same identifier."""
        if not isinstance(other, TreeNode):
            return NotImplemented
        return self.identifier() == other.identifier()

    def __hash__(self) -> int:
        """Hash based on identifier for use in sets and dicts."""
        return hash(self.identifier())
