"""Exceptions and warnings raised by PathTreeLib.

Validation failures (cycles, unknown parents) are recoverable: they are
raised before anything is written, so the store is left untouched and the
caller can correct the node and save again.
"""

from typing import Any, List, Optional


class PathTreeError(Exception):
    """Base class for all PathTreeLib errors."""
    pass


class TreeValidationError(PathTreeError):
    """A proposed save failed validation on a single field.

    Attributes:
        field: Name of the offending node attribute (e.g. ``parent_id``)
        node_id: Identifier of the node that failed validation
        errors: All validation errors collected for the save
    """

    def __init__(self, message: str, field: str = "parent_id",
                 node_id: Any = None, errors: Optional[List["TreeValidationError"]] = None):
        super().__init__(message)
        self.field = field
        self.node_id = node_id
        self.errors = errors if errors is not None else [self]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(field={self.field!r}, node_id={self.node_id!r})"


class CycleError(TreeValidationError):
    """The proposed parent is the node itself or one of its descendants."""
    pass


class MissingParentError(TreeValidationError):
    """The proposed parent id does not resolve to a stored node."""
    pass


class NodeNotFoundError(PathTreeError, KeyError):
    """A mutation referenced a node id that is not in the store."""

    def __init__(self, node_id: Any):
        super().__init__(node_id)
        self.node_id = node_id

    def __str__(self) -> str:
        return f"Node not found: {self.node_id!r}"


class UsageError(PathTreeError, ValueError):
    """An operation was invoked incorrectly (e.g. traversal without a visitor)."""
    pass


class ConfigurationError(PathTreeError):
    """Raised when a TreeConfig fails validation."""
    pass


class IntegrityWarning(UserWarning):
    """An ancestry cascade stopped partway through a subtree.

    The written part is not rolled back. Paths are re-derived from the live
    parent chain, so the next rearrange of any node in the affected chain
    (or ``Tree.rebuild()``) repairs the remaining descendants.
    """
    pass
