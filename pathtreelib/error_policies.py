"""
Error handling policies for ancestry cascades.

When a store cannot rewrite a whole subtree in one bulk operation, the
cascade falls back to one write per descendant. These policies decide what
happens when one of those writes fails: stop immediately, or skip the
descendant and keep going. Either way the subtree is left partly stale and
an IntegrityWarning is issued; paths are re-derivable, so the next rearrange
of an ancestor (or ``Tree.rebuild()``) converges.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List

logger = logging.getLogger(__name__)


class CascadeErrorPolicy(ABC):
    """
    Base class for cascade error policies.

    Subclasses implement different strategies for handling a failed
    per-descendant write during an ancestry cascade.
    """

    @abstractmethod
    def handle(self, error: Exception, node: Any, operation: str = "cascade") -> None:
        """
        Handle an error raised while writing one descendant.

        Args:
            error: The exception that was raised
            node: The descendant being written when the error occurred
            operation: Name of the pipeline step that failed

        Returns:
            None to continue with the remaining descendants.

        Raises:
            Re-raises (or raises a new exception) to abort the cascade.
        """
        pass

    @staticmethod
    def _record(error: Exception, node: Any, operation: str) -> Dict[str, Any]:
        return {
            'node_id': getattr(node, 'id', node),
            'operation': operation,
            'error': error,
            'error_type': type(error).__name__,
            'error_message': str(error),
        }


class FailFastPolicy(CascadeErrorPolicy):
    """
    Policy that immediately re-raises any error, stopping the cascade.

    This is the default behavior. Descendants not reached keep their old
    paths until the next rearrange.
    """

    def handle(self, error: Exception, node: Any, operation: str = "cascade") -> None:
        """Re-raise the error immediately."""
        raise error


class ContinueOnErrorsPolicy(CascadeErrorPolicy):
    """
    Policy that logs errors and continues with the remaining descendants.

    Errors are collected for later inspection. Useful for very large
    subtrees where one bad record should not block the rest.
    """

    def __init__(self, verbose: bool = True):
        """
        Initialize the policy.

        Args:
            verbose: If True, log a warning for every failed write
        """
        self.errors: List[Dict[str, Any]] = []
        self.skipped_ids: List[Any] = []
        self.verbose = verbose

    def handle(self, error: Exception, node: Any, operation: str = "cascade") -> None:
        record = self._record(error, node, operation)
        self.errors.append(record)
        self.skipped_ids.append(record['node_id'])

        if self.verbose:
            logger.warning("Skipping %s for node %r: %s", operation, record['node_id'], error)

    def get_statistics(self) -> dict:
        """
        Get statistics about errors encountered.

        Returns:
            Dictionary with error counts and details
        """
        return {
            'total_errors': len(self.errors),
            'skipped_nodes': len(self.skipped_ids),
            'errors': self.errors,
        }


class CollectErrorsPolicy(ContinueOnErrorsPolicy):
    """
    Policy that collects all errors without logging, for batch processing.
    """

    def __init__(self):
        super().__init__(verbose=False)


class ThresholdPolicy(CascadeErrorPolicy):
    """
    Policy that tolerates errors up to a threshold, then fails fast.

    Useful when some failures are expected but too many indicate
    a systemic problem with the store.
    """

    def __init__(self, max_errors: int = 10, verbose: bool = True):
        """
        Initialize threshold policy.

        Args:
            max_errors: Maximum errors to tolerate before failing
            verbose: If True, log a warning for every failed write
        """
        self.max_errors = max_errors
        self.error_count = 0
        self.verbose = verbose
        self.errors: List[Exception] = []

    def handle(self, error: Exception, node: Any, operation: str = "cascade") -> None:
        """Handle error if under threshold, otherwise raise."""
        self.error_count += 1
        self.errors.append(error)

        if self.error_count > self.max_errors:
            raise RuntimeError(f"Error threshold exceeded ({self.max_errors} errors)") from error

        if self.verbose:
            logger.warning("[%d/%d] %s failed for node %r: %s",
                           self.error_count, self.max_errors, operation,
                           getattr(node, 'id', node), error)
