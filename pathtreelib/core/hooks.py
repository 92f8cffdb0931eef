"""Named lifecycle extension points for the mutation pipeline.

Every public mutation on a Tree runs an explicit pipeline and fires these
points in a fixed relative order. Listeners are plain callables; they
receive the node and keyword arguments describing the transition.
"""

import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

BEFORE_VALIDATE = "before_validate"
BEFORE_SAVE = "before_save"
BEFORE_REARRANGE = "before_rearrange"
AFTER_REARRANGE = "after_rearrange"
AFTER_SAVE = "after_save"
BEFORE_DESTROY = "before_destroy"
AFTER_DESTROY = "after_destroy"

HOOK_POINTS = (
    BEFORE_VALIDATE,
    BEFORE_SAVE,
    BEFORE_REARRANGE,
    AFTER_REARRANGE,
    AFTER_SAVE,
    BEFORE_DESTROY,
    AFTER_DESTROY,
)

HookCallback = Callable[..., Any]


class HookRegistry:
    """Registry of listeners per lifecycle point.

    Listeners run in registration order. Exceptions propagate to the caller
    of the mutation: a failing listener aborts the pipeline at that point.
    """

    def __init__(self):
        self._listeners: Dict[str, List[HookCallback]] = defaultdict(list)

    def register(self, point: str, callback: HookCallback) -> HookCallback:
        """Attach a listener to a lifecycle point.

        Args:
            point: One of HOOK_POINTS
            callback: Called as ``callback(node, **context)``

        Returns:
            The callback itself

        Raises:
            ValueError: If the point name is unknown
        """
        if point not in HOOK_POINTS:
            raise ValueError(
                f"Unknown hook point: {point}. Choose from: {', '.join(HOOK_POINTS)}"
            )
        self._listeners[point].append(callback)
        return callback

    def on(self, point: str) -> Callable[[HookCallback], HookCallback]:
        """Decorator form of ``register``."""
        def decorator(callback: HookCallback) -> HookCallback:
            return self.register(point, callback)
        return decorator

    def unregister(self, point: str, callback: HookCallback) -> bool:
        listeners = self._listeners.get(point, [])
        if callback in listeners:
            listeners.remove(callback)
            return True
        return False

    def listeners(self, point: str) -> List[HookCallback]:
        return list(self._listeners.get(point, []))

    def fire(self, point: str, node: Any, **context: Any) -> None:
        """Invoke every listener registered for a point."""
        listeners = self._listeners.get(point)
        if not listeners:
            return
        logger.debug("hook %s for node %r (%d listeners)", point, getattr(node, 'id', node), len(listeners))
        for callback in list(listeners):
            callback(node, **context)
