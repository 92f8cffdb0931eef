"""Store adapters for PathTreeLib.

Adapters implement the TreeStore contract over a concrete backend.
"""

from .memory import InMemoryTreeStore
from .sqlite import SQLiteTreeStore

__all__ = ['InMemoryTreeStore', 'SQLiteTreeStore']
