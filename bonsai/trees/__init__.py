"""Tree store: node persistence, traversal, pruning and duplication."""

from bonsai.trees.service import (
    InconsistentTreeError,
    InvalidNodeKindError,
    NodeNotFoundError,
    TreeStore,
)

__all__ = [
    "InconsistentTreeError",
    "InvalidNodeKindError",
    "NodeNotFoundError",
    "TreeStore",
]
