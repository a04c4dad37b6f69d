"""Canonical data structures for Bonsai.

Defined once here, referenced everywhere else. A Node is one conversational
turn; the forest shape comes entirely from each node's parent_id.
"""

from datetime import datetime
from typing import Literal, get_args

from pydantic import BaseModel, ConfigDict

NodeKind = Literal["user", "assistant"]

NODE_KINDS: frozenset[str] = frozenset(get_args(NodeKind))


class Node(BaseModel):
    """Snapshot of a persisted node. Nodes never change after creation."""

    model_config = ConfigDict(frozen=True)

    node_id: str
    content: str
    kind: NodeKind
    parent_id: str | None = None
    model: str | None = None
    created_at: datetime

    @property
    def is_root(self) -> bool:
        return self.parent_id is None


class CreateResult(BaseModel):
    """Outcome of a create operation.

    The node is always persisted. pointer_warning is set when the follow-up
    current-node update failed; callers can retry just that step with
    TreeStore.set_current_node_id(result.node.node_id).
    """

    node: Node
    pointer_warning: str | None = None

    @property
    def pointer_updated(self) -> bool:
        return self.pointer_warning is None
