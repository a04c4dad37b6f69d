"""Response schemas for the read-only tree view."""

from datetime import datetime

from pydantic import BaseModel, Field

from bonsai.models import Node, NodeKind


class NodeResponse(BaseModel):
    node_id: str
    content: str
    kind: NodeKind
    parent_id: str | None = None
    model: str | None = None
    created_at: datetime
    # Derived at query time from the children's parent_id, never stored.
    children: list[str] = Field(default_factory=list)

    @classmethod
    def from_node(cls, node: Node, children: list[str] | None = None) -> "NodeResponse":
        return cls(
            **node.model_dump(),
            children=children or [],
        )


class TreeResponse(BaseModel):
    current_node_id: str | None = None
    nodes: list[NodeResponse]


class HealthResponse(BaseModel):
    status: str
    version: str
    database: str
