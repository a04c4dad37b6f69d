"""FastAPI routes for the read-only tree view."""

import logging
from collections import defaultdict

from fastapi import APIRouter, Depends, HTTPException

from bonsai.db.connection import StorageFaultError
from bonsai.trees.schemas import NodeResponse, TreeResponse
from bonsai.trees.service import InconsistentTreeError, NodeNotFoundError, TreeStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["tree"])


def get_tree_store() -> TreeStore:
    """Dependency placeholder — replaced at app startup."""
    raise RuntimeError("TreeStore not initialized")


def _storage_unavailable(e: StorageFaultError) -> HTTPException:
    logger.error("Storage fault while serving tree view: %s", e)
    return HTTPException(status_code=503, detail="Storage unavailable")


@router.get("/tree")
async def get_tree(
    store: TreeStore = Depends(get_tree_store),
) -> TreeResponse:
    try:
        nodes = await store.list_nodes()
        current_node_id = await store.get_current_node_id()
    except StorageFaultError as e:
        raise _storage_unavailable(e)

    children_of: dict[str, list[str]] = defaultdict(list)
    for node in nodes:
        if node.parent_id is not None:
            children_of[node.parent_id].append(node.node_id)

    if current_node_id is not None and current_node_id not in {n.node_id for n in nodes}:
        logger.warning("Current node points at a missing node: %s", current_node_id)
        current_node_id = None

    return TreeResponse(
        current_node_id=current_node_id,
        nodes=[NodeResponse.from_node(n, children_of.get(n.node_id)) for n in nodes],
    )


@router.get("/current")
async def get_current(
    store: TreeStore = Depends(get_tree_store),
) -> NodeResponse | None:
    try:
        node = await store.get_current_node()
    except NodeNotFoundError as e:
        logger.warning("Current node points at a missing node: %s", e.node_id)
        return None
    except StorageFaultError as e:
        raise _storage_unavailable(e)
    if node is None:
        return None
    return NodeResponse.from_node(node)


@router.get("/nodes/{node_id}")
async def get_node(
    node_id: str,
    store: TreeStore = Depends(get_tree_store),
) -> NodeResponse:
    try:
        node = await store.get_node(node_id)
        children = await store.list_children(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except StorageFaultError as e:
        raise _storage_unavailable(e)
    return NodeResponse.from_node(node, [c.node_id for c in children])


@router.get("/nodes/{node_id}/children")
async def get_children(
    node_id: str,
    store: TreeStore = Depends(get_tree_store),
) -> list[NodeResponse]:
    try:
        await store.get_node(node_id)
        children = await store.list_children(node_id)
    except NodeNotFoundError:
        raise HTTPException(status_code=404, detail=f"Node not found: {node_id}")
    except StorageFaultError as e:
        raise _storage_unavailable(e)
    return [NodeResponse.from_node(c) for c in children]


@router.get("/nodes/{node_id}/history")
async def get_history(
    node_id: str,
    store: TreeStore = Depends(get_tree_store),
) -> list[NodeResponse]:
    try:
        history = await store.get_conversation_history(node_id)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Node not found: {e.node_id}")
    except InconsistentTreeError as e:
        logger.warning("Corrupt parent chain under %s: %s", node_id, e)
        raise HTTPException(status_code=409, detail=str(e))
    except StorageFaultError as e:
        raise _storage_unavailable(e)
    return [NodeResponse.from_node(n) for n in history]
