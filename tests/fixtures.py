"""Shared test helpers for building node forests."""

from bonsai.models import Node
from bonsai.trees.service import TreeStore


async def create_chain(store: TreeStore, n_messages: int = 4) -> list[Node]:
    """Create one root plus alternating user/assistant turns below it.

    Returns the nodes in creation order (root first).
    """
    root = (await store.create_root_node("Message 1")).node
    nodes = [root]
    for i in range(1, n_messages):
        kind = "user" if i % 2 == 0 else "assistant"
        model = "test-model" if kind == "assistant" else None
        result = await store.create_child_node(
            f"Message {i + 1}", nodes[-1].node_id, kind, model
        )
        nodes.append(result.node)
    return nodes


async def create_branching_tree(store: TreeStore) -> dict[str, Node]:
    """Create root -> A -> {B, C}, with B -> D.

    B and C are siblings (both children of A).
    """
    root = (await store.create_root_node("Root message")).node
    a = (await store.create_assistant_node(root.node_id, "Message A", "m1")).node
    b = (await store.create_user_node("Message B (branch 1)", a.node_id)).node
    c = (await store.create_user_node("Message C (branch 2)", a.node_id)).node
    d = (await store.create_assistant_node(b.node_id, "Message D", "m2")).node
    return {"root": root, "A": a, "B": b, "C": c, "D": d}


async def make_cycle(store: TreeStore, first_id: str, second_id: str) -> None:
    """Corrupt the store by pointing first_id's parent at second_id."""
    await store._db.execute(
        "UPDATE nodes SET parent_id = ? WHERE node_id = ?",
        (second_id, first_id),
    )
