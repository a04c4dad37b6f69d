"""Tree store: owns the node table and the current-node pointer.

All traversal goes through single-row lookups and parent_id scans; children
are always derived from the children's own parent_id, never stored.
"""

from datetime import UTC, datetime
from uuid import uuid4

from bonsai.db.connection import Database, StorageFaultError
from bonsai.db.schema import CURRENT_NODE_KEY
from bonsai.models import NODE_KINDS, CreateResult, Node

_NODE_COLUMNS = "node_id, content, kind, parent_id, model, created_at"
_ORDER_BY = "ORDER BY rowid"


class TreeStore:
    """Creation, lookup, traversal and deletion over the node forest."""

    def __init__(self, db: Database) -> None:
        self._db = db

    # -- Creation --

    async def create_root_node(
        self, content: str, model: str | None = None
    ) -> CreateResult:
        """Create a user node with no parent and make it current."""
        node = self._new_node(content, "user", None, model)
        await self._insert(node)
        return await self._finish_create(node)

    async def create_child_node(
        self,
        content: str,
        parent_id: str,
        kind: str,
        model: str | None = None,
    ) -> CreateResult:
        """Create a node under parent_id and make it current.

        Raises InvalidNodeKindError for an unknown kind and NodeNotFoundError
        if the parent does not exist.
        """
        if kind not in NODE_KINDS:
            raise InvalidNodeKindError(kind)
        await self.get_node(parent_id)

        node = self._new_node(content, kind, parent_id, model)
        await self._insert(node)
        return await self._finish_create(node)

    async def create_user_node(
        self, content: str, parent_id: str, model: str | None = None
    ) -> CreateResult:
        return await self.create_child_node(content, parent_id, "user", model)

    async def create_assistant_node(
        self, parent_id: str, content: str, model: str
    ) -> CreateResult:
        """Record a generated response under parent_id."""
        return await self.create_child_node(content, parent_id, "assistant", model)

    async def cherry_pick(self, source_id: str, dest_parent_id: str) -> CreateResult:
        """Copy a node's content, kind and model into a new child of dest_parent_id.

        The source and its subtree are untouched. Picking a node onto itself
        is allowed here; callers that forbid it must check before calling.
        """
        source = await self.get_node(source_id)
        return await self.create_child_node(
            source.content, dest_parent_id, source.kind, source.model
        )

    @staticmethod
    def _new_node(
        content: str, kind: str, parent_id: str | None, model: str | None
    ) -> Node:
        return Node(
            node_id=str(uuid4()),
            content=content,
            kind=kind,
            parent_id=parent_id,
            model=model,
            created_at=datetime.now(UTC),
        )

    async def _insert(self, node: Node) -> None:
        await self._db.execute(
            f"INSERT INTO nodes ({_NODE_COLUMNS}) VALUES (?, ?, ?, ?, ?, ?)",
            (
                node.node_id,
                node.content,
                node.kind,
                node.parent_id,
                node.model,
                node.created_at.isoformat(),
            ),
        )

    async def _finish_create(self, node: Node) -> CreateResult:
        """Point current at the new node. A failure here does not undo the insert."""
        try:
            await self.set_current_node_id(node.node_id)
        except StorageFaultError as e:
            return CreateResult(
                node=node,
                pointer_warning=f"created node but failed to set as current: {e}",
            )
        return CreateResult(node=node)

    # -- Current pointer --

    async def get_current_node_id(self) -> str | None:
        """Return the current node id, or None when unset."""
        row = await self._db.fetchone(
            "SELECT value FROM config WHERE key = ?", (CURRENT_NODE_KEY,)
        )
        if row is None:
            return None
        return row["value"]

    async def set_current_node_id(self, node_id: str) -> None:
        """Overwrite the current pointer. Does not check that node_id exists."""
        await self._db.execute(
            """
            INSERT INTO config (key, value) VALUES (?, ?)
            ON CONFLICT(key) DO UPDATE SET value = excluded.value
            """,
            (CURRENT_NODE_KEY, node_id),
        )

    async def clear_current_node_id(self) -> None:
        """Remove the current pointer. Clearing an unset pointer is a no-op."""
        await self._db.execute(
            "DELETE FROM config WHERE key = ?", (CURRENT_NODE_KEY,)
        )

    async def checkout(self, node_id: str) -> Node:
        """Move the current pointer to an existing node."""
        node = await self.get_node(node_id)
        await self.set_current_node_id(node.node_id)
        return node

    async def get_current_node(self) -> Node | None:
        node_id = await self.get_current_node_id()
        if node_id is None:
            return None
        return await self.get_node(node_id)

    # -- Lookup --

    async def get_node(self, node_id: str) -> Node:
        """Resolve a node by id. Raises NodeNotFoundError if absent."""
        node = await self._find_node(node_id)
        if node is None:
            raise NodeNotFoundError(node_id)
        return node

    async def _find_node(self, node_id: str) -> Node | None:
        row = await self._db.fetchone(
            f"SELECT {_NODE_COLUMNS} FROM nodes WHERE node_id = ?", (node_id,)
        )
        if row is None:
            return None
        return self._node_from_row(row)

    async def list_nodes(self) -> list[Node]:
        """Every node in the store, in display order."""
        rows = await self._db.fetchall(
            f"SELECT {_NODE_COLUMNS} FROM nodes {_ORDER_BY}"
        )
        return [self._node_from_row(row) for row in rows]

    async def list_root_nodes(self) -> list[Node]:
        """Nodes without a parent, in display order."""
        rows = await self._db.fetchall(
            f"SELECT {_NODE_COLUMNS} FROM nodes WHERE parent_id IS NULL {_ORDER_BY}"
        )
        return [self._node_from_row(row) for row in rows]

    async def list_children(self, node_id: str) -> list[Node]:
        """Direct children of node_id. Empty for leaves and unknown ids."""
        rows = await self._db.fetchall(
            f"SELECT {_NODE_COLUMNS} FROM nodes WHERE parent_id = ? {_ORDER_BY}",
            (node_id,),
        )
        return [self._node_from_row(row) for row in rows]

    # -- Traversal --

    async def get_ancestors(self, node_id: str, max_levels: int = 0) -> list[Node]:
        """Walk parent links upward, nearest ancestor first.

        The starting node is not included. max_levels <= 0 walks to the root;
        a positive value caps how many ancestors are returned.

        Raises NodeNotFoundError if the start or any parent is missing, and
        InconsistentTreeError if a node is seen twice.
        """
        current = await self.get_node(node_id)
        ancestors: list[Node] = []
        visited: set[str] = {current.node_id}

        while current.parent_id is not None:
            if max_levels > 0 and len(ancestors) >= max_levels:
                break
            if current.parent_id in visited:
                raise InconsistentTreeError(
                    current.parent_id, "cycle in parent chain"
                )
            visited.add(current.parent_id)
            current = await self.get_node(current.parent_id)
            ancestors.append(current)

        return ancestors

    async def get_conversation_history(self, node_id: str) -> list[Node]:
        """The path from the root down to node_id, inclusive.

        This is the order in which turns are replayed as model context.
        """
        node = await self.get_node(node_id)
        ancestors = await self.get_ancestors(node_id)
        chain = [node, *ancestors]
        chain.reverse()
        return chain

    async def collect_subtree(self, node_id: str) -> list[Node]:
        """node_id and all its descendants, depth-first, parents before children.

        Returns an empty list if node_id does not exist. A visited set keeps
        a corrupted parent graph from looping or yielding a node twice.
        """
        root = await self._find_node(node_id)
        if root is None:
            return []

        collected: list[Node] = []
        visited: set[str] = set()
        stack = [root]

        while stack:
            node = stack.pop()
            if node.node_id in visited:
                continue
            visited.add(node.node_id)
            collected.append(node)
            children = await self.list_children(node.node_id)
            # Reversed so the first child is popped next.
            stack.extend(reversed(children))

        return collected

    # -- Deletion --

    async def prune(self, node_id: str) -> int:
        """Delete node_id and its whole subtree, deepest nodes first.

        Returns the number of rows actually deleted (0 for an unknown id).
        The current pointer is left alone even if it pointed into the subtree.
        """
        subtree = await self.collect_subtree(node_id)
        deleted = 0
        for node in reversed(subtree):
            cursor = await self._db.execute(
                "DELETE FROM nodes WHERE node_id = ?", (node.node_id,)
            )
            deleted += max(cursor.rowcount, 0)
        return deleted

    @staticmethod
    def _node_from_row(row) -> Node:
        """Convert a nodes row to a Node."""
        return Node(
            node_id=row["node_id"],
            content=row["content"],
            kind=row["kind"],
            parent_id=row["parent_id"],
            model=row["model"],
            created_at=row["created_at"],
        )


class NodeNotFoundError(Exception):
    def __init__(self, node_id: str) -> None:
        self.node_id = node_id
        super().__init__(f"Node not found: {node_id}")


class InvalidNodeKindError(ValueError):
    def __init__(self, kind: str) -> None:
        self.kind = kind
        super().__init__(f"Invalid node kind: {kind!r} (must be 'user' or 'assistant')")


class InconsistentTreeError(Exception):
    """A traversal found a cycle or orphan the forest shape rules out."""

    def __init__(self, node_id: str, reason: str) -> None:
        self.node_id = node_id
        self.reason = reason
        super().__init__(f"Inconsistent tree at {node_id}: {reason}")
