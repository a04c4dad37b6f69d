"""Database schema DDL. All tables use CREATE IF NOT EXISTS for idempotency."""

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS nodes (
    node_id TEXT PRIMARY KEY,
    content TEXT NOT NULL,
    kind TEXT NOT NULL CHECK (kind IN ('user', 'assistant')),
    parent_id TEXT,
    model TEXT,
    created_at TEXT NOT NULL,
    FOREIGN KEY (parent_id) REFERENCES nodes(node_id)
);

CREATE INDEX IF NOT EXISTS idx_nodes_parent_id ON nodes(parent_id);

CREATE TABLE IF NOT EXISTS config (
    key TEXT PRIMARY KEY,
    value TEXT
);
"""

CURRENT_NODE_KEY = "current_node"
