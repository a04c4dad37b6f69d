"""Environment-driven settings."""

import os
from pathlib import Path

DB_PATH_ENV = "BONSAI_DB_PATH"
DEFAULT_DB_PATH = Path.home() / ".bonsai" / "bonsai.db"


def get_database_path() -> str:
    """Database file location: $BONSAI_DB_PATH, else ~/.bonsai/bonsai.db."""
    configured = os.environ.get(DB_PATH_ENV)
    if configured:
        return str(Path(configured).expanduser())
    return str(DEFAULT_DB_PATH)
