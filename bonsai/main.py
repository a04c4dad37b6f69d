"""Bonsai FastAPI application entry point (read-only tree view)."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path

from dotenv import load_dotenv
from fastapi import FastAPI, Request

from bonsai import __version__
from bonsai.config import get_database_path
from bonsai.db.connection import Database
from bonsai.trees.router import get_tree_store
from bonsai.trees.router import router as tree_router
from bonsai.trees.schemas import HealthResponse
from bonsai.trees.service import TreeStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Open the database once, wire the store, close on shutdown."""
    load_dotenv(Path(__file__).resolve().parent.parent / ".env")

    db_path = get_database_path()
    db = await Database.connect(db_path)
    logger.info("Opened bonsai database at %s", db_path)

    store = TreeStore(db)
    app.dependency_overrides[get_tree_store] = lambda: store
    app.state.db = db
    try:
        yield
    finally:
        app.dependency_overrides.pop(get_tree_store, None)
        await db.close()


app = FastAPI(
    title="Bonsai",
    description="Read-only view of branching LLM conversation trees",
    version=__version__,
    lifespan=lifespan,
)

app.include_router(tree_router)


@app.get("/api/health")
async def health(request: Request) -> HealthResponse:
    db = getattr(request.app.state, "db", None)
    return HealthResponse(
        status="ok",
        version=__version__,
        database=db.path if db is not None else "",
    )
