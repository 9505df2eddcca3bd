"""
Table editor FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend import db
from backend.config import settings
from backend.routes import tables as table_routes
from backend.routes import workspaces as workspace_routes

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    - Initialize database pool on startup
    - Close database pool on shutdown
    """
    await db.init_pool()
    logger.info("Database pool initialized (environment=%s)", settings.ENVIRONMENT)

    yield

    await db.close_pool()
    logger.info("Database pool closed")


app = FastAPI(
    title="Table Editor",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(workspace_routes.router)
app.include_router(table_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {"status": "ok"}
