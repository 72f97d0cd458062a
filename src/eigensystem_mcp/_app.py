"""FastMCP application instance and lifespan management.

This module exists to break circular imports. Tool modules import ``mcp``
from here; server.py imports tool modules to trigger decorator registration.

Import DAG:
    session.py, errors.py, config.py, logging_config.py  (leaves)
        ^
    _app.py  (this file -- imports session.py)
        ^
    tools/*.py  (import _app.py + leaves)
        ^
    server.py  (imports _app.py + all tool modules)
        ^
    __main__.py
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from mcp.server.fastmcp import FastMCP

from .config import ServerConfig
from .session import SessionState

logger = logging.getLogger(__name__)

config = ServerConfig()


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[SessionState]:
    """Lifespan context manager -- creates and tears down session state."""
    session = SessionState(solver_package=config.solver_package)
    logger.info("Eigensystem MCP session initialized (solver=%s)", config.solver_package)
    try:
        yield session
    finally:
        session.cleanup()
        logger.info("Eigensystem MCP session shut down")


def get_session(ctx: Any) -> SessionState:
    """Return the SessionState carried by a tool call's lifespan context."""
    return ctx.request_context.lifespan_context


mcp = FastMCP(
    "eigensystem-mcp",
    lifespan=app_lifespan,
    host=config.host,
    port=config.port,
)
