"""Session management tools."""

from __future__ import annotations

import logging
from typing import Any

from mcp.server.fastmcp import Context

from .._app import get_session, mcp
from ..errors import handle_tool_errors

logger = logging.getLogger(__name__)


@mcp.tool()
@handle_tool_errors
async def get_session_state(
    ctx: Context = None,
) -> dict[str, Any]:
    """Get the current session state: all eigen systems and their latest solves.

    Returns:
        dict with solver_package (str), systems (dict of system summaries)
        and solve_records (dict of solve summaries).
    """
    session = get_session(ctx)

    if __debug__:
        session.check_invariants()

    return session.overview()


@mcp.tool()
@handle_tool_errors
async def reset_session(
    ctx: Context = None,
) -> dict[str, Any]:
    """Clear all session state: systems, operators and solve records.

    Returns:
        dict with status ("reset") and message (confirmation string).
    """
    session = get_session(ctx)
    session.cleanup()

    if __debug__:
        session.check_invariants()

    return {"status": "reset", "message": "Session state cleared"}
