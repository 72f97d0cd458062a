"""Eigensystem MCP server entry point.

Configures logging, imports all tool/prompt/resource modules to trigger
decorator registration, then starts the MCP transport (stdio or HTTP).
"""

from __future__ import annotations

import os

from .logging_config import configure_logging

# Configure logging BEFORE any other imports that might log
configure_logging(os.environ.get("EIGENSYS_MCP_LOG_LEVEL", "INFO"))

from ._app import config, mcp  # noqa: E402
from .prompts import templates  # noqa: E402, F401
from .resources import providers  # noqa: E402, F401
from .tools import (  # noqa: E402, F401
    session_mgmt,
    solver,
    systems,
)


def main() -> None:
    """Start the eigensystem MCP server."""
    mcp.run(transport=config.transport)  # type: ignore[arg-type]
