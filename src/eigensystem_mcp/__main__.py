"""Entry point for ``python -m eigensystem_mcp``.

Parses CLI arguments and sets environment variables *before* importing the
server module so that ``_app.py`` reads them at FastMCP construction time.
"""

from __future__ import annotations

import argparse
import os


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Eigensystem MCP Server")
    parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http", "sse"],
        default="stdio",
        help="MCP transport protocol (default: stdio)",
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Bind host for HTTP transports (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Bind port for HTTP transports (default: 8000)",
    )
    parser.add_argument(
        "--solver",
        choices=["scipy", "slepc"],
        default="scipy",
        help="Eigensolver backend for new systems (default: scipy)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level, written to stderr (default: INFO)",
    )
    return parser.parse_args()


args = _parse_args()
os.environ["EIGENSYS_MCP_TRANSPORT"] = args.transport
os.environ["EIGENSYS_MCP_HOST"] = args.host
os.environ["EIGENSYS_MCP_PORT"] = str(args.port)
os.environ["EIGENSYS_MCP_SOLVER"] = args.solver
os.environ["EIGENSYS_MCP_LOG_LEVEL"] = args.log_level

from eigensystem_mcp.server import main  # noqa: E402

main()
