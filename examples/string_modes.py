#!/usr/bin/env python3
"""Eigensystem MCP Server -- vibrating-string walkthrough over stdio.

Starts ``python -m eigensystem_mcp`` as a subprocess, drives it through the
MCP JSON-RPC stdio protocol and checks the computed modes of
``-u'' = lambda u`` on (0, 1) against the exact values ``(k pi)^2``.

Usage:
    pip install -e .
    python examples/string_modes.py [--n-dofs 200] [--modes 4] [--verbose]

Exit codes:
    0 - All checks passed
    1 - One or more checks failed
    2 - Infrastructure failure (server start, connection)
"""

from __future__ import annotations

import argparse
import asyncio
import json
import math
import sys
from dataclasses import dataclass, field
from typing import Any

from mcp import ClientSession, StdioServerParameters
from mcp.client.stdio import stdio_client
from mcp.types import TextContent


@dataclass
class CheckReport:
    """Named pass/fail checks collected during the walkthrough."""

    passed: list[str] = field(default_factory=list)
    failed: list[str] = field(default_factory=list)

    def check(self, condition: bool, label: str) -> None:
        (self.passed if condition else self.failed).append(label)


class StringModesWalkthrough:
    def __init__(self, *, n_dofs: int, modes: int, verbose: bool = False) -> None:
        self.n_dofs = n_dofs
        self.modes = modes
        self.verbose = verbose
        self.report = CheckReport()
        self.session: ClientSession | None = None

    async def _call_tool(self, name: str, args: dict[str, Any]) -> dict[str, Any]:
        """Call MCP tool via JSON-RPC and return the parsed dict response."""
        result = await self.session.call_tool(name, args)
        for item in result.content:
            if isinstance(item, TextContent) and item.text.strip():
                data = json.loads(item.text)
                if isinstance(data, dict):
                    if self.verbose:
                        print(f"  {name}: {data}")
                    return data
        return {}

    async def walkthrough(self) -> None:
        tools = await self.session.list_tools()
        names = {t.name for t in tools.tools}
        self.report.check("solve_eigen_system" in names, "solve_eigen_system is registered")

        created = await self._call_tool("create_eigen_system", {
            "name": "string",
            "n_dofs": self.n_dofs,
            "assembler": "stiffness_mass",
            "n_eigenpairs": self.modes,
            "which": "target_magnitude",
            "target": 0.0,
        })
        self.report.check(created.get("problem_type") == "GHEP", "stiffness_mass defaults to GHEP")
        self.report.check(created.get("n_matrices") == 2, "generalized system holds A and B")

        solved = await self._call_tool("solve_eigen_system", {"system": "string"})
        nconv = solved.get("n_converged", 0)
        self.report.check(nconv >= self.modes, f"{self.modes} modes converged (got {nconv})")

        for ev in solved.get("eigenvalues", [])[: self.modes]:
            k = ev["index"] + 1
            exact = (k * math.pi) ** 2
            rel = abs(ev["real"] - exact) / exact
            self.report.check(rel < 1e-2, f"mode {k}: {ev['real']:.4f} vs {exact:.4f}")

        pair = await self._call_tool("get_eigenpair", {"system": "string", "index": 0})
        self.report.check(pair.get("solution_norm", 0.0) > 0.0, "eigenvector loaded into solution")

        beyond = await self._call_tool("get_eigenpair", {"system": "string", "index": nconv})
        self.report.check(beyond.get("error") == "INDEX_OUT_OF_RANGE", "index n_converged rejected")

        await self._call_tool("reset_session", {})

    async def run(self) -> int:
        """Run the walkthrough. Returns exit code (0=pass, 1=fail, 2=infra)."""
        server_params = StdioServerParameters(
            command=sys.executable,
            args=["-m", "eigensystem_mcp", "--log-level", "WARNING"],
        )
        try:
            async with stdio_client(server_params) as (read, write):
                async with ClientSession(read, write) as session:
                    await session.initialize()
                    self.session = session
                    await self.walkthrough()
        except Exception as exc:
            print(f"\nINFRASTRUCTURE FAILURE: {exc}", file=sys.stderr)
            return 2

        for label in self.report.passed:
            print(f"  [PASS] {label}")
        for label in self.report.failed:
            print(f"  [FAIL] {label}")
        return 1 if self.report.failed else 0


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Eigensystem MCP Server -- vibrating-string walkthrough",
    )
    parser.add_argument("--n-dofs", type=int, default=200)
    parser.add_argument("--modes", type=int, default=4)
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    walkthrough = StringModesWalkthrough(
        n_dofs=args.n_dofs, modes=args.modes, verbose=args.verbose,
    )
    sys.exit(asyncio.run(walkthrough.run()))


if __name__ == "__main__":
    main()
