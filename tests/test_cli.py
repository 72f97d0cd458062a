"""Tests for eigensystem_mcp.__main__ -- CLI argument parsing via subprocess.

The __main__.py module has module-level side effects (calls main() on import),
so we test via subprocess to avoid blocking the test runner.
"""

from __future__ import annotations

import subprocess
import sys


def run_cli(*args: str) -> subprocess.CompletedProcess:
    return subprocess.run(
        [sys.executable, "-m", "eigensystem_mcp", *args],
        capture_output=True,
        text=True,
        timeout=10,
    )


class TestCLIHelp:
    """Verify CLI --help output documents all arguments."""

    def test_help_exits_zero(self):
        result = run_cli("--help")
        assert result.returncode == 0
        for flag in ("--transport", "--host", "--port", "--solver", "--log-level"):
            assert flag in result.stdout

    def test_help_shows_choices(self):
        result = run_cli("--help")
        assert "streamable-http" in result.stdout
        assert "slepc" in result.stdout

    def test_help_shows_default_port(self):
        assert "8000" in run_cli("--help").stdout


class TestCLIValidation:
    """Verify CLI rejects invalid arguments."""

    def test_invalid_transport_exits_nonzero(self):
        result = run_cli("--transport", "invalid")
        assert result.returncode != 0
        assert "invalid choice" in result.stderr

    def test_invalid_solver_exits_nonzero(self):
        assert run_cli("--solver", "arpack").returncode != 0

    def test_non_integer_port_exits_nonzero(self):
        assert run_cli("--port", "http").returncode != 0
