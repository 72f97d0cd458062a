"""Shared test fixtures and factory helpers for eigensystem MCP tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import numpy as np
import pytest

from eigensystem_mcp.config import EigenSolverSettings
from eigensystem_mcp.eigen_solver import EigenSolver
from eigensystem_mcp.eigen_system import EigenSystem
from eigensystem_mcp.enums import SolverPackage
from eigensystem_mcp.session import SessionState, SolveRecord

# ---------------------------------------------------------------------------
# Fake solver collaborator
# ---------------------------------------------------------------------------


class FakeEigenSolver(EigenSolver):
    """Solver stub reporting fixed results and recording the operators it saw."""

    package = SolverPackage.SCIPY

    def __init__(self, eigenvalues=(1.0, 2.0, 3.0), n_iterations=42, **kwargs):
        super().__init__(**kwargs)
        self.fixed_eigenvalues = np.asarray(eigenvalues, dtype=complex)
        self.fixed_iterations = n_iterations
        self.calls: list[dict] = []

    def _solve(self, matrix_A, matrix_B, precond, settings):
        self.calls.append(
            {"A": matrix_A, "B": matrix_B, "precond": precond, "settings": settings}
        )
        n = matrix_A.shape[0]
        k = len(self.fixed_eigenvalues)
        self._eigenvalues = self.fixed_eigenvalues.copy()
        vectors = np.zeros((n, k), dtype=complex)
        for i in range(k):
            vectors[i % n, i] = i + 1.0
        self._eigenvectors = vectors
        return k, self.fixed_iterations


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------


def make_settings(**kwargs) -> EigenSolverSettings:
    defaults = {
        "n_eigenpairs": 3,
        "n_basis_vectors": 12,
        "tolerance": 1e-10,
        "max_iterations": 1000,
    }
    defaults.update(kwargs)
    return EigenSolverSettings(**defaults)


def make_system(name="eig", n_dofs=10, solver=None, init=True, **kwargs) -> EigenSystem:
    """Create an EigenSystem with a FakeEigenSolver unless one is given."""
    kwargs.setdefault("settings", make_settings())
    system = EigenSystem(
        name,
        n_dofs=n_dofs,
        eigen_solver=solver if solver is not None else FakeEigenSolver(),
        **kwargs,
    )
    if init:
        system.init()
    return system


def make_solve_record(system_name="eig", **kwargs) -> SolveRecord:
    defaults = {
        "system_name": system_name,
        "problem_type": "NHEP",
        "n_converged": 3,
        "n_iterations": 42,
        "wall_time": 0.01,
    }
    defaults.update(kwargs)
    return SolveRecord(**defaults)


# ---------------------------------------------------------------------------
# Session and context helpers
# ---------------------------------------------------------------------------


def make_mock_ctx(session: SessionState):
    """Create a mock MCP Context wired to the given session."""
    ctx = MagicMock()
    ctx.request_context.lifespan_context = session
    return ctx


def make_session_with_system(name="eig", **kwargs) -> SessionState:
    s = SessionState()
    s.register_system(make_system(name, **kwargs))
    return s


# ---------------------------------------------------------------------------
# Assertion helpers
# ---------------------------------------------------------------------------


def assert_no_error(result: dict) -> None:
    """Assert tool result has no error."""
    assert "error" not in result, f"Tool returned error: {result}"


def assert_error_type(result: dict, expected: str) -> None:
    """Assert tool result has specific error type."""
    assert "error" in result, f"Expected error but got: {result}"
    assert result["error"] == expected, (
        f"Expected error '{expected}' but got '{result['error']}'"
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def session() -> SessionState:
    """Fresh session state for each test."""
    return SessionState()


@pytest.fixture
def mock_ctx(session: SessionState):
    """Mock MCP Context wired to the given session."""
    return make_mock_ctx(session)


@pytest.fixture
def fake_solver() -> FakeEigenSolver:
    return FakeEigenSolver()


@pytest.fixture
def eigen_system(fake_solver: FakeEigenSolver) -> EigenSystem:
    """Initialized 10-dof standard system wired to a FakeEigenSolver."""
    return make_system(solver=fake_solver)
