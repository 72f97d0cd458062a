"""Configuration for eigensolves and the MCP server."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from .enums import SolverPackage

_VALID_TRANSPORTS = frozenset({"stdio", "streamable-http", "sse"})


@dataclass
class EigenSolverSettings:
    """Parameters handed to the eigensolver on every solve.

    Reads defaults from environment variables where available.

    Attributes:
        n_eigenpairs: Number of eigenpairs requested (nev).
        n_basis_vectors: Dimension of the search subspace (ncv).
        tolerance: Convergence tolerance on the relative residual.
        max_iterations: Upper bound on solver iterations / restarts.
    """

    n_eigenpairs: int = field(
        default_factory=lambda: int(os.environ.get("EIGENSYS_NEV", "5")),
    )
    n_basis_vectors: int = field(
        default_factory=lambda: int(os.environ.get("EIGENSYS_NCV", "15")),
    )
    tolerance: float = field(
        default_factory=lambda: float(os.environ.get("EIGENSYS_TOL", "1e-10")),
    )
    max_iterations: int = field(
        default_factory=lambda: int(os.environ.get("EIGENSYS_MAXITS", "1000")),
    )

    def __post_init__(self) -> None:
        if self.n_eigenpairs <= 0:
            raise ValueError(f"n_eigenpairs must be > 0, got {self.n_eigenpairs}")
        if self.n_basis_vectors < self.n_eigenpairs:
            msg = (
                f"n_basis_vectors ({self.n_basis_vectors}) must be >= "
                f"n_eigenpairs ({self.n_eigenpairs})"
            )
            raise ValueError(msg)
        if not self.tolerance > 0.0:
            raise ValueError(f"tolerance must be positive, got {self.tolerance}")
        if self.max_iterations <= 0:
            raise ValueError(f"max_iterations must be > 0, got {self.max_iterations}")


@dataclass
class ServerConfig:
    """Runtime configuration of the MCP server, read from ``EIGENSYS_MCP_*``."""

    transport: str = field(
        default_factory=lambda: os.environ.get("EIGENSYS_MCP_TRANSPORT", "stdio"),
    )
    host: str = field(
        default_factory=lambda: os.environ.get("EIGENSYS_MCP_HOST", "127.0.0.1"),
    )
    port: int = field(
        default_factory=lambda: int(os.environ.get("EIGENSYS_MCP_PORT", "8000")),
    )
    solver_package: str = field(
        default_factory=lambda: os.environ.get("EIGENSYS_MCP_SOLVER", "scipy"),
    )

    def __post_init__(self) -> None:
        if self.transport not in _VALID_TRANSPORTS:
            msg = (
                f"Invalid transport {self.transport!r}. "
                f"Must be one of: {', '.join(sorted(_VALID_TRANSPORTS))}"
            )
            raise ValueError(msg)
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be in 1..65535, got {self.port}")
        valid_packages = {p.value for p in SolverPackage}
        if self.solver_package not in valid_packages:
            msg = (
                f"Invalid solver package {self.solver_package!r}. "
                f"Must be one of: {', '.join(sorted(valid_packages))}"
            )
            raise ValueError(msg)
