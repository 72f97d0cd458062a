"""Session state management for the eigensystem MCP server.

Holds named eigen systems and the record of their latest solves. Provides
typed accessors with clear error messages and cascade deletion when a
system is removed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from .eigen_system import EigenSystem
from .errors import (
    DuplicateNameError,
    InvariantError,
    PostconditionError,
    PreconditionError,
    SystemNotFoundError,
)

logger = logging.getLogger(__name__)


@dataclass
class SolveRecord:
    system_name: str
    problem_type: str
    n_converged: int
    n_iterations: int
    wall_time: float
    eigenvalues: list[dict[str, float]] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.system_name:
            raise InvariantError("SolveRecord.system_name must be non-empty")
        if self.n_converged < 0:
            raise InvariantError(f"n_converged must be >= 0, got {self.n_converged}")
        if self.n_iterations < 0:
            raise InvariantError(f"n_iterations must be >= 0, got {self.n_iterations}")
        if self.wall_time < 0.0:
            raise InvariantError(f"wall_time must be >= 0, got {self.wall_time}")
        if len(self.eigenvalues) > self.n_converged:
            raise InvariantError(
                f"{len(self.eigenvalues)} eigenvalues recorded but only "
                f"{self.n_converged} converged"
            )

    def summary(self) -> dict[str, Any]:
        return {
            "system_name": self.system_name,
            "problem_type": self.problem_type,
            "n_converged": self.n_converged,
            "n_iterations": self.n_iterations,
            "wall_time": self.wall_time,
            "eigenvalues": self.eigenvalues,
        }


class SessionState:
    """Central registry of eigen systems in the current MCP session."""

    def __init__(self, solver_package: str = "scipy") -> None:
        self.solver_package = solver_package
        self.systems: dict[str, EigenSystem] = {}
        self.solve_records: dict[str, SolveRecord] = {}

    # --- Invariant verification ---

    def check_invariants(self) -> None:
        """Verify registry keys match names and records point at live systems."""
        for key, system in self.systems.items():
            if system.name != key:
                raise InvariantError(f"System registered as '{key}' is named '{system.name}'")
        dangling = set(self.solve_records) - set(self.systems)
        if dangling:
            raise InvariantError(f"Solve records for unknown systems: {sorted(dangling)}")
        for key, record in self.solve_records.items():
            if record.system_name != key:
                raise InvariantError(
                    f"Solve record '{key}' refers to system '{record.system_name}'"
                )

    # --- Accessors ---

    def get_system(self, name: str) -> EigenSystem:
        if name not in self.systems:
            raise SystemNotFoundError(
                f"System '{name}' not found. Available: {list(self.systems.keys())}",
            )
        return self.systems[name]

    def get_solve_record(self, name: str) -> SolveRecord:
        self.get_system(name)
        if name not in self.solve_records:
            raise PreconditionError(
                f"System '{name}' has not been solved.",
                suggestion="Run solve_eigen_system first.",
            )
        return self.solve_records[name]

    # --- Registration ---

    def register_system(self, system: EigenSystem) -> EigenSystem:
        """Add ``system`` under its own name.

        Raises:
            DuplicateNameError: If the name is taken.
        """
        if system.name in self.systems:
            raise DuplicateNameError(
                f"System '{system.name}' already exists.",
                suggestion="Choose a different name or remove the existing system first.",
            )
        system.number = len(self.systems)
        self.systems[system.name] = system
        if __debug__:
            assert self.systems[system.name] is system
        return system

    def record_solve(self, record: SolveRecord) -> None:
        if record.system_name not in self.systems:
            raise SystemNotFoundError(f"System '{record.system_name}' not found.")
        self.solve_records[record.system_name] = record

    # --- Cascade deletion ---

    def remove_system(self, name: str) -> None:
        """Remove a system together with its solve record."""
        system = self.get_system(name)
        system.clear()
        del self.systems[name]
        self.solve_records.pop(name, None)

        if name in self.systems or name in self.solve_records:
            raise PostconditionError(f"remove_system(): '{name}' still present after removal")
        logger.info("Removed eigen system '%s'", name)

    # --- Overview ---

    def overview(self) -> dict[str, Any]:
        return {
            "solver_package": self.solver_package,
            "systems": {k: v.summary() for k, v in self.systems.items()},
            "solve_records": {k: v.summary() for k, v in self.solve_records.items()},
        }

    # --- Cleanup ---

    def cleanup(self) -> None:
        """Drop all systems and records. Called on reset and shutdown."""
        for system in self.systems.values():
            system.clear()
        self.systems.clear()
        self.solve_records.clear()

        if self.systems or self.solve_records:
            raise PostconditionError("cleanup(): registries not empty")
        logger.info("Session state cleaned up")
