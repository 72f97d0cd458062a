"""Base system: degree-of-freedom layout, solution buffer and lifecycle.

Derived systems (``EigenSystem``) hook into ``init_data``/``reinit``/``clear``
to size and drop their own data whenever the layout changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

import numpy as np

from .enums import ParallelType
from .errors import ConfigurationError, InvariantError, PreconditionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DofLayout:
    """Size and distribution of the unknowns of a system.

    In serial runs the local range covers all DOFs.
    """

    n_dofs: int
    n_local_dofs: int
    first_local_index: int = 0
    parallel_type: ParallelType = ParallelType.PARALLEL

    def __post_init__(self) -> None:
        if self.n_dofs < 0:
            raise InvariantError(f"n_dofs must be >= 0, got {self.n_dofs}")
        if not 0 <= self.n_local_dofs <= self.n_dofs:
            raise InvariantError(
                f"n_local_dofs must be in [0, {self.n_dofs}], got {self.n_local_dofs}"
            )
        if self.first_local_index < 0 or (
            self.first_local_index + self.n_local_dofs > self.n_dofs
        ):
            raise InvariantError(
                f"Local range [{self.first_local_index}, "
                f"{self.first_local_index + self.n_local_dofs}) exceeds n_dofs={self.n_dofs}"
            )

    @classmethod
    def serial(cls, n_dofs: int) -> DofLayout:
        return cls(n_dofs=n_dofs, n_local_dofs=n_dofs, parallel_type=ParallelType.SERIAL)

    @property
    def last_local_index(self) -> int:
        return self.first_local_index + self.n_local_dofs

    def summary(self) -> dict[str, Any]:
        return {
            "n_dofs": self.n_dofs,
            "n_local_dofs": self.n_local_dofs,
            "first_local_index": self.first_local_index,
            "parallel_type": self.parallel_type.value,
        }


class System:
    """Owns the DOF layout and the solution vector of a named system."""

    def __init__(self, name: str, number: int = 0, n_dofs: int = 0) -> None:
        if not name or not name.strip():
            raise PreconditionError("System name must be non-empty.")
        self.name = name
        self.number = number
        self.assemble_before_solve = True
        self._dof_layout = DofLayout.serial(n_dofs)
        self.solution: np.ndarray = np.zeros(0)
        self._initialized = False

    def system_type(self) -> str:
        return "Basic"

    # --- DOF layout ---

    def n_dofs(self) -> int:
        return self._dof_layout.n_dofs

    def n_local_dofs(self) -> int:
        return self._dof_layout.n_local_dofs

    def dof_layout(self) -> DofLayout:
        return self._dof_layout

    def set_dof_layout(self, layout: DofLayout) -> None:
        """Replace the layout, e.g. after refinement. Call ``reinit`` afterwards."""
        self._dof_layout = layout

    def resize(self, n_dofs: int) -> None:
        """Shortcut for a serial layout of ``n_dofs`` unknowns."""
        self.set_dof_layout(DofLayout.serial(n_dofs))

    # --- Lifecycle ---

    def is_initialized(self) -> bool:
        return self._initialized

    def init(self) -> None:
        """Allocate all data for the current layout. Call once, then ``reinit``."""
        if self.n_dofs() <= 0:
            raise ConfigurationError(
                f"System '{self.name}' has no degrees of freedom.",
                suggestion="Set a DOF layout with n_dofs > 0 before init().",
            )
        self.init_data()
        self._initialized = True
        logger.info("Initialized %s system '%s' with %d dofs",
                    self.system_type(), self.name, self.n_dofs())

    def init_data(self) -> None:
        self.solution = np.zeros(self.n_dofs())

    def reinit(self) -> None:
        """Resize data after the layout changed, projecting nothing."""
        self.solution = np.zeros(self.n_dofs())

    def clear(self) -> None:
        self.solution = np.zeros(0)
        self._initialized = False

    def update(self) -> None:
        """Check the solution buffer still matches the layout."""
        if self.solution.shape != (self.n_dofs(),):
            raise InvariantError(
                f"Solution of '{self.name}' has shape {self.solution.shape}, "
                f"expected ({self.n_dofs()},). Call reinit()."
            )

    # --- Hooks for derived systems ---

    def assemble(self) -> None:
        """Fill system operators. The base system has none."""

    def solve(self) -> None:
        raise NotImplementedError(f"{type(self).__name__} does not implement solve().")

    def n_matrices(self) -> int:
        return 0

    def summary(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "number": self.number,
            "type": self.system_type(),
            "initialized": self._initialized,
            "dof_layout": self._dof_layout.summary(),
        }
