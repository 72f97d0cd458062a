"""Operator assemblers for eigen systems.

An assembler fills the A (and, for generalized problems, B) slots of an
``EigenSystem``. Slots are either assembled ``SparseMatrix`` objects, which
receive element contributions, or ``ShellMatrix`` objects, which receive a
matrix-free action. The built-in assemblers discretize 1D model operators
with linear (P1) elements on a uniform mesh of ``[0, length]`` with
homogeneous Dirichlet ends, so the DOFs are the interior nodes.
"""

from __future__ import annotations

from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol, runtime_checkable

import numpy as np
import scipy.linalg as scipy_linalg

from .enums import EigenProblemType
from .errors import ConfigurationError, PreconditionError
from .matrices import ShellMatrix, SparseMatrix


class ProblemKind(str, Enum):
    """Structural tag of the operators an assembler produces."""

    STANDARD_HERMITIAN = "standard_hermitian"
    GENERALIZED_HERMITIAN = "generalized_hermitian"
    NON_HERMITIAN = "non_hermitian"
    GENERALIZED_NON_HERMITIAN = "generalized_non_hermitian"

    @property
    def default_problem_type(self) -> EigenProblemType:
        return _DEFAULT_TYPES[self]

    @property
    def is_generalized(self) -> bool:
        return self.default_problem_type.is_generalized


_DEFAULT_TYPES = {
    ProblemKind.STANDARD_HERMITIAN: EigenProblemType.HEP,
    ProblemKind.GENERALIZED_HERMITIAN: EigenProblemType.GHEP,
    ProblemKind.NON_HERMITIAN: EigenProblemType.NHEP,
    ProblemKind.GENERALIZED_NON_HERMITIAN: EigenProblemType.GNHEP,
}


@runtime_checkable
class OperatorAssembler(Protocol):
    """Fills operator slots. An optional ``fill_preconditioner(precond)``
    method also fills the preconditioner slot of matrix-free systems.
    """

    kind: ProblemKind

    def fill_operators(
        self,
        matrix_A: SparseMatrix | ShellMatrix,
        matrix_B: SparseMatrix | ShellMatrix | None,
    ) -> None: ...


# ---------------------------------------------------------------------------
# 1D P1 building blocks
# ---------------------------------------------------------------------------


def _element_loop(matrix: SparseMatrix, element: np.ndarray) -> None:
    """Assemble ``element`` over all cells, dropping the Dirichlet end nodes."""
    n = matrix.shape[0]
    matrix.zero()
    # Cell e joins mesh nodes e and e + 1; interior node k is DOF k - 1.
    for e in range(n + 1):
        dofs = [k - 1 for k in (e, e + 1)]
        local = [a for a, d in enumerate(dofs) if 0 <= d < n]
        matrix.add_matrix(
            element[np.ix_(local, local)], [dofs[a] for a in local],
        )
    matrix.close()


def _tridiagonal_action(lower: float, diag: float, upper: float) -> Callable[[np.ndarray], np.ndarray]:
    def action(x: np.ndarray) -> np.ndarray:
        y = diag * x
        y[1:] += lower * x[:-1]
        y[:-1] += upper * x[1:]
        return y

    return action


def _tridiagonal_solve(
    n: int, lower: float, diag: float, upper: float,
) -> Callable[[np.ndarray], np.ndarray]:
    """Return ``x -> T^{-1} x`` for the ``n x n`` three-point stencil ``T``."""
    bands = np.zeros((3, n))
    bands[0, 1:] = upper
    bands[1, :] = diag
    bands[2, :-1] = lower

    def solve(x: np.ndarray) -> np.ndarray:
        return scipy_linalg.solve_banded((1, 1), bands, x)

    return solve


def _stencil(element: np.ndarray) -> tuple[float, float, float]:
    # Interior rows of a P1 operator are a constant three-point stencil.
    return element[1, 0], element[0, 0] + element[1, 1], element[0, 1]


class _P1Assembler:
    kind: ProblemKind

    def __init__(self, length: float = 1.0) -> None:
        if not length > 0.0:
            raise PreconditionError(f"length must be > 0, got {length}.")
        self.length = length

    def mesh_size(self, matrix: SparseMatrix | ShellMatrix) -> float:
        return self.length / (matrix.shape[0] + 1)

    def _fill(
        self,
        matrix: SparseMatrix | ShellMatrix,
        element: np.ndarray,
    ) -> None:
        if isinstance(matrix, ShellMatrix):
            matrix.attach(_tridiagonal_action(*_stencil(element)))
        else:
            _element_loop(matrix, element)

    def operator_element(self, h: float) -> np.ndarray:
        """Element matrix of the A operator on a cell of size ``h``."""
        raise NotImplementedError

    def fill_operators(self, matrix_A, matrix_B) -> None:
        self._fill(matrix_A, self.operator_element(self.mesh_size(matrix_A)))

    def fill_preconditioner(self, precond: SparseMatrix | ShellMatrix) -> None:
        """Fill the preconditioner slot from the A operator.

        An assembled slot receives the A matrix itself. A shell slot gets
        the exact inverse of the A stencil through a banded solve.
        """
        element = self.operator_element(self.mesh_size(precond))
        if isinstance(precond, ShellMatrix):
            precond.attach(_tridiagonal_solve(precond.shape[0], *_stencil(element)))
        else:
            _element_loop(precond, element)

    def _require_b(self, matrix_B: Any) -> None:
        if matrix_B is None:
            raise ConfigurationError(
                f"{type(self).__name__} produces a generalized problem but no B slot is allocated.",
                suggestion="Set a generalized eigenproblem type (GHEP/GNHEP) and reinit.",
            )

    def describe(self) -> dict[str, Any]:
        return {"assembler": type(self).__name__, "kind": self.kind.value, "length": self.length}


def _mass_element(h: float) -> np.ndarray:
    return np.array([[2.0, 1.0], [1.0, 2.0]]) * h / 6.0


class LaplaceAssembler(_P1Assembler):
    """Stiffness matrix of ``-u''``: a standard Hermitian problem.

    Eigenvalues are ``(4 / h) sin^2(k pi h / (2 L))``.
    """

    kind = ProblemKind.STANDARD_HERMITIAN

    def operator_element(self, h: float) -> np.ndarray:
        return np.array([[1.0, -1.0], [-1.0, 1.0]]) / h


class StiffnessMassAssembler(_P1Assembler):
    """``K x = l M x`` for ``-u'' = l u``; eigenvalues approach ``(k pi / L)^2``."""

    kind = ProblemKind.GENERALIZED_HERMITIAN

    def operator_element(self, h: float) -> np.ndarray:
        return np.array([[1.0, -1.0], [-1.0, 1.0]]) / h

    def fill_operators(self, matrix_A, matrix_B) -> None:
        self._require_b(matrix_B)
        super().fill_operators(matrix_A, matrix_B)
        self._fill(matrix_B, _mass_element(self.mesh_size(matrix_B)))


class ConvectionDiffusionAssembler(_P1Assembler):
    """Galerkin ``-eps u'' + c u'``: non-Hermitian for ``c != 0``.

    With ``generalized=True`` the mass matrix is assembled into B.
    """

    def __init__(
        self,
        length: float = 1.0,
        diffusion: float = 1.0,
        velocity: float = 1.0,
        generalized: bool = False,
    ) -> None:
        super().__init__(length)
        if not diffusion > 0.0:
            raise PreconditionError(f"diffusion must be > 0, got {diffusion}.")
        self.diffusion = diffusion
        self.velocity = velocity
        self.generalized = generalized
        self.kind = (
            ProblemKind.GENERALIZED_NON_HERMITIAN if generalized else ProblemKind.NON_HERMITIAN
        )

    def operator_element(self, h: float) -> np.ndarray:
        stiffness = np.array([[1.0, -1.0], [-1.0, 1.0]]) * self.diffusion / h
        convection = np.array([[-0.5, 0.5], [-0.5, 0.5]]) * self.velocity
        return stiffness + convection

    def fill_operators(self, matrix_A, matrix_B) -> None:
        if self.generalized:
            self._require_b(matrix_B)
        super().fill_operators(matrix_A, matrix_B)
        if self.generalized:
            self._fill(matrix_B, _mass_element(self.mesh_size(matrix_B)))

    def describe(self) -> dict[str, Any]:
        info = super().describe()
        info.update(diffusion=self.diffusion, velocity=self.velocity)
        return info


ASSEMBLERS: dict[str, Callable[..., OperatorAssembler]] = {
    "laplace": LaplaceAssembler,
    "stiffness_mass": StiffnessMassAssembler,
    "convection_diffusion": ConvectionDiffusionAssembler,
}


def build_assembler(name: str, **params: Any) -> OperatorAssembler:
    """Instantiate a built-in assembler by name."""
    if name not in ASSEMBLERS:
        raise PreconditionError(
            f"assembler must be one of {sorted(ASSEMBLERS)}, got '{name}'."
        )
    try:
        return ASSEMBLERS[name](**params)
    except TypeError as exc:
        raise PreconditionError(f"Invalid parameters for assembler '{name}': {exc}") from exc
