"""SLEPc eigensolver backend (requires petsc4py and slepc4py).

The SLEPc modules are imported lazily so the rest of the package works
without a PETSc installation.
"""

from __future__ import annotations

import logging
from typing import Any

import numpy as np

from .config import EigenSolverSettings
from .eigen_solver import EigenSolver, Operator
from .enums import EigenProblemType, EigenSolverType, PositionOfSpectrum, SolverPackage
from .errors import ConfigurationError, SolverFailureError
from .matrices import ShellMatrix, SparseMatrix

logger = logging.getLogger(__name__)


def _import_slepc() -> tuple[Any, Any]:
    try:
        from petsc4py import PETSc
        from slepc4py import SLEPc
    except ImportError as exc:
        raise ConfigurationError(
            "The SLEPc backend requires petsc4py and slepc4py.",
            suggestion="Install the 'slepc' extra or use solver_package='scipy'.",
        ) from exc
    return PETSc, SLEPc


class _ShellContext:
    """MATPYTHON context forwarding ``mult`` to a ShellMatrix action."""

    def __init__(self, shell: ShellMatrix) -> None:
        self._shell = shell

    def mult(self, mat: Any, x: Any, y: Any) -> None:
        y.setArray(self._shell.vector_mult(x.getArray(readonly=True)))


class _ShellPreconditioner:
    """PCPYTHON context applying a shell preconditioner action."""

    def __init__(self, shell: ShellMatrix) -> None:
        self._shell = shell

    def apply(self, pc: Any, x: Any, y: Any) -> None:
        y.setArray(self._shell.vector_mult(x.getArray(readonly=True)))


def _configure_shell_ksp(
    st: Any, precond: Operator | None, settings: EigenSolverSettings, PETSc: Any, SLEPc: Any,
) -> None:
    """Matrix-free shift-invert: GMRES inner solves, preconditioned when possible."""
    # A - sigma B is applied implicitly; shell operators cannot be added.
    st.setMatMode(SLEPc.ST.MatMode.SHELL)
    ksp = st.getKSP()
    ksp.setType(PETSc.KSP.Type.GMRES)
    ksp.setTolerances(rtol=min(settings.tolerance, 1e-8), max_it=settings.max_iterations)
    pc = ksp.getPC()
    if isinstance(precond, ShellMatrix) and precond.has_action():
        pc.setType(PETSc.PC.Type.PYTHON)
        pc.setPythonContext(_ShellPreconditioner(precond))
    elif isinstance(precond, SparseMatrix) and precond.closed() and precond.nnz() > 0:
        st.setPreconditionerMat(to_petsc(precond, PETSc))
        pc.setType(PETSc.PC.Type.LU)
    else:
        pc.setType(PETSc.PC.Type.NONE)


def to_petsc(matrix: Operator, PETSc: Any) -> Any:
    """Convert an assembled or shell operator into a PETSc ``Mat``."""
    if isinstance(matrix, ShellMatrix):
        mat = PETSc.Mat().createPython(matrix.shape, context=_ShellContext(matrix))
        mat.setUp()
        return mat

    csr = matrix.to_scipy()
    mat = PETSc.Mat().createAIJ(
        size=csr.shape,
        csr=(
            csr.indptr.astype(PETSc.IntType),
            csr.indices.astype(PETSc.IntType),
            csr.data.astype(PETSc.ScalarType),
        ),
    )
    mat.assemblyBegin()
    mat.assemblyEnd()
    return mat


class SlepcEigenSolver(EigenSolver):
    """Eigensolver backed by SLEPc's EPS object."""

    package = SolverPackage.SLEPC

    def _solve(
        self,
        matrix_A: Operator,
        matrix_B: Operator | None,
        precond: Operator | None,
        settings: EigenSolverSettings,
    ) -> tuple[int, int]:
        PETSc, SLEPc = _import_slepc()

        problem_map = {
            EigenProblemType.NHEP: SLEPc.EPS.ProblemType.NHEP,
            EigenProblemType.HEP: SLEPc.EPS.ProblemType.HEP,
            EigenProblemType.GNHEP: SLEPc.EPS.ProblemType.GNHEP,
            EigenProblemType.GHEP: SLEPc.EPS.ProblemType.GHEP,
            EigenProblemType.GHIEP: SLEPc.EPS.ProblemType.GHIEP,
        }
        type_map = {
            EigenSolverType.KRYLOVSCHUR: SLEPc.EPS.Type.KRYLOVSCHUR,
            EigenSolverType.ARNOLDI: SLEPc.EPS.Type.ARNOLDI,
            EigenSolverType.LANCZOS: SLEPc.EPS.Type.LANCZOS,
            EigenSolverType.POWER: SLEPc.EPS.Type.POWER,
            EigenSolverType.LAPACK: SLEPc.EPS.Type.LAPACK,
        }
        which_map = {
            PositionOfSpectrum.LARGEST_MAGNITUDE: SLEPc.EPS.Which.LARGEST_MAGNITUDE,
            PositionOfSpectrum.SMALLEST_MAGNITUDE: SLEPc.EPS.Which.SMALLEST_MAGNITUDE,
            PositionOfSpectrum.LARGEST_REAL: SLEPc.EPS.Which.LARGEST_REAL,
            PositionOfSpectrum.SMALLEST_REAL: SLEPc.EPS.Which.SMALLEST_REAL,
            PositionOfSpectrum.LARGEST_IMAGINARY: SLEPc.EPS.Which.LARGEST_IMAGINARY,
            PositionOfSpectrum.SMALLEST_IMAGINARY: SLEPc.EPS.Which.SMALLEST_IMAGINARY,
            PositionOfSpectrum.TARGET_MAGNITUDE: SLEPc.EPS.Which.TARGET_MAGNITUDE,
            PositionOfSpectrum.TARGET_REAL: SLEPc.EPS.Which.TARGET_REAL,
        }

        A = to_petsc(matrix_A, PETSc)
        B = to_petsc(matrix_B, PETSc) if matrix_B is not None else None

        eps = SLEPc.EPS().create()
        try:
            eps.setOperators(A, B)
            eps.setProblemType(problem_map[self.problem_type])
            eps.setType(type_map[self.solver_type])
            eps.setWhichEigenpairs(which_map[self.position_of_spectrum])
            eps.setDimensions(nev=settings.n_eigenpairs, ncv=settings.n_basis_vectors)
            eps.setTolerances(tol=settings.tolerance, max_it=settings.max_iterations)

            if self.position_of_spectrum.is_target:
                eps.setTarget(self.target)
                st = eps.getST()
                st.setType(SLEPc.ST.Type.SINVERT)
                if isinstance(matrix_A, ShellMatrix):
                    _configure_shell_ksp(st, precond, settings, PETSc, SLEPc)

            if self._initial_space is not None:
                v0 = A.createVecRight()
                v0.setArray(self._initial_space)
                eps.setInitialSpace([v0])

            eps.setFromOptions()
            eps.solve()
        except PETSc.Error as exc:
            eps.destroy()
            raise SolverFailureError(f"SLEPc eigensolve failed: {exc}") from exc

        nconv = eps.getConverged()
        its = eps.getIterationNumber()

        values = np.zeros(nconv, dtype=complex)
        vectors = np.zeros((matrix_A.shape[0], nconv), dtype=complex)
        vr = A.createVecRight()
        vi = A.createVecRight()
        for i in range(nconv):
            values[i] = eps.getEigenpair(i, vr, vi)
            vectors[:, i] = vr.getArray() + 1j * vi.getArray()
        eps.destroy()

        self._eigenvalues = values
        self._eigenvectors = vectors
        logger.debug("SLEPc eigensolve: converged=%d its=%d", nconv, its)
        return int(nconv), int(its)
