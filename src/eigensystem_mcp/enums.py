"""Enumerations shared by systems, matrices and eigensolver backends."""

from __future__ import annotations

from enum import Enum


class EigenProblemType(str, Enum):
    """Kind of eigenvalue problem handed to the solver.

    NHEP  -- standard non-Hermitian           A x = l x
    HEP   -- standard Hermitian               A x = l x, A = A^H
    GNHEP -- generalized non-Hermitian        A x = l B x
    GHEP  -- generalized Hermitian            A x = l B x, A = A^H, B = B^H > 0
    GHIEP -- generalized Hermitian-indefinite A x = l B x, A = A^H, B = B^H
    """

    NHEP = "NHEP"
    HEP = "HEP"
    GNHEP = "GNHEP"
    GHEP = "GHEP"
    GHIEP = "GHIEP"

    @property
    def is_generalized(self) -> bool:
        return self in _GENERALIZED

    @property
    def is_hermitian(self) -> bool:
        return self in _HERMITIAN


_GENERALIZED = frozenset({EigenProblemType.GNHEP, EigenProblemType.GHEP, EigenProblemType.GHIEP})
_HERMITIAN = frozenset({EigenProblemType.HEP, EigenProblemType.GHEP, EigenProblemType.GHIEP})


class ParallelType(str, Enum):
    """Distribution tag requested from the DOF layout."""

    SERIAL = "serial"
    PARALLEL = "parallel"
    GHOSTED = "ghosted"
    AUTOMATIC = "automatic"


class MatrixBuildType(str, Enum):
    AUTOMATIC = "automatic"
    DIAGONAL = "diagonal"


class PositionOfSpectrum(str, Enum):
    """Which end of the spectrum the solver should target."""

    LARGEST_MAGNITUDE = "largest_magnitude"
    SMALLEST_MAGNITUDE = "smallest_magnitude"
    LARGEST_REAL = "largest_real"
    SMALLEST_REAL = "smallest_real"
    LARGEST_IMAGINARY = "largest_imaginary"
    SMALLEST_IMAGINARY = "smallest_imaginary"
    TARGET_MAGNITUDE = "target_magnitude"
    TARGET_REAL = "target_real"

    @property
    def is_target(self) -> bool:
        return self.value.startswith("target_")


class EigenSolverType(str, Enum):
    KRYLOVSCHUR = "krylovschur"
    ARNOLDI = "arnoldi"
    LANCZOS = "lanczos"
    POWER = "power"
    LAPACK = "lapack"


class SolverPackage(str, Enum):
    SCIPY = "scipy"
    SLEPC = "slepc"
