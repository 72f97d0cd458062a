"""Tests for the SLEPc backend. Numerical tests need petsc4py and slepc4py."""

from __future__ import annotations

import sys

import numpy as np
import pytest
from conftest import make_settings

from eigensystem_mcp.assemblers import LaplaceAssembler, StiffnessMassAssembler
from eigensystem_mcp.eigen_solver import build_eigen_solver
from eigensystem_mcp.eigen_system import EigenSystem
from eigensystem_mcp.enums import PositionOfSpectrum, SolverPackage
from eigensystem_mcp.errors import ConfigurationError
from eigensystem_mcp.slepc_solver import SlepcEigenSolver


def slepc_system(assembler, n_dofs, shell=False, **solver_kwargs) -> EigenSystem:
    system = EigenSystem(
        "slepc",
        n_dofs=n_dofs,
        eigen_solver=build_eigen_solver(SolverPackage.SLEPC, **solver_kwargs),
        assembler=assembler,
        settings=make_settings(n_eigenpairs=3, n_basis_vectors=20),
    )
    system.use_shell_matrices(shell)
    system.init()
    return system


class TestWithoutSlepc:
    def test_missing_modules_raise_configuration_error(self, monkeypatch):
        monkeypatch.setitem(sys.modules, "slepc4py", None)
        system = slepc_system(LaplaceAssembler(), 10)
        with pytest.raises(ConfigurationError, match="petsc4py and slepc4py"):
            system.solve()

    def test_factory_returns_slepc_solver(self):
        solver = build_eigen_solver("slepc")
        assert isinstance(solver, SlepcEigenSolver)
        assert solver.package == SolverPackage.SLEPC


@pytest.fixture
def slepc():
    pytest.importorskip("petsc4py")
    return pytest.importorskip("slepc4py")


class TestSlepcNumerics:
    def test_laplace_shift_invert(self, slepc):
        system = slepc_system(
            LaplaceAssembler(), 50,
            position_of_spectrum=PositionOfSpectrum.TARGET_MAGNITUDE, target=0.0,
        )
        system.solve()
        assert system.get_n_converged() >= 3
        h = 1.0 / 51
        exact = (4.0 / h) * np.sin(np.arange(1, 4) * np.pi * h / 2.0) ** 2
        values = np.sort(system.eigenvalues().real)[:3]
        np.testing.assert_allclose(values, exact, rtol=1e-8)

    def test_generalized(self, slepc):
        system = slepc_system(
            StiffnessMassAssembler(), 60,
            position_of_spectrum=PositionOfSpectrum.TARGET_MAGNITUDE, target=0.0,
        )
        system.solve()
        values = np.sort(system.eigenvalues().real)[:3]
        np.testing.assert_allclose(values, (np.arange(1, 4) * np.pi) ** 2, rtol=1e-2)

    def test_shell_operator(self, slepc):
        system = slepc_system(LaplaceAssembler(), 30, shell=True)
        system.solve()
        assert system.get_n_converged() >= 3
        assert system.get_n_iterations() >= 1

    @pytest.mark.parametrize("shell_precond", [False, True])
    def test_shell_shift_invert_matches_assembled(self, slepc, shell_precond):
        kwargs = {
            "position_of_spectrum": PositionOfSpectrum.TARGET_MAGNITUDE,
            "target": 5.0,
        }
        assembled = slepc_system(StiffnessMassAssembler(), 40, **kwargs)
        assembled.solve()

        system = EigenSystem(
            "slepc-shell",
            n_dofs=40,
            eigen_solver=build_eigen_solver(SolverPackage.SLEPC, **kwargs),
            assembler=StiffnessMassAssembler(),
            settings=make_settings(n_eigenpairs=3, n_basis_vectors=20),
        )
        system.use_shell_matrices(True)
        system.use_shell_precond_matrix(shell_precond)
        system.init()
        system.solve()
        assert system.get_n_converged() >= 3
        np.testing.assert_allclose(
            np.sort(system.eigenvalues().real)[:3],
            np.sort(assembled.eigenvalues().real)[:3],
            rtol=1e-6,
        )
