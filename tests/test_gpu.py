import logging

import numpy as np
import pytest

from pnmflow.analysis.boundary import find_boundary_pores
from pnmflow.analysis.conductance import DarcyConductance
from pnmflow.analysis.stress import apply_confining_pressure
from pnmflow.exceptions import GpuUnavailableError
from pnmflow.model import ConfiningPressureOptions, Engine, FlowAxis, PermeabilityOptions
from pnmflow.permeability import calculate
from pnmflow.solvers.cg import SolverResult
from pnmflow.solvers.gpu import GpuContext, get_default_gpu_context
from pnmflow.solvers.solver import solve_pressures
from pnmflow.solvers.system import build_linear_system


class BrokenGpuContext(GpuContext):
    """Claims a device, then fails every solve."""

    @property
    def is_available(self) -> bool:
        return True

    def _solve(self, matrix, rhs, tolerance, max_iterations, log):
        raise RuntimeError("device lost")


class NanGpuContext(GpuContext):
    """Claims a device and returns garbage."""

    @property
    def is_available(self) -> bool:
        return True

    def _solve(self, matrix, rhs, tolerance, max_iterations, log):
        return SolverResult(pressures=np.full(rhs.size, np.nan), converged=True, backend="gpu")


@pytest.fixture
def lattice_system(lattice):
    boundary = find_boundary_pores(lattice, FlowAxis.Z)
    geometry = apply_confining_pressure(lattice, ConfiningPressureOptions())
    return build_linear_system(lattice, DarcyConductance(), boundary, geometry, 1e-3, 1e-6, 1.0, 0.0)


def test_forced_unavailable_context():
    context = GpuContext(force_unavailable=True)
    assert not context.is_available
    with pytest.raises(GpuUnavailableError):
        context.solve(None, np.zeros(1))
    assert "forced-off" in repr(context)


def test_runtime_failure_is_wrapped():
    with pytest.raises(GpuUnavailableError, match="device lost"):
        BrokenGpuContext().solve(None, np.zeros(1))


@pytest.mark.parametrize("context", [GpuContext(force_unavailable=True), BrokenGpuContext(), NanGpuContext()])
def test_solve_falls_back_to_cpu(lattice_system, context, caplog):
    with caplog.at_level(logging.WARNING, logger="pnmflow"):
        result = solve_pressures(lattice_system, use_gpu=True, gpu_context=context)
    assert result.backend == "cpu"
    assert result.converged
    assert "falling back to CPU" in caplog.text


def test_gpu_and_cpu_runs_agree(lattice):
    cpu = calculate(lattice, PermeabilityOptions(use_gpu=False))
    fallback = calculate(lattice, PermeabilityOptions(use_gpu=True), gpu_context=BrokenGpuContext())
    assert cpu.ok and fallback.ok
    assert fallback.engines[Engine.DARCY].backend == "cpu"
    assert fallback.permeability(Engine.DARCY) == pytest.approx(cpu.permeability(Engine.DARCY), rel=1e-9)


def test_shutdown_is_safe_without_device():
    context = GpuContext(force_unavailable=True)
    context.shutdown()
    assert not context.is_available


def test_default_context_is_shared():
    assert get_default_gpu_context() is get_default_gpu_context()
