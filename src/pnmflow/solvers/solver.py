from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

from pnmflow import config
from pnmflow.exceptions import SolverError
from pnmflow.solvers.cg import SolverResult, solve_cg_cpu
from pnmflow.solvers.gpu import GpuContext, get_default_gpu_context

if TYPE_CHECKING:
    from pnmflow.solvers.system import LinearSystem

logger = logging.getLogger(__name__)


def solve_pressures(
    system: LinearSystem,
    use_gpu: bool = False,
    gpu_context: Optional[GpuContext] = None,
    tolerance: float = config.CG_TOLERANCE,
    max_iterations: int = config.CG_MAX_ITERATIONS,
    log: Optional[logging.Logger] = None,
) -> SolverResult:
    """
    Solve the pore-pressure system with Conjugate Gradient.

    The GPU is tried first when requested. Any GPU failure, including a
    non-finite solution, is logged and the CPU solver is used instead.

    Args:
        system: Assembled linear system.
        use_gpu: Try the CUDA backend first.
        gpu_context: Device context; the process-wide one when omitted.
        tolerance: Absolute residual-norm tolerance.
        max_iterations: Iteration cap.
        log: Log sink, the module logger by default.

    Returns:
        Pressures indexed by pore ID, with convergence information.

    Raises:
        SolverError: The solver produced a non-finite pressure field.
    """
    log = log or logger
    csr = system.matrix.to_csr()

    result: Optional[SolverResult] = None
    if use_gpu:
        context = gpu_context or get_default_gpu_context()
        try:
            result = context.solve(csr, system.rhs, tolerance, max_iterations, log=log)
        except Exception as e:
            # Any device problem degrades to the CPU path
            log.warning(f"[Solver] GPU solve unavailable, falling back to CPU: {e}")
            result = None
        if result is not None and not result.is_finite:
            log.warning("[Solver] GPU produced non-finite pressures, falling back to CPU.")
            result = None

    if result is None:
        result = solve_cg_cpu(csr, system.rhs, tolerance, max_iterations, log=log)

    if not result.is_finite:
        raise SolverError(f"{result.backend.upper()} solver produced non-finite pressures.")
    return result
