from __future__ import annotations

from dataclasses import dataclass
import logging
import math
from typing import TYPE_CHECKING, Optional

import numpy as np

from pnmflow import config

if TYPE_CHECKING:
    import numpy.typing as npt

    from pnmflow.solvers.sparse import CsrMatrix

logger = logging.getLogger(__name__)


@dataclass
class SolverResult:
    """
    Outcome of a Conjugate Gradient solve. ``pressures`` holds the last
    iterate even when the solve did not converge.
    """
    pressures: npt.NDArray[np.float64]
    iterations: int = 0
    residual: float = 0.0
    converged: bool = False
    breakdown: bool = False
    backend: str = "cpu"

    @property
    def is_finite(self) -> bool:
        return bool(np.all(np.isfinite(self.pressures)))


def solve_cg_cpu(
    matrix: CsrMatrix,
    rhs: npt.NDArray[np.float64],
    tolerance: float = config.CG_TOLERANCE,
    max_iterations: int = config.CG_MAX_ITERATIONS,
    log: Optional[logging.Logger] = None,
) -> SolverResult:
    """
    Unpreconditioned Conjugate Gradient for a symmetric positive (semi-)definite system.

    Iterates until ||r|| < tolerance or ``max_iterations``. A vanishing
    curvature p·Ap stops the iteration early with a warning.

    Args:
        matrix: System matrix in CSR form.
        rhs: Right-hand side.
        tolerance: Absolute residual-norm tolerance.
        max_iterations: Iteration cap.
        log: Log sink, the module logger by default.

    Returns:
        The solution (or last iterate) with convergence information.
    """
    log = log or logger
    b = np.ascontiguousarray(rhs, dtype=np.float64)
    x = np.zeros_like(b)
    r = b.copy()
    p = r.copy()

    rs_old = float(r @ r)
    if math.sqrt(rs_old) < tolerance:
        return SolverResult(pressures=x, iterations=0, residual=math.sqrt(rs_old), converged=True)

    residual = math.sqrt(rs_old)
    for iteration in range(max_iterations):
        ap = matrix.multiply(p)
        p_ap = float(p @ ap)

        if not math.isfinite(p_ap) or abs(p_ap) <= config.CG_BREAKDOWN_EPSILON * float(p @ p):
            log.warning(f"[CG Solver] Breakdown at iteration {iteration} (p·Ap = {p_ap:.3E})")
            return SolverResult(pressures=x, iterations=iteration, residual=residual, breakdown=True)

        alpha = rs_old / p_ap
        x += alpha * p
        r -= alpha * ap

        rs_new = float(r @ r)
        residual = math.sqrt(rs_new)
        if residual < tolerance:
            log.info(f"[CG Solver] Converged in {iteration + 1} iterations")
            return SolverResult(pressures=x, iterations=iteration + 1, residual=residual, converged=True)

        p = r + (rs_new / rs_old) * p
        rs_old = rs_new

        if iteration % config.CG_LOG_EVERY == 0:
            log.debug(f"[CG Solver] Iteration {iteration}, residual: {residual:.3E}")

    log.warning(f"[CG Solver] Not converged after {max_iterations} iterations, residual {residual:.3E}")
    return SolverResult(pressures=x, iterations=max_iterations, residual=residual)
