"""
GPU Conjugate Gradient
======================
CUDA backend of the pressure solver, built on ``numba.cuda``.

Why is this file needed?
------------------------
1. Speed: Large networks spend nearly all their time in the sparse
   matrix-vector product, which maps well to one GPU thread per row.
2. Lifecycle: ``GpuContext`` owns the device handle and the compiled
   kernels. It is created explicitly, initialised lazily behind a lock so
   concurrent first users don't race, and can be shut down.

The host drives the iteration; each step launches the kernels, waits for the
device, and reads back only the scalar dot-product partial sums.
"""
from __future__ import annotations

from dataclasses import dataclass
import logging
import math
import threading
from typing import TYPE_CHECKING, Any, Callable, Optional

import numpy as np
import numba as nb

from pnmflow import config
from pnmflow.exceptions import GpuUnavailableError
from pnmflow.solvers.cg import SolverResult

if TYPE_CHECKING:
    import numpy.typing as npt

    from pnmflow.solvers.sparse import CsrMatrix

logger = logging.getLogger(__name__)

THREADS_PER_BLOCK = config.GPU_THREADS_PER_BLOCK


@dataclass(frozen=True)
class GpuKernels:
    spmv_csr: Callable
    axpy: Callable
    scale: Callable
    dot_product: Callable


def _compile_kernels(cuda: Any) -> GpuKernels:
    """Define the four CG kernels for the current CUDA context."""

    @cuda.jit
    def spmv_csr(indptr, indices, data, x, y):
        # y = A @ x, one thread per row
        row = cuda.grid(1)
        if row < y.size:
            acc = 0.0
            for jj in range(indptr[row], indptr[row + 1]):
                acc += data[jj] * x[indices[jj]]
            y[row] = acc

    @cuda.jit
    def axpy(y, x, alpha):
        # y = y + alpha * x
        i = cuda.grid(1)
        if i < y.size:
            y[i] += alpha * x[i]

    @cuda.jit
    def scale(y, alpha):
        # y = alpha * y
        i = cuda.grid(1)
        if i < y.size:
            y[i] *= alpha

    @cuda.jit
    def dot_product(a, b, partial):
        # One partial sum per block; the host adds them up
        scratch = cuda.shared.array(THREADS_PER_BLOCK, dtype=nb.float64)
        tid = cuda.threadIdx.x
        i = cuda.grid(1)
        stride = cuda.gridsize(1)

        acc = 0.0
        while i < a.size:
            acc += a[i] * b[i]
            i += stride
        scratch[tid] = acc
        cuda.syncthreads()

        offset = cuda.blockDim.x // 2
        while offset > 0:
            if tid < offset:
                scratch[tid] += scratch[tid + offset]
            cuda.syncthreads()
            offset //= 2

        if tid == 0:
            partial[cuda.blockIdx.x] = scratch[0]

    return GpuKernels(spmv_csr=spmv_csr, axpy=axpy, scale=scale, dot_product=dot_product)


class GpuContext:
    """
    Owned handle on a CUDA device and the compiled CG kernels.

    Args:
        force_unavailable: Report the device as unavailable without querying the driver,
            so callers always take the CPU path.
    """

    def __init__(self, force_unavailable: bool = False) -> None:
        self.force_unavailable = force_unavailable
        self.device_name: str = ""
        self._lock = threading.Lock()
        self._cuda: Any = None
        self._kernels: Optional[GpuKernels] = None
        self._initialized = False
        self._init_failed = False

    def __repr__(self) -> str:
        state = "forced-off" if self.force_unavailable else ("ready" if self._initialized else "uninitialized")
        return f"{self.__class__.__name__}({state}{', ' + self.device_name if self.device_name else ''})"

    @property
    def is_available(self) -> bool:
        if self.force_unavailable:
            return False
        self._ensure_initialized()
        return self._initialized

    def _ensure_initialized(self) -> None:
        if self._initialized or self._init_failed:
            return
        with self._lock:
            if self._initialized or self._init_failed:
                return
            try:
                from numba import cuda

                if not cuda.is_available():
                    logger.info("[GPU] No CUDA device available.")
                    self._init_failed = True
                    return

                device = cuda.get_current_device()
                name = device.name
                self.device_name = name.decode() if isinstance(name, bytes) else str(name)
                self._kernels = _compile_kernels(cuda)
                self._cuda = cuda
                self._initialized = True
                logger.info(f"[GPU] Context initialized on {self.device_name}")
            except Exception as e:
                # Driver, toolkit and import problems surface as many exception types
                logger.error(f"[GPU] Initialization failed: {e}")
                self._init_failed = True

    def shutdown(self) -> None:
        """Release the device context; a later solve initialises it again."""
        with self._lock:
            if self._initialized and self._cuda is not None:
                self._cuda.close()
                logger.info("[GPU] Context released.")
            self._cuda = None
            self._kernels = None
            self._initialized = False
            self._init_failed = False

    def solve(
        self,
        matrix: CsrMatrix,
        rhs: npt.NDArray[np.float64],
        tolerance: float = config.CG_TOLERANCE,
        max_iterations: int = config.CG_MAX_ITERATIONS,
        log: Optional[logging.Logger] = None,
    ) -> SolverResult:
        """
        Conjugate Gradient on the device.

        Raises:
            GpuUnavailableError: The device is unavailable or the solve failed.
        """
        if not self.is_available:
            raise GpuUnavailableError("No usable GPU device.")
        try:
            return self._solve(matrix, rhs, tolerance, max_iterations, log or logger)
        except Exception as e:
            raise GpuUnavailableError(f"GPU solve failed: {e}") from e

    def _solve(
        self,
        matrix: CsrMatrix,
        rhs: npt.NDArray[np.float64],
        tolerance: float,
        max_iterations: int,
        log: logging.Logger,
    ) -> SolverResult:
        cuda = self._cuda
        k = self._kernels
        n = rhs.size
        blocks = max(1, (n + THREADS_PER_BLOCK - 1) // THREADS_PER_BLOCK)

        # Per-call buffers, dropped when this call returns
        b = np.ascontiguousarray(rhs, dtype=np.float64)
        d_indptr = cuda.to_device(matrix.indptr)
        d_indices = cuda.to_device(matrix.indices)
        d_data = cuda.to_device(matrix.data)
        d_x = cuda.to_device(np.zeros(n, dtype=np.float64))
        d_r = cuda.to_device(b)
        d_p = cuda.to_device(b)
        d_ap = cuda.device_array(n, dtype=np.float64)
        d_partial = cuda.device_array(blocks, dtype=np.float64)

        def dot(a, c) -> float:
            k.dot_product[blocks, THREADS_PER_BLOCK](a, c, d_partial)
            cuda.synchronize()
            return float(d_partial.copy_to_host().sum())

        def result(iterations: int, residual: float, converged: bool = False, breakdown: bool = False) -> SolverResult:
            return SolverResult(
                pressures=d_x.copy_to_host(),
                iterations=iterations,
                residual=residual,
                converged=converged,
                breakdown=breakdown,
                backend="gpu",
            )

        rs_old = dot(d_r, d_r)
        residual = math.sqrt(rs_old)
        if residual < tolerance:
            return result(0, residual, converged=True)

        for iteration in range(max_iterations):
            k.spmv_csr[blocks, THREADS_PER_BLOCK](d_indptr, d_indices, d_data, d_p, d_ap)
            p_ap = dot(d_p, d_ap)

            if not math.isfinite(p_ap) or abs(p_ap) <= config.CG_BREAKDOWN_EPSILON * dot(d_p, d_p):
                log.warning(f"[GPU CG] Breakdown at iteration {iteration} (p·Ap = {p_ap:.3E})")
                return result(iteration, residual, breakdown=True)

            alpha = rs_old / p_ap
            k.axpy[blocks, THREADS_PER_BLOCK](d_x, d_p, alpha)
            k.axpy[blocks, THREADS_PER_BLOCK](d_r, d_ap, -alpha)

            rs_new = dot(d_r, d_r)
            residual = math.sqrt(rs_new)
            if residual < tolerance:
                log.info(f"[GPU CG] Converged in {iteration + 1} iterations")
                return result(iteration + 1, residual, converged=True)

            # p = r + beta * p
            k.scale[blocks, THREADS_PER_BLOCK](d_p, rs_new / rs_old)
            k.axpy[blocks, THREADS_PER_BLOCK](d_p, d_r, 1.0)
            cuda.synchronize()
            rs_old = rs_new

            if iteration % config.CG_LOG_EVERY == 0:
                log.debug(f"[GPU CG] Iteration {iteration}, residual: {residual:.3E}")

        log.warning(f"[GPU CG] Not converged after {max_iterations} iterations, residual {residual:.3E}")
        return result(max_iterations, residual)


_default_context: Optional[GpuContext] = None
_default_lock = threading.Lock()


def get_default_gpu_context() -> GpuContext:
    """Process-wide context for callers that don't manage their own."""
    global _default_context
    with _default_lock:
        if _default_context is None:
            _default_context = GpuContext()
        return _default_context
