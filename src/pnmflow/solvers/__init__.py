"""
The SOLVERS layer turns a pore network into pore pressures: assembly of the
network Laplacian, and Conjugate Gradient on the CPU (numba) or GPU (CUDA).
"""
from pnmflow.solvers.cg import SolverResult, solve_cg_cpu
from pnmflow.solvers.gpu import GpuContext, get_default_gpu_context
from pnmflow.solvers.solver import solve_pressures
from pnmflow.solvers.sparse import CsrMatrix, SparseMatrix
from pnmflow.solvers.system import LinearSystem, ThroatConductances, build_linear_system, compute_throat_conductances
