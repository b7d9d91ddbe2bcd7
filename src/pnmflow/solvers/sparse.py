from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict

import numpy as np
import numba as nb
import scipy as sp

if TYPE_CHECKING:
    import numpy.typing as npt


@nb.njit(parallel=True, cache=True)
def _csr_matvec(
    indptr: npt.NDArray[np.int32],
    indices: npt.NDArray[np.int32],
    data: npt.NDArray[np.float64],
    x: npt.NDArray[np.float64],
) -> npt.NDArray[np.float64]:
    """
    y = A @ x for a CSR matrix, rows distributed over threads.

    Rows are independent, so no synchronisation is needed beyond the implicit
    barrier at the end of the parallel loop.
    """
    n_rows = indptr.size - 1
    y = np.zeros(n_rows, dtype=np.float64)
    for i in nb.prange(n_rows):
        acc = 0.0
        for jj in range(indptr[i], indptr[i + 1]):
            acc += data[jj] * x[indices[jj]]
        y[i] = acc
    return y


class SparseMatrix:
    """
    Square row-store matrix used during assembly.

    Each row is a ``{column: value}`` dict, so additive assembly and row
    clearing are cheap. Convert with ``to_csr`` before solving.
    """

    def __init__(self, size: int) -> None:
        """
        Args:
            size: Number of rows and columns.
        """
        if size < 0:
            raise ValueError(f"Matrix size must be non-negative, got {size}.")
        self.size = size
        self._rows: list[Dict[int, float]] = [{} for _ in range(size)]

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(size={self.size}, nnz={self.nnz})"

    @property
    def nnz(self) -> int:
        return sum(len(row) for row in self._rows)

    def _check(self, row: int, col: int) -> None:
        if not (0 <= row < self.size and 0 <= col < self.size):
            raise IndexError(f"Entry ({row}, {col}) outside a {self.size}x{self.size} matrix.")

    def add(self, row: int, col: int, value: float) -> None:
        """A[row, col] += value"""
        self._check(row, col)
        entries = self._rows[row]
        entries[col] = entries.get(col, 0.0) + value

    def set(self, row: int, col: int, value: float) -> None:
        """A[row, col] = value"""
        self._check(row, col)
        self._rows[row][col] = value

    def get(self, row: int, col: int) -> float:
        self._check(row, col)
        return self._rows[row].get(col, 0.0)

    def pop(self, row: int, col: int) -> float:
        """Remove A[row, col] from the structure and return its value."""
        self._check(row, col)
        return self._rows[row].pop(col, 0.0)

    def clear_row(self, row: int) -> None:
        self._check(row, row)
        self._rows[row].clear()

    def get_row(self, row: int) -> Dict[int, float]:
        """Read-only view of a row; copy it before mutating the matrix."""
        self._check(row, row)
        return self._rows[row]

    def to_csr(self) -> CsrMatrix:
        """Freeze the matrix into compressed sparse row storage."""
        counts = np.fromiter((len(r) for r in self._rows), dtype=np.int64, count=self.size)
        nnz = int(counts.sum())
        rows = np.repeat(np.arange(self.size, dtype=np.int64), counts)
        cols = np.empty(nnz, dtype=np.int64)
        data = np.empty(nnz, dtype=np.float64)

        pos = 0
        for entries in self._rows:
            k = len(entries)
            if k:
                cols[pos:pos + k] = np.fromiter(entries.keys(), dtype=np.int64, count=k)
                data[pos:pos + k] = np.fromiter(entries.values(), dtype=np.float64, count=k)
                pos += k

        matrix = sp.sparse.csr_matrix((data, (rows, cols)), shape=(self.size, self.size))
        matrix.sort_indices()
        return CsrMatrix(
            indptr=matrix.indptr.astype(np.int32),
            indices=matrix.indices.astype(np.int32),
            data=matrix.data.astype(np.float64),
        )

    def multiply(self, vector: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Row-parallel matrix-vector product."""
        return self.to_csr().multiply(vector)


@dataclass(frozen=True)
class CsrMatrix:
    """
    Immutable compressed-sparse-row matrix used by the solvers, on the CPU
    and as the device layout on the GPU.
    """
    indptr: npt.NDArray[np.int32]
    indices: npt.NDArray[np.int32]
    data: npt.NDArray[np.float64]

    @property
    def size(self) -> int:
        return int(self.indptr.size - 1)

    @property
    def nnz(self) -> int:
        return int(self.data.size)

    def multiply(self, vector: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        """Row-parallel matrix-vector product."""
        x = np.ascontiguousarray(vector, dtype=np.float64)
        if x.shape != (self.size,):
            raise ValueError(f"Vector of shape {x.shape} does not match a {self.size}x{self.size} matrix.")
        return _csr_matvec(self.indptr, self.indices, self.data, x)

    def diagonal(self) -> npt.NDArray[np.float64]:
        return self.to_scipy().diagonal()

    def to_scipy(self) -> sp.sparse.csr_matrix:
        return sp.sparse.csr_matrix((self.data, self.indices, self.indptr), shape=(self.size, self.size))
