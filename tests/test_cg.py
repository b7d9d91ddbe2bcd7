import logging

import numpy as np
import pytest

from pnmflow.solvers.cg import solve_cg_cpu
from pnmflow.solvers.sparse import SparseMatrix


def _laplacian_1d(n: int) -> SparseMatrix:
    m = SparseMatrix(n)
    for i in range(n):
        m.add(i, i, 2.0)
        if i > 0:
            m.add(i, i - 1, -1.0)
        if i < n - 1:
            m.add(i, i + 1, -1.0)
    return m


def test_matches_direct_solve():
    matrix = _laplacian_1d(30)
    rhs = np.linspace(-1.0, 1.0, 30)
    result = solve_cg_cpu(matrix.to_csr(), rhs, tolerance=1e-10)
    expected = np.linalg.solve(matrix.to_csr().to_scipy().toarray(), rhs)
    assert result.converged
    assert result.backend == "cpu"
    np.testing.assert_allclose(result.pressures, expected, atol=1e-8)


def test_zero_rhs_returns_immediately():
    result = solve_cg_cpu(_laplacian_1d(5).to_csr(), np.zeros(5))
    assert result.converged
    assert result.iterations == 0
    np.testing.assert_array_equal(result.pressures, np.zeros(5))


def test_identity_converges_in_one_iteration():
    m = SparseMatrix(3)
    for i in range(3):
        m.set(i, i, 1.0)
    result = solve_cg_cpu(m.to_csr(), np.array([1.0, 0.5, 0.0]))
    assert result.converged
    assert result.iterations == 1
    np.testing.assert_allclose(result.pressures, [1.0, 0.5, 0.0])


def test_iteration_cap_logs_warning(caplog):
    with caplog.at_level(logging.WARNING, logger="pnmflow"):
        result = solve_cg_cpu(_laplacian_1d(50).to_csr(), np.ones(50), tolerance=1e-12, max_iterations=3)
    assert not result.converged
    assert result.iterations == 3
    assert result.is_finite
    assert "Not converged" in caplog.text


def test_breakdown_on_zero_matrix(caplog):
    with caplog.at_level(logging.WARNING, logger="pnmflow"):
        result = solve_cg_cpu(SparseMatrix(2).to_csr(), np.array([1.0, 1.0]))
    assert result.breakdown
    assert not result.converged
    assert "Breakdown" in caplog.text


def test_injected_logger(caplog):
    log = logging.getLogger("pnmflow.tests.cg")
    with caplog.at_level(logging.INFO, logger="pnmflow"):
        solve_cg_cpu(_laplacian_1d(4).to_csr(), np.ones(4), log=log)
    assert any(r.name == "pnmflow.tests.cg" and "Converged" in r.message for r in caplog.records)


@pytest.mark.parametrize("n", [1, 2, 17])
def test_small_sizes(n):
    result = solve_cg_cpu(_laplacian_1d(n).to_csr(), np.ones(n), tolerance=1e-10)
    assert result.converged
