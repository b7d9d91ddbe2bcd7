import numpy as np
import pytest

from pnmflow.analysis.boundary import find_boundary_pores
from pnmflow.analysis.conductance import DarcyConductance, hagen_poiseuille
from pnmflow.analysis.stress import apply_confining_pressure
from pnmflow.exceptions import DegenerateGeometryError
from pnmflow.model import ConfiningPressureOptions, FlowAxis, Network, Pore, Throat
from pnmflow.solvers.system import build_linear_system, compute_throat_conductances


def _system(network, confining=None, inlet=1.0, outlet=0.0):
    boundary = find_boundary_pores(network, FlowAxis.Z)
    geometry = apply_confining_pressure(network, confining or ConfiningPressureOptions())
    return build_linear_system(network, DarcyConductance(), boundary, geometry, 1e-3, 1e-6, inlet, outlet), boundary


def test_throat_conductances(tube):
    geometry = apply_confining_pressure(tube, ConfiningPressureOptions())
    conductances = compute_throat_conductances(tube, DarcyConductance(), geometry, 1e-3, 1e-6)
    assert conductances.open_count == 1
    assert conductances.values[0] == pytest.approx(hagen_poiseuille(1.5e-6, 10e-6, 1e-3))


def test_voxel_size_scales_lengths_not_radii(tube):
    geometry = apply_confining_pressure(tube, ConfiningPressureOptions())
    conductances = compute_throat_conductances(tube, DarcyConductance(), geometry, 1e-3, 3e-6)
    # Radii stay in μm; only the 10-voxel pore distance grows to 30 μm
    assert conductances.values[0] == pytest.approx(hagen_poiseuille(1.5e-6, 30e-6, 1e-3))


def test_tube_system_fixes_both_pores(tube):
    system, _ = _system(tube, inlet=5.0, outlet=2.0)
    dense = system.matrix.to_csr().to_scipy().toarray()
    np.testing.assert_array_equal(dense, np.eye(2))
    np.testing.assert_array_equal(system.rhs, [5.0, 2.0])


def test_lattice_system_is_symmetric_with_dirichlet_rows(lattice):
    system, boundary = _system(lattice, inlet=1.0, outlet=0.0)
    a = system.matrix.to_csr().to_scipy()
    assert abs(a - a.T).max() < 1e-12

    dense = a.toarray()
    for pid in boundary.inlets | boundary.outlets:
        row = np.zeros(dense.shape[0])
        row[pid] = 1.0
        np.testing.assert_array_equal(dense[pid], row)
    for pid in boundary.inlets:
        assert system.rhs[pid] == 1.0
    for pid in boundary.outlets:
        assert system.rhs[pid] == 0.0

    interior = sorted({p.id for p in lattice.pores} - boundary.inlets - boundary.outlets)
    assert np.all(np.diag(dense)[interior] > 0.0)
    # Interior rows of a uniform lattice are scaled to O(1)
    assert system.conductance_scale > 0.0
    assert np.max(np.abs(dense)) < 10.0


def test_id_gaps_get_unit_rows():
    pores = [Pore(0, (0, 0, 0), 2.0), Pore(2, (0, 0, 10), 2.0), Pore(5, (0, 0, 20), 2.0)]
    throats = [Throat(0, 0, 2, 1.0), Throat(1, 2, 5, 1.0)]
    system, _ = _system(Network(pores, throats))
    dense = system.matrix.to_csr().to_scipy().toarray()
    assert dense.shape == (6, 6)
    for gap in (1, 3, 4):
        assert dense[gap, gap] == 1.0
        assert system.rhs[gap] == 0.0


def test_all_closed_raises(lattice):
    confining = ConfiningPressureOptions(enabled=True, pressure=500.0, critical_pressure=1000.0)
    with pytest.raises(DegenerateGeometryError):
        _system(lattice, confining)


def test_no_open_throat_raises(tube):
    tube.throats[0].radius = 0.0
    with pytest.raises(DegenerateGeometryError):
        _system(tube)
