import logging

import numpy as np
import pytest

from pnmflow.analysis.stress import apply_confining_pressure
from pnmflow.model import ConfiningPressureOptions


@pytest.mark.parametrize(
    "confining",
    [ConfiningPressureOptions(), ConfiningPressureOptions(enabled=True, pressure=0.0), ConfiningPressureOptions(pressure=30.0)],
)
def test_inactive_model_leaves_radii_unchanged(rough_lattice, confining):
    geometry = apply_confining_pressure(rough_lattice, confining)
    np.testing.assert_array_equal(geometry.pore_radii, rough_lattice.pore_radii())
    np.testing.assert_array_equal(geometry.throat_radii, rough_lattice.throat_radii())
    assert geometry.closed_throats == 0
    assert geometry.throat_open.all()
    assert geometry.pore_reduction == 0.0


def test_radii_shrink_and_small_throats_shrink_more(rough_lattice):
    geometry = apply_confining_pressure(rough_lattice, ConfiningPressureOptions(enabled=True, pressure=40.0))
    original = rough_lattice.throat_radii()
    assert np.all(geometry.pore_radii < rough_lattice.pore_radii())
    assert np.all(geometry.throat_radii < original)

    factor = geometry.throat_radii / original
    order = np.argsort(original)
    assert np.all(np.diff(factor[order]) >= -1e-12)
    assert 0.0 < geometry.throat_reduction < 1.0


def test_reduction_grows_with_pressure(rough_lattice):
    low = apply_confining_pressure(rough_lattice, ConfiningPressureOptions(enabled=True, pressure=10.0))
    high = apply_confining_pressure(rough_lattice, ConfiningPressureOptions(enabled=True, pressure=60.0))
    assert high.pore_reduction > low.pore_reduction
    assert high.throat_reduction > low.throat_reduction
    assert np.all(high.throat_radii <= low.throat_radii)


def test_extreme_pressure_closes_throats_and_floors_pores(rough_lattice):
    confining = ConfiningPressureOptions(enabled=True, pressure=500.0, critical_pressure=1000.0)
    geometry = apply_confining_pressure(rough_lattice, confining)
    assert geometry.all_closed
    assert geometry.closed_throats == rough_lattice.throat_count
    assert np.all(geometry.throat_radii == 0.0)
    np.testing.assert_allclose(geometry.pore_radii, 0.01 * rough_lattice.pore_radii())


def test_critical_pressure_warning(tube, caplog):
    confining = ConfiningPressureOptions(enabled=True, pressure=120.0, critical_pressure=100.0)
    with caplog.at_level(logging.WARNING, logger="pnmflow"):
        apply_confining_pressure(tube, confining)
    assert "critical pressure" in caplog.text


def test_network_is_not_modified(tube):
    apply_confining_pressure(tube, ConfiningPressureOptions(enabled=True, pressure=50.0))
    assert tube.throats[0].radius == 1.5
    assert tube.pores[0].radius == 3.0
