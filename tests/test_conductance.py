import math

import numpy as np
import pytest

from pnmflow.analysis.conductance import (
    DarcyConductance,
    LatticeBoltzmannConductance,
    NavierStokesConductance,
    get_conductance_model,
    hagen_poiseuille,
)
from pnmflow.model import ConductanceParameters, Engine

R_PORE = 3e-6
R_THROAT = 1.5e-6
LENGTH = 10e-6
MU = 1e-3


def test_hagen_poiseuille():
    expected = 0.6 * math.pi * R_THROAT ** 4 / (8.0 * MU * LENGTH)
    assert hagen_poiseuille(R_THROAT, LENGTH, MU) == pytest.approx(expected)


def test_darcy_uses_throat_only():
    model = DarcyConductance()
    g = model.conductance(R_PORE, R_PORE, R_THROAT, LENGTH, MU)
    assert isinstance(g, float)
    assert g == pytest.approx(hagen_poiseuille(R_THROAT, LENGTH, MU))
    assert model.conductance(1e-3, 1e-9, R_THROAT, LENGTH, MU) == pytest.approx(g)


def test_navier_stokes_effective_length():
    g = NavierStokesConductance().conductance(R_PORE, R_PORE, R_THROAT, LENGTH, MU)
    reynolds = 1000.0 * 2.0 * R_THROAT / MU
    entrance = min(0.06 * reynolds * R_THROAT, 0.1 * LENGTH)
    constriction = 1.0 + 0.3 * (R_THROAT / R_PORE) ** 2
    assert g == pytest.approx(hagen_poiseuille(R_THROAT, (LENGTH + entrance) * constriction, MU))
    assert g < DarcyConductance().conductance(R_PORE, R_PORE, R_THROAT, LENGTH, MU)


def test_lattice_boltzmann_series_resistances():
    g = LatticeBoltzmannConductance().conductance(R_PORE, R_PORE, R_THROAT, LENGTH, MU)
    pore = (1.0 + 0.3 * (1.0 - R_THROAT / R_PORE) ** 2) / hagen_poiseuille(R_PORE, 0.5 * R_PORE, MU)
    throat = 1.0 / hagen_poiseuille(R_THROAT, LENGTH - R_PORE, MU)
    assert g == pytest.approx(1.0 / (2.0 * pore + throat))


def test_lattice_boltzmann_without_pore_bodies():
    g = LatticeBoltzmannConductance().conductance(0.0, 0.0, R_THROAT, LENGTH, MU)
    assert g == pytest.approx(hagen_poiseuille(R_THROAT, LENGTH, MU))


@pytest.mark.parametrize("engine", list(Engine))
def test_closed_throat_has_zero_conductance(engine):
    model = get_conductance_model(engine)
    assert model.conductance(R_PORE, R_PORE, 0.0, LENGTH, MU) == 0.0
    assert model.conductance(R_PORE, R_PORE, -1e-6, LENGTH, MU) == 0.0


@pytest.mark.parametrize("engine", list(Engine))
def test_vectorised(engine):
    model = get_conductance_model(engine)
    radii = np.array([0.0, 1e-6, 2e-6])
    g = model.conductance(np.full(3, R_PORE), np.full(3, R_PORE), radii, np.full(3, LENGTH), MU)
    assert g.shape == (3,)
    assert g[0] == 0.0
    assert 0.0 < g[1] < g[2]
    assert model.ENGINE is engine


def test_zero_length_is_finite():
    g = DarcyConductance().conductance(R_PORE, R_PORE, R_THROAT, 0.0, MU)
    assert np.isfinite(g) and g > 0.0


def test_parameters_are_configurable():
    default = DarcyConductance().conductance(R_PORE, R_PORE, R_THROAT, LENGTH, MU)
    custom = get_conductance_model(Engine.DARCY, ConductanceParameters(shape_factor=0.3))
    assert custom.conductance(R_PORE, R_PORE, R_THROAT, LENGTH, MU) == pytest.approx(default / 2.0)
