import pytest

from pnmflow.model import ConductanceParameters, Engine, Fluid, PermeabilityOptions
from pnmflow.model.network import FlowAxis


def test_engines_are_deduplicated_in_canonical_order():
    options = PermeabilityOptions(engines=(Engine.LATTICE_BOLTZMANN, Engine.DARCY, "LatticeBoltzmann"))
    assert options.engines == (Engine.DARCY, Engine.LATTICE_BOLTZMANN)


def test_unknown_engine_raises():
    with pytest.raises(ValueError):
        PermeabilityOptions(engines=("Stokes",))


def test_axis_accepts_string():
    assert PermeabilityOptions(axis="X").axis is FlowAxis.X


def test_pressure_drop_is_signed():
    assert PermeabilityOptions(inlet_pressure=5.0, outlet_pressure=2.0).pressure_drop == 3.0
    assert PermeabilityOptions(inlet_pressure=1.0, outlet_pressure=2.0).pressure_drop == -1.0


@pytest.mark.parametrize("fluid, viscosity", [(Fluid.WATER, 1.0), (Fluid.AIR, 0.018), (Fluid.HEAVY_OIL, 100.0)])
def test_with_fluid(fluid, viscosity):
    assert PermeabilityOptions().with_fluid(fluid).viscosity == viscosity


def test_with_confining_pressure_keeps_other_parameters():
    options = PermeabilityOptions().with_confining_pressure(20.0, throat_compressibility=0.05)
    assert options.confining.enabled
    assert options.confining.is_active
    assert options.confining.pressure == 20.0
    assert options.confining.throat_compressibility == 0.05
    assert options.confining.pore_compressibility == 0.015


def test_zero_confining_pressure_is_inactive():
    assert not PermeabilityOptions().with_confining_pressure(0.0).confining.is_active


def test_conductance_defaults():
    parameters = ConductanceParameters()
    assert parameters.shape_factor == 0.6
    assert parameters.junction_loss_coefficient == 0.3


def test_engine_labels():
    assert Engine.NAVIER_STOKES.label == "Navier-Stokes"
    assert Engine("Darcy") is Engine.DARCY


def test_with_engines_normalizes_order():
    options = PermeabilityOptions().with_engines([Engine.NAVIER_STOKES, Engine.DARCY])
    assert options.engines == (Engine.DARCY, Engine.NAVIER_STOKES)
    assert PermeabilityOptions().engines == (Engine.DARCY,)
