"""
pnmflow
=======
Absolute permeability of pore networks by the resistor-network analogy.

Typical use::

    from pnmflow import Engine, Network, PermeabilityOptions, calculate

    network = Network.cubic((10, 10, 10), voxel_size=2.0)
    options = PermeabilityOptions(engines=(Engine.DARCY, Engine.NAVIER_STOKES))
    results = calculate(network, options)
    print(results.summary())
"""
from pnmflow.exceptions import (
    DegenerateGeometryError,
    GpuUnavailableError,
    InvalidInputError,
    PermeabilityError,
    SolverError,
)
from pnmflow.logging_config import setup_logging
from pnmflow.model import (
    CalculationStatus,
    ConductanceParameters,
    ConfiningPressureOptions,
    Engine,
    EngineResult,
    FlowAxis,
    FlowData,
    Fluid,
    Network,
    PermeabilityOptions,
    PermeabilityResults,
    Pore,
    Throat,
)
from pnmflow.permeability import (
    PermeabilityCalculator,
    calculate,
    calculate_darcy_permeability,
    calculate_lattice_boltzmann_permeability,
    calculate_navier_stokes_permeability,
)
from pnmflow.solvers.gpu import GpuContext
from pnmflow.utils import PressureUnit, convert_pressure

__version__ = "0.1.0"
