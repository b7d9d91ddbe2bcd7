"""
The MODEL layer contains pure data structures: the pore network, the options of
a calculation and the results it returns. It has no knowledge of the solver.
"""
from pnmflow.model.network import FlowAxis, Network, Pore, Throat
from pnmflow.model.options import (
    ConductanceParameters,
    ConfiningPressureOptions,
    Engine,
    Fluid,
    PermeabilityOptions,
)
from pnmflow.model.results import CalculationStatus, EngineResult, FlowData, PermeabilityResults
