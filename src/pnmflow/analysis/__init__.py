"""
The ANALYSIS layer holds the physics applied to a network before the solve:
stress-dependent geometry, boundary detection, tortuosity and throat
conductance models.
"""
from pnmflow.analysis.boundary import BoundaryPores, find_boundary_pores
from pnmflow.analysis.conductance import (
    CONDUCTANCE_MODELS,
    ConductanceModel,
    DarcyConductance,
    LatticeBoltzmannConductance,
    NavierStokesConductance,
    get_conductance_model,
    hagen_poiseuille,
)
from pnmflow.analysis.stress import StressDependentGeometry, apply_confining_pressure
from pnmflow.analysis.tortuosity import build_distance_graph, calculate_geometric_tortuosity
