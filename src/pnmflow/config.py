"""
Configuration & Physical Constants
==================================
This module serves as the central registry for unit conversions, numerical
limits and the empirical defaults used by the permeability solver.

Why is this file needed?
------------------------
1. Abstraction: It prevents magic numbers (1.01325e15, 0.6, 5000, ...)
   scattered throughout the code.
2. Calibration: The empirical conductance constants live in one place, so
   they can be recalibrated without touching the physics modules.

Exports:
    M2_TO_MILLIDARCY (float): Multiply m² by this to get millidarcy.
    CG_TOLERANCE (float): Residual norm at which Conjugate Gradient stops.
    CG_MAX_ITERATIONS (int): Iteration cap for Conjugate Gradient.
"""

# Unit conversions
MILLIDARCY_IN_M2: float = 9.869233e-16
DARCY_IN_M2: float = 9.869233e-13
M2_TO_MILLIDARCY: float = 1.01325e15
MICROMETER: float = 1e-6
CENTIPOISE: float = 1e-3
MEGAPASCAL: float = 1e6

# Network sanity bounds
DEFAULT_VOXEL_SIZE: float = 1.0  # μm
MAX_VOXEL_SIZE: float = 1000.0  # μm
MIN_SEGMENT_LENGTH: float = 1e-12  # m

# Default fluid and boundary pressures
DEFAULT_VISCOSITY: float = 1.0  # cP (water at 20 °C)
DEFAULT_INLET_PRESSURE: float = 1.0  # Pa
DEFAULT_OUTLET_PRESSURE: float = 0.0  # Pa

# Confining pressure model
DEFAULT_PORE_COMPRESSIBILITY: float = 0.015  # 1/MPa (typical sandstone)
DEFAULT_THROAT_COMPRESSIBILITY: float = 0.025  # 1/MPa
DEFAULT_CRITICAL_PRESSURE: float = 100.0  # MPa
MIN_RADIUS_FACTOR: float = 0.01
CLOSURE_THRESHOLD: float = 0.05
PORE_SIZE_EXPONENT_WEIGHT: float = 0.5
THROAT_SIZE_EXPONENT_WEIGHT: float = 1.0

# Boundary detection
BOUNDARY_MIN_TOLERANCE: float = 5.0  # voxels
BOUNDARY_TOLERANCE_FRACTION: float = 0.10
BOUNDARY_MAX_TOLERANCE_FRACTION: float = 0.30
BOUNDARY_TOLERANCE_GROWTH: float = 1.5
BOUNDARY_MIN_PORES: int = 5
BOUNDARY_PORES_DIVISOR: int = 50
BOUNDARY_FALLBACK_FRACTION: float = 0.10

# Tortuosity
MIN_TORTUOSITY: float = 1.0
MAX_TORTUOSITY: float = 10.0

# Conductance model (empirical, see ConductanceParameters)
SHAPE_FACTOR: float = 0.6
ENTRANCE_LENGTH_COEFFICIENT: float = 0.06
ENTRANCE_LENGTH_CAP: float = 0.10
CONSTRICTION_COEFFICIENT: float = 0.3
JUNCTION_LOSS_COEFFICIENT: float = 0.3
REFERENCE_DENSITY: float = 1000.0  # kg/m³, used in the simplified Reynolds number

# Linear solver
CG_TOLERANCE: float = 1e-6
CG_MAX_ITERATIONS: int = 5000
CG_BREAKDOWN_EPSILON: float = 1e-14
CG_LOG_EVERY: int = 50
GPU_THREADS_PER_BLOCK: int = 256

# Result sanity window
MIN_REASONABLE_PERMEABILITY: float = 0.001  # mD
MAX_REASONABLE_PERMEABILITY: float = 100000.0  # mD
