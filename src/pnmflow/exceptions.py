"""
Exception hierarchy used inside the solver pipeline.

These never cross ``pnmflow.permeability.calculate``; they are turned into
failed results with a logged message there.
"""


class PermeabilityError(Exception):
    """Base class for anticipated permeability calculation failures."""


class InvalidInputError(PermeabilityError):
    """Empty network, non-positive pressure drop, bad options."""


class DegenerateGeometryError(PermeabilityError):
    """All throats closed or no usable inlet/outlet pores."""


class SolverError(PermeabilityError):
    """The linear solver produced no usable pressure field."""


class GpuUnavailableError(SolverError):
    """The GPU backend could not be initialised or failed at runtime."""
