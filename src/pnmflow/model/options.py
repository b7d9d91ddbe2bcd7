"""
Calculation Options
===================
Immutable input records describing one permeability calculation.

Classes:
    Engine: The closed set of flow-physics approximations.
    Fluid: Common fluids with their viscosities.
    ConductanceParameters: Empirical constants of the conductance models.
    ConfiningPressureOptions: Stress model applied to the geometry.
    PermeabilityOptions: The main options container.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import StrEnum
from typing import Iterable, Optional

from pnmflow import config
from pnmflow.model.network import FlowAxis


class Engine(StrEnum):
    DARCY = "Darcy"
    NAVIER_STOKES = "NavierStokes"
    LATTICE_BOLTZMANN = "LatticeBoltzmann"

    @property
    def label(self) -> str:
        return {
            Engine.DARCY: "Darcy",
            Engine.NAVIER_STOKES: "Navier-Stokes",
            Engine.LATTICE_BOLTZMANN: "Lattice-Boltzmann",
        }[self]


class Fluid(StrEnum):
    WATER = "Water (20°C)"
    AIR = "Air (20°C)"
    NITROGEN = "Nitrogen (20°C)"
    CO2 = "CO₂ (20°C)"
    LIGHT_OIL = "Oil (Light)"
    HEAVY_OIL = "Oil (Heavy)"

    @property
    def viscosity(self) -> float:
        """Dynamic viscosity in cP."""
        return FLUID_VISCOSITIES[self]


FLUID_VISCOSITIES: dict[Fluid, float] = {
    Fluid.WATER: 1.0,
    Fluid.AIR: 0.018,
    Fluid.NITROGEN: 0.018,
    Fluid.CO2: 0.015,
    Fluid.LIGHT_OIL: 5.0,
    Fluid.HEAVY_OIL: 100.0,
}


@dataclass(frozen=True)
class ConductanceParameters:
    """
    Empirically chosen constants of the throat conductance models.

    The shape factor keeps permeabilities of rock-like networks in a realistic
    range; lower values produce unrealistically high permeability.
    """
    shape_factor: float = config.SHAPE_FACTOR
    entrance_length_coefficient: float = config.ENTRANCE_LENGTH_COEFFICIENT
    entrance_length_cap: float = config.ENTRANCE_LENGTH_CAP
    constriction_coefficient: float = config.CONSTRICTION_COEFFICIENT
    junction_loss_coefficient: float = config.JUNCTION_LOSS_COEFFICIENT
    reference_density: float = config.REFERENCE_DENSITY


@dataclass(frozen=True)
class ConfiningPressureOptions:
    """
    Confining-pressure closure model. Pressures in MPa, compressibilities in 1/MPa.
    """
    enabled: bool = False
    pressure: float = 0.0
    pore_compressibility: float = config.DEFAULT_PORE_COMPRESSIBILITY
    throat_compressibility: float = config.DEFAULT_THROAT_COMPRESSIBILITY
    critical_pressure: float = config.DEFAULT_CRITICAL_PRESSURE

    @property
    def is_active(self) -> bool:
        return self.enabled and self.pressure > 0.0


@dataclass(frozen=True)
class PermeabilityOptions:
    """
    Everything a single ``calculate`` call needs besides the network.

    Viscosity is given in cP and boundary pressures in Pa.
    """
    engines: tuple[Engine, ...] = (Engine.DARCY,)
    axis: FlowAxis = FlowAxis.Z
    viscosity: float = config.DEFAULT_VISCOSITY
    inlet_pressure: float = config.DEFAULT_INLET_PRESSURE
    outlet_pressure: float = config.DEFAULT_OUTLET_PRESSURE
    correct_for_tortuosity: bool = True
    use_gpu: bool = False
    confining: ConfiningPressureOptions = field(default_factory=ConfiningPressureOptions)
    conductance: ConductanceParameters = field(default_factory=ConductanceParameters)
    tolerance: float = config.CG_TOLERANCE
    max_iterations: int = config.CG_MAX_ITERATIONS

    def __post_init__(self) -> None:
        # Normalise to a duplicate-free tuple in canonical engine order
        requested = {Engine(e) for e in self.engines}
        object.__setattr__(self, "engines", tuple(e for e in Engine if e in requested))
        object.__setattr__(self, "axis", FlowAxis(self.axis))

    @property
    def pressure_drop(self) -> float:
        return self.inlet_pressure - self.outlet_pressure

    def with_fluid(self, fluid: Fluid) -> PermeabilityOptions:
        """Return a copy using the viscosity of a preset fluid."""
        return replace(self, viscosity=fluid.viscosity)

    def with_engines(self, engines: Iterable[Engine]) -> PermeabilityOptions:
        return replace(self, engines=tuple(engines))

    def with_confining_pressure(
        self,
        pressure: float,
        pore_compressibility: Optional[float] = None,
        throat_compressibility: Optional[float] = None,
        critical_pressure: Optional[float] = None,
    ) -> PermeabilityOptions:
        """Return a copy with the confining-pressure model switched on at ``pressure`` MPa."""
        confining = ConfiningPressureOptions(
            enabled=True,
            pressure=pressure,
            pore_compressibility=self.confining.pore_compressibility if pore_compressibility is None else pore_compressibility,
            throat_compressibility=self.confining.throat_compressibility if throat_compressibility is None else throat_compressibility,
            critical_pressure=self.confining.critical_pressure if critical_pressure is None else critical_pressure,
        )
        return replace(self, confining=confining)
