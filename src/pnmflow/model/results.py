"""
Calculation Results
===================
Value objects returned by ``pnmflow.permeability.calculate``.

Every call returns a fresh ``PermeabilityResults``; nothing is kept in
module state, so concurrent calls never see each other's data.

Classes:
    CalculationStatus: Success/failure tag of a run.
    FlowData: Per-pore pressures and per-throat flow rates for visualisation.
    EngineResult: Outcome of one flow-physics engine.
    PermeabilityResults: Outcome of a whole calculation.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Dict, List, Optional

from pnmflow.model.network import FlowAxis
from pnmflow.model.options import Engine


class CalculationStatus(StrEnum):
    SUCCESS = "success"
    PARTIAL = "partial"
    FAILED = "failed"


@dataclass
class FlowData:
    pore_pressures: Dict[int, float] = field(default_factory=dict)  # Pa, keyed by pore ID
    throat_flow_rates: Dict[int, float] = field(default_factory=dict)  # |Q| in m³/s, keyed by throat ID


@dataclass
class EngineResult:
    """
    Permeability obtained with one engine. Permeabilities are in mD.
    """
    engine: Engine
    status: CalculationStatus = CalculationStatus.FAILED
    message: str = ""
    uncorrected: float = 0.0
    corrected: float = 0.0
    total_flow_rate: float = 0.0  # m³/s
    inlet_flow_rate: float = 0.0  # signed net flow leaving the inlet pores
    outlet_flow_rate: float = 0.0  # signed net flow entering the outlet pores
    iterations: int = 0
    residual: float = 0.0
    converged: bool = False
    backend: str = ""
    elapsed_seconds: float = 0.0
    flow: FlowData = field(default_factory=FlowData)

    @property
    def ok(self) -> bool:
        return self.status == CalculationStatus.SUCCESS

    @property
    def uncorrected_darcy(self) -> float:
        return self.uncorrected / 1000.0

    @property
    def corrected_darcy(self) -> float:
        return self.corrected / 1000.0


@dataclass
class PermeabilityResults:
    status: CalculationStatus = CalculationStatus.FAILED
    message: str = ""
    engines: Dict[Engine, EngineResult] = field(default_factory=dict)

    tortuosity: float = 1.0
    used_viscosity: float = 0.0  # cP
    used_pressure_drop: float = 0.0  # Pa
    model_length: float = 0.0  # m
    cross_sectional_area: float = 0.0  # m²
    voxel_size: float = 0.0  # μm
    flow_axis: FlowAxis = FlowAxis.Z
    pore_count: int = 0
    throat_count: int = 0
    inlet_pore_count: int = 0
    outlet_pore_count: int = 0

    applied_confining_pressure: float = 0.0  # MPa
    effective_pore_reduction: float = 0.0  # %
    effective_throat_reduction: float = 0.0  # %
    closed_throats: int = 0

    @property
    def ok(self) -> bool:
        return self.status == CalculationStatus.SUCCESS

    def permeability(self, engine: Engine, corrected: bool = True) -> float:
        """Permeability in mD for ``engine``; 0.0 when the engine was not run or failed."""
        result = self.engines.get(Engine(engine))
        if result is None:
            return 0.0
        return result.corrected if corrected else result.uncorrected

    @property
    def total_flow_rate(self) -> float:
        """Flow rate of the last engine that produced one."""
        for result in reversed(list(self.engines.values())):
            if result.ok:
                return result.total_flow_rate
        return 0.0

    @property
    def flow_data(self) -> Optional[FlowData]:
        """Flow snapshot of the last engine run, as the viewer expects a single field."""
        for result in reversed(list(self.engines.values())):
            if result.flow.pore_pressures:
                return result.flow
        return None

    def summary(self) -> str:
        """Render a plain-text report of the run."""
        lines: List[str] = [f"Status: {self.status.value}" + (f" ({self.message})" if self.message else "")]
        for engine, result in self.engines.items():
            if result.ok:
                lines.append(f"{engine.label} permeability:")
                lines.append(f"  Uncorrected: {result.uncorrected:.3E} mD ({result.uncorrected_darcy:.3f} D)")
                lines.append(f"  τ²-corrected: {result.corrected:.3E} mD ({result.corrected_darcy:.3f} D)")
            else:
                lines.append(f"{engine.label} permeability: failed - {result.message}")
        lines.append(f"Tortuosity: {self.tortuosity:.3f}")
        lines.append(f"Flow axis: {self.flow_axis.value}, pores: {self.pore_count}, throats: {self.throat_count}")
        lines.append(f"Model length: {self.model_length * 1e6:.1f} μm, area: {self.cross_sectional_area * 1e12:.3f} μm²")
        lines.append(f"Viscosity: {self.used_viscosity} cP, pressure drop: {self.used_pressure_drop} Pa")
        lines.append(f"Total flow rate: {self.total_flow_rate:.3E} m³/s")
        if self.applied_confining_pressure > 0:
            lines.append(
                f"Confining pressure: {self.applied_confining_pressure} MPa, "
                f"pore reduction {self.effective_pore_reduction:.1f} %, "
                f"throat reduction {self.effective_throat_reduction:.1f} %, "
                f"{self.closed_throats} throats closed"
            )
        return "\n".join(lines)
