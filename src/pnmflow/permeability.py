"""
Permeability Calculator
=======================
Entry point of the package: absolute permeability of a pore network.

Why is this file needed?
------------------------
1. Orchestration: It runs the pipeline once per call. The steps are
   validation, boundary detection, tortuosity, stress geometry and then,
   per engine, assembly, solve and Darcy's law.
2. Degrade-and-log: Anticipated failures never escape ``calculate``. They are
   logged through the injected logger and reported as a ``FAILED`` status
   with zero permeability.
3. Isolation: Every call returns a fresh ``PermeabilityResults``; no state is
   shared between calls.

Functions:
    calculate: Run the requested engines and return the results.
    calculate_darcy_permeability: Single-engine shortcut, returns mD.
    calculate_navier_stokes_permeability: Single-engine shortcut, returns mD.
    calculate_lattice_boltzmann_permeability: Single-engine shortcut, returns mD.
"""
from __future__ import annotations

import logging
import math
import time
from typing import TYPE_CHECKING, Optional

import numpy as np

from pnmflow import config
from pnmflow.analysis.boundary import BoundaryPores, find_boundary_pores
from pnmflow.analysis.conductance import get_conductance_model
from pnmflow.analysis.stress import StressDependentGeometry, apply_confining_pressure
from pnmflow.analysis.tortuosity import calculate_geometric_tortuosity
from pnmflow.exceptions import InvalidInputError, PermeabilityError
from pnmflow.model.network import FlowAxis
from pnmflow.model.options import Engine, PermeabilityOptions
from pnmflow.model.results import CalculationStatus, EngineResult, FlowData, PermeabilityResults
from pnmflow.solvers.solver import solve_pressures
from pnmflow.solvers.system import build_linear_system

if TYPE_CHECKING:
    from pnmflow.model.network import Network
    from pnmflow.solvers.gpu import GpuContext
    from pnmflow.solvers.system import ThroatConductances

module_logger = logging.getLogger(__name__)

# Network attribute caching the last permeability of each engine
CACHED_PERMEABILITY_FIELDS: dict[Engine, str] = {
    Engine.DARCY: "darcy_permeability",
    Engine.NAVIER_STOKES: "navier_stokes_permeability",
    Engine.LATTICE_BOLTZMANN: "lattice_boltzmann_permeability",
}


class PermeabilityCalculator:
    """
    One permeability calculation of a network with fixed options.

    The network is read, except for the cached tortuosity and permeability
    fields which are written back after a successful run.
    """

    def __init__(
        self,
        network: Network,
        options: PermeabilityOptions,
        gpu_context: Optional[GpuContext] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        """
        Args:
            network: The pore network.
            options: Engines, fluid, boundary pressures and solver settings.
            gpu_context: Device context used when ``options.use_gpu`` is set.
            logger: Log sink for every step of the run.
        """
        self.network = network
        self.options = options
        self.gpu_context = gpu_context
        self.log = logger or module_logger
        self.voxel_size = network.voxel_size  # μm, replaced when out of range

    @property
    def voxel_size_m(self) -> float:
        return self.voxel_size * config.MICROMETER

    @property
    def viscosity_pas(self) -> float:
        return self.options.viscosity * config.CENTIPOISE

    def _validate(self) -> None:
        """
        Raises:
            InvalidInputError: The network or the options cannot be used.
        """
        network, options = self.network, self.options

        if network.is_empty:
            raise InvalidInputError("Network is empty or has no throats.")
        problems = network.validate()
        if problems:
            raise InvalidInputError("Invalid network: " + " ".join(problems))
        if not options.engines:
            raise InvalidInputError("No engine selected.")
        if not options.pressure_drop > 0.0:
            raise InvalidInputError(
                f"Pressure drop must be positive (inlet {options.inlet_pressure} Pa, outlet {options.outlet_pressure} Pa)."
            )
        if not options.viscosity > 0.0:
            raise InvalidInputError(f"Viscosity must be positive, got {options.viscosity} cP.")
        if not options.tolerance > 0.0 or options.max_iterations < 1:
            raise InvalidInputError("Solver tolerance and iteration cap must be positive.")

        confining = options.confining
        if confining.enabled:
            if confining.pressure < 0.0:
                raise InvalidInputError(f"Confining pressure must be non-negative, got {confining.pressure} MPa.")
            if not confining.critical_pressure > 0.0:
                raise InvalidInputError(f"Critical pressure must be positive, got {confining.critical_pressure} MPa.")
            if confining.pore_compressibility < 0.0 or confining.throat_compressibility < 0.0:
                raise InvalidInputError("Compressibilities must be non-negative.")

        if not 0.0 < self.voxel_size <= config.MAX_VOXEL_SIZE:
            self.log.warning(
                f"Invalid voxel size {self.voxel_size} μm, using the default {config.DEFAULT_VOXEL_SIZE} μm."
            )
            self.voxel_size = config.DEFAULT_VOXEL_SIZE

    def _tortuosity(self, boundary: BoundaryPores) -> float:
        if not self.options.correct_for_tortuosity:
            return 1.0

        cached = self.network.tortuosity
        if cached > 0.0 and cached != 1.0:
            self.log.info(f"[Tortuosity] Using cached value: {cached:.3f}")
            return cached

        tortuosity = calculate_geometric_tortuosity(
            self.network, self.options.axis, boundary=boundary, voxel_size_m=self.voxel_size_m, log=self.log
        )
        self.network.tortuosity = tortuosity
        self.log.info(f"[Tortuosity] Calculated: {tortuosity:.3f}")
        return tortuosity

    def run(self) -> PermeabilityResults:
        options = self.options
        results = PermeabilityResults(
            used_viscosity=options.viscosity,
            used_pressure_drop=options.pressure_drop,
            flow_axis=options.axis,
            pore_count=self.network.pore_count,
            throat_count=self.network.throat_count,
        )

        try:
            self._validate()
        except InvalidInputError as e:
            self.log.error(f"Permeability calculation aborted: {e}")
            results.status = CalculationStatus.FAILED
            results.message = str(e)
            results.engines = {engine: EngineResult(engine=engine, message=str(e)) for engine in options.engines}
            return results

        results.voxel_size = self.voxel_size
        self.log.info(
            f"Calculating permeability: {len(self.network.pores)} pores, {len(self.network.throats)} throats, "
            f"voxel {self.voxel_size} μm, axis {options.axis.value}, viscosity {options.viscosity} cP, "
            f"ΔP {options.pressure_drop} Pa"
        )

        boundary = find_boundary_pores(self.network, options.axis, voxel_size_m=self.voxel_size_m, log=self.log)
        results.model_length = boundary.model_length
        results.cross_sectional_area = boundary.cross_sectional_area
        results.inlet_pore_count = len(boundary.inlets)
        results.outlet_pore_count = len(boundary.outlets)

        if not boundary.is_valid or boundary.cross_sectional_area <= 0.0:
            message = "Could not identify inlet and outlet pores."
            self.log.error(message)
            results.status = CalculationStatus.FAILED
            results.message = message
            results.engines = {engine: EngineResult(engine=engine, message=message) for engine in options.engines}
            return results

        results.tortuosity = self._tortuosity(boundary)

        geometry = apply_confining_pressure(self.network, options.confining, log=self.log)
        if options.confining.is_active:
            results.applied_confining_pressure = options.confining.pressure
            results.effective_pore_reduction = geometry.pore_reduction * 100.0
            results.effective_throat_reduction = geometry.throat_reduction * 100.0
            results.closed_throats = geometry.closed_throats
            self.log.info(
                f"Confining pressure {options.confining.pressure} MPa: {geometry.closed_throats} throats closed, "
                f"pore reduction {results.effective_pore_reduction:.1f} %, "
                f"throat reduction {results.effective_throat_reduction:.1f} %"
            )

        for engine in options.engines:
            result = self._run_engine(engine, boundary, geometry, results.tortuosity)
            results.engines[engine] = result
            if result.ok:
                setattr(self.network, CACHED_PERMEABILITY_FIELDS[engine], result.corrected)

        n_ok = sum(result.ok for result in results.engines.values())
        if n_ok == len(results.engines):
            results.status = CalculationStatus.SUCCESS
        elif n_ok > 0:
            results.status = CalculationStatus.PARTIAL
            results.message = "; ".join(
                f"{engine.label}: {result.message}" for engine, result in results.engines.items() if not result.ok
            )
        else:
            results.status = CalculationStatus.FAILED
            results.message = "All engines failed."
        return results

    def _run_engine(
        self,
        engine: Engine,
        boundary: BoundaryPores,
        geometry: StressDependentGeometry,
        tortuosity: float,
    ) -> EngineResult:
        options = self.options
        result = EngineResult(engine=engine)
        start = time.perf_counter()

        try:
            model = get_conductance_model(engine, options.conductance)
            system = build_linear_system(
                self.network,
                model,
                boundary,
                geometry,
                self.viscosity_pas,
                self.voxel_size_m,
                options.inlet_pressure,
                options.outlet_pressure,
            )
            solution = solve_pressures(
                system,
                use_gpu=options.use_gpu,
                gpu_context=self.gpu_context,
                tolerance=options.tolerance,
                max_iterations=options.max_iterations,
                log=self.log,
            )
        except PermeabilityError as e:
            self.log.error(f"[{engine.label}] Calculation failed: {e}")
            result.message = str(e)
            result.elapsed_seconds = time.perf_counter() - start
            return result

        pressures = solution.pressures
        flows = self._throat_flows(system.conductances, pressures)
        total, inlet_net, outlet_net = self._boundary_flows(system.conductances, flows, boundary)

        k_m2 = total * self.viscosity_pas * boundary.model_length / (boundary.cross_sectional_area * options.pressure_drop)
        uncorrected = k_m2 * config.M2_TO_MILLIDARCY
        corrected = uncorrected / tortuosity ** 2 if options.correct_for_tortuosity else uncorrected

        result.status = CalculationStatus.SUCCESS
        result.uncorrected = uncorrected
        result.corrected = corrected
        result.total_flow_rate = total
        result.inlet_flow_rate = inlet_net
        result.outlet_flow_rate = outlet_net
        result.iterations = solution.iterations
        result.residual = solution.residual
        result.converged = solution.converged
        result.backend = solution.backend
        if not solution.converged:
            result.message = f"Solver did not converge (residual {solution.residual:.3E})."
        result.flow = FlowData(
            pore_pressures={p.id: float(pressures[p.id]) for p in self.network.pores},
            throat_flow_rates={
                throat.id: abs(float(flow))
                for throat, flow, active in zip(self.network.throats, flows, system.conductances.active)
                if active
            },
        )
        result.elapsed_seconds = time.perf_counter() - start

        self.log.info(
            f"[{engine.label}] Q = {total:.3E} m³/s, k = {uncorrected:.3E} mD, "
            f"k/τ² = {corrected:.3E} mD ({solution.backend}, {solution.iterations} iterations)"
        )
        self._sanity_check(engine, uncorrected)
        return result

    @staticmethod
    def _throat_flows(conductances: ThroatConductances, pressures: np.ndarray) -> np.ndarray:
        """Signed flow pore1 -> pore2 of every throat, zero for inactive throats."""
        flows = np.zeros(conductances.values.size, dtype=np.float64)
        active = conductances.active
        flows[active] = conductances.values[active] * (
            pressures[conductances.pore1_ids[active]] - pressures[conductances.pore2_ids[active]]
        )
        return flows

    @staticmethod
    def _boundary_flows(
        conductances: ThroatConductances,
        flows: np.ndarray,
        boundary: BoundaryPores,
    ) -> tuple[float, float, float]:
        """
        Flows across the boundary faces.

        Returns:
            Total flow rate (positive flow leaving the inlet pores), net signed
            flow leaving the inlet pores and net signed flow entering the
            outlet pores, all in m³/s.
        """
        active = conductances.active
        p1, p2 = conductances.pore1_ids, conductances.pore2_ids
        inlets = np.array(sorted(boundary.inlets), dtype=np.int64)
        outlets = np.array(sorted(boundary.outlets), dtype=np.int64)

        in1, in2 = np.isin(p1, inlets), np.isin(p2, inlets)
        out1, out2 = np.isin(p1, outlets), np.isin(p2, outlets)

        # Orient each crossing throat so positive means leaving the inlet face
        leaving_inlet = np.where(in1 & ~in2, flows, 0.0) + np.where(in2 & ~in1, -flows, 0.0)
        entering_outlet = np.where(out2 & ~out1, flows, 0.0) + np.where(out1 & ~out2, -flows, 0.0)
        leaving_inlet[~active] = 0.0
        entering_outlet[~active] = 0.0

        total = float(np.maximum(leaving_inlet, 0.0).sum())
        return total, float(leaving_inlet.sum()), float(entering_outlet.sum())

    def _sanity_check(self, engine: Engine, permeability: float) -> None:
        """Warn about an uncorrected permeability outside the plausible window; zero is not checked."""
        if not math.isfinite(permeability):
            self.log.warning(f"[{engine.label}] Permeability is not finite.")
        elif permeability <= 0.0:
            return
        elif permeability < config.MIN_REASONABLE_PERMEABILITY:
            self.log.warning(
                f"[{engine.label}] Permeability {permeability:.3E} mD is very low; check voxel size and throat radii."
            )
        elif permeability > config.MAX_REASONABLE_PERMEABILITY:
            self.log.warning(
                f"[{engine.label}] Permeability {permeability:.3E} mD is very high; check voxel size and units."
            )


def calculate(
    network: Network,
    options: Optional[PermeabilityOptions] = None,
    gpu_context: Optional[GpuContext] = None,
    logger: Optional[logging.Logger] = None,
) -> PermeabilityResults:
    """
    Compute the absolute permeability of ``network``.

    Anticipated failures (invalid input, degenerate geometry, solver failure)
    are logged and reported through ``PermeabilityResults.status``; they do
    not raise.

    Args:
        network: The pore network.
        options: Calculation options, defaults to Darcy along Z with water.
        gpu_context: Device context used when ``options.use_gpu`` is set.
        logger: Log sink, the module logger by default.

    Returns:
        A fresh results record owned by the caller.
    """
    calculator = PermeabilityCalculator(network, options or PermeabilityOptions(), gpu_context, logger)
    return calculator.run()


def _single_engine(
    engine: Engine,
    network: Network,
    pressure_difference_pa: float,
    viscosity_pas: float,
    axis: FlowAxis,
    logger: Optional[logging.Logger],
) -> float:
    options = PermeabilityOptions(
        engines=(engine,),
        axis=axis,
        viscosity=viscosity_pas / config.CENTIPOISE,
        inlet_pressure=pressure_difference_pa,
        outlet_pressure=0.0,
        correct_for_tortuosity=False,
    )
    return calculate(network, options, logger=logger).permeability(engine, corrected=False)


def calculate_darcy_permeability(
    network: Network,
    pressure_difference_pa: float,
    viscosity_pas: float,
    axis: FlowAxis = FlowAxis.Z,
    logger: Optional[logging.Logger] = None,
) -> float:
    """
    Uncorrected Darcy permeability in mD, 0.0 on failure.

    Args:
        network: The pore network.
        pressure_difference_pa: Inlet minus outlet pressure in Pa.
        viscosity_pas: Dynamic viscosity in Pa·s.
        axis: Flow direction.
        logger: Log sink.
    """
    return _single_engine(Engine.DARCY, network, pressure_difference_pa, viscosity_pas, axis, logger)


def calculate_navier_stokes_permeability(
    network: Network,
    pressure_difference_pa: float,
    viscosity_pas: float,
    axis: FlowAxis = FlowAxis.Z,
    logger: Optional[logging.Logger] = None,
) -> float:
    """Uncorrected Navier-Stokes permeability in mD, 0.0 on failure."""
    return _single_engine(Engine.NAVIER_STOKES, network, pressure_difference_pa, viscosity_pas, axis, logger)


def calculate_lattice_boltzmann_permeability(
    network: Network,
    pressure_difference_pa: float,
    viscosity_pas: float,
    axis: FlowAxis = FlowAxis.Z,
    logger: Optional[logging.Logger] = None,
) -> float:
    """Uncorrected Lattice-Boltzmann permeability in mD, 0.0 on failure."""
    return _single_engine(Engine.LATTICE_BOLTZMANN, network, pressure_difference_pa, viscosity_pas, axis, logger)
