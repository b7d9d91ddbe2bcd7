from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Union

import numpy as np

from pnmflow import config
from pnmflow.model.options import ConductanceParameters, Engine

if TYPE_CHECKING:
    import numpy.typing as npt

ArrayLike = Union[float, "npt.NDArray[np.float64]"]


def hagen_poiseuille(
    radius: ArrayLike,
    length: ArrayLike,
    viscosity: float,
    shape_factor: float = config.SHAPE_FACTOR,
) -> ArrayLike:
    """
    Hydraulic conductance of a cylindrical tube, g = F * pi * r^4 / (8 * mu * L).

    Args:
        radius: Tube radius in m.
        length: Tube length in m.
        viscosity: Dynamic viscosity in Pa·s.
        shape_factor: Correction for non-circular cross-sections.

    Returns:
        Conductance in m³/(Pa·s).
    """
    return shape_factor * np.pi * np.power(radius, 4) / (8.0 * viscosity * length)


class ConductanceModel(ABC):
    """
    Abstract base class for throat conductance models.

    All radii and lengths are in meters and already stress-adjusted.
    Works on scalars and on aligned numpy arrays.
    """
    ENGINE: Engine

    def __init__(self, parameters: ConductanceParameters | None = None) -> None:
        self.parameters = parameters or ConductanceParameters()

    def conductance(
        self,
        pore1_radius: ArrayLike,
        pore2_radius: ArrayLike,
        throat_radius: ArrayLike,
        length: ArrayLike,
        viscosity: float,
    ) -> ArrayLike:
        """
        Get the hydraulic conductance between two pores.

        Args:
            pore1_radius: Radius of the first pore (m).
            pore2_radius: Radius of the second pore (m).
            throat_radius: Radius of the throat (m); <= 0 means closed.
            length: Centre-to-centre distance (m).
            viscosity: Dynamic viscosity (Pa·s).

        Returns:
            Conductance in m³/(Pa·s), zero for closed throats.
        """
        r_p1 = np.asarray(pore1_radius, dtype=np.float64)
        r_p2 = np.asarray(pore2_radius, dtype=np.float64)
        r_t = np.asarray(throat_radius, dtype=np.float64)
        length = np.maximum(np.asarray(length, dtype=np.float64), config.MIN_SEGMENT_LENGTH)

        with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
            g = self._open_conductance(r_p1, r_p2, r_t, length, viscosity)
        g = np.where(r_t > 0.0, g, 0.0)
        return g if g.ndim else float(g)

    @abstractmethod
    def _open_conductance(
        self,
        r_p1: npt.NDArray[np.float64],
        r_p2: npt.NDArray[np.float64],
        r_t: npt.NDArray[np.float64],
        length: npt.NDArray[np.float64],
        viscosity: float,
    ) -> npt.NDArray[np.float64]:
        pass


class DarcyConductance(ConductanceModel):
    """
    Plain Hagen-Poiseuille flow through the throat over the full pore-to-pore length.
    """
    ENGINE = Engine.DARCY

    def _open_conductance(self, r_p1, r_p2, r_t, length, viscosity):
        return hagen_poiseuille(r_t, length, viscosity, self.parameters.shape_factor)


class NavierStokesConductance(ConductanceModel):
    """
    Hagen-Poiseuille with an effective length that accounts for the entrance
    region and the contraction from the pore bodies into the throat.
    """
    ENGINE = Engine.NAVIER_STOKES

    def _open_conductance(self, r_p1, r_p2, r_t, length, viscosity):
        p = self.parameters
        # Simplified Reynolds number with a unit reference velocity
        reynolds = p.reference_density * 2.0 * r_t / viscosity
        entrance = np.minimum(p.entrance_length_coefficient * reynolds * r_t, p.entrance_length_cap * length)

        r_pore = np.maximum(r_p1, r_p2)
        ratio = np.where(r_pore > 0.0, r_t / r_pore, 0.0)
        constriction = 1.0 + p.constriction_coefficient * ratio ** 2

        effective_length = (length + entrance) * constriction
        return hagen_poiseuille(r_t, effective_length, viscosity, p.shape_factor)


class LatticeBoltzmannConductance(ConductanceModel):
    """
    Half pore body - throat - half pore body resistors in series, with a
    junction loss at each pore-throat interface.
    """
    ENGINE = Engine.LATTICE_BOLTZMANN

    def _pore_resistance(self, r_p, r_t, viscosity):
        p = self.parameters
        body_length = np.maximum(0.5 * r_p, config.MIN_SEGMENT_LENGTH)
        junction = p.junction_loss_coefficient * (1.0 - r_t / r_p) ** 2
        resistance = (1.0 + junction) / hagen_poiseuille(r_p, body_length, viscosity, p.shape_factor)
        # A pore without a body adds no resistance
        return np.where(r_p > 0.0, resistance, 0.0)

    def _open_conductance(self, r_p1, r_p2, r_t, length, viscosity):
        throat_length = np.maximum(length - 0.5 * np.maximum(r_p1, 0.0) - 0.5 * np.maximum(r_p2, 0.0), config.MIN_SEGMENT_LENGTH)
        g_t = hagen_poiseuille(r_t, throat_length, viscosity, self.parameters.shape_factor)

        total_resistance = (
            self._pore_resistance(r_p1, r_t, viscosity)
            + 1.0 / g_t
            + self._pore_resistance(r_p2, r_t, viscosity)
        )
        return 1.0 / total_resistance


CONDUCTANCE_MODELS: dict[Engine, type[ConductanceModel]] = {
    Engine.DARCY: DarcyConductance,
    Engine.NAVIER_STOKES: NavierStokesConductance,
    Engine.LATTICE_BOLTZMANN: LatticeBoltzmannConductance,
}


def get_conductance_model(engine: Engine, parameters: ConductanceParameters | None = None) -> ConductanceModel:
    """Instantiate the conductance model of ``engine``."""
    return CONDUCTANCE_MODELS[Engine(engine)](parameters)
