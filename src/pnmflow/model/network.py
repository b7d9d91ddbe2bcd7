"""
Pore Network (Data Model)
=========================
In-memory pore/throat graph that the permeability solver reads.

Why is this file needed?
------------------------
1. Data: It holds pores (nodes) and throats (edges) together with the voxel
   size that maps grid units to physical lengths.
2. Caching: The solver writes derived scalars (tortuosity, permeabilities)
   back onto the network so repeated runs can reuse them.
3. Conversion: Pores, throats and positions are exposed as numpy arrays for
   the vectorised parts of the pipeline.

Classes:
    FlowAxis: Principal direction of the imposed pressure gradient.
    Pore: A void-space node.
    Throat: A constriction connecting two pores.
    Network: The container class.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
import itertools as it
import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

import numpy as np

from pnmflow import config

if TYPE_CHECKING:
    import numpy.typing as npt

logger = logging.getLogger(__name__)


class FlowAxis(StrEnum):
    X = "X"
    Y = "Y"
    Z = "Z"

    @property
    def index(self) -> int:
        """Column of this axis in a (N, 3) position array."""
        return "XYZ".index(self.value)

    @property
    def cross_indices(self) -> tuple[int, int]:
        """Columns of the two axes perpendicular to this one."""
        return tuple(i for i in range(3) if i != self.index)


@dataclass
class Pore:
    """
    Represents a pore body.

    Position is in voxel units, radius in micrometers.
    """
    id: int
    position: tuple[float, float, float]
    radius: float
    area: float = 0.0
    volume_voxels: float = 0.0
    volume_physical: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "position": list(self.position),
            "radius": self.radius,
            "area": self.area,
            "volume_voxels": self.volume_voxels,
            "volume_physical": self.volume_physical,
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Pore:
        return Pore(
            id=int(data["id"]),
            position=tuple(float(v) for v in data["position"]),
            radius=float(data["radius"]),
            area=float(data.get("area", 0.0)),
            volume_voxels=float(data.get("volume_voxels", 0.0)),
            volume_physical=float(data.get("volume_physical", 0.0)),
        )


@dataclass
class Throat:
    """
    Represents a throat between two pores. Radius in micrometers;
    a radius <= 0 marks the throat as closed.
    """
    id: int
    pore1_id: int
    pore2_id: int
    radius: float

    @property
    def is_closed(self) -> bool:
        return self.radius <= 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "pore1_id": self.pore1_id, "pore2_id": self.pore2_id, "radius": self.radius}

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Throat:
        return Throat(
            id=int(data["id"]),
            pore1_id=int(data["pore1_id"]),
            pore2_id=int(data["pore2_id"]),
            radius=float(data["radius"]),
        )


@dataclass
class Network:
    """
    Pore network model.

    The solver treats pores and throats as read-only during a run and only
    writes the cached scalar fields below.
    """
    pores: List[Pore] = field(default_factory=list)
    throats: List[Throat] = field(default_factory=list)
    voxel_size: float = config.DEFAULT_VOXEL_SIZE  # μm

    # Cached results written back by the solver
    tortuosity: float = 0.0
    darcy_permeability: float = 0.0
    navier_stokes_permeability: float = 0.0
    lattice_boltzmann_permeability: float = 0.0

    @property
    def pore_count(self) -> int:
        return len(self.pores)

    @property
    def throat_count(self) -> int:
        return len(self.throats)

    @property
    def is_empty(self) -> bool:
        return not self.pores or not self.throats

    @property
    def max_pore_id(self) -> int:
        return max(p.id for p in self.pores) if self.pores else -1

    @property
    def max_pore_radius(self) -> float:
        return max((p.radius for p in self.pores), default=0.0)

    @property
    def max_throat_radius(self) -> float:
        return max((t.radius for t in self.throats), default=0.0)

    def pore_index(self) -> Dict[int, int]:
        """Map pore ID -> position in ``self.pores``."""
        return {p.id: i for i, p in enumerate(self.pores)}

    def pore_ids(self) -> npt.NDArray[np.int64]:
        return np.array([p.id for p in self.pores], dtype=np.int64)

    def pore_positions(self) -> npt.NDArray[np.float64]:
        """(N, 3) array of pore centres in voxel units."""
        if not self.pores:
            return np.empty((0, 3), dtype=np.float64)
        return np.array([p.position for p in self.pores], dtype=np.float64)

    def pore_radii(self) -> npt.NDArray[np.float64]:
        return np.array([p.radius for p in self.pores], dtype=np.float64)

    def throat_radii(self) -> npt.NDArray[np.float64]:
        return np.array([t.radius for t in self.throats], dtype=np.float64)

    def throat_connections(self) -> npt.NDArray[np.int64]:
        """(M, 2) array of pore IDs joined by each throat."""
        if not self.throats:
            return np.empty((0, 2), dtype=np.int64)
        return np.array([(t.pore1_id, t.pore2_id) for t in self.throats], dtype=np.int64)

    def connections_per_pore(self) -> Dict[int, int]:
        """Coordination number of every pore."""
        counts = {p.id: 0 for p in self.pores}
        for throat in self.throats:
            for pid in (throat.pore1_id, throat.pore2_id):
                if pid in counts:
                    counts[pid] += 1
        return counts

    def validate(self) -> list[str]:
        """
        Check the structural invariants of the network.

        Returns:
            A list of human-readable problems; empty when the network is consistent.
        """
        problems: list[str] = []
        ids = [p.id for p in self.pores]
        if len(ids) != len(set(ids)):
            problems.append("Duplicate pore IDs.")
        if any(pid < 0 for pid in ids):
            problems.append("Negative pore IDs.")
        known = set(ids)
        missing = [t.id for t in self.throats if t.pore1_id not in known or t.pore2_id not in known]
        if missing:
            problems.append(f"{len(missing)} throats reference missing pores (first: {missing[0]}).")
        return problems

    def reset_cached_results(self) -> None:
        """Forget tortuosity and permeabilities written by earlier runs."""
        self.tortuosity = 0.0
        self.darcy_permeability = 0.0
        self.navier_stokes_permeability = 0.0
        self.lattice_boltzmann_permeability = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "voxel_size": self.voxel_size,
            "tortuosity": self.tortuosity,
            "darcy_permeability": self.darcy_permeability,
            "navier_stokes_permeability": self.navier_stokes_permeability,
            "lattice_boltzmann_permeability": self.lattice_boltzmann_permeability,
            "pores": [p.to_dict() for p in self.pores],
            "throats": [t.to_dict() for t in self.throats],
        }

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> Network:
        return Network(
            pores=[Pore.from_dict(p) for p in data.get("pores", [])],
            throats=[Throat.from_dict(t) for t in data.get("throats", [])],
            voxel_size=float(data.get("voxel_size", config.DEFAULT_VOXEL_SIZE)),
            tortuosity=float(data.get("tortuosity", 0.0)),
            darcy_permeability=float(data.get("darcy_permeability", 0.0)),
            navier_stokes_permeability=float(data.get("navier_stokes_permeability", 0.0)),
            lattice_boltzmann_permeability=float(data.get("lattice_boltzmann_permeability", 0.0)),
        )

    @staticmethod
    def cubic(
        shape: tuple[int, int, int],
        spacing: float = 10.0,
        pore_radius: float = 3.0,
        throat_radius: float = 1.5,
        voxel_size: float = config.DEFAULT_VOXEL_SIZE,
        radius_spread: float = 0.0,
        seed: Optional[int] = None,
    ) -> Network:
        """
        Build a regular cubic lattice network.

        Args:
            shape: Number of pores along X, Y and Z.
            spacing: Pore-centre distance in voxels.
            pore_radius: Mean pore radius in μm.
            throat_radius: Mean throat radius in μm.
            voxel_size: Physical size of one voxel in μm.
            radius_spread: Relative half-width of a uniform radius perturbation.
            seed: Seed for the perturbation.

        Returns:
            The generated network, pore IDs numbered from 0 in x-fastest order.
        """
        nx, ny, nz = shape
        rng = np.random.default_rng(seed)

        def perturbed(radius: float) -> float:
            if radius_spread <= 0.0:
                return radius
            return float(radius * (1.0 + rng.uniform(-radius_spread, radius_spread)))

        def pid(i: int, j: int, k: int) -> int:
            return i + nx * (j + ny * k)

        pores = [
            Pore(id=pid(i, j, k), position=(i * spacing, j * spacing, k * spacing), radius=perturbed(pore_radius))
            for k, j, i in it.product(range(nz), range(ny), range(nx))
        ]

        throats: list[Throat] = []
        for k, j, i in it.product(range(nz), range(ny), range(nx)):
            for di, dj, dk in ((1, 0, 0), (0, 1, 0), (0, 0, 1)):
                ii, jj, kk = i + di, j + dj, k + dk
                if ii < nx and jj < ny and kk < nz:
                    throats.append(
                        Throat(
                            id=len(throats),
                            pore1_id=pid(i, j, k),
                            pore2_id=pid(ii, jj, kk),
                            radius=perturbed(throat_radius),
                        )
                    )

        logger.debug(f"Generated cubic network {shape} with {len(pores)} pores and {len(throats)} throats.")
        return Network(pores=pores, throats=throats, voxel_size=voxel_size)
