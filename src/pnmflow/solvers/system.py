from __future__ import annotations

from dataclasses import dataclass
import logging
from typing import TYPE_CHECKING

import numpy as np

from pnmflow import config
from pnmflow.exceptions import DegenerateGeometryError
from pnmflow.solvers.sparse import SparseMatrix

if TYPE_CHECKING:
    import numpy.typing as npt

    from pnmflow.analysis.boundary import BoundaryPores
    from pnmflow.analysis.conductance import ConductanceModel
    from pnmflow.analysis.stress import StressDependentGeometry
    from pnmflow.model.network import Network

logger = logging.getLogger(__name__)


@dataclass
class ThroatConductances:
    """
    Physical conductance of every throat, aligned with ``network.throats``.
    Closed throats and throats with a missing pore have zero conductance.
    """
    pore1_ids: npt.NDArray[np.int64]
    pore2_ids: npt.NDArray[np.int64]
    values: npt.NDArray[np.float64]  # m³/(Pa·s)
    active: npt.NDArray[np.bool_]

    @property
    def open_count(self) -> int:
        return int(np.count_nonzero(self.active))


@dataclass
class LinearSystem:
    """
    Pore-pressure system ``matrix @ p = rhs``. Rows are indexed by pore ID.

    The matrix holds conductances divided by ``conductance_scale`` so its
    entries are O(1); the pressure solution does not depend on that scale.
    """
    matrix: SparseMatrix
    rhs: npt.NDArray[np.float64]
    conductances: ThroatConductances
    conductance_scale: float


def compute_throat_conductances(
    network: Network,
    model: ConductanceModel,
    geometry: StressDependentGeometry,
    viscosity_pas: float,
    voxel_size_m: float,
) -> ThroatConductances:
    """
    Evaluate ``model`` for every throat with stress-adjusted radii.

    Args:
        network: The pore network.
        model: Conductance model of the engine being run.
        geometry: Stress-adjusted radii (μm).
        viscosity_pas: Dynamic viscosity in Pa·s.
        voxel_size_m: Physical voxel size in m, scales pore positions only.
    """
    index = network.pore_index()
    conns = network.throat_connections()
    n_throats = conns.shape[0]

    idx1 = np.array([index.get(int(pid), -1) for pid in conns[:, 0]], dtype=np.int64)
    idx2 = np.array([index.get(int(pid), -1) for pid in conns[:, 1]], dtype=np.int64)
    known = (idx1 >= 0) & (idx2 >= 0)
    active = known & geometry.throat_open & (conns[:, 0] != conns[:, 1])

    values = np.zeros(n_throats, dtype=np.float64)
    if np.any(active):
        positions = network.pore_positions()
        a1, a2 = idx1[active], idx2[active]
        length = np.linalg.norm(positions[a1] - positions[a2], axis=1) * voxel_size_m
        values[active] = model.conductance(
            geometry.pore_radii[a1] * config.MICROMETER,
            geometry.pore_radii[a2] * config.MICROMETER,
            geometry.throat_radii[active] * config.MICROMETER,
            length,
            viscosity_pas,
        )

    return ThroatConductances(
        pore1_ids=conns[:, 0].copy(),
        pore2_ids=conns[:, 1].copy(),
        values=values,
        active=active & (values > 0.0),
    )


def build_linear_system(
    network: Network,
    model: ConductanceModel,
    boundary: BoundaryPores,
    geometry: StressDependentGeometry,
    viscosity_pas: float,
    voxel_size_m: float,
    inlet_pressure: float,
    outlet_pressure: float,
) -> LinearSystem:
    """
    Assemble the network Laplacian and impose Dirichlet pressures.

    Every open throat adds ``g`` to both diagonal entries and ``-g`` to both
    off-diagonal entries. Boundary rows are replaced by ``p_i = P`` and their
    columns are moved to the right-hand side so the matrix stays symmetric.

    Raises:
        DegenerateGeometryError: No throat can carry flow.
    """
    if geometry.all_closed:
        raise DegenerateGeometryError("All throats are closed.")

    conductances = compute_throat_conductances(network, model, geometry, viscosity_pas, voxel_size_m)
    if conductances.open_count == 0:
        raise DegenerateGeometryError("No open throat connects two pores.")

    size = network.max_pore_id + 1
    matrix = SparseMatrix(size)
    rhs = np.zeros(size, dtype=np.float64)

    scale = float(np.mean(conductances.values[conductances.active]))
    for i, j, g in zip(
        conductances.pore1_ids[conductances.active],
        conductances.pore2_ids[conductances.active],
        conductances.values[conductances.active] / scale,
    ):
        i, j, g = int(i), int(j), float(g)
        matrix.add(i, i, g)
        matrix.add(j, j, g)
        matrix.add(i, j, -g)
        matrix.add(j, i, -g)

    fixed: dict[int, float] = {pid: outlet_pressure for pid in boundary.outlets}
    fixed.update({pid: inlet_pressure for pid in boundary.inlets})

    for pid, pressure in fixed.items():
        # Column pid mirrors row pid before the row is cleared
        for neighbour in list(matrix.get_row(pid)):
            if neighbour != pid and neighbour not in fixed:
                rhs[neighbour] -= matrix.pop(neighbour, pid) * pressure
        matrix.clear_row(pid)
        matrix.set(pid, pid, 1.0)
        rhs[pid] = pressure

    # Unused IDs and pores without open throats get a trivial p = 0 row
    empty = 0
    for row in range(size):
        if not matrix.get_row(row):
            matrix.set(row, row, 1.0)
            empty += 1

    logger.debug(
        f"Linear system: {size} rows, {matrix.nnz} non-zeros, {conductances.open_count} open throats, "
        f"{len(fixed)} fixed pores, {empty} trivial rows, conductance scale {scale:.3E}"
    )
    return LinearSystem(matrix=matrix, rhs=rhs, conductances=conductances, conductance_scale=scale)
