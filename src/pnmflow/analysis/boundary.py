from __future__ import annotations

from dataclasses import dataclass, field
import logging
import math
from typing import TYPE_CHECKING, Optional

import numpy as np

from pnmflow import config

if TYPE_CHECKING:
    import numpy.typing as npt

    from pnmflow.model.network import FlowAxis, Network

logger = logging.getLogger(__name__)


@dataclass
class BoundaryPores:
    """
    Inlet and outlet pore IDs along a flow axis, with the physical model
    length (m) and cross-sectional area (m²) derived from the pore extent.
    """
    inlets: frozenset[int] = field(default_factory=frozenset)
    outlets: frozenset[int] = field(default_factory=frozenset)
    model_length: float = 0.0
    cross_sectional_area: float = 0.0
    tolerance: float = 0.0  # voxels
    used_fallback: bool = False

    @property
    def is_valid(self) -> bool:
        return bool(self.inlets) and bool(self.outlets) and self.model_length > 0.0


def _classify(
    coord: npt.NDArray[np.float64],
    lo: float,
    hi: float,
    tolerance: float,
) -> tuple[npt.NDArray[np.bool_], npt.NDArray[np.bool_]]:
    """Pores within ``tolerance`` of either end; a pore close to both goes to the nearer end."""
    dist_in = coord - lo
    dist_out = hi - coord
    inlet = (dist_in <= tolerance) & (dist_in <= dist_out)
    outlet = (dist_out <= tolerance) & ~inlet
    return inlet, outlet


def _extreme_pores(
    coord: npt.NDArray[np.float64],
    fraction: float,
) -> tuple[npt.NDArray[np.bool_], npt.NDArray[np.bool_]]:
    """
    Lowest and highest ``fraction`` of pores by position, at least one each
    and never more than half of the pores per side.
    """
    n_pores = coord.size
    order = np.argsort(coord, kind="stable")
    n_edge = min(max(1, math.ceil(fraction * n_pores)), n_pores // 2)
    inlet = np.zeros(n_pores, dtype=bool)
    outlet = np.zeros(n_pores, dtype=bool)
    if n_edge > 0:
        inlet[order[:n_edge]] = True
        outlet[order[-n_edge:]] = True
    return inlet, outlet


def find_boundary_pores(
    network: Network,
    axis: FlowAxis,
    voxel_size_m: Optional[float] = None,
    log: Optional[logging.Logger] = None,
) -> BoundaryPores:
    """
    Identify inlet and outlet pores along ``axis``.

    The tolerance starts at ``max(5, 10 % of the axis extent)`` voxels and
    grows by 1.5x, up to 30 % of the extent, until both sides hold at least
    ``max(5, pore_count / 50)`` pores. If a side is still empty, the extreme
    10 % of pores by position are used instead.

    Args:
        network: The pore network.
        axis: Flow direction.
        voxel_size_m: Physical voxel size in meters; defaults to the network's.
        log: Log sink, the module logger by default.

    Returns:
        The boundary pore sets, length and area.
    """
    log = log or logger
    positions = network.pore_positions()
    n_pores = positions.shape[0]
    if n_pores == 0:
        return BoundaryPores()

    if voxel_size_m is None:
        voxel_size_m = network.voxel_size * config.MICROMETER

    ids = network.pore_ids()
    lo = positions.min(axis=0)
    hi = positions.max(axis=0)
    extent = hi - lo

    # Actual pore extent, not the image bounds, so empty margins don't inflate L
    a = axis.index
    c1, c2 = axis.cross_indices
    model_length = float(extent[a]) * voxel_size_m
    area = max(float(extent[c1]), 1.0) * max(float(extent[c2]), 1.0) * voxel_size_m ** 2

    axis_extent = float(extent[a])
    if axis_extent <= 0.0:
        log.warning(f"[Boundary Detection] All pores share one {axis.value} coordinate; no flow length.")
        return BoundaryPores(model_length=0.0, cross_sectional_area=area)

    coord = positions[:, a]
    required = max(config.BOUNDARY_MIN_PORES, n_pores // config.BOUNDARY_PORES_DIVISOR)
    tolerance = max(config.BOUNDARY_MIN_TOLERANCE, config.BOUNDARY_TOLERANCE_FRACTION * axis_extent)
    max_tolerance = config.BOUNDARY_MAX_TOLERANCE_FRACTION * axis_extent

    inlet, outlet = _classify(coord, lo[a], hi[a], tolerance)
    while (np.count_nonzero(inlet) < required or np.count_nonzero(outlet) < required) and tolerance < max_tolerance:
        tolerance = min(tolerance * config.BOUNDARY_TOLERANCE_GROWTH, max_tolerance)
        inlet, outlet = _classify(coord, lo[a], hi[a], tolerance)

    used_fallback = False
    # The extreme pores always classify when the extent is positive, so this
    # only runs if the tolerance rule above leaves a side empty
    if not inlet.any() or not outlet.any():
        inlet, outlet = _extreme_pores(coord, config.BOUNDARY_FALLBACK_FRACTION)
        used_fallback = True
        log.warning(
            f"[Boundary Detection] Tolerance search failed, using the extreme {np.count_nonzero(inlet)} pores per side."
        )

    result = BoundaryPores(
        inlets=frozenset(int(i) for i in ids[inlet]),
        outlets=frozenset(int(i) for i in ids[outlet]),
        model_length=model_length,
        cross_sectional_area=area,
        tolerance=tolerance,
        used_fallback=used_fallback,
    )

    log.info(f"[Boundary Detection] Axis={axis.value}, L={model_length * 1e6:.1f} μm, A={area * 1e12:.3f} μm²")
    log.info(
        f"[Boundary Detection] Found {len(result.inlets)} inlet pores, {len(result.outlets)} outlet pores "
        f"(tolerance {tolerance:.2f} voxels)"
    )
    return result
