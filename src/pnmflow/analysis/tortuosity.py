from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Optional

import numpy as np
import scipy as sp
from scipy.sparse.csgraph import dijkstra

from pnmflow import config
from pnmflow.analysis.boundary import BoundaryPores, find_boundary_pores

if TYPE_CHECKING:
    import numpy.typing as npt

    from pnmflow.model.network import FlowAxis, Network

logger = logging.getLogger(__name__)

# Number of Dijkstra sources handled at once, bounds the (sources, pores) distance block
SOURCE_CHUNK = 64


def build_distance_graph(network: Network, voxel_size_m: float) -> sp.sparse.csr_matrix:
    """
    Undirected graph over pore indices weighted by centre-to-centre distance (m).

    Parallel throats between the same pair of pores keep the shortest edge.
    """
    n = network.pore_count
    index = network.pore_index()
    positions = network.pore_positions()

    pairs = [
        (index[t.pore1_id], index[t.pore2_id])
        for t in network.throats
        if t.pore1_id in index and t.pore2_id in index and t.pore1_id != t.pore2_id
    ]
    if not pairs:
        return sp.sparse.csr_matrix((n, n), dtype=np.float64)

    conns = np.sort(np.array(pairs, dtype=np.int64), axis=1)
    lengths = np.linalg.norm(positions[conns[:, 0]] - positions[conns[:, 1]], axis=1) * voxel_size_m
    # Explicit zeros would be dropped as non-edges
    lengths = np.maximum(lengths, config.MIN_SEGMENT_LENGTH)

    order = np.lexsort((lengths, conns[:, 1], conns[:, 0]))
    conns, lengths = conns[order], lengths[order]
    first = np.ones(len(conns), dtype=bool)
    first[1:] = np.any(conns[1:] != conns[:-1], axis=1)
    conns, lengths = conns[first], lengths[first]

    rows = np.concatenate([conns[:, 0], conns[:, 1]])
    cols = np.concatenate([conns[:, 1], conns[:, 0]])
    data = np.concatenate([lengths, lengths])
    return sp.sparse.csr_matrix((data, (rows, cols)), shape=(n, n))


def calculate_geometric_tortuosity(
    network: Network,
    axis: FlowAxis,
    boundary: Optional[BoundaryPores] = None,
    voxel_size_m: Optional[float] = None,
    log: Optional[logging.Logger] = None,
) -> float:
    """
    Geometric tortuosity: mean shortest inlet-to-outlet path length over the
    straight model length, clamped to [1, 10].

    Every inlet pore is a Dijkstra source; every reachable outlet contributes
    one path. Returns 1.0 when no path exists.

    Args:
        network: The pore network.
        axis: Flow direction.
        boundary: Precomputed boundary pores, found here when omitted.
        voxel_size_m: Physical voxel size in meters; defaults to the network's.
        log: Log sink, the module logger by default.
    """
    log = log or logger
    if network.pore_count == 0:
        return 1.0

    if voxel_size_m is None:
        voxel_size_m = network.voxel_size * config.MICROMETER
    if boundary is None:
        boundary = find_boundary_pores(network, axis, voxel_size_m=voxel_size_m, log=log)
    if not boundary.is_valid:
        return 1.0

    index = network.pore_index()
    inlet_idx = np.array(sorted(index[i] for i in boundary.inlets), dtype=np.int64)
    outlet_idx = np.array(sorted(index[i] for i in boundary.outlets), dtype=np.int64)

    graph = build_distance_graph(network, voxel_size_m)

    total_length = 0.0
    path_count = 0
    for start in range(0, len(inlet_idx), SOURCE_CHUNK):
        sources = inlet_idx[start:start + SOURCE_CHUNK]
        distances: npt.NDArray[np.float64] = dijkstra(csgraph=graph, directed=False, indices=sources)
        distances = np.atleast_2d(distances)[:, outlet_idx]
        reachable = np.isfinite(distances)
        total_length += float(distances[reachable].sum())
        path_count += int(np.count_nonzero(reachable))

    if path_count == 0:
        log.warning("[Tortuosity] No inlet-outlet path found, using tortuosity 1.0")
        return 1.0

    mean_path = total_length / path_count
    tortuosity = mean_path / boundary.model_length
    log.debug(f"[Tortuosity] {path_count} paths, mean length {mean_path * 1e6:.2f} μm")
    return float(np.clip(tortuosity, config.MIN_TORTUOSITY, config.MAX_TORTUOSITY))
