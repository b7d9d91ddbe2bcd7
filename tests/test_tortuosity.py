import pytest

from pnmflow.analysis.boundary import find_boundary_pores
from pnmflow.analysis.tortuosity import build_distance_graph, calculate_geometric_tortuosity
from pnmflow.model import FlowAxis, Network, Pore, Throat


def test_straight_tube_is_one(tube):
    assert calculate_geometric_tortuosity(tube, FlowAxis.Z) == pytest.approx(1.0)


def test_straight_chain_is_one(chain):
    assert calculate_geometric_tortuosity(chain, FlowAxis.Z) == pytest.approx(1.0)


def test_lattice_within_bounds(lattice):
    boundary = find_boundary_pores(lattice, FlowAxis.Z)
    tortuosity = calculate_geometric_tortuosity(lattice, FlowAxis.Z, boundary=boundary)
    assert 1.0 < tortuosity <= 10.0


def test_winding_path_is_longer():
    # Zig-zag: 0 -> 1 -> 2 -> 3 with large lateral excursions
    pores = [
        Pore(0, (0.0, 0.0, 0.0), 1.0),
        Pore(1, (40.0, 0.0, 10.0), 1.0),
        Pore(2, (0.0, 0.0, 20.0), 1.0),
        Pore(3, (40.0, 0.0, 30.0), 1.0),
    ]
    throats = [Throat(i, i, i + 1, 0.5) for i in range(3)]
    tortuosity = calculate_geometric_tortuosity(Network(pores, throats), FlowAxis.Z)
    assert tortuosity > 1.0


def test_clamped_at_ten():
    # Inlet and outlet only connected through a far detour
    pores = [
        Pore(0, (0.0, 0.0, 0.0), 1.0),
        Pore(1, (2000.0, 0.0, 0.0), 1.0),
        Pore(2, (2000.0, 0.0, 10.0), 1.0),
        Pore(3, (0.0, 0.0, 10.0), 1.0),
    ]
    throats = [Throat(0, 0, 1, 0.5), Throat(1, 1, 2, 0.5), Throat(2, 2, 3, 0.5)]
    assert calculate_geometric_tortuosity(Network(pores, throats), FlowAxis.Z) == 10.0


def test_disconnected_network_defaults_to_one(caplog):
    pores = [Pore(i, (0.0, 0.0, 10.0 * i), 1.0) for i in range(4)]
    throats = [Throat(0, 0, 1, 0.5), Throat(1, 2, 3, 0.5)]
    network = Network(pores, throats)
    boundary = find_boundary_pores(network, FlowAxis.Z)
    assert boundary.inlets == {0}
    assert calculate_geometric_tortuosity(network, FlowAxis.Z, boundary=boundary) == 1.0
    assert "No inlet-outlet path" in caplog.text


def test_distance_graph_keeps_shortest_parallel_edge(tube):
    tube.throats.append(Throat(1, 1, 0, 1.0))
    graph = build_distance_graph(tube, 1e-6)
    assert graph.nnz == 2
    assert graph[0, 1] == pytest.approx(10e-6)
    assert graph[1, 0] == pytest.approx(10e-6)
