import pytest

from pnmflow.model import Network, Pore, Throat


@pytest.fixture
def tube() -> Network:
    """Two pores 10 voxels apart along Z, joined by one throat."""
    return Network(
        pores=[
            Pore(id=0, position=(0.0, 0.0, 0.0), radius=3.0),
            Pore(id=1, position=(0.0, 0.0, 10.0), radius=3.0),
        ],
        throats=[Throat(id=0, pore1_id=0, pore2_id=1, radius=1.5)],
        voxel_size=1.0,
    )


@pytest.fixture
def chain() -> Network:
    """Eleven pores on a straight line along Z, 10 voxels apart."""
    pores = [Pore(id=i, position=(0.0, 0.0, 10.0 * i), radius=3.0) for i in range(11)]
    throats = [Throat(id=i, pore1_id=i, pore2_id=i + 1, radius=1.5) for i in range(10)]
    return Network(pores=pores, throats=throats, voxel_size=1.0)


@pytest.fixture
def lattice() -> Network:
    return Network.cubic((6, 6, 12), spacing=10.0, pore_radius=3.0, throat_radius=1.5, voxel_size=1.0)


@pytest.fixture
def rough_lattice() -> Network:
    return Network.cubic((5, 5, 10), spacing=10.0, voxel_size=2.0, radius_spread=0.4, seed=7)
