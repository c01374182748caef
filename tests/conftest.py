"""
Pytest configuration and shared fixtures.
"""

import tempfile
from pathlib import Path

import numpy as np
import pytest

from wirelattice.core.wire_io import load_wire
from wirelattice.core.wire_network import WireNetwork

DATA_DIR = Path(__file__).parent / "data"
HALF_SIZE = 2.5


@pytest.fixture
def temp_dir():
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def data_dir():
    """Directory holding the sample .wire, orbit and modifier files."""
    return DATA_DIR


@pytest.fixture
def load_network():
    """Load a sample network by stem, fit into the [-2.5, 2.5] cell."""

    def _load(name: str, fit: bool = True) -> WireNetwork:
        network = load_wire(DATA_DIR / f"{name}.wire")
        network.compute_connectivity()
        if fit:
            network.scale_fit([-HALF_SIZE] * 3, [HALF_SIZE] * 3)
        return network

    return _load


@pytest.fixture
def cube_network(load_network):
    """Simple cubic cell: 8 corners, 12 edges."""
    return load_network("cube")


@pytest.fixture
def unit_cube_network():
    """Simple cubic cell in [0, 1]^3, built in memory."""
    vertices = np.array([
        [0, 0, 0], [1, 0, 0], [1, 1, 0], [0, 1, 0],
        [0, 0, 1], [1, 0, 1], [1, 1, 1], [0, 1, 1],
    ], dtype=float)
    edges = np.array([
        [0, 1], [1, 2], [2, 3], [3, 0],
        [4, 5], [5, 6], [6, 7], [7, 4],
        [0, 4], [1, 5], [2, 6], [3, 7],
    ])
    return WireNetwork(vertices, edges)


@pytest.fixture
def star_network(load_network):
    """Body center joined to the six face centers."""
    return load_network("star_3D")


def _cube_mesh():
    # Vertex i sits at (i & 1, (i >> 1) & 1, (i >> 2) & 1)
    vertices = np.array([[i & 1, (i >> 1) & 1, (i >> 2) & 1] for i in range(8)], dtype=float)
    faces = np.array([
        [0, 2, 1], [1, 2, 3],  # z = 0
        [4, 5, 6], [5, 7, 6],  # z = 1
        [0, 1, 4], [1, 5, 4],  # y = 0
        [2, 6, 3], [3, 6, 7],  # y = 1
        [0, 4, 2], [2, 4, 6],  # x = 0
        [1, 3, 5], [3, 7, 5],  # x = 1
    ])
    return vertices, faces


@pytest.fixture
def periodic_cube_mesh():
    """Unit cube whose opposite faces carry translated triangulations."""
    return _cube_mesh()


@pytest.fixture
def skewed_cube_mesh():
    """Unit cube whose x = 1 face uses the other diagonal."""
    vertices, faces = _cube_mesh()
    faces = faces.copy()
    faces[10] = [1, 7, 5]
    faces[11] = [1, 3, 7]
    return vertices, faces
