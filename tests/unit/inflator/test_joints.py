"""
Unit tests for joint hulls and overlap detection.
"""

import numpy as np
import pytest

from wirelattice.core.config import ThicknessType
from wirelattice.core.wire_network import WireNetwork
from wirelattice.inflator.joints import (
    build_joints,
    find_overlapping_edges,
    joint_marker,
    segment_distances,
)
from wirelattice.inflator.phantom import (
    PhantomNetwork,
    build_phantom_network,
    compute_periodic_classes,
    periodic_end_radii,
)
from wirelattice.inflator.profile import WireProfile
from wirelattice.inflator.sweep import build_edge_rings, joint_offsets
from wirelattice.inflator.thickness import Thickness


def _unit_cell_phantom(network, diameter):
    cell_min, cell_max = np.zeros(3), np.ones(3)
    classes = compute_periodic_classes(network.vertices, cell_min, cell_max, 1e-6)
    thickness = Thickness(ThicknessType.PER_EDGE, np.full(network.num_edges, diameter))
    radii = periodic_end_radii(network, thickness, classes)
    return build_phantom_network(network, radii, classes, cell_min, cell_max, 0.2, 1e-6)


class TestJoints:
    """Tests for convex joint solids."""

    def test_marker(self):
        assert joint_marker(0) == -1
        assert joint_marker(7) == -8

    def test_tee_joint(self):
        phantom = PhantomNetwork(
            vertices=np.array([[0.0, 0, 0], [1.0, 0, 0], [-1.0, 0, 0], [0, 1.0, 0]]),
            edges=np.array([[0, 1], [0, 2], [0, 3]]),
            edge_sources=np.array([0, 1, 2]),
            vertex_sources=np.array([0, 1, 2, 3]),
            end_radii=np.full((3, 2), 0.1),
            cell_min=np.full(3, -1.0),
            cell_max=np.ones(3),
        )
        profile = WireProfile.create_isotropic(8)
        rings = build_edge_rings(phantom, joint_offsets(phantom, 1.0, 1.0), [profile] * 3)
        joints = build_joints(phantom, rings)
        assert len(joints) == 1
        assert joints[0].source == -1
        assert joints[0].mesh.is_watertight
        assert joints[0].mesh.volume > 0

    def test_cube_lattice_joints(self, unit_cube_network):
        phantom = _unit_cell_phantom(unit_cube_network, 0.1)
        profile = WireProfile.create_isotropic(8)
        rings = build_edge_rings(
            phantom, joint_offsets(phantom, 1.0, 1.0), [profile] * phantom.num_edges
        )
        joints = build_joints(phantom, rings)
        # Only the 8 corners of the cell have more than one incident edge
        assert len(joints) == 8
        assert {joint.source for joint in joints} == {-1}


class TestSegmentDistances:
    """Tests for closest distances between segments."""

    def test_cases(self):
        p0 = np.array([[0.0, 0, 0], [0.0, 0, 0], [0.0, 0, 0], [0.0, 0, 0]])
        p1 = np.array([[1.0, 0, 0], [1.0, 0, 0], [1.0, 0, 0], [1.0, 0, 0]])
        q0 = np.array([[0.0, 1, 0], [0.5, -1, 0], [0.5, 1, 1], [2.0, 0, 0]])
        q1 = np.array([[1.0, 1, 0], [0.5, 1, 0], [0.5, -1, 1], [3.0, 0, 0]])
        distances = segment_distances(p0, p1, q0, q1)
        np.testing.assert_allclose(distances, [1.0, 0.0, 1.0, 1.0], atol=1e-12)


class TestOverlaps:
    """Tests for wires crossing away from joints."""

    def test_cube_has_none(self, unit_cube_network):
        assert find_overlapping_edges(_unit_cell_phantom(unit_cube_network, 0.1)) == []

    def test_crossing_wires(self, caplog):
        network = WireNetwork(
            [[0, 0.5, 0.5], [1, 0.5, 0.5], [0.5, 0, 0.5], [0.5, 1, 0.5]],
            [[0, 1], [2, 3]],
        )
        assert find_overlapping_edges(_unit_cell_phantom(network, 0.1)) == [(0, 1)]
        assert "overlap" in caplog.text

    def test_parallel_close_wires(self):
        network = WireNetwork(
            [[0, 0.5, 0.5], [1, 0.5, 0.5], [0, 0.55, 0.5], [1, 0.55, 0.5]],
            [[0, 1], [2, 3]],
        )
        assert find_overlapping_edges(_unit_cell_phantom(network, 0.1)) == [(0, 1)]

    @pytest.mark.parametrize("diameter", [0.05, 0.2])
    def test_separated_wires(self, diameter):
        network = WireNetwork(
            [[0, 0.3, 0.5], [1, 0.3, 0.5], [0, 0.7, 0.5], [1, 0.7, 0.5]],
            [[0, 1], [2, 3]],
        )
        assert find_overlapping_edges(_unit_cell_phantom(network, diameter)) == []
