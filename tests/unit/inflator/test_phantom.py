"""
Unit tests for periodic classes and the phantom network.
"""

import logging

import numpy as np
import pytest

from wirelattice.core.config import ThicknessType
from wirelattice.core.exceptions import GeometryError
from wirelattice.core.wire_network import WireNetwork
from wirelattice.inflator.phantom import (
    build_phantom_network,
    compute_periodic_classes,
    periodic_end_radii,
)
from wirelattice.inflator.thickness import Thickness

CELL_MIN = np.zeros(3)
CELL_MAX = np.ones(3)
TOL = 1e-6


def _phantom(network, thickness, margin=0.2):
    classes = compute_periodic_classes(network.vertices, CELL_MIN, CELL_MAX, TOL)
    radii = periodic_end_radii(network, thickness, classes)
    return build_phantom_network(network, radii, classes, CELL_MIN, CELL_MAX, margin, TOL)


class TestPeriodicClasses:
    """Tests for grouping periodic images."""

    def test_cube_corners_form_one_class(self, unit_cube_network):
        classes = compute_periodic_classes(unit_cube_network.vertices, CELL_MIN, CELL_MAX, TOL)
        assert classes.num_classes == 1
        assert classes.representatives.tolist() == [0]
        np.testing.assert_array_equal(classes.lattice_offsets, unit_cube_network.vertices)

    def test_face_centers_pair_up(self, load_network):
        network = load_network("star_3D", fit=False)
        classes = compute_periodic_classes(network.vertices, CELL_MIN, CELL_MAX, TOL)
        # center, then one class per pair of opposite face centers
        assert classes.num_classes == 4
        assert classes.labels[1] == classes.labels[2]
        assert classes.labels[3] == classes.labels[4]
        assert classes.labels[5] == classes.labels[6]
        assert classes.representatives.tolist() == [0, 1, 3, 5]

    def test_interior_vertices_are_singletons(self):
        vertices = np.array([[0.2, 0.3, 0.4], [0.6, 0.5, 0.4]])
        classes = compute_periodic_classes(vertices, CELL_MIN, CELL_MAX, TOL)
        assert classes.num_classes == 2
        assert np.all(classes.lattice_offsets == 0)

    def test_coincident_vertices(self):
        vertices = np.array([[0.5, 0.5, 0.5], [0.5 + 1e-9, 0.5, 0.5]])
        with pytest.raises(GeometryError, match="coincident"):
            compute_periodic_classes(vertices, CELL_MIN, CELL_MAX, TOL)


class TestPeriodicEndRadii:
    """Tests for periodically consistent radii."""

    def test_per_edge(self, unit_cube_network):
        classes = compute_periodic_classes(unit_cube_network.vertices, CELL_MIN, CELL_MAX, TOL)
        thickness = Thickness(ThicknessType.PER_EDGE, np.arange(1, 13) / 10.0)
        radii = periodic_end_radii(unit_cube_network, thickness, classes)
        np.testing.assert_allclose(radii[:, 0], np.arange(1, 13) / 20.0)

    def test_per_vertex_uses_representative(self, unit_cube_network):
        """Test that all periodic images of a vertex share its radius."""
        classes = compute_periodic_classes(unit_cube_network.vertices, CELL_MIN, CELL_MAX, TOL)
        thickness = Thickness(ThicknessType.PER_VERTEX, np.linspace(0.2, 0.9, 8))
        radii = periodic_end_radii(unit_cube_network, thickness, classes)
        np.testing.assert_allclose(radii, 0.1)


class TestPhantomNetwork:
    """Tests for tiling the network around the cell."""

    def test_cube_lattice(self, unit_cube_network):
        phantom = _phantom(unit_cube_network, Thickness(ThicknessType.PER_EDGE, np.full(12, 0.1)))
        # Lattice edges reaching [-0.2, 1.2]^3: 12 per axis
        assert phantom.num_edges == 36
        assert phantom.num_vertices == 32
        np.testing.assert_allclose(phantom.period, [1, 1, 1])

    def test_duplicates_keep_lowest_edge(self, unit_cube_network):
        phantom = _phantom(unit_cube_network, Thickness(ThicknessType.PER_EDGE, np.full(12, 0.1)))
        assert sorted(set(phantom.edge_sources.tolist())) == [0, 1, 8]
        assert set(phantom.vertex_sources.tolist()) == {0}

    def test_no_duplicate_edges(self, unit_cube_network):
        phantom = _phantom(unit_cube_network, Thickness(ThicknessType.PER_EDGE, np.full(12, 0.1)))
        keys = np.sort(phantom.edges, axis=1)
        assert len(np.unique(keys, axis=0)) == phantom.num_edges

    def test_interior_joint_degree(self, unit_cube_network):
        phantom = _phantom(unit_cube_network, Thickness(ThicknessType.PER_EDGE, np.full(12, 0.1)))
        incident = phantom.vertex_edges()
        origin = int(np.nonzero(np.all(phantom.vertices == 0.0, axis=1))[0][0])
        assert len(incident[origin]) == 6

    def test_mismatched_duplicates_warn(self, unit_cube_network, caplog):
        thickness = np.full(12, 0.1)
        thickness[2] = 0.2
        with caplog.at_level(logging.WARNING, logger="wirelattice.inflator.phantom"):
            phantom = _phantom(unit_cube_network, Thickness(ThicknessType.PER_EDGE, thickness))
        assert "disagree" in caplog.text
        # Edge 0 wins over its periodic duplicate edge 2
        np.testing.assert_allclose(phantom.end_radii[phantom.edge_sources == 0], 0.05)

    def test_interior_network_needs_no_images(self):
        """Test that a network far from the faces keeps only its own edges."""
        network = WireNetwork([[0.4, 0.5, 0.5], [0.6, 0.5, 0.5]], [[0, 1]])
        phantom = _phantom(network, Thickness(ThicknessType.PER_EDGE, [0.05]), margin=0.1)
        assert phantom.num_edges == 1
        assert phantom.edges.tolist() == [[0, 1]]

    def test_edges_keep_orientation(self):
        network = WireNetwork([[0.6, 0.5, 0.5], [0.4, 0.5, 0.5]], [[0, 1]])
        phantom = _phantom(network, Thickness(ThicknessType.PER_VERTEX, [0.1, 0.2]), margin=0.1)
        a, b = phantom.edges[0]
        np.testing.assert_allclose(phantom.vertices[a], [0.6, 0.5, 0.5])
        np.testing.assert_allclose(phantom.end_radii[0], [0.05, 0.1])
