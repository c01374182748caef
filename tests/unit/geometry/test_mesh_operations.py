"""
Unit tests for mesh booleans, refinement and I/O.
"""

import numpy as np
import pytest
import trimesh

from wirelattice.core.config import RefinementScheme
from wirelattice.core.exceptions import GeometryError
from wirelattice.geometry.mesh_operations import (
    analyze_mesh,
    clip_to_box,
    export_mesh,
    load_mesh,
    refine_mesh,
    sources_path,
    union_solids,
)
from wirelattice.geometry.validation import is_periodic, is_water_tight


def _box(lo, hi):
    lo, hi = np.asarray(lo, dtype=float), np.asarray(hi, dtype=float)
    return trimesh.creation.box(
        extents=hi - lo,
        transform=trimesh.transformations.translation_matrix(0.5 * (lo + hi)),
    )


class TestBooleans:
    """Tests for union and clipping."""

    def test_union(self):
        merged = union_solids([_box([0, 0, 0], [2, 1, 1]), _box([1, 0, 0], [3, 1, 1])])
        assert merged.is_watertight
        assert merged.volume == pytest.approx(3.0)

    def test_union_single(self):
        box = _box([0, 0, 0], [1, 1, 1])
        merged = union_solids([box])
        assert merged is not box
        assert merged.volume == pytest.approx(1.0)

    def test_union_empty(self):
        with pytest.raises(GeometryError, match="Nothing"):
            union_solids([])

    def test_clip(self):
        clipped = clip_to_box(_box([-1, -1, -1], [1, 1, 1]), np.zeros(3), np.ones(3))
        assert clipped.volume == pytest.approx(1.0)
        np.testing.assert_allclose(clipped.bounds, [[0, 0, 0], [1, 1, 1]])

    def test_clip_disjoint(self):
        with pytest.raises(GeometryError, match="empty"):
            clip_to_box(_box([2, 2, 2], [3, 3, 3]), np.zeros(3), np.ones(3))


class TestRefinement:
    """Tests for subdivision."""

    def test_simple_keeps_geometry(self, periodic_cube_mesh):
        mesh = trimesh.Trimesh(*periodic_cube_mesh, process=False)
        refined, values = refine_mesh(mesh, RefinementScheme.SIMPLE, 2, np.arange(12))
        assert len(refined.faces) == 12 * 16
        assert refined.volume == pytest.approx(1.0)
        assert values.tolist() == np.repeat(np.arange(12), 16).tolist()

    def test_loop_smooths(self, periodic_cube_mesh):
        mesh = trimesh.Trimesh(*periodic_cube_mesh, process=False)
        refined, values = refine_mesh(mesh, "loop", 1)
        assert values is None
        assert len(refined.faces) == 48
        assert refined.volume < 1.0

    def test_loop_holds_planes(self, periodic_cube_mesh):
        """Test that pinned planes keep planar regions and their outlines."""
        mesh = trimesh.Trimesh(*periodic_cube_mesh, process=False)
        planes = [(axis, value) for axis in range(3) for value in (0.0, 1.0)]
        refined, _ = refine_mesh(mesh, RefinementScheme.LOOP, 2, planes=planes)
        assert refined.volume == pytest.approx(1.0)
        assert is_water_tight(refined.vertices, refined.faces)
        assert is_periodic(refined.vertices, refined.faces, np.zeros(3), np.ones(3))

    def test_zero_iterations(self, periodic_cube_mesh):
        mesh = trimesh.Trimesh(*periodic_cube_mesh, process=False)
        refined, values = refine_mesh(mesh, RefinementScheme.LOOP, 0, np.zeros(12, dtype=int))
        assert len(refined.faces) == 12
        assert len(values) == 12


class TestAnalysis:
    """Tests for the mesh report."""

    def test_cube(self, periodic_cube_mesh):
        report = analyze_mesh(*periodic_cube_mesh)
        assert report["vertex_count"] == 8
        assert report["face_count"] == 12
        assert report["edge_count"] == 18
        assert report["is_watertight"]
        assert report["euler_number"] == 2
        assert report["volume"] == pytest.approx(1.0)
        assert report["surface_area"] == pytest.approx(6.0)
        assert report["size"] == [1.0, 1.0, 1.0]


class TestMeshIO:
    """Tests for loading and exporting meshes."""

    @pytest.mark.parametrize("suffix", [".stl", ".obj", ".ply", ".off"])
    def test_export_and_load(self, temp_dir, periodic_cube_mesh, suffix):
        path = export_mesh(*periodic_cube_mesh, temp_dir / f"cube{suffix}")
        vertices, faces = load_mesh(path)
        assert len(vertices) == 8
        assert len(faces) == 12

    def test_sources_sidecar(self, temp_dir, periodic_cube_mesh):
        sources = np.array([0, 1, 2, 3, -1, -1, 4, 5, 6, 7, -2, 8])
        path = export_mesh(*periodic_cube_mesh, temp_dir / "out" / "cube.ply", sources)
        sidecar = sources_path(path)
        assert sidecar.name == "cube.sources.txt"
        np.testing.assert_array_equal(np.loadtxt(sidecar, dtype=int), sources)

    def test_no_sidecar_without_sources(self, temp_dir, periodic_cube_mesh):
        path = export_mesh(*periodic_cube_mesh, temp_dir / "cube.stl")
        assert not sources_path(path).exists()

    def test_export_unsupported(self, temp_dir, periodic_cube_mesh):
        with pytest.raises(GeometryError, match="Unsupported"):
            export_mesh(*periodic_cube_mesh, temp_dir / "cube.xyz")

    def test_load_missing(self, temp_dir):
        with pytest.raises(GeometryError, match="not found"):
            load_mesh(temp_dir / "missing.stl")

    def test_load_unsupported(self, temp_dir):
        path = temp_dir / "cube.txt"
        path.write_text("not a mesh")
        with pytest.raises(GeometryError, match="Unsupported"):
            load_mesh(path)
