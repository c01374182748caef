"""
Mesh boolean, refinement and I/O operations for the inflation pipeline.

Provides:
- Boolean union of solid pieces and clipping to a box (via trimesh / manifold)
- Subdivision refinement that carries per-face values along
- Mesh analysis, loading and export

Everything works on trimesh.Trimesh objects or plain (vertices, faces)
arrays; failures surface as GeometryError.
"""

import logging
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import trimesh

from wirelattice.core.config import RefinementScheme
from wirelattice.core.exceptions import GeometryError

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = {".stl", ".obj", ".ply", ".off"}


# ---------------------------------------------------------------------------
# Boolean operations
# ---------------------------------------------------------------------------

def union_solids(meshes: List[trimesh.Trimesh]) -> trimesh.Trimesh:
    """
    Boolean union of many closed meshes.

    Args:
        meshes: Watertight, outward-oriented operands.

    Returns:
        Union mesh.

    Raises:
        GeometryError: If the boolean operation fails or is empty.
    """
    if not meshes:
        raise GeometryError("Nothing to union")
    if len(meshes) == 1:
        return meshes[0].copy()
    return _boolean_op(meshes, "union")


def clip_to_box(
    mesh: trimesh.Trimesh, box_min: np.ndarray, box_max: np.ndarray
) -> trimesh.Trimesh:
    """
    Boolean intersection of a mesh with an axis-aligned box.

    Args:
        mesh: Closed mesh.
        box_min: Box minimum corner (3,).
        box_max: Box maximum corner (3,).

    Returns:
        Clipped mesh.
    """
    box_min = np.asarray(box_min, dtype=float)
    box_max = np.asarray(box_max, dtype=float)
    box = trimesh.creation.box(
        extents=box_max - box_min,
        transform=trimesh.transformations.translation_matrix(0.5 * (box_min + box_max)),
    )
    return _boolean_op([mesh, box], "intersection")


def _boolean_op(meshes: List[trimesh.Trimesh], operation: str) -> trimesh.Trimesh:
    """Internal dispatcher for boolean operations."""
    try:
        logger.info(
            "Boolean %s: %d operands, %d faces total",
            operation, len(meshes), sum(len(m.faces) for m in meshes),
        )

        result = trimesh.boolean.boolean_manifold(meshes, operation)

        if result is None or not hasattr(result, "vertices") or len(result.vertices) == 0:
            raise GeometryError(f"Boolean {operation} produced empty result")

        logger.info(
            "Boolean %s result: %d verts, %d faces",
            operation, len(result.vertices), len(result.faces),
        )
        return result

    except GeometryError:
        raise
    except Exception as e:
        raise GeometryError(f"Boolean {operation} failed: {e}") from e


# ---------------------------------------------------------------------------
# Refinement
# ---------------------------------------------------------------------------

def refine_mesh(
    mesh: trimesh.Trimesh,
    scheme: RefinementScheme,
    iterations: int,
    face_values: Optional[np.ndarray] = None,
    planes: Optional[List[Tuple[int, float]]] = None,
) -> Tuple[trimesh.Trimesh, Optional[np.ndarray]]:
    """
    Subdivide a mesh, splitting every face into four per iteration.

    With LOOP, vertices lying exactly on one of ``planes`` keep their
    position, and new vertices on edges lying in such a plane are placed at
    the edge midpoint, so planar regions and their outlines survive the
    smoothing unchanged.

    Args:
        mesh: Input mesh.
        scheme: LOOP smooths, SIMPLE keeps the geometry.
        iterations: Number of subdivision passes.
        face_values: Optional per-face values inherited by the child faces.
        planes: Optional (axis, coordinate) planes to hold vertices on.

    Returns:
        Tuple of (refined mesh, refined face values).
    """
    scheme = RefinementScheme(scheme)
    vertices, faces = mesh.vertices, mesh.faces
    values = None if face_values is None else np.asarray(face_values)

    try:
        for _ in range(iterations):
            if scheme == RefinementScheme.LOOP:
                smoothed, new_faces = trimesh.remesh.subdivide_loop(vertices, faces, iterations=1)
                if planes:
                    smoothed = _restore_planar(vertices, smoothed, new_faces, planes)
                vertices, faces = smoothed, new_faces
            else:
                vertices, faces = trimesh.remesh.subdivide(vertices, faces)
            if values is not None:
                values = np.repeat(values, 4, axis=0)
    except Exception as e:
        raise GeometryError(f"{scheme.value} refinement failed: {e}") from e

    logger.info(
        "Refinement %s x%d: %d -> %d faces",
        scheme.value, iterations, len(mesh.faces), len(faces),
    )
    return trimesh.Trimesh(vertices, faces, process=False), values


def _on_planes(vertices: np.ndarray, planes: List[Tuple[int, float]]) -> np.ndarray:
    """(n, k) mask of which vertices lie exactly on which plane."""
    return np.column_stack([vertices[:, axis] == value for axis, value in planes])


def _restore_planar(
    coarse: np.ndarray,
    smoothed: np.ndarray,
    faces: np.ndarray,
    planes: List[Tuple[int, float]],
) -> np.ndarray:
    """
    Undo Loop smoothing for vertices that belong on a plane.

    Loop subdivision keeps the coarse vertices first; every new vertex sits on
    a coarse edge and is connected to exactly the two coarse endpoints.
    """
    n = len(coarse)
    result = np.array(smoothed, dtype=float)
    on_plane = _on_planes(coarse, planes)

    pinned = on_plane.any(axis=1)
    result[:n][pinned] = coarse[pinned]

    edges = np.unique(np.sort(faces[:, [0, 1, 1, 2, 2, 0]].reshape((-1, 2)), axis=1), axis=0)
    mixed = edges[(edges[:, 0] < n) & (edges[:, 1] >= n)]
    order = np.lexsort((mixed[:, 0], mixed[:, 1]))
    mixed = mixed[order]
    if len(mixed) % 2:
        raise GeometryError("Unexpected Loop subdivision connectivity")
    parents = mixed[:, 0].reshape((-1, 2))
    children = mixed[::2, 1]

    shared = np.any(on_plane[parents[:, 0]] & on_plane[parents[:, 1]], axis=1)
    result[children[shared]] = 0.5 * (coarse[parents[shared, 0]] + coarse[parents[shared, 1]])
    return result


# ---------------------------------------------------------------------------
# Mesh analysis
# ---------------------------------------------------------------------------

def analyze_mesh(vertices: np.ndarray, faces: np.ndarray) -> dict:
    """
    Analyze mesh quality and return a diagnostic report.

    Returns dict with: vertex_count, face_count, is_watertight, is_volume,
    euler_number, bounds, volume, surface_area.
    """
    try:
        tmesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
        bounds = tmesh.bounds.tolist()
        size = (tmesh.bounds[1] - tmesh.bounds[0]).tolist()

        return {
            "vertex_count": len(tmesh.vertices),
            "face_count": len(tmesh.faces),
            "edge_count": len(tmesh.edges_unique),
            "is_watertight": bool(tmesh.is_watertight),
            "is_volume": bool(tmesh.is_volume),
            "euler_number": int(tmesh.euler_number),
            "bounds_min": bounds[0],
            "bounds_max": bounds[1],
            "size": size,
            "volume": float(tmesh.volume) if tmesh.is_volume else None,
            "surface_area": float(tmesh.area),
        }
    except Exception as e:
        raise GeometryError(f"Mesh analysis failed: {e}") from e


# ---------------------------------------------------------------------------
# I/O
# ---------------------------------------------------------------------------

def load_mesh(file_path: str | Path) -> Tuple[np.ndarray, np.ndarray]:
    """
    Load a triangle mesh from file, merging duplicate vertices (STL stores
    a triangle soup).

    Raises:
        GeometryError: If the file is missing, unsupported or unreadable.
    """
    path = Path(file_path)

    if not path.exists():
        raise GeometryError(f"File not found: {path}")

    if path.suffix.lower() not in SUPPORTED_FORMATS:
        raise GeometryError(
            f"Unsupported format: {path.suffix}. "
            f"Supported formats: {SUPPORTED_FORMATS}"
        )

    try:
        loaded = trimesh.load(str(path))

        # Handle Scene vs Mesh
        if isinstance(loaded, trimesh.Scene):
            mesh = trimesh.util.concatenate(
                [geom for geom in loaded.geometry.values()
                 if isinstance(geom, trimesh.Trimesh)]
            )
        elif isinstance(loaded, trimesh.Trimesh):
            mesh = loaded
        else:
            raise GeometryError(f"Unexpected geometry type: {type(loaded)}")

        return np.asarray(mesh.vertices, dtype=float), np.asarray(mesh.faces, dtype=int)

    except GeometryError:
        raise
    except Exception as e:
        raise GeometryError(f"Failed to load geometry from {path}: {e}") from e


def sources_path(mesh_path: str | Path) -> Path:
    """Sidecar file holding one face source per line next to an exported mesh."""
    path = Path(mesh_path)
    return path.with_name(f"{path.stem}.sources.txt")


def export_mesh(
    vertices: np.ndarray,
    faces: np.ndarray,
    file_path: str | Path,
    face_sources: Optional[np.ndarray] = None,
) -> Path:
    """
    Save a mesh; face sources go to a sidecar text file when given.

    PLY files additionally carry the sources as a ``source`` face property.

    Returns:
        Path of the written mesh.

    Raises:
        GeometryError: If the format is unsupported or writing fails.
    """
    path = Path(file_path)
    if path.suffix.lower() not in SUPPORTED_FORMATS:
        raise GeometryError(
            f"Unsupported format: {path.suffix}. "
            f"Supported formats: {SUPPORTED_FORMATS}"
        )

    try:
        tmesh = trimesh.Trimesh(vertices=vertices, faces=faces, process=False)
        if face_sources is not None:
            tmesh.face_attributes["source"] = np.asarray(face_sources, dtype=np.int32)
        path.parent.mkdir(parents=True, exist_ok=True)
        tmesh.export(str(path))
        if face_sources is not None:
            np.savetxt(sources_path(path), np.asarray(face_sources, dtype=int), fmt="%d")
    except Exception as e:
        raise GeometryError(f"Failed to save geometry to {path}: {e}") from e

    logger.info("Exported %s: %d verts, %d faces", path.name, len(vertices), len(faces))
    return path
