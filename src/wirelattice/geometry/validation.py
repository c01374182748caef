"""
Mesh validity predicates used to certify inflation output.
"""

import logging
from collections import defaultdict
from typing import Optional

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from scipy.spatial import cKDTree

from wirelattice.core.config import DEFAULT_TOLERANCE

logger = logging.getLogger(__name__)


def _edge_counts(faces: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    edges = np.sort(faces[:, [0, 1, 1, 2, 2, 0]].reshape((-1, 2)), axis=1)
    return np.unique(edges, axis=0, return_counts=True)


def is_water_tight(vertices: np.ndarray, faces: np.ndarray) -> bool:
    """
    Every edge is shared by exactly two triangles, traversed in opposite
    directions.
    """
    faces = np.asarray(faces, dtype=int).reshape((-1, 3))
    if len(faces) == 0:
        return False
    _, counts = _edge_counts(faces)
    if np.any(counts != 2):
        return False
    directed = faces[:, [0, 1, 1, 2, 2, 0]].reshape((-1, 2))
    unique_directed = np.unique(directed, axis=0)
    return len(unique_directed) == len(directed)


def is_manifold(vertices: np.ndarray, faces: np.ndarray) -> bool:
    """
    Edge- and vertex-manifold: each edge has two faces and the faces around
    every vertex form a single fan.
    """
    faces = np.asarray(faces, dtype=int).reshape((-1, 3))
    if len(faces) == 0:
        return False
    _, counts = _edge_counts(faces)
    if np.any(counts != 2):
        return False

    # The link of a vertex is the ring of opposite edges; it must be one cycle.
    links: dict[int, list[tuple[int, int]]] = defaultdict(list)
    for a, b, c in faces.tolist():
        links[a].append((b, c))
        links[b].append((c, a))
        links[c].append((a, b))

    for vertex, link in links.items():
        nodes = sorted({v for edge in link for v in edge})
        if len(nodes) != len(link):
            return False
        index = {v: i for i, v in enumerate(nodes)}
        rows = [index[u] for u, _ in link]
        cols = [index[w] for _, w in link]
        graph = coo_matrix((np.ones(len(link)), (rows, cols)), shape=(len(nodes), len(nodes)))
        num_components, _ = connected_components(graph, directed=False)
        if num_components != 1:
            logger.debug("Vertex %d is not manifold", vertex)
            return False
    return True


def is_periodic(
    vertices: np.ndarray,
    faces: np.ndarray,
    cell_min: Optional[np.ndarray] = None,
    cell_max: Optional[np.ndarray] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> bool:
    """
    Opposite cell faces carry translated copies of the same triangulation.

    For each axis, the vertices on the maximum face translated by one period
    must coincide with the vertices on the minimum face, and so must the
    triangles lying in those faces.

    Args:
        vertices, faces: Mesh
        cell_min, cell_max: Cell; defaults to the mesh bounding box
        tolerance: Relative to the cell diagonal
    """
    vertices = np.asarray(vertices, dtype=float)
    faces = np.asarray(faces, dtype=int).reshape((-1, 3))
    lo = vertices.min(axis=0) if cell_min is None else np.asarray(cell_min, dtype=float)
    hi = vertices.max(axis=0) if cell_max is None else np.asarray(cell_max, dtype=float)
    eps = tolerance * float(np.linalg.norm(hi - lo))

    for axis in range(3):
        on_lo = np.abs(vertices[:, axis] - lo[axis]) <= eps
        on_hi = np.abs(vertices[:, axis] - hi[axis]) <= eps
        lo_ids, hi_ids = np.nonzero(on_lo)[0], np.nonzero(on_hi)[0]
        if len(lo_ids) != len(hi_ids):
            return False
        if len(lo_ids) == 0:
            continue

        shifted = vertices[hi_ids].copy()
        shifted[:, axis] -= hi[axis] - lo[axis]
        distances, nearest = cKDTree(vertices[lo_ids]).query(shifted)
        if np.any(distances > eps) or len(np.unique(nearest)) != len(hi_ids):
            return False
        to_lo = dict(zip(hi_ids.tolist(), lo_ids[nearest].tolist()))

        lo_faces = faces[np.all(on_lo[faces], axis=1)]
        hi_faces = faces[np.all(on_hi[faces], axis=1)]
        lo_set = {frozenset(face) for face in lo_faces.tolist()}
        hi_set = {frozenset(to_lo[v] for v in face) for face in hi_faces.tolist()}
        if lo_set != hi_set:
            return False
    return True


def face_source_is_valid(
    vertices: np.ndarray,
    faces: np.ndarray,
    face_sources: np.ndarray,
    num_edges: Optional[int] = None,
    num_vertices: Optional[int] = None,
) -> bool:
    """
    One integer source per face, each naming an input edge (``>= 0``) or a
    joint ``-(vertex + 1)``.

    Without ``num_edges`` and ``num_vertices`` only the length and the integer
    dtype are checked; any integer then passes. Pass both counts to reject
    sources naming a missing edge or vertex.
    """
    sources = np.asarray(face_sources)
    if len(sources) != len(faces):
        return False
    if len(sources) and not np.issubdtype(sources.dtype, np.integer):
        return False
    if num_edges is not None and np.any(sources >= num_edges):
        return False
    if num_vertices is not None and np.any(sources < -num_vertices):
        return False
    return True


def check_mesh(
    vertices: np.ndarray,
    faces: np.ndarray,
    cell_min: Optional[np.ndarray] = None,
    cell_max: Optional[np.ndarray] = None,
    tolerance: float = DEFAULT_TOLERANCE,
) -> dict:
    """Run every predicate and report the results by name."""
    return {
        "water_tight": is_water_tight(vertices, faces),
        "manifold": is_manifold(vertices, faces),
        "periodic": is_periodic(vertices, faces, cell_min, cell_max, tolerance),
    }
