"""
Joint solids and wire overlap detection.

A joint is the convex hull of the incident end rings around a vertex of
degree two or more, plus the vertex itself.
"""

import logging

import numpy as np
import trimesh

from wirelattice.core.exceptions import GeometryError
from wirelattice.inflator.phantom import PhantomNetwork
from wirelattice.inflator.sweep import EdgeRings, SolidPiece

logger = logging.getLogger(__name__)


def joint_marker(vertex_index: int) -> int:
    """Face source value marking the joint of an input vertex."""
    return -(int(vertex_index) + 1)


def build_joints(phantom: PhantomNetwork, rings: list[EdgeRings]) -> list[SolidPiece]:
    """
    Convex hull joints for every phantom vertex of degree >= 2.

    Raises:
        GeometryError: If a hull cannot be computed
    """
    pieces = []
    for vertex, ends in enumerate(phantom.vertex_edges()):
        if len(ends) < 2:
            continue
        points = [phantom.vertices[vertex][None, :]]
        for e, side in ends:
            points.append(rings[e].start if side == 0 else rings[e].end)
        try:
            hull = trimesh.convex.convex_hull(np.vstack(points))
        except Exception as e:
            raise GeometryError(
                f"Failed to build joint hull: {e}",
                details={"vertex": int(phantom.vertex_sources[vertex])},
            ) from e
        pieces.append(SolidPiece(hull, joint_marker(phantom.vertex_sources[vertex])))

    logger.debug("Built %d joint hulls", len(pieces))
    return pieces


def segment_distances(
    p0: np.ndarray, p1: np.ndarray, q0: np.ndarray, q1: np.ndarray
) -> np.ndarray:
    """
    Closest distance between segment pairs ``p0-p1`` and ``q0-q1``.

    All arguments are (k, 3); returns (k,).
    """
    d1 = p1 - p0
    d2 = q1 - q0
    r = p0 - q0
    a = np.einsum("ij,ij->i", d1, d1)
    e = np.einsum("ij,ij->i", d2, d2)
    b = np.einsum("ij,ij->i", d1, d2)
    c = np.einsum("ij,ij->i", d1, r)
    f = np.einsum("ij,ij->i", d2, r)

    denom = a * e - b * b
    with np.errstate(divide="ignore", invalid="ignore"):
        s = np.where(denom > 1e-12 * a * e, (b * f - c * e) / denom, 0.0)
    s = np.clip(s, 0.0, 1.0)
    t = (b * s + f) / e
    t_clamped = np.clip(t, 0.0, 1.0)
    s = np.where(t != t_clamped, np.clip((b * t_clamped - c) / a, 0.0, 1.0), s)

    closest_p = p0 + d1 * s[:, None]
    closest_q = q0 + d2 * t_clamped[:, None]
    return np.linalg.norm(closest_p - closest_q, axis=1)


def find_overlapping_edges(phantom: PhantomNetwork) -> list[tuple[int, int]]:
    """
    Input edge pairs whose wires intersect away from a shared vertex.

    Two phantom edges that share no vertex overlap when their distance is
    below the sum of their largest radii. Only pairs involving an edge that
    touches the cell are checked.

    Returns:
        Sorted, unique (edge_a, edge_b) pairs of input edge indices
    """
    vertices = phantom.vertices
    a, b = phantom.edges[:, 0], phantom.edges[:, 1]
    seg_lo = np.minimum(vertices[a], vertices[b])
    seg_hi = np.maximum(vertices[a], vertices[b])
    radius = phantom.end_radii.max(axis=1)

    touching = np.all(seg_hi >= phantom.cell_min, axis=1) & np.all(seg_lo <= phantom.cell_max, axis=1)
    pairs: set[tuple[int, int]] = set()

    for i in np.nonzero(touching)[0]:
        reach = radius[i] + radius
        near = np.all(seg_lo - reach[:, None] <= seg_hi[i], axis=1) & np.all(
            seg_hi + reach[:, None] >= seg_lo[i], axis=1
        )
        near &= (a != a[i]) & (a != b[i]) & (b != a[i]) & (b != b[i])
        candidates = np.nonzero(near)[0]
        if len(candidates) == 0:
            continue
        k = len(candidates)
        distances = segment_distances(
            np.repeat(vertices[a[i]][None, :], k, axis=0),
            np.repeat(vertices[b[i]][None, :], k, axis=0),
            vertices[a[candidates]],
            vertices[b[candidates]],
        )
        for j in candidates[distances < reach[candidates]]:
            ea, eb = int(phantom.edge_sources[i]), int(phantom.edge_sources[j])
            pairs.add((min(ea, eb), max(ea, eb)))

    if pairs:
        logger.warning("%d pairs of wires overlap away from their joints", len(pairs))
    return sorted(pairs)
