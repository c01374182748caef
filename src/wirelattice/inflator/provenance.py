"""
Face provenance: which edge (or joint) produced each output face.
"""

import numpy as np
from scipy.spatial import cKDTree

from wirelattice.inflator.sweep import SolidPiece

# Points per chunk when evaluating plane distances.
_CHUNK = 4096


def convex_distance(points: np.ndarray, planes: np.ndarray) -> np.ndarray:
    """
    Signed distance-like value of points to a convex solid.

    Negative inside, positive outside; it is the largest plane distance,
    which equals the true distance everywhere inside and near the faces.
    """
    return (points @ planes[:, :3].T + planes[:, 3]).max(axis=1)


def attribute_to_pieces(points: np.ndarray, pieces: list[SolidPiece]) -> np.ndarray:
    """
    Source of the piece each point lies closest to (deepest inside).

    Ties keep the earlier piece, and edge tubes come before joints, so a
    point shared by a tube and a joint is attributed to the edge.

    Args:
        points: (k, 3) query points, typically face centroids
        pieces: Solids that were unioned

    Returns:
        (k,) int sources
    """
    points = np.asarray(points, dtype=float)
    sources = np.array([piece.source for piece in pieces], dtype=int)
    result = np.empty(len(points), dtype=int)

    for start in range(0, len(points), _CHUNK):
        chunk = points[start:start + _CHUNK]
        best = np.full(len(chunk), np.inf)
        best_piece = np.zeros(len(chunk), dtype=int)
        for index, piece in enumerate(pieces):
            lo, hi = piece.mesh.bounds
            # A point outside this box is outside the piece, so the piece can
            # only win against pieces the point is also outside of.
            gap = np.maximum(np.maximum(lo - chunk, chunk - hi), 0.0).max(axis=1)
            candidates = np.nonzero(gap <= np.maximum(best, 0.0))[0]
            if len(candidates) == 0:
                continue
            distance = convex_distance(chunk[candidates], piece.planes)
            better = distance < best[candidates]
            best[candidates[better]] = distance[better]
            best_piece[candidates[better]] = index
        result[start:start + _CHUNK] = sources[best_piece]
    return result


def transfer_sources(
    targets: np.ndarray, references: np.ndarray, reference_sources: np.ndarray
) -> np.ndarray:
    """Copy the source of the nearest reference point onto each target point."""
    if len(targets) == 0:
        return np.zeros(0, dtype=int)
    _, nearest = cKDTree(references).query(targets)
    return np.asarray(reference_sources, dtype=int)[nearest]
