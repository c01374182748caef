"""
Sweeping profiles along edges.

Each phantom edge becomes a closed prism: two rings of the edge's profile,
pulled back from the endpoints by the joint offsets, joined by lateral
quads and fan-triangulated end caps. Every solid piece also carries the
plane equations of its faces, which provenance uses as a convex distance.
"""

import logging
from dataclasses import dataclass, field

import numpy as np
import trimesh

from wirelattice.core.exceptions import GeometryError
from wirelattice.inflator.phantom import PhantomNetwork
from wirelattice.inflator.profile import WireProfile

logger = logging.getLogger(__name__)

# Above this |cos| with +Z, frames are built from +X instead.
_REFERENCE_SWITCH = 0.9


@dataclass
class SolidPiece:
    """
    Closed convex-ish solid contributing to the union.

    Attributes:
        mesh: Watertight, outward-oriented mesh
        source: Input edge index (>= 0) or joint marker -(vertex + 1)
        planes: (k, 4) face planes ``n . x + d``, positive outside
    """

    mesh: trimesh.Trimesh
    source: int
    planes: np.ndarray = field(init=False, repr=False)

    def __post_init__(self) -> None:
        normals = self.mesh.face_normals
        anchors = self.mesh.vertices[self.mesh.faces[:, 0]]
        offsets = -np.einsum("ij,ij->i", normals, anchors)
        self.planes = np.column_stack([normals, offsets])


@dataclass
class EdgeRings:
    """End rings of one swept edge."""

    start: np.ndarray  # (N, 3)
    end: np.ndarray  # (N, 3)
    start_center: np.ndarray
    end_center: np.ndarray


def edge_frame(direction: np.ndarray) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Right-handed frame (t, u, v) with ``u x v == t``.

    The frame depends only on the edge direction, so periodic images of an
    edge get identical frames.
    """
    t = direction / np.linalg.norm(direction)
    reference = np.array([0.0, 0.0, 1.0])
    if abs(t[2]) > _REFERENCE_SWITCH:
        reference = np.array([1.0, 0.0, 0.0])
    u = np.cross(reference, t)
    u /= np.linalg.norm(u)
    v = np.cross(t, u)
    return t, u, v


def joint_offsets(
    phantom: PhantomNetwork, joint_scale: float, profile_reach: float
) -> np.ndarray:
    """
    Distance each edge end is pulled back from its vertex.

    Vertices of degree 1 get no joint, so their tubes run to the vertex.

    Returns:
        (m', 2) offsets
    """
    incident = phantom.vertex_edges()
    offsets = np.zeros((phantom.num_edges, 2))
    for ends in incident:
        if len(ends) < 2:
            continue
        reach = max(phantom.end_radii[e, side] for e, side in ends)
        for e, side in ends:
            offsets[e, side] = joint_scale * profile_reach * reach
    return offsets


def check_edge_room(phantom: PhantomNetwork, offsets: np.ndarray) -> None:
    """
    Raises:
        GeometryError: If the joints at both ends of an edge meet or overlap
    """
    a, b = phantom.edges[:, 0], phantom.edges[:, 1]
    lengths = np.linalg.norm(phantom.vertices[b] - phantom.vertices[a], axis=1)
    crowded = np.nonzero(offsets.sum(axis=1) >= lengths)[0]
    if len(crowded):
        first = crowded[0]
        raise GeometryError(
            "Wire is too thick for its edge length",
            details={
                "edge": int(phantom.edge_sources[first]),
                "length": float(lengths[first]),
                "joint_offsets": offsets[first].tolist(),
            },
        )


def build_edge_rings(
    phantom: PhantomNetwork,
    offsets: np.ndarray,
    profiles: list[WireProfile],
) -> list[EdgeRings]:
    """
    Place the two end rings of every phantom edge.

    The radius varies linearly along the edge, so a pulled-back ring gets the
    interpolated radius at its position.

    Args:
        phantom: Tiled network
        offsets: (m', 2) joint offsets
        profiles: Profile per phantom edge
    """
    rings = []
    for e, (a, b) in enumerate(phantom.edges):
        pa, pb = phantom.vertices[a], phantom.vertices[b]
        direction = pb - pa
        length = float(np.linalg.norm(direction))
        t, u, v = edge_frame(direction)
        ra, rb = phantom.end_radii[e]
        s0 = offsets[e, 0] / length
        s1 = 1.0 - offsets[e, 1] / length
        c0 = pa + t * offsets[e, 0]
        c1 = pb - t * offsets[e, 1]
        profile = profiles[e]
        rings.append(EdgeRings(
            start=profile.place(c0, u, v, ra + (rb - ra) * s0),
            end=profile.place(c1, u, v, ra + (rb - ra) * s1),
            start_center=c0,
            end_center=c1,
        ))
    return rings


def tube_faces(num_samples: int) -> np.ndarray:
    """
    Triangles of a prism over rings ``A = 0..N-1`` and ``B = N..2N-1``.

    Centers are ``2N`` (start) and ``2N + 1`` (end). With counter-clockwise
    profiles and ``u x v == t`` the faces point outward.
    """
    n = num_samples
    i = np.arange(n)
    j = (i + 1) % n
    a_i, a_j, b_i, b_j = i, j, i + n, j + n
    lateral = np.vstack([
        np.column_stack([a_i, a_j, b_j]),
        np.column_stack([a_i, b_j, b_i]),
    ])
    start_cap = np.column_stack([np.full(n, 2 * n), a_j, a_i])
    end_cap = np.column_stack([np.full(n, 2 * n + 1), b_i, b_j])
    return np.vstack([lateral, start_cap, end_cap])


def sweep_edge(rings: EdgeRings, source: int) -> SolidPiece:
    """Closed tube between two end rings."""
    vertices = np.vstack([rings.start, rings.end, rings.start_center, rings.end_center])
    mesh = trimesh.Trimesh(vertices, tube_faces(len(rings.start)), process=False)
    return SolidPiece(mesh, source)


def sweep_edges(phantom: PhantomNetwork, rings: list[EdgeRings]) -> list[SolidPiece]:
    pieces = [
        sweep_edge(edge_rings, int(phantom.edge_sources[e]))
        for e, edge_rings in enumerate(rings)
    ]
    logger.debug("Swept %d edge tubes", len(pieces))
    return pieces
