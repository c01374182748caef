"""
Periodic remeshing of the clipped solid's cell faces.

After clipping, the parts of the surface lying on the cell faces ("caps")
come out of the boolean with arbitrary triangulations, so opposite faces
do not match. This module removes the caps, makes the boundary loops of
the remaining surface agree vertex-for-vertex across opposite faces
(splitting boundary edges where one side has a vertex the other lacks),
and then rebuilds the caps: each minimum face is triangulated once and
the same triangulation, translated by one period, closes the maximum face.

Vertices on a cell edge line lie on two faces at once and are only ever
paired with vertices on the matching edge line. Every boundary point,
collinear ones included, ends up as a cap vertex, so the caps close the
surface without T-junctions.
"""

import logging
from collections import defaultdict

import manifold3d
import numpy as np
import trimesh
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from scipy.spatial import cKDTree
from shapely.geometry import LineString
from shapely.geometry.polygon import orient
from shapely.ops import polygonize, unary_union

from wirelattice.core.exceptions import GeometryError

logger = logging.getLogger(__name__)

LOW, HIGH = 0, 1
MAX_MATCH_PASSES = 5

# Booleans run in single precision: clipped vertices can sit this far
# (relative to the cell diagonal) off the cell faces and off their images.
BOOLEAN_PRECISION = 1e-5

# Fractions of the median boundary edge length on a pair of faces
PAIR_FRACTION = 0.01
INSERT_FRACTION = 0.05


def _plane_axes(axis: int) -> tuple[int, int]:
    # Cyclic order keeps e_b x e_c == e_axis.
    return (axis + 1) % 3, (axis + 2) % 3


def _point_in_triangles(point: np.ndarray, triangles: np.ndarray, tolerance: float) -> bool:
    """Whether a 2D point lies in any of the (k, 3, 2) triangles."""
    if len(triangles) == 0:
        return False
    a, b, c = triangles[:, 0], triangles[:, 1], triangles[:, 2]

    def cross(o, p, q):
        return (p[:, 0] - o[:, 0]) * (q[1] - o[:, 1]) - (p[:, 1] - o[:, 1]) * (q[0] - o[:, 0])

    area = _signed_areas(triangles)
    sign = np.where(area >= 0, 1.0, -1.0)
    w0 = cross(a, b, point) * sign
    w1 = cross(b, c, point) * sign
    w2 = cross(c, a, point) * sign
    slack = -tolerance * np.maximum(np.abs(area), tolerance)
    inside = (w0 >= slack) & (w1 >= slack) & (w2 >= slack) & (np.abs(area) > 0)
    return bool(np.any(inside))


def _signed_areas(triangles: np.ndarray) -> np.ndarray:
    """Twice the signed area of (k, 3, 2) triangles, positive counter-clockwise."""
    a, b, c = triangles[:, 0], triangles[:, 1], triangles[:, 2]
    return (b[:, 0] - a[:, 0]) * (c[:, 1] - a[:, 1]) - (b[:, 1] - a[:, 1]) * (c[:, 0] - a[:, 0])


def _is_between(p: np.ndarray, x: np.ndarray, q: np.ndarray, tolerance: float) -> bool:
    """Whether ``x`` lies on the open segment ``p``-``q``."""
    d = q - p
    length_sq = float(d @ d)
    if length_sq == 0.0:
        return False
    offset = x - p
    if not 0.0 < float(offset @ d) < length_sq:
        return False
    return abs(d[0] * offset[1] - d[1] * offset[0]) <= tolerance * np.sqrt(length_sq)


def split_collinear(ring: np.ndarray, tolerance: float) -> tuple[list[int], list[list[int]]]:
    """
    Corners of a closed 2D ring and the points lying straight between them.

    The ring is walked from its lexicographically smallest point, which is
    always a corner.

    Args:
        ring: (n, 2) points, without the closing repeat
        tolerance: Largest distance from a line still counted as on it

    Returns:
        (corners, between): ring indices of the corners, and for each corner
        the indices strictly inside the segment to the next corner, in order
    """
    n = len(ring)
    start = int(np.lexsort((ring[:, 1], ring[:, 0]))[0])
    order = [(start + k) % n for k in range(n)]
    corners, between = [order[0]], [[]]
    for k in range(1, n):
        i, following = order[k], order[(k + 1) % n]
        if _is_between(ring[corners[-1]], ring[i], ring[following], tolerance):
            between[-1].append(i)
        else:
            corners.append(i)
            between.append([])
    return corners, between


def fill_triangle(a: int, b: int, c: int, chains: dict[tuple[int, int], list[int]]) -> list[list[int]]:
    """
    Split triangle ``(a, b, c)`` at the vertices recorded along its sides.

    Each side carrying vertices is fanned from the opposite corner, so no
    piece is degenerate unless the triangle itself is. Winding is kept.

    Args:
        chains: Directed side ``(u, w)`` -> vertex ids strictly between, from u to w
    """
    for u, w, apex in ((a, b, c), (b, c, a), (c, a, b)):
        inner = chains.get((u, w))
        if inner:
            path = [u, *inner, w]
            pieces = []
            for p, q in zip(path[:-1], path[1:]):
                pieces.extend(fill_triangle(p, q, apex, chains))
            return pieces
    return [[a, b, c]]


class PeriodicBoundaryRemesher:
    """
    Rebuild the cell-face caps of a clipped, watertight mesh periodically.

    Example:
        >>> remesher = PeriodicBoundaryRemesher(clipped.vertices, clipped.faces,
        ...                                     cell_min, cell_max, tolerance)
        >>> vertices, faces = remesher.run()
    """

    def __init__(
        self,
        vertices: np.ndarray,
        faces: np.ndarray,
        cell_min: np.ndarray,
        cell_max: np.ndarray,
        tolerance: float,
    ):
        self.vertices = np.array(vertices, dtype=float)
        self.faces = [list(face) for face in np.asarray(faces, dtype=int)]
        self.cell_min = np.asarray(cell_min, dtype=float)
        self.cell_max = np.asarray(cell_max, dtype=float)
        self.bounds = np.vstack([self.cell_min, self.cell_max])
        self.tolerance = float(tolerance)
        self.snap = max(
            self.tolerance,
            BOOLEAN_PRECISION * float(np.linalg.norm(self.cell_max - self.cell_min)),
        )

        self._cap_triangles: dict[tuple[int, int], np.ndarray] = {}
        self._boundary: dict[tuple[int, int], int] = {}
        self._partners: list[dict[int, int]] = [{}, {}, {}]
        self._corners: dict[tuple[int, int, int], int] = {}
        self._inserted: dict[tuple[float, float, float], int] = {}
        self.num_inserted = 0

    # ------------------------------------------------------------------
    # Driver
    # ------------------------------------------------------------------

    def run(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Returns:
            (vertices, faces) of the closed, periodic mesh

        Raises:
            GeometryError: If the boundary loops cannot be made to match
        """
        self._snap()
        self._weld()
        self._remove_caps()
        self._collect_boundary()
        self._match_all()
        cap_faces = self._rebuild_caps()

        faces = np.array(self.faces + cap_faces, dtype=int).reshape((-1, 3))
        used = np.unique(faces)
        remap = np.full(len(self.vertices), -1, dtype=int)
        remap[used] = np.arange(len(used))
        logger.debug(
            "Periodic remesh: %d boundary vertices inserted, %d cap faces",
            self.num_inserted, len(cap_faces),
        )
        return self.vertices[used], remap[faces]

    # ------------------------------------------------------------------
    # Plane bookkeeping
    # ------------------------------------------------------------------

    def _on_plane(self, indices, axis: int, side: int) -> np.ndarray:
        return self.vertices[indices, axis] == self.bounds[side, axis]

    def _snap(self) -> None:
        for axis in range(3):
            for side in (LOW, HIGH):
                close = np.abs(self.vertices[:, axis] - self.bounds[side, axis]) <= self.snap
                self.vertices[close, axis] = self.bounds[side, axis]

    def _face_codes(self, indices) -> np.ndarray:
        """Bit mask of the cell faces each vertex lies on (0 when none)."""
        codes = np.zeros(len(indices), dtype=int)
        for axis in range(3):
            for side in (LOW, HIGH):
                codes |= self._on_plane(indices, axis, side).astype(int) << (2 * axis + side)
        return codes

    def _weld(self) -> None:
        """Merge vertices on the same cell faces that lie within snapping distance."""
        codes = self._face_codes(np.arange(len(self.vertices)))
        ids = np.nonzero(codes)[0]
        if len(ids) < 2:
            return
        pairs = cKDTree(self.vertices[ids]).query_pairs(r=self.snap, output_type="ndarray")
        pairs = pairs.reshape((-1, 2))
        pairs = pairs[codes[ids[pairs[:, 0]]] == codes[ids[pairs[:, 1]]]]
        if len(pairs) == 0:
            return

        graph = coo_matrix(
            (np.ones(len(pairs)), (pairs[:, 0], pairs[:, 1])), shape=(len(ids), len(ids))
        )
        _, labels = connected_components(graph, directed=False)
        keep = np.full(labels.max() + 1, len(self.vertices))
        np.minimum.at(keep, labels, ids)
        remap = np.arange(len(self.vertices))
        remap[ids] = keep[labels]

        faces = remap[np.array(self.faces, dtype=int).reshape((-1, 3))]
        collapsed = (
            (faces[:, 0] == faces[:, 1]) | (faces[:, 1] == faces[:, 2]) | (faces[:, 2] == faces[:, 0])
        )
        self.faces = faces[~collapsed].tolist()
        logger.debug(
            "Welded %d vertex pairs on the cell faces, dropped %d faces",
            len(pairs), int(collapsed.sum()),
        )

    def _remove_caps(self) -> None:
        faces = np.array(self.faces, dtype=int).reshape((-1, 3))
        is_cap = np.zeros(len(faces), dtype=bool)
        for axis in range(3):
            b, c = _plane_axes(axis)
            for side in (LOW, HIGH):
                on = np.all(self._on_plane(faces, axis, side), axis=1) & ~is_cap
                self._cap_triangles[(axis, side)] = self.vertices[faces[on]][:, :, [b, c]]
                is_cap |= on
        self.faces = faces[~is_cap].tolist()
        logger.debug("Removed %d cap faces", int(is_cap.sum()))

    def _collect_boundary(self) -> None:
        counts: dict[tuple[int, int], int] = defaultdict(int)
        owner: dict[tuple[int, int], int] = {}
        for f, face in enumerate(self.faces):
            for i in range(3):
                key = self._key(face[i], face[(i + 1) % 3])
                counts[key] += 1
                owner[key] = f
        self._boundary = {key: owner[key] for key, count in counts.items() if count == 1}

        for u, w in self._boundary:
            if self._shared_plane(u, w) is None:
                raise GeometryError(
                    "Clipped surface has an open edge off the cell faces",
                    details={"edge": self.vertices[[u, w]].tolist()},
                )

    @staticmethod
    def _key(u: int, w: int) -> tuple[int, int]:
        return (u, w) if u < w else (w, u)

    def _shared_plane(self, u: int, w: int):
        for axis in range(3):
            for side in (LOW, HIGH):
                if np.all(self._on_plane([u, w], axis, side)):
                    return axis, side
        return None

    def _boundary_vertices(self) -> np.ndarray:
        if not self._boundary:
            return np.zeros(0, dtype=int)
        return np.unique(np.array(list(self._boundary), dtype=int))

    def _plane_edges(self, axis: int, side: int) -> list[tuple[int, int]]:
        value = self.bounds[side, axis]
        return [
            (u, w) for u, w in self._boundary
            if self.vertices[u, axis] == value and self.vertices[w, axis] == value
        ]

    # ------------------------------------------------------------------
    # Matching opposite boundaries
    # ------------------------------------------------------------------

    def _match_all(self) -> None:
        for _ in range(MAX_MATCH_PASSES):
            inserted = sum(self._match_axis(axis) for axis in range(3))
            if inserted == 0:
                return
        raise GeometryError(
            "Opposite cell faces did not converge to matching boundaries",
            details={"passes": MAX_MATCH_PASSES},
        )

    def _match_radii(self, axis: int) -> tuple[float, float]:
        """Pairing radius and insertion limit for the faces normal to ``axis``."""
        edges = self._plane_edges(axis, LOW) + self._plane_edges(axis, HIGH)
        if not edges:
            return self.snap, self.snap
        ends = np.array(edges, dtype=int)
        lengths = np.linalg.norm(self.vertices[ends[:, 0]] - self.vertices[ends[:, 1]], axis=1)
        scale = float(np.median(lengths))
        return max(self.snap, PAIR_FRACTION * scale), max(10.0 * self.snap, INSERT_FRACTION * scale)

    def _match_axis(self, axis: int) -> int:
        """
        Pair boundary vertices on the two faces normal to ``axis``.

        Vertices are only paired with vertices on the same cell edge lines;
        only vertices inside a face get counterparts inserted.

        Returns:
            Number of vertices inserted to complete the pairing
        """
        in_plane = list(_plane_axes(axis))
        boundary = self._boundary_vertices()
        low = boundary[self._on_plane(boundary, axis, LOW)]
        high = boundary[self._on_plane(boundary, axis, HIGH)]
        pair_radius, limit = self._match_radii(axis)

        # Faces of this axis are masked out, leaving the edge-line signature.
        other = ~(0b11 << (2 * axis))
        low_codes = self._face_codes(low) & other
        high_codes = self._face_codes(high) & other

        pairs: list[tuple[int, int]] = []
        low_rest: list[int] = []
        high_rest: list[int] = []
        for code in np.union1d(low_codes, high_codes):
            found, lows, highs = self._greedy_pairs(
                low[low_codes == code], high[high_codes == code], in_plane, pair_radius
            )
            pairs += found
            if code == 0:
                low_rest += lows
                high_rest += highs
                continue
            if lows or highs:
                found, lows, highs = self._greedy_pairs(
                    np.array(lows, dtype=int), np.array(highs, dtype=int), in_plane, limit
                )
                pairs += found
            if lows or highs:
                stray = (lows or highs)[0]
                raise GeometryError(
                    "Cell edge vertex has no counterpart on the opposite cell face",
                    details={"vertex": self.vertices[stray].tolist(), "axis": axis},
                )

        inserted = 0
        for vertex in low_rest:
            pairs.append((vertex, self._insert_opposite(vertex, axis, HIGH, limit)))
            inserted += 1
        for vertex in high_rest:
            pairs.append((self._insert_opposite(vertex, axis, LOW, limit), vertex))
            inserted += 1

        partners = {}
        for lo_vertex, hi_vertex in pairs:
            self.vertices[hi_vertex, in_plane] = self.vertices[lo_vertex, in_plane]
            self.vertices[hi_vertex, axis] = self.bounds[HIGH, axis]
            partners[lo_vertex] = hi_vertex
        self._partners[axis] = partners
        self.num_inserted += inserted
        return inserted

    def _greedy_pairs(self, low: np.ndarray, high: np.ndarray, in_plane: list[int], radius: float):
        if len(low) == 0 or len(high) == 0:
            return [], [int(v) for v in low], [int(v) for v in high]

        tree = cKDTree(self.vertices[high][:, in_plane])
        k = min(4, len(high))
        distances, nearest = tree.query(
            self.vertices[low][:, in_plane], k=k, distance_upper_bound=radius
        )
        distances = distances.reshape((len(low), k))
        nearest = nearest.reshape((len(low), k))

        candidates = [
            (distances[i, j], i, nearest[i, j])
            for i in range(len(low)) for j in range(k)
            if np.isfinite(distances[i, j])
        ]
        candidates.sort()
        used_low, used_high = set(), set()
        pairs = []
        for _, i, j in candidates:
            if i in used_low or j in used_high:
                continue
            used_low.add(i)
            used_high.add(j)
            pairs.append((int(low[i]), int(high[j])))

        low_rest = [int(v) for i, v in enumerate(low) if i not in used_low]
        high_rest = [int(v) for j, v in enumerate(high) if j not in used_high]
        return pairs, low_rest, high_rest

    def _along_cell_edge(self, u: int, w: int, axis: int) -> bool:
        return any(
            self.vertices[u, other] == self.bounds[side, other] == self.vertices[w, other]
            for other in _plane_axes(axis) for side in (LOW, HIGH)
        )

    def _insert_opposite(self, vertex: int, axis: int, side: int, limit: float) -> int:
        """Split the boundary edge on the opposite face nearest to ``vertex``."""
        point = self.vertices[vertex].copy()
        point[axis] = self.bounds[side, axis]
        key = tuple(point.tolist())
        if key in self._inserted:
            return self._inserted[key]

        in_plane = list(_plane_axes(axis))
        target = point[in_plane]
        edges = [
            (u, w) for u, w in self._plane_edges(axis, side)
            if not self._along_cell_edge(u, w, axis)
        ]
        if not edges:
            raise GeometryError(
                "Boundary vertex has no counterpart on the opposite cell face",
                details={"vertex": self.vertices[vertex].tolist(), "axis": axis},
            )

        segments = np.array([[self.vertices[u, in_plane], self.vertices[w, in_plane]] for u, w in edges])
        start, delta = segments[:, 0], segments[:, 1] - segments[:, 0]
        lengths_sq = np.einsum("ij,ij->i", delta, delta)
        with np.errstate(divide="ignore", invalid="ignore"):
            t = np.clip(np.einsum("ij,ij->i", target - start, delta) / lengths_sq, 0.0, 1.0)
        t = np.nan_to_num(t)
        distances = np.linalg.norm(start + delta * t[:, None] - target, axis=1)
        best = int(np.argmin(distances))

        if distances[best] > limit:
            raise GeometryError(
                "Boundary vertex has no counterpart on the opposite cell face",
                details={
                    "vertex": self.vertices[vertex].tolist(),
                    "axis": axis,
                    "distance": float(distances[best]),
                },
            )

        new = self._split_boundary_edge(*edges[best], point)
        self._inserted[key] = new
        return new

    def _split_boundary_edge(self, u: int, w: int, point: np.ndarray) -> int:
        new = len(self.vertices)
        self.vertices = np.vstack([self.vertices, point])

        key = self._key(u, w)
        f = self._boundary.pop(key)
        face = self.faces[f]
        for i in range(3):
            a, b, c = face[i], face[(i + 1) % 3], face[(i + 2) % 3]
            if self._key(a, b) == key:
                break
        else:
            raise GeometryError("Boundary bookkeeping out of sync with faces")

        self.faces[f] = [a, new, c]
        self.faces.append([new, b, c])
        self._boundary[self._key(a, new)] = f
        self._boundary[self._key(new, b)] = len(self.faces) - 1
        edge_bc = self._key(b, c)
        if edge_bc in self._boundary:
            self._boundary[edge_bc] = len(self.faces) - 1
        return new

    # ------------------------------------------------------------------
    # Cap reconstruction
    # ------------------------------------------------------------------

    def _corner_vertex(self, corner: tuple[int, int, int]) -> int:
        if corner not in self._corners:
            position = self.bounds[list(corner), [0, 1, 2]]
            match = np.nonzero(np.all(self.vertices == position, axis=1))[0]
            if len(match):
                self._corners[corner] = int(match[0])
            else:
                self._corners[corner] = len(self.vertices)
                self.vertices = np.vstack([self.vertices, position])
        return self._corners[corner]

    def _border_points(self, axis: int, boundary: np.ndarray) -> list[np.ndarray]:
        """Split points along the four border lines of the minimum face."""
        b, c = _plane_axes(axis)
        lines = []
        for fixed, running in ((b, c), (c, b)):
            for side in (LOW, HIGH):
                on_line = boundary[
                    self._on_plane(boundary, axis, LOW) & self._on_plane(boundary, fixed, side)
                ]
                values = np.concatenate([
                    self.vertices[on_line, running],
                    self.bounds[:, running],
                ])
                values = np.unique(values)
                points = np.zeros((len(values), 3))
                points[:, axis] = self.bounds[LOW, axis]
                points[:, fixed] = self.bounds[side, fixed]
                points[:, running] = values
                lines.append(points)
        return lines

    def _rebuild_caps(self) -> list[list[int]]:
        boundary = self._boundary_vertices()
        cap_faces: list[list[int]] = []
        for axis in range(3):
            low_faces = self._cap_face(axis, boundary)
            if not low_faces:
                continue
            partners = self._partners[axis]
            for face in low_faces:
                cap_faces.append(face)
                high = [self._high_partner(v, axis, partners) for v in face]
                cap_faces.append(high[::-1])
        return cap_faces

    def _high_partner(self, vertex: int, axis: int, partners: dict[int, int]) -> int:
        if vertex in partners:
            return partners[vertex]
        position = self.vertices[vertex]
        corner = tuple(int(position[i] == self.bounds[HIGH, i]) for i in range(3))
        if all(position[i] == self.bounds[corner[i], i] for i in range(3)):
            flipped = list(corner)
            flipped[axis] = HIGH
            return self._corner_vertex(tuple(flipped))
        raise GeometryError(
            "Cap vertex has no periodic partner",
            details={"vertex": position.tolist(), "axis": axis},
        )

    def _cap_face(self, axis: int, boundary: np.ndarray) -> list[list[int]]:
        """Triangles closing the minimum face normal to ``axis``, facing -axis."""
        b, c = _plane_axes(axis)
        originals = self._cap_triangles[(axis, LOW)]
        if len(originals) == 0:
            return []

        segments = [
            LineString([self.vertices[u, [b, c]], self.vertices[w, [b, c]]])
            for u, w in self._plane_edges(axis, LOW)
        ]
        for points in self._border_points(axis, boundary):
            for p, q in zip(points[:-1], points[1:]):
                segments.append(LineString([p[[b, c]], q[[b, c]]]))

        polygons = [
            polygon for polygon in polygonize(unary_union(segments))
            if _point_in_triangles(
                np.array(polygon.representative_point().coords[0]), originals, self.tolerance
            )
        ]
        if not polygons:
            return []

        lookup_ids = list(boundary[self._on_plane(boundary, axis, LOW)])
        for corner_b in (LOW, HIGH):
            for corner_c in (LOW, HIGH):
                corner = [0, 0, 0]
                corner[axis], corner[b], corner[c] = LOW, corner_b, corner_c
                lookup_ids.append(self._corner_vertex(tuple(corner)))
        lookup_ids = np.array(lookup_ids, dtype=int)
        tree = cKDTree(self.vertices[lookup_ids][:, [b, c]])

        faces = []
        for polygon in polygons:
            faces.extend(self._triangulate_region(orient(polygon, 1.0), tree, lookup_ids, axis))
        # Counter-clockwise in (b, c) faces +axis; the minimum face needs -axis.
        return [face[::-1] for face in faces]

    def _triangulate_region(self, polygon, tree: cKDTree, lookup_ids: np.ndarray, axis: int) -> list[list[int]]:
        """
        Counter-clockwise triangles over a cap region, using every ring point.

        Collinear ring points are left out of the triangulation and then
        fanned back into the triangles along their segments.
        """
        rings = [np.asarray(polygon.exterior.coords)[:-1]]
        rings.extend(np.asarray(interior.coords)[:-1] for interior in polygon.interiors)

        corner_points: list[np.ndarray] = []
        corner_ids: list[np.ndarray] = []
        chains: dict[tuple[int, int], list[int]] = {}
        for ring in rings:
            distances, nearest = tree.query(ring)
            if np.any(distances > self.tolerance):
                raise GeometryError(
                    "Cap outline has a vertex off the boundary",
                    details={"axis": axis, "distance": float(distances.max())},
                )
            ids = lookup_ids[nearest]
            corners, between = split_collinear(ring, self.snap)
            if len(corners) < 3:
                raise GeometryError("Cap outline is degenerate", details={"axis": axis})
            for k, inner in enumerate(between):
                if inner:
                    u, w = int(ids[corners[k]]), int(ids[corners[(k + 1) % len(corners)]])
                    chain = ids[inner].tolist()
                    chains[(u, w)] = chain
                    chains[(w, u)] = chain[::-1]
            corner_points.append(np.ascontiguousarray(ring[corners], dtype=np.float64))
            corner_ids.append(ids[corners])

        triangles = np.asarray(manifold3d.triangulate(corner_points), dtype=int).reshape((-1, 3))
        points = np.vstack(corner_points)[triangles]
        ids = np.concatenate(corner_ids)[triangles]
        if _signed_areas(points).sum() < 0:
            ids = ids[:, ::-1]

        faces = []
        for a, b, c in ids.tolist():
            faces.extend(fill_triangle(a, b, c, chains))
        return faces


def remesh_periodic_boundary(
    mesh: trimesh.Trimesh,
    cell_min: np.ndarray,
    cell_max: np.ndarray,
    tolerance: float,
) -> tuple[np.ndarray, np.ndarray]:
    """Functional wrapper around PeriodicBoundaryRemesher."""
    remesher = PeriodicBoundaryRemesher(mesh.vertices, mesh.faces, cell_min, cell_max, tolerance)
    return remesher.run()
