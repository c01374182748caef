"""
Wire network data structure.

A wire network is a graph of 3D points (vertices) and straight segments
(edges) describing a lattice skeleton that lives inside an axis-aligned,
periodic unit cell.
"""

import logging
from typing import Dict, List, Optional

import numpy as np

from wirelattice.core.exceptions import WireNetworkError

logger = logging.getLogger(__name__)

# Relative to the bounding box diagonal.
ZERO_LENGTH_TOLERANCE = 1e-9


class WireNetwork:
    """
    Vertices + edges with lazily derived connectivity.

    Connectivity (vertex -> incident edges / neighbouring vertices) is
    computed on demand and dropped whenever vertices or edges change.

    Example:
        >>> network = WireNetwork(vertices, edges)
        >>> network.compute_connectivity()
        >>> network.scale_fit([-2.5] * 3, [2.5] * 3)
    """

    def __init__(self, vertices=None, edges=None):
        self._vertices = np.zeros((0, 3), dtype=float)
        self._edges = np.zeros((0, 2), dtype=int)
        self._vertex_edges: Optional[List[np.ndarray]] = None
        self._vertex_neighbors: Optional[List[np.ndarray]] = None
        self._attributes: Dict[str, np.ndarray] = {}
        self._attribute_kinds: Dict[str, str] = {}

        if vertices is not None:
            self.set_vertices(vertices)
        if edges is not None:
            self.set_edges(edges)

    def __repr__(self) -> str:
        return f"WireNetwork(num_vertices={self.num_vertices}, num_edges={self.num_edges})"

    # ------------------------------------------------------------------
    # Basic accessors
    # ------------------------------------------------------------------

    @property
    def dim(self) -> int:
        return self._vertices.shape[1]

    @property
    def num_vertices(self) -> int:
        return len(self._vertices)

    @property
    def num_edges(self) -> int:
        return len(self._edges)

    @property
    def vertices(self) -> np.ndarray:
        return self._vertices

    @property
    def edges(self) -> np.ndarray:
        return self._edges

    def get_num_vertices(self) -> int:
        return self.num_vertices

    def get_num_edges(self) -> int:
        return self.num_edges

    def get_vertices(self) -> np.ndarray:
        """Return a copy of the (n, 3) vertex matrix."""
        return self._vertices.copy()

    def get_edges(self) -> np.ndarray:
        """Return a copy of the (m, 2) edge matrix."""
        return self._edges.copy()

    def set_vertices(self, vertices) -> None:
        """
        Replace all vertex coordinates.

        Raises:
            WireNetworkError: If the array is not (n, 3) or holds non-finite values
        """
        vertices = np.array(vertices, dtype=float)
        if vertices.size == 0:
            vertices = vertices.reshape((0, 3))
        if vertices.ndim != 2 or vertices.shape[1] != 3:
            raise WireNetworkError(
                "Vertices must be an (n, 3) array",
                details={"shape": list(vertices.shape)},
            )
        if not np.all(np.isfinite(vertices)):
            raise WireNetworkError("Vertex coordinates must be finite")
        if len(vertices) != len(self._vertices):
            self._drop_attributes("vertex")
        self._vertices = vertices
        self._invalidate()

    def set_edges(self, edges) -> None:
        """
        Replace the edge list.

        Raises:
            WireNetworkError: If the array is not (m, 2) integers
        """
        edges = np.array(edges)
        if edges.size == 0:
            edges = edges.reshape((0, 2))
        if edges.ndim != 2 or edges.shape[1] != 2:
            raise WireNetworkError(
                "Edges must be an (m, 2) array",
                details={"shape": list(edges.shape)},
            )
        if edges.dtype.kind not in "iu":
            if not np.all(np.equal(np.mod(edges, 1), 0)):
                raise WireNetworkError("Edge indices must be integers")
        edges = edges.astype(int)
        if len(edges) != len(self._edges):
            self._drop_attributes("edge")
        self._edges = edges
        self._invalidate()

    def copy(self) -> "WireNetwork":
        """Deep copy, attributes included."""
        other = WireNetwork(self._vertices.copy(), self._edges.copy())
        for name, values in self._attributes.items():
            other._attributes[name] = values.copy()
        other._attribute_kinds = dict(self._attribute_kinds)
        return other

    # ------------------------------------------------------------------
    # Connectivity
    # ------------------------------------------------------------------

    def compute_connectivity(self) -> None:
        """Build vertex -> incident edge and vertex -> neighbour tables."""
        self._check_edge_indices()
        vertex_edges: List[List[int]] = [[] for _ in range(self.num_vertices)]
        vertex_neighbors: List[List[int]] = [[] for _ in range(self.num_vertices)]
        for edge_index, (a, b) in enumerate(self._edges):
            vertex_edges[a].append(edge_index)
            vertex_edges[b].append(edge_index)
            vertex_neighbors[a].append(b)
            vertex_neighbors[b].append(a)

        self._vertex_edges = [np.array(e, dtype=int) for e in vertex_edges]
        self._vertex_neighbors = [np.array(n, dtype=int) for n in vertex_neighbors]

    @property
    def has_connectivity(self) -> bool:
        return self._vertex_edges is not None

    def get_vertex_edges(self, vertex_index: int) -> np.ndarray:
        """Indices of edges incident to a vertex."""
        if self._vertex_edges is None:
            self.compute_connectivity()
        return self._vertex_edges[vertex_index]

    def get_vertex_neighbors(self, vertex_index: int) -> np.ndarray:
        """Indices of vertices sharing an edge with a vertex."""
        if self._vertex_neighbors is None:
            self.compute_connectivity()
        return self._vertex_neighbors[vertex_index]

    def get_vertex_degrees(self) -> np.ndarray:
        degrees = np.zeros(self.num_vertices, dtype=int)
        if self.num_edges:
            np.add.at(degrees, self._edges.ravel(), 1)
        return degrees

    def _invalidate(self) -> None:
        self._vertex_edges = None
        self._vertex_neighbors = None

    # ------------------------------------------------------------------
    # Geometry
    # ------------------------------------------------------------------

    def get_bbox(self) -> tuple[np.ndarray, np.ndarray]:
        """Axis-aligned bounding box as (min corner, max corner)."""
        if self.num_vertices == 0:
            raise WireNetworkError("Empty wire network has no bounding box")
        return self._vertices.min(axis=0), self._vertices.max(axis=0)

    def get_bbox_center(self) -> np.ndarray:
        bbox_min, bbox_max = self.get_bbox()
        return 0.5 * (bbox_min + bbox_max)

    def get_edge_lengths(self) -> np.ndarray:
        self._check_edge_indices()
        segments = self._vertices[self._edges[:, 1]] - self._vertices[self._edges[:, 0]]
        return np.linalg.norm(segments, axis=1)

    def translate(self, offset) -> None:
        self.set_vertices(self._vertices + np.asarray(offset, dtype=float))

    def scale(self, factors) -> None:
        """Scale about the origin, uniformly or per axis."""
        self.set_vertices(self._vertices * np.asarray(factors, dtype=float))

    def center_at_origin(self) -> None:
        self.translate(-self.get_bbox_center())

    def offset(self, vertex_offsets) -> None:
        """Displace every vertex by its own vector."""
        vertex_offsets = np.asarray(vertex_offsets, dtype=float)
        if vertex_offsets.shape != self._vertices.shape:
            raise WireNetworkError(
                "Vertex offsets must match the vertex matrix",
                details={
                    "expected": list(self._vertices.shape),
                    "actual": list(vertex_offsets.shape),
                },
            )
        self.set_vertices(self._vertices + vertex_offsets)

    def scale_fit(self, bbox_min, bbox_max) -> None:
        """
        Fit the network into the target box, axis by axis.

        Vertices lying on a face of the current bounding box end up exactly
        on the corresponding face of the target box, so periodic partners
        stay periodic partners.

        Args:
            bbox_min: Target min corner
            bbox_max: Target max corner

        Raises:
            WireNetworkError: If the target box is empty or inverted
        """
        target_min = np.asarray(bbox_min, dtype=float).reshape(3)
        target_max = np.asarray(bbox_max, dtype=float).reshape(3)
        if np.any(target_max <= target_min):
            raise WireNetworkError(
                "Target box must have positive extent",
                details={"min": target_min.tolist(), "max": target_max.tolist()},
            )

        old_min, old_max = self.get_bbox()
        old_extent = old_max - old_min
        target_extent = target_max - target_min

        factors = np.ones(3)
        nonflat = old_extent > 0
        factors[nonflat] = target_extent[nonflat] / old_extent[nonflat]

        old_center = 0.5 * (old_min + old_max)
        target_center = 0.5 * (target_min + target_max)
        fitted = (self._vertices - old_center) * factors + target_center

        # Snap boundary vertices exactly onto the target faces
        for axis in np.nonzero(nonflat)[0]:
            fitted[self._vertices[:, axis] == old_min[axis], axis] = target_min[axis]
            fitted[self._vertices[:, axis] == old_max[axis], axis] = target_max[axis]
        fitted = np.clip(fitted, target_min, target_max)

        self.set_vertices(fitted)
        logger.debug("Scale fit: factors=%s center=%s", factors.tolist(), target_center.tolist())

    # ------------------------------------------------------------------
    # Attributes
    # ------------------------------------------------------------------

    def add_attribute(self, name: str, values, kind: str = "vertex") -> None:
        """
        Attach a per-vertex or per-edge array.

        Args:
            name: Attribute name (e.g. "vertex_thickness")
            values: Array whose first dimension matches the element count
            kind: "vertex" or "edge"
        """
        if kind not in ("vertex", "edge"):
            raise WireNetworkError(f"Unknown attribute kind: {kind}")
        values = np.asarray(values)
        expected = self.num_vertices if kind == "vertex" else self.num_edges
        if len(values) != expected:
            raise WireNetworkError(
                f"Attribute '{name}' has wrong length",
                details={"expected": expected, "actual": len(values), "kind": kind},
            )
        self._attributes[name] = values.copy()
        self._attribute_kinds[name] = kind

    def has_attribute(self, name: str) -> bool:
        return name in self._attributes

    def get_attribute(self, name: str) -> np.ndarray:
        if name not in self._attributes:
            raise WireNetworkError(
                f"Attribute not found: {name}",
                details={"available": sorted(self._attributes)},
            )
        return self._attributes[name]

    def get_attribute_names(self) -> list[str]:
        return sorted(self._attributes)

    def _drop_attributes(self, kind: str) -> None:
        for name in [n for n, k in self._attribute_kinds.items() if k == kind]:
            self._attributes.pop(name, None)
            self._attribute_kinds.pop(name)

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _check_edge_indices(self) -> None:
        if self.num_edges == 0:
            return
        if self._edges.min() < 0 or self._edges.max() >= self.num_vertices:
            bad = np.nonzero(
                np.any((self._edges < 0) | (self._edges >= self.num_vertices), axis=1)
            )[0]
            raise WireNetworkError(
                "Edge references a vertex that does not exist",
                details={"edges": bad[:10].tolist(), "num_vertices": self.num_vertices},
            )

    def validate(self) -> None:
        """
        Check the structural invariants an inflation relies on.

        Raises:
            WireNetworkError: On dangling indices, self-loops, duplicate
                edges, isolated vertices or zero-length edges
        """
        if self.num_vertices == 0 or self.num_edges == 0:
            raise WireNetworkError(
                "Wire network needs at least one vertex and one edge",
                details={"num_vertices": self.num_vertices, "num_edges": self.num_edges},
            )
        self._check_edge_indices()

        loops = np.nonzero(self._edges[:, 0] == self._edges[:, 1])[0]
        if len(loops):
            raise WireNetworkError(
                "Self-loop edges are not allowed", details={"edges": loops[:10].tolist()}
            )

        keys = np.sort(self._edges, axis=1)
        _, first, counts = np.unique(keys, axis=0, return_index=True, return_counts=True)
        if np.any(counts > 1):
            raise WireNetworkError(
                "Duplicate edges are not allowed",
                details={"edges": first[counts > 1][:10].tolist()},
            )

        isolated = np.nonzero(self.get_vertex_degrees() == 0)[0]
        if len(isolated):
            raise WireNetworkError(
                "Isolated vertices have no incident edge",
                details={"vertices": isolated[:10].tolist()},
            )

        bbox_min, bbox_max = self.get_bbox()
        scale = max(float(np.linalg.norm(bbox_max - bbox_min)), 1.0)
        short = np.nonzero(self.get_edge_lengths() <= ZERO_LENGTH_TOLERANCE * scale)[0]
        if len(short):
            raise WireNetworkError(
                "Zero-length edges are not allowed",
                details={"edges": short[:10].tolist()},
            )
