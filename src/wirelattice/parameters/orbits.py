"""
Symmetry orbits of a periodic wire network.

Vertices (or edges) in one orbit are images of each other under a symmetry
of the cubic cell that maps the periodic network onto itself; they share a
parameter value. Orbits are either computed here or read from an orbit file.
"""

import itertools
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import numpy as np
import yaml
from pydantic import BaseModel, ConfigDict, ValidationError
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from scipy.spatial import cKDTree

from wirelattice.core.exceptions import ParameterError
from wirelattice.core.wire_network import WireNetwork

logger = logging.getLogger(__name__)


def cubic_symmetries() -> list[np.ndarray]:
    """
    The 48 signed permutation matrices of the cube, identity first.
    """
    ops = []
    for perm in itertools.permutations(range(3)):
        for signs in itertools.product((1, -1), repeat=3):
            op = np.zeros((3, 3))
            op[np.arange(3), perm] = signs
            ops.append(op)
    ops.sort(key=lambda m: not np.array_equal(m, np.eye(3)))
    return ops


@dataclass
class OrbitSet:
    """
    Vertex and edge orbits of a network.

    Attributes:
        vertex_orbits: Lists of vertex indices
        edge_orbits: Lists of edge indices
        vertex_operations: Per vertex, the cell symmetry mapping its orbit
            representative (first member) onto it, when known
    """

    vertex_orbits: list[list[int]]
    edge_orbits: list[list[int]]
    vertex_operations: dict[int, np.ndarray] = field(default_factory=dict, repr=False)

    @property
    def num_vertex_orbits(self) -> int:
        return len(self.vertex_orbits)

    @property
    def num_edge_orbits(self) -> int:
        return len(self.edge_orbits)


class OrbitFile(BaseModel):
    """On-disk orbit description (YAML or JSON)."""

    model_config = ConfigDict(extra="forbid")

    vertex_orbits: list[list[int]] = []
    edge_orbits: list[list[int]] = []


class _PeriodicLookup:
    """Find network vertices by position, modulo the cell period."""

    def __init__(self, vertices: np.ndarray, cell_min: np.ndarray, cell_max: np.ndarray, tolerance: float):
        self.cell_min = cell_min
        self.period = cell_max - cell_min
        self.tolerance = tolerance
        self.wrapped = self.wrap(vertices)
        self.tree = cKDTree(self.wrapped)

    def wrap(self, points: np.ndarray) -> np.ndarray:
        relative = (points - self.cell_min) / self.period
        cells = np.floor(relative + self.tolerance / self.period)
        return points - cells * self.period

    def find(self, points: np.ndarray) -> list[list[int]]:
        """All vertices coinciding with each point modulo the period."""
        return self.tree.query_ball_point(self.wrap(points), r=self.tolerance)

    def classify(self, point: np.ndarray) -> Optional[tuple[int, tuple[int, int, int]]]:
        """Lowest matching vertex and the lattice offset from its wrapped image."""
        hits = self.find(point[None, :])[0]
        if not hits:
            return None
        vertex = min(hits)
        offset = np.rint((point - self.wrapped[vertex]) / self.period).astype(int)
        return vertex, tuple(int(k) for k in offset)


def _components(pairs: list[tuple[int, int]], size: int) -> list[list[int]]:
    """Connected groups of ``range(size)`` under the given pairs, by lowest member."""
    rows = np.array([i for i, _ in pairs], dtype=int)
    cols = np.array([j for _, j in pairs], dtype=int)
    graph = coo_matrix((np.ones(len(pairs)), (rows, cols)), shape=(size, size))
    _, labels = connected_components(graph, directed=False)
    members: dict[int, list[int]] = {}
    for i, label in enumerate(labels.tolist()):
        members.setdefault(label, []).append(i)
    return sorted(members.values(), key=lambda g: g[0])


def _transform(points: np.ndarray, op: np.ndarray, center: np.ndarray) -> np.ndarray:
    return (points - center) @ op.T + center


def compute_orbits(
    network: WireNetwork,
    cell_min: Optional[np.ndarray] = None,
    cell_max: Optional[np.ndarray] = None,
    tolerance: float = 1e-6,
) -> OrbitSet:
    """
    Orbits under the cubic symmetries that map the periodic network to itself.

    Periodic duplicates (a vertex and its image on the opposite face) always
    share an orbit.

    Args:
        network: Network inside its cell
        cell_min, cell_max: Cell; defaults to the network bounding box
        tolerance: Relative to the cell diagonal
    """
    lo, hi = network.get_bbox()
    cell_min = lo if cell_min is None else np.asarray(cell_min, dtype=float)
    cell_max = hi if cell_max is None else np.asarray(cell_max, dtype=float)
    center = 0.5 * (cell_min + cell_max)
    eps = tolerance * float(np.linalg.norm(cell_max - cell_min))

    vertices, edges = network.vertices, network.edges
    lookup = _PeriodicLookup(vertices, cell_min, cell_max, eps)
    edge_keys = {
        _edge_key(vertices[a], vertices[b], lookup): e for e, (a, b) in enumerate(edges)
    }

    vertex_pairs: list[tuple[int, int]] = []
    edge_pairs: list[tuple[int, int]] = []
    valid_ops = []
    for op in cubic_symmetries():
        if np.any(np.abs(op @ (cell_max - cell_min)) - (cell_max - cell_min) > eps):
            continue
        images = lookup.find(_transform(vertices, op, center))
        if any(len(hits) == 0 for hits in images):
            continue
        mapped_edges = []
        for e, (a, b) in enumerate(edges):
            pa, pb = _transform(vertices[[a, b]], op, center)
            target = edge_keys.get(_edge_key(pa, pb, lookup))
            if target is None:
                break
            mapped_edges.append((e, target))
        else:
            valid_ops.append(op)
            vertex_pairs += [(i, j) for i, hits in enumerate(images) for j in hits]
            edge_pairs += mapped_edges

    vertex_orbits = _components(vertex_pairs, len(vertices))
    edge_orbits = _components(edge_pairs, len(edges))
    operations = _relate_members(vertices, vertex_orbits, valid_ops, lookup, center)
    logger.info(
        "Computed %d vertex orbits and %d edge orbits from %d symmetries",
        len(vertex_orbits), len(edge_orbits), len(valid_ops),
    )
    return OrbitSet(vertex_orbits, edge_orbits, operations)


def _edge_key(pa: np.ndarray, pb: np.ndarray, lookup: _PeriodicLookup):
    """
    Identity of an edge modulo the period: its endpoint classes and the
    lattice step between them, in a canonical orientation.
    """
    start, end = lookup.classify(pa), lookup.classify(pb)
    if start is None or end is None:
        return None
    step = tuple(e - s for s, e in zip(start[1], end[1]))
    back = tuple(-k for k in step)
    return min((start[0], end[0], step), (end[0], start[0], back))


def _relate_members(
    vertices: np.ndarray,
    orbits: list[list[int]],
    operations: list[np.ndarray],
    lookup: _PeriodicLookup,
    center: np.ndarray,
) -> dict[int, np.ndarray]:
    related: dict[int, np.ndarray] = {}
    for orbit in orbits:
        representative = vertices[orbit[0]][None, :]
        for op in operations:
            for j in lookup.find(_transform(representative, op, center))[0]:
                related.setdefault(j, op)
    return related


def load_orbit_file(file_path: str | Path, network: WireNetwork) -> OrbitSet:
    """
    Read orbits from a YAML/JSON file and check them against a network.

    Member operations are recovered by searching the cubic symmetries for
    one that maps each orbit's first vertex onto the member.

    Raises:
        ParameterError: If the file is unreadable or refers to missing
            vertices/edges, or lists an index twice
    """
    path = Path(file_path)
    if not path.exists():
        raise ParameterError(f"Orbit file not found: {path}", source=str(path))

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
        orbit_file = OrbitFile(**data)
    except (yaml.YAMLError, TypeError, ValidationError) as e:
        raise ParameterError(
            f"Failed to load orbit file: {path}",
            source=str(path),
            details={"error": str(e)},
        ) from e

    _check_indices(orbit_file.vertex_orbits, network.num_vertices, "vertex", path)
    _check_indices(orbit_file.edge_orbits, network.num_edges, "edge", path)

    lo, hi = network.get_bbox()
    eps = 1e-6 * float(np.linalg.norm(hi - lo))
    lookup = _PeriodicLookup(network.vertices, lo, hi, eps)
    operations = _relate_members(
        network.vertices, orbit_file.vertex_orbits, cubic_symmetries(), lookup, 0.5 * (lo + hi)
    )
    return OrbitSet(orbit_file.vertex_orbits, orbit_file.edge_orbits, operations)


def _check_indices(orbits: list[list[int]], size: int, kind: str, path: Path) -> None:
    flat = [i for orbit in orbits for i in orbit]
    if any(i < 0 or i >= size for i in flat):
        raise ParameterError(
            f"Orbit file refers to a missing {kind}",
            source=str(path),
            details={f"num_{kind}s": size},
        )
    if len(flat) != len(set(flat)):
        raise ParameterError(f"Orbit file lists a {kind} in more than one orbit", source=str(path))
    if any(len(orbit) == 0 for orbit in orbits):
        raise ParameterError(f"Orbit file has an empty {kind} orbit", source=str(path))
