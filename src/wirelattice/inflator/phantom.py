"""
Periodic tiling of a wire network around its unit cell.

Inflating only the edges inside the cell would leave joints on the cell
faces incomplete: a vertex on a face meets edges from the neighbouring
cells as well. The *phantom* network is the network tiled over the
surrounding cells, restricted to what can reach the cell, with every
periodic duplicate merged. Its vertices and edges remember which input
vertex/edge they are an image of.
"""

import itertools
import logging
from dataclasses import dataclass

import numpy as np
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components
from scipy.spatial import cKDTree

from wirelattice.core.config import ThicknessType
from wirelattice.core.exceptions import GeometryError
from wirelattice.core.wire_network import WireNetwork
from wirelattice.inflator.thickness import Thickness

logger = logging.getLogger(__name__)


@dataclass
class PeriodicClasses:
    """
    Grouping of input vertices into periodic equivalence classes.

    Attributes:
        labels: (n,) class id per input vertex
        representatives: (c,) lowest input vertex index of each class
        lattice_offsets: (n, 3) integer cell offset of each vertex
            relative to its class representative
    """

    labels: np.ndarray
    representatives: np.ndarray
    lattice_offsets: np.ndarray

    @property
    def num_classes(self) -> int:
        return len(self.representatives)


@dataclass
class PhantomNetwork:
    """
    Tiled network around the cell.

    Attributes:
        vertices: (n', 3) positions
        edges: (m', 2) phantom vertex indices, oriented like their source edge
        edge_sources: (m',) input edge each phantom edge is an image of
        vertex_sources: (n',) input vertex (class representative) per phantom vertex
        end_radii: (m', 2) sweep radius at each end
        cell_min, cell_max: The unit cell
    """

    vertices: np.ndarray
    edges: np.ndarray
    edge_sources: np.ndarray
    vertex_sources: np.ndarray
    end_radii: np.ndarray
    cell_min: np.ndarray
    cell_max: np.ndarray

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_edges(self) -> int:
        return len(self.edges)

    @property
    def period(self) -> np.ndarray:
        return self.cell_max - self.cell_min

    def vertex_edges(self) -> list[list[tuple[int, int]]]:
        """Per phantom vertex, the incident (edge, end) pairs."""
        incident: list[list[tuple[int, int]]] = [[] for _ in range(self.num_vertices)]
        for edge_index, (a, b) in enumerate(self.edges):
            incident[a].append((edge_index, 0))
            incident[b].append((edge_index, 1))
        return incident


def compute_periodic_classes(
    vertices: np.ndarray,
    cell_min: np.ndarray,
    cell_max: np.ndarray,
    tolerance: float,
) -> PeriodicClasses:
    """
    Group vertices that are images of each other under the cell period.

    Every vertex is wrapped into the half-open cell; vertices whose wrapped
    positions agree within ``tolerance`` form one class.

    Raises:
        GeometryError: If two vertices of a class land on the same image
    """
    period = cell_max - cell_min
    relative = (vertices - cell_min) / period
    cells = np.floor(relative + tolerance / period).astype(int)
    wrapped = vertices - cells * period

    tree = cKDTree(wrapped)
    pairs = tree.query_pairs(r=tolerance, output_type="ndarray")
    n = len(vertices)
    pairs = pairs.reshape((-1, 2))
    graph = coo_matrix(
        (np.ones(len(pairs)), (pairs[:, 0], pairs[:, 1])), shape=(n, n)
    )
    _, raw_labels = connected_components(graph, directed=False)

    # Relabel so classes are ordered by their lowest vertex index
    _, first = np.unique(raw_labels, return_index=True)
    order = np.argsort(first)
    relabel = np.empty_like(order)
    relabel[order] = np.arange(len(order))
    labels = relabel[raw_labels]
    representatives = np.sort(first)

    lattice_offsets = np.rint(
        (vertices - vertices[representatives[labels]]) / period
    ).astype(int)

    keys = np.column_stack([labels, lattice_offsets])
    _, key_counts = np.unique(keys, axis=0, return_counts=True)
    if np.any(key_counts > 1):
        raise GeometryError(
            "Vertices with inconsistent periodic images (coincident vertices)",
            details={"tolerance": tolerance},
        )

    return PeriodicClasses(labels, representatives, lattice_offsets)


def periodic_end_radii(
    network: WireNetwork, thickness: Thickness, classes: PeriodicClasses
) -> np.ndarray:
    """
    Sweep radii at both ends of every input edge, periodically consistent.

    PER_VERTEX values are read from each vertex's class representative, so
    all images of a vertex get the same radius.
    """
    if thickness.kind == ThicknessType.PER_VERTEX:
        consistent = thickness.values[classes.representatives[classes.labels]]
        thickness = Thickness(thickness.kind, consistent)
    return thickness.end_radii(network.edges)


def build_phantom_network(
    network: WireNetwork,
    end_radii: np.ndarray,
    classes: PeriodicClasses,
    cell_min: np.ndarray,
    cell_max: np.ndarray,
    margin: float,
    tolerance: float,
) -> PhantomNetwork:
    """
    Tile the network over neighbouring cells and keep what reaches the cell.

    Periodic duplicate edges collapse onto the lowest-index input edge,
    which also supplies their radii.

    Args:
        network: Validated input network
        end_radii: (m, 2) radii from periodic_end_radii
        classes: Periodic vertex classes
        cell_min, cell_max: Unit cell
        margin: Distance around the cell whose geometry must be complete
        tolerance: Absolute length tolerance

    Raises:
        GeometryError: If a phantom edge degenerates to zero length
    """
    period = cell_max - cell_min
    reach = np.maximum(1, np.ceil(margin / period).astype(int))
    shifts = list(
        itertools.product(*(range(-int(r), int(r) + 1) for r in reach))
    )
    representative_positions = network.vertices[classes.representatives]

    vertex_keys: dict[tuple[int, int, int, int], int] = {}
    phantom_vertices: list[np.ndarray] = []
    vertex_sources: list[int] = []

    def vertex_id(label: int, offset: np.ndarray) -> int:
        key = (int(label), int(offset[0]), int(offset[1]), int(offset[2]))
        index = vertex_keys.get(key)
        if index is None:
            index = len(phantom_vertices)
            vertex_keys[key] = index
            phantom_vertices.append(representative_positions[label] + offset * period)
            vertex_sources.append(int(classes.representatives[label]))
        return index

    lo = cell_min - margin
    hi = cell_max + margin
    seen: dict[tuple[int, int], int] = {}
    edges: list[tuple[int, int]] = []
    edge_sources: list[int] = []
    radii: list[np.ndarray] = []
    mismatched = 0

    for edge_index, (a, b) in enumerate(network.edges):
        label_a, label_b = classes.labels[a], classes.labels[b]
        offset_a, offset_b = classes.lattice_offsets[a], classes.lattice_offsets[b]
        for shift in shifts:
            shift = np.asarray(shift)
            pa = representative_positions[label_a] + (offset_a + shift) * period
            pb = representative_positions[label_b] + (offset_b + shift) * period
            if np.any(np.minimum(pa, pb) > hi) or np.any(np.maximum(pa, pb) < lo):
                continue

            ia = vertex_id(label_a, offset_a + shift)
            ib = vertex_id(label_b, offset_b + shift)
            key = (min(ia, ib), max(ia, ib))
            if key in seen:
                kept = seen[key]
                incoming = end_radii[edge_index]
                if ia != edges[kept][0]:
                    incoming = incoming[::-1]
                if not np.allclose(radii[kept], incoming):
                    mismatched += 1
                continue
            seen[key] = len(edges)
            edges.append((ia, ib))
            edge_sources.append(edge_index)
            radii.append(end_radii[edge_index])

    vertices = np.array(phantom_vertices, dtype=float)
    edge_array = np.array(edges, dtype=int).reshape((-1, 2))
    if len(edge_array) == 0:
        raise GeometryError("No wire edge reaches the unit cell")

    lengths = np.linalg.norm(vertices[edge_array[:, 1]] - vertices[edge_array[:, 0]], axis=1)
    short = np.nonzero(lengths <= tolerance)[0]
    if len(short):
        raise GeometryError(
            "Edge collapses to zero length under the cell period",
            details={"edges": sorted({edge_sources[i] for i in short})[:10]},
        )

    if mismatched:
        logger.warning(
            "%d periodic duplicate edge images disagree on thickness; "
            "the lowest-index edge wins", mismatched,
        )
    logger.debug(
        "Phantom network: %d vertices, %d edges from %d shifts",
        len(vertices), len(edge_array), len(shifts),
    )

    return PhantomNetwork(
        vertices=vertices,
        edges=edge_array,
        edge_sources=np.array(edge_sources, dtype=int),
        vertex_sources=np.array(vertex_sources, dtype=int),
        end_radii=np.array(radii, dtype=float).reshape((-1, 2)),
        cell_min=np.asarray(cell_min, dtype=float),
        cell_max=np.asarray(cell_max, dtype=float),
    )
