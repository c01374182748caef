"""
Periodic inflation of a wire network into a watertight, tileable solid.

The pure entry point is :func:`inflate`; :class:`PeriodicInflator3D` is the
stateful builder around it. Stages:

1. validate the network, thickness and profile
2. tile the network periodically around the cell (phantom network)
3. sweep a tube per edge and build a convex joint per vertex
4. union every piece and clip to the cell
5. make opposite cell faces match and rebuild the caps periodically
6. attribute every face to its edge or joint
7. optionally subdivide, holding the cell faces planar, then certify
"""

from dataclasses import dataclass, field
from typing import Any, Optional, Sequence

import numpy as np
import trimesh

from wirelattice.core.config import (
    InflatorConfig,
    RefinementScheme,
    ThicknessType,
    build_config,
)
from wirelattice.core.exceptions import ConfigurationError, GeometryError, InflationError
from wirelattice.core.logging import get_logger, log_context
from wirelattice.core.wire_network import WireNetwork
from wirelattice.geometry.mesh_operations import clip_to_box, refine_mesh, union_solids
from wirelattice.geometry.validation import (
    face_source_is_valid,
    is_manifold,
    is_periodic,
    is_water_tight,
)
from wirelattice.inflator.boundary import remesh_periodic_boundary
from wirelattice.inflator.joints import build_joints, find_overlapping_edges
from wirelattice.inflator.phantom import (
    build_phantom_network,
    compute_periodic_classes,
    periodic_end_radii,
)
from wirelattice.inflator.profile import WireProfile
from wirelattice.inflator.provenance import attribute_to_pieces, transfer_sources
from wirelattice.inflator.sweep import (
    build_edge_rings,
    check_edge_room,
    joint_offsets,
    sweep_edges,
)
from wirelattice.inflator.thickness import Thickness

logger = get_logger(__name__)


@dataclass
class InflationResult:
    """
    Output of one inflation.

    Attributes:
        vertices: (n, 3) mesh vertices
        faces: (f, 3) outward-oriented triangles
        face_sources: (f,) input edge index, or -(vertex + 1) for joints
        cell_min, cell_max: The cell the mesh tiles
        overlapping_edges: Input edge pairs whose wires intersect
    """

    vertices: np.ndarray
    faces: np.ndarray
    face_sources: np.ndarray
    cell_min: np.ndarray
    cell_max: np.ndarray
    overlapping_edges: list[tuple[int, int]] = field(default_factory=list)

    @property
    def num_vertices(self) -> int:
        return len(self.vertices)

    @property
    def num_faces(self) -> int:
        return len(self.faces)

    def to_trimesh(self) -> trimesh.Trimesh:
        mesh = trimesh.Trimesh(self.vertices, self.faces, process=False)
        mesh.face_attributes["source"] = self.face_sources
        return mesh

    def summary(self) -> dict[str, Any]:
        mesh = trimesh.Trimesh(self.vertices, self.faces, process=False)
        return {
            "num_vertices": self.num_vertices,
            "num_faces": self.num_faces,
            "volume": float(mesh.volume),
            "surface_area": float(mesh.area),
            "cell_min": self.cell_min.tolist(),
            "cell_max": self.cell_max.tolist(),
            "num_joint_faces": int(np.sum(self.face_sources < 0)),
            "overlapping_edges": len(self.overlapping_edges),
        }


def resolve_cell(network: WireNetwork, config: InflatorConfig) -> tuple[np.ndarray, np.ndarray]:
    """
    The cell to tile: explicit in the config, else the network bounding box.

    Raises:
        GeometryError: If the cell is flat or the network sticks out of it
    """
    if config.has_cell:
        cell_min = np.asarray(config.cell_min, dtype=float)
        cell_max = np.asarray(config.cell_max, dtype=float)
    else:
        cell_min, cell_max = network.get_bbox()

    extent = cell_max - cell_min
    if np.any(extent <= 0):
        raise GeometryError(
            "Periodic cell must have positive extent on every axis",
            details={"cell_min": cell_min.tolist(), "cell_max": cell_max.tolist()},
        )

    slack = config.tolerance * float(np.linalg.norm(extent))
    vertices = network.vertices
    if np.any(vertices < cell_min - slack) or np.any(vertices > cell_max + slack):
        raise GeometryError(
            "Wire network extends beyond the periodic cell",
            details={"cell_min": cell_min.tolist(), "cell_max": cell_max.tolist()},
        )
    return cell_min, cell_max


def edge_profiles(config: InflatorConfig, num_edges: int) -> list[WireProfile]:
    """Profile per input edge: the default, replaced where overridden."""
    default = WireProfile.from_config(config)
    profiles = [default] * num_edges
    for edge_index, points in config.profile_overrides.items():
        if not 0 <= edge_index < num_edges:
            raise ConfigurationError(
                "Profile override refers to a missing edge",
                details={"edge": edge_index, "num_edges": num_edges},
            )
        profiles[edge_index] = WireProfile.from_points(points)
    return profiles


def inflate(network: WireNetwork, config: InflatorConfig) -> InflationResult:
    """
    Inflate a periodic wire network.

    Args:
        network: Wire network inside its cell
        config: Thickness, profile, refinement and tolerance settings

    Returns:
        InflationResult with a watertight, manifold, periodic mesh

    Raises:
        WireNetworkError: If the network is invalid
        ThicknessError: If the thickness is missing or malformed
        ConfigurationError: If the profile setup is invalid
        GeometryError: If the geometry cannot be built or certified
    """
    network.validate()
    thickness = Thickness.from_config(config, network.num_vertices, network.num_edges)
    profiles = edge_profiles(config, network.num_edges)
    cell_min, cell_max = resolve_cell(network, config)
    tolerance = config.tolerance * float(np.linalg.norm(cell_max - cell_min))

    with log_context(vertices=network.num_vertices, edges=network.num_edges):
        classes = compute_periodic_classes(network.vertices, cell_min, cell_max, tolerance)
        end_radii = periodic_end_radii(network, thickness, classes)

        profile_reach = max(p.max_radius for p in profiles)
        margin = 2.0 * (1.0 + config.joint_scale) * profile_reach * float(end_radii.max()) + tolerance
        phantom = build_phantom_network(
            network, end_radii, classes, cell_min, cell_max, margin, tolerance
        )
        logger.info(
            "phantom_network_built",
            phantom_edges=phantom.num_edges,
            periodic_classes=classes.num_classes,
        )

        overlaps = find_overlapping_edges(phantom)
        if overlaps and config.strict_overlap:
            raise GeometryError(
                "Wires overlap away from their joints",
                details={"pairs": overlaps[:10]},
            )

        offsets = joint_offsets(phantom, config.joint_scale, profile_reach)
        check_edge_room(phantom, offsets)
        rings = build_edge_rings(
            phantom, offsets, [profiles[e] for e in phantom.edge_sources]
        )
        pieces = sweep_edges(phantom, rings) + build_joints(phantom, rings)

        merged = union_solids([piece.mesh for piece in pieces])
        merged_sources = attribute_to_pieces(merged.triangles_center, pieces)

        clipped = clip_to_box(merged, cell_min, cell_max)
        vertices, faces = remesh_periodic_boundary(clipped, cell_min, cell_max, tolerance)
        face_sources = transfer_sources(
            vertices[faces].mean(axis=1), merged.triangles_center, merged_sources
        )

        if config.refines:
            planes = [(axis, bound[axis]) for axis in range(3) for bound in (cell_min, cell_max)]
            refined, face_sources = refine_mesh(
                trimesh.Trimesh(vertices, faces, process=False),
                config.refinement_scheme,
                config.refinement_iterations,
                face_sources,
                planes,
            )
            vertices, faces = np.asarray(refined.vertices), np.asarray(refined.faces)

        certify(vertices, faces, face_sources, network, cell_min, cell_max, config.tolerance)
        logger.info("inflate_complete", num_vertices=len(vertices), num_faces=len(faces))

    return InflationResult(
        vertices=vertices,
        faces=faces,
        face_sources=face_sources,
        cell_min=cell_min,
        cell_max=cell_max,
        overlapping_edges=overlaps,
    )


def certify(
    vertices: np.ndarray,
    faces: np.ndarray,
    face_sources: np.ndarray,
    network: WireNetwork,
    cell_min: np.ndarray,
    cell_max: np.ndarray,
    tolerance: float,
) -> None:
    """
    Raises:
        GeometryError: If the mesh is not watertight, manifold and periodic,
            or a face source names no edge or vertex of ``network``
    """
    checks = {
        "water_tight": is_water_tight(vertices, faces),
        "manifold": is_manifold(vertices, faces),
        "periodic": is_periodic(vertices, faces, cell_min, cell_max, tolerance),
        "face_sources": face_source_is_valid(
            vertices, faces, face_sources, network.num_edges, network.num_vertices
        ),
    }
    failed = [name for name, ok in checks.items() if not ok]
    if failed:
        raise GeometryError("Inflated mesh failed validation", details={"failed": failed})


class PeriodicInflator3D:
    """
    Stateful builder around :func:`inflate`.

    Setters only record values; everything is validated together when
    :meth:`inflate` runs. A failed run raises and leaves the previous
    successful result in place.

    Example:
        >>> inflator = PeriodicInflator3D(network)
        >>> inflator.set_thickness_type(PeriodicInflator3D.PER_EDGE)
        >>> inflator.set_thickness(np.full(network.num_edges, 0.5))
        >>> inflator.with_refinement("loop", 1)
        >>> inflator.inflate()
        >>> mesh = inflator.get_result().to_trimesh()
    """

    PER_EDGE = ThicknessType.PER_EDGE
    PER_VERTEX = ThicknessType.PER_VERTEX

    def __init__(self, network: WireNetwork, config: Optional[InflatorConfig] = None):
        self.network = network.copy()
        self._values: dict[str, Any] = (config or InflatorConfig()).model_dump()
        self._result: Optional[InflationResult] = None

    def set_thickness_type(self, kind: ThicknessType | str) -> None:
        try:
            self._values["thickness_type"] = ThicknessType(kind)
        except ValueError as e:
            raise ConfigurationError(f"Unknown thickness type: {kind!r}") from e

    def set_thickness(self, values: Sequence[float] | np.ndarray) -> None:
        self._values["thickness"] = np.asarray(values, dtype=float).ravel()

    def set_profile(self, profile: WireProfile) -> None:
        self._values["profile_points"] = profile.as_tuples()

    def set_profile_override(self, edge_index: int, profile: WireProfile) -> None:
        overrides = dict(self._values.get("profile_overrides") or {})
        overrides[int(edge_index)] = profile.as_tuples()
        self._values["profile_overrides"] = overrides

    def with_refinement(self, scheme: RefinementScheme | str, num_iterations: int) -> None:
        try:
            self._values["refinement_scheme"] = RefinementScheme(
                scheme.strip().lower() if isinstance(scheme, str) else scheme
            )
        except ValueError as e:
            raise ConfigurationError(
                f"Unknown refinement scheme: {scheme!r}",
                details={"available": [s.value for s in RefinementScheme]},
            ) from e
        self._values["refinement_iterations"] = int(num_iterations)

    def set_config(self, **values: Any) -> None:
        """Set any other InflatorConfig field (tolerance, joint_scale, cell, ...)."""
        unknown = set(values) - set(InflatorConfig.model_fields)
        if unknown:
            raise ConfigurationError(
                "Unknown inflator settings", details={"settings": sorted(unknown)}
            )
        self._values.update(values)

    @property
    def config(self) -> InflatorConfig:
        return build_config(**self._values)

    def inflate(self) -> InflationResult:
        result = inflate(self.network, self.config)
        self._result = result
        return result

    def get_result(self) -> InflationResult:
        if self._result is None:
            raise InflationError("inflate() has not completed successfully")
        return self._result

    # Accessors return empty arrays until an inflation succeeds

    def get_vertices(self) -> np.ndarray:
        if self._result is None:
            return np.zeros((0, 3))
        return self._result.vertices

    def get_faces(self) -> np.ndarray:
        if self._result is None:
            return np.zeros((0, 3), dtype=int)
        return self._result.faces

    def get_face_sources(self) -> np.ndarray:
        if self._result is None:
            return np.zeros(0, dtype=int)
        return self._result.face_sources
