"""
Parameter manager: per-orbit design parameters to per-vertex/per-edge fields.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional

import numpy as np

from wirelattice.core.config import DEFAULT_TOLERANCE, ThicknessType
from wirelattice.core.exceptions import ParameterError
from wirelattice.core.wire_network import WireNetwork
from wirelattice.parameters.modifiers import (
    ModifierFile,
    evaluate_formula,
    formula_variables,
    load_modifier_file,
)
from wirelattice.parameters.orbits import OrbitSet, compute_orbits, load_orbit_file

logger = logging.getLogger(__name__)


class ParameterType(str, Enum):
    """Which network elements a thickness field lives on."""

    VERTEX = "vertex"
    EDGE = "edge"

    @property
    def thickness_type(self) -> ThicknessType:
        """Matching inflator thickness convention."""
        if self == ParameterType.VERTEX:
            return ThicknessType.PER_VERTEX
        return ThicknessType.PER_EDGE


class ParameterManager:
    """
    Evaluate thickness and vertex-offset fields from orbit parameters.

    Members of an orbit always receive the same thickness, and offsets that
    are symmetric images of each other.

    Example:
        >>> manager = ParameterManager.create_from_setting_file(
        ...     network, 0.5, "brick5.orbit", "brick5.modifier")
        >>> thickness = manager.evaluate_thickness({})
        >>> network.offset(manager.evaluate_offset({}))
    """

    def __init__(
        self,
        network: WireNetwork,
        base_thickness: float,
        orbits: OrbitSet,
        modifiers: Optional[ModifierFile] = None,
        thickness_type: ParameterType = ParameterType.VERTEX,
    ):
        if not base_thickness > 0:
            raise ParameterError(
                "Base thickness must be positive",
                details={"base_thickness": base_thickness},
            )
        self.network = network
        self.base_thickness = float(base_thickness)
        self.orbits = orbits
        self.modifiers = modifiers or ModifierFile()
        self.cell_min, self.cell_max = network.get_bbox()

        if self.modifiers.thickness is not None:
            thickness_type = (
                ParameterType.VERTEX
                if self.modifiers.thickness.type == "vertex_orbit"
                else ParameterType.EDGE
            )
        self.thickness_type = ParameterType(thickness_type)
        self._check_orbit_references()

    @classmethod
    def create(
        cls,
        network: WireNetwork,
        base_thickness: float,
        thickness_type: ParameterType = ParameterType.VERTEX,
    ) -> "ParameterManager":
        """Manager with computed orbits and no modifiers (uniform thickness, no offset)."""
        return cls(network, base_thickness, compute_orbits(network), None, thickness_type)

    @classmethod
    def create_from_setting_file(
        cls,
        network: WireNetwork,
        base_thickness: float,
        orbit_file: Optional[str | Path],
        modifier_file: Optional[str | Path],
    ) -> "ParameterManager":
        """
        Manager bound to orbit and modifier files.

        Args:
            network: Network already fit into its cell
            base_thickness: Thickness of orbits no modifier names
            orbit_file: YAML/JSON orbits; None to compute them
            modifier_file: YAML/JSON modifiers; None for defaults only

        Raises:
            ParameterError: If either file is invalid for this network
        """
        if orbit_file is None:
            orbits = compute_orbits(network)
        else:
            orbits = load_orbit_file(orbit_file, network)
        modifiers = load_modifier_file(modifier_file) if modifier_file is not None else None
        manager = cls(network, base_thickness, orbits, modifiers)
        logger.info(
            "Parameters: %d vertex orbits, %d edge orbits, %d dofs (%s thickness)",
            orbits.num_vertex_orbits, orbits.num_edge_orbits,
            manager.get_num_dofs(), manager.thickness_type.value,
        )
        return manager

    def _check_orbit_references(self) -> None:
        thickness = self.modifiers.thickness
        if thickness is not None:
            available = (
                self.orbits.num_vertex_orbits
                if thickness.type == "vertex_orbit"
                else self.orbits.num_edge_orbits
            )
            self._check_range(thickness.effective_orbits, available, thickness.type)
        offset = self.modifiers.vertex_offset
        if offset is not None:
            self._check_range(offset.effective_orbits, self.orbits.num_vertex_orbits, "vertex_orbit")

    @staticmethod
    def _check_range(indices: list[int], available: int, kind: str) -> None:
        bad = [i for i in indices if not 0 <= i < available]
        if bad:
            raise ParameterError(
                f"Modifier refers to a missing {kind}",
                details={"orbits": bad, "available": available},
            )

    def get_thickness_type(self) -> ParameterType:
        return self.thickness_type

    def get_variable_names(self) -> list[str]:
        names: set[str] = set()
        for value in self.modifiers.values():
            names |= formula_variables(value)
        return sorted(names)

    def get_num_dofs(self) -> int:
        return len(self.get_variable_names())

    def evaluate_thickness(self, variables: Optional[Mapping[str, float]] = None) -> np.ndarray:
        """
        Thickness per vertex or per edge, following get_thickness_type().

        Named orbits take their modifier value; all other elements take the
        base thickness.
        """
        if self.thickness_type == ParameterType.VERTEX:
            result = np.full(self.network.num_vertices, self.base_thickness)
            orbits = self.orbits.vertex_orbits
        else:
            result = np.full(self.network.num_edges, self.base_thickness)
            orbits = self.orbits.edge_orbits

        modifier = self.modifiers.thickness
        if modifier is not None:
            for orbit_index, value in zip(modifier.effective_orbits, modifier.thickness):
                result[orbits[orbit_index]] = evaluate_formula(value, variables)
        return result

    def evaluate_offset(self, variables: Optional[Mapping[str, float]] = None) -> np.ndarray:
        """
        Displacement per vertex, (num_vertices, 3).

        An orbit's offset is given for its first vertex as a fraction of the
        cell half-size and carried to the other members by the symmetry
        relating them. Components that would move a vertex off a cell face
        it lies on are dropped.
        """
        vertices = self.network.vertices
        offsets = np.zeros_like(vertices)
        modifier = self.modifiers.vertex_offset
        if modifier is None:
            return offsets

        half_size = 0.5 * (self.cell_max - self.cell_min)
        for orbit_index, percentages in zip(modifier.effective_orbits, modifier.offset_percentages):
            base = np.array([evaluate_formula(p, variables) for p in percentages]) * half_size
            for vertex in self.orbits.vertex_orbits[orbit_index]:
                op = self.orbits.vertex_operations.get(vertex)
                if op is None:
                    raise ParameterError(
                        "No cell symmetry relates an orbit member to its representative",
                        details={"orbit": orbit_index, "vertex": vertex},
                    )
                offsets[vertex] = op @ base

        eps = DEFAULT_TOLERANCE * float(np.linalg.norm(self.cell_max - self.cell_min))
        on_face = (np.abs(vertices - self.cell_min) <= eps) | (np.abs(vertices - self.cell_max) <= eps)
        offsets[on_face] = 0.0
        return offsets
