"""
Thickness values: a vector tagged with how to read it.

Thickness is the wire diameter. PER_EDGE gives every edge a uniform
diameter; PER_VERTEX gives every vertex a diameter that is interpolated
linearly along each incident edge.
"""

from dataclasses import dataclass, field

import numpy as np

from wirelattice.core.config import InflatorConfig, ThicknessType
from wirelattice.core.exceptions import ThicknessError


@dataclass(frozen=True, eq=False)
class Thickness:
    """
    Tagged thickness vector.

    Attributes:
        kind: PER_EDGE or PER_VERTEX
        values: Diameters, one per edge or per vertex
    """

    kind: ThicknessType
    values: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=float).ravel()
        values.setflags(write=False)
        object.__setattr__(self, "kind", ThicknessType(self.kind))
        object.__setattr__(self, "values", values)

    @classmethod
    def from_config(cls, config: InflatorConfig, num_vertices: int, num_edges: int) -> "Thickness":
        """
        Validated thickness for a network of the given size.

        Raises:
            ThicknessError: If no thickness was set, or it is mis-sized,
                non-finite or not strictly positive
        """
        if config.thickness is None:
            raise ThicknessError("Thickness has not been set")
        thickness = cls(config.thickness_type, np.asarray(config.thickness))
        thickness.validate(num_vertices, num_edges)
        return thickness

    def expected_length(self, num_vertices: int, num_edges: int) -> int:
        return num_edges if self.kind == ThicknessType.PER_EDGE else num_vertices

    def validate(self, num_vertices: int, num_edges: int) -> None:
        expected = self.expected_length(num_vertices, num_edges)
        if len(self.values) != expected:
            raise ThicknessError(
                f"Thickness vector does not match a {self.kind.value} layout",
                details={"expected": expected, "actual": len(self.values)},
            )
        if not np.all(np.isfinite(self.values)):
            raise ThicknessError("Thickness values must be finite")
        bad = np.nonzero(self.values <= 0)[0]
        if len(bad):
            raise ThicknessError(
                "Thickness values must be strictly positive",
                details={"indices": bad[:10].tolist()},
            )

    def end_radii(self, edges: np.ndarray) -> np.ndarray:
        """
        Sweep radius at both ends of every edge.

        Args:
            edges: (m, 2) vertex indices

        Returns:
            (m, 2) radii, column 0 at ``edges[:, 0]``
        """
        if self.kind == ThicknessType.PER_EDGE:
            half = 0.5 * self.values
            return np.column_stack([half, half])
        return 0.5 * self.values[edges]
