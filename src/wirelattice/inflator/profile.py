"""
Wire cross-section profiles.

A profile is a closed 2D polygon around the origin that gets scaled,
oriented and swept along every edge of a wire network.
"""

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from wirelattice.core.config import InflatorConfig
from wirelattice.core.exceptions import ConfigurationError


def _signed_area(points: np.ndarray) -> float:
    x, y = points[:, 0], points[:, 1]
    return 0.5 * float(np.sum(x * np.roll(y, -1) - np.roll(x, -1) * y))


@dataclass(frozen=True, eq=False)
class WireProfile:
    """
    Immutable counter-clockwise cross-section, shared by many edges.

    Attributes:
        points: (N, 2) read-only array of profile samples
    """

    points: np.ndarray = field(repr=False)

    def __post_init__(self) -> None:
        pts = np.array(self.points, dtype=float)
        pts.setflags(write=False)
        object.__setattr__(self, "points", pts)

    def __repr__(self) -> str:
        return f"WireProfile(num_samples={self.num_samples})"

    @classmethod
    def create_isotropic(cls, num_samples: int) -> "WireProfile":
        """
        Regular polygon of circumradius 1.

        Samples start half a step off the local axes so that no sample is
        aligned with a frame axis (and hence with a cell face).

        Args:
            num_samples: Number of polygon corners (>= 3)
        """
        if num_samples < 3:
            raise ConfigurationError(
                "A profile needs at least 3 samples",
                details={"num_samples": num_samples},
            )
        step = 2.0 * np.pi / num_samples
        angles = step * (np.arange(num_samples) + 0.5)
        return cls(np.column_stack([np.cos(angles), np.sin(angles)]))

    @classmethod
    def from_points(cls, points: Sequence[Sequence[float]]) -> "WireProfile":
        """
        Custom profile from 2D samples.

        The polygon is reoriented counter-clockwise. It must be star-shaped
        around the origin, since tube ends are fanned from their centers.

        Raises:
            ConfigurationError: If the samples do not form a usable polygon
        """
        pts = np.asarray(points, dtype=float)
        if pts.ndim != 2 or pts.shape[1] != 2 or len(pts) < 3:
            raise ConfigurationError(
                "Profile points must be an (N, 2) array with N >= 3",
                details={"shape": list(pts.shape)},
            )
        if not np.all(np.isfinite(pts)):
            raise ConfigurationError("Profile points must be finite")
        if _signed_area(pts) < 0:
            pts = pts[::-1]

        cross = pts[:, 0] * np.roll(pts[:, 1], -1) - pts[:, 1] * np.roll(pts[:, 0], -1)
        if np.any(cross <= 0):
            raise ConfigurationError(
                "Profile must be star-shaped around the origin",
                details={"num_samples": len(pts)},
            )
        return cls(pts)

    @classmethod
    def from_config(cls, config: InflatorConfig) -> "WireProfile":
        """Default profile described by a configuration."""
        if config.profile_points is not None:
            return cls.from_points(config.profile_points)
        return cls.create_isotropic(config.profile_samples)

    @property
    def num_samples(self) -> int:
        return len(self.points)

    @property
    def area(self) -> float:
        return _signed_area(self.points)

    @property
    def max_radius(self) -> float:
        return float(np.linalg.norm(self.points, axis=1).max())

    def as_tuples(self) -> tuple[tuple[float, float], ...]:
        """Plain-data form, as stored in InflatorConfig."""
        return tuple((float(x), float(y)) for x, y in self.points)

    def place(
        self,
        center: np.ndarray,
        axis_u: np.ndarray,
        axis_v: np.ndarray,
        radius: float,
    ) -> np.ndarray:
        """
        3D ring of this profile in the plane spanned by ``axis_u``/``axis_v``.

        Args:
            center: Ring center (3,)
            axis_u: Unit vector mapped from the profile x axis
            axis_v: Unit vector mapped from the profile y axis
            radius: Scale applied to the unit profile

        Returns:
            (N, 3) ring points
        """
        ring = np.outer(self.points[:, 0], axis_u) + np.outer(self.points[:, 1], axis_v)
        return center + radius * ring
