"""
Configuration management for wirelattice.

Inflation settings are a single validated, immutable model. It can be
built incrementally in code (see PeriodicInflator3D) or loaded from YAML.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional

import numpy as np
import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from wirelattice.core.exceptions import ConfigurationError

# Relative to the cell diagonal; shared by periodic classes, snapping and matching.
DEFAULT_TOLERANCE = 1e-6
DEFAULT_PROFILE_SAMPLES = 8


class ThicknessType(str, Enum):
    """How a thickness vector is interpreted."""

    PER_EDGE = "per_edge"  # One diameter per edge
    PER_VERTEX = "per_vertex"  # One diameter per vertex, linear along edges


class RefinementScheme(str, Enum):
    """Named subdivision schemes available after inflation."""

    LOOP = "loop"  # Loop subdivision (smoothing)
    SIMPLE = "simple"  # Midpoint subdivision (geometry preserving)


class InflatorConfig(BaseModel):
    """
    Everything one inflation needs besides the wire network.

    Example:
        >>> config = InflatorConfig(thickness=[0.5] * 12, profile_samples=20)
        >>> config = config.model_copy(update={"refinement_iterations": 1})
    """

    model_config = ConfigDict(frozen=True)

    thickness_type: ThicknessType = ThicknessType.PER_EDGE
    thickness: Optional[tuple[float, ...]] = None
    profile_samples: int = Field(default=DEFAULT_PROFILE_SAMPLES, ge=3)
    profile_points: Optional[tuple[tuple[float, float], ...]] = None
    profile_overrides: dict[int, tuple[tuple[float, float], ...]] = Field(default_factory=dict)
    refinement_scheme: Optional[RefinementScheme] = None
    refinement_iterations: int = Field(default=0, ge=0)
    joint_scale: float = Field(default=1.0, gt=0.0)
    tolerance: float = Field(default=DEFAULT_TOLERANCE, gt=0.0, lt=1e-2)
    strict_overlap: bool = False
    cell_min: Optional[tuple[float, float, float]] = None
    cell_max: Optional[tuple[float, float, float]] = None

    @field_validator("thickness", mode="before")
    @classmethod
    def _coerce_thickness(cls, value: Any) -> Any:
        if value is None:
            return None
        return tuple(float(x) for x in np.asarray(value, dtype=float).ravel())

    @field_validator("refinement_scheme", mode="before")
    @classmethod
    def _normalize_scheme(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.strip().lower()
        return value

    @property
    def refines(self) -> bool:
        return self.refinement_scheme is not None and self.refinement_iterations > 0

    @property
    def has_cell(self) -> bool:
        return self.cell_min is not None and self.cell_max is not None


def build_config(**values: Any) -> InflatorConfig:
    """
    Build an InflatorConfig, turning validation failures into ConfigurationError.

    Raises:
        ConfigurationError: If any value is invalid
    """
    try:
        return InflatorConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(
            "Invalid inflator configuration",
            details={"errors": [err["msg"] for err in e.errors()]},
        ) from e


def load_inflator_config(file_path: str | Path) -> InflatorConfig:
    """
    Load inflator settings from a YAML file.

    The file holds an ``inflator`` mapping whose keys are InflatorConfig
    fields; a ``refinement`` mapping (``scheme``/``iterations``) is merged in
    when present::

        inflator:
          thickness_type: per_vertex
          profile_samples: 12
        refinement:
          scheme: loop
          iterations: 1

    Raises:
        ConfigurationError: If the file is missing, unreadable or invalid
    """
    path = Path(file_path)
    if not path.exists():
        raise ConfigurationError(f"Configuration file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Failed to parse configuration: {path}",
            details={"error": str(e)},
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration root must be a mapping: {path}")

    values = dict(data.get("inflator") or {})
    if "refinement" in data:
        refinement = data["refinement"] or {}
        values["refinement_scheme"] = refinement.get("scheme")
        values["refinement_iterations"] = refinement.get("iterations", 1)

    try:
        return InflatorConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(
            f"Failed to load inflator config: {path}",
            details={"error": str(e)},
        ) from e
