"""
Geometry module - Mesh booleans, refinement, I/O and validity checks.
"""

from wirelattice.geometry.mesh_operations import (
    union_solids,
    clip_to_box,
    refine_mesh,
    analyze_mesh,
    load_mesh,
    export_mesh,
)
from wirelattice.geometry.validation import (
    is_water_tight,
    is_manifold,
    is_periodic,
    face_source_is_valid,
    check_mesh,
)

__all__ = [
    "union_solids",
    "clip_to_box",
    "refine_mesh",
    "analyze_mesh",
    "load_mesh",
    "export_mesh",
    "is_water_tight",
    "is_manifold",
    "is_periodic",
    "face_source_is_valid",
    "check_mesh",
]
