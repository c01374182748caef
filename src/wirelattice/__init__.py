"""
wirelattice - Periodic wire-network inflation

Sweeps cross-section profiles along the edges of a periodic wire network
(a lattice skeleton) and produces a watertight, manifold, tileable
triangle mesh with per-face provenance.
"""

__version__ = "0.1.0"
__author__ = "wirelattice Contributors"

from wirelattice.core.config import InflatorConfig
from wirelattice.core.wire_network import WireNetwork
from wirelattice.inflator.periodic import PeriodicInflator3D, inflate
from wirelattice.inflator.profile import WireProfile
from wirelattice.parameters.manager import ParameterManager

__all__ = [
    "__version__",
    "InflatorConfig",
    "WireNetwork",
    "PeriodicInflator3D",
    "inflate",
    "WireProfile",
    "ParameterManager",
]
