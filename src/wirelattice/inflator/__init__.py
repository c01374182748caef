"""
Inflator module - Sweeping wire networks into periodic solids.

PeriodicInflator3D is the stateful entry point; inflate() is the same
operation as a pure function of a network and an InflatorConfig.
"""

from wirelattice.inflator.periodic import InflationResult, PeriodicInflator3D, inflate
from wirelattice.inflator.profile import WireProfile
from wirelattice.inflator.thickness import Thickness

__all__ = [
    "InflationResult",
    "PeriodicInflator3D",
    "inflate",
    "WireProfile",
    "Thickness",
]
