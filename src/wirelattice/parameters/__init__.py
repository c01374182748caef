"""
Parameters module - Symmetry orbits, modifier files and the ParameterManager.
"""

from wirelattice.parameters.manager import ParameterManager, ParameterType
from wirelattice.parameters.modifiers import ModifierFile, evaluate_formula, load_modifier_file
from wirelattice.parameters.orbits import OrbitSet, compute_orbits, load_orbit_file

__all__ = [
    "ParameterManager",
    "ParameterType",
    "ModifierFile",
    "evaluate_formula",
    "load_modifier_file",
    "OrbitSet",
    "compute_orbits",
    "load_orbit_file",
]
