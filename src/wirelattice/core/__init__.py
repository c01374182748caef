"""
Core module - Wire networks, .wire I/O, configuration, errors and logging.
"""

from wirelattice.core.config import (
    InflatorConfig,
    RefinementScheme,
    ThicknessType,
    build_config,
    load_inflator_config,
)
from wirelattice.core.exceptions import (
    WireLatticeError,
    ConfigurationError,
    ParameterError,
    InflationError,
    ThicknessError,
    WireNetworkError,
    WireFormatError,
    GeometryError,
)
from wirelattice.core.wire_io import load_wire, parse_wire, save_wire
from wirelattice.core.wire_network import WireNetwork

__all__ = [
    # Config
    "InflatorConfig",
    "RefinementScheme",
    "ThicknessType",
    "build_config",
    "load_inflator_config",
    # Exceptions
    "WireLatticeError",
    "ConfigurationError",
    "ParameterError",
    "InflationError",
    "ThicknessError",
    "WireNetworkError",
    "WireFormatError",
    "GeometryError",
    # Wire networks
    "WireNetwork",
    "load_wire",
    "parse_wire",
    "save_wire",
]
