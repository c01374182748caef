"""
Custom exceptions for wirelattice.

All wirelattice exceptions inherit from WireLatticeError. Anything that
aborts an inflation is also a RuntimeError, so callers that only know the
inflator contract can catch that instead.
"""

from typing import Any


class WireLatticeError(Exception):
    """Base exception for all wirelattice errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - Details: {self.details}"
        return self.message


class ConfigurationError(WireLatticeError):
    """Raised when configuration is invalid or missing."""

    pass


class ParameterError(WireLatticeError):
    """Raised when orbit/modifier settings cannot be loaded or evaluated."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.source = source


class InflationError(WireLatticeError, RuntimeError):
    """Raised when an inflation attempt has to be aborted."""

    pass


class ThicknessError(ConfigurationError, InflationError):
    """Raised when thickness values are mis-sized or not strictly positive."""

    pass


class WireNetworkError(InflationError):
    """Raised when a wire network is structurally invalid."""

    pass


class WireFormatError(WireNetworkError):
    """Raised when a wire description cannot be parsed."""

    def __init__(
        self,
        message: str,
        path: str | None = None,
        line_number: int | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, details)
        self.path = path
        self.line_number = line_number

    def __str__(self) -> str:
        location = self.path or "<wire>"
        if self.line_number is not None:
            location = f"{location}:{self.line_number}"
        return f"{location}: {super().__str__()}"


class GeometryError(InflationError):
    """Raised when geometry is degenerate or a result would be invalid."""

    pass
