"""
splinefit Exception Hierarchy.

This module defines all custom exceptions used in the splinefit package.
Every error raised by the banded solver, the spline fitter or the
configuration layer derives from SplineFitError, so callers can catch
the whole family with a single except clause or target one category.
"""

from typing import Any, Optional


class SplineFitError(Exception):
    """Base exception for all splinefit errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dictionary with additional context.
    """

    def __init__(self, message: str, details: Optional[dict] = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# =============================================================================
# Configuration Errors
# =============================================================================


class ConfigurationError(SplineFitError):
    """Error in configuration loading or validation."""

    pass


class ConfigNotFoundError(ConfigurationError):
    """Configuration file not found."""

    def __init__(self, config_path: str):
        super().__init__(
            f"Configuration file not found: {config_path}",
            details={"path": config_path},
        )


class ConfigValidationError(ConfigurationError):
    """Configuration validation failed."""

    def __init__(self, key: str, reason: str, value: Any = None):
        details = {"key": key, "reason": reason}
        if value is not None:
            details["value"] = str(value)
        super().__init__(
            f"Invalid configuration for '{key}': {reason}",
            details=details,
        )


# =============================================================================
# Banded Solver Errors
# =============================================================================


class BandedSystemError(SplineFitError):
    """Base class for banded linear system errors."""

    pass


class BandIndexError(BandedSystemError):
    """Element access outside the declared band or matrix bounds."""

    def __init__(self, i: int, j: int, lower: int, upper: int, size: int):
        super().__init__(
            f"Entry ({i}, {j}) lies outside the band",
            details={"size": size, "lower_bandwidth": lower, "upper_bandwidth": upper},
        )


class SystemStateError(BandedSystemError):
    """Operation not permitted in the current system state."""

    def __init__(self, operation: str, state: Any):
        state_name = getattr(state, "name", str(state))
        super().__init__(
            f"Cannot {operation} while system is {state_name}",
            details={"operation": operation, "state": state_name},
        )


class NumericalInstabilityError(BandedSystemError):
    """Zero or near-zero pivot met during factorization."""

    def __init__(self, index: int, pivot: float):
        super().__init__(
            f"Near-zero pivot at row {index}; matrix is not safely factorizable without pivoting",
            details={"index": index, "pivot": pivot},
        )


class RightHandSideError(BandedSystemError):
    """Right-hand side cannot be solved in place."""

    def __init__(self, reason: str):
        super().__init__(
            f"Invalid right-hand side: {reason}",
            details={"reason": reason},
        )


# =============================================================================
# Fitting Errors
# =============================================================================


class FittingError(SplineFitError):
    """Base class for spline fitting errors."""

    pass


class NotConfiguredError(FittingError):
    """Fitter has not been configured."""

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot {operation}: fitter has not been configured. Call configure() first.",
            details={"operation": operation},
        )


class NotFittedError(FittingError):
    """Fitter has no fitted spline yet."""

    def __init__(self, operation: str):
        super().__init__(
            f"Cannot {operation}: no spline has been fitted. Call fit() first.",
            details={"operation": operation},
        )


class InvalidSegmentCountError(FittingError):
    """Segment count too small to form the tangent system."""

    def __init__(self, count: Any):
        super().__init__(
            f"Invalid segment count {count}: need an integer >= 2",
            details={"count": count},
        )


class DimensionMismatchError(FittingError):
    """Input has the wrong shape."""

    def __init__(self, what: str, expected: Any, actual: Any):
        super().__init__(
            f"Dimension mismatch for {what}: expected {expected}, got {actual}",
            details={"expected": expected, "actual": actual},
        )


class InvalidWaypointError(FittingError):
    """Waypoint data is unusable."""

    def __init__(self, reason: str):
        super().__init__(
            f"Invalid waypoint: {reason}",
            details={"reason": reason},
        )
