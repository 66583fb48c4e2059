"""
splinefit - Clamped cubic spline fitting with a banded LU solver.

This package fits a twice-differentiable piecewise cubic curve through 2D
waypoints and reports its stretch (bending) energy for use as a
smoothness cost in trajectory optimization:
- banded: Band matrix storage, no-pivot LU and multi-column solves
- spline: Tangent solve, per-segment coefficients and stretch energy
- curve: Piecewise cubic container the fitted spline is handed over in

Basic Usage:
    from splinefit import CubicSplineFitter

    fitter = CubicSplineFitter()
    fitter.configure(head, tail, segment_count)
    fitter.fit(interior_points)
    energy = fitter.compute_stretch_energy()
    curve = fitter.export_curve()

For more control:
    from splinefit.config import SplineFitConfig, ConfigManager
    from splinefit.logging import LOG_INFO, LOG_DEBUG, TimeTracker
    from splinefit.exceptions import NumericalInstabilityError
"""

from __future__ import annotations

__version__ = "0.1.0"

# =============================================================================
# Core API
# =============================================================================

from splinefit.banded import BandedLinearSystem, BandState

from splinefit.spline import (
    CubicSplineFitter,
    FitterState,
    fit_waypoints,
)

from splinefit.curve import CubicCurve, CubicPolynomial

from splinefit.config import (
    create_default_config,
    load_config,
    SplineFitConfig,
    ConfigManager,
    get_config,
    init_config,
)

# =============================================================================
# Logging
# =============================================================================

from splinefit.logging import (
    LOG_DEBUG,
    LOG_INFO,
    LOG_WARN,
    LOG_ERROR,
    TimeTracker,
    TimingStats,
    profile_scope,
    get_logger,
    setup_logging,
    timed,
)

# =============================================================================
# Exceptions
# =============================================================================

from splinefit.exceptions import (
    SplineFitError,
    ConfigurationError,
    ConfigNotFoundError,
    ConfigValidationError,
    BandedSystemError,
    BandIndexError,
    SystemStateError,
    NumericalInstabilityError,
    RightHandSideError,
    FittingError,
    NotConfiguredError,
    NotFittedError,
    InvalidSegmentCountError,
    DimensionMismatchError,
    InvalidWaypointError,
)

__all__ = [
    "__version__",
    # Core
    "BandedLinearSystem",
    "BandState",
    "CubicSplineFitter",
    "FitterState",
    "fit_waypoints",
    "CubicCurve",
    "CubicPolynomial",
    # Config
    "create_default_config",
    "load_config",
    "SplineFitConfig",
    "ConfigManager",
    "get_config",
    "init_config",
    # Logging
    "LOG_DEBUG",
    "LOG_INFO",
    "LOG_WARN",
    "LOG_ERROR",
    "TimeTracker",
    "TimingStats",
    "profile_scope",
    "get_logger",
    "setup_logging",
    "timed",
    # Exceptions
    "SplineFitError",
    "ConfigurationError",
    "ConfigNotFoundError",
    "ConfigValidationError",
    "BandedSystemError",
    "BandIndexError",
    "SystemStateError",
    "NumericalInstabilityError",
    "RightHandSideError",
    "FittingError",
    "NotConfiguredError",
    "NotFittedError",
    "InvalidSegmentCountError",
    "DimensionMismatchError",
    "InvalidWaypointError",
]
