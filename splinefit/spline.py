"""
Clamped cubic spline fitting through 2D waypoints.

Given a head point X[0], a tail point X[N] and N - 1 interior points, the
fitter builds the piecewise cubic curve with unit-duration segments

    p_i(s) = a_i + b_i s + c_i s^2 + d_i s^3,   s in [0, 1]

that passes through every waypoint, is twice continuously differentiable
at the junctions and has zero tangent at both ends. The interior tangents
D[1..N-1] solve the tridiagonal system

    D[i-1] + 4 D[i] + D[i+1] = 3 (X[i+1] - X[i-1]),   D[0] = D[N] = 0

which is factorized once and solved for both axes together.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional

import numpy as np

from splinefit.banded import BandedLinearSystem
from splinefit.config import SplineFitConfig
from splinefit.curve import CubicCurve, CubicPolynomial
from splinefit.exceptions import (
    DimensionMismatchError,
    InvalidSegmentCountError,
    InvalidWaypointError,
    NotConfiguredError,
    NotFittedError,
)
from splinefit.logging import LOG_DEBUG, LOG_WARN, profile_scope

# Spatial dimension of every waypoint and coefficient vector.
DIM = 2


def as_point_array(value, name: str) -> np.ndarray:
    """Convert coordinates to a float array.

    Raises:
        InvalidWaypointError: ``value`` holds non-numeric entries or ragged rows.
    """
    try:
        return np.asarray(value, dtype=float)
    except (TypeError, ValueError) as e:
        raise InvalidWaypointError(f"{name} must be numeric with equal-length rows ({e})") from e


class FitterState(Enum):
    UNCONFIGURED = "unconfigured"
    CONFIGURED = "configured"
    FITTED = "fitted"


class CubicSplineFitter:
    """Fits a clamped cubic spline and exposes its coefficients and stretch energy.

    Example:
        fitter = CubicSplineFitter()
        fitter.configure(head=(0.0, 0.0), tail=(3.0, 1.0), segment_count=3)
        fitter.fit([(1.0, 0.5), (2.0, 0.2)])
        energy = fitter.compute_stretch_energy()
        curve = fitter.export_curve()
    """

    def __init__(self, config: Optional[SplineFitConfig] = None):
        self.config = config or SplineFitConfig()
        self._state = FitterState.UNCONFIGURED
        self._segment_count = 0
        self._head: Optional[np.ndarray] = None
        self._tail: Optional[np.ndarray] = None
        self._system: Optional[BandedLinearSystem] = None
        self._rhs: Optional[np.ndarray] = None
        # (4N, 2): per segment the rows d, c, b, a
        self._coeffs: Optional[np.ndarray] = None

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def state(self) -> FitterState:
        return self._state

    @property
    def segment_count(self) -> int:
        return self._segment_count

    @property
    def head(self) -> Optional[np.ndarray]:
        return None if self._head is None else self._head.copy()

    @property
    def tail(self) -> Optional[np.ndarray]:
        return None if self._tail is None else self._tail.copy()

    @property
    def system(self) -> Optional[BandedLinearSystem]:
        """The owned tridiagonal system (factored after a fit)."""
        return self._system

    @property
    def coefficients(self) -> np.ndarray:
        """Coefficient table of shape (4N, 2).

        Rows 4i..4i+3 hold d_i, c_i, b_i, a_i of segment i.
        """
        self._require_fitted("read coefficients")
        return self._coeffs.copy()

    # ------------------------------------------------------------------
    # Setup and fitting
    # ------------------------------------------------------------------

    def configure(self, head, tail, segment_count: int) -> None:
        """Fix the boundary points and the number of segments N.

        Allocates the (N - 1) x 2 right-hand side and a tridiagonal banded
        system of size N - 1, replacing any previous allocation.
        """
        if isinstance(segment_count, bool) or not isinstance(segment_count, (int, np.integer)):
            raise InvalidSegmentCountError(segment_count)
        if segment_count < 2:
            raise InvalidSegmentCountError(segment_count)

        head_p = self._as_point(head, "head")
        tail_p = self._as_point(tail, "tail")

        n = int(segment_count)
        self._head = head_p
        self._tail = tail_p
        self._segment_count = n
        self._rhs = np.zeros((n - 1, DIM))
        self._system = BandedLinearSystem(
            n - 1, 1, 1, pivot_tolerance=self.config.solver.pivot_tolerance
        )
        self._coeffs = None
        self._state = FitterState.CONFIGURED

        LOG_DEBUG(f"Configured cubic spline: {n} segments, head={head_p}, tail={tail_p}")

    def fit(self, interior_points) -> None:
        """Fit the spline through head, ``interior_points`` and tail.

        Args:
            interior_points: Array-like of shape (N - 1, 2) in path order.
        """
        if self._state is FitterState.UNCONFIGURED:
            raise NotConfiguredError("fit")

        n = self._segment_count
        inner = as_point_array(interior_points, "interior points")
        if inner.shape != (n - 1, DIM):
            LOG_WARN(f"Rejected interior points of shape {inner.shape} for {n} segments")
            raise DimensionMismatchError("interior points", (n - 1, DIM), inner.shape)
        if self.config.fitter.check_finite and not np.all(np.isfinite(inner)):
            LOG_WARN("Rejected interior points containing NaN or inf")
            raise InvalidWaypointError("interior points must be finite")

        # a failed solve must not leave the previous fit readable
        self._coeffs = None
        self._state = FitterState.CONFIGURED

        with profile_scope(f"cubic spline fit ({n} segments)"):
            x = np.empty((n + 1, DIM))
            x[0] = self._head
            x[1:n] = inner
            x[n] = self._tail

            tangents = self._solve_tangents(x)
            self._coeffs = self._derive_coefficients(x, tangents)

        self._state = FitterState.FITTED

    def _solve_tangents(self, x: np.ndarray) -> np.ndarray:
        """Solve for D[0..N] with D[0] = D[N] = 0."""
        n = self._segment_count
        system = self._system
        # a previous fit leaves the system factored
        system.reset()

        m = n - 1
        for i in range(m):
            system[i, i] = 4.0
            if i > 0:
                system[i, i - 1] = 1.0
            if i < m - 1:
                system[i, i + 1] = 1.0
        self._rhs[:] = 3.0 * (x[2:] - x[:-2])

        system.factorize()
        system.solve(self._rhs)

        tangents = np.zeros((n + 1, DIM))
        tangents[1:n] = self._rhs
        return tangents

    @staticmethod
    def _derive_coefficients(x: np.ndarray, tangents: np.ndarray) -> np.ndarray:
        x0, x1 = x[:-1], x[1:]
        d0, d1 = tangents[:-1], tangents[1:]

        a = x0
        b = d0
        c = 3.0 * (x1 - x0) - 2.0 * d0 - d1
        d = 2.0 * (x0 - x1) + d0 + d1

        # (N, 4, 2) -> (4N, 2) with rows d, c, b, a per segment
        return np.stack([d, c, b, a], axis=1).reshape(-1, DIM)

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------

    def coefficient_matrix(self, segment: int) -> np.ndarray:
        """2 x 4 matrix [d, c, b, a] of one segment (highest power first)."""
        self._require_fitted("read coefficients")
        if not 0 <= segment < self._segment_count:
            raise IndexError(f"segment {segment} out of range for {self._segment_count} segments")
        return self._coeffs[4 * segment : 4 * segment + 4].T.copy()

    def export_curve(self, curve: Optional[CubicCurve] = None) -> CubicCurve:
        """Hand the fitted spline over as unit-duration cubic pieces.

        Args:
            curve: Optional container to fill; it is cleared first.

        Returns:
            The filled curve, one piece per segment in path order.
        """
        self._require_fitted("export curve")
        if curve is None:
            curve = CubicCurve()
        curve.clear()
        for i in range(self._segment_count):
            curve.append(CubicPolynomial(1.0, self._coeffs[4 * i : 4 * i + 4].T))
        return curve

    def compute_stretch_energy(self) -> float:
        """Sum over segments of the integral of |p''(s)|^2 for s in [0, 1].

        With p''(s) = 2c + 6ds the integral is 4|c|^2 + 12|d|^2 + 12 c.d.
        """
        self._require_fitted("compute stretch energy")
        d = self._coeffs[0::4]
        c = self._coeffs[1::4]
        return float(np.sum(4.0 * c * c + 12.0 * d * d + 12.0 * c * d))

    def gradient_wrt_interior_points(self) -> np.ndarray:
        """Gradient of the stretch energy with respect to the interior points."""
        # TODO: derive via solve_transpose once the adjoint of the tangent solve is pinned down
        raise NotImplementedError(
            "gradient of the stretch energy with respect to interior points is not available"
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_fitted(self, operation: str) -> None:
        if self._state is FitterState.UNCONFIGURED:
            raise NotConfiguredError(operation)
        if self._state is not FitterState.FITTED:
            raise NotFittedError(operation)

    def _as_point(self, value, name: str) -> np.ndarray:
        point = as_point_array(value, name)
        if point.shape != (DIM,):
            raise DimensionMismatchError(name, (DIM,), point.shape)
        if self.config.fitter.check_finite and not np.all(np.isfinite(point)):
            raise InvalidWaypointError(f"{name} must be finite")
        return point.copy()

    def __repr__(self) -> str:
        return f"CubicSplineFitter(segment_count={self._segment_count}, state={self._state.name})"


def fit_waypoints(waypoints, config: Optional[SplineFitConfig] = None) -> CubicSplineFitter:
    """Configure and fit a spline through a full waypoint sequence.

    Args:
        waypoints: Array-like of shape (N + 1, 2), head first, tail last, N >= 2.
        config: Optional configuration.

    Returns:
        A fitted CubicSplineFitter.
    """
    points = as_point_array(waypoints, "waypoints")
    if points.ndim != 2 or points.shape[1] != DIM:
        raise DimensionMismatchError("waypoints", f"(N + 1, {DIM})", points.shape)

    fitter = CubicSplineFitter(config)
    fitter.configure(points[0], points[-1], points.shape[0] - 1)
    fitter.fit(points[1:-1])
    return fitter
