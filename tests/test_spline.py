"""
Tests for the clamped cubic spline fitter.
"""

from __future__ import annotations

import numpy as np
import pytest

from splinefit.config import SplineFitConfig
from splinefit.curve import CubicCurve, CubicPolynomial
from splinefit.exceptions import (
    DimensionMismatchError,
    InvalidSegmentCountError,
    InvalidWaypointError,
    NotConfiguredError,
    NotFittedError,
    NumericalInstabilityError,
)
from splinefit.spline import CubicSplineFitter, FitterState, fit_waypoints


def simpson_energy(curve: CubicCurve) -> float:
    """Integral of |p''|^2 per piece; Simpson's rule is exact for the quadratic integrand."""
    total = 0.0
    for piece in curve:
        f = [float(np.sum(piece.get_acc(s) ** 2)) for s in (0.0, 0.5, 1.0)]
        total += (f[0] + 4.0 * f[1] + f[2]) / 6.0
    return total


def fit(head, tail, interior) -> CubicSplineFitter:
    fitter = CubicSplineFitter()
    fitter.configure(head, tail, len(interior) + 1)
    fitter.fit(interior)
    return fitter


class TestStateMachine:
    """Tests for configure/fit ordering."""

    def test_initial_state(self):
        """A new fitter is unconfigured."""
        fitter = CubicSplineFitter()
        assert fitter.state is FitterState.UNCONFIGURED
        assert fitter.segment_count == 0

    def test_fit_before_configure(self):
        """fit() requires configure()."""
        with pytest.raises(NotConfiguredError):
            CubicSplineFitter().fit([[1.0, 0.0]])

    def test_results_before_configure(self):
        """Reading results of an unconfigured fitter is reported as such."""
        fitter = CubicSplineFitter()
        with pytest.raises(NotConfiguredError):
            fitter.compute_stretch_energy()
        with pytest.raises(NotConfiguredError):
            fitter.export_curve()

    def test_results_before_fit(self):
        """Energy, curve and coefficients require a fit."""
        fitter = CubicSplineFitter()
        fitter.configure((0.0, 0.0), (2.0, 0.0), 2)
        assert fitter.state is FitterState.CONFIGURED
        with pytest.raises(NotFittedError):
            fitter.compute_stretch_energy()
        with pytest.raises(NotFittedError):
            fitter.export_curve()
        with pytest.raises(NotFittedError):
            fitter.coefficients

    def test_configure_after_fit_clears_result(self):
        """Reconfiguring drops the previous fit."""
        fitter = fit((0.0, 0.0), (2.0, 0.0), [[1.0, 1.0]])
        assert fitter.state is FitterState.FITTED
        fitter.configure((0.0, 0.0), (3.0, 0.0), 3)
        assert fitter.state is FitterState.CONFIGURED
        with pytest.raises(NotFittedError):
            fitter.compute_stretch_energy()


class TestInputValidation:
    """Tests for rejected inputs."""

    @pytest.mark.parametrize("count", [1, 0, -4, 2.5, True, "3"])
    def test_invalid_segment_count(self, count):
        """Segment counts below 2 or of non-integer type are rejected."""
        with pytest.raises(InvalidSegmentCountError):
            CubicSplineFitter().configure((0.0, 0.0), (1.0, 0.0), count)

    def test_numpy_integer_segment_count(self):
        """numpy integers are accepted as segment counts."""
        fitter = CubicSplineFitter()
        fitter.configure((0.0, 0.0), (1.0, 0.0), np.int64(2))
        assert fitter.segment_count == 2

    @pytest.mark.parametrize("head", [(0.0,), (0.0, 0.0, 0.0), [[0.0, 0.0]]])
    def test_head_must_be_2d_point(self, head):
        """Boundary points must have exactly two coordinates."""
        with pytest.raises(DimensionMismatchError):
            CubicSplineFitter().configure(head, (1.0, 0.0), 2)

    @pytest.mark.parametrize(
        "interior",
        [
            [],
            [[1.0, 0.0], [2.0, 0.0]],
            [1.0, 0.0],
            [[1.0, 0.0, 0.0]],
        ],
    )
    def test_interior_count_mismatch(self, interior):
        """Interior points must be exactly (segment_count - 1, 2)."""
        fitter = CubicSplineFitter()
        fitter.configure((0.0, 0.0), (2.0, 0.0), 2)
        with pytest.raises(DimensionMismatchError):
            fitter.fit(interior)
        assert fitter.state is FitterState.CONFIGURED

    def test_non_finite_interior_rejected(self):
        """NaN or inf interior points raise InvalidWaypointError."""
        fitter = CubicSplineFitter()
        fitter.configure((0.0, 0.0), (3.0, 0.0), 3)
        with pytest.raises(InvalidWaypointError):
            fitter.fit([[1.0, np.nan], [2.0, 0.0]])
        with pytest.raises(InvalidWaypointError):
            fitter.fit([[1.0, 0.0], [np.inf, 0.0]])

    def test_non_finite_boundary_rejected(self):
        """NaN head or tail raises InvalidWaypointError."""
        with pytest.raises(InvalidWaypointError):
            CubicSplineFitter().configure((np.nan, 0.0), (1.0, 0.0), 2)

    @pytest.mark.parametrize("head", [(0.0, "a"), ("x", "y"), ("1,5", 0.0)])
    def test_non_numeric_boundary_rejected(self, head):
        """Coordinates that are not numbers raise InvalidWaypointError."""
        with pytest.raises(InvalidWaypointError):
            CubicSplineFitter().configure(head, (1.0, 0.0), 2)

    @pytest.mark.parametrize(
        "interior",
        [
            [[1.0, 0.0], [2.0]],
            [[1.0, 0.0], [2.0, "b"]],
            [[1.0, 0.0], {"x": 2.0}],
        ],
    )
    def test_unusable_interior_rejected(self, interior):
        """Ragged or non-numeric interior points raise InvalidWaypointError."""
        fitter = CubicSplineFitter()
        fitter.configure((0.0, 0.0), (3.0, 0.0), 3)
        with pytest.raises(InvalidWaypointError):
            fitter.fit(interior)
        assert fitter.state is FitterState.CONFIGURED

    def test_finite_check_can_be_disabled(self):
        """With check_finite off, NaN input propagates instead of raising."""
        config = SplineFitConfig()
        config.fitter.check_finite = False
        fitter = CubicSplineFitter(config)
        fitter.configure((0.0, 0.0), (2.0, 0.0), 2)
        fitter.fit([[np.nan, 0.0]])
        assert np.isnan(fitter.compute_stretch_energy())

    def test_pivot_tolerance_forwarded_to_solver(self):
        """The solver section of the configuration reaches the banded system."""
        config = SplineFitConfig()
        config.solver.pivot_tolerance = 10.0
        fitter = CubicSplineFitter(config)
        fitter.configure((0.0, 0.0), (3.0, 0.0), 3)
        assert fitter.system.pivot_tolerance == 10.0
        with pytest.raises(NumericalInstabilityError):
            fitter.fit([[1.0, 0.0], [2.0, 0.0]])


class TestCoefficients:
    """Tests for the derived per-segment coefficients."""

    def test_colinear_evenly_spaced(self):
        """Colinear points give coefficients along the line only."""
        fitter = fit((0.0, 0.0), (3.0, 0.0), [[1.0, 0.0], [2.0, 0.0]])
        coeffs = fitter.coefficients
        assert coeffs.shape == (12, 2)
        np.testing.assert_array_equal(coeffs[:, 1], np.zeros(12))

        # tangents D = [0, 1.2, 1.2, 0]
        expected_x = np.array([
            [-0.8, 1.8, 0.0, 0.0],
            [0.4, -0.6, 1.2, 1.0],
            [-0.8, 0.6, 1.2, 2.0],
        ])
        for i in range(3):
            np.testing.assert_allclose(fitter.coefficient_matrix(i)[0], expected_x[i], atol=1e-12)

    def test_table_layout(self, fitted_wavy):
        """Rows 4i..4i+3 hold d, c, b, a and a_i is the waypoint."""
        coeffs = fitted_wavy.coefficients
        curve = fitted_wavy.export_curve()
        for i, piece in enumerate(curve):
            np.testing.assert_array_equal(coeffs[4 * i : 4 * i + 4].T, piece.coeff_mat)
            np.testing.assert_array_equal(fitted_wavy.coefficient_matrix(i), piece.coeff_mat)

    def test_coefficient_matrix_index_checked(self, fitted_wavy):
        """Segment indices outside [0, N) raise IndexError."""
        with pytest.raises(IndexError):
            fitted_wavy.coefficient_matrix(6)
        with pytest.raises(IndexError):
            fitted_wavy.coefficient_matrix(-1)

    def test_coefficients_are_copies(self, fitted_wavy):
        """Mutating the returned table does not alter the fit."""
        energy = fitted_wavy.compute_stretch_energy()
        coeffs = fitted_wavy.coefficients
        coeffs[:] = 0.0
        assert fitted_wavy.compute_stretch_energy() == energy

    def test_tangents_satisfy_continuity_system(self, fitted_wavy, wavy_waypoints):
        """Junction tangents solve D[i-1] + 4 D[i] + D[i+1] = 3 (X[i+1] - X[i-1])."""
        curve = fitted_wavy.export_curve()
        tangents = np.array([piece.get_vel(0.0) for piece in curve] + [curve[-1].get_vel(1.0)])
        x = wavy_waypoints
        lhs = tangents[:-2] + 4.0 * tangents[1:-1] + tangents[2:]
        np.testing.assert_allclose(lhs, 3.0 * (x[2:] - x[:-2]), atol=1e-12)

    def test_matches_dense_tangent_solve(self):
        """A long spline matches tangents from a dense solve of the same system."""
        rng = np.random.default_rng(7)
        n = 200
        points = np.column_stack((np.arange(n + 1, dtype=float), rng.normal(size=n + 1)))
        fitter = fit_waypoints(points)

        a = 4.0 * np.eye(n - 1) + np.eye(n - 1, k=1) + np.eye(n - 1, k=-1)
        expected = np.linalg.solve(a, 3.0 * (points[2:] - points[:-2]))
        coeffs = fitter.coefficients
        np.testing.assert_allclose(coeffs[4 + 2 :: 4][: n - 1], expected, rtol=1e-10, atol=1e-12)


class TestCurveProperties:
    """Tests for interpolation and smoothness of the exported curve."""

    def test_boundary_fidelity(self, fitted_wavy, wavy_waypoints):
        """The curve starts at the head and ends at the tail."""
        curve = fitted_wavy.export_curve()
        np.testing.assert_array_equal(curve[0].get_pos(0.0), wavy_waypoints[0])
        np.testing.assert_allclose(curve[-1].get_pos(1.0), wavy_waypoints[-1], atol=1e-12)

    def test_passes_through_all_waypoints(self, fitted_wavy, wavy_waypoints):
        """Junction positions equal the waypoints."""
        curve = fitted_wavy.export_curve()
        np.testing.assert_allclose(curve.positions(), wavy_waypoints, atol=1e-12)

    def test_clamped_end_tangents(self, fitted_wavy):
        """First derivative is zero at head and tail."""
        curve = fitted_wavy.export_curve()
        np.testing.assert_array_equal(curve[0].get_vel(0.0), np.zeros(2))
        np.testing.assert_allclose(curve[-1].get_vel(1.0), np.zeros(2), atol=1e-12)

    def test_first_derivative_continuity(self, fitted_wavy):
        """Velocity matches from both sides of every interior junction."""
        pieces = list(fitted_wavy.export_curve())
        for before, after in zip(pieces[:-1], pieces[1:]):
            np.testing.assert_allclose(before.get_vel(1.0), after.get_vel(0.0), atol=1e-12)

    def test_second_derivative_continuity(self, fitted_wavy):
        """Acceleration matches from both sides of every interior junction."""
        pieces = list(fitted_wavy.export_curve())
        for before, after in zip(pieces[:-1], pieces[1:]):
            np.testing.assert_allclose(before.get_acc(1.0), after.get_acc(0.0), atol=1e-11)

    def test_export_preserves_order_and_duration(self, fitted_wavy, wavy_waypoints):
        """One unit-duration piece per segment, in path order."""
        curve = fitted_wavy.export_curve()
        assert curve.piece_count == 6
        np.testing.assert_array_equal(curve.durations, np.ones(6))
        for i, piece in enumerate(curve):
            np.testing.assert_array_equal(piece.coeff_mat[:, 3], wavy_waypoints[i])

    def test_export_into_existing_curve(self, fitted_wavy):
        """A supplied container is cleared and refilled."""
        curve = CubicCurve([CubicPolynomial(2.0, np.zeros((2, 4)))] * 3)
        result = fitted_wavy.export_curve(curve)
        assert result is curve
        assert len(curve) == 6
        assert curve.total_duration == 6.0


class TestStretchEnergy:
    """Tests for the closed-form bending energy."""

    def test_two_segment_colinear(self):
        """Clamped ends make even a straight path bend: energy 6 for this case."""
        fitter = fit((0.0, 0.0), (2.0, 0.0), [[1.0, 0.0]])
        assert fitter.compute_stretch_energy() == pytest.approx(6.0, abs=1e-12)

    def test_two_segment_off_line(self):
        """Lifting the interior point to (1, 1) raises the energy to 30."""
        fitter = fit((0.0, 0.0), (2.0, 0.0), [[1.0, 1.0]])
        assert fitter.compute_stretch_energy() == pytest.approx(30.0, abs=1e-12)

    def test_three_segment_colinear(self):
        """Evenly spaced colinear points give energy 7.2."""
        fitter = fit((0.0, 0.0), (3.0, 0.0), [[1.0, 0.0], [2.0, 0.0]])
        assert fitter.compute_stretch_energy() == pytest.approx(7.2, abs=1e-12)

    def test_coincident_points_have_zero_energy(self):
        """A curve that never moves does not bend."""
        fitter = fit((1.0, 2.0), (1.0, 2.0), [[1.0, 2.0], [1.0, 2.0]])
        assert fitter.compute_stretch_energy() == 0.0
        np.testing.assert_array_equal(fitter.coefficients[0::4], np.zeros((3, 2)))
        np.testing.assert_array_equal(fitter.coefficients[1::4], np.zeros((3, 2)))

    def test_monotone_in_perturbation(self):
        """Moving the interior point further off the line increases energy (6 + 24 t^2)."""
        energies = []
        for t in (0.0, 0.25, 0.5, 1.0, 2.0):
            fitter = fit((0.0, 0.0), (2.0, 0.0), [[1.0, t]])
            energy = fitter.compute_stretch_energy()
            assert energy == pytest.approx(6.0 + 24.0 * t * t, rel=1e-12)
            energies.append(energy)
        assert all(a < b for a, b in zip(energies, energies[1:]))

    def test_matches_exact_quadrature(self, fitted_wavy):
        """Closed form agrees with an exact quadrature of |p''|^2."""
        expected = simpson_energy(fitted_wavy.export_curve())
        assert fitted_wavy.compute_stretch_energy() == pytest.approx(expected, rel=1e-12)

    def test_non_negative_for_random_inputs(self):
        """Energy is finite and non-negative for arbitrary waypoints."""
        rng = np.random.default_rng(42)
        for n in (2, 3, 5, 17):
            points = rng.uniform(-10.0, 10.0, size=(n + 1, 2))
            energy = fit_waypoints(points).compute_stretch_energy()
            assert np.isfinite(energy)
            assert energy >= 0.0

    def test_translation_invariant(self, wavy_waypoints):
        """Shifting every waypoint leaves the energy unchanged."""
        base = fit_waypoints(wavy_waypoints).compute_stretch_energy()
        shifted = fit_waypoints(wavy_waypoints + np.array([5.0, -3.0])).compute_stretch_energy()
        assert shifted == pytest.approx(base, rel=1e-10)

    def test_gradient_not_available(self, fitted_wavy):
        """The interior-point gradient is declared but not provided."""
        with pytest.raises(NotImplementedError):
            fitted_wavy.gradient_wrt_interior_points()


class TestReconfiguration:
    """Tests for configure/fit reuse."""

    def test_second_configure_resizes_storage(self):
        """Storage follows the latest segment count."""
        fitter = CubicSplineFitter()
        fitter.configure((0.0, 0.0), (5.0, 0.0), 5)
        assert fitter.system.size == 4
        first_system = fitter.system

        fitter.configure((0.0, 0.0), (3.0, 0.0), 3)
        assert fitter.system is not first_system
        assert fitter.system.size == 2
        assert fitter.system.storage_size == 2 * 3

        fitter.fit([[1.0, 0.0], [2.0, 0.0]])
        assert fitter.coefficients.shape == (12, 2)
        assert fitter.compute_stretch_energy() == pytest.approx(7.2, abs=1e-12)

    def test_refit_matches_fresh_fitter(self, wavy_waypoints):
        """Fitting again with new points equals a fit on a fresh instance."""
        fitter = CubicSplineFitter()
        fitter.configure(wavy_waypoints[0], wavy_waypoints[-1], 6)
        fitter.fit(wavy_waypoints[1:-1])
        moved = wavy_waypoints[1:-1] + 0.3
        fitter.fit(moved)

        fresh = CubicSplineFitter()
        fresh.configure(wavy_waypoints[0], wavy_waypoints[-1], 6)
        fresh.fit(moved)

        np.testing.assert_array_equal(fitter.coefficients, fresh.coefficients)

    def test_failed_refit_drops_previous_result(self, wavy_waypoints):
        """A refit that fails in the solver leaves no readable result behind."""
        fitter = CubicSplineFitter()
        fitter.configure(wavy_waypoints[0], wavy_waypoints[-1], 6)
        fitter.fit(wavy_waypoints[1:-1])
        assert fitter.state is FitterState.FITTED

        fitter.system.pivot_tolerance = 10.0
        with pytest.raises(NumericalInstabilityError):
            fitter.fit(wavy_waypoints[1:-1] + 0.3)
        assert fitter.state is FitterState.CONFIGURED
        with pytest.raises(NotFittedError):
            fitter.coefficients
        with pytest.raises(NotFittedError):
            fitter.compute_stretch_energy()

        fitter.system.pivot_tolerance = 1e-12
        fitter.fit(wavy_waypoints[1:-1])
        np.testing.assert_array_equal(fitter.coefficients, fit_waypoints(wavy_waypoints).coefficients)


class TestFitWaypoints:
    """Tests for the fit_waypoints convenience."""

    def test_equivalent_to_explicit_calls(self, fitted_wavy, wavy_waypoints):
        """fit_waypoints splits head, interior and tail."""
        fitter = fit_waypoints(wavy_waypoints)
        assert fitter.segment_count == 6
        np.testing.assert_array_equal(fitter.head, wavy_waypoints[0])
        np.testing.assert_array_equal(fitter.tail, wavy_waypoints[-1])
        np.testing.assert_array_equal(fitter.coefficients, fitted_wavy.coefficients)

    def test_too_few_waypoints(self):
        """Two waypoints make a single segment, which is rejected."""
        with pytest.raises(InvalidSegmentCountError):
            fit_waypoints([[0.0, 0.0], [1.0, 1.0]])

    def test_wrong_point_dimension(self):
        """Waypoints must be 2D."""
        with pytest.raises(DimensionMismatchError):
            fit_waypoints([[0.0, 0.0, 0.0], [1.0, 1.0, 1.0], [2.0, 0.0, 0.0]])

    def test_ragged_waypoints(self):
        """Rows of different lengths raise InvalidWaypointError."""
        with pytest.raises(InvalidWaypointError):
            fit_waypoints([[0.0, 0.0], [1.0], [2.0, 0.0]])
