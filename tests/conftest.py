"""
Pytest configuration and fixtures for splinefit tests.

This module provides shared fixtures for testing:
- Configuration fixtures
- Banded matrix fixtures
- Waypoint fixtures
- Fitter fixtures
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pytest


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def default_config():
    """Create typed default configuration."""
    from splinefit.config import SplineFitConfig

    return SplineFitConfig()


@pytest.fixture
def clean_env(monkeypatch):
    """Remove SPLINEFIT_* variables so env overrides do not leak into tests."""
    import os

    for key in list(os.environ):
        if key.startswith("SPLINEFIT_"):
            monkeypatch.delenv(key)
    return monkeypatch


# =============================================================================
# Banded Matrix Fixtures
# =============================================================================


def make_band_matrix(n: int, lower: int, upper: int, seed: int = 0) -> np.ndarray:
    """Random strictly diagonally dominant dense matrix with the given bandwidths."""
    rng = np.random.default_rng(seed)
    dense = np.zeros((n, n))
    for i in range(n):
        for j in range(max(0, i - lower), min(n, i + upper + 1)):
            if i != j:
                dense[i, j] = rng.uniform(-1.0, 1.0)
        dense[i, i] = np.sum(np.abs(dense[i])) + rng.uniform(1.0, 2.0)
    return dense


def fill_system(system, dense: np.ndarray) -> None:
    """Copy the in-band entries of ``dense`` into ``system``."""
    n = dense.shape[0]
    for i in range(n):
        for j in range(n):
            if system.in_band(i, j):
                system[i, j] = dense[i, j]


@pytest.fixture
def band_matrix():
    """Factory for random diagonally dominant band matrices."""
    return make_band_matrix


@pytest.fixture
def band_filler():
    """Helper copying a dense matrix into a banded system."""
    return fill_system


@pytest.fixture
def tridiagonal_dense() -> np.ndarray:
    """Dense 6 x 6 diagonally dominant tridiagonal matrix."""
    return make_band_matrix(6, 1, 1, seed=1)


@pytest.fixture
def tridiagonal_system(tridiagonal_dense):
    """Unfactored banded system holding ``tridiagonal_dense``."""
    from splinefit.banded import BandedLinearSystem

    system = BandedLinearSystem(6, 1, 1)
    fill_system(system, tridiagonal_dense)
    return system


# =============================================================================
# Waypoint Fixtures
# =============================================================================


@pytest.fixture
def wavy_waypoints() -> np.ndarray:
    """Waypoints of a wavy path, head first and tail last."""
    return np.array([
        [0.0, 0.0],
        [0.8, 0.2],
        [1.6, -0.1],
        [2.5, 0.6],
        [3.0, 1.2],
        [3.8, 1.1],
        [4.5, 0.4],
    ])


@pytest.fixture
def fitted_wavy(wavy_waypoints):
    """Fitter fitted through ``wavy_waypoints``."""
    from splinefit.spline import CubicSplineFitter

    fitter = CubicSplineFitter()
    fitter.configure(wavy_waypoints[0], wavy_waypoints[-1], len(wavy_waypoints) - 1)
    fitter.fit(wavy_waypoints[1:-1])
    return fitter


# =============================================================================
# Temporary Files Fixtures
# =============================================================================


@pytest.fixture
def temp_config_file(tmp_path) -> Path:
    """Create a temporary configuration file."""
    import yaml

    config = {
        "solver": {
            "pivot_tolerance": 1e-9,
        },
        "fitter": {
            "check_finite": False,
        },
    }

    config_path = tmp_path / "test_config.yml"
    with open(config_path, "w") as f:
        yaml.dump(config, f)

    return config_path


@pytest.fixture
def temp_waypoints_file(tmp_path) -> Path:
    """Create a temporary waypoint file."""
    import yaml

    data = {
        "head": [0.0, 0.0],
        "tail": [2.0, 0.0],
        "interior": [[1.0, 1.0]],
    }

    path = tmp_path / "waypoints.yml"
    with open(path, "w") as f:
        yaml.dump(data, f)

    return path


# =============================================================================
# Marker Registrations
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
