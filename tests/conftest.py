"""Pytest fixtures for echem_analysis tests."""

import numpy as np
import pytest

from echem_analysis import TraceFile


@pytest.fixture
def peak_points():
    """Simulated voltammetry peak (potential, current) as strings."""
    return [
        ("0.0", "0.1"),
        ("0.1", "0.2"),
        ("0.2", "0.5"),
        ("0.3", "1.0"),
        ("0.4", "1.5"),
        ("0.5", "1.2"),
        ("0.6", "0.8"),
        ("0.7", "0.4"),
        ("0.8", "0.2"),
        ("0.9", "0.1"),
    ]


@pytest.fixture
def noisy_quadratic():
    """Quadratic with small reproducible noise."""
    rng = np.random.default_rng(42)
    x = np.linspace(-1.0, 1.0, 41)
    y = 0.5 - 1.5 * x + 2.0 * x**2 + rng.normal(0, 0.01, x.size)
    return list(zip(x.tolist(), y.tolist()))


def _cv_trace(file_id, scan_rate, peak_shift, seed):
    """Synthetic CV-like trace: anodic peak up, cathodic peak down."""
    rng = np.random.default_rng(seed)
    e = np.linspace(-0.2, 0.6, 161)
    i_pa = 1e-5 * np.sqrt(scan_rate)
    current = (
        i_pa * np.exp(-((e - (0.25 + peak_shift)) ** 2) / (2 * 0.03**2))
        - i_pa * np.exp(-((e - (0.15 - peak_shift)) ** 2) / (2 * 0.03**2))
        + rng.normal(0, 1e-9, e.size)
    )
    return TraceFile.from_points(
        file_id,
        f"cv_{int(scan_rate * 1000)}mVs",
        zip(e.tolist(), current.tolist()),
        file_type="CV",
        user_metadata={"scan_rate": scan_rate * 1000},  # mV/s
    )


@pytest.fixture
def cv_traces():
    """Three CV traces at 50, 100 and 200 mV/s."""
    return [
        _cv_trace("a", 0.05, 0.00, 1),
        _cv_trace("b", 0.10, 0.01, 2),
        _cv_trace("c", 0.20, 0.02, 3),
    ]
