"""Tests for Savitzky-Golay filtering and finite-difference derivatives."""

from decimal import Decimal

import numpy as np
import pytest
from pydantic import ValidationError
from scipy.signal import savgol_filter

from echem_analysis import SavitzkyGolayParams, TraceFile
from echem_analysis.analysis import smoothing
from echem_analysis.analysis.smoothing import (
    numerical_derivative,
    savitzky_golay_derivative,
    savitzky_golay_smooth,
    smooth_traces,
)


@pytest.fixture
def noisy_sine():
    rng = np.random.default_rng(7)
    x = np.linspace(0.0, 2.0, 51)
    y = np.sin(3 * x) + rng.normal(0, 0.05, x.size)
    return x, y


@pytest.mark.parametrize(
    "window_size, poly_order",
    [(4, 2), (1, 1), (5, 0), (5, 6), (5, 5), (7, 7)],
)
def test_invalid_parameters_rejected(window_size, poly_order):
    with pytest.raises(ValidationError):
        savitzky_golay_smooth([(0, 0)] * 10, window_size, poly_order)
    with pytest.raises(ValueError):
        savitzky_golay_derivative([(0, 0)] * 10, window_size, poly_order)


@pytest.mark.parametrize("window_size, poly_order", [(3, 1), (5, 2), (7, 3), (11, 5)])
def test_smoothing_linear_data_is_identity(window_size, poly_order):
    # Large absolute potentials, fine spacing
    points = [(100 + i * 0.001, 3 - 2 * (100 + i * 0.001)) for i in range(20)]

    smoothed = savitzky_golay_smooth(points, window_size, poly_order)

    half = window_size // 2
    for i in range(half, len(points) - half):
        assert float(smoothed[i][1]) == pytest.approx(points[i][1], rel=1e-9)


def test_smoothing_matches_scipy_on_uniform_grid(noisy_sine):
    x, y = noisy_sine

    smoothed = savitzky_golay_smooth(zip(x.tolist(), y.tolist()), 7, 2)
    expected = savgol_filter(y, 7, 2)

    values = np.array([float(v) for _, v in smoothed])
    np.testing.assert_allclose(values[3:-3], expected[3:-3], rtol=1e-8, atol=1e-10)


def test_smoothing_leaves_edges_unchanged(noisy_sine):
    x, y = noisy_sine
    points = list(zip(x.tolist(), y.tolist()))

    smoothed = savitzky_golay_smooth(points, 7, 2)

    for i in [0, 1, 2, len(points) - 3, len(points) - 2, len(points) - 1]:
        assert smoothed[i] == (Decimal(repr(points[i][0])), Decimal(repr(points[i][1])))
    assert [p[0] for p in smoothed] == [Decimal(repr(v)) for v in x.tolist()]


def test_smoothing_short_trace_returned_unchanged():
    points = [(0, 1), (1, 5), (2, 2)]

    smoothed = savitzky_golay_smooth(points, 5, 2)

    assert smoothed == [(Decimal(0), Decimal(1)), (Decimal(1), Decimal(5)), (Decimal(2), Decimal(2))]


def test_smoothing_singular_window_keeps_point(monkeypatch):
    monkeypatch.setattr(smoothing, "solve_linear_system", lambda a, b: None)
    points = [(i, i * i) for i in range(7)]

    smoothed = savitzky_golay_smooth(points, 5, 2)

    assert smoothed == [(Decimal(i), Decimal(i * i)) for i in range(7)]


def test_smoothing_repeated_x_window_keeps_point():
    # Window centred on index 2 has every x equal
    points = [(1, 0), (1, 1), (1, 2), (1, 3), (1, 4)]

    smoothed = savitzky_golay_smooth(points, 5, 1)

    assert smoothed[2] == (Decimal(1), Decimal(2))


def test_derivative_matches_scipy_on_uniform_grid(noisy_sine):
    x, y = noisy_sine
    dx = x[1] - x[0]

    deriv = savitzky_golay_derivative(zip(x.tolist(), y.tolist()), 7, 3)
    expected = savgol_filter(y, 7, 3, deriv=1, delta=dx)

    values = np.array([float(v) for _, v in deriv])
    np.testing.assert_allclose(values[3:-3], expected[3:-3], rtol=1e-6, atol=1e-8)


def test_derivative_of_quadratic_is_exact_in_interior():
    points = [(i * 0.1, (i * 0.1) ** 2) for i in range(15)]

    deriv = savitzky_golay_derivative(points, 5, 2)

    for i in range(2, 13):
        assert float(deriv[i][1]) == pytest.approx(2 * i * 0.1, abs=1e-9)


def test_derivative_edges_use_finite_differences():
    points = [(0, 0), (1, 1), (2, 4), (3, 9), (4, 16), (5, 25), (6, 36)]

    deriv = savitzky_golay_derivative(points, 5, 2)

    # forward, central, ..., central, backward
    assert deriv[0][1] == 1
    assert deriv[1][1] == 2
    assert deriv[5][1] == 10
    assert deriv[6][1] == 11


def test_derivative_short_trace_falls_back_to_numerical():
    points = [(0, 0), (1, 2), (3, 4)]

    assert savitzky_golay_derivative(points, 5, 2) == numerical_derivative(points)


def test_derivative_singular_window_is_zero(monkeypatch):
    monkeypatch.setattr(smoothing, "solve_linear_system", lambda a, b: None)
    points = [(i, i * i) for i in range(7)]

    deriv = savitzky_golay_derivative(points, 5, 2)

    assert [d for _, d in deriv[2:5]] == [0, 0, 0]
    assert deriv[0][1] == 1


def test_numerical_derivative_stencils():
    points = [(0, 0), (1, 1), (2, 4), (4, 16)]

    deriv = numerical_derivative(points)

    assert [d for _, d in deriv] == [Decimal(1), Decimal(2), Decimal(5), Decimal(6)]
    assert [x for x, _ in deriv] == [Decimal(0), Decimal(1), Decimal(2), Decimal(4)]


def test_numerical_derivative_zero_dx():
    deriv = numerical_derivative([(1, 0), (1, 5)])
    assert [d for _, d in deriv] == [0, 0]


@pytest.mark.parametrize("points", [[], [(0, 1)]])
def test_numerical_derivative_too_short(points):
    assert numerical_derivative(points) == []


def test_smooth_traces_batch():
    params = SavitzkyGolayParams(window_size=3, poly_order=1)
    good = TraceFile.from_points("good", "good", [(i, 2 * i) for i in range(6)])
    empty = TraceFile.from_points("empty", "empty", [])
    single = TraceFile.from_points("single", "single", [(0, 1)])

    smoothed = smooth_traces([good, empty], params)
    derived = smooth_traces([good, single], params, mode="derivative")

    assert smoothed[0].success and len(smoothed[0].value) == 6
    assert not smoothed[1].success
    assert [float(d) for _, d in derived[0].value] == pytest.approx([2.0] * 6)
    assert not derived[1].success
    assert derived[1].error == "Not enough points"


def test_smooth_traces_rejects_unknown_mode():
    params = SavitzkyGolayParams(window_size=3, poly_order=1)
    trace = TraceFile.from_points("t", "t", [(i, i) for i in range(5)])

    with pytest.raises(ValueError, match="Unknown mode"):
        smooth_traces([trace], params, mode="integral")
