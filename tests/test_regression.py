"""Tests for polynomial regression and best-fit search."""

from decimal import Decimal

import pytest

from echem_analysis import RegressionSettings, TraceFile, load_config
from echem_analysis.analysis import regression
from echem_analysis.analysis.regression import (
    FitResult,
    find_best_fits,
    fit_traces,
    generate_points,
    generate_points_for_all_best_fits,
    generate_points_from_best_fit,
    polynomial_fit,
)


def test_linear_fit_recovers_slope():
    fit = polynomial_fit([(0, 0), (1, 2), (2, 4), (3, 6)], 1)

    assert fit.degree == 1
    assert len(fit.coefficients) == 2
    assert float(fit.coefficients[0]) == pytest.approx(0.0, abs=1e-9)
    assert float(fit.coefficients[1]) == pytest.approx(2.0)
    assert float(fit.r2) == pytest.approx(1.0)
    assert float(fit.mse) == pytest.approx(0.0, abs=1e-12)


@pytest.mark.parametrize(
    "coefficients",
    [
        [1.0, -2.0, 0.5],
        [0.0, 1.0, 0.0, -0.25],
        [3.0, 0.0, 0.0, 0.0, 1.0],
    ],
)
def test_exact_polynomial_round_trip(coefficients):
    degree = len(coefficients) - 1
    xs = [i * 0.25 - 1.0 for i in range(12)]
    points = [(x, sum(c * x**k for k, c in enumerate(coefficients))) for x in xs]

    fit = polynomial_fit(points, degree)

    assert len(fit.coefficients) == degree + 1
    assert [float(c) for c in fit.coefficients] == pytest.approx(coefficients, abs=1e-8)
    assert float(fit.r2) == pytest.approx(1.0, abs=1e-10)


def test_not_enough_points_gives_sentinel():
    fit = polynomial_fit([(0, 1), (1, 2)], 2)

    assert fit.coefficients == ()
    assert fit.r2 == Decimal("-Infinity")
    assert fit.mse == Decimal("Infinity")
    assert not fit.is_finite


def test_singular_system_gives_sentinel():
    # Every x identical: XᵗX has rank 1
    fit = polynomial_fit([(1, 1), (1, 2), (1, 3)], 1)

    assert fit.coefficients == ()
    assert fit.r2 == Decimal("-Infinity")


def test_constant_data_has_undefined_r2():
    fit = polynomial_fit([(0, 3), (1, 3), (2, 3)], 1)

    assert fit.r2.is_nan()
    assert not fit.is_finite
    assert find_best_fits([(0, 3), (1, 3), (2, 3)]) == []


def test_best_fits_sorted_by_r2(noisy_quadratic):
    fits = find_best_fits(noisy_quadratic)

    assert fits
    assert all(a.r2 >= b.r2 for a, b in zip(fits, fits[1:]))
    assert all(f.is_finite for f in fits)
    degrees = [f.degree for f in fits]
    assert len(set(degrees)) == len(degrees)
    assert 1 in degrees and 2 in degrees


def test_best_fits_quadratic_beats_line(noisy_quadratic):
    fits = {f.degree: f for f in find_best_fits(noisy_quadratic)}

    assert fits[2].r2 > fits[1].r2
    assert float(fits[2].r2) > 0.99


def test_best_fits_two_points_only_degree_one():
    fits = find_best_fits([(0, 1), (1, 3)])
    assert [f.degree for f in fits] == [1]


def test_best_fits_ties_keep_lower_degree_first(monkeypatch):
    r2_by_degree = {1: "0.9", 2: "0.95", 3: "0.95", 4: "0.9"}

    def fake_fit(points, degree):
        return FitResult(degree, (Decimal(0),) * (degree + 1), Decimal(r2_by_degree[degree]), Decimal(0))

    monkeypatch.setattr(regression, "polynomial_fit", fake_fit)

    fits = regression.find_best_fits([(0, 0)], max_degree=4)

    assert [f.degree for f in fits] == [2, 3, 1, 4]


@pytest.mark.parametrize("points", [[], [(0, 1)]])
def test_best_fits_empty_when_every_degree_fails(points):
    assert find_best_fits(points) == []


def test_generate_points_spacing():
    fit = polynomial_fit([(0, 0), (1, 2), (2, 4), (3, 6)], 1)

    generated = generate_points(fit, 5, 0, 2)

    assert [x for x, _ in generated] == [Decimal(0), Decimal("0.5"), Decimal(1), Decimal("1.5"), Decimal(2)]
    assert [float(y) for _, y in generated] == pytest.approx([0, 1, 2, 3, 4], abs=1e-9)


def test_generate_points_single_point_uses_x_min():
    fit = polynomial_fit([(0, 0), (1, 2), (2, 4)], 1)

    generated = generate_points(fit, 1, "0.5", "2")

    assert len(generated) == 1
    assert generated[0][0] == Decimal("0.5")
    assert float(generated[0][1]) == pytest.approx(1.0)


def test_generate_points_zero_count():
    fit = polynomial_fit([(0, 0), (1, 2), (2, 4)], 1)
    assert generate_points(fit, 0, 0, 1) == []


def test_generate_points_from_best_fit_covers_data_range(noisy_quadratic):
    generated = generate_points_from_best_fit(noisy_quadratic, 11)

    assert len(generated) == 11
    assert float(generated[0][0]) == pytest.approx(-1.0)
    assert float(generated[-1][0]) == pytest.approx(1.0)


def test_generate_points_from_best_fit_no_valid_fit():
    assert generate_points_from_best_fit([(0, 1)], 10) == []
    assert generate_points_for_all_best_fits([(0, 1)], 10) == {}


def test_generate_points_for_all_best_fits_keyed_by_degree(noisy_quadratic):
    curves = generate_points_for_all_best_fits(noisy_quadratic, 7)

    assert 1 in curves and 2 in curves
    assert all(len(c) == 7 for c in curves.values())


def test_fit_result_to_dict():
    fit = polynomial_fit([(0, 0), (1, 2), (2, 4)], 1)
    d = fit.to_dict()

    assert d["degree"] == 1
    assert len(d["coefficients"]) == 2
    assert all(isinstance(c, str) for c in d["coefficients"])


def test_fit_traces_reports_failures_without_raising():
    good = TraceFile.from_points("good", "good", [(0, 1), (1, 3), (2, 5), (3, 7)])
    bad = TraceFile.from_points("bad", "bad", [(0, 1)])

    outcomes = fit_traces([good, bad])

    assert [o.file_id for o in outcomes] == ["good", "bad"]
    assert outcomes[0].success
    assert len(outcomes[0].value.points) == 4
    assert float(outcomes[0].value.fit.r2) == pytest.approx(1.0)
    assert not outcomes[1].success
    assert outcomes[1].error == "No valid fits found"


def test_fit_traces_uses_regression_settings():
    trace = TraceFile.from_points("q", "q", [(x, x * x) for x in range(-3, 4)])

    outcomes = fit_traces([trace], RegressionSettings(max_degree=1, generated_points=5))

    fit = outcomes[0].value.fit
    assert fit.degree == 1
    assert len(outcomes[0].value.points) == 5
    assert outcomes[0].value.points[-1][0] == 3


def test_fit_traces_settings_from_config(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("regression:\n  max_degree: 2\n  generated_points: 3\n")
    trace = TraceFile.from_points("c", "c", [(x, x**3) for x in range(6)])

    outcomes = fit_traces([trace], load_config(str(path)).regression)

    assert outcomes[0].value.fit.degree == 2
    assert len(outcomes[0].value.points) == 3
