"""Polynomial least-squares regression with automatic degree selection."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable, Sequence

from ..config import RegressionSettings
from ..linalg import solve_linear_system
from ..types import (
    NAN,
    NEG_INF,
    ONE,
    POS_INF,
    ZERO,
    Point,
    TraceFile,
    TraceOutcome,
    as_points,
    decimal_to_json,
    points_to_json,
    to_decimal,
)

logger = logging.getLogger(__name__)

MAX_DEGREE = 10


@dataclass(frozen=True)
class FitResult:
    """Result of a polynomial fit. coefficients[i] multiplies x**i."""
    degree: int
    coefficients: tuple[Decimal, ...]
    r2: Decimal
    mse: Decimal

    @property
    def is_finite(self) -> bool:
        return self.r2.is_finite()

    def evaluate(self, x: Any) -> Decimal:
        """Evaluate the fitted polynomial at x (Horner's scheme)."""
        x = to_decimal(x)
        y = ZERO
        for c in reversed(self.coefficients):
            y = y * x + c
        return y

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "degree": self.degree,
            "coefficients": [str(c) for c in self.coefficients],
            "r2": decimal_to_json(self.r2),
            "mse": decimal_to_json(self.mse),
        }


def _failed_fit(degree: int) -> FitResult:
    return FitResult(degree=degree, coefficients=(), r2=NEG_INF, mse=POS_INF)


def _powers(x: Decimal, count: int) -> list[Decimal]:
    """[x**0, x**1, ..., x**(count-1)] without Decimal's 0**0 error."""
    out = [ONE]
    for _ in range(count - 1):
        out.append(out[-1] * x)
    return out


def polynomial_fit(points: Iterable[Any], degree: int) -> FitResult:
    """Fit a polynomial of the given degree by least squares.

    Solves the normal equations XᵗX·c = Xᵗy with X[i][j] = x_i**j.

    Args:
        points: (x, y) pairs
        degree: Polynomial degree (>= 1)

    Returns:
        FitResult. When the fit is impossible (degree + 1 > n or a singular
        system) the sentinel r2=-Infinity, mse=+Infinity with no
        coefficients is returned instead of raising.
    """
    pts = as_points(points)
    n = len(pts)
    m = degree + 1

    if degree < 1 or m > n:
        logger.debug("Degree %d needs at least %d points, got %d", degree, m, n)
        return _failed_fit(degree)

    design = [_powers(x, m) for x, _ in pts]
    ys = [y for _, y in pts]

    xtx = [
        [sum((row[i] * row[j] for row in design), ZERO) for j in range(m)]
        for i in range(m)
    ]
    xty = [sum((row[i] * y for row, y in zip(design, ys)), ZERO) for i in range(m)]

    coefficients = solve_linear_system(xtx, xty)
    if coefficients is None:
        logger.debug("Normal equations singular for degree %d", degree)
        return _failed_fit(degree)

    predicted = [sum((c * p for c, p in zip(coefficients, row)), ZERO) for row in design]

    y_mean = sum(ys, ZERO) / n
    ss_total = sum(((y - y_mean) ** 2 for y in ys), ZERO)
    ss_residual = sum(((y - yp) ** 2 for y, yp in zip(ys, predicted)), ZERO)

    if ss_total == 0:
        # Constant data: R² undefined
        r2 = NAN
    else:
        r2 = ONE - ss_residual / ss_total
    mse = ss_residual / n

    return FitResult(
        degree=degree,
        coefficients=tuple(coefficients),
        r2=r2,
        mse=mse,
    )


def find_best_fits(points: Iterable[Any], max_degree: int = MAX_DEGREE) -> list[FitResult]:
    """Fit degrees 1..max_degree and rank them by R² (best first).

    Non-finite fits are dropped. The sort is stable over ascending degrees,
    so on exact R² ties the lower degree comes first.
    """
    pts = as_points(points)
    fits = [polynomial_fit(pts, degree) for degree in range(1, max_degree + 1)]
    valid = [f for f in fits if f.is_finite]
    if len(valid) < len(fits):
        logger.debug("Dropped %d non-finite fits", len(fits) - len(valid))
    return sorted(valid, key=lambda f: f.r2, reverse=True)


def generate_points(
    fit_result: FitResult,
    count: int,
    x_min: Any,
    x_max: Any,
) -> list[Point]:
    """Evaluate a fit at `count` equally spaced x-values in [x_min, x_max].

    A count of 1 evaluates only at x_min.
    """
    if count <= 0:
        return []
    x_min = to_decimal(x_min)
    x_max = to_decimal(x_max)
    if count == 1:
        return [(x_min, fit_result.evaluate(x_min))]

    step = (x_max - x_min) / (count - 1)
    generated = []
    for i in range(count):
        x = x_max if i == count - 1 else x_min + step * i
        generated.append((x, fit_result.evaluate(x)))
    return generated


def _x_range(points: Sequence[Point]) -> tuple[Decimal, Decimal]:
    xs = [x for x, _ in points]
    return min(xs), max(xs)


def generate_points_from_best_fit(points: Iterable[Any], count: int) -> list[Point]:
    """Sample the best-ranked fit over the x-range of the data."""
    pts = as_points(points)
    best_fits = find_best_fits(pts)
    if not best_fits:
        logger.warning("No valid fits found")
        return []
    x_min, x_max = _x_range(pts)
    return generate_points(best_fits[0], count, x_min, x_max)


def generate_points_for_all_best_fits(
    points: Iterable[Any],
    count: int,
) -> dict[int, list[Point]]:
    """Sample every valid fit over the data's x-range, keyed by degree."""
    pts = as_points(points)
    best_fits = find_best_fits(pts)
    if not best_fits:
        logger.warning("No valid fits found")
        return {}
    x_min, x_max = _x_range(pts)
    return {
        fit.degree: generate_points(fit, count, x_min, x_max)
        for fit in best_fits
    }


@dataclass(frozen=True)
class TraceFit:
    """Best polynomial fit for one trace plus the generated curve."""
    fit: FitResult
    points: list[Point]

    def to_dict(self) -> dict:
        return {"fit": self.fit.to_dict(), "points": points_to_json(self.points)}


def fit_traces(
    traces: Iterable[TraceFile],
    settings: RegressionSettings | None = None,
) -> list[TraceOutcome]:
    """Best-fit every trace. Failed traces are reported, never raised.

    Args:
        traces: Traces to fit
        settings: Highest degree to try and number of generated points
            (`generated_points=None` means the same count as the trace)

    Returns:
        One TraceOutcome per trace, value is a TraceFit on success
    """
    if settings is None:
        settings = RegressionSettings()

    outcomes = []
    for trace in traces:
        pts = trace.points()
        best_fits = find_best_fits(pts, settings.max_degree) if pts else []
        if not best_fits:
            logger.warning("No valid fits found for %s", trace.name)
            outcomes.append(
                TraceOutcome(trace.file_id, success=False, error="No valid fits found")
            )
            continue

        x_min, x_max = _x_range(pts)
        count = settings.generated_points
        n_points = len(pts) if count is None else count
        curve = generate_points(best_fits[0], n_points, x_min, x_max)
        outcomes.append(
            TraceOutcome(trace.file_id, success=True, value=TraceFit(best_fits[0], curve))
        )
    return outcomes
