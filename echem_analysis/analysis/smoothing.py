"""Savitzky-Golay smoothing/differentiation and finite-difference derivatives.

The local polynomial at each centre is fitted on x-coordinates relative to the
window centre, scaled by the half-width of the window, so the normal
equations stay well conditioned even for large absolute potentials or very
fine sampling. Coefficients are rescaled afterwards, which does not change
the fitted polynomial.
"""

import logging
from decimal import Decimal
from typing import Any, Iterable, Literal, Sequence

from ..config import SavitzkyGolayParams
from ..linalg import solve_linear_system
from ..types import ONE, ZERO, Point, TraceFile, TraceOutcome, as_points

logger = logging.getLogger(__name__)

Mode = Literal["smooth", "derivative"]


def _difference_quotient(points: Sequence[Point], i: int) -> Decimal:
    """Forward difference at the first point, backward at the last, central elsewhere."""
    n = len(points)
    if i == 0:
        (x0, y0), (x1, y1) = points[0], points[1]
    elif i == n - 1:
        (x0, y0), (x1, y1) = points[n - 2], points[n - 1]
    else:
        (x0, y0), (x1, y1) = points[i - 1], points[i + 1]
    dx = x1 - x0
    if dx == 0:
        return ZERO
    return (y1 - y0) / dx


def numerical_derivative(points: Iterable[Any]) -> list[Point]:
    """First derivative by finite differences.

    Returns:
        [(x, dy/dx), ...], or an empty list for fewer than 2 points
    """
    pts = as_points(points)
    if len(pts) < 2:
        logger.warning("Not enough points to calculate a derivative")
        return []
    return [(pts[i][0], _difference_quotient(pts, i)) for i in range(len(pts))]


def _local_coefficients(
    window: Sequence[Point],
    center: Decimal,
    poly_order: int,
) -> list[Decimal] | None:
    """Least-squares polynomial coefficients around `center`, in unscaled x units."""
    offsets = [x - center for x, _ in window]
    scale = max(abs(d) for d in offsets)
    if scale == 0:
        return None
    u = [d / scale for d in offsets]
    ys = [y for _, y in window]
    m = poly_order + 1

    # powers[k][p] = u_k ** p for p up to 2*poly_order
    powers = []
    for uk in u:
        row = [ONE]
        for _ in range(2 * poly_order):
            row.append(row[-1] * uk)
        powers.append(row)

    a = [[sum((row[r + c] for row in powers), ZERO) for c in range(m)] for r in range(m)]
    b = [sum((row[r] * y for row, y in zip(powers, ys)), ZERO) for r in range(m)]

    coeffs = solve_linear_system(a, b)
    if coeffs is None:
        return None
    return [c / scale**p for p, c in enumerate(coeffs)]


def _validated(window_size: int, poly_order: int) -> SavitzkyGolayParams:
    return SavitzkyGolayParams(window_size=window_size, poly_order=poly_order)


def savitzky_golay_smooth(
    points: Iterable[Any],
    window_size: int,
    poly_order: int,
) -> list[Point]:
    """Smooth a trace with a Savitzky-Golay filter.

    Points without a full window on both sides are returned unchanged, as is
    every point when the trace is shorter than the window. A singular local
    system leaves that single point unchanged.

    Raises:
        pydantic.ValidationError: If window_size/poly_order are invalid
    """
    params = _validated(window_size, poly_order)
    pts = as_points(points)
    n = len(pts)
    half = params.window_size // 2

    result = list(pts)
    if n < params.window_size:
        return result

    for i in range(half, n - half):
        center, _ = pts[i]
        coeffs = _local_coefficients(pts[i - half:i + half + 1], center, params.poly_order)
        if coeffs is None:
            logger.warning("Singular local system at index %d, keeping input point", i)
            continue
        result[i] = (center, coeffs[0])
    return result


def savitzky_golay_derivative(
    points: Iterable[Any],
    window_size: int,
    poly_order: int,
) -> list[Point]:
    """First derivative with a Savitzky-Golay filter.

    Edge points use finite differences. Traces shorter than the window fall
    back to `numerical_derivative`. A singular local system yields a zero
    derivative at that index.

    Raises:
        pydantic.ValidationError: If window_size/poly_order are invalid
    """
    params = _validated(window_size, poly_order)
    pts = as_points(points)
    n = len(pts)

    if n < params.window_size:
        logger.warning(
            "Falling back to numerical_derivative: need %d points for window, got %d",
            params.window_size,
            n,
        )
        return numerical_derivative(pts)

    half = params.window_size // 2
    result = []
    for i in range(n):
        center, _ = pts[i]
        if i < half or i >= n - half:
            result.append((center, _difference_quotient(pts, i)))
            continue

        coeffs = _local_coefficients(pts[i - half:i + half + 1], center, params.poly_order)
        if coeffs is None:
            logger.warning("Singular local system at index %d, derivative set to 0", i)
            result.append((center, ZERO))
        else:
            result.append((center, coeffs[1]))
    return result


def smooth_traces(
    traces: Iterable[TraceFile],
    params: SavitzkyGolayParams,
    mode: Mode = "smooth",
) -> list[TraceOutcome]:
    """Apply smoothing or differentiation to each trace independently.

    Raises:
        ValueError: If mode is not "smooth" or "derivative"
    """
    funcs = {"smooth": savitzky_golay_smooth, "derivative": savitzky_golay_derivative}
    if mode not in funcs:
        raise ValueError(f"Unknown mode {mode!r}, expected one of {sorted(funcs)}")
    func = funcs[mode]
    outcomes = []
    for trace in traces:
        pts = trace.points()
        if not pts:
            outcomes.append(TraceOutcome(trace.file_id, success=False, error="Empty trace"))
            continue
        processed = func(pts, params.window_size, params.poly_order)
        if not processed:
            outcomes.append(
                TraceOutcome(trace.file_id, success=False, error="Not enough points")
            )
            continue
        outcomes.append(TraceOutcome(trace.file_id, success=True, value=processed))
    return outcomes
