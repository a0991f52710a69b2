"""Natural cubic spline with integration against a baseline chord."""

import logging
from bisect import bisect_left, bisect_right
from decimal import Decimal
from typing import Any, Iterable

from ..types import ONE, ZERO, Point, as_points, to_decimal

logger = logging.getLogger(__name__)

TWO = Decimal(2)
THREE = Decimal(3)
FOUR = Decimal(4)


class CubicSpline:
    """Natural cubic spline (zero second derivative at both ends).

    Segment i covers [x_i, x_{i+1}] and evaluates
    S_i(x) = a_i + b_i·dx + c_i·dx² + d_i·dx³ with dx = x - x_i.

    Usage:
        spline = CubicSpline([(0, 0), (1, 1), (2, 0)])
        spline.interpolate(1.5)
        spline.integral_difference_with_line((0, 0), (2, 0))
    """

    def __init__(self, points: Iterable[Any]):
        pts = as_points(points)
        if len(pts) < 2:
            raise ValueError("At least two points are required")

        ordered = sorted(pts, key=lambda p: p[0])
        self.x: tuple[Decimal, ...] = tuple(p[0] for p in ordered)
        self.y: tuple[Decimal, ...] = tuple(p[1] for p in ordered)
        n = len(self.x)

        h = [self.x[i + 1] - self.x[i] for i in range(n - 1)]
        if any(width == 0 for width in h):
            raise ValueError("Spline knots must have distinct x values")

        alpha = [ZERO] * n
        for i in range(1, n - 1):
            alpha[i] = (
                THREE / h[i] * (self.y[i + 1] - self.y[i])
                - THREE / h[i - 1] * (self.y[i] - self.y[i - 1])
            )

        # Tridiagonal solve for the second-derivative coefficients
        l = [ONE] * n
        mu = [ZERO] * n
        z = [ZERO] * n
        for i in range(1, n - 1):
            l[i] = TWO * (self.x[i + 1] - self.x[i - 1]) - h[i - 1] * mu[i - 1]
            mu[i] = h[i] / l[i]
            z[i] = (alpha[i] - h[i - 1] * z[i - 1]) / l[i]

        c = [ZERO] * n
        b = [ZERO] * (n - 1)
        d = [ZERO] * (n - 1)
        for j in range(n - 2, -1, -1):
            c[j] = z[j] - mu[j] * c[j + 1]
            b[j] = (self.y[j + 1] - self.y[j]) / h[j] - h[j] * (c[j + 1] + TWO * c[j]) / THREE
            d[j] = (c[j + 1] - c[j]) / (THREE * h[j])

        self.a: tuple[Decimal, ...] = self.y[:-1]
        self.b: tuple[Decimal, ...] = tuple(b)
        self.c: tuple[Decimal, ...] = tuple(c[:-1])
        self.d: tuple[Decimal, ...] = tuple(d)

    def __len__(self) -> int:
        return len(self.x)

    @property
    def domain(self) -> tuple[Decimal, Decimal]:
        return self.x[0], self.x[-1]

    def _segment(self, x: Decimal) -> int:
        """Index of the segment containing x, clamped to the end segments."""
        i = bisect_right(self.x, x) - 1
        return min(max(i, 0), len(self.x) - 2)

    def _eval(self, i: int, dx: Decimal) -> Decimal:
        return self.a[i] + dx * (self.b[i] + dx * (self.c[i] + dx * self.d[i]))

    def _antiderivative(self, i: int, dx: Decimal) -> Decimal:
        return dx * (
            self.a[i]
            + dx * (self.b[i] / TWO + dx * (self.c[i] / THREE + dx * self.d[i] / FOUR))
        )

    def interpolate(self, x: Any) -> Decimal:
        """Evaluate the spline at x. Knots return their y value exactly."""
        x = to_decimal(x)
        k = bisect_left(self.x, x)
        if k < len(self.x) and self.x[k] == x:
            return self.y[k]
        i = self._segment(x)
        return self._eval(i, x - self.x[i])

    def integrate(self, x1: Any, x2: Any) -> Decimal:
        """Signed integral of the spline over [x1, x2] (x1 < x2).

        Portions outside the knot range use the clamped end segments, the
        same cubics `interpolate` extrapolates with.
        """
        x1 = to_decimal(x1)
        x2 = to_decimal(x2)
        total = ZERO
        last = len(self.x) - 2
        for i in range(self._segment(x1), self._segment(x2) + 1):
            seg_start = self.x[i] if i > 0 else min(self.x[0], x1)
            seg_end = self.x[i + 1] if i < last else max(self.x[-1], x2)
            left = max(x1, seg_start)
            right = min(x2, seg_end)
            if right <= left:
                continue
            total += (
                self._antiderivative(i, right - self.x[i])
                - self._antiderivative(i, left - self.x[i])
            )
        return total

    def integral_difference_with_line(self, p1: Any, p2: Any) -> Decimal:
        """Area between the spline and the straight line through p1 and p2.

        Args:
            p1: (x1, y1) start of the baseline chord
            p2: (x2, y2) end of the baseline chord, x2 > x1

        Returns:
            |∫(spline - chord) dx| over [x1, x2]

        Raises:
            ValueError: If x2 <= x1
        """
        (x1, y1), (x2, y2) = as_points([p1, p2])
        if x2 <= x1:
            raise ValueError("x2 must be greater than x1")

        # ∫(m·x + q) dx = m/2·(x2² - x1²) + q·(x2 - x1)
        m = (y2 - y1) / (x2 - x1)
        q = y1 - m * x1
        line_integral = m / TWO * (x2 * x2 - x1 * x1) + q * (x2 - x1)

        return abs(self.integrate(x1, x2) - line_integral)

    def to_points(self) -> list[Point]:
        """The sorted knots."""
        return list(zip(self.x, self.y))
