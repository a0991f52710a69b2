"""Peak height against a baseline, and simple curve metrics."""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Iterable

from ..types import ZERO, as_points, decimal_to_json

TWO = Decimal(2)


@dataclass(frozen=True)
class PeakInfo:
    """Highest point of a curve measured perpendicular to a baseline."""
    peak_height: Decimal
    peak_x: Decimal
    peak_y: Decimal
    peak_index: int  # -1 when no point lies off the baseline

    def to_dict(self) -> dict:
        return {
            "peak_height": decimal_to_json(self.peak_height),
            "peak_x": decimal_to_json(self.peak_x),
            "peak_y": decimal_to_json(self.peak_y),
            "peak_index": self.peak_index,
        }


NO_PEAK = PeakInfo(ZERO, ZERO, ZERO, -1)


@dataclass(frozen=True)
class CurveMetrics:
    area: Decimal
    peak_height: Decimal

    def to_dict(self) -> dict:
        return {
            "area": decimal_to_json(self.area),
            "peak_height": decimal_to_json(self.peak_height),
        }


def perpendicular_distance(point: Any, p1: Any, p2: Any) -> Decimal:
    """Distance from a point to the line through p1 and p2.

    Uses the line a·x + b·y + c = 0 with a = y2 - y1, b = x1 - x2,
    c = x2·y1 - x1·y2. Coincident p1/p2 give a distance of 0.
    """
    (x, y), (x1, y1), (x2, y2) = as_points([point, p1, p2])
    a = y2 - y1
    b = x1 - x2
    c = x2 * y1 - x1 * y2

    denominator = (a * a + b * b).sqrt()
    if denominator == 0:
        return ZERO
    return abs(a * x + b * y + c) / denominator


def calculate_peak_info(points: Iterable[Any], p1: Any, p2: Any) -> PeakInfo:
    """Find the point farthest from the baseline through p1 and p2.

    The first point reaching the maximum wins ties.
    """
    pts = as_points(points)
    max_distance = ZERO
    peak_index = -1
    for i, point in enumerate(pts):
        distance = perpendicular_distance(point, p1, p2)
        if distance > max_distance:
            max_distance = distance
            peak_index = i

    if peak_index == -1:
        return NO_PEAK

    peak_x, peak_y = pts[peak_index]
    return PeakInfo(max_distance, peak_x, peak_y, peak_index)


def calculate_peak_height(points: Iterable[Any], p1: Any, p2: Any) -> Decimal:
    """Maximum perpendicular distance of the curve from the baseline (>= 0)."""
    return calculate_peak_info(points, p1, p2).peak_height


def polygon_area(points: Iterable[Any]) -> Decimal:
    """Shoelace area of the closed polygon through the points, in order.

    Returns 0 for fewer than 3 points.
    """
    pts = as_points(points)
    n = len(pts)
    if n < 3:
        return ZERO

    area = ZERO
    for i in range(n):
        x1, y1 = pts[i]
        x2, y2 = pts[(i + 1) % n]
        area += x1 * y2 - x2 * y1
    return abs(area) / TWO


def curve_metrics(points: Iterable[Any]) -> CurveMetrics:
    """Enclosed area plus peak height against the first-to-last chord.

    Only interior points count toward the peak height.
    """
    pts = as_points(points)
    if len(pts) < 2:
        return CurveMetrics(ZERO, ZERO)

    interior = pts[1:-1]
    height = calculate_peak_height(interior, pts[0], pts[-1]) if interior else ZERO
    return CurveMetrics(area=polygon_area(pts), peak_height=height)
