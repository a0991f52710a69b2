"""Scan-rate correlation analysis across multiple CV traces.

For each trace the maximum-current (anodic) and minimum-current (cathodic)
samples inside a potential window are extracted, then peak potential and peak
current are regressed against scan rate. The extremes also feed the kinetic
helpers: ΔEp, log-log and √v current plots, mechanism diagnosis and Nicholson
k0 estimates.
"""

import logging
import math
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Callable, Iterable, Sequence

import numpy as np
import polars as pl
from scipy.constants import R as GAS_CONSTANT
from scipy.constants import physical_constants
from scipy.stats import linregress

from ..types import (
    CURRENT_COL,
    POTENTIAL_COL,
    ZERO,
    TraceFile,
    convert_units,
    decimal_to_json,
    is_finite_number,
    to_decimal,
)

logger = logging.getLogger(__name__)

RANDLES_COEFFICIENT = 2.69e5  # A·s^0.5 / (mol·V^0.5) at 25 °C
FARADAY = physical_constants["Faraday constant"][0]  # C/mol
DEFAULT_TEMPERATURE = 298.15  # K

# Mechanism diagnosis thresholds
SLOPE_TOLERANCE = 0.15
HYSTERESIS_AREA_THRESHOLD = 1e-6
KINETIC_DELTA_EP = 0.12  # V
REVERSIBLE_DELTA_EP = 0.08  # V
IRREVERSIBLE_DELTA_EP_MV = 200.0

# Nicholson (Anal. Chem. 1965, 37, 1351): ΔEp in mV vs ψ for n = 1 at 25 °C
NICHOLSON_DELTA_EP_MV = np.array(
    [61, 63, 65, 68, 72, 76, 80, 84, 92, 105, 121, 141, 170, 212, 270, 350], dtype=float
)
NICHOLSON_PSI = np.array(
    [20.0, 7.0, 5.0, 3.0, 2.0, 1.5, 1.0, 0.75, 0.5, 0.3, 0.2, 0.15, 0.1, 0.05, 0.025, 0.01]
)

ScanRateLookup = Callable[[TraceFile], Any]


@dataclass(frozen=True)
class PotentialRange:
    min: float
    max: float

    def bounds(self) -> tuple[float, float]:
        """(low, high) regardless of the order min/max were given in."""
        return (self.min, self.max) if self.min <= self.max else (self.max, self.min)


@dataclass(frozen=True)
class PeakPoint:
    potential: Decimal
    current: Decimal

    def to_dict(self) -> dict:
        return {
            "potential": decimal_to_json(self.potential),
            "current": decimal_to_json(self.current),
        }


@dataclass(frozen=True)
class FileExtremes:
    file_id: str
    file_name: str
    scan_rate: Decimal
    positive_peak: PeakPoint | None = None
    negative_peak: PeakPoint | None = None

    def to_dict(self) -> dict:
        return {
            "file_id": self.file_id,
            "file_name": self.file_name,
            "scan_rate": decimal_to_json(self.scan_rate),
            "positive_peak": self.positive_peak.to_dict() if self.positive_peak else None,
            "negative_peak": self.negative_peak.to_dict() if self.negative_peak else None,
        }


@dataclass(frozen=True)
class LinearFit:
    slope: Decimal
    intercept: Decimal
    r: Decimal  # Coefficient of determination

    def to_dict(self) -> dict:
        return {
            "slope": decimal_to_json(self.slope),
            "intercept": decimal_to_json(self.intercept),
            "r": decimal_to_json(self.r),
        }


@dataclass(frozen=True)
class PeakCorrelation:
    potential: LinearFit | None
    current: LinearFit | None

    def to_dict(self) -> dict:
        return {
            "potential": self.potential.to_dict() if self.potential else None,
            "current": self.current.to_dict() if self.current else None,
        }


@dataclass(frozen=True)
class GraphData:
    """Chart-ready series."""
    x: list[float] = field(default_factory=list)
    y: list[float] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"x": list(self.x), "y": list(self.y), "labels": list(self.labels)}


@dataclass(frozen=True)
class ScanRateCorrelationResult:
    files: list[FileExtremes]
    positive: PeakCorrelation
    negative: PeakCorrelation
    potential_vs_scan_rate: GraphData
    positive_current_vs_scan_rate: GraphData
    negative_current_vs_scan_rate: GraphData

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "files": [f.to_dict() for f in self.files],
            "positive": self.positive.to_dict(),
            "negative": self.negative.to_dict(),
            "graph_data": {
                "potential_vs_scan_rate": self.potential_vs_scan_rate.to_dict(),
                "positive_current_vs_scan_rate": self.positive_current_vs_scan_rate.to_dict(),
                "negative_current_vs_scan_rate": self.negative_current_vs_scan_rate.to_dict(),
            },
        }


def build_linear_fit(points: Sequence[tuple[Any, Any]]) -> LinearFit | None:
    """Ordinary least-squares line through (x, y) pairs.

    Returns:
        LinearFit with r = R², or None for fewer than 2 points or when every
        x is identical
    """
    if not points or len(points) < 2:
        return None

    xs = [float(p[0]) for p in points]
    ys = [float(p[1]) for p in points]
    if len(set(xs)) < 2:
        logger.warning("Cannot fit a line: all %d x values are identical", len(xs))
        return None

    reg = linregress(xs, ys)
    return LinearFit(
        slope=to_decimal(float(reg.slope)),
        intercept=to_decimal(float(reg.intercept)),
        r=to_decimal(float(reg.rvalue) ** 2),
    )


def compute_file_extremes(
    trace: TraceFile,
    potential_range: PotentialRange,
    scan_rate: Any,
    potential_col: str = POTENTIAL_COL,
    current_col: str = CURRENT_COL,
) -> FileExtremes | None:
    """Max- and min-current samples of a trace inside a potential window.

    Returns:
        FileExtremes, or None when no finite sample lies in the window
    """
    df = trace.df
    if potential_col not in df.columns or current_col not in df.columns:
        return None

    low, high = potential_range.bounds()
    window = df.select(
        pl.col(potential_col).cast(pl.Float64),
        pl.col(current_col).cast(pl.Float64),
    ).filter(
        pl.col(potential_col).is_finite()
        & pl.col(current_col).is_finite()
        & pl.col(potential_col).is_between(low, high)
    )

    if window.height == 0:
        return None

    potential = window[potential_col]
    current = window[current_col]
    i_max = current.arg_max()
    i_min = current.arg_min()

    return FileExtremes(
        file_id=trace.file_id,
        file_name=trace.name,
        scan_rate=to_decimal(scan_rate),
        positive_peak=PeakPoint(to_decimal(potential[i_max]), to_decimal(current[i_max])),
        negative_peak=PeakPoint(to_decimal(potential[i_min]), to_decimal(current[i_min])),
    )


def calculate_scan_rate_correlation(
    traces: Iterable[TraceFile],
    potential_range: PotentialRange,
    get_scan_rate: ScanRateLookup,
) -> ScanRateCorrelationResult:
    """Correlate peak potential/current with scan rate across traces.

    Traces with no finite scan rate or no samples in the window are skipped.

    Args:
        traces: CV traces, one per scan rate
        potential_range: Window in which to look for extremes
        get_scan_rate: Returns the scan rate (V/s) for a trace, or None

    Returns:
        ScanRateCorrelationResult with per-file extremes and four line fits
    """
    extremes = []
    for trace in traces:
        scan_rate = get_scan_rate(trace)
        if not is_finite_number(scan_rate):
            logger.debug("Skipping %s: no scan rate", trace.name)
            continue

        file_extremes = compute_file_extremes(trace, potential_range, scan_rate)
        if file_extremes is None:
            logger.debug("Skipping %s: no samples in potential window", trace.name)
            continue
        extremes.append(file_extremes)

    pos_potential, pos_current, neg_potential, neg_current = [], [], [], []
    for item in extremes:
        if item.positive_peak:
            pos_potential.append((item.scan_rate, item.positive_peak.potential))
            pos_current.append((item.scan_rate, item.positive_peak.current))
        if item.negative_peak:
            neg_potential.append((item.scan_rate, item.negative_peak.potential))
            neg_current.append((item.scan_rate, item.negative_peak.current))

    def _series(points, label):
        return (
            [float(p[0]) for p in points],
            [float(p[1]) for p in points],
            [label] * len(points),
        )

    pos_x, pos_y, pos_labels = _series(pos_potential, "Positive")
    neg_x, neg_y, neg_labels = _series(neg_potential, "Negative")

    return ScanRateCorrelationResult(
        files=extremes,
        positive=PeakCorrelation(
            potential=build_linear_fit(pos_potential),
            current=build_linear_fit(pos_current),
        ),
        negative=PeakCorrelation(
            potential=build_linear_fit(neg_potential),
            current=build_linear_fit(neg_current),
        ),
        potential_vs_scan_rate=GraphData(pos_x + neg_x, pos_y + neg_y, pos_labels + neg_labels),
        positive_current_vs_scan_rate=GraphData(*_series(pos_current, "Imax")),
        negative_current_vs_scan_rate=GraphData(*_series(neg_current, "Imin")),
    )


def scan_rate_from_metadata(
    key: str = "scan_rate",
    unit: str = "volt / second",
) -> ScanRateLookup:
    """Build a lookup reading the scan rate from trace.user_metadata.

    The stored value is interpreted in `unit` and converted to V/s.
    """

    def lookup(trace: TraceFile) -> float | None:
        value = trace.user_metadata.get(key)
        if value is None:
            return None
        try:
            number = float(value)
        except (TypeError, ValueError):
            logger.warning("Invalid scan rate %r for %s", value, trace.name)
            return None
        return convert_units(number, unit, "volt / second")

    return lookup


def estimate_diffusional_current(
    scan_rate: float,
    area: float | None,
    diffusion_coefficient: float | None,
    concentration: float | None,
    n: int = 1,
) -> float | None:
    """Randles-Sevcik peak current ip = 2.69e5·n^1.5·A·√D·C·√v.

    Args:
        scan_rate: V/s
        area: Electrode area in cm²
        diffusion_coefficient: cm²/s
        concentration: mol/cm³
        n: Electrons transferred

    Returns:
        Expected peak current in A, or None when an input is missing
    """
    if not area or not diffusion_coefficient or not concentration:
        return None
    if not is_finite_number(scan_rate) or scan_rate <= 0:
        return None
    return (
        RANDLES_COEFFICIENT
        * n**1.5
        * area
        * math.sqrt(diffusion_coefficient)
        * concentration
        * math.sqrt(scan_rate)
    )


def compare_peak_with_randles(
    peak_current: float | None,
    scan_rate: float,
    area: float | None,
    diffusion_coefficient: float | None,
    concentration: float | None,
    n: int = 1,
) -> tuple[float | None, float | None]:
    """Return (expected Randles-Sevcik current, measured/expected ratio)."""
    if peak_current is None:
        return None, None
    expected = estimate_diffusional_current(
        scan_rate, area, diffusion_coefficient, concentration, n
    )
    if not expected:
        return expected, None
    return expected, peak_current / expected


# --- Kinetics and mechanism diagnostics ---

def _finite_fit(xs: Sequence[float], ys: Sequence[float]) -> LinearFit | None:
    pairs = [(x, y) for x, y in zip(xs, ys) if math.isfinite(x) and math.isfinite(y)]
    return build_linear_fit(pairs)


def regression_log_log(points: Sequence[tuple[Any, Any]]) -> LinearFit | None:
    """Line through (ln|x|, ln|y|), e.g. log(ip) against log(v).

    A slope near 0.5 points to diffusion control, near 1 to adsorption.

    Returns:
        LinearFit, or None when any x or y is zero or fewer than 2 pairs remain
    """
    if not points:
        return None
    xs = [float(p[0]) for p in points]
    ys = [float(p[1]) for p in points]
    if any(v == 0 for v in xs) or any(v == 0 for v in ys):
        return None
    return _finite_fit([math.log(abs(v)) for v in xs], [math.log(abs(v)) for v in ys])


def regression_vs_sqrt(points: Sequence[tuple[Any, Any]]) -> LinearFit | None:
    """Line through (√x, y), e.g. ip against √v (Randles-Sevcik plot).

    Returns:
        LinearFit, or None when any x is negative or fewer than 2 pairs remain
    """
    if not points:
        return None
    xs = [float(p[0]) for p in points]
    if any(v < 0 for v in xs):
        return None
    return _finite_fit([math.sqrt(v) for v in xs], [float(p[1]) for p in points])


def regression_through_origin(points: Sequence[tuple[Any, Any]]) -> LinearFit | None:
    """Least-squares line y = m·x forced through (0, 0).

    r is 1 - SSres/SStot, and 1 when every y is identical.
    """
    if not points or len(points) < 2:
        return None
    x = np.array([float(p[0]) for p in points])
    y = np.array([float(p[1]) for p in points])
    sum_x2 = float(np.sum(x * x))
    if sum_x2 == 0:
        return None

    slope = float(np.sum(x * y)) / sum_x2
    ss_tot = float(np.sum((y - y.mean()) ** 2))
    ss_res = float(np.sum((y - slope * x) ** 2))
    r2 = 1.0 if ss_tot == 0 else 1.0 - ss_res / ss_tot
    return LinearFit(slope=to_decimal(slope), intercept=ZERO, r=to_decimal(r2))


def calculate_delta_ep(extremes: FileExtremes | None) -> Decimal | None:
    """Peak separation ΔEp = |Ep,a - Ep,c| in V, or None without both peaks."""
    if extremes is None or extremes.positive_peak is None or extremes.negative_peak is None:
        return None
    return abs(extremes.positive_peak.potential - extremes.negative_peak.potential)


@dataclass(frozen=True)
class Diagnostics:
    mechanism: str  # diffusion, adsorption, EC, kinetic or unknown
    confidence: float
    notes: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "mechanism": self.mechanism,
            "confidence": self.confidence,
            "notes": list(self.notes),
        }


def diagnose_mechanism(
    delta_ep: float | None = None,
    slope_log_log: float | None = None,
    hysteresis_area: float = 0.0,
    anodic_peak: PeakPoint | None = None,
    cathodic_peak: PeakPoint | None = None,
) -> Diagnostics:
    """Heuristic electrode-mechanism classification.

    Rules are applied in order, later ones overriding earlier ones:

    1. log-log slope ≈ 0.5 → diffusion, ≈ 1 → adsorption
    2. no cathodic peak with a large hysteresis loop → EC
    3. ΔEp above 120 mV → kinetic (slow electron transfer)
    4. both peaks present with ΔEp below 80 mV → reversible diffusion
    """
    mechanism = "unknown"
    confidence = 0.4
    notes = []

    if slope_log_log is not None and is_finite_number(slope_log_log):
        slope = float(slope_log_log)
        if abs(slope - 0.5) <= SLOPE_TOLERANCE:
            mechanism, confidence = "diffusion", 0.8
            notes.append("log(ip)-log(v) slope near 0.5: diffusion control (Randles-Sevcik)")
        elif abs(slope - 1.0) <= SLOPE_TOLERANCE:
            mechanism, confidence = "adsorption", 0.85
            notes.append("log(ip)-log(v) slope near 1: adsorbed species")

    if cathodic_peak is None and hysteresis_area > HYSTERESIS_AREA_THRESHOLD:
        mechanism, confidence = "EC", 0.75
        notes.append("No cathodic peak and large hysteresis: possible fast EC mechanism")

    if delta_ep and float(delta_ep) > KINETIC_DELTA_EP:
        mechanism, confidence = "kinetic", max(confidence, 0.7)
        notes.append("Large ΔEp: slow, quasi-irreversible electron transfer (Laviron)")

    if anodic_peak and cathodic_peak and delta_ep and float(delta_ep) < REVERSIBLE_DELTA_EP:
        mechanism, confidence = "diffusion", max(confidence, 0.75)
        notes.append("ΔEp close to 59/n mV: reversible, diffusion-controlled system")

    if not notes:
        notes.append("Not enough data for a conclusive diagnosis")

    return Diagnostics(mechanism, confidence, notes)


def interpolate_psi(delta_ep: float) -> float:
    """Nicholson ψ for a peak separation in V (linear in the tabulated values).

    Separations outside the table are clamped to its end values.
    """
    delta_ep_mv = convert_units(float(delta_ep), "volt", "millivolt")
    return float(np.interp(delta_ep_mv, NICHOLSON_DELTA_EP_MV, NICHOLSON_PSI))


def classify_kinetic_regime(delta_ep: float, n: int = 1) -> str:
    """reversible, quasi-reversible or irreversible from ΔEp (V) at 25 °C."""
    delta_ep_mv = convert_units(float(delta_ep), "volt", "millivolt")
    if delta_ep_mv < 59.0 / n + 10.0:
        return "reversible"
    if delta_ep_mv < IRREVERSIBLE_DELTA_EP_MV:
        return "quasi-reversible"
    return "irreversible"


def estimate_k0_nicholson(
    delta_ep: float,
    scan_rate: float,
    diffusion_coefficient: float,
    n: int = 1,
    temperature: float = DEFAULT_TEMPERATURE,
) -> float | None:
    """Standard rate constant k0 = ψ·√(D·f·v) with f = nF/RT (Nicholson, 1965).

    Args:
        delta_ep: Peak separation in V
        scan_rate: V/s
        diffusion_coefficient: cm²/s
        n: Electrons transferred
        temperature: K

    Returns:
        k0 in cm/s, or None on non-positive inputs
    """
    values = (delta_ep, scan_rate, diffusion_coefficient, temperature)
    if not all(is_finite_number(v) and float(v) > 0 for v in values):
        return None
    f = n * FARADAY / (GAS_CONSTANT * float(temperature))
    return interpolate_psi(delta_ep) * math.sqrt(float(diffusion_coefficient) * f * float(scan_rate))


@dataclass(frozen=True)
class NicholsonPoint:
    file_id: str
    scan_rate: float
    delta_ep: float
    psi: float
    k0: float
    regime: str

    def to_dict(self) -> dict:
        return {
            "file_id": self.file_id,
            "scan_rate": self.scan_rate,
            "delta_ep": self.delta_ep,
            "psi": self.psi,
            "k0": self.k0,
            "regime": self.regime,
        }


@dataclass(frozen=True)
class CurrentFits:
    """Peak-current fits for the anodic and cathodic branch."""
    anodic: LinearFit | None
    cathodic: LinearFit | None

    def to_dict(self) -> dict:
        return {
            "anodic": self.anodic.to_dict() if self.anodic else None,
            "cathodic": self.cathodic.to_dict() if self.cathodic else None,
        }


@dataclass(frozen=True)
class KineticsSummary:
    delta_ep: dict[str, Decimal]  # file_id -> ΔEp in V
    average_delta_ep: Decimal | None
    ip_vs_sqrt_v: CurrentFits
    log_ip_vs_log_v: CurrentFits
    diagnostics: Diagnostics
    nicholson: list[NicholsonPoint] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "delta_ep": {k: decimal_to_json(v) for k, v in self.delta_ep.items()},
            "average_delta_ep": decimal_to_json(self.average_delta_ep),
            "ip_vs_sqrt_v": self.ip_vs_sqrt_v.to_dict(),
            "log_ip_vs_log_v": self.log_ip_vs_log_v.to_dict(),
            "diagnostics": self.diagnostics.to_dict(),
            "nicholson": [p.to_dict() for p in self.nicholson],
        }


def analyze_kinetics(
    files: Sequence[FileExtremes],
    diffusion_coefficient: float | None = None,
    n: int = 1,
    temperature: float = DEFAULT_TEMPERATURE,
) -> KineticsSummary:
    """Kinetic analysis of per-file extremes from `calculate_scan_rate_correlation`.

    Peak currents are regressed against √v and in log-log form, and ΔEp is
    taken per file. The mechanism is diagnosed from the anodic log-log slope,
    the average ΔEp and the peaks of the first file. Nicholson k0 values are
    added per file when a diffusion coefficient is given.
    """
    delta_eps = {}
    anodic, cathodic = [], []
    for item in files:
        d = calculate_delta_ep(item)
        if d is not None:
            delta_eps[item.file_id] = d
        if item.positive_peak:
            anodic.append((item.scan_rate, item.positive_peak.current))
        if item.negative_peak:
            cathodic.append((item.scan_rate, item.negative_peak.current))

    average = sum(delta_eps.values()) / len(delta_eps) if delta_eps else None
    log_log = CurrentFits(regression_log_log(anodic), regression_log_log(cathodic))

    first = files[0] if files else None
    diagnostics = diagnose_mechanism(
        delta_ep=float(average) if average is not None else None,
        slope_log_log=float(log_log.anodic.slope) if log_log.anodic else None,
        anodic_peak=first.positive_peak if first else None,
        cathodic_peak=first.negative_peak if first else None,
    )

    nicholson = []
    if diffusion_coefficient is not None:
        for item in files:
            d = delta_eps.get(item.file_id)
            if d is None:
                continue
            rate = float(item.scan_rate)
            k0 = estimate_k0_nicholson(float(d), rate, diffusion_coefficient, n, temperature)
            if k0 is None:
                logger.debug("No k0 for %s: non-positive input", item.file_name)
                continue
            nicholson.append(NicholsonPoint(
                file_id=item.file_id,
                scan_rate=rate,
                delta_ep=float(d),
                psi=interpolate_psi(float(d)),
                k0=k0,
                regime=classify_kinetic_regime(float(d), n),
            ))

    return KineticsSummary(
        delta_ep=delta_eps,
        average_delta_ep=average,
        ip_vs_sqrt_v=CurrentFits(regression_vs_sqrt(anodic), regression_vs_sqrt(cathodic)),
        log_ip_vs_log_v=log_log,
        diagnostics=diagnostics,
        nicholson=nicholson,
    )
