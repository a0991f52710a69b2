"""Numerical curve-analysis routines for electrochemistry traces."""

from .regression import (
    FitResult,
    TraceFit,
    polynomial_fit,
    find_best_fits,
    generate_points,
    generate_points_from_best_fit,
    generate_points_for_all_best_fits,
    fit_traces,
)
from .smoothing import (
    numerical_derivative,
    savitzky_golay_smooth,
    savitzky_golay_derivative,
    smooth_traces,
)
from .spline import CubicSpline
from .peaks import (
    PeakInfo,
    CurveMetrics,
    perpendicular_distance,
    calculate_peak_height,
    calculate_peak_info,
    polygon_area,
    curve_metrics,
)
from .gaussian import (
    GaussianParameters,
    GaussianFitResult,
    gaussian,
    fit_gaussian,
    estimate_initial_params,
)
from .scan_rate import (
    PotentialRange,
    PeakPoint,
    FileExtremes,
    LinearFit,
    PeakCorrelation,
    GraphData,
    ScanRateCorrelationResult,
    build_linear_fit,
    compute_file_extremes,
    calculate_scan_rate_correlation,
    scan_rate_from_metadata,
    estimate_diffusional_current,
    compare_peak_with_randles,
    regression_log_log,
    regression_vs_sqrt,
    regression_through_origin,
    calculate_delta_ep,
    Diagnostics,
    diagnose_mechanism,
    interpolate_psi,
    classify_kinetic_regime,
    estimate_k0_nicholson,
    NicholsonPoint,
    CurrentFits,
    KineticsSummary,
    analyze_kinetics,
)


__all__ = [
    # Regression
    "FitResult",
    "TraceFit",
    "polynomial_fit",
    "find_best_fits",
    "generate_points",
    "generate_points_from_best_fit",
    "generate_points_for_all_best_fits",
    "fit_traces",
    # Smoothing
    "numerical_derivative",
    "savitzky_golay_smooth",
    "savitzky_golay_derivative",
    "smooth_traces",
    # Spline
    "CubicSpline",
    # Peaks
    "PeakInfo",
    "CurveMetrics",
    "perpendicular_distance",
    "calculate_peak_height",
    "calculate_peak_info",
    "polygon_area",
    "curve_metrics",
    # Gaussian
    "GaussianParameters",
    "GaussianFitResult",
    "gaussian",
    "fit_gaussian",
    "estimate_initial_params",
    # Scan rate
    "PotentialRange",
    "PeakPoint",
    "FileExtremes",
    "LinearFit",
    "PeakCorrelation",
    "GraphData",
    "ScanRateCorrelationResult",
    "build_linear_fit",
    "compute_file_extremes",
    "calculate_scan_rate_correlation",
    "scan_rate_from_metadata",
    "estimate_diffusional_current",
    "compare_peak_with_randles",
    # Kinetics
    "regression_log_log",
    "regression_vs_sqrt",
    "regression_through_origin",
    "calculate_delta_ep",
    "Diagnostics",
    "diagnose_mechanism",
    "interpolate_psi",
    "classify_kinetic_regime",
    "estimate_k0_nicholson",
    "NicholsonPoint",
    "CurrentFits",
    "KineticsSummary",
    "analyze_kinetics",
]
