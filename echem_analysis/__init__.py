"""
echem_analysis - Electrochemical curve-analysis engine

Numerical routines for voltammetry traces: polynomial regression, Savitzky-Golay
smoothing and differentiation, natural cubic splines, baseline peak heights,
Gaussian peak fitting and scan-rate correlations. File I/O, plotting and UI
live in the applications that use this library.
"""

__version__ = "0.1.0"

# Types
from .types import Point, TraceFile, TraceOutcome, to_decimal, as_points, convert_units

# Config
from .config import (
    AnalysisConfig,
    SavitzkyGolayParams,
    LevenbergMarquardtOptions,
    RegressionSettings,
    load_config,
)

# Linear algebra
from .linalg import solve_linear_system

# Analysis
from .analysis import (
    FitResult,
    polynomial_fit,
    find_best_fits,
    generate_points,
    generate_points_from_best_fit,
    generate_points_for_all_best_fits,
    fit_traces,
    numerical_derivative,
    savitzky_golay_smooth,
    savitzky_golay_derivative,
    smooth_traces,
    CubicSpline,
    PeakInfo,
    CurveMetrics,
    perpendicular_distance,
    calculate_peak_height,
    calculate_peak_info,
    polygon_area,
    curve_metrics,
    GaussianParameters,
    GaussianFitResult,
    fit_gaussian,
    estimate_initial_params,
    PotentialRange,
    PeakPoint,
    FileExtremes,
    LinearFit,
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
    "__version__",
    # Types
    "Point",
    "TraceFile",
    "TraceOutcome",
    "to_decimal",
    "as_points",
    "convert_units",
    # Config
    "AnalysisConfig",
    "SavitzkyGolayParams",
    "LevenbergMarquardtOptions",
    "RegressionSettings",
    "load_config",
    # Linear algebra
    "solve_linear_system",
    # Regression
    "FitResult",
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
    "fit_gaussian",
    "estimate_initial_params",
    # Scan rate
    "PotentialRange",
    "PeakPoint",
    "FileExtremes",
    "LinearFit",
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
