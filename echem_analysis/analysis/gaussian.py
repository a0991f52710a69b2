"""Gaussian peak fitting with Levenberg-Marquardt.

Fits f(x) = amplitude * exp(-(x - mean)² / (2 * sigma²)) starting from
caller-supplied parameters. The optimisation runs in float64 through
scipy.optimize.curve_fit (MINPACK Levenberg-Marquardt); inputs and outputs
are Decimals.
"""

import logging
import warnings
from dataclasses import dataclass
from decimal import Decimal
from functools import partial
from typing import Any, Sequence

import numpy as np
from scipy.optimize import OptimizeWarning, curve_fit

from ..config import LevenbergMarquardtOptions
from ..types import decimal_to_json, to_decimal

logger = logging.getLogger(__name__)

FWHM_TO_SIGMA = 2.0 * np.sqrt(2.0 * np.log(2.0))  # ~2.3548
# MINPACK recommends an initial step bound in [0.1, 100]
MIN_STEP_BOUND = 0.1
MAX_STEP_BOUND = 100.0


@dataclass(frozen=True)
class GaussianParameters:
    amplitude: Decimal
    mean: Decimal
    sigma: Decimal

    @classmethod
    def from_values(cls, amplitude: Any, mean: Any, sigma: Any) -> "GaussianParameters":
        return cls(to_decimal(amplitude), to_decimal(mean), to_decimal(sigma))

    def as_array(self) -> np.ndarray:
        return np.array([float(self.amplitude), float(self.mean), float(self.sigma)])

    def to_dict(self) -> dict:
        return {
            "amplitude": decimal_to_json(self.amplitude),
            "mean": decimal_to_json(self.mean),
            "sigma": decimal_to_json(self.sigma),
        }


@dataclass(frozen=True)
class GaussianFitResult:
    """Result of Gaussian peak fitting."""
    params: GaussianParameters
    fitted_curve: tuple[Decimal, ...]  # Aligned with the input x-values
    iterations: int
    errors: GaussianParameters  # Standard error per parameter (NaN if undetermined)
    residual_sum_squares: Decimal
    converged: bool

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        return {
            "params": self.params.to_dict(),
            "fitted_curve": [str(v) for v in self.fitted_curve],
            "iterations": self.iterations,
            "errors": self.errors.to_dict(),
            "residual_sum_squares": decimal_to_json(self.residual_sum_squares),
            "converged": self.converged,
        }


def gaussian(x: np.ndarray, amplitude: float, mean: float, sigma: float) -> np.ndarray:
    """Evaluate the Gaussian model."""
    return amplitude * np.exp(-((x - mean) ** 2) / (2 * sigma**2))


def _model(x: np.ndarray, p: np.ndarray) -> np.ndarray:
    return gaussian(x, p[0], p[1], p[2])


def _jacobian(x: np.ndarray, *p: float, step: float) -> np.ndarray:
    """Forward-difference Jacobian, one column per parameter."""
    params = np.asarray(p, dtype=float)
    f0 = _model(x, params)
    jac = np.empty((x.size, params.size))
    for k in range(params.size):
        shifted = params.copy()
        shifted[k] += step
        jac[:, k] = (_model(x, shifted) - f0) / step
    return jac


def _to_decimal_array(values: np.ndarray) -> tuple[Decimal, ...]:
    return tuple(Decimal(repr(float(v))) for v in values)


def _step_bound(damping: float) -> float:
    """MINPACK `factor` (initial trust-region scale) for a damping value.

    Heavier damping means shorter initial steps. The default damping of 1e-2
    maps to MINPACK's default factor of 100.
    """
    return float(np.clip(1.0 / damping, MIN_STEP_BOUND, MAX_STEP_BOUND))


def _errors_from_covariance(pcov: np.ndarray | None) -> np.ndarray:
    """Per-parameter standard errors, NaN where the covariance is undetermined."""
    if pcov is None:
        return np.full(3, np.nan)
    variances = np.diag(pcov)
    errors = np.sqrt(np.abs(variances))
    errors[~np.isfinite(variances)] = np.nan
    return errors


def _initial_errors(x: np.ndarray, params: np.ndarray, sse: float, step: float) -> np.ndarray:
    """Standard errors at a starting point that already fits within tolerance."""
    dof = x.size - params.size
    if dof <= 0:
        return np.full(params.size, np.nan)
    jac = _jacobian(x, *params, step=step)
    try:
        pcov = np.linalg.inv(jac.T @ jac) * (sse / dof)
    except np.linalg.LinAlgError:
        return np.full(params.size, np.nan)
    return _errors_from_covariance(pcov)


def _result(
    params: np.ndarray,
    fitted: np.ndarray,
    iterations: int,
    errors: np.ndarray,
    sse: float,
    converged: bool,
) -> GaussianFitResult:
    return GaussianFitResult(
        params=GaussianParameters(*_to_decimal_array(params)),
        fitted_curve=_to_decimal_array(fitted),
        iterations=iterations,
        errors=GaussianParameters(*_to_decimal_array(errors)),
        residual_sum_squares=Decimal(repr(sse)),
        converged=converged,
    )


def fit_gaussian(
    x: Sequence[Any],
    y: Sequence[Any],
    initial_params: GaussianParameters,
    options: LevenbergMarquardtOptions | None = None,
) -> GaussianFitResult | None:
    """Fit a Gaussian peak by Levenberg-Marquardt least squares.

    Runs MINPACK's LM through `scipy.optimize.curve_fit(method="lm")`:

    - `gradient_difference` is the absolute forward-difference step of the
      Jacobian handed to the optimiser
    - `error_tolerance` is used as both `ftol` and `xtol`
    - `max_iterations` bounds the number of LM iterations (Jacobian updates)
    - `damping` sets MINPACK's initial step bound, `factor = 1 / damping`
      clipped to [0.1, 100]

    A start whose squared error is already within `error_tolerance` returns
    immediately with zero iterations. A non-finite start, fewer than three
    points, or a run that hits the iteration limit returns the starting
    parameters with `converged=False`.

    Args:
        x: Sample positions (e.g. potential in V)
        y: Sample values (e.g. current in A)
        initial_params: Starting amplitude/mean/sigma
        options: Damping, gradient step, iteration limit, tolerance

    Returns:
        GaussianFitResult, or None if x and y are empty or differ in length
    """
    if x is None or y is None or len(x) != len(y) or len(x) == 0:
        return None
    if options is None:
        options = LevenbergMarquardtOptions()

    xs = np.array([float(to_decimal(v)) for v in x])
    ys = np.array([float(to_decimal(v)) for v in y])
    p0 = initial_params.as_array()
    tol = options.error_tolerance
    step = options.gradient_difference

    with np.errstate(divide="ignore", invalid="ignore", over="ignore"):
        start_curve = _model(xs, p0)
        start_error = float(np.sum((ys - start_curve) ** 2))

        if not np.isfinite(start_error):
            logger.warning("Gaussian fit not started: non-finite error at initial parameters")
            return _result(p0, start_curve, 0, np.full(3, np.nan), start_error, False)

        if start_error <= tol:
            errors = _initial_errors(xs, p0, start_error, step)
            return _result(p0, start_curve, 0, errors, start_error, True)

        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", OptimizeWarning)
                popt, pcov, infodict, message, ier = curve_fit(
                    gaussian,
                    xs,
                    ys,
                    p0=p0,
                    method="lm",
                    jac=partial(_jacobian, step=step),
                    full_output=True,
                    maxfev=options.max_iterations + 1,
                    ftol=tol,
                    xtol=tol,
                    factor=_step_bound(options.damping),
                )
        except RuntimeError as e:
            logger.warning("Gaussian fit did not converge: %s", e)
            return _result(
                p0, start_curve, options.max_iterations, np.full(3, np.nan), start_error, False
            )
        except (TypeError, ValueError) as e:
            # Too few points for three parameters, or non-finite input
            logger.warning("Gaussian fit not started: %s", e)
            return _result(p0, start_curve, 0, np.full(3, np.nan), start_error, False)

        fitted = _model(xs, popt)
        error = float(np.sum((ys - fitted) ** 2))

    # ier 4 (gradient orthogonal to residuals) is reached when the Jacobian vanishes
    converged = ier in (1, 2, 3) or error <= tol
    if not converged:
        logger.debug("Gaussian fit stopped without converging (ier=%d): %s", ier, message)

    return _result(popt, fitted, int(infodict["njev"]), _errors_from_covariance(pcov), error, converged)


def estimate_initial_params(x: Sequence[Any], y: Sequence[Any]) -> GaussianParameters | None:
    """Rough starting parameters for `fit_gaussian`.

    Amplitude and mean come from the sample with the largest |y|. Sigma is
    estimated from the full width at half maximum around it.
    """
    if x is None or y is None or len(x) != len(y) or len(x) == 0:
        return None

    xs = np.array([float(to_decimal(v)) for v in x])
    ys = np.array([float(to_decimal(v)) for v in y])

    peak_idx = int(np.argmax(np.abs(ys)))
    amplitude = ys[peak_idx]
    mean = xs[peak_idx]

    half = np.abs(ys) >= abs(amplitude) / 2
    left = peak_idx
    while left > 0 and half[left - 1]:
        left -= 1
    right = peak_idx
    while right < len(ys) - 1 and half[right + 1]:
        right += 1
    fwhm = abs(xs[right] - xs[left])

    if fwhm > 0:
        sigma = fwhm / FWHM_TO_SIGMA
    elif len(xs) > 1:
        sigma = float(np.ptp(xs)) / 10 or 1.0
    else:
        sigma = 1.0

    return GaussianParameters.from_values(float(amplitude), float(mean), float(sigma))
