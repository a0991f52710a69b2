"""Dense linear system solving at the Decimal/float boundary.

The engine keeps its arithmetic in Decimal, but matrix solving is delegated to
numpy's LAPACK routines which work in float64. Values cross that boundary
twice: Decimal -> float64 before the solve (precision drops to ~15-17
significant digits) and float64 -> Decimal afterwards (via repr, so no extra
binary noise is introduced). Callers that need more than double precision in
the solution itself should not rely on this module.
"""

import logging
from decimal import Decimal
from typing import Sequence

import numpy as np

logger = logging.getLogger(__name__)


def solve_linear_system(
    a: Sequence[Sequence[Decimal]],
    b: Sequence[Decimal],
) -> list[Decimal] | None:
    """Solve A·x = b.

    Args:
        a: Square coefficient matrix (rows of Decimals)
        b: Right-hand side vector

    Returns:
        Solution vector as Decimals, or None if the system is singular,
        malformed, or produces non-finite values
    """
    try:
        a_arr = np.array([[float(v) for v in row] for row in a], dtype=float)
        b_arr = np.array([float(v) for v in b], dtype=float)
    except (TypeError, ValueError) as e:
        logger.debug("Could not convert system to float64: %s", e)
        return None

    n = len(b_arr)
    if n == 0 or a_arr.shape != (n, n):
        logger.debug("Inconsistent system shape: A%s, b(%d)", a_arr.shape, n)
        return None

    try:
        solution = np.linalg.solve(a_arr, b_arr)
    except np.linalg.LinAlgError as e:
        logger.debug("Singular system of size %d: %s", n, e)
        return None

    if not np.all(np.isfinite(solution)):
        logger.debug("Non-finite solution for system of size %d", n)
        return None

    return [Decimal(repr(float(v))) for v in solution]
