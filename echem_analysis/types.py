"""Data types for echem_analysis."""

import math
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

import pint
import polars as pl

# Initialize unit registry
ureg = pint.UnitRegistry()

Point = tuple[Decimal, Decimal]

ZERO = Decimal(0)
ONE = Decimal(1)
NAN = Decimal("NaN")
POS_INF = Decimal("Infinity")
NEG_INF = Decimal("-Infinity")

# Standard column names (SI units encoded in the name)
POTENTIAL_COL = "potential_V"
CURRENT_COL = "current_A"


def to_decimal(value: Any) -> Decimal:
    """Coerce a number or numeric string to Decimal.

    Floats go through their shortest repr so 0.1 becomes Decimal("0.1")
    rather than the full binary expansion.

    Raises:
        ValueError: If the value cannot be parsed as a number
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Not a numeric value: {value!r}")
    if isinstance(value, float):
        return Decimal(repr(value))
    if isinstance(value, int):
        return Decimal(value)
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"Not a numeric value: {value!r}") from e


def as_points(pairs: Iterable[Any]) -> list[Point]:
    """Convert (x, y) pairs of any numeric type to Decimal points."""
    points = []
    for pair in pairs:
        x, y = pair
        points.append((to_decimal(x), to_decimal(y)))
    return points


def is_finite_number(value: Any) -> bool:
    """True for real numbers that are neither NaN nor infinite."""
    if value is None or isinstance(value, bool):
        return False
    if isinstance(value, Decimal):
        return value.is_finite()
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def decimal_to_json(value: Decimal | None) -> str | None:
    """Serialize a Decimal as a string (keeps full precision)."""
    return None if value is None else str(value)


def points_to_json(points: Iterable[Point]) -> list[list[str]]:
    """Serialize a trace as [[x, y], ...] strings."""
    return [[str(x), str(y)] for x, y in points]


def convert_units(value: float, source_unit: str, target_unit: str) -> float:
    """Convert a value from source unit to target unit using pint.

    Args:
        value: The numeric value to convert
        source_unit: Unit string (e.g., "millivolt / second")
        target_unit: Target unit string (e.g., "volt / second")

    Returns:
        Converted value
    """
    if not source_unit or not target_unit or source_unit == target_unit:
        return value
    return (value * ureg(source_unit)).to(target_unit).magnitude


@dataclass(frozen=True)
class TraceFile:
    """A single measurement trace handed to the engine by the file layer.

    Data is stored with standardized SI column names:
    - potential_V: volts
    - current_A: amperes
    """

    # Identity
    file_id: str
    name: str

    # Data
    df: pl.DataFrame

    # Metadata
    color: str | None = None
    file_type: str | None = None  # CV, LSV, ...
    user_metadata: dict = field(default_factory=dict)

    @classmethod
    def from_points(
        cls,
        file_id: str,
        name: str,
        points: Iterable[Any],
        **kwargs,
    ) -> "TraceFile":
        """Build a trace from (potential, current) pairs.

        Columns are stored as Float64, so Decimal or string inputs are rounded
        to about 17 significant digits. Pass points straight to the analysis
        functions (which accept any numeric pairs) when more precision matters.
        """
        rows = [(float(x), float(y)) for x, y in points]
        df = pl.DataFrame(
            {
                POTENTIAL_COL: [r[0] for r in rows],
                CURRENT_COL: [r[1] for r in rows],
            },
            schema={POTENTIAL_COL: pl.Float64, CURRENT_COL: pl.Float64},
        )
        return cls(file_id=file_id, name=name, df=df, **kwargs)

    def points(
        self,
        x_col: str = POTENTIAL_COL,
        y_col: str = CURRENT_COL,
    ) -> list[Point]:
        """Return the trace as Decimal points, dropping nulls."""
        if x_col not in self.df.columns or y_col not in self.df.columns:
            return []
        clean = self.df.select(x_col, y_col).drop_nulls()
        return as_points(zip(clean[x_col].to_list(), clean[y_col].to_list()))

    def __len__(self) -> int:
        return self.df.height


@dataclass(frozen=True)
class TraceOutcome:
    """Per-trace result of a batch operation."""
    file_id: str
    success: bool
    value: Any = None
    error: str | None = None

    def to_dict(self) -> dict:
        """Convert to JSON-serializable dict."""
        value = self.value
        if hasattr(value, "to_dict"):
            value = value.to_dict()
        elif isinstance(value, list):
            value = points_to_json(value)
        return {
            "file_id": self.file_id,
            "success": self.success,
            "value": value,
            "error": self.error,
        }
