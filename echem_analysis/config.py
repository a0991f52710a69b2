"""Analysis settings and YAML config loading."""

from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "default_config.yaml"


class SavitzkyGolayParams(BaseModel):
    """Window settings for Savitzky-Golay smoothing/differentiation."""
    window_size: int = 5
    poly_order: int = 2

    @field_validator("window_size")
    @classmethod
    def _odd_window(cls, value: int) -> int:
        if value < 3 or value % 2 == 0:
            raise ValueError(f"window_size must be an odd integer >= 3, got {value}")
        return value

    @field_validator("poly_order")
    @classmethod
    def _order_range(cls, value: int) -> int:
        if not 1 <= value <= 5:
            raise ValueError(f"poly_order must be between 1 and 5, got {value}")
        return value

    @model_validator(mode="after")
    def _order_below_window(self) -> "SavitzkyGolayParams":
        if self.poly_order >= self.window_size:
            raise ValueError(
                f"poly_order ({self.poly_order}) must be less than "
                f"window_size ({self.window_size})"
            )
        return self


class LevenbergMarquardtOptions(BaseModel):
    """Tuning knobs for the Gaussian peak fitter."""
    damping: float = Field(default=1e-2, gt=0)
    gradient_difference: float = Field(default=1e-1, gt=0)
    max_iterations: int = Field(default=100, ge=1)
    error_tolerance: float = Field(default=1e-3, ge=0)


class RegressionSettings(BaseModel):
    """Polynomial model-order search settings."""
    max_degree: int = Field(default=10, ge=1)
    generated_points: Optional[int] = None  # None = same count as input


class AnalysisConfig(BaseModel):
    """All engine settings."""
    smoothing: SavitzkyGolayParams = Field(default_factory=SavitzkyGolayParams)
    gaussian: LevenbergMarquardtOptions = Field(default_factory=LevenbergMarquardtOptions)
    regression: RegressionSettings = Field(default_factory=RegressionSettings)


def load_config(config_path: Optional[str] = None) -> AnalysisConfig:
    """Load analysis settings from a YAML file.

    Args:
        config_path: Optional explicit path to the configuration file. If None,
                     load the `default_config.yaml` shipped with the package.

    Returns:
        Validated AnalysisConfig

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If a setting is out of range
    """
    path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)

    if not path.is_file():
        raise FileNotFoundError(f"Configuration file not found at: {path}")

    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    return AnalysisConfig.model_validate(raw)
