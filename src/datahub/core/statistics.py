"""
Statistical Functions Module.

Closed-form statistics used by every indicator:
- Least-squares linear regression
- Mean, population standard deviation, coefficient of variation
- Z-scores
- Min-max normalization
- Pearson correlation with strength/direction classification

Degenerate inputs never raise. Zero denominators fall back to a divisor of
1 (normalization, z-scores) or to a documented sentinel (CV, R-squared).
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
from scipy import stats

from datahub.core.methodology import INDICATORS


@dataclass
class LinearFit:
    """Result of a least-squares fit y = slope * x + intercept."""
    slope: float
    intercept: float
    r_squared: float
    n: int
    residual_ss: float
    x_mean: float
    sxx: float  # Sum of squared deviations of x

    def predict(self, x: float) -> float:
        return self.slope * x + self.intercept

    @property
    def std_error(self) -> float:
        """Residual standard error, sqrt(RSS / (n - 2)). Zero when n <= 2."""
        if self.n <= 2:
            return 0.0
        return float(np.sqrt(self.residual_ss / (self.n - 2)))

    def to_dict(self) -> dict[str, float]:
        return {
            "slope": self.slope,
            "intercept": self.intercept,
            "r_squared": self.r_squared,
            "n": self.n,
            "residual_ss": self.residual_ss,
        }


@dataclass
class DispersionStats:
    """Dispersion of a set of values."""
    count: int
    mean: float
    std: float
    min: float
    max: float
    range: float
    cv: float  # Coefficient of variation, 0.0 when not computable
    cv_computable: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "count": self.count,
            "mean": self.mean,
            "std": self.std,
            "min": self.min,
            "max": self.max,
            "range": self.range,
            "cv": self.cv,
            "cv_computable": self.cv_computable,
        }


@dataclass
class CorrelationResult:
    """Result of correlation analysis."""
    variable1: str
    variable2: str
    correlation: float
    strength: str
    direction: str
    p_value: float
    n_observations: int
    interpretation: str

    @property
    def significance(self) -> float:
        return 1.0 - self.p_value

    @property
    def is_significant(self) -> bool:
        return self.p_value < 0.05

    def to_dict(self) -> dict[str, Any]:
        return {
            "variable1": self.variable1,
            "variable2": self.variable2,
            "correlation": self.correlation,
            "strength": self.strength,
            "direction": self.direction,
            "p_value": self.p_value,
            "significance": self.significance,
            "is_significant": self.is_significant,
            "n_observations": self.n_observations,
            "interpretation": self.interpretation,
        }


def _as_array(values: Sequence[float] | np.ndarray) -> np.ndarray:
    return np.asarray(values, dtype=float)


def linear_regression(
    y: Sequence[float] | np.ndarray,
    x: Sequence[float] | np.ndarray | None = None,
) -> LinearFit | None:
    """
    Fit a least-squares line.

    Args:
        y: Observed values.
        x: Explanatory values. Defaults to the index 0..n-1.

    Returns:
        LinearFit, or None when fewer than 2 points are given or x has no
        variance. R-squared is 0 when y has no variance.
    """
    y_arr = _as_array(y)
    n = len(y_arr)
    if n < 2:
        return None

    x_arr = np.arange(n, dtype=float) if x is None else _as_array(x)
    if len(x_arr) != n:
        raise ValueError("x and y must have the same length")

    x_mean = float(x_arr.mean())
    y_mean = float(y_arr.mean())
    sxx = float(np.sum((x_arr - x_mean) ** 2))
    if sxx == 0:
        return None

    slope = float(np.sum((x_arr - x_mean) * (y_arr - y_mean)) / sxx)
    intercept = y_mean - slope * x_mean

    residual_ss = float(np.sum((y_arr - (slope * x_arr + intercept)) ** 2))
    if np.all(y_arr == y_arr[0]):
        r_squared = 0.0
    else:
        total_ss = float(np.sum((y_arr - y_mean) ** 2))
        r_squared = 1.0 - residual_ss / total_ss

    return LinearFit(
        slope=slope,
        intercept=intercept,
        r_squared=r_squared,
        n=n,
        residual_ss=residual_ss,
        x_mean=x_mean,
        sxx=sxx,
    )


def mean(values: Sequence[float] | np.ndarray) -> float:
    """Arithmetic mean, 0.0 for empty input."""
    arr = _as_array(values)
    return float(arr.mean()) if arr.size else 0.0


def population_std(values: Sequence[float] | np.ndarray) -> float:
    """Population standard deviation sqrt(mean((x - mean)^2)), 0.0 for empty input."""
    arr = _as_array(values)
    return float(np.std(arr)) if arr.size else 0.0


def coefficient_of_variation(values: Sequence[float] | np.ndarray) -> float:
    """
    Coefficient of variation, std / mean * 100.

    Returns 0.0 when the mean is zero or there are no values. Use
    ``describe`` when a zero must be told apart from "not computable".
    """
    return describe(values).cv


def describe(values: Sequence[float] | np.ndarray) -> DispersionStats:
    """
    Calculate dispersion statistics.

    Args:
        values: Numeric values.

    Returns:
        DispersionStats. ``cv_computable`` is False for empty input or a
        zero mean, in which case ``cv`` is 0.0.
    """
    arr = _as_array(values)
    if arr.size == 0:
        return DispersionStats(0, 0.0, 0.0, 0.0, 0.0, 0.0, 0.0, False)

    avg = float(arr.mean())
    std = float(np.std(arr))
    computable = avg != 0
    return DispersionStats(
        count=int(arr.size),
        mean=avg,
        std=std,
        min=float(arr.min()),
        max=float(arr.max()),
        range=float(arr.max() - arr.min()),
        cv=std / avg * 100 if computable else 0.0,
        cv_computable=computable,
    )


def z_score(value: float, values: Sequence[float] | np.ndarray) -> float:
    """
    Z-score of a value within a distribution.

    Uses the population standard deviation; a zero deviation falls back to
    a divisor of 1.
    """
    arr = _as_array(values)
    if arr.size == 0:
        return 0.0
    std = float(np.std(arr))
    return float((value - arr.mean()) / (std or 1.0))


def z_scores(values: Sequence[float] | np.ndarray) -> list[float]:
    """Z-score of every value within its own distribution."""
    arr = _as_array(values)
    if arr.size == 0:
        return []
    std = float(np.std(arr))
    return ((arr - arr.mean()) / (std or 1.0)).tolist()


def min_max_normalize(
    values: Sequence[float] | np.ndarray,
    invert: bool = False,
) -> list[float]:
    """
    Scale values to 0-100 with (x - min) / (max - min) * 100.

    When all values are identical the range defaults to 1, so every value
    normalizes to 0 (100 when inverted).

    Args:
        values: Raw values.
        invert: Lower raw values score higher (100 - normalized).

    Returns:
        Normalized values in input order.
    """
    arr = _as_array(values)
    if arr.size == 0:
        return []

    low = float(arr.min())
    high = float(arr.max())
    value_range = (high - low) if high != low else 1.0
    normalized = (arr - low) / value_range * 100
    if invert:
        normalized = 100 - normalized
    return normalized.tolist()


def _interpret_correlation(
    name1: str,
    name2: str,
    correlation: float,
    strength: str,
    direction: str,
) -> str:
    if abs(correlation) < 0.3:
        return (
            f"{name1} and {name2} are very weakly correlated ({correlation:.3f}); "
            "there is no clear linear relationship."
        )
    if direction == "positive":
        return (
            f"{name1} and {name2} have a {strength} positive correlation ({correlation:.3f}); "
            f"when {name1} rises, {name2} tends to rise as well."
        )
    return (
        f"{name1} and {name2} have a {strength} negative correlation ({correlation:.3f}); "
        f"when {name1} rises, {name2} tends to fall."
    )


def correlation_direction(correlation: float) -> str:
    """positive / negative, with |r| <= 0.1 treated as none."""
    if correlation > 0.1:
        return "positive"
    if correlation < -0.1:
        return "negative"
    return "none"


def pearson_correlation(
    x: Sequence[float] | np.ndarray,
    y: Sequence[float] | np.ndarray,
    name1: str = "x",
    name2: str = "y",
) -> CorrelationResult:
    """
    Pearson correlation with strength and direction classification.

    Args:
        x: First variable.
        y: Second variable, paired with x.
        name1: Label for x.
        name2: Label for y.

    Returns:
        CorrelationResult. Mismatched lengths or fewer than 3 pairs give an
        insufficient-data result (r = 0, p = 1); a variable with no
        variance gives r = 0.
    """
    x_arr = _as_array(x)
    y_arr = _as_array(y)

    if len(x_arr) != len(y_arr) or len(x_arr) < 3:
        return CorrelationResult(
            variable1=name1,
            variable2=name2,
            correlation=0.0,
            strength="very_weak",
            direction="none",
            p_value=1.0,
            n_observations=min(len(x_arr), len(y_arr)),
            interpretation="Insufficient data for correlation analysis (need at least 3 pairs)",
        )

    dx = x_arr - x_arr.mean()
    dy = y_arr - y_arr.mean()
    denominator = float(np.sqrt(np.sum(dx * dx) * np.sum(dy * dy)))

    if denominator == 0:
        correlation, p_value = 0.0, 1.0
    else:
        correlation = float(np.sum(dx * dy) / denominator)
        p_value = float(stats.pearsonr(x_arr, y_arr).pvalue)

    strength = INDICATORS["correlation_strength"].classify(abs(correlation))
    direction = correlation_direction(correlation)

    return CorrelationResult(
        variable1=name1,
        variable2=name2,
        correlation=correlation,
        strength=strength,
        direction=direction,
        p_value=p_value,
        n_observations=len(x_arr),
        interpretation=_interpret_correlation(name1, name2, correlation, strength, direction),
    )
