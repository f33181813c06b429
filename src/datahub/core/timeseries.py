"""
Time Series Forecasting and Insights.

Short-horizon linear-trend extrapolation with prediction intervals, plus a
rule-based insight generator (trend, anomaly, forecast, recommendation) for
a single yearly series.
"""

import logging
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

import numpy as np

from datahub.core.aggregation import is_missing
from datahub.core.statistics import linear_regression

logger = logging.getLogger(__name__)

Series = Sequence[tuple[int, float]] | Mapping[int, float]


def _sorted_pairs(series: Series) -> list[tuple[int, float]]:
    """Year-ordered pairs with missing values dropped."""
    items = series.items() if isinstance(series, Mapping) else series
    return sorted((int(y), float(v)) for y, v in items if not is_missing(v))


# =============================================================================
# FORECASTING
# =============================================================================


@dataclass
class ForecastPoint:
    """Projected value for a future year."""
    year: int
    predicted: float
    lower: float
    upper: float
    confidence: float  # R-squared of the trend, clamped to [0, 0.99]

    @property
    def margin(self) -> float:
        return (self.upper - self.lower) / 2

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "predicted": self.predicted,
            "lower": self.lower,
            "upper": self.upper,
            "confidence": self.confidence,
        }


def forecast(series: Series, periods: int = 3, z: float = 1.96) -> list[ForecastPoint]:
    """
    Extrapolate a linear trend beyond the last observed year.

    The trend is fitted on the index 0..n-1 of the year-sorted series. The
    interval is z * se * sqrt(1 + 1/n + (x - mean_x)^2 / sum((x - mean_x)^2))
    with se = sqrt(RSS / (n - 2)).

    Args:
        series: (year, value) pairs or a year -> value mapping.
        periods: Number of years to project.
        z: Critical value of the interval (1.96 for 95%).

    Returns:
        One point per projected year, or an empty list when there are fewer
        than 3 observations or ``periods`` is not positive.
    """
    pairs = _sorted_pairs(series)
    if periods <= 0 or len(pairs) < 3:
        return []

    fit = linear_regression([v for _, v in pairs])
    if fit is None:
        return []

    n = fit.n
    se = fit.std_error
    confidence = min(0.99, max(0.0, fit.r_squared))
    last_year = pairs[-1][0]

    points = []
    for i in range(1, periods + 1):
        x = n + i - 1
        predicted = fit.predict(x)
        margin = z * se * math.sqrt(1 + 1 / n + (x - fit.x_mean) ** 2 / fit.sxx)
        points.append(ForecastPoint(
            year=last_year + i,
            predicted=predicted,
            lower=predicted - margin,
            upper=predicted + margin,
            confidence=confidence,
        ))
    return points


# =============================================================================
# TREND ANALYSIS
# =============================================================================


class TrendDirection(str, Enum):
    """Direction of a yearly series."""
    INCREASING = "increasing"
    DECREASING = "decreasing"
    STABLE = "stable"


@dataclass
class TrendAnalysis:
    """Summary of a yearly series."""
    slope: float  # Per observation step
    r_squared: float
    direction: TrendDirection
    latest_z_score: float
    recent_change: float | None  # Percent change of the last step

    def to_dict(self) -> dict[str, Any]:
        return {
            "slope": self.slope,
            "r_squared": self.r_squared,
            "direction": self.direction.value,
            "latest_z_score": self.latest_z_score,
            "recent_change": self.recent_change,
        }


def analyze_trend(series: Series, dead_zone: float = 0.5) -> TrendAnalysis | None:
    """
    Fit a trend on the index of a series and describe its latest point.

    Slopes within +/- ``dead_zone`` count as stable. Returns None for fewer
    than 2 observations.
    """
    pairs = _sorted_pairs(series)
    if len(pairs) < 2:
        return None

    values = np.array([v for _, v in pairs])
    fit = linear_regression(values)
    if fit is None:
        return None

    if fit.slope > dead_zone:
        direction = TrendDirection.INCREASING
    elif fit.slope < -dead_zone:
        direction = TrendDirection.DECREASING
    else:
        direction = TrendDirection.STABLE

    std = float(values.std())
    latest_z = float((values[-1] - values.mean()) / (std or 1.0))

    previous = values[-2]
    recent_change = float((values[-1] - previous) / previous * 100) if previous != 0 else None

    return TrendAnalysis(
        slope=fit.slope,
        r_squared=fit.r_squared,
        direction=direction,
        latest_z_score=latest_z,
        recent_change=recent_change,
    )


# =============================================================================
# INSIGHTS
# =============================================================================


class InsightType(str, Enum):
    TREND = "trend"
    ANOMALY = "anomaly"
    FORECAST = "forecast"
    RECOMMENDATION = "recommendation"


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class Insight:
    """A single generated observation about a series."""
    type: InsightType
    title: str
    description: str
    confidence: float
    severity: Severity
    actionable: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "confidence": self.confidence,
            "severity": self.severity.value,
            "actionable": self.actionable,
        }


def _recommendation(recent_change: float) -> tuple[str, Severity]:
    if recent_change > 5:
        text = "Strong positive momentum. Keep current policies and scale best practices."
    elif recent_change > 0:
        text = "Moderate progress. Consider accelerating through targeted interventions."
    elif recent_change > -5:
        text = "Stagnant or slightly declining. Evaluate policies and adjust strategy."
    else:
        text = "Significant decline. Immediate action required for course correction."

    if recent_change < -5:
        severity = Severity.HIGH
    elif recent_change < 0:
        severity = Severity.MEDIUM
    else:
        severity = Severity.LOW
    return text, severity


def generate_insights(
    series: Series,
    metric_name: str,
    current_value: float | None = None,
) -> list[Insight]:
    """
    Generate trend, anomaly, forecast and recommendation insights.

    Args:
        series: (year, value) pairs or a year -> value mapping.
        metric_name: Label used in the descriptions.
        current_value: Value the forecast change is measured against.
            Defaults to the latest observation.

    Returns:
        Insights in the order trend, anomaly, forecast, recommendation.
        Trend and anomaly appear only when detected. Fewer than 3
        observations yield an empty list.
    """
    pairs = _sorted_pairs(series)
    if len(pairs) < 3:
        return []

    values = np.array([v for _, v in pairs])
    latest = float(values[-1])
    current = latest if current_value is None else current_value
    insights: list[Insight] = []

    fit = linear_regression(values)
    slope = fit.slope if fit is not None else 0.0
    strength = abs(slope)
    if strength > 0.5:
        increasing = slope > 0
        insights.append(Insight(
            type=InsightType.TREND,
            title="Increasing trend detected" if increasing else "Decreasing trend detected",
            description=(
                f"{metric_name} shows a consistent {'upward' if increasing else 'downward'} "
                f"trend of {strength:.2f} per year."
            ),
            confidence=min(0.95, 0.6 + strength * 0.1),
            severity=Severity.HIGH if strength > 2 else Severity.MEDIUM,
            actionable="Monitor for sustainability" if increasing else "Intervention needed to reverse the trend",
        ))

    std = float(values.std())
    if std > 0:
        z = abs(latest - float(values.mean())) / std
        if z > 2:
            insights.append(Insight(
                type=InsightType.ANOMALY,
                title="Anomaly detected",
                description=(
                    f"The latest value ({current:.2f}) is {z:.2f} standard deviations "
                    f"from the historical mean."
                ),
                confidence=min(0.99, 0.7 + (z - 2) * 0.1),
                severity=Severity.HIGH if z > 3 else Severity.MEDIUM,
                actionable="Investigate the cause of the change",
            ))
    else:
        logger.debug("Anomaly check skipped for %s: no variance", metric_name)

    projections = forecast(pairs, periods=1)
    if projections:
        nxt = projections[0]
        if current != 0:
            change = (nxt.predicted - current) / current * 100
            change_text = f" ({change:+.1f}%)"
        else:
            change_text = ""
        insights.append(Insight(
            type=InsightType.FORECAST,
            title="Forecast",
            description=(
                f"Based on the historical pattern, {metric_name} is projected to reach "
                f"{nxt.predicted:.2f} in {nxt.year}{change_text}."
            ),
            confidence=nxt.confidence,
            severity=Severity.LOW,
            actionable=f"Confidence interval: {nxt.lower:.2f} - {nxt.upper:.2f}",
        ))

    previous = float(values[-2])
    recent_change = (latest - previous) / previous * 100 if previous != 0 else 0.0
    text, severity = _recommendation(recent_change)
    insights.append(Insight(
        type=InsightType.RECOMMENDATION,
        title="Recommendation",
        description=text,
        confidence=0.75,
        severity=severity,
        actionable="Review in the next quarterly cycle",
    ))

    return insights
