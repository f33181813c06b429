"""
Analytics Methodology Registry.

Every classification band, composite weight and clustering policy used by
the analytics layer is declared here as data:

- ``INDICATORS``: indicator id -> formula and classification scheme
- ``METHODOLOGIES``: dataset id -> indicators, composite metrics, weights
  and clustering strategy

Bands for the same concept can differ between datasets (growth "high" is
> 5 for the generic calculator, > 6 for regional GDP and > 2 for school
participation). They are kept as separate entries.
"""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, NamedTuple

from datahub.core.thresholds import Scheme, above, ranges, tiers


# =============================================================================
# CLUSTERING POLICY TYPES
# =============================================================================


class ClusteringStrategy(str, Enum):
    """How composite scores are cut into tiers."""
    FIXED = "fixed"
    PERCENTILE = "percentile"


class TierLabels(NamedTuple):
    """Labels for the three composite tiers, best first."""
    top: str
    middle: str
    bottom: str


DEFAULT_TIER_LABELS = TierLabels("High", "Medium", "Low")


# =============================================================================
# INDICATORS
# =============================================================================


@dataclass(frozen=True)
class IndicatorConfig:
    """Definition of a single indicator and its classification bands."""
    indicator_id: str
    name: str
    formula: str
    scheme: Scheme
    unit: str = ""
    description: str = ""
    advice: dict[str, str] = field(default_factory=dict, hash=False, compare=False)

    def classify(self, value: float) -> str:
        return self.scheme.classify(value)

    def recommend(self, label: str) -> str:
        """Policy recommendation for a classification label, empty if none."""
        return self.advice.get(label, "")

    @property
    def labels(self) -> list[str]:
        return self.scheme.labels

    def to_dict(self) -> dict[str, Any]:
        return {
            "indicator_id": self.indicator_id,
            "name": self.name,
            "formula": self.formula,
            "unit": self.unit,
            "description": self.description,
            "labels": self.labels,
        }


def _indicator(indicator_id: str, name: str, formula: str, scheme: Scheme, **kwargs) -> IndicatorConfig:
    return IndicatorConfig(indicator_id, name, formula, scheme, **kwargs)


INDICATORS: dict[str, IndicatorConfig] = {
    cfg.indicator_id: cfg
    for cfg in [
        # Growth
        _indicator(
            "growth_rate", "Year-over-Year Growth Rate",
            "(value_t - value_t-1) / value_t-1 * 100",
            tiers(above(5, "high"), above(2, "moderate"), above(0, "low"), default="negative"),
            unit="%",
            advice={
                "high": "Excellent: high growth momentum",
                "moderate": "Good: steady growth",
                "low": "Slow: consider acceleration strategies",
                "negative": "Alert: negative growth requires intervention",
            },
        ),
        _indicator(
            "aps_growth_rate", "School Participation Growth Rate",
            "(APS_t - APS_t-1) / APS_t-1 * 100",
            tiers(above(2, "significant"), (0, "moderate"), default="declining"),
            unit="%",
        ),
        _indicator(
            "pdrb_growth_rate", "Regional GDP Growth Rate",
            "(PDRB_t - PDRB_t-1) / PDRB_t-1 * 100",
            tiers(above(6, "high_growth"), (4, "moderate_growth"), default="low_growth"),
            unit="%",
            advice={
                "high_growth": "Sustain momentum: maintain enabling policies, attract investment",
                "moderate_growth": "Accelerate: infrastructure development, human capital investment",
                "low_growth": "Urgent reform: structural transformation, competitiveness enhancement",
            },
        ),
        # Gender and gaps
        _indicator(
            "gender_parity", "Gender Parity Index (GPI)",
            "female / male",
            ranges((0.97, 1.03, "achieved"), (0.90, 1.10, "minor_disparity"),
                   default="significant_disparity"),
            description="UNESCO parity band 0.97-1.03",
            advice={
                "achieved": "Gender parity achieved (UNESCO standard)",
                "minor_disparity": "Minor disparity: targeted gender programs recommended",
                "significant_disparity": "Significant disparity: urgent gender equity interventions needed",
            },
        ),
        _indicator(
            "education_gap", "Education Gap (HLS - RLS)",
            "HLS - RLS",
            tiers(above(4, "high_expansion"), (2, "moderate_expansion"), default="stagnation"),
            unit="years",
            advice={
                "high_expansion": "High: prioritize upper-secondary education infrastructure",
                "moderate_expansion": "Moderate: improve quality and access for junior and senior secondary",
                "stagnation": "Stagnant: review policy and raise higher-education absorption",
            },
        ),
        _indicator(
            "education_gender_gap", "Gender Gap in Schooling",
            "|RLS male - RLS female|",
            tiers((0.8, "significant_gap"), (0.3, "minor_gap"), default="equal"),
            unit="years",
        ),
        _indicator(
            "gender_longevity_gap", "Gender Longevity Gap",
            "AHH female - AHH male",
            ranges((3, 5, "normal"), (2, 6, "minor_deviation"), default="anomaly"),
            unit="years",
            description="A 3-5 year female advantage is biologically normal",
        ),
        _indicator(
            "regional_disparity", "Regional Disparity (CV)",
            "std / mean * 100 across provinces",
            tiers((10, "high"), (5, "medium"), default="low"),
            unit="%",
        ),
        _indicator(
            "life_expectancy_trend", "Life Expectancy Trend",
            "slope of AHH against year",
            tiers((0.3, "significant_improvement"), (0.1, "moderate_improvement"),
                  default="stagnation"),
            unit="years/year",
            advice={
                "significant_improvement": "Excellent: strong health momentum",
                "moderate_improvement": "Good: steady improvement",
                "stagnation": "Warning: intervention needed",
            },
        ),
        # Nutrition
        _indicator(
            "stunting_prevalence", "Stunting Prevalence",
            "stunted children / all children * 100",
            tiers(above(30, "high"), (20, "medium"), default="low"),
            unit="%",
        ),
        _indicator(
            "stunting_reduction", "Annual Stunting Reduction",
            "(prev_t-1 - prev_t) / prev_t-1 * 100",
            tiers(above(3, "on_track"), (1, "moderate_progress"), above(0, "slow_progress"),
                  default="deteriorating"),
            unit="%",
            advice={
                "on_track": "On track: maintain interventions, scale best practices",
                "moderate_progress": "Accelerate: intensify nutrition programs and community education",
                "slow_progress": "Critical: emergency nutrition intervention, multi-sectoral approach",
                "deteriorating": "Urgent: investigate causes, immediate crisis response required",
            },
        ),
        _indicator(
            "nutrition_severity", "Malnutrition Severity Index",
            "0.4 * stunting + 0.3 * wasting + 0.3 * underweight",
            tiers(above(25, "high"), (15, "medium"), default="low"),
            unit="%",
        ),
        # Economy
        _indicator(
            "diversification", "Economic Diversification (HHI)",
            "sum(share_i ** 2)",
            tiers(above(0.25, "concentrated"), (0.15, "moderately_diversified"),
                  default="highly_diversified"),
        ),
        _indicator(
            "convergence", "Convergence Beta",
            "growth = alpha + beta * initial",
            tiers((0, "divergence"), (-0.02, "weak_convergence"), default="strong_convergence"),
        ),
        _indicator(
            "poverty_rate", "Poverty Headcount Ratio",
            "poor population / population * 100",
            tiers(above(12, "high"), (7, "medium"), default="low"),
            unit="%",
        ),
        _indicator(
            "poverty_reduction", "Annual Poverty Reduction",
            "(poverty_t-1 - poverty_t) / poverty_t-1 * 100",
            tiers(above(5, "on_track"), (2, "moderate_progress"), default="slow_progress"),
            unit="%",
        ),
        _indicator(
            "poverty_urban_rural_gap", "Urban-Rural Poverty Gap",
            "poverty rural - poverty urban",
            tiers((7, "high_disparity"), (3, "moderate_disparity"), default="low_disparity"),
            unit="percentage points",
            advice={
                "low_disparity": "Balanced: maintain inclusive development policies",
                "moderate_disparity": "Target rural areas: agricultural modernization, infrastructure",
                "high_disparity": "Rural priority: comprehensive rural development, social protection",
            },
        ),
        _indicator(
            "unemployment_rate", "Open Unemployment Rate (TPT)",
            "unemployed / labor force * 100",
            tiers(above(7, "high"), (4, "medium"), default="low"),
            unit="%",
        ),
        _indicator(
            "education_mismatch", "Education-Employment Mismatch",
            "mean TPT (SMA, Diploma, Sarjana) / mean TPT (SD, SMP)",
            tiers(above(2.0, "high_mismatch"), (1.2, "moderate_mismatch"), default="low_mismatch"),
        ),
        _indicator(
            "youth_unemployment", "Youth Unemployment Ratio",
            "TPT 15-24 / TPT total",
            tiers((3, "critical"), (2, "elevated"), default="manageable"),
            advice={
                "manageable": "Stable: continue vocational training and entrepreneurship programs",
                "elevated": "Enhance: skills matching, internships, job placement",
                "critical": "Urgent: youth employment crisis response, mass training initiatives",
            },
        ),
        # Statistics
        _indicator(
            "correlation_strength", "Correlation Strength",
            "|pearson r|",
            tiers((0.9, "very_strong"), (0.7, "strong"), (0.5, "moderate"), (0.3, "weak"),
                  default="very_weak"),
        ),
        _indicator(
            "ranking_cluster", "Ranking Cluster",
            "z-score of composite ranking score",
            tiers(above(0.75, "high_performer"), above(-0.25, "medium_performer"),
                  above(-1.0, "low_performer"), default="critical"),
            advice={
                "high_performer": "Excellent: Maintain leadership, share best practices",
                "medium_performer": "Good: Focus on targeted improvements for advancement",
                "low_performer": "Needs support: Comprehensive development strategy required",
                "critical": "Critical: Immediate intensive intervention needed",
            },
        ),
    ]
}


def get_indicator(indicator_id: str) -> IndicatorConfig:
    """Look up an indicator, raising ValueError for unknown ids."""
    try:
        return INDICATORS[indicator_id]
    except KeyError:
        raise ValueError(f"Unknown indicator: {indicator_id}") from None


# =============================================================================
# DATASET METHODOLOGIES
# =============================================================================


@dataclass(frozen=True)
class MetricSpec:
    """A composite score component."""
    name: str
    weight: float
    normalize: bool = True
    invert: bool = False


@dataclass(frozen=True)
class DatasetMethodology:
    """Fixed analysis recipe for one dataset."""
    dataset_id: str
    name: str
    composite_name: str
    indicators: tuple[str, ...]
    metrics: tuple[MetricSpec, ...]
    strategy: ClusteringStrategy
    labels: TierLabels
    fixed_thresholds: tuple[float, float] | None = None
    notes: str = ""

    def __post_init__(self) -> None:
        validate_weights([m.weight for m in self.metrics])
        unknown = [i for i in self.indicators if i not in INDICATORS]
        if unknown:
            raise ValueError(f"{self.dataset_id}: unknown indicators {unknown}")
        if self.strategy == ClusteringStrategy.FIXED and self.fixed_thresholds is None:
            raise ValueError(f"{self.dataset_id}: fixed clustering needs fixed_thresholds")

    @property
    def weights(self) -> dict[str, float]:
        return {m.name: m.weight for m in self.metrics}

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset_id": self.dataset_id,
            "name": self.name,
            "composite_name": self.composite_name,
            "indicators": [INDICATORS[i].to_dict() for i in self.indicators],
            "weights": self.weights,
            "strategy": self.strategy.value,
            "labels": list(self.labels),
            "fixed_thresholds": list(self.fixed_thresholds) if self.fixed_thresholds else None,
            "notes": self.notes,
        }


def validate_weights(weights: list[float] | tuple[float, ...]) -> None:
    """Raise ValueError unless the weights sum to 1.0."""
    total = sum(weights)
    if not math.isclose(total, 1.0, abs_tol=1e-9):
        raise ValueError(f"Weights must sum to 1.0, got {total:.4f}")


METHODOLOGIES: dict[str, DatasetMethodology] = {
    m.dataset_id: m
    for m in [
        DatasetMethodology(
            dataset_id="bps-edu-001",
            name="Angka Partisipasi Sekolah (APS)",
            composite_name="Provincial Performance Index",
            indicators=("gender_parity", "aps_growth_rate"),
            metrics=(
                MetricSpec("level", 0.50),
                MetricSpec("growth", 0.30),
                MetricSpec("parity_distance", 0.20, invert=True),
            ),
            strategy=ClusteringStrategy.FIXED,
            labels=TierLabels("High Performer", "Medium Performer", "Low Performer"),
            fixed_thresholds=(80.0, 65.0),
        ),
        DatasetMethodology(
            dataset_id="bps-edu-002",
            name="Rata-rata & Harapan Lama Sekolah (RLS/HLS)",
            composite_name="Education Quality Index",
            indicators=("education_gap", "education_gender_gap", "convergence"),
            metrics=(
                MetricSpec("rls", 0.40),
                MetricSpec("hls", 0.30),
                MetricSpec("gender_gap", 0.30, invert=True),
            ),
            strategy=ClusteringStrategy.PERCENTILE,
            labels=TierLabels("Advanced", "Developing", "Lagging"),
        ),
        DatasetMethodology(
            dataset_id="bps-health-001",
            name="Angka Harapan Hidup (AHH)",
            composite_name="Health Development Index",
            indicators=("life_expectancy_trend", "gender_longevity_gap", "regional_disparity"),
            metrics=(
                MetricSpec("level", 0.50),
                MetricSpec("trend", 0.30),
                MetricSpec("gender_balance", 0.20, normalize=False),
            ),
            strategy=ClusteringStrategy.FIXED,
            labels=TierLabels("High Health", "Medium Health", "Low Health"),
            fixed_thresholds=(67.0, 33.0),
        ),
        DatasetMethodology(
            dataset_id="bps-health-002",
            name="Stunting & Gizi Buruk",
            composite_name="Nutrition Performance Index",
            indicators=("stunting_prevalence", "stunting_reduction", "nutrition_severity"),
            metrics=(
                MetricSpec("stunting", 0.40, invert=True),
                MetricSpec("reduction", 0.35),
                MetricSpec("wasting", 0.25, invert=True),
            ),
            strategy=ClusteringStrategy.PERCENTILE,
            labels=TierLabels("Low Burden", "Medium Burden", "High Burden"),
        ),
        DatasetMethodology(
            dataset_id="bps-econ-001",
            name="PDRB per Kapita",
            composite_name="Economic Competitiveness Index",
            indicators=("pdrb_growth_rate", "diversification", "convergence"),
            metrics=(
                MetricSpec("level", 0.40),
                MetricSpec("growth", 0.35),
                MetricSpec("diversification", 0.25, normalize=False),
            ),
            strategy=ClusteringStrategy.FIXED,
            labels=TierLabels("Highly Competitive", "Moderately Competitive", "Less Competitive"),
            fixed_thresholds=(67.0, 33.0),
            notes="Diversification needs sector shares supplied by the caller",
        ),
        DatasetMethodology(
            dataset_id="bps-econ-003",
            name="Tingkat Pengangguran Terbuka (TPT)",
            composite_name="Labor Market Health Index",
            indicators=("unemployment_rate", "education_mismatch", "youth_unemployment"),
            metrics=(
                MetricSpec("tpt", 0.45, invert=True),
                MetricSpec("mismatch", 0.30, invert=True),
                MetricSpec("youth_ratio", 0.25, invert=True),
            ),
            strategy=ClusteringStrategy.PERCENTILE,
            labels=TierLabels("Healthy Labor Market", "Moderate Challenges", "Severe Challenges"),
        ),
        DatasetMethodology(
            dataset_id="bps-econ-004",
            name="Tingkat Kemiskinan",
            composite_name="Poverty Alleviation Index",
            indicators=("poverty_rate", "poverty_reduction", "poverty_urban_rural_gap"),
            metrics=(
                MetricSpec("poverty", 0.45, invert=True),
                MetricSpec("reduction", 0.35),
                MetricSpec("gap", 0.20, invert=True),
            ),
            strategy=ClusteringStrategy.PERCENTILE,
            labels=TierLabels("Low Poverty", "Medium Poverty", "High Poverty"),
        ),
    ]
}


def get_methodology(dataset_id: str) -> DatasetMethodology:
    """Get the methodology for a dataset, raising ValueError for unknown ids."""
    try:
        return METHODOLOGIES[dataset_id]
    except KeyError:
        raise ValueError(
            f"No analytics for dataset '{dataset_id}'. "
            f"Supported: {', '.join(supported_datasets())}"
        ) from None


def has_analytics(dataset_id: str) -> bool:
    """Check if a dataset has analytics support."""
    return dataset_id in METHODOLOGIES


def supported_datasets() -> list[str]:
    """All dataset ids with a methodology."""
    return list(METHODOLOGIES)
