"""
Dataset Analysis Pipelines.

One function per BPS dataset, composing the indicator calculators with the
composite index and clustering declared for that dataset in
``datahub.core.methodology``:

- bps-edu-001    School participation (APS)
- bps-edu-002    Mean and expected years of schooling (RLS/HLS)
- bps-health-001 Life expectancy (AHH)
- bps-health-002 Stunting and malnutrition
- bps-econ-001   Regional GDP (PDRB)
- bps-econ-003   Open unemployment (TPT)
- bps-econ-004   Poverty
"""

import logging
from collections.abc import Callable, Collection, Hashable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from datahub.config import TOTAL_AGE_GROUPS, Gender, settings
from datahub.core.aggregation import (
    Reducer,
    aggregate_by,
    field_getter,
    grouped_series,
    is_missing,
    yearly_mean,
)
from datahub.core.composite import ClusterResult, score_and_cluster
from datahub.core.indicators import (
    ConvergenceResult,
    DisparityResult,
    Diversification,
    EducationGap,
    GapResult,
    GrowthRate,
    LevelStatus,
    MismatchResult,
    ParityResult,
    ReductionRate,
    TrendSlope,
    UrbanRuralGap,
    YouthUnemployment,
    classify_levels,
    convergence_beta,
    diversification,
    education_gap,
    education_gender_gap,
    education_mismatch,
    gender_longevity_gap,
    gender_parity,
    growth_rates,
    poverty_urban_rural_gap,
    reduction_rates,
    regional_disparity,
    trend_slopes,
    youth_unemployment,
)
from datahub.core.methodology import get_indicator, get_methodology
from datahub.core.ranking import RankingEntry, RankingInput, rank_groups

logger = logging.getLogger(__name__)

TOTAL = "Total"

POVERTY_RANKING_WEIGHTS = (0.45, 0.35, 0.20)


# =============================================================================
# HELPERS
# =============================================================================


def _latest_year(records: Iterable[Any], year: str = "tahun") -> int | None:
    get_year = field_getter(year)
    years = [int(y) for y in (get_year(r) for r in records) if not is_missing(y)]
    return max(years) if years else None


def _select(records: Iterable[Any], field: str, labels: Collection[str]) -> list[Any]:
    """Keep records whose stratum is in ``labels``. A missing stratum counts as total."""
    get = field_getter(field)
    keep_missing = TOTAL in labels
    return [r for r in records if get(r) in labels or (keep_missing and get(r) is None)]


def _totals(
    records: list[Any],
    value: str,
    stratum: str,
    group: str = "nama_provinsi",
    year: str = "tahun",
) -> list[dict[str, Any]]:
    """
    Series of the total stratum as flat rows (group, tahun, value).

    When a dataset has no total rows the mean over all strata of a
    (group, year) cell stands in for it.
    """
    get_value = field_getter(value)
    get_group = field_getter(group)
    get_year = field_getter(year)
    usable = [r for r in records if not (is_missing(get_value(r)) or is_missing(get_year(r)))]

    source = _select(usable, stratum, {TOTAL}) or usable
    means = aggregate_by(source, lambda r: (get_group(r), int(get_year(r))), value, Reducer.MEAN)
    return [{"group": g, "tahun": y, "value": v} for (g, y), v in means.items()]


def _values_at(rows: Iterable[Mapping[str, Any]], year: int | None) -> dict[Hashable, float]:
    return {row["group"]: row["value"] for row in rows if row["tahun"] == year}


def _by_group_at(results: Iterable[Any], year: int | None) -> dict[Hashable, Any]:
    return {r.group: r for r in results if r.year == year}


def _composite(dataset_id: str, entities: Mapping[Hashable, Mapping[str, float | None]]) -> ClusterResult:
    methodology = get_methodology(dataset_id)
    return score_and_cluster(
        entities,
        methodology.metrics,
        methodology.strategy,
        methodology.labels,
        methodology.fixed_thresholds,
    )


@dataclass
class DatasetAnalysis:
    """Fields shared by every dataset analysis."""
    dataset_id: str
    year: int | None
    composite: ClusterResult

    @property
    def composite_name(self) -> str:
        return get_methodology(self.dataset_id).composite_name

    def _base_dict(self) -> dict[str, Any]:
        return {
            "dataset_id": self.dataset_id,
            "year": self.year,
            "composite_name": self.composite_name,
            "composite": self.composite.to_dict(),
        }


# =============================================================================
# EDUCATION
# =============================================================================


@dataclass
class SchoolParticipationAnalysis(DatasetAnalysis):
    age_group: str | None
    parity: list[ParityResult]
    parity_trend: list[tuple[int, float]]  # National mean GPI per year
    growth: list[GrowthRate]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "age_group": self.age_group,
            "parity": [p.to_dict() for p in self.parity],
            "parity_trend": [{"year": y, "gpi": v} for y, v in self.parity_trend],
            "growth": [g.to_dict() for g in self.growth],
        }


def analyze_school_participation(
    records: Iterable[Any],
    age_group: str | None = None,
    year: int | None = None,
) -> SchoolParticipationAnalysis:
    """
    Analyze school participation (APS).

    Args:
        records: APS records (province, year, age group, gender).
        age_group: Age band to analyze. Defaults to
            ``settings.default_age_group``.
        year: Year of the composite snapshot. Defaults to the latest year.

    Returns:
        GPI per province and year, national GPI trend, growth of the total
        APS and the Provincial Performance Index (50% level, 30% average
        growth, 20% distance from parity).
    """
    records = list(records)
    age_group = age_group or settings.default_age_group
    subset = [r for r in records if field_getter("kelompok_umur")(r) == age_group]
    if not subset:
        logger.warning("No APS records for age group %s", age_group)
    year = year or _latest_year(subset)

    parity = gender_parity(subset, value="aps")
    parity_trend = yearly_mean(parity, year="year", value="gpi")

    totals = _totals(subset, "aps", "jenis_kelamin")
    growth = growth_rates(totals, group="group", indicator="aps_growth_rate")

    avg_growth = aggregate_by(
        [g for g in growth if year is None or g.year <= year], "group", "growth_rate", Reducer.MEAN,
    )
    gpi_at_year = {p.group: p.gpi for p in parity if p.year == year}
    entities = {
        g: {
            "level": level,
            "growth": avg_growth.get(g),
            "parity_distance": abs(1 - gpi_at_year[g]) if g in gpi_at_year else None,
        }
        for g, level in _values_at(totals, year).items()
    }

    return SchoolParticipationAnalysis(
        dataset_id="bps-edu-001",
        year=year,
        composite=_composite("bps-edu-001", entities),
        age_group=age_group,
        parity=parity,
        parity_trend=parity_trend,
        growth=growth,
    )


@dataclass
class SchoolingAnalysis(DatasetAnalysis):
    education_gaps: list[EducationGap]
    gender_gaps: list[GapResult]
    convergence: ConvergenceResult | None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "education_gaps": [g.to_dict() for g in self.education_gaps],
            "gender_gaps": [g.to_dict() for g in self.gender_gaps],
            "convergence": self.convergence.to_dict() if self.convergence else None,
        }


def analyze_schooling(records: Iterable[Any], year: int | None = None) -> SchoolingAnalysis:
    """
    Analyze mean (RLS) and expected (HLS) years of schooling.

    Returns:
        Education gap and gender gap for the selected year, beta convergence
        of RLS across regions and the Education Quality Index (40% RLS, 30%
        HLS, 30% inverted gender gap) with percentile tiers.
    """
    records = list(records)
    year = year or _latest_year(records)

    gaps = [g for g in education_gap(records) if g.year == year]
    gender_gaps = [g for g in education_gender_gap(records) if g.year == year]

    rls_totals = _totals(records, "rls", "jenis_kelamin", group="nama_wilayah")
    convergence = convergence_beta(
        rls_totals, group="group", min_groups=settings.min_convergence_groups,
    )

    gender_gap_at = {g.group: abs(g.gap) for g in gender_gaps}
    entities = {
        g.group: {"rls": g.rls, "hls": g.hls, "gender_gap": gender_gap_at.get(g.group)}
        for g in gaps
    }

    return SchoolingAnalysis(
        dataset_id="bps-edu-002",
        year=year,
        composite=_composite("bps-edu-002", entities),
        education_gaps=gaps,
        gender_gaps=gender_gaps,
        convergence=convergence,
    )


# =============================================================================
# HEALTH
# =============================================================================


@dataclass
class LifeExpectancyAnalysis(DatasetAnalysis):
    target: float
    trends: list[TrendSlope]
    longevity_gaps: list[GapResult]
    disparity: list[DisparityResult]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "target": self.target,
            "trends": [t.to_dict() for t in self.trends],
            "longevity_gaps": [g.to_dict() for g in self.longevity_gaps],
            "disparity": [d.to_dict() for d in self.disparity],
        }


def gender_balance_score(gap: float) -> float:
    """Closeness of a female-male longevity gap to 4 years, on 0-100."""
    return min(100.0, max(0.0, (1 - abs(gap - 4) / 4) * 100))


def analyze_life_expectancy(
    records: Iterable[Any],
    year: int | None = None,
    target: float | None = None,
) -> LifeExpectancyAnalysis:
    """
    Analyze life expectancy (AHH).

    Args:
        records: Wide AHH records (ahh_total, ahh_lakilaki, ahh_perempuan).
        year: Year of the snapshot. Defaults to the latest year.
        target: Life expectancy target for years-to-target. Defaults to
            ``settings.life_expectancy_target``.

    Returns:
        Trend per province (at least 3 years), longevity gaps for the
        selected year, CV across provinces per year and the Health
        Development Index (50% level, 30% trend, 20% gender balance).
    """
    records = list(records)
    year = year or _latest_year(records)
    target = settings.life_expectancy_target if target is None else target

    trends = trend_slopes(records, value="ahh_total", target=target, min_points=3)
    gaps = [g for g in gender_longevity_gap(records) if g.year == year]
    disparity = regional_disparity(records, value="ahh_total")

    levels = {
        g: v for g, series in grouped_series(records, value="ahh_total").items()
        for y, v in series if y == year
    }
    slope_of = {t.group: t.slope for t in trends}
    gap_of = {g.group: g.gap for g in gaps}
    entities = {
        g: {
            "level": level,
            "trend": slope_of.get(g),
            "gender_balance": gender_balance_score(gap_of[g]) if g in gap_of else None,
        }
        for g, level in levels.items()
    }

    return LifeExpectancyAnalysis(
        dataset_id="bps-health-001",
        year=year,
        composite=_composite("bps-health-001", entities),
        target=target,
        trends=trends,
        longevity_gaps=gaps,
        disparity=disparity,
    )


@dataclass
class NutritionStatus:
    """Malnutrition profile of one province in one year."""
    group: Hashable
    year: int
    stunting: float
    wasting: float
    underweight: float
    prevalence_category: str
    severity: float
    severity_category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "stunting": self.stunting,
            "wasting": self.wasting,
            "underweight": self.underweight,
            "prevalence_category": self.prevalence_category,
            "severity": self.severity,
            "severity_category": self.severity_category,
        }


@dataclass
class NutritionAnalysis(DatasetAnalysis):
    reductions: list[ReductionRate]
    status: list[NutritionStatus]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "reductions": [r.to_dict() for r in self.reductions],
            "status": [s.to_dict() for s in self.status],
        }


def nutrition_severity(stunting: float, wasting: float, underweight: float) -> float:
    """Malnutrition severity, 0.4 stunting + 0.3 wasting + 0.3 underweight."""
    return 0.4 * stunting + 0.3 * wasting + 0.3 * underweight


def analyze_nutrition(records: Iterable[Any], year: int | None = None) -> NutritionAnalysis:
    """
    Analyze stunting and malnutrition.

    Returns:
        Annual stunting reduction, prevalence and severity bands for the
        selected year and the Nutrition Performance Index (40% inverted
        stunting, 35% reduction, 25% inverted wasting).
    """
    records = list(records)
    year = year or _latest_year(records)
    prevalence = get_indicator("stunting_prevalence")
    severity_bands = get_indicator("nutrition_severity")

    reductions = reduction_rates(records, value="stunting", indicator="stunting_reduction")

    get = {name: field_getter(name) for name in ("nama_provinsi", "tahun", "stunting", "wasting", "underweight")}
    status: list[NutritionStatus] = []
    for r in records:
        if get["tahun"](r) != year:
            continue
        s, w, u = get["stunting"](r), get["wasting"](r), get["underweight"](r)
        if is_missing(s) or is_missing(w) or is_missing(u):
            logger.debug("Nutrition status skipped for %s: missing prevalence", get["nama_provinsi"](r))
            continue
        severity = nutrition_severity(s, w, u)
        status.append(NutritionStatus(
            group=get["nama_provinsi"](r),
            year=year,
            stunting=s,
            wasting=w,
            underweight=u,
            prevalence_category=prevalence.classify(s),
            severity=severity,
            severity_category=severity_bands.classify(severity),
        ))

    reduction_at = _by_group_at(reductions, year)
    entities = {
        s.group: {
            "stunting": s.stunting,
            "reduction": reduction_at[s.group].reduction_rate if s.group in reduction_at else None,
            "wasting": s.wasting,
        }
        for s in status
    }

    return NutritionAnalysis(
        dataset_id="bps-health-002",
        year=year,
        composite=_composite("bps-health-002", entities),
        reductions=reductions,
        status=status,
    )


# =============================================================================
# ECONOMY
# =============================================================================


@dataclass
class RegionalEconomyAnalysis(DatasetAnalysis):
    growth: list[GrowthRate]  # Selected year only
    convergence: ConvergenceResult | None
    diversification: list[Diversification]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "growth": [g.to_dict() for g in self.growth],
            "convergence": self.convergence.to_dict() if self.convergence else None,
            "diversification": [d.to_dict() for d in self.diversification],
        }


def analyze_regional_economy(
    records: Iterable[Any],
    year: int | None = None,
    sector_shares: Mapping[Hashable, Mapping[str, float]] | None = None,
    value: str = "per_kapita_adhb",
) -> RegionalEconomyAnalysis:
    """
    Analyze regional GDP (PDRB).

    Args:
        records: PDRB records.
        year: Year of the snapshot. Defaults to the latest year.
        sector_shares: Province -> sector -> share of PDRB. Provinces
            without shares are left out of the composite.
        value: PDRB field analyzed for level and growth.

    Returns:
        Growth for the selected year, compound-growth convergence,
        sectoral diversification and the Economic Competitiveness Index
        (40% level, 35% growth, 25% diversification).
    """
    records = list(records)
    year = year or _latest_year(records)

    growth = sorted(
        (g for g in growth_rates(records, value=value, indicator="pdrb_growth_rate") if g.year == year),
        key=lambda g: g.growth_rate,
        reverse=True,
    )
    convergence = convergence_beta(
        records, value=value, compound=True, min_groups=settings.min_convergence_groups,
    )
    diversity = diversification(sector_shares or {})
    if not sector_shares:
        logger.info("No sector shares supplied; the competitiveness index is empty")

    diversity_of = {d.group: d.score for d in diversity}
    entities = {
        g.group: {
            "level": g.value,
            "growth": g.growth_rate,
            "diversification": diversity_of.get(g.group),
        }
        for g in growth
    }

    return RegionalEconomyAnalysis(
        dataset_id="bps-econ-001",
        year=year,
        composite=_composite("bps-econ-001", entities),
        growth=growth,
        convergence=convergence,
        diversification=diversity,
    )


@dataclass
class LaborMarketAnalysis(DatasetAnalysis):
    rates: list[LevelStatus]
    youth: list[YouthUnemployment]
    mismatch: list[MismatchResult]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "rates": [r.to_dict() for r in self.rates],
            "youth": [y.to_dict() for y in self.youth],
            "mismatch": [m.to_dict() for m in self.mismatch],
        }


def analyze_labor_market(records: Iterable[Any], year: int | None = None) -> LaborMarketAnalysis:
    """
    Analyze open unemployment (TPT).

    Returns:
        Unemployment bands, youth unemployment ratio and education mismatch
        for the selected year, and the Labor Market Health Index (45% TPT,
        30% mismatch, 25% youth ratio, all inverted).
    """
    records = list(records)
    year = year or _latest_year(records)
    age_totals = {TOTAL, *TOTAL_AGE_GROUPS}

    both_genders = _select(records, "jenis_kelamin", {Gender.TOTAL.value})
    all_education = _select(both_genders, "pendidikan", {TOTAL})
    overall = _select(all_education, "kelompok_umur", age_totals)

    rates = classify_levels(overall, "tpt", "unemployment_rate", year_value=year)
    youth = [y for y in youth_unemployment(all_education) if y.year == year]
    mismatch = [
        m for m in education_mismatch(_select(both_genders, "kelompok_umur", age_totals))
        if m.year == year
    ]

    youth_of = {y.group: y.ratio for y in youth}
    mismatch_of = {m.group: m.ratio for m in mismatch}
    entities = {
        r.group: {
            "tpt": r.value,
            "mismatch": mismatch_of.get(r.group),
            "youth_ratio": youth_of.get(r.group),
        }
        for r in rates
    }

    return LaborMarketAnalysis(
        dataset_id="bps-econ-003",
        year=year,
        composite=_composite("bps-econ-003", entities),
        rates=rates,
        youth=youth,
        mismatch=mismatch,
    )


@dataclass
class PovertyAnalysis(DatasetAnalysis):
    rates: list[LevelStatus]
    reductions: list[ReductionRate]
    gaps: list[UrbanRuralGap]
    ranking: list[RankingEntry]

    def to_dict(self) -> dict[str, Any]:
        return {
            **self._base_dict(),
            "rates": [r.to_dict() for r in self.rates],
            "reductions": [r.to_dict() for r in self.reductions],
            "gaps": [g.to_dict() for g in self.gaps],
            "ranking": [e.to_dict() for e in self.ranking],
        }


def analyze_poverty(records: Iterable[Any], year: int | None = None) -> PovertyAnalysis:
    """
    Analyze poverty rates.

    Returns:
        Poverty bands for the selected year, annual reduction of the total
        rate, urban-rural gaps, the Poverty Alleviation Index (45% inverted
        rate, 35% reduction, 20% inverted gap) and a z-score ranking on
        (100 - rate, |mean reduction|, equity score).
    """
    records = list(records)
    year = year or _latest_year(records)

    totals = _totals(records, "persentase_miskin", "wilayah")
    rates = classify_levels(totals, "value", "poverty_rate", group="group", year_value=year)
    reductions = reduction_rates(totals, group="group", indicator="poverty_reduction")
    gaps = poverty_urban_rural_gap(records)

    reduction_at = _by_group_at(reductions, year)
    gap_at = _by_group_at(gaps, year)
    entities = {
        r.group: {
            "poverty": r.value,
            "reduction": reduction_at[r.group].reduction_rate if r.group in reduction_at else None,
            "gap": gap_at[r.group].gap if r.group in gap_at else None,
        }
        for r in rates
    }

    mean_reduction = aggregate_by(
        [r for r in reductions if year is None or r.year <= year], "group", "reduction_rate", Reducer.MEAN,
    )
    ranking = rank_groups(
        [
            RankingInput(
                group=r.group,
                primary=100 - r.value,
                secondary=abs(mean_reduction[r.group]),
                tertiary=gap_at[r.group].equity_score,
            )
            for r in rates
            if r.group in mean_reduction and r.group in gap_at
        ],
        POVERTY_RANKING_WEIGHTS,
    )

    return PovertyAnalysis(
        dataset_id="bps-econ-004",
        year=year,
        composite=_composite("bps-econ-004", entities),
        rates=rates,
        reductions=reductions,
        gaps=[g for g in gaps if g.year == year],
        ranking=ranking,
    )


# =============================================================================
# DISPATCH
# =============================================================================


ANALYZERS: dict[str, Callable[..., DatasetAnalysis]] = {
    "bps-edu-001": analyze_school_participation,
    "bps-edu-002": analyze_schooling,
    "bps-health-001": analyze_life_expectancy,
    "bps-health-002": analyze_nutrition,
    "bps-econ-001": analyze_regional_economy,
    "bps-econ-003": analyze_labor_market,
    "bps-econ-004": analyze_poverty,
}


def run_analysis(dataset_id: str, records: Iterable[Any], **kwargs) -> DatasetAnalysis:
    """
    Run the analysis pipeline of a dataset.

    Args:
        dataset_id: BPS dataset id.
        records: Records of that dataset.
        **kwargs: Passed to the dataset's analyzer (year, age_group, ...).

    Raises:
        ValueError: If the dataset has no analytics.
    """
    try:
        analyzer = ANALYZERS[dataset_id]
    except KeyError:
        get_methodology(dataset_id)  # Raises with the list of supported ids
        raise
    logger.info("Running %s analysis", dataset_id)
    return analyzer(records, **kwargs)
