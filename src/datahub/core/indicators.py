"""
Indicator Calculators.

Per-group (and per-group-per-year) indicators over BPS record sets:
- Growth and reduction rates, compound growth
- Gender parity index and stratified gaps
- Education gap (HLS - RLS), urban-rural poverty gap, youth unemployment
- Regional disparity (CV across provinces) and provincial deviation
- Trend slopes and convergence beta
- Level bands, education mismatch and sectoral diversification (HHI)

Every calculator omits a group whose required inputs are missing or whose
denominator is zero. Nothing is defaulted to a neutral value. Omissions are
logged at DEBUG level.
"""

import logging
import math
from collections.abc import Collection, Hashable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from datahub.config import (
    BASIC_EDUCATION_LEVELS,
    FEMALE_LABELS,
    HIGHER_EDUCATION_LEVELS,
    MALE_LABELS,
    TOTAL_AGE_GROUPS,
    YOUTH_AGE_GROUP,
    AreaType,
)
from datahub.core.aggregation import Accessor, field_getter, grouped_series, is_missing
from datahub.core.methodology import get_indicator
from datahub.core.statistics import describe, linear_regression, z_score
from datahub.core.thresholds import Scheme

logger = logging.getLogger(__name__)


def _classifier(indicator: str, scheme: Scheme | None):
    return scheme.classify if scheme is not None else get_indicator(indicator).classify


def _labels(value: str | Collection[str]) -> frozenset[str]:
    return frozenset({value}) if isinstance(value, str) else frozenset(value)


def _pair_by_stratum(
    records: Iterable[Any],
    value: Accessor,
    stratum: Accessor,
    side_a: str | Collection[str],
    side_b: str | Collection[str],
    group: Accessor,
    year: Accessor,
) -> dict[tuple[Hashable, int], tuple[float | None, float | None]]:
    """
    Collect the two sides of a stratified comparison per (group, year).

    Several records on the same side are averaged. A side with no usable
    value is ``None``.
    """
    get_value = field_getter(value)
    get_stratum = field_getter(stratum)
    get_group = field_getter(group)
    get_year = field_getter(year)
    a_labels = _labels(side_a)
    b_labels = _labels(side_b)

    sides: dict[tuple[Hashable, int], tuple[list[float], list[float]]] = {}
    for record in records:
        v = get_value(record)
        y = get_year(record)
        if is_missing(v) or is_missing(y):
            continue
        label = get_stratum(record)
        if label in a_labels:
            side = 0
        elif label in b_labels:
            side = 1
        else:
            continue
        sides.setdefault((get_group(record), int(y)), ([], []))[side].append(float(v))

    return {
        key: (
            sum(a) / len(a) if a else None,
            sum(b) / len(b) if b else None,
        )
        for key, (a, b) in sides.items()
    }


# =============================================================================
# GROWTH
# =============================================================================


@dataclass
class GrowthRate:
    """Period-over-period growth for one group and year."""
    group: Hashable
    year: int
    previous_value: float
    value: float
    growth_rate: float
    acceleration: float | None  # Change from the previous growth rate
    category: str
    recommendation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "previous_value": self.previous_value,
            "value": self.value,
            "growth_rate": self.growth_rate,
            "acceleration": self.acceleration,
            "category": self.category,
            "recommendation": self.recommendation,
        }


@dataclass
class ReductionRate:
    """Period-over-period reduction of a burden indicator (lower is better)."""
    group: Hashable
    year: int
    previous_value: float
    value: float
    reduction_rate: float
    category: str
    recommendation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "previous_value": self.previous_value,
            "value": self.value,
            "reduction_rate": self.reduction_rate,
            "category": self.category,
            "recommendation": self.recommendation,
        }


def growth_rates(
    records: Iterable[Any],
    value: Accessor = "value",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    indicator: str = "growth_rate",
    scheme: Scheme | None = None,
) -> list[GrowthRate]:
    """
    Calculate year-over-year growth, (current - previous) / previous * 100.

    Consecutive observed years are compared within each group. A pair whose
    previous value is zero is skipped, and the following point then has no
    acceleration.

    Args:
        records: Source records.
        value: Metric field or extractor.
        group: Group key field or extractor.
        year: Year field or extractor.
        indicator: Registry entry providing the bands (growth_rate,
            aps_growth_rate, pdrb_growth_rate).
        scheme: Override for the registry bands.

    Returns:
        Growth results in group order, ascending by year within a group.
    """
    classify = _classifier(indicator, scheme)
    config = get_indicator(indicator)
    results: list[GrowthRate] = []

    for g, series in grouped_series(records, group, year, value).items():
        previous_growth: float | None = None
        for (_, prev), (y, cur) in zip(series, series[1:]):
            if prev == 0:
                logger.debug("Growth skipped for %s %s: previous value is zero", g, y)
                previous_growth = None
                continue
            rate = (cur - prev) / prev * 100
            category = classify(rate)
            results.append(GrowthRate(
                group=g,
                year=y,
                previous_value=prev,
                value=cur,
                growth_rate=rate,
                acceleration=None if previous_growth is None else rate - previous_growth,
                category=category,
                recommendation=config.recommend(category),
            ))
            previous_growth = rate

    return results


def reduction_rates(
    records: Iterable[Any],
    value: Accessor = "value",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    indicator: str = "stunting_reduction",
    scheme: Scheme | None = None,
) -> list[ReductionRate]:
    """
    Calculate year-over-year reduction, (previous - current) / previous * 100.

    Positive values mean the burden fell. Pairs with a zero previous value
    are skipped.
    """
    classify = _classifier(indicator, scheme)
    config = get_indicator(indicator)
    results: list[ReductionRate] = []

    for g, series in grouped_series(records, group, year, value).items():
        for (_, prev), (y, cur) in zip(series, series[1:]):
            if prev == 0:
                logger.debug("Reduction skipped for %s %s: previous value is zero", g, y)
                continue
            rate = (prev - cur) / prev * 100
            category = classify(rate)
            results.append(ReductionRate(
                group=g,
                year=y,
                previous_value=prev,
                value=cur,
                reduction_rate=rate,
                category=category,
                recommendation=config.recommend(category),
            ))

    return results


def compound_growth_rate(first: float, last: float, years: float) -> float | None:
    """
    Compound annual growth rate, ((last / first) ** (1 / years) - 1) * 100.

    Returns None when ``first`` is not positive, ``years`` is not positive
    or ``last`` is negative.
    """
    if first <= 0 or years <= 0 or last < 0:
        return None
    return ((last / first) ** (1 / years) - 1) * 100


# =============================================================================
# PARITY AND GAPS
# =============================================================================


@dataclass
class ParityResult:
    """Gender parity index for one group and year."""
    group: Hashable
    year: int
    male_value: float
    female_value: float
    gpi: float
    status: str
    favors: str  # female / male / equal
    confidence: float
    recommendation: str = ""

    @property
    def distance_from_parity(self) -> float:
        return abs(self.gpi - 1.0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "male_value": self.male_value,
            "female_value": self.female_value,
            "gpi": self.gpi,
            "status": self.status,
            "favors": self.favors,
            "confidence": self.confidence,
            "recommendation": self.recommendation,
        }


@dataclass
class GapResult:
    """Difference between two strata (value_a - value_b) for one group and year."""
    group: Hashable
    year: int
    value_a: float
    value_b: float
    gap: float
    category: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "value_a": self.value_a,
            "value_b": self.value_b,
            "gap": self.gap,
            "category": self.category,
        }


def gender_parity(
    records: Iterable[Any],
    value: Accessor = "value",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    gender: Accessor = "jenis_kelamin",
    scheme: Scheme | None = None,
) -> list[ParityResult]:
    """
    Calculate the Gender Parity Index, female / male.

    Only (group, year) cells with both a female and a male value and a
    positive male value produce a result. Incomplete cells are omitted,
    never defaulted to parity.

    Args:
        records: Records stratified by gender ("Laki-laki"/"L", "Perempuan"/"P").
        value: Metric field or extractor.
        group: Group key field or extractor.
        year: Year field or extractor.
        gender: Gender stratum field or extractor.
        scheme: Override for the parity bands.

    Returns:
        Parity results ordered by year, then by first appearance of the group.
    """
    classify = _classifier("gender_parity", scheme)
    config = get_indicator("gender_parity")
    results: list[ParityResult] = []

    pairs = _pair_by_stratum(records, value, gender, FEMALE_LABELS, MALE_LABELS, group, year)
    for (g, y), (female, male) in pairs.items():
        if female is None or male is None or male <= 0:
            logger.debug("Parity skipped for %s %s: incomplete pair", g, y)
            continue

        gpi = female / male
        if gpi > 1.03:
            favors = "female"
        elif gpi < 0.97:
            favors = "male"
        else:
            favors = "equal"

        status = classify(gpi)
        results.append(ParityResult(
            group=g,
            year=y,
            male_value=male,
            female_value=female,
            gpi=gpi,
            status=status,
            favors=favors,
            confidence=max(0.75, 1 - abs(gpi - 1.0)),
            recommendation=config.recommend(status),
        ))

    results.sort(key=lambda r: r.year)
    return results


def stratified_gap(
    records: Iterable[Any],
    value: Accessor,
    stratum: Accessor,
    side_a: str | Collection[str],
    side_b: str | Collection[str],
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    scheme: Scheme | None = None,
    absolute: bool = False,
) -> list[GapResult]:
    """
    Calculate value[side_a] - value[side_b] per group and year.

    Args:
        records: Stratified records.
        value: Metric field or extractor.
        stratum: Field whose value selects the side.
        side_a: Label(s) of the minuend stratum.
        side_b: Label(s) of the subtrahend stratum.
        group: Group key field or extractor.
        year: Year field or extractor.
        scheme: Optional bands to classify the gap.
        absolute: Classify on |gap| instead of the signed gap.

    Returns:
        Gap results ordered by year. Cells missing a side are omitted.
    """
    results: list[GapResult] = []
    for (g, y), (a, b) in _pair_by_stratum(records, value, stratum, side_a, side_b, group, year).items():
        if a is None or b is None:
            logger.debug("Gap skipped for %s %s: missing side", g, y)
            continue
        gap = a - b
        category = None
        if scheme is not None:
            category = scheme.classify(abs(gap) if absolute else gap)
        results.append(GapResult(g, y, a, b, gap, category))

    results.sort(key=lambda r: r.year)
    return results


def education_gender_gap(
    records: Iterable[Any],
    value: Accessor = "rls",
    group: Accessor = "nama_wilayah",
    year: Accessor = "tahun",
    gender: Accessor = "jenis_kelamin",
    scheme: Scheme | None = None,
) -> list[GapResult]:
    """Schooling gap male - female, classified on its absolute size."""
    return stratified_gap(
        records, value, gender, MALE_LABELS, FEMALE_LABELS, group, year,
        scheme=scheme or get_indicator("education_gender_gap").scheme,
        absolute=True,
    )


def gender_longevity_gap(
    records: Iterable[Any],
    male: Accessor = "ahh_lakilaki",
    female: Accessor = "ahh_perempuan",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    scheme: Scheme | None = None,
) -> list[GapResult]:
    """
    Life expectancy gap female - male from wide records.

    ``value_a`` holds the female value and ``value_b`` the male value.
    """
    classify = _classifier("gender_longevity_gap", scheme)
    get_male = field_getter(male)
    get_female = field_getter(female)
    get_group = field_getter(group)
    get_year = field_getter(year)

    results: list[GapResult] = []
    for record in records:
        m, f, y = get_male(record), get_female(record), get_year(record)
        if is_missing(m) or is_missing(f) or is_missing(y):
            logger.debug("Longevity gap skipped for %s: missing side", get_group(record))
            continue
        gap = float(f) - float(m)
        results.append(GapResult(get_group(record), int(y), float(f), float(m), gap, classify(gap)))

    results.sort(key=lambda r: r.year)
    return results


@dataclass
class EducationGap:
    """Expected minus actual years of schooling (HLS - RLS)."""
    group: Hashable
    year: int
    rls: float
    hls: float
    gap: float
    category: str
    expansion_potential: float  # 0-100
    recommendation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "rls": self.rls,
            "hls": self.hls,
            "gap": self.gap,
            "category": self.category,
            "expansion_potential": self.expansion_potential,
            "recommendation": self.recommendation,
        }


def education_gap(
    records: Iterable[Any],
    rls: Accessor = "rls",
    hls: Accessor = "hls",
    group: Accessor = "nama_wilayah",
    year: Accessor = "tahun",
    gender: Accessor | None = "jenis_kelamin",
    gender_value: str | None = "Total",
    scheme: Scheme | None = None,
) -> list[EducationGap]:
    """
    Calculate the education gap HLS - RLS per record.

    Args:
        records: RLS/HLS records.
        rls: Mean years of schooling field.
        hls: Expected years of schooling field.
        group: Region field.
        year: Year field.
        gender: Gender field used to select rows. None disables the filter.
        gender_value: Gender stratum to keep (records without a gender
            value are kept too).
        scheme: Override for the gap bands.

    Returns:
        One result per usable record. ``expansion_potential`` is
        gap / 10 * 100 clipped to 0-100.
    """
    classify = _classifier("education_gap", scheme)
    config = get_indicator("education_gap")
    get_rls = field_getter(rls)
    get_hls = field_getter(hls)
    get_group = field_getter(group)
    get_year = field_getter(year)
    get_gender = field_getter(gender) if gender is not None else None

    results: list[EducationGap] = []
    for record in records:
        if get_gender is not None and gender_value is not None:
            g_value = get_gender(record)
            if g_value is not None and g_value != gender_value:
                continue
        r, h, y = get_rls(record), get_hls(record), get_year(record)
        if is_missing(r) or is_missing(h) or is_missing(y):
            logger.debug("Education gap skipped for %s: missing RLS or HLS", get_group(record))
            continue
        gap = float(h) - float(r)
        category = classify(gap)
        results.append(EducationGap(
            group=get_group(record),
            year=int(y),
            rls=float(r),
            hls=float(h),
            gap=gap,
            category=category,
            expansion_potential=min(100.0, max(0.0, gap / 10 * 100)),
            recommendation=config.recommend(category),
        ))

    return results


@dataclass
class UrbanRuralGap:
    """Rural minus urban poverty rate."""
    group: Hashable
    year: int
    urban: float
    rural: float
    gap: float
    category: str
    equity_score: float  # 0-100, higher is more equal
    recommendation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "urban": self.urban,
            "rural": self.rural,
            "gap": self.gap,
            "category": self.category,
            "equity_score": self.equity_score,
            "recommendation": self.recommendation,
        }


def poverty_urban_rural_gap(
    records: Iterable[Any],
    value: Accessor = "persentase_miskin",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    area: Accessor = "wilayah",
    scheme: Scheme | None = None,
) -> list[UrbanRuralGap]:
    """
    Calculate the urban-rural poverty gap, rural - urban.

    ``equity_score`` is 100 - 5 * gap clipped to [0, 100]. Cells missing either area
    are omitted.
    """
    classify = _classifier("poverty_urban_rural_gap", scheme)
    config = get_indicator("poverty_urban_rural_gap")

    results: list[UrbanRuralGap] = []
    pairs = _pair_by_stratum(records, value, area, AreaType.RURAL.value, AreaType.URBAN.value, group, year)
    for (g, y), (rural, urban) in pairs.items():
        if rural is None or urban is None:
            logger.debug("Urban-rural gap skipped for %s %s: missing area", g, y)
            continue
        gap = rural - urban
        category = classify(gap)
        results.append(UrbanRuralGap(
            group=g,
            year=y,
            urban=urban,
            rural=rural,
            gap=gap,
            category=category,
            equity_score=min(100.0, max(0.0, 100 - gap * 5)),
            recommendation=config.recommend(category),
        ))

    results.sort(key=lambda r: r.year)
    return results


@dataclass
class YouthUnemployment:
    """Youth (15-24) unemployment relative to overall unemployment."""
    group: Hashable
    year: int
    youth_rate: float
    total_rate: float
    ratio: float
    category: str
    skills_gap: float  # 0-100
    recommendation: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "youth_rate": self.youth_rate,
            "total_rate": self.total_rate,
            "ratio": self.ratio,
            "category": self.category,
            "skills_gap": self.skills_gap,
            "recommendation": self.recommendation,
        }


def youth_unemployment(
    records: Iterable[Any],
    value: Accessor = "tpt",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    age: Accessor = "kelompok_umur",
    scheme: Scheme | None = None,
) -> list[YouthUnemployment]:
    """
    Calculate the youth unemployment ratio TPT[15-24] / TPT[total].

    The total row is labelled "Total" or "15+". Cells missing either row or
    with a non-positive total are omitted. ``skills_gap`` is
    min(100, 25 * ratio).
    """
    classify = _classifier("youth_unemployment", scheme)
    config = get_indicator("youth_unemployment")

    results: list[YouthUnemployment] = []
    pairs = _pair_by_stratum(records, value, age, YOUTH_AGE_GROUP, TOTAL_AGE_GROUPS, group, year)
    for (g, y), (youth, total) in pairs.items():
        if youth is None or total is None or total <= 0:
            logger.debug("Youth ratio skipped for %s %s: missing or zero total", g, y)
            continue
        ratio = youth / total
        category = classify(ratio)
        results.append(YouthUnemployment(
            group=g,
            year=y,
            youth_rate=youth,
            total_rate=total,
            ratio=ratio,
            category=category,
            skills_gap=min(100.0, ratio * 25),
            recommendation=config.recommend(category),
        ))

    results.sort(key=lambda r: r.year)
    return results


# =============================================================================
# DISPARITY
# =============================================================================


@dataclass
class DisparityResult:
    """Dispersion of a metric across groups in one year."""
    year: int
    n_groups: int
    mean: float
    std: float
    min: float
    max: float
    range: float
    cv: float
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "n_groups": self.n_groups,
            "mean": self.mean,
            "std": self.std,
            "min": self.min,
            "max": self.max,
            "range": self.range,
            "cv": self.cv,
            "category": self.category,
        }


def regional_disparity(
    records: Iterable[Any],
    value: Accessor = "value",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    scheme: Scheme | None = None,
) -> list[DisparityResult]:
    """
    Calculate the coefficient of variation across groups for each year.

    Each group contributes its value for the year (last record wins). Years
    whose mean is zero are omitted because the CV is not computable.

    Returns:
        One result per year, ascending.
    """
    classify = _classifier("regional_disparity", scheme)

    by_year: dict[int, dict[Hashable, float]] = {}
    for g, series in grouped_series(records, group, year, value).items():
        for y, v in series:
            by_year.setdefault(y, {})[g] = v

    results: list[DisparityResult] = []
    for y in sorted(by_year):
        dispersion = describe(list(by_year[y].values()))
        if not dispersion.cv_computable:
            logger.debug("Disparity skipped for %s: mean is zero", y)
            continue
        results.append(DisparityResult(
            year=y,
            n_groups=dispersion.count,
            mean=dispersion.mean,
            std=dispersion.std,
            min=dispersion.min,
            max=dispersion.max,
            range=dispersion.range,
            cv=dispersion.cv,
            category=classify(dispersion.cv),
        ))

    return results


@dataclass
class ProvincialDeviation:
    """Deviation of one group from the cross-group mean."""
    group: Hashable
    year: int
    value: float
    deviation: float
    relative_deviation: float | None  # Percent of the mean, None when the mean is zero
    z_score: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "value": self.value,
            "deviation": self.deviation,
            "relative_deviation": self.relative_deviation,
            "z_score": self.z_score,
        }


def provincial_deviation(
    records: Iterable[Any],
    year_value: int,
    value: Accessor = "value",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
) -> list[ProvincialDeviation]:
    """
    Compare each group with the cross-group mean for one year.

    Returns:
        Deviations sorted from the highest value to the lowest.
    """
    values: dict[Hashable, float] = {}
    for g, series in grouped_series(records, group, year, value).items():
        for y, v in series:
            if y == year_value:
                values[g] = v

    if not values:
        return []

    all_values = list(values.values())
    avg = sum(all_values) / len(all_values)

    results = [
        ProvincialDeviation(
            group=g,
            year=year_value,
            value=v,
            deviation=v - avg,
            relative_deviation=(v - avg) / avg * 100 if avg != 0 else None,
            z_score=z_score(v, all_values),
        )
        for g, v in values.items()
    ]
    results.sort(key=lambda r: r.value, reverse=True)
    return results


# =============================================================================
# TRENDS AND CONVERGENCE
# =============================================================================


@dataclass
class TrendSlope:
    """Linear trend of a metric against year for one group."""
    group: Hashable
    slope: float  # Units per year
    intercept: float
    r_squared: float
    n_points: int
    first_year: int
    last_year: int
    latest_value: float
    category: str
    years_to_target: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "slope": self.slope,
            "intercept": self.intercept,
            "r_squared": self.r_squared,
            "n_points": self.n_points,
            "first_year": self.first_year,
            "last_year": self.last_year,
            "latest_value": self.latest_value,
            "category": self.category,
            "years_to_target": self.years_to_target,
        }


def trend_slopes(
    records: Iterable[Any],
    value: Accessor = "value",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    indicator: str = "life_expectancy_trend",
    scheme: Scheme | None = None,
    target: float | None = None,
    min_points: int = 2,
) -> list[TrendSlope]:
    """
    Fit a least-squares trend of value against the actual year per group.

    Args:
        records: Source records.
        value: Metric field or extractor.
        group: Group key field or extractor.
        year: Year field or extractor.
        indicator: Registry entry providing the slope bands.
        scheme: Override for the slope bands.
        target: Optional target level. ``years_to_target`` is
            ceil((target - latest) / slope) when the slope exceeds 0.05
            per year, else None.
        min_points: Groups with fewer points are omitted.

    Returns:
        Trend results in group order.
    """
    classify = _classifier(indicator, scheme)
    results: list[TrendSlope] = []

    for g, series in grouped_series(records, group, year, value).items():
        if len(series) < max(2, min_points):
            logger.debug("Trend skipped for %s: %d points", g, len(series))
            continue
        years = [y for y, _ in series]
        fit = linear_regression([v for _, v in series], years)
        if fit is None:
            continue

        latest = series[-1][1]
        years_to_target = None
        if target is not None and fit.slope > 0.05:
            years_to_target = max(0, math.ceil((target - latest) / fit.slope))

        results.append(TrendSlope(
            group=g,
            slope=fit.slope,
            intercept=fit.intercept,
            r_squared=fit.r_squared,
            n_points=fit.n,
            first_year=years[0],
            last_year=years[-1],
            latest_value=latest,
            category=classify(fit.slope),
            years_to_target=years_to_target,
        ))

    return results


@dataclass
class ConvergencePoint:
    """Initial level and growth of one group."""
    group: Hashable
    initial_value: float
    growth_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "initial_value": self.initial_value,
            "growth_rate": self.growth_rate,
        }


@dataclass
class ConvergenceResult:
    """Beta convergence across groups."""
    beta: float
    intercept: float
    r_squared: float
    category: str
    interpretation: str
    data: list[ConvergencePoint] = field(default_factory=list)

    @property
    def is_converging(self) -> bool:
        return self.beta < 0

    @property
    def n_groups(self) -> int:
        return len(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {
            "beta": self.beta,
            "intercept": self.intercept,
            "r_squared": self.r_squared,
            "is_converging": self.is_converging,
            "category": self.category,
            "interpretation": self.interpretation,
            "n_groups": self.n_groups,
            "data": [p.to_dict() for p in self.data],
        }


def convergence_beta(
    records: Iterable[Any],
    value: Accessor = "value",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    min_groups: int = 3,
    compound: bool = False,
    scheme: Scheme | None = None,
) -> ConvergenceResult | None:
    """
    Regress per-group growth on per-group initial value.

    Growth is the simple growth from the first to the last observed year,
    or the compound annual rate when ``compound`` is set. A negative beta
    means groups that started lower grow faster.

    Args:
        records: Source records.
        value: Metric field or extractor.
        group: Group key field or extractor.
        year: Year field or extractor.
        min_groups: Minimum groups with a usable growth figure.
        compound: Use compound annual growth instead of simple growth.
        scheme: Override for the convergence bands.

    Returns:
        ConvergenceResult, or None when fewer than ``min_groups`` groups
        qualify or the initial values do not vary.
    """
    classify = _classifier("convergence", scheme)

    points: list[ConvergencePoint] = []
    for g, series in grouped_series(records, group, year, value).items():
        if len(series) < 2:
            continue
        (first_year, initial), (last_year, latest) = series[0], series[-1]
        if compound:
            growth = compound_growth_rate(initial, latest, last_year - first_year)
        else:
            growth = (latest - initial) / initial * 100 if initial != 0 else None
        if growth is None:
            logger.debug("Convergence skipped for %s: growth not computable", g)
            continue
        points.append(ConvergencePoint(g, initial, growth))

    if len(points) < min_groups:
        logger.debug("Convergence not computed: %d groups, need %d", len(points), min_groups)
        return None

    fit = linear_regression([p.growth_rate for p in points], [p.initial_value for p in points])
    if fit is None:
        return None

    if fit.slope < 0:
        interpretation = (
            f"Converging (beta={fit.slope:.4f}): groups that started lower are growing faster"
        )
    else:
        interpretation = (
            f"Diverging (beta={fit.slope:.4f}): groups that started higher are pulling ahead"
        )

    return ConvergenceResult(
        beta=fit.slope,
        intercept=fit.intercept,
        r_squared=fit.r_squared,
        category=classify(fit.slope),
        interpretation=interpretation,
        data=points,
    )


# =============================================================================
# LEVELS, MISMATCH, DIVERSIFICATION
# =============================================================================


@dataclass
class LevelStatus:
    """A metric level and its band for one group and year."""
    group: Hashable
    year: int
    value: float
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "value": self.value,
            "category": self.category,
        }


def classify_levels(
    records: Iterable[Any],
    value: Accessor,
    indicator: str,
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    year_value: int | None = None,
    scheme: Scheme | None = None,
) -> list[LevelStatus]:
    """
    Classify the level of a metric per group and year.

    Args:
        records: Source records.
        value: Metric field or extractor.
        indicator: Registry entry providing the bands.
        group: Group key field or extractor.
        year: Year field or extractor.
        year_value: Keep only this year.
        scheme: Override for the registry bands.

    Returns:
        Levels ordered by year, then by first appearance of the group.
    """
    classify = _classifier(indicator, scheme)
    results = [
        LevelStatus(g, y, v, classify(v))
        for g, series in grouped_series(records, group, year, value).items()
        for y, v in series
        if year_value is None or y == year_value
    ]
    results.sort(key=lambda r: r.year)
    return results


@dataclass
class MismatchResult:
    """Unemployment of the educated relative to the less educated."""
    group: Hashable
    year: int
    higher_rate: float
    basic_rate: float
    ratio: float
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "year": self.year,
            "higher_rate": self.higher_rate,
            "basic_rate": self.basic_rate,
            "ratio": self.ratio,
            "category": self.category,
        }


def education_mismatch(
    records: Iterable[Any],
    value: Accessor = "tpt",
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    education: Accessor = "pendidikan",
    scheme: Scheme | None = None,
) -> list[MismatchResult]:
    """
    Calculate the education-employment mismatch ratio.

    The ratio is the mean TPT of SMA, Diploma and Sarjana graduates over the
    mean TPT of SD and SMP graduates. Cells missing either side or with a
    zero basic rate are omitted.
    """
    classify = _classifier("education_mismatch", scheme)

    results: list[MismatchResult] = []
    pairs = _pair_by_stratum(
        records, value, education, HIGHER_EDUCATION_LEVELS, BASIC_EDUCATION_LEVELS, group, year,
    )
    for (g, y), (higher, basic) in pairs.items():
        if higher is None or basic is None or basic <= 0:
            logger.debug("Mismatch skipped for %s %s: missing or zero basic rate", g, y)
            continue
        ratio = higher / basic
        results.append(MismatchResult(g, y, higher, basic, ratio, classify(ratio)))

    results.sort(key=lambda r: r.year)
    return results


def herfindahl_index(shares: Iterable[float]) -> float | None:
    """
    Herfindahl-Hirschman index, sum of squared shares.

    Shares are rescaled to sum to 1, so percentages work as well as
    fractions. Returns None when the shares do not sum to a positive value.
    """
    values = [float(s) for s in shares if not is_missing(s)]
    total = sum(values)
    if total <= 0:
        return None
    return sum((v / total) ** 2 for v in values)


@dataclass
class Diversification:
    """Sectoral concentration of a regional economy."""
    group: Hashable
    hhi: float
    score: float  # (1 - HHI) * 100
    category: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "hhi": self.hhi,
            "score": self.score,
            "category": self.category,
        }


def diversification(
    sector_shares: Mapping[Hashable, Mapping[str, float]],
    scheme: Scheme | None = None,
) -> list[Diversification]:
    """
    Diversification per group from caller-supplied sector shares.

    Returns:
        Results sorted from most to least diversified. Groups whose shares
        do not sum to a positive value are omitted.
    """
    classify = _classifier("diversification", scheme)

    results: list[Diversification] = []
    for g, shares in sector_shares.items():
        hhi = herfindahl_index(shares.values())
        if hhi is None:
            logger.debug("Diversification skipped for %s: no sector shares", g)
            continue
        results.append(Diversification(g, hhi, (1 - hhi) * 100, classify(hhi)))

    results.sort(key=lambda r: r.hhi)
    return results
