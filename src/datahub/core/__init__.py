"""
Core analytics module for DataHub.

Provides:
- Aggregation primitives and statistics
- Indicator calculators and the methodology registry
- Composite scoring and clustering
- Forecasting, insights and ranking
- Dataset pipelines
- Record loading, querying, validation and the dataset catalog
"""

from datahub.core.aggregation import (
    Reducer,
    aggregate,
    aggregate_by,
    group_by,
    grouped_series,
    yearly_mean,
)
from datahub.core.catalog import (
    DatasetCatalog,
    DatasetInfo,
    catalog,
    get_dataset_info,
    list_categories,
    search_datasets,
)
from datahub.core.composite import (
    ClusteringStrategy,
    ClusterResult,
    CompositeScore,
    CompositeScorer,
    TierLabels,
    score_and_cluster,
)
from datahub.core.indicators import (
    compound_growth_rate,
    convergence_beta,
    education_gap,
    gender_parity,
    growth_rates,
    provincial_deviation,
    reduction_rates,
    regional_disparity,
    stratified_gap,
    trend_slopes,
)
from datahub.core.methodology import (
    INDICATORS,
    METHODOLOGIES,
    get_indicator,
    get_methodology,
    supported_datasets,
)
from datahub.core.pipelines import ANALYZERS, DatasetAnalysis, run_analysis
from datahub.core.query import QueryResult, RecordQuery, load_records, results_to_frame
from datahub.core.ranking import RankingEntry, RankingInput, rank_groups
from datahub.core.records import RECORD_TYPES, parse_records
from datahub.core.statistics import (
    CorrelationResult,
    describe,
    linear_regression,
    min_max_normalize,
    pearson_correlation,
    z_score,
)
from datahub.core.timeseries import ForecastPoint, Insight, forecast, generate_insights
from datahub.core.validation import DataValidator, ValidationReport, validate_records

__all__ = [
    # Aggregation
    "Reducer",
    "aggregate",
    "aggregate_by",
    "group_by",
    "grouped_series",
    "yearly_mean",
    # Statistics
    "CorrelationResult",
    "describe",
    "linear_regression",
    "min_max_normalize",
    "pearson_correlation",
    "z_score",
    # Methodology
    "INDICATORS",
    "METHODOLOGIES",
    "get_indicator",
    "get_methodology",
    "supported_datasets",
    # Indicators
    "growth_rates",
    "reduction_rates",
    "compound_growth_rate",
    "gender_parity",
    "stratified_gap",
    "education_gap",
    "regional_disparity",
    "provincial_deviation",
    "trend_slopes",
    "convergence_beta",
    # Composite
    "ClusteringStrategy",
    "ClusterResult",
    "CompositeScore",
    "CompositeScorer",
    "TierLabels",
    "score_and_cluster",
    # Time Series
    "ForecastPoint",
    "Insight",
    "forecast",
    "generate_insights",
    # Ranking
    "RankingEntry",
    "RankingInput",
    "rank_groups",
    # Pipelines
    "ANALYZERS",
    "DatasetAnalysis",
    "run_analysis",
    # Records and Query
    "RECORD_TYPES",
    "parse_records",
    "QueryResult",
    "RecordQuery",
    "load_records",
    "results_to_frame",
    # Validation
    "DataValidator",
    "ValidationReport",
    "validate_records",
    # Catalog
    "DatasetCatalog",
    "DatasetInfo",
    "catalog",
    "search_datasets",
    "get_dataset_info",
    "list_categories",
]
