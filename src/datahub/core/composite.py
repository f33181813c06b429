"""
Composite Scoring and Clustering Module.

Combines several indicators into one 0-100 score per group and cuts the
scores into three tiers:
- Fixed thresholds (score >= 80 / >= 65, or the 67 / 33 variant)
- Percentile cutoffs taken from the current score distribution
"""

import logging
import math
from collections.abc import Hashable, Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from datahub.core.aggregation import is_missing
from datahub.core.methodology import (
    DEFAULT_TIER_LABELS,
    ClusteringStrategy,
    MetricSpec,
    TierLabels,
    validate_weights,
)
from datahub.core.statistics import min_max_normalize

logger = logging.getLogger(__name__)

__all__ = [
    "ClusteringStrategy",
    "TierLabels",
    "CompositeScore",
    "ClusterResult",
    "CompositeScorer",
    "weighted_score",
    "fixed_threshold_tier",
    "percentile_cutoffs",
    "percentile_tier",
    "score_and_cluster",
]


@dataclass
class CompositeScore:
    """Composite score of one group."""
    group: Hashable
    score: float
    components: dict[str, float]  # Normalized 0-100 sub-scores
    raw: dict[str, float]
    rank: int = 0
    cluster: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "score": self.score,
            "rank": self.rank,
            "cluster": self.cluster,
            "components": self.components,
            "raw": self.raw,
        }


@dataclass
class ClusterResult:
    """Result of tier clustering over composite scores."""
    strategy: ClusteringStrategy
    labels: TierLabels
    scores: list[CompositeScore]
    cutoffs: tuple[float, float] | None  # (top, middle) lower bounds
    cluster_sizes: dict[str, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.cluster_sizes:
            self.cluster_sizes = {label: 0 for label in self.labels}
            for s in self.scores:
                self.cluster_sizes[s.cluster] = self.cluster_sizes.get(s.cluster, 0) + 1

    def get_cluster_members(self, label: str) -> list[Hashable]:
        """Get groups in a specific tier."""
        return [s.group for s in self.scores if s.cluster == label]

    def to_dict(self) -> dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "labels": list(self.labels),
            "cutoffs": list(self.cutoffs) if self.cutoffs else None,
            "cluster_sizes": self.cluster_sizes,
            "scores": [s.to_dict() for s in self.scores],
        }


def weighted_score(values: Sequence[float], weights: Sequence[float]) -> float:
    """
    Weighted sum of normalized values.

    Raises:
        ValueError: If lengths differ or the weights do not sum to 1.0.
    """
    if len(values) != len(weights):
        raise ValueError(f"Expected {len(weights)} values, got {len(values)}")
    validate_weights(list(weights))
    return float(sum(v * w for v, w in zip(values, weights)))


def fixed_threshold_tier(
    score: float,
    top: float = 80.0,
    middle: float = 65.0,
    labels: TierLabels = DEFAULT_TIER_LABELS,
) -> str:
    """Tier by absolute score: >= top, >= middle, else bottom."""
    if score >= top:
        return labels.top
    if score >= middle:
        return labels.middle
    return labels.bottom


def percentile_cutoffs(scores: Sequence[float]) -> tuple[float, float] | None:
    """
    Cutoffs from the score distribution itself.

    Scores are sorted descending; the top cutoff is the value at index
    floor(n * 0.33) and the middle cutoff the value at floor(n * 0.67).
    Returns None for no scores.
    """
    if not scores:
        return None
    ordered = sorted(scores, reverse=True)
    n = len(ordered)
    return ordered[math.floor(n * 0.33)], ordered[math.floor(n * 0.67)]


def percentile_tier(
    score: float,
    cutoffs: tuple[float, float],
    labels: TierLabels = DEFAULT_TIER_LABELS,
) -> str:
    """Tier by percentile cutoffs: >= top cutoff, >= middle cutoff, else bottom."""
    top_cut, middle_cut = cutoffs
    return fixed_threshold_tier(score, top_cut, middle_cut, labels)


class CompositeScorer:
    """
    Score groups on several metrics and cluster them into tiers.

    Usage:
        scorer = CompositeScorer(metrics).prepare(entities)
        result = scorer.percentile(labels)
    """

    def __init__(self, metrics: Sequence[MetricSpec]):
        if not metrics:
            raise ValueError("At least one metric is required")
        validate_weights([m.weight for m in metrics])
        self.metrics = list(metrics)
        self.scores: list[CompositeScore] = []
        self._prepared = False

    def prepare(self, entities: Mapping[Hashable, Mapping[str, float]]) -> "CompositeScorer":
        """
        Normalize metrics across entities and compute weighted scores.

        Args:
            entities: Group -> metric name -> raw value. Metrics with
                ``normalize=False`` must already be on a 0-100 scale.

        Returns:
            Self for chaining.
        """
        complete: dict[Hashable, dict[str, float]] = {}
        for group, values in entities.items():
            missing = [m.name for m in self.metrics if is_missing(values.get(m.name))]
            if missing:
                logger.debug("Composite skipped for %s: missing %s", group, ", ".join(missing))
                continue
            complete[group] = {m.name: float(values[m.name]) for m in self.metrics}

        groups = list(complete)
        components: dict[Hashable, dict[str, float]] = {g: {} for g in groups}
        for metric in self.metrics:
            raw = [complete[g][metric.name] for g in groups]
            if metric.normalize:
                normalized = min_max_normalize(raw, invert=metric.invert)
            elif metric.invert:
                normalized = [100 - v for v in raw]
            else:
                normalized = raw
            for g, v in zip(groups, normalized):
                components[g][metric.name] = v

        scores = [
            CompositeScore(
                group=g,
                score=sum(components[g][m.name] * m.weight for m in self.metrics),
                components=components[g],
                raw=complete[g],
            )
            for g in groups
        ]
        scores.sort(key=lambda s: s.score, reverse=True)
        for rank, s in enumerate(scores, start=1):
            s.rank = rank

        self.scores = scores
        self._prepared = True
        return self

    def _require_prepared(self) -> None:
        if not self._prepared:
            raise ValueError("Call prepare() first")

    def fixed_threshold(
        self,
        top: float = 80.0,
        middle: float = 65.0,
        labels: TierLabels = DEFAULT_TIER_LABELS,
    ) -> ClusterResult:
        """Assign tiers by absolute score thresholds."""
        self._require_prepared()
        for s in self.scores:
            s.cluster = fixed_threshold_tier(s.score, top, middle, labels)
        return ClusterResult(ClusteringStrategy.FIXED, labels, self.scores, (top, middle))

    def percentile(self, labels: TierLabels = DEFAULT_TIER_LABELS) -> ClusterResult:
        """Assign tiers by cutoffs from the current score distribution."""
        self._require_prepared()
        cutoffs = percentile_cutoffs([s.score for s in self.scores])
        for s in self.scores:
            s.cluster = percentile_tier(s.score, cutoffs, labels)
        return ClusterResult(ClusteringStrategy.PERCENTILE, labels, self.scores, cutoffs)

    def cluster(
        self,
        strategy: ClusteringStrategy | str,
        labels: TierLabels = DEFAULT_TIER_LABELS,
        thresholds: tuple[float, float] | None = None,
    ) -> ClusterResult:
        """
        Cluster with an explicitly chosen strategy.

        Args:
            strategy: fixed or percentile.
            labels: Tier labels, best first.
            thresholds: (top, middle) for the fixed strategy. Defaults to
                (80, 65).
        """
        strategy = ClusteringStrategy(strategy)
        if strategy == ClusteringStrategy.FIXED:
            top, middle = thresholds or (80.0, 65.0)
            return self.fixed_threshold(top, middle, labels)
        return self.percentile(labels)


def score_and_cluster(
    entities: Mapping[Hashable, Mapping[str, float]],
    metrics: Sequence[MetricSpec],
    strategy: ClusteringStrategy | str,
    labels: TierLabels = DEFAULT_TIER_LABELS,
    thresholds: tuple[float, float] | None = None,
) -> ClusterResult:
    """
    Score and cluster entities in one call.

    Args:
        entities: Group -> metric name -> raw value.
        metrics: Metric definitions with weights summing to 1.0.
        strategy: fixed or percentile.
        labels: Tier labels, best first.
        thresholds: (top, middle) for the fixed strategy.

    Returns:
        ClusterResult with scores sorted descending.
    """
    return CompositeScorer(metrics).prepare(entities).cluster(strategy, labels, thresholds)
