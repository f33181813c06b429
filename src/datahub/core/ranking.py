"""
Provincial ranking on three weighted metrics with z-score tiers.
"""

from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Any

from datahub.core.methodology import get_indicator, validate_weights
from datahub.core.statistics import min_max_normalize, z_scores

RANKING_CLUSTER = get_indicator("ranking_cluster")

RECOMMENDATIONS: dict[str, str] = dict(RANKING_CLUSTER.advice)


@dataclass
class RankingInput:
    """Raw metrics of one group. Higher is better for all three."""
    group: Hashable
    primary: float
    secondary: float
    tertiary: float


@dataclass
class RankingEntry:
    """Ranked group."""
    group: Hashable
    rank: int
    score: float  # Weighted 0-100 score
    percentile: float
    z_score: float
    cluster: str
    recommendation: str
    primary: float
    secondary: float
    tertiary: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "rank": self.rank,
            "score": self.score,
            "percentile": self.percentile,
            "z_score": self.z_score,
            "cluster": self.cluster,
            "recommendation": self.recommendation,
            "primary": self.primary,
            "secondary": self.secondary,
            "tertiary": self.tertiary,
        }


def rank_groups(
    inputs: Sequence[RankingInput],
    weights: Sequence[float] = (0.5, 0.3, 0.2),
) -> list[RankingEntry]:
    """
    Rank groups by a weighted combination of three normalized metrics.

    Each metric is min-max normalized across the groups. Scores are sorted
    descending with ties kept in input order. The percentile of position i
    is (n - i) / n * 100. Tiers come from the z-score of the score
    (population std, divisor 1 when all scores are equal).

    Args:
        inputs: Raw metrics per group.
        weights: (primary, secondary, tertiary) weights summing to 1.0.

    Returns:
        Ranked entries, best first. Empty input gives an empty list.
    """
    if len(weights) != 3:
        raise ValueError(f"Expected 3 weights, got {len(weights)}")
    validate_weights(list(weights))
    if not inputs:
        return []

    primary = min_max_normalize([i.primary for i in inputs])
    secondary = min_max_normalize([i.secondary for i in inputs])
    tertiary = min_max_normalize([i.tertiary for i in inputs])
    w1, w2, w3 = weights

    scored = sorted(
        (
            (primary[idx] * w1 + secondary[idx] * w2 + tertiary[idx] * w3, item)
            for idx, item in enumerate(inputs)
        ),
        key=lambda pair: pair[0],
        reverse=True,
    )

    n = len(scored)
    zs = z_scores([score for score, _ in scored])
    entries = []
    for i, ((score, item), z) in enumerate(zip(scored, zs)):
        cluster = RANKING_CLUSTER.classify(z)
        entries.append(RankingEntry(
            group=item.group,
            rank=i + 1,
            score=score,
            percentile=(n - i) / n * 100,
            z_score=z,
            cluster=cluster,
            recommendation=RECOMMENDATIONS[cluster],
            primary=item.primary,
            secondary=item.secondary,
            tertiary=item.tertiary,
        ))
    return entries
