"""Tests for datahub.core.composite: composite scores and tier clustering."""

from __future__ import annotations

import pytest

from datahub.core.composite import (
    ClusteringStrategy,
    CompositeScorer,
    TierLabels,
    fixed_threshold_tier,
    percentile_cutoffs,
    percentile_tier,
    score_and_cluster,
    weighted_score,
)
from datahub.core.methodology import MetricSpec

METRICS = [MetricSpec("a", 0.6), MetricSpec("b", 0.4, invert=True)]

ENTITIES = {
    "X": {"a": 10.0, "b": 1.0},
    "Y": {"a": 20.0, "b": 3.0},
    "Z": {"a": 30.0, "b": 2.0},
    "W": {"a": 5.0},
}


class TestWeightedScore:
    def test_sum(self) -> None:
        assert weighted_score([50.0, 100.0], [0.5, 0.5]) == pytest.approx(75.0)

    def test_uniform_inputs(self) -> None:
        weights = [0.5, 0.3, 0.2]
        assert weighted_score([100.0, 100.0, 100.0], weights) == pytest.approx(100.0)
        assert weighted_score([0.0, 0.0, 0.0], weights) == pytest.approx(0.0)

    def test_length_mismatch(self) -> None:
        with pytest.raises(ValueError):
            weighted_score([1.0], [0.5, 0.5])

    def test_bad_weights(self) -> None:
        with pytest.raises(ValueError, match="sum to 1.0"):
            weighted_score([1.0, 2.0], [0.5, 0.6])


class TestTiers:
    def test_fixed_threshold_inclusive(self) -> None:
        assert fixed_threshold_tier(80.0) == "High"
        assert fixed_threshold_tier(65.0) == "Medium"
        assert fixed_threshold_tier(64.9) == "Low"

    def test_custom_labels(self) -> None:
        labels = TierLabels("Advanced", "Developing", "Lagging")
        assert fixed_threshold_tier(50.0, 67.0, 33.0, labels) == "Developing"

    def test_percentile_cutoffs(self) -> None:
        scores = [float(s) for s in range(10, 101, 10)]
        assert percentile_cutoffs(scores) == (70.0, 40.0)

    def test_percentile_cutoffs_empty(self) -> None:
        assert percentile_cutoffs([]) is None

    def test_percentile_tier(self) -> None:
        assert percentile_tier(70.0, (70.0, 40.0)) == "High"
        assert percentile_tier(39.0, (70.0, 40.0)) == "Low"


class TestCompositeScorer:
    def test_requires_metrics(self) -> None:
        with pytest.raises(ValueError):
            CompositeScorer([])

    def test_requires_prepare(self) -> None:
        with pytest.raises(ValueError, match="prepare"):
            CompositeScorer(METRICS).percentile()

    def test_incomplete_entities_skipped(self) -> None:
        scorer = CompositeScorer(METRICS).prepare(ENTITIES)
        assert {s.group for s in scorer.scores} == {"X", "Y", "Z"}

    def test_scores_and_ranks(self) -> None:
        scores = CompositeScorer(METRICS).prepare(ENTITIES).scores
        assert [s.group for s in scores] == ["Z", "X", "Y"]
        assert [s.rank for s in scores] == [1, 2, 3]
        assert scores[0].score == pytest.approx(80.0)
        assert scores[1].score == pytest.approx(40.0)
        assert scores[2].score == pytest.approx(30.0)
        assert scores[1].components == {"a": pytest.approx(0.0), "b": pytest.approx(100.0)}
        assert scores[0].raw == {"a": 30.0, "b": 2.0}

    def test_scores_within_bounds(self) -> None:
        for s in CompositeScorer(METRICS).prepare(ENTITIES).scores:
            assert 0.0 <= s.score <= 100.0

    def test_unnormalized_metric(self) -> None:
        metrics = [MetricSpec("a", 0.5, normalize=False), MetricSpec("b", 0.5, normalize=False, invert=True)]
        scores = CompositeScorer(metrics).prepare({"X": {"a": 60.0, "b": 20.0}}).scores
        assert scores[0].components == {"a": 60.0, "b": 80.0}
        assert scores[0].score == pytest.approx(70.0)

    def test_fixed_threshold(self) -> None:
        result = CompositeScorer(METRICS).prepare(ENTITIES).fixed_threshold()
        assert result.strategy == ClusteringStrategy.FIXED
        assert result.cutoffs == (80.0, 65.0)
        assert result.get_cluster_members("High") == ["Z"]
        assert result.cluster_sizes == {"High": 1, "Medium": 0, "Low": 2}

    def test_percentile(self) -> None:
        result = CompositeScorer(METRICS).prepare(ENTITIES).percentile()
        assert result.cutoffs == (pytest.approx(80.0), pytest.approx(30.0))
        assert result.get_cluster_members("High") == ["Z"]
        assert result.get_cluster_members("Medium") == ["X", "Y"]
        assert result.cluster_sizes["Low"] == 0

    def test_cluster_by_name(self) -> None:
        result = CompositeScorer(METRICS).prepare(ENTITIES).cluster("fixed", thresholds=(35.0, 25.0))
        assert result.get_cluster_members("High") == ["Z", "X"]
        assert result.get_cluster_members("Medium") == ["Y"]

    def test_unknown_strategy(self) -> None:
        scorer = CompositeScorer(METRICS).prepare(ENTITIES)
        with pytest.raises(ValueError):
            scorer.cluster("kmeans")

    def test_empty_entities(self) -> None:
        result = CompositeScorer(METRICS).prepare({}).percentile()
        assert result.scores == []
        assert result.cutoffs is None


class TestScoreAndCluster:
    def test_one_call(self) -> None:
        labels = TierLabels("Low Burden", "Medium Burden", "High Burden")
        result = score_and_cluster(ENTITIES, METRICS, ClusteringStrategy.PERCENTILE, labels)
        data = result.to_dict()
        assert data["strategy"] == "percentile"
        assert data["labels"] == ["Low Burden", "Medium Burden", "High Burden"]
        assert data["scores"][0]["group"] == "Z"
        assert data["scores"][0]["cluster"] == "Low Burden"
