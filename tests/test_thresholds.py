"""Tests for datahub.core.thresholds: tier and range classification."""

from __future__ import annotations

import pytest

from datahub.core.thresholds import (
    Band,
    RangeScheme,
    Threshold,
    TierScheme,
    above,
    ranges,
    tiers,
)


class TestTierScheme:
    def test_first_met_threshold_wins(self) -> None:
        scheme = tiers((10, "high"), (5, "medium"), default="low")
        assert scheme.classify(12) == "high"
        assert scheme.classify(7) == "medium"
        assert scheme.classify(1) == "low"

    def test_inclusive_boundaries(self) -> None:
        scheme = tiers((10, "high"), (5, "medium"), default="low")
        assert scheme.classify(10) == "high"
        assert scheme.classify(5) == "medium"

    def test_strict_boundaries(self) -> None:
        scheme = tiers(above(5, "high"), above(2, "moderate"), default="low")
        assert scheme.classify(5) == "moderate"
        assert scheme.classify(2) == "low"
        assert scheme.classify(5.0001) == "high"

    def test_every_value_gets_one_label(self) -> None:
        scheme = tiers(above(5, "high"), (2, "moderate"), default="low")
        for value in (-1e9, -1, 0, 2, 3.5, 5, 6, 1e9):
            assert scheme.classify(value) in scheme.labels

    def test_labels(self) -> None:
        scheme = tiers((10, "high"), (5, "medium"), default="low")
        assert scheme.labels == ["high", "medium", "low"]

    def test_unordered_thresholds_rejected(self) -> None:
        with pytest.raises(ValueError, match="ordered"):
            TierScheme((Threshold(2, "low"), Threshold(5, "high")), "none")

    def test_threshold_is_met(self) -> None:
        assert Threshold(3, "x").is_met(3)
        assert not Threshold(3, "x", inclusive=False).is_met(3)


class TestRangeScheme:
    def test_innermost_band_first(self) -> None:
        scheme = ranges((0.97, 1.03, "achieved"), (0.90, 1.10, "minor"), default="significant")
        assert scheme.classify(1.0) == "achieved"
        assert scheme.classify(0.95) == "minor"
        assert scheme.classify(1.2) == "significant"
        assert scheme.classify(0.5) == "significant"

    def test_closed_interval(self) -> None:
        scheme = ranges((0.97, 1.03, "achieved"), (0.90, 1.10, "minor"), default="significant")
        assert scheme.classify(0.97) == "achieved"
        assert scheme.classify(1.03) == "achieved"
        assert scheme.classify(0.90) == "minor"
        assert scheme.classify(1.10) == "minor"

    def test_bands_must_nest(self) -> None:
        with pytest.raises(ValueError, match="not inside"):
            RangeScheme((Band(0, 10, "wide"), Band(2, 4, "narrow")), "out")

    def test_labels(self) -> None:
        scheme = ranges((3, 5, "normal"), (2, 6, "minor"), default="anomaly")
        assert scheme.labels == ["normal", "minor", "anomaly"]
