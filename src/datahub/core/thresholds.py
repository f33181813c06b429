"""
Classification bands.

Every categorical label produced by the indicators comes from one of two
schemes declared as data:

- ``TierScheme``: descending thresholds, first threshold met wins.
- ``RangeScheme``: nested closed intervals, innermost first, for two-sided
  bands such as gender parity.
"""

from collections.abc import Sequence
from dataclasses import dataclass


@dataclass(frozen=True)
class Threshold:
    """Lower bound of a tier. Met when value >= bound (> bound if not inclusive)."""
    value: float
    label: str
    inclusive: bool = True

    def is_met(self, value: float) -> bool:
        return value >= self.value if self.inclusive else value > self.value


@dataclass(frozen=True)
class TierScheme:
    """
    Ordered one-sided bands.

    Thresholds run from highest to lowest; ``classify`` returns the label of
    the first threshold the value meets, else ``default``. Every real value
    maps to exactly one label.
    """
    thresholds: tuple[Threshold, ...]
    default: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "thresholds", tuple(self.thresholds))
        for higher, lower in zip(self.thresholds, self.thresholds[1:]):
            if lower.value > higher.value:
                raise ValueError(
                    f"Thresholds must be ordered from highest to lowest: "
                    f"{higher.value} ({higher.label}) before {lower.value} ({lower.label})"
                )

    def classify(self, value: float) -> str:
        for threshold in self.thresholds:
            if threshold.is_met(value):
                return threshold.label
        return self.default

    @property
    def labels(self) -> list[str]:
        return [t.label for t in self.thresholds] + [self.default]


@dataclass(frozen=True)
class Band:
    """Closed interval [low, high] with a label."""
    low: float
    high: float
    label: str

    def contains(self, value: float) -> bool:
        return self.low <= value <= self.high


@dataclass(frozen=True)
class RangeScheme:
    """
    Nested two-sided bands, checked innermost first.

    Values outside every band get ``default``.
    """
    bands: tuple[Band, ...]
    default: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "bands", tuple(self.bands))
        for inner, outer in zip(self.bands, self.bands[1:]):
            if inner.low < outer.low or inner.high > outer.high:
                raise ValueError(
                    f"Band {inner.label} [{inner.low}, {inner.high}] is not inside "
                    f"{outer.label} [{outer.low}, {outer.high}]"
                )

    def classify(self, value: float) -> str:
        for band in self.bands:
            if band.contains(value):
                return band.label
        return self.default

    @property
    def labels(self) -> list[str]:
        return [b.label for b in self.bands] + [self.default]


Scheme = TierScheme | RangeScheme


def tiers(*pairs: tuple[float, str] | Threshold, default: str) -> TierScheme:
    """
    Shorthand for building a TierScheme.

    >>> tiers((5, "high"), (2, "moderate"), default="low").classify(3)
    'moderate'
    """
    thresholds = tuple(
        p if isinstance(p, Threshold) else Threshold(float(p[0]), p[1])
        for p in pairs
    )
    return TierScheme(thresholds, default)


def above(value: float, label: str) -> Threshold:
    """Strict threshold, met only when the value exceeds the bound."""
    return Threshold(float(value), label, inclusive=False)


def ranges(*bands: Sequence, default: str) -> RangeScheme:
    """Shorthand for building a RangeScheme from (low, high, label) triples."""
    return RangeScheme(tuple(Band(float(lo), float(hi), label) for lo, hi, label in bands), default)
