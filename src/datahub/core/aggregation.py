"""
Aggregation primitives.

Group-by reducers over record collections. A record is either a mapping
(field name -> value) or an object exposing the fields as attributes, such
as the typed records in ``datahub.core.records``. Every function accepts a
field name or a callable wherever it needs a key or a value.
"""

import math
from collections.abc import Callable, Hashable, Iterable, Mapping, Sequence
from enum import Enum
from typing import Any

import pandas as pd

Accessor = str | Callable[[Any], Any]


class Reducer(str, Enum):
    """Supported aggregation functions."""
    SUM = "sum"
    MEAN = "mean"
    COUNT = "count"
    MIN = "min"
    MAX = "max"


def field_getter(accessor: Accessor) -> Callable[[Any], Any]:
    """
    Turn a field name into an accessor that works on mappings and objects.

    Callables are returned unchanged. Missing fields read as ``None``.
    """
    if callable(accessor):
        return accessor

    name = accessor

    def get(record: Any) -> Any:
        if isinstance(record, Mapping):
            return record.get(name)
        return getattr(record, name, None)

    return get


def is_missing(value: Any) -> bool:
    """True for ``None`` and NaN."""
    if value is None:
        return True
    try:
        return math.isnan(value)
    except TypeError:
        return False


def group_by(records: Iterable[Any], key: Accessor) -> dict[Hashable, list[Any]]:
    """
    Group records by key, preserving first-seen key order.

    Args:
        records: Records to group.
        key: Field name or key extractor.

    Returns:
        Mapping of key to the records sharing it.
    """
    get_key = field_getter(key)
    groups: dict[Hashable, list[Any]] = {}
    for record in records:
        groups.setdefault(get_key(record), []).append(record)
    return groups


def reduce_values(values: Sequence[float], reducer: Reducer | str) -> float:
    """Apply a reducer to plain numbers. Empty input yields 0.0."""
    reducer = Reducer(reducer)

    if reducer == Reducer.COUNT:
        return float(len(values))
    if len(values) == 0:
        return 0.0
    return float(pd.Series(values, dtype=float).agg(reducer.value))


def aggregate(
    records: Iterable[Any],
    value: Accessor,
    reducer: Reducer | str = Reducer.SUM,
) -> float:
    """
    Reduce the values of a record collection to a single number.

    Records whose value is missing are ignored. An empty collection returns
    ``0.0`` for every reducer, so a zero result means either a true zero or
    no data at all. Callers that classify the result must check the count
    first and omit the group rather than report a neutral value.

    Args:
        records: Records to reduce.
        value: Field name or value extractor.
        reducer: One of sum, mean, count, min, max.

    Returns:
        Reduced value.
    """
    get_value = field_getter(value)
    values = [v for v in (get_value(r) for r in records) if not is_missing(v)]
    return reduce_values(values, reducer)


def aggregate_by(
    records: Iterable[Any],
    key: Accessor,
    value: Accessor,
    reducer: Reducer | str = Reducer.SUM,
) -> dict[Hashable, float]:
    """Group records by key and reduce each group."""
    return {
        k: aggregate(group, value, reducer)
        for k, group in group_by(records, key).items()
    }


def grouped_series(
    records: Iterable[Any],
    group: Accessor = "nama_provinsi",
    year: Accessor = "tahun",
    value: Accessor = "value",
) -> dict[Hashable, list[tuple[int, float]]]:
    """
    Build a GroupedSeries: group key -> (year, value) pairs sorted by year.

    Years are unique within a group; a later record for the same
    (group, year) replaces an earlier one. Records with a missing year or
    value are skipped.

    Args:
        records: Source records.
        group: Group key field or extractor.
        year: Year field or extractor.
        value: Metric field or extractor.

    Returns:
        Ordered per-group series.
    """
    get_group = field_getter(group)
    get_year = field_getter(year)
    get_value = field_getter(value)

    by_group: dict[Hashable, dict[int, float]] = {}
    for record in records:
        y = get_year(record)
        v = get_value(record)
        if is_missing(y) or is_missing(v):
            continue
        by_group.setdefault(get_group(record), {})[int(y)] = float(v)

    return {
        g: sorted(year_values.items())
        for g, year_values in by_group.items()
    }


def yearly_mean(
    records: Iterable[Any],
    year: Accessor = "tahun",
    value: Accessor = "value",
) -> list[tuple[int, float]]:
    """
    Mean of a metric per year across all groups, sorted by year.

    Used for national trend lines over per-province results.
    """
    get_year = field_getter(year)
    get_value = field_getter(value)
    by_year = aggregate_by(
        (r for r in records if not (is_missing(get_year(r)) or is_missing(get_value(r)))),
        lambda r: int(get_year(r)),
        value,
        Reducer.MEAN,
    )
    return sorted(by_year.items())
