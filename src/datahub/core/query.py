"""
Record Loading and Query Engine.

Loads BPS record dumps (CSV or JSON) into typed records and provides a
fluent in-memory filter over them.
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, is_dataclass
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd

from datahub.core.aggregation import field_getter
from datahub.core.records import BPSRecord, get_record_type, parse_records

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = (".csv", ".json")


def read_frame(path: str | Path) -> pd.DataFrame:
    """
    Read a CSV or JSON (records orientation) file into a DataFrame.

    Raises:
        ValueError: If the file extension is not supported.
        FileNotFoundError: If the file does not exist.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_FORMATS:
        raise ValueError(
            f"Unsupported format: {suffix or path.name}. Use one of {', '.join(SUPPORTED_FORMATS)}"
        )
    if not path.exists():
        raise FileNotFoundError(path)

    if suffix == ".csv":
        df = pd.read_csv(path)
    else:
        df = pd.read_json(path, orient="records")

    logger.debug("Read %d rows from %s", len(df), path)
    return df


def frame_to_rows(df: pd.DataFrame) -> list[dict[str, Any]]:
    """Convert a DataFrame to plain dict rows, NaN becoming None."""
    return df.astype(object).where(df.notna(), None).to_dict("records")


def load_records(path: str | Path, dataset_id: str) -> list[BPSRecord]:
    """
    Load a record dump and validate it against the dataset's record model.

    Args:
        path: CSV or JSON file.
        dataset_id: BPS dataset id selecting the record model.

    Returns:
        Typed records in file order.

    Raises:
        ValueError: For an unknown dataset or unsupported file format.
        pydantic.ValidationError: If a row does not match the schema.
    """
    model = get_record_type(dataset_id)
    records = parse_records(frame_to_rows(read_frame(path)), model)
    logger.info("Loaded %d %s records from %s", len(records), dataset_id, path)
    return records


@dataclass
class QueryResult:
    """Result of a query operation."""
    records: list[Any]
    query_time: float
    row_count: int
    metadata: dict[str, Any]

    def to_frame(self) -> pd.DataFrame:
        return records_to_frame(self.records)

    def to_dict(self) -> dict:
        return {
            "data": self.to_frame().to_dict("records"),
            "query_time": self.query_time,
            "row_count": self.row_count,
            "metadata": self.metadata,
        }


class RecordQuery:
    """
    Fluent filter over a record collection.

    Example:
        result = (
            RecordQuery(records)
            .groups("ACEH", "BALI")
            .years(2018, 2023)
            .where(jenis_kelamin="Total")
            .execute()
        )
    """

    def __init__(self, records: Iterable[Any], group: str = "nama_provinsi", year: str = "tahun"):
        self._records = list(records)
        self._group_field = group
        self._year_field = year
        self._equals: dict[str, Any] = {}
        self._groups: list[Any] = []
        self._start_year: int | None = None
        self._end_year: int | None = None

    def where(self, **equals: Any) -> "RecordQuery":
        """Keep records whose fields equal the given values."""
        self._equals.update(equals)
        return self

    def groups(self, *groups: Any) -> "RecordQuery":
        """Filter by group key (province or region name)."""
        self._groups.extend(groups)
        return self

    def years(self, start: int | None = None, end: int | None = None) -> "RecordQuery":
        """Filter by an inclusive year range. Either bound may be open."""
        self._start_year = start
        self._end_year = end
        return self

    def year(self, year: int) -> "RecordQuery":
        """Filter to a single year."""
        self._start_year = year
        self._end_year = year
        return self

    def _matches(self, record: Any) -> bool:
        for name, expected in self._equals.items():
            if field_getter(name)(record) != expected:
                return False

        if self._groups and field_getter(self._group_field)(record) not in self._groups:
            return False

        y = field_getter(self._year_field)(record)
        if self._start_year is not None and (y is None or y < self._start_year):
            return False
        if self._end_year is not None and (y is None or y > self._end_year):
            return False
        return True

    def execute(self) -> QueryResult:
        """Apply the filters and return the matching records in input order."""
        start_time = datetime.now()
        matched = [r for r in self._records if self._matches(r)]

        return QueryResult(
            records=matched,
            query_time=(datetime.now() - start_time).total_seconds(),
            row_count=len(matched),
            metadata={"filters": self._get_metadata()},
        )

    def _get_metadata(self) -> dict:
        return {
            "equals": dict(self._equals),
            "groups": list(self._groups),
            "start_year": self._start_year,
            "end_year": self._end_year,
        }


def _as_row(item: Any) -> dict[str, Any]:
    if isinstance(item, BPSRecord):
        return item.model_dump()
    if hasattr(item, "to_dict"):
        return item.to_dict()
    if isinstance(item, dict):
        return item
    raise TypeError(f"Cannot convert {type(item).__name__} to a row")


def records_to_frame(items: Sequence[Any]) -> pd.DataFrame:
    """
    Turn typed records, result dataclasses or dicts into a DataFrame.

    Result objects are converted through their ``to_dict()``.
    """
    return pd.DataFrame([_as_row(item) for item in items])


def results_to_frame(results: Sequence[Any]) -> pd.DataFrame:
    """Turn calculator results (dataclasses with ``to_dict``) into a DataFrame."""
    if any(not is_dataclass(r) for r in results):
        raise TypeError("results_to_frame expects result dataclasses")
    return records_to_frame(results)
