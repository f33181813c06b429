"""
Data Validation Utilities.

Checks a loaded record set for quality problems before analysis:
- Missing values
- Duplicate observations
- Outlier detection
- Time series continuity checks
- Unexpected negative values
- Unknown province codes
"""

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import pandas as pd

from datahub.config import get_province
from datahub.core.catalog import catalog
from datahub.core.query import records_to_frame

logger = logging.getLogger(__name__)

ALL_CHECKS = ("missing", "duplicates", "outliers", "gaps", "negative", "provinces")


class ValidationSeverity(str, Enum):
    """Severity levels for validation issues."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"


@dataclass
class ValidationIssue:
    """A single validation issue found in the data."""
    severity: ValidationSeverity
    issue_type: str
    message: str
    group: str | None = None
    column: str | None = None
    year: int | None = None
    value: float | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "severity": self.severity.value,
            "issue_type": self.issue_type,
            "message": self.message,
            "group": self.group,
            "column": self.column,
            "year": self.year,
            "value": self.value,
            "details": self.details,
        }


@dataclass
class ValidationReport:
    """Summary of data validation results."""
    timestamp: datetime
    records_checked: int = 0
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def error_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.WARNING)

    @property
    def info_count(self) -> int:
        return sum(1 for i in self.issues if i.severity == ValidationSeverity.INFO)

    @property
    def is_valid(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp.isoformat(),
            "records_checked": self.records_checked,
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "info_count": self.info_count,
            "is_valid": self.is_valid,
            "issues": [i.to_dict() for i in self.issues],
        }

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame([i.to_dict() for i in self.issues])


class DataValidator:
    """
    Validates the quality of a record set.

    Records may be typed records, result dataclasses or plain dicts.
    """

    def __init__(
        self,
        records: Iterable[Any],
        group: str = "nama_provinsi",
        year: str = "tahun",
    ):
        self._df = records_to_frame(list(records))
        self._group = group
        self._year = year

    @property
    def records_checked(self) -> int:
        return len(self._df)

    def _has_column(self, column: str) -> bool:
        return column in self._df.columns

    def _column_missing(self, column: str) -> list[ValidationIssue]:
        return [ValidationIssue(
            severity=ValidationSeverity.ERROR,
            issue_type="missing_column",
            message=f"Column not found: {column}",
            column=column,
        )]

    def _numeric(self, column: str) -> pd.DataFrame:
        """Group, year and numeric value of a column, without missing values."""
        df = self._df[[self._group, self._year, column]].copy()
        df[column] = pd.to_numeric(df[column], errors="coerce")
        return df.dropna(subset=[column, self._year])

    def check_missing_values(
        self,
        column: str,
        min_coverage: float = 0.5,
    ) -> list[ValidationIssue]:
        """
        Check for groups with too many missing values in a column.

        Args:
            column: Column to check.
            min_coverage: Minimum required share of non-missing values (0-1).

        Returns:
            List of validation issues.
        """
        if self._df.empty:
            return []
        if not self._has_column(column):
            return self._column_missing(column)

        issues = []
        coverage = self._df[column].notna().groupby(self._df[self._group], sort=False).agg(["mean", "sum"])
        for group, row in coverage.iterrows():
            pct = float(row["mean"])
            if pct < min_coverage:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    issue_type="low_coverage",
                    message=f"{group}: Only {pct:.1%} data coverage for {column}",
                    group=group,
                    column=column,
                    details={"coverage": pct, "data_points": int(row["sum"])},
                ))

        return issues

    def check_duplicates(self, keys: Sequence[str] | None = None) -> list[ValidationIssue]:
        """
        Check for repeated observations.

        Args:
            keys: Columns identifying one observation. Defaults to
                (group, year). Absent columns are ignored.

        Returns:
            One error per duplicated key.
        """
        if self._df.empty:
            return []

        keys = [k for k in (keys or (self._group, self._year)) if self._has_column(k)]
        if not keys:
            return []
        counts = self._df.groupby(keys, dropna=False, sort=False).size()

        issues = []
        for key, count in counts[counts > 1].items():
            key = key if isinstance(key, tuple) else (key,)
            labels = dict(zip(keys, key))
            year = labels.get(self._year)
            issues.append(ValidationIssue(
                severity=ValidationSeverity.ERROR,
                issue_type="duplicate",
                message=f"Duplicate observation ({count}x): " + ", ".join(f"{k}={v}" for k, v in labels.items()),
                group=labels.get(self._group),
                year=int(year) if year is not None and not pd.isna(year) else None,
                details={"count": int(count), "key": labels},
            ))

        return issues

    def check_outliers(
        self,
        column: str,
        method: str = "zscore",
        threshold: float = 3.0,
    ) -> list[ValidationIssue]:
        """
        Detect statistical outliers.

        Args:
            column: Column to check.
            method: Detection method ('zscore' or 'iqr').
            threshold: Threshold for outlier detection.

        Returns:
            List of validation issues for outliers.

        Raises:
            ValueError: For an unknown method.
        """
        if method not in ("zscore", "iqr"):
            raise ValueError(f"Unknown outlier method: {method}. Use 'zscore' or 'iqr'")
        if self._df.empty:
            return []
        if not self._has_column(column):
            return self._column_missing(column)

        issues = []
        df = self._numeric(column)
        if df.empty:
            return issues

        if method == "zscore":
            mean = df[column].mean()
            std = df[column].std()
            if std > 0:
                df["zscore"] = (df[column] - mean) / std
                outliers = df[abs(df["zscore"]) > threshold]

                for _, row in outliers.iterrows():
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.WARNING,
                        issue_type="outlier",
                        message=f"Outlier detected: {row[self._group]} {int(row[self._year])} = {row[column]:.2f} (z={row['zscore']:.2f})",
                        group=row[self._group],
                        column=column,
                        year=int(row[self._year]),
                        value=float(row[column]),
                        details={"zscore": float(row["zscore"])},
                    ))

        else:
            q1 = df[column].quantile(0.25)
            q3 = df[column].quantile(0.75)
            iqr = q3 - q1
            lower = q1 - threshold * iqr
            upper = q3 + threshold * iqr

            outliers = df[(df[column] < lower) | (df[column] > upper)]

            for _, row in outliers.iterrows():
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    issue_type="outlier",
                    message=f"Outlier detected: {row[self._group]} {int(row[self._year])} = {row[column]:.2f}",
                    group=row[self._group],
                    column=column,
                    year=int(row[self._year]),
                    value=float(row[column]),
                    details={"bounds": [float(lower), float(upper)]},
                ))

        return issues

    def check_time_series_gaps(
        self,
        column: str,
        max_gap_years: int = 3,
    ) -> list[ValidationIssue]:
        """
        Check for gaps in each group's series of a column.

        Args:
            column: Column to check.
            max_gap_years: Maximum acceptable gap in years.

        Returns:
            List of validation issues for gaps.
        """
        if self._df.empty:
            return []
        if not self._has_column(column):
            return self._column_missing(column)

        issues = []
        df = self._numeric(column)
        for group, rows in df.groupby(self._group, sort=False):
            years = sorted({int(y) for y in rows[self._year]})
            if len(years) < 2:
                continue

            for i in range(1, len(years)):
                gap = years[i] - years[i - 1]
                if gap > max_gap_years:
                    issues.append(ValidationIssue(
                        severity=ValidationSeverity.INFO,
                        issue_type="time_gap",
                        message=f"{group}: {gap}-year gap ({years[i-1]}-{years[i]})",
                        group=group,
                        column=column,
                        year=years[i - 1],
                        details={"gap_years": gap, "from_year": years[i - 1], "to_year": years[i]},
                    ))

        return issues

    def check_negative_values(
        self,
        column: str,
        allow_negative: bool = False,
    ) -> list[ValidationIssue]:
        """
        Check for unexpected negative values.

        Args:
            column: Column to check.
            allow_negative: Whether negatives are expected.

        Returns:
            List of validation issues.
        """
        if allow_negative or self._df.empty:
            return []
        if not self._has_column(column):
            return self._column_missing(column)

        issues = []
        df = self._numeric(column)
        for _, row in df[df[column] < 0].iterrows():
            issues.append(ValidationIssue(
                severity=ValidationSeverity.WARNING,
                issue_type="negative_value",
                message=f"Unexpected negative: {row[self._group]} {int(row[self._year])} = {row[column]}",
                group=row[self._group],
                column=column,
                year=int(row[self._year]),
                value=float(row[column]),
            ))

        return issues

    def check_province_codes(self, column: str = "kode_provinsi") -> list[ValidationIssue]:
        """
        Check province codes against the BPS province table.

        Datasets without the column (regional breakdowns) are skipped.

        Returns:
            One warning per unknown code.
        """
        if self._df.empty or not self._has_column(column):
            return []

        issues = []
        codes = self._df[[column, self._group]].dropna(subset=[column]).drop_duplicates(subset=[column])
        for _, row in codes.iterrows():
            code = str(row[column])
            if get_province(code) is None:
                issues.append(ValidationIssue(
                    severity=ValidationSeverity.WARNING,
                    issue_type="unknown_province",
                    message=f"Unknown province code: {code} ({row[self._group]})",
                    group=row[self._group],
                    column=column,
                    details={"code": code},
                ))

        return issues

    def validate_column(
        self,
        column: str,
        checks: Sequence[str] | None = None,
        allow_negative: bool = False,
    ) -> list[ValidationIssue]:
        """Run the per-column checks on one column."""
        all_checks = checks or ALL_CHECKS
        issues: list[ValidationIssue] = []

        if "missing" in all_checks:
            issues.extend(self.check_missing_values(column))

        if "outliers" in all_checks:
            issues.extend(self.check_outliers(column))

        if "gaps" in all_checks:
            issues.extend(self.check_time_series_gaps(column))

        if "negative" in all_checks:
            issues.extend(self.check_negative_values(column, allow_negative))

        return issues

    def validate(
        self,
        columns: Sequence[str],
        checks: Sequence[str] | None = None,
        keys: Sequence[str] | None = None,
        signed_columns: Iterable[str] = (),
    ) -> ValidationReport:
        """
        Run all validation checks on a record set.

        Args:
            columns: Metric columns to check.
            checks: List of checks to run. If None, run all.
            keys: Columns identifying one observation, for the duplicate check.
            signed_columns: Columns allowed to hold negative values.

        Returns:
            ValidationReport with all issues.
        """
        report = ValidationReport(
            timestamp=datetime.now(timezone.utc),
            records_checked=self.records_checked,
        )
        all_checks = checks or ALL_CHECKS
        unknown = set(all_checks) - set(ALL_CHECKS)
        if unknown:
            raise ValueError(f"Unknown checks: {', '.join(sorted(unknown))}")

        if "duplicates" in all_checks:
            report.issues.extend(self.check_duplicates(keys))

        if "provinces" in all_checks:
            report.issues.extend(self.check_province_codes())

        signed = set(signed_columns)
        for column in columns:
            report.issues.extend(self.validate_column(column, all_checks, column in signed))

        logger.info(
            "Validated %d records: %d errors, %d warnings",
            report.records_checked, report.error_count, report.warning_count,
        )
        return report


def validate_records(
    records: Iterable[Any],
    dataset_id: str,
    checks: Sequence[str] | None = None,
) -> ValidationReport:
    """
    Validate records of a catalogued dataset.

    Args:
        records: Records of the dataset.
        dataset_id: Dataset id, selecting the group, key and metric columns.
        checks: List of checks to run. If None, run all.

    Returns:
        ValidationReport with results.
    """
    info = catalog.require(dataset_id)
    validator = DataValidator(records, group=info.group_column)
    return validator.validate(
        info.value_columns,
        checks,
        keys=info.key_columns,
        signed_columns=info.signed_columns,
    )
