"""Tests for datahub.core.validation: data quality checks."""

from __future__ import annotations

import pytest

from datahub.core.records import parse_records
from datahub.core.validation import (
    DataValidator,
    ValidationSeverity,
    validate_records,
)


def _row(group: str, year: int, value: float | None, code: str = "11") -> dict:
    return {"kode_provinsi": code, "nama_provinsi": group, "tahun": year, "v": value}


class TestMissingValues:
    def test_low_coverage(self) -> None:
        rows = [_row("A", 2021, 1.0), _row("A", 2022, None), _row("A", 2023, None)]
        rows += [_row("B", y, 1.0) for y in (2021, 2022, 2023)]
        issues = DataValidator(rows).check_missing_values("v")
        assert len(issues) == 1
        assert issues[0].group == "A"
        assert issues[0].severity == ValidationSeverity.WARNING
        assert issues[0].details["data_points"] == 1

    def test_missing_column(self) -> None:
        issues = DataValidator([_row("A", 2023, 1.0)]).check_missing_values("absent")
        assert issues[0].issue_type == "missing_column"
        assert issues[0].severity == ValidationSeverity.ERROR

    def test_empty(self) -> None:
        assert DataValidator([]).check_missing_values("v") == []


class TestDuplicates:
    def test_repeated_key(self) -> None:
        rows = [_row("A", 2021, 1.0), _row("A", 2021, 2.0), _row("A", 2022, 1.0)]
        issues = DataValidator(rows).check_duplicates()
        assert len(issues) == 1
        assert issues[0].severity == ValidationSeverity.ERROR
        assert issues[0].year == 2021
        assert issues[0].details["count"] == 2

    def test_strata_distinguish(self) -> None:
        rows = [dict(_row("A", 2021, 1.0), wilayah=w) for w in ("Total", "Perkotaan")]
        validator = DataValidator(rows)
        assert len(validator.check_duplicates()) == 1
        assert validator.check_duplicates(["nama_provinsi", "tahun", "wilayah"]) == []


class TestOutliers:
    @pytest.fixture
    def rows(self) -> list[dict]:
        rows = [_row(f"G{i}", 2023, 10.0) for i in range(20)]
        rows.append(_row("G20", 2023, 100.0))
        return rows

    def test_zscore(self, rows: list[dict]) -> None:
        issues = DataValidator(rows).check_outliers("v")
        assert [i.group for i in issues] == ["G20"]
        assert issues[0].value == 100.0
        assert issues[0].details["zscore"] > 3

    def test_iqr(self, rows: list[dict]) -> None:
        issues = DataValidator(rows).check_outliers("v", method="iqr", threshold=1.5)
        assert [i.group for i in issues] == ["G20"]

    def test_no_variance(self) -> None:
        rows = [_row(f"G{i}", 2023, 5.0) for i in range(5)]
        assert DataValidator(rows).check_outliers("v") == []

    def test_unknown_method(self, rows: list[dict]) -> None:
        with pytest.raises(ValueError, match="Unknown outlier method"):
            DataValidator(rows).check_outliers("v", method="mad")


class TestTimeGaps:
    def test_gap_reported(self) -> None:
        rows = [_row("A", 2010, 1.0), _row("A", 2015, 1.0), _row("B", 2010, 1.0), _row("B", 2012, 1.0)]
        issues = DataValidator(rows).check_time_series_gaps("v")
        assert len(issues) == 1
        assert issues[0].group == "A"
        assert issues[0].severity == ValidationSeverity.INFO
        assert issues[0].details == {"gap_years": 5, "from_year": 2010, "to_year": 2015}


class TestNegativeValues:
    def test_flagged(self) -> None:
        rows = [_row("A", 2022, 1.0), _row("A", 2023, -1.0)]
        issues = DataValidator(rows).check_negative_values("v")
        assert [(i.group, i.year, i.value) for i in issues] == [("A", 2023, -1.0)]

    def test_allowed(self) -> None:
        rows = [_row("A", 2023, -1.0)]
        assert DataValidator(rows).check_negative_values("v", allow_negative=True) == []


class TestProvinceCodes:
    def test_unknown_code(self) -> None:
        rows = [_row("A", 2023, 1.0, code="11"), _row("Z", 2023, 1.0, code="99")]
        issues = DataValidator(rows).check_province_codes()
        assert len(issues) == 1
        assert issues[0].group == "Z"
        assert issues[0].details == {"code": "99"}

    def test_column_absent(self, schooling_rows: list[dict]) -> None:
        assert DataValidator(schooling_rows, group="nama_wilayah").check_province_codes() == []


class TestValidate:
    def test_clean_data(self) -> None:
        rows = [_row("A", y, float(y - 2000)) for y in (2021, 2022, 2023)]
        report = DataValidator(rows).validate(["v"])
        assert report.is_valid
        assert report.records_checked == 3
        assert report.issues == []

    def test_duplicates_invalidate(self) -> None:
        rows = [_row("A", 2021, 1.0), _row("A", 2021, 1.0)]
        report = DataValidator(rows).validate(["v"])
        assert not report.is_valid
        assert report.error_count == 1

    def test_selected_checks(self) -> None:
        rows = [_row("A", 2021, 1.0), _row("A", 2021, -1.0)]
        report = DataValidator(rows).validate(["v"], checks=["negative"])
        assert report.is_valid
        assert report.warning_count == 1

    def test_unknown_check(self) -> None:
        with pytest.raises(ValueError, match="Unknown checks"):
            DataValidator([_row("A", 2021, 1.0)]).validate(["v"], checks=["spelling"])

    def test_report_export(self) -> None:
        rows = [_row("A", 2021, 1.0), _row("A", 2021, 1.0)]
        report = DataValidator(rows).validate(["v"])
        data = report.to_dict()
        assert data["is_valid"] is False
        assert data["issues"][0]["severity"] == "error"
        df = report.to_dataframe()
        assert list(df["issue_type"]) == ["duplicate"]


class TestValidateRecords:
    def test_catalogued_dataset(self, poverty_rows: list[dict]) -> None:
        report = validate_records(parse_records(poverty_rows, "bps-econ-004"), "bps-econ-004")
        assert report.records_checked == 18
        assert report.error_count == 0
        assert report.is_valid

    def test_signed_columns(self, gdp_rows: list[dict]) -> None:
        rows = [dict(r, pertumbuhan_ekonomi=-1.5) for r in gdp_rows]
        records = parse_records(rows, "bps-econ-001")
        report = validate_records(records, "bps-econ-001", checks=["negative"])
        assert report.issues == []

    def test_unknown_dataset(self) -> None:
        with pytest.raises(ValueError, match="Unknown dataset"):
            validate_records([], "bps-xyz-001")
