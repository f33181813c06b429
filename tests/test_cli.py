"""Tests for the datahub command line interface."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import pandas as pd
import pytest
from typer.testing import CliRunner

from datahub.cli.main import app

runner = CliRunner(env={"COLUMNS": "200"})


@pytest.fixture(autouse=True)
def restore_root_logger():
    # Every invocation reconfigures the root logger
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


def _write_csv(path: Path, rows: list[dict]) -> Path:
    pd.DataFrame(rows).to_csv(path, index=False)
    return path


class TestCatalogCommands:
    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.stdout

    def test_list(self) -> None:
        result = runner.invoke(app, ["catalog", "list"])
        assert result.exit_code == 0
        assert "bps-edu-001" in result.stdout
        assert "bps-econ-004" in result.stdout

    def test_list_by_category(self) -> None:
        result = runner.invoke(app, ["catalog", "list", "-c", "health"])
        assert result.exit_code == 0
        assert "bps-health-001" in result.stdout
        assert "bps-edu-001" not in result.stdout

    def test_show(self) -> None:
        result = runner.invoke(app, ["catalog", "show", "bps-edu-001"])
        assert result.exit_code == 0
        assert "kelompok_umur" in result.stdout

    def test_show_unknown(self) -> None:
        result = runner.invoke(app, ["catalog", "show", "nope"])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_methodology(self) -> None:
        result = runner.invoke(app, ["catalog", "methodology", "bps-econ-004"])
        assert result.exit_code == 0
        assert "Poverty Alleviation Index" in result.stdout

    def test_methodology_without_analytics(self) -> None:
        result = runner.invoke(app, ["catalog", "methodology", "bps-econ-002"])
        assert result.exit_code == 1


class TestAnalyzeDataset:
    def test_table(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, ["analyze", "dataset", str(poverty_csv), "bps-econ-004"])
        assert result.exit_code == 0
        assert "BALI" in result.stdout
        assert "PAPUA" in result.stdout

    def test_json(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, ["analyze", "dataset", str(poverty_csv), "bps-econ-004", "--json"])
        assert result.exit_code == 0
        data = json.loads(result.stdout[result.stdout.index("{"):])
        assert data["dataset_id"] == "bps-econ-004"
        assert [s["group"] for s in data["composite"]["scores"]] == ["BALI", "ACEH", "PAPUA"]

    def test_incomplete_composite(self, tmp_dir: Path, gdp_rows: list[dict]) -> None:
        path = _write_csv(tmp_dir / "pdrb.csv", gdp_rows)
        result = runner.invoke(app, ["analyze", "dataset", str(path), "bps-econ-001"])
        assert result.exit_code == 0
        assert "No group has every metric" in result.stdout


class TestValidateCommand:
    def test_valid(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, ["validate", str(poverty_csv), "bps-econ-004"])
        assert result.exit_code == 0
        assert "Data is valid" in result.stdout

    def test_duplicates_fail(self, tmp_dir: Path, poverty_rows: list[dict]) -> None:
        path = _write_csv(tmp_dir / "dup.csv", poverty_rows + poverty_rows[:1])
        result = runner.invoke(app, ["validate", str(path), "bps-econ-004"])
        assert result.exit_code == 1
        assert "duplicate" in result.stdout

    def test_unknown_check(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, ["validate", str(poverty_csv), "bps-econ-004", "-c", "spelling"])
        assert result.exit_code == 1
        assert "Unknown checks" in result.stdout


class TestAnalyzeCommands:
    def test_reduction(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, [
            "analyze", "growth", str(poverty_csv), "bps-econ-004",
            "-w", "wilayah=Total", "--reduction", "-i", "poverty_reduction",
        ])
        assert result.exit_code == 0
        assert "BALI" in result.stdout

    def test_trend(self, life_expectancy_json: Path) -> None:
        result = runner.invoke(app, ["analyze", "trend", str(life_expectancy_json), "bps-health-001", "-t", "75"])
        assert result.exit_code == 0
        assert "ACEH" in result.stdout

    def test_forecast(self, life_expectancy_json: Path) -> None:
        result = runner.invoke(app, ["analyze", "forecast", str(life_expectancy_json), "bps-health-001", "ACEH"])
        assert result.exit_code == 0
        assert "2024" in result.stdout
        assert "Recommendation" in result.stdout

    def test_forecast_unknown_group(self, life_expectancy_json: Path) -> None:
        result = runner.invoke(app, ["analyze", "forecast", str(life_expectancy_json), "bps-health-001", "JAMBI"])
        assert result.exit_code == 1

    def test_parity(self, tmp_dir: Path, aps_rows: list[dict]) -> None:
        path = _write_csv(tmp_dir / "aps.csv", aps_rows)
        result = runner.invoke(app, [
            "analyze", "parity", str(path), "bps-edu-001", "-w", "kelompok_umur=7-12", "-y", "2023",
        ])
        assert result.exit_code == 0
        assert "PAPUA" in result.stdout

    def test_convergence(self, tmp_dir: Path, gdp_rows: list[dict]) -> None:
        path = _write_csv(tmp_dir / "pdrb.csv", gdp_rows)
        result = runner.invoke(app, [
            "analyze", "convergence", str(path), "bps-econ-001", "--value", "per_kapita_adhb",
        ])
        assert result.exit_code == 0
        assert "Converging" in result.stdout

    def test_deviation(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, ["analyze", "deviation", str(poverty_csv), "bps-econ-004", "-w", "wilayah=Total"])
        assert result.exit_code == 0
        assert "PAPUA" in result.stdout

    def test_rank(self, life_expectancy_json: Path) -> None:
        result = runner.invoke(app, [
            "analyze", "rank", str(life_expectancy_json), "bps-health-001",
            "-m", "ahh_total", "-m", "ahh_perempuan", "-m", "ahh_lakilaki", "--weights", "0.6,0.2,0.2",
        ])
        assert result.exit_code == 0
        assert result.stdout.index("BALI") < result.stdout.index("ACEH") < result.stdout.index("PAPUA")

    def test_rank_inverted_metric(self, life_expectancy_json: Path) -> None:
        result = runner.invoke(app, [
            "analyze", "rank", str(life_expectancy_json), "bps-health-001",
            "-m", "ahh_total", "-m", "ahh_perempuan", "-m", "ahh_lakilaki",
            "-x", "ahh_total", "-x", "ahh_perempuan", "-x", "ahh_lakilaki",
        ])
        assert result.exit_code == 0
        assert result.stdout.index("PAPUA") < result.stdout.index("BALI")

    def test_rank_bad_weights(self, life_expectancy_json: Path) -> None:
        result = runner.invoke(app, [
            "analyze", "rank", str(life_expectancy_json), "bps-health-001",
            "-m", "ahh_total", "-m", "ahh_perempuan", "-m", "ahh_lakilaki", "--weights", "0.5,0.5,0.5",
        ])
        assert result.exit_code == 1
        assert "sum to 1.0" in result.stdout

    def test_rank_needs_three_metrics(self, life_expectancy_json: Path) -> None:
        result = runner.invoke(app, [
            "analyze", "rank", str(life_expectancy_json), "bps-health-001", "-m", "ahh_total",
        ])
        assert result.exit_code == 1
        assert "exactly three metrics" in result.stdout

    def test_disparity(self, life_expectancy_json: Path) -> None:
        result = runner.invoke(app, [
            "analyze", "disparity", str(life_expectancy_json), "bps-health-001", "--value", "ahh_total",
        ])
        assert result.exit_code == 0
        assert "2023" in result.stdout

    def test_no_matching_records(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, ["analyze", "deviation", str(poverty_csv), "bps-econ-004", "-w", "wilayah=Kota"])
        assert result.exit_code == 0
        assert "No records found" in result.stdout


class TestInputErrors:
    def test_unsupported_file(self, tmp_dir: Path) -> None:
        path = tmp_dir / "data.txt"
        path.write_text("x", encoding="utf-8")
        result = runner.invoke(app, ["analyze", "deviation", str(path), "bps-econ-004"])
        assert result.exit_code == 1
        assert "Unsupported format" in result.stdout

    def test_missing_file(self, tmp_dir: Path) -> None:
        result = runner.invoke(app, ["analyze", "deviation", str(tmp_dir / "absent.csv"), "bps-econ-004"])
        assert result.exit_code == 1

    def test_schema_mismatch(self, tmp_dir: Path) -> None:
        path = tmp_dir / "bad.csv"
        path.write_text("tahun,kode_provinsi,nama_provinsi,persentase_miskin\n2023,11,ACEH,150\n", encoding="utf-8")
        result = runner.invoke(app, ["validate", str(path), "bps-econ-004"])
        assert result.exit_code == 1
        assert "schema" in result.stdout

    def test_invalid_filter(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, ["analyze", "deviation", str(poverty_csv), "bps-econ-004", "-w", "wilayah"])
        assert result.exit_code == 1
        assert "Invalid filter" in result.stdout

    def test_unknown_dataset(self, poverty_csv: Path) -> None:
        result = runner.invoke(app, ["analyze", "deviation", str(poverty_csv), "bps-xyz-001"])
        assert result.exit_code == 1
