"""Shared test fixtures for DataHub tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


@pytest.fixture
def tmp_dir(tmp_path: Path) -> Path:
    """Provide a temporary directory for test outputs."""
    return tmp_path


@pytest.fixture
def aps_rows() -> list[dict]:
    """School participation for two provinces, 2021-2023, ages 7-12 and 13-15."""
    rows = []
    # (province, code, year, male, female, total)
    data = [
        ("ACEH", "11", 2021, 98.0, 99.0, 98.5),
        ("ACEH", "11", 2022, 98.5, 99.5, 99.0),
        ("ACEH", "11", 2023, 99.0, 99.4, 99.2),
        ("PAPUA", "94", 2021, 80.0, 72.0, 76.0),
        ("PAPUA", "94", 2022, 82.0, 75.0, 78.5),
        ("PAPUA", "94", 2023, 84.0, 78.0, 81.0),
        ("BALI", "51", 2021, 99.0, 99.0, 99.0),
        ("BALI", "51", 2022, 99.2, 99.4, 99.3),
        ("BALI", "51", 2023, 99.5, 99.6, 99.55),
    ]
    for name, code, year, male, female, total in data:
        for gender, value in (("Laki-laki", male), ("Perempuan", female), ("Total", total)):
            rows.append({
                "tahun": year,
                "kode_provinsi": code,
                "nama_provinsi": name,
                "kelompok_umur": "7-12",
                "jenis_kelamin": gender,
                "aps": value,
            })
        rows.append({
            "tahun": year,
            "kode_provinsi": code,
            "nama_provinsi": name,
            "kelompok_umur": "13-15",
            "jenis_kelamin": "Total",
            "aps": total - 10,
        })
    return rows


@pytest.fixture
def schooling_rows() -> list[dict]:
    """RLS/HLS by region and gender for 2022 and 2023."""
    rows = []
    # (region, code, year, gender, rls, hls)
    data = [
        ("ACEH", "11", 2022, "Total", 9.0, 14.0),
        ("ACEH", "11", 2022, "Laki-laki", 9.3, 13.9),
        ("ACEH", "11", 2022, "Perempuan", 8.7, 14.1),
        ("ACEH", "11", 2023, "Total", 9.2, 14.1),
        ("ACEH", "11", 2023, "Laki-laki", 9.4, 14.0),
        ("ACEH", "11", 2023, "Perempuan", 9.0, 14.2),
        ("PAPUA", "94", 2022, "Total", 6.0, 11.0),
        ("PAPUA", "94", 2022, "Laki-laki", 6.8, 11.5),
        ("PAPUA", "94", 2022, "Perempuan", 5.2, 10.5),
        ("PAPUA", "94", 2023, "Total", 6.4, 11.2),
        ("PAPUA", "94", 2023, "Laki-laki", 7.0, 11.6),
        ("PAPUA", "94", 2023, "Perempuan", 5.8, 10.8),
        ("DKI JAKARTA", "31", 2022, "Total", 11.0, 13.0),
        ("DKI JAKARTA", "31", 2022, "Laki-laki", 11.1, 13.0),
        ("DKI JAKARTA", "31", 2022, "Perempuan", 10.9, 13.0),
        ("DKI JAKARTA", "31", 2023, "Total", 11.1, 13.1),
        ("DKI JAKARTA", "31", 2023, "Laki-laki", 11.2, 13.1),
        ("DKI JAKARTA", "31", 2023, "Perempuan", 11.0, 13.1),
    ]
    for name, code, year, gender, rls, hls in data:
        rows.append({
            "tahun": year,
            "kode_wilayah": code,
            "nama_wilayah": name,
            "jenis_kelamin": gender,
            "rls": rls,
            "hls": hls,
        })
    return rows


@pytest.fixture
def life_expectancy_rows() -> list[dict]:
    """Wide life expectancy records, 2019-2023."""
    rows = []
    series = {
        # province: (code, start total, yearly gain, female - male gap)
        "ACEH": ("11", 69.5, 0.4, 4.0),
        "BALI": ("51", 71.5, 0.2, 3.8),
        "PAPUA": ("94", 65.0, 0.05, 7.0),
    }
    for name, (code, start, gain, gap) in series.items():
        for i, year in enumerate(range(2019, 2024)):
            total = start + gain * i
            rows.append({
                "tahun": year,
                "kode_provinsi": code,
                "nama_provinsi": name,
                "ahh_total": total,
                "ahh_lakilaki": total - gap / 2,
                "ahh_perempuan": total + gap / 2,
            })
    return rows


@pytest.fixture
def nutrition_rows() -> list[dict]:
    """Stunting, wasting and underweight prevalence, 2022-2023."""
    data = [
        ("ACEH", "11", 2022, 31.2, 7.0, 16.0),
        ("ACEH", "11", 2023, 29.4, 6.8, 15.5),
        ("BALI", "51", 2022, 8.0, 4.0, 6.0),
        ("BALI", "51", 2023, 7.2, 3.5, 5.5),
        ("NTT", "53", 2022, 35.3, 10.0, 25.0),
        ("NTT", "53", 2023, 37.9, 11.0, 26.0),
    ]
    return [
        {
            "tahun": year,
            "kode_provinsi": code,
            "nama_provinsi": name,
            "stunting": stunting,
            "wasting": wasting,
            "underweight": underweight,
        }
        for name, code, year, stunting, wasting, underweight in data
    ]


@pytest.fixture
def gdp_rows() -> list[dict]:
    """Per capita regional GDP (million rupiah), 2020-2023."""
    series = {
        "DKI JAKARTA": ("31", [270.0, 274.0, 290.0, 300.0]),
        "JAWA TENGAH": ("33", [38.0, 40.0, 42.5, 45.0]),
        "PAPUA": ("94", [56.0, 60.0, 65.0, 70.0]),
    }
    return [
        {
            "tahun": 2020 + i,
            "kode_provinsi": code,
            "nama_provinsi": name,
            "per_kapita_adhb": value,
        }
        for name, (code, values) in series.items()
        for i, value in enumerate(values)
    ]


@pytest.fixture
def sector_shares() -> dict[str, dict[str, float]]:
    return {
        "DKI JAKARTA": {"jasa": 40.0, "perdagangan": 30.0, "industri": 30.0},
        "JAWA TENGAH": {"industri": 35.0, "pertanian": 25.0, "perdagangan": 20.0, "jasa": 20.0},
        "PAPUA": {"pertambangan": 70.0, "pertanian": 20.0, "jasa": 10.0},
    }


@pytest.fixture
def unemployment_rows() -> list[dict]:
    """TPT by age group and education for 2023, totals for 2022 and 2023."""
    rows = []

    def row(name: str, code: str, year: int, tpt: float, age: str = "Total", edu: str = "Total") -> dict:
        return {
            "tahun": year,
            "kode_provinsi": code,
            "nama_provinsi": name,
            "jenis_kelamin": "Total",
            "kelompok_umur": age,
            "pendidikan": edu,
            "tpt": tpt,
        }

    # (province, code, total 2022, total 2023, youth 2023, SD, SMP, SMA, Sarjana)
    data = [
        ("BANTEN", "36", 8.0, 7.5, 22.5, 4.0, 6.0, 10.0, 8.0),
        ("BALI", "51", 4.5, 3.0, 6.0, 2.0, 2.0, 2.5, 2.5),
        ("SULAWESI BARAT", "76", 3.0, 2.5, 6.25, 2.0, 3.0, 3.5, 4.0),
    ]
    for name, code, total_2022, total, youth, sd, smp, sma, sarjana in data:
        rows.append(row(name, code, 2022, total_2022))
        rows.append(row(name, code, 2023, total))
        rows.append(row(name, code, 2023, youth, age="15-24"))
        for edu, tpt in (("SD", sd), ("SMP", smp), ("SMA", sma), ("Sarjana", sarjana)):
            rows.append(row(name, code, 2023, tpt, edu=edu))
    return rows


@pytest.fixture
def poverty_rows() -> list[dict]:
    """Poverty rate by area, 2022-2023."""
    rows = []
    # (province, code, year, total, urban, rural)
    data = [
        ("ACEH", "11", 2022, 14.8, 10.5, 17.0),
        ("ACEH", "11", 2023, 14.4, 10.4, 16.4),
        ("BALI", "51", 2022, 4.5, 3.9, 5.9),
        ("BALI", "51", 2023, 4.2, 3.7, 5.5),
        ("PAPUA", "94", 2022, 26.8, 4.5, 35.0),
        ("PAPUA", "94", 2023, 26.0, 4.3, 34.0),
    ]
    for name, code, year, total, urban, rural in data:
        for area, value in (("Total", total), ("Perkotaan", urban), ("Perdesaan", rural)):
            rows.append({
                "tahun": year,
                "kode_provinsi": code,
                "nama_provinsi": name,
                "wilayah": area,
                "persentase_miskin": value,
            })
    return rows


@pytest.fixture
def poverty_csv(tmp_dir: Path, poverty_rows: list[dict]) -> Path:
    """Poverty rows written as CSV."""
    path = tmp_dir / "kemiskinan.csv"
    header = list(poverty_rows[0])
    lines = [",".join(header)]
    for row in poverty_rows:
        lines.append(",".join(str(row[h]) for h in header))
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@pytest.fixture
def life_expectancy_json(tmp_dir: Path, life_expectancy_rows: list[dict]) -> Path:
    """Life expectancy rows written as JSON records."""
    path = tmp_dir / "ahh.json"
    path.write_text(json.dumps(life_expectancy_rows), encoding="utf-8")
    return path
