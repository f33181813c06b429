"""
Configuration settings and constants for DataHub Analytics.
"""

from enum import Enum
from pathlib import Path
from typing import NamedTuple

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# SETTINGS
# =============================================================================


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="DATAHUB_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Logging
    log_level: str = Field(default="INFO")
    log_file: Path | None = Field(default=None)

    # Forecasting
    forecast_periods: int = Field(default=3)
    forecast_z: float = Field(default=1.96)

    # Analysis defaults
    life_expectancy_target: float = Field(default=75.0)
    default_age_group: str = Field(default="7-12")
    min_convergence_groups: int = Field(default=3)


settings = Settings()


# =============================================================================
# ENUMS
# =============================================================================


class Category(str, Enum):
    """Dataset categories."""

    EDUCATION = "Pendidikan"
    HEALTH = "Kesehatan"
    ECONOMY = "Ekonomi"


class Gender(str, Enum):
    """Values of the ``jenis_kelamin`` stratum."""

    MALE = "Laki-laki"
    FEMALE = "Perempuan"
    TOTAL = "Total"


class AreaType(str, Enum):
    """Values of the ``wilayah`` stratum."""

    URBAN = "Perkotaan"
    RURAL = "Perdesaan"
    TOTAL = "Total"


# Short codes some BPS extracts use instead of the full labels
MALE_LABELS = frozenset({Gender.MALE.value, "L"})
FEMALE_LABELS = frozenset({Gender.FEMALE.value, "P"})

YOUTH_AGE_GROUP = "15-24"
TOTAL_AGE_GROUPS = frozenset({"Total", "15+"})

BASIC_EDUCATION_LEVELS = frozenset({"SD", "SMP"})
HIGHER_EDUCATION_LEVELS = frozenset({"SMA", "Diploma", "Sarjana"})


# =============================================================================
# PROVINCE DATA
# =============================================================================


class Province(NamedTuple):
    """Province information."""

    code: str
    name: str
    island_group: str


# 34 provinces as published by BPS
PROVINCES: dict[str, Province] = {
    # SUMATERA (10 provinces)
    "11": Province("11", "Aceh", "Sumatera"),
    "12": Province("12", "Sumatera Utara", "Sumatera"),
    "13": Province("13", "Sumatera Barat", "Sumatera"),
    "14": Province("14", "Riau", "Sumatera"),
    "15": Province("15", "Jambi", "Sumatera"),
    "16": Province("16", "Sumatera Selatan", "Sumatera"),
    "17": Province("17", "Bengkulu", "Sumatera"),
    "18": Province("18", "Lampung", "Sumatera"),
    "19": Province("19", "Kepulauan Bangka Belitung", "Sumatera"),
    "21": Province("21", "Kepulauan Riau", "Sumatera"),
    # JAWA (6 provinces)
    "31": Province("31", "DKI Jakarta", "Jawa"),
    "32": Province("32", "Jawa Barat", "Jawa"),
    "33": Province("33", "Jawa Tengah", "Jawa"),
    "34": Province("34", "DI Yogyakarta", "Jawa"),
    "35": Province("35", "Jawa Timur", "Jawa"),
    "36": Province("36", "Banten", "Jawa"),
    # BALI & NUSA TENGGARA (3 provinces)
    "51": Province("51", "Bali", "Bali & Nusa Tenggara"),
    "52": Province("52", "Nusa Tenggara Barat", "Bali & Nusa Tenggara"),
    "53": Province("53", "Nusa Tenggara Timur", "Bali & Nusa Tenggara"),
    # KALIMANTAN (5 provinces)
    "61": Province("61", "Kalimantan Barat", "Kalimantan"),
    "62": Province("62", "Kalimantan Tengah", "Kalimantan"),
    "63": Province("63", "Kalimantan Selatan", "Kalimantan"),
    "64": Province("64", "Kalimantan Timur", "Kalimantan"),
    "65": Province("65", "Kalimantan Utara", "Kalimantan"),
    # SULAWESI (6 provinces)
    "71": Province("71", "Sulawesi Utara", "Sulawesi"),
    "72": Province("72", "Sulawesi Tengah", "Sulawesi"),
    "73": Province("73", "Sulawesi Selatan", "Sulawesi"),
    "74": Province("74", "Sulawesi Tenggara", "Sulawesi"),
    "75": Province("75", "Gorontalo", "Sulawesi"),
    "76": Province("76", "Sulawesi Barat", "Sulawesi"),
    # MALUKU & PAPUA (4 provinces)
    "81": Province("81", "Maluku", "Maluku & Papua"),
    "82": Province("82", "Maluku Utara", "Maluku & Papua"),
    "91": Province("91", "Papua Barat", "Maluku & Papua"),
    "94": Province("94", "Papua", "Maluku & Papua"),
}

# Quick lookup helpers
PROVINCE_NAMES = {p.name: p.code for p in PROVINCES.values()}


def get_provinces_by_island_group(island_group: str) -> list[Province]:
    """Get all provinces in an island group."""
    return [p for p in PROVINCES.values() if p.island_group == island_group]


def get_province(code_or_name: str) -> Province | None:
    """Get province by BPS code or by name."""
    if code_or_name in PROVINCES:
        return PROVINCES[code_or_name]
    code = PROVINCE_NAMES.get(code_or_name)
    return PROVINCES[code] if code else None
