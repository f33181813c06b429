"""
Typed BPS records.

One frozen pydantic model per dataset. Field names follow the BPS column
names so the indicator calculators can read them by name. Unknown columns
are ignored, blank cells take the field default; missing required columns or malformed values raise
``pydantic.ValidationError``.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from datahub.config import AreaType, Gender


class BPSRecord(BaseModel):
    """Fields shared by every BPS record."""

    model_config = ConfigDict(frozen=True, extra="ignore", coerce_numbers_to_str=True)

    tahun: int = Field(ge=1900, le=2100)

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        # Empty CSV cells and pandas NaN arrive as "" or float("nan")
        if value == "" or (isinstance(value, float) and value != value):
            field = cls.model_fields[info.field_name]
            return None if field.is_required() else field.get_default()
        return value


class ProvinceRecord(BPSRecord):
    kode_provinsi: str
    nama_provinsi: str


# =============================================================================
# EDUCATION
# =============================================================================


class SchoolParticipationRecord(ProvinceRecord):
    """Angka Partisipasi Sekolah (bps-edu-001)."""

    kelompok_umur: str
    jenis_kelamin: str = Gender.TOTAL.value
    aps: float | None = Field(default=None, ge=0, le=100)


class SchoolingRecord(BPSRecord):
    """Rata-rata and Harapan Lama Sekolah (bps-edu-002)."""

    kode_wilayah: str
    nama_wilayah: str
    jenis_kelamin: str = Gender.TOTAL.value
    rls: float | None = Field(default=None, ge=0)
    hls: float | None = Field(default=None, ge=0)


# =============================================================================
# HEALTH
# =============================================================================


class LifeExpectancyRecord(ProvinceRecord):
    """Angka Harapan Hidup (bps-health-001), one row per province and year."""

    ahh_total: float | None = Field(default=None, gt=0)
    ahh_lakilaki: float | None = Field(default=None, gt=0)
    ahh_perempuan: float | None = Field(default=None, gt=0)
    metode: str | None = None


class NutritionRecord(ProvinceRecord):
    """Stunting, wasting and underweight prevalence (bps-health-002)."""

    stunting: float | None = Field(default=None, ge=0, le=100)
    wasting: float | None = Field(default=None, ge=0, le=100)
    underweight: float | None = Field(default=None, ge=0, le=100)


# =============================================================================
# ECONOMY
# =============================================================================


class RegionalGDPRecord(ProvinceRecord):
    """Produk Domestik Regional Bruto (bps-econ-001)."""

    pdrb_adhb: float | None = None
    pdrb_adhk: float | None = None
    per_kapita_adhb: float | None = None
    pertumbuhan_ekonomi: float | None = None


class UnemploymentRecord(ProvinceRecord):
    """Tingkat Pengangguran Terbuka (bps-econ-003)."""

    jenis_kelamin: str = Gender.TOTAL.value
    kelompok_umur: str = "Total"
    pendidikan: str = "Total"
    tpt: float | None = Field(default=None, ge=0, le=100)
    jumlah_pengangguran: int | None = None
    angkatan_kerja: int | None = None


class PovertyRecord(ProvinceRecord):
    """Persentase penduduk miskin (bps-econ-004)."""

    wilayah: str = AreaType.TOTAL.value
    persentase_miskin: float | None = Field(default=None, ge=0, le=100)
    jumlah_penduduk_miskin: int | None = None
    garis_kemiskinan_perkapita: float | None = None


RECORD_TYPES: dict[str, type[BPSRecord]] = {
    "bps-edu-001": SchoolParticipationRecord,
    "bps-edu-002": SchoolingRecord,
    "bps-health-001": LifeExpectancyRecord,
    "bps-health-002": NutritionRecord,
    "bps-econ-001": RegionalGDPRecord,
    "bps-econ-003": UnemploymentRecord,
    "bps-econ-004": PovertyRecord,
}


def get_record_type(dataset_id: str) -> type[BPSRecord]:
    """Get the record model of a dataset, raising ValueError for unknown ids."""
    try:
        return RECORD_TYPES[dataset_id]
    except KeyError:
        raise ValueError(f"Unknown dataset: {dataset_id}") from None


def parse_records(
    rows: Iterable[Mapping[str, Any]],
    model: type[BPSRecord] | str,
) -> list[BPSRecord]:
    """
    Validate raw rows into typed records.

    Args:
        rows: Mappings of column name to value.
        model: Record model, or a dataset id.

    Returns:
        Typed records in input order.

    Raises:
        pydantic.ValidationError: If a row does not match the schema.
    """
    if isinstance(model, str):
        model = get_record_type(model)
    return [model.model_validate(dict(row)) for row in rows]
