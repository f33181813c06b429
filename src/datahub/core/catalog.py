"""
Dataset Catalog - Registry of the BPS datasets with analytics.

Describes each dataset's columns (group key, strata, metrics) so loaders,
validators and the CLI can work from a dataset id alone.
"""

from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from datahub.config import Category
from datahub.core.methodology import get_methodology, has_analytics
from datahub.core.records import BPSRecord, get_record_type


@dataclass
class DatasetInfo:
    """Detailed dataset information."""
    dataset_id: str
    title: str
    category: Category
    description: str = ""
    publisher: str = "Badan Pusat Statistik"
    frequency: str = "annual"
    start_year: int | None = None
    end_year: int | None = None
    group_column: str = "nama_provinsi"
    value_columns: tuple[str, ...] = ()
    stratum_columns: tuple[str, ...] = ()
    signed_columns: frozenset[str] = field(default_factory=frozenset)  # May legitimately be negative

    @property
    def record_model(self) -> type[BPSRecord]:
        return get_record_type(self.dataset_id)

    @property
    def key_columns(self) -> tuple[str, ...]:
        """Columns identifying one observation."""
        return (self.group_column, "tahun", *self.stratum_columns)

    @property
    def has_analytics(self) -> bool:
        return has_analytics(self.dataset_id)

    @property
    def composite_name(self) -> str | None:
        return get_methodology(self.dataset_id).composite_name if self.has_analytics else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "dataset_id": self.dataset_id,
            "title": self.title,
            "category": self.category.value,
            "description": self.description,
            "publisher": self.publisher,
            "frequency": self.frequency,
            "start_year": self.start_year,
            "end_year": self.end_year,
            "group_column": self.group_column,
            "value_columns": list(self.value_columns),
            "stratum_columns": list(self.stratum_columns),
            "composite_name": self.composite_name,
        }


DATASETS: dict[str, DatasetInfo] = {
    info.dataset_id: info
    for info in [
        # ======================================================================
        # EDUCATION
        # ======================================================================
        DatasetInfo(
            "bps-edu-001",
            "Angka Partisipasi Sekolah (APS)",
            Category.EDUCATION,
            "School participation rate by province, age group and gender",
            start_year=2015,
            end_year=2023,
            value_columns=("aps",),
            stratum_columns=("kelompok_umur", "jenis_kelamin"),
        ),
        DatasetInfo(
            "bps-edu-002",
            "Rata-rata dan Harapan Lama Sekolah (RLS/HLS)",
            Category.EDUCATION,
            "Mean and expected years of schooling by region and gender",
            start_year=2015,
            end_year=2023,
            group_column="nama_wilayah",
            value_columns=("rls", "hls"),
            stratum_columns=("jenis_kelamin",),
        ),
        # ======================================================================
        # HEALTH
        # ======================================================================
        DatasetInfo(
            "bps-health-001",
            "Angka Harapan Hidup (AHH)",
            Category.HEALTH,
            "Life expectancy at birth by province, total and by gender",
            start_year=2010,
            end_year=2023,
            value_columns=("ahh_total", "ahh_lakilaki", "ahh_perempuan"),
        ),
        DatasetInfo(
            "bps-health-002",
            "Prevalensi Stunting dan Gizi Buruk",
            Category.HEALTH,
            "Stunting, wasting and underweight prevalence among children under five",
            start_year=2018,
            end_year=2023,
            value_columns=("stunting", "wasting", "underweight"),
        ),
        # ======================================================================
        # ECONOMY
        # ======================================================================
        DatasetInfo(
            "bps-econ-001",
            "Produk Domestik Regional Bruto (PDRB)",
            Category.ECONOMY,
            "Regional GDP at current and constant prices, per capita and growth",
            start_year=2010,
            end_year=2023,
            value_columns=("pdrb_adhb", "pdrb_adhk", "per_kapita_adhb", "pertumbuhan_ekonomi"),
            signed_columns=frozenset({"pertumbuhan_ekonomi"}),
        ),
        DatasetInfo(
            "bps-econ-003",
            "Tingkat Pengangguran Terbuka (TPT)",
            Category.ECONOMY,
            "Open unemployment rate by province, gender, age group and education",
            start_year=2015,
            end_year=2023,
            value_columns=("tpt",),
            stratum_columns=("jenis_kelamin", "kelompok_umur", "pendidikan"),
        ),
        DatasetInfo(
            "bps-econ-004",
            "Persentase Penduduk Miskin",
            Category.ECONOMY,
            "Poverty rate by province and urban/rural area",
            start_year=2015,
            end_year=2023,
            value_columns=("persentase_miskin", "garis_kemiskinan_perkapita"),
            stratum_columns=("wilayah",),
        ),
    ]
}


class DatasetCatalog:
    """
    Searchable registry of datasets.
    """

    def __init__(self, datasets: dict[str, DatasetInfo] | None = None):
        self._datasets = dict(DATASETS if datasets is None else datasets)

    def __len__(self) -> int:
        return len(self._datasets)

    def search(
        self,
        query: str | None = None,
        category: Category | str | None = None,
    ) -> list[DatasetInfo]:
        """
        Search datasets by text and/or category.

        Args:
            query: Search term matched against id, title and description.
            category: Category enum, its value ("Kesehatan") or its name
                ("health").

        Returns:
            List of matching DatasetInfo objects.
        """
        results = list(self._datasets.values())

        if query:
            query_lower = query.lower()
            results = [
                d for d in results
                if query_lower in d.dataset_id.lower()
                or query_lower in d.title.lower()
                or query_lower in d.description.lower()
            ]

        if category:
            wanted = category.value if isinstance(category, Category) else category.lower()
            results = [
                d for d in results
                if wanted in (d.category.value, d.category.value.lower(), d.category.name.lower())
            ]

        return results

    def get(self, dataset_id: str) -> DatasetInfo | None:
        """Get dataset by id."""
        return self._datasets.get(dataset_id)

    def require(self, dataset_id: str) -> DatasetInfo:
        """Get dataset by id, raising ValueError when it is not catalogued."""
        info = self.get(dataset_id)
        if info is None:
            raise ValueError(
                f"Unknown dataset: {dataset_id}. Available: {', '.join(self._datasets)}"
            )
        return info

    def list_categories(self) -> list[str]:
        """List the categories that have at least one dataset."""
        return sorted({d.category.value for d in self._datasets.values()})

    def list_by_category(self, category: Category | str) -> list[DatasetInfo]:
        return self.search(category=category)

    def to_dataframe(self) -> pd.DataFrame:
        """Export catalog as DataFrame."""
        return pd.DataFrame([d.to_dict() for d in self._datasets.values()])


# Global catalog instance
catalog = DatasetCatalog()


def search_datasets(
    query: str | None = None,
    category: Category | str | None = None,
) -> pd.DataFrame:
    """Search datasets and return as DataFrame."""
    return pd.DataFrame([d.to_dict() for d in catalog.search(query, category)])


def get_dataset_info(dataset_id: str) -> DatasetInfo | None:
    """Get detailed info about a dataset."""
    return catalog.get(dataset_id)


def list_categories() -> list[str]:
    """List all dataset categories."""
    return catalog.list_categories()
