"""Tests for datahub.core.catalog: dataset registry."""

from __future__ import annotations

import pytest

from datahub.config import Category
from datahub.core.catalog import (
    DATASETS,
    DatasetCatalog,
    catalog,
    get_dataset_info,
    list_categories,
    search_datasets,
)
from datahub.core.records import PovertyRecord


class TestCatalog:
    def test_seven_datasets(self) -> None:
        assert len(catalog) == 7

    def test_every_dataset_is_analyzable(self) -> None:
        for info in DATASETS.values():
            assert info.has_analytics
            assert info.composite_name
            assert info.record_model is not None

    def test_search_text(self) -> None:
        assert [d.dataset_id for d in catalog.search("miskin")] == ["bps-econ-004"]

    def test_search_category(self) -> None:
        assert len(catalog.search(category=Category.EDUCATION)) == 2
        assert len(catalog.search(category="Ekonomi")) == 3
        assert len(catalog.search(category="health")) == 2

    def test_search_combined(self) -> None:
        results = catalog.search("stunting", category="health")
        assert [d.dataset_id for d in results] == ["bps-health-002"]

    def test_get_and_require(self) -> None:
        assert catalog.get("bps-xyz-001") is None
        with pytest.raises(ValueError, match="Unknown dataset"):
            catalog.require("bps-xyz-001")

    def test_list_categories(self) -> None:
        assert list_categories() == ["Ekonomi", "Kesehatan", "Pendidikan"]

    def test_custom_registry(self) -> None:
        subset = DatasetCatalog({"bps-econ-004": DATASETS["bps-econ-004"]})
        assert len(subset) == 1
        assert subset.list_by_category("economy")[0].dataset_id == "bps-econ-004"


class TestDatasetInfo:
    def test_key_columns(self) -> None:
        info = get_dataset_info("bps-econ-003")
        assert info.key_columns == ("nama_provinsi", "tahun", "jenis_kelamin", "kelompok_umur", "pendidikan")

    def test_regional_group_column(self) -> None:
        assert get_dataset_info("bps-edu-002").key_columns[0] == "nama_wilayah"

    def test_record_model(self) -> None:
        assert get_dataset_info("bps-econ-004").record_model is PovertyRecord

    def test_to_dict(self) -> None:
        data = get_dataset_info("bps-edu-001").to_dict()
        assert data["category"] == "Pendidikan"
        assert data["composite_name"] == "Provincial Performance Index"
        assert data["value_columns"] == ["aps"]


class TestFrames:
    def test_to_dataframe(self) -> None:
        df = catalog.to_dataframe()
        assert len(df) == 7
        assert "composite_name" in df.columns

    def test_search_datasets(self) -> None:
        df = search_datasets(category="Kesehatan")
        assert sorted(df["dataset_id"]) == ["bps-health-001", "bps-health-002"]
