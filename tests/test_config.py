"""Tests for datahub.config and datahub.logging."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from datahub.config import (
    PROVINCES,
    Category,
    Settings,
    get_province,
    get_provinces_by_island_group,
)
from datahub.logging import _parse_log_level, setup_logging


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        if handler not in handlers:
            handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSettings:
    def test_defaults(self) -> None:
        s = Settings(_env_file=None)
        assert s.log_level == "INFO"
        assert s.log_file is None
        assert s.forecast_periods == 3
        assert s.forecast_z == pytest.approx(1.96)
        assert s.life_expectancy_target == pytest.approx(75.0)
        assert s.min_convergence_groups == 3

    def test_environment_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("DATAHUB_FORECAST_PERIODS", "5")
        monkeypatch.setenv("DATAHUB_DEFAULT_AGE_GROUP", "13-15")
        s = Settings(_env_file=None)
        assert s.forecast_periods == 5
        assert s.default_age_group == "13-15"


class TestProvinces:
    def test_table(self) -> None:
        assert len(PROVINCES) == 34

    def test_lookup_by_code(self) -> None:
        assert get_province("11").name == "Aceh"

    def test_lookup_by_name(self) -> None:
        province = get_province("Bali")
        assert province is not None
        assert province.code == "51"
        assert province.island_group == "Bali & Nusa Tenggara"

    def test_unknown(self) -> None:
        assert get_province("99") is None

    def test_island_group(self) -> None:
        jawa = get_provinces_by_island_group("Jawa")
        assert len(jawa) == 6
        assert {p.code for p in jawa} == {"31", "32", "33", "34", "35", "36"}

    def test_category_values(self) -> None:
        assert Category("Kesehatan") is Category.HEALTH


class TestLogging:
    def test_terminal_level(self, restore_root_logger: logging.Logger) -> None:
        setup_logging()
        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.handlers[0].level == logging.WARNING

        setup_logging(verbose=True)
        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.handlers[0].level == logging.DEBUG

    def test_log_file(self, restore_root_logger: logging.Logger, tmp_dir: Path) -> None:
        path = tmp_dir / "logs" / "datahub.log"
        setup_logging(log_file=path)

        file_handlers = [h for h in restore_root_logger.handlers if isinstance(h, RotatingFileHandler)]
        assert len(file_handlers) == 1

        logging.getLogger("datahub.test").info("loaded records")
        file_handlers[0].flush()
        assert "loaded records" in path.read_text(encoding="utf-8")

    def test_parse_log_level(self) -> None:
        assert _parse_log_level("debug") == logging.DEBUG
        assert _parse_log_level("nonsense") == logging.INFO
