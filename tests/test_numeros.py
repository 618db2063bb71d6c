from __future__ import annotations

from decimal import Decimal

import pytest

from catalogo.numeros import money, parse_float, parse_int, parse_money, round_half_up, to_number
from catalogo.settings import Settings


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("$1,234.56", 1234.56),
        ("1.234,56", 1234.56),
        ("1234,56", 1234.56),
        ("1,234", 1234.0),
        ("1.234.567", 1234567.0),
        ("350 MXN", 350.0),
        (99, 99.0),
        ("abc", None),
        ("", None),
        (None, None),
        (True, None),
    ],
)
def test_parse_money(raw, expected):
    assert parse_money(raw) == expected


def test_lenient_and_strict_numbers():
    assert parse_float("12.5 pzs") == 12.5
    assert parse_float("pzs 12") is None
    assert parse_float(float("nan")) is None
    assert parse_int("7 cajas") == 7
    assert to_number("12.5") == 12.5
    assert to_number("12.5 pzs") is None
    assert to_number(" ") is None


def test_rounding_is_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(11.11) == 11
    assert money(0.125) == Decimal("0.13")
    assert money(Decimal("10")) == Decimal("10.00")


def test_settings_normalize_values(tmp_path):
    s = Settings(INSTANCE_DIR=tmp_path, DATABASE_URL="", IMPORT_MAPPING_MODE="HEADER", IMPORT_MAX_WORKERS=0, MAX_UPLOAD_MB=2)
    assert s.DATABASE_URL == f"sqlite:///{(tmp_path / 'catalogo.sqlite').resolve().as_posix()}"
    assert s.IMPORT_MAPPING_MODE == "header"
    assert s.IMPORT_MAX_WORKERS == 1
    assert s.max_upload_bytes == 2 * 1024 * 1024

    assert Settings(INSTANCE_DIR=tmp_path, DATABASE_URL="sqlite://").DATABASE_URL == "sqlite://"
    assert Settings(INSTANCE_DIR=tmp_path, IMPORT_MAPPING_MODE="otro").IMPORT_MAPPING_MODE == "positional"
