from __future__ import annotations

import io
from datetime import date, datetime
from typing import Any, Callable

import pytest
import xlwt
from openpyxl import Workbook

from catalogo.db import create_engine_from_url, init_db, make_session_factory, session_scope
from catalogo.repos import BrandRepo, FormatRepo
from catalogo.settings import Settings


def build_xlsx(rows: list[list[Any]], sheet_title: str = "Hoja1") -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title
    for r in rows:
        ws.append(r)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


def build_xls(rows: list[list[Any]], sheet_title: str = "Hoja1") -> bytes:
    """Legacy .xls workbook; None leaves the cell empty, dates get a date format."""
    wb = xlwt.Workbook()
    ws = wb.add_sheet(sheet_title)
    date_style = xlwt.easyxf(num_format_str="YYYY-MM-DD")
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            if value is None:
                continue
            if isinstance(value, (date, datetime)):
                ws.write(r, c, value, date_style)
            else:
                ws.write(r, c, value)
    buf = io.BytesIO()
    wb.save(buf)
    return buf.getvalue()


@pytest.fixture
def make_xls() -> Callable[..., bytes]:
    return build_xls


@pytest.fixture
def make_xlsx() -> Callable[..., bytes]:
    return build_xlsx


@pytest.fixture
def engine():
    eng = create_engine_from_url("sqlite://")
    init_db(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return make_session_factory(engine)


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        INSTANCE_DIR=tmp_path,
        DATABASE_URL="sqlite://",
        IMPORT_MAPPING_MODE="positional",
        IMPORT_STRICT_COLUMNS=False,
        IMPORT_VALIDATE_ROWS=False,
        IMPORT_MAX_WORKERS=1,
        IMPORT_PREVIEW_ROWS=5,
        MAX_UPLOAD_MB=10,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def settings(tmp_path) -> Settings:
    return make_settings(tmp_path)


@pytest.fixture
def brand_id(session_factory) -> int:
    with session_scope(session_factory) as session:
        return BrandRepo(session).create("Porcelanite", "Pisos y muros", "recubrimientos").id


@pytest.fixture
def format_id(session_factory, brand_id) -> int:
    # Only system fields: nombre, precio, unidad, medida, rendimiento_M2, precio_M2, clave, ...
    with session_scope(session_factory) as session:
        return FormatRepo(session).create_format(
            {"name": "Azulejos", "brand_id": brand_id, "fields": [{"name": "nombre", "type": "text"}]}
        ).id
