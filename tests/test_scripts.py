from __future__ import annotations

import importlib.util
from pathlib import Path

import pytest
from sqlalchemy import create_engine, inspect

from catalogo.db import create_engine_from_url, init_db, make_session_factory, session_scope
from catalogo.repos import BrandRepo

from conftest import make_settings

SCRIPTS = Path(__file__).resolve().parents[1] / "scripts"


def _load(name: str):
    spec = importlib.util.spec_from_file_location(f"scripts_{name}", SCRIPTS / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


@pytest.fixture
def file_settings(tmp_path):
    return make_settings(tmp_path, DATABASE_URL=f"sqlite:///{(tmp_path / 'reset.sqlite').as_posix()}")


def test_reset_db_recreates_empty_tables(file_settings, monkeypatch):
    engine = create_engine_from_url(file_settings.DATABASE_URL)
    init_db(engine)
    with session_scope(make_session_factory(engine)) as s:
        BrandRepo(s).create("Marca")
    engine.dispose()

    reset_db = _load("reset_db")
    monkeypatch.setattr(reset_db, "Settings", lambda: file_settings)
    assert reset_db.main(["--yes"]) == 0

    check = create_engine(file_settings.DATABASE_URL)
    assert {"brands", "formats", "products", "import_logs"} <= set(inspect(check).get_table_names())
    with check.connect() as conn:
        assert conn.exec_driver_sql("SELECT COUNT(*) FROM brands").scalar() == 0
    check.dispose()


def test_reset_db_asks_before_dropping(file_settings, monkeypatch):
    reset_db = _load("reset_db")
    monkeypatch.setattr(reset_db, "Settings", lambda: file_settings)
    monkeypatch.setattr("builtins.input", lambda _prompt: "n")
    assert reset_db.main([]) == 1
    assert not Path(file_settings.DATABASE_URL[len("sqlite:///") :]).exists()
