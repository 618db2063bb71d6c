from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from catalogo.models import Base


def create_engine_from_url(database_url: str) -> Engine:
    # sqlite pragmas: WAL improves concurrency; foreign_keys for integrity
    if database_url.startswith("sqlite:"):
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            # One shared connection so every session sees the same in-memory DB.
            engine = create_engine(
                "sqlite://",
                future=True,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
            with engine.connect() as conn:
                conn.exec_driver_sql("PRAGMA foreign_keys=ON;")
            return engine

        engine = create_engine(
            database_url,
            future=True,
            connect_args={"check_same_thread": False},
        )
        with engine.connect() as conn:
            conn.exec_driver_sql("PRAGMA journal_mode=WAL;")
            conn.exec_driver_sql("PRAGMA foreign_keys=ON;")
        return engine

    return create_engine(database_url, future=True)


def supports_parallel_writes(session_factory: sessionmaker[Session]) -> bool:
    """False when every session shares one DBAPI connection (in-memory SQLite)."""
    bind = session_factory.kw.get("bind")
    if bind is None:
        return False
    return not isinstance(bind.pool, StaticPool)


def init_db(engine: Engine) -> None:
    Base.metadata.create_all(engine)


def make_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, expire_on_commit=False, future=True)


@contextmanager
def session_scope(session_factory: sessionmaker[Session]) -> Iterator[Session]:
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
