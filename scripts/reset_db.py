from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from catalogo.db import create_engine_from_url
from catalogo.models import Base
from catalogo.settings import Settings

logger = logging.getLogger("catalogo.reset_db")


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Borra y recrea las tablas del catálogo (marcas, formatos, productos, importaciones)")
    p.add_argument("--yes", action="store_true", help="Confirmar el borrado sin preguntar")
    args = p.parse_args(argv)

    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO), format="%(levelname)s %(message)s")

    if not args.yes:
        answer = input(f"Se borrarán todos los datos de {settings.DATABASE_URL}. ¿Continuar? [s/N] ")
        if answer.strip().lower() not in ("s", "si", "sí", "y", "yes"):
            logger.info("Cancelado")
            return 1

    settings.ensure_instance()
    engine = create_engine_from_url(settings.DATABASE_URL)

    tables = ", ".join(Base.metadata.tables)
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    engine.dispose()

    logger.info("Base de datos reiniciada (%s): %s", settings.DATABASE_URL, tables)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
