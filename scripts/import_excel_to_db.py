from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from catalogo.db import create_engine_from_url, init_db, make_session_factory
from catalogo.errors import CatalogoError
from catalogo.importacion import ImportService
from catalogo.settings import Settings


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Importa productos desde un Excel usando un formato de la marca")
    p.add_argument("file", help="Ruta del archivo .xlsx/.xls")
    p.add_argument("--brand", type=int, required=True, help="ID de la marca")
    p.add_argument("--format", dest="format_id", type=int, required=True, help="ID del formato")
    p.add_argument("--preview", action="store_true", help="Solo mostrar la vista previa, sin crear productos")
    args = p.parse_args(argv)

    settings = Settings()
    logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL, logging.INFO), format="%(levelname)s %(message)s")
    settings.ensure_instance()

    engine = create_engine_from_url(settings.DATABASE_URL)
    init_db(engine)
    sf = make_session_factory(engine)

    xlsx = Path(args.file)
    if not xlsx.is_absolute():
        xlsx = xlsx.resolve()

    service = ImportService(sf, settings)
    try:
        if args.preview:
            preview = service.preview(xlsx, args.brand, args.format_id, filename=xlsx.name)
            print("columnas:", ", ".join(preview["columns"]))
            print("campos:", ", ".join(preview["fields"]))
            for w in preview["warnings"]:
                print("aviso:", w)
            for row in preview["rows"]:
                prod = row["product"]
                print(f"{row['fila']}: {prod['nombre']} precio={prod['precio']} rend={prod['rendimiento_M2']}")
            return 0

        result = service.run(xlsx, args.brand, args.format_id, filename=xlsx.name)
    except CatalogoError as e:
        print("error:", e.message, file=sys.stderr)
        return 1

    print(result.summary())
    for f in result.failures:
        print(f"  fila {f.fila} ({f.record.nombre}): {f.error}")
    return 0 if not result.failures else 3


if __name__ == "__main__":
    raise SystemExit(main())
