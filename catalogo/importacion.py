from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Sequence

from catalogo.db import session_scope, supports_parallel_writes
from catalogo.derivacion import ProductoDerivado, derive_product
from catalogo.errors import FileParseError, FormatMissingError, NotFoundError
from catalogo.excel_import import HojaLeida, Source, read_spreadsheet
from catalogo.formatos import (
    SYSTEM_FIELD_NAMES,
    Formato,
    format_data_to_specifications,
    validate_data_against_format,
)
from catalogo.mapeo import map_rows
from catalogo.models import Product
from catalogo.repos import BrandRepo, FormatRepo, ImportLogRepo, ProductRepo
from catalogo.settings import Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FalloImportacion:
    index: int
    record: ProductoDerivado
    error: str

    @property
    def fila(self) -> int:
        return self.index + 1

    def to_dict(self) -> dict[str, Any]:
        return {"fila": self.fila, "nombre": self.record.nombre, "error": self.error}


@dataclass
class ResultadoImportacion:
    created: list[Product] = field(default_factory=list)
    failures: list[FalloImportacion] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    import_log_id: int | None = None

    @property
    def created_count(self) -> int:
        return len(self.created)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    def summary(self) -> str:
        if self.failures:
            return (
                "Importación completada con errores: "
                f"{self.created_count} productos creados, {self.failed_count} errores"
            )
        return f"Importación exitosa: {self.created_count} productos creados"


class RowCommitter:
    """Creates each record independently; one failing row never stops the rest.

    Records are committed in input order, one transaction per row. With
    max_workers > 1 rows are submitted to a bounded pool, and created/failures
    are still reported in input order. Any exception raised while creating a
    row becomes a failure of that row.
    """

    def __init__(self, session_factory, *, max_workers: int = 1):
        self._session_factory = session_factory
        workers = max(1, int(max_workers or 1))
        if workers > 1 and not supports_parallel_writes(session_factory):
            logger.info("La base de datos usa una sola conexión; las filas se guardan en secuencia")
            workers = 1
        self._max_workers = workers

    def _create_one(self, record: ProductoDerivado, brand_id: int, formato_id: int | None) -> Product:
        with session_scope(self._session_factory) as session:
            return ProductRepo(session).create(replace(record, marca_id=brand_id), formato_id=formato_id)

    def commit(
        self,
        records: Sequence[ProductoDerivado],
        brand_id: int,
        *,
        formato_id: int | None = None,
        indexes: Sequence[int] | None = None,
    ) -> ResultadoImportacion:
        idx = list(indexes) if indexes is not None else list(range(len(records)))
        result = ResultadoImportacion()

        if self._max_workers == 1:
            for i, rec in zip(idx, records):
                try:
                    product = self._create_one(rec, brand_id, formato_id)
                except Exception as e:
                    self._record_failure(result, i, rec, e)
                    continue
                result.created.append(product)
                logger.debug("Producto creado: %s", product.nombre)
            return result

        with ThreadPoolExecutor(max_workers=self._max_workers) as pool:
            futures = [pool.submit(self._create_one, rec, brand_id, formato_id) for rec in records]
            for i, rec, fut in zip(idx, records, futures):
                try:
                    result.created.append(fut.result())
                except Exception as e:
                    self._record_failure(result, i, rec, e)
        return result

    @staticmethod
    def _record_failure(result: ResultadoImportacion, index: int, rec: ProductoDerivado, e: Exception) -> None:
        msg = str(e) or e.__class__.__name__
        logger.warning("Error creando producto (fila %s) %s: %s", index + 1, rec.nombre, msg)
        result.failures.append(FalloImportacion(index=index, record=rec, error=msg))


@dataclass(frozen=True)
class FilaPreparada:
    index: int
    raw: dict[str, Any]
    mapped: dict[str, Any]
    record: ProductoDerivado
    errors: list[str] = field(default_factory=list)


class ImportService:
    def __init__(self, session_factory, settings: Settings):
        self._session_factory = session_factory
        self._settings = settings

    def load_format(self, brand_id: int, format_id: int | None) -> Formato:
        if format_id in (None, ""):
            raise FormatMissingError("Debe seleccionar un archivo y un formato")
        with session_scope(self._session_factory) as session:
            if BrandRepo(session).get(int(brand_id)) is None:
                raise NotFoundError("Marca no encontrada")
            formato = FormatRepo(session).get_format(int(format_id))
        if formato is None or formato.brand_id != int(brand_id):
            raise FormatMissingError("Formato no encontrado")
        return formato

    def read(self, source: Source, filename: str | None = None) -> HojaLeida:
        hoja = read_spreadsheet(source, filename=filename)
        if not hoja.rows:
            raise FileParseError("El archivo no contiene filas de datos")
        return hoja

    def prepare(self, hoja: HojaLeida, formato: Formato, brand_id: int) -> tuple[list[FilaPreparada], list[str]]:
        mapped_rows, warnings = map_rows(
            hoja.rows,
            hoja.columns,
            formato.fields,
            mode=self._settings.IMPORT_MAPPING_MODE,
            strict=self._settings.IMPORT_STRICT_COLUMNS,
        )
        filas: list[FilaPreparada] = []
        for i, (raw, mapped) in enumerate(zip(hoja.rows, mapped_rows)):
            record = derive_product(mapped, i, brand_id)
            custom = {k: v for k, v in mapped.items() if k not in SYSTEM_FIELD_NAMES}
            if custom:
                record = replace(record, especificaciones=format_data_to_specifications(custom, formato))
            filas.append(
                FilaPreparada(index=i, raw=raw, mapped=mapped, record=record, errors=self._row_errors(mapped, record, formato))
            )
        return filas, warnings

    @staticmethod
    def _row_errors(mapped: dict[str, Any], record: ProductoDerivado, formato: Formato) -> list[str]:
        # System fields are checked on their derived values, custom fields on the raw mapped ones.
        data = dict(mapped)
        for name in SYSTEM_FIELD_NAMES:
            if hasattr(record, name):
                data[name] = getattr(record, name)
        _ok, errors = validate_data_against_format(data, formato)
        return errors

    def preview(
        self, source: Source, brand_id: int, format_id: int | None, filename: str | None = None
    ) -> dict[str, Any]:
        formato = self.load_format(brand_id, format_id)
        hoja = self.read(source, filename)
        filas, warnings = self.prepare(hoja, formato, brand_id)
        limit = max(0, int(self._settings.IMPORT_PREVIEW_ROWS))
        return {
            "columns": hoja.columns,
            "fields": formato.field_names,
            "total_rows": len(filas),
            "warnings": warnings,
            "invalid_rows": sum(1 for f in filas if f.errors),
            "rows": [
                {
                    "fila": f.index + 1,
                    "raw": {k: _jsonable(v) for k, v in f.raw.items()},
                    "mapped": {k: _jsonable(v) for k, v in f.mapped.items()},
                    "product": f.record.to_dict(),
                    "errors": f.errors,
                }
                for f in filas[:limit]
            ],
        }

    def run(
        self, source: Source, brand_id: int, format_id: int | None, filename: str | None = None
    ) -> ResultadoImportacion:
        """Full import: read, map, derive, commit row by row and record an import log.

        Selection and parse errors are raised before anything is written.
        """
        formato = self.load_format(brand_id, format_id)
        hoja = self.read(source, filename)
        filas, warnings = self.prepare(hoja, formato, brand_id)

        to_commit = filas
        rejected: list[FalloImportacion] = []
        if self._settings.IMPORT_VALIDATE_ROWS:
            to_commit = [f for f in filas if not f.errors]
            rejected = [FalloImportacion(f.index, f.record, "; ".join(f.errors)) for f in filas if f.errors]
            for r in rejected:
                logger.warning("Fila %s rechazada por el formato: %s", r.fila, r.error)

        with session_scope(self._session_factory) as session:
            log = ImportLogRepo(session).create(
                brand_id=int(brand_id),
                format_id=formato.id,
                file_name=filename or f"import_{datetime.utcnow():%Y%m%d%H%M%S}.xlsx",
                total_records=len(filas),
            )
            log_id = log.id
            log.status = "processing"

        committer = RowCommitter(self._session_factory, max_workers=self._settings.IMPORT_MAX_WORKERS)
        try:
            result = committer.commit(
                [f.record for f in to_commit],
                int(brand_id),
                formato_id=formato.id,
                indexes=[f.index for f in to_commit],
            )
        except Exception as e:
            self._finish_log(log_id, status="failed", error_details={"error": str(e)})
            raise

        result.failures = sorted([*rejected, *result.failures], key=lambda f: f.index)
        result.warnings = warnings
        result.import_log_id = log_id
        self._finish_log(
            log_id,
            status="completed",
            successful_records=result.created_count,
            failed_records=result.failed_count,
            error_details=[f.to_dict() for f in result.failures] or None,
        )

        logger.info(
            "Importación %s (marca %s, formato %s): %s creados, %s errores",
            log_id,
            brand_id,
            formato.id,
            result.created_count,
            result.failed_count,
        )
        return result

    def _finish_log(self, log_id: int, **updates: Any) -> None:
        with session_scope(self._session_factory) as session:
            repo = ImportLogRepo(session)
            log = repo.get(log_id)
            if log is not None and log.status != "processing":
                # Cancelled while running: keep the cancellation, record the counts.
                logger.info("Importación %s cancelada durante el proceso", log_id)
                updates.pop("status", None)
                updates.pop("error_details", None)
                updates.pop("completed_at", None)
                repo.update(log_id, **updates)
                return
            repo.update(log_id, completed_at=datetime.utcnow(), **updates)


def _jsonable(v: Any) -> Any:
    if isinstance(v, datetime):
        return v.isoformat()
    if isinstance(v, (str, int, float, bool)) or v is None:
        return v
    return str(v)
