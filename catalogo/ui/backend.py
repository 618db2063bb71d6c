from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from catalogo.db import session_scope
from catalogo.departamentos import DEPARTMENTS, department_fields
from catalogo.errors import CatalogoError
from catalogo.excel_import import Source
from catalogo.formatos import initial_fields
from catalogo.importacion import ImportService
from catalogo.models import Brand, ImportLog, Product
from catalogo.repos import BrandRepo, FormatRepo, ImportLogRepo, ProductRepo
from catalogo.settings import Settings

logger = logging.getLogger(__name__)


def _iso(d: datetime | None) -> str | None:
    return d.isoformat() if d else None


def _fail(e: CatalogoError) -> dict:
    return {"ok": False, "error": e.message, "code": e.error_code}


def _int_or_none(v: Any) -> int | None:
    if v is None or str(v).strip() == "":
        return None
    try:
        return int(v)
    except (TypeError, ValueError):
        return None


def brand_to_dict(b: Brand) -> dict:
    return {
        "id": b.id,
        "nombre": b.nombre,
        "descripcion": b.descripcion or "",
        "departamento": b.departamento,
        "logo_url": b.logo_url,
        "created_at": _iso(b.created_at),
    }


def product_to_dict(p: Product) -> dict:
    return {
        "id": p.id,
        "nombre": p.nombre,
        "clave": p.clave or "",
        "codigo": p.codigo or "",
        "codigo_barras": p.codigo_barras or "",
        "descripcion": p.descripcion or "",
        "precio": float(p.precio or 0),
        "medida": p.medida or "",
        "rendimiento_M2": float(p.rendimiento_M2 or 0),
        "precio_M2": float(p.precio_M2 or 0),
        "marca_id": p.marca_id,
        "formato_id": p.formato_id,
        "departamento": p.departamento,
        "unidad": p.unidad,
        "imagen_url": p.imagen_url,
        "especificaciones": p.especificaciones or {},
        "cantidad_stock": int(p.cantidad_stock or 0),
        "stock_minimo": int(p.stock_minimo or 0),
        "activo": bool(p.activo),
        "creado_en": _iso(p.creado_en),
    }


def import_log_to_dict(r: ImportLog) -> dict:
    return {
        "id": r.id,
        "brand_id": r.brand_id,
        "format_id": r.format_id,
        "file_name": r.file_name,
        "total_records": r.total_records,
        "successful_records": r.successful_records,
        "failed_records": r.failed_records,
        "status": r.status,
        "error_details": r.error_details,
        "created_at": _iso(r.created_at),
        "completed_at": _iso(r.completed_at),
    }


class CatalogBackend:
    """JSON-friendly API used by the HTTP server.

    Method names follow the calls made by the web client. Every method returns a
    dict with "ok"; domain errors become {"ok": False, "error", "code"}.
    """

    def __init__(self, session_factory, settings: Settings):
        self._session_factory = session_factory
        self._settings = settings
        self._imports = ImportService(session_factory, settings)

    def getAppInfo(self):
        return {"ok": True, "app_name": self._settings.APP_NAME, "db_url": self._settings.DATABASE_URL}

    # --- Brands ---
    def getBrands(self):
        with session_scope(self._session_factory) as session:
            rows = BrandRepo(session).list()
            return {"ok": True, "brands": [brand_to_dict(b) for b in rows]}

    def createBrand(self, nombre: str, descripcion: str = "", departamento: str | None = None):
        try:
            with session_scope(self._session_factory) as session:
                row = BrandRepo(session).create(nombre, descripcion, departamento)
                out = brand_to_dict(row)
        except CatalogoError as e:
            return _fail(e)
        logger.info("Marca creada: %s (%s)", out["nombre"], out["id"])
        return {"ok": True, "brand": out}

    def updateBrand(self, brand_id: int, updates: dict):
        try:
            with session_scope(self._session_factory) as session:
                row = BrandRepo(session).update(int(brand_id), updates or {})
                out = brand_to_dict(row)
        except CatalogoError as e:
            return _fail(e)
        return {"ok": True, "brand": out}

    def deleteBrand(self, brand_id: int):
        with session_scope(self._session_factory) as session:
            ok = BrandRepo(session).deactivate(int(brand_id))
        return {"ok": bool(ok)} if ok else {"ok": False, "error": "Marca no encontrada", "code": "NOT_FOUND"}

    def getBrandStats(self, brand_id: int):
        with session_scope(self._session_factory) as session:
            if BrandRepo(session).get(int(brand_id)) is None:
                return {"ok": False, "error": "Marca no encontrada", "code": "NOT_FOUND"}
            stats = ProductRepo(session).stats_by_brand(int(brand_id))
        stats["total_value"] = float(stats["total_value"])
        return {"ok": True, "stats": stats}

    # --- Departments ---
    def getDepartments(self):
        return {"ok": True, "departments": [{"id": d.id, "name": d.name} for d in DEPARTMENTS]}

    def getDepartmentFields(self, department_id: str):
        return {"ok": True, "fields": [f.to_dict() for f in department_fields(department_id)]}

    # --- Formats ---
    def getFormatsByBrand(self, brand_id: int):
        with session_scope(self._session_factory) as session:
            formats = FormatRepo(session).list_formats(int(brand_id))
        return {"ok": True, "formats": [f.to_dict() for f in formats]}

    def getInitialFormatFields(self, brand_id: int):
        with session_scope(self._session_factory) as session:
            brand = BrandRepo(session).get(int(brand_id))
            dept = brand.departamento if brand else None
        return {"ok": True, "fields": [f.to_dict() for f in initial_fields(dept)]}

    def createFormat(self, brand_id: int, name: str, description: str = "", fields: list | None = None):
        try:
            with session_scope(self._session_factory) as session:
                formato = FormatRepo(session).create_format(
                    {"name": name, "description": description, "fields": fields or [], "brand_id": brand_id}
                )
        except CatalogoError as e:
            return _fail(e)
        logger.info("Formato creado: %s (%s) para marca %s", formato.name, formato.id, brand_id)
        return {"ok": True, "format": formato.to_dict()}

    def updateFormat(self, format_id: int, updates: dict):
        try:
            with session_scope(self._session_factory) as session:
                formato = FormatRepo(session).update_format(int(format_id), updates or {})
        except CatalogoError as e:
            return _fail(e)
        return {"ok": True, "format": formato.to_dict()}

    def deleteFormat(self, format_id: int):
        with session_scope(self._session_factory) as session:
            ok = FormatRepo(session).delete_format(int(format_id))
        return {"ok": True} if ok else {"ok": False, "error": "Formato no encontrado", "code": "NOT_FOUND"}

    # --- Products ---
    def getProductsByBrand(self, brand_id: int):
        with session_scope(self._session_factory) as session:
            rows = ProductRepo(session).list_by_brand(int(brand_id))
            return {"ok": True, "products": [product_to_dict(p) for p in rows]}

    def createProduct(self, data: dict):
        try:
            with session_scope(self._session_factory) as session:
                row = ProductRepo(session).create(data or {})
                out = product_to_dict(row)
        except CatalogoError as e:
            return _fail(e)
        logger.info("Producto creado: %s (%s)", out["nombre"], out["id"])
        return {"ok": True, "product": out}

    def updateProduct(self, product_id: int, updates: dict):
        try:
            with session_scope(self._session_factory) as session:
                row = ProductRepo(session).update(int(product_id), updates or {})
                out = product_to_dict(row)
        except CatalogoError as e:
            return _fail(e)
        return {"ok": True, "product": out}

    def deleteProduct(self, product_id: int):
        with session_scope(self._session_factory) as session:
            ok = ProductRepo(session).deactivate(int(product_id))
        return {"ok": True} if ok else {"ok": False, "error": "Producto no encontrado", "code": "NOT_FOUND"}

    def searchProducts(
        self,
        q: str,
        brand_ids: list | None = None,
        price_min=None,
        price_max=None,
        department: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ):
        with session_scope(self._session_factory) as session:
            rows = ProductRepo(session).search(
                q,
                brand_ids=[int(b) for b in (brand_ids or [])],
                price_min=float(price_min) if price_min not in (None, "") else None,
                price_max=float(price_max) if price_max not in (None, "") else None,
                department=department or None,
                limit=int(limit or 50),
                offset=int(offset or 0),
            )
            return {"ok": True, "products": [product_to_dict(p) for p in rows]}

    # --- Excel import ---
    def previewExcel(self, brand_id: int, format_id, source: Source, filename: str | None = None):
        try:
            preview = self._imports.preview(source, int(brand_id), _int_or_none(format_id), filename=filename)
        except CatalogoError as e:
            return _fail(e)
        return {"ok": True, **preview}

    def importExcel(self, brand_id: int, format_id, source: Source, filename: str | None = None):
        try:
            res = self._imports.run(source, int(brand_id), _int_or_none(format_id), filename=filename)
        except CatalogoError as e:
            return _fail(e)
        return {
            "ok": True,
            "created": res.created_count,
            "failed": res.failed_count,
            "message": res.summary(),
            "warnings": res.warnings,
            "errors": [f.to_dict() for f in res.failures],
            "products": [product_to_dict(p) for p in res.created],
            "import_log_id": res.import_log_id,
        }

    def getImportHistory(self, brand_id=None, limit: int = 50):
        with session_scope(self._session_factory) as session:
            repo = ImportLogRepo(session)
            rows = repo.history(_int_or_none(brand_id), int(limit or 50))
            stats = repo.stats(_int_or_none(brand_id))
            return {"ok": True, "imports": [import_log_to_dict(r) for r in rows], "stats": stats}

    def cancelImport(self, log_id: int):
        with session_scope(self._session_factory) as session:
            repo = ImportLogRepo(session)
            if repo.get(int(log_id)) is None:
                return {"ok": False, "error": "Registro de importación no encontrado", "code": "NOT_FOUND"}
            ok = repo.cancel(int(log_id))
        if not ok:
            return {"ok": False, "error": "Solo se puede cancelar una importación en proceso", "code": "IMPORT_NOT_PROCESSING"}
        logger.info("Importación %s cancelada", log_id)
        return {"ok": True}
