from __future__ import annotations

import logging

from flask import Flask, Response, jsonify, request
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from catalogo.settings import Settings
from catalogo.ui.backend import CatalogBackend

logger = logging.getLogger(__name__)

ALLOWED_EXCEL_SUFFIXES = (".xlsx", ".xls")


def _status(payload: dict) -> int:
    if payload.get("ok"):
        return 200
    code = payload.get("code")
    if code == "NOT_FOUND":
        return 404
    return 400


def create_app(session_factory, settings: Settings) -> Flask:
    backend = CatalogBackend(session_factory=session_factory, settings=settings)

    app = Flask(__name__, static_folder=None)
    app.config["MAX_CONTENT_LENGTH"] = settings.max_upload_bytes

    def _ok(payload):
        return jsonify(payload), _status(payload)

    @app.errorhandler(RequestEntityTooLarge)
    def too_large(_e):
        return jsonify({"ok": False, "error": f"El archivo supera {settings.MAX_UPLOAD_MB}MB"}), 413

    @app.errorhandler(HTTPException)
    def http_error(e: HTTPException):
        return jsonify({"ok": False, "error": e.description or e.name}), e.code or 500

    @app.errorhandler(Exception)
    def unexpected(e: Exception):
        logger.exception("Error no controlado en %s", request.path)
        return jsonify({"ok": False, "error": "Error interno"}), 500

    @app.get("/health")
    def health() -> Response:
        return jsonify({"ok": True, "app": settings.APP_NAME})

    @app.get("/api/getAppInfo")
    def api_get_app_info():
        return _ok(backend.getAppInfo())

    # --- Brands ---
    @app.get("/api/brands")
    def api_get_brands():
        return _ok(backend.getBrands())

    @app.post("/api/brands")
    def api_create_brand():
        data = request.get_json(silent=True) or {}
        return _ok(backend.createBrand(data.get("nombre", ""), data.get("descripcion", ""), data.get("departamento")))

    @app.post("/api/brands/<int:brand_id>")
    def api_update_brand(brand_id: int):
        data = request.get_json(silent=True) or {}
        return _ok(backend.updateBrand(brand_id, data))

    @app.delete("/api/brands/<int:brand_id>")
    def api_delete_brand(brand_id: int):
        return _ok(backend.deleteBrand(brand_id))

    @app.get("/api/brands/<int:brand_id>/stats")
    def api_brand_stats(brand_id: int):
        return _ok(backend.getBrandStats(brand_id))

    # --- Departments ---
    @app.get("/api/departments")
    def api_departments():
        return _ok(backend.getDepartments())

    @app.get("/api/departments/<department_id>/fields")
    def api_department_fields(department_id: str):
        return _ok(backend.getDepartmentFields(department_id))

    # --- Formats ---
    @app.get("/api/brands/<int:brand_id>/formats")
    def api_get_formats(brand_id: int):
        return _ok(backend.getFormatsByBrand(brand_id))

    @app.get("/api/brands/<int:brand_id>/formats/initial-fields")
    def api_initial_format_fields(brand_id: int):
        return _ok(backend.getInitialFormatFields(brand_id))

    @app.post("/api/brands/<int:brand_id>/formats")
    def api_create_format(brand_id: int):
        data = request.get_json(silent=True) or {}
        return _ok(backend.createFormat(brand_id, data.get("name", ""), data.get("description", ""), data.get("fields")))

    @app.post("/api/formats/<int:format_id>")
    def api_update_format(format_id: int):
        data = request.get_json(silent=True) or {}
        return _ok(backend.updateFormat(format_id, data))

    @app.delete("/api/formats/<int:format_id>")
    def api_delete_format(format_id: int):
        return _ok(backend.deleteFormat(format_id))

    # --- Products ---
    @app.get("/api/brands/<int:brand_id>/products")
    def api_get_products(brand_id: int):
        return _ok(backend.getProductsByBrand(brand_id))

    @app.post("/api/products")
    def api_create_product():
        data = request.get_json(silent=True) or {}
        return _ok(backend.createProduct(data))

    @app.post("/api/products/<int:product_id>")
    def api_update_product(product_id: int):
        data = request.get_json(silent=True) or {}
        return _ok(backend.updateProduct(product_id, data))

    @app.delete("/api/products/<int:product_id>")
    def api_delete_product(product_id: int):
        return _ok(backend.deleteProduct(product_id))

    @app.get("/api/products/search")
    def api_search_products():
        args = request.args
        return _ok(
            backend.searchProducts(
                args.get("q", ""),
                brand_ids=args.getlist("brand_id"),
                price_min=args.get("price_min"),
                price_max=args.get("price_max"),
                department=args.get("department"),
                limit=args.get("limit", 50, type=int),
                offset=args.get("offset", 0, type=int),
            )
        )

    # --- Excel import ---
    def _uploaded_excel():
        f = request.files.get("file")
        if f is None or not f.filename:
            return None, {"ok": False, "error": "Archivo inválido"}
        if not f.filename.lower().endswith(ALLOWED_EXCEL_SUFFIXES):
            return None, {"ok": False, "error": "El archivo debe ser .xlsx o .xls"}
        return f, None

    @app.post("/api/brands/<int:brand_id>/import/preview")
    def api_import_preview(brand_id: int):
        f, err = _uploaded_excel()
        if err:
            return _ok(err)
        return _ok(backend.previewExcel(brand_id, request.form.get("format_id"), f.read(), filename=f.filename))

    @app.post("/api/brands/<int:brand_id>/import")
    def api_import(brand_id: int):
        f, err = _uploaded_excel()
        if err:
            return _ok(err)
        return _ok(backend.importExcel(brand_id, request.form.get("format_id"), f.read(), filename=f.filename))

    @app.get("/api/imports")
    def api_import_history():
        return _ok(backend.getImportHistory(request.args.get("brand_id"), request.args.get("limit", 50, type=int)))

    @app.post("/api/imports/<int:log_id>/cancel")
    def api_cancel_import(log_id: int):
        return _ok(backend.cancelImport(log_id))

    return app
