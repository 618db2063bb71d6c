from __future__ import annotations

from dataclasses import asdict, is_dataclass
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from catalogo.errors import FieldValidationError, NotFoundError, RecordCreationError
from catalogo.formatos import Formato, normalize_fields, parse_fields
from catalogo.models import Brand, Format, ImportLog, Product
from catalogo.numeros import money, to_number

# Columns a caller may set on a product; everything else is ignored.
PRODUCT_COLUMNS = (
    "nombre",
    "clave",
    "codigo",
    "codigo_barras",
    "descripcion",
    "precio",
    "medida",
    "rendimiento_M2",
    "precio_M2",
    "marca_id",
    "formato_id",
    "departamento",
    "unidad",
    "imagen_url",
    "especificaciones",
    "cantidad_stock",
    "stock_minimo",
    "activo",
)

CANCELLED_MESSAGE = "Importación cancelada por el usuario"

# Stored as NULL when empty so the per-brand unique key ignores them.
_NULLABLE_IDS = ("clave", "codigo", "codigo_barras")


# Column limits; SQLite does not enforce String(n).
_MAX_LENGTHS = (
    ("nombre", 255, "El nombre del producto no puede exceder 255 caracteres"),
    ("clave", 100, "La clave no puede exceder 100 caracteres"),
    ("codigo", 100, "El código no puede exceder 100 caracteres"),
    ("codigo_barras", 50, "El código de barras no puede exceder 50 caracteres"),
)


def validate_product_values(values: dict[str, Any]) -> list[str]:
    """Range and length checks on already cleaned product values."""
    errors: list[str] = []
    precio = values.get("precio")
    if precio is not None and precio < 0:
        errors.append("El precio debe ser un número mayor o igual a 0")
    for key, limit, message in _MAX_LENGTHS:
        if len(str(values.get(key) or "")) > limit:
            errors.append(message)
    stock = to_number(values.get("cantidad_stock"))
    if stock is not None and stock < 0:
        errors.append("La cantidad en stock no puede ser negativa")
    minimo = to_number(values.get("stock_minimo"))
    if minimo is not None and minimo < 0:
        errors.append("El stock mínimo no puede ser negativo")
    return errors


def _clean_product_values(data: dict[str, Any]) -> dict[str, Any]:
    values = {k: data[k] for k in PRODUCT_COLUMNS if k in data}
    # Legacy payloads use "Medida".
    if "medida" not in values and "Medida" in data:
        values["medida"] = data["Medida"]
    for k in _NULLABLE_IDS:
        if k in values:
            v = str(values[k] or "").strip()
            values[k] = v or None
    for k in ("precio", "precio_M2"):
        if k in values and values[k] is not None:
            values[k] = money(values[k])
    if "medida" in values:
        values["medida"] = str(values["medida"] or "")
    return values


class BrandRepo:
    def __init__(self, session: Session):
        self.session = session

    def list(self) -> list[Brand]:
        stmt = select(Brand).where(Brand.is_active.is_(True)).order_by(Brand.created_at.desc(), Brand.id.desc())
        return list(self.session.execute(stmt).scalars().all())

    def get(self, brand_id: int) -> Brand | None:
        row = self.session.get(Brand, brand_id)
        if row is None or not row.is_active:
            return None
        return row

    def create(self, nombre: str, descripcion: str | None = None, departamento: str | None = None) -> Brand:
        n = (nombre or "").strip()
        if not n:
            raise FieldValidationError("El nombre de la marca es requerido")
        now = datetime.utcnow()
        row = Brand(
            nombre=n,
            descripcion=(descripcion or "").strip() or None,
            departamento=(departamento or "").strip() or None,
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self.session.flush()
        return row

    def update(self, brand_id: int, updates: dict[str, Any]) -> Brand:
        row = self.get(brand_id)
        if row is None:
            raise NotFoundError("Marca no encontrada")
        if "nombre" in updates:
            n = str(updates["nombre"] or "").strip()
            if not n:
                raise FieldValidationError("El nombre de la marca es requerido")
            row.nombre = n
        for k in ("descripcion", "departamento", "logo_url"):
            if k in updates:
                setattr(row, k, str(updates[k] or "").strip() or None)
        row.updated_at = datetime.utcnow()
        return row

    def deactivate(self, brand_id: int) -> bool:
        row = self.get(brand_id)
        if row is None:
            return False
        row.is_active = False
        row.updated_at = datetime.utcnow()
        return True


def _to_formato(row: Format) -> Formato:
    return Formato(
        id=row.id,
        name=row.name,
        brand_id=row.brand_id,
        fields=tuple(parse_fields(row.fields or [])),
        description=row.description,
        created_at=row.created_at,
    )


class FormatRepo:
    def __init__(self, session: Session):
        self.session = session

    def list_formats(self, brand_id: int) -> list[Formato]:
        stmt = (
            select(Format)
            .where(Format.brand_id == brand_id, Format.is_active.is_(True))
            .order_by(Format.created_at.desc(), Format.id.desc())
        )
        return [_to_formato(r) for r in self.session.execute(stmt).scalars().all()]

    def get_format(self, format_id: int) -> Formato | None:
        row = self.session.get(Format, format_id)
        if row is None or not row.is_active:
            return None
        return _to_formato(row)

    def create_format(self, data: dict[str, Any]) -> Formato:
        name = str(data.get("name") or "").strip()
        if not name:
            raise FieldValidationError("El nombre del formato es requerido")
        if not data.get("fields"):
            raise FieldValidationError("Debe agregar al menos un campo al formato")

        brand_id = data.get("brand_id")
        if brand_id is None or BrandRepo(self.session).get(int(brand_id)) is None:
            raise NotFoundError("Marca no encontrada")

        fields = normalize_fields(data.get("fields"))
        now = datetime.utcnow()
        row = Format(
            name=name,
            description=(str(data.get("description") or "").strip() or None),
            fields=[f.to_dict() for f in fields],
            brand_id=int(brand_id),
            is_active=True,
            created_at=now,
            updated_at=now,
        )
        self.session.add(row)
        self.session.flush()
        return _to_formato(row)

    def update_format(self, format_id: int, updates: dict[str, Any]) -> Formato:
        row = self.session.get(Format, format_id)
        if row is None or not row.is_active:
            raise NotFoundError("Formato no encontrado")
        if "name" in updates:
            name = str(updates["name"] or "").strip()
            if not name:
                raise FieldValidationError("El nombre del formato es requerido")
            row.name = name
        if "description" in updates:
            row.description = str(updates["description"] or "").strip() or None
        if "fields" in updates:
            row.fields = [f.to_dict() for f in normalize_fields(updates["fields"])]
        row.updated_at = datetime.utcnow()
        self.session.flush()
        return _to_formato(row)

    def delete_format(self, format_id: int) -> bool:
        row = self.session.get(Format, format_id)
        if row is None or not row.is_active:
            return False
        row.is_active = False
        row.updated_at = datetime.utcnow()
        return True


class ProductRepo:
    def __init__(self, session: Session):
        self.session = session

    def create(self, data: dict[str, Any] | Any, formato_id: int | None = None) -> Product:
        if is_dataclass(data) and not isinstance(data, type):
            data = asdict(data)
        data = dict(data or {})
        if formato_id is not None:
            data["formato_id"] = formato_id

        if not data.get("nombre") or not data.get("marca_id") or not data.get("unidad") or data.get("precio") is None:
            raise RecordCreationError("Faltan campos requeridos: nombre, marca_id, unidad, precio")

        if BrandRepo(self.session).get(int(data["marca_id"])) is None:
            raise RecordCreationError(f"Error al crear producto: marca {data['marca_id']} no existe")

        values = _clean_product_values(data)
        errors = validate_product_values(values)
        if errors:
            raise FieldValidationError(errors=errors)
        now = datetime.utcnow()
        row = Product(**values)
        row.creado_en = now
        row.updated_at = now
        if row.especificaciones is None:
            row.especificaciones = {}
        if row.activo is None:
            row.activo = True
        self.session.add(row)
        try:
            self.session.flush()
        except IntegrityError as e:
            raise RecordCreationError(f"Error al crear producto: {e.orig}", details={"nombre": data["nombre"]}) from e
        return row

    def get(self, product_id: int) -> Product | None:
        row = self.session.get(Product, product_id)
        if row is None or not row.activo:
            return None
        return row

    def update(self, product_id: int, updates: dict[str, Any]) -> Product:
        row = self.get(product_id)
        if row is None:
            raise NotFoundError("Producto no encontrado")
        values = _clean_product_values(updates or {})
        values.pop("marca_id", None)
        errors = validate_product_values(values)
        if errors:
            raise FieldValidationError(errors=errors)
        for k, v in values.items():
            setattr(row, k, v)
        row.updated_at = datetime.utcnow()
        try:
            self.session.flush()
        except IntegrityError as e:
            raise RecordCreationError(f"Error al actualizar producto: {e.orig}") from e
        return row

    def deactivate(self, product_id: int) -> bool:
        row = self.get(product_id)
        if row is None:
            return False
        row.activo = False
        row.updated_at = datetime.utcnow()
        return True

    def list_by_brand(self, brand_id: int) -> list[Product]:
        stmt = (
            select(Product)
            .where(Product.marca_id == brand_id, Product.activo.is_(True))
            .order_by(Product.creado_en.desc(), Product.id.desc())
        )
        return list(self.session.execute(stmt).scalars().all())

    def search(
        self,
        q: str,
        *,
        brand_ids: list[int] | None = None,
        price_min: float | None = None,
        price_max: float | None = None,
        department: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Product]:
        qn = (q or "").strip()
        if not qn:
            return []

        like = f"%{qn}%"
        stmt = select(Product).where(
            Product.activo.is_(True),
            or_(
                Product.nombre.ilike(like),
                Product.descripcion.ilike(like),
                Product.clave.ilike(like),
                Product.codigo_barras.ilike(like),
                Product.codigo.ilike(like),
            ),
        )
        if brand_ids:
            stmt = stmt.where(Product.marca_id.in_(brand_ids))
        if price_min is not None:
            stmt = stmt.where(Product.precio >= money(price_min))
        if price_max is not None:
            stmt = stmt.where(Product.precio <= money(price_max))
        if department:
            stmt = stmt.where(Product.departamento == department)

        lim = max(1, min(int(limit or 50), 500))
        stmt = stmt.order_by(Product.creado_en.desc(), Product.id.desc()).offset(max(0, int(offset or 0))).limit(lim)
        return list(self.session.execute(stmt).scalars().all())

    def stats_by_brand(self, brand_id: int) -> dict[str, Any]:
        stmt = select(Product.precio, Product.cantidad_stock, Product.stock_minimo, Product.departamento).where(
            Product.marca_id == brand_id, Product.activo.is_(True)
        )
        rows = self.session.execute(stmt).all()

        total_value = Decimal("0.00")
        low_stock = 0
        departments: list[str] = []
        for precio, stock, minimo, dept in rows:
            total_value += Decimal(str(precio or 0))
            if int(stock or 0) <= int(minimo or 0):
                low_stock += 1
            if dept and dept not in departments:
                departments.append(dept)

        return {
            "total_products": len(rows),
            "total_value": money(total_value),
            "low_stock_count": low_stock,
            "departments": departments,
        }


class ImportLogRepo:
    def __init__(self, session: Session):
        self.session = session

    def create(self, *, brand_id: int, format_id: int | None, file_name: str, total_records: int) -> ImportLog:
        row = ImportLog(
            brand_id=brand_id,
            format_id=format_id,
            file_name=(file_name or "")[:255],
            total_records=int(total_records),
            status="pending",
            created_at=datetime.utcnow(),
        )
        self.session.add(row)
        self.session.flush()
        return row

    def get(self, log_id: int) -> ImportLog | None:
        return self.session.get(ImportLog, log_id)

    def update(self, log_id: int, **updates: Any) -> ImportLog:
        row = self.session.get(ImportLog, log_id)
        if row is None:
            raise NotFoundError("Registro de importación no encontrado")
        for k, v in updates.items():
            setattr(row, k, v)
        return row

    def cancel(self, log_id: int) -> bool:
        """Mark a processing import as failed. Only imports still in progress can be cancelled."""
        row = self.get(log_id)
        if row is None or row.status != "processing":
            return False
        row.status = "failed"
        row.error_details = {"error": CANCELLED_MESSAGE}
        row.completed_at = datetime.utcnow()
        return True

    def history(self, brand_id: int | None = None, limit: int = 50) -> list[ImportLog]:
        stmt = select(ImportLog)
        if brand_id is not None:
            stmt = stmt.where(ImportLog.brand_id == brand_id)
        stmt = stmt.order_by(ImportLog.created_at.desc(), ImportLog.id.desc()).limit(max(1, int(limit or 50)))
        return list(self.session.execute(stmt).scalars().all())

    def stats(self, brand_id: int | None = None) -> dict[str, int]:
        stmt = select(
            func.count(ImportLog.id),
            func.coalesce(func.sum(ImportLog.successful_records), 0),
        )
        if brand_id is not None:
            stmt = stmt.where(ImportLog.brand_id == brand_id)
        total, imported = self.session.execute(stmt).one()

        by_status_stmt = select(ImportLog.status, func.count(ImportLog.id)).group_by(ImportLog.status)
        if brand_id is not None:
            by_status_stmt = by_status_stmt.where(ImportLog.brand_id == brand_id)
        by_status = {str(s): int(c) for s, c in self.session.execute(by_status_stmt).all()}

        return {
            "total_imports": int(total or 0),
            "successful_imports": by_status.get("completed", 0),
            "failed_imports": by_status.get("failed", 0),
            "total_products_imported": int(imported or 0),
        }
