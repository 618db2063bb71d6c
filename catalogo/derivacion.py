"""Derivación de productos a partir de una fila ya mapeada.

Todo aquí es puro: misma fila + mismo índice = mismo resultado.
"""

from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field
from datetime import date, datetime
from typing import Any

from catalogo.numeros import parse_float, parse_int, parse_money, round_half_up

# "30x30", "60 X 120 cm", "20.5x40"
MEDIDA_RE = re.compile(r"(\d+\.?\d*)\s*x\s*(\d+\.?\d*)", re.IGNORECASE)

DEFAULT_UNIDAD = "Pieza"
DEFAULT_DEPARTAMENTO = "General"


@dataclass(frozen=True)
class ProductoDerivado:
    nombre: str
    precio: float
    unidad: str
    medida: str
    rendimiento_M2: float
    precio_M2: float
    clave: str = ""
    codigo: str = ""
    codigo_barras: str = ""
    descripcion: str = ""
    departamento: str = DEFAULT_DEPARTAMENTO
    activo: bool = True
    cantidad_stock: int = 0
    stock_minimo: int = 0
    marca_id: int | None = None
    # Values of the format's custom (non-system) fields.
    especificaciones: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def _truthy(v: Any) -> bool:
    if v is None or v is False:
        return False
    if isinstance(v, str):
        return v.strip() != ""
    if isinstance(v, (int, float)):
        return v != 0 and not (isinstance(v, float) and math.isnan(v))
    return True


def _first(mapped: dict[str, Any], *keys: str) -> Any:
    for k in keys:
        v = mapped.get(k)
        if _truthy(v):
            return v
    return None


def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.time() == datetime.min.time():
            return value.date().isoformat()
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def area_m2(medida: str) -> float | None:
    """Area in m² of a "<W>x<H>" measure given in centimeters; None if it doesn't match."""
    m = MEDIDA_RE.search(medida or "")
    if not m:
        return None
    width = float(m.group(1))
    height = float(m.group(2))
    return (width * height) / 10000


def rendimiento_from_medida(medida: str) -> float:
    """Pieces per m²: round(1 / area), or 1 if the measure can't be used."""
    area = area_m2(medida)
    if area is None or area <= 0:
        return 1
    return round_half_up(1 / area)


def derive_product(mapped: dict[str, Any], index: int, marca_id: int | None = None) -> ProductoDerivado:
    """Build the product record for the row at 0-based position `index`.

    Each field takes the first non-empty value among its name variants, then a default.
    """
    mapped = mapped or {}

    nombre = _text(_first(mapped, "nombre", "Nombre")) or f"Producto {index + 1}"
    precio = parse_money(_first(mapped, "precio", "Precio")) or 0.0
    unidad = _text(_first(mapped, "unidad", "Unidad")) or DEFAULT_UNIDAD
    medida = _text(_first(mapped, "medida", "Medida", "medida_formato"))

    rendimiento = parse_float(_first(mapped, "rendimiento_M2")) or None
    if rendimiento is None and medida:
        rendimiento = rendimiento_from_medida(medida)

    precio_m2 = precio * rendimiento if rendimiento and rendimiento > 0 else precio

    return ProductoDerivado(
        nombre=nombre,
        precio=float(precio),
        unidad=unidad,
        medida=medida,
        rendimiento_M2=float(rendimiento or 1),
        precio_M2=float(precio_m2),
        clave=_text(_first(mapped, "clave", "Clave")),
        codigo=_text(_first(mapped, "codigo", "Codigo")),
        codigo_barras=_text(_first(mapped, "codigo_barras")),
        descripcion=_text(_first(mapped, "descripcion", "Descripcion")),
        departamento=_text(_first(mapped, "departamento", "Departamento")) or DEFAULT_DEPARTAMENTO,
        activo=True,
        cantidad_stock=parse_int(_first(mapped, "cantidad_stock")) or 0,
        stock_minimo=parse_int(_first(mapped, "stock_minimo")) or 0,
        marca_id=marca_id,
    )


def derive_products(mapped_rows: list[dict[str, Any]], marca_id: int | None = None) -> list[ProductoDerivado]:
    return [derive_product(m, i, marca_id) for i, m in enumerate(mapped_rows)]
