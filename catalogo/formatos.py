"""Formatos personalizados por marca.

Un formato es una lista ordenada de campos tipados. El orden importa: el
importador de Excel asigna la k-ésima columna de la hoja al k-ésimo campo.
Los campos del sistema van siempre al inicio y no pueden quitarse ni
cambiar de tipo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable

from catalogo.departamentos import department_fields
from catalogo.errors import FieldValidationError
from catalogo.numeros import to_number

FIELD_TYPES = ("text", "number", "currency", "select")
NUMERIC_TYPES = ("number", "currency")

UNIDADES = ("Pieza", "Caja", "Litro", "Kit", "Metro cuadrado", "Metro lineal", "Paquete")


@dataclass(frozen=True)
class FormatField:
    name: str
    type: str = "text"
    required: bool = False
    options: tuple[str, ...] = ()
    placeholder: str | None = None
    unit: str | None = None
    is_system: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FormatField":
        if not isinstance(data, dict):
            raise FieldValidationError("Definición de campo inválida")
        name = str(data.get("name") or "").strip()
        if not name:
            raise FieldValidationError("El nombre del campo es requerido")

        ftype = str(data.get("type") or "text").strip().lower()
        if ftype not in FIELD_TYPES:
            raise FieldValidationError(f"Tipo de campo inválido para {name}: {ftype}")

        raw_options = data.get("options") or ()
        options = tuple(str(o).strip() for o in raw_options if str(o).strip())
        if options and ftype != "select":
            # Editors send options=[] for every field; only non-empty lists are an error.
            raise FieldValidationError(f"Solo los campos de selección admiten opciones: {name}")

        return cls(
            name=name,
            type=ftype,
            required=bool(data.get("required", False)),
            options=options,
            placeholder=(str(data["placeholder"]) if data.get("placeholder") else None),
            unit=(str(data["unit"]) if data.get("unit") else None),
            is_system=bool(data.get("isSystemField") or data.get("is_system")),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "type": self.type, "required": self.required}
        if self.options:
            out["options"] = list(self.options)
        if self.placeholder:
            out["placeholder"] = self.placeholder
        if self.unit:
            out["unit"] = self.unit
        if self.is_system:
            out["isSystemField"] = True
        return out

    def coerce(self, value: Any) -> Any:
        if self.type in NUMERIC_TYPES:
            return to_number(value)
        return str(value).strip()


SYSTEM_FIELDS: tuple[FormatField, ...] = (
    FormatField("nombre", "text", True, placeholder="Nombre del producto", is_system=True),
    FormatField("precio", "currency", True, placeholder="Precio del producto", is_system=True),
    FormatField("unidad", "select", True, options=UNIDADES, placeholder="Unidad de venta", is_system=True),
    FormatField("medida", "text", True, placeholder="Medida del producto (ej. 30x30 cm)", is_system=True),
    FormatField("rendimiento_M2", "number", True, placeholder="Piezas por metro cuadrado", is_system=True),
    FormatField("precio_M2", "currency", True, placeholder="Precio por metro cuadrado", is_system=True),
    FormatField("clave", "text", False, placeholder="Clave del producto", is_system=True),
    FormatField("codigo", "text", False, placeholder="Código interno", is_system=True),
    FormatField("codigo_barras", "text", False, placeholder="Código de barras", is_system=True),
    FormatField("descripcion", "text", False, placeholder="Descripción del producto", is_system=True),
)

SYSTEM_FIELD_NAMES = frozenset(f.name for f in SYSTEM_FIELDS)


@dataclass(frozen=True)
class Formato:
    id: int
    name: str
    brand_id: int
    fields: tuple[FormatField, ...] = field(default_factory=tuple)
    description: str | None = None
    created_at: datetime | None = None

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "brand_id": self.brand_id,
            "fields": [f.to_dict() for f in self.fields],
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }


def parse_fields(raw_fields: Iterable[Any] | None) -> list[FormatField]:
    out: list[FormatField] = []
    for f in raw_fields or ():
        out.append(f if isinstance(f, FormatField) else FormatField.from_dict(f))
    return out


def normalize_fields(raw_fields: Iterable[Any] | None) -> list[FormatField]:
    """System fields first (canonical definitions), then the caller's custom fields in order.

    Custom fields named like a system field are dropped; repeated custom names are an error.
    """
    custom: list[FormatField] = []
    seen: set[str] = set()
    for f in parse_fields(raw_fields):
        if f.name in SYSTEM_FIELD_NAMES:
            continue
        if f.name in seen:
            raise FieldValidationError(f"Campo repetido en el formato: {f.name}")
        seen.add(f.name)
        custom.append(FormatField(f.name, f.type, f.required, f.options, f.placeholder, f.unit, is_system=False))
    return [*SYSTEM_FIELDS, *custom]


def initial_fields(department_id: str | None = None) -> list[FormatField]:
    """Fields a new format starts with: system fields plus the brand department's fields."""
    out = list(SYSTEM_FIELDS)
    for df in department_fields(department_id):
        if df.key in SYSTEM_FIELD_NAMES:
            continue
        out.append(
            FormatField(
                name=df.key,
                type=df.type,
                required=df.required,
                options=df.options,
                placeholder=df.placeholder,
                unit=df.unit,
                is_system=True,
            )
        )
    return out


def _is_empty(value: Any) -> bool:
    return value is None or str(value).strip() == ""


def validate_data_against_format(data: dict[str, Any], formato: Formato) -> tuple[bool, list[str]]:
    errors: list[str] = []
    for f in formato.fields:
        value = (data or {}).get(f.name)

        if f.required and _is_empty(value):
            errors.append(f"{f.name} es requerido")
            continue
        if _is_empty(value):
            continue

        if f.type in NUMERIC_TYPES:
            if to_number(value) is None:
                errors.append(f"{f.name} debe ser un número válido")
        elif f.type == "select":
            if f.options and str(value).strip() not in f.options:
                errors.append(f"{f.name} debe ser una de las opciones válidas: {', '.join(f.options)}")

    return not errors, errors


def format_data_to_specifications(data: dict[str, Any], formato: Formato) -> dict[str, Any]:
    specs: dict[str, Any] = {}
    for f in formato.fields:
        value = (data or {}).get(f.name)
        if _is_empty(value):
            continue
        specs[f.name] = f.coerce(value)
    return specs
