"""Departamentos y sus campos específicos.

Cada marca puede pertenecer a un departamento; el editor de formatos agrega los
campos del departamento después de los campos del sistema.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class DepartmentField:
    key: str
    label: str
    type: str
    required: bool = False
    options: tuple[str, ...] = ()
    placeholder: str | None = None
    unit: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "key": self.key,
            "label": self.label,
            "type": self.type,
            "required": self.required,
        }
        if self.options:
            out["options"] = list(self.options)
        if self.placeholder:
            out["placeholder"] = self.placeholder
        if self.unit:
            out["unit"] = self.unit
        return out


@dataclass(frozen=True)
class Department:
    id: str
    name: str
    fields: tuple[DepartmentField, ...] = field(default_factory=tuple)


DEPARTMENTS: tuple[Department, ...] = (
    Department(
        id="recubrimientos",
        name="Recubrimientos",
        fields=(
            DepartmentField("medida_formato", "Medida / Formato", "text", placeholder="ej. 30x30 cm, 60x60 cm"),
            DepartmentField("color", "Color", "text", placeholder="ej. Blanco, Gris, Beige"),
            DepartmentField(
                "acabado",
                "Acabado",
                "select",
                options=("Mate", "Brillante", "Satinado", "Texturizado", "Antideslizante"),
            ),
            DepartmentField("uso", "Uso", "select", options=("Interior", "Exterior", "Piso", "Pared", "Baño", "Cocina")),
            DepartmentField(
                "tipo",
                "Tipo",
                "select",
                options=("Cerámica", "Porcelanato", "Azulejo", "Mosaico", "Piedra Natural"),
            ),
            DepartmentField(
                "rendimiento_m2", "Rendimiento por m²", "number", placeholder="Piezas por metro cuadrado", unit="pzs/m²"
            ),
            DepartmentField(
                "precio_m2", "Precio por m²", "number", placeholder="Precio calculado por metro cuadrado", unit="MXN/m²"
            ),
        ),
    ),
    Department(
        id="bano_cocina",
        name="Baño y Cocina",
        fields=(
            DepartmentField(
                "tipo_instalacion",
                "Tipo de Instalación",
                "select",
                options=("Empotrado", "Sobreponer", "Colgante", "De pie", "Mural"),
            ),
            DepartmentField(
                "acabado",
                "Acabado",
                "select",
                options=("Cromado", "Níquel", "Bronce", "Acero Inoxidable", "Blanco", "Negro"),
            ),
            DepartmentField(
                "material",
                "Material",
                "select",
                options=("Cerámica", "Porcelana", "Acero Inoxidable", "Latón", "Plástico ABS"),
            ),
            DepartmentField("medidas", "Medidas", "text", placeholder="ej. 60x40x15 cm"),
            DepartmentField(
                "consumo_agua", "Consumo de Agua", "number", placeholder="Litros por minuto o por descarga", unit="L/min"
            ),
            DepartmentField("piezas_por_juego", "Piezas por Juego", "number", placeholder="Número de piezas incluidas"),
        ),
    ),
    Department(
        id="construccion",
        name="Construcción",
        fields=(
            DepartmentField(
                "presentacion",
                "Presentación",
                "select",
                options=("Saco", "Bote", "Cubeta", "Tambor", "Bolsa", "Caja"),
            ),
            DepartmentField(
                "rendimiento_unidad", "Rendimiento por Unidad", "text", placeholder="ej. 25 m², 50 kg/m³", unit="m²"
            ),
            DepartmentField("color", "Color", "text", placeholder="ej. Gris, Blanco, Natural"),
            DepartmentField("tiempo_secado", "Tiempo de Secado", "text", placeholder="ej. 24 horas, 2-4 horas", unit="horas"),
            DepartmentField(
                "aplicacion",
                "Aplicación",
                "select",
                options=("Interior", "Exterior", "Húmedo", "Seco", "Universal"),
            ),
        ),
    ),
    Department(
        id="herramientas_ferreteria",
        name="Herramientas y Ferretería",
        fields=(
            DepartmentField(
                "tipo_herramienta",
                "Tipo de Herramienta",
                "select",
                options=("Manual", "Eléctrica", "Neumática", "Hidráulica", "Medición"),
            ),
            DepartmentField("medida", "Medida", "text", placeholder='ej. 1/2", 10mm, 25cm'),
            DepartmentField(
                "material",
                "Material",
                "select",
                options=("Acero", "Acero Inoxidable", "Aluminio", "Plástico", "Carburo", "Hierro"),
            ),
            DepartmentField(
                "voltaje",
                "Voltaje",
                "select",
                options=("110V", "220V", "12V", "18V", "20V", "Sin voltaje"),
                unit="V",
            ),
            DepartmentField("garantia", "Garantía", "text", placeholder="ej. 1 año, 6 meses, De por vida"),
            DepartmentField(
                "uso", "Uso", "select", options=("Doméstico", "Profesional", "Industrial", "Automotriz")
            ),
        ),
    ),
    Department(
        id="plomeria_agua",
        name="Plomería y Agua",
        fields=(
            DepartmentField(
                "tipo_conexion",
                "Tipo de Conexión",
                "select",
                options=("Roscada", "Soldable", "Compresión", "Push-fit", "Bridada"),
            ),
            DepartmentField("diametro", "Diámetro", "text", placeholder='ej. 1/2", 3/4", 1", 13mm', unit="pulgadas"),
            DepartmentField("presion_max", "Presión Máxima", "number", placeholder="Presión máxima de trabajo", unit="PSI"),
            DepartmentField("capacidad_litros", "Capacidad", "number", placeholder="Capacidad en litros", unit="L"),
            DepartmentField(
                "tipo_instalacion",
                "Tipo de Instalación",
                "select",
                options=("Superficial", "Empotrada", "Subterránea", "Aérea"),
            ),
        ),
    ),
    Department(
        id="pintura_acabados",
        name="Pintura y Acabados",
        fields=(
            DepartmentField(
                "tipo",
                "Tipo",
                "select",
                options=("Vinílica", "Acrílica", "Esmalte", "Primer", "Sellador", "Barniz"),
            ),
            DepartmentField(
                "presentacion",
                "Presentación",
                "select",
                options=("1/4 Litro", "1 Litro", "4 Litros", "19 Litros", "Cubeta 20L"),
            ),
            DepartmentField("color", "Color", "text", placeholder="ej. Blanco, Beige, Azul Cielo"),
            DepartmentField(
                "rendimiento_litro", "Rendimiento por Litro", "number", placeholder="Metros cuadrados por litro", unit="m²/L"
            ),
            DepartmentField("tiempo_secado", "Tiempo de Secado", "text", placeholder="ej. 2-4 horas, 24 horas", unit="horas"),
            DepartmentField(
                "acabado",
                "Acabado",
                "select",
                options=("Mate", "Satinado", "Semi-mate", "Brillante", "Texturizado"),
            ),
        ),
    ),
    Department(
        id="jardineria_exterior",
        name="Jardinería y Exterior",
        fields=(
            DepartmentField(
                "tipo_herramienta",
                "Tipo de Herramienta",
                "select",
                options=("Manual", "Eléctrica", "A gasolina", "Riego", "Corte", "Excavación"),
            ),
            DepartmentField("tamaño", "Tamaño", "text", placeholder="ej. 30cm, Grande, Mediano"),
            DepartmentField("capacidad", "Capacidad", "text", placeholder="ej. 50L, 10kg, 500ml", unit="L/kg"),
            DepartmentField(
                "material",
                "Material",
                "select",
                options=("Acero", "Aluminio", "Plástico", "Madera", "Fibra de vidrio"),
            ),
            DepartmentField(
                "uso", "Uso", "select", options=("Jardín", "Césped", "Plantas", "Riego", "Poda", "Limpieza")
            ),
        ),
    ),
)


def get_department(department_id: str | None) -> Department | None:
    k = (department_id or "").strip()
    return next((d for d in DEPARTMENTS if d.id == k), None)


def department_fields(department_id: str | None) -> list[DepartmentField]:
    dept = get_department(department_id)
    return list(dept.fields) if dept else []
