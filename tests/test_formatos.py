from __future__ import annotations

import pytest

from catalogo.departamentos import DEPARTMENTS, department_fields
from catalogo.errors import FieldValidationError
from catalogo.formatos import (
    SYSTEM_FIELDS,
    FormatField,
    Formato,
    format_data_to_specifications,
    initial_fields,
    normalize_fields,
    validate_data_against_format,
)

SYSTEM_ORDER = [
    "nombre",
    "precio",
    "unidad",
    "medida",
    "rendimiento_M2",
    "precio_M2",
    "clave",
    "codigo",
    "codigo_barras",
    "descripcion",
]


def test_system_fields_come_first_in_fixed_order():
    fields = normalize_fields([{"name": "color", "type": "text"}, {"name": "acabado", "type": "select", "options": ["Mate"]}])
    assert [f.name for f in fields] == SYSTEM_ORDER + ["color", "acabado"]
    assert all(f.is_system for f in fields[:10])
    assert not fields[-1].is_system


def test_custom_field_cannot_override_a_system_field():
    fields = normalize_fields([{"name": "precio", "type": "text"}, {"name": "color"}])
    precio = next(f for f in fields if f.name == "precio")
    assert precio.type == "currency"
    assert [f.name for f in fields].count("precio") == 1


def test_repeated_custom_field_is_rejected():
    with pytest.raises(FieldValidationError):
        normalize_fields([{"name": "color"}, {"name": "color"}])


@pytest.mark.parametrize(
    "raw",
    [
        {"name": "", "type": "text"},
        {"name": "peso", "type": "date"},
        {"name": "peso", "type": "number", "options": ["1", "2"]},
        "peso",
    ],
)
def test_invalid_field_definitions(raw):
    with pytest.raises(FieldValidationError):
        FormatField.from_dict(raw)


def test_empty_options_are_allowed_on_any_type():
    f = FormatField.from_dict({"name": "peso", "type": "number", "options": [], "unit": "kg"})
    assert f.options == ()
    assert f.to_dict() == {"name": "peso", "type": "number", "required": False, "unit": "kg"}


def test_initial_fields_add_department_fields_after_system_fields():
    fields = initial_fields("recubrimientos")
    names = [f.name for f in fields]
    assert names[:10] == SYSTEM_ORDER
    assert names[10:] == [f.key for f in department_fields("recubrimientos")]
    assert "medida_formato" in names

    assert [f.name for f in initial_fields(None)] == SYSTEM_ORDER
    assert [f.name for f in initial_fields("no-existe")] == SYSTEM_ORDER


def test_departments_catalog():
    ids = [d.id for d in DEPARTMENTS]
    assert len(ids) == 7
    assert "recubrimientos" in ids and "jardineria_exterior" in ids


def _formato(*custom: FormatField) -> Formato:
    return Formato(id=1, name="F", brand_id=1, fields=tuple(SYSTEM_FIELDS) + custom)


def test_validate_reports_required_numeric_and_select_errors():
    formato = _formato(FormatField("peso", "number"), FormatField("acabado", "select", options=("Mate", "Brillante")))
    ok, errors = validate_data_against_format(
        {
            "nombre": "Piso",
            "precio": "caro",
            "unidad": "Tonelada",
            "medida": "",
            "rendimiento_M2": 11,
            "precio_M2": 550,
            "peso": "pesado",
            "acabado": "Rugoso",
        },
        formato,
    )
    assert not ok
    assert "precio debe ser un número válido" in errors
    assert any(e.startswith("unidad debe ser una de las opciones válidas") for e in errors)
    assert "medida es requerido" in errors
    assert "peso debe ser un número válido" in errors
    assert "acabado debe ser una de las opciones válidas: Mate, Brillante" in errors


def test_validate_accepts_complete_row():
    data = {"nombre": "Piso", "precio": 50, "unidad": "Caja", "medida": "30x30", "rendimiento_M2": 11, "precio_M2": 550}
    assert validate_data_against_format(data, _formato()) == (True, [])


def test_format_data_to_specifications_coerces_by_type():
    formato = _formato(FormatField("peso", "number"), FormatField("color"))
    specs = format_data_to_specifications({"nombre": " Piso ", "precio": "50", "peso": "2.5", "color": "", "otro": 1}, formato)
    assert specs == {"nombre": "Piso", "precio": 50.0, "peso": 2.5}
