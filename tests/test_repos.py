from __future__ import annotations

from decimal import Decimal

import pytest

from catalogo.db import session_scope
from catalogo.errors import FieldValidationError, NotFoundError, RecordCreationError
from catalogo.repos import BrandRepo, FormatRepo, ImportLogRepo, ProductRepo


def _product(brand_id, **kw):
    data = {"nombre": "Piso", "precio": 50, "unidad": "Caja", "marca_id": brand_id}
    data.update(kw)
    return data


def test_brand_crud_with_soft_delete(session_factory):
    with session_scope(session_factory) as s:
        repo = BrandRepo(s)
        a = repo.create("Interceramic", "", "recubrimientos")
        b = repo.create("Rotoplas", None, "plomeria_agua")
        assert [x.nombre for x in repo.list()] == ["Rotoplas", "Interceramic"]

        repo.update(a.id, {"descripcion": "Pisos"})
        assert repo.get(a.id).descripcion == "Pisos"

        assert repo.deactivate(b.id) is True
        assert repo.get(b.id) is None
        assert repo.deactivate(b.id) is False
        assert [x.nombre for x in repo.list()] == ["Interceramic"]

        with pytest.raises(FieldValidationError):
            repo.create("  ")
        with pytest.raises(NotFoundError):
            repo.update(b.id, {"nombre": "X"})


def test_format_create_list_update_and_soft_delete(session_factory, brand_id):
    with session_scope(session_factory) as s:
        repo = FormatRepo(s)
        f = repo.create_format({"name": "Lista 2024", "brand_id": brand_id, "fields": [{"name": "color"}]})
        assert f.field_names[:2] == ["nombre", "precio"]
        assert f.field_names[-1] == "color"

        f2 = repo.update_format(f.id, {"name": "Lista 2025", "fields": [{"name": "acabado"}]})
        assert f2.name == "Lista 2025"
        assert f2.field_names[-1] == "acabado"

        assert [x.id for x in repo.list_formats(brand_id)] == [f.id]
        assert repo.delete_format(f.id) is True
        assert repo.get_format(f.id) is None
        assert repo.list_formats(brand_id) == []


def test_format_requires_name_fields_and_existing_brand(session_factory, brand_id):
    with session_scope(session_factory) as s:
        repo = FormatRepo(s)
        with pytest.raises(FieldValidationError):
            repo.create_format({"name": "", "brand_id": brand_id, "fields": [{"name": "x"}]})
        with pytest.raises(FieldValidationError):
            repo.create_format({"name": "F", "brand_id": brand_id, "fields": []})
        with pytest.raises(NotFoundError):
            repo.create_format({"name": "F", "brand_id": 999, "fields": [{"name": "x"}]})


def test_product_create_requires_core_fields(session_factory, brand_id):
    with session_scope(session_factory) as s:
        with pytest.raises(RecordCreationError) as exc:
            ProductRepo(s).create({"nombre": "Piso", "marca_id": brand_id})
        assert exc.value.message == "Faltan campos requeridos: nombre, marca_id, unidad, precio"

        with pytest.raises(RecordCreationError):
            ProductRepo(s).create(_product(999))


def test_product_values_are_normalized(session_factory, brand_id):
    with session_scope(session_factory) as s:
        p = ProductRepo(s).create(_product(brand_id, precio=12.345, precio_M2=135.8, clave="  ", Medida="30x30"))
        assert p.precio == Decimal("12.35")
        assert p.precio_M2 == Decimal("135.80")
        assert p.clave is None
        assert p.medida == "30x30"
        assert p.especificaciones == {}
        assert p.activo is True


def test_duplicate_clave_within_brand_is_rejected(session_factory, brand_id):
    with session_scope(session_factory) as s:
        ProductRepo(s).create(_product(brand_id, clave="A1"))
        ProductRepo(s).create(_product(brand_id, nombre="Sin clave"))
        ProductRepo(s).create(_product(brand_id, nombre="Otro sin clave", clave=""))

    with pytest.raises(RecordCreationError):
        with session_scope(session_factory) as s:
            ProductRepo(s).create(_product(brand_id, nombre="Repetido", clave="A1"))

    with session_scope(session_factory) as s:
        other = BrandRepo(s).create("Otra marca")
        ProductRepo(s).create(_product(other.id, clave="A1"))
        assert len(ProductRepo(s).list_by_brand(brand_id)) == 3


def test_product_update_and_deactivate(session_factory, brand_id):
    with session_scope(session_factory) as s:
        repo = ProductRepo(s)
        p = repo.create(_product(brand_id))
        repo.update(p.id, {"precio": "75.5", "marca_id": 12345})
        assert repo.get(p.id).precio == Decimal("75.50")
        assert repo.get(p.id).marca_id == brand_id

        assert repo.deactivate(p.id) is True
        assert repo.get(p.id) is None
        assert repo.list_by_brand(brand_id) == []
        with pytest.raises(NotFoundError):
            repo.update(p.id, {"nombre": "X"})


def test_search_filters(session_factory, brand_id):
    with session_scope(session_factory) as s:
        repo = ProductRepo(s)
        repo.create(_product(brand_id, nombre="Piso gris", precio=100, departamento="Recubrimientos"))
        repo.create(_product(brand_id, nombre="Piso blanco", precio=300, clave="PB-1"))
        repo.create(_product(brand_id, nombre="Zoclo", precio=20, descripcion="Para piso"))

        assert repo.search("") == []
        assert len(repo.search("piso")) == 3
        assert [p.nombre for p in repo.search("pb-1")] == ["Piso blanco"]
        assert [p.nombre for p in repo.search("piso", price_min=50, price_max=200)] == ["Piso gris"]
        assert [p.nombre for p in repo.search("piso", department="Recubrimientos")] == ["Piso gris"]
        assert repo.search("piso", brand_ids=[brand_id + 1]) == []
        assert len(repo.search("piso", limit=2)) == 2


def test_stats_by_brand(session_factory, brand_id):
    with session_scope(session_factory) as s:
        repo = ProductRepo(s)
        repo.create(_product(brand_id, precio=10, cantidad_stock=5, stock_minimo=2, departamento="A"))
        repo.create(_product(brand_id, precio=20.5, departamento="B"))
        stats = repo.stats_by_brand(brand_id)

    assert stats["total_products"] == 2
    assert stats["total_value"] == Decimal("30.50")
    assert stats["low_stock_count"] == 1
    assert stats["departments"] == ["A", "B"]


def test_import_log_history_and_stats(session_factory, brand_id):
    with session_scope(session_factory) as s:
        repo = ImportLogRepo(s)
        a = repo.create(brand_id=brand_id, format_id=None, file_name="a.xlsx", total_records=3)
        assert a.status == "pending"
        repo.update(a.id, status="completed", successful_records=3)
        b = repo.create(brand_id=brand_id, format_id=None, file_name="b.xlsx", total_records=2)
        repo.update(b.id, status="failed")

        assert [r.file_name for r in repo.history(brand_id)] == ["b.xlsx", "a.xlsx"]
        assert repo.stats(brand_id) == {
            "total_imports": 2,
            "successful_imports": 1,
            "failed_imports": 1,
            "total_products_imported": 3,
        }
        with pytest.raises(NotFoundError):
            repo.update(9999, status="completed")


@pytest.mark.parametrize(
    "overrides,message",
    [
        ({"precio": -1}, "El precio debe ser un número mayor o igual a 0"),
        ({"cantidad_stock": -3}, "La cantidad en stock no puede ser negativa"),
        ({"stock_minimo": "-1"}, "El stock mínimo no puede ser negativo"),
        ({"nombre": "N" * 256}, "El nombre del producto no puede exceder 255 caracteres"),
        ({"codigo_barras": "7" * 51}, "El código de barras no puede exceder 50 caracteres"),
    ],
)
def test_product_values_out_of_range_are_rejected(session_factory, brand_id, overrides, message):
    with session_scope(session_factory) as s:
        with pytest.raises(FieldValidationError) as exc:
            ProductRepo(s).create(_product(brand_id, **overrides))
        assert exc.value.errors == [message]


def test_product_update_checks_values(session_factory, brand_id):
    with session_scope(session_factory) as s:
        p = ProductRepo(s).create(_product(brand_id, nombre="N" * 255, codigo_barras="7" * 50))
        with pytest.raises(FieldValidationError):
            ProductRepo(s).update(p.id, {"precio": -10})
        assert p.precio == Decimal("50.00")


def test_cancel_only_applies_to_processing_imports(session_factory, brand_id):
    with session_scope(session_factory) as s:
        repo = ImportLogRepo(s)
        running = repo.create(brand_id=brand_id, format_id=None, file_name="a.xlsx", total_records=3)
        running.status = "processing"
        pending = repo.create(brand_id=brand_id, format_id=None, file_name="b.xlsx", total_records=1)

        assert repo.cancel(running.id) is True
        assert running.status == "failed"
        assert running.error_details == {"error": "Importación cancelada por el usuario"}
        assert running.completed_at is not None

        assert repo.cancel(running.id) is False
        assert repo.cancel(pending.id) is False
        assert pending.status == "pending"
        assert repo.cancel(9999) is False
