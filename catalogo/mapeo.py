from __future__ import annotations

import logging
from typing import Any, Sequence

from catalogo.errors import FieldValidationError
from catalogo.excel_import import norm_header
from catalogo.formatos import FormatField

logger = logging.getLogger(__name__)


def _field_name(f: FormatField | dict[str, Any] | str) -> str:
    if isinstance(f, FormatField):
        return f.name
    if isinstance(f, dict):
        return str(f.get("name") or "")
    return str(f)


def map_row(
    raw_row: dict[str, Any],
    excel_columns: Sequence[str],
    format_fields: Sequence[FormatField | dict[str, Any] | str],
) -> dict[str, Any]:
    """Positional mapping: field i takes the value of spreadsheet column i.

    Header text is ignored. A field whose column doesn't exist, or whose cell is
    missing from the row, is left unset. If the file's column order differs from
    the format's field order, values land on the wrong field; check_alignment
    reports the likely cases.
    """
    mapped: dict[str, Any] = {}
    for i, f in enumerate(format_fields):
        if i >= len(excel_columns):
            break
        column = excel_columns[i]
        if not column or column not in raw_row:
            continue
        mapped[_field_name(f)] = raw_row[column]
    return mapped


def map_row_by_header(
    raw_row: dict[str, Any],
    excel_columns: Sequence[str],
    format_fields: Sequence[FormatField | dict[str, Any] | str],
) -> dict[str, Any]:
    """Mapping by header text (accent/case/spacing-insensitive, '_' equals ' ')."""
    by_norm: dict[str, str] = {}
    for c in excel_columns:
        by_norm.setdefault(_norm_key(c), c)

    mapped: dict[str, Any] = {}
    for f in format_fields:
        name = _field_name(f)
        column = by_norm.get(_norm_key(name))
        if column is None or column not in raw_row:
            continue
        mapped[name] = raw_row[column]
    return mapped


def _norm_key(x: Any) -> str:
    return norm_header(str(x or "").replace("_", " "))


def check_alignment(
    excel_columns: Sequence[str],
    format_fields: Sequence[FormatField | dict[str, Any] | str],
) -> list[str]:
    """Warnings about a positional mapping that looks misaligned."""
    warnings: list[str] = []
    names = [_field_name(f) for f in format_fields]

    if len(excel_columns) != len(names):
        warnings.append(
            f"El archivo tiene {len(excel_columns)} columnas y el formato {len(names)} campos; "
            "las columnas se asignan por posición"
        )

    known = {_norm_key(n): n for n in names}
    for i, column in enumerate(excel_columns[: len(names)]):
        target = known.get(_norm_key(column))
        if target is not None and target != names[i]:
            warnings.append(
                f"La columna '{column}' (posición {i + 1}) se asignará al campo '{names[i]}', no a '{target}'"
            )
    return warnings


def build_mapper(mode: str = "positional"):
    m = (mode or "positional").strip().lower()
    if m == "header":
        return map_row_by_header
    if m == "positional":
        return map_row
    raise FieldValidationError(f"Modo de mapeo inválido: {mode}")


def map_rows(
    rows: Sequence[dict[str, Any]],
    excel_columns: Sequence[str],
    format_fields: Sequence[FormatField | dict[str, Any] | str],
    *,
    mode: str = "positional",
    strict: bool = False,
) -> tuple[list[dict[str, Any]], list[str]]:
    """Map every row; returns (mapped_rows, alignment_warnings).

    With strict=True a misaligned positional layout raises FieldValidationError.
    """
    mapper = build_mapper(mode)
    warnings = check_alignment(excel_columns, format_fields) if mapper is map_row else []
    for w in warnings:
        logger.warning(w)
    if strict and warnings:
        raise FieldValidationError("Las columnas del archivo no coinciden con el formato", errors=warnings)
    return [mapper(r, excel_columns, format_fields) for r in rows], warnings
