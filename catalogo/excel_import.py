from __future__ import annotations

import io
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO, Iterator, Union
import unicodedata

from openpyxl import load_workbook

from catalogo.errors import FileParseError

logger = logging.getLogger(__name__)

# Compound document signature used by legacy .xls workbooks.
_OLE_MAGIC = b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1"

Source = Union[bytes, bytearray, str, Path, BinaryIO]


def norm_header(x: Any) -> str:
    s = str(x if x is not None else "").strip()
    s = " ".join(s.split())
    s = unicodedata.normalize("NFKD", s)
    s = "".join(ch for ch in s if not unicodedata.combining(ch))
    return s.casefold()


@dataclass(frozen=True)
class HojaLeida:
    """First worksheet of a workbook: ordered headers and one dict per data row."""

    columns: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)
    sheet_name: str = ""

    def __len__(self) -> int:
        return len(self.rows)

    def __iter__(self) -> Iterator[dict[str, Any]]:
        return iter(self.rows)


def _read_bytes(source: Source) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, Path)):
        p = Path(source)
        if not p.exists():
            raise FileParseError(f"Archivo no encontrado: {p}")
        return p.read_bytes()
    if hasattr(source, "read"):
        data = source.read()
        if isinstance(data, str):
            raise FileParseError("Se esperaba un archivo binario")
        return bytes(data)
    raise FileParseError("Origen de archivo no soportado")


def _unique_headers(cells: list[Any]) -> list[str | None]:
    """Header text per column; blanks become __EMPTY, repeats get _1, _2 suffixes.

    Trailing blank header cells are dropped (None) so formatting tails don't create columns.
    """
    last = max((i for i, c in enumerate(cells) if c is not None and str(c).strip() != ""), default=-1)
    out: list[str | None] = []
    seen: dict[str, int] = {}
    for i, c in enumerate(cells):
        if i > last:
            out.append(None)
            continue
        base = str(c).strip() if c is not None and str(c).strip() != "" else "__EMPTY"
        name = base
        n = seen.get(base, 0)
        while name in seen:
            n += 1
            name = f"{base}_{n}"
        seen[base] = n
        seen.setdefault(name, 0)
        out.append(name)
    return out


def _is_blank(v: Any) -> bool:
    return v is None or (isinstance(v, str) and v == "")


def _build(matrix: Iterator[tuple[Any, ...] | list[Any]], sheet_name: str) -> HojaLeida:
    headers: list[str | None] | None = None
    rows: list[dict[str, Any]] = []
    for row_vals in matrix:
        vals = list(row_vals or ())
        if headers is None:
            if all(_is_blank(v) for v in vals):
                continue
            headers = _unique_headers(vals)
            continue

        rec: dict[str, Any] = {}
        for i, v in enumerate(vals):
            if i >= len(headers) or headers[i] is None or _is_blank(v):
                continue
            rec[headers[i]] = v
        if rec:
            rows.append(rec)

    columns = [h for h in (headers or []) if h is not None]
    return HojaLeida(columns=columns, rows=rows, sheet_name=sheet_name)


def _read_xlsx(data: bytes) -> HojaLeida:
    # read_only + values_only avoids creating cell objects for big sheets.
    wb = load_workbook(filename=io.BytesIO(data), data_only=True, read_only=True)
    try:
        ws = wb.worksheets[0]
        return _build(ws.iter_rows(values_only=True), ws.title)
    finally:
        wb.close()


def _xls_value(cell, datemode: int) -> Any:
    import xlrd

    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_NUMBER:
        v = float(cell.value)
        return int(v) if v.is_integer() else v
    if cell.ctype == xlrd.XL_CELL_ERROR:
        return None
    return cell.value


def _read_xls(data: bytes) -> HojaLeida:
    import xlrd

    book = xlrd.open_workbook(file_contents=data)
    sheet = book.sheet_by_index(0)
    matrix = ([_xls_value(c, book.datemode) for c in sheet.row(r)] for r in range(sheet.nrows))
    return _build(matrix, sheet.name)


def read_spreadsheet(source: Source, filename: str | None = None) -> HojaLeida:
    """Parse the first sheet of an .xlsx/.xls workbook.

    The first non-empty row holds the headers. Rows map header -> raw cell value
    (str, int, float, bool or datetime); empty cells are omitted and fully blank
    rows skipped. Raises FileParseError when the file is not a readable workbook.
    """
    data = _read_bytes(source)
    name = filename or (str(source) if isinstance(source, (str, Path)) else "")
    if not data:
        raise FileParseError(f"El archivo está vacío: {name}".rstrip(": "))

    is_xls = data[:8] == _OLE_MAGIC
    try:
        hoja = _read_xls(data) if is_xls else _read_xlsx(data)
    except FileParseError:
        raise
    except Exception as e:
        logger.warning("No se pudo leer el libro %s: %s", name or "<bytes>", e)
        raise FileParseError("Error leyendo el archivo Excel", details=str(e)) from e

    logger.info("Leídas %s filas y %s columnas de %s", len(hoja.rows), len(hoja.columns), name or "<bytes>")
    return hoja

