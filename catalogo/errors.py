from __future__ import annotations

from typing import Any


class CatalogoError(Exception):
    """Base error of the catalog; carries a stable code for the JSON API."""

    def __init__(self, error_code: str, message: str, details: Any | None = None) -> None:
        self.error_code = error_code
        self.message = message
        self.details = details
        super().__init__(message)

    def __str__(self) -> str:
        return self.message


class FileParseError(CatalogoError):
    """The uploaded file is not a readable workbook."""

    def __init__(self, message: str | None = None, details: Any | None = None) -> None:
        super().__init__("FILE_PARSE_ERROR", message or "Error leyendo el archivo Excel", details)


class FormatMissingError(CatalogoError):
    """No format selected, or the selected one does not exist."""

    def __init__(self, message: str | None = None, details: Any | None = None) -> None:
        super().__init__("FORMAT_MISSING_ERROR", message or "Debe seleccionar un formato", details)


class FieldValidationError(CatalogoError):
    def __init__(self, message: str | None = None, errors: list[str] | None = None) -> None:
        self.errors = list(errors or [])
        if message is None:
            message = "; ".join(self.errors) if self.errors else "Datos inválidos"
        super().__init__("FIELD_VALIDATION_ERROR", message, self.errors or None)


class RecordCreationError(CatalogoError):
    def __init__(self, message: str | None = None, details: Any | None = None) -> None:
        super().__init__("RECORD_CREATION_ERROR", message or "Error al crear registro", details)


class NotFoundError(CatalogoError):
    def __init__(self, message: str | None = None) -> None:
        super().__init__("NOT_FOUND", message or "No encontrado")
