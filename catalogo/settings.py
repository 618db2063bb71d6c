from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in ("1", "true", "yes", "si", "sí")


@dataclass(frozen=True)
class Settings:
    # App
    APP_NAME: str = os.environ.get("APP_NAME", "Catalogo de Marcas")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # Storage
    INSTANCE_DIR: Path = Path(os.environ.get("INSTANCE_DIR", "instance")).resolve()
    # Empty means "catalogo.sqlite inside INSTANCE_DIR".
    DATABASE_URL: str = os.environ.get("DATABASE_URL", "")

    # Uploads (enforced by the HTTP layer only)
    MAX_UPLOAD_MB: int = int(os.environ.get("MAX_UPLOAD_MB", "10"))

    # Excel import
    # positional: k-th format field <- k-th spreadsheet column (default)
    # header: field <- column whose header text matches the field name
    IMPORT_MAPPING_MODE: str = os.environ.get("IMPORT_MAPPING_MODE", "positional")
    IMPORT_STRICT_COLUMNS: bool = _env_bool("IMPORT_STRICT_COLUMNS")
    IMPORT_VALIDATE_ROWS: bool = _env_bool("IMPORT_VALIDATE_ROWS")
    IMPORT_MAX_WORKERS: int = int(os.environ.get("IMPORT_MAX_WORKERS", "1"))
    IMPORT_PREVIEW_ROWS: int = int(os.environ.get("IMPORT_PREVIEW_ROWS", "5"))

    def __post_init__(self) -> None:
        object.__setattr__(self, "INSTANCE_DIR", Path(self.INSTANCE_DIR).resolve())

        mode = (self.IMPORT_MAPPING_MODE or "positional").strip().lower()
        if mode not in ("positional", "header"):
            mode = "positional"
        object.__setattr__(self, "IMPORT_MAPPING_MODE", mode)
        object.__setattr__(self, "IMPORT_MAX_WORKERS", max(1, int(self.IMPORT_MAX_WORKERS or 1)))
        object.__setattr__(self, "LOG_LEVEL", (self.LOG_LEVEL or "INFO").strip().upper())

        db = str(self.DATABASE_URL or "").strip()
        if not db:
            abs_db = (self.INSTANCE_DIR / "catalogo.sqlite").resolve()
            object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_db.as_posix()}")
            return

        # sqlite:///instance/catalogo.sqlite -> sqlite:////abs/project/instance/catalogo.sqlite
        if db.startswith("sqlite:///") and not db.startswith("sqlite:////"):
            path_part = db[len("sqlite:///") :]
            if "?" in path_part:
                path_part = path_part.split("?", 1)[0]
            if path_part == ":memory:" or not path_part:
                return

            p = Path(path_part)
            if not p.is_absolute():
                project_root = Path(__file__).resolve().parents[1]
                abs_path = (project_root / p).resolve()
                object.__setattr__(self, "DATABASE_URL", f"sqlite:///{abs_path.as_posix()}")

    @property
    def max_upload_bytes(self) -> int:
        return int(self.MAX_UPLOAD_MB) * 1024 * 1024

    def ensure_instance(self) -> None:
        self.INSTANCE_DIR.mkdir(parents=True, exist_ok=True)
