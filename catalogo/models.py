from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    pass


class Brand(Base):
    __tablename__ = "brands"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Department id from catalogo.departamentos (drives format editor fields)
    departamento: Mapped[str | None] = mapped_column(String(80), nullable=True)
    logo_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    formats: Mapped[list["Format"]] = relationship("Format", back_populates="brand")


class Format(Base):
    __tablename__ = "formats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Ordered list of field dicts; order drives positional column mapping.
    fields: Mapped[list[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)

    brand_id: Mapped[int] = mapped_column(Integer, ForeignKey("brands.id"), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    brand: Mapped[Brand] = relationship("Brand", back_populates="formats")


class Product(Base):
    __tablename__ = "products"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    nombre: Mapped[str] = mapped_column(String(255), nullable=False)

    # Empty identifiers are stored as NULL so the per-brand unique key ignores them.
    clave: Mapped[str | None] = mapped_column(String(100), nullable=True)
    codigo: Mapped[str | None] = mapped_column(String(100), nullable=True)
    codigo_barras: Mapped[str | None] = mapped_column(String(50), nullable=True)
    descripcion: Mapped[str | None] = mapped_column(Text, nullable=True)

    precio: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))
    medida: Mapped[str] = mapped_column(String(120), nullable=False, default="")
    rendimiento_M2: Mapped[float] = mapped_column(Float, nullable=False, default=1.0)
    precio_M2: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=Decimal("0.00"))

    marca_id: Mapped[int] = mapped_column(Integer, ForeignKey("brands.id"), nullable=False, index=True)
    formato_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("formats.id"), nullable=True)
    departamento: Mapped[str | None] = mapped_column(String(80), nullable=True)
    unidad: Mapped[str] = mapped_column(String(40), nullable=False)
    imagen_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    especificaciones: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)

    cantidad_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stock_minimo: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    activo: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    creado_en: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)

    __table_args__ = (
        UniqueConstraint("marca_id", "clave", name="uq_products_marca_clave"),
    )


class ImportLog(Base):
    __tablename__ = "import_logs"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    brand_id: Mapped[int] = mapped_column(Integer, ForeignKey("brands.id"), nullable=False, index=True)
    format_id: Mapped[int | None] = mapped_column(Integer, ForeignKey("formats.id"), nullable=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    total_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    successful_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failed_records: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # pending | processing | completed | failed
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="pending")
    error_details: Mapped[Any | None] = mapped_column(JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False, default=datetime.utcnow)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=False), nullable=True)
