"""
Database models for the print production pipeline.

Design holds the editor state (placement and crop) that drives both the
interactive preview and the final render. DesignAsset holds derived
renders, unique per (design, role, size, product type).
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import List, Optional

from sqlalchemy import (
    JSON, DateTime, Enum, Float, ForeignKey, Integer, String, Text, UniqueConstraint
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from printcore.crop import CropMode
from printcore.errors import InputValidationError


class Base(DeclarativeBase):
    pass


class AssetRole(str, enum.Enum):
    PRINT = "PRINT"              # upscaled master
    PRINT_FINAL = "PRINT_FINAL"  # exact deliverable


class PrintProductType(str, enum.Enum):
    POSTER = "POSTER"
    CANVAS = "CANVAS"
    METAL = "METAL"
    FRAMED_POSTER = "FRAMED_POSTER"

    @classmethod
    def parse(cls, value) -> "PrintProductType":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InputValidationError(
                f"Unknown productType: {value}",
                details={'product_type': value, 'allowed': [p.value for p in cls]}
            )


def _uuid() -> str:
    return str(uuid.uuid4())


class Design(Base):
    """A generated or uploaded artwork with its editor state."""

    __tablename__ = "designs"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    selected_variant_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)

    # Room placement
    wall_corners: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    position_x: Mapped[float] = mapped_column(Float, default=0.5)
    position_y: Mapped[float] = mapped_column(Float, default=0.5)
    scale: Mapped[float] = mapped_column(Float, default=1.0)

    # Print framing
    frame_id: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    size_id: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)

    # Crop
    crop_mode: Mapped[CropMode] = mapped_column(Enum(CropMode), default=CropMode.COVER)
    crop_offset_x: Mapped[float] = mapped_column(Float, default=0.0)
    crop_offset_y: Mapped[float] = mapped_column(Float, default=0.0)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    variants: Mapped[List["DesignVariant"]] = relationship(
        "DesignVariant", back_populates="design",
        order_by="DesignVariant.sort_order", cascade="all, delete-orphan"
    )
    assets: Mapped[List["DesignAsset"]] = relationship(
        "DesignAsset", back_populates="design", cascade="all, delete-orphan"
    )

    def active_image_url(self) -> str:
        """Selected variant, else first variant, else the base image."""
        if self.variants:
            if self.selected_variant_id:
                for variant in self.variants:
                    if variant.id == self.selected_variant_id:
                        return variant.image_url
            return self.variants[0].image_url
        return self.image_url


class DesignVariant(Base):
    """Immutable alternate of a design."""

    __tablename__ = "design_variants"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    design_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("designs.id", ondelete="CASCADE"), nullable=False, index=True
    )
    image_url: Mapped[str] = mapped_column(String(1024), nullable=False)
    thumbnail_url: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    seed: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0)

    design: Mapped["Design"] = relationship("Design", back_populates="variants")


class DesignAsset(Base):
    """A persisted render derived from a design."""

    __tablename__ = "design_assets"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_uuid)
    design_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("designs.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[AssetRole] = mapped_column(Enum(AssetRole), nullable=False)
    size_code: Mapped[str] = mapped_column(String(32), nullable=False)
    product_type: Mapped[PrintProductType] = mapped_column(Enum(PrintProductType), nullable=False)

    url: Mapped[str] = mapped_column(String(1024), nullable=False)
    width_px: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    height_px: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    dpi: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    bleed_mm: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    file_size: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    mime_type: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)

    source_width_px: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    source_height_px: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    upscale_factor: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    upscale_provider: Mapped[Optional[str]] = mapped_column(String(64), nullable=True)
    quality_warning: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    design: Mapped["Design"] = relationship("Design", back_populates="assets")

    __table_args__ = (
        UniqueConstraint("design_id", "role", "size_code", "product_type",
                         name="uq_design_assets_key"),
    )

    def __repr__(self) -> str:
        return (f"DesignAsset({self.id}, {self.role.value if self.role else None}, "
                f"{self.size_code}, {self.width_px}x{self.height_px})")
