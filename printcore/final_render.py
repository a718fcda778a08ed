"""
Final print renderer.

Renders the PRINT_FINAL deliverable for a design/size/product from the
full-resolution master, using the crop mode and offsets stored on the
design: the same inputs that drive the mockup preview.

Pipeline:
1. Load the design, its active source image and crop state
2. Ensure the PRINT master exists (generate it inline if missing)
3. Download the master and probe its true dimensions
4. Compute target pixels from the size, DPI and bleed
5. Resolve the crop rect and render it with Pillow
6. Upload the PNG and create the PRINT_FINAL row

A PRINT_FINAL row is created once and never updated.
"""

import math
import time
from dataclasses import dataclass
from typing import List, Optional

from loguru import logger
from sqlalchemy.orm import sessionmaker

from printcore.composite import CompositeSettings, apply_crop_rect, get_image_bytes, load_image
from printcore.config import AppConfig, SizeCatalogEntry, get_config
from printcore.crop import CropMode, calculate_crop_rect
from printcore.db import session_scope
from printcore.errors import DesignNotFoundError, InputValidationError, PrintPipelineError
from printcore.fetch import ImageFetcher
from printcore.models import AssetRole, DesignAsset, PrintProductType
from printcore.print_master import PrintMasterService
from printcore.repository import AssetRepository
from printcore.sizes import cm_to_pixels, get_catalog, require_size
from printcore.storage import ObjectStorage


@dataclass(frozen=True)
class FinalPrintResult:
    asset_id: str
    url: str
    width_px: Optional[int]
    height_px: Optional[int]

    @classmethod
    def from_asset(cls, asset: DesignAsset) -> "FinalPrintResult":
        return cls(asset.id, asset.url, asset.width_px, asset.height_px)


@dataclass(frozen=True)
class DesignSnapshot:
    """Design state read once at the start of a render."""
    source_image_url: str
    crop_mode: CropMode
    crop_offset_x: float
    crop_offset_y: float


def target_pixel_size(size: SizeCatalogEntry, dpi: int, bleed_mm: float = 0):
    """Print pixels at the DPI, grown on every side by the bleed."""
    bleed_px = cm_to_pixels(bleed_mm / 10, dpi) if bleed_mm > 0 else 0
    width = cm_to_pixels(size.width_cm, dpi) + bleed_px * 2
    height = cm_to_pixels(size.height_cm, dpi) + bleed_px * 2
    return width, height, bleed_px


class FinalRenderer:
    """Renders and persists PRINT_FINAL assets."""

    def __init__(self,
                 session_factory: sessionmaker,
                 print_masters: PrintMasterService,
                 fetcher: ImageFetcher,
                 storage: ObjectStorage,
                 config: AppConfig = None,
                 catalog: List[SizeCatalogEntry] = None):
        self.session_factory = session_factory
        self.print_masters = print_masters
        self.fetcher = fetcher
        self.storage = storage
        self.config = config or get_config()
        self.catalog = catalog if catalog is not None else get_catalog()

    def _load_design(self, repo: AssetRepository, design_id: str) -> DesignSnapshot:
        design = repo.get_design(design_id)
        if design is None:
            raise DesignNotFoundError(design_id)
        return DesignSnapshot(
            source_image_url=design.active_image_url(),
            crop_mode=CropMode.parse(design.crop_mode),
            crop_offset_x=design.crop_offset_x or 0.0,
            crop_offset_y=design.crop_offset_y or 0.0,
        )

    def render_final_print(self,
                           design_id: str,
                           size_code: str,
                           product_type,
                           dpi: int = None,
                           bleed_mm: float = 0) -> FinalPrintResult:
        """Render the print file matching the customer's approved preview."""
        product_type = PrintProductType.parse(product_type)
        size = require_size(size_code, self.catalog)
        if dpi is None:
            dpi = self.config.FINAL_DPI_DEFAULT
        if bleed_mm is None:
            bleed_mm = 0
        if not math.isfinite(dpi) or dpi <= 0:
            raise InputValidationError(f"dpi must be positive, got {dpi}", details={'dpi': dpi})
        if not math.isfinite(bleed_mm) or bleed_mm < 0:
            raise InputValidationError(f"bleed_mm must not be negative, got {bleed_mm}",
                                       details={'bleed_mm': bleed_mm})

        log_prefix = f"[render_final_print] design={design_id} size={size_code}"
        start_time = time.monotonic()

        with session_scope(self.session_factory) as session:
            repo = AssetRepository(session)
            existing = repo.find_asset(design_id, AssetRole.PRINT_FINAL, size_code, product_type)
            if existing:
                logger.info(f"{log_prefix} PRINT_FINAL already exists ({existing.id}), skipping")
                return FinalPrintResult.from_asset(existing)
            snapshot = self._load_design(repo, design_id)

        logger.info(f"{log_prefix} Source: {snapshot.source_image_url[:80]}")
        logger.info(f"{log_prefix} Crop: {snapshot.crop_mode.value} "
                    f"offset=({snapshot.crop_offset_x}, {snapshot.crop_offset_y})")

        master_id = self.print_masters.ensure_print_master(
            design_id, snapshot.source_image_url, size_code, product_type,
            target_dpi=min(dpi, self.config.MASTER_TARGET_DPI),
        )
        with session_scope(self.session_factory) as session:
            master = session.get(DesignAsset, master_id)
            if master is None:
                raise PrintPipelineError(f"PRINT master {master_id} created but not found",
                                         details={'asset_id': master_id})
            master_url = master.url

        logger.info(f"{log_prefix} Downloading master {master_id}")
        master_image = load_image(self.fetcher.fetch(master_url).content)
        src_w, src_h = master_image.size
        logger.info(f"{log_prefix} Master: {src_w}x{src_h}")

        tgt_w, tgt_h, bleed_px = target_pixel_size(size, dpi, bleed_mm)
        logger.info(f"{log_prefix} Target: {tgt_w}x{tgt_h} ({dpi} DPI, bleed {bleed_mm}mm = {bleed_px}px)")

        crop = calculate_crop_rect(src_w, src_h, tgt_w, tgt_h,
                                   snapshot.crop_mode, snapshot.crop_offset_x, snapshot.crop_offset_y)
        logger.info(f"{log_prefix} Crop rect: src({crop.sx:.1f},{crop.sy:.1f} {crop.sw:.1f}x{crop.sh:.1f}) "
                    f"-> dst({crop.dx:.1f},{crop.dy:.1f} {crop.dw:.1f}x{crop.dh:.1f})")

        settings = CompositeSettings(
            output_format='PNG',
            background_color=tuple(self.config.BACKGROUND_COLOR),
            dpi=dpi,
        )
        final_image = apply_crop_rect(master_image, crop, (tgt_w, tgt_h), settings.background_color)
        master_image.close()

        output = get_image_bytes(final_image, settings)
        final_w, final_h = final_image.size
        logger.info(f"{log_prefix} Output: {final_w}x{final_h}, {len(output) / 1024 / 1024:.1f} MB")

        blob_path = f"print-final/{design_id}/{size_code}-{product_type.value}-{dpi}dpi.png"
        stored = self.storage.put(blob_path, output, settings.mime_type)

        with session_scope(self.session_factory) as session:
            asset = AssetRepository(session).create_asset(
                design_id=design_id,
                role=AssetRole.PRINT_FINAL,
                size_code=size_code,
                product_type=product_type,
                url=stored.url,
                width_px=final_w,
                height_px=final_h,
                dpi=dpi,
                bleed_mm=bleed_mm,
                file_size=len(output),
                mime_type=settings.mime_type,
                source_width_px=src_w,
                source_height_px=src_h,
            )
            result = FinalPrintResult.from_asset(asset)

        duration = time.monotonic() - start_time
        logger.info(f"{log_prefix} PRINT_FINAL created: {result.asset_id} ({duration:.1f}s)")
        return result


def render_final_print(design_id: str, size_code: str, product_type,
                       dpi: int = None, bleed_mm: float = 0) -> FinalPrintResult:
    """Render a final print using the default pipeline."""
    from printcore import get_pipeline

    return get_pipeline().final_renderer.render_final_print(
        design_id, size_code, product_type, dpi=dpi, bleed_mm=bleed_mm)
