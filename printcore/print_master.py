"""
Upscale orchestrator for PRINT master assets.

This module handles:
- Idempotent lookup of the master by its unique asset key
- Choosing the upscale factor for the size and source resolution
- Running the external upscaler and checking the DPI target
- Persisting the upscaled image and its DesignAsset row

Nothing is written until every external step has succeeded, so a failed
run is retried from scratch. There is no lock: two concurrent calls for
the same key may both upscale, and the unique constraint keeps one row.
"""

import time
from typing import List, Optional, Tuple

from loguru import logger
from sqlalchemy.orm import sessionmaker

from printcore.config import AppConfig, SizeCatalogEntry, get_config
from printcore.db import session_scope
from printcore.errors import (
    ExternalProviderError, QualityAdvisory, RenderError, UnsupportedUpscaleFactorError
)
from printcore.fetch import ImageFetcher, probe_dimensions
from printcore.models import AssetRole, PrintProductType
from printcore.repository import AssetRepository
from printcore.sizes import get_catalog, require_size, target_dimensions
from printcore.storage import ObjectStorage, extension_for
from printcore.upscale import SUPPORTED_FACTORS, UpscaleProvider, upscale_image

MAX_UPSCALE_FACTOR = 8

# Runs above this are too slow for a webhook and belong to operator tooling
SLOW_RUN_SECONDS = 25


class PrintMasterService:
    """Produces and persists PRINT master assets."""

    def __init__(self,
                 session_factory: sessionmaker,
                 provider: UpscaleProvider,
                 fetcher: ImageFetcher,
                 storage: ObjectStorage,
                 config: AppConfig = None,
                 catalog: List[SizeCatalogEntry] = None):
        self.session_factory = session_factory
        self.provider = provider
        self.fetcher = fetcher
        self.storage = storage
        self.config = config or get_config()
        self.catalog = catalog if catalog is not None else get_catalog()

    def select_upscale_factor(self, size_code: str, source_width_px: int,
                              override: Optional[int] = None) -> int:
        """Per-size factor, doubled (up to 8x) for low-resolution sources."""
        base = override or self.config.SIZE_UPSCALE_FACTORS.get(size_code) or self.config.DEFAULT_UPSCALE_FACTOR
        if source_width_px <= self.config.LOW_RES_SOURCE_WIDTH:
            adjusted = min(base * 2, MAX_UPSCALE_FACTOR)
            if adjusted != base:
                logger.info(f"Low-res source ({source_width_px}px): upscale {base}x -> {adjusted}x")
            return adjusted
        return base

    def is_premium_size(self, size_code: str) -> bool:
        """Sizes needing an 8x two-pass upscale."""
        return self.config.SIZE_UPSCALE_FACTORS.get(size_code, 0) >= MAX_UPSCALE_FACTOR

    def _probe_source(self, image_url: str, log_prefix: str) -> Tuple[int, int]:
        try:
            width, height = probe_dimensions(self.fetcher.fetch(image_url).content)
            logger.info(f"{log_prefix} Detected source: {width}x{height}")
            return width, height
        except (ExternalProviderError, RenderError) as e:
            width, height = self.config.DEFAULT_SOURCE_WIDTH, self.config.DEFAULT_SOURCE_HEIGHT
            logger.warning(f"{log_prefix} Could not probe source ({e.message}), assuming {width}x{height}")
            return width, height

    def ensure_print_master(self,
                            design_id: str,
                            image_url: str,
                            size_code: str,
                            product_type,
                            upscale_factor: Optional[int] = None,
                            target_dpi: Optional[int] = None) -> str:
        """Return the id of the PRINT master for this key, creating it if needed."""
        product_type = PrintProductType.parse(product_type)
        require_size(size_code, self.catalog)
        if upscale_factor is not None and upscale_factor not in SUPPORTED_FACTORS:
            raise UnsupportedUpscaleFactorError(upscale_factor)
        target_dpi = target_dpi or self.config.MASTER_TARGET_DPI

        log_prefix = f"[ensure_print_master] design={design_id} size={size_code}"
        start_time = time.monotonic()

        with session_scope(self.session_factory) as session:
            existing = AssetRepository(session).find_asset(
                design_id, AssetRole.PRINT, size_code, product_type)
            if existing and existing.upscale_factor:
                logger.info(f"{log_prefix} PRINT asset already exists ({existing.id}), skipping")
                return existing.id

        source_w, source_h = self._probe_source(image_url, log_prefix)
        factor = self.select_upscale_factor(size_code, source_w, upscale_factor)

        logger.info(f"{log_prefix} Starting upscale pipeline ({factor}x, target {target_dpi} DPI)")
        if factor >= MAX_UPSCALE_FACTOR:
            logger.warning(f"{log_prefix} 8x upscale (premium): expect 60-120s")

        result = upscale_image(self.provider, image_url, factor, source_w, source_h)
        logger.info(f"{log_prefix} Upscale success: {result.final_width_px}x{result.final_height_px}")

        advisory = self.check_quality(result.final_width_px, result.final_height_px, size_code, target_dpi)
        if advisory:
            logger.warning(f"{log_prefix} {advisory}. Proceeding anyway (best available).")

        downloaded = self.fetcher.fetch(result.url)
        logger.info(f"{log_prefix} Downloaded: {downloaded.file_size / 1024 / 1024:.1f} MB")

        blob_path = (f"print-assets/{design_id}/{size_code}-{product_type.value}-{factor}x."
                     f"{extension_for(downloaded.mime_type)}")
        stored = self.storage.put(blob_path, downloaded.content, downloaded.mime_type)

        asset_data = dict(
            url=stored.url,
            width_px=result.final_width_px,
            height_px=result.final_height_px,
            dpi=target_dpi,
            file_size=downloaded.file_size,
            mime_type=downloaded.mime_type,
            source_width_px=result.source_width_px,
            source_height_px=result.source_height_px,
            upscale_factor=result.upscale_factor,
            upscale_provider=result.upscale_provider,
            quality_warning=advisory.message if advisory else None,
        )

        with session_scope(self.session_factory) as session:
            repo = AssetRepository(session)
            placeholder = repo.find_asset(design_id, AssetRole.PRINT, size_code, product_type)
            if placeholder is not None and placeholder.upscale_factor:
                # another run finished first
                asset_id = placeholder.id
            elif placeholder is not None:
                asset_id = repo.update_asset(placeholder, **asset_data).id
            else:
                asset_id = repo.create_asset(
                    design_id=design_id,
                    role=AssetRole.PRINT,
                    size_code=size_code,
                    product_type=product_type,
                    **asset_data,
                ).id

        duration = time.monotonic() - start_time
        logger.info(f"{log_prefix} Asset created: {asset_id} ({duration:.1f}s total)")
        if duration > SLOW_RUN_SECONDS:
            logger.warning(f"{log_prefix} Took {duration:.1f}s; use operator tooling for this size")

        return asset_id

    def check_quality(self, width_px: int, height_px: int, size_code: str,
                      target_dpi: int) -> Optional[QualityAdvisory]:
        required_w, required_h = target_dimensions(size_code, target_dpi, self.catalog)
        if width_px >= required_w and height_px >= required_h:
            return None
        return QualityAdvisory(size_code, target_dpi, width_px, height_px, required_w, required_h)


def ensure_print_master(design_id: str, image_url: str, size_code: str, product_type, **kwargs) -> str:
    """Ensure a PRINT master using the default pipeline."""
    from printcore import get_pipeline

    return get_pipeline().print_masters.ensure_print_master(
        design_id, image_url, size_code, product_type, **kwargs)
