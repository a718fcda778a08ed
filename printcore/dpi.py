"""
Print quality analysis.

Scores an image against every catalog size by the effective DPI it
reaches when it fills the size under a COVER crop.

Tier thresholds (effective DPI):
- perfect: >= 250
- good:    >= 200
- fair:    >= 150
- low:     below 150

The same table drives the studio quality badges and master eligibility.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional

from printcore.config import SizeCatalogEntry
from printcore.errors import InputValidationError
from printcore.sizes import CM_PER_INCH, cm_to_pixels, get_catalog, round_half_up

QUALITY_TIERS = (
    (250, 'perfect'),
    (200, 'good'),
    (150, 'fair'),
)
LOW_TIER = 'low'

# Anything below "good" should be upscaled before printing
UPSCALE_THRESHOLD_DPI = 200

QUALITY_LABELS = {
    'perfect': "Perfect for print",
    'good': "Good quality",
    'fair': "Needs AI upscaling",
    'low': "Too low resolution",
}


@dataclass(frozen=True)
class DpiResult:
    size_id: str
    label: str
    width_cm: float
    height_cm: float
    required_width: int
    required_height: int
    effective_dpi: int
    quality: str
    needs_upscaling: bool

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def classify_dpi(effective_dpi: float) -> str:
    for threshold, tier in QUALITY_TIERS:
        if effective_dpi >= threshold:
            return tier
    return LOW_TIER


def effective_dpi(width_px: int, height_px: int, size: SizeCatalogEntry) -> float:
    """DPI along the axis that limits a COVER fit of the image onto the size."""
    image_aspect = width_px / height_px
    size_aspect = size.width_cm / size.height_cm
    if image_aspect > size_aspect:
        # Image is wider: height is the limiting factor
        return height_px / (size.height_cm / CM_PER_INCH)
    return width_px / (size.width_cm / CM_PER_INCH)


def analyze_print_quality(width_px: int, height_px: int,
                          catalog: List[SizeCatalogEntry] = None) -> List[DpiResult]:
    """Analyze an image's print quality across all catalog sizes."""
    if not width_px or not height_px or width_px <= 0 or height_px <= 0:
        raise InputValidationError(
            f"Image dimensions must be positive, got {width_px}x{height_px}",
            details={'width_px': width_px, 'height_px': height_px}
        )

    results = []
    for size in catalog if catalog is not None else get_catalog():
        dpi = round_half_up(effective_dpi(width_px, height_px, size))
        results.append(DpiResult(
            size_id=size.id,
            label=size.label,
            width_cm=size.width_cm,
            height_cm=size.height_cm,
            required_width=cm_to_pixels(size.width_cm, size.reference_dpi),
            required_height=cm_to_pixels(size.height_cm, size.reference_dpi),
            effective_dpi=dpi,
            quality=classify_dpi(dpi),
            needs_upscaling=dpi < UPSCALE_THRESHOLD_DPI,
        ))
    return results


def get_best_size(width_px: int, height_px: int,
                  catalog: List[SizeCatalogEntry] = None) -> Optional[DpiResult]:
    """Largest size still rated good or better, or None."""
    acceptable = [r for r in analyze_print_quality(width_px, height_px, catalog)
                  if r.quality in ('perfect', 'good')]
    if not acceptable:
        return None
    return max(acceptable, key=lambda r: r.width_cm * r.height_cm)


def get_quality_label(quality: str) -> str:
    return QUALITY_LABELS.get(quality, quality)
