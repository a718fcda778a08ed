"""Print size catalog and physical-to-pixel conversion."""

import math
from typing import List, Optional, Tuple

from printcore.config import SizeCatalogEntry
from printcore.errors import UnknownSizeError

CM_PER_INCH = 2.54

# Ordered small -> large
DEFAULT_SIZES: List[SizeCatalogEntry] = [
    SizeCatalogEntry(id="a5", label="A5 (15×21 cm)", width_cm=14.8, height_cm=21.0),
    SizeCatalogEntry(id="a4", label="A4 (21×30 cm)", width_cm=21.0, height_cm=29.7),
    SizeCatalogEntry(id="a3", label="A3 (30×42 cm)", width_cm=29.7, height_cm=42.0),
    SizeCatalogEntry(id="30x40", label="30×40 cm", width_cm=30.0, height_cm=40.0),
    SizeCatalogEntry(id="40x50", label="40×50 cm", width_cm=40.0, height_cm=50.0),
    SizeCatalogEntry(id="50x70", label="50×70 cm", width_cm=50.0, height_cm=70.0),
    SizeCatalogEntry(id="61x91", label="61×91 cm", width_cm=61.0, height_cm=91.0),
    SizeCatalogEntry(id="70x100", label="70×100 cm", width_cm=70.0, height_cm=100.0),
]

_catalog: Optional[List[SizeCatalogEntry]] = None


def get_catalog() -> List[SizeCatalogEntry]:
    """Return the configured size catalog, loading it once."""
    global _catalog
    if _catalog is None:
        from printcore.config import load_size_catalog
        _catalog = load_size_catalog()
    return _catalog


def find_size(size_code: str, catalog: List[SizeCatalogEntry] = None) -> Optional[SizeCatalogEntry]:
    for size in catalog if catalog is not None else get_catalog():
        if size.id == size_code:
            return size
    return None


def require_size(size_code: str, catalog: List[SizeCatalogEntry] = None) -> SizeCatalogEntry:
    """Look up a size, raising UnknownSizeError when it is not in the catalog."""
    catalog = catalog if catalog is not None else get_catalog()
    size = find_size(size_code, catalog)
    if size is None:
        raise UnknownSizeError(size_code, [s.id for s in catalog])
    return size


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def cm_to_pixels(cm: float, dpi: float) -> int:
    return round_half_up(cm / CM_PER_INCH * dpi)


def target_dimensions(size_code: str, dpi: int = 150,
                      catalog: List[SizeCatalogEntry] = None) -> Tuple[int, int]:
    """Pixel dimensions a size needs at the given DPI."""
    size = require_size(size_code, catalog)
    return cm_to_pixels(size.width_cm, dpi), cm_to_pixels(size.height_cm, dpi)


def meets_target_dpi(width_px: int, height_px: int, size_code: str, target_dpi: int = 150,
                     catalog: List[SizeCatalogEntry] = None) -> bool:
    """Check whether pixel dimensions reach the target DPI for a size."""
    required_w, required_h = target_dimensions(size_code, target_dpi, catalog)
    return width_px >= required_w and height_px >= required_h
