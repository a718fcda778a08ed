"""
Shared crop geometry for the mockup preview and the final print render.

Both adapters call calculate_crop_rect with the crop mode and offsets
persisted on the Design:
- crop_to_css turns them into CSS object-fit / object-position
- composite.apply_crop_rect cuts the full-resolution master with Pillow

CropMode:
- COVER: fill the target, crop overflow (CSS object-fit: cover)
- CONTAIN: fit the whole image inside the target, pad the remainder
- FILL: stretch the whole image to the target

Offsets range from -1 to 1, 0 is centered.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Tuple

from loguru import logger

from printcore.errors import InputValidationError


class CropMode(str, Enum):
    COVER = "COVER"
    CONTAIN = "CONTAIN"
    FILL = "FILL"

    @classmethod
    def parse(cls, value) -> "CropMode":
        """Accept an enum member or a case-insensitive name; None means COVER."""
        if value is None:
            return cls.COVER
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).upper())
        except ValueError:
            raise InputValidationError(
                f"Unknown crop mode: {value}",
                details={'crop_mode': value, 'allowed': [m.value for m in cls]}
            )


@dataclass(frozen=True)
class CropRect:
    """Source extraction rect and destination placement rect, in pixels."""
    sx: float
    sy: float
    sw: float
    sh: float
    dx: float
    dy: float
    dw: float
    dh: float

    @property
    def source_box(self) -> Tuple[int, int, int, int]:
        """Rounded (left, top, right, bottom) box for Image.crop."""
        left = round(self.sx)
        top = round(self.sy)
        return left, top, left + round(self.sw), top + round(self.sh)

    @property
    def destination_size(self) -> Tuple[int, int]:
        return round(self.dw), round(self.dh)

    @property
    def destination_offset(self) -> Tuple[int, int]:
        return round(self.dx), round(self.dy)

    @property
    def has_padding(self) -> bool:
        return self.dx > 0 or self.dy > 0


BACKGROUND_COLOR = (255, 255, 255)


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def _clean_offset(value: float, axis: str) -> float:
    if value is None:
        return 0.0
    value = float(value)
    if not math.isfinite(value):
        logger.warning(f"Non-finite crop offset {axis}={value}, using 0")
        return 0.0
    return _clamp(value, -1.0, 1.0)


def _check_dimensions(**dims: float) -> None:
    for name, value in dims.items():
        if value is None or not math.isfinite(value) or value <= 0:
            raise InputValidationError(
                f"{name} must be a positive number, got {value!r}",
                details={name: value}
            )


def calculate_crop_rect(src_w: float, src_h: float, dst_w: float, dst_h: float,
                        mode=CropMode.COVER, offset_x: float = 0, offset_y: float = 0) -> CropRect:
    """
    Calculate the crop rect for rendering a source image into a target area.

    The result depends only on the source size, target size, mode and
    offsets, so the visible region is the same fraction of the artwork at
    preview and at print resolution.
    """
    _check_dimensions(src_w=src_w, src_h=src_h, dst_w=dst_w, dst_h=dst_h)
    mode = CropMode.parse(mode)
    offset_x = _clean_offset(offset_x, 'x')
    offset_y = _clean_offset(offset_y, 'y')

    src_aspect = src_w / src_h
    dst_aspect = dst_w / dst_h

    if mode == CropMode.FILL:
        return CropRect(0, 0, src_w, src_h, 0, 0, dst_w, dst_h)

    if mode == CropMode.CONTAIN:
        if src_aspect > dst_aspect:
            # Source is wider -> fit by width
            dw = dst_w
            dh = dst_w / src_aspect
        else:
            dh = dst_h
            dw = dst_h * src_aspect
        pad_x = dst_w - dw
        pad_y = dst_h - dh
        dx = _clamp(pad_x / 2 + offset_x * pad_x / 2, 0, pad_x)
        dy = _clamp(pad_y / 2 + offset_y * pad_y / 2, 0, pad_y)
        return CropRect(0, 0, src_w, src_h, dx, dy, dw, dh)

    # COVER
    if src_aspect > dst_aspect:
        # Source is wider -> crop horizontally
        sh = src_h
        sw = src_h * dst_aspect
    else:
        sw = src_w
        sh = src_w / dst_aspect
    sw = min(sw, src_w)
    sh = min(sh, src_h)

    overflow_x = src_w - sw
    overflow_y = src_h - sh
    sx = _clamp(overflow_x / 2 + offset_x * overflow_x / 2, 0, overflow_x)
    sy = _clamp(overflow_y / 2 + offset_y * overflow_y / 2, 0, overflow_y)

    return CropRect(sx, sy, sw, sh, 0, 0, dst_w, dst_h)


def crop_to_css(mode=CropMode.COVER, offset_x: float = 0, offset_y: float = 0) -> Dict[str, str]:
    """Convert crop mode and offsets to CSS object-fit and object-position."""
    mode = CropMode.parse(mode)
    offset_x = _clean_offset(offset_x, 'x')
    offset_y = _clean_offset(offset_y, 'y')

    pos_x = round(50 + offset_x * 50)
    pos_y = round(50 + offset_y * 50)

    return {
        'objectFit': mode.value.lower(),
        'objectPosition': f"{pos_x}% {pos_y}%",
    }
