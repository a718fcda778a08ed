"""
Composite module for print rendering.

This module handles:
- Applying a CropRect to a full-resolution image with Pillow
- Padding CONTAIN renders onto a background canvas
- Encoding the final image at print quality
"""

import io
from typing import Tuple

from PIL import Image
from loguru import logger

from printcore.crop import BACKGROUND_COLOR, CropRect
from printcore.errors import RenderError

# Print masters are far beyond Pillow's default bomb limit
Image.MAX_IMAGE_PIXELS = None


class CompositeSettings:
    """Settings for encoding the final image."""

    def __init__(self,
                 output_format: str = 'PNG',
                 quality: int = 100,
                 background_color: Tuple[int, int, int] = BACKGROUND_COLOR,
                 dpi: int = None):
        self.output_format = output_format
        self.quality = quality
        self.background_color = background_color
        self.dpi = dpi

    @property
    def mime_type(self) -> str:
        return 'image/jpeg' if self.output_format.upper() == 'JPEG' else 'image/png'


def create_canvas(canvas_size: Tuple[int, int],
                  background_color: Tuple[int, int, int] = BACKGROUND_COLOR) -> Image.Image:
    """Create a new canvas with the specified size and background color."""
    canvas = Image.new('RGB', canvas_size, background_color)
    logger.debug(f"Created canvas: {canvas_size} with background {background_color}")
    return canvas


def load_image(content: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except OSError as e:
        raise RenderError(f"Failed to decode image: {e}", details={'bytes': len(content)})
    return image


def apply_crop_rect(image: Image.Image,
                    crop: CropRect,
                    target_size: Tuple[int, int],
                    background_color: Tuple[int, int, int] = BACKGROUND_COLOR) -> Image.Image:
    """
    Extract the crop's source rect, resample it to the destination size and,
    when it does not fill the target, paste it onto a full-size canvas.
    """
    target_size = (int(target_size[0]), int(target_size[1]))
    left, top, right, bottom = crop.source_box
    right = min(right, image.width)
    bottom = min(bottom, image.height)
    left = max(0, min(left, right - 1))
    top = max(0, min(top, bottom - 1))

    if image.mode not in ('RGB', 'RGBA'):
        image = image.convert('RGB')

    extracted = image.crop((left, top, right, bottom))
    dest_w, dest_h = crop.destination_size
    resized = extracted.resize((max(1, dest_w), max(1, dest_h)), Image.Resampling.LANCZOS)

    logger.debug(f"Cropped {image.size} -> {(left, top, right, bottom)} -> {resized.size}")

    # a CONTAIN image pushed to an edge has dx or dy of 0 but still leaves padding
    if crop.has_padding or resized.size != target_size:
        canvas = create_canvas(target_size, background_color)
        if resized.mode == 'RGBA':
            canvas.paste(resized, crop.destination_offset, resized)
        else:
            canvas.paste(resized, crop.destination_offset)
        return canvas

    if resized.mode == 'RGBA':
        # flatten transparency onto the background
        canvas = create_canvas(resized.size, background_color)
        canvas.paste(resized, (0, 0), resized)
        return canvas

    return resized


def get_image_bytes(image: Image.Image, settings: CompositeSettings = None) -> bytes:
    """Encode the image for storage."""
    if settings is None:
        settings = CompositeSettings()

    save_kwargs = {'format': settings.output_format}
    if settings.dpi:
        save_kwargs['dpi'] = (settings.dpi, settings.dpi)

    if settings.output_format.upper() == 'JPEG':
        save_kwargs.update({
            'quality': settings.quality,
            'subsampling': 0,
        })
        if image.mode != 'RGB':
            image = image.convert('RGB')
    elif settings.output_format.upper() == 'PNG':
        save_kwargs['compress_level'] = 6

    buffer = io.BytesIO()
    image.save(buffer, **save_kwargs)
    return buffer.getvalue()
