"""
Room mockup adapters.

Turns a design's stored placement and crop state into:
- CSS overlay styles for the interactive preview
- a composited mockup image rendered server-side with Pillow

Both go through calculate_poster_placement and calculate_crop_rect, the
same functions the final print render uses.
"""

from typing import Any, Dict, Optional

from PIL import Image, ImageDraw, ImageFilter
from loguru import logger

from printcore.composite import apply_crop_rect
from printcore.config import FrameOption
from printcore.crop import CropMode, calculate_crop_rect, crop_to_css
from printcore.models import Design
from printcore.placement import Placement, calculate_poster_placement, placement_to_css
from printcore.sizes import require_size

# Frame width (mm) to preview pixels
FRAME_PX_PER_MM = 0.4

SHADOW_OFFSET = (5, 8)
SHADOW_BLUR = 12
SHADOW_COLOR = (0, 0, 0, 100)


def design_placement(design: Design, size_code: str = None) -> Placement:
    """Placement for a design's stored wall corners, anchor and scale."""
    size = require_size(size_code or design.size_id)
    return calculate_poster_placement(
        design.wall_corners or [],
        design.position_x if design.position_x is not None else 0.5,
        design.position_y if design.position_y is not None else 0.5,
        design.scale if design.scale is not None else 1.0,
        size.width_cm / size.height_cm,
        size.width_cm,
        size.height_cm,
    )


def frame_width_px(frame: Optional[FrameOption]) -> float:
    if frame is None or frame.id == 'none':
        return 0
    return frame.width_mm * FRAME_PX_PER_MM


def compose_mockup_css(design: Design, size_code: str = None,
                       frame: Optional[FrameOption] = None) -> Dict[str, Dict[str, Any]]:
    """CSS styles for the poster, its image, frame and shadow layers."""
    placement = design_placement(design, size_code)
    box = placement_to_css(placement)
    border = frame_width_px(frame)

    poster_style = {'position': 'absolute', 'overflow': 'hidden', 'zIndex': 10, **box}
    image_style = {'width': '100%', 'height': '100%',
                   **crop_to_css(design.crop_mode, design.crop_offset_x, design.crop_offset_y)}
    shadow_style = {'position': 'absolute', 'boxShadow': '5px 8px 25px rgba(0,0,0,0.4)',
                    'zIndex': 8, **box}

    frame_style = {}
    if border:
        frame_style = {
            'position': 'absolute',
            'left': f"calc({box['left']} - {border}px)",
            'top': f"calc({box['top']} - {border}px)",
            'width': f"calc({box['width']} + {border * 2}px)",
            'height': f"calc({box['height']} + {border * 2}px)",
            'backgroundColor': frame.color,
            'zIndex': 9,
        }

    return {
        'posterStyle': poster_style,
        'imageStyle': image_style,
        'frameStyle': frame_style,
        'shadowStyle': shadow_style,
    }


def render_mockup_image(room_image: Image.Image, design_image: Image.Image, design: Design,
                        size_code: str = None, frame: Optional[FrameOption] = None) -> Image.Image:
    """Composite the cropped design onto the room photo."""
    room = room_image.convert('RGBA')
    placement = design_placement(design, size_code)
    left, top, width, height = placement.to_pixels(room.width, room.height)

    crop = calculate_crop_rect(design_image.width, design_image.height, width, height,
                               CropMode.parse(design.crop_mode),
                               design.crop_offset_x or 0, design.crop_offset_y or 0)
    poster = apply_crop_rect(design_image, crop, (width, height))

    border = round(frame_width_px(frame))

    # Shadow
    shadow = Image.new('RGBA', room.size, (0, 0, 0, 0))
    ImageDraw.Draw(shadow).rectangle(
        [left + SHADOW_OFFSET[0] - border, top + SHADOW_OFFSET[1] - border,
         left + width + SHADOW_OFFSET[0] + border, top + height + SHADOW_OFFSET[1] + border],
        fill=SHADOW_COLOR,
    )
    room = Image.alpha_composite(room, shadow.filter(ImageFilter.GaussianBlur(SHADOW_BLUR)))

    if border:
        ImageDraw.Draw(room).rectangle(
            [left - border, top - border, left + width + border - 1, top + height + border - 1],
            fill=frame.color,
        )

    room.paste(poster.convert('RGBA'), (left, top))
    logger.debug(f"Rendered mockup: poster {width}x{height} at ({left}, {top}) on {room.size}")
    return room.convert('RGB')
