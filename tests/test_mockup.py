"""
Tests for the room mockup adapters.
"""

import pytest
from PIL import Image

from printcore.config import FrameOption, load_frame_options
from printcore.crop import CropMode
from printcore.errors import UnknownSizeError
from printcore.mockup import (
    FRAME_PX_PER_MM, compose_mockup_css, design_placement, frame_width_px,
    render_mockup_image
)
from printcore.models import Design
from printcore.placement import FALLBACK_PLACEMENT
from tests.conftest import make_image

WALL = [
    {'x': 0.1, 'y': 0.1},
    {'x': 0.9, 'y': 0.1},
    {'x': 0.9, 'y': 0.9},
    {'x': 0.1, 'y': 0.9},
]

BLACK = FrameOption(id='black', label='Black', color='#1a1a1a', width_mm=20)


def make_design(**fields):
    values = dict(image_url="file:///tmp/art.png", wall_corners=WALL, position_x=0.5,
                  position_y=0.5, scale=1.0, size_id='50x70', crop_mode=CropMode.COVER,
                  crop_offset_x=0.0, crop_offset_y=0.0)
    values.update(fields)
    return Design(**values)


class TestDesignPlacement:
    def test_uses_physical_size(self):
        placement = design_placement(make_design())

        assert placement.width == pytest.approx(50 / 200 * 0.8)
        assert placement.height == pytest.approx(70 / 200 * 0.8)

    def test_size_override(self):
        placement = design_placement(make_design(), '70x100')

        assert placement.width == pytest.approx(70 / 200 * 0.8)

    def test_missing_wall_uses_fallback(self):
        assert design_placement(make_design(wall_corners=None)) == FALLBACK_PLACEMENT

    def test_unknown_size_raises(self):
        with pytest.raises(UnknownSizeError):
            design_placement(make_design(size_id='99x99'))


class TestComposeMockupCss:
    """Test the preview overlay styles."""

    def test_layers(self):
        css = compose_mockup_css(make_design(crop_mode=CropMode.CONTAIN, crop_offset_x=1))

        assert css['posterStyle']['position'] == 'absolute'
        assert css['posterStyle']['left'].endswith('%')
        assert css['imageStyle']['objectFit'] == 'contain'
        assert css['imageStyle']['objectPosition'] == '100% 50%'
        assert css['frameStyle'] == {}
        assert 'boxShadow' in css['shadowStyle']

    def test_frame_wraps_poster(self):
        css = compose_mockup_css(make_design(), frame=BLACK)

        border = 20 * FRAME_PX_PER_MM
        assert css['frameStyle']['backgroundColor'] == '#1a1a1a'
        assert f"- {border}px" in css['frameStyle']['left']
        assert f"+ {border * 2}px" in css['frameStyle']['width']
        assert css['frameStyle']['zIndex'] < css['posterStyle']['zIndex']

    def test_none_frame_has_no_border(self):
        none = FrameOption(id='none', label='No frame')

        assert frame_width_px(none) == 0
        assert compose_mockup_css(make_design(), frame=none)['frameStyle'] == {}


class TestRenderMockupImage:
    """Test the server-side composite."""

    def test_poster_pasted_at_placement(self):
        room = Image.new('RGB', (1000, 1000), (240, 240, 240))
        art = make_image(500, 700)

        result = render_mockup_image(room, art, make_design())

        assert result.size == room.size
        assert result.mode == 'RGB'
        left, top, width, height = design_placement(make_design()).to_pixels(1000, 1000)
        assert (width, height) == (200, 280)
        assert result.getpixel((left + width // 2, top + height // 2)) == (200, 60, 40)
        assert result.getpixel((5, 5)) == (240, 240, 240)

    def test_contain_offset_keeps_poster_size(self):
        """Square art flush with the top of a portrait poster pads the bottom."""
        room = Image.new('RGB', (1000, 1000), (240, 240, 240))
        design = make_design(crop_mode=CropMode.CONTAIN, crop_offset_y=-1)

        result = render_mockup_image(room, make_image(500, 500), design)

        left, top, width, height = design_placement(design).to_pixels(1000, 1000)
        assert result.getpixel((left + width // 2, top + 150)) == (200, 60, 40)
        assert result.getpixel((left + width // 2, top + height - 2)) == (255, 255, 255)

    def test_frame_drawn_around_poster(self):
        room = Image.new('RGB', (1000, 1000), (240, 240, 240))
        art = make_image(500, 700)

        result = render_mockup_image(room, art, make_design(), frame=BLACK)

        left, top, width, height = design_placement(make_design()).to_pixels(1000, 1000)
        assert result.getpixel((left - 2, top + height // 2)) == (0x1a, 0x1a, 0x1a)


class TestFrameOptions:
    def test_load_frames(self, tmp_path):
        path = tmp_path / "frames.yaml"
        path.write_text(
            "frames:\n"
            "  - id: oak\n"
            "    label: Oak\n"
            "    color: '#C4A265'\n"
            "    width_mm: 25\n"
        )

        frames = load_frame_options(str(path))

        assert frames['oak'].width_mm == 25
        assert frames['oak'].color == '#C4A265'
