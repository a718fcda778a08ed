"""
Unit tests for crop geometry.

The crop rect must select the same fraction of the artwork at preview
size and at print size.
"""

import math

import pytest

from printcore.crop import CropMode, CropRect, calculate_crop_rect, crop_to_css
from printcore.errors import InputValidationError


class TestCoverMode:
    """Test COVER: fill the target, cropping the overflow."""

    def test_same_aspect_uses_whole_source(self):
        crop = calculate_crop_rect(1000, 1500, 200, 300)

        assert crop.sx == pytest.approx(0)
        assert crop.sy == pytest.approx(0)
        assert crop.sw == pytest.approx(1000)
        assert crop.sh == pytest.approx(1500)
        assert (crop.dx, crop.dy, crop.dw, crop.dh) == (0, 0, 200, 300)

    def test_wider_source_crops_horizontally(self):
        crop = calculate_crop_rect(2000, 1000, 500, 500)

        assert crop.sw == pytest.approx(1000)
        assert crop.sh == pytest.approx(1000)
        assert crop.sx == pytest.approx(500)
        assert crop.sy == pytest.approx(0)

    def test_taller_source_crops_vertically(self):
        crop = calculate_crop_rect(1000, 2000, 500, 500)

        assert crop.sw == pytest.approx(1000)
        assert crop.sh == pytest.approx(1000)
        assert crop.sx == pytest.approx(0)
        assert crop.sy == pytest.approx(500)

    def test_print_master_into_50x70_is_centered(self):
        """4096x6144 master into 3000x4200 print pixels."""
        crop = calculate_crop_rect(4096, 6144, 3000, 4200)

        assert crop.sw == pytest.approx(4096)
        assert crop.sh == pytest.approx(4096 * 4200 / 3000)
        assert crop.sx == pytest.approx(0)
        center_y = crop.sy + crop.sh / 2
        assert abs(center_y - 6144 / 2) <= 1
        assert crop.sw / crop.sh == pytest.approx(3000 / 4200, abs=1e-3)

    def test_offset_moves_window_to_edges(self):
        right = calculate_crop_rect(2000, 1000, 500, 500, CropMode.COVER, offset_x=1)
        left = calculate_crop_rect(2000, 1000, 500, 500, CropMode.COVER, offset_x=-1)

        assert right.sx == pytest.approx(1000)
        assert left.sx == pytest.approx(0)

    def test_offset_is_clamped(self):
        crop = calculate_crop_rect(2000, 1000, 500, 500, CropMode.COVER, offset_x=5)

        assert crop.sx == pytest.approx(1000)
        assert crop.sx + crop.sw <= 2000

    def test_non_finite_offset_is_treated_as_zero(self):
        crop = calculate_crop_rect(2000, 1000, 500, 500, CropMode.COVER, offset_x=math.nan)

        assert crop.sx == pytest.approx(500)

    def test_same_fraction_at_preview_and_print_size(self):
        """Crop window is resolution independent for a fixed target aspect."""
        preview = calculate_crop_rect(1024, 1792, 300, 420, CropMode.COVER, 0.3, -0.4)
        master = calculate_crop_rect(4096, 7168, 3000, 4200, CropMode.COVER, 0.3, -0.4)

        assert preview.sx / 1024 == pytest.approx(master.sx / 4096)
        assert preview.sy / 1792 == pytest.approx(master.sy / 7168)
        assert preview.sw / 1024 == pytest.approx(master.sw / 4096)
        assert preview.sh / 1792 == pytest.approx(master.sh / 7168)

    def test_source_window_always_inside_source(self):
        for offset in (-1, -0.5, 0, 0.5, 1):
            for src in ((800, 600), (600, 800), (1000, 1000)):
                crop = calculate_crop_rect(src[0], src[1], 700, 1000, CropMode.COVER, offset, offset)
                assert crop.sx >= 0
                assert crop.sy >= 0
                assert crop.sx + crop.sw <= src[0] + 1e-9
                assert crop.sy + crop.sh <= src[1] + 1e-9


class TestContainMode:
    """Test CONTAIN: the whole source fits, padding fills the rest."""

    def test_wider_source_is_letterboxed(self):
        crop = calculate_crop_rect(2000, 1000, 500, 500, CropMode.CONTAIN)

        assert (crop.sx, crop.sy, crop.sw, crop.sh) == (0, 0, 2000, 1000)
        assert crop.dw == pytest.approx(500)
        assert crop.dh == pytest.approx(250)
        assert crop.dx == pytest.approx(0)
        assert crop.dy == pytest.approx(125)
        assert crop.has_padding

    def test_taller_source_is_pillarboxed(self):
        crop = calculate_crop_rect(1000, 2000, 500, 500, CropMode.CONTAIN)

        assert crop.dw == pytest.approx(250)
        assert crop.dh == pytest.approx(500)
        assert crop.dx == pytest.approx(125)

    def test_offset_slides_within_padding(self):
        crop = calculate_crop_rect(1000, 2000, 500, 500, CropMode.CONTAIN, offset_x=1)

        assert crop.dx == pytest.approx(250)
        assert crop.dx + crop.dw <= 500

    def test_negative_offset_is_flush_with_near_edge(self):
        crop = calculate_crop_rect(1000, 2000, 500, 500, CropMode.CONTAIN, offset_x=-1)

        assert crop.dx == pytest.approx(0)
        assert crop.dw == pytest.approx(250)
        assert crop.destination_size == (250, 500)

    @pytest.mark.parametrize("offset", [-1, 0, 1])
    @pytest.mark.parametrize("src_w,src_h", [(1000, 2000), (2000, 1000), (480, 640)])
    def test_image_stays_inside_target_for_any_offset(self, src_w, src_h, offset):
        """Placed image plus padding on both sides spans the whole target."""
        crop = calculate_crop_rect(src_w, src_h, 291, 413, CropMode.CONTAIN, offset, offset)

        assert crop.dx >= 0
        assert crop.dy >= 0
        assert crop.dx + crop.dw <= 291 + 1e-9
        assert crop.dy + crop.dh <= 413 + 1e-9
        assert max(crop.dw / 291, crop.dh / 413) == pytest.approx(1)

    def test_matching_aspect_has_no_padding(self):
        crop = calculate_crop_rect(1000, 1000, 500, 500, CropMode.CONTAIN)

        assert not crop.has_padding


class TestFillMode:
    def test_fill_stretches_whole_source(self):
        crop = calculate_crop_rect(1234, 567, 500, 700, CropMode.FILL, 0.9, 0.9)

        assert crop == CropRect(0, 0, 1234, 567, 0, 0, 500, 700)


class TestValidation:
    """Test rejected inputs."""

    @pytest.mark.parametrize("dims", [
        (0, 100, 100, 100),
        (100, -5, 100, 100),
        (100, 100, 0, 100),
        (100, 100, 100, math.inf),
    ])
    def test_non_positive_dimensions_raise(self, dims):
        with pytest.raises(InputValidationError):
            calculate_crop_rect(*dims)

    def test_unknown_mode_raises(self):
        with pytest.raises(InputValidationError):
            calculate_crop_rect(100, 100, 100, 100, "STRETCH")

    def test_mode_parsing_is_case_insensitive(self):
        assert CropMode.parse("contain") == CropMode.CONTAIN
        assert CropMode.parse(None) == CropMode.COVER


class TestSourceBox:
    def test_source_box_is_rounded(self):
        crop = CropRect(10.4, 20.6, 100.2, 50.5, 0, 0, 100, 50)

        assert crop.source_box == (10, 21, 110, 71)


class TestCropToCss:
    """Test the preview CSS equivalent."""

    def test_centered_cover(self):
        assert crop_to_css(CropMode.COVER, 0, 0) == {
            'objectFit': 'cover',
            'objectPosition': '50% 50%',
        }

    def test_offsets_map_to_percentages(self):
        css = crop_to_css("CONTAIN", -1, 0.5)

        assert css['objectFit'] == 'contain'
        assert css['objectPosition'] == '0% 75%'

    def test_fill(self):
        assert crop_to_css(CropMode.FILL)['objectFit'] == 'fill'
