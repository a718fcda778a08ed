"""
Unit tests for print quality analysis.
"""

import pytest

from printcore.config import SizeCatalogEntry
from printcore.dpi import (
    UPSCALE_THRESHOLD_DPI, analyze_print_quality, classify_dpi,
    get_best_size, get_quality_label
)
from printcore.errors import InputValidationError
from printcore.sizes import DEFAULT_SIZES


def result_for(results, size_id):
    return next(r for r in results if r.size_id == size_id)


class TestClassification:
    """Test the tier table."""

    @pytest.mark.parametrize("dpi,tier", [
        (300, 'perfect'),
        (250, 'perfect'),
        (249.9, 'good'),
        (200, 'good'),
        (199, 'fair'),
        (150, 'fair'),
        (149, 'low'),
        (0, 'low'),
    ])
    def test_tier_boundaries(self, dpi, tier):
        assert classify_dpi(dpi) == tier

    def test_labels(self):
        assert get_quality_label('perfect') == "Perfect for print"
        assert get_quality_label('low') == "Too low resolution"
        assert get_quality_label('unknown') == 'unknown'


class TestAnalyzePrintQuality:
    """Test per-size analysis."""

    def test_one_result_per_catalog_size(self):
        results = analyze_print_quality(2048, 2048)

        assert [r.size_id for r in results] == [s.id for s in DEFAULT_SIZES]
        for r in results:
            assert r.quality in ('perfect', 'good', 'fair', 'low')

    def test_square_2k_is_too_low_for_50x70(self):
        result = result_for(analyze_print_quality(2048, 2048), '50x70')

        assert result.effective_dpi == 74
        assert result.quality == 'low'
        assert result.needs_upscaling

    def test_square_8k_is_perfect_for_50x70(self):
        result = result_for(analyze_print_quality(8192, 8192), '50x70')

        assert result.effective_dpi == 297
        assert result.quality == 'perfect'
        assert not result.needs_upscaling

    def test_required_pixels_at_reference_dpi(self):
        result = result_for(analyze_print_quality(1000, 1000), 'a4')

        assert (result.required_width, result.required_height) == (2480, 3508)

    def test_required_pixels_follow_catalog_reference_dpi(self):
        inch = SizeCatalogEntry(id='inch', label='1 inch', width_cm=2.54, height_cm=5.08,
                                reference_dpi=150)

        result = analyze_print_quality(1000, 1000, [inch])[0]

        assert (result.required_width, result.required_height) == (150, 300)

    def test_needs_upscaling_matches_threshold(self):
        for r in analyze_print_quality(3000, 4000):
            assert r.needs_upscaling == (r.effective_dpi < UPSCALE_THRESHOLD_DPI)

    def test_more_pixels_never_lowers_quality(self):
        order = ['low', 'fair', 'good', 'perfect']
        for w, h in [(600, 800), (1024, 1792), (2048, 2048), (4096, 6144)]:
            small = analyze_print_quality(w, h)
            large = analyze_print_quality(w * 2, h * 2)
            for a, b in zip(small, large):
                assert b.effective_dpi >= a.effective_dpi
                assert order.index(b.quality) >= order.index(a.quality)

    def test_larger_sizes_have_lower_dpi(self):
        results = analyze_print_quality(4000, 4000)

        dpis = [r.effective_dpi for r in results]
        assert dpis[0] > dpis[-1]

    @pytest.mark.parametrize("dims", [(0, 100), (100, 0), (-1, 100), (None, 100)])
    def test_invalid_dimensions_raise(self, dims):
        with pytest.raises(InputValidationError):
            analyze_print_quality(*dims)

    def test_to_dict(self):
        data = result_for(analyze_print_quality(2048, 2048), 'a5').to_dict()

        assert data['size_id'] == 'a5'
        assert data['quality'] == 'good'


class TestBestSize:
    """Test best-size selection."""

    def test_largest_good_size(self):
        best = get_best_size(4096, 6144)

        assert best.size_id == '50x70'
        assert best.quality == 'good'

    def test_small_image_picks_smallest(self):
        assert get_best_size(2048, 2048).size_id == 'a5'

    def test_none_when_nothing_qualifies(self):
        assert get_best_size(500, 700) is None

    def test_huge_image_picks_largest(self):
        assert get_best_size(12000, 16000).size_id == '70x100'
