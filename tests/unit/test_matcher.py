"""
Unit tests for the single-region Matcher.
"""

import threading

import pytest

from screen_finder.errors import AreaTooSmall, OutOfBounds
from screen_finder.matching import ColorComparator, Matcher, PixelBuffer, Rectangle, pack_argb


class TestValidation:
    """Tests for argument checks done before scanning."""
    
    def test_area_too_small_raises_before_iteration(self, noise):
        source = noise(20, 20)
        target = noise(8, 8)
        matcher = Matcher()
        
        with pytest.raises(AreaTooSmall) as exc_info:
            matcher.find(source, target, Rectangle(0, 0, 7, 20))
        
        assert matcher.windows_compared == 0
        assert exc_info.value.area_size == (7, 20)
        assert exc_info.value.target_size == (8, 8)
    
    def test_target_larger_than_source(self, noise):
        with pytest.raises(AreaTooSmall):
            Matcher().find(noise(5, 5), noise(6, 2))
    
    def test_area_outside_source(self, noise):
        with pytest.raises(OutOfBounds):
            Matcher().find(noise(20, 20), noise(4, 4), Rectangle(10, 10, 20, 20))
    
    def test_negative_tolerance(self, noise):
        with pytest.raises(ValueError):
            Matcher().find(noise(20, 20), noise(4, 4), tolerance=-0.1)
    
    def test_invalid_stride(self):
        with pytest.raises(ValueError):
            Matcher(stride=0)


class TestScan:
    """Tests for the sliding-window scan."""
    
    def test_finds_planted_target(self, planted):
        source, target, rect = planted((40, 30), (9, 7), (13, 11))
        assert list(Matcher().find(source, target)) == [rect]
    
    def test_target_equal_to_source(self, noise):
        source = noise(6, 6)
        assert list(Matcher().find(source, source.copy())) == [Rectangle(0, 0, 6, 6)]
    
    def test_no_match(self, noise):
        assert list(Matcher().find(noise(30, 30), noise(8, 8))) == []
    
    def test_returns_lazy_iterator(self, planted):
        source, target, rect = planted((30, 30), (8, 8), (2, 3))
        matches = Matcher().find(source, target)
        assert iter(matches) is matches
        assert next(matches) == rect
        assert next(matches, None) is None
    
    def test_area_limits_scan(self, planted):
        source, target, rect = planted((40, 40), (8, 8), (30, 30))
        assert list(Matcher().find(source, target, Rectangle(0, 0, 30, 40))) == []
        assert list(Matcher().find(source, target, Rectangle(20, 20, 20, 20))) == [rect]
    
    def test_area_as_tuple(self, planted):
        source, target, rect = planted((40, 40), (8, 8), (30, 30))
        assert list(Matcher().find(source, target, (22, 22, 18, 18))) == [rect]
    
    def test_skip_ahead_tiles_uniform_image(self, solid):
        source = solid(16, 8)
        target = solid(4, 4)
        
        found = [r.to_tuple()[:2] for r in Matcher().find(source, target)]
        
        assert found == [(x, y) for y in (0, 4) for x in (0, 4, 8, 12)]
    
    def test_skip_ahead_row_jump(self, solid):
        # A match on row 0 means rows 1-3 are never tried
        source = solid(12, 6)
        target = solid(4, 4)
        
        found = [r.to_tuple()[:2] for r in Matcher().find(source, target)]
        
        assert found == [(0, 0), (4, 0), (8, 0)]
    
    def test_two_separate_occurrences(self, noise):
        source = noise(60, 40)
        target = noise(8, 8)
        source.paste(target, 5, 5)
        source.paste(target, 30, 20)
        
        found = list(Matcher().find(source, target))
        
        assert found == [Rectangle(5, 5, 8, 8), Rectangle(30, 20, 8, 8)]
    
    def test_subsampling_ignores_skipped_pixels(self, planted):
        source, target, rect = planted((30, 30), (8, 8), (10, 10))
        # (1, 1) of the target is not on the stride-4 grid
        source.set(rect.x + 1, rect.y + 1, pack_argb(255, 1, 2, 3))
        
        assert list(Matcher(stride=4).find(source, target)) == [rect]
        assert list(Matcher(stride=1).find(source, target)) == []
    
    def test_sampled_pixel_mismatch_rejects(self, planted):
        source, target, rect = planted((30, 30), (8, 8), (10, 10))
        source.set(rect.x + 4, rect.y + 4, target.get(4, 4) ^ 0x00FFFFFF)
        assert list(Matcher().find(source, target)) == []
    
    def test_transparent_target_matches_first_window(self, noise):
        source = noise(20, 20)
        target = PixelBuffer.create(5, 5)
        found = next(Matcher().find(source, target, Rectangle(3, 4, 10, 10)))
        assert found == Rectangle(3, 4, 5, 5)
    
    def test_tolerance_finds_brightened_copy(self, solid):
        source = solid(30, 30, pack_argb(255, 0, 0, 0))
        target = PixelBuffer.create(8, 8)
        target.fill(pack_argb(255, 100, 100, 100))
        patch = PixelBuffer.create(8, 8)
        patch.fill(pack_argb(255, 108, 108, 108))
        source.paste(patch, 12, 6)
        
        assert list(Matcher().find(source, target, tolerance=0.0)) == []
        assert list(Matcher().find(source, target, tolerance=0.04)) == [Rectangle(12, 6, 8, 8)]
    
    def test_rgb_metric(self, solid):
        source = solid(30, 30, pack_argb(255, 0, 0, 0))
        target = PixelBuffer.create(8, 8)
        target.fill(pack_argb(255, 255, 0, 0))
        patch = PixelBuffer.create(8, 8)
        patch.fill(pack_argb(255, 0, 255, 0))
        source.paste(patch, 12, 6)
        
        rgb = Matcher(ColorComparator("rgb_distance"))
        assert list(rgb.find(source, target, tolerance=0.1)) == []
        # Red and green have the same lightness
        assert list(Matcher().find(source, target, tolerance=0.01)) == [Rectangle(12, 6, 8, 8)]
    
    def test_counts_windows(self, noise):
        matcher = Matcher()
        list(matcher.find(noise(10, 10), noise(4, 4)))
        assert matcher.windows_compared == 7 * 7


class TestCancellation:
    """Tests for cooperative cancellation."""
    
    def test_preset_cancel_yields_nothing(self, planted):
        source, target, _ = planted((30, 30), (8, 8), (0, 0))
        cancel = threading.Event()
        cancel.set()
        
        matcher = Matcher()
        assert list(matcher.find(source, target, cancel=cancel)) == []
        assert matcher.windows_compared == 0
    
    def test_cancel_mid_scan_keeps_earlier_matches(self, solid):
        source = solid(16, 16)
        target = solid(4, 4)
        cancel = threading.Event()
        
        matches = Matcher().find(source, target, cancel=cancel)
        first = next(matches)
        cancel.set()
        
        assert first == Rectangle(0, 0, 4, 4)
        assert list(matches) == []


class CountingMatcher(Matcher):
    """Matcher that counts full window comparisons."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.full_comparisons = 0

    def _window_matches(self, *args):
        self.full_comparisons += 1
        return super()._window_matches(*args)


class CountingComparator(ColorComparator):
    """Comparator that counts per-row sample comparisons."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.row_comparisons = 0

    def matches_many(self, *args, **kwargs):
        self.row_comparisons += 1
        return super().matches_many(*args, **kwargs)


class TestEarlyRejection:
    """Tests that comparison stops at the first mismatching sample."""

    BLACK = pack_argb(255, 0, 0, 0)
    WHITE = pack_argb(255, 255, 255, 255)

    def _target(self, size, white_at):
        target = PixelBuffer.create(size, size)
        target.fill(self.BLACK)
        target.set(*white_at, self.WHITE)
        return target

    @pytest.mark.parametrize("tolerance", [0.0, 0.1])
    def test_first_sample_mismatch_skips_full_comparison(self, solid, tolerance):
        source = solid(40, 40, self.BLACK)
        matcher = CountingMatcher()

        found = list(matcher.find(source, self._target(8, (0, 0)), tolerance=tolerance))

        assert found == []
        assert matcher.full_comparisons == 0
        assert matcher.windows_compared == 33 * 33

    def test_windows_passing_first_sample_are_compared_fully(self, solid):
        source = solid(40, 40, self.BLACK)
        matcher = CountingMatcher()

        found = list(matcher.find(source, self._target(8, (4, 4))))

        assert found == []
        assert matcher.full_comparisons == 33 * 33

    def test_full_comparison_stops_at_failing_row(self, solid):
        source = solid(40, 40, self.BLACK)
        comparator = CountingComparator()
        # Sampled rows are 0, 4, 8, 12; row 4 fails, rows 8 and 12 are never compared
        matcher = Matcher(comparator)

        found = list(matcher.find(source, self._target(16, (4, 4))))

        assert found == []
        assert comparator.row_comparisons == 2 * 25 * 25

    def test_rgb_metric_first_sample(self, solid):
        source = solid(20, 20, self.BLACK)
        matcher = CountingMatcher(ColorComparator("rgb_distance"))

        assert list(matcher.find(source, self._target(8, (0, 0)), tolerance=0.2)) == []
        assert matcher.full_comparisons == 0
