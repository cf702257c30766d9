"""
Pixel colour comparison under a tolerance.

Pixels are packed 32-bit ARGB integers (alpha in the high byte). A pixel
with alpha 0 is a wildcard that matches anything, which lets callers mask
out the parts of a target that should not take part in the comparison.
"""

from enum import Enum
from typing import Tuple

import numpy as np


class ColorMetric(str, Enum):
    """Distance used when tolerance is above zero."""
    
    BRIGHTNESS = "brightness"
    RGB_DISTANCE = "rgb_distance"  # legacy: mean absolute RGB difference / 765


def pack_argb(a: int, r: int, g: int, b: int) -> int:
    """Pack four 8-bit channels into one ARGB integer."""
    return ((a & 0xFF) << 24) | ((r & 0xFF) << 16) | ((g & 0xFF) << 8) | (b & 0xFF)


def unpack_argb(pixel: int) -> Tuple[int, int, int, int]:
    """Split an ARGB integer into (a, r, g, b)."""
    pixel = int(pixel)
    return (
        (pixel >> 24) & 0xFF,
        (pixel >> 16) & 0xFF,
        (pixel >> 8) & 0xFF,
        pixel & 0xFF,
    )


def brightness(pixel: int) -> float:
    """HSL lightness of a pixel in [0, 1]."""
    _, r, g, b = unpack_argb(pixel)
    return (max(r, g, b) + min(r, g, b)) / 510.0


def channel_planes(pixels: np.ndarray) -> Tuple[np.ndarray, ...]:
    """Split an ARGB uint32 array into (a, r, g, b) int32 arrays of the same shape."""
    pixels = pixels.astype(np.uint32, copy=False)
    return tuple(
        ((pixels >> shift) & 0xFF).astype(np.int32)
        for shift in (24, 16, 8, 0)
    )


def brightness_plane(pixels: np.ndarray) -> np.ndarray:
    """Vectorised brightness() over an ARGB array."""
    _, r, g, b = channel_planes(pixels)
    high = np.maximum(np.maximum(r, g), b)
    low = np.minimum(np.minimum(r, g), b)
    return (high + low) / 510.0


class ColorComparator:
    """
    Decides whether two pixels match.
    
    Policy, in order:
    1. either alpha is 0 -> match
    2. tolerance <= 0 -> all four channels equal
    3. otherwise the configured metric must be within tolerance
    """
    
    def __init__(self, metric: ColorMetric = ColorMetric.BRIGHTNESS):
        self.metric = ColorMetric(metric)
    
    def distance(self, a: int, b: int) -> float:
        """Distance between two pixels under the configured metric, in [0, 1]."""
        if self.metric is ColorMetric.RGB_DISTANCE:
            _, ar, ag, ab = unpack_argb(a)
            _, br, bg, bb = unpack_argb(b)
            return (abs(ar - br) + abs(ag - bg) + abs(ab - bb)) / 765.0
        return abs(brightness(a) - brightness(b))
    
    def matches(self, a: int, b: int, tolerance: float = 0.0) -> bool:
        """Compare two packed pixels."""
        if (int(a) >> 24) & 0xFF == 0 or (int(b) >> 24) & 0xFF == 0:
            return True
        if tolerance <= 0:
            return int(a) & 0xFFFFFFFF == int(b) & 0xFFFFFFFF
        return self.distance(a, b) <= tolerance
    
    def prepare(self, pixels: np.ndarray) -> np.ndarray:
        """
        Precompute the per-pixel value the metric compares.
        
        Brightness needs one float per pixel; the RGB metric keeps the
        channels as an (..., 3) int array.
        """
        if self.metric is ColorMetric.RGB_DISTANCE:
            _, r, g, b = channel_planes(pixels)
            return np.stack((r, g, b), axis=-1)
        return brightness_plane(pixels)
    
    def matches_many(
        self,
        source: np.ndarray,
        target: np.ndarray,
        tolerance: float,
        source_values: np.ndarray = None,
        target_values: np.ndarray = None,
    ) -> bool:
        """
        True if every pixel pair of two equally-shaped ARGB arrays matches.

        source_values/target_values are the prepare() output for the same
        pixels; pass them to avoid recomputing on every call.
        """
        return bool(
            self.match_mask(source, target, tolerance, source_values, target_values).all()
        )

    def match_mask(
        self,
        source: np.ndarray,
        target: np.ndarray,
        tolerance: float,
        source_values: np.ndarray = None,
        target_values: np.ndarray = None,
    ) -> np.ndarray:
        """
        Element-wise matches() as a boolean array.

        target broadcasts against source, so a single pixel can be checked
        against a whole plane at once.
        """
        source = np.asarray(source, dtype=np.uint32)
        target = np.asarray(target, dtype=np.uint32)
        wildcard = ((source >> 24) == 0) | ((target >> 24) == 0)
        if tolerance <= 0:
            return (source == target) | wildcard

        if source_values is None:
            source_values = self.prepare(source)
        if target_values is None:
            target_values = self.prepare(target)

        if self.metric is ColorMetric.RGB_DISTANCE:
            diff = np.abs(source_values - target_values).sum(axis=-1) / 765.0
        else:
            diff = np.abs(source_values - target_values)
        return (diff <= tolerance) | wildcard
