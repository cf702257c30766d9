"""
Matching engine - pixel buffers, colour comparison, region scan and quadrant scheduler.
"""

from screen_finder.matching.geometry import Rectangle, MatchResult, merge_overlapping
from screen_finder.matching.color import (
    ColorComparator,
    ColorMetric,
    brightness,
    pack_argb,
    unpack_argb,
)
from screen_finder.matching.buffer import PixelBuffer
from screen_finder.matching.matcher import Matcher, validate_area
from screen_finder.matching.scheduler import (
    QuadrantScheduler,
    SearchHandle,
    SearchMode,
    split_quadrants,
    find,
    find_all,
    find_async,
    find_all_async,
)

__all__ = [
    # Geometry
    "Rectangle",
    "MatchResult",
    "merge_overlapping",
    # Colour
    "ColorComparator",
    "ColorMetric",
    "brightness",
    "pack_argb",
    "unpack_argb",
    # Buffer
    "PixelBuffer",
    # Region scan
    "Matcher",
    "validate_area",
    # Scheduler
    "QuadrantScheduler",
    "SearchHandle",
    "SearchMode",
    "split_quadrants",
    "find",
    "find_all",
    "find_async",
    "find_all_async",
]
