"""
screen-finder - locate a reference image inside a larger image or the screen.
"""

__version__ = "0.3.0"

from screen_finder.errors import FinderError, AreaTooSmall, OutOfBounds, SearchFailed
from screen_finder.matching import (
    PixelBuffer,
    Rectangle,
    MatchResult,
    ColorComparator,
    ColorMetric,
    Matcher,
    QuadrantScheduler,
    SearchHandle,
    SearchMode,
    find,
    find_all,
    find_async,
    find_all_async,
)

__all__ = [
    "__version__",
    # Errors
    "FinderError",
    "AreaTooSmall",
    "OutOfBounds",
    "SearchFailed",
    # Matching
    "PixelBuffer",
    "Rectangle",
    "MatchResult",
    "ColorComparator",
    "ColorMetric",
    "Matcher",
    "QuadrantScheduler",
    "SearchHandle",
    "SearchMode",
    "find",
    "find_all",
    "find_async",
    "find_all_async",
]
