"""
Single-region sliding-window scan.

For every candidate top-left corner inside the area the target is compared
against the source window on a subsampled grid (every `stride`-th row and
column). The first mismatching sample rejects the window. The first
sample of every window is checked for the whole area up front, so most
windows are rejected without being visited one by one.

After a match the scan skips ahead by the target width on the same row,
and a row that produced a match is followed by a jump of the target height.
This keeps heavily overlapping detections of one occurrence out of the
results, at the price of missing a second true match that overlaps the
first.
"""

import threading
from typing import Iterator, Optional

import numpy as np

from screen_finder.errors import AreaTooSmall
from screen_finder.logging import get_logger
from screen_finder.matching.buffer import PixelBuffer
from screen_finder.matching.color import ColorComparator
from screen_finder.matching.geometry import AreaLike, Rectangle, as_rectangle

logger = get_logger(__name__)

DEFAULT_STRIDE = 4


def validate_area(area: Rectangle, target: PixelBuffer) -> None:
    """Raise AreaTooSmall unless the target fits inside the area at least once."""
    if target.width > area.width or target.height > area.height:
        raise AreaTooSmall(
            (area.width, area.height),
            (target.width, target.height),
        )


class Matcher:
    """
    Scans one rectangular area of a source buffer for a target buffer.
    
    A Matcher keeps per-scan counters, so use one instance per concurrent
    worker.
    """
    
    def __init__(
        self,
        comparator: Optional[ColorComparator] = None,
        stride: int = DEFAULT_STRIDE,
        name: str = "matcher",
    ):
        if stride < 1:
            raise ValueError(f"Stride must be >= 1, got {stride}")
        self.comparator = comparator or ColorComparator()
        self.stride = stride
        self.name = name
        self.windows_compared = 0
        self.matches_found = 0
    
    def find(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        area: AreaLike = None,
        tolerance: float = 0.0,
        cancel: Optional[threading.Event] = None,
    ) -> Iterator[Rectangle]:
        """
        Lazily yield every match of target inside area.
        
        Validation happens here, before the iterator is returned, so a bad
        area fails the call itself rather than the first next().
        
        Args:
            source: Buffer to search in
            target: Buffer to search for
            area: Region of source to scan (default: all of it)
            tolerance: 0 for exact matching, > 0 for approximate
            cancel: Event that ends the scan quietly once set
            
        Raises:
            AreaTooSmall: If area cannot contain target
            OutOfBounds: If area leaves the source buffer
        """
        area = as_rectangle(area) or source.bounds
        validate_area(area, target)
        source.check_region(area)
        if tolerance < 0:
            raise ValueError(f"Tolerance must be >= 0, got {tolerance}")
        return self._scan(source, target, area, tolerance, cancel)
    
    def _scan(
        self,
        source: PixelBuffer,
        target: PixelBuffer,
        area: Rectangle,
        tolerance: float,
        cancel: Optional[threading.Event],
    ) -> Iterator[Rectangle]:
        step = self.stride
        tw, th = target.width, target.height
        
        # Area-relative view: window (x, y) lives at [y - area.y, x - area.x]
        src = source.as_2d()[area.y:area.bottom, area.x:area.right]
        tgt = target.as_2d()[::step, ::step]
        
        src_values: Optional[np.ndarray] = None
        tgt_values: Optional[np.ndarray] = None
        if tolerance > 0:
            src_values = self.comparator.prepare(src)
            tgt_values = self.comparator.prepare(tgt)
        
        last_x = area.width - tw
        last_y = area.height - th

        # The first sample of every candidate window, compared in one pass.
        # Windows failing it are rejected without a full comparison.
        anchors = self.comparator.match_mask(
            src[:last_y + 1, :last_x + 1],
            tgt[0, 0],
            tolerance,
            source_values=None if src_values is None else src_values[:last_y + 1, :last_x + 1],
            target_values=None if tgt_values is None else tgt_values[0, 0],
        )

        y = 0
        while y <= last_y:
            if self._cancelled(cancel, area):
                return
            row_matched = False
            x = 0
            for candidate in np.flatnonzero(anchors[y]):
                candidate = int(candidate)
                if candidate < x:
                    continue
                if self._cancelled(cancel, area):
                    return

                # Windows x..candidate-1 already failed on their first sample
                self.windows_compared += candidate - x + 1
                if self._window_matches(
                    src, tgt, src_values, tgt_values, candidate, y, tw, th, tolerance
                ):
                    self.matches_found += 1
                    row_matched = True
                    yield Rectangle(area.x + candidate, area.y + y, tw, th)
                    x = candidate + tw
                else:
                    x = candidate + 1
            self.windows_compared += max(0, last_x + 1 - x)
            y += th if row_matched else 1
        
        logger.debug(
            "Scan finished",
            matcher=self.name,
            area=area,
            windows=self.windows_compared,
            matches=self.matches_found,
        )
    
    def _window_matches(
        self,
        src: np.ndarray,
        tgt: np.ndarray,
        src_values: Optional[np.ndarray],
        tgt_values: Optional[np.ndarray],
        x: int,
        y: int,
        tw: int,
        th: int,
        tolerance: float,
    ) -> bool:
        """Compare the sampled grid row by row, stopping at the first failing row."""
        step = self.stride
        window = src[y:y + th:step, x:x + tw:step]
        window_values = None
        if src_values is not None:
            window_values = src_values[y:y + th:step, x:x + tw:step]

        for row in range(window.shape[0]):
            if not self.comparator.matches_many(
                window[row],
                tgt[row],
                tolerance,
                source_values=None if window_values is None else window_values[row],
                target_values=None if tgt_values is None else tgt_values[row],
            ):
                return False
        return True

    def _cancelled(self, cancel: Optional[threading.Event], area: Rectangle) -> bool:
        if cancel is None or not cancel.is_set():
            return False
        logger.debug(
            "Scan cancelled",
            matcher=self.name,
            area=area,
            windows=self.windows_compared,
            matches=self.matches_found,
        )
        return True
